"""Shared pull-request provider capability."""

from __future__ import annotations

from abc import ABC, abstractmethod

import requests

from gwt.errors import AuthError, NotFoundError, ParseError, ProviderRequestError
from gwt.models import Platform, ProviderIdentity, PullRequestInfo

REQUEST_TIMEOUT = 30


def normalize_status(state: str, draft: bool = False) -> str:
    """Map a provider state onto OPEN/CLOSED/MERGED/DRAFT.

    The draft flag wins over the state. Unknown states pass through
    uppercased.
    """
    if draft:
        return "DRAFT"
    return str(state or "").strip().upper()


class PullRequestProvider(ABC):
    """One hosting provider's view of a repository's pull requests."""

    platform: Platform
    # Whether fetch_all_open_prs is supported.
    lists_open_prs = False

    def __init__(self, identity: ProviderIdentity) -> None:
        self.identity = identity

    @abstractmethod
    def has_auth(self) -> bool:
        """Whether credentials are available (not whether they are valid)."""

    @abstractmethod
    def fetch_pr_for_branch(self, branch: str) -> PullRequestInfo | None:
        """Return the most recent PR opened from ``branch``, if any."""

    def fetch_all_open_prs(self) -> list[PullRequestInfo]:
        raise NotImplementedError(f"{self.platform.label} cannot list all open PRs")

    @abstractmethod
    def test_connection(self) -> None:
        """Raise AuthError/ProviderRequestError unless the API accepts us."""


def check_response(
    response: requests.Response,
    *,
    auth_hint: str,
    not_found: str,
    not_found_hint: str,
) -> None:
    """Translate an HTTP error status into the matching gwt error."""
    if response.ok:
        return
    if response.status_code == 401:
        raise AuthError("Authentication failed.", hint=auth_hint)
    if response.status_code == 404:
        raise NotFoundError(not_found, hint=not_found_hint)
    raise ProviderRequestError(
        f"API request failed with status {response.status_code}: {response.text[:200]}",
    )


def get_json(
    url: str,
    *,
    source: str,
    auth_hint: str,
    not_found: str,
    not_found_hint: str,
    **kwargs,
) -> dict:
    """GET ``url`` and decode a JSON object, mapping every failure to a gwt error."""
    headers = {"Accept": "application/json", **kwargs.pop("headers", {})}
    try:
        response = requests.get(
            url,
            headers=headers,
            timeout=REQUEST_TIMEOUT,
            **kwargs,
        )
    except requests.RequestException as e:
        raise ProviderRequestError(f"Failed to reach {source}: {e}") from e

    check_response(
        response,
        auth_hint=auth_hint,
        not_found=not_found,
        not_found_hint=not_found_hint,
    )
    try:
        data = response.json()
    except ValueError as e:
        raise ParseError(f"{source} response", str(e)) from e
    if not isinstance(data, dict):
        raise ParseError(f"{source} response", "expected a JSON object")
    return data
