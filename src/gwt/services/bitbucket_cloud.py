"""Bitbucket Cloud pull requests via the REST 2.0 API."""

from __future__ import annotations

import os

from gwt.credentials import EnvironmentSource, StoredTokenSource, resolve_token
from gwt.errors import AuthError, ParseError
from gwt.logging_config import get_logger
from gwt.models import Platform, ProviderIdentity, PullRequestInfo
from gwt.services.base import PullRequestProvider, get_json, normalize_status

logger = get_logger(__name__)

EMAIL_ENV_VAR = "BITBUCKET_CLOUD_EMAIL"
TOKEN_ENV_VAR = "BITBUCKET_CLOUD_API_TOKEN"
PAGE_LEN = 50

AUTH_HINT = (
    f"Set {EMAIL_ENV_VAR} and {TOKEN_ENV_VAR}, "
    "or run 'gwt auth bitbucket-cloud setup' for instructions."
)


def token_key(workspace: str, repo: str) -> str:
    return f"bitbucket-cloud:{workspace}/{repo}"


def pr_url(pr: dict) -> str:
    html = (pr.get("links") or {}).get("html") or {}
    href = html.get("href") if isinstance(html, dict) else None
    if href:
        return str(href)
    return f"PR #{pr.get('id')}"


def _parse_pr(pr: dict) -> PullRequestInfo:
    try:
        source_branch = pr["source"]["branch"]["name"]
        return PullRequestInfo(
            url=pr_url(pr),
            status=normalize_status(pr.get("state", ""), bool(pr.get("draft"))),
            title=str(pr.get("title") or ""),
            source_branch=source_branch,
            number=pr.get("id"),
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise ParseError("Bitbucket Cloud pull request", f"unexpected shape ({e!r})") from e


class BitbucketCloudProvider(PullRequestProvider):
    platform = Platform.BITBUCKET_CLOUD

    def __init__(self, identity: ProviderIdentity, email: str | None = None) -> None:
        super().__init__(identity)
        self.workspace = identity.primary_scope
        self.repo = identity.repo_slug
        self.email = os.environ.get(EMAIL_ENV_VAR) or email
        self._token = resolve_token(
            [
                EnvironmentSource(TOKEN_ENV_VAR),
                StoredTokenSource(token_key(self.workspace, self.repo)),
            ]
        )

    def has_auth(self) -> bool:
        return self._token is not None

    def _get(self, path: str, **params) -> dict:
        if self._token is None:
            raise AuthError("No Bitbucket Cloud API token found.", hint=AUTH_HINT)
        return get_json(
            f"{self.identity.api_base}/2.0{path}",
            source="Bitbucket Cloud API",
            auth=(self.email or "user", self._token),
            params=params or None,
            auth_hint=AUTH_HINT,
            not_found=f"Repository not found: {self.workspace}/{self.repo}.",
            not_found_hint="Check the workspace and repository name in repositoryUrl.",
        )

    def get_pull_requests(self, branch: str) -> list[dict]:
        """Most recently updated PRs from ``branch``, in any state."""
        params = {
            "pagelen": PAGE_LEN,
            "sort": "-updated_on",
            "q": f'source.branch.name="{branch}"',
            "state": ["OPEN", "MERGED", "DECLINED", "SUPERSEDED"],
        }
        data = self._get(f"/repositories/{self.workspace}/{self.repo}/pullrequests", **params)
        values = data.get("values", [])
        if not isinstance(values, list):
            raise ParseError("Bitbucket Cloud API response", "'values' is not a list")
        return values

    def fetch_pr_for_branch(self, branch: str) -> PullRequestInfo | None:
        for pr in self.get_pull_requests(branch):
            info = _parse_pr(pr)
            if info.source_branch == branch:
                return info
        return None

    def test_connection(self) -> None:
        self._get("/user")
        logger.info("Bitbucket Cloud API connection successful")
