"""Bitbucket Data Center pull requests via the REST 1.0 API."""

from __future__ import annotations

from gwt.credentials import EnvironmentSource, StoredTokenSource, resolve_token
from gwt.errors import AuthError, ParseError
from gwt.logging_config import get_logger
from gwt.models import Platform, ProviderIdentity, PullRequestInfo
from gwt.services.base import PullRequestProvider, get_json, normalize_status

logger = get_logger(__name__)

TOKEN_ENV_VAR = "BITBUCKET_DATA_CENTER_HTTP_ACCESS_TOKEN"
PAGE_LIMIT = 100

AUTH_HINT = (
    f"Set the {TOKEN_ENV_VAR} environment variable, "
    "or run 'gwt auth bitbucket-data-center setup' for instructions."
)


def token_key(api_base: str, project: str, repo: str) -> str:
    return f"bitbucket-data-center:{api_base}/{project}/{repo}"


def pr_url(pr: dict) -> str:
    links = (pr.get("links") or {}).get("self") or []
    if isinstance(links, list) and links and isinstance(links[0], dict) and links[0].get("href"):
        return str(links[0]["href"])
    return f"PR #{pr.get('id')}"


def _parse_pr(pr: dict) -> PullRequestInfo:
    try:
        source_branch = pr["fromRef"]["displayId"]
        return PullRequestInfo(
            url=pr_url(pr),
            status=normalize_status(pr.get("state", ""), bool(pr.get("draft"))),
            title=str(pr.get("title") or ""),
            source_branch=source_branch,
            number=pr.get("id"),
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise ParseError("Bitbucket Data Center pull request", f"unexpected shape ({e!r})") from e


class BitbucketDataCenterProvider(PullRequestProvider):
    platform = Platform.BITBUCKET_DATA_CENTER

    def __init__(self, identity: ProviderIdentity) -> None:
        super().__init__(identity)
        self.base_url = identity.api_base.rstrip("/")
        self.project = identity.primary_scope
        self.repo = identity.repo_slug
        self._token = resolve_token(
            [
                EnvironmentSource(TOKEN_ENV_VAR),
                StoredTokenSource(token_key(self.base_url, self.project, self.repo)),
            ]
        )

    def has_auth(self) -> bool:
        return self._token is not None

    def _get(self, path: str, **params) -> dict:
        if self._token is None:
            raise AuthError("No Bitbucket Data Center access token found.", hint=AUTH_HINT)
        return get_json(
            f"{self.base_url}/rest/api/1.0{path}",
            source="Bitbucket Data Center API",
            headers={"Authorization": f"Bearer {self._token}"},
            params=params or None,
            auth_hint=AUTH_HINT,
            not_found=f"Repository not found: {self.project}/{self.repo}.",
            not_found_hint="Check the project key and repository slug in repositoryUrl.",
        )

    def get_pull_requests(self, branch: str) -> list[dict]:
        params = {
            "limit": PAGE_LIMIT,
            "order": "NEWEST",
            "state": "ALL",
            "at": f"refs/heads/{branch}",
            "direction": "OUTGOING",
        }
        data = self._get(f"/projects/{self.project}/repos/{self.repo}/pull-requests", **params)
        values = data.get("values", [])
        if not isinstance(values, list):
            raise ParseError("Bitbucket Data Center API response", "'values' is not a list")
        return values

    def fetch_pr_for_branch(self, branch: str) -> PullRequestInfo | None:
        for pr in self.get_pull_requests(branch):
            info = _parse_pr(pr)
            if info.source_branch == branch:
                return info
        return None

    def test_connection(self) -> None:
        self._get("/users", limit=1)
        logger.info("Bitbucket Data Center API connection successful")
