"""GitHub pull requests via the `gh` CLI."""

from __future__ import annotations

import json
import os
import subprocess

from gwt.credentials import (
    CommandSource,
    CredentialSource,
    EnvironmentSource,
    StoredTokenSource,
    resolve_token,
)
from gwt.errors import AuthError, NotFoundError, ParseError, ProviderRequestError
from gwt.logging_config import get_logger
from gwt.models import Platform, ProviderIdentity, PullRequestInfo
from gwt.services.base import PullRequestProvider, normalize_status

logger = get_logger(__name__)

GH_TIMEOUT = 30
PR_FIELDS = "number,title,state,url,isDraft,headRefName"
OPEN_PR_LIMIT = 100
TOKEN_KEY = "github"

AUTH_HINT = "Run 'gh auth login' or set the GITHUB_TOKEN environment variable."


def github_credential_sources() -> list[CredentialSource]:
    return [
        EnvironmentSource("GITHUB_TOKEN"),
        EnvironmentSource("GH_TOKEN"),
        StoredTokenSource(TOKEN_KEY),
        CommandSource(["gh", "auth", "token"]),
    ]


def _parse_pr(pr: dict) -> PullRequestInfo:
    try:
        return PullRequestInfo(
            url=pr.get("url") or f"PR #{pr['number']}",
            status=normalize_status(pr.get("state", ""), bool(pr.get("isDraft"))),
            title=str(pr.get("title") or ""),
            source_branch=pr["headRefName"],
            number=pr.get("number"),
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise ParseError("gh pr list output", f"unexpected entry ({e!r})") from e


class GitHubProvider(PullRequestProvider):
    platform = Platform.GITHUB
    lists_open_prs = True

    def __init__(self, identity: ProviderIdentity) -> None:
        super().__init__(identity)
        self.repo = f"{identity.primary_scope}/{identity.repo_slug}"
        self._token = resolve_token(github_credential_sources())

    def has_auth(self) -> bool:
        return self._token is not None

    def _gh(self, args: list[str]) -> str:
        """Run ``gh`` and return stdout, mapping failures to gwt errors."""
        env = os.environ.copy()
        if self._token:
            env["GH_TOKEN"] = self._token
        try:
            result = subprocess.run(
                ["gh", *args],
                capture_output=True,
                text=True,
                env=env,
                timeout=GH_TIMEOUT,
            )
        except FileNotFoundError as e:
            raise ProviderRequestError(
                "GitHub CLI 'gh' is not installed.",
                hint="Install it from https://cli.github.com/.",
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ProviderRequestError(f"'gh {args[0]}' timed out after {GH_TIMEOUT}s") from e

        if result.returncode != 0:
            stderr = result.stderr.strip()
            lowered = stderr.lower()
            if "http 401" in lowered or "auth login" in lowered or "authentication" in lowered:
                raise AuthError("GitHub authentication failed.", hint=AUTH_HINT)
            if "http 404" in lowered or "could not resolve to a repository" in lowered:
                raise NotFoundError(
                    f"Repository not found: {self.repo}.",
                    hint="Check repositoryUrl in git-worktree-config.yaml.",
                )
            raise ProviderRequestError(f"gh failed: {stderr or result.returncode}")
        return result.stdout

    def _list(self, extra: list[str]) -> list[PullRequestInfo]:
        output = self._gh(["pr", "list", "--repo", self.repo, "--json", PR_FIELDS, *extra])
        try:
            prs = json.loads(output or "[]")
        except json.JSONDecodeError as e:
            raise ParseError("gh pr list output", str(e)) from e
        if not isinstance(prs, list):
            raise ParseError("gh pr list output", "expected a JSON array")
        return [_parse_pr(pr) for pr in prs]

    def fetch_pr_for_branch(self, branch: str) -> PullRequestInfo | None:
        prs = self._list(["--head", branch, "--state", "all", "--limit", "10"])
        if not prs:
            return None
        return prs[0]

    def fetch_all_open_prs(self) -> list[PullRequestInfo]:
        return self._list(["--state", "open", "--limit", str(OPEN_PR_LIMIT)])

    def test_connection(self) -> None:
        if not self.has_auth():
            raise AuthError("No GitHub authentication found.", hint=AUTH_HINT)
        self._gh(["api", f"repos/{self.repo}", "--jq", ".full_name"])
        logger.info("GitHub API connection successful for %s", self.repo)
