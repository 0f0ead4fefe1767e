from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import NamedTuple

from gwt.errors import ParseError

HEADS_PREFIX = "refs/heads/"


def clean_branch_name(branch: str) -> str:
    """Strip the ``refs/heads/`` prefix from a branch ref."""
    if branch.startswith(HEADS_PREFIX):
        return branch[len(HEADS_PREFIX) :]
    return branch


@dataclass
class Worktree:
    path: Path
    head: str
    branch: str | None = None  # full ref, None when detached
    bare: bool = False

    @property
    def short_branch(self) -> str | None:
        if self.branch is None:
            return None
        return clean_branch_name(self.branch)

    @property
    def display_name(self) -> str:
        if self.branch is not None:
            return clean_branch_name(self.branch)
        if self.bare:
            return "(bare)"
        return self.head[:8]


class Platform(str, Enum):
    GITHUB = "github"
    BITBUCKET_CLOUD = "bitbucket-cloud"
    BITBUCKET_DATA_CENTER = "bitbucket-data-center"

    @classmethod
    def from_config(cls, value: str | None) -> Platform | None:
        """Map a ``sourceControl`` value to a platform.

        Absent values give None; unknown values mean GitHub.
        """
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.GITHUB

    @property
    def label(self) -> str:
        return {
            Platform.GITHUB: "GitHub",
            Platform.BITBUCKET_CLOUD: "Bitbucket Cloud",
            Platform.BITBUCKET_DATA_CENTER: "Bitbucket Data Center",
        }[self]


GITHUB_API_BASE = "https://api.github.com"
BITBUCKET_CLOUD_API_BASE = "https://api.bitbucket.org"


@dataclass(frozen=True)
class ProviderIdentity:
    platform: Platform
    primary_scope: str  # owner, workspace or project key
    repo_slug: str
    api_base: str

    def __post_init__(self) -> None:
        if not self.primary_scope or not self.repo_slug:
            raise ParseError(
                "repository URL",
                f"{self.platform.label} needs both an owner and a repository name",
            )


@dataclass
class PullRequestInfo:
    url: str
    status: str  # OPEN, CLOSED, MERGED, DRAFT or provider state uppercased
    title: str
    source_branch: str
    number: int | None = None


class BranchPullRequest(NamedTuple):
    branch: str
    pr: PullRequestInfo | None
    error: str | None = None  # set when the lookup failed

    @property
    def lookup_failed(self) -> bool:
        return self.error is not None


@dataclass
class ReconciliationResult:
    matched: list[BranchPullRequest] = field(default_factory=list)
    unmatched_remote: list[BranchPullRequest] = field(default_factory=list)
    available: bool = True
    reason: str | None = None  # why PR info is unavailable

    @classmethod
    def unavailable(cls, reason: str) -> ReconciliationResult:
        return cls(available=False, reason=reason)
