"""Join local worktrees against a provider's pull requests by branch name."""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from gwt.errors import GwtError
from gwt.logging_config import get_logger
from gwt.models import (
    BranchPullRequest,
    ProviderIdentity,
    PullRequestInfo,
    ReconciliationResult,
    Worktree,
)
from gwt.services.base import PullRequestProvider

logger = get_logger(__name__)

DEFAULT_MAX_WORKERS = 8


def local_branch_names(worktrees: Sequence[Worktree]) -> set[str]:
    """Short branch names of every non-bare, non-detached worktree."""
    return {
        wt.short_branch
        for wt in worktrees
        if not wt.bare and wt.short_branch is not None
    }


def _lookup(client: PullRequestProvider, branch: str) -> BranchPullRequest:
    # A failure here only affects this branch.
    try:
        return BranchPullRequest(branch, client.fetch_pr_for_branch(branch))
    except GwtError as e:
        logger.warning("Could not fetch pull request for '%s': %s", branch, e.message)
        return BranchPullRequest(branch, None, error=e.message)


def _fetch_unmatched(
    client: PullRequestProvider,
    local_branches: set[str],
) -> list[BranchPullRequest]:
    if not client.lists_open_prs:
        return []
    try:
        open_prs: list[PullRequestInfo] = client.fetch_all_open_prs()
    except GwtError as e:
        logger.warning("Could not list open pull requests: %s", e.message)
        return []
    return [
        BranchPullRequest(pr.source_branch, pr)
        for pr in open_prs
        if pr.source_branch not in local_branches
    ]


def reconcile(
    identity: ProviderIdentity,
    worktrees: Sequence[Worktree],
    client: PullRequestProvider | None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> ReconciliationResult:
    """Build the unified worktree/pull-request view.

    ``matched`` has one row per non-bare worktree in listing order;
    detached worktrees get a row without a lookup. ``unmatched_remote``
    holds open PRs whose branch has no local worktree, in provider order.

    Never raises for provider problems: a missing client, missing
    credentials or a platform mismatch return
    ``ReconciliationResult.unavailable``.
    """
    if client is None:
        return ReconciliationResult.unavailable("no provider client configured")
    if client.platform is not identity.platform:
        return ReconciliationResult.unavailable(
            f"{client.platform.label} client cannot serve {identity.platform.label}",
        )
    if not client.has_auth():
        return ReconciliationResult.unavailable(
            f"no {identity.platform.label} credentials found",
        )

    local_branches = local_branch_names(worktrees)
    candidates = [wt for wt in worktrees if not wt.bare]

    matched: list[BranchPullRequest | None] = [None] * len(candidates)
    lookups: dict[int, str] = {}
    for index, wt in enumerate(candidates):
        if wt.short_branch is None:
            matched[index] = BranchPullRequest(wt.display_name, None)
        else:
            lookups[index] = wt.short_branch

    if lookups:
        workers = max(1, min(max_workers, len(lookups)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                index: executor.submit(_lookup, client, branch)
                for index, branch in lookups.items()
            }
            for index, future in futures.items():
                matched[index] = future.result()

    unmatched = _fetch_unmatched(client, local_branches)
    logger.debug(
        "Reconciled %d worktrees, %d remote-only pull requests",
        len(candidates),
        len(unmatched),
    )
    return ReconciliationResult(
        matched=[row for row in matched if row is not None],
        unmatched_remote=unmatched,
    )
