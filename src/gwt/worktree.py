"""Worktree listing, creation and removal."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from gwt import git
from gwt.errors import ProcessError
from gwt.logging_config import get_logger
from gwt.models import Worktree

logger = get_logger(__name__)

PROTECTED_BRANCHES = ("main", "master", "dev", "develop")


# -- Porcelain parsing --


@dataclass
class _PartialWorktree:
    path: Path | None = None
    head: str | None = None
    branch: str | None = None
    bare: bool = False

    def complete(self) -> Worktree | None:
        # Records without a path or HEAD are dropped.
        if self.path is None or self.head is None:
            return None
        return Worktree(path=self.path, head=self.head, branch=self.branch, bare=self.bare)


def _step(
    state: _PartialWorktree | None,
    line: str,
) -> tuple[_PartialWorktree | None, Worktree | None]:
    """Advance the parser by one line, returning (new state, emitted record)."""
    if line.startswith("worktree "):
        emitted = state.complete() if state is not None else None
        return _PartialWorktree(path=Path(line[len("worktree ") :])), emitted

    if state is None:
        return None, None

    if line.startswith("HEAD "):
        state.head = line[len("HEAD ") :]
    elif line.startswith("branch "):
        state.branch = line[len("branch ") :]
    elif line == "bare":
        state.bare = True
    return state, None


def parse_worktree_list(output: str) -> list[Worktree]:
    """Parse ``git worktree list --porcelain`` output, preserving order.

    Unknown lines (``detached``, ``locked``, ``prunable`` ...) are ignored.
    """
    worktrees: list[Worktree] = []
    state: _PartialWorktree | None = None
    for line in output.splitlines():
        state, emitted = _step(state, line)
        if emitted is not None:
            worktrees.append(emitted)

    if state is not None:
        last = state.complete()
        if last is not None:
            worktrees.append(last)
    return worktrees


def list_worktrees(git_dir: str | Path | None = None) -> list[Worktree]:
    output = git.run(["worktree", "list", "--porcelain"], cwd=git_dir)
    worktrees = parse_worktree_list(output)
    logger.debug("Found %d worktrees", len(worktrees))
    return worktrees


# -- Creation --


class CreationStrategy(Enum):
    CHECKOUT_LOCAL = "checkout-local"
    TRACK_REMOTE = "track-remote"
    BRANCH_FROM_DEFAULT = "branch-from-default"


def select_strategy(local_exists: bool, remote_exists: bool) -> CreationStrategy:
    """Local branch wins over remote branch wins over a fresh branch."""
    if local_exists:
        return CreationStrategy.CHECKOUT_LOCAL
    if remote_exists:
        return CreationStrategy.TRACK_REMOTE
    return CreationStrategy.BRANCH_FROM_DEFAULT


def worktree_add_args(
    strategy: CreationStrategy,
    target_path: str | Path,
    branch: str,
    main_branch: str,
    remote: str = git.UPSTREAM_REMOTE,
) -> list[str]:
    target = str(target_path)
    if strategy is CreationStrategy.CHECKOUT_LOCAL:
        return ["worktree", "add", target, branch]
    if strategy is CreationStrategy.TRACK_REMOTE:
        return ["worktree", "add", target, "-b", branch, f"{remote}/{branch}"]
    # Without --no-track the new branch would push to the default branch.
    return [
        "worktree",
        "add",
        "--no-track",
        target,
        "-b",
        branch,
        f"{remote}/{main_branch}",
    ]


def create_worktree(
    git_dir: str | Path,
    target_path: str | Path,
    branch: str,
    main_branch: str,
    announce: Callable[[CreationStrategy], None] | None = None,
) -> CreationStrategy:
    """Create a worktree for ``branch`` at ``target_path``.

    ``announce`` is called with the chosen strategy before git runs.
    Returns the strategy that was used. A failed ``worktree add`` is not
    rolled back; git remains the source of truth.
    """
    local, remote = git.branch_exists(git_dir, branch)
    strategy = select_strategy(local, remote)
    logger.info("Creating worktree for '%s' using %s", branch, strategy.value)
    if announce is not None:
        announce(strategy)
    git.run_streaming(
        worktree_add_args(strategy, target_path, branch, main_branch),
        cwd=git_dir,
    )
    return strategy


# -- Lookup and removal --


def find_worktree(worktrees: list[Worktree], name: str) -> Worktree | None:
    """Find a worktree by short branch name, falling back to directory name."""
    for wt in worktrees:
        if wt.short_branch == name:
            return wt
    for wt in worktrees:
        if wt.path.name == name:
            return wt
    return None


def pick_working_worktree(
    worktrees: list[Worktree],
    exclude: Path,
    main_branch: str | None = None,
) -> Worktree | None:
    """Choose a worktree to run git from when ``exclude`` is being removed.

    Prefers a worktree on a main branch, then any other non-bare worktree.
    """
    candidates = [wt for wt in worktrees if wt.path != exclude and not wt.bare]
    preferred = set(PROTECTED_BRANCHES)
    if main_branch:
        preferred.add(main_branch)
    for wt in candidates:
        if wt.short_branch in preferred:
            return wt
    if candidates:
        return candidates[0]
    return None


def is_protected_branch(branch: str, main_branch: str | None = None) -> bool:
    return branch in PROTECTED_BRANCHES or branch == main_branch


def remove_worktree(git_dir: str | Path, worktree_path: str | Path) -> None:
    git.run_streaming(["worktree", "remove", str(worktree_path), "--force"], cwd=git_dir)


class BranchDeletion(Enum):
    DELETED = "deleted"
    FORCE_DELETED = "force-deleted"
    NOT_MERGED = "not-merged"


def delete_branch(git_dir: str | Path, branch: str, force: bool = False) -> BranchDeletion:
    """Delete ``branch`` safely, forcing only for an unmerged branch and ``force``.

    Raises ProcessError for any failure other than "not fully merged".
    """
    try:
        git.run(["branch", "-d", branch], cwd=git_dir)
        return BranchDeletion.DELETED
    except ProcessError as e:
        if "not fully merged" not in e.stderr:
            raise
        if not force:
            logger.info("Branch '%s' is not fully merged; keeping it", branch)
            return BranchDeletion.NOT_MERGED

    git.run(["branch", "-D", branch], cwd=git_dir)
    return BranchDeletion.FORCE_DELETED
