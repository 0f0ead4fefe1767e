"""Thin adapter around the git binary."""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from pathlib import Path

from gwt.errors import ProcessError
from gwt.logging_config import get_logger

logger = get_logger(__name__)

GIT = "git"
UPSTREAM_REMOTE = "origin"


def run(
    args: Sequence[str],
    cwd: str | Path | None = None,
    stream: bool = False,
) -> str:
    """Run ``git <args>`` and return its stripped stdout.

    With ``stream=True`` the child inherits the terminal so the user sees
    progress live, and an empty string is returned. subprocess.run kills the
    child if we are interrupted while waiting.

    Raises ProcessError on a non-zero exit or when git cannot be spawned.
    """
    cmd = [GIT, *args]
    logger.debug("Running %s (cwd=%s)", " ".join(cmd), cwd or ".")
    try:
        if stream:
            result = subprocess.run(cmd, cwd=cwd)
        else:
            result = subprocess.run(cmd, cwd=cwd, capture_output=True, text=True)
    except OSError as e:
        raise ProcessError(cmd, None, str(e)) from e

    if result.returncode != 0:
        stderr = "" if stream else result.stderr
        raise ProcessError(cmd, result.returncode, stderr)

    if stream:
        return ""
    return result.stdout.strip()


def run_streaming(args: Sequence[str], cwd: str | Path | None = None) -> None:
    run(args, cwd=cwd, stream=True)


def clone(repo_url: str, target_dir: str | Path) -> None:
    run_streaming(["clone", repo_url, str(target_dir)])


def get_default_branch(repo_path: str | Path) -> str:
    """Return the branch currently checked out in ``repo_path``."""
    return run(["symbolic-ref", "--short", "HEAD"], cwd=repo_path)


def get_git_root(cwd: str | Path | None = None) -> Path | None:
    """Return the top level of the enclosing work tree, or None outside one."""
    try:
        return Path(run(["rev-parse", "--show-toplevel"], cwd=cwd))
    except ProcessError:
        return None


def _query_nonempty(args: Sequence[str], cwd: str | Path) -> bool:
    # Failure and "no output" both mean the branch is absent.
    try:
        return bool(run(args, cwd=cwd))
    except ProcessError as e:
        logger.debug("Branch query failed, treating as absent: %s", e)
        return False


def branch_exists(git_dir: str | Path, branch: str) -> tuple[bool, bool]:
    """Return (exists locally, exists on the upstream remote)."""
    local = _query_nonempty(["branch", "--list", branch], git_dir)
    remote = _query_nonempty(
        ["branch", "-r", "--list", f"{UPSTREAM_REMOTE}/{branch}"],
        git_dir,
    )
    return local, remote
