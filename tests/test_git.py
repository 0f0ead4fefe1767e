from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from gwt import git
from gwt.errors import ProcessError


def test_run_returns_stripped_stdout(git_repo):
    assert git.run(["symbolic-ref", "--short", "HEAD"], cwd=git_repo) == "main"


def test_run_failure_carries_stderr(git_repo):
    with pytest.raises(ProcessError) as exc_info:
        git.run(["rev-parse", "--verify", "does-not-exist"], cwd=git_repo)

    err = exc_info.value
    assert err.returncode != 0
    assert err.args_list[:2] == ["git", "rev-parse"]
    assert err.stderr
    assert err.stderr in err.message
    assert err.hint


def test_run_spawn_failure():
    with patch("gwt.git.subprocess.run", side_effect=FileNotFoundError("no git")):
        with pytest.raises(ProcessError) as exc_info:
            git.run(["status"])
    assert exc_info.value.returncode is None
    assert "Failed to execute 'git status'" in exc_info.value.message


def test_run_streaming_does_not_capture(git_repo):
    with patch("gwt.git.subprocess.run") as mock_run:
        mock_run.return_value = subprocess.CompletedProcess(args=[], returncode=0)
        assert git.run(["fetch"], cwd=git_repo, stream=True) == ""
    _, kwargs = mock_run.call_args
    assert "capture_output" not in kwargs


def test_run_streaming_failure():
    with patch("gwt.git.subprocess.run") as mock_run:
        mock_run.return_value = subprocess.CompletedProcess(args=[], returncode=128)
        with pytest.raises(ProcessError) as exc_info:
            git.run_streaming(["clone", "x", "y"])
    assert exc_info.value.returncode == 128
    assert exc_info.value.stderr == ""


def test_get_default_branch(git_repo):
    assert git.get_default_branch(git_repo) == "main"


def test_get_git_root(git_repo):
    sub = git_repo / "sub"
    sub.mkdir()
    root = git.get_git_root(sub)
    assert root is not None
    assert root.resolve() == git_repo.resolve()


def test_get_git_root_outside_repo(tmp_path):
    outside = tmp_path / "plain"
    outside.mkdir()
    assert git.get_git_root(outside) is None


def test_clone(tmp_path, git_repo):
    target = tmp_path / "cloned"
    git.clone(str(git_repo), target)
    assert (target / ".git").exists()


# -- branch_exists --


def test_branch_exists_local_only(git_repo):
    assert git.branch_exists(git_repo, "main") == (True, False)


def test_branch_exists_missing_remote_is_absent(git_repo):
    # No origin configured: the remote query returns nothing.
    assert git.branch_exists(git_repo, "nope") == (False, False)


def test_branch_exists_remote_only(cloned_repo):
    assert git.branch_exists(cloned_repo, "feature/remote") == (False, True)


def test_branch_exists_both(cloned_repo):
    assert git.branch_exists(cloned_repo, "main") == (True, True)


def test_branch_exists_query_failure_is_absent(tmp_path):
    not_a_repo = tmp_path / "plain"
    not_a_repo.mkdir()
    assert git.branch_exists(Path(not_a_repo), "main") == (False, False)
