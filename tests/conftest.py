from __future__ import annotations

import subprocess

import pytest

TOKEN_ENV_VARS = (
    "GITHUB_TOKEN",
    "GH_TOKEN",
    "BITBUCKET_CLOUD_EMAIL",
    "BITBUCKET_CLOUD_API_TOKEN",
    "BITBUCKET_DATA_CENTER_HTTP_ACCESS_TOKEN",
)


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    """Keep tests away from real credentials and git identity."""
    for var in TOKEN_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    # An empty gh config dir means `gh auth token` finds no session.
    monkeypatch.setenv("GH_CONFIG_DIR", str(tmp_path / "gh-config"))
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    monkeypatch.setattr("gwt.credentials.AUTH_FILE", tmp_path / "gwt-config" / "auth.json")


def _git(*args, cwd=None):
    subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True)


@pytest.fixture
def git_repo(tmp_path):
    """A repository on ``main`` with one commit."""
    repo = tmp_path / "myrepo"
    repo.mkdir()
    _git("init", "-b", "main", str(repo))
    _git("commit", "--allow-empty", "-m", "init", cwd=repo)
    return repo


@pytest.fixture
def cloned_repo(tmp_path, git_repo):
    """A clone of ``git_repo`` with an ``origin`` remote and a remote-only branch."""
    _git("branch", "feature/remote", cwd=git_repo)
    clone = tmp_path / "project" / "main"
    clone.parent.mkdir()
    _git("clone", str(git_repo), str(clone))
    return clone
