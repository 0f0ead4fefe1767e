from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

import click

from gwt import git
from gwt.config import CONFIG_FILENAME, ProjectConfig, find_project
from gwt.errors import GwtError, NotFoundError


@dataclass
class ProjectContext:
    root: Path | None  # None when used from a plain git repository
    config: ProjectConfig | None
    git_dir: Path  # any worktree to run git commands from


def format_error(error: GwtError) -> str:
    if error.hint:
        return f"{error.message}\nHint: {error.hint}"
    return error.message


def warn(message: str) -> None:
    click.echo(f"Warning: {message}", err=True)


def _find_existing_worktree(project_root: Path) -> Path | None:
    """Find a directory with a .git entry, one or two levels below the root."""
    children = sorted(p for p in project_root.iterdir() if p.is_dir())
    for child in children:
        if (child / ".git").exists():
            return child
    # Branches with slashes nest one level deeper (feature/x -> feature/x/).
    for child in children:
        for grandchild in sorted(p for p in child.iterdir() if p.is_dir()):
            if (grandchild / ".git").exists():
                return grandchild
    return None


def resolve_project(require_config: bool = False) -> ProjectContext:
    """Locate the project root and a worktree to run git from.

    Falls back to the enclosing git repository when there is no config,
    unless ``require_config`` is set.
    """
    found = find_project()
    if found is not None:
        root, config = found
        git_dir = _find_existing_worktree(root)
        if git_dir is None:
            raise NotFoundError(
                "No existing worktrees found in project root.",
                hint="Create one first using 'gwt init <repo-url>'.",
            )
        return ProjectContext(root=root, config=config, git_dir=git_dir)

    git_root = git.get_git_root()
    if git_root is not None and not require_config:
        return ProjectContext(root=None, config=None, git_dir=git_root)

    if git_root is not None:
        raise NotFoundError(
            f"Found a git repository but no {CONFIG_FILENAME}.",
            hint="This doesn't appear to be a worktree project; run 'gwt init <repo-url>'.",
        )
    raise NotFoundError(
        f"Not in a git repository or project root with {CONFIG_FILENAME}.",
        hint="Run 'gwt init <repo-url>' to create a project.",
    )


def extract_repo_name(repo_url: str) -> str:
    name = re.split(r"[/:]", repo_url.strip().rstrip("/"))[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if not name:
        raise GwtError(f"Invalid repository URL: {repo_url}")
    return name
