from __future__ import annotations

from pathlib import Path

import click

from gwt import git
from gwt.cli.utils import ProjectContext, extract_repo_name, resolve_project, warn
from gwt.config import CONFIG_FILENAME, ProjectConfig
from gwt.errors import GwtError, NotFoundError
from gwt.hooks import execute_hooks
from gwt.logging_config import get_logger
from gwt.models import BranchPullRequest, Platform, ReconciliationResult, Worktree
from gwt.providers import detect
from gwt.reconcile import reconcile
from gwt.services import make_provider
from gwt.worktree import (
    BranchDeletion,
    CreationStrategy,
    create_worktree,
    delete_branch,
    find_worktree,
    is_protected_branch,
    list_worktrees,
    pick_working_worktree,
    remove_worktree,
)

logger = get_logger(__name__)


@click.command()
@click.argument("repo_url")
@click.option(
    "--provider",
    type=click.Choice([p.value for p in Platform]),
    default=None,
    help="Hosting provider, when it cannot be detected from the URL.",
)
def init(repo_url: str, provider: str | None) -> None:
    """Initialize a new worktree project from a repository URL."""
    identity = detect(repo_url, provider, warn=warn)
    click.echo(f"Detected provider: {identity.platform.label}")

    project_root = Path.cwd()
    clone_dir = project_root / extract_repo_name(repo_url)
    if clone_dir.exists():
        raise GwtError(
            f"Directory '{clone_dir.name}' already exists.",
            hint="Remove it or run 'gwt init' from an empty directory.",
        )

    click.echo(f"Cloning {repo_url}...")
    git.clone(repo_url, clone_dir)
    default_branch = git.get_default_branch(clone_dir)

    worktree_dir = project_root / default_branch
    if worktree_dir != clone_dir:
        if worktree_dir.exists():
            raise GwtError(
                f"Cannot move clone to '{default_branch}': directory exists.",
                hint=f"The clone was left at {clone_dir}.",
            )
        worktree_dir.parent.mkdir(parents=True, exist_ok=True)
        clone_dir.rename(worktree_dir)

    config = ProjectConfig.new(repo_url, default_branch, identity.platform.value)
    config_path = project_root / CONFIG_FILENAME
    config.save(config_path)

    click.echo(f"Repository cloned to: {worktree_dir}")
    click.echo(f"Default branch: {default_branch}")
    click.echo(f"Config saved to: {config_path}")

    execute_hooks(
        "postInit",
        worktree_dir,
        {"branchName": default_branch, "worktreePath": str(worktree_dir)},
        config,
    )


_STRATEGY_MESSAGES = {
    CreationStrategy.CHECKOUT_LOCAL: "Branch '{branch}' exists locally, checking out existing branch...",
    CreationStrategy.TRACK_REMOTE: "Branch '{branch}' exists remotely, checking out remote branch...",
    CreationStrategy.BRANCH_FROM_DEFAULT: "Creating new branch '{branch}' from 'origin/{main}'...",
}


@click.command()
@click.argument("branch_name")
def add(branch_name: str) -> None:
    """Add a new worktree for a branch (may contain slashes)."""
    ctx = resolve_project(require_config=True)
    assert ctx.root is not None and ctx.config is not None
    target = ctx.root / branch_name
    if target.exists():
        raise GwtError(f"Path already exists: {target}")

    main_branch = ctx.config.main_branch

    def announce(strategy: CreationStrategy) -> None:
        click.echo(_STRATEGY_MESSAGES[strategy].format(branch=branch_name, main=main_branch))

    create_worktree(ctx.git_dir, target, branch_name, main_branch, announce=announce)

    click.echo(f"Worktree created at: {target}")
    click.echo(f"Branch: {branch_name}")

    execute_hooks(
        "postAdd",
        target,
        {"branchName": branch_name, "worktreePath": str(target)},
        ctx.config,
    )


# -- list --


def _short_head(head: str) -> str:
    return f"{head[:8]}..." if len(head) > 8 else head


def _format_pr(row: BranchPullRequest | None) -> tuple[str, str]:
    if row is None:
        return "", ""
    if row.lookup_failed:
        return "? (unknown)", ""
    if row.pr is None:
        return "-", ""
    return f"{row.pr.url} ({row.pr.status})", row.pr.title


def _pull_requests(ctx: ProjectContext, worktrees: list[Worktree]) -> ReconciliationResult:
    """Reconcile against the configured provider; never fails the listing."""
    if ctx.config is None:
        return ReconciliationResult.unavailable(f"no {CONFIG_FILENAME} found")
    # An absent sourceControl means GitHub; the URL only produces a warning.
    source_control = ctx.config.source_control or Platform.GITHUB.value
    try:
        identity = detect(ctx.config.repository_url, source_control, warn=warn)
        client = make_provider(identity, bitbucket_email=ctx.config.bitbucket_email)
    except GwtError as e:
        logger.warning("Pull request info unavailable: %s", e.message)
        return ReconciliationResult.unavailable(e.message)
    return reconcile(identity, worktrees, client)


def _echo_table(headers: list[str], rows: list[list[str]]) -> None:
    widths = [max([len(h), *(len(r[i]) for r in rows)]) for i, h in enumerate(headers)]
    click.echo("  ".join(h.ljust(w) for h, w in zip(headers, widths)).rstrip())
    click.echo("-" * (sum(widths) + 2 * (len(widths) - 1)))
    for row in rows:
        click.echo("  ".join(c.ljust(w) for c, w in zip(row, widths)).rstrip())


@click.command("list")
@click.option("--no-pr", is_flag=True, help="Skip pull request lookups.")
def list_cmd(no_pr: bool) -> None:
    """List all worktrees in the current project."""
    ctx = resolve_project()
    worktrees = list_worktrees(ctx.git_dir)
    if not worktrees:
        click.echo("No worktrees found.")
        return

    result = None if no_pr else _pull_requests(ctx, worktrees)
    show_prs = result is not None and result.available

    headers = ["PATH", "BRANCH", "HEAD"]
    if show_prs:
        headers += ["PULL REQUEST", "TITLE"]

    matched = iter(result.matched if show_prs else [])
    rows: list[list[str]] = []
    for wt in worktrees:
        row = [str(wt.path), wt.display_name, _short_head(wt.head)]
        if show_prs:
            pr_row = None if wt.bare else next(matched, None)
            row += list(_format_pr(pr_row))
        rows.append(row)
    _echo_table(headers, rows)

    if result is not None and not result.available:
        click.echo(f"\nPull request info unavailable: {result.reason}", err=True)

    if show_prs and result.unmatched_remote:
        click.echo("\nOpen pull requests without a local worktree:")
        _echo_table(
            ["BRANCH", "PULL REQUEST", "TITLE"],
            [[row.branch, *_format_pr(row)] for row in result.unmatched_remote],
        )


# -- switch --


@click.command()
@click.argument("branch_name", required=False)
def switch(branch_name: str | None) -> None:
    """Print the path of a branch's worktree (list worktrees without a branch)."""
    ctx = resolve_project()
    worktrees = list_worktrees(ctx.git_dir)
    if not worktrees:
        click.echo("No worktrees found.")
        return

    if branch_name is None:
        click.echo("Available worktrees:")
        for wt in worktrees:
            suffix = " (bare)" if wt.bare else ""
            click.echo(f"  {wt.display_name}{suffix}")
        click.echo("\nUsage: gwt switch <branch-name>")
        return

    target = next((wt for wt in worktrees if wt.short_branch == branch_name), None)
    if target is None:
        available = ", ".join(wt.display_name for wt in worktrees)
        raise NotFoundError(
            f"Worktree for branch '{branch_name}' not found.",
            hint=f"Available branches: {available}",
        )

    execute_hooks(
        "postSwitch",
        target.path,
        {"branchName": branch_name, "worktreePath": str(target.path)},
        ctx.config,
    )
    click.echo(str(target.path))


# -- remove --


def _current_worktree(worktrees: list[Worktree]) -> Worktree:
    current = git.get_git_root()
    if current is None:
        raise NotFoundError(
            "Not in a git worktree.",
            hint="Specify the branch to remove: gwt remove <branch-name>.",
        )
    current = current.resolve()
    for wt in worktrees:
        if wt.path.resolve() == current:
            return wt
    raise NotFoundError("Current directory is not a known worktree.")


@click.command()
@click.argument("branch_name", required=False)
@click.option(
    "--force",
    is_flag=True,
    help="Also delete the branch when it is not fully merged.",
)
def remove(branch_name: str | None, force: bool) -> None:
    """Remove a worktree and its branch (current worktree if no branch given)."""
    ctx = resolve_project()
    worktrees = list_worktrees(ctx.git_dir)
    if not worktrees:
        raise NotFoundError("No worktrees found.")

    if branch_name is None:
        target = _current_worktree(worktrees)
    else:
        target = find_worktree(worktrees, branch_name)
        if target is None:
            available = ", ".join(f"{wt.display_name} -> {wt.path}" for wt in worktrees)
            raise NotFoundError(
                f"Worktree for '{branch_name}' not found.",
                hint=f"Available worktrees: {available}",
            )

    if target.bare:
        raise GwtError("Cannot remove the main (bare) repository.")

    main_branch = ctx.config.main_branch if ctx.config else None
    runner = pick_working_worktree(worktrees, target.path, main_branch)
    if runner is None:
        raise GwtError("No other worktree found to run git commands from.")

    click.echo(f"Removing worktree: {target.path}")
    remove_worktree(runner.path, target.path)
    click.echo(f"Worktree removed: {target.path}")

    branch = target.short_branch
    if branch is not None:
        if is_protected_branch(branch, main_branch):
            click.echo(f"Branch: {branch} (preserved - main branch)")
        else:
            outcome = delete_branch(runner.path, branch, force=force)
            if outcome is BranchDeletion.NOT_MERGED:
                warn(
                    f"Branch '{branch}' is not fully merged and was kept. "
                    f"Delete it with 'git branch -D {branch}'."
                )
            else:
                click.echo(f"Branch deleted: {branch}")

    execute_hooks(
        "postRemove",
        ctx.root or runner.path,
        {"branchName": branch or target.display_name, "worktreePath": str(target.path)},
        ctx.config,
    )
