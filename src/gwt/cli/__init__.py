from __future__ import annotations

import click

from gwt.cli.auth import auth
from gwt.cli.utils import format_error
from gwt.cli.worktrees import add, init, list_cmd, remove, switch
from gwt.errors import GwtError
from gwt.logging_config import setup_logging


class GwtGroup(click.Group):
    """Click group that reports GwtError as a clean message with its hint."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except GwtError as e:
            raise click.ClickException(format_error(e)) from e


@click.group(cls=GwtGroup)
@click.option("-v", "--verbose", is_flag=True, help="Show informational log messages.")
@click.option("--debug", is_flag=True, help="Show debug log messages.")
def cli(verbose: bool, debug: bool) -> None:
    """gwt: git worktree manager with pull request status."""
    setup_logging(verbose=verbose, debug=debug)


# Register worktree commands
cli.add_command(init)
cli.add_command(add)
cli.add_command(list_cmd)
cli.add_command(switch)
cli.add_command(remove)

# Register auth group
cli.add_command(auth)

__all__ = ["cli"]
