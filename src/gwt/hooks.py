from __future__ import annotations

import os
import subprocess
from pathlib import Path

import click

from gwt.config import ProjectConfig
from gwt.logging_config import get_logger

logger = get_logger(__name__)


def substitute(command: str, variables: dict[str, str]) -> str:
    """Replace ``${name}`` placeholders with their values."""
    for name, value in variables.items():
        command = command.replace(f"${{{name}}}", value)
    return command


def execute_hooks(
    hook_type: str,
    working_dir: Path,
    variables: dict[str, str],
    config: ProjectConfig | None,
) -> list[str]:
    """Run the configured ``hook_type`` commands in ``working_dir``.

    Commented lines are skipped. A failing hook is reported and the rest
    still run. Returns the commands that failed.
    """
    if config is None:
        return []
    commands = config.hooks.get(hook_type) or []
    if not commands:
        return []

    click.echo(f"Running {hook_type} hooks...")
    env = os.environ.copy()
    env["FORCE_COLOR"] = "1"

    failed: list[str] = []
    for hook in commands:
        if hook.strip().startswith("#"):
            logger.info("Skipping commented hook: %s", hook)
            continue

        command = substitute(hook, variables)
        click.echo(f"  Executing: {command}")
        result = subprocess.run(command, shell=True, cwd=working_dir, env=env)
        if result.returncode != 0:
            click.echo(f"  Hook failed (exit {result.returncode}): {command}", err=True)
            failed.append(command)
    return failed
