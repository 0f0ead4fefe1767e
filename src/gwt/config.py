from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from gwt.errors import ParseError

CONFIG_FILENAME = "git-worktree-config.yaml"

HOOK_TYPES = ("postAdd", "postRemove", "postInit", "postSwitch")

DEFAULT_HOOKS = {
    "postAdd": ["# npm install"],
    "postRemove": ["# echo 'Removed worktree for branch ${branchName}'"],
    "postInit": ["# echo 'Initialized git worktree project'"],
}


def _parse_hooks(data: Any, path: Path) -> dict[str, list[str]]:
    """Parse the ``hooks`` mapping, keeping only known hook types."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ParseError(str(path), "'hooks' must be a mapping")

    hooks: dict[str, list[str]] = {}
    for hook_type in HOOK_TYPES:
        commands = data.get(hook_type)
        if commands is None:
            continue
        if not isinstance(commands, list):
            raise ParseError(str(path), f"hooks.{hook_type} must be a list")
        hooks[hook_type] = [str(c) for c in commands]
    return hooks


@dataclass
class ProjectConfig:
    repository_url: str
    main_branch: str
    created_at: str
    source_control: str | None = None  # github | bitbucket-cloud | bitbucket-data-center
    bitbucket_email: str | None = None
    hooks: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def new(
        cls,
        repository_url: str,
        main_branch: str,
        source_control: str | None = None,
    ) -> ProjectConfig:
        return cls(
            repository_url=repository_url,
            main_branch=main_branch,
            created_at=datetime.now(timezone.utc).isoformat(),
            source_control=source_control,
            hooks={k: list(v) for k, v in DEFAULT_HOOKS.items()},
        )

    @classmethod
    def load(cls, path: Path) -> ProjectConfig:
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ParseError(str(path), str(e)) from e

        if not isinstance(data, dict):
            raise ParseError(str(path), "expected a YAML mapping")
        for key in ("repositoryUrl", "mainBranch"):
            if not data.get(key):
                raise ParseError(str(path), f"missing '{key}'")

        created_at = data.get("createdAt", "")
        if isinstance(created_at, datetime):
            created_at = created_at.isoformat()

        return cls(
            repository_url=str(data["repositoryUrl"]),
            main_branch=str(data["mainBranch"]),
            created_at=str(created_at),
            source_control=data.get("sourceControl"),
            bitbucket_email=data.get("bitbucketEmail"),
            hooks=_parse_hooks(data.get("hooks"), path),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "repositoryUrl": self.repository_url,
            "mainBranch": self.main_branch,
            "createdAt": self.created_at,
        }
        if self.source_control:
            data["sourceControl"] = self.source_control
        if self.bitbucket_email:
            data["bitbucketEmail"] = self.bitbucket_email
        if self.hooks:
            data["hooks"] = self.hooks
        return data

    def save(self, path: Path) -> None:
        with open(path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


def find_project(start: Path | None = None) -> tuple[Path, ProjectConfig] | None:
    """Walk up from ``start`` to the first directory holding the config file.

    Returns (project_root, config) or None.
    """
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        config_path = directory / CONFIG_FILENAME
        if config_path.exists():
            return directory, ProjectConfig.load(config_path)
    return None
