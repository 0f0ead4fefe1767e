"""Credential lookup as an ordered list of sources.

Each provider declares where its token may come from, for example::

    [EnvironmentSource("GITHUB_TOKEN"), StoredTokenSource("github"),
     CommandSource(["gh", "auth", "token"])]

and ``resolve_token`` returns the first non-empty answer. Nothing is cached:
the lookup runs again on every invocation.
"""

from __future__ import annotations

import json
import os
import subprocess
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from gwt.errors import ParseError
from gwt.logging_config import get_logger

logger = get_logger(__name__)

CONFIG_DIR = Path.home() / ".config" / "gwt"
AUTH_FILE = CONFIG_DIR / "auth.json"


class CredentialSource(Protocol):
    def token(self) -> str | None: ...


@dataclass(frozen=True)
class EnvironmentSource:
    variable: str

    def token(self) -> str | None:
        return os.environ.get(self.variable) or None


@dataclass(frozen=True)
class StoredTokenSource:
    key: str

    def token(self) -> str | None:
        return load_tokens().get(self.key) or None


@dataclass(frozen=True)
class CommandSource:
    """Ask a companion CLI (e.g. ``gh auth token``) for its session token."""

    args: Sequence[str]
    timeout: int = 10

    def token(self) -> str | None:
        try:
            result = subprocess.run(
                list(self.args),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (FileNotFoundError, subprocess.TimeoutExpired) as e:
            logger.debug("Credential command %s unavailable: %s", self.args[0], e)
            return None
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None


def resolve_token(sources: Iterable[CredentialSource]) -> str | None:
    for source in sources:
        token = source.token()
        if token:
            logger.debug("Using credentials from %s", source)
            return token
    return None


# -- Local token store --


def load_tokens() -> dict[str, str]:
    if not AUTH_FILE.exists():
        return {}
    try:
        data = json.loads(AUTH_FILE.read_text())
    except json.JSONDecodeError as e:
        raise ParseError(str(AUTH_FILE), str(e)) from e
    if not isinstance(data, dict):
        raise ParseError(str(AUTH_FILE), "expected a JSON object")
    return {str(k): str(v) for k, v in data.items()}


def _write_tokens(tokens: dict[str, str]) -> None:
    AUTH_FILE.parent.mkdir(parents=True, exist_ok=True)
    AUTH_FILE.write_text(json.dumps(tokens, indent=2))
    AUTH_FILE.chmod(0o600)


def store_token(key: str, token: str) -> None:
    tokens = load_tokens()
    tokens[key] = token
    _write_tokens(tokens)


def remove_token(key: str) -> bool:
    """Remove a stored token. Returns False if none was stored."""
    tokens = load_tokens()
    if key not in tokens:
        return False
    del tokens[key]
    _write_tokens(tokens)
    return True
