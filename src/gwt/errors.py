"""Error taxonomy shared by the adapter, providers and CLI."""

from __future__ import annotations

from collections.abc import Sequence


class GwtError(Exception):
    """Base class for all gwt errors.

    ``hint`` is a short remediation shown to the user next to the message.
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        self.message = message
        self.hint = hint
        super().__init__(message)


class ProcessError(GwtError):
    """Raised when the git binary fails or cannot be spawned."""

    def __init__(
        self,
        args: Sequence[str],
        returncode: int | None,
        stderr: str = "",
    ) -> None:
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        command = " ".join(self.args_list)
        if returncode is None:
            msg = f"Failed to execute '{command}'"
        else:
            msg = f"'{command}' failed with exit code {returncode}"
        if self.stderr:
            msg += f": {self.stderr}"
        super().__init__(msg, hint="Check that git is installed and on your PATH.")


class ParseError(GwtError):
    """Raised when git or a provider returns output we cannot interpret."""

    def __init__(self, source: str, detail: str) -> None:
        self.source = source
        super().__init__(f"Could not parse {source}: {detail}")


class AuthError(GwtError):
    """Raised when provider credentials are missing or rejected."""


class NotFoundError(GwtError):
    """Raised when a repository, branch or worktree does not exist."""


class ProviderRequestError(GwtError):
    """Raised for any other provider failure (non-2xx, network, CLI error)."""


class ProviderMismatchError(GwtError):
    """Raised when an explicit platform contradicts the repository URL."""


class UnrecognizedProvider(GwtError):
    """Raised when no provider pattern matches and no override is given."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(
            f"Could not detect repository provider from URL: {url}",
            hint=(
                "Specify the provider with --provider github, "
                "--provider bitbucket-cloud or --provider bitbucket-data-center."
            ),
        )
