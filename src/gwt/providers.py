"""Detect the hosting provider of a repository URL.

Each provider exposes the repository under a different identifier scheme:
GitHub uses ``owner/repo``, Bitbucket Cloud ``workspace/repo`` and
Bitbucket Data Center ``PROJECT/repo`` on a self-hosted instance whose API
base has to be derived from the URL itself.

Patterns are tried in a fixed order, most specific host first::

    https://github.com/acme/widgets.git          -> GitHub
    git@bitbucket.org:acme/widgets.git            -> Bitbucket Cloud
    https://git.acme.com/scm/WID/widgets.git      -> Bitbucket Data Center

An explicit ``sourceControl`` value from the project config overrides the
URL guess. When the two disagree we warn and keep the explicit choice,
except that the two Bitbucket flavours are mutually exclusive: claiming
Data Center for a ``bitbucket.org`` URL (or Cloud for a Data Center URL)
is an error.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from gwt.errors import ParseError, ProviderMismatchError, UnrecognizedProvider
from gwt.logging_config import get_logger
from gwt.models import (
    BITBUCKET_CLOUD_API_BASE,
    GITHUB_API_BASE,
    Platform,
    ProviderIdentity,
)

logger = get_logger(__name__)

BITBUCKET_CLOUD_HOST = "bitbucket.org"

# Repository slug: stops at "/" or end, with an optional ".git" suffix.
_REPO = r"(?P<repo>[^/]+?)(?:\.git)?(?=/|$)"

_GITHUB_RE = re.compile(
    r"^(?:https?://(?:[^@/]+@)?github\.com/|git@github\.com:|ssh://git@github\.com/)"
    r"(?P<scope>[^/]+)/" + _REPO
)
_BITBUCKET_CLOUD_RE = re.compile(r"bitbucket\.org[:/](?P<scope>[^/]+)/" + _REPO)

_DATA_CENTER_RES = (
    re.compile(r"(?P<host>(?:[a-z][a-z0-9+.-]*://)?[^/]+)/scm/(?P<scope>[^/]+)/" + _REPO),
    re.compile(
        r"(?P<host>(?:[a-z][a-z0-9+.-]*://)?[^/]+)/projects/(?P<scope>[^/]+)/repos/" + _REPO
    ),
    re.compile(r"^git@(?P<host>[^:/]+):(?P<scope>[^/]+)/" + _REPO),
    re.compile(r"^ssh://git@(?P<host>[^/]+)/(?P<scope>[^/]+)/" + _REPO),
)

Warn = Callable[[str], None]


# -- URL parsing --


def parse_github_url(url: str) -> tuple[str, str] | None:
    """Return (owner, repo) for a github.com URL."""
    match = _GITHUB_RE.match(url.strip())
    if match is None:
        return None
    return match.group("scope"), match.group("repo")


def is_bitbucket_cloud_url(url: str) -> bool:
    return BITBUCKET_CLOUD_HOST in url


def parse_bitbucket_cloud_url(url: str) -> tuple[str, str] | None:
    """Return (workspace, repo) for a bitbucket.org URL."""
    if not is_bitbucket_cloud_url(url):
        return None
    match = _BITBUCKET_CLOUD_RE.search(url.strip())
    if match is None:
        return None
    return match.group("scope"), match.group("repo")


def _normalize_api_base(host: str) -> str:
    """Turn a captured host segment into an ``https://host`` API base.

    An http(s) scheme is kept. User info is dropped, as is the port of an
    SSH host since it belongs to the SSH daemon, not the web server.
    """
    scheme_match = re.match(r"^([a-z][a-z0-9+.-]*)://", host)
    scheme = scheme_match.group(1) if scheme_match else None
    if scheme_match:
        host = host[scheme_match.end() :]
    host = host.rsplit("@", 1)[-1]
    if scheme in ("http", "https"):
        return f"{scheme}://{host}"
    return f"https://{host.split(':', 1)[0]}"


def parse_data_center_url(url: str) -> tuple[str, str, str] | None:
    """Return (api_base, project, repo) for a Bitbucket Data Center URL."""
    url = url.strip()
    for pattern in _DATA_CENTER_RES:
        match = pattern.search(url)
        if match is not None:
            return (
                _normalize_api_base(match.group("host")),
                match.group("scope"),
                match.group("repo"),
            )
    return None


def extract_host(url: str) -> str | None:
    """Return the bare domain of an HTTPS or SSH URL."""
    rest = re.sub(r"^[a-z][a-z0-9+.-]*://", "", url.strip())
    rest = rest.split("/", 1)[0]
    rest = rest.rsplit("@", 1)[-1]
    host = rest.split(":", 1)[0]
    return host or None


def _extract_scope_and_repo(url: str) -> tuple[str, str] | None:
    """Generic fallback: the last two path components of any URL."""
    rest = re.sub(r"^[a-z][a-z0-9+.-]*://", "", url.strip())
    rest = rest.split("@", 1)[-1]
    # The host ends at the first "/" or, for scp-like URLs, ":".
    host_end = re.search(r"[/:]", rest)
    if host_end is None:
        return None
    parts = [p for p in rest[host_end.end() :].split("/") if p]
    if len(parts) < 2:
        return None
    repo = parts[-1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    return parts[-2], repo


# -- Detection --


def infer_platform(url: str) -> Platform | None:
    """Guess the platform from the URL alone."""
    if parse_github_url(url) is not None:
        return Platform.GITHUB
    if is_bitbucket_cloud_url(url):
        return Platform.BITBUCKET_CLOUD
    if parse_data_center_url(url) is not None:
        return Platform.BITBUCKET_DATA_CENTER
    return None


def _check_bitbucket_exclusive(url: str, explicit: Platform, inferred: Platform | None) -> None:
    if explicit is Platform.BITBUCKET_DATA_CENTER and is_bitbucket_cloud_url(url):
        raise ProviderMismatchError(
            f"{url} is a Bitbucket Cloud repository, not Bitbucket Data Center.",
            hint="Set sourceControl to 'bitbucket-cloud' in git-worktree-config.yaml.",
        )
    if explicit is Platform.BITBUCKET_CLOUD and inferred is Platform.BITBUCKET_DATA_CENTER:
        raise ProviderMismatchError(
            f"{url} looks like a Bitbucket Data Center repository, not Bitbucket Cloud.",
            hint="Set sourceControl to 'bitbucket-data-center' in git-worktree-config.yaml.",
        )


def _identity_for(platform: Platform, url: str) -> ProviderIdentity:
    if platform is Platform.GITHUB:
        parsed = parse_github_url(url) or _extract_scope_and_repo(url)
        if parsed is None:
            raise ParseError("repository URL", f"no owner/repo in {url}")
        return ProviderIdentity(platform, parsed[0], parsed[1], GITHUB_API_BASE)

    if platform is Platform.BITBUCKET_CLOUD:
        parsed = parse_bitbucket_cloud_url(url) or _extract_scope_and_repo(url)
        if parsed is None:
            raise ParseError("repository URL", f"no workspace/repo in {url}")
        return ProviderIdentity(platform, parsed[0], parsed[1], BITBUCKET_CLOUD_API_BASE)

    data_center = parse_data_center_url(url)
    if data_center is not None:
        api_base, project, repo = data_center
        return ProviderIdentity(platform, project, repo, api_base)

    # Explicitly configured but not Data Center shaped.
    host = extract_host(url)
    parsed = _extract_scope_and_repo(url)
    if host is None or parsed is None:
        raise ParseError("repository URL", f"no host/project/repo in {url}")
    return ProviderIdentity(platform, parsed[0], parsed[1], f"https://{host}")


def detect(
    repository_url: str,
    stored_source_control: str | None = None,
    warn: Warn | None = None,
) -> ProviderIdentity:
    """Classify ``repository_url`` into a ProviderIdentity.

    Raises UnrecognizedProvider when nothing matches and there is no
    explicit override, and ProviderMismatchError for contradictory
    Bitbucket claims.
    """
    inferred = infer_platform(repository_url)
    explicit = Platform.from_config(stored_source_control)

    if explicit is None:
        if inferred is None:
            raise UnrecognizedProvider(repository_url)
        return _identity_for(inferred, repository_url)

    _check_bitbucket_exclusive(repository_url, explicit, inferred)
    if inferred is not None and inferred is not explicit:
        message = (
            f"URL suggests {inferred.label} but {explicit.label} is configured. "
            f"Using {explicit.label}."
        )
        (warn or logger.warning)(message)
    return _identity_for(explicit, repository_url)


# -- Auth targets --


def cloud_auth_target(url: str) -> tuple[str, str]:
    """Return (workspace, repo) for Bitbucket Cloud auth, rejecting other URLs."""
    if not is_bitbucket_cloud_url(url):
        raise ProviderMismatchError(
            f"{url} is not a Bitbucket Cloud repository.",
            hint="Use 'gwt auth bitbucket-data-center' for self-hosted Bitbucket.",
        )
    parsed = parse_bitbucket_cloud_url(url)
    if parsed is None:
        raise ParseError("Bitbucket Cloud repository URL", url)
    return parsed


def data_center_auth_target(url: str) -> tuple[str, str, str]:
    """Return (api_base, project, repo) for Data Center auth, rejecting bitbucket.org."""
    if is_bitbucket_cloud_url(url):
        raise ProviderMismatchError(
            f"{url} appears to be a Bitbucket Cloud repository, not Bitbucket Data Center.",
            hint="Use 'gwt auth bitbucket-cloud' instead.",
        )
    parsed = parse_data_center_url(url)
    if parsed is None:
        raise ParseError("Bitbucket Data Center repository URL", url)
    return parsed
