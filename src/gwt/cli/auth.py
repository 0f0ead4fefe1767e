from __future__ import annotations

import sys
from pathlib import Path

import click

from gwt import credentials
from gwt.config import CONFIG_FILENAME, ProjectConfig, find_project
from gwt.credentials import remove_token, resolve_token, store_token
from gwt.errors import NotFoundError
from gwt.models import BITBUCKET_CLOUD_API_BASE, Platform, ProviderIdentity
from gwt.providers import cloud_auth_target, data_center_auth_target, detect
from gwt.services import bitbucket_cloud, bitbucket_data_center
from gwt.services.bitbucket_cloud import BitbucketCloudProvider
from gwt.services.bitbucket_data_center import BitbucketDataCenterProvider
from gwt.services.github import TOKEN_KEY, GitHubProvider, github_credential_sources


def _project_config() -> tuple[Path, ProjectConfig]:
    found = find_project()
    if found is None:
        raise NotFoundError(
            f"No {CONFIG_FILENAME} found.",
            hint="Run this command from inside a gwt project.",
        )
    return found


def _read_token(token: str | None) -> str:
    """Read the token from the argument or stdin if piped."""
    if token:
        return token.strip()
    if not sys.stdin.isatty():
        text = sys.stdin.read().strip()
        if text:
            return text
    raise click.UsageError("Provide a token as an argument or on stdin.")


@click.group()
def auth() -> None:
    """Manage credentials for pull request providers."""


# -- GitHub --


@auth.command("github")
@click.option("--logout", is_flag=True, help="Remove the token stored by gwt.")
@click.option("--test", "test_", is_flag=True, help="Test access to this project's repository.")
def auth_github(logout: bool, test_: bool) -> None:
    """Show GitHub authentication status."""
    if logout:
        if remove_token(TOKEN_KEY):
            click.echo(f"Removed GitHub token from {credentials.AUTH_FILE}")
        else:
            click.echo("No stored GitHub token.")
        return

    if resolve_token(github_credential_sources()) is None:
        click.echo("Not authenticated with GitHub.")
        click.echo("Run 'gh auth login' or set the GITHUB_TOKEN environment variable.")
        return
    click.echo("GitHub credentials found.")

    if test_:
        _, config = _project_config()
        identity = detect(config.repository_url, Platform.GITHUB.value)
        GitHubProvider(identity).test_connection()
        click.echo(f"Connected to {identity.primary_scope}/{identity.repo_slug}.")


# -- Bitbucket Cloud --


@auth.group("bitbucket-cloud")
def bitbucket_cloud_group() -> None:
    """Bitbucket Cloud API token management."""


@bitbucket_cloud_group.command("setup")
def cloud_setup() -> None:
    """Print instructions for creating an API token."""
    click.echo("To use Bitbucket Cloud pull requests:")
    click.echo("  1. Create an API token at https://id.atlassian.com/manage-profile/security/api-tokens")
    click.echo("     with read access to repositories and pull requests.")
    click.echo(f"  2. export {bitbucket_cloud.EMAIL_ENV_VAR}=you@example.com")
    click.echo(f"  3. export {bitbucket_cloud.TOKEN_ENV_VAR}=<token>")
    click.echo("     or store it with: gwt auth bitbucket-cloud store <token> --email you@example.com")
    click.echo("  4. Check it with: gwt auth bitbucket-cloud test")


def _cloud_identity(config: ProjectConfig) -> ProviderIdentity:
    workspace, repo = cloud_auth_target(config.repository_url)
    return ProviderIdentity(Platform.BITBUCKET_CLOUD, workspace, repo, BITBUCKET_CLOUD_API_BASE)


@bitbucket_cloud_group.command("test")
def cloud_test() -> None:
    """Test the Bitbucket Cloud connection for this project."""
    _, config = _project_config()
    identity = _cloud_identity(config)
    BitbucketCloudProvider(identity, email=config.bitbucket_email).test_connection()
    click.echo(f"Connected to Bitbucket Cloud ({identity.primary_scope}/{identity.repo_slug}).")


@bitbucket_cloud_group.command("store")
@click.argument("token", required=False)
@click.option("--email", default=None, help="Atlassian account email, saved to the project config.")
def cloud_store(token: str | None, email: str | None) -> None:
    """Store an API token for this project's repository."""
    root, config = _project_config()
    identity = _cloud_identity(config)
    store_token(
        bitbucket_cloud.token_key(identity.primary_scope, identity.repo_slug),
        _read_token(token),
    )
    click.echo(f"Token stored in {credentials.AUTH_FILE}")
    if email:
        config.bitbucket_email = email
        config.save(root / CONFIG_FILENAME)
        click.echo(f"Email saved to {CONFIG_FILENAME}")


@bitbucket_cloud_group.command("remove")
def cloud_remove() -> None:
    """Remove the stored API token for this project's repository."""
    _, config = _project_config()
    identity = _cloud_identity(config)
    if remove_token(bitbucket_cloud.token_key(identity.primary_scope, identity.repo_slug)):
        click.echo("Bitbucket Cloud token removed.")
    else:
        click.echo("No stored Bitbucket Cloud token for this repository.")


# -- Bitbucket Data Center --


@auth.group("bitbucket-data-center")
def data_center_group() -> None:
    """Bitbucket Data Center access token management."""


@data_center_group.command("setup")
def data_center_setup() -> None:
    """Print instructions for creating an HTTP access token."""
    click.echo("To use Bitbucket Data Center pull requests:")
    click.echo("  1. In Bitbucket, open Manage account > HTTP access tokens")
    click.echo("     and create a token with repository read permission.")
    click.echo(f"  2. export {bitbucket_data_center.TOKEN_ENV_VAR}=<token>")
    click.echo("     or store it with: gwt auth bitbucket-data-center store <token>")
    click.echo("  3. Check it with: gwt auth bitbucket-data-center test")


def _data_center_identity(config: ProjectConfig) -> ProviderIdentity:
    api_base, project, repo = data_center_auth_target(config.repository_url)
    return ProviderIdentity(Platform.BITBUCKET_DATA_CENTER, project, repo, api_base)


def _data_center_key(identity: ProviderIdentity) -> str:
    return bitbucket_data_center.token_key(
        identity.api_base.rstrip("/"), identity.primary_scope, identity.repo_slug
    )


@data_center_group.command("test")
def data_center_test() -> None:
    """Test the Bitbucket Data Center connection for this project."""
    _, config = _project_config()
    identity = _data_center_identity(config)
    BitbucketDataCenterProvider(identity).test_connection()
    click.echo(f"Connected to Bitbucket Data Center at {identity.api_base}.")


@data_center_group.command("store")
@click.argument("token", required=False)
def data_center_store(token: str | None) -> None:
    """Store an HTTP access token for this project's repository."""
    _, config = _project_config()
    identity = _data_center_identity(config)
    store_token(_data_center_key(identity), _read_token(token))
    click.echo(f"Token stored in {credentials.AUTH_FILE}")


@data_center_group.command("remove")
def data_center_remove() -> None:
    """Remove the stored access token for this project's repository."""
    _, config = _project_config()
    if remove_token(_data_center_key(_data_center_identity(config))):
        click.echo("Bitbucket Data Center token removed.")
    else:
        click.echo("No stored Bitbucket Data Center token for this repository.")
