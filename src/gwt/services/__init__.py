"""Pull-request provider clients, one per hosting platform."""

from __future__ import annotations

from gwt.models import Platform, ProviderIdentity
from gwt.services.base import PullRequestProvider
from gwt.services.bitbucket_cloud import BitbucketCloudProvider
from gwt.services.bitbucket_data_center import BitbucketDataCenterProvider
from gwt.services.github import GitHubProvider


def make_provider(
    identity: ProviderIdentity,
    bitbucket_email: str | None = None,
) -> PullRequestProvider:
    if identity.platform is Platform.GITHUB:
        return GitHubProvider(identity)
    if identity.platform is Platform.BITBUCKET_CLOUD:
        return BitbucketCloudProvider(identity, email=bitbucket_email)
    return BitbucketDataCenterProvider(identity)


__all__ = [
    "BitbucketCloudProvider",
    "BitbucketDataCenterProvider",
    "GitHubProvider",
    "PullRequestProvider",
    "make_provider",
]
