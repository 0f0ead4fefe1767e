from __future__ import annotations

import pytest

from gwt.errors import ParseError, ProviderMismatchError, UnrecognizedProvider
from gwt.models import Platform, ProviderIdentity
from gwt.providers import (
    cloud_auth_target,
    data_center_auth_target,
    detect,
    extract_host,
    infer_platform,
    parse_data_center_url,
    parse_github_url,
)


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://github.com/acme/widgets.git", ("acme", "widgets")),
        ("https://github.com/acme/widgets", ("acme", "widgets")),
        ("git@github.com:acme/widgets.git", ("acme", "widgets")),
        ("ssh://git@github.com/acme/widgets.git", ("acme", "widgets")),
        ("https://token@github.com/acme/widgets", ("acme", "widgets")),
        ("https://github.com/acme/my.repo.git", ("acme", "my.repo")),
    ],
)
def test_parse_github_url(url, expected):
    assert parse_github_url(url) == expected


def test_parse_github_url_rejects_other_hosts():
    assert parse_github_url("https://gitlab.com/acme/widgets") is None
    assert parse_github_url("https://notgithub.com/acme/widgets") is None


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://git.acme.com/scm/WID/widgets.git", ("https://git.acme.com", "WID", "widgets")),
        ("git.acme.com/scm/WID/widgets", ("https://git.acme.com", "WID", "widgets")),
        ("http://git.acme.com:7990/scm/WID/widgets.git", ("http://git.acme.com:7990", "WID", "widgets")),
        (
            "https://git.acme.com/projects/WID/repos/widgets/browse",
            ("https://git.acme.com", "WID", "widgets"),
        ),
        ("git@git.acme.com:WID/widgets.git", ("https://git.acme.com", "WID", "widgets")),
        ("ssh://git@git.acme.com:7999/WID/widgets.git", ("https://git.acme.com", "WID", "widgets")),
        ("https://user@git.acme.com/scm/WID/widgets.git", ("https://git.acme.com", "WID", "widgets")),
    ],
)
def test_parse_data_center_url(url, expected):
    assert parse_data_center_url(url) == expected


def test_extract_host():
    assert extract_host("https://user@git.acme.com:8443/a/b") == "git.acme.com"
    assert extract_host("git@git.acme.com:a/b.git") == "git.acme.com"
    assert extract_host("ssh://git@host.example/a/b") == "host.example"


# -- detect --


def test_detect_github():
    identity = detect("https://github.com/acme/widgets.git")
    assert identity == ProviderIdentity(Platform.GITHUB, "acme", "widgets", "https://api.github.com")


def test_detect_bitbucket_cloud():
    identity = detect("git@bitbucket.org:acme/widgets.git")
    assert identity.platform is Platform.BITBUCKET_CLOUD
    assert (identity.primary_scope, identity.repo_slug) == ("acme", "widgets")
    assert identity.api_base == "https://api.bitbucket.org"


def test_detect_bitbucket_cloud_https():
    identity = detect("https://someone@bitbucket.org/acme/widgets.git")
    assert (identity.platform, identity.primary_scope, identity.repo_slug) == (
        Platform.BITBUCKET_CLOUD,
        "acme",
        "widgets",
    )


def test_detect_data_center():
    identity = detect("https://git.acme.com/scm/WID/widgets.git")
    assert identity.platform is Platform.BITBUCKET_DATA_CENTER
    assert identity.api_base == "https://git.acme.com"
    assert (identity.primary_scope, identity.repo_slug) == ("WID", "widgets")


def test_detect_unrecognized():
    with pytest.raises(UnrecognizedProvider) as exc_info:
        detect("https://gitlab.com/acme/widgets")
    assert "--provider" in exc_info.value.hint


def test_detect_explicit_override_for_unrecognized_url():
    identity = detect("https://gitlab.com/acme/widgets", "github")
    assert identity.platform is Platform.GITHUB
    assert (identity.primary_scope, identity.repo_slug) == ("acme", "widgets")


def test_detect_unknown_source_control_means_github():
    identity = detect("https://github.com/acme/widgets", "sourceforge")
    assert identity.platform is Platform.GITHUB


def test_detect_mismatch_warns_and_keeps_explicit():
    warnings = []
    identity = detect("https://github.com/acme/widgets.git", "bitbucket-cloud", warn=warnings.append)

    assert identity.platform is Platform.BITBUCKET_CLOUD
    assert (identity.primary_scope, identity.repo_slug) == ("acme", "widgets")
    assert len(warnings) == 1
    assert "GitHub" in warnings[0]


def test_detect_matching_explicit_does_not_warn():
    warnings = []
    detect("https://github.com/acme/widgets", "github", warn=warnings.append)
    assert warnings == []


def test_detect_data_center_falls_back_to_generic_host():
    warnings = []
    identity = detect(
        "https://github.com/acme/widgets.git", "bitbucket-data-center", warn=warnings.append
    )
    assert identity.platform is Platform.BITBUCKET_DATA_CENTER
    assert identity.api_base == "https://github.com"
    assert (identity.primary_scope, identity.repo_slug) == ("acme", "widgets")
    assert warnings


def test_detect_data_center_against_cloud_url_is_error():
    with pytest.raises(ProviderMismatchError):
        detect("git@bitbucket.org:acme/widgets.git", "bitbucket-data-center")


def test_detect_cloud_against_data_center_url_is_error():
    with pytest.raises(ProviderMismatchError):
        detect("https://git.acme.com/scm/WID/widgets.git", "bitbucket-cloud")


def test_detect_explicit_without_repo_path():
    with pytest.raises(ParseError):
        detect("https://gitlab.com/", "github")


def test_infer_platform():
    assert infer_platform("https://github.com/a/b") is Platform.GITHUB
    assert infer_platform("https://bitbucket.org/a/b") is Platform.BITBUCKET_CLOUD
    assert infer_platform("https://git.acme.com/scm/A/b") is Platform.BITBUCKET_DATA_CENTER
    assert infer_platform("https://example.com/a/b") is None


# -- Auth targets --


def test_cloud_auth_target():
    assert cloud_auth_target("https://bitbucket.org/acme/widgets.git") == ("acme", "widgets")
    with pytest.raises(ProviderMismatchError):
        cloud_auth_target("https://git.acme.com/scm/WID/widgets.git")


def test_data_center_auth_target():
    assert data_center_auth_target("https://git.acme.com/scm/WID/widgets.git") == (
        "https://git.acme.com",
        "WID",
        "widgets",
    )
    with pytest.raises(ProviderMismatchError):
        data_center_auth_target("https://bitbucket.org/acme/widgets.git")
    with pytest.raises(ParseError):
        data_center_auth_target("https://example.com/acme/widgets")
