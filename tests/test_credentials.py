from __future__ import annotations

import json
import stat
import subprocess
from unittest.mock import patch

import pytest

from gwt import credentials
from gwt.credentials import (
    CommandSource,
    EnvironmentSource,
    StoredTokenSource,
    load_tokens,
    remove_token,
    resolve_token,
    store_token,
)
from gwt.errors import ParseError


def test_environment_source(monkeypatch):
    monkeypatch.setenv("GWT_TEST_TOKEN", "abc")
    assert EnvironmentSource("GWT_TEST_TOKEN").token() == "abc"
    monkeypatch.setenv("GWT_TEST_TOKEN", "")
    assert EnvironmentSource("GWT_TEST_TOKEN").token() is None


def test_store_and_load_tokens():
    store_token("github", "one")
    store_token("bitbucket-cloud:ws/repo", "two")

    assert load_tokens() == {"github": "one", "bitbucket-cloud:ws/repo": "two"}
    assert StoredTokenSource("github").token() == "one"
    assert StoredTokenSource("missing").token() is None


def test_token_file_is_private():
    store_token("github", "secret")
    mode = stat.S_IMODE(credentials.AUTH_FILE.stat().st_mode)
    assert mode == 0o600


def test_remove_token():
    store_token("github", "one")
    assert remove_token("github") is True
    assert remove_token("github") is False
    assert load_tokens() == {}


def test_load_tokens_without_file():
    assert load_tokens() == {}


def test_load_tokens_corrupt():
    credentials.AUTH_FILE.parent.mkdir(parents=True, exist_ok=True)
    credentials.AUTH_FILE.write_text("{not json")
    with pytest.raises(ParseError):
        load_tokens()


def test_load_tokens_not_an_object():
    credentials.AUTH_FILE.parent.mkdir(parents=True, exist_ok=True)
    credentials.AUTH_FILE.write_text(json.dumps(["a"]))
    with pytest.raises(ParseError):
        load_tokens()


def test_command_source():
    result = subprocess.CompletedProcess(args=[], returncode=0, stdout="gho_abc\n", stderr="")
    with patch("gwt.credentials.subprocess.run", return_value=result) as mock_run:
        assert CommandSource(["gh", "auth", "token"]).token() == "gho_abc"
    assert mock_run.call_args[0][0] == ["gh", "auth", "token"]


def test_command_source_failure():
    result = subprocess.CompletedProcess(args=[], returncode=1, stdout="", stderr="not logged in")
    with patch("gwt.credentials.subprocess.run", return_value=result):
        assert CommandSource(["gh", "auth", "token"]).token() is None


def test_command_source_missing_binary():
    with patch("gwt.credentials.subprocess.run", side_effect=FileNotFoundError):
        assert CommandSource(["gh", "auth", "token"]).token() is None


def test_resolve_token_order(monkeypatch):
    store_token("github", "stored")
    monkeypatch.setenv("GWT_TEST_TOKEN", "env")

    sources = [EnvironmentSource("GWT_TEST_TOKEN"), StoredTokenSource("github")]
    assert resolve_token(sources) == "env"

    monkeypatch.delenv("GWT_TEST_TOKEN")
    assert resolve_token(sources) == "stored"


def test_resolve_token_stops_at_first_hit():
    with patch("gwt.credentials.subprocess.run") as mock_run:
        store_token("github", "stored")
        assert resolve_token([StoredTokenSource("github"), CommandSource(["gh"])]) == "stored"
    mock_run.assert_not_called()


def test_resolve_token_none():
    assert resolve_token([EnvironmentSource("GWT_UNSET_VAR"), StoredTokenSource("x")]) is None
