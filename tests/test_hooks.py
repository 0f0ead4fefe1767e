from __future__ import annotations

from gwt.config import ProjectConfig
from gwt.hooks import execute_hooks, substitute


def _config(**hooks) -> ProjectConfig:
    config = ProjectConfig.new("https://github.com/a/b", "main")
    config.hooks = hooks
    return config


def test_substitute():
    assert substitute("cd ${worktreePath} && echo ${branchName}", {
        "branchName": "feature/x",
        "worktreePath": "/p/feature/x",
    }) == "cd /p/feature/x && echo feature/x"


def test_substitute_leaves_unknown_placeholders():
    assert substitute("echo ${other} $branchName", {"branchName": "x"}) == "echo ${other} $branchName"


def test_execute_hooks_runs_in_working_dir(tmp_path, capsys):
    config = _config(postAdd=["echo ${branchName} > out.txt"])

    failed = execute_hooks("postAdd", tmp_path, {"branchName": "feature/x"}, config)

    assert failed == []
    assert (tmp_path / "out.txt").read_text().strip() == "feature/x"
    out = capsys.readouterr().out
    assert "Running postAdd hooks..." in out
    assert "Executing: echo feature/x > out.txt" in out


def test_execute_hooks_skips_comments(tmp_path):
    config = _config(postAdd=["# touch skipped.txt", "  # touch also-skipped.txt", "touch ran.txt"])

    execute_hooks("postAdd", tmp_path, {}, config)

    assert (tmp_path / "ran.txt").exists()
    assert not (tmp_path / "skipped.txt").exists()
    assert not (tmp_path / "also-skipped.txt").exists()


def test_failing_hook_does_not_stop_the_rest(tmp_path, capsys):
    config = _config(postRemove=["exit 3", "touch after.txt"])

    failed = execute_hooks("postRemove", tmp_path, {}, config)

    assert failed == ["exit 3"]
    assert (tmp_path / "after.txt").exists()
    assert "Hook failed (exit 3)" in capsys.readouterr().err


def test_hooks_see_force_color(tmp_path):
    config = _config(postInit=["echo $FORCE_COLOR > color.txt"])
    execute_hooks("postInit", tmp_path, {}, config)
    assert (tmp_path / "color.txt").read_text().strip() == "1"


def test_no_hooks_configured(tmp_path, capsys):
    assert execute_hooks("postSwitch", tmp_path, {}, _config()) == []
    assert execute_hooks("postSwitch", tmp_path, {}, None) == []
    assert capsys.readouterr().out == ""
