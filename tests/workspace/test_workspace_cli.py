from __future__ import annotations

from lesson_quiz.core import workspace as workspace_mod
from lesson_quiz.workspace import cli


def test_init_creates_workspace_from_env(tmp_path, capsys, monkeypatch):
    target = tmp_path / "workspace"
    monkeypatch.setenv("LESSON_QUIZ_DATA_HOME", str(target))

    code = cli.main([])

    captured = capsys.readouterr()
    assert code == 0
    assert "Workspace ready at" in captured.out
    assert "(created)" in captured.out
    for entry in ("config", "logs", "attempts"):
        assert (target / entry).is_dir()


def test_init_supports_custom_path(tmp_path, capsys):
    target = tmp_path / "custom"

    code = cli.main(["--path", str(target)])

    captured = capsys.readouterr()
    assert code == 0
    assert target.is_dir()
    assert str(target.resolve()) in captured.out


def test_init_reports_existing_directories(tmp_path, capsys):
    target = tmp_path / "again"
    cli.main(["--path", str(target)])
    capsys.readouterr()

    assert cli.main(["--path", str(target)]) == 0

    out = capsys.readouterr().out
    assert "(exists)" in out
    assert "(created)" not in out


def test_init_quiet_mode(tmp_path, capsys, monkeypatch):
    monkeypatch.setenv("LESSON_QUIZ_DATA_HOME", str(tmp_path / "quiet"))

    code = cli.main(["--quiet"])

    captured = capsys.readouterr()
    assert code == 0
    assert captured.out == ""


def test_init_reports_workspace_errors(monkeypatch, capsys):
    def fail_workspace(*_args, **_kwargs):
        raise workspace_mod.WorkspaceError("workspace boom")

    monkeypatch.setattr(
        cli.workspace_mod, "ensure_workspace", fail_workspace
    )

    assert cli.main([]) == 1
    assert "workspace boom" in capsys.readouterr().err
