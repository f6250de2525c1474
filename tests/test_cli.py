import types

import pytest

from lesson_quiz import cli


@pytest.fixture(autouse=True)
def reset_metadata(monkeypatch):
    """Ensure metadata.version is controllable during tests."""

    def fake_version(name: str) -> str:
        assert name == "lesson-quiz"
        return "0.0-test"

    monkeypatch.setattr(cli.metadata, "version", fake_version)
    yield


def test_version_command_handles_missing_package(monkeypatch, capsys):
    monkeypatch.setattr(
        cli.metadata,
        "version",
        lambda name: (_ for _ in ()).throw(
            cli.metadata.PackageNotFoundError()
        ),
    )
    code = cli.main(["version"])
    captured = capsys.readouterr()
    assert code == 0
    assert captured.out.strip() == "unknown"


def test_no_args_prints_usage_and_returns_error(capsys):
    code = cli.main([])
    captured = capsys.readouterr()
    assert code == 2
    assert "Usage: lesson-quiz" in captured.out
    assert "Available commands:" in captured.out


@pytest.mark.parametrize("argv", [["--help"], ["-h"], ["help"]])
def test_help_shows_usage(argv, capsys):
    code = cli.main(argv)
    captured = capsys.readouterr()
    assert code == 0
    assert "Usage: lesson-quiz" in captured.out


def test_list_outputs_command_table(capsys):
    code = cli.main(["list"])
    captured = capsys.readouterr()
    assert code == 0
    assert "Available commands:" in captured.out
    assert "init" in captured.out
    assert "quiz        Play, validate" in captured.out
    assert "flashcards  Study or import flashcard sets. (interactive)" in (
        captured.out
    )


def test_help_known_command(capsys):
    code = cli.main(["help", "quiz"])
    captured = capsys.readouterr()
    assert code == 0
    assert "quiz: Play, validate and import lesson quizzes." in captured.out
    assert "Run `lesson-quiz quiz --help`" in captured.out


def test_help_unknown_command(capsys):
    code = cli.main(["help", "does-not-exist"])
    captured = capsys.readouterr()
    assert code == 2
    assert "Unknown command" in captured.err
    assert "Available commands:" in captured.err


@pytest.mark.parametrize("flag", ["version", "--version", "-V"])
def test_version_command(flag, capsys):
    code = cli.main([flag])
    captured = capsys.readouterr()
    assert code == 0
    assert captured.out.strip() == "0.0-test"


def test_unknown_command_errors(capsys):
    code = cli.main(["bogus"])
    captured = capsys.readouterr()
    assert code == 2
    assert "Unknown command 'bogus'." in captured.err
    assert "Available commands:" in captured.err


def _fake_module(behaviour):
    def fake_import(module_name: str):
        assert module_name == "lesson_quiz.quiz.cli"
        return types.SimpleNamespace(main=behaviour)

    return fake_import


def test_dispatch_passes_arguments_through(monkeypatch):
    captured: dict[str, list[str]] = {}

    def stub_main(argv):
        captured["argv"] = argv
        return 7

    monkeypatch.setattr(cli, "import_module", _fake_module(stub_main))
    code = cli.main(["quiz", "validate", "--quiet"])
    assert code == 7
    assert captured["argv"] == ["validate", "--quiet"]


def test_dispatch_propagates_system_exit_code(monkeypatch):
    def stub_main(argv):
        raise SystemExit(5)

    monkeypatch.setattr(cli, "import_module", _fake_module(stub_main))
    assert cli.main(["quiz"]) == 5


def test_dispatch_handles_system_exit_message(monkeypatch, capsys):
    def stub_main(argv):
        raise SystemExit("boom")

    monkeypatch.setattr(cli, "import_module", _fake_module(stub_main))
    code = cli.main(["quiz"])
    captured = capsys.readouterr()
    assert code == 1
    assert captured.err.strip() == "boom"


def test_dispatch_treats_system_exit_none_as_success(monkeypatch):
    def stub_main(argv):
        raise SystemExit()

    monkeypatch.setattr(cli, "import_module", _fake_module(stub_main))
    assert cli.main(["quiz"]) == 0


def test_dispatch_normalizes_non_int_return(monkeypatch):
    monkeypatch.setattr(
        cli, "import_module", _fake_module(lambda argv: "done")
    )
    assert cli.main(["quiz"]) == 0


def test_cli_runs_init_end_to_end(tmp_path, capsys):
    target = tmp_path / "workspace"

    code = cli.main(["init", "--path", str(target)])

    captured = capsys.readouterr()
    assert code == 0
    assert "Workspace ready" in captured.out
    for entry in ("config", "logs", "attempts"):
        assert (target / entry).is_dir()


def test_cli_runs_quiz_subcommand_help(capsys):
    assert cli.main(["quiz", "--help"]) == 0
    assert "lesson-quiz quiz" in capsys.readouterr().out


def test_cli_runs_quiz_config_init(tmp_path, capsys):
    destination = tmp_path / "lesson_quiz.toml"

    code = cli.main(["quiz", "config", "init", "--path", str(destination)])

    assert code == 0
    assert destination.exists()
    assert str(destination) in capsys.readouterr().out
