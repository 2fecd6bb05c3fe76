import io
import json

import pytest
from rich.console import Console

from aicli import cli
from aicli.utils.schema import OSInfo


@pytest.fixture
def app(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "detect_os", lambda shell=None: OSInfo(platform="linux", arch="x86_64", shell="bash"))
    ran = []

    def _runner(cmd, os_info):
        ran.append(cmd)
        return True

    monkeypatch.setattr(cli, "run_shell", _runner)
    monkeypatch.setattr(cli.Confirm, "ask", lambda *a, **k: True)

    def invoke(*argv):
        console = Console(file=io.StringIO(), width=200)
        code = cli.main(list(argv), console=console)
        return code, console.file.getvalue()

    invoke.ran = ran
    return invoke


def test_run_executes_builtin_rule(app) -> None:
    code, out = app("run", "show", "disk", "usage")
    assert code == 0
    assert "df -h" in out
    assert app.ran == ["df -h"]


def test_blocked_vault_command_is_refused(app) -> None:
    assert app("vault", "add", "rm -rf /", "--description", "nuke everything")[0] == 0
    code, out = app("run", "nuke", "everything")
    assert code == 2
    assert "SAFETY BLOCK" in out
    assert app.ran == []


def test_vault_usage_recorded_after_success(app, tmp_path) -> None:
    app("vault", "add", "uptime", "--description", "how long running", "--name", "up")
    code, _ = app("run", "how", "long", "running")
    assert code == 0
    assert app.ran == ["uptime"]
    stored = json.loads((tmp_path / "home" / ".ai-cli" / "vault.json").read_text(encoding="utf-8"))
    assert stored[0]["usage_count"] == 1
    _, out = app("vault", "list")
    assert "uptime" in out


def test_dry_run_fills_variables_without_running(app, monkeypatch) -> None:
    monkeypatch.setattr(cli.Prompt, "ask", lambda *a, **k: "build")
    code, out = app("run", "--dry-run", "create", "folder")
    assert code == 0
    assert "mkdir -p build" in out
    assert app.ran == []


def test_suggest_prints_only(app) -> None:
    code, out = app("suggest", "list", "files")
    assert code == 0
    assert "ls -la" in out
    assert app.ran == []


def test_unresolvable_request(app) -> None:
    code, out = app("run", "write", "me", "a", "poem")
    assert code == 1
    assert "Could not resolve" in out
    assert "No AI provider configured" in out


def test_vault_search_remove_clear(app) -> None:
    app("vault", "add", "git log --oneline", "--tags", "git,history", "--description", "short history")
    code, out = app("vault", "search", "history")
    assert code == 0
    assert "git log --oneline" in out

    assert app("vault", "remove", "does-not-exist")[0] == 1
    assert app("vault", "clear", "--yes")[0] == 0
    _, out = app("vault", "list")
    assert "No commands stored" in out


def test_cache_clear_and_plugins(app) -> None:
    assert app("cache", "clear")[0] == 0
    code, out = app("plugins")
    assert code == 0
    assert "No plugins loaded" in out


def test_doctor_masks_keys(app, monkeypatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "AIzaVerySecretValue")
    code, out = app("doctor")
    assert code == 0
    assert "AIzaVerySecretValue" not in out
    assert "AIza…" in out
    assert "gemini" in out


def test_failed_step_stops_when_user_declines(monkeypatch) -> None:
    answers = iter([True, False])
    monkeypatch.setattr(cli.Confirm, "ask", lambda *a, **k: next(answers))
    ran = []

    def _runner(cmd, os_info):
        ran.append(cmd)
        return False

    console = Console(file=io.StringIO(), width=200)
    ok = cli.execute_steps(console, ["make", "make install"], OSInfo(platform="linux"), runner=_runner)
    assert ok is False
    assert ran == ["make"]
    assert "Step 1 failed" in console.file.getvalue()


def test_substitute_variables() -> None:
    assert cli.substitute_variables(['git commit -m "{message}"', "echo {message}"], {"message": "wip"}) == [
        'git commit -m "wip"',
        "echo wip",
    ]


def test_filled_in_variables_are_checked_again(app, monkeypatch) -> None:
    monkeypatch.setattr(cli.Prompt, "ask", lambda *a, **k: "/")
    code, out = app("run", "remove", "folder")
    assert code == 2
    assert "SAFETY BLOCK" in out
    assert app.ran == []


def test_harmless_variable_value_still_runs(app, monkeypatch) -> None:
    monkeypatch.setattr(cli.Prompt, "ask", lambda *a, **k: "build")
    code, _ = app("run", "remove", "folder")
    assert code == 0
    assert app.ran == ["rm -rf build"]
