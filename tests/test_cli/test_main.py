from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from mate_cli import main as mate_main
from mate_cli.main import app, collect_references, resolve_wait
from mate_core import config as mate_config
from mate_core.exceptions import ErrorCode, MateError


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, fake_home: Path) -> None:
    monkeypatch.setattr(mate_config, "DEFAULT_MATE_CONFIG_JSON", tmp_path / "missing.json")


@pytest.fixture(autouse=True)
def _keep_root_logger(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(mate_main, "configure_logging", lambda cfg: None)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def companion(monkeypatch: pytest.MonkeyPatch, memory_connection: Any) -> dict[str, Any]:
    state: dict[str, Any] = {"replies": [], "connections": []}

    def fake_open_connection(runtime: Any) -> Any:
        conn = memory_connection(state["replies"])
        state["connections"].append(conn)
        return conn

    monkeypatch.setattr(mate_main, "open_connection", fake_open_connection)
    return state


def _sent(companion: dict[str, Any]) -> bytes:
    [conn] = companion["connections"]
    assert conn.closed
    return bytes(conn.sent)


def test_help_lists_options(runner: CliRunner) -> None:
    result = runner.invoke(app, ["-h"])
    assert result.exit_code == 0
    for flag in ("--wait", "--line", "--type", "--name", "--recent", "--change-dir", "--uuid", "--escapes"):
        assert flag in result.stdout


def test_version(runner: CliRunner) -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.stdout.startswith("mate 2.7")


def test_opens_files_with_per_file_options(runner: CliRunner, companion: dict[str, Any], tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["-l", "3,7:2", "-t", "source.python", "-m", "first", "-p", "P1,P2", "/abs/one.py", "rel.txt"],
    )

    assert result.exit_code == 0, result.output
    sent = _sent(companion)
    first, second, tail = sent.split(b"\r\n\r\n")
    assert first.startswith(b"open\r\npath: /abs/one.py\r\ndisplay-name: first\r\n")
    assert b"selection: 3\r\nfile-type: source.python\r\nproject-uuid: P1" in first
    assert b"path: " + str(Path.cwd()).encode() + b"/rel.txt\r\n" in second
    assert b"display-name: \r\n" in second
    assert b"selection: 7:2\r\nfile-type: \r\nproject-uuid: P2" in second
    assert tail == b".\r\n"


def test_default_project_comes_from_environment(
    runner: CliRunner, companion: dict[str, Any], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("TM_PROJECT_UUID", "ENV-PROJECT")
    result = runner.invoke(app, ["/a", "/b", "-p", "ONLY"])

    assert result.exit_code == 0, result.output
    sent = _sent(companion)
    assert sent.count(b"project-uuid: ONLY\r\n") == 2

    companion["connections"].clear()
    result = runner.invoke(app, ["/a"])
    assert b"project-uuid: ENV-PROJECT\r\n" in _sent(companion)


def test_piped_stdin_is_implied_and_written_back(runner: CliRunner, companion: dict[str, Any]) -> None:
    companion["replies"] = [b"close\r\ndata: 9\r\nedited!\r\n", b"\r\n"]

    result = runner.invoke(app, [], input=b"\x1b[1moriginal\x1b[0m\n")

    assert result.exit_code == 0, result.output
    sent = _sent(companion)
    assert sent.startswith(b"open\r\ndata: 9\r\noriginal\n")
    assert b"display-name: untitled (stdin)\r\ndata-on-close: yes\r\nwait: yes\r\n" in sent
    assert result.stdout_bytes == b"edited!\r\n"
    assert "WARNING: Removed ANSI escape codes" in result.stderr


def test_keep_escapes_flag(runner: CliRunner, companion: dict[str, Any]) -> None:
    result = runner.invoke(app, ["-e", "-"], input=b"\x1b[1mbold")

    assert result.exit_code == 0, result.output
    assert b"data: 8\r\n\x1b[1mbold" in _sent(companion)
    assert "WARNING" not in result.stderr


def test_empty_pipe_refers_to_current_document(
    runner: CliRunner, companion: dict[str, Any], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("TM_DOCUMENT_UUID", "DOC-9")
    result = runner.invoke(app, ["-"], input=b"")

    assert result.exit_code == 0, result.output
    assert _sent(companion).startswith(b"open\r\nuuid: DOC-9\r\n")


def test_uuid_option_without_files(runner: CliRunner, companion: dict[str, Any]) -> None:
    result = runner.invoke(app, ["--uuid", "1234-ABCD", "--async", "-r", "-d"], input=b"ignored")

    assert result.exit_code == 0, result.output
    sent = _sent(companion)
    assert sent.startswith(b"open\r\nuuid: 1234-ABCD\r\n")
    assert b"add-to-recents: yes\r\nchange-directory: yes\r\n" in sent
    assert b"data:" not in sent


def test_wait_suffix_program_name(runner: CliRunner, companion: dict[str, Any]) -> None:
    result = runner.invoke(app, ["/etc/motd"], prog_name="mate_wait")

    assert result.exit_code == 0, result.output
    assert b"wait: yes\r\nre-activate: yes\r\n" in _sent(companion)


def test_companion_unavailable_exit_code(runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
    def unavailable(runtime: Any) -> Any:
        raise MateError(ErrorCode.COMPANION_UNAVAILABLE, "can't connect to companion at /tmp/x.sock: refused")

    monkeypatch.setattr(mate_main, "open_connection", unavailable)
    result = runner.invoke(app, ["/etc/hosts"])

    assert result.exit_code == 69
    assert result.stderr.splitlines()[0] == "mate: can't connect to companion at /tmp/x.sock: refused"
    assert result.stdout == ""


def test_read_failure_exit_code(runner: CliRunner, monkeypatch: pytest.MonkeyPatch, memory_connection: Any) -> None:
    conn = memory_connection([], read_error=OSError(5, "Input/output error"))
    monkeypatch.setattr(mate_main, "open_connection", lambda runtime: conn)

    result = runner.invoke(app, ["/etc/hosts"])

    assert result.exit_code == 74
    assert result.stderr.startswith("mate: failed to read from companion")
    assert conn.closed


def test_resolve_wait_precedence() -> None:
    assert resolve_wait("mate", wait=None, no_wait=False) is None
    assert resolve_wait("mate_wait", wait=None, no_wait=False) is True
    assert resolve_wait("mate_wait", wait=False, no_wait=False) is False
    assert resolve_wait("mate", wait=True, no_wait=True) is False


def test_collect_references(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir("/")
    assert collect_references(["", "a.txt", "-", "uuid://X"], uuid=None, wait=None, stdin_is_pipe=False) == [
        "/a.txt",
        "-",
        "uuid://X",
    ]
    assert collect_references([], uuid="U", wait=True, stdin_is_pipe=True) == ["uuid://U"]
    assert collect_references([], uuid=None, wait=True, stdin_is_pipe=False) == ["-"]
    assert collect_references([], uuid=None, wait=None, stdin_is_pipe=True) == ["-"]
    assert collect_references([], uuid=None, wait=None, stdin_is_pipe=False) == []


def test_stdin_chunk_size_comes_from_config(
    runner: CliRunner, companion: dict[str, Any], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("MATE_RUNTIME_STDIN_CHUNK_SIZE", "4")

    result = runner.invoke(app, ["-"], input=b"abcdefghij")

    assert result.exit_code == 0, result.output
    assert _sent(companion).startswith(b"open\r\ndata: 4\r\nabcddata: 4\r\nefghdata: 2\r\nij")
