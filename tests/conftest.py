from __future__ import annotations

from collections.abc import Callable, Iterable
import os
from pathlib import Path

import pytest


class MemoryConnection:
    """In-memory stand-in for the companion socket."""

    def __init__(self, replies: Iterable[bytes] = (), *, read_error: OSError | None = None) -> None:
        self._replies = [bytes(chunk) for chunk in replies]
        self._read_error = read_error
        self.sent = bytearray()
        self.writes: list[bytes] = []
        self.closed = False
        self.reads_after_send: list[int] = []

    def write_all(self, data: bytes) -> None:
        assert not self.closed
        self.writes.append(bytes(data))
        self.sent += data

    def read_some(self, max_bytes: int) -> bytes:
        assert not self.closed
        self.reads_after_send.append(len(self.sent))
        if not self._replies:
            if self._read_error is not None:
                raise self._read_error
            return b""
        chunk = self._replies.pop(0)
        if len(chunk) > max_bytes:
            self._replies.insert(0, chunk[max_bytes:])
            chunk = chunk[:max_bytes]
        return chunk

    def close(self) -> None:
        self.closed = True


class ListSink:
    def __init__(self) -> None:
        self.writes: list[bytes] = []

    def write(self, data: bytes) -> None:
        self.writes.append(data)

    @property
    def data(self) -> bytes:
        return b"".join(self.writes)


@pytest.fixture
def memory_connection() -> Callable[..., MemoryConnection]:
    return MemoryConnection


@pytest.fixture
def sink() -> ListSink:
    return ListSink()


@pytest.fixture
def fake_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "home"
    home.mkdir(parents=True)
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("MATE_RUNTIME_SOCKET_PATH", str(home / "mate.sock"))
    return home


@pytest.fixture(autouse=True)
def clear_mate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ.keys()):
        if key.startswith("MATE_") or key in {"TM_PROJECT_UUID", "TM_DOCUMENT_UUID", "SUDO_UID"}:
            monkeypatch.delenv(key, raising=False)
