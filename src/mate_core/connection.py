"""Byte source/sink abstractions over the companion socket and stdin."""

from __future__ import annotations

import logging
from pathlib import Path
import socket
from typing import Any, BinaryIO, Protocol

logger = logging.getLogger(__name__)


class ByteSource(Protocol):
    def read_some(self, max_bytes: int) -> bytes:
        """Return up to ``max_bytes`` bytes, or ``b""`` at end of stream."""
        ...


class Connection(ByteSource, Protocol):
    def write_all(self, data: bytes) -> None: ...

    def close(self) -> None: ...


class SocketConnection:
    """Blocking stream socket exposed as a :class:`Connection`."""

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock
        self._closed = False

    @classmethod
    def connect_unix(cls, path: Path) -> "SocketConnection":
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.connect(str(path))
        except OSError:
            sock.close()
            raise
        return cls(sock)

    def read_some(self, max_bytes: int) -> bytes:
        return self._sock.recv(max_bytes)

    def write_all(self, data: bytes) -> None:
        view = memoryview(data)
        while view:
            sent = self._sock.send(view)
            if sent < len(view):
                logger.debug("short write: %d of %d bytes, resuming", sent, len(view))
            view = view[sent:]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._sock.close()

    def __enter__(self) -> "SocketConnection":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


class StreamSource:
    """Adapts a binary file object to :class:`ByteSource`.

    Uses ``read1`` where available so a pipe delivers data as it arrives
    instead of blocking for a full chunk.
    """

    def __init__(self, stream: BinaryIO | Any) -> None:
        self._stream = stream
        self._read = getattr(stream, "read1", None) or stream.read

    def read_some(self, max_bytes: int) -> bytes:
        return self._read(max_bytes) or b""
