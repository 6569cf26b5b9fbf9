"""One request/response exchange with the companion editor."""

from __future__ import annotations

from collections.abc import Iterable
import logging
import sys
from typing import BinaryIO, Protocol

from mate_core.config import RuntimeConfig
from mate_core.connection import Connection
from mate_core.exceptions import ErrorCode, MateError
from mate_core.models import Argument, CloseSignal, DataChunk, ResponseEvent
from mate_core.protocol.decoder import ResponseDecoder

logger = logging.getLogger(__name__)


class OutputSink(Protocol):
    def write(self, data: bytes) -> None: ...


class StdoutSink:
    """Writes payload bytes verbatim and flushes them straight away."""

    def __init__(self, stream: BinaryIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout.buffer

    def write(self, data: bytes) -> None:
        self._stream.write(data)
        self._stream.flush()


class Session:
    def __init__(self, runtime: RuntimeConfig, sink: OutputSink) -> None:
        self._runtime = runtime
        self._sink = sink
        self.decoder = ResponseDecoder()

    def run(self, batch: Iterable[bytes], connection: Connection) -> int:
        """Send ``batch`` then relay the companion's replies until it hangs up.

        Returns the process exit code; fatal I/O problems raise ``MateError``.
        The connection is closed in every case.
        """
        try:
            self._send(batch, connection)
            self._receive(connection)
        finally:
            connection.close()
        return 0

    def _send(self, batch: Iterable[bytes], connection: Connection) -> None:
        sent = 0
        for chunk in batch:
            if not chunk:
                continue
            try:
                connection.write_all(chunk)
            except OSError as exc:
                raise MateError(
                    ErrorCode.WRITE_FAILED,
                    f"failed to send request to companion: {exc}",
                    details={"bytes_sent": sent},
                ) from exc
            sent += len(chunk)
        logger.debug("request batch sent (%d bytes)", sent)

    def _receive(self, connection: Connection) -> None:
        while True:
            try:
                data = connection.read_some(self._runtime.read_chunk_size)
            except OSError as exc:
                raise MateError(ErrorCode.READ_FAILED, f"failed to read from companion: {exc}") from exc
            if not data:
                self._dispatch(self.decoder.finish())
                return
            self._dispatch(self.decoder.feed(data))

    def _dispatch(self, events: list[ResponseEvent]) -> None:
        for event in events:
            if isinstance(event, DataChunk):
                try:
                    self._sink.write(event.data)
                except OSError as exc:
                    raise MateError(ErrorCode.WRITE_FAILED, f"failed to write output: {exc}") from exc
            elif isinstance(event, CloseSignal):
                logger.debug("companion closed a document")
            elif isinstance(event, Argument):
                logger.debug("companion argument %s=%r", event.key, event.value)
