"""Incremental parser for the companion's response stream."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Union

from mate_core.models import Argument, CloseSignal, DataChunk, ResponseEvent

logger = logging.getLogger(__name__)

CLOSE_COMMAND = "close"
DATA_KEY = "data"
_LEADING_DIGITS = re.compile(r"\s*\+?(\d+)")


@dataclass(frozen=True, slots=True)
class AwaitingCommand:
    pass


@dataclass(frozen=True, slots=True)
class AwaitingArguments:
    pass


@dataclass(frozen=True, slots=True)
class AwaitingData:
    remaining: int


@dataclass(frozen=True, slots=True)
class Terminated:
    pass


DecoderState = Union[AwaitingCommand, AwaitingArguments, AwaitingData, Terminated]


class ReceiveBuffer:
    """Growable byte buffer with front consumption."""

    def __init__(self) -> None:
        self._data = bytearray()

    def __len__(self) -> int:
        return len(self._data)

    def extend(self, data: bytes) -> None:
        self._data += data

    def consume(self, count: int) -> bytes:
        taken = bytes(self._data[:count])
        del self._data[:count]
        return taken

    def find_line_end(self) -> int:
        return self._data.find(b"\n")

    def pop_line(self) -> bytes | None:
        """Remove and return the next ``\\n`` terminated line, without ``\\r\\n``."""
        eol = self.find_line_end()
        if eol == -1:
            return None
        line = self.consume(eol + 1)[:-1]
        if line.endswith(b"\r"):
            line = line[:-1]
        return line


def parse_length(value: str) -> int:
    match = _LEADING_DIGITS.match(value)
    if match is None:
        logger.warning("ignoring malformed data length %r", value)
        return 0
    return int(match.group(1))


def transition(state: DecoderState, line: bytes) -> tuple[DecoderState, ResponseEvent | None]:
    """Apply one complete line to ``state``.

    Only valid for the line-oriented states; data bytes never pass through here.
    """
    if isinstance(state, AwaitingCommand):
        if line.decode("utf-8", "replace") == CLOSE_COMMAND:
            return AwaitingArguments(), CloseSignal()
        return state, None

    if isinstance(state, AwaitingArguments):
        if not line:
            return AwaitingCommand(), None
        text = line.decode("utf-8", "replace")
        key, sep, _ = text.partition(":")
        if not sep:
            logger.debug("discarding argument line without separator: %r", text)
            return state, None
        # Value follows the conventional ": " separator.
        value = text[len(key) + 2 :]
        if key == DATA_KEY:
            length = parse_length(value)
            return (AwaitingData(length) if length > 0 else state), None
        return state, Argument(key=key, value=value)

    raise RuntimeError(f"no line transition from {state!r}")


class ResponseDecoder:
    def __init__(self) -> None:
        self.state: DecoderState = AwaitingCommand()
        self._buffer = ReceiveBuffer()

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    def feed(self, data: bytes) -> list[ResponseEvent]:
        if isinstance(self.state, Terminated):
            raise RuntimeError("decoder already terminated")

        self._buffer.extend(data)
        events: list[ResponseEvent] = []
        while True:
            state = self.state
            if isinstance(state, AwaitingData):
                if not self._buffer:
                    break
                chunk = self._buffer.consume(state.remaining)
                events.append(DataChunk(chunk))
                remaining = state.remaining - len(chunk)
                if remaining:
                    self.state = AwaitingData(remaining)
                    break
                self.state = AwaitingArguments()
                continue

            line = self._buffer.pop_line()
            if line is None:
                break
            self.state, event = transition(state, line)
            if event is not None:
                events.append(event)
        return events

    def finish(self) -> list[ResponseEvent]:
        """Handle end of stream; always leaves the decoder terminated."""
        state = self.state
        if isinstance(state, AwaitingData):
            logger.warning("connection closed with %d bytes of data outstanding", state.remaining)
        elif self._buffer:
            logger.debug("discarding %d bytes of incomplete line at end of stream", len(self._buffer))
        self.state = Terminated()
        return []
