"""Streaming removal of ANSI escape sequences from piped input."""

from __future__ import annotations

from enum import Enum

ESC = 0x1B
CSI_INTRODUCER = ord("[")


class EscapeState(str, Enum):
    PLAIN = "plain"
    ESCAPE = "escape"
    ANSI_SEQUENCE = "ansi_sequence"


def strip_ansi_escapes(state: EscapeState, data: bytes) -> tuple[bytes, EscapeState]:
    """Drop escape sequences from one chunk of a stream.

    ``state`` carries a sequence that was cut off at the end of the previous
    chunk. An ESC not followed by ``[`` swallows the byte after it.
    """
    out = bytearray()
    pos = 0
    size = len(data)
    while pos < size:
        if state is EscapeState.PLAIN:
            esc = data.find(ESC, pos)
            if esc == -1:
                out += data[pos:]
                break
            out += data[pos:esc]
            state = EscapeState.ESCAPE
            pos = esc + 1
            continue

        byte = data[pos]
        if state is EscapeState.ESCAPE:
            state = EscapeState.ANSI_SEQUENCE if byte == CSI_INTRODUCER else EscapeState.PLAIN
        elif 0x40 <= byte <= 0x7E:
            state = EscapeState.PLAIN
        pos += 1
    return bytes(out), state


class EscapeFilter:
    """Stateful wrapper over :func:`strip_ansi_escapes` for one input stream."""

    def __init__(self) -> None:
        self.state = EscapeState.PLAIN
        self.stripped = False

    def feed(self, data: bytes) -> bytes:
        out, self.state = strip_ansi_escapes(self.state, data)
        if len(out) != len(data):
            self.stripped = True
        return out
