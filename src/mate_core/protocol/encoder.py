"""Serialization of a document batch into the outbound request stream."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
import logging

from mate_core.connection import ByteSource
from mate_core.exceptions import ErrorCode, MateError
from mate_core.models import DocumentRequest, PathSource, StdinSource, UuidSource
from mate_core.protocol.escapes import EscapeFilter

logger = logging.getLogger(__name__)

LINE_END = b"\r\n"
OPEN_COMMAND = b"open" + LINE_END
END_OF_BATCH = b"." + LINE_END

STDIN_DISPLAY_NAME = "untitled (stdin)"
ESCAPES_WARNING = "WARNING: Removed ANSI escape codes. Use -e/--[no-]escapes."
STDIN_PROMPT = "Reading from stdin, press ^D to stop"


def yes_no(flag: bool | None) -> str:
    return "yes" if flag else "no"


def key_line(key: str, value: str) -> bytes:
    if "\n" in value or "\r" in value:
        raise MateError(
            ErrorCode.INVALID_ARGS,
            f"value for '{key}' must not contain line breaks",
            details={"key": key},
        )
    return f"{key}: {value}".encode("utf-8", "surrogateescape") + LINE_END


def data_block(payload: bytes) -> bytes:
    return key_line("data", str(len(payload))) + payload


@dataclass
class EncoderOptions:
    stdin: ByteSource | None = None
    stdin_is_pipe: bool = True
    stdout_is_pipe: bool = True
    keep_escapes: bool | None = None
    current_document_uuid: str | None = None
    chunk_size: int = 1024
    notify: Callable[[str], None] | None = None


class RequestEncoder:
    """Turns ``DocumentRequest``s into the exact bytes sent to the companion.

    :meth:`encode` is lazy: stdin is only read while the output is being
    consumed, so piped content streams straight into the socket.
    """

    def __init__(self, options: EncoderOptions | None = None) -> None:
        self._options = options or EncoderOptions()
        self.stripped_escapes = False
        self._warned = False

    def encode(self, requests: Iterable[DocumentRequest], default_project: str = "") -> Iterator[bytes]:
        for request in requests:
            source = request.source
            if isinstance(source, StdinSource):
                yield OPEN_COMMAND
                total = 0
                for block in self._stdin_blocks():
                    total += len(block)
                    yield data_block(block)
                head = self._stdin_arguments(request, total)
            elif isinstance(source, UuidSource):
                head = OPEN_COMMAND + key_line("uuid", source.uuid)
            elif isinstance(source, PathSource):
                head = OPEN_COMMAND + self._path_arguments(request, source)
            else:
                raise MateError(ErrorCode.INTERNAL_ERROR, f"unsupported document source: {source!r}")

            yield head + self._common_arguments(request, default_project) + LINE_END

        yield END_OF_BATCH

    def encode_bytes(self, requests: Iterable[DocumentRequest], default_project: str = "") -> bytes:
        return b"".join(self.encode(requests, default_project))

    def _stdin_blocks(self) -> Iterator[bytes]:
        """Yield one payload per stdin read, including reads the escape filter empties."""
        opts = self._options
        if opts.stdin is None:
            raise MateError(ErrorCode.INTERNAL_ERROR, "stdin document requested without an input source")

        if not opts.stdin_is_pipe:
            self._notify(STDIN_PROMPT)

        escape_filter = EscapeFilter() if opts.keep_escapes is not True else None
        while True:
            try:
                chunk = opts.stdin.read_some(opts.chunk_size)
            except OSError as exc:
                raise MateError(ErrorCode.READ_FAILED, f"failed to read stdin: {exc}") from exc
            if not chunk:
                break
            if escape_filter is not None:
                chunk = escape_filter.feed(chunk)
            yield chunk

        if escape_filter is not None and escape_filter.stripped:
            self.stripped_escapes = True
            if opts.keep_escapes is None and not self._warned:
                self._warned = True
                self._notify(ESCAPES_WARNING)

    def _stdin_arguments(self, request: DocumentRequest, total: int) -> bytes:
        opts = self._options
        if opts.stdin_is_pipe and total == 0 and request.wait is not True and opts.current_document_uuid:
            logger.debug("empty stdin, referring to current document %s", opts.current_document_uuid)
            return key_line("uuid", opts.current_document_uuid)

        wait = request.wait is True or (request.wait is None and opts.stdout_is_pipe)
        reactivate = wait if request.reactivate is None else request.reactivate
        display_name = STDIN_DISPLAY_NAME if request.display_name is None else request.display_name
        return b"".join(
            (
                key_line("display-name", display_name),
                key_line("data-on-close", yes_no(wait and opts.stdout_is_pipe)),
                key_line("wait", yes_no(wait)),
                key_line("re-activate", yes_no(reactivate)),
            )
        )

    def _path_arguments(self, request: DocumentRequest, source: PathSource) -> bytes:
        reactivate = request.wait if request.reactivate is None else request.reactivate
        return b"".join(
            (
                key_line("path", source.path),
                key_line("display-name", request.display_name or ""),
                key_line("wait", yes_no(request.wait)),
                key_line("re-activate", yes_no(reactivate)),
            )
        )

    def _common_arguments(self, request: DocumentRequest, default_project: str) -> bytes:
        lines: list[bytes] = []
        if request.authorization:
            lines.append(key_line("authorization", request.authorization))
        project = request.project_uuid if request.project_uuid is not None else default_project
        lines.extend(
            (
                key_line("selection", request.selection or ""),
                key_line("file-type", request.file_type or ""),
                key_line("project-uuid", project),
                key_line("add-to-recents", yes_no(request.add_to_recents)),
                key_line("change-directory", yes_no(request.change_directory)),
            )
        )
        return b"".join(lines)

    def _notify(self, message: str) -> None:
        if self._options.notify is not None:
            self._options.notify(message)
        else:
            logger.warning(message)
