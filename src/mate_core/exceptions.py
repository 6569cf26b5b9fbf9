"""Error hierarchy and exit code mapping for mate."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    INVALID_ARGS = "INVALID_ARGS"
    COMPANION_UNAVAILABLE = "COMPANION_UNAVAILABLE"
    OS_ERROR = "OS_ERROR"
    READ_FAILED = "READ_FAILED"
    WRITE_FAILED = "WRITE_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# sysexits(3) values, matching what editors' command-line helpers return.
EXIT_CODE_BY_ERROR: dict[ErrorCode, int] = {
    ErrorCode.INVALID_ARGS: 64,
    ErrorCode.COMPANION_UNAVAILABLE: 69,
    ErrorCode.INTERNAL_ERROR: 70,
    ErrorCode.OS_ERROR: 71,
    ErrorCode.READ_FAILED: 74,
    ErrorCode.WRITE_FAILED: 74,
}


class MateError(Exception):
    """Base typed exception surfaced to the CLI as a one-line diagnostic."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        suggestion: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.suggestion = suggestion

    @property
    def exit_code(self) -> int:
        return EXIT_CODE_BY_ERROR.get(self.code, 1)

    def to_error_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }
        if self.suggestion:
            payload["suggestion"] = self.suggestion
        return payload
