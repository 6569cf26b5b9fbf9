"""Reaching the companion: connect, launching it first when needed."""

from __future__ import annotations

import logging
import os
import subprocess
import time

from mate_core.config import RuntimeConfig
from mate_core.connection import SocketConnection
from mate_core.exceptions import ErrorCode, MateError

logger = logging.getLogger(__name__)


def launch_companion(command: list[str]) -> None:
    logger.info("launching companion: %s", " ".join(command))
    try:
        subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
            env=dict(os.environ),
        )
    except OSError as exc:
        raise MateError(
            ErrorCode.COMPANION_UNAVAILABLE,
            f"can't launch companion: {exc}",
            details={"command": command},
        ) from exc


def open_connection(runtime: RuntimeConfig) -> SocketConnection:
    """Connect to the companion socket.

    Without ``launch_command`` a single failed attempt is fatal. Otherwise
    the companion is started once and the socket polled until
    ``connect_timeout_seconds`` runs out.
    """
    try:
        return SocketConnection.connect_unix(runtime.socket_path)
    except OSError as exc:
        first_error = exc

    if not runtime.launch_command:
        raise _unavailable(runtime, first_error)

    launch_companion(runtime.launch_command)

    deadline = time.monotonic() + runtime.connect_timeout_seconds
    last_error: OSError = first_error
    while time.monotonic() < deadline:
        time.sleep(runtime.connect_retry_interval)
        try:
            return SocketConnection.connect_unix(runtime.socket_path)
        except OSError as exc:
            last_error = exc
            logger.debug("companion not reachable yet: %s", exc)
    raise _unavailable(runtime, last_error)


def _unavailable(runtime: RuntimeConfig, exc: OSError) -> MateError:
    return MateError(
        ErrorCode.COMPANION_UNAVAILABLE,
        f"can't connect to companion at {runtime.socket_path}: {exc.strerror or exc}",
        details={"socket_path": str(runtime.socket_path)},
        suggestion="Start the editor, or set runtime.launch_command (MATE_RUNTIME_LAUNCH_COMMAND).",
    )
