"""Shared CLI context, logging setup, and error rendering."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
import sys
from typing import Any

import click
import typer

from mate_core.config import AppConfig, LoggingConfig
from mate_core.exceptions import ErrorCode, MateError

HELP_CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 110,
}

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

logger = logging.getLogger(__name__)


@dataclass
class CLIState:
    config: AppConfig
    stdin_is_pipe: bool
    stdout_is_pipe: bool


def binary_stdio() -> tuple[Any, Any]:
    return click.get_binary_stream("stdin"), click.get_binary_stream("stdout")


def build_typer(help_text: str) -> typer.Typer:
    """Create the Typer app with the same help ergonomics everywhere."""

    return typer.Typer(
        help=help_text,
        add_completion=False,
        rich_markup_mode="markdown",
        context_settings=HELP_CONTEXT_SETTINGS,
    )


def configure_logging(cfg: LoggingConfig) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if cfg.log_file is not None:
        handlers.append(logging.FileHandler(cfg.log_file))
    logging.basicConfig(
        level=getattr(logging, cfg.level, logging.WARNING),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def split_list(values: list[str] | None) -> list[str]:
    """Flatten repeated comma-separated option values, keeping empty items."""
    out: list[str] = []
    for raw in values or []:
        out.extend(raw.split(","))
    return out


def is_elevated() -> bool:
    return os.geteuid() == 0


def stream_is_pipe(stream: object) -> bool:
    isatty = getattr(stream, "isatty", None)
    if isatty is None:
        return True
    try:
        return not isatty()
    except ValueError:
        return True


def handle_error(exc: MateError, *, prog_name: str = "mate") -> None:
    logger.debug("command failed: %s", exc.to_error_payload())
    typer.echo(f"{prog_name}: {exc.message}", err=True)
    suggestion = exc.suggestion or _default_suggestion(exc.code)
    if suggestion:
        typer.echo(f"  {suggestion}", err=True)
    raise typer.Exit(code=exc.exit_code)


def _default_suggestion(code: ErrorCode) -> str | None:
    suggestions = {
        ErrorCode.INVALID_ARGS: "Run `mate --help` for valid usage.",
        ErrorCode.COMPANION_UNAVAILABLE: "Make sure the editor is running and listening on runtime.socket_path.",
    }
    return suggestions.get(code)
