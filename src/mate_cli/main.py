"""`mate` entry point: open files in the running editor."""

from __future__ import annotations

import os
from pathlib import Path

import typer

from mate_cli._common import (
    CLIState,
    binary_stdio,
    build_typer,
    configure_logging,
    handle_error,
    is_elevated,
    split_list,
    stream_is_pipe,
)
from mate_core import __version__
from mate_core.config import load_config
from mate_core.connection import StreamSource
from mate_core.exceptions import ErrorCode, MateError
from mate_core.launcher import open_connection
from mate_core.models import STDIN_ARGUMENT, UUID_PREFIX, DocumentRequest, parse_document_reference
from mate_core.protocol.encoder import EncoderOptions, RequestEncoder
from mate_core.session import Session, StdoutSink

WAIT_SUFFIX = "_wait"

app = build_typer(
    """Open files in the running editor.

    `-` reads the document from stdin. When waiting on a stdin document with stdout
    redirected, the edited text is written back to stdout once the document is closed.

    By default mate waits for files to be closed if the command name has a `_wait`
    suffix (e.g. via a symbolic link) or when used as a filter:

      ls *.tex | mate | sh      (-w implied)
      mate - | cat -n           (-w implied, read from stdin)
    """
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"mate {__version__}")
        raise typer.Exit()


@app.command()
def mate(
    ctx: typer.Context,
    files: list[str] | None = typer.Argument(None, help="Files to open. `-` reads stdin.", show_default=False),
    wait: bool | None = typer.Option(None, "--wait/--no-wait", "-w/-W", help="Wait for file to be closed by the editor."),
    no_wait: bool = typer.Option(False, "--async", "-a", help="Return as soon as the files are open."),
    line: list[str] | None = typer.Option(None, "--line", "-l", help="Place caret on line <number> after loading file."),
    file_type: list[str] | None = typer.Option(None, "--type", "-t", help="Treat file as having <filetype>."),
    name: list[str] | None = typer.Option(None, "--name", "-m", help="The display name shown in the editor."),
    project: list[str] | None = typer.Option(None, "--project", "-p", help="Project UUID the document belongs to."),
    recent: bool | None = typer.Option(None, "--recent/--no-recent", "-r/-R", help="Add file to Open Recent menu."),
    change_dir: bool = typer.Option(False, "--change-dir", "-d", help="Change the editor's working directory to that of the file."),
    uuid: str | None = typer.Option(None, "--uuid", "-u", help="Reference an already open document using its UUID."),
    escapes: bool | None = typer.Option(None, "--escapes/--no-escapes", "-e/-E", help="Preserve ANSI escapes read from stdin."),
    version: bool = typer.Option(False, "--version", "-v", callback=_version_callback, is_eager=True, help="Print version information."),
) -> None:
    _ = version
    cfg = load_config()
    configure_logging(cfg.logging)
    stdin, stdout = binary_stdio()
    state = CLIState(
        config=cfg,
        stdin_is_pipe=stream_is_pipe(stdin),
        stdout_is_pipe=stream_is_pipe(stdout),
    )
    ctx.obj = state
    runtime = state.config.runtime

    should_wait = resolve_wait(ctx.find_root().info_name, wait=wait, no_wait=no_wait)
    names = split_list(name)
    lines = split_list(line)
    types = split_list(file_type)
    projects = split_list(project)

    try:
        references = collect_references(files or [], uuid=uuid, wait=should_wait, stdin_is_pipe=state.stdin_is_pipe)
        authorization = state.config.auth.authorization_token if is_elevated() else None
        requests = [
            DocumentRequest(
                source=parse_document_reference(reference),
                display_name=_nth(names, index),
                selection=_nth(lines, index),
                file_type=_nth(types, index),
                project_uuid=_nth(projects, index),
                wait=should_wait,
                add_to_recents=recent,
                change_directory=change_dir,
                authorization=authorization,
            )
            for index, reference in enumerate(references)
        ]
        default_project = projects[-1] if projects else os.environ.get("TM_PROJECT_UUID", "")

        encoder = RequestEncoder(
            EncoderOptions(
                stdin=StreamSource(stdin),
                stdin_is_pipe=state.stdin_is_pipe,
                stdout_is_pipe=state.stdout_is_pipe,
                keep_escapes=escapes,
                current_document_uuid=os.environ.get("TM_DOCUMENT_UUID") or None,
                chunk_size=runtime.stdin_chunk_size,
                notify=lambda message: typer.echo(message, err=True),
            )
        )
        connection = open_connection(runtime)
        session = Session(runtime, StdoutSink(stdout))
        code = session.run(encoder.encode(requests, default_project), connection)
    except MateError as exc:
        handle_error(exc)
        return

    if code != 0:
        raise typer.Exit(code=code)


def resolve_wait(prog_name: str | None, *, wait: bool | None, no_wait: bool) -> bool | None:
    """Combine the program name and flags into the tri-state wait setting."""
    should_wait: bool | None = True if prog_name and prog_name.endswith(WAIT_SUFFIX) else None
    if wait is not None:
        should_wait = wait
    if no_wait:
        should_wait = False
    return should_wait


def collect_references(
    args: list[str],
    *,
    uuid: str | None,
    wait: bool | None,
    stdin_is_pipe: bool,
) -> list[str]:
    references: list[str] = []
    for arg in args:
        if not arg:
            continue
        if arg == STDIN_ARGUMENT or arg.startswith(UUID_PREFIX) or Path(arg).is_absolute():
            references.append(arg)
            continue
        try:
            cwd = os.getcwd()
        except OSError as exc:
            raise MateError(ErrorCode.OS_ERROR, "failed to get current working directory") from exc
        references.append(os.path.join(cwd, arg))

    if not references:
        if uuid:
            references.append(UUID_PREFIX + uuid)
        elif wait is True or stdin_is_pipe:
            references.append(STDIN_ARGUMENT)
    return references


def _nth(values: list[str], index: int) -> str | None:
    return values[index] if index < len(values) else None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
