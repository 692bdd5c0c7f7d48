"""proofstep serve -- run a session over stdin/stdout."""

from __future__ import annotations

import io
import sys
from typing import Optional

import click

from proofstep.cli import session_options
from proofstep.cli.formatting import format_error, get_console
from proofstep.dispatcher import Dispatcher
from proofstep.loop import EXIT_FAULT, run_loop
from proofstep.transcript import TranscriptWriter


@click.command()
@click.option(
    "--transcript",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Record every request/response exchange to this JSON-lines file.",
)
@session_options
@click.pass_context
def serve(ctx: click.Context, transcript: Optional[str], **options: object) -> None:
    """Serve one session: a request per stdin line, a response per stdout line.

    Exits 0 after a commit, 1 if input ends first, 2 on an engine fault.
    """
    from proofstep.cli import _attach

    session = _attach(**options)
    reader = sys.stdin
    writer = sys.stdout
    # Undecodable bytes must reach the dispatcher as a bad line, not end the loop.
    if isinstance(reader, io.TextIOWrapper):
        reader.reconfigure(encoding="utf-8", errors="replace")
    if isinstance(writer, io.TextIOWrapper):
        writer.reconfigure(encoding="utf-8")

    writer_cm = TranscriptWriter(transcript) if transcript else None
    try:
        if writer_cm is not None:
            writer_cm.open()
        dispatcher = Dispatcher.for_session(session, transcript=writer_cm)
        code = run_loop(session, dispatcher, reader, writer)
    except OSError as e:
        format_error(str(e), get_console(stderr=True))
        code = EXIT_FAULT
    finally:
        if writer_cm is not None:
            writer_cm.close()
    ctx.exit(code)
