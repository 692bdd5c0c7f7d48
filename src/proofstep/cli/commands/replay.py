"""proofstep replay -- re-drive a recorded transcript against a fresh session."""

from __future__ import annotations

import click

from proofstep.cli import session_options
from proofstep.cli.formatting import (
    format_error,
    format_node_tree,
    format_replay_report,
    get_console,
)
from proofstep.dispatcher import Dispatcher
from proofstep.exceptions import EngineFault, TranscriptError
from proofstep.transcript import read_transcript, replay as replay_entries


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--tree", "show_tree", is_flag=True, help="Show the resulting node tree.")
@click.option("-v", "--verbose", is_flag=True, help="List every replayed request.")
@session_options
@click.pass_context
def replay(
    ctx: click.Context,
    path: str,
    show_tree: bool,
    verbose: bool,
    **options: object,
) -> None:
    """Replay the requests in PATH and compare against the recorded responses.

    Exits 1 if any response differs from the transcript.
    """
    from proofstep.cli import _attach

    console = get_console()
    session = _attach(**options)
    dispatcher = Dispatcher.for_session(session)
    try:
        report = replay_entries(read_transcript(path), session, dispatcher)
    except (TranscriptError, EngineFault) as e:
        format_error(str(e), console)
        raise SystemExit(1) from None

    format_replay_report(report, console, verbose=verbose)
    if show_tree:
        console.print()
        format_node_tree(session.state, console)
    if not report.ok:
        raise SystemExit(1)
