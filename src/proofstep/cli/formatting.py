"""Rich formatting helpers for the proofstep CLI.

Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
``serve`` owns stdout for the protocol, so it asks for a stderr console.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from proofstep.models.node import ROOT_ID

if TYPE_CHECKING:
    from proofstep.state import SessionState
    from proofstep.transcript import ReplayReport


def get_console(stderr: bool = False) -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=stderr)


def _node_label(node_id: int, step: str) -> str:
    if node_id == ROOT_ID:
        return "[yellow]0[/yellow] [dim](root)[/dim]"
    if not step:
        return f"[yellow]{node_id}[/yellow] [dim](no step)[/dim]"
    first_line = step.splitlines()[0]
    if first_line != step:
        first_line += " ..."
    return f"[yellow]{node_id}[/yellow] [cyan]{escape(first_line)}[/cyan]"


def format_node_tree(state: SessionState, console: Console) -> None:
    """Display the checkpoint tree, children in creation order."""
    root = Tree(_node_label(ROOT_ID, ""))
    branches = {ROOT_ID: root}
    for node_id, node in enumerate(state):
        if node_id == ROOT_ID:
            continue
        # Parents always precede children, so the parent branch exists.
        branches[node_id] = branches[node.parent].add(_node_label(node_id, node.step))
    console.print(root)


def format_replay_report(report: ReplayReport, console: Console, verbose: bool = False) -> None:
    """Display replay results: a summary line plus a table of mismatches."""
    total = len(report.exchanges)
    mismatches = report.mismatches

    if verbose and report.exchanges:
        table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
        table.add_column("Line", justify="right", style="dim")
        table.add_column("Request")
        table.add_column("Outcome")
        for exchange in report.exchanges:
            error = exchange.response.get("error")
            if not exchange.matches:
                outcome = "[red]mismatch[/red]"
            elif error is not None:
                outcome = f"[yellow]error {error['code']}[/yellow]"
            else:
                outcome = "[green]ok[/green]"
            table.add_row(str(exchange.line_number), escape(exchange.request), outcome)
        console.print(table)
        console.print()

    for exchange in mismatches:
        console.print(f"[red]Line {exchange.line_number}:[/red] {escape(exchange.request)}")
        console.print(f"  expected: {escape(str(exchange.expected))}")
        console.print(f"  got:      {escape(str(exchange.response))}")

    color = "green" if not mismatches else "red"
    console.print(
        f"[{color}]{total - len(mismatches)}/{total}[/{color}] responses matched"
    )
    if report.committed:
        console.print("Session committed.")
    else:
        console.print("[yellow]Session was not committed.[/yellow]")
    if report.skipped:
        console.print(f"[dim]{report.skipped} entries after commit were not replayed.[/dim]")


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {message}", highlight=False)
