"""Proofstep CLI -- serve a session over stdin/stdout or replay a transcript.

Standard output carries the protocol. Logging and human-readable output go
to standard error.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from typing import Any, Optional

import click
from pydantic import ValidationError

from proofstep.engine import ReferenceEngine
from proofstep.models.config import EngineConfig, SessionConfig
from proofstep.session import ProofSession

_LOG_LEVELS = ["debug", "info", "warning", "error"]


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default="warning",
    envvar="PROOFSTEP_LOG_LEVEL",
    help="Logging verbosity (logs go to stderr).",
)
@click.version_option(package_name="proofstep")
@click.pass_context
def cli(ctx: click.Context, log_level: str) -> None:
    """Proofstep: step-at-a-time proof sessions over line-delimited JSON."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)


def session_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every command that attaches a session."""
    fn = click.option(
        "--position",
        default=None,
        envvar="PROOFSTEP_POSITION",
        help="Source position reported by 'position', as FILE:LINE:COLUMN.",
    )(fn)
    fn = click.option(
        "--open",
        "open_namespaces",
        multiple=True,
        help="Namespace to open for name lookup (repeatable).",
    )(fn)
    fn = click.option(
        "--max-budget",
        type=int,
        default=None,
        envvar="PROOFSTEP_MAX_BUDGET",
        help="Largest budget a client may request.",
    )(fn)
    fn = click.option(
        "--budget",
        type=int,
        default=None,
        envvar="PROOFSTEP_BUDGET",
        help="Default step budget when a request gives none.",
    )(fn)
    return fn


def _attach(
    budget: Optional[int],
    max_budget: Optional[int],
    open_namespaces: tuple[str, ...],
    position: Optional[str],
) -> ProofSession:
    """Build the engine and session from CLI options.

    Raises click.UsageError on invalid settings.
    """
    session_kwargs: dict[str, Any] = {"max_budget": max_budget}
    if budget is not None:
        session_kwargs["default_budget"] = budget
    try:
        session_config = SessionConfig(**session_kwargs)
        engine_config = EngineConfig(
            open_namespaces=list(open_namespaces),
            position=EngineConfig.parse_position(position) if position else None,
        )
    except (ValidationError, ValueError) as exc:
        raise click.UsageError(str(exc)) from None
    return ProofSession(ReferenceEngine(engine_config), session_config)


# Register subcommands after cli group is defined
from proofstep.cli.commands.serve import serve  # noqa: E402
from proofstep.cli.commands.replay import replay  # noqa: E402

cli.add_command(serve)
cli.add_command(replay)
