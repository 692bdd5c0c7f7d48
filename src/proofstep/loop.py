"""Session loop: run the dispatcher until the session is committed.

Exit statuses:
    EXIT_COMMITTED  -- a commit request stopped the session.
    EXIT_EOF        -- input ended before any commit.
    EXIT_FAULT      -- the engine failed in a way no response can describe.
"""

from __future__ import annotations

import logging
from typing import TextIO

from proofstep.dispatcher import Dispatcher
from proofstep.exceptions import EngineFault
from proofstep.session import ProofSession

logger = logging.getLogger(__name__)

EXIT_COMMITTED = 0
EXIT_EOF = 1
EXIT_FAULT = 2


def run_loop(
    session: ProofSession,
    dispatcher: Dispatcher,
    reader: TextIO,
    writer: TextIO,
) -> int:
    """Serve requests from ``reader`` until commit, end of input, or a fault."""
    iterations = 0
    while session.running:
        try:
            served = dispatcher.serve_once(reader, writer)
        except EngineFault as exc:
            logger.error("Engine fault after %d requests: %s", iterations, exc)
            return EXIT_FAULT
        except Exception:
            logger.exception("Unexpected failure after %d requests", iterations)
            return EXIT_FAULT
        if not served:
            logger.warning(
                "Input closed before commit (%d requests, %d nodes)",
                iterations,
                len(session.state),
            )
            return EXIT_EOF
        iterations += 1

    logger.info("Session committed after %d requests", iterations)
    return EXIT_COMMITTED
