"""Shared test fixtures for proofstep.

Provides a reference engine, a session over it, and a dispatcher bound to
that session.
"""

from __future__ import annotations

import json
from typing import Any

import pytest

from proofstep.dispatcher import Dispatcher
from proofstep.engine import ReferenceEngine
from proofstep.models.config import EngineConfig, SessionConfig
from proofstep.session import ProofSession


@pytest.fixture
def engine() -> ReferenceEngine:
    return ReferenceEngine()


@pytest.fixture
def session(engine: ReferenceEngine) -> ProofSession:
    """Fresh session: only the root node, no goals."""
    return ProofSession(engine)


@pytest.fixture
def dispatcher(session: ProofSession) -> Dispatcher:
    return Dispatcher.for_session(session)


# ------------------------------------------------------------------
# Shared test helpers
# ------------------------------------------------------------------


def make_session(
    *,
    open_namespaces: list[str] | None = None,
    **session_config: Any,
) -> ProofSession:
    """Create a session over a reference engine with the given settings."""
    engine = ReferenceEngine(EngineConfig(open_namespaces=open_namespaces or []))
    return ProofSession(engine, SessionConfig(**session_config))


def request_line(method: str, params: dict | None = None, *, id: Any = 1) -> str:
    """Encode one request as a protocol line (no trailing newline)."""
    payload: dict[str, Any] = {"id": id, "method": method}
    if params is not None:
        payload["params"] = params
    return json.dumps(payload)


def send(dispatcher: Dispatcher, method: str, params: dict | None = None, *, id: Any = 1) -> dict:
    """Dispatch one request and return the decoded response line."""
    response = dispatcher.handle_line(request_line(method, params, id=id))
    return json.loads(response.encode())
