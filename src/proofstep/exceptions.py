"""Proofstep exception hierarchy.

All proofstep-specific exceptions inherit from ProofstepError.

ProtocolError and its subclasses are the wire-level taxonomy: each carries a
stable ``code`` and is converted into a response error object by the
dispatcher. Everything else (EngineFault, SessionError, TranscriptError) is
raised to the caller unchanged.
"""

from __future__ import annotations

from typing import Any


class ProofstepError(Exception):
    """Base exception for all proofstep errors."""


class ProtocolError(ProofstepError):
    """Base for failures that are reported to the client as an error response."""

    code: int = -32603

    def __init__(self, message: str, data: Any = None) -> None:
        self.message = message
        self.data = data
        super().__init__(message)


# ------------------------------------------------------------------
# Transport and request-level failures (JSON-RPC style codes)
# ------------------------------------------------------------------


class TransportParseError(ProtocolError):
    """Raised when an input line is not valid JSON."""

    code = -32700


class InvalidRequestError(ProtocolError):
    """Raised when a decoded line does not have the shape of a request."""

    code = -32600


class MethodNotFoundError(ProtocolError):
    """Raised when a request names a method that is not registered."""

    code = -32601

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"Method not found: {method}")


class InvalidParamsError(ProtocolError):
    """Raised when request params are malformed or reference an unknown node."""

    code = -32602


class NodeNotFoundError(InvalidParamsError):
    """Raised when a node id lookup falls outside the session's node array."""

    def __init__(self, node_id: int, node_count: int) -> None:
        self.node_id = node_id
        self.node_count = node_count
        super().__init__(
            f"Unknown state id {node_id} (session has {node_count} states)"
        )


# ------------------------------------------------------------------
# Engine-level failures
# ------------------------------------------------------------------


class StepParseError(ProtocolError):
    """Raised when step text cannot be parsed in the current context."""

    code = 0


class StepExecutionError(ProtocolError):
    """Raised when a step parses but fails to execute.

    Carries the engine's diagnostic messages; they are also sent as
    ``error.data``.
    """

    code = 1

    def __init__(self, messages: list[str]) -> None:
        self.messages = list(messages)
        summary = self.messages[0] if self.messages else "step failed"
        super().__init__(summary, data=self.messages)


class BudgetExceededError(StepExecutionError):
    """Raised when a step uses more engine steps than its budget allows."""

    def __init__(self, budget: int) -> None:
        self.budget = budget
        super().__init__([f"Step budget exceeded (max: {budget} steps)"])


class ExpressionParseError(ProtocolError):
    """Raised when an expression cannot be parsed."""

    code = 2


class ElaborationError(ProtocolError):
    """Raised when a parsed expression cannot be elaborated or unified."""

    code = 3


# ------------------------------------------------------------------
# Non-protocol failures
# ------------------------------------------------------------------


class EngineFault(ProofstepError):
    """Raised when the engine's ambient context can no longer be trusted.

    Never converted into a response; it ends the session loop.
    """


class SessionError(ProofstepError):
    """Raised when the session API is used outside its lifecycle."""


class TranscriptError(ProofstepError):
    """Raised when a transcript file cannot be read."""

    def __init__(self, path: str, line_number: int, reason: str) -> None:
        self.path = path
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"{path}:{line_number}: {reason}")
