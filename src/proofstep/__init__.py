"""Proofstep: a line-oriented driver for branchable, step-at-a-time proof sessions.

A client sends one JSON request per line (apply a step, inspect goals,
resolve a name, unify, give up, commit) and gets one JSON response per line.
Every successful step becomes a checkpoint node that later requests can
branch from.
"""

from proofstep._version import __version__

# Core entry points
from proofstep.session import ProofSession
from proofstep.state import SessionState
from proofstep.dispatcher import Dispatcher
from proofstep.registry import OperationEntry, OperationRegistry, build_registry
from proofstep.loop import EXIT_COMMITTED, EXIT_EOF, EXIT_FAULT, run_loop

# Models
from proofstep.models.node import ROOT_ID, Node
from proofstep.models.config import EngineConfig, SessionConfig
from proofstep.models.wire import ErrorObject, Request, Response

# Protocols and output types
from proofstep.protocols import (
    Diagnostic,
    Engine,
    Goal,
    Hypothesis,
    NameCandidate,
    SessionOperations,
    SourcePosition,
)

# Transcripts
from proofstep.transcript import ReplayReport, TranscriptWriter, read_transcript, replay

# Reference engine
from proofstep.engine import ReferenceEngine

# Exceptions
from proofstep.exceptions import (
    BudgetExceededError,
    ElaborationError,
    EngineFault,
    ExpressionParseError,
    InvalidParamsError,
    InvalidRequestError,
    MethodNotFoundError,
    NodeNotFoundError,
    ProofstepError,
    ProtocolError,
    SessionError,
    StepExecutionError,
    StepParseError,
    TranscriptError,
    TransportParseError,
)

__all__ = [
    "__version__",
    # Core
    "ProofSession",
    "SessionState",
    "Dispatcher",
    "OperationEntry",
    "OperationRegistry",
    "build_registry",
    "run_loop",
    "EXIT_COMMITTED",
    "EXIT_EOF",
    "EXIT_FAULT",
    # Models
    "ROOT_ID",
    "Node",
    "EngineConfig",
    "SessionConfig",
    "ErrorObject",
    "Request",
    "Response",
    # Protocols
    "Diagnostic",
    "Engine",
    "Goal",
    "Hypothesis",
    "NameCandidate",
    "SessionOperations",
    "SourcePosition",
    # Transcripts
    "ReplayReport",
    "TranscriptWriter",
    "read_transcript",
    "replay",
    # Engine
    "ReferenceEngine",
    # Exceptions
    "BudgetExceededError",
    "ElaborationError",
    "EngineFault",
    "ExpressionParseError",
    "InvalidParamsError",
    "InvalidRequestError",
    "MethodNotFoundError",
    "NodeNotFoundError",
    "ProofstepError",
    "ProtocolError",
    "SessionError",
    "StepExecutionError",
    "StepParseError",
    "TranscriptError",
    "TransportParseError",
]
