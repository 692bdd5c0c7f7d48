"""Reference proof engine shipped with proofstep."""

from proofstep.engine.kernel import Environment, ProofState
from proofstep.engine.reference import ReferenceEngine

__all__ = ["Environment", "ProofState", "ReferenceEngine"]
