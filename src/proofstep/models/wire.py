"""Wire schema for the line-delimited JSON protocol.

Request and Response are the envelope; the *Params models validate the
method-specific payload before a handler runs.

A Response carries either ``result`` or ``error``, never both. ``result``
may legitimately be ``null`` (unify with no unifier, commit), so presence is
decided by ``error``, not by ``result``.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr

from proofstep.exceptions import ProtocolError


class _StrictModel(BaseModel):
    """Base model that rejects unknown fields."""

    model_config = ConfigDict(extra="forbid")


# ------------------------------------------------------------------
# Envelope
# ------------------------------------------------------------------


class Request(_StrictModel):
    """One decoded request line."""

    id: Any = None
    method: StrictStr
    params: dict[str, Any] = Field(default_factory=dict)

    @property
    def has_id(self) -> bool:
        return "id" in self.model_fields_set


class ErrorObject(_StrictModel):
    code: StrictInt
    message: StrictStr
    data: Any = None

    @classmethod
    def from_exception(cls, exc: ProtocolError) -> ErrorObject:
        if exc.data is None:
            return cls(code=exc.code, message=exc.message)
        return cls(code=exc.code, message=exc.message, data=exc.data)

    def to_wire(self) -> dict[str, Any]:
        out: dict[str, Any] = {"code": self.code, "message": self.message}
        if "data" in self.model_fields_set:
            out["data"] = self.data
        return out


class Response(_StrictModel):
    """One response line. ``result`` must already be JSON-compatible."""

    id: Any = None
    result: Any = None
    error: Optional[ErrorObject] = None

    @property
    def has_id(self) -> bool:
        return "id" in self.model_fields_set

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, request: Request, result: Any) -> Response:
        if request.has_id:
            return cls(id=request.id, result=result)
        return cls(result=result)

    @classmethod
    def failure(cls, exc: ProtocolError, request: Optional[Request] = None) -> Response:
        error = ErrorObject.from_exception(exc)
        if request is not None and request.has_id:
            return cls(id=request.id, error=error)
        return cls(error=error)

    def to_wire(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.has_id:
            out["id"] = self.id
        if self.error is not None:
            out["error"] = self.error.to_wire()
        else:
            out["result"] = self.result
        return out

    def encode(self) -> str:
        """Serialize to one compact JSON line (no trailing newline)."""
        return json.dumps(self.to_wire(), separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def decode(cls, line: str) -> Response:
        return cls.model_validate(json.loads(line))


# ------------------------------------------------------------------
# Method params
# ------------------------------------------------------------------


class StateParams(_StrictModel):
    """Params of every method that acts on one existing node."""

    state: StrictInt = Field(ge=0)


class ApplyStepParams(StateParams):
    step: StrictStr
    budget: Optional[StrictInt] = Field(default=None, gt=0)


class ResolveNameParams(StateParams):
    name: StrictStr = Field(min_length=1)


class UnifyParams(StateParams):
    lhs: StrictStr
    rhs: StrictStr


class GoalSpec(_StrictModel):
    """One (name, type) obligation for newState."""

    name: Optional[StrictStr] = None
    type: StrictStr = Field(min_length=1)

    def as_pair(self) -> tuple[Optional[str], str]:
        return (self.name, self.type)


class NewStateParams(_StrictModel):
    goals: list[GoalSpec]


class NoParams(_StrictModel):
    """Params of methods that take none (position)."""
