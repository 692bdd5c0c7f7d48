"""Configuration models for proofstep.

SessionConfig holds per-session settings (step budgets).
EngineConfig holds the reference engine's ambient settings.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from proofstep.protocols import SourcePosition

DEFAULT_STEP_BUDGET = 10_000


class SessionConfig(BaseModel):
    """Per-session configuration."""

    default_budget: int = Field(default=DEFAULT_STEP_BUDGET, gt=0)
    max_budget: Optional[int] = Field(default=None, gt=0)  # None = uncapped

    @model_validator(mode="after")
    def _default_within_cap(self) -> "SessionConfig":
        if self.max_budget is not None and self.default_budget > self.max_budget:
            raise ValueError(
                f"default_budget ({self.default_budget}) exceeds "
                f"max_budget ({self.max_budget})"
            )
        return self


class EngineConfig(BaseModel):
    """Ambient settings for the reference engine."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    open_namespaces: list[str] = []
    position: Optional[SourcePosition] = None

    @classmethod
    def parse_position(cls, text: str) -> SourcePosition:
        """Parse ``FILE:LINE:COLUMN`` into a SourcePosition.

        The file part may itself contain colons (Windows drive letters).
        """
        file, sep, rest = text.rpartition(":")
        file2, sep2, line = file.rpartition(":")
        if not sep or not sep2 or not file2:
            raise ValueError(f"Expected FILE:LINE:COLUMN, got {text!r}")
        try:
            return SourcePosition(file=file2, line=int(line), column=int(rest))
        except ValueError:
            raise ValueError(f"Expected FILE:LINE:COLUMN, got {text!r}") from None
