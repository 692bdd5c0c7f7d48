"""Tests for SessionConfig and EngineConfig."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from proofstep.models.config import DEFAULT_STEP_BUDGET, EngineConfig, SessionConfig
from proofstep.protocols import SourcePosition


class TestSessionConfig:
    def test_defaults(self):
        config = SessionConfig()
        assert config.default_budget == DEFAULT_STEP_BUDGET
        assert config.max_budget is None

    def test_budget_must_be_positive(self):
        with pytest.raises(ValidationError):
            SessionConfig(default_budget=0)

    def test_default_within_cap(self):
        with pytest.raises(ValidationError, match="exceeds"):
            SessionConfig(default_budget=100, max_budget=10)

    def test_cap_equal_to_default(self):
        assert SessionConfig(default_budget=10, max_budget=10).max_budget == 10


class TestEngineConfig:
    def test_defaults(self):
        config = EngineConfig()
        assert config.open_namespaces == []
        assert config.position is None

    def test_accepts_source_position(self):
        pos = SourcePosition("Main.lean", 3, 1)
        config = EngineConfig(open_namespaces=["Nat"], position=pos)
        assert config.position is pos
        assert EngineConfig.model_config["arbitrary_types_allowed"] is True

    def test_parse_position(self):
        assert EngineConfig.parse_position("src/Main.lean:12:4") == SourcePosition(
            "src/Main.lean", 12, 4
        )

    def test_parse_position_keeps_colons_in_file(self):
        pos = EngineConfig.parse_position("C:\\proofs\\Main.lean:3:1")
        assert pos.file == "C:\\proofs\\Main.lean"
        assert (pos.line, pos.column) == (3, 1)

    @pytest.mark.parametrize("text", ["Main.lean", "Main.lean:3", ":3:4", "Main.lean:x:4"])
    def test_parse_position_rejects(self, text: str):
        with pytest.raises(ValueError, match="FILE:LINE:COLUMN"):
            EngineConfig.parse_position(text)

    def test_position_str(self):
        assert str(SourcePosition("a.lean", 1, 2)) == "a.lean:1:2"
