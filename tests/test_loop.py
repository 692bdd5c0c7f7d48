"""Tests for the session loop: commit, end of input, engine faults."""

from __future__ import annotations

import io
import json
import logging

from proofstep.dispatcher import Dispatcher
from proofstep.loop import EXIT_COMMITTED, EXIT_EOF, EXIT_FAULT, run_loop
from proofstep.models.node import Node
from proofstep.session import ProofSession
from tests.conftest import request_line


def _run(session: ProofSession, lines: list[str]) -> tuple[int, list[dict], io.StringIO]:
    reader = io.StringIO("".join(line + "\n" for line in lines))
    writer = io.StringIO()
    code = run_loop(session, Dispatcher.for_session(session), reader, writer)
    responses = [json.loads(line) for line in writer.getvalue().splitlines()]
    return code, responses, reader


class TestRunLoop:
    def test_full_session(self, session: ProofSession):
        code, responses, _ = _run(
            session,
            [
                request_line("newState", {"goals": [{"name": "h", "type": "Nat"}]}, id=1),
                request_line("applyStep", {"state": 0, "step": "malformed(((", "budget": 1000}, id=2),
                request_line("applyStep", {"state": 1, "step": "exact 0", "budget": 1000}, id=3),
                request_line("queryState", {"state": 2}, id=4),
                request_line("commit", {"state": 2}, id=5),
            ],
        )
        assert code == EXIT_COMMITTED
        assert [r["id"] for r in responses] == [1, 2, 3, 4, 5]
        assert responses[0]["result"] == 1
        assert responses[1]["error"]["code"] == 0
        assert responses[2]["result"] == 2
        assert responses[3]["result"] == []
        assert responses[4]["result"] is None
        assert session.running is False

    def test_stops_reading_after_commit(self, session: ProofSession):
        code, responses, reader = _run(
            session,
            [
                request_line("commit", {"state": 0}, id=1),
                request_line("queryState", {"state": 0}, id=2),
            ],
        )
        assert code == EXIT_COMMITTED
        assert len(responses) == 1
        assert json.loads(reader.readline())["id"] == 2

    def test_failed_commit_keeps_running(self, session: ProofSession):
        code, responses, _ = _run(
            session,
            [
                request_line("commit", {"state": 5}, id=1),
                request_line("commit", {"state": 0}, id=2),
            ],
        )
        assert code == EXIT_COMMITTED
        assert "error" in responses[0]
        assert responses[1] == {"id": 2, "result": None}

    def test_every_line_answered(self, session: ProofSession):
        code, responses, _ = _run(session, ["nonsense", "{}", request_line("commit", {"state": 0})])
        assert code == EXIT_COMMITTED
        assert len(responses) == 3
        assert "id" not in responses[0] and "id" not in responses[1]

    def test_deeply_nested_lines_answered(self, session: ProofSession):
        deep_step = "exact " + "(" * 3000 + "0" + ")" * 3000
        deep_term = "(" * 3000 + "x" + ")" * 3000
        code, responses, _ = _run(
            session,
            [
                "[" * 100000 + "]" * 100000,
                request_line("newState", {"goals": [{"name": "h", "type": "Nat"}]}, id=1),
                request_line("applyStep", {"state": 1, "step": deep_step}, id=2),
                request_line("unify", {"state": 1, "lhs": deep_term, "rhs": "y"}, id=3),
                request_line("commit", {"state": 1}, id=4),
            ],
        )
        assert code == EXIT_COMMITTED
        assert len(responses) == 5
        assert responses[0]["error"]["code"] == -32700
        assert [r["error"]["code"] for r in responses[2:4]] == [0, 2]
        assert responses[4] == {"id": 4, "result": None}

    def test_end_of_input(self, session: ProofSession, caplog):
        with caplog.at_level(logging.WARNING, logger="proofstep.loop"):
            code, responses, _ = _run(session, [request_line("queryState", {"state": 0})])
        assert code == EXIT_EOF
        assert len(responses) == 1
        assert session.running is True
        assert "before commit" in caplog.text

    def test_engine_fault_ends_loop(self, session: ProofSession, caplog):
        # A snapshot the engine did not produce corrupts the context on restore.
        session.state.append(Node(snapshot="not a snapshot", parent=0))
        with caplog.at_level(logging.ERROR, logger="proofstep.loop"):
            code, responses, reader = _run(
                session,
                [
                    request_line("queryState", {"state": 0}, id=1),
                    request_line("queryState", {"state": 1}, id=2),
                    request_line("commit", {"state": 0}, id=3),
                ],
            )
        assert code == EXIT_FAULT
        assert [r["id"] for r in responses] == [1]
        assert "Engine fault" in caplog.text
        assert json.loads(reader.readline())["id"] == 3
