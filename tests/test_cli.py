"""CLI tests for proofstep -- serve and replay via Click's CliRunner."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from proofstep.cli import cli
from tests.conftest import request_line


@pytest.fixture
def runner():
    """Create a Click test runner."""
    return CliRunner()


def _input(*lines: str) -> str:
    return "".join(line + "\n" for line in lines)


def _responses(stdout: str) -> list[dict]:
    # Only protocol lines; log records may share the captured stream.
    return [json.loads(line) for line in stdout.splitlines() if line.startswith("{")]


SESSION = (
    request_line("newState", {"goals": [{"name": "h", "type": "Nat"}]}, id=1),
    request_line("applyStep", {"state": 1, "step": "exact 0", "budget": 1000}, id=2),
    request_line("queryState", {"state": 2}, id=3),
    request_line("commit", {"state": 2}, id=4),
)


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


class TestServeCommand:
    def test_committed_session(self, runner: CliRunner):
        result = runner.invoke(cli, ["serve"], input=_input(*SESSION))
        assert result.exit_code == 0
        responses = _responses(result.stdout)
        assert [r["id"] for r in responses] == [1, 2, 3, 4]
        assert responses[1]["result"] == 2
        assert responses[2]["result"] == []

    def test_end_of_input_exits_1(self, runner: CliRunner):
        result = runner.invoke(cli, ["serve"], input=_input(*SESSION[:2]))
        assert result.exit_code == 1
        assert len(_responses(result.stdout)) == 2

    def test_lines_after_commit_ignored(self, runner: CliRunner):
        extra = request_line("queryState", {"state": 0}, id=5)
        result = runner.invoke(cli, ["serve"], input=_input(*SESSION, extra))
        assert result.exit_code == 0
        assert [r["id"] for r in _responses(result.stdout)] == [1, 2, 3, 4]

    def test_budget_cap_option(self, runner: CliRunner):
        result = runner.invoke(
            cli,
            ["serve", "--max-budget", "100"],
            input=_input(
                request_line("applyStep", {"state": 0, "step": "skip", "budget": 500}),
                request_line("commit", {"state": 0}, id=2),
            ),
        )
        assert result.exit_code == 0
        assert _responses(result.stdout)[0]["error"]["code"] == -32602

    def test_undecodable_line_answered(self, runner: CliRunner):
        data = b"\xff\xfe{\n" + _input(request_line("commit", {"state": 0})).encode()
        result = runner.invoke(cli, ["serve"], input=data)
        assert result.exit_code == 0
        responses = _responses(result.stdout)
        assert len(responses) == 2
        assert "id" not in responses[0]
        assert responses[0]["error"]["code"] == -32700
        assert responses[1] == {"id": 1, "result": None}

    def test_budget_from_environment(self, runner: CliRunner):
        result = runner.invoke(
            cli,
            ["serve"],
            input=_input(
                request_line("newState", {"goals": [{"type": "Nat"}]}),
                request_line("applyStep", {"state": 1, "step": "repeat (apply Nat.succ)"}, id=2),
                request_line("commit", {"state": 0}, id=3),
            ),
            env={"PROOFSTEP_BUDGET": "10"},
        )
        assert result.exit_code == 0
        error = _responses(result.stdout)[1]["error"]
        assert error["code"] == 1
        assert "10" in error["message"]

    def test_open_namespace_and_position(self, runner: CliRunner):
        result = runner.invoke(
            cli,
            ["serve", "--open", "Nat", "--position", "Main.lean:7:2"],
            input=_input(
                request_line("resolveName", {"state": 0, "name": "succ"}),
                request_line("position", {}, id=2),
                request_line("commit", {"state": 0}, id=3),
            ),
        )
        assert result.exit_code == 0
        responses = _responses(result.stdout)
        assert responses[0]["result"] == [{"name": "Nat.succ", "fields": []}]
        assert responses[1]["result"] == {"file": "Main.lean", "line": 7, "column": 2}

    def test_invalid_settings(self, runner: CliRunner):
        result = runner.invoke(cli, ["serve", "--budget", "0"], input="")
        assert result.exit_code == 2

    def test_invalid_position(self, runner: CliRunner):
        result = runner.invoke(cli, ["serve", "--position", "nowhere"], input="")
        assert result.exit_code == 2

    def test_transcript_recorded(self, runner: CliRunner):
        with runner.isolated_filesystem():
            result = runner.invoke(
                cli, ["serve", "--transcript", "session.jsonl"], input=_input(*SESSION)
            )
            assert result.exit_code == 0
            lines = Path("session.jsonl").read_text(encoding="utf-8").splitlines()
            assert len(lines) == 4
            assert json.loads(lines[3])["response"] == {"id": 4, "result": None}


# ---------------------------------------------------------------------------
# replay
# ---------------------------------------------------------------------------


class TestReplayCommand:
    def _record(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli, ["serve", "--transcript", "session.jsonl"], input=_input(*SESSION)
        )
        assert result.exit_code == 0

    def test_replay_matches(self, runner: CliRunner):
        with runner.isolated_filesystem():
            self._record(runner)
            result = runner.invoke(cli, ["replay", "session.jsonl"])
            assert result.exit_code == 0
            assert "4/4" in result.output
            assert "committed" in result.output

    def test_replay_tree(self, runner: CliRunner):
        with runner.isolated_filesystem():
            self._record(runner)
            result = runner.invoke(cli, ["replay", "session.jsonl", "--tree"])
            assert result.exit_code == 0
            assert "(root)" in result.output
            assert "exact 0" in result.output

    def test_replay_verbose(self, runner: CliRunner):
        with runner.isolated_filesystem():
            self._record(runner)
            result = runner.invoke(cli, ["replay", "session.jsonl", "-v"])
            assert result.exit_code == 0
            assert "Line" in result.output

    def test_replay_mismatch_exits_1(self, runner: CliRunner):
        with runner.isolated_filesystem():
            self._record(runner)
            lines = Path("session.jsonl").read_text(encoding="utf-8").splitlines()
            entry = json.loads(lines[0])
            entry["response"]["result"] = 9
            lines[0] = json.dumps(entry)
            Path("session.jsonl").write_text("\n".join(lines) + "\n", encoding="utf-8")

            result = runner.invoke(cli, ["replay", "session.jsonl"])
            assert result.exit_code == 1
            assert "3/4" in result.output

    def test_replay_plain_requests_not_committed(self, runner: CliRunner):
        with runner.isolated_filesystem():
            Path("requests.jsonl").write_text(_input(*SESSION[:2]), encoding="utf-8")
            result = runner.invoke(cli, ["replay", "requests.jsonl"])
            assert result.exit_code == 0
            assert "not committed" in result.output

    def test_replay_bad_transcript(self, runner: CliRunner):
        with runner.isolated_filesystem():
            Path("bad.jsonl").write_text('{"request": 1}\n', encoding="utf-8")
            result = runner.invoke(cli, ["replay", "bad.jsonl"])
            assert result.exit_code == 1
            assert "Error" in result.output

    def test_replay_missing_file(self, runner: CliRunner):
        result = runner.invoke(cli, ["replay", "does-not-exist.jsonl"])
        assert result.exit_code == 2
