"""Transcripts: record a session's exchanges and replay them.

A transcript is a JSON-lines file with one object per exchange::

    {"request": "<raw request line>", "response": {...}}

``replay`` also accepts a plain request file (one request per line). Lines
that are not transcript objects are taken as raw requests with no expected
response. Blank lines are skipped.

Because node ids are assigned sequentially and engines are deterministic,
re-driving the recorded requests against a fresh session must reproduce
every recorded response.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, TextIO

from proofstep.dispatcher import Dispatcher
from proofstep.exceptions import TranscriptError
from proofstep.models.wire import Response
from proofstep.session import ProofSession

logger = logging.getLogger(__name__)


class TranscriptWriter:
    """Appends exchanges to a transcript file, flushing after each one."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._fh: Optional[TextIO] = None
        self.count = 0

    def open(self) -> TranscriptWriter:
        self._fh = self.path.open("w", encoding="utf-8")
        return self

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self) -> TranscriptWriter:
        return self.open()

    def __exit__(self, *exc: object) -> None:
        self.close()

    def record(self, line: str, response: Response) -> None:
        if self._fh is None:
            raise RuntimeError("TranscriptWriter is not open")
        entry = {"request": line, "response": response.to_wire()}
        self._fh.write(json.dumps(entry, separators=(",", ":"), ensure_ascii=False))
        self._fh.write("\n")
        self._fh.flush()
        self.count += 1


@dataclass(frozen=True)
class TranscriptEntry:
    line_number: int
    request: str
    expected: Optional[dict[str, Any]] = None


def read_transcript(path: str | Path) -> Iterator[TranscriptEntry]:
    """Yield the entries of a transcript or plain request file."""
    path = Path(path)
    with path.open(encoding="utf-8") as fh:
        for line_number, raw in enumerate(fh, start=1):
            line = raw.rstrip("\r\n")
            if not line.strip():
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError:
                yield TranscriptEntry(line_number, line)
                continue

            if isinstance(obj, dict) and "request" in obj:
                request = obj["request"]
                expected = obj.get("response")
                if not isinstance(request, str):
                    raise TranscriptError(
                        str(path), line_number, "'request' must be a string"
                    )
                if expected is not None and not isinstance(expected, dict):
                    raise TranscriptError(
                        str(path), line_number, "'response' must be an object"
                    )
                yield TranscriptEntry(line_number, request, expected)
            else:
                yield TranscriptEntry(line_number, line)


@dataclass(frozen=True)
class ReplayExchange:
    line_number: int
    request: str
    response: dict[str, Any]
    expected: Optional[dict[str, Any]] = None

    @property
    def matches(self) -> bool:
        """True when there is nothing to compare against or the responses agree."""
        return self.expected is None or self.expected == self.response


@dataclass
class ReplayReport:
    exchanges: list[ReplayExchange] = field(default_factory=list)
    committed: bool = False
    skipped: int = 0  # entries left unread after commit

    @property
    def mismatches(self) -> list[ReplayExchange]:
        return [e for e in self.exchanges if not e.matches]

    @property
    def ok(self) -> bool:
        return not self.mismatches


def replay(
    entries: Iterator[TranscriptEntry] | list[TranscriptEntry],
    session: ProofSession,
    dispatcher: Dispatcher,
) -> ReplayReport:
    """Feed recorded requests through ``dispatcher`` until commit or the end."""
    report = ReplayReport()
    for entry in entries:
        if not session.running:
            report.skipped += 1
            continue
        response = dispatcher.handle_line(entry.request).to_wire()
        exchange = ReplayExchange(
            entry.line_number, entry.request, response, entry.expected
        )
        if not exchange.matches:
            logger.warning(
                "Line %d: response differs from transcript", entry.line_number
            )
        report.exchanges.append(exchange)

    report.committed = not session.running
    return report
