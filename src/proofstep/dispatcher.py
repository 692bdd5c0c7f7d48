"""Protocol dispatcher: one input line in, one response line out.

Three outcomes per line:

1. The line is not JSON -> error response without an id.
2. The JSON is not a request -> error response without an id.
3. A request -> registry lookup, params validation, handler call. Any
   ProtocolError raised along the way becomes an error response carrying the
   request's id; a return value becomes a result response.

Exceptions outside the ProtocolError family (EngineFault above all) are not
caught here. They end the session loop.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Optional, TextIO

from pydantic import ValidationError
from pydantic_core import to_jsonable_python

from proofstep.exceptions import (
    InvalidParamsError,
    InvalidRequestError,
    MethodNotFoundError,
    ProtocolError,
    TransportParseError,
)
from proofstep.models.wire import Request, Response
from proofstep.registry import OperationRegistry, build_registry

if TYPE_CHECKING:
    from proofstep.protocols import SessionOperations
    from proofstep.transcript import TranscriptWriter

logger = logging.getLogger(__name__)


def _validation_details(exc: ValidationError) -> list[dict[str, Any]]:
    """Reduce a pydantic ValidationError to JSON-safe error records."""
    return to_jsonable_python(
        exc.errors(include_url=False, include_context=False, include_input=False)
    )


class Dispatcher:
    """Decodes requests, routes them through the registry, encodes responses."""

    def __init__(
        self,
        registry: OperationRegistry,
        *,
        transcript: Optional[TranscriptWriter] = None,
    ) -> None:
        self.registry = registry
        self.transcript = transcript

    @classmethod
    def for_session(
        cls,
        ops: SessionOperations,
        *,
        transcript: Optional[TranscriptWriter] = None,
    ) -> Dispatcher:
        return cls(build_registry(ops), transcript=transcript)

    def handle_line(self, line: str) -> Response:
        """Turn one raw input line into exactly one Response."""
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as exc:
            logger.debug("Unparseable line: %s", exc)
            return Response.failure(
                TransportParseError(f"Parse error: {exc.msg} at column {exc.colno}")
            )
        except RecursionError:
            logger.debug("Line nested too deeply to decode (%d chars)", len(line))
            return Response.failure(TransportParseError("Parse error: nested too deeply"))

        try:
            request = Request.model_validate(payload)
        except ValidationError as exc:
            return Response.failure(
                InvalidRequestError("Invalid request", data=_validation_details(exc))
            )

        return self.dispatch(request)

    def dispatch(self, request: Request) -> Response:
        """Run a decoded request through the registry."""
        logger.debug("-> %s %s", request.method, request.params)
        try:
            result = self._invoke(request)
        except ProtocolError as exc:
            logger.debug("<- %s failed [%d]: %s", request.method, exc.code, exc.message)
            return Response.failure(exc, request)
        return Response.success(request, to_jsonable_python(result))

    def _invoke(self, request: Request) -> Any:
        entry = self.registry.get(request.method)
        if entry is None:
            raise MethodNotFoundError(request.method)
        try:
            params = entry.params_model.model_validate(request.params)
        except ValidationError as exc:
            raise InvalidParamsError(
                f"Invalid params for {request.method}",
                data=_validation_details(exc),
            ) from None
        return entry.handler(params)

    def serve_once(self, reader: TextIO, writer: TextIO) -> bool:
        """Read one line, write one response line and flush.

        Returns False at end of input, without writing anything.
        """
        line = reader.readline()
        if not line:
            return False
        line = line.rstrip("\r\n")
        response = self.handle_line(line)
        writer.write(response.encode() + "\n")
        writer.flush()
        if self.transcript is not None:
            self.transcript.record(line, response)
        return True
