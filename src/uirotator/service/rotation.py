"""Request-level rotation workflow.

``RotationService.rotate`` authorizes the caller, decodes the payload,
generates the replacement password, rewrites and replays the recording, and
turns every outcome into a response. It never raises.
"""
from __future__ import annotations

import json
import logging
import traceback
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Protocol

from ..automation.engine import EngineFactory
from ..automation.mapping import SelectorMappings
from ..automation.rewriter import rewrite_recording
from ..automation.runner import DEFAULT_STEP_TIMEOUT_MS, execute_recording
from ..core.errors import PayloadError, RecordingExecutionError
from ..core.models import RotationPayload
from ..core.passwords import generate_password

logger = logging.getLogger("uirotator.rotation")

CREDS_HEADER = "AkeylessCreds"


class Validator(Protocol):
    async def validate(self, creds: str) -> bool:
        ...


@dataclass
class RotationResponse:
    status_code: int
    content: Dict[str, Any] = field(default_factory=dict)


def decode_payload(body: Any) -> RotationPayload:
    """Decode the request body ``{"payload": "<json>"}`` into a payload object.

    Raises:
        PayloadError: If any layer of the body is malformed
    """
    if isinstance(body, (bytes, bytearray, str)):
        try:
            body = json.loads(body)
        except ValueError as e:
            raise PayloadError(f"Request body is not valid JSON: {e}") from e
    if not isinstance(body, dict):
        raise PayloadError("Request body must be a JSON object")

    raw = body.get("payload")
    if not isinstance(raw, str):
        raise PayloadError("Request body must contain a string 'payload'")
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise PayloadError(f"Payload is not valid JSON: {e}") from e
    return RotationPayload.from_dict(data)


class RotationService:
    def __init__(
        self,
        validator: Validator,
        engine_factory: EngineFactory,
        password_generator: Callable[[Optional[Dict[str, Any]]], str] = generate_password,
        step_timeout_ms: int = DEFAULT_STEP_TIMEOUT_MS,
        recording_timeout_s: Optional[float] = None,
        expose_stack: bool = False,
    ):
        self.validator = validator
        self.engine_factory = engine_factory
        self.password_generator = password_generator
        self.step_timeout_ms = step_timeout_ms
        self.recording_timeout_s = recording_timeout_s
        self.expose_stack = expose_stack

    async def rotate(self, creds: Optional[str], body: Any) -> RotationResponse:
        logger.info("Rotation request received")
        if not creds:
            logger.error("Missing %s header", CREDS_HEADER)
            return RotationResponse(401, {"error": f"Missing {CREDS_HEADER} header"})

        try:
            logger.debug("Validating %s", CREDS_HEADER)
            if not await self.validator.validate(creds):
                return RotationResponse(401, {"error": f"Invalid {CREDS_HEADER}"})
            logger.info("%s validated successfully", CREDS_HEADER)

            payload = decode_payload(body)
            logger.debug("Parsed payload (username present: %s)", bool(payload.username))

            new_password = self.password_generator(payload.password_options)
            logger.info("New password generated")

            mappings = SelectorMappings.from_lists(
                payload.username_mappings,
                payload.password_mappings,
                payload.new_password_mappings,
            )
            recording = rewrite_recording(
                payload.recording,
                payload.username,
                payload.password,
                new_password,
                mappings,
            )
            logger.info("Recording updated with new credentials")

            results = await execute_recording(
                recording,
                self.engine_factory,
                step_timeout_ms=self.step_timeout_ms,
                recording_timeout_s=self.recording_timeout_s,
            )
            logger.info("Recording execution completed (%d steps)", len(results))

            content = {"payload": json.dumps(payload.rotated(new_password, recording, results))}
            logger.info("Rotation completed successfully")
            return RotationResponse(200, content)
        except Exception as e:
            logger.error("Error during rotation: %s", e, exc_info=logger.isEnabledFor(logging.DEBUG))
            return RotationResponse(500, {"payload": json.dumps(self._error_payload(e))})

    def _error_payload(self, error: Exception) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "error": "Internal server error",
            "message": str(error),
        }
        if self.expose_stack:
            payload["stack"] = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        if isinstance(error, RecordingExecutionError):
            payload["executionResults"] = [r.to_dict() for r in error.results]
        return payload
