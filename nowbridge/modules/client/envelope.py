"""
Script execution response envelopes.

The script endpoint has answered in several shapes over time:

    {"result": {"success": true, "value": 5, "logs": ["a"]}}
    {"result": {"success": false, "error": {"message": "...", "line": 3, "type": "TypeError"}}}
    {"result": {"success": false, "errorMessage": "...", "errorLine": 3, "errorType": "..."}}
    {"result": [ ... ]}  /  {"result": 42}  /  42

parse_envelope() tags the raw JSON with one variant and normalize_envelope()
maps every variant onto ScriptExecutionResult.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from .models import ScriptError, ScriptExecutionResult

DEFAULT_SCRIPT_ERROR_MESSAGE = "Script execution failed"
DEFAULT_SCRIPT_ERROR_TYPE = "Error"


@dataclass(frozen=True)
class ScalarResult:
    """A bare value: number, string, boolean, null or an object without an envelope."""
    value: Any


@dataclass(frozen=True)
class ArrayResult:
    items: List[Any]


@dataclass(frozen=True)
class SuccessObject:
    value: Any
    logs: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ErrorObjectV1:
    """Error nested under "error": {message, line, type}."""
    message: Optional[str]
    line: Optional[int] = None
    type: Optional[str] = None
    logs: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ErrorObjectV2:
    """Error flattened into errorMessage / errorLine / errorType."""
    message: Optional[str]
    line: Optional[int] = None
    type: Optional[str] = None
    logs: List[str] = field(default_factory=list)


ScriptEnvelope = Union[ScalarResult, ArrayResult, SuccessObject, ErrorObjectV1, ErrorObjectV2]


def _logs(payload: dict) -> List[str]:
    logs = payload.get("logs")
    if not logs:
        return []
    if isinstance(logs, list):
        return [str(entry) for entry in logs]
    return [str(logs)]


def _line(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _is_error_payload(payload: dict) -> bool:
    return (
        payload.get("success") is False
        or bool(payload.get("error"))
        or "errorMessage" in payload
    )


def _bare(value: Any) -> ScriptEnvelope:
    if isinstance(value, list):
        return ArrayResult(items=value)
    return ScalarResult(value=value)


def parse_envelope(data: Any) -> ScriptEnvelope:
    """Classify a decoded response body into one envelope variant."""
    if not isinstance(data, dict) or "result" not in data:
        return _bare(data)

    inner = data["result"]
    if not isinstance(inner, dict):
        return _bare(inner)

    if _is_error_payload(inner):
        error = inner.get("error")
        if isinstance(error, dict):
            return ErrorObjectV1(
                message=error.get("message") or inner.get("errorMessage"),
                line=_line(error.get("line", inner.get("errorLine"))),
                type=error.get("type") or inner.get("errorType"),
                logs=_logs(inner),
            )
        if isinstance(error, str) and error:
            return ErrorObjectV1(
                message=error,
                line=_line(inner.get("errorLine")),
                type=inner.get("errorType"),
                logs=_logs(inner),
            )
        return ErrorObjectV2(
            message=inner.get("errorMessage"),
            line=_line(inner.get("errorLine")),
            type=inner.get("errorType"),
            logs=_logs(inner),
        )

    value = inner["value"] if "value" in inner else inner
    return SuccessObject(value=value, logs=_logs(inner))


def normalize_envelope(envelope: ScriptEnvelope, execution_time_ms: int) -> ScriptExecutionResult:
    """Map any envelope variant to the canonical ScriptExecutionResult."""
    if isinstance(envelope, (ErrorObjectV1, ErrorObjectV2)):
        return ScriptExecutionResult(
            success=False,
            execution_time_ms=execution_time_ms,
            logs=list(envelope.logs),
            error=ScriptError(
                message=envelope.message or DEFAULT_SCRIPT_ERROR_MESSAGE,
                line=envelope.line,
                type=envelope.type or DEFAULT_SCRIPT_ERROR_TYPE,
            ),
        )

    if isinstance(envelope, SuccessObject):
        return ScriptExecutionResult(
            success=True,
            execution_time_ms=execution_time_ms,
            result=envelope.value,
            logs=list(envelope.logs),
        )

    if isinstance(envelope, ArrayResult):
        return ScriptExecutionResult(
            success=True, execution_time_ms=execution_time_ms, result=envelope.items
        )

    return ScriptExecutionResult(
        success=True, execution_time_ms=execution_time_ms, result=envelope.value
    )
