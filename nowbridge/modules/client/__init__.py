"""
Client Module - Black Box Interface

Purpose: All HTTP communication with the ServiceNow instance
Interface: get(), get_by_id(), post(), put(), delete(), execute_script()
Hidden: httpx usage, URL layout, status mapping, envelope parsing

Failures are raised as ServiceNowError carrying an ErrorCode.
"""

from ..errors import ErrorCode, ServiceNowError
from .client import ServiceNowClient
from .envelope import (
    ArrayResult,
    ErrorObjectV1,
    ErrorObjectV2,
    ScalarResult,
    ScriptEnvelope,
    SuccessObject,
    normalize_envelope,
    parse_envelope,
)
from .models import (
    ClientConfig,
    QueryParams,
    ScriptError,
    ScriptExecutionRequest,
    ScriptExecutionResult,
    resolve_script_timeout,
)

__all__ = [
    "ArrayResult",
    "ClientConfig",
    "ErrorCode",
    "ErrorObjectV1",
    "ErrorObjectV2",
    "QueryParams",
    "ScalarResult",
    "ScriptEnvelope",
    "ScriptError",
    "ScriptExecutionRequest",
    "ScriptExecutionResult",
    "ServiceNowClient",
    "ServiceNowError",
    "SuccessObject",
    "normalize_envelope",
    "parse_envelope",
    "resolve_script_timeout",
]
