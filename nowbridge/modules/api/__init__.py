"""
API Module - Black Box Interface

Purpose: HTTP request and response bodies
Interface: Pydantic models used by nowbridge.main
Hidden: Field bounds and request validation

The API layer only orchestrates - all logic lives in the core modules.
"""

from .models import (
    ExecuteScriptRequest,
    ExecutionResponse,
    HealthResponse,
    LoginResponse,
    ValidateScriptRequest,
)

__all__ = [
    "ExecuteScriptRequest",
    "ExecutionResponse",
    "HealthResponse",
    "LoginResponse",
    "ValidateScriptRequest",
]
