"""
Nowbridge API data models.

Request and response bodies for the HTTP surface. Core modules use plain
dataclasses; these pydantic models only exist at the HTTP boundary.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

MAX_REQUEST_TIMEOUT_MS = 600000
MAX_RESULTS_LIMIT = 1000


# Request Models (API Input)


class ExecuteScriptRequest(BaseModel):
    """Request to execute a GlideQuery script."""

    script: str = Field(..., description="GlideQuery script to execute")
    timeout_ms: Optional[int] = Field(
        None,
        description="Execution timeout in ms (clamped to 1000-60000)",
        ge=1,
        le=MAX_REQUEST_TIMEOUT_MS,
    )
    test_mode: bool = Field(default=False, description="Cap results and warn about writes")
    max_results: Optional[int] = Field(
        None, description="Record cap in test mode", ge=1, le=MAX_RESULTS_LIMIT
    )

    @field_validator("script")
    @classmethod
    def validate_script(cls, v):
        """Reject blank scripts before they reach the executor."""
        if not v.strip():
            raise ValueError("Script cannot be empty")
        return v


class ValidateScriptRequest(BaseModel):
    """Request to validate a script without executing it."""

    script: str = Field(..., description="Script text to validate")


# Response Models (API Output)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Health status", pattern="^(healthy|unhealthy)$")
    authenticated: bool = Field(..., description="Whether a ServiceNow session is active")
    version: str = Field(default="1.0.0", description="API version")


class LoginResponse(BaseModel):
    """Outcome of an authentication attempt."""

    success: bool
    error: Optional[str] = None


class ExecutionResponse(BaseModel):
    """Shaped script execution result."""

    success: bool
    data: Any = None
    logs: List[str] = Field(default_factory=list)
    error: Optional[str] = Field(None, description="Error message if failed")
    error_code: Optional[str] = Field(None, description="Machine-readable failure code")
    execution_time_ms: int = Field(0, description="Execution time in milliseconds")
    record_count: Optional[int] = None
    truncated: bool = False


__all__ = [
    "ExecuteScriptRequest",
    "ValidateScriptRequest",
    "HealthResponse",
    "LoginResponse",
    "ExecutionResponse",
]
