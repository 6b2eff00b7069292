"""
Client data models.

Plain value objects passed between the client, the executor and callers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ...config.provider import DEFAULT_SCRIPT_ENDPOINT

DEFAULT_REQUEST_TIMEOUT_MS = 30000
DEFAULT_SCRIPT_TIMEOUT_MS = 30000
MIN_SCRIPT_TIMEOUT_MS = 1000
MAX_SCRIPT_TIMEOUT_MS = 60000


def resolve_script_timeout(
    requested_ms: Optional[int], default_ms: int = DEFAULT_SCRIPT_TIMEOUT_MS
) -> int:
    """
    Resolve the deadline for a script execution call.

    Returns:
        min(max(requested or default, 1000), 60000)
    """
    timeout = default_ms if requested_ms is None else requested_ms
    return min(max(timeout, MIN_SCRIPT_TIMEOUT_MS), MAX_SCRIPT_TIMEOUT_MS)


@dataclass(frozen=True)
class ClientConfig:
    """
    Transport configuration.

    max_retries is carried for callers that wrap the client with their own
    retry policy; the client itself issues every request exactly once.
    """
    instance_url: str
    timeout_ms: Optional[int] = None
    max_retries: Optional[int] = None
    script_endpoint: str = DEFAULT_SCRIPT_ENDPOINT
    default_script_timeout_ms: int = DEFAULT_SCRIPT_TIMEOUT_MS
    verify_ssl: bool = True

    def __post_init__(self):
        if not self.instance_url:
            raise ValueError("ClientConfig.instance_url is required")
        if self.timeout_ms is not None and self.timeout_ms <= 0:
            raise ValueError(f"ClientConfig.timeout_ms must be positive, got {self.timeout_ms}")
        if self.max_retries is not None and self.max_retries < 0:
            raise ValueError(f"ClientConfig.max_retries cannot be negative, got {self.max_retries}")

    @property
    def request_timeout_ms(self) -> int:
        return self.timeout_ms or DEFAULT_REQUEST_TIMEOUT_MS


@dataclass
class QueryParams:
    """Table API query parameters."""
    sysparm_query: Optional[str] = None
    sysparm_limit: Optional[int] = None
    sysparm_offset: Optional[int] = None
    sysparm_fields: Optional[str] = None
    sysparm_display_value: Optional[bool] = None

    def to_params(self) -> Dict[str, str]:
        """Render the non-empty parameters as query string values."""
        params: Dict[str, str] = {}
        if self.sysparm_query:
            params["sysparm_query"] = self.sysparm_query
        if self.sysparm_limit is not None:
            params["sysparm_limit"] = str(self.sysparm_limit)
        if self.sysparm_offset is not None:
            params["sysparm_offset"] = str(self.sysparm_offset)
        if self.sysparm_fields:
            params["sysparm_fields"] = self.sysparm_fields
        if self.sysparm_display_value is not None:
            params["sysparm_display_value"] = str(self.sysparm_display_value).lower()
        return params


@dataclass(frozen=True)
class ScriptExecutionRequest:
    """A script to run on the instance with an optional timeout in ms."""
    script: str
    timeout_ms: Optional[int] = None


@dataclass(frozen=True)
class ScriptError:
    """Structured error reported by the instance for a failed script."""
    message: str
    line: Optional[int] = None
    type: Optional[str] = None


@dataclass(frozen=True)
class ScriptExecutionResult:
    """Normalized outcome of one script execution call."""
    success: bool
    execution_time_ms: int
    result: Any = None
    logs: List[str] = field(default_factory=list)
    error: Optional[ScriptError] = None
