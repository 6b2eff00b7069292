#!/usr/bin/env python3
"""
Script Executor.

Caller-facing pipeline: length check, security screening, remote execution
through the client, then result shaping. Every failure is folded into an
ExecutionResult; nothing is raised past execute().
"""

import logging
import re
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Pattern, Tuple

from ..client.models import ScriptExecutionRequest, ScriptExecutionResult
from ..errors import ErrorCode, ServiceNowError
from ..security.validator import ScriptSecurityValidator
from .syntax import GlideQuerySyntaxChecker, SyntaxCheckResult

DEFAULT_MAX_RESULTS = 1000
DEFAULT_TEST_MODE_MAX_RESULTS = 100
SECURITY_VIOLATION = "SECURITY_VIOLATION"

# Ordered; the warning names them in this order.
WRITE_OPERATIONS: Tuple[Tuple[str, Pattern[str]], ...] = tuple(
    (name, re.compile(rf"\.{name}\s*\(", re.IGNORECASE))
    for name in ("insert", "update", "updateMultiple", "delete", "deleteMultiple", "insertOrUpdate")
)


@dataclass
class ExecutionOptions:
    """Per-call execution options."""
    timeout_ms: Optional[int] = None
    test_mode: bool = False
    max_results: Optional[int] = None


@dataclass
class ExecutionResult:
    """Shaped result returned to end consumers."""
    success: bool
    execution_time_ms: int = 0
    data: Any = None
    logs: List[str] = field(default_factory=list)
    error: Optional[str] = None
    error_code: Optional[str] = None
    record_count: Optional[int] = None
    truncated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def detect_write_operations(script: str) -> List[str]:
    """Names of write-style GlideQuery calls present in the script."""
    return [name for name, pattern in WRITE_OPERATIONS if pattern.search(script)]


def describe_scalar(value: Any) -> Dict[str, Any]:
    """Wrap a scalar so its type survives JSON transport."""
    if isinstance(value, bool):
        kind = "boolean"
    elif isinstance(value, (int, float)):
        kind = "number"
    else:
        kind = "string"
    return {"value": value, "type": kind}


class ScriptExecutor:
    """Runs screened scripts against the instance and shapes their results."""

    def __init__(
        self,
        client,
        validator: Optional[ScriptSecurityValidator] = None,
        max_script_length: Optional[int] = None,
        max_results: int = DEFAULT_MAX_RESULTS,
        test_mode_max_results: int = DEFAULT_TEST_MODE_MAX_RESULTS,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the executor.

        Args:
            client: ServiceNowClient (anything with an async execute_script)
            validator: Security validator (defaults to the built-in policy)
            max_script_length: Length limit; defaults to the validator policy's
            max_results: Record cap outside test mode
            test_mode_max_results: Default record cap in test mode
            logger: Optional logger; defaults to "nowbridge.executor"
        """
        self.client = client
        self.validator = validator or ScriptSecurityValidator()
        self._max_script_length = max_script_length
        self.max_results = max_results
        self.test_mode_max_results = test_mode_max_results
        self._logger = logger or logging.getLogger("nowbridge.executor")

    @property
    def max_script_length(self) -> int:
        if self._max_script_length is not None:
            return self._max_script_length
        return self.validator.config.max_script_length

    def result_limit(self, options: ExecutionOptions) -> int:
        """Effective record cap; test mode replaces the standard cap."""
        if not options.test_mode:
            return self.max_results
        requested = options.max_results
        if requested is None:
            requested = self.test_mode_max_results
        return max(1, min(DEFAULT_MAX_RESULTS, requested))

    async def execute(
        self, script: str, options: Optional[ExecutionOptions] = None
    ) -> ExecutionResult:
        """
        Screen, run and shape a script.

        Args:
            script: GlideQuery script text
            options: Timeout, test mode and result cap

        Returns:
            ExecutionResult; failures carry error and error_code
        """
        options = options or ExecutionOptions()
        start_time = time.monotonic()

        if not script or not script.strip():
            return ExecutionResult(
                success=False,
                error="Script cannot be empty",
                error_code=ErrorCode.VALIDATION_ERROR.value,
            )

        max_length = self.max_script_length
        if len(script) > max_length:
            self._logger.warning(f"Rejected script of {len(script)} chars (limit {max_length})")
            return ExecutionResult(
                success=False,
                error=f"Script exceeds maximum length of {max_length} characters",
                error_code=ErrorCode.VALIDATION_ERROR.value,
                execution_time_ms=_elapsed_ms(start_time),
            )

        security = self.validator.validate(script)
        if not security.safe:
            self._logger.warning(f"Rejected script: {', '.join(security.violations)}")
            return ExecutionResult(
                success=False,
                error=f"Security violation: {', '.join(security.violations)}",
                error_code=SECURITY_VIOLATION,
                execution_time_ms=_elapsed_ms(start_time),
            )
        if security.dangerous_operations:
            self._logger.info(
                f"Script uses operations that need confirmation: "
                f"{', '.join(security.dangerous_operations)}"
            )

        mode = "test" if options.test_mode else "normal"
        self._logger.info(f"Executing script ({len(script)} chars, {mode} mode)")

        try:
            raw = await self.client.execute_script(
                ScriptExecutionRequest(script=script, timeout_ms=options.timeout_ms)
            )
        except ServiceNowError as e:
            self._logger.error(f"Script execution failed: [{e.code.value}] {e.message}")
            return ExecutionResult(
                success=False,
                error=e.message,
                error_code=e.code.value,
                execution_time_ms=_elapsed_ms(start_time),
            )
        except Exception as e:
            self._logger.exception(f"Unexpected error executing script: {e}")
            return ExecutionResult(
                success=False,
                error=str(e) or "Unknown error occurred",
                error_code=ErrorCode.UNKNOWN_ERROR.value,
                execution_time_ms=_elapsed_ms(start_time),
            )

        result = self._shape(raw, script, options)
        result.execution_time_ms = _elapsed_ms(start_time)
        self._logger.info(
            f"Script execution finished (success={result.success}, "
            f"{result.execution_time_ms}ms)"
        )
        return result

    async def test(
        self, script: str, max_results: Optional[int] = None, timeout_ms: Optional[int] = None
    ) -> ExecutionResult:
        """Run a script in test mode."""
        return await self.execute(
            script,
            ExecutionOptions(timeout_ms=timeout_ms, test_mode=True, max_results=max_results),
        )

    def validate_syntax(self, script: str) -> SyntaxCheckResult:
        """Check GlideQuery syntax locally; never contacts the instance."""
        return GlideQuerySyntaxChecker(self.max_script_length).check(script)

    def _shape(
        self, raw: ScriptExecutionResult, script: str, options: ExecutionOptions
    ) -> ExecutionResult:
        logs = list(raw.logs)

        if options.test_mode:
            writes = detect_write_operations(script)
            if writes:
                logs.insert(
                    0,
                    f"WARNING: This script contains write operations ({', '.join(writes)}) "
                    "that will persist changes to the database.",
                )

        if not raw.success:
            error = raw.error
            return ExecutionResult(
                success=False,
                logs=logs,
                error=error.message if error else "Script execution failed",
                error_code=(error.type if error else None) or ErrorCode.UNKNOWN_ERROR.value,
            )

        data = raw.result
        if isinstance(data, dict) and "value" in data:
            data = data["value"]

        if data is None:
            logs.append("No records found - query returned empty result")
            return ExecutionResult(success=True, data=None, logs=logs, record_count=0)

        if isinstance(data, list):
            limit = self.result_limit(options)
            truncated = len(data) > limit
            if truncated:
                logs.append(f"Results truncated: showing {limit} of {len(data)} records")
                data = data[:limit]
            return ExecutionResult(
                success=True,
                data=data,
                logs=logs,
                record_count=len(data),
                truncated=truncated,
            )

        if isinstance(data, dict):
            row_count = data.get("rowCount")
            return ExecutionResult(
                success=True,
                data=data,
                logs=logs,
                record_count=row_count if isinstance(row_count, int) else None,
            )

        return ExecutionResult(success=True, data=describe_scalar(data), logs=logs)


def _elapsed_ms(start_time: float) -> int:
    return int((time.monotonic() - start_time) * 1000)
