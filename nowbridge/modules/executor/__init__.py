"""
Executor Module - Black Box Interface

Purpose: Caller-facing script execution pipeline
Interface: execute(), test(), validate_syntax()
Hidden: Length and security gates, result capping, scalar wrapping, syntax rules

execute() always returns an ExecutionResult; it never raises.
"""

from .executor import (
    DEFAULT_MAX_RESULTS,
    ExecutionOptions,
    ExecutionResult,
    ScriptExecutor,
    describe_scalar,
    detect_write_operations,
)
from .syntax import GlideQuerySyntaxChecker, SyntaxCheckResult, SyntaxIssue

__all__ = [
    "DEFAULT_MAX_RESULTS",
    "ExecutionOptions",
    "ExecutionResult",
    "GlideQuerySyntaxChecker",
    "ScriptExecutor",
    "SyntaxCheckResult",
    "SyntaxIssue",
    "describe_scalar",
    "detect_write_operations",
]
