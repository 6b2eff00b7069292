"""
Security Module - Black Box Interface

Purpose: Static screening of script text before execution
Interface: validate(), validate_script_include(), update_config(), load_security_config()
Hidden: Rule tables, regex matching

Pure functions over (script, config): no network, no session state.
"""

from .rules import (
    DEFAULT_BLACKLIST,
    DEFAULT_REQUIRE_CONFIRMATION,
    SCRIPT_INCLUDE_BLACKLIST,
    SCRIPT_INCLUDE_DISCOURAGED,
    SecurityRule,
    Severity,
)
from .validator import (
    ScriptSecurityValidator,
    ScriptValidationResult,
    SecurityConfig,
    SecurityValidationResult,
    ValidationMessage,
    load_security_config,
    security_config_from_dict,
)

__all__ = [
    "DEFAULT_BLACKLIST",
    "DEFAULT_REQUIRE_CONFIRMATION",
    "SCRIPT_INCLUDE_BLACKLIST",
    "SCRIPT_INCLUDE_DISCOURAGED",
    "ScriptSecurityValidator",
    "ScriptValidationResult",
    "SecurityConfig",
    "SecurityRule",
    "SecurityValidationResult",
    "Severity",
    "ValidationMessage",
    "load_security_config",
    "security_config_from_dict",
]
