#!/usr/bin/env python3
"""
Security rule tables for script screening.

Rules are data: (pattern, message, detail, severity) records evaluated in
order. The defaults below can be replaced wholesale through SecurityConfig.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Pattern, Tuple


class Severity(Enum):
    """How bad a rule match is."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class SecurityRule:
    """One screening rule."""

    pattern: Pattern[str]
    message: str
    detail: str = ""
    severity: Severity = Severity.HIGH

    @classmethod
    def compile(
        cls,
        pattern: str,
        message: Optional[str] = None,
        detail: str = "",
        severity: Severity = Severity.HIGH,
    ) -> "SecurityRule":
        """
        Build a rule from a regex source; matching is case-insensitive.

        Raises:
            ValueError: If the pattern is not a valid regular expression
        """
        try:
            compiled = re.compile(pattern, re.IGNORECASE)
        except re.error as e:
            raise ValueError(f"Invalid security pattern '{pattern}': {e}") from e
        return cls(pattern=compiled, message=message or pattern, detail=detail, severity=severity)

    @property
    def source(self) -> str:
        return self.pattern.pattern

    def matches(self, script: str) -> bool:
        return self.pattern.search(script) is not None


_rule = SecurityRule.compile

# Screening for ad-hoc scripts; any match makes the script unsafe.
DEFAULT_BLACKLIST: Tuple[SecurityRule, ...] = (
    # Dynamic evaluation
    _rule(r"gs\.executeNow\s*\(", "gs.executeNow()", "Immediate script execution", Severity.CRITICAL),
    _rule(r"gs\.eval\s*\(", "gs.eval()", "Dynamic evaluation", Severity.CRITICAL),
    _rule(r"eval\s*\(", "eval()", "Dynamic evaluation", Severity.CRITICAL),
    # Arbitrary code construction
    _rule(r"Function\s*\(", "Function constructor", "Dynamic function creation", Severity.CRITICAL),
    # Module and Java class loading
    _rule(r"require\s*\(", "require()", "Module loading", Severity.HIGH),
    _rule(r"import\s+", "import statement", "Module loading", Severity.HIGH),
    _rule(r"new\s+Packages\.", "Packages", "Java class access", Severity.CRITICAL),
    _rule(r"java\.io\.", "java.io", "Java file access", Severity.CRITICAL),
    _rule(r"java\.net\.", "java.net", "Java network access", Severity.CRITICAL),
    _rule(r"java\.lang\.Runtime", "java.lang.Runtime", "Process execution", Severity.CRITICAL),
    # File system primitives
    _rule(r"\.readLine\(", "readLine()", "File system access", Severity.HIGH),
    _rule(r"\.write\(", "write()", "File system write", Severity.HIGH),
    _rule(r"\.getFile\(", "getFile()", "File system access", Severity.HIGH),
    _rule(r"\.setFile\(", "setFile()", "File system write", Severity.HIGH),
    _rule(r"GlideSysAttachment", "GlideSysAttachment", "Attachment content access", Severity.MEDIUM),
    _rule(r"GlideScriptedProcessor", "GlideScriptedProcessor", "Scripted processor access", Severity.MEDIUM),
    # Network primitives
    _rule(r"GlideHTTPRequest", "GlideHTTPRequest", "Unrestricted network request", Severity.HIGH),
    _rule(r"RESTMessageV2", "RESTMessageV2", "Outbound REST call", Severity.HIGH),
    _rule(r"SOAPMessageV2", "SOAPMessageV2", "Outbound SOAP call", Severity.HIGH),
    _rule(r"SOAPMessage", "SOAPMessage", "Outbound SOAP call", Severity.HIGH),
    _rule(r"XMLDocument", "XMLDocument", "XML parsing (XXE)", Severity.MEDIUM),
    _rule(r"XMLHttpRequest", "XMLHttpRequest", "Browser network request", Severity.HIGH),
    _rule(r"fetch\s*\(", "fetch()", "Network request", Severity.HIGH),
    # Legacy record iteration; GlideQuery is the supported query API
    _rule(r"GlideRecord\s*\(", "GlideRecord", "Use GlideQuery instead", Severity.LOW),
    _rule(r"GlideAggregate\s*\(", "GlideAggregate", "Use GlideQuery aggregates instead", Severity.LOW),
)

# Operations that need explicit confirmation; reported, never rejected.
DEFAULT_REQUIRE_CONFIRMATION: Tuple[str, ...] = (
    "deleteMultiple",
    "updateMultiple",
    "disableWorkflow",
    "disableAutoSysFields",
    "forceUpdate",
)

# Script Include screening; any match is a SECURITY_VIOLATION error.
SCRIPT_INCLUDE_BLACKLIST: Tuple[SecurityRule, ...] = (
    _rule(r"eval\s*\(", "eval()",
          "Arbitrary code execution is not allowed for security reasons", Severity.CRITICAL),
    _rule(r"new\s+Function\s*\(", "Function constructor",
          "Dynamic function creation is not allowed for security reasons", Severity.CRITICAL),
    _rule(r"require\s*\(", "require()",
          "Module loading is not allowed for security reasons"),
    _rule(r"import\s+", "import statement",
          "ES6 imports are not allowed for security reasons"),
    _rule(r"GlideHTTPRequest", "GlideHTTPRequest",
          "Unrestricted network requests are not allowed for security reasons"),
    _rule(r"RESTMessageV2", "RESTMessageV2",
          "REST API calls without proper configuration are not allowed"),
    _rule(r"SOAPMessageV2", "SOAPMessageV2",
          "SOAP calls without proper configuration are not allowed"),
    _rule(r"XMLDocument", "XMLDocument",
          "XML parsing with potential XXE vulnerabilities is not allowed", Severity.MEDIUM),
    _rule(r"gs\.executeNow\s*\(", "gs.executeNow()",
          "Immediate script execution is not allowed for security reasons", Severity.CRITICAL),
    _rule(r"\.readFile\(", "readFile()",
          "File system access is not allowed for security reasons"),
    _rule(r"\.writeFile\(", "writeFile()",
          "File system write is not allowed for security reasons"),
    _rule(r"\.getFile\(", "getFile()",
          "File system access is not allowed for security reasons"),
    _rule(r"\.setFile\(", "setFile()",
          "File system write is not allowed for security reasons"),
    _rule(r"\bfs\.", "fs module",
          "File system module access is not allowed for security reasons"),
)

# Script Include patterns that only produce warnings.
SCRIPT_INCLUDE_DISCOURAGED: Tuple[SecurityRule, ...] = (
    _rule(r"new\s+GlideRecord\s*\(", "GlideRecord usage detected",
          "Consider using GlideQuery for better performance and modern API", Severity.LOW),
    _rule(r"gs\.print\s*\(", "gs.print() usage detected",
          "Consider using gs.info() or gs.log() for proper logging", Severity.LOW),
)
