#!/usr/bin/env python3
"""
GlideQuery syntax checker.

Catches common GlideQuery mistakes locally, without a round trip to the
instance: legacy GlideRecord methods, chained terminal operations, unknown
operators and field flags.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger("nowbridge.executor.syntax")

VALID_METHODS = (
    "where", "orWhere", "whereNull", "whereNotNull", "orWhereNull", "orWhereNotNull",
    "select", "selectOne", "get", "getBy",
    "insert", "update", "updateMultiple", "insertOrUpdate", "deleteMultiple",
    "orderBy", "orderByDesc", "limit",
    "disableWorkflow", "disableAutoSysFields", "forceUpdate", "withAcls", "withSecurityDataFilters",
    "count", "avg", "sum", "min", "max", "aggregate", "groupBy", "having",
    "toGlideRecord", "parse",
    "forEach", "map", "filter", "reduce", "toArray", "skip",
    "orElse", "isPresent", "flatMap",
)

VALID_OPERATORS = (
    "=", "!=", ">", ">=", "<", "<=",
    "IN", "NOT IN", "STARTSWITH", "ENDSWITH", "CONTAINS", "DOES NOT CONTAIN",
    "INSTANCEOF", "SAMEAS", "NSAMEAS", "GT_FIELD", "LT_FIELD",
    "GT_OR_EQUALS_FIELD", "LT_OR_EQUALS_FIELD", "BETWEEN",
    "DYNAMIC", "EMPTYSTRING", "ANYTHING", "LIKE", "NOT LIKE", "ON",
)

VALID_FIELD_FLAGS = ("$DISPLAY", "$CURRENCY_CODE", "$CURRENCY_DISPLAY", "$CURRENCY_STRING")

TERMINAL_OPERATIONS = (
    "select", "selectOne", "get", "getBy",
    "insert", "update", "updateMultiple", "insertOrUpdate", "deleteMultiple",
    "count", "avg", "sum", "min", "max",
)

# (method, suggestion)
UNDEFINED_METHODS = (
    ("selectAll", "Use .select() instead"),
    ("findOne", "Use .selectOne() or .get() instead"),
    ("find", "Use .select() instead"),
    ("query", "Use .select() instead (GlideQuery does not have .query())"),
    ("addQuery", "Use .where() instead (GlideQuery method)"),
    ("addEncodedQuery", "Use GlideQuery.parse() instead"),
    ("next", "Use .forEach() or .toArray() on Stream results instead"),
    ("getValue", "Use direct field access (e.g., record.field) instead"),
    ("setValue", "Use .update() or .insert() with object syntax instead"),
)

_QUOTE = "['\"`]"
_WHERE_PATTERN = re.compile(
    rf"\.(?:where|orWhere)\s*\(\s*{_QUOTE}([^'\"`]+){_QUOTE}\s*,\s*{_QUOTE}([^'\"`]+){_QUOTE}\s*,"
)
_HAVING_PATTERN = re.compile(
    rf"\.having\s*\(\s*{_QUOTE}([^'\"`]+){_QUOTE}\s*,\s*{_QUOTE}([^'\"`]+){_QUOTE}\s*,"
    rf"\s*{_QUOTE}([^'\"`]+){_QUOTE}\s*,"
)
_FIELD_FLAG_PATTERN = re.compile(rf"{_QUOTE}([a-zA-Z_][a-zA-Z0-9_]*\$[A-Z_]+){_QUOTE}")


@dataclass
class SyntaxIssue:
    message: str
    line: Optional[int] = None


@dataclass
class SyntaxCheckResult:
    valid: bool
    errors: List[SyntaxIssue] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def line_number(script: str, position: int) -> int:
    """1-based line number of a character offset."""
    return script.count("\n", 0, position) + 1


class GlideQuerySyntaxChecker:
    """Static checks for GlideQuery scripts."""

    def __init__(self, max_script_length: int = 10000):
        self.max_script_length = max_script_length
        self._undefined = [
            (method, suggestion, re.compile(rf"\.{method}\s*\("))
            for method, suggestion in UNDEFINED_METHODS
        ]
        self._chains = [
            (first, second, re.compile(rf"\.{first}\s*\([^)]*\)[^;]*\.{second}\s*\("))
            for first in TERMINAL_OPERATIONS
            for second in TERMINAL_OPERATIONS
        ]
        self._bare_methods = [
            (method, re.compile(rf"\.{method}(?!\s*\()")) for method in VALID_METHODS
        ]

    def check(self, script: str) -> SyntaxCheckResult:
        """
        Check a script without executing it.

        Args:
            script: GlideQuery script

        Returns:
            SyntaxCheckResult with errors (invalidating) and warnings
        """
        if not script or not script.strip():
            return SyntaxCheckResult(valid=False, errors=[SyntaxIssue("Script cannot be empty")])

        errors: List[SyntaxIssue] = []
        warnings: List[str] = []

        if len(script) > self.max_script_length:
            errors.append(SyntaxIssue(
                f"Script exceeds maximum length of {self.max_script_length} characters"
            ))

        for method, suggestion, pattern in self._undefined:
            for match in pattern.finditer(script):
                errors.append(SyntaxIssue(
                    f"Undefined method '.{method}()' - {suggestion}",
                    line_number(script, match.start()),
                ))

        for first, second, pattern in self._chains:
            for match in pattern.finditer(script):
                errors.append(SyntaxIssue(
                    f"Cannot chain terminal operations: .{first}() followed by .{second}()",
                    line_number(script, match.start()),
                ))

        for method, pattern in self._bare_methods:
            for match in pattern.finditer(script):
                end = match.end()
                if end < len(script) and (script[end].isalnum() or script[end] == "_"):
                    continue
                warnings.append(
                    f"Method '.{method}' may be missing parentheses at line "
                    f"{line_number(script, match.start())}"
                )

        for match in _WHERE_PATTERN.finditer(script):
            operator = match.group(2)
            if operator not in VALID_OPERATORS:
                errors.append(SyntaxIssue(
                    f"Invalid operator '{operator}' - must be one of: {', '.join(VALID_OPERATORS)}",
                    line_number(script, match.start()),
                ))

        for match in _HAVING_PATTERN.finditer(script):
            operator = match.group(3)
            if operator not in VALID_OPERATORS:
                errors.append(SyntaxIssue(
                    f"Invalid operator '{operator}' in having clause - must be one of: "
                    f"{', '.join(VALID_OPERATORS)}",
                    line_number(script, match.start()),
                ))

        for match in _FIELD_FLAG_PATTERN.finditer(script):
            flag = "$" + match.group(1).split("$", 1)[1]
            if flag not in VALID_FIELD_FLAGS:
                warnings.append(
                    f"Unknown field flag '{flag}' at line {line_number(script, match.start())} "
                    f"- valid flags: {', '.join(VALID_FIELD_FLAGS)}"
                )

        if re.search(r"GlideRecord\s*\(", script, re.IGNORECASE):
            warnings.append(
                "GlideRecord detected - consider using GlideQuery for better performance "
                "and type safety"
            )

        if (
            re.search(r"\.get\s*\(\s*\)", script)
            and not re.search(r"\.isPresent\s*\(\s*\)", script)
            and not re.search(r"\.orElse\s*\(", script)
        ):
            warnings.append(
                "Calling .get() on Optional without checking .isPresent() or using .orElse() "
                "may throw an error if empty"
            )

        if errors:
            logger.info(f"Syntax check found {len(errors)} errors, {len(warnings)} warnings")

        return SyntaxCheckResult(valid=not errors, errors=errors, warnings=warnings)
