#!/usr/bin/env python3
"""
Script Security Validator.

Static, best-effort screening of script text before it is sent to the
instance. This is a pattern filter, not a sandbox: obfuscated scripts can
get past it.
"""

import dataclasses
import logging
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Pattern, Tuple, Union

import yaml

from .rules import (
    DEFAULT_BLACKLIST,
    DEFAULT_REQUIRE_CONFIRMATION,
    SCRIPT_INCLUDE_BLACKLIST,
    SCRIPT_INCLUDE_DISCOURAGED,
    SecurityRule,
    Severity,
)

DEFAULT_MAX_SCRIPT_LENGTH = 10000


@dataclass(frozen=True)
class SecurityConfig:
    """Complete screening policy. Replace it wholesale, never field by field."""

    blacklisted_patterns: Tuple[SecurityRule, ...] = DEFAULT_BLACKLIST
    require_confirmation: Tuple[str, ...] = DEFAULT_REQUIRE_CONFIRMATION
    max_script_length: int = DEFAULT_MAX_SCRIPT_LENGTH
    include_blacklist: Tuple[SecurityRule, ...] = SCRIPT_INCLUDE_BLACKLIST
    include_discouraged: Tuple[SecurityRule, ...] = SCRIPT_INCLUDE_DISCOURAGED

    def __post_init__(self):
        if isinstance(self.max_script_length, bool) or not isinstance(self.max_script_length, int):
            raise ValueError(f"maxScriptLength must be an integer, got {self.max_script_length!r}")
        if self.max_script_length <= 0:
            raise ValueError(f"maxScriptLength must be positive, got {self.max_script_length}")

    def replace(self, **changes: Any) -> "SecurityConfig":
        """Return a new config with the given fields changed."""
        return dataclasses.replace(self, **changes)


@dataclass
class SecurityValidationResult:
    """Outcome of validate(); dangerous operations never affect `safe`."""

    safe: bool
    violations: List[str] = field(default_factory=list)
    dangerous_operations: List[str] = field(default_factory=list)


@dataclass
class ValidationMessage:
    """One finding from validate_script_include()."""

    type: str  # SECURITY_VIOLATION, VALIDATION_ERROR, DISCOURAGED_PATTERN
    message: str
    detail: str = ""


@dataclass
class ScriptValidationResult:
    """Outcome of validate_script_include(); warnings never affect `valid`."""

    valid: bool
    errors: List[ValidationMessage] = field(default_factory=list)
    warnings: List[ValidationMessage] = field(default_factory=list)


def _confirmation_patterns(names: Tuple[str, ...]) -> Tuple[Tuple[str, Pattern[str]], ...]:
    return tuple(
        (name, re.compile(rf"\.{re.escape(name)}\s*\(", re.IGNORECASE)) for name in names
    )


class ScriptSecurityValidator:
    """Screens script text against a SecurityConfig."""

    def __init__(
        self,
        config: Optional[SecurityConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the validator.

        Args:
            config: Screening policy (defaults to SecurityConfig())
            logger: Optional logger; defaults to "nowbridge.security"
        """
        self._logger = logger or logging.getLogger("nowbridge.security")
        self._lock = threading.RLock()
        self._config = config or SecurityConfig()
        self._confirmation = _confirmation_patterns(self._config.require_confirmation)

    @property
    def config(self) -> SecurityConfig:
        with self._lock:
            return self._config

    def update_config(self, config: SecurityConfig) -> None:
        """Swap in a new policy; in-flight validations finish on the old one."""
        confirmation = _confirmation_patterns(config.require_confirmation)
        with self._lock:
            self._config = config
            self._confirmation = confirmation
        self._logger.info(
            f"Security policy replaced ({len(config.blacklisted_patterns)} blacklist rules, "
            f"max length {config.max_script_length})"
        )

    def _snapshot(self) -> Tuple[SecurityConfig, Tuple[Tuple[str, Pattern[str]], ...]]:
        with self._lock:
            return self._config, self._confirmation

    def validate(self, script: str) -> SecurityValidationResult:
        """
        Validate an ad-hoc script.

        Length and blacklist checks both run; a length violation does not
        stop the pattern scan.

        Args:
            script: Script text

        Returns:
            SecurityValidationResult
        """
        config, confirmation = self._snapshot()
        violations: List[str] = []

        if len(script) > config.max_script_length:
            violations.append(
                f"Script exceeds maximum length of {config.max_script_length} characters "
                f"(actual: {len(script)})"
            )

        for rule in config.blacklisted_patterns:
            if rule.matches(script):
                violations.append(f"Blacklisted pattern detected: {rule.source}")

        dangerous = [name for name, pattern in confirmation if pattern.search(script)]

        return SecurityValidationResult(
            safe=not violations,
            violations=violations,
            dangerous_operations=dangerous,
        )

    def validate_script_include(self, script: str) -> ScriptValidationResult:
        """
        Validate reusable Script Include code.

        Blacklist matches and over-length scripts are errors; discouraged
        patterns are warnings only.
        """
        config, _ = self._snapshot()
        errors: List[ValidationMessage] = []
        warnings: List[ValidationMessage] = []

        if len(script) > config.max_script_length:
            errors.append(ValidationMessage(
                type="VALIDATION_ERROR",
                message="Script exceeds maximum length",
                detail=(
                    f"Script length {len(script)} exceeds maximum of "
                    f"{config.max_script_length} characters"
                ),
            ))

        for rule in config.include_blacklist:
            if rule.matches(script):
                errors.append(ValidationMessage(
                    type="SECURITY_VIOLATION",
                    message=f"Detected dangerous pattern: {rule.message}",
                    detail=rule.detail,
                ))

        for rule in config.include_discouraged:
            if rule.matches(script):
                warnings.append(ValidationMessage(
                    type="DISCOURAGED_PATTERN",
                    message=rule.message,
                    detail=rule.detail,
                ))

        return ScriptValidationResult(valid=not errors, errors=errors, warnings=warnings)


# Policy file loading


def _parse_rule(entry: Union[str, Dict[str, Any]]) -> SecurityRule:
    if isinstance(entry, str):
        return SecurityRule.compile(entry)

    if not isinstance(entry, dict) or "pattern" not in entry:
        raise ValueError(f"Invalid security rule entry: {entry!r}")

    severity = entry.get("severity", Severity.HIGH.value)
    try:
        severity = Severity(str(severity).lower())
    except ValueError:
        raise ValueError(f"Invalid severity '{severity}' for pattern '{entry['pattern']}'")

    return SecurityRule.compile(
        str(entry["pattern"]),
        message=entry.get("message"),
        detail=entry.get("detail", ""),
        severity=severity,
    )


def _parse_rules(entries: Any, key: str) -> Tuple[SecurityRule, ...]:
    if not isinstance(entries, list):
        raise ValueError(f"{key} must be a list")
    return tuple(_parse_rule(entry) for entry in entries)


def security_config_from_dict(
    data: Dict[str, Any], base: Optional[SecurityConfig] = None
) -> SecurityConfig:
    """
    Build a SecurityConfig from a policy document.

    Keys (all optional): maxScriptLength, requireConfirmation,
    blacklistedPatterns (replaces), extraBlacklistedPatterns (appends),
    scriptIncludeBlacklist, scriptIncludeDiscouraged.

    Raises:
        ValueError: On malformed entries, bad regexes or a non-positive length
    """
    config = base or SecurityConfig()
    if not data:
        return config
    if not isinstance(data, dict):
        raise ValueError("Security policy must be a mapping")

    changes: Dict[str, Any] = {}

    if "blacklistedPatterns" in data:
        changes["blacklisted_patterns"] = _parse_rules(
            data["blacklistedPatterns"], "blacklistedPatterns"
        )

    if "extraBlacklistedPatterns" in data:
        current = changes.get("blacklisted_patterns", config.blacklisted_patterns)
        changes["blacklisted_patterns"] = current + _parse_rules(
            data["extraBlacklistedPatterns"], "extraBlacklistedPatterns"
        )

    if "requireConfirmation" in data:
        names = data["requireConfirmation"]
        if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
            raise ValueError("requireConfirmation must be a list of operation names")
        changes["require_confirmation"] = tuple(names)

    if "maxScriptLength" in data:
        changes["max_script_length"] = data["maxScriptLength"]

    if "scriptIncludeBlacklist" in data:
        changes["include_blacklist"] = _parse_rules(
            data["scriptIncludeBlacklist"], "scriptIncludeBlacklist"
        )

    if "scriptIncludeDiscouraged" in data:
        changes["include_discouraged"] = _parse_rules(
            data["scriptIncludeDiscouraged"], "scriptIncludeDiscouraged"
        )

    return config.replace(**changes)


def load_security_config(
    path: Union[str, Path],
    base: Optional[SecurityConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> SecurityConfig:
    """
    Load a SecurityConfig from a YAML policy file.

    A missing file yields the base (or default) policy.

    Raises:
        ValueError: If the file exists but is not a valid policy
    """
    logger = logger or logging.getLogger("nowbridge.security")
    config_path = Path(path)
    if not config_path.exists():
        logger.warning(f"Security policy file not found: {config_path}, using defaults")
        return base or SecurityConfig()

    with open(config_path, "r") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Security policy {config_path} is not valid YAML: {e}") from e

    config = security_config_from_dict(data or {}, base)
    logger.info(
        f"Security policy loaded from {config_path} "
        f"({len(config.blacklisted_patterns)} blacklist rules)"
    )
    return config
