"""Configuration provider following Black Box Design principles."""
import os
import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol
from urllib.parse import urlparse

DEFAULT_SCRIPT_ENDPOINT = "/api/now/v1/script/execute"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_HOSTNAME_PATTERN = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


@dataclass
class ServiceNowConfig:
    """ServiceNow instance and credential configuration."""
    instance_url: str
    username: str
    password: str = field(repr=False)
    verify_ssl: bool = True
    timeout_ms: Optional[int] = None
    max_retries: Optional[int] = None


@dataclass
class ExecutionConfig:
    """Script execution configuration."""
    script_endpoint: str = DEFAULT_SCRIPT_ENDPOINT
    default_timeout_ms: int = 30000
    max_script_length: int = 10000
    test_mode_max_results: int = 100
    security_policy_path: Optional[str] = None


@dataclass
class APIConfig:
    """API configuration."""
    host: str
    port: int
    log_level: str
    api_keys: Dict[str, Optional[str]] = field(default_factory=dict)

    @property
    def require_api_key(self) -> bool:
        """API keys are only enforced when at least one is configured."""
        return bool(self.api_keys)


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_servicenow_config(self) -> ServiceNowConfig:
        """Get ServiceNow connection configuration."""
        ...

    def get_execution_config(self) -> ExecutionConfig:
        """Get script execution configuration."""
        ...

    def get_api_config(self) -> APIConfig:
        """Get API configuration."""
        ...


def parse_number(value: Optional[str], default: int, minimum: int, maximum: int) -> int:
    """
    Parse an integer setting and clamp it into range.

    Args:
        value: Raw environment value (may be None or empty)
        default: Value used when the setting is absent or not a number
        minimum: Lower bound
        maximum: Upper bound

    Returns:
        Parsed value clamped to [minimum, maximum]
    """
    if not value:
        return default

    try:
        parsed = int(value.strip())
    except ValueError:
        return default

    return max(minimum, min(maximum, parsed))


def validate_instance_url(url: str) -> bool:
    """Check that the instance URL is an https URL with a sane hostname."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False

    if parsed.scheme != "https" or not parsed.hostname:
        return False

    return bool(_HOSTNAME_PATTERN.match(parsed.hostname))


def _parse_api_keys(raw: str) -> Dict[str, Optional[str]]:
    """Parse API_KEYS entries of the form key or service:key."""
    keys: Dict[str, Optional[str]] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        if ":" in entry:
            service, key = entry.split(":", 1)
            keys[key.strip()] = service.strip()
        else:
            keys[entry] = None
    return keys


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw}")


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_servicenow_config(self) -> ServiceNowConfig:
        """
        Get ServiceNow configuration from environment variables.

        Raises:
            ValueError: If a required variable is missing or the URL is invalid
        """
        required = {}
        for name in ("SERVICENOW_INSTANCE_URL", "SERVICENOW_USERNAME", "SERVICENOW_PASSWORD"):
            value = os.getenv(name)
            if not value:
                raise ValueError(
                    f"Missing required configuration: {name} environment variable is not set"
                )
            required[name] = value

        instance_url = required["SERVICENOW_INSTANCE_URL"].rstrip("/")
        if not validate_instance_url(instance_url):
            raise ValueError(
                f"Invalid ServiceNow URL format: {instance_url}. "
                "URL must be a valid HTTPS URL (e.g., https://instance.service-now.com)"
            )

        return ServiceNowConfig(
            instance_url=instance_url,
            username=required["SERVICENOW_USERNAME"],
            password=required["SERVICENOW_PASSWORD"],
            verify_ssl=os.getenv("REJECT_UNAUTHORIZED", "true").lower() != "false",
            timeout_ms=_optional_int("SERVICENOW_TIMEOUT"),
            max_retries=_optional_int("SERVICENOW_MAX_RETRIES"),
        )

    def get_execution_config(self) -> ExecutionConfig:
        """Get script execution configuration from environment variables."""
        return ExecutionConfig(
            script_endpoint=os.getenv("SERVICENOW_SCRIPT_ENDPOINT") or DEFAULT_SCRIPT_ENDPOINT,
            default_timeout_ms=parse_number(os.getenv("GLIDEQUERY_TIMEOUT"), 30000, 1000, 60000),
            max_script_length=parse_number(
                os.getenv("GLIDEQUERY_MAX_SCRIPT_LENGTH"), 10000, 100, 100000
            ),
            test_mode_max_results=parse_number(
                os.getenv("GLIDEQUERY_TEST_MAX_RESULTS"), 100, 1, 1000
            ),
            security_policy_path=os.getenv("SECURITY_POLICY_FILE") or None,
        )

    def get_api_config(self) -> APIConfig:
        """Get API configuration from environment variables."""
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        if log_level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid LOG_LEVEL: {log_level}. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )

        return APIConfig(
            host=os.getenv("API_HOST", "0.0.0.0"),
            port=int(os.getenv("API_PORT", "8080")),
            log_level=log_level,
            api_keys=_parse_api_keys(os.getenv("API_KEYS", "")),
        )

