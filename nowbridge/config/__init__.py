"""Configuration loading for Nowbridge."""

from .provider import (
    APIConfig,
    ConfigProvider,
    EnvConfigProvider,
    ExecutionConfig,
    ServiceNowConfig,
    parse_number,
    validate_instance_url,
)

__all__ = [
    "APIConfig",
    "ConfigProvider",
    "EnvConfigProvider",
    "ExecutionConfig",
    "ServiceNowConfig",
    "parse_number",
    "validate_instance_url",
]
