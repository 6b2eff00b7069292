#!/usr/bin/env python3
"""
Tests for environment-based configuration.
"""

import os
from unittest.mock import patch

import pytest

from nowbridge.config import EnvConfigProvider, parse_number, validate_instance_url

REQUIRED = {
    "SERVICENOW_INSTANCE_URL": "https://dev12345.service-now.com/",
    "SERVICENOW_USERNAME": "admin",
    "SERVICENOW_PASSWORD": "secret",
}


@pytest.fixture
def provider():
    return EnvConfigProvider()


class TestServiceNowConfig:
    def test_required_values(self, provider):
        with patch.dict(os.environ, REQUIRED, clear=True):
            config = provider.get_servicenow_config()

        assert config.instance_url == "https://dev12345.service-now.com"
        assert config.username == "admin"
        assert config.password == "secret"
        assert config.verify_ssl is True
        assert config.timeout_ms is None
        assert config.max_retries is None
        assert "secret" not in repr(config)

    @pytest.mark.parametrize("missing", sorted(REQUIRED))
    def test_missing_required_value(self, provider, missing):
        env = {k: v for k, v in REQUIRED.items() if k != missing}

        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ValueError, match=missing):
                provider.get_servicenow_config()

    @pytest.mark.parametrize(
        "url",
        ["http://dev12345.service-now.com", "dev12345.service-now.com", "https://", "https://-bad-.com"],
    )
    def test_invalid_url(self, provider, url):
        env = dict(REQUIRED, SERVICENOW_INSTANCE_URL=url)

        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ValueError, match="Invalid ServiceNow URL format"):
                provider.get_servicenow_config()

    def test_optional_values(self, provider):
        env = dict(
            REQUIRED,
            REJECT_UNAUTHORIZED="false",
            SERVICENOW_TIMEOUT="15000",
            SERVICENOW_MAX_RETRIES="3",
        )

        with patch.dict(os.environ, env, clear=True):
            config = provider.get_servicenow_config()

        assert config.verify_ssl is False
        assert config.timeout_ms == 15000
        assert config.max_retries == 3

    def test_non_numeric_timeout(self, provider):
        env = dict(REQUIRED, SERVICENOW_TIMEOUT="soon")

        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ValueError, match="SERVICENOW_TIMEOUT"):
                provider.get_servicenow_config()


class TestExecutionConfig:
    def test_defaults(self, provider):
        with patch.dict(os.environ, {}, clear=True):
            config = provider.get_execution_config()

        assert config.script_endpoint == "/api/now/v1/script/execute"
        assert config.default_timeout_ms == 30000
        assert config.max_script_length == 10000
        assert config.test_mode_max_results == 100
        assert config.security_policy_path is None

    def test_values_are_clamped(self, provider):
        env = {
            "GLIDEQUERY_TIMEOUT": "500",
            "GLIDEQUERY_MAX_SCRIPT_LENGTH": "500000",
            "GLIDEQUERY_TEST_MAX_RESULTS": "0",
            "SERVICENOW_SCRIPT_ENDPOINT": "/api/x_custom/run",
            "SECURITY_POLICY_FILE": "/etc/nowbridge/security.yaml",
        }

        with patch.dict(os.environ, env, clear=True):
            config = provider.get_execution_config()

        assert config.default_timeout_ms == 1000
        assert config.max_script_length == 100000
        assert config.test_mode_max_results == 1
        assert config.script_endpoint == "/api/x_custom/run"
        assert config.security_policy_path == "/etc/nowbridge/security.yaml"


class TestAPIConfig:
    def test_defaults(self, provider):
        with patch.dict(os.environ, {}, clear=True):
            config = provider.get_api_config()

        assert config.host == "0.0.0.0"
        assert config.port == 8080
        assert config.log_level == "INFO"
        assert config.api_keys == {}
        assert config.require_api_key is False

    def test_api_keys_with_service_identity(self, provider):
        env = {"API_KEYS": "plain-key, orchestrator:svc-key ,", "LOG_LEVEL": "debug"}

        with patch.dict(os.environ, env, clear=True):
            config = provider.get_api_config()

        assert config.api_keys == {"plain-key": None, "svc-key": "orchestrator"}
        assert config.require_api_key is True
        assert config.log_level == "DEBUG"

    def test_invalid_log_level(self, provider):
        with patch.dict(os.environ, {"LOG_LEVEL": "VERBOSE"}, clear=True):
            with pytest.raises(ValueError, match="Invalid LOG_LEVEL"):
                provider.get_api_config()


@pytest.mark.parametrize(
    "value,expected",
    [(None, 50), ("", 50), ("abc", 50), ("75", 75), (" 80 ", 80), ("5", 10), ("500", 100)],
)
def test_parse_number(value, expected):
    assert parse_number(value, 50, 10, 100) == expected


@pytest.mark.parametrize(
    "url,valid",
    [
        ("https://dev12345.service-now.com", True),
        ("https://localhost", True),
        ("http://dev12345.service-now.com", False),
        ("ftp://dev12345.service-now.com", False),
        ("not a url", False),
    ],
)
def test_validate_instance_url(url, valid):
    assert validate_instance_url(url) is valid
