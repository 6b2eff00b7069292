"""
Unit tests for Nowbridge data models.
"""

import pytest
from pydantic import ValidationError

from nowbridge.modules.api import (
    ExecuteScriptRequest,
    ExecutionResponse,
    HealthResponse,
    LoginResponse,
    ValidateScriptRequest,
)
from nowbridge.modules.client.envelope import (
    ArrayResult,
    ErrorObjectV1,
    ErrorObjectV2,
    ScalarResult,
    SuccessObject,
    normalize_envelope,
    parse_envelope,
)


class TestExecuteScriptRequest:
    """Test script execution request model."""

    def test_valid_request(self):
        """Test creating a request with every field."""
        request = ExecuteScriptRequest(
            script="new GlideQuery('incident').count()",
            timeout_ms=5000,
            test_mode=True,
            max_results=10,
        )
        assert request.timeout_ms == 5000
        assert request.test_mode is True
        assert request.max_results == 10

    def test_defaults(self):
        request = ExecuteScriptRequest(script="1")
        assert request.timeout_ms is None
        assert request.test_mode is False
        assert request.max_results is None

    def test_blank_script_rejected(self):
        """Test that whitespace-only scripts are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            ExecuteScriptRequest(script=" \n\t")
        assert "Script cannot be empty" in str(exc_info.value)

    def test_timeout_bounds(self):
        """Test timeout validation bounds."""
        assert ExecuteScriptRequest(script="1", timeout_ms=1).timeout_ms == 1
        assert ExecuteScriptRequest(script="1", timeout_ms=600000).timeout_ms == 600000

        with pytest.raises(ValidationError) as exc_info:
            ExecuteScriptRequest(script="1", timeout_ms=0)
        assert "greater than or equal to 1" in str(exc_info.value)

        with pytest.raises(ValidationError) as exc_info:
            ExecuteScriptRequest(script="1", timeout_ms=600001)
        assert "less than or equal to 600000" in str(exc_info.value)

    def test_max_results_bounds(self):
        assert ExecuteScriptRequest(script="1", max_results=1000).max_results == 1000

        with pytest.raises(ValidationError):
            ExecuteScriptRequest(script="1", max_results=0)

        with pytest.raises(ValidationError):
            ExecuteScriptRequest(script="1", max_results=1001)


class TestResponses:
    def test_validate_request_accepts_blank_script(self):
        # Validation reports emptiness itself rather than failing the request
        assert ValidateScriptRequest(script="").script == ""

    def test_health_status_pattern(self):
        """Test that only known health statuses are accepted."""
        assert HealthResponse(status="healthy", authenticated=True).version == "1.0.0"

        with pytest.raises(ValidationError):
            HealthResponse(status="degraded", authenticated=False)

    def test_login_response(self):
        assert LoginResponse(success=True).model_dump() == {"success": True, "error": None}

    def test_execution_response_defaults(self):
        response = ExecutionResponse(success=True)
        assert response.data is None
        assert response.logs == []
        assert response.execution_time_ms == 0
        assert response.record_count is None
        assert response.truncated is False


class TestEnvelopes:
    """Test classification of script endpoint bodies."""

    @pytest.mark.parametrize(
        "body,expected",
        [
            (42, ScalarResult(value=42)),
            ({"result": "ok"}, ScalarResult(value="ok")),
            ({"result": None}, ScalarResult(value=None)),
            ({"result": [1, 2]}, ArrayResult(items=[1, 2])),
            ([1, 2], ArrayResult(items=[1, 2])),
            ({"count": 3}, ScalarResult(value={"count": 3})),
        ],
    )
    def test_bare_payloads(self, body, expected):
        assert parse_envelope(body) == expected

    def test_success_object(self):
        envelope = parse_envelope({"result": {"success": True, "value": [1], "logs": "one"}})

        assert envelope == SuccessObject(value=[1], logs=["one"])

    def test_object_without_value_is_the_value(self):
        envelope = parse_envelope({"result": {"rowCount": 3, "rows": []}})

        assert envelope == SuccessObject(value={"rowCount": 3, "rows": []})

    def test_nested_error(self):
        envelope = parse_envelope({
            "result": {
                "success": False,
                "error": {"message": "x is not defined", "line": "3", "type": "ReferenceError"},
            }
        })

        assert envelope == ErrorObjectV1(message="x is not defined", line=3, type="ReferenceError")

    def test_string_error(self):
        envelope = parse_envelope({"result": {"error": "boom", "errorLine": 7}})

        assert envelope == ErrorObjectV1(message="boom", line=7, type=None)

    def test_flat_error(self):
        envelope = parse_envelope({
            "result": {"success": False, "errorMessage": "bad", "errorLine": "x", "logs": ["l"]}
        })

        assert envelope == ErrorObjectV2(message="bad", line=None, type=None, logs=["l"])

    def test_normalized_error_defaults(self):
        result = normalize_envelope(ErrorObjectV2(message=None), 12)

        assert result.success is False
        assert result.execution_time_ms == 12
        assert result.error.message == "Script execution failed"
        assert result.error.type == "Error"

    def test_normalized_success(self):
        result = normalize_envelope(SuccessObject(value=5, logs=["a"]), 3)

        assert result.success is True
        assert result.result == 5
        assert result.logs == ["a"]
        assert result.error is None
