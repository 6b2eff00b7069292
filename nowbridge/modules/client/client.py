"""
ServiceNow HTTP client.

All outbound calls go through here. Every call:
1. reads auth headers exactly once and fails with AUTH_ERROR before any I/O
   when there are none,
2. runs under its own deadline,
3. maps HTTP statuses and transport failures onto ErrorCode.

Only ServiceNowError leaves this module; httpx exceptions are chained but
never surfaced.
"""

import asyncio
import dataclasses
import json
import logging
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import quote

import httpx

from ..auth.interfaces import AuthHeaderProvider
from ..errors import (
    ErrorCode,
    NetworkCondition,
    ServiceNowError,
    classify_network_error,
    response_text,
)
from .envelope import normalize_envelope, parse_envelope
from .models import (
    ClientConfig,
    QueryParams,
    ScriptError,
    ScriptExecutionRequest,
    ScriptExecutionResult,
    resolve_script_timeout,
)

TABLE_API_PATH = "/api/now/table"
QUERY_PARAM_NAMES = frozenset(f.name for f in dataclasses.fields(QueryParams))


class ServiceNowClient:
    """Client for the ServiceNow Table API and Script Execution API."""

    def __init__(
        self,
        config: ClientConfig,
        auth: AuthHeaderProvider,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Transport configuration
            auth: Source of auth headers (normally the AuthenticationManager)
            transport: Optional httpx transport (tests inject a MockTransport)
            logger: Optional logger; defaults to "nowbridge.client"
        """
        self.config = config
        self.auth = auth
        self._transport = transport
        self._logger = logger or logging.getLogger("nowbridge.client")

    # Table API

    async def get(
        self, table: str, params: Optional[Union[QueryParams, Mapping[str, Any]]] = None
    ) -> Dict[str, Any]:
        """
        Query records from a table.

        Args:
            table: Table name (e.g. "incident")
            params: QueryParams or a mapping of sysparm_* values

        Returns:
            Response body, {"result": [records]}

        Raises:
            ServiceNowError: On any failure
        """
        query = _query_params(params)
        data = await self._call(
            "GET",
            self._table_url(table),
            operation=f"GET {table}",
            ok_statuses=(200,),
            not_found=(ErrorCode.NOT_FOUND, f"Table '{table}' not found or does not exist."),
            params=query,
        )
        records = _result_records(data)
        self._logger.debug(f"GET {table} returned {len(records)} records")
        return data

    async def get_by_id(self, table: str, sys_id: str) -> Dict[str, Any]:
        """Retrieve one record by sys_id."""
        data = await self._call(
            "GET",
            self._table_url(table, sys_id),
            operation=f"GET {table}/{sys_id}",
            ok_statuses=(200,),
            not_found=(
                ErrorCode.NOT_FOUND,
                f"Record with sys_id '{sys_id}' not found in table '{table}'.",
            ),
        )
        return _result_record(data)

    async def post(self, table: str, body: Mapping[str, Any]) -> Dict[str, Any]:
        """Create a record and return it."""
        data = await self._call(
            "POST",
            self._table_url(table),
            operation=f"POST {table}",
            ok_statuses=(200, 201),
            not_found=(ErrorCode.NOT_FOUND, f"Table '{table}' not found or does not exist."),
            json_body=dict(body),
        )
        return _result_record(data)

    async def put(self, table: str, sys_id: str, body: Mapping[str, Any]) -> Dict[str, Any]:
        """Update a record and return it."""
        data = await self._call(
            "PUT",
            self._table_url(table, sys_id),
            operation=f"PUT {table}/{sys_id}",
            ok_statuses=(200,),
            not_found=(
                ErrorCode.NOT_FOUND,
                f"Record with sys_id '{sys_id}' not found in table '{table}'.",
            ),
            json_body=dict(body),
        )
        return _result_record(data)

    async def delete(self, table: str, sys_id: str) -> None:
        """Delete a record."""
        await self._call(
            "DELETE",
            self._table_url(table, sys_id),
            operation=f"DELETE {table}/{sys_id}",
            ok_statuses=(200, 204),
            not_found=(
                ErrorCode.NOT_FOUND,
                f"Record with sys_id '{sys_id}' not found in table '{table}'.",
            ),
            expect_body=False,
        )

    # Script Execution API

    async def execute_script(self, request: ScriptExecutionRequest) -> ScriptExecutionResult:
        """
        Run a server-side script on the instance.

        A deadline hit while waiting for the instance is returned as a failed
        result with error type TIMEOUT, not raised: the script may still be
        running remotely, which is different from not reaching the instance.

        Args:
            request: Script text and optional timeout in milliseconds

        Returns:
            ScriptExecutionResult (success or script-level failure)

        Raises:
            ServiceNowError: VALIDATION_ERROR for an empty script, otherwise
                any transport or HTTP failure other than a timeout
        """
        start_time = time.monotonic()

        if not request.script or not request.script.strip():
            raise ServiceNowError(ErrorCode.VALIDATION_ERROR, "Script cannot be empty")

        timeout_ms = resolve_script_timeout(
            request.timeout_ms, self.config.default_script_timeout_ms
        )
        body: Dict[str, Any] = {"script": request.script}
        if request.timeout_ms is not None:
            body["timeout"] = timeout_ms

        self._logger.debug(
            f"Executing script ({len(request.script)} chars, timeout {timeout_ms}ms)"
        )

        try:
            data = await self._call(
                "POST",
                f"{self.config.instance_url}{self.config.script_endpoint}",
                operation="script execution",
                ok_statuses=(200,),
                not_found=(
                    ErrorCode.ENDPOINT_NOT_FOUND,
                    "Script execution endpoint not found. "
                    "The Script Execution API may not be available on this instance.",
                ),
                forbidden_message=(
                    "Access forbidden. User does not have script execution permissions."
                ),
                json_body=body,
                timeout_ms=timeout_ms,
            )
        except ServiceNowError as e:
            if e.code is not ErrorCode.TIMEOUT:
                raise
            execution_time_ms = _elapsed_ms(start_time)
            self._logger.error(f"Script execution timed out after {execution_time_ms}ms")
            return ScriptExecutionResult(
                success=False,
                execution_time_ms=execution_time_ms,
                error=ScriptError(message="Script execution timed out", type="TIMEOUT"),
            )

        execution_time_ms = _elapsed_ms(start_time)
        result = normalize_envelope(parse_envelope(data), execution_time_ms)
        self._logger.debug(
            f"Script execution completed (success={result.success}, {execution_time_ms}ms)"
        )
        return result

    # Internals

    def _table_url(self, table: str, sys_id: Optional[str] = None) -> str:
        url = f"{self.config.instance_url}{TABLE_API_PATH}/{quote(table, safe='')}"
        if sys_id is not None:
            url += f"/{quote(sys_id, safe='')}"
        return url

    def _require_auth_headers(self) -> Dict[str, str]:
        headers = self.auth.get_auth_headers()
        if not headers:
            raise ServiceNowError(
                ErrorCode.AUTH_ERROR,
                "Not authenticated. Please authenticate before making API calls.",
            )
        return dict(headers)

    async def _call(
        self,
        method: str,
        url: str,
        *,
        operation: str,
        ok_statuses: Iterable[int],
        not_found: Tuple[ErrorCode, str],
        forbidden_message: str = "Access forbidden. User does not have required permissions.",
        params: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        timeout_ms: Optional[int] = None,
        expect_body: bool = True,
    ) -> Any:
        start_time = time.monotonic()
        try:
            headers = self._require_auth_headers()
            response = await self._send(
                method,
                url,
                headers=headers,
                params=params,
                json_body=json_body,
                timeout_ms=timeout_ms or self.config.request_timeout_ms,
            )
            self._check_status(response, ok_statuses, not_found, forbidden_message)
            if not expect_body:
                return None
            data = self._decode(response)
        except ServiceNowError as e:
            self._logger.error(
                f"{operation} failed after {_elapsed_ms(start_time)}ms: "
                f"[{e.code.value}] {e.message}"
            )
            raise

        self._logger.debug(f"{operation} succeeded ({_elapsed_ms(start_time)}ms)")
        return data

    async def _send(
        self,
        method: str,
        url: str,
        *,
        headers: Dict[str, str],
        params: Optional[Dict[str, str]],
        json_body: Optional[Dict[str, Any]],
        timeout_ms: int,
    ) -> httpx.Response:
        timeout_seconds = timeout_ms / 1000
        try:
            async with httpx.AsyncClient(
                transport=self._transport, verify=self.config.verify_ssl
            ) as client:
                return await asyncio.wait_for(
                    client.request(
                        method,
                        url,
                        headers=headers,
                        params=params,
                        json=json_body,
                        timeout=timeout_seconds,
                    ),
                    timeout=timeout_seconds,
                )
        except asyncio.TimeoutError as e:
            raise ServiceNowError(
                ErrorCode.TIMEOUT, "Request timed out", f"No response within {timeout_ms}ms"
            ) from e
        except httpx.HTTPError as e:
            raise self._network_error(e) from e
        except Exception as e:
            raise ServiceNowError(
                ErrorCode.UNKNOWN_ERROR, f"Unexpected error: {e}", repr(e)
            ) from e

    def _network_error(self, exc: httpx.HTTPError) -> ServiceNowError:
        instance_url = self.config.instance_url
        condition = classify_network_error(exc)

        if condition is NetworkCondition.TIMEOUT:
            return ServiceNowError(ErrorCode.TIMEOUT, "Request timed out", str(exc))
        if condition is NetworkCondition.HOST_NOT_FOUND:
            return ServiceNowError(
                ErrorCode.NETWORK_ERROR,
                f"Cannot reach ServiceNow instance: {instance_url} - check your URL",
                str(exc),
            )
        if condition is NetworkCondition.CONNECTION_REFUSED:
            return ServiceNowError(
                ErrorCode.NETWORK_ERROR, f"Connection refused to {instance_url}", str(exc)
            )
        return ServiceNowError(
            ErrorCode.NETWORK_ERROR,
            "Network error: Unable to connect to ServiceNow instance. "
            "Please check your connection and instance URL.",
            str(exc),
        )

    def _check_status(
        self,
        response: httpx.Response,
        ok_statuses: Iterable[int],
        not_found: Tuple[ErrorCode, str],
        forbidden_message: str,
    ) -> None:
        status = response.status_code
        if status in ok_statuses:
            return

        if status == 401:
            self.auth.handle_expiration()
            raise ServiceNowError(
                ErrorCode.AUTH_EXPIRED, "Session expired. Please re-authenticate."
            )
        if status == 403:
            raise ServiceNowError(ErrorCode.FORBIDDEN, forbidden_message)
        if status == 404:
            code, message = not_found
            raise ServiceNowError(code, message)

        body = response_text(response)
        raise ServiceNowError(
            ErrorCode.API_ERROR,
            f"ServiceNow API error: {status} {response.reason_phrase}: {body}",
            body,
        )

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ServiceNowError(
                ErrorCode.UNKNOWN_ERROR,
                "Unexpected error: response body is not valid JSON",
                response_text(response),
            ) from e


def _query_params(
    params: Optional[Union[QueryParams, Mapping[str, Any]]]
) -> Optional[Dict[str, str]]:
    if params is None:
        return None
    if not isinstance(params, QueryParams):
        unknown = sorted(str(name) for name in params if name not in QUERY_PARAM_NAMES)
        if unknown:
            raise ServiceNowError(
                ErrorCode.VALIDATION_ERROR,
                f"Unsupported query parameters: {', '.join(unknown)}",
                f"Supported parameters: {', '.join(sorted(QUERY_PARAM_NAMES))}",
            )
        params = QueryParams(**params)
    return params.to_params() or None


def _result_records(data: Any) -> List[Any]:
    if isinstance(data, dict) and isinstance(data.get("result"), list):
        return data["result"]
    raise ServiceNowError(
        ErrorCode.UNKNOWN_ERROR,
        "Unexpected error: response did not contain a record list",
        str(data)[:500],
    )


def _result_record(data: Any) -> Dict[str, Any]:
    if isinstance(data, dict) and isinstance(data.get("result"), dict):
        return data["result"]
    raise ServiceNowError(
        ErrorCode.UNKNOWN_ERROR,
        "Unexpected error: response did not contain a record",
        str(data)[:500],
    )


def _elapsed_ms(start_time: float) -> int:
    return int((time.monotonic() - start_time) * 1000)
