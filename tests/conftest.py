"""
Shared pytest fixtures for Nowbridge tests.

This module provides common fixtures including:
- BackendMocker: Simulate the ServiceNow instance through httpx.MockTransport
- Credential, auth manager and client fixtures wired to the mocker
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Pattern, Tuple, Union

import httpx
import pytest

from nowbridge.modules.auth import AuthCredentials, AuthenticationManager, AuthSession
from nowbridge.modules.client import ClientConfig, ServiceNowClient

INSTANCE_URL = "https://dev12345.service-now.com"


# =============================================================================
# Backend Mocking Infrastructure
# =============================================================================

@dataclass
class BackendResponse:
    """Represents a mocked ServiceNow response (or a transport failure)."""
    status_code: int = 200
    json: Any = None
    text: str = ""
    exception: Optional[Exception] = None

    def to_httpx(self, request: httpx.Request) -> httpx.Response:
        """Convert to an httpx.Response for the given request."""
        if self.json is not None:
            return httpx.Response(self.status_code, json=self.json, request=request)
        return httpx.Response(self.status_code, text=self.text, request=request)


@dataclass
class BackendCall:
    """Record of a request made during testing."""
    method: str
    path: str
    params: Dict[str, str]
    headers: Dict[str, str]
    body: Any = None
    matched_pattern: Optional[str] = None


class BackendMocker:
    """
    Mock the ServiceNow instance with pattern-matched responses.

    Requests never leave the process: the mocker's transport is injected into
    the auth manager and the client.

    Usage:
        def test_query(backend, client):
            backend.register("GET", "/api/now/table/incident", BackendResponse(
                json={"result": [{"number": "INC001"}]}
            ))

            # Run code that calls the instance
            ...

            # Verify the call was made
            assert backend.was_called_with("GET", "/api/now/table/incident")
    """

    def __init__(self):
        self._responses: List[Tuple[str, Union[str, Pattern], BackendResponse, int]] = []
        self._call_history: List[BackendCall] = []
        self._default_response = BackendResponse(
            status_code=500, text="Error: mock not configured for this request"
        )

    def register(
        self,
        method: str,
        pattern: Union[str, Pattern],
        response: BackendResponse,
        priority: int = 0,
    ) -> "BackendMocker":
        """
        Register a response for requests matching method and path pattern.

        Args:
            method: HTTP method ("GET", "POST", ...)
            pattern: String (substring of the path) or compiled regex
            response: BackendResponse to return when matched
            priority: Higher priority patterns are checked first

        Returns:
            self for chaining
        """
        self._responses.append((method.upper(), pattern, response, priority))
        self._responses.sort(key=lambda x: x[3], reverse=True)
        return self

    def set_default_response(self, response: BackendResponse) -> "BackendMocker":
        """Set the default response for unmatched requests."""
        self._default_response = response
        return self

    def handle(self, request: httpx.Request) -> httpx.Response:
        """MockTransport handler: record the request and answer it."""
        path = request.url.path
        matched_pattern = None
        response = self._default_response

        for method, pattern, resp, _ in self._responses:
            if method != request.method:
                continue
            if isinstance(pattern, str):
                if pattern in path:
                    matched_pattern = pattern
                    response = resp
                    break
            elif pattern.search(path):
                matched_pattern = pattern.pattern
                response = resp
                break

        self._call_history.append(BackendCall(
            method=request.method,
            path=path,
            params=dict(request.url.params),
            headers=dict(request.headers),
            body=json.loads(request.content) if request.content else None,
            matched_pattern=matched_pattern,
        ))

        if response.exception is not None:
            raise response.exception
        return response.to_httpx(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    @property
    def calls(self) -> List[BackendCall]:
        """Get all requests made during the test."""
        return self._call_history

    @property
    def call_count(self) -> int:
        return len(self._call_history)

    @property
    def last_call(self) -> Optional[BackendCall]:
        return self._call_history[-1] if self._call_history else None

    def was_called_with(self, method: str, pattern: str) -> bool:
        """Check if any request used the method and a path containing pattern."""
        return any(
            call.method == method.upper() and pattern in call.path
            for call in self._call_history
        )

    def reset(self):
        """Clear call history (but keep registered responses)."""
        self._call_history = []


@pytest.fixture
def backend():
    """Fresh BackendMocker per test."""
    return BackendMocker()


@pytest.fixture
def credentials():
    return AuthCredentials(instance_url=INSTANCE_URL, username="admin", password="s3cret-pass")


@pytest.fixture
def auth_manager(backend, credentials):
    """Unauthenticated manager talking to the mocked instance."""
    return AuthenticationManager(credentials, transport=backend.transport)


@pytest.fixture
def authenticated_auth(auth_manager):
    """Manager already holding a session, without a probe request."""
    auth_manager._set_session(AuthSession.authenticated(auth_manager._basic_header()))
    return auth_manager


@pytest.fixture
def client_config():
    return ClientConfig(instance_url=INSTANCE_URL)


@pytest.fixture
def client(backend, authenticated_auth, client_config):
    """Client with an active session, wired to the mocked instance."""
    return ServiceNowClient(client_config, authenticated_auth, transport=backend.transport)


@pytest.fixture
def unauthenticated_client(backend, auth_manager, client_config):
    return ServiceNowClient(client_config, auth_manager, transport=backend.transport)
