"""
Authentication module for ServiceNow.

Owns the single AuthSession for a client, validates credentials against the
instance and renders the headers other modules attach to their requests.
Nothing outside this module mutates the session.
"""

import base64
import logging
import threading
import time
from typing import Dict, Optional

import httpx

from ..errors import NetworkCondition, classify_network_error, response_text
from .interfaces import AuthCredentials, AuthResult, AuthSession

PROBE_PATH = "/api/now/table/sys_user"
PROBE_TIMEOUT_SECONDS = 10.0


class AuthenticationManager:
    """
    Two-state session machine: UNAUTHENTICATED (initial) and AUTHENTICATED.

    Only authenticate() and handle_expiration() change state. Readers get
    immutable snapshots, so a header read never observes a half-written session.
    """

    def __init__(
        self,
        credentials: AuthCredentials,
        verify_ssl: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the authentication manager.

        Args:
            credentials: Instance URL, username and password
            verify_ssl: Verify TLS certificates on the probe call
            transport: Optional httpx transport (tests inject a MockTransport)
            logger: Optional logger; defaults to "nowbridge.auth"
        """
        self.credentials = credentials
        self.verify_ssl = verify_ssl
        self._transport = transport
        self._logger = logger or logging.getLogger("nowbridge.auth")
        self._lock = threading.RLock()
        self._session = AuthSession.unauthenticated()

    @property
    def session(self) -> AuthSession:
        """Current session snapshot."""
        with self._lock:
            return self._session

    def _set_session(self, session: AuthSession) -> None:
        with self._lock:
            self._session = session

    def _basic_header(self) -> str:
        raw = f"{self.credentials.username}:{self.credentials.password}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")

    async def authenticate(self) -> AuthResult:
        """
        Validate credentials with a read-only probe call.

        Never raises: every outcome is reported through AuthResult.

        Returns:
            AuthResult with success flag and error description
        """
        start_time = time.monotonic()
        instance_url = self.credentials.instance_url
        auth_header = self._basic_header()
        url = f"{instance_url}{PROBE_PATH}"

        self._logger.info(
            f"Attempting authentication to {instance_url} as {self.credentials.username}"
        )

        try:
            async with httpx.AsyncClient(
                transport=self._transport, verify=self.verify_ssl
            ) as client:
                response = await client.get(
                    url,
                    params={"sysparm_limit": 1},
                    headers={
                        "Authorization": auth_header,
                        "Accept": "application/json",
                        "Content-Type": "application/json",
                    },
                    timeout=PROBE_TIMEOUT_SECONDS,
                )
        except httpx.HTTPError as e:
            self._set_session(AuthSession.unauthenticated())
            message = self._describe_network_failure(e)
            self._logger.error(
                f"Authentication error after {self._elapsed_ms(start_time)}ms: {message}"
            )
            return AuthResult(success=False, error=message)
        except Exception as e:
            self._set_session(AuthSession.unauthenticated())
            message = f"Authentication error: {e}"
            self._logger.error(message)
            return AuthResult(success=False, error=message)

        if response.status_code == 200:
            self._set_session(AuthSession.authenticated(auth_header))
            self._logger.info(
                f"Authentication successful ({self._elapsed_ms(start_time)}ms)"
            )
            return AuthResult(success=True)

        self._set_session(AuthSession.unauthenticated())

        if response.status_code == 401:
            message = "Invalid credentials: username or password is incorrect"
        elif response.status_code == 403:
            message = "Access forbidden: user does not have required permissions"
        else:
            message = (
                f"Authentication failed with status {response.status_code}: "
                f"{response_text(response)}"
            )

        self._logger.error(
            f"Authentication failed with status {response.status_code} "
            f"({self._elapsed_ms(start_time)}ms): {message}"
        )
        return AuthResult(success=False, error=message)

    def _describe_network_failure(self, exc: Exception) -> str:
        instance_url = self.credentials.instance_url
        condition = classify_network_error(exc)

        if condition is NetworkCondition.HOST_NOT_FOUND:
            return f"Cannot reach ServiceNow instance: {instance_url} - check your URL"
        if condition is NetworkCondition.CONNECTION_REFUSED:
            return f"Connection refused to {instance_url}"
        if condition is NetworkCondition.TIMEOUT:
            return f"Connection timeout to {instance_url}"
        return f"Authentication error: {exc}"

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.monotonic() - start_time) * 1000)

    def get_auth_headers(self) -> Dict[str, str]:
        """
        Get authentication headers for API requests.

        Returns:
            Header map when authenticated, otherwise an empty dict
        """
        session = self.session
        if not session.is_authenticated:
            return {}

        return {
            "Authorization": session.auth_header,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def is_authenticated(self) -> bool:
        """Check if the session is currently authenticated."""
        return self.session.is_authenticated

    def handle_expiration(self) -> None:
        """
        Clear the session after the instance reported it expired.

        Called by the client when a request comes back 401.
        """
        self._logger.warning("Session expired, clearing authentication state")
        self._set_session(AuthSession.unauthenticated())
