"""Authentication interfaces and session state following Black Box Design principles."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Protocol


class SessionState(str, Enum):
    """The two states of an authentication session."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class AuthCredentials:
    """ServiceNow instance URL and basic-auth credentials."""
    instance_url: str
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class AuthSession:
    """
    Snapshot of authentication state.

    The header material is present iff the state is AUTHENTICATED.
    """
    state: SessionState = SessionState.UNAUTHENTICATED
    auth_header: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        has_header = bool(self.auth_header)
        if has_header != (self.state is SessionState.AUTHENTICATED):
            raise ValueError(
                f"Auth header must be present iff session is authenticated (state={self.state.value})"
            )

    @classmethod
    def unauthenticated(cls) -> "AuthSession":
        return cls()

    @classmethod
    def authenticated(cls, auth_header: str) -> "AuthSession":
        return cls(state=SessionState.AUTHENTICATED, auth_header=auth_header)

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED


@dataclass
class AuthResult:
    """Outcome of an authentication attempt."""
    success: bool
    error: Optional[str] = None


class AuthHeaderProvider(Protocol):
    """What the transport needs from the auth module."""

    def get_auth_headers(self) -> Dict[str, str]:
        """
        Get headers for an outbound request.

        Returns:
            Header map, empty when the session is not authenticated
        """
        ...

    def is_authenticated(self) -> bool:
        """Check the current session state."""
        ...

    def handle_expiration(self) -> None:
        """Force the session back to unauthenticated."""
        ...
