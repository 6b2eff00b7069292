"""
Authentication Module - Black Box Interface

Purpose: Hold session state and validate credentials against ServiceNow
Interface: authenticate(), get_auth_headers(), is_authenticated(), handle_expiration()
Hidden: Header encoding, probe call, session storage

Other modules only read derived headers; they never touch the session.
"""

from .auth import AuthenticationManager
from .interfaces import (
    AuthCredentials,
    AuthHeaderProvider,
    AuthResult,
    AuthSession,
    SessionState,
)

__all__ = [
    "AuthCredentials",
    "AuthHeaderProvider",
    "AuthResult",
    "AuthSession",
    "AuthenticationManager",
    "SessionState",
]
