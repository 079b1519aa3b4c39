"""Authentication against the hosted auth provider"""

from .client import AuthError, HostedAuthClient
from .session import AuthEventBus, AuthSession, SessionState

__all__ = [
    "AuthError",
    "HostedAuthClient",
    "AuthEventBus",
    "AuthSession",
    "SessionState",
]
