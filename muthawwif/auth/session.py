"""Session state, role checks and auth change notifications."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from ..storage.models import Profile

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
SIGNED_UP = "SIGNED_UP"


@dataclass
class AuthSession:
    """Tokens and user record handed out by the auth provider."""

    access_token: str
    user: Dict[str, Any]
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None

    @property
    def user_id(self) -> str:
        return self.user["id"]

    @property
    def email(self) -> str:
        return self.user.get("email", "")

    @property
    def full_name(self) -> Optional[str]:
        return (self.user.get("user_metadata") or {}).get("full_name")


@dataclass
class SessionState:
    """Who is making the current request.

    Built per request and passed explicitly; anonymous visitors get an
    empty state rather than None.
    """

    user: Optional[Dict[str, Any]] = None
    profile: Optional[Profile] = None
    access_token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def user_id(self) -> Optional[str]:
        return self.user["id"] if self.user else None

    @property
    def role(self) -> Optional[str]:
        return self.profile.role if self.profile is not None else None

    def is_admin(self) -> bool:
        return self.role == "admin"

    def is_owner(self) -> bool:
        return self.role == "owner"

    def can_manage_content(self) -> bool:
        return self.role in ("admin", "owner")

    def can_manage_users(self) -> bool:
        return self.role == "admin"


AuthListener = Callable[[str, Optional[AuthSession]], None]


@dataclass
class AuthEventBus:
    """Delivers session-presence events to subscribers."""

    listeners: List[AuthListener] = field(default_factory=list)

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register a listener.

        Returns:
            Callable removing the listener again
        """
        self.listeners.append(listener)

        def unsubscribe():
            if listener in self.listeners:
                self.listeners.remove(listener)

        return unsubscribe

    def emit(self, event: str, session: Optional[AuthSession]) -> None:
        for listener in list(self.listeners):
            try:
                listener(event, session)
            except Exception as e:
                logger.error(f"Auth listener failed on {event}: {e}")
