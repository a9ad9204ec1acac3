"""Resolution of the acting identity for an incoming event."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Identity:
    """Either an authenticated user or an anonymous browser id, never both."""

    user_id: Optional[str] = None
    anon_id: Optional[str] = None

    def __post_init__(self):
        if (self.user_id is None) == (self.anon_id is None):
            raise ValueError("Identity needs exactly one of user_id or anon_id.")

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None


def session_user_id(claims: Optional[Dict[str, Any]]) -> Optional[str]:
    """The user id carried by verified token claims, if any."""
    if not claims:
        return None
    subject = claims.get("sub")
    return str(subject) if subject else None


def resolve_event_user(
    explicit_user_id: Optional[str], claims: Optional[Dict[str, Any]]
) -> Optional[str]:
    """An explicit `userId` wins, then the session user, then nobody."""
    if explicit_user_id:
        return explicit_user_id
    return session_user_id(claims)


def resolve_ab_identity(
    claims: Optional[Dict[str, Any]], anon_id: Optional[str]
) -> Optional[Identity]:
    """
    The identity an A/B assignment is keyed by.

    A signed-in user always takes precedence over a supplied anon_id.
    Returns None when neither is available.
    """
    user_id = session_user_id(claims)
    if user_id:
        return Identity(user_id=user_id)
    if anon_id:
        return Identity(anon_id=anon_id)
    return None
