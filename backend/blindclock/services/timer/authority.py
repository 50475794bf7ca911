from enum import Enum
from typing import Any, Optional


class Role(str, Enum):
    CREATOR = 'creator'
    VIEWER = 'viewer'


def _normalize(identity: Any) -> Optional[str]:
    if identity is None:
        return None
    text = str(identity).strip().lower()
    return text or None


def resolve_role(session_identity: Any, creator_identity: Any) -> Role:
    """Return ``Role.CREATOR`` only when the session owns the game.

    Missing identity on either side means viewer.
    """
    mine = _normalize(session_identity)
    owner = _normalize(creator_identity)
    if mine is None or owner is None:
        return Role.VIEWER
    return Role.CREATOR if mine == owner else Role.VIEWER
