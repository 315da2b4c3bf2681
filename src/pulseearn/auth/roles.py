"""Role hierarchy used by both the API guards and the client route guard.

Roles form a total order. A caller satisfies a requirement when its level is
greater than or equal to the required level. Unknown or missing roles count as
the lowest level.
"""

from __future__ import annotations

ROLE_LEVELS: dict[str, int] = {
    "user": 0,
    "moderator": 1,
    "ambassador": 2,
    "admin": 3,
}

DEFAULT_ROLE = "user"


def role_level(role: str | None) -> int:
    """Numeric level of a role; None and unknown roles map to ``user``."""
    return ROLE_LEVELS.get(role or DEFAULT_ROLE, ROLE_LEVELS[DEFAULT_ROLE])


def has_role(role: str | None, required: str) -> bool:
    """True if ``role`` is at or above ``required`` in the hierarchy."""
    if required not in ROLE_LEVELS:
        msg = f"Unknown role: {required}"
        raise ValueError(msg)
    return role_level(role) >= ROLE_LEVELS[required]
