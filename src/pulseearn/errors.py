"""Service-layer exception types shared across domains.

Services raise ValueError subclasses for bad input, NotFoundError for missing
rows and PermissionError for role violations. Routers map them to HTTP codes.
"""


class NotFoundError(LookupError):
    """A referenced profile, game, question, poll or payout does not exist."""


class ConflictError(ValueError):
    """The operation collides with existing state (duplicate email, repeat vote)."""
