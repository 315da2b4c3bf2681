"""
Password hashing (argon2id) and the signup password policy.
"""

from __future__ import annotations

from collections.abc import Callable

import argon2

from pulseearn.config import get_settings

_hasher = argon2.PasswordHasher(
    time_cost=2,
    memory_cost=64 * 1024,
    parallelism=1,
    hash_len=32,
    salt_len=16,
    type=argon2.Type.ID,
)

# (predicate, message) pairs checked after the length bounds
_CHARACTER_RULES: list[tuple[Callable[[str], bool], str]] = [
    (lambda p: any(c.isupper() for c in p), "Password must contain at least one uppercase letter"),
    (lambda p: any(c.islower() for c in p), "Password must contain at least one lowercase letter"),
    (lambda p: any(c.isdigit() for c in p), "Password must contain at least one digit"),
]


class PasswordStrengthError(ValueError):
    """The password breaks the signup policy; the message names the rule."""


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """False on mismatch and on a hash argon2 cannot parse."""
    try:
        return _hasher.verify(password_hash, password)
    except (argon2.exceptions.VerifyMismatchError, argon2.exceptions.InvalidHashError):
        return False


def check_needs_rehash(password_hash: str) -> bool:
    return _hasher.check_needs_rehash(password_hash)


def validate_password_strength(password: str) -> None:
    """
    Length within the configured bounds (8-128 by default), plus upper case,
    lower case and a digit.

    Raises:
        PasswordStrengthError: for the first rule that fails.
    """
    settings = get_settings()
    if not password or password.isspace():
        msg = "Password cannot be empty"
    elif len(password) < settings.password_min_length:
        msg = f"Password must be at least {settings.password_min_length} characters"
    elif len(password) > settings.password_max_length:
        msg = f"Password must not exceed {settings.password_max_length} characters"
    else:
        msg = next((message for rule, message in _CHARACTER_RULES if not rule(password)), None)
    if msg is not None:
        raise PasswordStrengthError(msg)
