"""Referral code generation.

Codes are 8-character alphanumeric (A-Z, 0-9), generated server-side with a
cryptographic random source when a profile is created.
"""

from __future__ import annotations

import secrets
import string

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.db.models import Profile

REFERRAL_CHARSET = string.ascii_uppercase + string.digits
REFERRAL_CODE_LENGTH = 8


def generate_referral_code() -> str:
    """Generate a random 8-character referral code."""
    return "".join(secrets.choice(REFERRAL_CHARSET) for _ in range(REFERRAL_CODE_LENGTH))


def normalize_referral_code(code: str | None) -> str | None:
    """Strip and uppercase a user-supplied code; blank becomes None."""
    if code is None:
        return None
    code = code.strip().upper()
    return code or None


async def generate_unique_referral_code(db: AsyncSession) -> str:
    """Generate a referral code that no profile holds yet."""
    for _ in range(10):
        code = generate_referral_code()
        existing = await db.execute(select(Profile.id).where(Profile.referral_code == code))
        if existing.scalar_one_or_none() is None:
            return code
    msg = "Failed to generate unique referral code after 10 attempts"
    raise RuntimeError(msg)
