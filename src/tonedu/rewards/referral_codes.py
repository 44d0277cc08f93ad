"""Referral code generation.

Codes are ``REF`` followed by 8 characters from A-Z and 0-9, generated
server-side with a cryptographic random source. Lookups are
case-insensitive: codes are stored and matched in upper case.
"""

from __future__ import annotations

import secrets
import string

from tonedu.store.base import EntityStore

REFERRAL_PREFIX = "REF"
REFERRAL_CHARSET = string.ascii_uppercase + string.digits  # A-Z, 0-9
REFERRAL_LENGTH = 8
MAX_ATTEMPTS = 10


def generate_referral_code() -> str:
    """Generate a cryptographically random referral code."""
    return REFERRAL_PREFIX + "".join(secrets.choice(REFERRAL_CHARSET) for _ in range(REFERRAL_LENGTH))


def normalize_referral_code(code: str) -> str:
    """Normalize a referral code for case-insensitive lookup."""
    return code.strip().upper()


async def generate_unique_referral_code(store: EntityStore) -> str:
    """Generate a referral code that no user holds yet."""
    for _ in range(MAX_ATTEMPTS):
        code = generate_referral_code()
        if await store.get_user_by_referral_code(code) is None:
            return code
    msg = f"Failed to generate unique referral code after {MAX_ATTEMPTS} attempts"
    raise RuntimeError(msg)
