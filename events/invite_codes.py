# events/invite_codes.py
"""
Invite Code Allocator.

Codes are 6 uppercase hex characters (24 bits). Uniqueness is enforced by
the unique index on ``Team.invite_code``; allocation inserts with a fresh
code inside a savepoint and retries only on a collision of that index.
"""
import logging
import secrets

from django.db import IntegrityError, transaction

from core.conf import fest_setting
from .exceptions import CodeAllocationExhausted
from .models import Team

logger = logging.getLogger('fest.teams')

CODE_LENGTH = 6


def generate_invite_code() -> str:
    return secrets.token_hex(CODE_LENGTH // 2).upper()


def normalize(code) -> str:
    return (code or "").strip().upper()


def is_well_formed(code: str) -> bool:
    if len(code) != CODE_LENGTH:
        return False
    return all(ch in "0123456789ABCDEF" for ch in code)


def allocate(create):
    """
    Call ``create(code)`` with fresh codes until the insert succeeds.

    ``create`` must perform the INSERT that carries the code. Integrity
    errors not caused by an existing code are re-raised untouched.
    """
    attempts = fest_setting("INVITE_CODE_MAX_ATTEMPTS")
    for attempt in range(1, attempts + 1):
        code = generate_invite_code()
        try:
            with transaction.atomic():
                return create(code)
        except IntegrityError:
            if not Team.objects.filter(invite_code=code).exists():
                raise
            logger.info(f"Invite code collision on attempt {attempt}")

    logger.error(f"Invite code allocation exhausted after {attempts} attempts")
    raise CodeAllocationExhausted()
