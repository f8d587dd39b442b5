"""
License key generation.

Keys look like SQLBots30-7KQM-WX4P. The alphabet leaves out 0, O, 1 and I so a
key can be read aloud or typed from a screenshot.
"""
from __future__ import annotations

import secrets
from typing import Iterable

from models.license import License, PLAN_30_DAYS, PLAN_90_DAYS

LICENSE_KEY_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
GROUP_LENGTH = 4

PLAN_PREFIXES = {
    PLAN_30_DAYS: "SQLBots30",
    PLAN_90_DAYS: "SQLBots90",
}

DEFAULT_MAX_ATTEMPTS = 10


class LicenseKeyGenerationError(Exception):
    def __init__(self, attempt: int):
        self.attempt = attempt
        super().__init__(f"Failed to generate unique license key (attempt {attempt})")


def _group() -> str:
    return "".join(secrets.choice(LICENSE_KEY_ALPHABET) for _ in range(GROUP_LENGTH))


def generate_license_key(plan_type: str) -> str:
    try:
        prefix = PLAN_PREFIXES[plan_type]
    except KeyError:
        raise ValueError(f"Unknown plan type: {plan_type!r}") from None
    return f"{prefix}-{_group()}-{_group()}"


def license_key_exists(session, key: str) -> bool:
    return session.query(License.id).filter(License.license_key == key).first() is not None


def issue_unique_license_key(
    session,
    plan_type: str,
    reserved: Iterable[str] = frozenset(),
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    position: int = 1,
) -> str:
    """
    Draw keys until one is free both in the database and in `reserved`
    (keys already handed out to the batch being built).
    Raises LicenseKeyGenerationError after `max_attempts` collisions; `position`
    is the 1-based index of the key within its batch and ends up in the message.
    """
    for _ in range(max_attempts):
        key = generate_license_key(plan_type)
        if key in reserved:
            continue
        if not license_key_exists(session, key):
            return key
    raise LicenseKeyGenerationError(position)
