from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List

MIN_LENGTH = 8

_RULES = (
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"[0-9]"), "Password must contain at least one number"),
    (re.compile(r"[^A-Za-z0-9]"), "Password must contain at least one special character"),
)

STRENGTH_LABELS = ("Weak", "Weak", "Fair", "Good", "Strong")


@dataclass
class PasswordPolicyResult:
    valid: bool
    errors: List[str] = field(default_factory=list)


def validate_password_policy(password: str) -> PasswordPolicyResult:
    errors = []
    if len(password or "") < MIN_LENGTH:
        errors.append(f"Password must be at least {MIN_LENGTH} characters long")
    for pattern, message in _RULES:
        if not pattern.search(password or ""):
            errors.append(message)
    return PasswordPolicyResult(valid=not errors, errors=errors)


def get_password_strength(password: str) -> int:
    """Score 0 (weak) to 4 (strong)."""
    password = password or ""
    score = 0
    if len(password) >= MIN_LENGTH:
        score += 1
    if len(password) >= 12:
        score += 1
    if re.search(r"[a-z]", password) and re.search(r"[A-Z]", password):
        score += 1
    if re.search(r"[0-9]", password) and re.search(r"[^A-Za-z0-9]", password):
        score += 1
    return score


def get_password_strength_label(score: int) -> str:
    return STRENGTH_LABELS[max(0, min(score, len(STRENGTH_LABELS) - 1))]
