"""
Password strength scoring used by signup, reset-password and change-password.

Score (0-4):
    +1 each for: length >= 8, a lowercase letter, an uppercase letter,
                 a digit, a special character
    +1 each for: length >= 12, length >= 16
    -2 (floored at 0) when the password starts with a well-known pattern
    capped at 4

A password is accepted when it produced no errors and scores at least 2.
"""

import re
from dataclasses import dataclass, field
from typing import List

MIN_LENGTH = 8

_SPECIAL = re.compile(r"""[!@#$%^&*()_+\-=\[\]{};':"\\|,.<>/?]""")
_COMMON_PATTERNS = [
    re.compile(r"^123456"),
    re.compile(r"^password", re.IGNORECASE),
    re.compile(r"^qwerty", re.IGNORECASE),
    re.compile(r"^abc123", re.IGNORECASE),
    re.compile(r"^111111"),
    re.compile(r"^letmein", re.IGNORECASE),
    re.compile(r"^welcome", re.IGNORECASE),
    re.compile(r"^monkey", re.IGNORECASE),
    re.compile(r"^dragon", re.IGNORECASE),
    re.compile(r"^master", re.IGNORECASE),
]
_SEQUENTIAL = re.compile(
    r"(?:abc|bcd|cde|def|efg|fgh|ghi|hij|ijk|jkl|klm|lmn|mno|nop|opq|pqr|qrs|rst|stu|"
    r"tuv|uvw|vwx|wxy|xyz|012|123|234|345|456|567|678|789)",
    re.IGNORECASE,
)
_REPEATED = re.compile(r"(.)\1{2,}")

STRENGTH_LABELS = {
    0: "Very Weak",
    1: "Weak",
    2: "Fair",
    3: "Strong",
    4: "Very Strong",
}


@dataclass
class PasswordStrength:
    is_valid: bool
    score: int
    errors: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)


def validate_password_strength(password: str) -> PasswordStrength:
    errors: List[str] = []
    suggestions: List[str] = []
    score = 0

    if len(password) < MIN_LENGTH:
        errors.append(f"Password must be at least {MIN_LENGTH} characters long")
    else:
        score += 1

    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    else:
        score += 1

    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    else:
        score += 1

    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    else:
        score += 1

    if _SPECIAL.search(password):
        score += 1
    else:
        suggestions.append("Consider adding special characters for stronger security")

    if any(pattern.search(password) for pattern in _COMMON_PATTERNS):
        errors.append("Password contains common patterns that are easy to guess")
        score = max(0, score - 2)

    if _SEQUENTIAL.search(password):
        suggestions.append("Avoid sequential characters for better security")

    if _REPEATED.search(password):
        suggestions.append("Avoid repeating the same character multiple times")

    if len(password) >= 12:
        score += 1
    if len(password) >= 16:
        score += 1

    score = min(4, score)
    return PasswordStrength(
        is_valid=not errors and score >= 2,
        score=score,
        errors=errors,
        suggestions=suggestions,
    )


def get_password_strength_label(score: int) -> str:
    return STRENGTH_LABELS.get(score, "Unknown")
