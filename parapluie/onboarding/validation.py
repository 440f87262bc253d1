"""Input validation and formatting for the onboarding screens."""

import re
from dataclasses import dataclass, field
from typing import Optional

from parapluie.core.ui_strings import get_string

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 8

RELATIONSHIPS = ("fils", "fille", "conjoint", "ami", "voisin", "autre")

_NON_DIGITS = re.compile(r"\D")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    message: Optional[str] = None
    formatted: Optional[str] = None


@dataclass(frozen=True)
class PasswordStrength:
    score: int
    label: str
    checks: dict[str, bool] = field(default_factory=dict)

    @property
    def percentage(self) -> float:
        return self.score / 4 * 100

    @property
    def is_valid(self) -> bool:
        return self.score == 4


def _digits(raw: str) -> str:
    return _NON_DIGITS.sub("", raw or "")


def validate_name(raw: str, language: Optional[str] = None) -> ValidationResult:
    """Trimmed name must be 2 to 50 characters long."""
    trimmed = (raw or "").strip()
    if len(trimmed) < NAME_MIN_LENGTH:
        return ValidationResult(False, get_string("name_too_short", language))
    if len(trimmed) > NAME_MAX_LENGTH:
        return ValidationResult(False, get_string("name_too_long", language))
    return ValidationResult(True)


def validate_phone(raw: str, language: Optional[str] = None) -> ValidationResult:
    """
    Validate a North American phone number.

    10 digits get the implicit +1 country code, 11 digits starting with 1
    are taken as-is. The formatted value is E.164.
    """
    digits = _digits(raw)
    if len(digits) == 10:
        return ValidationResult(True, formatted=f"+1{digits}")
    if len(digits) == 11 and digits.startswith("1"):
        return ValidationResult(True, formatted=f"+{digits}")
    return ValidationResult(False, get_string("phone_invalid", language))


def format_phone_input(raw: str) -> str:
    """Format digits as (ddd) ddd-dddd while typing. Extra digits are dropped."""
    digits = _digits(raw)[:10]
    if len(digits) <= 3:
        return digits
    if len(digits) <= 6:
        return f"({digits[:3]}) {digits[3:]}"
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


def validate_email(raw: str, language: Optional[str] = None) -> ValidationResult:
    if _EMAIL.match((raw or "").strip()):
        return ValidationResult(True, formatted=raw.strip())
    return ValidationResult(False, get_string("email_invalid", language))


def evaluate_password(password: str, language: Optional[str] = None) -> PasswordStrength:
    """Score a password on length, upper-case, lower-case and digit. No special character needed."""
    password = password or ""
    checks = {
        "length": len(password) >= PASSWORD_MIN_LENGTH,
        "uppercase": re.search(r"[A-Z]", password) is not None,
        "lowercase": re.search(r"[a-z]", password) is not None,
        "number": re.search(r"[0-9]", password) is not None,
    }
    score = sum(checks.values())
    return PasswordStrength(
        score=score,
        label=get_string(f"strength_{score}", language),
        checks=checks,
    )


def validate_contact_name(raw: str, language: Optional[str] = None) -> ValidationResult:
    if len((raw or "").strip()) < NAME_MIN_LENGTH:
        return ValidationResult(False, get_string("name_too_short", language))
    return ValidationResult(True, formatted=raw.strip())


def validate_relationship(raw: str, language: Optional[str] = None) -> ValidationResult:
    if raw not in RELATIONSHIPS:
        return ValidationResult(False, get_string("relationship_missing", language))
    return ValidationResult(True, formatted=raw)
