"""Input Validation - Pure checks for user-entered values.

All functions are pure and report problems through their return value
instead of raising.
"""

import math
import re
from typing import Any

from .models import PasswordCheck, ValidationResult


AGE_RANGE = (18, 100)
WEIGHT_RANGE = (30, 300)
HEIGHT_RANGE = (100, 250)

MIN_PASSWORD_LENGTH = 8
STRONG_PASSWORD_LENGTH = 12

_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_SPECIAL_RE = re.compile(r'[!@#$%^&*(),.?":{}|<>]')
_DIGIT_RE = re.compile(r"\d", re.ASCII)
_LEADING_NUMBER_RE = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)", re.ASCII)


def _parse_number(value: Any) -> float:
    """Parse form input leniently: "70kg" reads as 70, "kg70" as NaN."""
    if isinstance(value, bool) or value is None:
        return math.nan
    if isinstance(value, str):
        match = _LEADING_NUMBER_RE.match(value)
        return float(match.group(1)) if match else math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def validate_range(value: Any, min_value: float, max_value: float) -> ValidationResult:
    """Check that a raw input parses as a number within [min, max].

    Args:
        value: Raw input (string from a form, or a number)
        min_value: Inclusive lower bound
        max_value: Inclusive upper bound

    Returns:
        ValidationResult with a user-facing message when invalid
    """
    number = _parse_number(value)

    if math.isnan(number):
        return ValidationResult(valid=False, message="Please enter a valid number")
    if number < min_value:
        return ValidationResult(valid=False, message=f"Value must be at least {min_value}")
    if number > max_value:
        return ValidationResult(valid=False, message=f"Value must not exceed {max_value}")
    return ValidationResult(valid=True, message="")


def validate_age(age: Any) -> ValidationResult:
    return validate_range(age, *AGE_RANGE)


def validate_weight(weight: Any) -> ValidationResult:
    return validate_range(weight, *WEIGHT_RANGE)


def validate_height(height: Any) -> ValidationResult:
    return validate_range(height, *HEIGHT_RANGE)


def is_valid_email(email: Any) -> bool:
    """Loose local@domain.tld check, not full RFC 5322."""
    if not isinstance(email, str):
        return False
    return _EMAIL_RE.fullmatch(email) is not None


def validate_password(password: Any) -> PasswordCheck:
    """Check minimum length and score password strength.

    The score adds 20 for each of lowercase, uppercase, digit and special
    character, plus 20 for 12+ characters (10 otherwise).

    Args:
        password: Candidate password

    Returns:
        PasswordCheck with strength 0 when too short, else 10..100
    """
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        return PasswordCheck(
            valid=False,
            message=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            strength=0,
        )

    checks = (
        re.search(r"[a-z]", password) is not None,
        re.search(r"[A-Z]", password) is not None,
        _DIGIT_RE.search(password) is not None,
        _SPECIAL_RE.search(password) is not None,
    )
    strength = 20 if len(password) >= STRONG_PASSWORD_LENGTH else 10
    strength += 20 * sum(checks)

    if strength >= 60:
        message = "Strong password"
    elif strength >= 40:
        message = "Moderate password"
    else:
        message = "Weak password"

    return PasswordCheck(valid=True, message=message, strength=strength)


def validate_profile_form(name: Any, age: Any, weight: Any, height: Any) -> dict[str, str]:
    """Validate the profile form fields together.

    Returns:
        Field name to error message for every failing field (empty if valid)
    """
    errors: dict[str, str] = {}

    if not name or not str(name).strip():
        errors["name"] = "Name is required"

    for field, result in (
        ("age", validate_age(age)),
        ("weight", validate_weight(weight)),
        ("height", validate_height(height)),
    ):
        if not result.valid:
            errors[field] = result.message

    return errors
