"""Shared validation utilities"""

import re
from typing import Iterable, Optional


def validate_us_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize US phone number to E.164 format.

    Args:
        phone: Phone number string in various formats

    Returns:
        Normalized phone number in E.164 format (+1XXXXXXXXXX)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    digits = re.sub(r"\D", "", phone)

    # Handle +1 prefix
    if digits.startswith("1") and len(digits) == 11:
        digits = digits[1:]

    if len(digits) != 10:
        raise ValueError("Phone number must be 10 digits for US numbers")

    return f"+1{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_choice(value: Optional[str], choices: Iterable[str], field: str) -> Optional[str]:
    """Check an enum-like string field against its allowed values."""
    if value is None:
        return value
    choices = tuple(choices)
    if value not in choices:
        raise ValueError(f"{field} must be one of: {', '.join(choices)}")
    return value


def validate_choices(values: Optional[list], choices: Iterable[str], field: str) -> Optional[list]:
    if values is None:
        return values
    choices = tuple(choices)
    invalid = [v for v in values if v not in choices]
    if invalid:
        raise ValueError(f"Invalid {field}: {', '.join(invalid)}")
    # Preserve order, drop duplicates
    return list(dict.fromkeys(values))
