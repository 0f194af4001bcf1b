import html
import re
from typing import Optional


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Escape HTML special characters before interpolating user input into e-mail markup.
    Returns None if input is None.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    return html.escape(value, quote=True)


def clean_text(value: Optional[str], max_length: int = 500) -> Optional[str]:
    """
    Trim user input and strip control characters.

    Raises:
        ValueError: If input exceeds max_length
    """
    if value is None:
        return None

    value = str(value).strip()

    if len(value) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")

    return re.sub(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]", "", value)
