"""
Input validators for the Delivery Inspection System.
Provides validation functions for user inputs at the UI and service boundary.
"""

from pathlib import Path
from typing import Optional, Tuple
import re


ORDER_NUMBER_PATTERN = re.compile(r"^[A-Za-z0-9-]{3,40}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_order_number(value: Optional[str]) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Validate order number input.

    Args:
        value: Order number as typed by the user

    Returns:
        Tuple of (is_valid, error_message, normalized_value)
    """
    if not value or not value.strip():
        return False, "Order number is required", value

    normalized = value.strip().upper()

    if not ORDER_NUMBER_PATTERN.match(normalized):
        return False, "Order number may only contain letters, digits and dashes (3-40 characters)", value

    return True, None, normalized


def validate_email(value: Optional[str]) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Validate an optional email address.

    Args:
        value: Email string (optional)

    Returns:
        Tuple of (is_valid, error_message, normalized_value)
    """
    if not value:
        return True, None, None

    normalized = value.strip().lower()

    if not EMAIL_PATTERN.match(normalized):
        return False, f"Invalid email address: {value}", value

    return True, None, normalized


def validate_item_notes(value: Optional[str]) -> Tuple[bool, Optional[str], str]:
    """
    Validate inspector notes for a checklist item.

    Args:
        value: Notes string (optional)

    Returns:
        Tuple of (is_valid, error_message, sanitized_value)
    """
    if not value:
        return True, None, ""

    sanitized = value.strip()

    if len(sanitized) > 2000:
        return False, "Notes too long (max 2000 characters)", value

    return True, None, sanitized


def validate_signature(value: Optional[str]) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Validate signature payload.

    Accepts a data URL (image/png) or a typed signer name.

    Args:
        value: Signature payload

    Returns:
        Tuple of (is_valid, error_message, normalized_value)
    """
    if not value or not value.strip():
        return False, "Signature is required", value

    normalized = value.strip()

    if normalized.startswith("data:") and not normalized.startswith("data:image/"):
        return False, "Signature must be an image", value

    return True, None, normalized


def validate_test_drive_km(value) -> Tuple[bool, Optional[str], Optional[float]]:
    """
    Validate test drive distance (kilometers).

    Returns:
        Tuple of (is_valid, error_message, normalized_value)
    """
    if value is None or value == "":
        return True, None, None

    try:
        km = float(value)
    except (TypeError, ValueError):
        return False, "Distance must be a number", None

    if km < 0:
        return False, "Distance cannot be negative", None
    if km >= 100:
        return False, "Test drive must stay under 100 km", None

    return True, None, km


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename for safe storage.

    Args:
        filename: Original filename

    Returns:
        Sanitized filename
    """
    # Remove path separators
    filename = Path(filename).name

    # Replace dangerous characters
    sanitized = re.sub(r'[<>:"/\\|?*\s]', '_', filename)

    # Limit length
    name = Path(sanitized).stem[:50]
    ext = Path(sanitized).suffix[:10]

    return f"{name}{ext}" if name else f"upload{ext}"
