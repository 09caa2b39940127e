"""Shared validation utilities"""

import re
from typing import Optional


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a phone number used as the customer's natural key.

    Spaces, dots, dashes and parentheses are dropped; a leading ``+`` is
    kept. The remaining digits are otherwise stored as typed so that the same
    number always maps to the same customer.

    Raises:
        ValueError: If the number has fewer than 6 or more than 15 digits
    """
    if phone is None:
        return None

    phone = phone.strip()
    if not phone:
        return None

    prefix = "+" if phone.startswith("+") else ""
    digits = re.sub(r"[\s().\-]", "", phone.lstrip("+"))

    if not digits.isdigit():
        raise ValueError("Numero di telefono non valido")
    if not 6 <= len(digits) <= 15:
        raise ValueError("Numero di telefono non valido")

    return f"{prefix}{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address, or None when blank

    Raises:
        ValueError: If email format is invalid
    """
    if email is None:
        return None

    email = email.strip().lower()
    if not email:
        return None

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    if not re.match(email_pattern, email):
        raise ValueError("Indirizzo email non valido")

    return email


def blank_to_none(value: Optional[str]) -> Optional[str]:
    """Trim a string; empty strings become None"""
    if value is None:
        return None
    value = value.strip()
    return value or None
