import html
import re
from typing import Any, Optional

import bleach

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def clean_text(value: Optional[str], max_length: int = 2000) -> Optional[str]:
    """
    Trim free text (notes, dedications), dropping control characters and HTML
    tags. Entities are decoded back to plain text. Returns None for blank input.

    Raises:
        ValueError: If input exceeds max_length
    """
    if value is None:
        return None

    value = _CONTROL_CHARS.sub("", str(value))
    value = html.unescape(bleach.clean(value, tags=[], attributes={}, strip=True)).strip()
    if not value:
        return None

    if len(value) > max_length:
        raise ValueError(f"Testo troppo lungo (massimo {max_length} caratteri)")

    return value


def clean_payload(data: dict[str, Any]) -> dict[str, Any]:
    """
    Trim every string in a form payload, recursively.
    Used on consent submissions before they are stored as JSON.
    """
    if not data:
        return data

    cleaned = {}
    for key, value in data.items():
        if isinstance(value, str):
            cleaned[key] = _CONTROL_CHARS.sub("", value).strip()
        elif isinstance(value, dict):
            cleaned[key] = clean_payload(value)
        elif isinstance(value, list):
            cleaned[key] = [
                (
                    clean_payload(item)
                    if isinstance(item, dict)
                    else _CONTROL_CHARS.sub("", item).strip() if isinstance(item, str) else item
                )
                for item in value
            ]
        else:
            cleaned[key] = value

    return cleaned
