# utils/sanitization.py
from typing import Optional
import re

CONTROL_CHARS = r"[\x00-\x08\x0b-\x0c\x0e-\x1f\x7f-\x9f]"


def clean_text(value: Optional[str]) -> str:
    """Strip control characters and collapse whitespace (PDF text, names)."""
    if value is None:
        return ""

    text = re.sub(CONTROL_CHARS, "", value)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def clean_optional(value: Optional[str]) -> Optional[str]:
    """Like clean_text, but keeps None / empty as None so nullable columns stay NULL."""
    text = clean_text(value)
    return text or None


def preview(value: Optional[str], limit: int = 60) -> str:
    text = clean_text(value)
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
