"""
Utility helpers shared across services.
"""

import re
from typing import Optional

from .config import get_settings

EMAIL_PATTERN = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")


def normalize_email(value: Optional[str]) -> str:
    """Trim and lowercase an e-mail address; missing values become ''."""
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def is_valid_email(value: Optional[str]) -> bool:
    if not isinstance(value, str) or not value:
        return False
    return bool(EMAIL_PATTERN.fullmatch(value.strip()))


def absolute_url(path: str, base: Optional[str] = None) -> str:
    """
    Turn a relative path into an absolute URL using PUBLIC_BASE_URL.
    """
    settings = get_settings()
    base_url = (base or settings.public_base_url).rstrip("/")
    if not path:
        return base_url + "/"
    if path.startswith("http://") or path.startswith("https://"):
        return path
    if not path.startswith("/"):
        path = "/" + path
    return base_url + path
