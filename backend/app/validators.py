"""Pure helpers for signup validation: age and social handle normalization."""

import re
from datetime import date
from typing import Optional

_INSTAGRAM_PREFIX = re.compile(r"^(https?://)?(www\.)?instagram\.com/", re.IGNORECASE)
_TIKTOK_PREFIX = re.compile(r"^(https?://)?(www\.)?(vm\.)?tiktok\.com/@?", re.IGNORECASE)


def age_on(date_of_birth: date, today: date) -> int:
    """Whole years between a birth date and ``today``.

    The current year only counts once the birthday has been reached.
    """
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def _normalize_handle(value: Optional[str], prefix: re.Pattern) -> Optional[str]:
    if not value or not value.strip():
        return None
    handle = prefix.sub("", value.strip())
    handle = handle.lstrip("@").split("/")[0].split("?")[0].lower().strip()
    return handle or None


def extract_instagram_username(value: Optional[str]) -> Optional[str]:
    """Turn an Instagram URL, ``@handle`` or bare handle into a lowercase handle."""
    return _normalize_handle(value, _INSTAGRAM_PREFIX)


def extract_tiktok_username(value: Optional[str]) -> Optional[str]:
    """Turn a TikTok URL, ``@handle`` or bare handle into a lowercase handle."""
    return _normalize_handle(value, _TIKTOK_PREFIX)
