from __future__ import annotations

import re

PROVIDER_PREFIX = "whatsapp:"

_SEPARATORS = re.compile(r"[\s\-.()]")


def normalize_phone(value: str | None) -> str:
    """Canonical form used for storage and matching, e.g. ``+5511999999999``."""
    phone = (value or "").strip()
    if phone.lower().startswith(PROVIDER_PREFIX):
        phone = phone[len(PROVIDER_PREFIX):]
    phone = _SEPARATORS.sub("", phone)
    if phone.startswith("00"):
        phone = "+" + phone[2:]
    return phone


def provider_address(value: str) -> str:
    return f"{PROVIDER_PREFIX}{normalize_phone(value)}"
