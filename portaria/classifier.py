from __future__ import annotations

from portaria.models import ConsentStatus

APPROVE_PAYLOADS = {"approve", "approved"}
DENY_PAYLOADS = {"deny", "denied"}

APPROVE_REPLIES = {"approve", "approved", "yes", "sim", "oui", "sí", "si", "ok", "okay"}
DENY_REPLIES = {"deny", "denied", "no", "nao", "não", "non"}


def classify(button_payload: str | None = None, body: str | None = None) -> ConsentStatus:
    """Map an inbound reply to approved, denied or failed.

    A quick-reply button payload wins over free text. Free text must match a
    known word exactly after trimming and lowercasing.
    """
    if button_payload:
        payload = str(button_payload).lower()
        if payload in APPROVE_PAYLOADS:
            return ConsentStatus.APPROVED
        if payload in DENY_PAYLOADS:
            return ConsentStatus.DENIED
        return ConsentStatus.FAILED

    reply = str(body or "").strip().lower()
    if reply in APPROVE_REPLIES:
        return ConsentStatus.APPROVED
    if reply in DENY_REPLIES:
        return ConsentStatus.DENIED
    return ConsentStatus.FAILED
