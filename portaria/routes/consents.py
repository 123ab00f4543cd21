from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from portaria import models
from portaria.consent import ConsentLifecycle, snapshot, summary
from portaria.dependencies import get_lifecycle, require_cron
from portaria.errors import ConsentNotFound

router = APIRouter(prefix="/consents", tags=["consents"])


def parse_status(value: str | None) -> models.ConsentStatus | None:
    if not value:
        return None
    value = value.strip().lower()
    for status in models.ConsentStatus:
        if status.value == value:
            return status
    raise HTTPException(status_code=422, detail=f"Unknown status: {value}")


@router.post("/sweep", dependencies=[Depends(require_cron)])
def sweep(lifecycle: ConsentLifecycle = Depends(get_lifecycle)):
    result = lifecycle.sweep_expired()
    return {"marked": result.marked_count, "conversationSids": result.conversation_sids}


@router.get("/by-phone/{phone}")
def consents_for_phone(
    phone: str,
    status: str | None = None,
    lifecycle: ConsentLifecycle = Depends(get_lifecycle),
):
    consents = lifecycle.list_for_phone(phone, status=parse_status(status))
    return [
        {**summary(consent), "transcript": list(consent.transcript or [])}
        for consent in consents
    ]


@router.get("/{conversation_sid}")
def consent_status(
    conversation_sid: str,
    lifecycle: ConsentLifecycle = Depends(get_lifecycle),
):
    try:
        consent = lifecycle.get_status(conversation_sid)
    except ConsentNotFound as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
    return snapshot(consent)
