from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from portaria import models
from portaria.consent import ConsentLifecycle, summary
from portaria.dependencies import get_lifecycle, require_admin
from portaria.routes.consents import parse_status

router = APIRouter(prefix="/admin/consents", tags=["admin"])


@router.get("")
def list_consents(
    status: str | None = None,
    limit: int = Query(20, gt=0, le=100),
    lifecycle: ConsentLifecycle = Depends(get_lifecycle),
    user: models.User = Depends(require_admin),
):
    consents = lifecycle.list_recent(status=parse_status(status), limit=limit)
    return [summary(consent) for consent in consents]
