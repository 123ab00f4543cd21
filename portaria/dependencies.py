from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from portaria import models
from portaria.auth import secret_matches
from portaria.config import Settings, get_settings
from portaria.consent import ConsentLifecycle
from portaria.db import get_db
from portaria.directory import ResidentDirectory
from portaria.messaging import TwilioMessenger
from portaria.tools import ToolContext


def get_messenger(settings: Settings = Depends(get_settings)) -> TwilioMessenger:
    return TwilioMessenger(settings)


def get_directory(db: Session = Depends(get_db)) -> ResidentDirectory:
    return ResidentDirectory(db)


def get_lifecycle(
    db: Session = Depends(get_db),
    messenger: TwilioMessenger = Depends(get_messenger),
) -> ConsentLifecycle:
    return ConsentLifecycle(db, messenger)


def get_tool_context(
    directory: ResidentDirectory = Depends(get_directory),
    lifecycle: ConsentLifecycle = Depends(get_lifecycle),
) -> ToolContext:
    return ToolContext(directory=directory, lifecycle=lifecycle)


def get_optional_user(request: Request, db: Session) -> models.User | None:
    user_id = request.session.get("user_id")
    if not user_id:
        return None
    return db.query(models.User).filter(models.User.id == user_id).first()


def require_admin(request: Request, db: Session = Depends(get_db)) -> models.User:
    user = get_optional_user(request, db)
    if not user:
        raise HTTPException(status_code=401, detail="Login required")
    return user


def require_cron(
    x_cron_secret: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    if settings.cron_secret and not secret_matches(settings.cron_secret, x_cron_secret):
        raise HTTPException(status_code=403, detail="Access denied")
