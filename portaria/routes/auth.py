from __future__ import annotations

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from sqlalchemy.orm import Session

from portaria import auth, models
from portaria.db import get_db
from portaria.dependencies import require_admin

router = APIRouter(tags=["auth"])


@router.post("/login")
def login(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db),
):
    user = auth.authenticate_user(db, username.strip(), password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid username or password")

    auth.login_user(request.session, user)
    return {"username": user.username}


@router.post("/logout")
def logout(request: Request, user: models.User = Depends(require_admin)):
    auth.logout_user(request.session)
    return {"message": "Logged out"}
