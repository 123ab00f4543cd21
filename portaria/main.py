from __future__ import annotations

import logging

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from portaria.config import APP_VERSION, get_settings
from portaria.db import init_db
from portaria.routes import admin_consents, admin_residents, auth, consents, mcp, system, webhooks

logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(title="Portaria", version=APP_VERSION)

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.secret_key,
    session_cookie="portaria_session",
)


@app.on_event("startup")
def startup() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()
    missing = settings.missing()
    if missing:
        logger.warning("Missing configuration: %s", ", ".join(missing))


app.include_router(system.router)
app.include_router(auth.router)
app.include_router(mcp.router)
app.include_router(webhooks.router)
app.include_router(consents.router)
app.include_router(admin_consents.router)
app.include_router(admin_residents.router)

