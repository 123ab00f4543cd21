from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from portaria.config import DATA_DIR, get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def make_engine(database_url: str, **kwargs) -> Engine:
    if database_url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(database_url, future=True, **kwargs)


def make_sessionmaker(bind: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=bind, autoflush=False, autocommit=False, future=True)


DATABASE_URL = get_settings().database_url
if DATABASE_URL.startswith("sqlite:///") and str(DATA_DIR) in DATABASE_URL:
    DATA_DIR.mkdir(parents=True, exist_ok=True)

engine = make_engine(DATABASE_URL)
SessionLocal = make_sessionmaker(engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine | None = None, session_factory: sessionmaker[Session] | None = None) -> None:
    from portaria import models
    from portaria.auth import hash_password

    Base.metadata.create_all(bind=bind or engine)
    settings = get_settings()
    if not (settings.admin_username and settings.admin_password):
        return
    with (session_factory or SessionLocal)() as db:
        if not db.query(models.User).first():
            db.add(
                models.User(
                    username=settings.admin_username.lower(),
                    password_hash=hash_password(settings.admin_password),
                )
            )
            db.commit()
            logger.info("Seeded admin user %s", settings.admin_username)
