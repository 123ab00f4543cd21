from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = BASE_DIR / "data"
APP_VERSION = "1.0.0"

load_dotenv(BASE_DIR / ".env")


def env(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


@dataclass(frozen=True)
class Settings:
    database_url: str
    secret_key: str
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_whatsapp_from: str = ""
    twilio_content_sid: str = ""
    twilio_status_webhook: str = ""
    public_base_url: str = ""
    admin_username: str = ""
    admin_password: str = ""
    cron_secret: str = ""
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            database_url=env("DATABASE_URL", f"sqlite:///{DATA_DIR / 'portaria.db'}"),
            secret_key=env("SECRET_KEY", "dev-secret"),
            twilio_account_sid=env("TWILIO_ACCOUNT_SID"),
            twilio_auth_token=env("TWILIO_AUTH_TOKEN"),
            twilio_whatsapp_from=env("TWILIO_WHATSAPP_FROM"),
            twilio_content_sid=env("TWILIO_CONTENT_SID"),
            twilio_status_webhook=env("TWILIO_STATUS_WEBHOOK"),
            public_base_url=env("PUBLIC_BASE_URL").rstrip("/"),
            admin_username=env("ADMIN_USERNAME"),
            admin_password=env("ADMIN_PASSWORD"),
            cron_secret=env("CRON_SECRET"),
            log_level=env("LOG_LEVEL", "INFO").upper(),
        )

    def missing(self) -> list[str]:
        """Names of unset variables the WhatsApp flow cannot work without."""
        required = {
            "TWILIO_ACCOUNT_SID": self.twilio_account_sid,
            "TWILIO_AUTH_TOKEN": self.twilio_auth_token,
            "TWILIO_WHATSAPP_FROM": self.twilio_whatsapp_from,
            "TWILIO_CONTENT_SID": self.twilio_content_sid,
        }
        return [name for name, value in required.items() if not value]


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
