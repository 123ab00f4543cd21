from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from twilio.base.exceptions import TwilioException
from twilio.request_validator import RequestValidator
from twilio.rest import Client

from portaria.config import Settings
from portaria.errors import SendFailed
from portaria.phone import provider_address

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SentMessage:
    sid: str
    status: str


def consent_variables(apt: str, company: str, visitor: str) -> dict[str, str]:
    # Slot order of the approve/deny content template.
    return {"1": apt, "2": company, "3": visitor}


class TwilioMessenger:
    def __init__(self, settings: Settings, client: Client | None = None):
        self.settings = settings
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            if not (self.settings.twilio_account_sid and self.settings.twilio_auth_token):
                raise SendFailed("Twilio credentials not configured")
            self._client = Client(
                self.settings.twilio_account_sid, self.settings.twilio_auth_token
            )
        return self._client

    def send(self, to: str, variables: dict[str, str]) -> SentMessage:
        if not (self.settings.twilio_whatsapp_from and self.settings.twilio_content_sid):
            raise SendFailed("Twilio WhatsApp configuration incomplete")

        params = {
            "from_": self.settings.twilio_whatsapp_from,
            "to": provider_address(to),
            "content_sid": self.settings.twilio_content_sid,
            "content_variables": json.dumps(variables),
        }
        if self.settings.twilio_status_webhook:
            params["status_callback"] = self.settings.twilio_status_webhook

        try:
            message = self.client.messages.create(**params)
        except TwilioException as exc:
            logger.error("Twilio rejected WhatsApp message to %s: %s", to, exc)
            raise SendFailed(str(exc)) from exc

        logger.info("Sent WhatsApp consent message sid=%s to=%s", message.sid, to)
        return SentMessage(sid=message.sid, status=str(message.status))

    def validate_signature(self, url: str, params: dict[str, str], signature: str) -> bool:
        if not self.settings.twilio_auth_token:
            logger.error("TWILIO_AUTH_TOKEN not configured, rejecting webhook")
            return False
        if not signature:
            return False
        validator = RequestValidator(self.settings.twilio_auth_token)
        return validator.validate(url, params, signature)
