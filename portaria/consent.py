"""Consent request lifecycle.

A request is created ``pending`` after the WhatsApp message has been sent and
is resolved exactly once afterwards, either by the resident's reply or by the
timeout sweep. Both resolutions write with a ``status = 'pending'`` guard so a
terminal status is never overwritten.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portaria import models
from portaria.classifier import classify
from portaria.errors import ConsentNotFound, NoPendingFound, SendFailed
from portaria.messaging import SentMessage, consent_variables
from portaria.phone import normalize_phone

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300
MAX_LIST_LIMIT = 100


class Messenger(Protocol):
    def send(self, to: str, variables: dict[str, str]) -> SentMessage: ...


@dataclass(frozen=True)
class StartedConsent:
    conversation_sid: str
    status: models.ConsentStatus = models.ConsentStatus.PENDING


@dataclass(frozen=True)
class Resolution:
    conversation_sid: str
    status: models.ConsentStatus


@dataclass(frozen=True)
class SweepResult:
    marked_count: int = 0
    conversation_sids: list[str] = field(default_factory=list)


def isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def outbound_event(message: SentMessage, at: datetime) -> dict[str, Any]:
    return {
        "type": "outbound",
        "sid": message.sid,
        "status": message.status,
        "timestamp": at.isoformat(),
    }


def inbound_event(
    body: str | None,
    button_payload: str | None,
    message_sid: str | None,
    delivery_status: str | None,
    decision: models.ConsentStatus,
    at: datetime,
) -> dict[str, Any]:
    return {
        "type": "inbound",
        "body": body,
        "buttonPayload": button_payload,
        "sid": message_sid,
        "status": delivery_status,
        "timestamp": at.isoformat(),
        "decision": decision.value,
    }


def snapshot(consent: models.ConsentRequest) -> dict[str, Any]:
    return {
        "conversationSid": consent.conversation_sid,
        "status": consent.status.value,
        "apt": consent.apt,
        "visitor": consent.visitor,
        "company": consent.company,
        "decidedAt": isoformat(consent.decided_at),
        "transcript": list(consent.transcript or []),
    }


def summary(consent: models.ConsentRequest) -> dict[str, Any]:
    return {
        "conversationSid": consent.conversation_sid,
        "toNumber": consent.to_number,
        "status": consent.status.value,
        "apt": consent.apt,
        "visitor": consent.visitor,
        "company": consent.company,
        "ttlSeconds": consent.ttl_seconds,
        "createdAt": isoformat(consent.created_at),
        "decidedAt": isoformat(consent.decided_at),
    }


class ConsentLifecycle:
    def __init__(
        self,
        db: Session,
        messenger: Messenger | None = None,
        clock: Callable[[], datetime] = models.utcnow,
    ):
        self.db = db
        self.messenger = messenger
        self.clock = clock

    def start(
        self,
        to: str,
        apt: str,
        visitor: str,
        company: str,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ) -> StartedConsent:
        if self.messenger is None:
            raise SendFailed("no messenger configured")
        # SendFailed propagates before anything is written.
        message = self.messenger.send(to, consent_variables(apt, company, visitor))
        now = self.clock()

        self.db.add(
            models.ConsentRequest(
                conversation_sid=message.sid,
                to_number=normalize_phone(to),
                apt=apt,
                visitor=visitor,
                company=company,
                status=models.ConsentStatus.PENDING,
                last_msg_sid=message.sid,
                ttl_seconds=ttl_seconds,
                transcript=[outbound_event(message, now)],
                created_at=now,
            )
        )
        try:
            self.db.commit()
        except SQLAlchemyError:
            # The message is already out; the caller still needs the sid to poll.
            self.db.rollback()
            logger.exception("Failed to record consent request %s", message.sid)

        return StartedConsent(conversation_sid=message.sid)

    def get_status(self, conversation_sid: str) -> models.ConsentRequest:
        consent = self.db.get(models.ConsentRequest, conversation_sid)
        if not consent:
            raise ConsentNotFound(conversation_sid)
        return consent

    def latest_pending(self, phone: str) -> models.ConsentRequest | None:
        return (
            self.db.query(models.ConsentRequest)
            .filter(
                models.ConsentRequest.to_number == normalize_phone(phone),
                models.ConsentRequest.status == models.ConsentStatus.PENDING,
            )
            .order_by(models.ConsentRequest.created_at.desc())
            .first()
        )

    def resolve_from_inbound(
        self,
        from_phone: str,
        body: str | None = None,
        button_payload: str | None = None,
        message_sid: str | None = None,
        delivery_status: str | None = None,
    ) -> Resolution:
        decision = classify(button_payload, body)
        phone = normalize_phone(from_phone)

        consent = self.latest_pending(phone)
        if not consent:
            logger.warning("No pending consent found for phone number %s", phone)
            raise NoPendingFound(phone)

        now = self.clock()
        event = inbound_event(body, button_payload, message_sid, delivery_status, decision, now)
        values = {
            "status": decision,
            "decided_at": now,
            "transcript": [*(consent.transcript or []), event],
        }
        if message_sid:
            values["last_msg_sid"] = message_sid

        if not self._finish(consent.conversation_sid, values):
            logger.warning(
                "Consent %s was resolved concurrently, ignoring reply from %s",
                consent.conversation_sid,
                phone,
            )
            raise NoPendingFound(phone)

        logger.info("Consent %s updated to: %s", consent.conversation_sid, decision.value)
        return Resolution(conversation_sid=consent.conversation_sid, status=decision)

    def sweep_expired(self, now: datetime | None = None) -> SweepResult:
        now = now or self.clock()
        if now.tzinfo is not None:
            # Stored timestamps are naive UTC.
            now = now.astimezone(timezone.utc).replace(tzinfo=None)
        pending = (
            self.db.query(models.ConsentRequest)
            .filter(models.ConsentRequest.status == models.ConsentStatus.PENDING)
            .all()
        )
        expired = [
            consent
            for consent in pending
            if consent.created_at + timedelta(seconds=consent.ttl_seconds) < now
        ]

        marked: list[str] = []
        for consent in expired:
            values = {"status": models.ConsentStatus.NO_ANSWER, "decided_at": now}
            if self._finish(consent.conversation_sid, values):
                marked.append(consent.conversation_sid)
                logger.info(
                    "Marked consent %s (apt: %s, visitor: %s) as no_answer",
                    consent.conversation_sid,
                    consent.apt,
                    consent.visitor,
                )

        if marked:
            logger.info("Marked %d consent(s) as no_answer", len(marked))
        return SweepResult(marked_count=len(marked), conversation_sids=marked)

    def list_for_phone(
        self,
        phone: str,
        status: models.ConsentStatus | None = None,
        limit: int = 10,
    ) -> list[models.ConsentRequest]:
        query = self.db.query(models.ConsentRequest).filter(
            models.ConsentRequest.to_number == normalize_phone(phone)
        )
        if status:
            query = query.filter(models.ConsentRequest.status == status)
        return query.order_by(models.ConsentRequest.created_at.desc()).limit(limit).all()

    def list_recent(
        self,
        status: models.ConsentStatus | None = None,
        limit: int = 20,
    ) -> list[models.ConsentRequest]:
        query = self.db.query(models.ConsentRequest)
        if status:
            query = query.filter(models.ConsentRequest.status == status)
        limit = max(1, min(limit, MAX_LIST_LIMIT))
        return query.order_by(models.ConsentRequest.created_at.desc()).limit(limit).all()

    def _finish(self, conversation_sid: str, values: dict[str, Any]) -> bool:
        """Apply a terminal transition only while the row is still pending."""
        result = self.db.execute(
            update(models.ConsentRequest)
            .where(
                models.ConsentRequest.conversation_sid == conversation_sid,
                models.ConsentRequest.status == models.ConsentStatus.PENDING,
            )
            .values(**values, updated_at=self.clock())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            return False
        self.db.commit()
        return True
