from datetime import datetime, timedelta, timezone

import pytest

from portaria import models
from portaria.consent import ConsentLifecycle
from portaria.errors import ConsentNotFound, NoPendingFound, SendFailed

PHONE = "+5511999999999"
T0 = datetime(2026, 10, 19, 12, 0, 0)


def start(lifecycle, visitor="John", ttl=300, to=PHONE):
    return lifecycle.start(to=to, apt="1507", visitor=visitor, company="Amazon", ttl_seconds=ttl)


def test_start_creates_pending_request(lifecycle, messenger):
    started = start(lifecycle)

    assert started.status == models.ConsentStatus.PENDING
    consent = lifecycle.get_status(started.conversation_sid)
    assert consent.status == models.ConsentStatus.PENDING
    assert consent.decided_at is None
    assert consent.ttl_seconds == 300
    assert consent.created_at == T0
    assert len(consent.transcript) == 1
    event = consent.transcript[0]
    assert event["type"] == "outbound"
    assert event["sid"] == started.conversation_sid
    assert event["status"] == "queued"
    assert messenger.sent == [(PHONE, {"1": "1507", "2": "Amazon", "3": "John"})]


def test_start_stores_canonical_phone(lifecycle):
    started = start(lifecycle, to="+55 11 99999-9999")

    assert lifecycle.get_status(started.conversation_sid).to_number == PHONE


def test_send_failure_persists_nothing(lifecycle, messenger, db):
    messenger.failure = "provider rejected"

    with pytest.raises(SendFailed):
        start(lifecycle)

    assert db.query(models.ConsentRequest).count() == 0


def test_duplicate_sid_keeps_first_row(lifecycle, messenger, db):
    messenger.sids = ["SMdup", "SMdup"]
    start(lifecycle, visitor="John")
    db.expunge_all()

    started = start(lifecycle, visitor="Paul")

    assert started.conversation_sid == "SMdup"
    assert started.status == models.ConsentStatus.PENDING
    assert db.query(models.ConsentRequest).count() == 1
    assert lifecycle.get_status("SMdup").visitor == "John"


def test_get_status_unknown(lifecycle):
    with pytest.raises(ConsentNotFound):
        lifecycle.get_status("SMmissing")


def test_button_reply_approves(lifecycle, clock):
    started = start(lifecycle)
    clock.advance(30)

    resolution = lifecycle.resolve_from_inbound(
        "whatsapp:+5511999999999",
        button_payload="approve",
        message_sid="SMreply",
        delivery_status="received",
    )

    assert resolution.conversation_sid == started.conversation_sid
    assert resolution.status == models.ConsentStatus.APPROVED
    consent = lifecycle.get_status(started.conversation_sid)
    assert consent.status == models.ConsentStatus.APPROVED
    assert consent.decided_at == T0 + timedelta(seconds=30)
    assert consent.last_msg_sid == "SMreply"
    assert len(consent.transcript) == 2
    inbound = consent.transcript[1]
    assert inbound["type"] == "inbound"
    assert inbound["decision"] == "approved"
    assert inbound["buttonPayload"] == "approve"
    assert inbound["sid"] == "SMreply"
    assert inbound["status"] == "received"


def test_text_reply_denies(lifecycle):
    started = start(lifecycle)

    resolution = lifecycle.resolve_from_inbound(PHONE, body=" Não ")

    assert resolution.status == models.ConsentStatus.DENIED
    assert lifecycle.get_status(started.conversation_sid).transcript[1]["body"] == " Não "


def test_unrecognized_reply_fails_request(lifecycle):
    started = start(lifecycle)

    lifecycle.resolve_from_inbound(PHONE, body="who is this?")

    consent = lifecycle.get_status(started.conversation_sid)
    assert consent.status == models.ConsentStatus.FAILED
    assert consent.decided_at is not None


def test_reply_without_pending_request(lifecycle):
    with pytest.raises(NoPendingFound):
        lifecycle.resolve_from_inbound(PHONE, body="yes")


def test_reply_resolves_most_recent_pending(lifecycle, clock):
    older = start(lifecycle, visitor="First")
    clock.advance(10)
    newer = start(lifecycle, visitor="Second")

    resolution = lifecycle.resolve_from_inbound(PHONE, body="yes")

    assert resolution.conversation_sid == newer.conversation_sid
    assert lifecycle.get_status(older.conversation_sid).status == models.ConsentStatus.PENDING


def test_reply_from_other_number_is_ignored(lifecycle):
    started = start(lifecycle)

    with pytest.raises(NoPendingFound):
        lifecycle.resolve_from_inbound("whatsapp:+5511000000000", body="yes")

    assert lifecycle.get_status(started.conversation_sid).status == models.ConsentStatus.PENDING


def test_terminal_status_is_absorbing(lifecycle, clock):
    started = start(lifecycle)
    lifecycle.resolve_from_inbound(PHONE, body="no")
    clock.advance(1000)

    with pytest.raises(NoPendingFound):
        lifecycle.resolve_from_inbound(PHONE, body="yes")
    assert lifecycle.sweep_expired().marked_count == 0

    consent = lifecycle.get_status(started.conversation_sid)
    assert consent.status == models.ConsentStatus.DENIED
    assert len(consent.transcript) == 2


def test_late_reply_after_sweep_is_rejected(lifecycle, clock):
    started = start(lifecycle)
    lifecycle.sweep_expired(T0 + timedelta(seconds=301))

    with pytest.raises(NoPendingFound):
        lifecycle.resolve_from_inbound(PHONE, button_payload="approve")

    assert lifecycle.get_status(started.conversation_sid).status == models.ConsentStatus.NO_ANSWER


def test_reply_racing_with_sweep_loses(lifecycle, monkeypatch):
    started = start(lifecycle)
    stale = lifecycle.latest_pending(PHONE)
    lifecycle.sweep_expired(T0 + timedelta(seconds=301))
    monkeypatch.setattr(lifecycle, "latest_pending", lambda phone: stale)

    with pytest.raises(NoPendingFound):
        lifecycle.resolve_from_inbound(PHONE, body="yes")

    consent = lifecycle.get_status(started.conversation_sid)
    assert consent.status == models.ConsentStatus.NO_ANSWER
    assert len(consent.transcript) == 1


def test_sweep_marks_expired_once(lifecycle):
    started = start(lifecycle, ttl=300)

    assert lifecycle.sweep_expired(T0 + timedelta(seconds=300)).marked_count == 0

    first = lifecycle.sweep_expired(T0 + timedelta(seconds=301))
    assert first.marked_count == 1
    assert first.conversation_sids == [started.conversation_sid]
    consent = lifecycle.get_status(started.conversation_sid)
    assert consent.status == models.ConsentStatus.NO_ANSWER
    assert consent.decided_at == T0 + timedelta(seconds=301)

    assert lifecycle.sweep_expired(T0 + timedelta(seconds=600)).marked_count == 0


def test_sweep_is_idempotent_for_same_instant(lifecycle, clock):
    start(lifecycle, ttl=60)
    clock.advance(30)
    start(lifecycle, ttl=600)
    now = T0 + timedelta(seconds=120)

    assert lifecycle.sweep_expired(now).marked_count == 1
    assert lifecycle.sweep_expired(now).marked_count == 0


def test_sweep_uses_clock_by_default(lifecycle, clock):
    start(lifecycle, ttl=10)
    clock.advance(11)

    assert lifecycle.sweep_expired().marked_count == 1


def test_list_for_phone(lifecycle, clock):
    first = start(lifecycle, visitor="First")
    clock.advance(5)
    second = start(lifecycle, visitor="Second")
    lifecycle.resolve_from_inbound(PHONE, body="ok")

    everything = lifecycle.list_for_phone("whatsapp:+5511999999999")
    assert [c.conversation_sid for c in everything] == [
        second.conversation_sid,
        first.conversation_sid,
    ]
    pending = lifecycle.list_for_phone(PHONE, status=models.ConsentStatus.PENDING)
    assert [c.conversation_sid for c in pending] == [first.conversation_sid]


def test_list_recent_caps_limit(lifecycle, clock):
    for _ in range(3):
        start(lifecycle)
        clock.advance(1)

    assert len(lifecycle.list_recent(limit=2)) == 2
    assert len(lifecycle.list_recent(limit=1000)) == 3
    assert lifecycle.list_recent(status=models.ConsentStatus.APPROVED) == []


def test_sweep_accepts_aware_time(lifecycle):
    started = start(lifecycle, ttl=300)
    # 09:05 at UTC-3 is 12:05 UTC, five minutes after creation.
    brt = timezone(timedelta(hours=-3))

    assert lifecycle.sweep_expired(datetime(2026, 10, 19, 9, 4, 0, tzinfo=brt)).marked_count == 0
    result = lifecycle.sweep_expired(datetime(2026, 10, 19, 9, 5, 1, tzinfo=brt))

    assert result.conversation_sids == [started.conversation_sid]
    assert lifecycle.get_status(started.conversation_sid).decided_at == T0 + timedelta(seconds=301)


def test_lifecycle_without_messenger(lifecycle, db, clock):
    started = start(lifecycle, ttl=10)
    reader = ConsentLifecycle(db, clock=clock)

    with pytest.raises(SendFailed):
        start(reader)
    assert reader.get_status(started.conversation_sid).status == models.ConsentStatus.PENDING
    clock.advance(11)
    assert reader.sweep_expired().marked_count == 1
