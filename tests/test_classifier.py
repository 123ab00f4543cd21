import pytest

from portaria.classifier import classify
from portaria.models import ConsentStatus


@pytest.mark.parametrize("payload", ["approve", "APPROVED", "Approve"])
def test_approve_button(payload):
    assert classify(button_payload=payload) == ConsentStatus.APPROVED


@pytest.mark.parametrize("payload", ["deny", "Denied"])
def test_deny_button(payload):
    assert classify(button_payload=payload) == ConsentStatus.DENIED


def test_unknown_button_fails_even_with_valid_text():
    assert classify(button_payload="maybe", body="yes") == ConsentStatus.FAILED


def test_button_wins_over_conflicting_text():
    assert classify(button_payload="approve", body="no") == ConsentStatus.APPROVED
    assert classify(button_payload="deny", body="yes") == ConsentStatus.DENIED


@pytest.mark.parametrize(
    "body",
    ["approve", "approved", "yes", "sim", "oui", "sí", "si", "ok", "okay", "  YES  ", "Sim"],
)
def test_affirmative_replies(body):
    assert classify(body=body) == ConsentStatus.APPROVED


@pytest.mark.parametrize("body", ["deny", "denied", "no", "nao", "não", "non", " NÃO\n"])
def test_negative_replies(body):
    assert classify(body=body) == ConsentStatus.DENIED


@pytest.mark.parametrize(
    "body",
    [None, "", "   ", "yes please", "yes!", "nope", "ja", "approve it", "o k"],
)
def test_unrecognized_replies_fail(body):
    assert classify(body=body) == ConsentStatus.FAILED


def test_classify_is_total():
    samples = [None, "", "approve", "deny", "x", "  ", "sí", "NON", "🙂"]
    for payload in samples:
        for body in samples:
            assert classify(payload, body) in {
                ConsentStatus.APPROVED,
                ConsentStatus.DENIED,
                ConsentStatus.FAILED,
            }
