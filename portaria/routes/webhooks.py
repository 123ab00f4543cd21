from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool
from starlette.responses import JSONResponse, Response
from twilio.twiml.messaging_response import MessagingResponse

from portaria import models
from portaria.config import Settings, get_settings
from portaria.consent import ConsentLifecycle
from portaria.dependencies import get_lifecycle, get_messenger
from portaria.errors import NoPendingFound
from portaria.messaging import TwilioMessenger
from portaria.routes.system import public_base_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks/twilio", tags=["webhooks"])

CONFIRMATIONS = {
    models.ConsentStatus.APPROVED: "Thank you! Entry has been approved.",
    models.ConsentStatus.DENIED: "Thank you! Entry has been denied.",
}
NOT_UNDERSTOOD = "Sorry, I didn't understand your response."


def signed_url(request: Request, settings: Settings) -> str:
    if not settings.public_base_url:
        return str(request.url)
    url = public_base_url(request, settings) + request.url.path
    if request.url.query:
        url += "?" + request.url.query
    return url


def twiml(message: str) -> Response:
    reply = MessagingResponse()
    reply.message(message)
    return Response(content=str(reply), media_type="text/xml")


@router.post("/whatsapp")
async def whatsapp_inbound(
    request: Request,
    settings: Settings = Depends(get_settings),
    messenger: TwilioMessenger = Depends(get_messenger),
    lifecycle: ConsentLifecycle = Depends(get_lifecycle),
):
    form = await request.form()
    params = {key: str(value) for key, value in form.items()}
    signature = request.headers.get("X-Twilio-Signature", "")

    if not messenger.validate_signature(signed_url(request, settings), params, signature):
        logger.error("Invalid Twilio signature on WhatsApp webhook")
        return JSONResponse({"error": "Invalid signature"}, status_code=401)

    try:
        resolution = await run_in_threadpool(
            lifecycle.resolve_from_inbound,
            params.get("From", ""),
            body=params.get("Body"),
            button_payload=params.get("ButtonPayload"),
            message_sid=params.get("MessageSid"),
            delivery_status=params.get("SmsStatus"),
        )
    except NoPendingFound:
        # Acknowledge anyway so Twilio does not keep retrying.
        return JSONResponse({"message": "No pending consent found"}, status_code=200)

    return twiml(CONFIRMATIONS.get(resolution.status, NOT_UNDERSTOOD))


@router.get("/whatsapp")
def whatsapp_status():
    return {
        "message": "Twilio WhatsApp webhook endpoint is active",
        "timestamp": models.utcnow().isoformat(),
    }
