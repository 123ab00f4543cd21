from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from portaria.config import APP_VERSION, Settings, get_settings
from portaria.models import utcnow

router = APIRouter(tags=["system"])

SANDBOX_NUMBER = "whatsapp:+14155238886"

ENDPOINTS = {
    "health": "/health",
    "diagnostics": "/diagnostics",
    "mcp": "/mcp",
    "mcpSse": "/mcp/sse",
    "twilioWebhook": "/webhooks/twilio/whatsapp",
    "sweep": "/consents/sweep",
}


def public_base_url(request: Request, settings: Settings) -> str:
    configured = settings.public_base_url
    if configured:
        return configured.rstrip("/")
    return str(request.base_url).rstrip("/")


@router.get("/health")
def health():
    return {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "version": APP_VERSION,
        "endpoints": ENDPOINTS,
    }


@router.get("/diagnostics")
def diagnostics(settings: Settings = Depends(get_settings)):
    recommendations = [f"Set {name} environment variable" for name in settings.missing()]
    if not settings.twilio_status_webhook:
        recommendations.append("Set TWILIO_STATUS_WEBHOOK environment variable")
    if settings.twilio_whatsapp_from == SANDBOX_NUMBER:
        recommendations.append(
            "Using Twilio Sandbox number. Join the sandbox before residents can reply."
        )
    if settings.secret_key == "dev-secret":
        recommendations.append("Set SECRET_KEY environment variable for production")
    if not recommendations:
        recommendations.append("All required environment variables are configured!")

    return {
        "checks": {
            "database": {"url": settings.database_url.split("://", 1)[0]},
            "twilio": {
                "accountSid": bool(settings.twilio_account_sid),
                "authToken": bool(settings.twilio_auth_token),
                "whatsappFrom": bool(settings.twilio_whatsapp_from),
                "contentSid": bool(settings.twilio_content_sid),
                "statusWebhook": bool(settings.twilio_status_webhook),
            },
            "cronSecret": bool(settings.cron_secret),
        },
        "endpoints": ENDPOINTS,
        "recommendations": recommendations,
    }
