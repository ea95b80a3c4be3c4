# /jewelbot/routes/webhooks.py

import json
import structlog
from fastapi import APIRouter, HTTPException, Request, Query
from fastapi.responses import JSONResponse, PlainTextResponse

from jewelbot.config.settings import settings
from jewelbot.services import message_service
from jewelbot.utils.metrics import response_time_histogram
from jewelbot.utils.rate_limiter import limiter

# This file defines the WhatsApp webhook endpoints. Meta retries deliveries
# that are not acknowledged, so every POST is answered with success unless
# something truly unexpected happened.

router = APIRouter(
    tags=["Webhooks"]
)

log = structlog.get_logger(__name__)


async def verify_whatsapp_webhook(
    hub_mode: str = Query(None, alias="hub.mode"),
    hub_verify_token: str = Query(None, alias="hub.verify_token"),
    hub_challenge: str = Query(None, alias="hub.challenge")
):
    """WhatsApp webhook verification (GET request)."""
    if hub_mode == "subscribe" and hub_verify_token == settings.whatsapp_verify_token:
        log.info("WhatsApp webhook verification successful.")
        return PlainTextResponse(hub_challenge or "")
    log.error("WhatsApp webhook verification failed.", mode=hub_mode)
    raise HTTPException(status_code=403, detail="Forbidden")


@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def handle_whatsapp_webhook(request: Request):
    """Answers user messages; status updates are acknowledged and ignored."""
    with response_time_histogram.labels(endpoint="whatsapp_webhook").time():
        body = await request.body()
        try:
            data = json.loads(body.decode("utf-8")) if body else None
        except (UnicodeDecodeError, json.JSONDecodeError):
            log.warning("Ignoring webhook with a malformed JSON body.")
            return JSONResponse({"status": "success"})
        log.debug("Webhook payload", data=data)

        messages, status_count = message_service.extract_messages(data)
        if status_count:
            log.info("Acknowledged status updates", count=status_count)
        if not messages:
            return JSONResponse({"status": "success"})

        try:
            for message in messages:
                log.info("Processing incoming message", sender=message.get("from"), type=message.get("type"))
                await message_service.process_webhook_message(message)
        except Exception:
            log.exception("Unexpected error while processing webhook.")
            return JSONResponse({"status": "error"}, status_code=500)

        log.info("Webhook processing complete.")
        return JSONResponse({"status": "success"})


router.add_api_route("/whatsapp", verify_whatsapp_webhook, methods=["GET"])
router.add_api_route("/whatsapp", handle_whatsapp_webhook, methods=["POST"])

# Bare /webhook path, as registered with the Meta app before versioned routes.
legacy_router = APIRouter(tags=["Webhooks"])
legacy_router.add_api_route("/webhook", verify_whatsapp_webhook, methods=["GET"])
legacy_router.add_api_route("/webhook", handle_whatsapp_webhook, methods=["POST"])
