# /jewelbot/services/message_service.py

import logging
from typing import Any, Dict, List, Tuple

from jewelbot.config import strings
from jewelbot.services.dialogue_service import dialogue_service
from jewelbot.services.reply_service import reply_service
from jewelbot.services.whatsapp_service import WhatsAppSendError
from jewelbot.utils.metrics import message_counter

# Entry point for inbound WhatsApp events: pulls the user messages out of the
# webhook envelope and hands text messages to the dialogue service.

logger = logging.getLogger(__name__)


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def extract_messages(data: Any) -> Tuple[List[Dict[str, Any]], int]:
    """
    Walks entry[].changes[].value of a webhook payload.

    Returns:
        (user messages, number of status updates seen). Anything that does not
        have the expected shape is skipped.
    """
    messages: List[Dict[str, Any]] = []
    status_count = 0
    if not isinstance(data, dict):
        return messages, status_count

    for entry in _as_list(data.get("entry")):
        if not isinstance(entry, dict):
            continue
        for change in _as_list(entry.get("changes")):
            if not isinstance(change, dict):
                continue
            value = change.get("value")
            if not isinstance(value, dict):
                continue
            status_count += len(_as_list(value.get("statuses")))
            messages.extend(m for m in _as_list(value.get("messages")) if isinstance(m, dict))
    return messages, status_count


async def process_webhook_message(message: Dict[str, Any]) -> str:
    """
    Answers one inbound message. Returns the processing status used for
    metrics: "ignored", "unsupported", "processed" or "failed".
    """
    from_number = message.get("from")
    message_type = message.get("type", "unknown")
    if not from_number or not isinstance(from_number, str):
        logger.warning("Webhook message missing 'from'. Ignoring.")
        message_counter.labels(status="ignored", message_type=message_type).inc()
        return "ignored"

    try:
        if message_type != "text":
            logger.info(f"Unsupported '{message_type}' message from {from_number}.")
            await reply_service.render(from_number, strings.UNSUPPORTED_MESSAGE_REPLY)
            status = "unsupported"
        else:
            text_obj = message.get("text")
            body = text_obj.get("body") if isinstance(text_obj, dict) else None
            text = body.strip() if isinstance(body, str) else ""
            if not text:
                logger.info(f"Ignoring empty message from {from_number}")
                message_counter.labels(status="ignored", message_type=message_type).inc()
                return "ignored"
            await dialogue_service.respond(from_number, text)
            status = "processed"
    except WhatsAppSendError as e:
        logger.error(f"Reply to {from_number} failed: {e}")
        status = "failed"

    message_counter.labels(status=status, message_type=message_type).inc()
    return status
