# /jewelbot/services/whatsapp_service.py

import httpx
import logging
import re
import tenacity
from dataclasses import dataclass
from typing import Optional

from jewelbot.config.settings import settings
from jewelbot.utils.circuit_breaker import CircuitBreaker
from jewelbot.utils.metrics import outbound_messages_counter

# Outbound side of the WhatsApp Cloud API. Text and image sends share one
# request path but fail differently: a text that cannot be delivered raises
# WhatsAppSendError, an image failure is only reported in the SendResult.

logger = logging.getLogger(__name__)


class WhatsAppSendError(Exception):
    """Raised when a text message could not be delivered."""


@dataclass
class SendResult:
    ok: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class WhatsAppService:
    def __init__(self, access_token: str, phone_id: str, api_version: str = "v18.0"):
        self.access_token = access_token
        self.phone_id = phone_id
        self.http_client = httpx.AsyncClient(timeout=15.0)
        self.base_url = f"https://graph.facebook.com/{api_version}"
        self.circuit_breaker = CircuitBreaker("whatsapp")

    @tenacity.retry(
        retry=tenacity.retry_if_exception_type((httpx.RequestError, httpx.TimeoutException)),
        stop=tenacity.stop_after_attempt(3),
        wait=tenacity.wait_exponential(multiplier=2, min=1, max=10),
        before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def resilient_api_call(self, func, *args, **kwargs):
        return await self.circuit_breaker.call(func, *args, **kwargs)

    @staticmethod
    def clean_phone(to_phone: str) -> str:
        clean = re.sub(r"[^\d+]", "", to_phone or "")
        if clean and not clean.startswith("+"):
            clean = "+" + clean
        return clean

    async def send_whatsapp_request(self, payload: dict) -> SendResult:
        """Generic method to send a request to the WhatsApp messages API. Never raises."""
        to_phone = payload.get("to")
        message_type = payload.get("type", "unknown")
        if not to_phone:
            logger.error("send_whatsapp_request called without a recipient.")
            return SendResult(ok=False, error="missing recipient")
        try:
            url = f"{self.base_url}/{self.phone_id}/messages"
            headers = {"Authorization": f"Bearer {self.access_token}", "Content-Type": "application/json"}
            response = await self.resilient_api_call(self.http_client.post, url, json=payload, headers=headers)

            if response.status_code == 200:
                message_id = (response.json().get("messages") or [{}])[0].get("id")
                logger.info(f"WhatsApp {message_type} sent to {to_phone}, wamid: {message_id}")
                outbound_messages_counter.labels(message_type=message_type, status="sent").inc()
                return SendResult(ok=True, message_id=message_id)

            try:
                error_message = (response.json().get("error") or {}).get("message", "Unknown error")
            except ValueError:
                error_message = response.text
            logger.error(f"whatsapp_send_failed to {to_phone}: {response.status_code} - {error_message}")
            outbound_messages_counter.labels(message_type=message_type, status="failed").inc()
            return SendResult(ok=False, error=f"{response.status_code}: {error_message}")
        except Exception as e:
            logger.error(f"whatsapp_send_error to {to_phone}: {e}", exc_info=True)
            outbound_messages_counter.labels(message_type=message_type, status="error").inc()
            return SendResult(ok=False, error=str(e))

    def _base_payload(self, to_phone: str) -> dict:
        return {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": self.clean_phone(to_phone),
        }

    async def send_text(self, to_phone: str, body: str) -> SendResult:
        """Sends a text message. Raises WhatsAppSendError on failure."""
        payload = self._base_payload(to_phone)
        payload["type"] = "text"
        payload["text"] = {"body": body[:4096]}
        result = await self.send_whatsapp_request(payload)
        if not result.ok:
            raise WhatsAppSendError(f"Text message to {to_phone} failed: {result.error}")
        return result

    async def send_image(self, to_phone: str, image_url: str, caption: str = "") -> SendResult:
        """Sends an image by link. Failures are logged and returned, not raised."""
        payload = self._base_payload(to_phone)
        payload["type"] = "image"
        payload["image"] = {"link": image_url, "caption": caption[:1024]}
        result = await self.send_whatsapp_request(payload)
        if not result.ok:
            logger.warning(f"Image {image_url} to {to_phone} was not delivered: {result.error}")
        return result

    def start(self):
        if self.http_client.is_closed:
            self.http_client = httpx.AsyncClient(timeout=15.0)

    async def close(self):
        if not self.http_client.is_closed:
            await self.http_client.aclose()


# Globally accessible instance
whatsapp_service = WhatsAppService(
    settings.whatsapp_access_token,
    settings.whatsapp_phone_id,
    settings.whatsapp_api_version,
)
