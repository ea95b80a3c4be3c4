# backend/tests/unit/test_message_service.py
import pytest
from unittest.mock import AsyncMock

from jewelbot.config import strings
from jewelbot.services import message_service
from jewelbot.services.message_service import extract_messages
from jewelbot.services.whatsapp_service import WhatsAppSendError


def envelope(value):
    return {"object": "whatsapp_business_account", "entry": [{"changes": [{"field": "messages", "value": value}]}]}


def test_extract_user_messages():
    payload = envelope({"messages": [
        {"from": "919800000001", "type": "text", "text": {"body": "rings"}},
        {"from": "919800000002", "type": "image", "image": {"id": "media-1"}},
    ]})

    messages, statuses = extract_messages(payload)

    assert [m["from"] for m in messages] == ["919800000001", "919800000002"]
    assert statuses == 0


def test_extract_status_only_payload():
    payload = envelope({"statuses": [{"id": "wamid.1", "status": "delivered"}, {"id": "wamid.2", "status": "read"}]})
    assert extract_messages(payload) == ([], 2)


@pytest.mark.parametrize("payload", [
    None,
    [],
    {"entry": "not-a-list"},
    {"entry": [{"changes": [{"value": None}]}]},
    {"entry": [None, {"changes": ["junk"]}]},
    envelope({"messages": ["junk", 42]}),
])
def test_extract_tolerates_unexpected_shapes(payload):
    assert extract_messages(payload) == ([], 0)


@pytest.mark.asyncio
async def test_text_message_goes_to_dialogue(mocker):
    respond = mocker.patch.object(message_service.dialogue_service, "respond", new_callable=AsyncMock)

    status = await message_service.process_webhook_message(
        {"from": "919800000001", "type": "text", "text": {"body": "  show me rings  "}}
    )

    assert status == "processed"
    respond.assert_awaited_once_with("919800000001", "show me rings")


@pytest.mark.asyncio
async def test_non_text_message_gets_fixed_reply(mocker):
    respond = mocker.patch.object(message_service.dialogue_service, "respond", new_callable=AsyncMock)
    render = mocker.patch.object(message_service.reply_service, "render", new_callable=AsyncMock)

    status = await message_service.process_webhook_message({"from": "919800000001", "type": "audio"})

    assert status == "unsupported"
    render.assert_awaited_once_with("919800000001", strings.UNSUPPORTED_MESSAGE_REPLY)
    respond.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("message", [
    {"type": "text", "text": {"body": "hi"}},
    {"from": "919800000001", "type": "text", "text": {"body": "   "}},
    {"from": "919800000001", "type": "text"},
])
async def test_messages_without_sender_or_text_are_ignored(mocker, message):
    respond = mocker.patch.object(message_service.dialogue_service, "respond", new_callable=AsyncMock)

    assert await message_service.process_webhook_message(message) == "ignored"
    respond.assert_not_awaited()


@pytest.mark.asyncio
async def test_delivery_failure_is_reported_not_raised(mocker):
    mocker.patch.object(
        message_service.dialogue_service, "respond",
        new_callable=AsyncMock, side_effect=WhatsAppSendError("401"),
    )

    status = await message_service.process_webhook_message(
        {"from": "919800000001", "type": "text", "text": {"body": "rings"}}
    )

    assert status == "failed"
