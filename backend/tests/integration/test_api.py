# backend/tests/integration/test_api.py
from unittest.mock import AsyncMock

import pytest

from jewelbot.config import strings
from jewelbot.config.settings import settings
from jewelbot.services.ai_service import ai_service
from jewelbot.services.whatsapp_service import SendResult

API_PREFIX = f"/api/{settings.api_version}"
WEBHOOK_PATHS = [f"{API_PREFIX}/webhooks/whatsapp", "/webhook"]


def text_payload(body, sender="15551234567"):
    return {"object": "whatsapp_business_account", "entry": [{"changes": [{"field": "messages", "value": {
        "messages": [{"from": sender, "id": "wamid.ID", "text": {"body": body}, "type": "text"}]
    }}]}]}


@pytest.mark.parametrize("path", WEBHOOK_PATHS)
def test_webhook_verification_success(test_client, path):
    params = {
        "hub.mode": "subscribe", "hub.challenge": "12345",
        "hub.verify_token": settings.whatsapp_verify_token
    }
    response = test_client.get(path, params=params)
    assert response.status_code == 200
    assert response.text == "12345"


@pytest.mark.parametrize("params", [
    {"hub.mode": "subscribe", "hub.challenge": "12345", "hub.verify_token": "wrong_token"},
    {"hub.mode": "unsubscribe", "hub.challenge": "12345", "hub.verify_token": "test-verify-token"},
    {},
])
def test_webhook_verification_failure(test_client, params):
    response = test_client.get(f"{API_PREFIX}/webhooks/whatsapp", params=params)
    assert response.status_code == 403


@pytest.mark.parametrize("path", WEBHOOK_PATHS)
def test_handle_webhook_text_message(test_client, mocker, path):
    mock_process = mocker.patch("jewelbot.routes.webhooks.message_service.process_webhook_message", new_callable=AsyncMock)

    response = test_client.post(path, json=text_payload("Hello"))

    assert response.status_code == 200
    assert response.json() == {"status": "success"}
    mock_process.assert_awaited_once()
    assert mock_process.await_args.args[0]["text"]["body"] == "Hello"


def test_status_updates_are_acknowledged_without_processing(test_client, mocker):
    mock_process = mocker.patch("jewelbot.routes.webhooks.message_service.process_webhook_message", new_callable=AsyncMock)
    payload = {"entry": [{"changes": [{"value": {"statuses": [{"id": "wamid.1", "status": "delivered"}]}}]}]}

    response = test_client.post(f"{API_PREFIX}/webhooks/whatsapp", json=payload)

    assert response.status_code == 200
    assert response.json() == {"status": "success"}
    mock_process.assert_not_awaited()


def test_malformed_json_is_acknowledged(test_client, mocker):
    mock_process = mocker.patch("jewelbot.routes.webhooks.message_service.process_webhook_message", new_callable=AsyncMock)

    response = test_client.post(
        f"{API_PREFIX}/webhooks/whatsapp", content=b"{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 200
    assert response.json() == {"status": "success"}
    mock_process.assert_not_awaited()


def test_unexpected_processing_error_returns_500(test_client, mocker):
    mocker.patch(
        "jewelbot.routes.webhooks.message_service.process_webhook_message",
        new_callable=AsyncMock, side_effect=RuntimeError("boom"),
    )

    response = test_client.post(f"{API_PREFIX}/webhooks/whatsapp", json=text_payload("Hello"))

    assert response.status_code == 500
    assert response.json() == {"status": "error"}


def test_non_text_message_gets_unsupported_reply(test_client, mocker):
    send_text = mocker.patch(
        "jewelbot.services.whatsapp_service.whatsapp_service.send_text",
        new_callable=AsyncMock, return_value=SendResult(ok=True, message_id="wamid.1"),
    )
    payload = {"entry": [{"changes": [{"value": {"messages": [
        {"from": "15551234567", "id": "wamid.IMG", "type": "image", "image": {"id": "media-1"}}
    ]}}]}]}

    response = test_client.post(f"{API_PREFIX}/webhooks/whatsapp", json=payload)

    assert response.status_code == 200
    send_text.assert_awaited_once_with("15551234567", strings.UNSUPPORTED_MESSAGE_REPLY)


def test_text_message_without_openai_key_gets_apology(test_client, mocker):
    """With no model configured, a product question degrades to the apology reply."""
    send_text = mocker.patch(
        "jewelbot.services.whatsapp_service.whatsapp_service.send_text",
        new_callable=AsyncMock, return_value=SendResult(ok=True, message_id="wamid.1"),
    )
    mocker.patch.object(ai_service, "openai_client", None)

    response = test_client.post(f"{API_PREFIX}/webhooks/whatsapp", json=text_payload("gold rings", sender="15550000001"))

    assert response.status_code == 200
    send_text.assert_awaited_once_with("15550000001", strings.APOLOGY_REPLY)


def test_detailed_health_reports_catalog_and_services(test_client):
    response = test_client.get("/health/detailed")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["catalog"]["products"] == 0
    assert body["data"]["status"] == "degraded"
    assert body["data"]["services"]["verify_token"] == "configured"
    assert "conversations" in body["data"]


def test_health_and_root(test_client):
    assert test_client.get("/health").json()["status"] == "healthy"
    assert test_client.get("/health/live").json() == {"status": "alive"}
    assert test_client.get("/").json()["status"] == "operational"


def test_metrics_open_without_api_key(test_client):
    response = test_client.get("/metrics")
    assert response.status_code == 200
    assert "catalog_products" in response.text


def test_metrics_require_api_key_when_configured(test_client, mocker):
    mocker.patch.object(settings, "api_key", "metrics-secret")

    assert test_client.get("/metrics").status_code == 403
    assert test_client.get("/metrics", headers={"X-API-KEY": "metrics-secret"}).status_code == 200
