# backend/tests/conftest.py

from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from dotenv import load_dotenv
from unittest.mock import AsyncMock

# Load the test environment FIRST, before any jewelbot imports, so the
# module-level Settings() finds the required variables.
load_dotenv(dotenv_path=Path(__file__).parent / ".env.test", override=True)

from jewelbot.main import app  # noqa: E402
from jewelbot.models.domain import ProductRecord  # noqa: E402
from jewelbot.services.ai_service import AIService  # noqa: E402
from jewelbot.services.conversation_service import ConversationStore  # noqa: E402
from jewelbot.services.dialogue_service import DialogueService  # noqa: E402
from jewelbot.services.reply_service import ReplyService  # noqa: E402
from jewelbot.services.whatsapp_service import SendResult  # noqa: E402


@pytest.fixture
def small_catalog():
    return [
        ProductRecord(code="R1", category="Ring", price=3000),
        ProductRecord(code="R2", category="Ring", price=8000),
        ProductRecord(code="N1", category="Necklace", price=5000),
    ]


@pytest.fixture
def ring_catalog():
    """Eight rings followed by two necklaces, the first ring with a photo."""
    rings = [
        ProductRecord(
            code=f"R{i}",
            category="Ring",
            sub_category="Solitaire" if i % 2 else "Band",
            purity="18K",
            price=1000 * i,
            gender="Women",
            net_weight=2.5,
            image_url="https://example.com/r1.jpg" if i == 1 else None,
        )
        for i in range(1, 9)
    ]
    necklaces = [ProductRecord(code=f"N{i}", category="Necklace", price=20000 + i) for i in range(1, 3)]
    return rings + necklaces


@pytest.fixture
def fake_whatsapp():
    """Stands in for WhatsAppService; records every send."""
    whatsapp = SimpleNamespace()
    whatsapp.send_text = AsyncMock(return_value=SendResult(ok=True, message_id="wamid.text"))
    whatsapp.send_image = AsyncMock(return_value=SendResult(ok=True, message_id="wamid.image"))
    return whatsapp


@pytest.fixture
def fake_ai():
    """An AIService without a client; tests set decide/complete per scenario."""
    ai = AIService(api_key=None, model="test-model")
    ai.decide = AsyncMock()
    ai.complete = AsyncMock(return_value="Here are some lovely rings ✨")
    return ai


@pytest.fixture
def make_dialogue(fake_ai, fake_whatsapp):
    def _make(catalog):
        store = ConversationStore(ttl_seconds=3600, max_entries=100, max_history=12)
        return DialogueService(
            catalog=SimpleNamespace(products=catalog),
            store=store,
            ai=fake_ai,
            replies=ReplyService(fake_whatsapp),
            page_size=3,
            max_rows_to_model=20,
            context_turns=6,
        )
    return _make


@pytest.fixture(scope="function")
def test_client():
    """Provides a TestClient for API integration tests; runs the app lifespan."""
    with TestClient(app) as client:
        yield client
