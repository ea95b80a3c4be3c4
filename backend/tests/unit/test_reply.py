# backend/tests/unit/test_reply.py
import pytest

from jewelbot.models.domain import ProductRecord
from jewelbot.services.reply_service import ReplyService, format_price, format_product_message
from jewelbot.services.whatsapp_service import SendResult, WhatsAppSendError


@pytest.mark.parametrize("price, expected", [
    (3000, "₹3,000"),
    (125000.0, "₹125,000"),
    (4999.5, "₹4,999.50"),
    (None, "Price not available"),
])
def test_format_price(price, expected):
    assert format_price(price) == expected


def test_full_product_card():
    product = ProductRecord(
        code="RKJ-101", category="Ring", sub_category="Solitaire", price=45000,
        style="Classic", purity="18K", gender="Women", collection="Bridal",
        gross_weight=3.2, net_weight=2.9, stone_weight=0.45,
    )

    assert format_product_message(product).split("\n") == [
        "✨ *Ring - Solitaire*",
        "💰 ₹45,000",
        "🔖 Code: RKJ-101",
        "🎨 Style: Classic",
        "🏅 Purity: 18K",
        "👤 For: Women",
        "💎 Collection: Bridal",
        "⚖️ Weight: 2.9 g",
        "💠 Stone weight: 0.45 g",
    ]


def test_card_with_missing_fields_keeps_the_essentials():
    card = format_product_message(ProductRecord(code="X1", gross_weight=4.0))

    assert card.split("\n") == [
        "✨ *Jewellery*",
        "💰 Price not available",
        "🔖 Code: X1",
        "⚖️ Weight: 4 g",
    ]


@pytest.mark.asyncio
async def test_render_sends_text_then_card_and_photo_per_product(fake_whatsapp):
    products = [
        ProductRecord(code="R1", category="Ring", price=1000, image_url="https://example.com/r1.jpg"),
        ProductRecord(code="R2", category="Ring", price=2000),
    ]
    calls = []
    fake_whatsapp.send_text.side_effect = lambda to, body: calls.append(("text", body)) or SendResult(ok=True)
    fake_whatsapp.send_image.side_effect = lambda to, url, caption: calls.append(("image", url)) or SendResult(ok=True)

    await ReplyService(fake_whatsapp).render("919800000001", "Here you go", products)

    assert [kind for kind, _ in calls] == ["text", "text", "image", "text"]
    assert calls[0][1] == "Here you go"
    assert "Code: R1" in calls[1][1]
    assert calls[2][1] == "https://example.com/r1.jpg"
    assert "Code: R2" in calls[3][1]


@pytest.mark.asyncio
async def test_failed_photo_does_not_stop_the_reply(fake_whatsapp):
    fake_whatsapp.send_image.return_value = SendResult(ok=False, error="400: Bad image")
    products = [
        ProductRecord(code="R1", category="Ring", image_url="https://example.com/broken.jpg"),
        ProductRecord(code="R2", category="Ring", image_url="https://example.com/r2.jpg"),
    ]

    await ReplyService(fake_whatsapp).render("919800000001", "Two rings", products)

    assert fake_whatsapp.send_text.await_count == 3
    assert fake_whatsapp.send_image.await_count == 2


@pytest.mark.asyncio
async def test_failed_text_propagates(fake_whatsapp):
    fake_whatsapp.send_text.side_effect = WhatsAppSendError("401")

    with pytest.raises(WhatsAppSendError):
        await ReplyService(fake_whatsapp).render("919800000001", "Hello", [ProductRecord(code="R1")])

    fake_whatsapp.send_image.assert_not_awaited()
