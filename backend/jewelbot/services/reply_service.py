# /jewelbot/services/reply_service.py

import logging
from typing import Optional, List, Sequence

from jewelbot.config import strings
from jewelbot.models.domain import ProductRecord
from jewelbot.services.whatsapp_service import WhatsAppService, whatsapp_service

logger = logging.getLogger(__name__)


def format_price(price: Optional[float]) -> str:
    if price is None:
        return strings.PRICE_NOT_AVAILABLE
    if float(price).is_integer():
        return f"₹{int(price):,}"
    return f"₹{price:,.2f}"


def format_weight(grams: float) -> str:
    return f"{grams:g} g"


def product_caption(product: ProductRecord) -> str:
    return product.title or strings.DEFAULT_PRODUCT_TITLE


def format_product_message(product: ProductRecord) -> str:
    """Builds the product card from whichever fields are present, in a fixed order."""
    lines: List[str] = [
        f"✨ *{product_caption(product)}*",
        f"💰 {format_price(product.price)}",
        f"🔖 Code: {product.code}",
    ]
    if product.style:
        lines.append(f"🎨 Style: {product.style}")
    if product.purity:
        lines.append(f"🏅 Purity: {product.purity}")
    if product.gender:
        lines.append(f"👤 For: {product.gender}")
    if product.collection:
        lines.append(f"💎 Collection: {product.collection}")

    weight = product.net_weight if product.net_weight is not None else product.gross_weight
    if weight is not None:
        lines.append(f"⚖️ Weight: {format_weight(weight)}")
    if product.stone_weight is not None:
        lines.append(f"💠 Stone weight: {format_weight(product.stone_weight)}")
    return "\n".join(lines)


class ReplyService:
    def __init__(self, whatsapp: WhatsAppService):
        self.whatsapp = whatsapp

    async def render(self, to_phone: str, reply_text: str, products: Sequence[ProductRecord] = ()) -> None:
        """
        Sends the reply text, then one card per product followed by its photo.
        A failed text send raises WhatsAppSendError; a failed photo is skipped.
        """
        await self.whatsapp.send_text(to_phone, reply_text)
        for product in products:
            await self.whatsapp.send_text(to_phone, format_product_message(product))
            if not product.image_url:
                continue
            result = await self.whatsapp.send_image(to_phone, product.image_url, product_caption(product))
            if not result.ok:
                logger.warning(f"Continuing without photo for {product.code}: {result.error}")


# Globally accessible instance
reply_service = ReplyService(whatsapp_service)
