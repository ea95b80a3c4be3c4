# /jewelbot/services/product_query_adapter.py

"""
Product Query Adapter.

Pure functions that turn a free-text product query into a subsequence of the
in-memory catalog, and that trim catalog records down to the fields the
language model is allowed to see.

Matching rule: a record matches when the query *contains* one of its textual
attributes (category, sub-category, collection, style, purity, gender, jewel
code) as whole words. A trailing plural "s" is tolerated on either side, so
"rings" finds a "Ring" and "ring" finds "Rings". Empty attributes never match,
which means an empty query returns nothing.

A price phrase ("under 5000", "over ₹20,000") additionally bounds the sale
price, with a missing price counted as 0. Results keep catalog order.
"""

import re
from typing import Optional, List, Tuple, Sequence

from jewelbot.models.domain import ProductRecord, ProjectedProduct

MATCH_FIELDS = ("category", "sub_category", "collection", "style", "purity", "gender", "code")

PRICE_RANGE_PATTERN = re.compile(r"(under|over)\s*(?:₹|rs\.?|inr)?\s*(\d[\d,]*)")


def parse_price_range(query: str) -> Optional[Tuple[str, int]]:
    """
    Extracts a price bound from the query.

    Returns:
        ("under" | "over", threshold) or None when the query has no price phrase.
    """
    m = PRICE_RANGE_PATTERN.search(query.lower())
    if not m:
        return None
    return m.group(1), int(m.group(2).replace(",", ""))


def _attribute_pattern(value: str) -> re.Pattern:
    stem = value[:-1] if len(value) > 3 and value.endswith("s") else value
    return re.compile(rf"(?<!\w){re.escape(stem)}s?(?!\w)")


def attribute_in_query(query: str, value: Optional[str]) -> bool:
    """True if the (lower-cased) query contains the attribute value as whole words."""
    if not value:
        return False
    value = value.strip().lower()
    if not value:
        return False
    return _attribute_pattern(value).search(query) is not None


def _matches_keywords(query: str, record: ProductRecord) -> bool:
    return any(attribute_in_query(query, getattr(record, name)) for name in MATCH_FIELDS)


def _within_price_range(record: ProductRecord, price_range: Optional[Tuple[str, int]]) -> bool:
    if price_range is None:
        return True
    direction, threshold = price_range
    price = record.price_or_zero
    return price <= threshold if direction == "under" else price >= threshold


def filter_products(query: str, catalog: Sequence[ProductRecord]) -> List[ProductRecord]:
    """Returns the catalog records matching the query, in catalog order."""
    lower = (query or "").lower()
    price_range = parse_price_range(lower)
    return [
        record for record in catalog
        if _matches_keywords(lower, record) and _within_price_range(record, price_range)
    ]


def project_product(record: ProductRecord) -> ProjectedProduct:
    return ProjectedProduct(
        sku=record.code,
        category=record.category,
        sub_category=record.sub_category,
        price=record.price,
        gross_weight=record.gross_weight,
        net_weight=record.net_weight,
        stone_weight=record.stone_weight,
        image=record.image_url,
    )


def project_products(records: Sequence[ProductRecord]) -> List[ProjectedProduct]:
    return [project_product(r) for r in records]


def fallback_products(catalog: Sequence[ProductRecord], limit: int = 3) -> List[ProductRecord]:
    """The top-of-catalog suggestions served when nothing matches."""
    return list(catalog[:limit])
