# /jewelbot/models/domain.py

import time
import asyncio
from dataclasses import dataclass, field
from typing import Optional, List, Literal, Union
from pydantic import BaseModel, ConfigDict, model_validator

# This file defines the core models used throughout the application's business
# logic: catalog rows, what the model is allowed to see, conversation turns and
# the per-user pagination state.


class ProductRecord(BaseModel):
    """One catalog row. Only the jewel code is mandatory."""
    model_config = ConfigDict(frozen=True)

    code: str
    category: Optional[str] = None
    sub_category: Optional[str] = None
    collection: Optional[str] = None
    style: Optional[str] = None
    purity: Optional[str] = None
    price: Optional[float] = None
    gender: Optional[str] = None
    gross_weight: Optional[float] = None
    net_weight: Optional[float] = None
    stone_weight: Optional[float] = None
    image_url: Optional[str] = None

    @property
    def price_or_zero(self) -> float:
        return self.price if self.price is not None else 0.0

    @property
    def title(self) -> Optional[str]:
        """Category and sub-category joined for display, if any are set."""
        parts = [p for p in (self.category, self.sub_category) if p]
        return " - ".join(parts) if parts else None


class ProjectedProduct(BaseModel):
    """The reduced view of a product that is sent to the language model."""
    sku: str
    category: Optional[str] = None
    sub_category: Optional[str] = None
    price: Optional[float] = None
    gross_weight: Optional[float] = None
    net_weight: Optional[float] = None
    stone_weight: Optional[float] = None
    image: Optional[str] = None


class ConversationTurn(BaseModel):
    role: Literal["system", "user", "assistant", "tool"]
    content: str


class PaginationCursor(BaseModel):
    """Offset into the full result list of the user's last product search."""
    results: List[ProductRecord]
    offset: int = 0

    @model_validator(mode="after")
    def offset_within_results(self):
        if self.offset < 0 or self.offset > len(self.results):
            raise ValueError(f"offset {self.offset} outside 0..{len(self.results)}")
        return self

    @property
    def remaining(self) -> int:
        return len(self.results) - self.offset

    @property
    def exhausted(self) -> bool:
        return self.remaining <= 0

    def next_page(self, size: int) -> List[ProductRecord]:
        """Returns the next batch and moves the offset past it."""
        page = self.results[self.offset:self.offset + size]
        self.offset = min(self.offset + len(page), len(self.results))
        return page


@dataclass
class ConversationState:
    user_id: str
    history: List[ConversationTurn] = field(default_factory=list)
    cursor: Optional[PaginationCursor] = None
    last_active: float = field(default_factory=time.monotonic)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)


# --- Model decisions ---
# The model either answers directly or asks for exactly one function call.

@dataclass(frozen=True)
class DirectAnswer:
    text: str


@dataclass(frozen=True)
class ProductSearchCall:
    query: str
    call_id: str
    raw_arguments: str = "{}"


@dataclass(frozen=True)
class FallbackCall:
    call_id: str
    raw_arguments: str = "{}"


ModelDecision = Union[DirectAnswer, ProductSearchCall, FallbackCall]


TurnPath = Literal[
    "continuation", "exhausted", "no_cursor",
    "direct", "products", "not_found", "fallback", "error",
]


@dataclass
class TurnResult:
    reply_text: str
    products: List[ProductRecord] = field(default_factory=list)
    path: TurnPath = "direct"
