# /jewelbot/models/api.py

from pydantic import BaseModel, Field
from typing import Any, Dict, Literal, Optional
from datetime import datetime, timezone

# Response bodies of the operational endpoints. The webhook itself answers
# with a bare {"status": ...} object because that is all Meta looks at.


class APIResponse(BaseModel):
    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str


class CatalogHealth(BaseModel):
    path: str
    products: int


class HealthReport(BaseModel):
    """Body of /health/detailed. "degraded" means the bot answers but has no products to offer."""
    status: Literal["healthy", "degraded"]
    catalog: CatalogHealth
    conversations: int
    services: Dict[str, Literal["configured", "not_configured"]]
    circuits: Dict[str, Dict[str, Any]] = {}
