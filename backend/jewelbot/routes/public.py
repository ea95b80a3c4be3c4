# /jewelbot/routes/public.py

import secrets
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from jewelbot.config.settings import settings
from jewelbot.models.api import APIResponse, CatalogHealth, HealthReport
from jewelbot.services.catalog_service import catalog_service
from jewelbot.services.conversation_service import conversation_store
from jewelbot.utils.circuit_breaker import circuit_states

# Health checks and Prometheus metrics. Nothing here needs authentication
# except /metrics, and only when API_KEY is set.

router = APIRouter()


async def verify_metrics_access(request: Request):
    if not settings.api_key:
        return
    provided_key = request.headers.get("X-API-KEY")
    if not (provided_key and secrets.compare_digest(provided_key, settings.api_key)):
        raise HTTPException(status_code=403, detail="Invalid or missing API key")


def _configured(*values) -> str:
    return "configured" if all(values) else "not_configured"


@router.get("/")
async def root():
    return {
        "service": "RK Jewellers WhatsApp Assistant",
        "version": "1.0.0",
        "status": "operational",
        "environment": settings.environment
    }


@router.get("/health", summary="Basic Health Check")
async def health_check():
    """Basic health check for load balancers."""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc)}


@router.get("/health/live", summary="Liveness Probe")
async def liveness_check():
    return {"status": "alive"}


@router.get("/health/detailed", response_model=APIResponse, tags=["Admin"])
async def comprehensive_health_check():
    """Catalog size, in-memory conversations, configured integrations and circuit states."""
    report = HealthReport(
        status="healthy" if len(catalog_service) else "degraded",
        catalog=CatalogHealth(path=str(catalog_service.path), products=len(catalog_service)),
        conversations=len(conversation_store),
        services={
            "whatsapp": _configured(settings.whatsapp_access_token, settings.whatsapp_phone_id),
            "openai": _configured(settings.openai_api_key),
            "verify_token": _configured(settings.whatsapp_verify_token),
        },
        circuits=circuit_states(),
    )

    return APIResponse(
        success=True,
        message="Comprehensive health status retrieved.",
        data=report.model_dump(),
        version=settings.api_version
    )


@router.get("/metrics", tags=["Monitoring"], dependencies=[Depends(verify_metrics_access)])
async def metrics():
    """Prometheus metrics, protected by X-API-KEY when API_KEY is configured."""
    return PlainTextResponse(generate_latest(), media_type=CONTENT_TYPE_LATEST)
