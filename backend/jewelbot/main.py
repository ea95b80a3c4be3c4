# /jewelbot/main.py

import os
import time
import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from jewelbot.config.settings import settings
from jewelbot.utils.lifecycle import lifespan
from jewelbot.utils.metrics import response_time_histogram
from jewelbot.utils.rate_limiter import limiter
from jewelbot.routes import webhooks, public

log = structlog.get_logger(__name__)

_docs_enabled = settings.environment != "production"

app = FastAPI(
    title="RK Jewellers WhatsApp Assistant",
    version="1.0.0",
    description="Answers jewellery catalog questions on WhatsApp",
    lifespan=lifespan,
    openapi_url=f"/api/{settings.api_version}/openapi.json" if _docs_enabled else None,
    docs_url=f"/api/{settings.api_version}/docs" if _docs_enabled else None,
    redoc_url=None,
)

# --- Rate Limiting ---
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log.exception("Unhandled error", path=request.url.path, method=request.method)
    return JSONResponse({"status": "error"}, status_code=500)


# --- Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_allowed_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

if settings.environment != "test":
    allowed_hosts = [h.strip() for h in settings.allowed_hosts.split(",") if h.strip()]
    if allowed_hosts:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SlowAPIMiddleware)


@app.middleware("http")
async def timing_middleware(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started
    # Label by route template so path parameters do not explode the label set.
    route = request.scope.get("route")
    response_time_histogram.labels(endpoint=getattr(route, "path", "unmatched")).observe(elapsed)
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"
    return response

# --- API Routers ---
app.include_router(public.router)
app.include_router(webhooks.router, prefix=f"/api/{settings.api_version}/webhooks")
app.include_router(webhooks.legacy_router)

# --- Local development entry point ---
if __name__ == "__main__":
    uvicorn.run(
        "jewelbot.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=settings.environment == "development",
        workers=settings.workers if settings.environment == "production" else 1
    )
