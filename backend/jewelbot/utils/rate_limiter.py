# /jewelbot/utils/rate_limiter.py

from fastapi import Request
from slowapi import Limiter

from jewelbot.config.settings import settings

# The limiter lives in its own module so main.py and the routes can both import
# it without importing each other.


def client_address(request: Request) -> str:
    """
    Rate-limit key for a request. Behind a reverse proxy every webhook arrives
    from the proxy, so the first X-Forwarded-For hop is preferred when present.
    """
    forwarded = request.headers.get("X-Forwarded-For", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "127.0.0.1"


limiter = Limiter(
    key_func=client_address,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"]
)
