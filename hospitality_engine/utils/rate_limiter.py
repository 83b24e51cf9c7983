"""
Rate Limiter Configuration

In-memory storage by default; point RATE_LIMIT_STORAGE_URI at Redis
(redis://host:6379) when several instances serve traffic.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from ..config import settings


def get_real_client_ip(request: Request) -> str:
    """Client IP behind a reverse proxy"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_real_client_ip,
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.rate_limit_enabled,
)


# Availability reads are cheap; commits take a row lock
RATE_LIMITS = {
    "availability": "120/minute",
    "quote": "120/minute",
    "reservation_create": "30/minute",
    "reservation_update": "60/minute",
}


def get_rate_limit(operation: str) -> str:
    return RATE_LIMITS.get(operation, "100/minute")
