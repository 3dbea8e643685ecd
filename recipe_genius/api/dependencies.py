"""
Shared FastAPI dependencies: client identification and rate limiting.

The limiters themselves live on app.state (created by create_app), so
every application instance, and every test client, has its own counters.
"""
import logging

from fastapi import HTTPException, Request

from ..rate_limiter import FixedWindowRateLimiter

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str:
    """Best-effort client address, honouring common proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    for header in ("cf-connecting-ip", "x-real-ip"):
        value = request.headers.get(header)
        if value:
            return value.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _enforce(request: Request, limiter: FixedWindowRateLimiter) -> None:
    client_ip = get_client_ip(request)
    if not limiter.is_allowed(client_ip):
        raise HTTPException(
            status_code=429,
            detail="请求过于频繁，请稍后再试",
            headers={"Retry-After": str(int(limiter.window_seconds))},
        )


def ai_rate_limit(request: Request) -> None:
    """Dependency limiting the model-backed endpoints."""
    _enforce(request, request.app.state.ai_rate_limiter)


def health_rate_limit(request: Request) -> None:
    """Dependency limiting the health endpoint."""
    _enforce(request, request.app.state.health_rate_limiter)
