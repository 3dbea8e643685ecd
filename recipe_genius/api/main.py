"""
FastAPI application for Recipe Genius.

- Recipe generation, nutrition analysis and ingredient recognition
  under /api
- Fixed-window rate limiting per client IP, injected via app.state
- Health check at /health
- Uniform {success, error} envelopes for client errors
"""
import logging
import platform
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import config
from ..data.models import now_iso
from ..llm_provider import get_provider_status
from ..rate_limiter import FixedWindowRateLimiter
from .dependencies import health_rate_limit
from .routes import ingredients, providers, recipes
from .services.recipe_service import init_recipe_service

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

_started_at = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize services on startup."""
    logger.info("Starting Recipe Genius API...")
    init_recipe_service()

    status = get_provider_status()
    if status["configured"]:
        logger.info(f"Configured providers: {status['available']}")
    else:
        logger.warning("No AI provider keys in environment; clients must supply their own")

    yield

    logger.info("Recipe Genius API shutdown complete")


def health_check(request: Request):
    """
    Health check endpoint for load balancers and monitoring.

    Returns 200 when at least one provider is configured and the check
    itself is fast, 503 (status "degraded") otherwise.
    """
    start = time.perf_counter()

    status = get_provider_status()
    ai_status = {
        "configured": status["configured"],
        "available": status["available"],
        "total": status["total"],
    }
    response_time = int((time.perf_counter() - start) * 1000)

    checks = {
        "aiProviders": ai_status["configured"] > 0,
        "performance": response_time < config.HEALTH_MAX_RESPONSE_MS,
    }
    healthy = all(checks.values())
    timestamp = now_iso()

    content = {
        "status": "healthy" if healthy else "degraded",
        "timestamp": timestamp,
        "system": {
            "timestamp": timestamp,
            "environment": config.ENVIRONMENT,
            "runtime": f"python-{platform.python_version()}",
            "version": config.APP_VERSION,
        },
        "ai": ai_status,
        "performance": {
            "responseTime": response_time,
            "uptime": int(time.monotonic() - _started_at),
        },
        "checks": checks,
    }

    logger.info(f"Health check: {content['status']} ({response_time}ms, {ai_status['configured']} providers)")
    return JSONResponse(
        status_code=200 if healthy else 503,
        content=content,
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "X-Health-Status": content["status"],
            "X-Response-Time": f"{response_time}ms",
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.debug(f"Invalid request body for {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "请求参数格式错误"},
    )


def create_app(
    ai_rate_limiter: Optional[FixedWindowRateLimiter] = None,
    health_rate_limiter: Optional[FixedWindowRateLimiter] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        ai_rate_limiter: Limiter for model-backed endpoints
            (default AI_RATE_LIMIT per RATE_LIMIT_WINDOW_SECONDS)
        health_rate_limiter: Limiter for /health
            (default HEALTH_RATE_LIMIT per RATE_LIMIT_WINDOW_SECONDS)
    """
    app = FastAPI(
        title="Recipe Genius API",
        description="AI recipe generation with dietary and health-aware ingredient filtering",
        version=config.APP_VERSION,
        lifespan=lifespan,
    )

    if ai_rate_limiter is None:
        ai_rate_limiter = FixedWindowRateLimiter(config.AI_RATE_LIMIT, config.RATE_LIMIT_WINDOW_SECONDS)
    if health_rate_limiter is None:
        health_rate_limiter = FixedWindowRateLimiter(config.HEALTH_RATE_LIMIT, config.RATE_LIMIT_WINDOW_SECONDS)
    app.state.ai_rate_limiter = ai_rate_limiter
    app.state.health_rate_limiter = health_rate_limiter

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.add_api_route("/health", health_check, methods=["GET"], dependencies=[Depends(health_rate_limit)])

    # Include API routers
    app.include_router(recipes.router, prefix="/api", tags=["recipes"])
    app.include_router(ingredients.router, prefix="/api", tags=["ingredients"])
    app.include_router(providers.router, prefix="/api", tags=["providers"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    port = config.get_int_env("PORT", 8000)
    uvicorn.run(
        "recipe_genius.api.main:app",
        host="0.0.0.0",
        port=port,
        reload=config.DEBUG,
        log_level="debug" if config.DEBUG else "info",
    )
