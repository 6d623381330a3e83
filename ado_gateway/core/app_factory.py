"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build isolated apps with their own rate limiter state.
"""

from __future__ import annotations

from fastapi import FastAPI

from ado_gateway.api.routes import health_router, semantic_kernel_router
from ado_gateway.core.config import RateLimitSettings, settings
from ado_gateway.core.exception_handlers import setup_exception_handlers
from ado_gateway.core.logging import configure_logging
from ado_gateway.core.middleware import principal_middleware, request_id_middleware
from ado_gateway.core.openapi import apply_openapi_customizations
from ado_gateway.core.rate_limit import RateLimitingMiddleware, SlidingWindowRateLimiter


def create_app(
    *,
    rate_limit_settings: RateLimitSettings | None = None,
    rate_limiter: SlidingWindowRateLimiter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limit_settings: Overrides ``settings.rate_limit``.
        rate_limiter: Limiter (store + clock) to use; a fresh in-memory one
            is created when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="ADO Gateway",
        description=(
            "Backend-for-frontend over Azure DevOps and LLM providers. Requires "
            "X-API-Key and enforces tiered per-user and per-IP rate limits "
            "(X-RateLimit-* headers on every response, Retry-After on 429)."
        ),
        version="1.0.0",
    )

    # Middleware: the last registered runs first, so the order below yields
    # request id -> principal -> rate limiting -> routes.
    app.middleware("http")(
        RateLimitingMiddleware(rate_limit_settings or settings.rate_limit, rate_limiter)
    )
    app.middleware("http")(principal_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(semantic_kernel_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
