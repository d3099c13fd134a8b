"""FastAPI application factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from asset_proxy.authorization import AuthorizationPredicate, get_authorization_predicate
from asset_proxy.config import Settings, configure_structlog, get_settings
from asset_proxy.dependencies import get_asset_key_client
from asset_proxy.error_handlers import register_exception_handlers
from asset_proxy.middleware.correlation_id import CorrelationIdMiddleware
from asset_proxy.middleware.logging import LoggingMiddleware
from asset_proxy.middleware.metrics import MetricsMiddleware, build_metrics_endpoint
from asset_proxy.middleware.tracing import TracingMiddleware
from asset_proxy.routers import health
from asset_proxy.routers.assets import build_asset_router


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Close the shared authority client on shutdown if one was created."""
    del app
    yield
    if get_asset_key_client.cache_info().currsize:
        await get_asset_key_client().aclose()


def create_app(
    settings: Settings | None = None,
    authorization_predicate: AuthorizationPredicate | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    explicit_settings = settings is not None
    settings = settings or get_settings()
    configure_structlog(settings)

    app = FastAPI(title=settings.app.service, lifespan=_lifespan)
    if explicit_settings:
        app.dependency_overrides[get_settings] = lambda: settings
    register_exception_handlers(app, environment=settings.app.environment)
    app.add_middleware(TracingMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    if authorization_predicate is not None:
        app.dependency_overrides[get_authorization_predicate] = lambda: authorization_predicate

    app.add_api_route(
        "/metrics", build_metrics_endpoint(), methods=["GET"], include_in_schema=False
    )
    app.include_router(health.router)
    for subdomain in settings.signing.subdomains:
        app.include_router(build_asset_router(subdomain))
    return app


app = create_app()
