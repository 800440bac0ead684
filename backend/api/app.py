"""
FastAPI application factory.

Creates and configures the FastAPI application instance.
"""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config import get_settings
from shared.exceptions import TenantgateError
from shared.log import configure_logging
from modules.auth.session_cache import initialize_session_cache, teardown_session_cache
from modules.auth.routes import router as auth_router
from modules.billing.routes import router as billing_router
from modules.entitlements.routes import router as entitlements_router
from modules.tenants.routes import router as tenants_router

from .dependencies import ServiceContainer, get_container
from .errors import register_exception_handlers
from .routes import health

logger = logging.getLogger(__name__)


async def run_maintenance(container: ServiceContainer, interval_seconds: float) -> None:
    """
    Periodic housekeeping: purge expired sessions and queue cancellations
    for subscriptions whose grace period has ended.

    Each step is guarded on its own; a failing pass is logged and the loop
    carries on with the next one.
    """
    steps = [
        ("purge_expired_sessions", lambda: container.auth.purge_expired_sessions()),
        ("sweep_grace_periods", lambda: container.subscriptions.sweep_grace_periods()),
    ]
    while True:
        await asyncio.sleep(interval_seconds)
        for name, step in steps:
            try:
                await step()
            except TenantgateError as e:
                logger.warning(f"Maintenance step {name} failed: {e.message}")
            except Exception:
                logger.exception(f"Unexpected error in maintenance step {name}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs startup and shutdown logic.
    """
    # Startup
    settings = get_settings()
    configure_logging(settings.log_level)
    initialize_session_cache(settings.session_cache_ttl_seconds, settings.session_cache_max_entries)

    container = get_container()
    audit = container.audit
    if hasattr(audit, "start"):
        await audit.start()
    await container.subscriptions.start()
    maintenance = asyncio.create_task(
        run_maintenance(container, settings.maintenance_interval_seconds),
        name="maintenance",
    )
    logger.info(f"Starting {settings.app_name} on {settings.host}:{settings.port}")

    yield

    # Shutdown
    maintenance.cancel()
    with suppress(asyncio.CancelledError):
        await maintenance
    await container.subscriptions.stop()
    if hasattr(audit, "stop"):
        await audit.stop()
    teardown_session_cache()
    logger.info(f"Shut down {settings.app_name}")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Multi-tenant authentication and subscription gateway",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    register_exception_handlers(app)

    # Register routes
    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(tenants_router, prefix="/api/tenants", tags=["tenants"])
    app.include_router(entitlements_router, prefix="/api/entitlements", tags=["entitlements"])
    app.include_router(billing_router, prefix="/api/webhooks", tags=["webhooks"])

    return app


# Application instance for uvicorn
app = create_app()
