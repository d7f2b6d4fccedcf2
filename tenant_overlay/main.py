# tenant_overlay/main.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
from typing import Any, Dict, Optional
from dotenv import load_dotenv
load_dotenv()

from .settings import Settings, settings as default_settings
from .config.template import DefaultTemplateProvider
from .context.engine import TenantContextEngine
from .context.endpoints import tenant_router
from .context.invalidation import AbstractInvalidationBus
from .enforcement.usage import AbstractUsageCounterSource
from .errors import TenantContextError
from .tenants.endpoints import engine_admin_router, tenants_admin_router
from .tenants.storage_interfaces import AbstractConfigStore
from .theme.endpoints import theme_router

# Configure logging based on debug mode setting
if not logging.getLogger().hasHandlers():
    logging.basicConfig(
        level="DEBUG" if default_settings.debug_mode else default_settings.log_level.upper(),
        format='%(asctime)s - %(name)s [%(levelname)s] - %(message)s'
    )

logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG if default_settings.debug_mode else default_settings.log_level.upper())


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[AbstractConfigStore] = None,
    bus: Optional[AbstractInvalidationBus] = None,
    usage: Optional[AbstractUsageCounterSource] = None,
    templates: Optional[DefaultTemplateProvider] = None,
) -> FastAPI:
    """
    Build the application around its own engine instance.

    Collaborators left as None are built from ``settings``.
    """
    settings = settings or default_settings
    engine = TenantContextEngine.from_settings(
        settings, store=store, bus=bus, usage=usage, templates=templates
    )

    @asynccontextmanager
    async def lifespan(app_instance: FastAPI):
        """Start the engine (store, template, invalidation bus) and tear it down on shutdown."""
        logger.info("Application startup initiated.")
        try:
            await engine.start()
        except Exception as e:
            logger.error(f"Error during engine initialization: {e}", exc_info=True)
            await engine.close()
            raise
        yield
        logger.info("Application shutdown initiated.")
        await engine.close()

    app = FastAPI(title=settings.app_name, debug=settings.debug_mode, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine

    @app.exception_handler(TenantContextError)
    async def tenant_context_error_handler(request: Request, exc: TenantContextError) -> JSONResponse:
        """Render engine errors as their client-safe body; details stay in the logs."""
        return JSONResponse(status_code=exc.status_code, content=exc.detail, headers=exc.headers)

    @app.get("/health", tags=["Health"])
    async def health(request: Request) -> Dict[str, Any]:
        return {"status": "ok", **request.app.state.engine.health()}

    app.include_router(tenant_router)
    app.include_router(theme_router)
    app.include_router(tenants_admin_router)
    app.include_router(engine_admin_router)
    return app


app = create_app()
