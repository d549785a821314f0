import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dishka import AsyncContainer
from dishka.integrations.fastapi import setup_dishka
from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi

from trustprint.api import register_routers
from trustprint.api.middleware import (
    ADMIN_PATH_PREFIX,
    ApiKeyMiddleware,
    FingerprintMiddleware,
)
from trustprint.api.modules.fingerprint.service import FingerprintService
from trustprint.ioc import get_async_container
from trustprint.services.logging import setup_logging
from trustprint.settings import Config, get_config

logger = logging.getLogger(__name__)

_OPENAPI_API_KEY_SCHEME = "ApiKeyAuth"


def _install_openapi_api_key_security(app: FastAPI) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = get_openapi(
            title=app.title,
            version=app.version,
            routes=app.routes,
        )

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes[_OPENAPI_API_KEY_SCHEME] = {
            "type": "apiKey",
            "in": "header",
            "name": "X-API-Key",
        }

        for path, operations in schema.get("paths", {}).items():
            if not path.startswith(ADMIN_PATH_PREFIX):
                continue
            for operation in operations.values():
                operation["security"] = [{_OPENAPI_API_KEY_SCHEME: []}]

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    container: AsyncContainer = app.state.dishka_container

    logger.info("Starting application...")
    # Resolving the facade builds the store, which creates database tables.
    service = await container.get(FingerprintService)
    yield
    logger.info("Shutting down application...")
    await service.drain()
    await container.close()


def create_app(config: Config, container: AsyncContainer | None = None) -> FastAPI:
    app = FastAPI(
        title=config.api.title,
        version=config.api.version,
        lifespan=lifespan,
    )

    app.add_middleware(FingerprintMiddleware)

    if config.api.api_key:
        app.add_middleware(ApiKeyMiddleware, api_key=config.api.api_key)
        _install_openapi_api_key_security(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.allowed_hosts,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_router = APIRouter()
    register_routers(api_router)
    app.include_router(api_router)

    setup_dishka(container or get_async_container(config), app)

    return app


def get_production_app() -> FastAPI:
    """Get the FastAPI application instance."""
    config = get_config()
    setup_logging(config.env)
    return create_app(config)
