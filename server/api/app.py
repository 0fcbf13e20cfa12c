from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from backend.errors import MalformedPersonId
from backend.service import AttributeService
from server.api.deps import get_settings
from server.api.logging_config import configure_logging
from server.api.middleware import (
    build_exception_handler,
    build_malformed_id_handler,
    build_request_id_middleware,
)
from server.api.routers.health import router as health_router
from server.api.routers.people import router as people_router
from server.api.settings import Settings

ServiceFactory = Callable[[], AttributeService]


def _lifespan(factory: ServiceFactory, settings: Settings):
    logger = configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        service = factory()
        await service.start()
        app.state.service = service
        logger.info("attribute_service_started", extra={"records": len(service.store)})
        try:
            yield
        finally:
            app.state.service = None
            # Último flush de la caché antes de salir.
            await service.close()
            logger.info("attribute_service_stopped")

    return lifespan


def create_app(
    *,
    settings: Settings | None = None,
    service_factory: ServiceFactory | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    factory = service_factory or AttributeService.from_config

    app = FastAPI(title="ActorLens API", version="1.0.0", lifespan=_lifespan(factory, settings))
    app.state.service = None
    # Los routers leen los settings vía Depends(get_settings): que vean los de esta app.
    app_settings: Settings = settings
    app.dependency_overrides[get_settings] = lambda: app_settings

    app.add_middleware(GZipMiddleware, minimum_size=max(0, settings.gzip_min_size))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins(),
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.middleware("http")(build_request_id_middleware(settings))
    app.add_exception_handler(MalformedPersonId, build_malformed_id_handler(settings))
    app.add_exception_handler(Exception, build_exception_handler(settings))

    app.include_router(health_router)
    app.include_router(people_router)

    return app


app = create_app()
