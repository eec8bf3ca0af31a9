from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from vidhub.api.v1 import get_api_router
from vidhub.api.v1.schemas import ErrorResponse
from vidhub.catalog.store import MetadataCatalog
from vidhub.core.config import get_settings
from vidhub.core.errors import DerivationError, VidhubError
from vidhub.core.logging import configure_logging, get_logger, level_from_name
from vidhub.core.storage import get_artifact_store
from vidhub.media.engine import DerivationExecutor
from vidhub.services.ingest_service import IngestService

logger = get_logger(component="api")


def _error_response(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    payload = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=payload.model_dump(exclude_none=True))


async def handle_derivation_error(request: Request, exc: DerivationError) -> JSONResponse:
    logger.error("request_failed", path=request.url.path, error=exc.code, reason=exc.reason)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to process video", exc.reason)


async def handle_client_error(request: Request, exc: VidhubError) -> JSONResponse:
    logger.info("request_rejected", path=request.url.path, error=exc.code, reason=exc.reason)
    return _error_response(status.HTTP_400_BAD_REQUEST, exc.code, exc.reason)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(level=level_from_name(settings.log_level))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        catalog = MetadataCatalog()
        store = get_artifact_store(settings)
        executor = DerivationExecutor(settings.ffmpeg_binary, timeout_s=settings.derivation_timeout_s)
        service = IngestService(settings, catalog, store, executor)

        app.state.settings = settings
        app.state.catalog = catalog
        app.state.store = store
        app.state.ingest_service = service
        try:
            yield
        finally:
            await service.drain()

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        lifespan=lifespan,
        openapi_url="/openapi.json",
        docs_url="/docs",
    )
    app.add_exception_handler(DerivationError, handle_derivation_error)
    app.add_exception_handler(VidhubError, handle_client_error)
    app.include_router(get_api_router(settings.api_prefix))
    return app


app = create_app()


__all__ = ["app", "create_app"]
