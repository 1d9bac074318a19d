"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from scribeline.core.components import Components, build_components
from scribeline.core.config import Settings, get_settings
from scribeline.core.logging_safety import configure_logging
from scribeline.errors import ApiError
from scribeline.routes import jobs_router, transcriptions_router
from scribeline.schemas.error import ErrorResponse
from scribeline.services.runner import PipelineRunner

logger = logging.getLogger(__name__)

_INTAKE_VALIDATION_PATHS: set[tuple[str, str]] = {
    ("POST", "/api/v1/transcriptions/upload"),
    ("POST", "/api/v1/transcriptions/youtube"),
    ("POST", "/api/v1/transcriptions/tiktok"),
}


def create_app(settings: Settings | None = None, components: Components | None = None) -> FastAPI:
    settings = settings or (components.settings if components is not None else get_settings())
    configure_logging(settings.log_level)
    components = components or build_components(settings)
    coordinator = components.build_coordinator()
    runner = PipelineRunner(coordinator, max_concurrency=settings.max_concurrent_jobs)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        components.staging.ensure()
        logger.info("app.started staging_root=%s", components.staging.root)
        try:
            yield
        finally:
            await runner.shutdown()
            dispose = getattr(components.store, "dispose", None)
            if callable(dispose):
                dispose()
            logger.info("app.stopped")

    app = FastAPI(title="Scribeline API", version="1.0.0", lifespan=lifespan)
    app.state.components = components
    app.state.coordinator = coordinator
    app.state.runner = runner

    @app.exception_handler(ApiError)
    async def handle_api_error(_, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.payload.model_dump(mode="json", exclude_none=True),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        route = request.scope.get("route")
        route_path = getattr(route, "path_format", None) or getattr(route, "path", request.url.path)
        if (request.method.upper(), route_path) in _INTAKE_VALIDATION_PATHS:
            payload = ErrorResponse(
                code="INVALID_RECOGNITION_CONFIG",
                message="Invalid transcription request",
                details={"errors": [{"loc": list(error.get("loc", ())), "msg": error.get("msg")} for error in exc.errors()]},
            )
            return JSONResponse(status_code=422, content=payload.model_dump(mode="json"))

        return await request_validation_exception_handler(request, exc)

    api_prefix = "/api/v1"
    app.include_router(transcriptions_router, prefix=api_prefix)
    app.include_router(jobs_router, prefix=api_prefix)

    return app


app = create_app()
