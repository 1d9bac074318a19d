"""Dependency wiring for routes."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import uuid4

from fastapi import Depends, Request, Security
from fastapi.security import APIKeyHeader

from scribeline.core.components import Components
from scribeline.core.logging_safety import safe_log_identifier
from scribeline.services.intake import IntakeService
from scribeline.services.jobs import JobService
from scribeline.services.runner import PipelineRunner
from scribeline.services.translation import TranslationService

owner_scheme = APIKeyHeader(name="X-Owner-Id", auto_error=False, scheme_name="ownerId")
logger = logging.getLogger(__name__)


def _request_correlation_id(request: Request) -> str:
    existing = getattr(request.state, "correlation_id", None)
    if isinstance(existing, str) and existing:
        return existing

    correlation_id = request.headers.get("X-Correlation-Id")
    if correlation_id:
        request.state.correlation_id = correlation_id
        return correlation_id

    generated = f"req-{uuid4()}"
    request.state.correlation_id = generated
    return generated


def get_request_correlation_id(request: Request) -> str:
    return _request_correlation_id(request)


def get_components(request: Request) -> Components:
    return request.app.state.components


def get_runner(request: Request) -> PipelineRunner:
    return request.app.state.runner


def get_owner_id(
    request: Request,
    owner_header: Annotated[str | None, Security(owner_scheme)],
    components: Annotated[Components, Depends(get_components)],
) -> str:
    """Opaque principal id; authentication happens upstream of this service."""
    owner_id = (owner_header or "").strip() or components.settings.default_owner_id
    logger.debug(
        "request.owner correlation_id=%s method=%s path=%s owner_id=%s",
        safe_log_identifier(_request_correlation_id(request), prefix="cid"),
        request.method,
        request.url.path,
        safe_log_identifier(owner_id, prefix="pid"),
    )
    return owner_id


def get_intake_service(
    request: Request,
    components: Annotated[Components, Depends(get_components)],
    runner: Annotated[PipelineRunner, Depends(get_runner)],
) -> IntakeService:
    return IntakeService(
        store=components.store,
        broadcaster=components.broadcaster,
        coordinator=request.app.state.coordinator,
        runner=runner,
        staging=components.staging,
        probe=components.probe,
        extractor=components.extractor,
        uploader=components.uploader,
        settings=components.settings,
    )


def get_job_service(
    components: Annotated[Components, Depends(get_components)],
    runner: Annotated[PipelineRunner, Depends(get_runner)],
) -> JobService:
    return JobService(components.store, broadcaster=components.broadcaster, runner=runner)


def get_translation_service(components: Annotated[Components, Depends(get_components)]) -> TranslationService:
    return TranslationService(components.store, components.translator)
