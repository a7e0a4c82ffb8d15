"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status

from app.schemas import (
    PipelineStatus,
    ReadingAccepted,
    StartRequest,
    ViewStateResponse,
    WindowRequest,
)
from services.errors import PipelineStateError
from services.parser import parse_timestamp
from services.pipeline import PipelineController
from services.registry import PipelineRegistry, build_default_registry

router = APIRouter()


def get_registry() -> PipelineRegistry:
    return build_default_registry()


def _status(pipeline: PipelineController) -> PipelineStatus:
    return PipelineStatus(
        installation_id=pipeline.installation_id,
        state=pipeline.state,
        window=pipeline.window,
    )


def _existing_pipeline(registry: PipelineRegistry, installation_id: str) -> PipelineController:
    try:
        return registry.get(installation_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc.args[0]),
        ) from exc


@router.post(
    "/installations/{installation_id}/pipeline/start",
    response_model=PipelineStatus,
    summary="Subscribe the installation's pipeline to the telemetry feed.",
)
async def start_pipeline(
    installation_id: str,
    request: Optional[StartRequest] = None,
    registry: PipelineRegistry = Depends(get_registry),
) -> PipelineStatus:
    pipeline = registry.get_or_create(installation_id)
    try:
        pipeline.start(request.window if request else None)
    except PipelineStateError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    return _status(pipeline)


@router.post(
    "/installations/{installation_id}/pipeline/stop",
    response_model=PipelineStatus,
    summary="Release the feed subscription and cancel outbound requests.",
)
async def stop_pipeline(
    installation_id: str,
    registry: PipelineRegistry = Depends(get_registry),
) -> PipelineStatus:
    pipeline = _existing_pipeline(registry, installation_id)
    pipeline.stop()
    return _status(pipeline)


@router.put(
    "/installations/{installation_id}/pipeline/window",
    response_model=ViewStateResponse,
    summary="Change the active series window and re-project held readings.",
)
async def change_window(
    installation_id: str,
    request: WindowRequest,
    registry: PipelineRegistry = Depends(get_registry),
) -> ViewStateResponse:
    pipeline = _existing_pipeline(registry, installation_id)
    view = pipeline.set_window(request.window)
    return ViewStateResponse.from_view(view, pipeline.state)


@router.get(
    "/installations/{installation_id}/view",
    response_model=ViewStateResponse,
    summary="Fetch the latest published view state.",
)
async def get_view(
    installation_id: str,
    registry: PipelineRegistry = Depends(get_registry),
) -> ViewStateResponse:
    pipeline = _existing_pipeline(registry, installation_id)
    return ViewStateResponse.from_view(pipeline.view(), pipeline.state)


@router.put(
    "/installations/{installation_id}/readings/{timestamp}",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ReadingAccepted,
    summary="Write one reading into the telemetry feed.",
)
async def put_reading(
    installation_id: str,
    timestamp: str,
    fields: Dict[str, Any] = Body(..., description="Raw sensor fields keyed by telemetry name."),
    registry: PipelineRegistry = Depends(get_registry),
) -> ReadingAccepted:
    if parse_timestamp(timestamp) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Timestamp {timestamp!r} is not numeric.",
        )
    registry.feed.put_reading(installation_id, timestamp, fields)
    return ReadingAccepted(installation_id=installation_id, timestamp=timestamp)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
