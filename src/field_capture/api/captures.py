"""Capture and record endpoints for the UI layer."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from field_capture.api.schemas import (
    CaptureRecordOut,
    CaptureRequest,
    CaptureStateOut,
    GeoFixOut,
    RecordListOut,
)
from field_capture.domain.errors import (
    CaptureInProgressError,
    RecordNotFoundError,
    RecordUnlocatedError,
)

if TYPE_CHECKING:
    from field_capture.containers import AppContainer


def _get_api_token(request: Request) -> str | None:
    container: AppContainer = request.app.state.container
    return container.settings.api_token


async def require_api_token(
    x_api_token: str | None = Header(default=None),
    api_token: str | None = Depends(_get_api_token),
) -> None:
    """Ensure requests carry the configured token, when one is configured."""
    if api_token is None:
        return
    if not x_api_token or x_api_token != api_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


router = APIRouter(tags=["captures"], dependencies=[Depends(require_api_token)])


@router.post(
    "/parents/{parent_id}/captures", status_code=status.HTTP_202_ACCEPTED
)
async def start_capture(
    parent_id: int,
    request: Request,
    body: CaptureRequest | None = None,
    wait: bool = False,
) -> CaptureStateOut:
    """Start a capture cycle; with ``wait`` the response carries the outcome."""
    container: AppContainer = request.app.state.container
    container.registry.observe(parent_id)
    session = container.registry.session_for(parent_id)
    try:
        task = session.start(note=body.note if body else None)
    except CaptureInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if wait:
        await task
    return CaptureStateOut.from_state(session.current)


@router.get("/parents/{parent_id}/captures/state")
async def capture_state(parent_id: int, request: Request) -> CaptureStateOut:
    """Return the current state of the parent's capture session."""
    container: AppContainer = request.app.state.container
    session = container.registry.session_for(parent_id)
    return CaptureStateOut.from_state(session.current)


@router.post("/parents/{parent_id}/captures/reset")
async def reset_capture(parent_id: int, request: Request) -> CaptureStateOut:
    """Return a finished session to idle so another capture can start."""
    container: AppContainer = request.app.state.container
    session = container.registry.session_for(parent_id)
    try:
        session.reset()
    except CaptureInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return CaptureStateOut.from_state(session.current)


@router.get("/parents/{parent_id}/records")
async def list_records(parent_id: int, request: Request) -> RecordListOut:
    """Return the live record list for a parent."""
    container: AppContainer = request.app.state.container
    view = container.registry.observe(parent_id)
    return RecordListOut.from_list(view.value)


@router.delete("/parents/{parent_id}/records")
async def delete_parent_records(parent_id: int, request: Request) -> dict[str, int]:
    """Delete every record of a parent along with their media."""
    container: AppContainer = request.app.state.container
    deleted = container.record_service.delete_parent_records(parent_id)
    return {"deleted": deleted}


@router.get("/records/{record_id}/location")
async def record_location(record_id: int, request: Request) -> CaptureRecordOut:
    """Return a record that can be shown on a map."""
    container: AppContainer = request.app.state.container
    try:
        record = container.record_service.get_located_record(record_id)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RecordUnlocatedError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    return CaptureRecordOut.from_record(record)


@router.delete("/records/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_record(record_id: int, request: Request) -> None:
    """Delete a record and its media file."""
    container: AppContainer = request.app.state.container
    try:
        container.record_service.delete_record(record_id)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("/location/last-known")
async def last_known_location(request: Request) -> dict[str, GeoFixOut | None]:
    """Return the last fix the location source recorded, if any."""
    container: AppContainer = request.app.state.container
    fix = container.location_provider.get_last_known_fix()
    return {"location": GeoFixOut.from_fix(fix)}
