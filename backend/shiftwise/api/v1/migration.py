"""Guest-to-cloud migration API endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shiftwise.dependencies import get_auth_event_handler, get_db, get_local_storage_service
from shiftwise.schemas.migration import (
    AuthEventRequest,
    AuthEventResponse,
    PendingMigrationResponse,
)
from shiftwise.services.auth_events import AuthEventHandler
from shiftwise.services.local_storage_service import LocalStorageService

router = APIRouter()


def _pending(snapshot) -> PendingMigrationResponse:
    if snapshot is None:
        return PendingMigrationResponse(has_local_data=False)
    return PendingMigrationResponse(
        has_local_data=True,
        goals=len(snapshot.goals),
        shifts=len(snapshot.shifts),
        allocations=len(snapshot.allocations),
        balance=snapshot.balance,
        captured_at=snapshot.captured_at,
    )


@router.post("/auth-events", response_model=AuthEventResponse)
async def handle_auth_event(
    payload: AuthEventRequest,
    db: AsyncSession = Depends(get_db),
    local_storage: LocalStorageService = Depends(get_local_storage_service),
    handler: AuthEventHandler = Depends(get_auth_event_handler),
):
    """
    Auth provider callback.

    Sign-in-like events migrate any guest data into the user's account;
    other events, anonymous sessions and triggers arriving while a run is in
    flight are acknowledged without running anything.
    """
    reason = handler.skip_reason(payload.event, payload.is_anonymous)
    if reason:
        return AuthEventResponse(triggered=False, reason=reason)

    result = await handler.handle(
        db,
        local_storage,
        payload.event,
        payload.user_id,
        snapshot=payload.snapshot,
    )
    if result is None:
        return AuthEventResponse(triggered=False, reason="migration already in progress")

    return AuthEventResponse(triggered=True, result=result)


@router.post("/snapshot", response_model=PendingMigrationResponse)
async def capture_snapshot(
    local_storage: LocalStorageService = Depends(get_local_storage_service),
    handler: AuthEventHandler = Depends(get_auth_event_handler),
):
    """Capture guest data ahead of an auth call; the next migration uses it."""
    snapshot = await handler.capture_snapshot(local_storage)
    return _pending(snapshot)


@router.get("/pending", response_model=PendingMigrationResponse)
async def get_pending_migration(
    local_storage: LocalStorageService = Depends(get_local_storage_service),
    handler: AuthEventHandler = Depends(get_auth_event_handler),
):
    """Preview what a migration would upload right now. Nothing is written."""
    snapshot = await handler.reader.get_snapshot(local_storage)
    return _pending(snapshot)
