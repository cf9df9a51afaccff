"""Notification API endpoints."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shiftwise.dependencies import get_db
from shiftwise.schemas.notification import NotificationResponse
from shiftwise.services.notification_service import notification_service

router = APIRouter()


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    user_id: UUID = Query(..., alias="userId"),
    include_read: bool = Query(False, alias="includeRead"),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    """Get notifications for a user, newest first."""
    return await notification_service.get_user_notifications(
        db=db,
        user_id=user_id,
        include_read=include_read,
        limit=limit,
    )


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: UUID,
    user_id: UUID = Query(..., alias="userId"),
    db: AsyncSession = Depends(get_db),
):
    """Mark a notification as read."""
    notification = await notification_service.mark_as_read(
        db=db,
        notification_id=notification_id,
        user_id=user_id,
    )

    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")

    return notification
