"""
Notification inbox endpoints.

GET  /notifications/me            — the caller's notifications
POST /notifications/{id}/read     — mark one as read
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from models.operations.notifications import notification_get_for_user, notification_mark_read

from .dependencies import CurrentUser, current_user_get

router = APIRouter(prefix="/notifications", tags=["notifications"])


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: str
    auction_id: Optional[str] = None
    read: bool
    timestamp: datetime


def _notification_to_response(notification) -> NotificationResponse:
    d = notification.data
    return NotificationResponse(
        id=notification.id,
        type=d.type,
        title=d.title,
        message=d.message,
        auction_id=d.auction_id,
        read=d.read,
        timestamp=d.timestamp,
    )


@router.get("/me", response_model=List[NotificationResponse])
async def route_notifications_mine(
    unread_only: bool = False,
    limit: int = Query(default=50, le=200),
    user: CurrentUser = Depends(current_user_get),
):
    notifications = await notification_get_for_user(user.id, unread_only=unread_only, limit=limit)
    return [_notification_to_response(n) for n in notifications]


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def route_notification_mark_read(
    notification_id: str,
    user: CurrentUser = Depends(current_user_get),
):
    notification, err = await notification_mark_read(notification_id, user.id)
    if err == "Notification not found":
        raise HTTPException(status_code=404, detail=err)
    if err:
        raise HTTPException(status_code=403, detail=err)
    return _notification_to_response(notification)
