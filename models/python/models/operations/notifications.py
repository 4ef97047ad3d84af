"""Notification sink used by bid placement and lifecycle transitions."""

import logging
from typing import Iterable, List, Optional

from models.entities.couchbase.notifications import Notification, NotificationData
from models.engine.lifecycle import NotificationDraft

logger = logging.getLogger(__name__)


async def notification_create(draft: NotificationDraft) -> Notification:
    data = NotificationData(**draft.model_dump())
    return await Notification.create(data)


async def notification_create_many(drafts: Iterable[NotificationDraft]) -> List[Notification]:
    """Store each draft. A failed write is logged and skipped so the rest still go out."""
    created = []
    for draft in drafts:
        try:
            created.append(await notification_create(draft))
        except Exception as e:
            logger.warning(f"Failed to create {draft.type} notification for {draft.user_id}: {e}")
    if created:
        logger.info(f"Created {len(created)} notifications for auction {created[0].data.auction_id}")
    return created


async def notification_get_for_user(
    user_id: str, unread_only: bool = False, limit: int = 50
) -> List[Notification]:
    where = "user_id = $user_id"
    if unread_only:
        where += " AND `read` = false"
    return await Notification.query(
        where, order_by="`timestamp` DESC", limit=limit, user_id=user_id,
    )


async def notification_mark_read(
    notification_id: str, user_id: str
) -> tuple[Optional[Notification], Optional[str]]:
    """Mark a notification read. Only its recipient may do so."""
    notification = await Notification.get(notification_id)
    if not notification:
        return None, "Notification not found"
    if notification.data.user_id != user_id:
        return None, "Not your notification"
    if not notification.data.read:
        notification.data.read = True
        notification = await Notification.update(notification)
    return notification, None
