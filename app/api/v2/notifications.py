"""Notifications API - User notification management.

Provides endpoints for fetching and managing the caller's notifications, and
for admins to broadcast a message to users or roles.
"""

from fastapi import APIRouter, Depends, Query, status
from typing import Optional, Literal
from pydantic import BaseModel, Field, model_validator
from datetime import datetime

from sqlalchemy import select, func, and_, update

from app.api.deps import CurrentUser, DbSession, Now, require_permission
from app.exceptions import NotFoundError
from app.models.notification import Notification
from app.models.user import User
from app.security.rbac import Permission
from app.services import notification_service

router = APIRouter()


class NotificationResponse(BaseModel):
    id: int
    type: str  # schedule, reminder, repair, system
    title: str
    message: str
    read: bool = False
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    link: Optional[str] = None
    metadata: Optional[dict] = None

    @classmethod
    def from_model(cls, n: Notification) -> "NotificationResponse":
        return cls(
            id=n.id,
            type=n.type,
            title=n.title,
            message=n.message,
            read=n.read,
            read_at=n.read_at,
            created_at=n.created_at,
            link=n.link,
            metadata=n.extra_data,
        )


class NotificationStats(BaseModel):
    total: int = 0
    unread: int = 0


class BulkNotificationRequest(BaseModel):
    """Send one message to explicit users or to every active user of a role."""

    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    type: str = "system"
    link: Optional[str] = None
    user_ids: Optional[list[int]] = None
    role: Optional[Literal["teknisi", "supervisor", "admin"]] = None

    @model_validator(mode="after")
    def one_target(self):
        if not self.user_ids and not self.role:
            raise ValueError("Provide user_ids or role")
        return self


def _unread(user_id: int):
    return and_(Notification.user_id == user_id, Notification.read == False)  # noqa: E712


@router.get("")
async def list_notifications(
    current_user: CurrentUser,
    db: DbSession,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    unread_only: bool = False,
):
    """List notifications for the current user."""
    query = select(Notification).where(Notification.user_id == current_user.id)

    if unread_only:
        query = query.where(Notification.read == False)  # noqa: E712

    # Count total
    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    # Get paginated results
    query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(offset).limit(limit)
    notifications = (await db.execute(query)).scalars().all()

    return {
        "items": [NotificationResponse.from_model(n) for n in notifications],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.get("/unread")
async def list_unread_notifications(
    current_user: CurrentUser,
    db: DbSession,
    limit: int = Query(10, ge=1, le=100),
):
    """Most recent unread notifications plus the unread count (for the header badge)."""
    count = (
        await db.execute(select(func.count(Notification.id)).where(_unread(current_user.id)))
    ).scalar() or 0
    result = await db.execute(
        select(Notification)
        .where(_unread(current_user.id))
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    return {
        "items": [NotificationResponse.from_model(n) for n in result.scalars().all()],
        "count": count,
    }


@router.get("/stats", response_model=NotificationStats)
async def get_notification_stats(
    current_user: CurrentUser,
    db: DbSession,
):
    """Get notification statistics for the current user."""
    total = (
        await db.execute(
            select(func.count(Notification.id)).where(Notification.user_id == current_user.id)
        )
    ).scalar() or 0
    unread = (
        await db.execute(select(func.count(Notification.id)).where(_unread(current_user.id)))
    ).scalar() or 0

    return NotificationStats(total=total, unread=unread)


@router.patch("/mark-all-read")
async def mark_all_notifications_read(
    current_user: CurrentUser,
    db: DbSession,
    now: Now,
):
    """Mark all notifications as read."""
    result = await db.execute(
        update(Notification)
        .where(_unread(current_user.id))
        .values(read=True, read_at=now)
    )
    await db.commit()

    return {"success": True, "count": result.rowcount}


@router.patch("/{notification_id}/mark-read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: int,
    current_user: CurrentUser,
    db: DbSession,
    now: Now,
):
    """Mark a notification as read."""
    result = await db.execute(
        select(Notification).where(
            and_(Notification.id == notification_id, Notification.user_id == current_user.id)
        )
    )
    notification = result.scalar_one_or_none()

    if not notification:
        raise NotFoundError("Notification", notification_id)

    if not notification.read:
        notification.read = True
        notification.read_at = now
        await db.commit()

    return NotificationResponse.from_model(notification)


@router.post(
    "/bulk",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission(Permission.SEND_BULK_NOTIFICATIONS))],
)
async def send_bulk_notification(
    data: BulkNotificationRequest,
    db: DbSession,
):
    """Send a notification to a list of users or to every active user of a role."""
    if data.user_ids:
        result = await db.execute(
            select(User.id).where(User.id.in_(data.user_ids), User.is_active == True)  # noqa: E712
        )
        created = [
            notification_service.notify_user(
                db, user_id, type=data.type, title=data.title,
                message=data.message, link=data.link, source="user",
            )
            for user_id in result.scalars().all()
        ]
    else:
        created = await notification_service.notify_roles(
            db, [data.role], type=data.type, title=data.title,
            message=data.message, link=data.link, source="user",
        )

    await db.commit()
    return {"success": True, "count": len(created)}
