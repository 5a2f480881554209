from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import ROLE_ADMIN, Notification, User
from ..services.notification_service import create_notification

router = APIRouter(prefix="/notifications", tags=["Notifications"])


class NotificationCreate(BaseModel):
    type: str = Field(min_length=1, max_length=50)
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1)
    data: Optional[dict[str, Any]] = None
    priority: str = Field(default="medium", pattern="^(low|medium|high)$")
    targetUserId: Optional[int] = None


class NotificationResponse(BaseModel):
    id: int
    type: str
    title: str
    message: str
    data: Optional[dict[str, Any]] = None
    priority: str
    read: bool
    createdAt: Optional[datetime] = None


def to_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        data=notification.data,
        priority=notification.priority,
        read=notification.read,
        createdAt=notification.created_at,
    )


def _own_notifications(db: Session, user: User):
    return db.query(Notification).filter(
        Notification.user_id == user.id, Notification.tenant_id == user.tenant_id
    )


@router.get("")
async def get_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unreadOnly: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Newest first, with the unread count for the badge"""
    query = _own_notifications(db, current_user)
    if unreadOnly:
        query = query.filter(Notification.read.is_(False))

    total = query.count()
    notifications = (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    unread_count = _own_notifications(db, current_user).filter(Notification.read.is_(False)).count()

    return {
        "notifications": [to_response(n) for n in notifications],
        "unreadCount": unread_count,
        "pagination": {"page": page, "limit": limit, "total": total},
    }


@router.post("", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def post_notification(
    data: NotificationCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Admins may address another user of their tenant, everyone else notifies themselves"""
    user_id = current_user.id
    if data.targetUserId and current_user.role == ROLE_ADMIN:
        target = (
            db.query(User)
            .filter(User.id == data.targetUserId, User.tenant_id == current_user.tenant_id)
            .first()
        )
        if not target:
            raise HTTPException(status_code=404, detail="User not found")
        user_id = target.id

    notification = create_notification(
        db,
        tenant_id=current_user.tenant_id,
        user_id=user_id,
        notification_type=data.type,
        title=data.title,
        message=data.message,
        data=data.data,
        priority=data.priority,
    )
    return to_response(notification)


@router.post("/mark-all-read")
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = (
        _own_notifications(db, current_user)
        .filter(Notification.read.is_(False))
        .update({Notification.read: True}, synchronize_session=False)
    )
    db.commit()
    return {"success": True, "updated": updated}


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notification = _own_notifications(db, current_user).filter(Notification.id == notification_id).first()
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")

    notification.read = True
    db.commit()
    db.refresh(notification)
    return to_response(notification)
