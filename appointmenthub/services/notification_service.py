"""
Unified Notification Service
In-app notifications plus the best-effort wrapper used for email and calendar side effects.
A failing side effect is logged and never fails the operation that triggered it.
"""

import logging
from typing import Any, Awaitable, Optional

from sqlalchemy.orm import Session

from ..models import Notification

logger = logging.getLogger(__name__)


def create_notification(
    db: Session,
    tenant_id: int,
    user_id: int,
    notification_type: str,
    title: str,
    message: str,
    data: Optional[dict] = None,
    priority: str = "medium",
    commit: bool = True,
) -> Notification:
    """
    Store an in-app notification for a user

    Args:
        db: Database session
        tenant_id: Tenant the notification belongs to
        user_id: Recipient
        notification_type: Machine-readable type (waitlist_joined, waitlist_slot_available, ...)
        title: Short headline
        message: Body text
        data: Extra JSON payload for the client UI
        priority: low, medium or high
        commit: Commit immediately; pass False to batch with the caller's transaction
    """
    notification = Notification(
        tenant_id=tenant_id,
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        data=data,
        priority=priority,
    )
    db.add(notification)
    if commit:
        db.commit()
        db.refresh(notification)
    logger.info(f"🔔 {notification_type} notification queued for user {user_id}")
    return notification


async def run_side_effect(label: str, awaitable: Awaitable[Any]) -> Optional[Any]:
    """
    Await a secondary effect (email, calendar sync) and swallow its failure

    Returns:
        The awaited result, or None when it raised
    """
    try:
        result = await awaitable
        logger.info(f"✅ {label} completed")
        return result
    except Exception as e:
        logger.error(f"❌ {label} failed: {e}")
        return None
