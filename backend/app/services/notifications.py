"""Notification service — best-effort in-app notifications.

Notifications are written after the primary change has committed. A failure
here is logged and rolled back; it never fails the request that triggered it.
"""

import json
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.notification import Notification

logger = logging.getLogger(__name__)


def notify(
    db: Session,
    actor_id: Optional[str],
    type: str,
    title: str,
    body: str = "",
    data: Optional[dict] = None,
) -> Optional[Notification]:
    if not actor_id:
        return None
    try:
        notification = Notification(
            actor_id=actor_id,
            type=type,
            title=title,
            body=body,
            data=json.dumps(data or {}),
        )
        db.add(notification)
        db.commit()
        return notification
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to create %s notification for actor %s", type, actor_id)
        return None


def list_notifications(db: Session, actor_id: str, unread_only: bool = False, limit: int = 50) -> list[Notification]:
    query = db.query(Notification).filter(Notification.actor_id == actor_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc()).limit(limit).all()
