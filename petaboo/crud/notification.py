#petaboo/crud/notification.py
from datetime import datetime, timezone
from typing import List, Optional, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from petaboo.models.notification import Notification
from petaboo.core.exceptions import NotificationNotFound, UpstreamError

logger = logging.getLogger("Petaboo.Notifications")

def add_notification(
    db: Session,
    *,
    team_id: int,
    user_id: str,
    type: str,
    source_type: Optional[str] = None,
    source_id: Optional[int] = None,
    target_type: Optional[str] = None,
    target_original_id: Optional[str] = None,
    actor_user_id: Optional[str] = None,
    actor_display_name: Optional[str] = None,
    message: Optional[str] = None,
) -> Notification:
    """
    Добавляет уведомление в текущую транзакцию. Коммит делает вызывающий
    вместе с основной операцией.
    """
    notification = Notification(
        team_id=team_id,
        user_id=user_id,
        type=type,
        source_type=source_type,
        source_id=source_id,
        target_type=target_type,
        target_original_id=target_original_id,
        actor_user_id=actor_user_id,
        actor_display_name=actor_display_name,
        message=message,
        is_read=False,
    )
    db.add(notification)
    return notification

def get_notifications(db: Session, team_id: int, user_id: str, limit: int = 50) -> Tuple[List[Notification], int]:
    """
    Уведомления пользователя в команде (новые сначала) и общее число непрочитанных.
    """
    notifications = (
        db.query(Notification)
        .filter(Notification.team_id == team_id, Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )
    unread_count = (
        db.query(func.count(Notification.id))
        .filter(
            Notification.team_id == team_id,
            Notification.user_id == user_id,
            Notification.is_read == False,  # noqa: E712
        )
        .scalar()
        or 0
    )
    return notifications, unread_count

def mark_as_read(db: Session, notification_id: int, user_id: str) -> Notification:
    """
    Отметить прочитанным. Чужие уведомления не видны (404).
    """
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if not notification:
        raise NotificationNotFound(f"Notification {notification_id} not found.")
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.now(timezone.utc)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to mark notification {notification_id} as read: {e}")
            raise UpstreamError("Database error while updating notification.")
    return notification

def mark_all_as_read(db: Session, team_id: int, user_id: str) -> int:
    try:
        updated = (
            db.query(Notification)
            .filter(
                Notification.team_id == team_id,
                Notification.user_id == user_id,
                Notification.is_read == False,  # noqa: E712
            )
            .update(
                {Notification.is_read: True, Notification.read_at: datetime.now(timezone.utc)},
                synchronize_session=False,
            )
        )
        db.commit()
        logger.info(f"Marked {updated} notifications as read for {user_id} in team {team_id}")
        return updated
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to mark all notifications as read: {e}")
        raise UpstreamError("Database error while updating notifications.")
