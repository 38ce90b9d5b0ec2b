#petaboo/api/notification.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from petaboo.schemas.notification import MarkAllReadResponse, NotificationList, NotificationRead
from petaboo.crud.notification import get_notifications, mark_all_as_read, mark_as_read
from petaboo.crud.team import get_team
from petaboo.dependencies import get_current_user_id, get_db, resolve_membership

router = APIRouter(prefix="/notifications", tags=["Notifications"])

@router.get("", response_model=NotificationList)
def list_notifications(
    team_id: int = Query(..., alias="teamId"),
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Уведомления пользователя в команде и число непрочитанных.
    """
    resolve_membership(db, get_team(db, team_id), user_id)
    notifications, unread_count = get_notifications(db, team_id, user_id, limit=limit)
    return NotificationList(
        notifications=[NotificationRead.model_validate(n) for n in notifications],
        unread_count=unread_count,
    )

@router.put("/mark-all-read", response_model=MarkAllReadResponse)
def mark_all_notifications_read(
    team_id: int = Query(..., alias="teamId"),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    resolve_membership(db, get_team(db, team_id), user_id)
    return MarkAllReadResponse(updated=mark_all_as_read(db, team_id, user_id))

@router.put("/{notification_id}/read", response_model=NotificationRead)
def mark_notification_read(
    notification_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return mark_as_read(db, notification_id, user_id)
