#petaboo/crud/activity.py
import enum
import logging
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from petaboo.models.activity import ActivityLog
from petaboo.core.exceptions import InvalidActivityType

logger = logging.getLogger("Petaboo.Activity")

class ActivityType(str, enum.Enum):
    # memos
    MEMO_CREATED = "memo_created"
    MEMO_UPDATED = "memo_updated"
    MEMO_DELETED = "memo_deleted"
    # tasks
    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_STATUS_CHANGED = "task_status_changed"
    TASK_DELETED = "task_deleted"
    # comments
    COMMENT_CREATED = "comment_created"
    COMMENT_DELETED = "comment_deleted"
    # boards
    BOARD_ITEM_ADDED = "board_item_added"
    BOARD_ITEM_REMOVED = "board_item_removed"
    # members
    MEMBER_JOINED = "member_joined"
    MEMBER_LEFT = "member_left"

class TargetType(str, enum.Enum):
    MEMO = "memo"
    TASK = "task"
    COMMENT = "comment"
    BOARD = "board"
    MEMBER = "member"

def _coerce(enum_cls, value, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidActivityType(f"Unknown {label}: {value!r}")

def log_activity(
    db: Session,
    *,
    team_id: int,
    user_id: str,
    action_type: Union[ActivityType, str],
    target_type: Union[TargetType, str],
    target_id: Optional[Any] = None,
    target_title: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Optional[ActivityLog]:
    """
    Добавляет запись в журнал активности в текущей транзакции вызывающего.

    Запись идёт через SAVEPOINT: коммитится вместе с основной мутацией,
    а сбой записи откатывает только savepoint и попадает в лог, не ломая основную операцию.
    Неизвестный action_type/target_type — ошибка вызывающего, она не глушится.
    """
    action = _coerce(ActivityType, action_type, "activity type")
    target = _coerce(TargetType, target_type, "target type")

    # ошибки основной мутации должны всплыть к вызывающему, а не в except ниже
    db.flush()
    try:
        with db.begin_nested():
            entry = ActivityLog(
                team_id=team_id,
                user_id=user_id,
                action_type=action.value,
                target_type=target.value,
                target_id=str(target_id) if target_id is not None else None,
                target_title=target_title or None,
                metadata_=metadata or None,
            )
            db.add(entry)
        return entry
    except SQLAlchemyError as e:
        logger.error(
            f"Failed to write activity log ({action.value}) for team {team_id}: {e}",
            exc_info=True,
        )
        return None

def get_team_activities(db: Session, team_id: int, limit: int = 20) -> List[ActivityLog]:
    """
    Последние действия команды, новые сначала.
    """
    return (
        db.query(ActivityLog)
        .filter(ActivityLog.team_id == team_id)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .limit(limit)
        .all()
    )
