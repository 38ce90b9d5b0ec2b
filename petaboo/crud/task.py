#petaboo/crud/task.py
from sqlalchemy.orm import Session
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import Any, Dict, List, Optional
import logging
import uuid

from petaboo.models.task import TeamTask, TASK_STATUSES, TASK_PRIORITIES, DELETED_STATUS
from petaboo.core.clock import now_ms, next_version
from petaboo.core.exceptions import TaskNotFound, TaskValidationError, UpstreamError
from petaboo.crud.activity import log_activity, ActivityType, TargetType
from petaboo.crud.team import get_member

logger = logging.getLogger("Petaboo.Tasks")

# Сколько раз пробуем занять номер задачи при параллельном создании
ORIGINAL_ID_ATTEMPTS = 3

# Поля, которые можно менять через update (status обрабатывается отдельно)
UPDATABLE_FIELDS = ("title", "description", "priority", "assignee_id", "board_category_id")

def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to {action}: {e}")
        raise UpstreamError(f"Database error while trying to {action}.")

def _validate_assignee(db: Session, team_id: int, assignee_id: Optional[str]) -> Optional[str]:
    if assignee_id is None or assignee_id == "":
        return None
    if not get_member(db, team_id, assignee_id):
        raise TaskValidationError("Assignee must be a team member.")
    return assignee_id

def _next_original_id(db: Session, team_id: int) -> str:
    # задачи удаляются только мягко, поэтому count + 1 не повторяется
    count = db.query(func.count(TeamTask.id)).filter(TeamTask.team_id == team_id).scalar() or 0
    return str(count + 1)

def _add_numbered(db: Session, task: TeamTask) -> None:
    """
    Вставляет задачу со следующим номером в команде.
    Если номер уже занят параллельным запросом (UniqueConstraint), берёт следующий.
    """
    for _ in range(ORIGINAL_ID_ATTEMPTS):
        task.original_id = _next_original_id(db, task.team_id)
        try:
            with db.begin_nested():
                db.add(task)
            return
        except IntegrityError:
            logger.warning(f"Task number {task.original_id} already taken in team {task.team_id}, retrying")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to insert task in team {task.team_id}: {e}")
            raise UpstreamError("Database error while trying to create task.")
    db.rollback()
    raise UpstreamError("Could not allocate a task number, please retry.")

def create_team_task(db: Session, team_id: int, user_id: str, data: dict) -> TeamTask:
    """
    Создать задачу команды.
    """
    title = (data.get("title") or "").strip()
    if not title:
        raise TaskValidationError("Title is required.")
    status = data.get("status") or "todo"
    if status not in TASK_STATUSES:
        raise TaskValidationError(f"Invalid status: {status}")
    priority = data.get("priority") or "medium"
    if priority not in TASK_PRIORITIES:
        raise TaskValidationError(f"Invalid priority: {priority}")
    assignee_id = _validate_assignee(db, team_id, data.get("assignee_id"))

    now = now_ms()
    task = TeamTask(
        team_id=team_id,
        user_id=user_id,
        uuid=str(uuid.uuid4()),
        title=title,
        description=data.get("description"),
        status=status,
        priority=priority,
        assignee_id=assignee_id,
        board_category_id=data.get("board_category_id"),
        created_at=now,
        updated_at=now,
    )
    _add_numbered(db, task)
    log_activity(
        db,
        team_id=team_id,
        user_id=user_id,
        action_type=ActivityType.TASK_CREATED,
        target_type=TargetType.TASK,
        target_id=task.original_id,
        target_title=title,
    )
    _commit(db, "create task")
    logger.info(f"Created task {task.id} in team {team_id}")
    return task

def get_team_task(db: Session, team_id: int, task_id: int, include_deleted: bool = False) -> TeamTask:
    query = db.query(TeamTask).filter(TeamTask.id == task_id, TeamTask.team_id == team_id)
    if not include_deleted:
        query = query.filter(TeamTask.status != DELETED_STATUS)
    task = query.first()
    if not task:
        raise TaskNotFound(f"Task {task_id} not found{' (or is deleted)' if not include_deleted else ''}.")
    return task

def get_team_task_by_original_id(db: Session, team_id: int, original_id: str) -> Optional[TeamTask]:
    return (
        db.query(TeamTask)
        .filter(TeamTask.team_id == team_id, TeamTask.original_id == original_id)
        .first()
    )

def get_team_tasks(db: Session, team_id: int, filters: dict = None) -> List[TeamTask]:
    """
    Задачи команды (без удалённых, если не запрошено иное), свежие сначала.
    """
    filters = filters or {}
    query = db.query(TeamTask).filter(TeamTask.team_id == team_id)
    if filters.get("show_deleted"):
        query = query.filter(TeamTask.status == DELETED_STATUS)
    else:
        query = query.filter(TeamTask.status != DELETED_STATUS)
    if filters.get("status"):
        query = query.filter(TeamTask.status == filters["status"])
    if filters.get("assignee_id"):
        query = query.filter(TeamTask.assignee_id == filters["assignee_id"])
    if filters.get("board_category_id") is not None:
        query = query.filter(TeamTask.board_category_id == filters["board_category_id"])
    return query.order_by(TeamTask.updated_at.desc(), TeamTask.id.desc()).all()

def _record_status_change(db: Session, task: TeamTask, user_id: str, old: str, new: str) -> None:
    log_activity(
        db,
        team_id=task.team_id,
        user_id=user_id,
        action_type=ActivityType.TASK_STATUS_CHANGED,
        target_type=TargetType.TASK,
        target_id=task.original_id,
        target_title=task.title,
        metadata={"from": old, "to": new},
    )

def update_team_task(db: Session, task: TeamTask, data: Dict[str, Any], user_id: str) -> TeamTask:
    """
    Обновить задачу. Смена статуса пишет task_status_changed, смена остальных полей — task_updated.
    Если ничего не изменилось, строка и updated_at остаются прежними.
    """
    changes: Dict[str, Any] = {}
    for field in UPDATABLE_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if field == "title":
            value = (value or "").strip()
            if not value:
                raise TaskValidationError("Task title is required.")
        elif field == "priority" and value not in TASK_PRIORITIES:
            raise TaskValidationError(f"Invalid priority: {value}")
        elif field == "assignee_id":
            value = _validate_assignee(db, task.team_id, value)
        if getattr(task, field) != value:
            changes[field] = value

    old_status = task.status
    new_status = data.get("status") or old_status
    if new_status not in TASK_STATUSES:
        raise TaskValidationError(f"Invalid status: {new_status}")
    status_changed = new_status != old_status

    if not changes and not status_changed:
        logger.info(f"Update called but no changes for task {task.id}")
        return task

    for field, value in changes.items():
        setattr(task, field, value)
    task.status = new_status
    task.updated_at = next_version(task.updated_at)

    if changes:
        log_activity(
            db,
            team_id=task.team_id,
            user_id=user_id,
            action_type=ActivityType.TASK_UPDATED,
            target_type=TargetType.TASK,
            target_id=task.original_id,
            target_title=task.title,
            metadata={"fields": sorted(changes)},
        )
    if status_changed:
        _record_status_change(db, task, user_id, old_status, new_status)

    _commit(db, "update task")
    logger.info(f"Updated task {task.id} fields: {sorted(changes)} status: {old_status}->{new_status}")
    return task

def delete_team_task(db: Session, task: TeamTask, user_id: str) -> TeamTask:
    """
    Soft-delete: статус "deleted", строка остаётся для restore.
    """
    if task.status == DELETED_STATUS:
        raise TaskValidationError("Task already deleted.")
    old_status = task.status
    now = now_ms()
    task.status = DELETED_STATUS
    task.deleted_at = now
    task.updated_at = next_version(task.updated_at)
    _record_status_change(db, task, user_id, old_status, DELETED_STATUS)
    log_activity(
        db,
        team_id=task.team_id,
        user_id=user_id,
        action_type=ActivityType.TASK_DELETED,
        target_type=TargetType.TASK,
        target_id=task.original_id,
        target_title=task.title,
    )
    _commit(db, "delete task")
    logger.info(f"Deleted task {task.id} (was {old_status})")
    return task

def restore_team_task(db: Session, task: TeamTask, user_id: str) -> TeamTask:
    """
    Восстановить удалённую задачу в статус todo.
    """
    if task.status != DELETED_STATUS:
        raise TaskValidationError(f"Task with id={task.id} is not deleted.")
    task.status = "todo"
    task.deleted_at = None
    task.updated_at = next_version(task.updated_at)
    _record_status_change(db, task, user_id, DELETED_STATUS, "todo")
    _commit(db, "restore task")
    logger.info(f"Restored task {task.id}")
    return task
