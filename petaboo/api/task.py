#petaboo/api/task.py
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import List, Optional

from petaboo.schemas.task import TeamTaskCreate, TeamTaskRead, TeamTaskUpdate
from petaboo.schemas.response import ConflictResponse
from petaboo.crud.task import (
    create_team_task,
    delete_team_task,
    get_team_task,
    get_team_tasks,
    restore_team_task,
    update_team_task,
)
from petaboo.core.conflict import check_conflict
from petaboo.dependencies import TeamContext, get_db, get_team_member

router = APIRouter(prefix="/teams/{team_id}/tasks", tags=["Team Tasks"])

TASKS_TABLE = "team_tasks"
CONFLICT_RESPONSES = {status.HTTP_409_CONFLICT: {"model": ConflictResponse}}

@router.get("", response_model=List[TeamTaskRead])
def list_team_tasks(
    status_filter: Optional[str] = Query(None, alias="status", description="Фильтр по статусу"),
    assignee_id: Optional[str] = Query(None, alias="assigneeId", description="Фильтр по исполнителю"),
    board_category_id: Optional[int] = Query(None, alias="boardCategoryId"),
    show_deleted: bool = Query(False, alias="showDeleted", description="Показать только удалённые"),
    context: TeamContext = Depends(get_team_member),
    db: Session = Depends(get_db),
):
    """
    Задачи команды (по умолчанию без удалённых).
    """
    filters = {
        "status": status_filter,
        "assignee_id": assignee_id,
        "board_category_id": board_category_id,
        "show_deleted": show_deleted,
    }
    return get_team_tasks(db, context.team.id, filters)

@router.post("", response_model=TeamTaskRead, status_code=status.HTTP_201_CREATED)
def create_team_task_api(
    data: TeamTaskCreate,
    context: TeamContext = Depends(get_team_member),
    db: Session = Depends(get_db),
):
    return create_team_task(db, context.team.id, context.member.user_id, data.model_dump())

@router.get("/{task_id}", response_model=TeamTaskRead)
def read_team_task(
    task_id: int,
    context: TeamContext = Depends(get_team_member),
    db: Session = Depends(get_db),
):
    return get_team_task(db, context.team.id, task_id)

@router.put("/{task_id}", response_model=TeamTaskRead, responses=CONFLICT_RESPONSES)
def update_team_task_api(
    task_id: int,
    data: TeamTaskUpdate,
    context: TeamContext = Depends(get_team_member),
    db: Session = Depends(get_db),
):
    """
    Обновить задачу. Если updatedAt клиента устарел — 409 и никаких изменений.
    """
    payload = data.model_dump(exclude_unset=True)
    client_updated_at = payload.pop("updated_at", None)
    result = check_conflict(db, TASKS_TABLE, task_id, client_updated_at, team_id=context.team.id)
    if result.conflict:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=result.to_response())
    task = get_team_task(db, context.team.id, task_id)
    return update_team_task(db, task, payload, context.member.user_id)

@router.delete("/{task_id}", response_model=TeamTaskRead, responses=CONFLICT_RESPONSES)
def delete_team_task_api(
    task_id: int,
    updated_at: Optional[int] = Query(None, alias="updatedAt", description="Версия строки у клиента (мс)"),
    context: TeamContext = Depends(get_team_member),
    db: Session = Depends(get_db),
):
    """
    Мягкое удаление: статус deleted, восстановить можно через restore.
    """
    result = check_conflict(db, TASKS_TABLE, task_id, updated_at, team_id=context.team.id)
    if result.conflict:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=result.to_response())
    task = get_team_task(db, context.team.id, task_id)
    return delete_team_task(db, task, context.member.user_id)

@router.post("/{task_id}/restore", response_model=TeamTaskRead)
def restore_team_task_api(
    task_id: int,
    context: TeamContext = Depends(get_team_member),
    db: Session = Depends(get_db),
):
    task = get_team_task(db, context.team.id, task_id, include_deleted=True)
    return restore_team_task(db, task, context.member.user_id)
