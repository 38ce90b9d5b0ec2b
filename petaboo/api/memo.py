#petaboo/api/memo.py
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import List, Optional

from petaboo.schemas.memo import TeamMemoCreate, TeamMemoRead, TeamMemoUpdate
from petaboo.schemas.response import ConflictResponse, SuccessResponse
from petaboo.crud.memo import (
    create_team_memo,
    delete_team_memo,
    get_team_memo,
    get_team_memos,
    update_team_memo,
)
from petaboo.core.conflict import check_conflict
from petaboo.dependencies import TeamContext, get_db, get_team_member

router = APIRouter(prefix="/teams/{team_id}/memos", tags=["Team Memos"])

MEMOS_TABLE = "team_memos"

@router.get("", response_model=List[TeamMemoRead])
def list_team_memos(
    context: TeamContext = Depends(get_team_member),
    db: Session = Depends(get_db),
):
    return get_team_memos(db, context.team.id)

@router.post("", response_model=TeamMemoRead, status_code=status.HTTP_201_CREATED)
def create_team_memo_api(
    data: TeamMemoCreate,
    context: TeamContext = Depends(get_team_member),
    db: Session = Depends(get_db),
):
    return create_team_memo(db, context.team.id, context.member.user_id, data.model_dump())

@router.get("/{memo_id}", response_model=TeamMemoRead)
def read_team_memo(
    memo_id: int,
    context: TeamContext = Depends(get_team_member),
    db: Session = Depends(get_db),
):
    return get_team_memo(db, context.team.id, memo_id)

@router.put("/{memo_id}", response_model=TeamMemoRead, responses={409: {"model": ConflictResponse}})
def update_team_memo_api(
    memo_id: int,
    data: TeamMemoUpdate,
    context: TeamContext = Depends(get_team_member),
    db: Session = Depends(get_db),
):
    """
    Обновить заметку с проверкой версии (updatedAt).
    """
    payload = data.model_dump(exclude_unset=True)
    result = check_conflict(db, MEMOS_TABLE, memo_id, payload.pop("updated_at", None), team_id=context.team.id)
    if result.conflict:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=result.to_response())
    memo = get_team_memo(db, context.team.id, memo_id)
    return update_team_memo(db, memo, payload, context.member.user_id)

@router.delete("/{memo_id}", response_model=SuccessResponse, responses={409: {"model": ConflictResponse}})
def delete_team_memo_api(
    memo_id: int,
    updated_at: Optional[int] = Query(None, alias="updatedAt"),
    context: TeamContext = Depends(get_team_member),
    db: Session = Depends(get_db),
):
    result = check_conflict(db, MEMOS_TABLE, memo_id, updated_at, team_id=context.team.id)
    if result.conflict:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=result.to_response())
    memo = get_team_memo(db, context.team.id, memo_id)
    delete_team_memo(db, memo, context.member.user_id)
    return SuccessResponse(result=memo_id, detail="Memo deleted")
