#petaboo/api/admin.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from petaboo.schemas.user import UserRead
from petaboo.schemas.team import TeamRead, TeamWithCount
from petaboo.crud.user import get_users
from petaboo.crud.team import get_all_teams_with_counts
from petaboo.dependencies import get_db, require_admin_user, require_local_access

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(require_local_access), Depends(require_admin_user)],
)

@router.get("/users", response_model=List[UserRead])
def list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """
    Все пользователи (админка, только из локальной сети при LOCAL_ACCESS_ONLY).
    """
    return get_users(db, skip=skip, limit=limit)

@router.get("/teams", response_model=List[TeamWithCount])
def list_teams(db: Session = Depends(get_db)):
    """
    Все команды с числом участников.
    """
    return [
        TeamWithCount(**TeamRead.model_validate(team).model_dump(), member_count=count)
        for team, count in get_all_teams_with_counts(db)
    ]
