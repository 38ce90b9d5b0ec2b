#petaboo/api/comment.py
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List

from petaboo.schemas.comment import CommentCreate, CommentRead
from petaboo.schemas.response import SuccessResponse
from petaboo.crud.comment import create_comment, delete_comment, get_comment, get_comments
from petaboo.crud.team import get_team
from petaboo.dependencies import get_current_user_id, get_db, resolve_membership

router = APIRouter(prefix="/comments", tags=["Comments"])

@router.get("", response_model=List[CommentRead])
def list_comments(
    team_id: int = Query(..., alias="teamId"),
    target_type: str = Query(..., alias="targetType", description="memo, task, board"),
    target_original_id: str = Query(..., alias="targetOriginalId"),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Комментарии к объекту команды, старые сначала.
    """
    resolve_membership(db, get_team(db, team_id), user_id)
    return get_comments(db, team_id, target_type, target_original_id)

@router.post("", response_model=CommentRead, status_code=status.HTTP_201_CREATED)
def create_comment_api(
    data: CommentCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Добавить комментарий. Упомянутые (@displayName) и автор объекта получат уведомления.
    """
    context = resolve_membership(db, get_team(db, data.team_id), user_id)
    return create_comment(db, context.member, data.model_dump())

@router.delete("/{comment_id}", response_model=SuccessResponse)
def delete_comment_api(
    comment_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Удалить комментарий может автор или admin команды.
    """
    comment = get_comment(db, comment_id)
    context = resolve_membership(db, get_team(db, comment.team_id), user_id)
    delete_comment(db, comment, context.member)
    return SuccessResponse(result=comment_id, detail="Comment deleted")
