#petaboo/crud/memo.py
from sqlalchemy.orm import Session
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import Any, Dict, List, Optional
import logging
import uuid

from petaboo.models.memo import TeamMemo
from petaboo.core.clock import now_ms, next_version
from petaboo.core.exceptions import MemoNotFound, ValidationError, UpstreamError
from petaboo.crud.activity import log_activity, ActivityType, TargetType

logger = logging.getLogger("Petaboo.Memos")

ORIGINAL_ID_ATTEMPTS = 3

def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to {action}: {e}")
        raise UpstreamError(f"Database error while trying to {action}.")

def _next_original_id(db: Session, team_id: int) -> str:
    count = db.query(func.count(TeamMemo.id)).filter(TeamMemo.team_id == team_id).scalar() or 0
    return str(count + 1)

def _add_numbered(db: Session, memo: TeamMemo) -> None:
    """
    Вставляет заметку со следующим номером в команде; занятый номер пропускается.
    """
    for _ in range(ORIGINAL_ID_ATTEMPTS):
        memo.original_id = _next_original_id(db, memo.team_id)
        try:
            with db.begin_nested():
                db.add(memo)
            return
        except IntegrityError:
            logger.warning(f"Memo number {memo.original_id} already taken in team {memo.team_id}, retrying")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to insert memo in team {memo.team_id}: {e}")
            raise UpstreamError("Database error while trying to create memo.")
    db.rollback()
    raise UpstreamError("Could not allocate a memo number, please retry.")

def create_team_memo(db: Session, team_id: int, user_id: str, data: dict) -> TeamMemo:
    title = (data.get("title") or "").strip()
    if not title:
        raise ValidationError("Title is required.")
    now = now_ms()
    memo = TeamMemo(
        team_id=team_id,
        user_id=user_id,
        uuid=str(uuid.uuid4()),
        title=title,
        content=data.get("content"),
        board_category_id=data.get("board_category_id"),
        created_at=now,
        updated_at=now,
    )
    _add_numbered(db, memo)
    log_activity(
        db,
        team_id=team_id,
        user_id=user_id,
        action_type=ActivityType.MEMO_CREATED,
        target_type=TargetType.MEMO,
        target_id=memo.original_id,
        target_title=title,
    )
    _commit(db, "create memo")
    logger.info(f"Created memo {memo.id} in team {team_id}")
    return memo

def get_team_memo(db: Session, team_id: int, memo_id: int) -> TeamMemo:
    memo = (
        db.query(TeamMemo)
        .filter(TeamMemo.id == memo_id, TeamMemo.team_id == team_id, TeamMemo.deleted_at.is_(None))
        .first()
    )
    if not memo:
        raise MemoNotFound(f"Memo {memo_id} not found.")
    return memo

def get_team_memo_by_original_id(db: Session, team_id: int, original_id: str) -> Optional[TeamMemo]:
    return (
        db.query(TeamMemo)
        .filter(TeamMemo.team_id == team_id, TeamMemo.original_id == original_id)
        .first()
    )

def get_team_memos(db: Session, team_id: int) -> List[TeamMemo]:
    return (
        db.query(TeamMemo)
        .filter(TeamMemo.team_id == team_id, TeamMemo.deleted_at.is_(None))
        .order_by(TeamMemo.updated_at.desc(), TeamMemo.id.desc())
        .all()
    )

def update_team_memo(db: Session, memo: TeamMemo, data: Dict[str, Any], user_id: str) -> TeamMemo:
    changed = []
    if "title" in data:
        title = (data["title"] or "").strip()
        if not title:
            raise ValidationError("Title is required.")
        if title != memo.title:
            memo.title = title
            changed.append("title")
    for field in ("content", "board_category_id"):
        if field in data and getattr(memo, field) != data[field]:
            setattr(memo, field, data[field])
            changed.append(field)

    if not changed:
        logger.info(f"Update called but no changes for memo {memo.id}")
        return memo

    memo.updated_at = next_version(memo.updated_at)
    log_activity(
        db,
        team_id=memo.team_id,
        user_id=user_id,
        action_type=ActivityType.MEMO_UPDATED,
        target_type=TargetType.MEMO,
        target_id=memo.original_id,
        target_title=memo.title,
        metadata={"fields": changed},
    )
    _commit(db, "update memo")
    logger.info(f"Updated memo {memo.id} fields: {changed}")
    return memo

def delete_team_memo(db: Session, memo: TeamMemo, user_id: str) -> TeamMemo:
    memo.deleted_at = now_ms()
    memo.updated_at = next_version(memo.updated_at)
    log_activity(
        db,
        team_id=memo.team_id,
        user_id=user_id,
        action_type=ActivityType.MEMO_DELETED,
        target_type=TargetType.MEMO,
        target_id=memo.original_id,
        target_title=memo.title,
    )
    _commit(db, "delete memo")
    logger.info(f"Deleted memo {memo.id}")
    return memo
