#petaboo/crud/comment.py
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import List
import logging
import re

from petaboo.models.comment import TeamComment, COMMENT_TARGET_TYPES
from petaboo.models.team import TeamMember
from petaboo.core.exceptions import CommentNotFound, Forbidden, ValidationError, UpstreamError
from petaboo.crud.activity import log_activity, ActivityType, TargetType
from petaboo.crud.notification import add_notification
from petaboo.crud.task import get_team_task_by_original_id
from petaboo.crud.memo import get_team_memo_by_original_id

logger = logging.getLogger("Petaboo.Comments")

MENTION_RE = re.compile(r"@(\w+)")
MAX_COMMENT_LENGTH = 1000

def extract_mentions(db: Session, team_id: int, content: str) -> List[str]:
    """
    @displayName -> user_id участников команды, в порядке первого упоминания.
    """
    mentioned: List[str] = []
    for name in MENTION_RE.findall(content):
        member = (
            db.query(TeamMember)
            .filter(TeamMember.team_id == team_id, TeamMember.display_name == name)
            .first()
        )
        if member and member.user_id not in mentioned:
            mentioned.append(member.user_id)
    return mentioned

def get_comments(db: Session, team_id: int, target_type: str, target_original_id: str) -> List[TeamComment]:
    return (
        db.query(TeamComment)
        .filter(
            TeamComment.team_id == team_id,
            TeamComment.target_type == target_type,
            TeamComment.target_original_id == target_original_id,
        )
        .order_by(TeamComment.created_at.asc(), TeamComment.id.asc())
        .all()
    )

def get_comment(db: Session, comment_id: int) -> TeamComment:
    comment = db.query(TeamComment).filter(TeamComment.id == comment_id).first()
    if not comment:
        raise CommentNotFound(f"Comment {comment_id} not found.")
    return comment

def _target_owner(db: Session, team_id: int, target_type: str, original_id: str):
    if target_type == "task":
        target = get_team_task_by_original_id(db, team_id, original_id)
    elif target_type == "memo":
        target = get_team_memo_by_original_id(db, team_id, original_id)
    else:
        return None, None
    if target is None:
        return None, None
    return target.user_id, target.title

def create_comment(db: Session, author: TeamMember, data: dict) -> TeamComment:
    """
    Создать комментарий. Упомянутые участники и автор цели получают уведомления
    (сам автор комментария — никогда).
    """
    target_type = data.get("target_type")
    if target_type not in COMMENT_TARGET_TYPES:
        raise ValidationError(f"Invalid target type: {target_type}")
    target_original_id = str(data.get("target_original_id") or "").strip()
    if not target_original_id:
        raise ValidationError("Target id is required.")
    content = (data.get("content") or "").strip()
    if not content:
        raise ValidationError("Comment content is required.")
    if len(content) > MAX_COMMENT_LENGTH:
        raise ValidationError(f"Comment must be at most {MAX_COMMENT_LENGTH} characters.")

    team_id = author.team_id
    mentions = extract_mentions(db, team_id, content)
    comment = TeamComment(
        team_id=team_id,
        user_id=author.user_id,
        target_type=target_type,
        target_original_id=target_original_id,
        content=content,
        mentions=mentions,
    )
    db.add(comment)
    db.flush()
    log_activity(
        db,
        team_id=team_id,
        user_id=author.user_id,
        action_type=ActivityType.COMMENT_CREATED,
        target_type=TargetType.COMMENT,
        target_id=comment.id,
        metadata={"target_type": target_type, "target_original_id": target_original_id},
    )

    common = dict(
        team_id=team_id,
        source_type="comment",
        source_id=comment.id,
        target_type=target_type,
        target_original_id=target_original_id,
        actor_user_id=author.user_id,
        actor_display_name=author.display_name,
    )
    for user_id in mentions:
        if user_id != author.user_id:
            add_notification(db, user_id=user_id, type="mention", message=content[:200], **common)
    owner_id, title = _target_owner(db, team_id, target_type, target_original_id)
    if owner_id and owner_id != author.user_id and owner_id not in mentions:
        add_notification(db, user_id=owner_id, type="comment", message=f"New comment on {title}", **common)

    try:
        db.commit()
        logger.info(f"Created comment {comment.id} on {target_type}:{target_original_id} (mentions: {mentions})")
        return comment
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create comment: {e}")
        raise UpstreamError("Database error while creating comment.")

def delete_comment(db: Session, comment: TeamComment, actor: TeamMember) -> None:
    """
    Удалить комментарий может автор или admin команды.
    """
    if comment.user_id != actor.user_id and actor.role != "admin":
        raise Forbidden("Only the author or a team admin can delete this comment.")
    comment_id = comment.id
    db.delete(comment)
    log_activity(
        db,
        team_id=comment.team_id,
        user_id=actor.user_id,
        action_type=ActivityType.COMMENT_DELETED,
        target_type=TargetType.COMMENT,
        target_id=comment_id,
        metadata={"target_type": comment.target_type, "target_original_id": comment.target_original_id},
    )
    try:
        db.commit()
        logger.info(f"Deleted comment {comment_id} (by {actor.user_id})")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete comment {comment_id}: {e}")
        raise UpstreamError("Database error while deleting comment.")
