#petaboo/crud/team.py
from sqlalchemy.orm import Session
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple
import logging
import re
import secrets

from petaboo.models.team import Team, TeamMember, TeamInvitation, TEAM_ROLES
from petaboo.models.task import TeamTask
from petaboo.models.memo import TeamMemo
from petaboo.models.comment import TeamComment
from petaboo.models.activity import ActivityLog
from petaboo.models.notification import Notification
from petaboo.models.user import User
from petaboo.core.settings import settings
from petaboo.core.exceptions import (
    DuplicateMembership,
    DuplicateTeamUrl,
    DuplicateError,
    Forbidden,
    JoinRequestNotFound,
    NotFoundError,
    TeamNotFound,
    TeamValidationError,
    UpstreamError,
)
from petaboo.crud.activity import log_activity, ActivityType, TargetType
from petaboo.crud.notification import add_notification

logger = logging.getLogger("Petaboo.Team")

CUSTOM_URL_RE = re.compile(r"^[a-z0-9][a-z0-9-]{2,63}$")

# Статусы приглашений и заявок
PENDING = "pending"
ACCEPTED = "accepted"
REJECTED = "rejected"
EXPIRED = "expired"

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite отдаёт naive datetime; всё, что мы пишем, — в UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)

def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error while {action}: {e}")
        raise UpstreamError(f"Database error while {action}.")

# ==== Команды ====

def get_team(db: Session, team_id: int) -> Team:
    team = db.query(Team).filter(Team.id == team_id).first()
    if not team:
        raise TeamNotFound(f"Team with id={team_id} not found.")
    return team

def get_team_by_custom_url(db: Session, custom_url: str) -> Team:
    team = db.query(Team).filter(Team.custom_url == custom_url).first()
    if not team:
        raise TeamNotFound(f"Team '{custom_url}' not found.")
    return team

def get_member(db: Session, team_id: int, user_id: str) -> Optional[TeamMember]:
    return (
        db.query(TeamMember)
        .filter(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
        .first()
    )

def get_members(db: Session, team_id: int) -> List[TeamMember]:
    return (
        db.query(TeamMember)
        .filter(TeamMember.team_id == team_id)
        .order_by(TeamMember.joined_at, TeamMember.id)
        .all()
    )

def count_memberships(db: Session, user_id: str) -> int:
    return db.query(func.count(TeamMember.id)).filter(TeamMember.user_id == user_id).scalar() or 0

def count_admin_teams(db: Session, user_id: str) -> int:
    return (
        db.query(func.count(TeamMember.id))
        .filter(TeamMember.user_id == user_id, TeamMember.role == "admin")
        .scalar()
        or 0
    )

def get_user_teams(db: Session, user_id: str) -> List[Tuple[Team, str, int]]:
    """
    Команды пользователя: (team, role, member_count).
    """
    member_counts = (
        db.query(TeamMember.team_id, func.count(TeamMember.id).label("member_count"))
        .group_by(TeamMember.team_id)
        .subquery()
    )
    rows = (
        db.query(Team, TeamMember.role, member_counts.c.member_count)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .join(member_counts, member_counts.c.team_id == Team.id)
        .filter(TeamMember.user_id == user_id)
        .order_by(Team.created_at, Team.id)
        .all()
    )
    return [(team, role, count) for team, role, count in rows]

def get_all_teams_with_counts(db: Session) -> List[Tuple[Team, int]]:
    rows = (
        db.query(Team, func.count(TeamMember.id))
        .outerjoin(TeamMember, TeamMember.team_id == Team.id)
        .group_by(Team.id)
        .order_by(Team.id)
        .all()
    )
    return [(team, count) for team, count in rows]

def _ensure_membership_quota(db: Session, user_id: str) -> None:
    user = db.query(User).filter(User.user_id == user_id).first()
    plan = user.plan_type if user else "free"
    if plan == "free" and count_memberships(db, user_id) >= settings.FREE_PLAN_TEAM_LIMIT:
        raise TeamValidationError(
            f"Team limit reached (free plan allows {settings.FREE_PLAN_TEAM_LIMIT} teams)."
        )

def create_team(db: Session, data: dict, owner: User) -> Team:
    """
    Создать команду. Free-план не может создавать команды, premium — не больше
    PREMIUM_OWNED_TEAM_LIMIT штук. Создатель становится admin.
    """
    if owner.plan_type == "free":
        raise Forbidden("Creating a team requires a premium plan.")
    if count_admin_teams(db, owner.user_id) >= settings.PREMIUM_OWNED_TEAM_LIMIT:
        raise Forbidden("Team creation limit reached for your plan.")

    name = (data.get("name") or "").strip()
    if not name:
        raise TeamValidationError("Team name is required.")
    custom_url = (data.get("custom_url") or "").strip().lower()
    if not CUSTOM_URL_RE.match(custom_url):
        raise TeamValidationError(
            "Custom URL must be 3-64 characters: lowercase letters, digits and hyphens."
        )
    if db.query(Team).filter(Team.custom_url == custom_url).first():
        raise DuplicateTeamUrl(f"Team URL '{custom_url}' is already taken.")

    team = Team(
        name=name,
        custom_url=custom_url,
        description=(data.get("description") or "").strip() or None,
        is_public=bool(data.get("is_public", False)),
    )
    db.add(team)
    try:
        db.flush()
        db.add(TeamMember(
            team_id=team.id,
            user_id=owner.user_id,
            role="admin",
            display_name=owner.display_name,
            joined_at=_utcnow(),
        ))
        log_activity(
            db,
            team_id=team.id,
            user_id=owner.user_id,
            action_type=ActivityType.MEMBER_JOINED,
            target_type=TargetType.MEMBER,
            target_id=owner.user_id,
            target_title=owner.display_name,
            metadata={"role": "admin"},
        )
        db.commit()
        db.refresh(team)
        logger.info(f"Created team '{team.custom_url}' (ID: {team.id}) by {owner.user_id}")
        return team
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Integrity error while creating team: {e}")
        raise DuplicateTeamUrl(f"Team URL '{custom_url}' is already taken.")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Exception while creating team: {e}")
        raise UpstreamError("Database error while creating team.")

def update_team(db: Session, team: Team, data: dict) -> Team:
    """
    Обновить настройки команды (name, description, is_public).
    """
    if "name" in data and data["name"] is not None:
        new_name = data["name"].strip()
        if not new_name:
            raise TeamValidationError("Team name is required.")
        team.name = new_name
    if "description" in data:
        team.description = (data["description"] or "").strip() or None
    if "is_public" in data and data["is_public"] is not None:
        team.is_public = bool(data["is_public"])
    team.updated_at = _utcnow()
    _commit(db, "updating team")
    db.refresh(team)
    logger.info(f"Updated team '{team.custom_url}' (ID: {team.id})")
    return team

def delete_team(db: Session, team: Team) -> None:
    """
    Удалить команду вместе со всеми её данными.
    """
    team_id = team.id
    try:
        for model in (Notification, ActivityLog, TeamComment, TeamTask, TeamMemo, TeamInvitation):
            db.query(model).filter(model.team_id == team_id).delete(synchronize_session=False)
        db.delete(team)
        db.commit()
        logger.info(f"Deleted team {team_id} with all related rows")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete team {team_id}: {e}")
        raise UpstreamError("Database error while deleting team.")

# ==== Участники ====

def add_member(
    db: Session,
    team_id: int,
    user_id: str,
    role: str = "member",
    display_name: Optional[str] = None,
    commit: bool = True,
) -> TeamMember:
    """
    Добавить участника. Повторная пара (team_id, user_id) отклоняется,
    дубликатов в team_members быть не должно.
    """
    if role not in TEAM_ROLES:
        raise TeamValidationError(f"Unknown role: {role}")
    if get_member(db, team_id, user_id):
        raise DuplicateMembership(f"User {user_id} is already a member of team {team_id}.")

    member = TeamMember(
        team_id=team_id,
        user_id=user_id,
        role=role,
        display_name=display_name,
        joined_at=_utcnow(),
    )
    db.add(member)
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Duplicate membership rejected by constraint: {e}")
        raise DuplicateMembership(f"User {user_id} is already a member of team {team_id}.")
    if commit:
        _commit(db, "adding team member")
        logger.info(f"Added {user_id} to team {team_id} as {role}")
    return member

def remove_member(db: Session, team: Team, user_id: str, actor_user_id: str) -> None:
    """
    Исключить участника (kick). Последнего admin удалить нельзя.
    """
    member = get_member(db, team.id, user_id)
    if not member:
        raise NotFoundError(f"User {user_id} is not a member of this team.")
    if member.role == "admin":
        admins = (
            db.query(func.count(TeamMember.id))
            .filter(TeamMember.team_id == team.id, TeamMember.role == "admin")
            .scalar()
        )
        if admins <= 1:
            raise TeamValidationError("The last admin cannot be removed from the team.")

    display_name = member.display_name
    db.delete(member)
    log_activity(
        db,
        team_id=team.id,
        user_id=actor_user_id,
        action_type=ActivityType.MEMBER_LEFT,
        target_type=TargetType.MEMBER,
        target_id=user_id,
        target_title=display_name,
        metadata={"kicked": actor_user_id != user_id},
    )
    _commit(db, "removing team member")
    logger.info(f"Removed {user_id} from team {team.id} (by {actor_user_id})")

def update_member_profile(db: Session, member: TeamMember, data: dict) -> TeamMember:
    if "display_name" in data:
        name = (data["display_name"] or "").strip()
        member.display_name = name or None
    if "avatar_color" in data:
        member.avatar_color = data["avatar_color"] or None
    _commit(db, "updating member profile")
    db.refresh(member)
    return member

# ==== Приглашения ====

def create_invitation(db: Session, team: Team, email: str, role: str, invited_by: str) -> TeamInvitation:
    """
    Приглашение по email. Токен отправляется приглашённому вне этого сервиса.
    """
    if role not in TEAM_ROLES:
        raise TeamValidationError(f"Unknown role: {role}")
    email = email.strip().lower()
    existing = (
        db.query(TeamInvitation)
        .filter(TeamInvitation.team_id == team.id, TeamInvitation.email == email, TeamInvitation.status == PENDING)
        .first()
    )
    if existing:
        raise DuplicateError(f"An invitation for {email} is already pending.")
    now = _utcnow()
    invitation = TeamInvitation(
        team_id=team.id,
        email=email,
        role=role,
        token=secrets.token_urlsafe(24),
        invited_by=invited_by,
        status=PENDING,
        created_at=now,
        expires_at=now + timedelta(days=settings.INVITATION_EXPIRE_DAYS),
    )
    db.add(invitation)
    _commit(db, "creating invitation")
    db.refresh(invitation)
    logger.info(f"Invitation {invitation.id} for team {team.id} created by {invited_by}")
    return invitation

def accept_invitation(db: Session, token: str, user: User) -> TeamMember:
    invitation = (
        db.query(TeamInvitation)
        .filter(TeamInvitation.token == token, TeamInvitation.email.isnot(None))
        .first()
    )
    if not invitation or invitation.status != PENDING:
        raise NotFoundError("Invitation not found or no longer valid.")
    expires_at = _as_utc(invitation.expires_at)
    if expires_at is not None and expires_at < _utcnow():
        invitation.status = EXPIRED
        _commit(db, "expiring invitation")
        raise TeamValidationError("Invitation has expired.")

    _ensure_membership_quota(db, user.user_id)
    member = add_member(
        db, invitation.team_id, user.user_id, role=invitation.role,
        display_name=user.display_name, commit=False,
    )
    invitation.status = ACCEPTED
    log_activity(
        db,
        team_id=invitation.team_id,
        user_id=user.user_id,
        action_type=ActivityType.MEMBER_JOINED,
        target_type=TargetType.MEMBER,
        target_id=user.user_id,
        target_title=user.display_name,
        metadata={"via": "invitation"},
    )
    _commit(db, "accepting invitation")
    logger.info(f"{user.user_id} accepted invitation {invitation.id}")
    return member

def generate_invite_code(db: Session, team: Team) -> Team:
    team.invite_code = secrets.token_urlsafe(12)
    team.updated_at = _utcnow()
    _commit(db, "generating invite code")
    db.refresh(team)
    logger.info(f"Regenerated invite code for team {team.id}")
    return team

def clear_invite_code(db: Session, team: Team) -> Team:
    team.invite_code = None
    team.updated_at = _utcnow()
    _commit(db, "clearing invite code")
    db.refresh(team)
    return team

# ==== Заявки на вступление ====

def submit_join_request(
    db: Session, code: str, user: User, display_name: Optional[str] = None
) -> Tuple[Team, TeamInvitation]:
    """
    Заявка по коду приглашения. Вступление — только после одобрения admin.
    """
    team = db.query(Team).filter(Team.invite_code == code).first() if code else None
    if not team:
        raise TeamNotFound("Invite code is invalid.")
    if get_member(db, team.id, user.user_id):
        raise DuplicateMembership("You are already a member of this team.")
    pending = (
        db.query(TeamInvitation)
        .filter(
            TeamInvitation.team_id == team.id,
            TeamInvitation.user_id == user.user_id,
            TeamInvitation.status == PENDING,
        )
        .first()
    )
    if pending:
        raise DuplicateError("You already have a pending request for this team.")
    _ensure_membership_quota(db, user.user_id)

    request = TeamInvitation(
        team_id=team.id,
        user_id=user.user_id,
        display_name=(display_name or user.display_name or "").strip() or None,
        role="member",
        token=secrets.token_urlsafe(24),
        status=PENDING,
        created_at=_utcnow(),
    )
    db.add(request)
    _commit(db, "submitting join request")
    db.refresh(request)
    logger.info(f"Join request {request.id} for team {team.id} from {user.user_id}")
    return team, request

def get_join_requests(db: Session, team_id: int, since: Optional[datetime] = None) -> List[TeamInvitation]:
    query = db.query(TeamInvitation).filter(
        TeamInvitation.team_id == team_id,
        TeamInvitation.status == PENDING,
        TeamInvitation.user_id.isnot(None),
    )
    if since is not None:
        query = query.filter(TeamInvitation.created_at > since.astimezone(timezone.utc))
    return query.order_by(TeamInvitation.created_at.desc(), TeamInvitation.id.desc()).all()

def _get_pending_request(db: Session, team_id: int, request_id: int) -> TeamInvitation:
    request = (
        db.query(TeamInvitation)
        .filter(
            TeamInvitation.id == request_id,
            TeamInvitation.team_id == team_id,
            TeamInvitation.user_id.isnot(None),
        )
        .first()
    )
    if not request or request.status != PENDING:
        raise JoinRequestNotFound(f"Pending join request {request_id} not found.")
    return request

def approve_join_request(db: Session, team: Team, request_id: int, actor_user_id: str) -> TeamMember:
    request = _get_pending_request(db, team.id, request_id)
    _ensure_membership_quota(db, request.user_id)
    member = add_member(
        db, team.id, request.user_id, role=request.role or "member",
        display_name=request.display_name, commit=False,
    )
    request.status = ACCEPTED
    log_activity(
        db,
        team_id=team.id,
        user_id=request.user_id,
        action_type=ActivityType.MEMBER_JOINED,
        target_type=TargetType.MEMBER,
        target_id=request.user_id,
        target_title=request.display_name,
        metadata={"approved_by": actor_user_id},
    )
    add_notification(
        db,
        team_id=team.id,
        user_id=request.user_id,
        type="join_approved",
        source_type="team",
        source_id=team.id,
        actor_user_id=actor_user_id,
        message=f"Your request to join {team.name} was approved.",
    )
    _commit(db, "approving join request")
    logger.info(f"Join request {request_id} approved by {actor_user_id}")
    return member

def reject_join_request(db: Session, team: Team, request_id: int, actor_user_id: str) -> TeamInvitation:
    request = _get_pending_request(db, team.id, request_id)
    request.status = REJECTED
    _commit(db, "rejecting join request")
    logger.info(f"Join request {request_id} rejected by {actor_user_id}")
    return request
