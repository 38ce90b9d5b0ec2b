#petaboo/api/team.py
from datetime import datetime, timezone
from typing import List
import logging

from fastapi import APIRouter, Depends, Query, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from petaboo.schemas.team import (
    InvitationCreate,
    InvitationRead,
    InviteCodeRead,
    JoinByCodeRequest,
    JoinByCodeResponse,
    JoinRequestRead,
    MemberProfileUpdate,
    TeamCreate,
    TeamDetail,
    TeamMemberRead,
    TeamRead,
    TeamSummary,
    TeamUpdate,
    WaitUpdatesRequest,
    WaitUpdatesResponse,
)
from petaboo.schemas.activity import ActivityRead
from petaboo.schemas.response import SuccessResponse
from petaboo.crud.team import (
    accept_invitation,
    approve_join_request,
    clear_invite_code,
    create_invitation,
    create_team,
    delete_team,
    generate_invite_code,
    get_join_requests,
    get_members,
    get_user_teams,
    reject_join_request,
    remove_member,
    submit_join_request,
    update_member_profile,
    update_team,
)
from petaboo.crud.activity import get_team_activities
from petaboo.dependencies import (
    TeamContext,
    get_current_user,
    get_db,
    get_event_bus,
    get_team_context,
    require_admin,
    require_team_admin,
    require_team_admin_by_id,
)
from petaboo.core.events import EventBus, TeamEvents
from petaboo.core.settings import settings
from petaboo.services.realtime import wait_for_event
from petaboo.models.user import User as UserModel

logger = logging.getLogger("Petaboo.Team")

router = APIRouter(prefix="/teams", tags=["Teams"])

# ==== Команды ====

@router.get("", response_model=List[TeamSummary])
def list_my_teams(
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_user),
):
    """
    Команды, в которых состоит пользователь, с его ролью и числом участников.
    """
    return [
        TeamSummary(**TeamRead.model_validate(team).model_dump(), role=role, member_count=count)
        for team, role, count in get_user_teams(db, user.user_id)
    ]

@router.post("", response_model=TeamRead, status_code=status.HTTP_201_CREATED)
def create_team_api(
    data: TeamCreate,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_user),
):
    """
    Создать команду. Создатель становится admin.
    """
    return create_team(db, data.model_dump(), user)

@router.post("/join-by-code", response_model=JoinByCodeResponse, status_code=status.HTTP_201_CREATED)
def join_by_code(
    data: JoinByCodeRequest,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_user),
    bus: EventBus = Depends(get_event_bus),
):
    """
    Подать заявку по коду приглашения. Admin команды увидит её через wait-updates.
    """
    team, request = submit_join_request(db, data.code, user, data.display_name)
    bus.emit(TeamEvents.NEW_APPLICATION, {
        "team_id": team.id,
        "request_id": request.id,
        "user_id": user.user_id,
    })
    return JoinByCodeResponse(team_name=team.name, request=JoinRequestRead.model_validate(request))

@router.post("/invitations/{token}/accept", response_model=TeamMemberRead)
def accept_invitation_api(
    token: str,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_user),
):
    """
    Принять приглашение по токену из письма.
    """
    return accept_invitation(db, token, user)

@router.get("/{custom_url}", response_model=TeamDetail)
def read_team(
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """
    Команда с участниками. Только для участников.
    """
    return TeamDetail(
        team=TeamRead.model_validate(context.team),
        members=[TeamMemberRead.model_validate(m) for m in get_members(db, context.team.id)],
        role=context.role,
        invite_code=context.team.invite_code if context.is_admin else None,
    )

@router.put("/{custom_url}", response_model=TeamRead)
def update_team_api(
    data: TeamUpdate,
    context: TeamContext = Depends(require_team_admin),
    db: Session = Depends(get_db),
):
    return update_team(db, context.team, data.model_dump(exclude_unset=True))

@router.delete("/{custom_url}", response_model=SuccessResponse)
def delete_team_api(
    context: TeamContext = Depends(require_team_admin),
    db: Session = Depends(get_db),
):
    """
    Удалить команду со всеми задачами, заметками, комментариями и журналом.
    """
    team_id = context.team.id
    delete_team(db, context.team)
    return SuccessResponse(result=team_id, detail="Team deleted")

# ==== Приглашения ====

@router.post("/{team_id}/invite", response_model=InvitationRead, status_code=status.HTTP_201_CREATED)
def invite_member(
    data: InvitationCreate,
    context: TeamContext = Depends(require_team_admin_by_id),
    db: Session = Depends(get_db),
):
    """
    Пригласить по email. Доставка письма — вне этого сервиса.
    """
    return create_invitation(db, context.team, data.email, data.role, context.member.user_id)

@router.post("/{custom_url}/invite-code", response_model=InviteCodeRead)
def regenerate_invite_code(
    context: TeamContext = Depends(require_team_admin),
    db: Session = Depends(get_db),
):
    team = generate_invite_code(db, context.team)
    return InviteCodeRead(invite_code=team.invite_code)

@router.delete("/{custom_url}/invite-code", response_model=InviteCodeRead)
def delete_invite_code(
    context: TeamContext = Depends(require_team_admin),
    db: Session = Depends(get_db),
):
    team = clear_invite_code(db, context.team)
    return InviteCodeRead(invite_code=team.invite_code)

# ==== Заявки на вступление ====

@router.get("/{custom_url}/join-requests", response_model=List[JoinRequestRead])
def list_join_requests(
    context: TeamContext = Depends(require_team_admin),
    db: Session = Depends(get_db),
):
    return get_join_requests(db, context.team.id)

@router.put("/{custom_url}/join-requests/{request_id}/approve", response_model=TeamMemberRead)
def approve_join_request_api(
    request_id: int,
    context: TeamContext = Depends(require_team_admin),
    db: Session = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
):
    member = approve_join_request(db, context.team, request_id, context.member.user_id)
    bus.emit(TeamEvents.APPLICATION_APPROVED, {
        "team_id": context.team.id,
        "request_id": request_id,
        "user_id": member.user_id,
    })
    return member

@router.put("/{custom_url}/join-requests/{request_id}/reject", response_model=JoinRequestRead)
def reject_join_request_api(
    request_id: int,
    context: TeamContext = Depends(require_team_admin),
    db: Session = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
):
    request = reject_join_request(db, context.team, request_id, context.member.user_id)
    bus.emit(TeamEvents.APPLICATION_REJECTED, {
        "team_id": context.team.id,
        "request_id": request_id,
        "user_id": request.user_id,
    })
    return request

@router.post("/{custom_url}/wait-updates", response_model=WaitUpdatesResponse)
async def wait_for_updates(
    data: WaitUpdatesRequest,
    context: TeamContext = Depends(require_team_admin),
    db: Session = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
):
    """
    Long-poll для admin: сразу отдаёт заявки новее lastCheckedAt,
    иначе ждёт события о новой заявке в этой команде или таймаута.
    """
    team_id = context.team.id
    # момент фиксируем до запроса: заявка, пришедшая во время ожидания, попадёт в следующий опрос
    checked_at = datetime.now(timezone.utc)
    pending = await run_in_threadpool(get_join_requests, db, team_id, data.last_checked_at)
    if pending:
        return WaitUpdatesResponse(
            has_updates=True,
            requests=[JoinRequestRead.model_validate(r) for r in pending],
            last_checked_at=checked_at,
        )

    # ждём без открытой транзакции
    await run_in_threadpool(db.rollback)
    timeout = min(data.wait_timeout_sec, settings.WAIT_UPDATES_MAX_TIMEOUT_SEC)
    payload = await wait_for_event(
        bus,
        TeamEvents.NEW_APPLICATION,
        lambda event: event.get("team_id") == team_id,
        timeout,
    )
    if payload is None:
        return WaitUpdatesResponse(has_updates=False, last_checked_at=checked_at)

    pending = await run_in_threadpool(get_join_requests, db, team_id, data.last_checked_at)
    logger.info(f"wait-updates for team {team_id} woke up on request {payload.get('request_id')}")
    return WaitUpdatesResponse(
        has_updates=True,
        requests=[JoinRequestRead.model_validate(r) for r in pending],
        last_checked_at=checked_at,
    )

# ==== Участники ====

@router.patch("/{custom_url}/members/me", response_model=TeamMemberRead)
def update_my_membership(
    data: MemberProfileUpdate,
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """
    Имя и цвет аватара внутри команды.
    """
    return update_member_profile(db, context.member, data.model_dump(exclude_unset=True))

@router.delete("/{custom_url}/members/{user_id}", response_model=SuccessResponse)
def remove_member_api(
    user_id: str,
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """
    Исключить участника (admin) или выйти из команды самому.
    """
    if user_id != context.member.user_id:
        require_admin(context)
    remove_member(db, context.team, user_id, context.member.user_id)
    return SuccessResponse(result=user_id, detail="Member removed")

@router.get("/{custom_url}/activities", response_model=List[ActivityRead])
def list_activities(
    limit: int = Query(20, ge=1, le=100, description="Сколько последних записей вернуть"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    return get_team_activities(db, context.team.id, limit=limit)
