# petaboo/dependencies.py

import ipaddress
import logging
from dataclasses import dataclass
from typing import Generator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from petaboo.core.events import EventBus
from petaboo.core.exceptions import Forbidden, Unauthorized
from petaboo.core.security import bearer_scheme, decode_token
from petaboo.core.settings import settings
from petaboo.crud.team import get_member, get_team, get_team_by_custom_url
from petaboo.crud.user import get_or_create_user
from petaboo.database import SessionLocal
from petaboo.models.team import Team, TeamMember
from petaboo.models.user import User

logger = logging.getLogger("Petaboo.Auth")

def get_db() -> Generator[Session, None, None]:
    """
    Создает и возвращает сессию базы данных, гарантирует закрытие после использования.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus

# ==== Identity ====

def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    Обязательная аутентификация: без валидного Bearer-токена дальше не идём.
    """
    # None: заголовка нет, схема не Bearer или токен пустой
    if credentials is None:
        raise Unauthorized("Missing or non-Bearer Authorization header")
    payload = decode_token(credentials.credentials)
    request.state.user_id = payload["sub"]
    return payload["sub"]

def get_optional_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """
    Опциональная аутентификация: нет токена или он битый — идём дальше анонимно.
    """
    if credentials is None:
        return None
    try:
        payload = decode_token(credentials.credentials)
    except Unauthorized as e:
        logger.warning(f"Optional auth ignored invalid credentials: {e}")
        return None
    request.state.user_id = payload["sub"]
    return payload["sub"]

def get_current_user(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> User:
    return get_or_create_user(db, user_id)

# ==== Team roles ====

@dataclass
class TeamContext:
    team: Team
    member: TeamMember

    @property
    def role(self) -> str:
        return self.member.role

    @property
    def is_admin(self) -> bool:
        return self.member.role == "admin"

def resolve_membership(db: Session, team: Team, user_id: str) -> TeamContext:
    member = get_member(db, team.id, user_id)
    if member is None:
        raise Forbidden("Not a team member")
    return TeamContext(team=team, member=member)

def require_admin(context: TeamContext) -> TeamContext:
    if not context.is_admin:
        raise Forbidden("Admin role required")
    return context

def get_team_member(
    team_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> TeamContext:
    """
    Роль вызывающего в команде по числовому team_id (нет членства — 403).
    """
    return resolve_membership(db, get_team(db, team_id), user_id)

def get_team_context(
    custom_url: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> TeamContext:
    """
    То же по custom_url — внешнему адресу команды.
    """
    return resolve_membership(db, get_team_by_custom_url(db, custom_url), user_id)

def require_team_admin(context: TeamContext = Depends(get_team_context)) -> TeamContext:
    return require_admin(context)

def require_team_admin_by_id(context: TeamContext = Depends(get_team_member)) -> TeamContext:
    return require_admin(context)

# ==== Admin panel ====

LOCAL_HOSTNAMES = ("localhost", "127.0.0.1", "[::1]")

def _is_local_address(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        address = ipaddress.ip_address(value.strip())
    except ValueError:
        return value.strip() == "localhost"
    if address.version == 6 and address.ipv4_mapped is not None:
        address = address.ipv4_mapped
    return address.is_loopback or address.is_private

def is_local_request(request: Request) -> bool:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        client_ip = forwarded_for.split(",")[0]
    else:
        client_ip = request.headers.get("x-real-ip") or (request.client.host if request.client else None)
    if _is_local_address(client_ip):
        return True
    # прокси не ставил заголовков, а запрос пришёл на локальный хост
    host = request.headers.get("host", "").rsplit(":", 1)[0] if not forwarded_for else ""
    return host in LOCAL_HOSTNAMES

def require_local_access(request: Request) -> None:
    """
    При LOCAL_ACCESS_ONLY админка доступна только с loopback и частных сетей.
    """
    if not settings.LOCAL_ACCESS_ONLY:
        return
    if not is_local_request(request):
        logger.warning(f"Admin access denied: client={request.client.host if request.client else 'unknown'} url={request.url}")
        raise Forbidden("This endpoint is only available from the local network")

def require_admin_user(user_id: str = Depends(get_current_user_id)) -> str:
    """
    /admin открыт только sub из ADMIN_USER_IDS; пустой список закрывает админку для всех.
    """
    if user_id not in settings.ADMIN_USER_IDS:
        logger.warning(f"Admin access denied for user {user_id}")
        raise Forbidden("Admin privileges required")
    return user_id
