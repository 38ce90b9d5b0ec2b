#petaboo/schemas/team.py
from pydantic import EmailStr, Field
from typing import List, Optional
from datetime import datetime

from petaboo.schemas.response import CamelModel

class TeamCreate(CamelModel):
    """
    TeamCreate — создание новой команды.
    """
    name: str = Field(..., max_length=100, examples=["Dev Team"], description="Название команды")
    custom_url: str = Field(..., examples=["dev-team"], description="Уникальный адрес команды")
    description: Optional[str] = Field(None, max_length=500, description="Описание команды")
    is_public: bool = Field(False, description="Публичная команда")

class TeamUpdate(CamelModel):
    """
    TeamUpdate — обновление настроек команды (все поля опциональны).
    """
    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    is_public: Optional[bool] = None

class TeamRead(CamelModel):
    """
    TeamRead — схема для выдачи команды (response).
    """
    id: int
    name: str
    custom_url: str
    description: Optional[str] = None
    is_public: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class TeamMemberRead(CamelModel):
    id: int
    user_id: str
    role: str
    display_name: Optional[str] = None
    avatar_color: Optional[str] = None
    joined_at: Optional[datetime] = None

class TeamWithCount(TeamRead):
    member_count: int

class TeamSummary(TeamWithCount):
    """
    TeamSummary — команда в списке «мои команды»: с ролью и числом участников.
    """
    role: str

class TeamDetail(CamelModel):
    team: TeamRead
    members: List[TeamMemberRead]
    role: str = Field(..., description="Роль вызывающего в команде")
    invite_code: Optional[str] = Field(None, description="Код приглашения (только для admin)")

class MemberProfileUpdate(CamelModel):
    display_name: Optional[str] = Field(None, max_length=64)
    avatar_color: Optional[str] = Field(None, max_length=16, examples=["#ff8800"])

# ==== Приглашения и заявки ====

class InvitationCreate(CamelModel):
    email: EmailStr = Field(..., examples=["bob@example.com"], description="Email приглашённого")
    role: str = Field("member", examples=["member"], description="admin / member")

class InvitationRead(CamelModel):
    id: int
    team_id: int
    email: Optional[str] = None
    role: str
    token: str = Field(..., description="Токен для принятия приглашения")
    status: str
    created_at: datetime
    expires_at: Optional[datetime] = None

class InviteCodeRead(CamelModel):
    invite_code: Optional[str] = None

class JoinByCodeRequest(CamelModel):
    code: str = Field(..., min_length=1)
    display_name: Optional[str] = Field(None, max_length=64)

class JoinRequestRead(CamelModel):
    id: int
    team_id: int
    user_id: str
    display_name: Optional[str] = None
    status: str
    created_at: datetime

class JoinByCodeResponse(CamelModel):
    team_name: str
    request: JoinRequestRead

class WaitUpdatesRequest(CamelModel):
    last_checked_at: Optional[datetime] = Field(None, description="Момент последней проверки (ISO 8601)")
    wait_timeout_sec: int = Field(30, ge=0, description="Сколько ждать новых заявок")

class WaitUpdatesResponse(CamelModel):
    has_updates: bool
    requests: List[JoinRequestRead] = Field(default_factory=list)
    last_checked_at: datetime
