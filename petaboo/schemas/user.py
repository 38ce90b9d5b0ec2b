#petaboo/schemas/user.py
from pydantic import Field
from typing import Optional
from datetime import datetime

from petaboo.schemas.response import CamelModel

class UserUpdate(CamelModel):
    """
    UserUpdate — обновление собственного профиля.
    """
    display_name: Optional[str] = Field(None, max_length=64, examples=["Alice"], description="Отображаемое имя")

class UserRead(CamelModel):
    """
    UserRead — схема для выдачи пользователя (response).
    """
    id: int
    user_id: str = Field(..., description="sub из токена провайдера")
    display_name: Optional[str] = None
    plan_type: str = Field(..., examples=["free"], description="Тариф: free / premium")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class PlanRead(CamelModel):
    plan_type: str
    team_limit: int = Field(..., description="Сколько команд доступно на этом тарифе")
    teams_joined: int = Field(..., description="В скольких командах пользователь состоит")

class PlanUpdate(CamelModel):
    plan_type: str = Field(..., examples=["premium"])
