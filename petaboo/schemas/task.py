#petaboo/schemas/task.py
from pydantic import Field
from typing import Optional

from petaboo.schemas.response import CamelModel

class TeamTaskCreate(CamelModel):
    """
    TeamTaskCreate — создание задачи команды.
    """
    title: str = Field(..., max_length=200, examples=["Implement login page"], description="Название задачи")
    description: Optional[str] = Field(None, description="Описание задачи")
    status: str = Field("todo", examples=["todo"], description="todo, in_progress, completed")
    priority: str = Field("medium", examples=["medium"], description="low, medium, high")
    assignee_id: Optional[str] = Field(None, description="Исполнитель (участник команды)")
    board_category_id: Optional[int] = None

class TeamTaskUpdate(CamelModel):
    """
    TeamTaskUpdate — обновление задачи (все поля опциональны).
    updatedAt — версия, которую видел клиент; если устарела, вернётся 409.
    """
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    assignee_id: Optional[str] = None
    board_category_id: Optional[int] = None
    updated_at: Optional[int] = Field(None, description="Версия строки у клиента (мс)")

class TeamTaskRead(CamelModel):
    """
    TeamTaskRead — полная схема задачи для ответа (response).
    """
    id: int
    team_id: int
    user_id: str
    original_id: str
    uuid: str
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    assignee_id: Optional[str] = None
    board_category_id: Optional[int] = None
    created_at: int
    updated_at: int
    deleted_at: Optional[int] = None
