#petaboo/schemas/memo.py
from pydantic import Field
from typing import Optional

from petaboo.schemas.response import CamelModel

class TeamMemoCreate(CamelModel):
    title: str = Field(..., max_length=200, examples=["Sprint notes"])
    content: Optional[str] = None
    board_category_id: Optional[int] = None

class TeamMemoUpdate(CamelModel):
    """
    TeamMemoUpdate — частичное обновление заметки, updatedAt для проверки конфликта.
    """
    title: Optional[str] = Field(None, max_length=200)
    content: Optional[str] = None
    board_category_id: Optional[int] = None
    updated_at: Optional[int] = Field(None, description="Версия строки у клиента (мс)")

class TeamMemoRead(CamelModel):
    id: int
    team_id: int
    user_id: str
    original_id: str
    uuid: str
    title: str
    content: Optional[str] = None
    board_category_id: Optional[int] = None
    created_at: int
    updated_at: int
