#petaboo/schemas/comment.py
from pydantic import Field
from typing import List, Optional
from datetime import datetime

from petaboo.schemas.response import CamelModel

class CommentCreate(CamelModel):
    """
    CommentCreate — комментарий к задаче, заметке или доске. @displayName в тексте — упоминание.
    """
    team_id: int
    target_type: str = Field(..., examples=["task"], description="memo, task, board")
    target_original_id: str = Field(..., examples=["3"])
    content: str = Field(..., examples=["@Alice please check"])

class CommentRead(CamelModel):
    id: int
    team_id: int
    user_id: str
    target_type: str
    target_original_id: str
    content: str
    mentions: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
