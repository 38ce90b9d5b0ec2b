#petaboo/schemas/notification.py
from pydantic import Field
from typing import List, Optional
from datetime import datetime

from petaboo.schemas.response import CamelModel

class NotificationRead(CamelModel):
    id: int
    team_id: int
    type: str = Field(..., examples=["mention"], description="mention, comment, join_approved")
    source_type: Optional[str] = None
    source_id: Optional[int] = None
    target_type: Optional[str] = None
    target_original_id: Optional[str] = None
    actor_user_id: Optional[str] = None
    actor_display_name: Optional[str] = None
    message: Optional[str] = None
    is_read: bool
    created_at: Optional[datetime] = None
    read_at: Optional[datetime] = None

class NotificationList(CamelModel):
    notifications: List[NotificationRead]
    unread_count: int

class MarkAllReadResponse(CamelModel):
    updated: int
