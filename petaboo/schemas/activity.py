#petaboo/schemas/activity.py
from pydantic import Field
from typing import Any, Dict, Optional
from datetime import datetime

from petaboo.schemas.response import CamelModel

class ActivityRead(CamelModel):
    """
    ActivityRead — запись журнала активности команды.
    """
    id: int
    team_id: int
    user_id: str
    action_type: str
    target_type: str
    target_id: Optional[str] = None
    target_title: Optional[str] = None
    # в модели колонка metadata лежит в атрибуте metadata_
    metadata_: Optional[Dict[str, Any]] = Field(None, validation_alias="metadata_", serialization_alias="metadata")
    created_at: Optional[datetime] = None
