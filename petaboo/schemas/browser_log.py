#petaboo/schemas/browser_log.py
from pydantic import BaseModel, Field
from typing import Optional

class BrowserLogEntry(BaseModel):
    """
    BrowserLogEntry — строка консоли браузера, пересланная клиентом.
    """
    level: str = Field("log", examples=["error"], description="log, info, warn, error")
    message: str = Field(..., max_length=10000)
    timestamp: Optional[str] = Field(None, description="ISO 8601 время на клиенте")
    url: Optional[str] = Field(None, max_length=2000, description="Страница, на которой записан лог")
