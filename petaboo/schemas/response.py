#petaboo/schemas/response.py
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Optional

class CamelModel(BaseModel):
    """
    CamelModel — базовая схема API: наружу camelCase, внутри snake_case.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

class ErrorResponse(BaseModel):
    """
    ErrorResponse — стандартная структура для ошибки.
    """
    error: str = Field(..., examples=["validation_error"], description="Код ошибки (machine-readable)")
    detail: str = Field(..., examples=["Title is required."], description="Сообщение об ошибке")

class ConflictResponse(BaseModel):
    """
    ConflictResponse — 409 при устаревшем updatedAt (optimistic locking).
    """
    error: str = Field("conflict", description="Всегда conflict")
    reason: str = Field(..., examples=["outdated"], description="not_found или outdated")
    currentUpdatedAt: Optional[int] = Field(None, description="Текущая версия строки (мс)")

class SuccessResponse(BaseModel):
    """
    SuccessResponse — универсальный ответ с результатом выполнения операции.
    """
    result: Any = Field(..., description="Результат запроса (может быть любым объектом)")
    detail: Optional[str] = Field(None, examples=["Operation successful"], description="Дополнительная информация")
