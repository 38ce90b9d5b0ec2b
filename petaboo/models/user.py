#petaboo/models/user.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, func
from petaboo.models.base import Base

PLAN_TYPES = ("free", "premium")

class User(Base):
    """
    User — аккаунт пользователя. Сам логин живёт у внешнего провайдера,
    здесь только subject из токена, план и отображаемое имя.
    """
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: str = Column(String(128), unique=True, nullable=False, index=True, doc="sub из JWT провайдера")
    display_name: str = Column(String(64), nullable=True, doc="Отображаемое имя")
    plan_type: str = Column(String(16), nullable=False, default="free", doc="Тариф: free / premium")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, doc="Дата создания")
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, doc="Дата обновления")

    def __repr__(self):
        return f"<User(id={self.id}, user_id='{self.user_id}', plan_type='{self.plan_type}')>"
