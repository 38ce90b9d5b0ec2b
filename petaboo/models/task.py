#petaboo/models/task.py
from sqlalchemy import (
    Column, Integer, BigInteger, String, Text, ForeignKey, Index, UniqueConstraint
)
from petaboo.models.base import Base

TASK_STATUSES = ("todo", "in_progress", "completed")
TASK_PRIORITIES = ("low", "medium", "high")
DELETED_STATUS = "deleted"

class TeamTask(Base):
    """
    TeamTask — задача команды. updated_at (мс epoch) — токен версии для оптимистичной блокировки.
    Soft-delete переводит status в "deleted", restore возвращает в "todo".
    """
    __tablename__ = "team_tasks"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    team_id: int = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True, doc="ID команды")
    user_id: str = Column(String(128), nullable=False, doc="Создатель")
    original_id: str = Column(String(32), nullable=False, doc="Номер задачи внутри команды")
    uuid: str = Column(String(36), nullable=False, unique=True, doc="Публичный UUID для шаринга")
    title: str = Column(String(200), nullable=False, doc="Название задачи")
    description: str = Column(Text, nullable=True, doc="Описание")
    status: str = Column(String(16), nullable=False, default="todo", doc="todo, in_progress, completed, deleted")
    priority: str = Column(String(8), nullable=False, default="medium", doc="low, medium, high")
    assignee_id: str = Column(String(128), nullable=True, doc="Исполнитель (участник команды)")
    board_category_id: int = Column(Integer, nullable=True, doc="Категория доски")
    created_at: int = Column(BigInteger, nullable=False, doc="Создано, мс")
    updated_at: int = Column(BigInteger, nullable=False, doc="Изменено, мс (версия)")
    deleted_at: int = Column(BigInteger, nullable=True, doc="Удалено, мс")

    __table_args__ = (
        Index("ix_team_tasks_team_status", "team_id", "status"),
        UniqueConstraint("team_id", "original_id", name="uq_team_tasks_team_original"),
    )

    def __repr__(self):
        return f"<TeamTask(id={self.id}, team_id={self.team_id}, title='{self.title}', status={self.status})>"
