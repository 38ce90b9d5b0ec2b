#petaboo/models/activity.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Index, func
from petaboo.models.base import Base

class ActivityLog(Base):
    """
    ActivityLog — журнал действий внутри команды. Только добавление, без правок и удаления.
    """
    __tablename__ = "team_activity_logs"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    team_id: int = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: str = Column(String(128), nullable=False, doc="Кто выполнил действие")
    action_type: str = Column(String(32), nullable=False, doc="memo_created, task_status_changed, ...")
    target_type: str = Column(String(16), nullable=False, doc="memo, task, comment, board, member")
    target_id: str = Column(String(64), nullable=True)
    target_title: str = Column(String(200), nullable=True)
    metadata_: dict = Column("metadata", JSON, nullable=True, doc="Дополнительные данные")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_team_activity_logs_team_created", "team_id", "created_at"),
    )

    def __repr__(self):
        return f"<ActivityLog(id={self.id}, team_id={self.team_id}, action='{self.action_type}')>"
