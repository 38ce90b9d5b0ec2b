#petaboo/models/notification.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index, func
from petaboo.models.base import Base

class Notification(Base):
    """
    Notification — уведомление участнику команды (упоминание, комментарий, одобрение заявки).
    """
    __tablename__ = "notifications"

    id: int = Column(Integer, primary_key=True)
    team_id: int = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: str = Column(String(128), nullable=False, doc="Получатель")
    type: str = Column(String(32), nullable=False, doc="mention, comment, join_approved")
    source_type: str = Column(String(16), nullable=True)
    source_id: int = Column(Integer, nullable=True)
    target_type: str = Column(String(16), nullable=True)
    target_original_id: str = Column(String(32), nullable=True)
    actor_user_id: str = Column(String(128), nullable=True)
    actor_display_name: str = Column(String(64), nullable=True)
    message: str = Column(String(500), nullable=True)
    is_read: bool = Column(Boolean, default=False, nullable=False)
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    read_at: datetime = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_notifications_team_user", "team_id", "user_id"),
    )

    def __repr__(self):
        return f"<Notification(id={self.id}, user_id='{self.user_id}', type='{self.type}', is_read={self.is_read})>"
