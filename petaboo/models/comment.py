#petaboo/models/comment.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON, Index, func
from petaboo.models.base import Base

COMMENT_TARGET_TYPES = ("memo", "task", "board")

class TeamComment(Base):
    """
    TeamComment — комментарий к заметке, задаче или доске команды.
    """
    __tablename__ = "team_comments"

    id: int = Column(Integer, primary_key=True)
    team_id: int = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: str = Column(String(128), nullable=False, doc="Автор")
    target_type: str = Column(String(16), nullable=False, doc="memo / task / board")
    target_original_id: str = Column(String(32), nullable=False)
    content: str = Column(Text, nullable=False)
    mentions: list = Column(JSON, nullable=False, default=lambda: [], doc="user_id упомянутых участников")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: datetime = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_team_comments_target", "team_id", "target_type", "target_original_id"),
    )

    def __repr__(self):
        return f"<TeamComment(id={self.id}, target={self.target_type}:{self.target_original_id})>"
