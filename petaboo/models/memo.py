#petaboo/models/memo.py
from sqlalchemy import Column, Integer, BigInteger, String, Text, ForeignKey, UniqueConstraint
from petaboo.models.base import Base

class TeamMemo(Base):
    """
    TeamMemo — заметка команды. updated_at (мс epoch) — токен версии.
    """
    __tablename__ = "team_memos"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    team_id: int = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: str = Column(String(128), nullable=False, doc="Создатель")
    original_id: str = Column(String(32), nullable=False, doc="Номер заметки внутри команды")
    uuid: str = Column(String(36), nullable=False, unique=True)
    title: str = Column(String(200), nullable=False)
    content: str = Column(Text, nullable=True)
    board_category_id: int = Column(Integer, nullable=True)
    created_at: int = Column(BigInteger, nullable=False)
    updated_at: int = Column(BigInteger, nullable=False)
    deleted_at: int = Column(BigInteger, nullable=True)

    __table_args__ = (
        UniqueConstraint("team_id", "original_id", name="uq_team_memos_team_original"),
    )

    def __repr__(self):
        return f"<TeamMemo(id={self.id}, team_id={self.team_id}, title='{self.title}')>"
