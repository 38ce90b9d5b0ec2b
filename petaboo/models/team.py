#petaboo/models/team.py
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Boolean, UniqueConstraint, Index, func
)
from sqlalchemy.orm import relationship
from petaboo.models.base import Base

TEAM_ROLES = ("admin", "member")

class Team(Base):
    """
    Team — команда пользователей. Внешний адрес — custom_url, внутренний ключ — id.
    """
    __tablename__ = "teams"

    id: int = Column(Integer, primary_key=True)
    name: str = Column(String(100), nullable=False, doc="Название команды")
    custom_url: str = Column(String(64), nullable=False, unique=True, index=True, doc="Уникальный slug команды")
    description: str = Column(String(500), nullable=True, doc="Описание")
    is_public: bool = Column(Boolean, default=False, nullable=False, doc="Публичная команда")
    invite_code: str = Column(String(64), nullable=True, unique=True, index=True, doc="Код приглашения по ссылке")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, doc="Дата создания")
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, doc="Дата обновления")

    members = relationship("TeamMember", back_populates="team", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Team(id={self.id}, custom_url='{self.custom_url}')>"

class TeamMember(Base):
    """
    TeamMember — членство пользователя в команде. Не больше одной строки на (team_id, user_id).
    """
    __tablename__ = "team_members"

    id: int = Column(Integer, primary_key=True)
    team_id: int = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: str = Column(String(128), nullable=False, index=True, doc="sub пользователя")
    role: str = Column(String(16), nullable=False, default="member", doc="admin / member")
    display_name: str = Column(String(64), nullable=True, doc="Имя внутри команды")
    avatar_color: str = Column(String(16), nullable=True, doc="Цвет аватара")
    joined_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    team = relationship("Team", back_populates="members")

    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
    )

    def __repr__(self):
        return f"<TeamMember(team_id={self.team_id}, user_id='{self.user_id}', role='{self.role}')>"

class TeamInvitation(Base):
    """
    TeamInvitation — приглашение по email либо заявка на вступление по коду.
    Статусы: pending, accepted, rejected, expired.
    """
    __tablename__ = "team_invitations"

    id: int = Column(Integer, primary_key=True)
    team_id: int = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    email: str = Column(String(255), nullable=True, doc="Email приглашённого (для приглашений)")
    user_id: str = Column(String(128), nullable=True, doc="Заявитель (для заявок по коду)")
    display_name: str = Column(String(64), nullable=True)
    role: str = Column(String(16), nullable=False, default="member")
    token: str = Column(String(64), nullable=False, unique=True, index=True)
    invited_by: str = Column(String(128), nullable=True)
    status: str = Column(String(16), nullable=False, default="pending")
    created_at: datetime = Column(DateTime(timezone=True), nullable=False)
    expires_at: datetime = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_team_invitations_team_status", "team_id", "status"),
    )

    def __repr__(self):
        return f"<TeamInvitation(id={self.id}, team_id={self.team_id}, status='{self.status}')>"
