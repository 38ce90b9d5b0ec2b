#petaboo/crud/user.py
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import List, Optional
import logging

from petaboo.models.user import User, PLAN_TYPES
from petaboo.core.exceptions import ValidationError, UpstreamError

logger = logging.getLogger("Petaboo.Users")

def get_user_by_user_id(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.user_id == user_id).first()

def get_or_create_user(db: Session, user_id: str) -> User:
    """
    Возвращает пользователя по sub из токена; при первом обращении создаёт его с планом free.
    """
    user = get_user_by_user_id(db, user_id)
    if user:
        return user
    user = User(user_id=user_id, plan_type="free")
    db.add(user)
    try:
        db.commit()
        db.refresh(user)
        logger.info(f"Provisioned user {user_id} (plan: free)")
        return user
    except IntegrityError:
        # параллельный запрос успел создать ту же строку
        db.rollback()
        user = get_user_by_user_id(db, user_id)
        if user is None:
            raise UpstreamError("Could not provision user.")
        return user
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error provisioning user {user_id}: {e}")
        raise UpstreamError("Database error while provisioning user.")

def get_users(db: Session, skip: int = 0, limit: int = 100) -> List[User]:
    return db.query(User).order_by(User.id).offset(skip).limit(limit).all()

def update_user(db: Session, user: User, data: dict) -> User:
    """
    Обновить профиль (display_name).
    """
    if "display_name" in data:
        name = (data["display_name"] or "").strip()
        if len(name) > 64:
            raise ValidationError("Display name must be at most 64 characters.")
        user.display_name = name or None
    try:
        db.commit()
        db.refresh(user)
        logger.info(f"Updated user {user.user_id}")
        return user
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating user {user.user_id}: {e}")
        raise UpstreamError("Database error while updating user.")

def set_plan(db: Session, user: User, plan_type: str) -> User:
    if plan_type not in PLAN_TYPES:
        raise ValidationError(f"Unknown plan type: {plan_type}")
    previous = user.plan_type
    user.plan_type = plan_type
    try:
        db.commit()
        db.refresh(user)
        logger.info(f"User {user.user_id} plan changed {previous} -> {plan_type}")
        return user
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error changing plan for {user.user_id}: {e}")
        raise UpstreamError("Database error while changing plan.")
