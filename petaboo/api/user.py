#petaboo/api/user.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from petaboo.schemas.user import PlanRead, PlanUpdate, UserRead, UserUpdate
from petaboo.crud.user import get_user_by_user_id, set_plan, update_user
from petaboo.crud.team import count_memberships
from petaboo.dependencies import get_db, get_current_user
from petaboo.core.exceptions import Forbidden, UserNotFound
from petaboo.core.settings import settings
from petaboo.models.user import User as UserModel

router = APIRouter(prefix="/users", tags=["Users"])

def _plan_read(db: Session, user: UserModel) -> PlanRead:
    limit = settings.FREE_PLAN_TEAM_LIMIT if user.plan_type == "free" else settings.PREMIUM_OWNED_TEAM_LIMIT
    return PlanRead(plan_type=user.plan_type, team_limit=limit, teams_joined=count_memberships(db, user.user_id))

@router.get("/plan", response_model=PlanRead)
def read_my_plan(
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_user),
):
    """
    Тариф текущего пользователя и его лимиты.
    """
    return _plan_read(db, user)

@router.patch("/plan", response_model=PlanRead)
def change_my_plan(
    data: PlanUpdate,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_user),
):
    """
    Сменить тариф (оплата обрабатывается вне этого сервиса).
    """
    user = set_plan(db, user, data.plan_type)
    return _plan_read(db, user)

@router.get("/{user_id}", response_model=UserRead)
def read_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """
    Профиль пользователя. Только свой.
    """
    if user_id != current_user.user_id:
        raise Forbidden("You can only view your own profile.")
    user = get_user_by_user_id(db, user_id)
    if not user:
        raise UserNotFound(f"User {user_id} not found.")
    return user

@router.put("/{user_id}", response_model=UserRead)
def update_user_api(
    user_id: str,
    data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """
    Обновить свой профиль.
    """
    if user_id != current_user.user_id:
        raise Forbidden("You can only update your own profile.")
    return update_user(db, current_user, data.model_dump(exclude_unset=True))
