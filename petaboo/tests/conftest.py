import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
import os
from typing import Callable, Dict, Generator

# Environment for settings must be in place BEFORE petaboo.core.settings is imported.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "testsecretkey"
os.environ["LOCAL_ACCESS_ONLY"] = "false"
os.environ["ADMIN_USER_IDS"] = "user-alice"

# Import all model modules FIRST so Base.metadata is populated.
import petaboo.models  # noqa: F401
from petaboo.models.base import Base
from petaboo.models.team import Team, TeamMember
from petaboo.models.user import User

from petaboo.main import app
from petaboo.dependencies import get_db
from petaboo.database import configure_sqlite
from petaboo.core import security
from petaboo.crud.user import get_or_create_user, set_plan
from petaboo.crud.team import add_member, create_team

engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

configure_sqlite(engine)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh schema for every test. Routes commit, roll back and open savepoints
    on their own, so tables are recreated instead of wrapping the test in a transaction.
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """
    TestClient with `get_db` pointed at the test session.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    del app.dependency_overrides[get_db]


@pytest.fixture
def event_bus(client: TestClient):
    return app.state.event_bus


# ==== Identities ====

def make_token_headers(user_id: str) -> Dict[str, str]:
    token, _ = security.create_access_token(subject=user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers() -> Callable[[str], Dict[str, str]]:
    return make_token_headers


@pytest.fixture
def premium_user(db: Session) -> User:
    user = get_or_create_user(db, "user-alice")
    user.display_name = "Alice"
    return set_plan(db, user, "premium")


@pytest.fixture
def free_user(db: Session) -> User:
    user = get_or_create_user(db, "user-bob")
    user.display_name = "Bob"
    db.commit()
    return user


@pytest.fixture
def outsider(db: Session) -> User:
    user = get_or_create_user(db, "user-eve")
    user.display_name = "Eve"
    db.commit()
    return user


@pytest.fixture
def admin_headers(premium_user: User) -> Dict[str, str]:
    return make_token_headers(premium_user.user_id)


@pytest.fixture
def member_headers(free_user: User) -> Dict[str, str]:
    return make_token_headers(free_user.user_id)


@pytest.fixture
def outsider_headers(outsider: User) -> Dict[str, str]:
    return make_token_headers(outsider.user_id)


# ==== Teams ====

@pytest.fixture
def team(db: Session, premium_user: User) -> Team:
    """
    Team owned (admin) by premium_user.
    """
    return create_team(db, {"name": "Dev Team", "custom_url": "dev-team"}, premium_user)


@pytest.fixture
def team_with_member(db: Session, team: Team, free_user: User) -> Team:
    """
    Same team with free_user joined as a plain member.
    """
    add_member(db, team.id, free_user.user_id, role="member", display_name=free_user.display_name)
    return team


@pytest.fixture
def member(db: Session, team_with_member: Team, free_user: User) -> TeamMember:
    return (
        db.query(TeamMember)
        .filter(TeamMember.team_id == team_with_member.id, TeamMember.user_id == free_user.user_id)
        .one()
    )
