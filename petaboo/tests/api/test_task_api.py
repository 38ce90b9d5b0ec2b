import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from http import HTTPStatus

from petaboo.crud.task import create_team_task
from petaboo.crud.team import create_team
from petaboo.crud.user import set_plan
from petaboo.models.activity import ActivityLog
from petaboo.models.task import TeamTask
from petaboo.models.team import Team
from petaboo.models.user import User


def tasks_url(team_id: int) -> str:
    return f"/teams/{team_id}/tasks"


def task_updated_rows(db: Session, team_id: int) -> int:
    return (
        db.query(ActivityLog)
        .filter(ActivityLog.team_id == team_id, ActivityLog.action_type == "task_updated")
        .count()
    )


@pytest.fixture
def task(db: Session, team_with_member: Team, premium_user: User) -> TeamTask:
    task = create_team_task(db, team_with_member.id, premium_user.user_id, {"title": "Write release notes"})
    task.updated_at = 1000
    db.commit()
    return task


def test_create_and_list_tasks(client: TestClient, member_headers: dict, team_with_member: Team):
    response = client.post(
        tasks_url(team_with_member.id),
        headers=member_headers,
        json={"title": "Fix login", "priority": "high", "assigneeId": "user-alice"},
    )
    assert response.status_code == HTTPStatus.CREATED, response.text
    data = response.json()
    assert data["title"] == "Fix login"
    assert data["status"] == "todo"
    assert data["assigneeId"] == "user-alice"
    assert data["userId"] == "user-bob"
    assert data["createdAt"] == data["updatedAt"]

    response = client.get(tasks_url(team_with_member.id), headers=member_headers)
    assert response.status_code == HTTPStatus.OK
    assert [t["title"] for t in response.json()] == ["Fix login"]


def test_create_task_rejects_non_member_assignee(client: TestClient, member_headers: dict, team_with_member: Team):
    response = client.post(
        tasks_url(team_with_member.id),
        headers=member_headers,
        json={"title": "Fix login", "assigneeId": "user-eve"},
    )
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json()["error"] == "validation_error"


def test_outdated_update_is_rejected(client: TestClient, db: Session, admin_headers: dict, member_headers: dict, task: TeamTask):
    url = f"{tasks_url(task.team_id)}/{task.id}"

    # client B updates first
    response_b = client.put(url, headers=member_headers, json={"title": "Release notes v2", "updatedAt": 1000})
    assert response_b.status_code == HTTPStatus.OK, response_b.text
    version_b = response_b.json()["updatedAt"]
    assert version_b > 1000

    # client A still holds 1000
    response_a = client.put(url, headers=admin_headers, json={"title": "Release notes (A)", "updatedAt": 1000})
    assert response_a.status_code == HTTPStatus.CONFLICT
    assert response_a.json() == {"error": "conflict", "reason": "outdated", "currentUpdatedAt": version_b}

    db.expire_all()
    assert db.get(TeamTask, task.id).title == "Release notes v2"


def test_refetched_update_succeeds(client: TestClient, db: Session, admin_headers: dict, member_headers: dict, task: TeamTask):
    url = f"{tasks_url(task.team_id)}/{task.id}"
    client.put(url, headers=member_headers, json={"title": "Release notes v2", "updatedAt": 1000})

    current = client.get(url, headers=admin_headers).json()["updatedAt"]
    rows_before = task_updated_rows(db, task.team_id)

    response = client.put(url, headers=admin_headers, json={"title": "Release notes v3", "updatedAt": current})
    assert response.status_code == HTTPStatus.OK, response.text
    assert response.json()["updatedAt"] > current
    assert task_updated_rows(db, task.team_id) == rows_before + 1


def test_update_without_version_skips_check(client: TestClient, member_headers: dict, task: TeamTask):
    response = client.put(
        f"{tasks_url(task.team_id)}/{task.id}", headers=member_headers, json={"status": "in_progress"}
    )
    assert response.status_code == HTTPStatus.OK
    assert response.json()["status"] == "in_progress"


def test_update_missing_task_with_version_is_conflict(client: TestClient, member_headers: dict, team_with_member: Team):
    response = client.put(
        f"{tasks_url(team_with_member.id)}/9999", headers=member_headers, json={"title": "x", "updatedAt": 5}
    )
    assert response.status_code == HTTPStatus.CONFLICT
    assert response.json()["reason"] == "not_found"
    assert response.json()["currentUpdatedAt"] is None


def test_other_teams_task_is_hidden_by_conflict_check(
    client: TestClient, db: Session, member_headers: dict, team_with_member: Team, outsider: User
):
    other_team = create_team(db, {"name": "Other", "custom_url": "other-team"}, set_plan(db, outsider, "premium"))
    secret = create_team_task(db, other_team.id, outsider.user_id, {"title": "Secret"})
    url = f"{tasks_url(team_with_member.id)}/{secret.id}"

    updated = client.put(url, headers=member_headers, json={"title": "Mine now", "updatedAt": 1})
    assert updated.status_code == HTTPStatus.CONFLICT
    assert updated.json()["reason"] == "not_found"
    assert updated.json()["currentUpdatedAt"] is None

    deleted = client.delete(url, headers=member_headers, params={"updatedAt": 1})
    assert deleted.json() == {"error": "conflict", "reason": "not_found", "currentUpdatedAt": None}

    db.refresh(secret)
    assert secret.title == "Secret"
    assert secret.status == "todo"


def test_delete_with_stale_version(client: TestClient, member_headers: dict, task: TeamTask):
    url = f"{tasks_url(task.team_id)}/{task.id}"
    response = client.delete(url, headers=member_headers, params={"updatedAt": 999})
    assert response.status_code == HTTPStatus.CONFLICT
    assert response.json()["currentUpdatedAt"] == 1000


def test_delete_and_restore(client: TestClient, member_headers: dict, task: TeamTask):
    url = f"{tasks_url(task.team_id)}/{task.id}"
    response = client.delete(url, headers=member_headers, params={"updatedAt": 1000})
    assert response.status_code == HTTPStatus.OK, response.text
    assert response.json()["status"] == "deleted"

    assert client.get(url, headers=member_headers).status_code == HTTPStatus.NOT_FOUND
    deleted = client.get(tasks_url(task.team_id), headers=member_headers, params={"showDeleted": True}).json()
    assert [t["id"] for t in deleted] == [task.id]

    response = client.post(f"{url}/restore", headers=member_headers)
    assert response.status_code == HTTPStatus.OK
    assert response.json()["status"] == "todo"


def test_non_member_cannot_read_tasks(client: TestClient, outsider_headers: dict, task: TeamTask):
    response = client.get(tasks_url(task.team_id), headers=outsider_headers)
    assert response.status_code == HTTPStatus.FORBIDDEN
    assert response.json()["error"] == "forbidden"


def test_unknown_team_is_not_found(client: TestClient, member_headers: dict):
    response = client.get(tasks_url(12345), headers=member_headers)
    assert response.status_code == HTTPStatus.NOT_FOUND


def test_tasks_require_token(client: TestClient, task: TeamTask):
    assert client.get(tasks_url(task.team_id)).status_code == HTTPStatus.UNAUTHORIZED


# ==== Memos ====

def test_memo_conflict_flow(client: TestClient, member_headers: dict, admin_headers: dict, team_with_member: Team):
    url = f"/teams/{team_with_member.id}/memos"
    created = client.post(url, headers=member_headers, json={"title": "Retro", "content": "went well"})
    assert created.status_code == HTTPStatus.CREATED, created.text
    memo = created.json()

    first = client.put(
        f"{url}/{memo['id']}", headers=admin_headers, json={"content": "went great", "updatedAt": memo["updatedAt"]}
    )
    assert first.status_code == HTTPStatus.OK
    stale = client.put(
        f"{url}/{memo['id']}", headers=member_headers, json={"content": "meh", "updatedAt": memo["updatedAt"]}
    )
    assert stale.status_code == HTTPStatus.CONFLICT
    assert stale.json()["currentUpdatedAt"] == first.json()["updatedAt"]

    deleted = client.delete(
        f"{url}/{memo['id']}", headers=member_headers, params={"updatedAt": first.json()["updatedAt"]}
    )
    assert deleted.status_code == HTTPStatus.OK
    assert client.get(url, headers=member_headers).json() == []
