from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from http import HTTPStatus

from petaboo.crud.team import get_member
from petaboo.crud.user import get_or_create_user
from petaboo.models.team import Team, TeamMember
from petaboo.models.user import User

TEAMS_ENDPOINT = "/teams"


def test_create_team_as_premium(client: TestClient, admin_headers: dict):
    payload = {"name": "Design", "customUrl": "design-crew", "description": "UI people", "isPublic": True}
    response = client.post(TEAMS_ENDPOINT, headers=admin_headers, json=payload)

    assert response.status_code == HTTPStatus.CREATED, response.text
    data = response.json()
    assert data["customUrl"] == "design-crew"
    assert data["isPublic"] is True

    listed = client.get(TEAMS_ENDPOINT, headers=admin_headers).json()
    assert [(t["customUrl"], t["role"], t["memberCount"]) for t in listed] == [("design-crew", "admin", 1)]


def test_create_team_free_plan_forbidden(client: TestClient, member_headers: dict):
    response = client.post(TEAMS_ENDPOINT, headers=member_headers, json={"name": "X", "customUrl": "x-team"})
    assert response.status_code == HTTPStatus.FORBIDDEN


def test_create_team_duplicate_url(client: TestClient, db: Session, team: Team, auth_headers):
    other = get_or_create_user(db, "user-carol")
    other.plan_type = "premium"
    db.commit()
    response = client.post(
        TEAMS_ENDPOINT, headers=auth_headers("user-carol"), json={"name": "Copy", "customUrl": "dev-team"}
    )
    assert response.status_code == HTTPStatus.CONFLICT
    assert response.json()["error"] == "duplicate"


def test_create_team_unauthenticated(client: TestClient):
    response = client.post(TEAMS_ENDPOINT, json={"name": "Unauth", "customUrl": "unauth-team"})
    assert response.status_code == HTTPStatus.UNAUTHORIZED


def test_read_team_as_member(client: TestClient, member_headers: dict, team_with_member: Team):
    response = client.get(f"{TEAMS_ENDPOINT}/dev-team", headers=member_headers)
    assert response.status_code == HTTPStatus.OK, response.text
    data = response.json()
    assert data["team"]["name"] == "Dev Team"
    assert data["role"] == "member"
    assert data["inviteCode"] is None
    assert sorted(m["userId"] for m in data["members"]) == ["user-alice", "user-bob"]


def test_read_team_without_membership_is_forbidden(client: TestClient, outsider_headers: dict, team: Team):
    response = client.get(f"{TEAMS_ENDPOINT}/dev-team", headers=outsider_headers)
    assert response.status_code == HTTPStatus.FORBIDDEN


def test_read_unknown_team(client: TestClient, member_headers: dict):
    response = client.get(f"{TEAMS_ENDPOINT}/no-such-team", headers=member_headers)
    assert response.status_code == HTTPStatus.NOT_FOUND
    assert response.json()["error"] == "not_found"


def test_update_team_requires_admin(client: TestClient, member_headers: dict, admin_headers: dict, team_with_member: Team):
    forbidden = client.put(f"{TEAMS_ENDPOINT}/dev-team", headers=member_headers, json={"name": "Hijacked"})
    assert forbidden.status_code == HTTPStatus.FORBIDDEN

    response = client.put(f"{TEAMS_ENDPOINT}/dev-team", headers=admin_headers, json={"name": "Core Team"})
    assert response.status_code == HTTPStatus.OK
    assert response.json()["name"] == "Core Team"


# ==== Kick ====

def test_member_cannot_kick(client: TestClient, db: Session, member_headers: dict, team_with_member: Team, premium_user: User):
    response = client.delete(f"{TEAMS_ENDPOINT}/dev-team/members/{premium_user.user_id}", headers=member_headers)
    assert response.status_code == HTTPStatus.FORBIDDEN
    assert get_member(db, team_with_member.id, premium_user.user_id) is not None


def test_admin_can_kick(client: TestClient, db: Session, admin_headers: dict, team_with_member: Team, free_user: User):
    response = client.delete(f"{TEAMS_ENDPOINT}/dev-team/members/{free_user.user_id}", headers=admin_headers)
    assert response.status_code == HTTPStatus.OK, response.text
    assert get_member(db, team_with_member.id, free_user.user_id) is None

    activities = client.get(f"{TEAMS_ENDPOINT}/dev-team/activities", headers=admin_headers).json()
    assert activities[0]["actionType"] == "member_left"
    assert activities[0]["metadata"] == {"kicked": True}


def test_admin_cannot_kick_last_admin(client: TestClient, admin_headers: dict, team_with_member: Team, premium_user: User):
    response = client.delete(f"{TEAMS_ENDPOINT}/dev-team/members/{premium_user.user_id}", headers=admin_headers)
    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_member_can_leave(client: TestClient, db: Session, member_headers: dict, team_with_member: Team, free_user: User):
    response = client.delete(f"{TEAMS_ENDPOINT}/dev-team/members/{free_user.user_id}", headers=member_headers)
    assert response.status_code == HTTPStatus.OK
    assert get_member(db, team_with_member.id, free_user.user_id) is None


def test_update_my_member_profile(client: TestClient, member_headers: dict, member: TeamMember):
    response = client.patch(
        f"{TEAMS_ENDPOINT}/dev-team/members/me",
        headers=member_headers,
        json={"displayName": "Bobby", "avatarColor": "#00ff00"},
    )
    assert response.status_code == HTTPStatus.OK
    assert response.json()["displayName"] == "Bobby"
    assert response.json()["avatarColor"] == "#00ff00"


# ==== Invitations ====

def test_invite_and_accept(client: TestClient, admin_headers: dict, outsider_headers: dict, team: Team):
    response = client.post(
        f"{TEAMS_ENDPOINT}/{team.id}/invite", headers=admin_headers, json={"email": "eve@example.com"}
    )
    assert response.status_code == HTTPStatus.CREATED, response.text
    token = response.json()["token"]

    accepted = client.post(f"{TEAMS_ENDPOINT}/invitations/{token}/accept", headers=outsider_headers)
    assert accepted.status_code == HTTPStatus.OK
    assert accepted.json()["role"] == "member"

    again = client.post(f"{TEAMS_ENDPOINT}/invitations/{token}/accept", headers=outsider_headers)
    assert again.status_code == HTTPStatus.NOT_FOUND


def test_invite_rejects_bad_email(client: TestClient, admin_headers: dict, team: Team):
    response = client.post(f"{TEAMS_ENDPOINT}/{team.id}/invite", headers=admin_headers, json={"email": "nope"})
    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_member_cannot_invite(client: TestClient, member_headers: dict, team_with_member: Team):
    response = client.post(
        f"{TEAMS_ENDPOINT}/{team_with_member.id}/invite", headers=member_headers, json={"email": "x@example.com"}
    )
    assert response.status_code == HTTPStatus.FORBIDDEN


# ==== Delete ====

def test_delete_team(client: TestClient, db: Session, admin_headers: dict, team_with_member: Team):
    team_id = team_with_member.id
    client.post(f"/teams/{team_id}/tasks", headers=admin_headers, json={"title": "Doomed"})

    response = client.delete(f"{TEAMS_ENDPOINT}/dev-team", headers=admin_headers)
    assert response.status_code == HTTPStatus.OK, response.text
    assert db.query(TeamMember).filter(TeamMember.team_id == team_id).count() == 0
    assert client.get(f"{TEAMS_ENDPOINT}/dev-team", headers=admin_headers).status_code == HTTPStatus.NOT_FOUND
