import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from petaboo.core.exceptions import MemoNotFound, TaskNotFound, TaskValidationError, ValidationError
from petaboo.crud import task as crud_task
from petaboo.crud import memo as crud_memo
from petaboo.models.activity import ActivityLog
from petaboo.models.task import TeamTask
from petaboo.models.team import Team, TeamMember
from petaboo.models.user import User


def _actions(db: Session, team_id: int, action_type: str):
    return (
        db.query(ActivityLog)
        .filter(ActivityLog.team_id == team_id, ActivityLog.action_type == action_type)
        .order_by(ActivityLog.id)
        .all()
    )


@pytest.fixture
def task(db: Session, team_with_member: Team, premium_user: User):
    return crud_task.create_team_task(
        db, team_with_member.id, premium_user.user_id, {"title": "Ship it", "priority": "high"}
    )


def test_create_task_defaults(db: Session, task, team_with_member: Team):
    assert task.status == "todo"
    assert task.priority == "high"
    assert task.original_id == "1"
    assert task.created_at == task.updated_at
    assert len(_actions(db, team_with_member.id, "task_created")) == 1


def test_create_task_validation(db: Session, team_with_member: Team, premium_user: User):
    with pytest.raises(TaskValidationError):
        crud_task.create_team_task(db, team_with_member.id, premium_user.user_id, {"title": "  "})
    with pytest.raises(TaskValidationError):
        crud_task.create_team_task(db, team_with_member.id, premium_user.user_id, {"title": "x", "status": "done"})
    with pytest.raises(TaskValidationError):
        crud_task.create_team_task(
            db, team_with_member.id, premium_user.user_id, {"title": "x", "assignee_id": "user-eve"}
        )


def test_assignee_must_be_member(db: Session, task, member: TeamMember, premium_user: User):
    updated = crud_task.update_team_task(db, task, {"assignee_id": member.user_id}, premium_user.user_id)
    assert updated.assignee_id == member.user_id
    with pytest.raises(TaskValidationError):
        crud_task.update_team_task(db, task, {"assignee_id": "user-nobody"}, premium_user.user_id)


def test_status_change_logs_exactly_one_entry(db: Session, task, team_with_member: Team, premium_user: User):
    before = task.updated_at
    crud_task.update_team_task(db, task, {"status": "in_progress"}, premium_user.user_id)

    changes = _actions(db, team_with_member.id, "task_status_changed")
    assert len(changes) == 1
    assert changes[0].metadata_ == {"from": "todo", "to": "in_progress"}
    assert _actions(db, team_with_member.id, "task_updated") == []
    assert task.updated_at > before


def test_same_status_is_a_noop(db: Session, task, team_with_member: Team, premium_user: User):
    before = task.updated_at
    crud_task.update_team_task(db, task, {"status": "todo", "title": "Ship it"}, premium_user.user_id)

    assert task.updated_at == before
    assert _actions(db, team_with_member.id, "task_status_changed") == []
    assert _actions(db, team_with_member.id, "task_updated") == []


def test_field_and_status_change(db: Session, task, team_with_member: Team, premium_user: User):
    crud_task.update_team_task(
        db, task, {"title": "Ship it now", "status": "completed"}, premium_user.user_id
    )
    updated = _actions(db, team_with_member.id, "task_updated")
    assert len(updated) == 1
    assert updated[0].metadata_ == {"fields": ["title"]}
    assert len(_actions(db, team_with_member.id, "task_status_changed")) == 1


def test_versions_strictly_increase(db: Session, task, premium_user: User):
    seen = [task.updated_at]
    for i in range(5):
        crud_task.update_team_task(db, task, {"title": f"v{i}"}, premium_user.user_id)
        seen.append(task.updated_at)
    assert seen == sorted(set(seen))


def test_delete_and_restore(db: Session, task, team_with_member: Team, premium_user: User):
    crud_task.update_team_task(db, task, {"status": "in_progress"}, premium_user.user_id)
    crud_task.delete_team_task(db, task, premium_user.user_id)

    assert task.status == "deleted"
    assert task.deleted_at is not None
    with pytest.raises(TaskNotFound):
        crud_task.get_team_task(db, team_with_member.id, task.id)
    assert crud_task.get_team_tasks(db, team_with_member.id) == []
    assert crud_task.get_team_tasks(db, team_with_member.id, {"show_deleted": True}) == [task]
    assert len(_actions(db, team_with_member.id, "task_deleted")) == 1

    with pytest.raises(TaskValidationError):
        crud_task.delete_team_task(db, task, premium_user.user_id)

    crud_task.restore_team_task(db, task, premium_user.user_id)
    assert task.status == "todo"
    assert task.deleted_at is None

    transitions = [a.metadata_ for a in _actions(db, team_with_member.id, "task_status_changed")]
    assert transitions == [
        {"from": "todo", "to": "in_progress"},
        {"from": "in_progress", "to": "deleted"},
        {"from": "deleted", "to": "todo"},
    ]


def test_restore_requires_deleted_task(db: Session, task, premium_user: User):
    with pytest.raises(TaskValidationError):
        crud_task.restore_team_task(db, task, premium_user.user_id)


def test_list_filters(db: Session, task, team_with_member: Team, member: TeamMember, premium_user: User):
    other = crud_task.create_team_task(
        db, team_with_member.id, premium_user.user_id,
        {"title": "Review", "status": "in_progress", "assignee_id": member.user_id},
    )
    assert other.original_id == "2"
    assert crud_task.get_team_tasks(db, team_with_member.id, {"status": "in_progress"}) == [other]
    assert crud_task.get_team_tasks(db, team_with_member.id, {"assignee_id": member.user_id}) == [other]


# ==== Memos ====

def test_memo_lifecycle(db: Session, team_with_member: Team, premium_user: User):
    memo = crud_memo.create_team_memo(db, team_with_member.id, premium_user.user_id, {"title": "Plan", "content": "a"})
    version = memo.updated_at

    crud_memo.update_team_memo(db, memo, {"content": "a"}, premium_user.user_id)
    assert memo.updated_at == version
    assert _actions(db, team_with_member.id, "memo_updated") == []

    crud_memo.update_team_memo(db, memo, {"content": "b"}, premium_user.user_id)
    assert memo.updated_at > version
    assert len(_actions(db, team_with_member.id, "memo_updated")) == 1

    with pytest.raises(ValidationError):
        crud_memo.update_team_memo(db, memo, {"title": ""}, premium_user.user_id)

    crud_memo.delete_team_memo(db, memo, premium_user.user_id)
    with pytest.raises(MemoNotFound):
        crud_memo.get_team_memo(db, team_with_member.id, memo.id)
    assert crud_memo.get_team_memos(db, team_with_member.id) == []
    assert len(_actions(db, team_with_member.id, "memo_deleted")) == 1


# ==== Номера внутри команды ====

def test_original_id_is_unique_per_team(db: Session, task, team_with_member: Team, premium_user: User):
    db.add(TeamTask(
        team_id=team_with_member.id,
        user_id=premium_user.user_id,
        original_id=task.original_id,
        uuid="00000000-0000-0000-0000-000000000001",
        title="Clone",
        created_at=1,
        updated_at=1,
    ))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_taken_task_number_is_skipped(db: Session, task, team_with_member: Team, premium_user: User, monkeypatch):
    numbers = iter([task.original_id, "2"])
    monkeypatch.setattr(crud_task, "_next_original_id", lambda db, team_id: next(numbers))

    second = crud_task.create_team_task(db, team_with_member.id, premium_user.user_id, {"title": "Second"})

    assert second.original_id == "2"
    assert db.query(TeamTask).filter(TeamTask.team_id == team_with_member.id).count() == 2
    assert [a.target_id for a in _actions(db, team_with_member.id, "task_created")] == ["1", "2"]


def test_taken_memo_number_is_skipped(db: Session, team_with_member: Team, premium_user: User, monkeypatch):
    first = crud_memo.create_team_memo(db, team_with_member.id, premium_user.user_id, {"title": "First"})
    numbers = iter([first.original_id, "2"])
    monkeypatch.setattr(crud_memo, "_next_original_id", lambda db, team_id: next(numbers))

    second = crud_memo.create_team_memo(db, team_with_member.id, premium_user.user_id, {"title": "Second"})
    assert second.original_id == "2"
