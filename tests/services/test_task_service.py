from datetime import datetime

import pytest
from sqlmodel import Session, select

from taskboard.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from taskboard.models import Subtask, SubtaskProgress, SubtaskStatus, Task
from taskboard.repos import TasksRepo
from taskboard.services import membership, tasks


@pytest.fixture
def member_id(make_member):
    return make_member("approved")


def _create(db_session, team, subtasks, assign_specific=False, created_by=None):
    return tasks.create_task(
        db_session,
        title="Launch",
        description="Ship it",
        team_code=team["team_code"],
        created_by=created_by or team["leader_id"],
        subtasks=subtasks,
        assign_specific=assign_specific,
    )


def test_create_task_initial_subtask_states(db_session: Session, team, member_id):
    task = _create(
        db_session,
        team,
        [{"title": "free"}, {"title": "preassigned", "assigned_to": member_id}],
        assign_specific=True,
    )

    free, preassigned = task["subtasks"]
    assert (free["status"], free["progress"], free["assigned_to"]) == ("available", "not_started", None)
    assert (preassigned["status"], preassigned["progress"]) == ("assigned", "assigned")
    assert preassigned["assigned_to"] == member_id
    assert preassigned["assigned_to_name"] == "Member 1"
    assert task["created_by_name"] == "Alice"


def test_create_task_ignores_assignee_without_assign_specific(db_session: Session, team, member_id):
    task = _create(db_session, team, [{"title": "x", "assigned_to": member_id}])

    [subtask] = task["subtasks"]
    assert subtask["status"] == "available"
    assert subtask["assigned_to"] is None


def test_create_task_requires_subtasks(db_session: Session, team):
    with pytest.raises(ValidationError):
        _create(db_session, team, [])


def test_create_task_rolls_back_on_subtask_failure(db_session: Session, team, monkeypatch):
    original = TasksRepo.add_subtask
    calls = {"n": 0}

    def flaky(self, session, subtask):
        calls["n"] += 1
        if calls["n"] == 2:
            raise RuntimeError("subtask insert failed")
        return original(self, session, subtask)

    monkeypatch.setattr(TasksRepo, "add_subtask", flaky)

    with pytest.raises(RuntimeError):
        _create(db_session, team, [{"title": "a"}, {"title": "b"}])

    assert db_session.exec(select(Task)).all() == []
    assert db_session.exec(select(Subtask)).all() == []


def test_take_subtask_claims_once(db_session: Session, team, make_member):
    first = make_member("approved")
    second = make_member("approved")
    task = _create(db_session, team, [{"title": "contested"}])
    subtask_id = task["subtasks"][0]["id"]

    claimed = tasks.take_subtask(db_session, subtask_id=subtask_id, user_id=first)
    assert (claimed["status"], claimed["progress"], claimed["assigned_to"]) == ("taken", "in_progress", first)

    with pytest.raises(ConflictError, match="no longer available"):
        tasks.take_subtask(db_session, subtask_id=subtask_id, user_id=second)

    assert db_session.get(Subtask, subtask_id).assigned_to == first


def test_take_missing_subtask(db_session: Session, team, member_id):
    with pytest.raises(NotFoundError):
        tasks.take_subtask(db_session, subtask_id=404, user_id=member_id)


def test_assign_overwrites_claim(db_session: Session, team, make_member):
    first = make_member("approved")
    second = make_member("approved")
    task = _create(db_session, team, [{"title": "x"}])
    subtask_id = task["subtasks"][0]["id"]
    tasks.take_subtask(db_session, subtask_id=subtask_id, user_id=first)

    assigned = tasks.assign_subtask(
        db_session, subtask_id=subtask_id, user_id=second, assigned_by=team["leader_id"]
    )

    assert (assigned["status"], assigned["progress"], assigned["assigned_to"]) == ("assigned", "assigned", second)


def test_update_progress_mapping(db_session: Session, team, member_id):
    task = _create(db_session, team, [{"title": "x", "assigned_to": member_id}], assign_specific=True)
    subtask_id = task["subtasks"][0]["id"]

    testing = tasks.update_progress(
        db_session, subtask_id=subtask_id, progress=SubtaskProgress.testing, user_id=member_id
    )
    assert (testing["status"], testing["progress"]) == ("assigned", "testing")

    started = tasks.update_progress(
        db_session, subtask_id=subtask_id, progress=SubtaskProgress.in_progress, user_id=member_id
    )
    assert (started["status"], started["progress"]) == ("taken", "in_progress")

    done = tasks.update_progress(
        db_session, subtask_id=subtask_id, progress=SubtaskProgress.completed, user_id=member_id
    )
    assert (done["status"], done["progress"]) == ("completed", "completed")


def test_update_progress_completed_from_available(db_session: Session, team):
    task = _create(db_session, team, [{"title": "x"}])
    subtask_id = task["subtasks"][0]["id"]

    done = tasks.update_progress(
        db_session, subtask_id=subtask_id, progress=SubtaskProgress.completed, user_id=team["leader_id"]
    )
    assert done["status"] == "completed"


def test_update_progress_authorization(db_session: Session, team, make_member):
    assignee = make_member("approved")
    outsider = make_member("approved")
    task = _create(db_session, team, [{"title": "x", "assigned_to": assignee}], assign_specific=True)
    subtask_id = task["subtasks"][0]["id"]

    with pytest.raises(ForbiddenError, match="Not authorized"):
        tasks.update_progress(
            db_session, subtask_id=subtask_id, progress=SubtaskProgress.testing, user_id=outsider
        )
    with pytest.raises(ForbiddenError, match="User not found"):
        tasks.update_progress(
            db_session, subtask_id=subtask_id, progress=SubtaskProgress.testing, user_id=9999
        )

    # Task creator may update even when not assigned
    creator_task = _create(db_session, team, [{"title": "y"}], created_by=outsider)
    updated = tasks.update_progress(
        db_session,
        subtask_id=creator_task["subtasks"][0]["id"],
        progress=SubtaskProgress.testing,
        user_id=outsider,
    )
    assert updated["progress"] == "testing"


def test_update_deadline_leader_only(db_session: Session, team, member_id):
    task = _create(db_session, team, [{"title": "x"}])
    subtask_id = task["subtasks"][0]["id"]
    deadline = datetime(2030, 1, 15, 17, 0)

    with pytest.raises(ForbiddenError, match="Only team leaders"):
        tasks.update_deadline(db_session, subtask_id=subtask_id, deadline=deadline, user_id=member_id)

    updated = tasks.update_deadline(
        db_session, subtask_id=subtask_id, deadline=deadline, user_id=team["leader_id"]
    )
    assert updated["deadline"] == deadline


def test_list_by_status(db_session: Session, team, member_id):
    code = team["team_code"]
    done = _create(db_session, team, [{"title": "only"}])
    partial = _create(db_session, team, [{"title": "a"}, {"title": "b"}])
    empty = tasks.create_task(
        db_session, title="Empty", description=None, team_code=code,
        created_by=team["leader_id"], subtasks=[{"title": "gone"}],
    )
    tasks.delete_subtask(db_session, subtask_id=empty["subtasks"][0]["id"], user_id=team["leader_id"])

    tasks.update_progress(
        db_session, subtask_id=done["subtasks"][0]["id"],
        progress=SubtaskProgress.completed, user_id=team["leader_id"],
    )
    tasks.update_progress(
        db_session, subtask_id=partial["subtasks"][0]["id"],
        progress=SubtaskProgress.completed, user_id=team["leader_id"],
    )

    completed = tasks.list_tasks_by_status(db_session, code, "completed")
    active = tasks.list_tasks_by_status(db_session, code, "active")

    assert [t["id"] for t in completed] == [done["id"]]
    assert {t["id"] for t in active} == {partial["id"], empty["id"]}
    assert completed[0]["total_subtasks"] == completed[0]["completed_subtasks"] == 1

    with pytest.raises(ValidationError):
        tasks.list_tasks_by_status(db_session, code, "archived")


def test_list_available_and_user_subtasks(db_session: Session, team, member_id):
    task = _create(
        db_session,
        team,
        [{"title": "free"}, {"title": "mine", "assigned_to": member_id}, {"title": "claimed"}],
        assign_specific=True,
    )
    free, mine, claimed = task["subtasks"]
    tasks.take_subtask(db_session, subtask_id=claimed["id"], user_id=member_id)

    available = tasks.list_available_subtasks(db_session, team["team_code"])
    assert [s["id"] for s in available] == [free["id"]]
    assert available[0]["task_title"] == "Launch"

    # Ordered by progress: assigned before in_progress
    own = tasks.list_user_subtasks(db_session, member_id)
    assert [s["id"] for s in own] == [mine["id"], claimed["id"]]
    assert own[0]["created_by_name"] == "Alice"


def test_edit_task_by_creator_or_leader(db_session: Session, team, make_member):
    creator = make_member("approved")
    outsider = make_member("approved")
    task = _create(db_session, team, [{"title": "x"}], created_by=creator)

    with pytest.raises(ForbiddenError):
        tasks.edit_task(db_session, task_id=task["id"], user_id=outsider, title="Nope", description=None)

    edited = tasks.edit_task(db_session, task_id=task["id"], user_id=creator, title="Renamed", description="d")
    assert edited["title"] == "Renamed"

    edited = tasks.edit_task(
        db_session, task_id=task["id"], user_id=team["leader_id"], title="Leader", description=None
    )
    assert edited["title"] == "Leader"

    with pytest.raises(NotFoundError):
        tasks.edit_task(db_session, task_id=404, user_id=creator, title="x", description=None)


def test_edit_subtask_resets_progress(db_session: Session, team, member_id):
    task = _create(db_session, team, [{"title": "x", "assigned_to": member_id}], assign_specific=True)
    subtask_id = task["subtasks"][0]["id"]
    tasks.update_progress(
        db_session, subtask_id=subtask_id, progress=SubtaskProgress.testing, user_id=member_id
    )

    kept = tasks.edit_subtask(
        db_session, subtask_id=subtask_id, user_id=team["leader_id"],
        title="x2", description=None, assigned_to=member_id,
    )
    assert (kept["status"], kept["progress"], kept["title"]) == ("assigned", "assigned", "x2")

    cleared = tasks.edit_subtask(
        db_session, subtask_id=subtask_id, user_id=team["leader_id"],
        title=None, description=None, assigned_to=None,
    )
    assert (cleared["status"], cleared["progress"], cleared["assigned_to"]) == ("available", "not_started", None)
    assert cleared["title"] == "x2"


def test_edit_subtask_forbidden_for_assignee(db_session: Session, team, member_id):
    task = _create(db_session, team, [{"title": "x", "assigned_to": member_id}], assign_specific=True)

    with pytest.raises(ForbiddenError, match="Not authorized to edit this subtask"):
        tasks.edit_subtask(
            db_session, subtask_id=task["subtasks"][0]["id"], user_id=member_id,
            title="mine now", description=None, assigned_to=member_id,
        )


def test_delete_task_removes_subtasks(db_session: Session, team, member_id):
    task = _create(db_session, team, [{"title": "a"}, {"title": "b"}])
    other = _create(db_session, team, [{"title": "c"}])

    with pytest.raises(ForbiddenError):
        tasks.delete_task(db_session, task_id=task["id"], user_id=member_id)

    tasks.delete_task(db_session, task_id=task["id"], user_id=team["leader_id"])

    assert db_session.get(Task, task["id"]) is None
    remaining = db_session.exec(select(Subtask)).all()
    assert [s.task_id for s in remaining] == [other["id"]]

    with pytest.raises(NotFoundError):
        tasks.get_task(db_session, task["id"])


def test_delete_subtask(db_session: Session, team, member_id):
    task = _create(db_session, team, [{"title": "a"}, {"title": "b"}])
    first = task["subtasks"][0]["id"]

    with pytest.raises(ForbiddenError):
        tasks.delete_subtask(db_session, subtask_id=first, user_id=member_id)

    tasks.delete_subtask(db_session, subtask_id=first, user_id=team["leader_id"])
    assert len(tasks.get_task(db_session, task["id"])["subtasks"]) == 1

    with pytest.raises(NotFoundError):
        tasks.delete_subtask(db_session, subtask_id=first, user_id=team["leader_id"])


def test_subtask_status_column_tracks_state(db_session: Session, team, member_id):
    task = _create(db_session, team, [{"title": "a"}])
    subtask_id = task["subtasks"][0]["id"]
    tasks.take_subtask(db_session, subtask_id=subtask_id, user_id=member_id)

    subtask = db_session.get(Subtask, subtask_id)
    assert subtask.status == SubtaskStatus.taken
    assert subtask.progress == SubtaskProgress.in_progress


def _other_team_member(db_session: Session):
    other = membership.register_leader(
        db_session, email="olga@example.com", password="pw", name="Olga", team_name="Team B"
    )
    return other["user"]["id"]


def test_assign_requires_team_leader(db_session: Session, team, make_member):
    holder = make_member("approved")
    intruder = make_member("approved")
    task = _create(db_session, team, [{"title": "x"}])
    subtask_id = task["subtasks"][0]["id"]
    tasks.take_subtask(db_session, subtask_id=subtask_id, user_id=holder)

    with pytest.raises(ForbiddenError, match="Only the team leader can assign"):
        tasks.assign_subtask(db_session, subtask_id=subtask_id, user_id=intruder, assigned_by=intruder)

    subtask = db_session.get(Subtask, subtask_id)
    assert (subtask.assigned_to, subtask.status) == (holder, SubtaskStatus.taken)


def test_assign_rejects_unknown_or_outside_assignee(db_session: Session, team, make_member):
    pending = make_member("pending")
    outsider = _other_team_member(db_session)
    task = _create(db_session, team, [{"title": "x"}])
    subtask_id = task["subtasks"][0]["id"]

    with pytest.raises(NotFoundError, match="User not found"):
        tasks.assign_subtask(db_session, subtask_id=subtask_id, user_id=9999, assigned_by=team["leader_id"])
    for user_id in (outsider, pending):
        with pytest.raises(ValidationError, match="not an approved member"):
            tasks.assign_subtask(
                db_session, subtask_id=subtask_id, user_id=user_id, assigned_by=team["leader_id"]
            )

    assert db_session.get(Subtask, subtask_id).status == SubtaskStatus.available


def test_take_rejects_unknown_or_outside_user(db_session: Session, team):
    outsider = _other_team_member(db_session)
    task = _create(db_session, team, [{"title": "x"}])
    subtask_id = task["subtasks"][0]["id"]

    with pytest.raises(NotFoundError, match="User not found"):
        tasks.take_subtask(db_session, subtask_id=subtask_id, user_id=9999)
    with pytest.raises(ForbiddenError, match="not an approved member"):
        tasks.take_subtask(db_session, subtask_id=subtask_id, user_id=outsider)

    subtask = db_session.get(Subtask, subtask_id)
    assert (subtask.assigned_to, subtask.status) == (None, SubtaskStatus.available)


def test_create_and_edit_reject_unknown_assignee(db_session: Session, team):
    with pytest.raises(NotFoundError, match="User not found"):
        _create(db_session, team, [{"title": "x", "assigned_to": 9999}], assign_specific=True)
    assert db_session.exec(select(Task)).all() == []

    task = _create(db_session, team, [{"title": "x"}])
    with pytest.raises(NotFoundError, match="User not found"):
        tasks.edit_subtask(
            db_session, subtask_id=task["subtasks"][0]["id"], user_id=team["leader_id"],
            title=None, description=None, assigned_to=9999,
        )
