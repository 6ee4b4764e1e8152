import pytest

from taskboard.errors import ConflictError, ValidationError
from taskboard.models import Subtask, SubtaskProgress as P, SubtaskStatus as S
from taskboard.services.subtask_state import (
    ASSIGNED,
    AVAILABLE,
    TAKEN,
    SubtaskEvent,
    SubtaskState,
    apply,
    initial_state,
    progress_status,
    write_state,
)


def test_initial_state_depends_on_assignee():
    assert initial_state(assigned=False) == SubtaskState(S.available, P.not_started)
    assert initial_state(assigned=True) == SubtaskState(S.assigned, P.assigned)


def test_take_only_from_available():
    assert apply(AVAILABLE, SubtaskEvent.TAKE) == SubtaskState(S.taken, P.in_progress)

    for state in (ASSIGNED, TAKEN, SubtaskState(S.completed, P.completed)):
        with pytest.raises(ConflictError, match="no longer available"):
            apply(state, SubtaskEvent.TAKE)


def test_assign_overwrites_any_state():
    for state in (AVAILABLE, TAKEN, SubtaskState(S.completed, P.completed)):
        assert apply(state, SubtaskEvent.ASSIGN) == ASSIGNED


@pytest.mark.parametrize("status", list(S))
def test_completed_progress_always_completes(status):
    state = apply(SubtaskState(status, P.in_progress), SubtaskEvent.PROGRESS, progress=P.completed)
    assert state == SubtaskState(S.completed, P.completed)


def test_in_progress_moves_assigned_to_taken():
    state = apply(ASSIGNED, SubtaskEvent.PROGRESS, progress=P.in_progress)
    assert state == SubtaskState(S.taken, P.in_progress)


def test_other_progress_keeps_status():
    assert progress_status(S.assigned, P.testing) == S.assigned
    assert progress_status(S.taken, P.not_started) == S.taken
    assert progress_status(S.available, P.in_progress) == S.available
    assert progress_status(S.completed, P.in_progress) == S.completed


def test_progress_accepts_plain_strings():
    state = apply(TAKEN, SubtaskEvent.PROGRESS, progress="testing")
    assert state == SubtaskState(S.taken, P.testing)


def test_progress_requires_value():
    with pytest.raises(ValidationError):
        apply(TAKEN, SubtaskEvent.PROGRESS)


def test_edit_discards_progress():
    testing = SubtaskState(S.taken, P.testing)
    assert apply(testing, SubtaskEvent.EDIT, assigned=True) == ASSIGNED
    assert apply(testing, SubtaskEvent.EDIT, assigned=False) == AVAILABLE


def test_release_resets_to_available():
    assert apply(SubtaskState(S.taken, P.testing), SubtaskEvent.RELEASE) == AVAILABLE


def test_state_round_trips_through_subtask():
    subtask = Subtask(task_id=1, title="Sub")
    write_state(subtask, TAKEN)
    assert (subtask.status, subtask.progress) == (S.taken, P.in_progress)
    assert SubtaskState.of(subtask) == TAKEN
