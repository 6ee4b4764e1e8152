"""Subtask lifecycle as a single state value.

A subtask's ``status`` and ``progress`` columns are always written together
from a :class:`SubtaskState` produced by :func:`apply`. Each event has a
transition rule and a set of statuses it may start from; anything else is
rejected with :class:`~taskboard.errors.ConflictError`.

    available --TAKE--> taken/in_progress
    any       --ASSIGN--> assigned/assigned
    any       --PROGRESS(p)--> (status per PROGRESS_STATUS, p)
    any       --EDIT(assignee?)--> assigned/assigned | available/not_started
    any       --RELEASE--> available/not_started
"""

from enum import Enum
from typing import Callable, Dict, FrozenSet, NamedTuple, Optional

from taskboard.errors import ConflictError, ValidationError
from taskboard.models import Subtask, SubtaskProgress, SubtaskStatus


class SubtaskState(NamedTuple):
    status: SubtaskStatus
    progress: SubtaskProgress

    @classmethod
    def of(cls, subtask: Subtask) -> "SubtaskState":
        return cls(SubtaskStatus(subtask.status), SubtaskProgress(subtask.progress))


AVAILABLE = SubtaskState(SubtaskStatus.available, SubtaskProgress.not_started)
ASSIGNED = SubtaskState(SubtaskStatus.assigned, SubtaskProgress.assigned)
TAKEN = SubtaskState(SubtaskStatus.taken, SubtaskProgress.in_progress)


class SubtaskEvent(str, Enum):
    CREATE = "create"
    TAKE = "take"
    ASSIGN = "assign"
    PROGRESS = "progress"
    EDIT = "edit"
    RELEASE = "release"


ALL_STATUSES: FrozenSet[SubtaskStatus] = frozenset(SubtaskStatus)


def _initial(current: Optional[SubtaskState], assigned: bool = False, **_) -> SubtaskState:
    return ASSIGNED if assigned else AVAILABLE


def _take(current: SubtaskState, **_) -> SubtaskState:
    return TAKEN


def _assign(current: SubtaskState, **_) -> SubtaskState:
    return ASSIGNED


def _release(current: SubtaskState, **_) -> SubtaskState:
    return AVAILABLE


def _progress(current: SubtaskState, progress: SubtaskProgress = None, **_) -> SubtaskState:
    if progress is None:
        raise ValidationError("Progress is required")
    progress = SubtaskProgress(progress)
    return SubtaskState(progress_status(current.status, progress), progress)


class Transition(NamedTuple):
    allowed_from: FrozenSet[SubtaskStatus]
    rule: Callable[..., SubtaskState]
    conflict_message: str = "Invalid subtask transition"


TRANSITIONS: Dict[SubtaskEvent, Transition] = {
    SubtaskEvent.CREATE: Transition(ALL_STATUSES, _initial),
    SubtaskEvent.TAKE: Transition(
        frozenset({SubtaskStatus.available}),
        _take,
        "This subtask is no longer available",
    ),
    SubtaskEvent.ASSIGN: Transition(ALL_STATUSES, _assign),
    SubtaskEvent.PROGRESS: Transition(ALL_STATUSES, _progress),
    SubtaskEvent.EDIT: Transition(ALL_STATUSES, _initial),
    SubtaskEvent.RELEASE: Transition(ALL_STATUSES, _release),
}


def progress_status(status: SubtaskStatus, progress: SubtaskProgress) -> SubtaskStatus:
    """Status that results from reporting ``progress`` while in ``status``."""
    if progress == SubtaskProgress.completed:
        return SubtaskStatus.completed
    if progress == SubtaskProgress.in_progress and status == SubtaskStatus.assigned:
        return SubtaskStatus.taken
    return status


def apply(current: Optional[SubtaskState], event: SubtaskEvent, **params) -> SubtaskState:
    transition = TRANSITIONS[SubtaskEvent(event)]
    if current is not None and current.status not in transition.allowed_from:
        raise ConflictError(transition.conflict_message)
    return transition.rule(current, **params)


def initial_state(assigned: bool) -> SubtaskState:
    return apply(None, SubtaskEvent.CREATE, assigned=assigned)


def write_state(subtask: Subtask, state: SubtaskState) -> Subtask:
    subtask.status = state.status
    subtask.progress = state.progress
    return subtask
