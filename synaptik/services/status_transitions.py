"""Task status state machine."""

from synaptik.models.task import TaskStatus
from synaptik.utils.errors import InvalidStateTransition

ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({
        TaskStatus.ACTIVE,
        TaskStatus.COMPLETED,
        TaskStatus.WAITING,
        TaskStatus.DELETED,
    }),
    TaskStatus.ACTIVE: frozenset({
        TaskStatus.PENDING,
        TaskStatus.COMPLETED,
        TaskStatus.WAITING,
        TaskStatus.DELETED,
    }),
    TaskStatus.WAITING: frozenset({
        TaskStatus.PENDING,
        TaskStatus.ACTIVE,
        TaskStatus.COMPLETED,
        TaskStatus.DELETED,
    }),
    TaskStatus.COMPLETED: frozenset({
        TaskStatus.PENDING,
        TaskStatus.DELETED,
    }),
    # Terminal
    TaskStatus.DELETED: frozenset(),
}


def allowed_targets(current: TaskStatus) -> frozenset[TaskStatus]:
    """Statuses reachable from ``current`` in one step (self excluded)."""
    return ALLOWED_TRANSITIONS[TaskStatus.parse(current)]


def can_transition(current: TaskStatus, requested: TaskStatus) -> bool:
    current = TaskStatus.parse(current)
    requested = TaskStatus.parse(requested)
    if current == requested:
        return True
    return requested in ALLOWED_TRANSITIONS[current]


def validate_transition(current: TaskStatus, requested: TaskStatus) -> None:
    """Raise InvalidStateTransition unless ``current -> requested`` is allowed."""
    if not can_transition(current, requested):
        raise InvalidStateTransition(TaskStatus.parse(current), TaskStatus.parse(requested))
