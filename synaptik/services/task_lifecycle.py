"""Task lifecycle operations.

Every operation takes a task and returns a new, re-validated ``Task``; the
input is never mutated, so a rejected operation leaves the caller's copy
untouched. Status changes are gated by the transition table, dependency edits
by the cycle check, and urgency is recomputed after every change.
"""

from datetime import datetime
from typing import Any, Iterable, Optional, Union
from uuid import UUID

from pydantic import BaseModel, field_validator

from synaptik.models.task import Task, TaskAnnotation, TaskPriority, TaskStatus
from synaptik.services.dependency_graph import EdgeLookup, check_dependencies
from synaptik.services.quick_capture import parse_quick_capture
from synaptik.services.status_transitions import validate_transition
from synaptik.services.urgency import score
from synaptik.utils.dates import local_now
from synaptik.utils.logging import current_operation_id, get_structured_logger, operation_context

logger = get_structured_logger(__name__)

STATUS_ANNOTATIONS = {
    TaskStatus.ACTIVE: "Task started",
    TaskStatus.COMPLETED: "Task completed",
    TaskStatus.DELETED: "Task deleted",
}


class TaskUpdate(BaseModel):
    """
    Partial field update.

    Fields left out are kept; fields sent as None are cleared. Title and status
    cannot be cleared.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    project: Optional[str] = None
    project_id: Optional[UUID] = None
    assignee: Optional[str] = None
    due_date: Optional[datetime] = None
    wait_until: Optional[datetime] = None
    tags: Optional[list[str]] = None

    @field_validator("title", "status")
    @classmethod
    def required_if_sent(cls, value: Any, info) -> Any:
        if value is None:
            raise ValueError(f"{info.field_name} cannot be cleared")
        return value

    @field_validator("priority", mode="before")
    @classmethod
    def cleared_priority(cls, value: Any) -> Any:
        return TaskPriority.NONE if value is None else value


def _rebuild(task: Task, now: datetime, **changes: Any) -> Task:
    """Apply changes, re-run model validation and recompute urgency."""
    data = task.model_dump()
    data.update(changes)
    data["updated_at"] = now
    updated = Task.model_validate(data)
    return updated.model_copy(update={"urgency": score(updated, now)})


def _annotated(task: Task, description: str, now: datetime) -> list[TaskAnnotation]:
    return list(task.annotations) + [TaskAnnotation(timestamp=now, description=description)]


def create_task(draft: Task, now: Optional[datetime] = None) -> Task:
    """Stamp a draft as newly created (PENDING) and score it."""
    now = local_now(now)
    task = _rebuild(draft, now, status=TaskStatus.PENDING, created_at=draft.created_at or now)
    logger.info("Created task", title=task.title, urgency=task.urgency)
    return task


def capture_task(text: str, now: Optional[datetime] = None) -> Task:
    """Create a task from a quick-capture line."""
    now = local_now(now)
    with operation_context(current_operation_id()):
        return create_task(parse_quick_capture(text, now=now), now=now)


def change_status(
    task: Task,
    target: Union[TaskStatus, str],
    now: Optional[datetime] = None,
    annotation: Optional[str] = None,
) -> Task:
    """
    Move ``task`` to ``target``.

    Self-transitions are no-ops (no annotation). Transitions outside the table
    raise InvalidStateTransition.
    """
    target = TaskStatus.parse(target)
    if task.status == target:
        return task

    validate_transition(task.status, target)
    now = local_now(now)
    description = annotation or f"Status changed from {task.status.value} to {target.value}"
    updated = _rebuild(task, now, status=target, annotations=_annotated(task, description, now))
    logger.info(
        "Task status changed",
        task_id=task.task_id,
        from_status=task.status.value,
        to_status=target.value,
    )
    return updated


def start(task: Task, now: Optional[datetime] = None) -> Task:
    return change_status(task, TaskStatus.ACTIVE, now, STATUS_ANNOTATIONS[TaskStatus.ACTIVE])


def stop(task: Task, now: Optional[datetime] = None) -> Task:
    """Pause an ACTIVE task; any other status is left as is."""
    if task.status != TaskStatus.ACTIVE:
        return task
    return change_status(task, TaskStatus.PENDING, now, "Task paused")


def done(task: Task, now: Optional[datetime] = None) -> Task:
    return change_status(task, TaskStatus.COMPLETED, now, STATUS_ANNOTATIONS[TaskStatus.COMPLETED])


def mark_deleted(task: Task, now: Optional[datetime] = None) -> Task:
    return change_status(task, TaskStatus.DELETED, now, STATUS_ANNOTATIONS[TaskStatus.DELETED])


def add_annotation(task: Task, text: str, now: Optional[datetime] = None) -> Task:
    now = local_now(now)
    return _rebuild(task, now, annotations=_annotated(task, text, now))


def update_task(
    task: Task,
    updates: Union[TaskUpdate, dict],
    now: Optional[datetime] = None,
) -> Task:
    """Apply a partial update; a status change goes through the transition table."""
    if isinstance(updates, dict):
        updates = TaskUpdate.model_validate(updates)
    now = local_now(now)

    changes = updates.model_dump(exclude_unset=True)
    target = changes.pop("status", None)
    if target is not None and target != task.status:
        task = change_status(task, target, now)
    if not changes:
        return task

    updated = _rebuild(task, now, **changes)
    logger.debug("Task fields updated", task_id=task.task_id, fields=sorted(changes))
    return updated


def set_dependencies(
    task: Task,
    candidates: Iterable[str],
    edges_of: EdgeLookup,
    now: Optional[datetime] = None,
) -> Task:
    """Replace the task's dependencies after checking them for cycles."""
    requested = list(dict.fromkeys(candidates))
    check_dependencies(task.task_id, requested, edges_of)
    return _rebuild(task, local_now(now), depends=requested)


def refresh_urgency(task: Task, now: Optional[datetime] = None) -> Task:
    return task.model_copy(update={"urgency": score(task, local_now(now))})
