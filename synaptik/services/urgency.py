"""Urgency scoring for tasks.

The score is the sum of independent components (priority, due-date proximity,
age, status and tag bonuses), clamped to [0, 100]. It only depends on the task
and the supplied reference time, so callers re-run it after every mutation.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from synaptik.models.task import Task, TaskPriority, TaskStatus

MIN_URGENCY = 0.0
MAX_URGENCY = 100.0

PRIORITY_WEIGHTS = {
    TaskPriority.HIGH: 6.0,
    TaskPriority.MEDIUM: 3.9,
    TaskPriority.LOW: 1.8,
    TaskPriority.NONE: 0.0,
}

STATUS_ADJUSTMENTS = {
    TaskStatus.ACTIVE: 4.0,
    TaskStatus.WAITING: -3.0,
}

TAG_BONUSES = {
    "urgent": 5.0,
    "important": 3.0,
}

AGE_WEIGHT_PER_DAY = 0.01


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_until_due(due_date: datetime, now: datetime) -> int:
    """Whole calendar days from now's date to the due date, in now's zone."""
    now = _aware(now)
    due = _aware(due_date).astimezone(now.tzinfo)
    return (due.date() - now.date()).days


def due_date_component(due_date: Optional[datetime], now: datetime) -> float:
    if due_date is None:
        return 0.0

    days = days_until_due(due_date, now)
    if days < 0:
        return 12.0 + abs(days) * 0.2
    if days <= 7:
        return 12.0 - days * 1.4
    if days <= 14:
        return 5.0 - days * 0.3
    return 0.0


def age_component(created_at: Optional[datetime], now: datetime) -> float:
    if created_at is None:
        return 0.0
    # Whole days, truncated toward zero
    age_in_days = int((_aware(now) - _aware(created_at)) / timedelta(days=1))
    return age_in_days * AGE_WEIGHT_PER_DAY


def tag_component(tags: list[str]) -> float:
    present = set(tags or [])
    return sum(bonus for tag, bonus in TAG_BONUSES.items() if tag in present)


def score(task: Task, now: datetime) -> float:
    """Compute the urgency of ``task`` at reference time ``now``."""
    urgency = PRIORITY_WEIGHTS.get(task.priority, 0.0)
    urgency += due_date_component(task.due_date, now)
    urgency += age_component(task.created_at, now)
    urgency += STATUS_ADJUSTMENTS.get(task.status, 0.0)
    urgency += tag_component(task.tags)
    return min(MAX_URGENCY, max(MIN_URGENCY, urgency))
