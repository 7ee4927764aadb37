"""Quick-capture parser: one line of shorthand into a draft task.

Supported modifiers::

    Buy groceries due:tomorrow +shopping priority:H project:home
    Call plumber wait:2025-09-01 annotation:"ask about the boiler"

Each modifier has its own extractor working on the same remaining-title
buffer. Single-valued modifiers keep their first occurrence; every occurrence
is removed from the title. Unparseable values are dropped, never raised.
"""

import re
from datetime import date, datetime, time, timedelta
from typing import Optional

from synaptik.models.task import Task, TaskAnnotation, TaskPriority, TaskStatus
from synaptik.utils.config import CoreConfig
from synaptik.utils.dates import local_now
from synaptik.utils.logging import get_structured_logger, preview_input

logger = get_structured_logger(__name__)

ANNOTATION_PATTERN = re.compile(r'\bannotation:"([^"]+)"')
PRIORITY_PATTERN = re.compile(r"\bpriority:([HML])\b")
PROJECT_PATTERN = re.compile(r"\bproject:([\w-]+)")
DUE_PATTERN = re.compile(r"\bdue:([\w:+.-]+)")
WAIT_PATTERN = re.compile(r"\bwait:([\w:+.-]+)")
TAG_PATTERN = re.compile(r"(?<!\S)\+([\w-]+)")

RELATIVE_DAYS = {
    "yesterday": -1,
    "today": 0,
    "tomorrow": 1,
}

END_OF_DAY = time(23, 59)


def _extract_first(pattern: re.Pattern, text: str) -> tuple[Optional[str], str]:
    match = pattern.search(text)
    if match is None:
        return None, text
    return match.group(1), pattern.sub(" ", text)


def _extract_all(pattern: re.Pattern, text: str) -> tuple[list[str], str]:
    return pattern.findall(text), pattern.sub(" ", text)


def parse_date_token(token: str, now: datetime) -> Optional[datetime]:
    """
    Resolve a ``due:``/``wait:`` value relative to ``now``.

    ``today``/``tomorrow``/``yesterday`` and bare ISO dates resolve to 23:59 of
    that day in now's zone; ISO date-times without an offset are read in now's
    zone. Returns None if the value cannot be parsed.
    """
    key = token.strip().lower()
    if key in RELATIVE_DAYS:
        day = now.date() + timedelta(days=RELATIVE_DAYS[key])
        return datetime.combine(day, END_OF_DAY, tzinfo=now.tzinfo)

    try:
        return datetime.combine(date.fromisoformat(token), END_OF_DAY, tzinfo=now.tzinfo)
    except ValueError:
        pass

    try:
        parsed = datetime.fromisoformat(token)
    except ValueError:
        logger.warning("Unable to parse date token", token=token)
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=now.tzinfo)
    return parsed


def parse_quick_capture(text: str, now: Optional[datetime] = None) -> Task:
    """Parse a quick-capture line into a PENDING draft task."""
    now = local_now(now)
    raw = text or ""
    logger.debug("Parsing quick-capture input", input_preview=preview_input(raw))

    notes, working = _extract_all(ANNOTATION_PATTERN, raw)
    priority_code, working = _extract_first(PRIORITY_PATTERN, working)
    project, working = _extract_first(PROJECT_PATTERN, working)
    due_token, working = _extract_first(DUE_PATTERN, working)
    wait_token, working = _extract_first(WAIT_PATTERN, working)
    tags, working = _extract_all(TAG_PATTERN, working)

    title = " ".join(working.split()) or CoreConfig.UNTITLED_TASK_TITLE

    task = Task(
        title=title,
        status=TaskStatus.PENDING,
        priority=TaskPriority.from_code(priority_code) if priority_code else TaskPriority.NONE,
        project=project,
        due_date=parse_date_token(due_token, now) if due_token else None,
        wait_until=parse_date_token(wait_token, now) if wait_token else None,
        tags=tags,
        annotations=[TaskAnnotation(timestamp=now, description=note) for note in notes],
        original_input=raw,
    )

    logger.debug(
        "Parsed quick-capture input",
        title=task.title,
        priority=task.priority.value,
        project=task.project,
        due_date=task.due_date.isoformat() if task.due_date else None,
        tags=task.tags,
    )
    return task


def format_quick_capture(task: Task) -> str:
    """Render a task back into quick-capture shorthand."""
    parts = [task.title]

    if task.priority.code:
        parts.append(f"priority:{task.priority.code}")
    if task.project:
        parts.append(f"project:{task.project}")
    if task.due_date:
        parts.append(f"due:{task.due_date.date().isoformat()}")
    if task.wait_until:
        parts.append(f"wait:{task.wait_until.date().isoformat()}")
    parts.extend(f"+{tag}" for tag in task.tags)

    return " ".join(parts)
