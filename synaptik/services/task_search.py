"""Search predicate builder for task listing.

Optional filter criteria are turned into a ``SearchPredicate``: an immutable,
storage-neutral description of field constraints that are ANDed together.
Storage adapters translate it into their own query language (see
``task_store.apply_predicate``); ``SearchPredicate.matches`` evaluates it in
memory.

Degraded input never raises: a malformed project id makes the predicate match
nothing, an unknown timezone falls back to UTC and an unparseable date
boundary is dropped.
"""

import re
from datetime import date, datetime, time
from typing import Annotated, Any, Iterable, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from synaptik.models.task import Task, TaskStatus
from synaptik.utils.dates import resolve_zone, to_utc_iso
from synaptik.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
# Java-style zone suffix: 2025-08-15T10:00+02:00[Europe/Paris]
ZONE_SUFFIX_PATTERN = re.compile(r"^(?P<stamp>.+)\[(?P<zone>[^\]]+)\]$")

START_OF_DAY = time(0, 0, 0, 0)
END_OF_DAY = time(23, 59, 59, 999000)


def render_value(value: Any) -> Any:
    if isinstance(value, TaskStatus):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return to_utc_iso(value)
    return value


class Eq(BaseModel):
    """Field equals value."""
    model_config = ConfigDict(frozen=True)

    op: Literal["eq"] = "eq"
    value: Any

    def matches(self, actual: Any) -> bool:
        return actual == self.value

    def describe(self) -> dict:
        return {"eq": render_value(self.value)}


class In(BaseModel):
    """Field is one of values."""
    model_config = ConfigDict(frozen=True)

    op: Literal["in"] = "in"
    values: tuple[Any, ...]

    def matches(self, actual: Any) -> bool:
        return actual in self.values

    def describe(self) -> dict:
        return {"in": [render_value(value) for value in self.values]}


class Contains(BaseModel):
    """Case-insensitive literal substring match."""
    model_config = ConfigDict(frozen=True)

    op: Literal["contains"] = "contains"
    text: str

    @property
    def regex(self) -> re.Pattern:
        return re.compile(re.escape(self.text), re.IGNORECASE)

    def ilike_pattern(self) -> str:
        """SQL ILIKE pattern with LIKE metacharacters escaped."""
        escaped = (
            self.text.replace("\\", "\\\\")
            .replace("%", "\\%")
            .replace("_", "\\_")
        )
        return f"%{escaped}%"

    def matches(self, actual: Any) -> bool:
        if actual is None:
            return False
        return self.regex.search(str(actual)) is not None

    def describe(self) -> dict:
        return {"contains": self.text, "case_insensitive": True}


class Range(BaseModel):
    """Inclusive range; either bound may be open."""
    model_config = ConfigDict(frozen=True)

    op: Literal["range"] = "range"
    gte: Optional[datetime] = None
    lte: Optional[datetime] = None

    def matches(self, actual: Any) -> bool:
        if actual is None:
            return False
        if self.gte is not None and actual < self.gte:
            return False
        if self.lte is not None and actual > self.lte:
            return False
        return True

    def describe(self) -> dict:
        bounds = {}
        if self.gte is not None:
            bounds["gte"] = to_utc_iso(self.gte)
        if self.lte is not None:
            bounds["lte"] = to_utc_iso(self.lte)
        return bounds


Condition = Annotated[Union[Eq, In, Contains, Range], Field(discriminator="op")]


class FieldCondition(BaseModel):
    """A condition bound to a task field."""
    model_config = ConfigDict(frozen=True)

    field: str
    condition: Condition

    def matches(self, task: Task) -> bool:
        return self.condition.matches(getattr(task, self.field, None))


class SearchPredicate(BaseModel):
    """Conjunction of field conditions; ``match_none`` short-circuits to no results."""
    model_config = ConfigDict(frozen=True)

    conditions: tuple[FieldCondition, ...] = ()
    match_none: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.conditions and not self.match_none

    def field_names(self) -> list[str]:
        return list(dict.fromkeys(item.field for item in self.conditions))

    def conditions_for(self, field: str) -> list:
        return [item.condition for item in self.conditions if item.field == field]

    def matches(self, task: Task) -> bool:
        if self.match_none:
            return False
        return all(item.matches(task) for item in self.conditions)

    def filter(self, tasks: Iterable[Task]) -> list[Task]:
        return [task for task in tasks if self.matches(task)]

    def and_(self, other: "SearchPredicate") -> "SearchPredicate":
        return SearchPredicate(
            conditions=self.conditions + other.conditions,
            match_none=self.match_none or other.match_none,
        )

    def describe(self) -> dict:
        """Field -> constraint mapping, e.g. ``{"status": {"eq": "PENDING"}}``."""
        described: dict[str, Any] = {}
        for field in self.field_names():
            parts = [condition.describe() for condition in self.conditions_for(field)]
            described[field] = parts[0] if len(parts) == 1 else {"all": parts}
        if self.match_none:
            described["match_none"] = True
        return described


class SearchCriteria(BaseModel):
    """Filter criteria as received from a list/search request."""
    model_config = ConfigDict(extra="forbid")

    statuses: list[TaskStatus] = Field(default_factory=list)
    title: Optional[str] = None
    assignee: Optional[str] = None
    project_id: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    timezone: Optional[str] = None

    @field_validator("statuses", mode="before")
    @classmethod
    def parse_statuses(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, (str, TaskStatus)):
            value = [value]
        parsed = []
        for item in value:
            if isinstance(item, str) and not item.strip():
                continue
            parsed.append(TaskStatus.parse(item))
        return parsed


def build_search_predicate(criteria: Optional[SearchCriteria] = None, **filters: Any) -> SearchPredicate:
    """
    Build a predicate from ``criteria`` (or keyword filters).

    Args:
        criteria: Filter criteria; built from ``filters`` when omitted.
        statuses: Statuses to include (one -> equality, several -> membership).
        title: Case-insensitive literal substring of the title.
        assignee: Case-insensitive literal substring of the assignee.
        project_id: Canonical UUID of the project; malformed -> no results.
        date_from: Inclusive lower due-date bound, floored to start of day.
        date_to: Inclusive upper due-date bound, ceiled to end of day.
        timezone: IANA zone for the date bounds (default UTC).
    """
    if criteria is None:
        criteria = SearchCriteria(**filters)

    conditions: list[FieldCondition] = []
    match_none = False

    status_condition = _status_condition(criteria.statuses)
    if status_condition is not None:
        conditions.append(FieldCondition(field="status", condition=status_condition))

    for field in ("title", "assignee"):
        text_condition = _substring_condition(getattr(criteria, field))
        if text_condition is not None:
            conditions.append(FieldCondition(field=field, condition=text_condition))

    project_id = (criteria.project_id or "").strip()
    if project_id:
        if UUID_PATTERN.match(project_id):
            conditions.append(FieldCondition(field="project_id", condition=Eq(value=UUID(project_id))))
        else:
            logger.warning("Project ID is not a valid UUID, matching no tasks", project_id=project_id)
            match_none = True

    date_condition = _date_range_condition(criteria.date_from, criteria.date_to, criteria.timezone)
    if date_condition is not None:
        conditions.append(FieldCondition(field="due_date", condition=date_condition))

    predicate = SearchPredicate(conditions=tuple(conditions), match_none=match_none)
    logger.debug("Built search predicate", predicate=predicate.describe())
    return predicate


def _status_condition(statuses: list[TaskStatus]) -> Optional[Union[Eq, In]]:
    unique = list(dict.fromkeys(statuses or []))
    if not unique:
        return None
    if len(unique) == 1:
        return Eq(value=unique[0])
    return In(values=tuple(unique))


def _substring_condition(text: Optional[str]) -> Optional[Contains]:
    normalized = (text or "").strip()
    if not normalized:
        return None
    return Contains(text=normalized)


def _date_range_condition(
    date_from: Optional[str],
    date_to: Optional[str],
    timezone: Optional[str],
) -> Optional[Range]:
    date_from = (date_from or "").strip()
    date_to = (date_to or "").strip()
    if not date_from and not date_to:
        return None

    zone = resolve_zone(timezone)
    lower = parse_range_boundary(date_from, zone, start_of_day=True) if date_from else None
    upper = parse_range_boundary(date_to, zone, start_of_day=False) if date_to else None

    if lower is None and upper is None:
        return None
    return Range(gte=lower, lte=upper)


def parse_range_boundary(value: str, zone, start_of_day: bool) -> Optional[datetime]:
    """
    Parse a date-range boundary and snap it to the start or end of its
    calendar day in ``zone``. Returns None when no input shape matches.
    """
    for parser in (_parse_zoned, _parse_local_datetime, _parse_local_date):
        day = parser(value, zone)
        if day is not None:
            boundary_time = START_OF_DAY if start_of_day else END_OF_DAY
            return datetime.combine(day, boundary_time, tzinfo=zone)

    logger.warning("Unable to parse date boundary, ignoring it", value=value)
    return None


def _parse_zoned(value: str, zone) -> Optional[date]:
    stamp = value
    explicit_zone = None
    suffix = ZONE_SUFFIX_PATTERN.match(value)
    if suffix:
        stamp = suffix.group("stamp")
        explicit_zone = resolve_zone(suffix.group("zone"))

    try:
        parsed = datetime.fromisoformat(stamp)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        if explicit_zone is None:
            return None
        parsed = parsed.replace(tzinfo=explicit_zone)
    return parsed.astimezone(zone).date()


def _parse_local_datetime(value: str, zone) -> Optional[date]:
    if "T" not in value and " " not in value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        return None
    return parsed.date()


def _parse_local_date(value: str, zone) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None
