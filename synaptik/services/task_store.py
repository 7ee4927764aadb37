"""Supabase-backed collaborator for the task core.

Provides the two storage-side contracts the core relies on: translating a
``SearchPredicate`` into a PostgREST query, and the ``edges_of`` dependency
lookup used by the cycle check.
"""

from typing import Any, Iterable

from synaptik.models.task import Task
from synaptik.services.dependency_graph import EdgeLookup
from synaptik.services.supabase_client import TASKS_TABLE, StoreSession
from synaptik.services.task_lifecycle import set_dependencies
from synaptik.services.task_search import Contains, Eq, In, Range, SearchPredicate, render_value
from synaptik.utils.errors import InvalidDependency, StoreError
from synaptik.utils.logging import (
    current_operation_id,
    get_structured_logger,
    log_timing,
    operation_context,
)

logger = get_structured_logger(__name__)


def apply_predicate(query: Any, predicate: SearchPredicate) -> Any:
    """Chain PostgREST filters for ``predicate`` onto ``query`` and return it."""
    if predicate.match_none:
        # task_id is the primary key, never null
        return query.is_("task_id", "null")

    for item in predicate.conditions:
        condition = item.condition
        if isinstance(condition, Eq):
            query = query.eq(item.field, render_value(condition.value))
        elif isinstance(condition, In):
            query = query.in_(item.field, [render_value(value) for value in condition.values])
        elif isinstance(condition, Contains):
            query = query.ilike(item.field, condition.ilike_pattern())
        elif isinstance(condition, Range):
            if condition.gte is not None:
                query = query.gte(item.field, render_value(condition.gte))
            if condition.lte is not None:
                query = query.lte(item.field, render_value(condition.lte))
        else:
            raise StoreError(f"Unsupported condition for {item.field}: {condition!r}")
    return query


def dependency_lookup(client: Any) -> EdgeLookup:
    """Build an ``edges_of`` lookup reading the ``depends`` column."""

    def edges_of(task_id: str) -> set[str]:
        try:
            result = (
                client.table(TASKS_TABLE)
                .select("depends")
                .eq("task_id", str(task_id))
                .execute()
            )
        except Exception as e:
            raise StoreError(f"Failed to load dependencies of {task_id}: {e}")

        if not result.data:
            return set()
        return set(result.data[0].get("depends") or [])

    return edges_of


async def search_tasks(predicate: SearchPredicate) -> list[Task]:
    """Fetch tasks matching ``predicate``, most urgent first."""
    with operation_context(current_operation_id()):
        async with StoreSession("search_tasks") as client:
            with log_timing("search_tasks", logger=logger, filters=predicate.field_names()) as timing:
                try:
                    query = apply_predicate(client.table(TASKS_TABLE).select("*"), predicate)
                    result = query.order("urgency", desc=True).execute()
                    tasks = [Task.model_validate(row) for row in result.data or []]
                except StoreError:
                    raise
                except Exception as e:
                    raise StoreError(f"Failed to search tasks: {e}")
                timing["row_count"] = len(tasks)

    return tasks


async def save_dependencies(task: Task, candidates: Iterable[str]) -> Task:
    """Check and persist a new dependency set; nothing is written on rejection."""
    log = logger.bind(task_id=task.task_id)

    with operation_context(current_operation_id()):
        async with StoreSession("save_dependencies") as client:
            try:
                updated = set_dependencies(task, candidates, dependency_lookup(client))
            except InvalidDependency as e:
                log.info("Dependency edit rejected", reason=str(e))
                raise

            try:
                client.table(TASKS_TABLE).update({
                    "depends": updated.depends,
                    "urgency": updated.urgency,
                    "updated_at": updated.updated_at.isoformat(),
                }).eq("task_id", task.task_id).execute()
            except Exception as e:
                raise StoreError(f"Failed to save dependencies of {task.task_id}: {e}")

        log.info("Dependencies saved", depends=updated.depends)
    return updated
