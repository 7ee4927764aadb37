"""Error handling utilities."""

from typing import Any, Iterable, Optional


class SynaptikError(Exception):
    """Base exception for the Synaptik task core."""
    pass


class InvalidStateTransition(SynaptikError):
    """Requested status change is not in the transition table."""

    def __init__(self, current: Any, requested: Any):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Invalid task state transition from {_name(current)} to {_name(requested)}"
        )


class InvalidDependency(SynaptikError):
    """Dependency edit rejected."""
    pass


class SelfDependency(InvalidDependency):
    """Task lists itself as a dependency."""

    def __init__(self, task_id: Any):
        self.task_id = task_id
        super().__init__(f"Task {task_id} cannot depend on itself")


class CyclicDependency(InvalidDependency):
    """Candidate dependency edges would close a cycle."""

    def __init__(self, task_id: Any, path: Optional[Iterable[Any]] = None):
        self.task_id = task_id
        self.path = list(path or [])
        chain = " -> ".join(str(node) for node in self.path)
        message = f"Dependencies of task {task_id} would create a cycle"
        if chain:
            message = f"{message}: {chain}"
        super().__init__(message)


class InvalidTaskStatus(SynaptikError, ValueError):
    """Status parameter does not name a known status."""

    def __init__(self, value: Any, valid: Iterable[str]):
        self.value = value
        super().__init__(
            f"Invalid task status: '{value}'. Valid values are: {', '.join(valid)}"
        )


class StoreError(SynaptikError):
    """Supabase operation error."""
    pass


def _name(status: Any) -> str:
    return getattr(status, "name", str(status))
