"""Shared Supabase client and the session wrapper the task store uses."""

import os
from typing import Optional

from supabase import create_client, Client
from supabase.client import ClientOptions

from synaptik.utils.errors import StoreError
from synaptik.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

TASKS_TABLE = os.environ.get("SYNAPTIK_TASKS_TABLE", "tasks")

_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Return the process-wide client, creating it on first use.

    Credentials come from SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY at the
    time of the first call. Raises StoreError when either is missing.
    """
    global _client
    if _client is not None:
        return _client

    url = os.environ.get("SUPABASE_URL")
    service_key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
    missing = [name for name, value in (
        ("SUPABASE_URL", url),
        ("SUPABASE_SERVICE_ROLE_KEY", service_key),
    ) if not value]
    if missing:
        raise StoreError(f"Missing Supabase settings: {', '.join(missing)}")

    # Service-role access; there is no user session to keep alive
    _client = create_client(
        url,
        service_key,
        ClientOptions(auto_refresh_token=False, persist_session=False),
    )
    logger.info("Connected task store", url=url, table=TASKS_TABLE)
    return _client


def reset_supabase_client() -> None:
    """Forget the cached client so the next call reconnects."""
    global _client
    _client = None


class StoreSession:
    """
    ``async with StoreSession("search_tasks") as client:`` hands out the
    shared client; failures inside the block are logged under the operation
    name and re-raised.
    """

    def __init__(self, operation: str):
        self.operation = operation

    async def __aenter__(self) -> Client:
        return get_supabase_client()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            logger.error(
                "Task store operation failed",
                operation=self.operation,
                error=str(exc_val),
                error_type=exc_type.__name__,
            )
        return False
