"""Timezone and timestamp helpers shared by the parser and the search builder."""

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from synaptik.utils.config import CoreConfig
from synaptik.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

UTC = ZoneInfo("UTC")


def resolve_zone(name: Optional[str]) -> ZoneInfo:
    """Resolve an IANA zone name, falling back to UTC when unset or unknown."""
    if name is None or not name.strip():
        return UTC
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Invalid timezone, falling back to UTC", timezone=name)
        return UTC


def local_now(now: Optional[datetime] = None) -> datetime:
    """Reference time in the caller's zone; naive values get the default zone."""
    zone = resolve_zone(CoreConfig.DEFAULT_TIMEZONE)
    if now is None:
        return datetime.now(zone)
    if now.tzinfo is None:
        return now.replace(tzinfo=zone)
    return now


def to_utc_iso(value: datetime) -> str:
    """Render an aware datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    utc_value = value.astimezone(timezone.utc)
    return utc_value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc_value.microsecond // 1000:03d}Z"
