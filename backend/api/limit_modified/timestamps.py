"""
Conversions between the host's native timestamp format and ISO-8601.

The host stores modified dates as naive site-local strings
("2024-01-31 14:05:00") with a UTC twin. The override cache keeps
ISO-8601 ("2024-01-31T14:05:00").
"""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from limit_modified.config import get_site_timezone

NATIVE_FORMAT = "%Y-%m-%d %H:%M:%S"


def site_tz() -> ZoneInfo:
    return ZoneInfo(get_site_timezone())


def now_local() -> str:
    """Current site-local time in native format."""
    return datetime.now(timezone.utc).astimezone(site_tz()).strftime(NATIVE_FORMAT)


def to_rfc3339(native: str) -> str:
    """Native "Y-m-d H:M:S" to ISO-8601 without offset."""
    return datetime.strptime(native, NATIVE_FORMAT).isoformat()


def from_rfc3339(value: str) -> str:
    """
    Parse an ISO-8601 string into native format.

    Offset-aware values are shifted into the site timezone first; naive
    values are taken as site-local already.
    """
    dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if dt.tzinfo is not None:
        dt = dt.astimezone(site_tz()).replace(tzinfo=None)
    return dt.replace(microsecond=0).strftime(NATIVE_FORMAT)


def gmt_from_local(native: str) -> str:
    local = datetime.strptime(native, NATIVE_FORMAT).replace(tzinfo=site_tz())
    return local.astimezone(timezone.utc).strftime(NATIVE_FORMAT)
