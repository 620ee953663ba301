"""TZID resolution helpers.

The parser keeps TZID references verbatim. These helpers are for consumers
that want a concrete ``tzinfo`` for a zoned date-time without walking the
calendar's VTIMEZONE definitions.
"""

from __future__ import annotations

import datetime
import logging
import zoneinfo
from functools import lru_cache

logger = logging.getLogger(__name__)

# Windows timezone names to IANA identifier mapping
# Common Windows timezones used in ICS files from Outlook/Exchange
WINDOWS_TZ_MAP: dict[str, str] = {
    "Pacific Standard Time": "America/Los_Angeles",
    "Mountain Standard Time": "America/Denver",
    "Central Standard Time": "America/Chicago",
    "Eastern Standard Time": "America/New_York",
    "Alaskan Standard Time": "America/Anchorage",
    "Hawaiian Standard Time": "Pacific/Honolulu",
    "Arizona Standard Time": "America/Phoenix",
    "GMT Standard Time": "Europe/London",
    "Central European Standard Time": "Europe/Paris",
    "Romance Standard Time": "Europe/Paris",
    "W. Europe Standard Time": "Europe/Berlin",
    "China Standard Time": "Asia/Shanghai",
    "Tokyo Standard Time": "Asia/Tokyo",
    "India Standard Time": "Asia/Kolkata",
    "AUS Eastern Standard Time": "Australia/Sydney",
    "UTC": "UTC",
}

# Prefix some producers put in front of IANA names (e.g. "/mozilla.org/20050126_1/Europe/Paris")
_MOZILLA_PREFIX = "/mozilla.org/"


def windows_tz_to_iana(windows_tz: str) -> str | None:
    """Convert Windows timezone name to IANA timezone identifier.

    Args:
        windows_tz: Windows timezone name (e.g., "Mountain Standard Time")

    Returns:
        IANA timezone identifier (e.g., "America/Denver") or None if not found
    """
    return WINDOWS_TZ_MAP.get(windows_tz.strip())


def _strip_vendor_prefix(tzid: str) -> str:
    name = tzid.strip().strip('"')
    if name.startswith(_MOZILLA_PREFIX):
        # Drop "/mozilla.org/<version>/"
        parts = name[len(_MOZILLA_PREFIX) :].split("/", 1)
        name = parts[1] if len(parts) == 2 else parts[0]
    return name.lstrip("/")


@lru_cache(maxsize=128)
def resolve_tzid(tzid: str) -> datetime.tzinfo | None:
    """Resolve a TZID reference to a tzinfo.

    Tries the IANA database first, then the Windows name map.

    Returns:
        The zone, or None when the name is unknown
    """
    if not tzid:
        return None

    name = _strip_vendor_prefix(tzid)
    candidates = [name]
    mapped = windows_tz_to_iana(name)
    if mapped:
        candidates.append(mapped)

    for candidate in candidates:
        try:
            return zoneinfo.ZoneInfo(candidate)
        except (zoneinfo.ZoneInfoNotFoundError, ValueError):
            continue

    logger.debug("Unresolvable TZID %r", tzid)
    return None
