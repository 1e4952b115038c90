# File: utils/dt_utils.py
"""Date and time utilities for BandSync.

Pure Python date/time functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

Functions:
    - as_utc / as_local: Timezone conversion
    - dt_parse_date: Parse date strings
    - dt_parse: Normalize str/date/datetime inputs to aware datetimes
    - dt_parse_end_of_day: Like dt_parse, but a bare day means its last instant
    - dt_format_long_date: "Mar 1, 2024" style formatting
    - is_date_only: Distinguish `date` from `datetime`
    - align_to_reference: Coerce a bound to the kind of another value
    - weekday_to_python / weekday_from_python: 1=Sunday..7=Saturday mapping
    - weekday_short_name: "Sun".."Sat"
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time
import logging
from zoneinfo import ZoneInfo

_LOGGER = logging.getLogger(__name__)

# Default timezone - can be overridden by caller
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")

# Stored weekday numbers start at Sunday (1) and end at Saturday (7)
_WEEKDAY_SHORT_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def set_default_timezone(tz: ZoneInfo) -> None:
    """Set the default timezone for all dt_utils functions.

    Call this during integration setup to configure the user's timezone.
    """
    global DEFAULT_TIME_ZONE  # noqa: PLW0603
    DEFAULT_TIME_ZONE = tz


def get_default_timezone() -> ZoneInfo:
    """Get the current default timezone."""
    return DEFAULT_TIME_ZONE


# ==============================================================================
# Timezone Conversion
# ==============================================================================


def as_utc(dt_obj: datetime) -> datetime:
    """Convert a datetime to UTC timezone.

    Naive datetimes are assumed to be in the default timezone.
    """
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=DEFAULT_TIME_ZONE)
    return dt_obj.astimezone(UTC)


def as_local(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert a datetime to local timezone.

    Naive datetimes are assumed to be in UTC.
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=UTC)
    return dt_obj.astimezone(tz_info)


# ==============================================================================
# Date/Time Parsing
# ==============================================================================


def dt_parse_date(date_str: str | None) -> date | None:
    """Safely parse a date string into a `datetime.date`.

    Accepts ISO ("2025-04-07") and the common "04/07/2025" / "2025/04/07"
    forms. Returns None when parsing fails.
    """
    if not date_str or not isinstance(date_str, str):
        return None

    try:
        return date.fromisoformat(date_str)
    except ValueError:
        pass

    for fmt in ("%m/%d/%Y", "%d/%m/%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    return None


def dt_parse(
    dt_input: str | date | datetime | None,
    default_tzinfo: ZoneInfo | None = None,
) -> datetime | None:
    """Normalize a string, date or datetime into a timezone-aware datetime.

    Naive inputs get `default_tzinfo` (or the module default timezone).
    Plain dates become midnight of that day. Returns None for empty or
    unparseable input.

    Example:
        >>> dt_parse("2025-04-15")
        datetime.datetime(2025, 4, 15, 0, 0, tzinfo=ZoneInfo('UTC'))
    """
    if not dt_input:
        return None

    tz_info = default_tzinfo or DEFAULT_TIME_ZONE
    result: datetime | None = None

    if isinstance(dt_input, str):
        try:
            result = datetime.fromisoformat(dt_input)
        except ValueError:
            parsed_date = dt_parse_date(dt_input)
            if parsed_date is None:
                _LOGGER.debug("dt_parse: Unable to parse '%s'", dt_input)
                return None
            result = datetime.combine(parsed_date, time.min)
    elif isinstance(dt_input, datetime):
        result = dt_input
    elif isinstance(dt_input, date):
        result = datetime.combine(dt_input, time.min)
    else:
        return None

    if result.tzinfo is None:
        result = result.replace(tzinfo=tz_info)
    return result


def dt_parse_end_of_day(
    dt_input: str | date | datetime | None,
    default_tzinfo: ZoneInfo | None = None,
) -> datetime | None:
    """Parse an end bound where a bare day means "through the end of that day".

    Inputs with a time of day are handled exactly like `dt_parse`.

    Example:
        >>> dt_parse_end_of_day("2024-01-15")
        datetime.datetime(2024, 1, 15, 23, 59, 59, 999999, tzinfo=ZoneInfo('UTC'))
    """
    if isinstance(dt_input, str):
        dt_input = dt_parse_date(dt_input) or dt_input
    if isinstance(dt_input, date) and not isinstance(dt_input, datetime):
        return datetime.combine(
            dt_input, time.max, tzinfo=default_tzinfo or DEFAULT_TIME_ZONE
        )
    return dt_parse(dt_input, default_tzinfo)


def dt_to_utc_iso(dt_input: str | date | datetime | None) -> str | None:
    """Parse any supported input and return it as a UTC ISO 8601 string."""
    parsed = dt_parse(dt_input)
    if parsed is None:
        return None
    return as_utc(parsed).isoformat()


# ==============================================================================
# Formatting
# ==============================================================================


def dt_format_long_date(value: date) -> str:
    """Format a date as "Mar 1, 2024"."""
    return f"{value:%b} {value.day}, {value.year}"


# ==============================================================================
# Date kind helpers
# ==============================================================================


def is_date_only(value: date) -> bool:
    """Return True for a plain `date` (not a `datetime`)."""
    return isinstance(value, date) and not isinstance(value, datetime)


def align_to_reference(
    value: date, reference: date, end_of_day: bool = False
) -> date:
    """Coerce `value` so it can be compared with `reference`.

    A plain date compared against datetimes becomes the start (or end) of
    that day in the reference's timezone; a datetime compared against plain
    dates becomes its date. Values of the same kind are returned unchanged.
    """
    if is_date_only(reference):
        if isinstance(value, datetime):
            return value.date()
        return value

    if is_date_only(value):
        bound = time.max if end_of_day else time.min
        return datetime.combine(value, bound, tzinfo=reference.tzinfo)

    if reference.tzinfo is not None and value.tzinfo is None:
        return value.replace(tzinfo=reference.tzinfo)
    if reference.tzinfo is None and value.tzinfo is not None:
        return value.astimezone(DEFAULT_TIME_ZONE).replace(tzinfo=None)
    return value


# ==============================================================================
# Weekday numbering (1=Sunday .. 7=Saturday)
# ==============================================================================


def weekday_to_python(day: int) -> int:
    """Convert a stored weekday (1=Sunday..7=Saturday) to `date.weekday()`.

    Example:
        weekday_to_python(1) → 6 (Sunday), weekday_to_python(2) → 0 (Monday)
    """
    return (day + 5) % 7


def weekday_from_python(weekday: int) -> int:
    """Convert `date.weekday()` (0=Monday..6=Sunday) to 1=Sunday..7=Saturday."""
    return (weekday + 1) % 7 + 1


def weekday_of(value: date) -> int:
    """Return the stored-style weekday number (1=Sunday..7=Saturday) of a date."""
    return weekday_from_python(value.weekday())


def weekday_short_name(day: int) -> str:
    """Return "Sun".."Sat" for a stored weekday number."""
    return _WEEKDAY_SHORT_NAMES[day - 1]
