"""Recurrence Engine for BandSync.

Materializes the occurrence dates of a recurring band event on demand.
Nothing here is persisted: occurrences are recomputed from the rule on
every call and bounded by a hard cap plus an end date.

Hybrid approach:
- plain `timedelta` steps for DAILY and WEEKLY without weekdays
- `dateutil.rrule` for WEEKLY with explicit weekdays (anchor-aligned weeks)
- `dateutil.relativedelta` for MONTHLY/YEARLY clamping (Jan 31 + 1 month = Feb 29)

IMPORTANT: This module must NOT import from store.py or calendar.py.
Only import from const.py, type_defs.py, and utils.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING, Any, ClassVar

from dateutil.relativedelta import relativedelta
from dateutil.rrule import WEEKLY, rrule, weekday as rrule_weekday

from .. import const
from ..utils.dt_utils import (
    align_to_reference,
    as_local,
    as_utc,
    dt_format_long_date,
    dt_parse,
    dt_parse_end_of_day,
    is_date_only,
    weekday_short_name,
    weekday_to_python,
)

if TYPE_CHECKING:
    from ..type_defs import EventData


class InvalidRecurrenceRule(ValueError):
    """Raised when a recurrence rule cannot be evaluated.

    Attributes:
        reason: Short machine-friendly reason (e.g. "interval").
        value: The offending value.
    """

    def __init__(self, reason: str, value: Any = None) -> None:
        self.reason = reason
        self.value = value
        super().__init__(f"Invalid recurrence rule ({reason}): {value!r}")


def _validate_bounds(anchor_date: date, end_date: date | None) -> None:
    """Reject anchor/end combinations that cannot be compared."""
    if not isinstance(anchor_date, date):
        raise InvalidRecurrenceRule("anchor_date", anchor_date)
    if end_date is None:
        return
    if not isinstance(end_date, date):
        raise InvalidRecurrenceRule("end_date", end_date)
    if is_date_only(anchor_date) != is_date_only(end_date):
        raise InvalidRecurrenceRule("end_date", end_date)
    if not is_date_only(anchor_date) and (
        (anchor_date.tzinfo is None) != (end_date.tzinfo is None)
    ):
        raise InvalidRecurrenceRule("end_date", end_date)


@dataclass(frozen=True)
class RecurrenceRule:
    """Validated recurrence settings of one recurring event.

    `days_of_week` uses 1=Sunday..7=Saturday and only applies to weekly rules.
    """

    anchor_date: date
    frequency: str
    interval: int = const.DEFAULT_RECURRENCE_INTERVAL
    end_date: date | None = None
    days_of_week: frozenset[int] = field(default_factory=frozenset)
    cap: int = const.DEFAULT_OCCURRENCE_CAP

    def __post_init__(self) -> None:
        if self.frequency not in const.FREQUENCY_OPTIONS:
            raise InvalidRecurrenceRule("frequency", self.frequency)
        if (
            isinstance(self.interval, bool)
            or not isinstance(self.interval, int)
            or self.interval < 1
        ):
            raise InvalidRecurrenceRule("interval", self.interval)
        if (
            isinstance(self.cap, bool)
            or not isinstance(self.cap, int)
            or self.cap < 1
        ):
            raise InvalidRecurrenceRule("cap", self.cap)
        _validate_bounds(self.anchor_date, self.end_date)

        days = frozenset(self.days_of_week or ())
        for day in days:
            if isinstance(day, bool) or day not in const.WEEKDAY_OPTIONS:
                raise InvalidRecurrenceRule("days_of_week", day)
        # Frozen dataclass: normalize lists/sets passed by callers
        object.__setattr__(self, "days_of_week", days)

    @property
    def effective_end_date(self) -> date:
        """End bound used for generation (anchor + 2 years when unset)."""
        if self.end_date is not None:
            return self.end_date
        return self.anchor_date + relativedelta(
            years=const.DEFAULT_RECURRENCE_HORIZON_YEARS
        )


@dataclass(frozen=True)
class NonRecurring:
    """A one-off event: its only occurrence is the anchor."""

    anchor_date: date


@dataclass(frozen=True)
class Recurring:
    """A recurring event described by a validated rule."""

    rule: RecurrenceRule

    @property
    def anchor_date(self) -> date:
        """First occurrence of the event."""
        return self.rule.anchor_date


Recurrence = NonRecurring | Recurring


class RecurrenceEngine:
    """Occurrence generator for a single `RecurrenceRule`.

    Handles DAILY, WEEKLY (with or without explicit weekdays), MONTHLY and
    YEARLY rules. The anchor is always the first occurrence; generation
    stops at the rule's cap or its effective end date.
    """

    RRULE_FREQUENCY_NAMES: ClassVar[dict[str, str]] = {
        const.FREQUENCY_DAILY: "DAILY",
        const.FREQUENCY_WEEKLY: "WEEKLY",
        const.FREQUENCY_MONTHLY: "MONTHLY",
        const.FREQUENCY_YEARLY: "YEARLY",
    }

    RRULE_DAY_CODES: ClassVar[tuple[str, ...]] = (
        "MO",
        "TU",
        "WE",
        "TH",
        "FR",
        "SA",
        "SU",
    )

    UNIT_LABELS: ClassVar[dict[str, tuple[str, str]]] = {
        const.FREQUENCY_DAILY: ("day", "days"),
        const.FREQUENCY_WEEKLY: ("week", "weeks"),
        const.FREQUENCY_MONTHLY: ("month", "months"),
        const.FREQUENCY_YEARLY: ("year", "years"),
    }

    def __init__(self, rule: RecurrenceRule) -> None:
        """Initialize the engine with a validated rule."""
        self._rule = rule

    @property
    def rule(self) -> RecurrenceRule:
        """Rule this engine evaluates."""
        return self._rule

    def generate_occurrences(self) -> list[date]:
        """Return all occurrences, ascending, starting with the anchor.

        Returns:
            List of dates/datetimes (same kind as the anchor), at most
            `rule.cap` long and never past the effective end date.
        """
        rule = self._rule
        end = rule.effective_end_date

        if rule.frequency == const.FREQUENCY_DAILY:
            return self._generate_stepped(
                lambda k: timedelta(days=k * rule.interval), end
            )
        if rule.frequency == const.FREQUENCY_WEEKLY:
            if rule.days_of_week:
                return self._generate_weekly_on_days(end)
            return self._generate_stepped(
                lambda k: timedelta(weeks=k * rule.interval), end
            )
        if rule.frequency == const.FREQUENCY_MONTHLY:
            return self._generate_stepped(
                lambda k: relativedelta(months=k * rule.interval), end
            )
        if rule.frequency == const.FREQUENCY_YEARLY:
            return self._generate_stepped(
                lambda k: relativedelta(years=k * rule.interval), end
            )

        # Unreachable for rules built through RecurrenceRule
        raise InvalidRecurrenceRule("frequency", rule.frequency)

    def occurrences_in_range(self, window_start: date, window_end: date) -> list[date]:
        """Return the occurrences inside [window_start, window_end] (inclusive)."""
        anchor = self._rule.anchor_date
        start = align_to_reference(window_start, anchor)
        end = align_to_reference(window_end, anchor, end_of_day=True)
        return [
            occurrence
            for occurrence in self.generate_occurrences()
            if start <= occurrence <= end
        ]

    def next_occurrence(self, after: date) -> date | None:
        """Return the first occurrence strictly after `after`, or None."""
        reference = align_to_reference(after, self._rule.anchor_date)
        for occurrence in self.generate_occurrences():
            if occurrence > reference:
                return occurrence
        return None

    def describe(self) -> str:
        """Return a short human summary, e.g. "every 2 weeks on Mon, Wed".

        Examples:
            daily, interval 1 → "every day with no end date"
            weekly, interval 2, days {2, 4}, end 2024-03-01
                → "every 2 weeks on Mon, Wed until Mar 1, 2024"
        """
        rule = self._rule
        singular, plural = self.UNIT_LABELS[rule.frequency]
        summary = "every "
        if rule.interval > 1:
            summary += f"{rule.interval} {plural}"
        else:
            summary += singular

        if rule.frequency == const.FREQUENCY_WEEKLY and rule.days_of_week:
            names = ", ".join(weekday_short_name(d) for d in sorted(rule.days_of_week))
            summary += f" on {names}"

        if rule.end_date is not None:
            summary += f" until {dt_format_long_date(rule.end_date)}"
        else:
            summary += " with no end date"
        return summary

    def to_rrule_string(self) -> str:
        """Generate an RFC 5545 RRULE string for calendar export.

        Returns:
            e.g. "FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,WE;WKST=MO;UNTIL=20240301"
            or "FREQ=MONTHLY;INTERVAL=1;COUNT=50" when no end date is set.
        """
        rule = self._rule
        parts = [
            f"FREQ={self.RRULE_FREQUENCY_NAMES[rule.frequency]}",
            f"INTERVAL={rule.interval}",
        ]
        if rule.frequency == const.FREQUENCY_WEEKLY and rule.days_of_week:
            python_days = sorted(weekday_to_python(d) for d in rule.days_of_week)
            parts.append("BYDAY=" + ",".join(self.RRULE_DAY_CODES[d] for d in python_days))
            parts.append(f"WKST={self.RRULE_DAY_CODES[rule.anchor_date.weekday()]}")
        # RFC 5545 forbids UNTIL and COUNT together
        if rule.end_date is not None:
            parts.append(f"UNTIL={self._format_rrule_until(rule.end_date)}")
        else:
            parts.append(f"COUNT={rule.cap}")
        return ";".join(parts)

    # =========================================================================
    # Private: generation strategies
    # =========================================================================

    def _generate_stepped(self, offset_for, end: date) -> list[date]:
        """Generate `anchor + offset_for(k)` for k = 1, 2, ... until a bound hits.

        Offsets are always taken from the anchor rather than the previous
        occurrence so month-end clamping does not drift (Jan 31 → Feb 29 → Mar 31).
        """
        anchor = self._rule.anchor_date
        occurrences: list[date] = [anchor]
        step = 1
        while len(occurrences) < self._rule.cap:
            candidate = anchor + offset_for(step)
            if candidate > end:
                break
            occurrences.append(candidate)
            step += 1
        return occurrences

    def _generate_weekly_on_days(self, end: date) -> list[date]:
        """Generate weekly occurrences restricted to the rule's weekdays.

        Weeks are counted from the anchor by elapsed days (week offset =
        days since anchor // 7), so week numbers never wrap at year ends.
        rrule gives exactly that when its week start is the anchor's weekday.
        A day is kept when its week offset is a multiple of the interval and
        its weekday is selected. The anchor is always kept.
        """
        rule = self._rule
        anchor = rule.anchor_date
        date_only = is_date_only(anchor)
        dtstart = self._as_rrule_datetime(anchor)
        until = self._as_rrule_datetime(end, end_of_day=date_only)

        occurrences: list[date] = [anchor]
        if until < dtstart:
            return occurrences

        byweekday = [
            rrule_weekday(weekday_to_python(day)) for day in sorted(rule.days_of_week)
        ]
        schedule = rrule(
            WEEKLY,
            interval=rule.interval,
            dtstart=dtstart,
            until=until,
            wkst=anchor.weekday(),
            byweekday=byweekday,
        )

        for occurrence in schedule:
            if len(occurrences) >= rule.cap:
                break
            value: date = occurrence.date() if date_only else occurrence
            if value <= anchor:
                continue
            occurrences.append(value)

        if len(occurrences) >= rule.cap:
            const.LOGGER.debug(
                "DEBUG: RecurrenceEngine: Weekly generation stopped at cap %s",
                rule.cap,
            )
        return occurrences

    # =========================================================================
    # Private: helpers
    # =========================================================================

    @staticmethod
    def _as_rrule_datetime(value: date, end_of_day: bool = False) -> datetime:
        """rrule works on datetimes; lift plain dates to the start/end of day."""
        if is_date_only(value):
            return datetime.combine(value, time.max if end_of_day else time.min)
        return value

    @staticmethod
    def _format_rrule_until(value: date) -> str:
        """Format UNTIL as DATE for plain dates and UTC DATE-TIME otherwise."""
        if is_date_only(value):
            return value.strftime("%Y%m%d")
        if value.tzinfo is None:
            return value.strftime("%Y%m%dT%H%M%S")
        return as_utc(value).strftime("%Y%m%dT%H%M%SZ")


# =============================================================================
# Module-level convenience functions
# =============================================================================


def generate_occurrences(
    anchor_date: date,
    end_date: date | None = None,
    frequency: str | None = None,
    interval: int = const.DEFAULT_RECURRENCE_INTERVAL,
    days_of_week: set[int] | list[int] | None = None,
    cap: int = const.DEFAULT_OCCURRENCE_CAP,
) -> list[date]:
    """Generate the ordered occurrence list of a recurring event.

    Args:
        anchor_date: First occurrence (always included).
        end_date: Last allowed occurrence; defaults to anchor + 2 years.
        frequency: One of daily/weekly/monthly/yearly.
        interval: Every N units (>= 1).
        days_of_week: 1=Sunday..7=Saturday; only consulted for weekly rules.
        cap: Maximum number of occurrences, anchor included.

    Returns:
        Ascending list starting with `anchor_date`.

    Raises:
        InvalidRecurrenceRule: Unknown frequency, interval < 1, bad weekday or cap.

    Examples:
        generate_occurrences(date(2024, 1, 1), date(2024, 1, 10), "daily", 2)
        → [2024-01-01, 2024-01-03, 2024-01-05, 2024-01-07, 2024-01-09]
    """
    rule = RecurrenceRule(
        anchor_date=anchor_date,
        frequency=frequency,
        interval=interval,
        end_date=end_date,
        days_of_week=frozenset(days_of_week or ()),
        cap=cap,
    )
    return RecurrenceEngine(rule).generate_occurrences()


def occurrences_in_range(
    recurrence: Recurrence, window_start: date, window_end: date
) -> list[date]:
    """Return the occurrences of an event that fall inside a window (inclusive).

    Non-recurring events yield their single date when it is inside the window.
    """
    if isinstance(recurrence, Recurring):
        return RecurrenceEngine(recurrence.rule).occurrences_in_range(
            window_start, window_end
        )

    anchor = recurrence.anchor_date
    start = align_to_reference(window_start, anchor)
    end = align_to_reference(window_end, anchor, end_of_day=True)
    if start <= anchor <= end:
        return [anchor]
    return []


def recurrence_from_record(
    record: EventData,
    cap: int = const.DEFAULT_OCCURRENCE_CAP,
    tz=None,
) -> Recurrence:
    """Build the recurrence variant for a stored event record.

    Dates are stored as UTC ISO strings; they are converted to local time
    (`tz` or the default timezone) so weekdays and month arithmetic follow
    the band's wall clock. All-day records yield plain `date` bounds.

    Raises:
        InvalidRecurrenceRule: Missing/invalid date, or a recurring record
            without a valid frequency/interval.
    """
    raw_date = record.get(const.DATA_EVENT_DATE)
    anchor_utc = dt_parse(raw_date)
    if anchor_utc is None:
        raise InvalidRecurrenceRule("date", raw_date)
    anchor: date = as_local(anchor_utc, tz)
    all_day = bool(record.get(const.DATA_EVENT_ALL_DAY, False))
    if all_day:
        anchor = anchor.date()

    if not record.get(const.DATA_EVENT_IS_RECURRING, False):
        return NonRecurring(anchor)

    end_date = None
    raw_end = record.get(const.DATA_EVENT_RECURRENCE_END_DATE)
    if raw_end:
        parsed_end = dt_parse_end_of_day(raw_end)
        if parsed_end is None:
            raise InvalidRecurrenceRule("end_date", raw_end)
        end_date = as_local(parsed_end, tz)
        if all_day:
            end_date = end_date.date()

    interval = record.get(
        const.DATA_EVENT_RECURRENCE_INTERVAL, const.DEFAULT_RECURRENCE_INTERVAL
    )
    rule = RecurrenceRule(
        anchor_date=anchor,
        frequency=record.get(const.DATA_EVENT_RECURRENCE_FREQUENCY),
        interval=const.DEFAULT_RECURRENCE_INTERVAL if interval is None else interval,
        end_date=end_date,
        days_of_week=frozenset(
            record.get(const.DATA_EVENT_RECURRENCE_DAYS_OF_WEEK) or ()
        ),
        cap=cap,
    )
    return Recurring(rule)
