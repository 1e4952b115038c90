"""Calendar platform for BandSync integration.

Exposes the band's events, with recurring events expanded into their
individual occurrences, as a Home Assistant calendar. Supports creating
events and deleting a whole series or a single occurrence.
"""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta
from homeassistant.components.calendar import (
    CalendarEntity,
    CalendarEntityFeature,
    CalendarEvent,
)
from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.dispatcher import async_dispatcher_connect
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.util import dt as dt_util

from . import const
from .engines.recurrence_engine import (
    InvalidRecurrenceRule,
    RecurrenceEngine,
    Recurring,
    occurrences_in_range,
    recurrence_from_record,
)
from .utils.dt_utils import (
    dt_parse_end_of_day,
    dt_to_utc_iso,
    is_date_only,
    weekday_from_python,
)

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry

    from .store import BandSyncStore
    from .type_defs import EventData

# Coordinator-free entity driven by dispatcher signals; no polling
PARALLEL_UPDATES = 0

# RFC 5545 BYDAY codes in date.weekday() order
_RRULE_DAY_CODES = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")

_RRULE_FREQUENCIES = {
    "DAILY": const.FREQUENCY_DAILY,
    "WEEKLY": const.FREQUENCY_WEEKLY,
    "MONTHLY": const.FREQUENCY_MONTHLY,
    "YEARLY": const.FREQUENCY_YEARLY,
}

_RRULE_SUPPORTED_PARTS = frozenset({"FREQ", "INTERVAL", "UNTIL", "WKST", "BYDAY"})

_RANGE_THIS_AND_FUTURE = "THISANDFUTURE"


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up the BandSync calendar platform."""
    store: BandSyncStore = hass.data[const.DOMAIN][entry.entry_id][const.STORE]
    async_add_entities([BandSyncCalendar(store, entry)])


def recurrence_fields_from_rrule(rrule_str: str) -> dict[str, Any]:
    """Map an RRULE string onto stored recurrence fields.

    Supports FREQ (DAILY/WEEKLY/MONTHLY/YEARLY), INTERVAL, UNTIL, WKST and
    plain weekday BYDAY on weekly rules. Anything else (COUNT, BYMONTHDAY,
    BYSETPOS, ordinal BYDAY such as "2TU") is rejected rather than dropped.
    A date-only UNTIL keeps occurrences on that day.

    Raises:
        InvalidRecurrenceRule: Unsupported or malformed parts.
    """
    parts: dict[str, str] = {}
    for chunk in rrule_str.removeprefix("RRULE:").split(";"):
        if not chunk:
            continue
        key, sep, value = chunk.partition("=")
        if not sep:
            raise InvalidRecurrenceRule("rrule", rrule_str)
        parts[key.upper()] = value

    unsupported = sorted(set(parts) - _RRULE_SUPPORTED_PARTS)
    if unsupported:
        raise InvalidRecurrenceRule(unsupported[0].lower(), parts[unsupported[0]])

    frequency = _RRULE_FREQUENCIES.get(parts.get("FREQ", "").upper())
    if frequency is None:
        raise InvalidRecurrenceRule("frequency", parts.get("FREQ"))

    fields: dict[str, Any] = {
        const.DATA_EVENT_IS_RECURRING: True,
        const.DATA_EVENT_RECURRENCE_FREQUENCY: frequency,
    }

    if "INTERVAL" in parts:
        try:
            fields[const.DATA_EVENT_RECURRENCE_INTERVAL] = int(parts["INTERVAL"])
        except ValueError as err:
            raise InvalidRecurrenceRule("interval", parts["INTERVAL"]) from err

    if "UNTIL" in parts:
        until_str = parts["UNTIL"]
        try:
            until = isoparse(until_str)
        except ValueError as err:
            raise InvalidRecurrenceRule("end_date", until_str) from err
        if "T" not in until_str.upper():
            until = dt_parse_end_of_day(until.date())
        fields[const.DATA_EVENT_RECURRENCE_END_DATE] = dt_to_utc_iso(until)

    if "WKST" in parts and parts["WKST"].upper() not in _RRULE_DAY_CODES:
        raise InvalidRecurrenceRule("wkst", parts["WKST"])

    if "BYDAY" in parts:
        if frequency != const.FREQUENCY_WEEKLY:
            raise InvalidRecurrenceRule("days_of_week", parts["BYDAY"])
        days: list[int] = []
        for code in parts["BYDAY"].split(","):
            # Ordinal prefixes ("1MO", "-1FR") are not plain weekdays
            code = code.strip().upper()
            if code not in _RRULE_DAY_CODES:
                raise InvalidRecurrenceRule("days_of_week", code)
            days.append(weekday_from_python(_RRULE_DAY_CODES.index(code)))
        fields[const.DATA_EVENT_RECURRENCE_DAYS_OF_WEEK] = days

    return fields


class BandSyncCalendar(CalendarEntity):
    """Calendar entity listing every band event and its occurrences."""

    _attr_supported_features = (
        CalendarEntityFeature.CREATE_EVENT | CalendarEntityFeature.DELETE_EVENT
    )

    def __init__(self, store: BandSyncStore, config_entry: ConfigEntry) -> None:
        """Initialize the calendar entity.

        Args:
            store: BandSyncStore providing event records.
            config_entry: ConfigEntry for this integration instance.
        """
        super().__init__()
        self._store = store
        self._config_entry = config_entry
        self._attr_name = config_entry.data.get(
            const.CONF_BAND_NAME, const.DEFAULT_BAND_NAME
        )
        self._attr_unique_id = f"{config_entry.entry_id}_calendar"

    async def async_added_to_hass(self) -> None:
        """Subscribe to record changes so the next-event state stays fresh."""
        await super().async_added_to_hass()
        self.async_on_remove(
            async_dispatcher_connect(
                self.hass,
                const.SIGNAL_EVENTS_UPDATED.format(self._config_entry.entry_id),
                self._on_events_changed,
            )
        )

    @callback
    def _on_events_changed(self) -> None:
        self.async_write_ha_state()

    # -------------------------------------------------------------------------
    # Options
    # -------------------------------------------------------------------------

    @property
    def _occurrence_cap(self) -> int:
        return self._config_entry.options.get(
            const.CONF_OCCURRENCE_CAP, const.DEFAULT_OCCURRENCE_CAP
        )

    @property
    def _future_months(self) -> int:
        return self._config_entry.options.get(
            const.CONF_CALENDAR_FUTURE_MONTHS, const.DEFAULT_CALENDAR_FUTURE_MONTHS
        )

    def _local_tz(self) -> datetime.tzinfo:
        return dt_util.get_time_zone(self.hass.config.time_zone)

    # -------------------------------------------------------------------------
    # Read path
    # -------------------------------------------------------------------------

    @property
    def event(self) -> CalendarEvent | None:
        """Return the next upcoming (or in-progress) occurrence."""
        now = dt_util.now()
        upcoming = self._generate_events(
            now, now + relativedelta(months=self._future_months)
        )
        if not upcoming:
            return None
        return min(upcoming, key=lambda e: e.start_datetime_local)

    async def async_get_events(
        self,
        hass: HomeAssistant,
        start_date: datetime.datetime,
        end_date: datetime.datetime,
    ) -> list[CalendarEvent]:
        """Return one CalendarEvent per occurrence overlapping [start_date, end_date]."""
        local_tz = self._local_tz()
        if start_date.tzinfo is None:
            start_date = start_date.replace(tzinfo=local_tz)
        if end_date.tzinfo is None:
            end_date = end_date.replace(tzinfo=local_tz)
        return self._generate_events(start_date, end_date)

    def _generate_events(
        self,
        window_start: datetime.datetime,
        window_end: datetime.datetime,
    ) -> list[CalendarEvent]:
        events: list[CalendarEvent] = []
        for record in self._store.get_events().values():
            events.extend(self._events_for_record(record, window_start, window_end))
        events.sort(key=lambda e: e.start_datetime_local)
        return events

    def _events_for_record(
        self,
        record: EventData,
        window_start: datetime.datetime,
        window_end: datetime.datetime,
    ) -> list[CalendarEvent]:
        """Expand one record into the CalendarEvents overlapping the window."""
        event_id = record.get(const.DATA_EVENT_INTERNAL_ID, "")
        try:
            recurrence = recurrence_from_record(
                record, cap=self._occurrence_cap, tz=self._local_tz()
            )
        except InvalidRecurrenceRule as err:
            const.LOGGER.warning(
                "WARNING: Calendar: Skipping event '%s' with invalid recurrence: %s",
                event_id,
                err,
            )
            return []

        duration = datetime.timedelta(
            minutes=record.get(const.DATA_EVENT_DURATION_MINUTES)
            or const.DEFAULT_EVENT_DURATION_MINUTES
        )
        if is_date_only(recurrence.anchor_date):
            duration = datetime.timedelta(days=max(1, duration.days))
        is_recurring = isinstance(recurrence, Recurring)
        rrule_str = (
            RecurrenceEngine(recurrence.rule).to_rrule_string() if is_recurring else None
        )
        exceptions = set(record.get(const.DATA_EVENT_EXCEPTIONS) or [])

        events: list[CalendarEvent] = []
        # Occurrences that started before the window may still overlap it
        for occurrence in occurrences_in_range(
            recurrence, window_start - duration, window_end
        ):
            occurrence_id = dt_to_utc_iso(occurrence)
            if occurrence_id in exceptions:
                continue
            event = CalendarEvent(
                summary=record.get(const.DATA_EVENT_TITLE, ""),
                start=occurrence,
                end=occurrence + duration,
                description=record.get(const.DATA_EVENT_NOTES) or None,
                location=record.get(const.DATA_EVENT_LOCATION) or None,
                uid=event_id,
                recurrence_id=occurrence_id if is_recurring else None,
                rrule=rrule_str,
            )
            if (
                event.end_datetime_local > window_start
                and event.start_datetime_local < window_end
            ):
                events.append(event)
        return events

    # -------------------------------------------------------------------------
    # Write path
    # -------------------------------------------------------------------------

    async def async_create_event(self, **kwargs: Any) -> None:
        """Create a stored event from a calendar create request."""
        dtstart = kwargs["dtstart"]
        dtend = kwargs["dtend"]
        all_day = not isinstance(dtstart, datetime.datetime)
        if all_day:
            duration_minutes = (dtend - dtstart).days * const.MINUTES_PER_DAY
            dtstart = datetime.datetime.combine(
                dtstart, datetime.time.min, self._local_tz()
            )
        else:
            duration_minutes = int((dtend - dtstart).total_seconds() // 60)

        record: dict[str, Any] = {
            const.DATA_EVENT_TITLE: kwargs.get("summary", ""),
            const.DATA_EVENT_DATE: dtstart,
            const.DATA_EVENT_DURATION_MINUTES: max(1, duration_minutes),
            const.DATA_EVENT_ALL_DAY: all_day,
            const.DATA_EVENT_NOTES: kwargs.get("description") or "",
            const.DATA_EVENT_LOCATION: kwargs.get("location") or "",
        }

        try:
            if rrule_str := kwargs.get("rrule"):
                record.update(recurrence_fields_from_rrule(rrule_str))
            await self._store.async_save_event(record)
        except InvalidRecurrenceRule as err:
            raise HomeAssistantError(
                translation_domain=const.DOMAIN,
                translation_key=const.TRANS_KEY_ERROR_INVALID_RECURRENCE,
                translation_placeholders={"reason": err.reason},
            ) from err

    async def async_delete_event(
        self,
        uid: str,
        recurrence_id: str | None = None,
        recurrence_range: str | None = None,
    ) -> None:
        """Delete a whole event, one occurrence, or an occurrence and its successors."""
        record = self._store.get_event(uid)
        if record is None:
            raise HomeAssistantError(
                translation_domain=const.DOMAIN,
                translation_key=const.TRANS_KEY_ERROR_EVENT_NOT_FOUND,
                translation_placeholders={"event_id": uid},
            )

        if not recurrence_id or not record.get(const.DATA_EVENT_IS_RECURRING):
            await self._store.async_delete_event(uid)
            return

        if recurrence_range == _RANGE_THIS_AND_FUTURE:
            await self._async_truncate_series(record, recurrence_id)
            return

        try:
            await self._store.async_add_exception(uid, recurrence_id)
        except InvalidRecurrenceRule as err:
            raise HomeAssistantError(
                translation_domain=const.DOMAIN,
                translation_key=const.TRANS_KEY_ERROR_INVALID_DATE,
                translation_placeholders={"value": str(recurrence_id)},
            ) from err

    async def _async_truncate_series(self, record: EventData, recurrence_id: str) -> None:
        """End a series just before the given occurrence."""
        cutoff_iso = dt_to_utc_iso(recurrence_id)
        if cutoff_iso is None:
            raise HomeAssistantError(
                translation_domain=const.DOMAIN,
                translation_key=const.TRANS_KEY_ERROR_INVALID_DATE,
                translation_placeholders={"value": str(recurrence_id)},
            )

        cutoff = isoparse(cutoff_iso)
        if cutoff <= isoparse(record[const.DATA_EVENT_DATE]):
            await self._store.async_delete_event(record[const.DATA_EVENT_INTERNAL_ID])
            return

        cutoff -= datetime.timedelta(seconds=1)
        current_end = record.get(const.DATA_EVENT_RECURRENCE_END_DATE)
        if current_end and isoparse(current_end) <= cutoff:
            return
        updated = dict(record)
        updated[const.DATA_EVENT_RECURRENCE_END_DATE] = cutoff.isoformat()
        await self._store.async_save_event(updated)
