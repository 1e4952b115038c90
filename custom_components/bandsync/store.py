# File: store.py
"""Handles persistent event storage for the BandSync integration.

Uses Home Assistant's Storage helper to save and load band event records,
ensuring the calendar survives restarts. Recurring events are stored once,
with their rule; occurrences are never persisted, only the dates of
deleted single occurrences (exceptions).
"""

from __future__ import annotations

from datetime import datetime, time
from typing import TYPE_CHECKING, Any
import uuid

from homeassistant.helpers.dispatcher import async_dispatcher_send
from homeassistant.helpers.storage import Store

from . import const
from .engines.recurrence_engine import InvalidRecurrenceRule, recurrence_from_record
from .utils.dt_utils import (
    as_local,
    dt_parse,
    dt_parse_end_of_day,
    dt_to_utc_iso,
    get_default_timezone,
)

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from .type_defs import EventData, EventsCollection, StorageData


class BandSyncStore:
    """Key-value provider of band event records.

    Thin wrapper around Home Assistant's Store API. Records are keyed by
    their internal_id; every mutation is persisted immediately and
    announced on the entry's update signal.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        entry_id: str | None = None,
        storage_key: str = const.STORAGE_KEY,
    ) -> None:
        """Initialize the store.

        Args:
            hass: Home Assistant core object.
            entry_id: Config entry owning the data (used for update signals).
            storage_key: Key to identify storage location.
        """
        self.hass = hass
        self._entry_id = entry_id
        self._storage_key = storage_key
        self._store: Store = Store(hass, const.STORAGE_VERSION, storage_key)
        self._data: dict[str, Any] = {}

    @staticmethod
    def get_default_structure() -> StorageData:
        """Return canonical empty data structure for fresh installations."""
        return {
            const.DATA_META: {
                const.DATA_META_SCHEMA_VERSION: const.SCHEMA_VERSION,
            },
            const.DATA_EVENTS: {},
        }

    async def async_initialize(self) -> None:
        """Load data from storage during startup.

        If no data exists, initializes with an empty structure.
        """
        existing_data = await self._store.async_load()

        if existing_data is None:
            const.LOGGER.info("INFO: No existing storage found. Initializing new data")
            self._data = BandSyncStore.get_default_structure()
            return

        self._data = existing_data
        self._data.setdefault(const.DATA_EVENTS, {})
        self._data.setdefault(
            const.DATA_META, {const.DATA_META_SCHEMA_VERSION: const.SCHEMA_VERSION}
        )
        const.LOGGER.debug(
            "DEBUG: Loaded existing data from storage: %s events",
            len(self._data[const.DATA_EVENTS]),
        )

    @property
    def data(self) -> dict[str, Any]:
        """Retrieve the in-memory data cache."""
        return self._data

    # -------------------------------------------------------------------------
    # Record access
    # -------------------------------------------------------------------------

    def get_events(self) -> EventsCollection:
        """Return all stored event records keyed by internal_id."""
        return self._data.get(const.DATA_EVENTS, {})

    def get_event(self, event_id: str) -> EventData | None:
        """Return one event record, or None when the id is unknown."""
        return self.get_events().get(event_id)

    async def async_save_event(self, record: dict[str, Any]) -> EventData:
        """Validate, normalize and persist an event record (insert or replace).

        Returns:
            The stored record (with internal_id assigned).

        Raises:
            InvalidRecurrenceRule: The record's date or recurrence is invalid.
        """
        normalized = self.normalize_record(record)
        # Fail before touching storage if the rule cannot be evaluated
        recurrence_from_record(normalized)

        event_id = normalized[const.DATA_EVENT_INTERNAL_ID]
        is_new = event_id not in self.get_events()
        self._data.setdefault(const.DATA_EVENTS, {})[event_id] = normalized
        await self.async_save()
        self._async_notify()

        const.LOGGER.info(
            "INFO: %s event '%s' (ID: %s)",
            "Created" if is_new else "Updated",
            normalized[const.DATA_EVENT_TITLE],
            event_id,
        )
        return normalized

    async def async_delete_event(self, event_id: str) -> bool:
        """Delete an event and all of its occurrences.

        Returns:
            True when a record was removed.
        """
        removed = self.get_events().pop(event_id, None)
        if removed is None:
            const.LOGGER.warning(
                "WARNING: Attempted to delete unknown event '%s'", event_id
            )
            return False

        await self.async_save()
        self._async_notify()
        const.LOGGER.info("INFO: Deleted event (ID: %s)", event_id)
        return True

    async def async_add_exception(
        self, event_id: str, occurrence: datetime | str
    ) -> EventData | None:
        """Delete a single occurrence of a recurring event.

        The occurrence instant is stored (UTC ISO) in the record's exceptions
        and skipped when the calendar expands the event.

        Returns:
            The updated record, or None when the event does not exist.
        """
        record = self.get_event(event_id)
        if record is None:
            return None

        occurrence_iso = dt_to_utc_iso(occurrence)
        if occurrence_iso is None:
            raise InvalidRecurrenceRule("occurrence", occurrence)

        exceptions = record.setdefault(const.DATA_EVENT_EXCEPTIONS, [])
        if occurrence_iso not in exceptions:
            exceptions.append(occurrence_iso)
            await self.async_save()
            self._async_notify()
            const.LOGGER.info(
                "INFO: Excluded occurrence %s of event (ID: %s)",
                occurrence_iso,
                event_id,
            )
        return record

    # -------------------------------------------------------------------------
    # Normalization
    # -------------------------------------------------------------------------

    @staticmethod
    def normalize_record(record: dict[str, Any]) -> EventData:
        """Fill defaults and canonicalize dates of an incoming record.

        Non-recurring records have their recurrence fields cleared, so a
        disabled recurrence is never half-populated.

        Raises:
            InvalidRecurrenceRule: The event date is missing or unparseable.
        """
        raw_date = record.get(const.DATA_EVENT_DATE)
        parsed_date = dt_parse(raw_date)
        if parsed_date is None:
            raise InvalidRecurrenceRule("date", raw_date)

        all_day = bool(record.get(const.DATA_EVENT_ALL_DAY, False))
        duration = record.get(
            const.DATA_EVENT_DURATION_MINUTES, const.DEFAULT_EVENT_DURATION_MINUTES
        )
        if all_day:
            # All-day events start at local midnight and last whole days
            parsed_date = datetime.combine(
                as_local(parsed_date).date(), time.min, tzinfo=get_default_timezone()
            )
            days_long = max(1, -(-duration // const.MINUTES_PER_DAY))
            duration = days_long * const.MINUTES_PER_DAY
        date_iso = dt_to_utc_iso(parsed_date)

        is_recurring = bool(record.get(const.DATA_EVENT_IS_RECURRING, False))
        frequency = record.get(const.DATA_EVENT_RECURRENCE_FREQUENCY)
        days = record.get(const.DATA_EVENT_RECURRENCE_DAYS_OF_WEEK)

        end_iso = None
        raw_end = record.get(const.DATA_EVENT_RECURRENCE_END_DATE)
        if is_recurring and raw_end:
            # A bare end day includes occurrences later on that day
            end_iso = dt_to_utc_iso(dt_parse_end_of_day(raw_end))
            if end_iso is None:
                raise InvalidRecurrenceRule("end_date", raw_end)

        interval = record.get(const.DATA_EVENT_RECURRENCE_INTERVAL)
        if interval is None:
            interval = const.DEFAULT_RECURRENCE_INTERVAL

        normalized: EventData = {
            const.DATA_EVENT_INTERNAL_ID: record.get(const.DATA_EVENT_INTERNAL_ID)
            or str(uuid.uuid4()),
            const.DATA_EVENT_TITLE: record.get(const.DATA_EVENT_TITLE, ""),
            const.DATA_EVENT_DATE: date_iso,
            const.DATA_EVENT_DURATION_MINUTES: duration,
            const.DATA_EVENT_ALL_DAY: all_day,
            const.DATA_EVENT_TYPE: record.get(
                const.DATA_EVENT_TYPE, const.DEFAULT_EVENT_TYPE
            ),
            const.DATA_EVENT_STATUS: record.get(
                const.DATA_EVENT_STATUS, const.DEFAULT_EVENT_STATUS
            ),
            const.DATA_EVENT_LOCATION: record.get(const.DATA_EVENT_LOCATION, ""),
            const.DATA_EVENT_NOTES: record.get(const.DATA_EVENT_NOTES, ""),
            const.DATA_EVENT_GROUP_ID: record.get(const.DATA_EVENT_GROUP_ID, ""),
            const.DATA_EVENT_IS_PERSONAL: bool(
                record.get(const.DATA_EVENT_IS_PERSONAL, False)
            ),
            const.DATA_EVENT_IS_RECURRING: is_recurring,
            const.DATA_EVENT_RECURRENCE_FREQUENCY: frequency if is_recurring else None,
            const.DATA_EVENT_RECURRENCE_INTERVAL: interval if is_recurring else 1,
            const.DATA_EVENT_RECURRENCE_END_DATE: end_iso,
            const.DATA_EVENT_RECURRENCE_DAYS_OF_WEEK: (
                sorted(set(days))
                if is_recurring and frequency == const.FREQUENCY_WEEKLY and days
                else None
            ),
            const.DATA_EVENT_RECURRENCE_PARENT_ID: record.get(
                const.DATA_EVENT_RECURRENCE_PARENT_ID
            ),
            const.DATA_EVENT_EXCEPTIONS: list(
                record.get(const.DATA_EVENT_EXCEPTIONS) or []
            )
            if is_recurring
            else [],
        }
        return normalized

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    async def async_save(self) -> None:
        """Save the current data structure to storage asynchronously.

        Errors are logged but do not stop execution.
        """
        try:
            await self._store.async_save(self._data)
            const.LOGGER.debug("DEBUG: Data saved successfully to storage")
        except OSError as err:
            const.LOGGER.error(
                "ERROR: Failed to save storage due to file system error: %s. "
                "Check disk space and file permissions for %s",
                err,
                self._store.path,
            )
        except TypeError as err:
            const.LOGGER.error(
                "ERROR: Failed to save storage due to non-serializable data: %s",
                err,
            )
        except ValueError as err:
            const.LOGGER.error(
                "ERROR: Failed to save storage due to invalid data format: %s",
                err,
            )

    async def async_delete_storage(self) -> None:
        """Clear in-memory data and remove the storage file from disk."""
        self._data = BandSyncStore.get_default_structure()
        try:
            await self._store.async_remove()
            const.LOGGER.info(
                "INFO: Storage file removed successfully: %s", self._store.path
            )
        except OSError as err:
            const.LOGGER.error(
                "ERROR: Failed to remove storage file %s: %s. Check file permissions",
                self._store.path,
                err,
            )

    def _async_notify(self) -> None:
        """Tell listening entities that event records changed."""
        if self._entry_id is None:
            return
        async_dispatcher_send(
            self.hass, const.SIGNAL_EVENTS_UPDATED.format(self._entry_id)
        )
