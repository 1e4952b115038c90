# File: services.py
"""Defines custom services for the BandSync integration.

These services allow scripts and automations to manage band events and to
query the occurrences of a recurring event.
"""

from __future__ import annotations

from typing import Any

from dateutil.relativedelta import relativedelta
import voluptuous as vol
from homeassistant.core import (
    HomeAssistant,
    ServiceCall,
    ServiceResponse,
    SupportsResponse,
)
from homeassistant.exceptions import HomeAssistantError, ServiceValidationError
from homeassistant.helpers import config_validation as cv
from homeassistant.util import dt as dt_util

from . import const
from .engines.recurrence_engine import (
    InvalidRecurrenceRule,
    RecurrenceEngine,
    Recurring,
    occurrences_in_range,
    recurrence_from_record,
)
from .store import BandSyncStore
from .utils.dt_utils import dt_to_utc_iso

_DAYS_OF_WEEK_VALIDATOR = vol.All(
    cv.ensure_list,
    [vol.All(vol.Coerce(int), vol.In(const.WEEKDAY_OPTIONS))],
)

_INTERVAL_VALIDATOR = vol.All(
    vol.Coerce(int), vol.Range(min=1, max=const.MAX_RECURRENCE_INTERVAL)
)

# --- Service Schemas ---
_EVENT_FIELDS = {
    vol.Optional(const.FIELD_DURATION_MINUTES): vol.All(
        vol.Coerce(int), vol.Range(min=1)
    ),
    vol.Optional(const.FIELD_ALL_DAY): cv.boolean,
    vol.Optional(const.FIELD_TYPE): vol.In(const.EVENT_TYPE_OPTIONS),
    vol.Optional(const.FIELD_STATUS): cv.string,
    vol.Optional(const.FIELD_LOCATION): cv.string,
    vol.Optional(const.FIELD_NOTES): cv.string,
    vol.Optional(const.FIELD_IS_PERSONAL): cv.boolean,
    vol.Optional(const.FIELD_FREQUENCY): vol.In(
        [const.FREQUENCY_NONE, *const.FREQUENCY_OPTIONS]
    ),
    vol.Optional(const.FIELD_INTERVAL): _INTERVAL_VALIDATOR,
    # A bare date means the whole of that day
    vol.Optional(const.FIELD_END_DATE): vol.Any(cv.date, cv.datetime, None),
    vol.Optional(const.FIELD_DAYS_OF_WEEK): _DAYS_OF_WEEK_VALIDATOR,
}

CREATE_EVENT_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_TITLE): cv.string,
        vol.Required(const.FIELD_DATE): cv.datetime,
        **_EVENT_FIELDS,
    }
)

UPDATE_EVENT_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_EVENT_ID): cv.string,
        vol.Optional(const.FIELD_TITLE): cv.string,
        vol.Optional(const.FIELD_DATE): cv.datetime,
        **_EVENT_FIELDS,
    }
)

DELETE_EVENT_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_EVENT_ID): cv.string,
        vol.Optional(const.FIELD_OCCURRENCE): cv.datetime,
    }
)

GET_OCCURRENCES_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_EVENT_ID): cv.string,
        vol.Optional(const.FIELD_START): cv.datetime,
        vol.Optional(const.FIELD_END): cv.datetime,
    }
)

# Service field → stored record key
_FIELD_TO_RECORD_KEY = {
    const.FIELD_TITLE: const.DATA_EVENT_TITLE,
    const.FIELD_DATE: const.DATA_EVENT_DATE,
    const.FIELD_DURATION_MINUTES: const.DATA_EVENT_DURATION_MINUTES,
    const.FIELD_ALL_DAY: const.DATA_EVENT_ALL_DAY,
    const.FIELD_TYPE: const.DATA_EVENT_TYPE,
    const.FIELD_STATUS: const.DATA_EVENT_STATUS,
    const.FIELD_LOCATION: const.DATA_EVENT_LOCATION,
    const.FIELD_NOTES: const.DATA_EVENT_NOTES,
    const.FIELD_IS_PERSONAL: const.DATA_EVENT_IS_PERSONAL,
    const.FIELD_INTERVAL: const.DATA_EVENT_RECURRENCE_INTERVAL,
    const.FIELD_END_DATE: const.DATA_EVENT_RECURRENCE_END_DATE,
    const.FIELD_DAYS_OF_WEEK: const.DATA_EVENT_RECURRENCE_DAYS_OF_WEEK,
}


def get_first_bandsync_entry(hass: HomeAssistant) -> str | None:
    """Return the entry_id of the first loaded BandSync entry."""
    for entry_id in hass.data.get(const.DOMAIN, {}):
        return entry_id
    return None


def apply_service_fields(record: dict[str, Any], data: dict[str, Any]) -> dict[str, Any]:
    """Merge service call fields into a (copied) event record.

    `frequency: none` switches recurrence off; any other frequency switches it on.
    """
    updated = dict(record)
    for field, key in _FIELD_TO_RECORD_KEY.items():
        if field in data:
            updated[key] = data[field]

    if const.FIELD_FREQUENCY in data:
        frequency = data[const.FIELD_FREQUENCY]
        if frequency == const.FREQUENCY_NONE:
            updated[const.DATA_EVENT_IS_RECURRING] = False
            updated[const.DATA_EVENT_RECURRENCE_FREQUENCY] = None
        else:
            updated[const.DATA_EVENT_IS_RECURRING] = True
            updated[const.DATA_EVENT_RECURRENCE_FREQUENCY] = frequency
    return updated


def _invalid_recurrence(err: InvalidRecurrenceRule) -> ServiceValidationError:
    return ServiceValidationError(
        translation_domain=const.DOMAIN,
        translation_key=const.TRANS_KEY_ERROR_INVALID_RECURRENCE,
        translation_placeholders={"reason": err.reason},
    )


def async_setup_services(hass: HomeAssistant) -> None:
    """Register BandSync services."""

    def _get_entry_and_store(service_name: str) -> tuple[str, BandSyncStore]:
        entry_id = get_first_bandsync_entry(hass)
        if not entry_id:
            const.LOGGER.warning("WARNING: %s: No BandSync entry loaded", service_name)
            raise HomeAssistantError(
                translation_domain=const.DOMAIN,
                translation_key=const.TRANS_KEY_ERROR_NO_ENTRY,
            )
        return entry_id, hass.data[const.DOMAIN][entry_id][const.STORE]

    def _require_event(store: BandSyncStore, event_id: str) -> dict[str, Any]:
        record = store.get_event(event_id)
        if record is None:
            raise ServiceValidationError(
                translation_domain=const.DOMAIN,
                translation_key=const.TRANS_KEY_ERROR_EVENT_NOT_FOUND,
                translation_placeholders={"event_id": event_id},
            )
        return record

    async def handle_create_event(call: ServiceCall) -> ServiceResponse:
        """Handle creating a band event."""
        _, store = _get_entry_and_store(const.SERVICE_CREATE_EVENT)
        record = apply_service_fields({}, dict(call.data))
        try:
            saved = await store.async_save_event(record)
        except InvalidRecurrenceRule as err:
            const.LOGGER.warning("WARNING: Create Event: %s", err)
            raise _invalid_recurrence(err) from err

        return {const.ATTR_EVENT_ID: saved[const.DATA_EVENT_INTERNAL_ID]}

    async def handle_update_event(call: ServiceCall) -> None:
        """Handle editing an event, including its recurrence settings."""
        _, store = _get_entry_and_store(const.SERVICE_UPDATE_EVENT)
        event_id = call.data[const.FIELD_EVENT_ID]
        record = _require_event(store, event_id)

        updated = apply_service_fields(record, dict(call.data))
        try:
            await store.async_save_event(updated)
        except InvalidRecurrenceRule as err:
            const.LOGGER.warning("WARNING: Update Event '%s': %s", event_id, err)
            raise _invalid_recurrence(err) from err

    async def handle_delete_event(call: ServiceCall) -> None:
        """Handle deleting an event, or one occurrence of a recurring event."""
        _, store = _get_entry_and_store(const.SERVICE_DELETE_EVENT)
        event_id = call.data[const.FIELD_EVENT_ID]
        record = _require_event(store, event_id)

        occurrence = call.data.get(const.FIELD_OCCURRENCE)
        if occurrence is not None and record.get(const.DATA_EVENT_IS_RECURRING):
            await store.async_add_exception(event_id, occurrence)
            return

        await store.async_delete_event(event_id)

    async def handle_get_occurrences(call: ServiceCall) -> ServiceResponse:
        """Return the occurrences of an event inside a window."""
        entry_id, store = _get_entry_and_store(const.SERVICE_GET_OCCURRENCES)
        event_id = call.data[const.FIELD_EVENT_ID]
        record = _require_event(store, event_id)
        entry = hass.config_entries.async_get_entry(entry_id)
        options = entry.options if entry else {}

        now = dt_util.now()
        window_start = call.data.get(const.FIELD_START) or now - relativedelta(
            months=options.get(
                const.CONF_CALENDAR_PAST_MONTHS, const.DEFAULT_CALENDAR_PAST_MONTHS
            )
        )
        window_end = call.data.get(const.FIELD_END) or now + relativedelta(
            months=options.get(
                const.CONF_CALENDAR_FUTURE_MONTHS,
                const.DEFAULT_CALENDAR_FUTURE_MONTHS,
            )
        )

        local_tz = dt_util.get_time_zone(hass.config.time_zone)
        if window_start.tzinfo is None:
            window_start = window_start.replace(tzinfo=local_tz)
        if window_end.tzinfo is None:
            window_end = window_end.replace(tzinfo=local_tz)

        try:
            recurrence = recurrence_from_record(
                record,
                cap=options.get(const.CONF_OCCURRENCE_CAP, const.DEFAULT_OCCURRENCE_CAP),
                tz=local_tz,
            )
        except InvalidRecurrenceRule as err:
            raise _invalid_recurrence(err) from err

        exceptions = set(record.get(const.DATA_EVENT_EXCEPTIONS) or [])
        occurrences = [
            occurrence.isoformat()
            for occurrence in occurrences_in_range(recurrence, window_start, window_end)
            if dt_to_utc_iso(occurrence) not in exceptions
        ]

        response: dict[str, Any] = {
            const.ATTR_EVENT_ID: event_id,
            const.ATTR_SUMMARY: None,
            const.ATTR_RRULE: None,
            const.ATTR_OCCURRENCES: occurrences,
        }
        if isinstance(recurrence, Recurring):
            engine = RecurrenceEngine(recurrence.rule)
            response[const.ATTR_SUMMARY] = engine.describe()
            response[const.ATTR_RRULE] = engine.to_rrule_string()
        return response

    # --- Register Services ---
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_CREATE_EVENT,
        handle_create_event,
        schema=CREATE_EVENT_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_UPDATE_EVENT,
        handle_update_event,
        schema=UPDATE_EVENT_SCHEMA,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_DELETE_EVENT,
        handle_delete_event,
        schema=DELETE_EVENT_SCHEMA,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_GET_OCCURRENCES,
        handle_get_occurrences,
        schema=GET_OCCURRENCES_SCHEMA,
        supports_response=SupportsResponse.ONLY,
    )

    const.LOGGER.info("INFO: BandSync services have been registered successfully")


async def async_unload_services(hass: HomeAssistant) -> None:
    """Unregister BandSync services when unloading the integration."""
    services = [
        const.SERVICE_CREATE_EVENT,
        const.SERVICE_UPDATE_EVENT,
        const.SERVICE_DELETE_EVENT,
        const.SERVICE_GET_OCCURRENCES,
    ]

    for service in services:
        if hass.services.has_service(const.DOMAIN, service):
            hass.services.async_remove(const.DOMAIN, service)

    const.LOGGER.info("INFO: BandSync services have been unregistered")
