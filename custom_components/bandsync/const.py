# File: const.py
"""Constants for the BandSync integration.

This file centralizes configuration keys, defaults, storage record keys,
service names and translation keys used across the integration.
"""

import logging

import homeassistant.util.dt as dt_util
from homeassistant.const import Platform

from .utils import dt_utils


def set_default_timezone(hass):
    """Set the default timezone based on the Home Assistant configuration."""
    global DEFAULT_TIME_ZONE
    DEFAULT_TIME_ZONE = dt_util.get_time_zone(hass.config.time_zone)
    dt_utils.set_default_timezone(DEFAULT_TIME_ZONE)


# ------------------------------------------------------------------------------------------------
# General / Integration Information
# ------------------------------------------------------------------------------------------------
DOMAIN = "bandsync"

LOGGER = logging.getLogger(__package__)

PLATFORMS = [
    Platform.CALENDAR,
]

# hass.data keys
STORE = "store"

# Storage and Versioning
STORAGE_KEY = "bandsync_data"
STORAGE_VERSION = 1
SCHEMA_VERSION = 1

# Default timezone: initially None, to be set once hass is available.
DEFAULT_TIME_ZONE = None

# Dispatcher signal fired after any event record changes (formatted with entry_id)
SIGNAL_EVENTS_UPDATED = "bandsync_events_updated_{}"

# ------------------------------------------------------------------------------------------------
# Configuration Keys
# ------------------------------------------------------------------------------------------------
CONF_BAND_NAME = "band_name"
CONF_CALENDAR_PAST_MONTHS = "calendar_past_months"
CONF_CALENDAR_FUTURE_MONTHS = "calendar_future_months"
CONF_OCCURRENCE_CAP = "occurrence_cap"

CONFIG_FLOW_STEP_USER = "user"
OPTIONS_FLOW_STEP_INIT = "init"

# ------------------------------------------------------------------------------------------------
# Defaults
# ------------------------------------------------------------------------------------------------
DEFAULT_BAND_NAME = "BandSync"
DEFAULT_CALENDAR_PAST_MONTHS = 3
DEFAULT_CALENDAR_FUTURE_MONTHS = 6
DEFAULT_OCCURRENCE_CAP = 50
DEFAULT_RECURRENCE_HORIZON_YEARS = 2
DEFAULT_RECURRENCE_INTERVAL = 1
DEFAULT_EVENT_DURATION_MINUTES = 60
DEFAULT_EVENT_TYPE = "Other"
DEFAULT_EVENT_STATUS = "Scheduled"

MAX_CALENDAR_MONTHS = 36
MAX_OCCURRENCE_CAP = 1000
MAX_RECURRENCE_INTERVAL = 30

MINUTES_PER_DAY = 1440

# ------------------------------------------------------------------------------------------------
# Recurrence
# ------------------------------------------------------------------------------------------------
FREQUENCY_NONE = "none"
FREQUENCY_DAILY = "daily"
FREQUENCY_WEEKLY = "weekly"
FREQUENCY_MONTHLY = "monthly"
FREQUENCY_YEARLY = "yearly"

FREQUENCY_OPTIONS = [
    FREQUENCY_DAILY,
    FREQUENCY_WEEKLY,
    FREQUENCY_MONTHLY,
    FREQUENCY_YEARLY,
]

# Weekday numbering used in stored records: 1=Sunday .. 7=Saturday
WEEKDAY_SUNDAY = 1
WEEKDAY_MONDAY = 2
WEEKDAY_TUESDAY = 3
WEEKDAY_WEDNESDAY = 4
WEEKDAY_THURSDAY = 5
WEEKDAY_FRIDAY = 6
WEEKDAY_SATURDAY = 7

WEEKDAY_OPTIONS = list(range(WEEKDAY_SUNDAY, WEEKDAY_SATURDAY + 1))

# ------------------------------------------------------------------------------------------------
# Event Types
# ------------------------------------------------------------------------------------------------
EVENT_TYPE_CONCERT = "Concert"
EVENT_TYPE_FESTIVAL = "Festival"
EVENT_TYPE_MEETING = "Meeting"
EVENT_TYPE_REHEARSAL = "Rehearsal"
EVENT_TYPE_PHOTO_SESSION = "Photo Session"
EVENT_TYPE_INTERVIEW = "Interview"
EVENT_TYPE_OTHER = "Other"

EVENT_TYPE_OPTIONS = [
    EVENT_TYPE_CONCERT,
    EVENT_TYPE_FESTIVAL,
    EVENT_TYPE_MEETING,
    EVENT_TYPE_REHEARSAL,
    EVENT_TYPE_PHOTO_SESSION,
    EVENT_TYPE_INTERVIEW,
    EVENT_TYPE_OTHER,
]

# ------------------------------------------------------------------------------------------------
# Storage Record Keys
# ------------------------------------------------------------------------------------------------
DATA_META = "meta"
DATA_META_SCHEMA_VERSION = "schema_version"
DATA_EVENTS = "events"

DATA_EVENT_INTERNAL_ID = "internal_id"
DATA_EVENT_TITLE = "title"
DATA_EVENT_DATE = "date"
DATA_EVENT_DURATION_MINUTES = "duration_minutes"
DATA_EVENT_ALL_DAY = "all_day"
DATA_EVENT_TYPE = "type"
DATA_EVENT_STATUS = "status"
DATA_EVENT_LOCATION = "location"
DATA_EVENT_NOTES = "notes"
DATA_EVENT_GROUP_ID = "group_id"
DATA_EVENT_IS_PERSONAL = "is_personal"
DATA_EVENT_IS_RECURRING = "is_recurring"
DATA_EVENT_RECURRENCE_FREQUENCY = "recurrence_frequency"
DATA_EVENT_RECURRENCE_INTERVAL = "recurrence_interval"
DATA_EVENT_RECURRENCE_END_DATE = "recurrence_end_date"
DATA_EVENT_RECURRENCE_DAYS_OF_WEEK = "recurrence_days_of_week"
DATA_EVENT_RECURRENCE_PARENT_ID = "recurrence_parent_id"
DATA_EVENT_EXCEPTIONS = "exceptions"

# ------------------------------------------------------------------------------------------------
# Services
# ------------------------------------------------------------------------------------------------
SERVICE_CREATE_EVENT = "create_event"
SERVICE_UPDATE_EVENT = "update_event"
SERVICE_DELETE_EVENT = "delete_event"
SERVICE_GET_OCCURRENCES = "get_occurrences"

FIELD_EVENT_ID = "event_id"
FIELD_TITLE = "title"
FIELD_DATE = "date"
FIELD_DURATION_MINUTES = "duration_minutes"
FIELD_ALL_DAY = "all_day"
FIELD_TYPE = "type"
FIELD_STATUS = "status"
FIELD_LOCATION = "location"
FIELD_NOTES = "notes"
FIELD_IS_PERSONAL = "is_personal"
FIELD_FREQUENCY = "frequency"
FIELD_INTERVAL = "interval"
FIELD_END_DATE = "end_date"
FIELD_DAYS_OF_WEEK = "days_of_week"
FIELD_OCCURRENCE = "occurrence"
FIELD_START = "start"
FIELD_END = "end"

ATTR_EVENT_ID = "event_id"
ATTR_OCCURRENCES = "occurrences"
ATTR_SUMMARY = "summary"
ATTR_RRULE = "rrule"

# ------------------------------------------------------------------------------------------------
# Translation Keys
# ------------------------------------------------------------------------------------------------
TRANS_KEY_ERROR_SINGLE_INSTANCE = "single_instance_allowed"
TRANS_KEY_ERROR_EVENT_NOT_FOUND = "event_not_found"
TRANS_KEY_ERROR_INVALID_RECURRENCE = "invalid_recurrence"
TRANS_KEY_ERROR_INVALID_DATE = "invalid_date"
TRANS_KEY_ERROR_NO_ENTRY = "no_entry_loaded"

CFOP_ERROR_BAND_NAME = "invalid_band_name"
