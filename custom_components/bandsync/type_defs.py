"""Type definitions for BandSync data structures.

Stored records are plain JSON dicts (Home Assistant Store). TypedDicts
document their fixed keys; collections keyed by runtime ids stay
`dict[str, ...]`.

IMPORTANT: This file must NOT import from store.py, calendar.py or services.py.
Only import from typing (type machinery).
"""

from __future__ import annotations

from typing import NotRequired, TypedDict

EventId = str


class EventData(TypedDict):
    """One band event as persisted in storage.

    `date` and `recurrence_end_date` are ISO 8601 UTC strings. For `all_day`
    events `date` is local midnight of the first day and only the local
    calendar day of each instant is meaningful.
    `recurrence_days_of_week` uses 1=Sunday..7=Saturday.
    `exceptions` lists UTC ISO instants of deleted single occurrences.
    """

    internal_id: EventId
    title: str
    date: str
    duration_minutes: NotRequired[int]
    all_day: NotRequired[bool]
    type: NotRequired[str]
    status: NotRequired[str]
    location: NotRequired[str]
    notes: NotRequired[str]
    group_id: NotRequired[str]
    is_personal: NotRequired[bool]
    is_recurring: NotRequired[bool]
    recurrence_frequency: NotRequired[str | None]
    recurrence_interval: NotRequired[int]
    recurrence_end_date: NotRequired[str | None]
    recurrence_days_of_week: NotRequired[list[int] | None]
    recurrence_parent_id: NotRequired[str | None]
    exceptions: NotRequired[list[str]]


EventsCollection = dict[EventId, EventData]


class MetaData(TypedDict):
    """Storage metadata block."""

    schema_version: int


class StorageData(TypedDict):
    """Top-level structure of the BandSync storage file."""

    meta: MetaData
    events: EventsCollection
