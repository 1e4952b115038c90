"""Tests for the BandSync calendar platform.

Covers expansion of recurring events into occurrences through the calendar
HTTP API, skipped occurrences, the next-event state and the websocket
create/delete commands.
"""

# pylint: disable=redefined-outer-name  # Pytest fixtures
# pylint: disable=unused-argument  # Fixtures needed for test setup

from http import HTTPStatus
from typing import Any, Callable, Coroutine
from zoneinfo import ZoneInfo

import pytest
from freezegun import freeze_time
from homeassistant.core import HomeAssistant
from homeassistant.helpers.dispatcher import async_dispatcher_send
from pytest_homeassistant_custom_component.common import MockConfigEntry
from pytest_homeassistant_custom_component.typing import (
    ClientSessionGenerator,
    WebSocketGenerator,
)

from custom_components.bandsync import const
from custom_components.bandsync.calendar import recurrence_fields_from_rrule
from custom_components.bandsync.engines.recurrence_engine import InvalidRecurrenceRule
from custom_components.bandsync.utils import dt_utils

from tests.conftest import create_mock_event_data

CALENDAR_ENTITY_ID = "calendar.the_testers"


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def mock_events() -> dict[str, dict[str, Any]]:
    """One-off gig plus a Monday/Wednesday rehearsal with one skipped date."""
    return {
        "evt-gig": create_mock_event_data(
            "evt-gig",
            title="Gig at The Lantern",
            date="2024-01-20T19:00:00+00:00",
            type="Concert",
            location="The Lantern",
        ),
        "evt-rehearsal": create_mock_event_data(
            "evt-rehearsal",
            title="Rehearsal",
            date="2024-01-01T18:00:00+00:00",
            is_recurring=True,
            recurrence_frequency=const.FREQUENCY_WEEKLY,
            recurrence_days_of_week=[const.WEEKDAY_MONDAY, const.WEEKDAY_WEDNESDAY],
            recurrence_end_date="2024-01-31T23:59:00+00:00",
            exceptions=["2024-01-10T18:00:00+00:00"],
        ),
        "evt-broken": create_mock_event_data(
            "evt-broken",
            title="Broken",
            is_recurring=True,
            recurrence_frequency="fortnightly",
        ),
    }


@pytest.fixture
def get_events_fixture(
    hass_client: ClientSessionGenerator,
) -> Callable[[str, str, str], Coroutine[Any, Any, list[dict[str, Any]]]]:
    """Fetch calendar events from HTTP API."""

    async def _fetch(entity_id: str, start: str, end: str) -> list[dict[str, Any]]:
        """Fetch events from calendar API."""
        import urllib.parse  # pylint: disable=import-outside-toplevel

        client = await hass_client()
        url = (
            f"/api/calendars/{entity_id}"
            f"?start={urllib.parse.quote(start)}"
            f"&end={urllib.parse.quote(end)}"
        )
        response = await client.get(url)
        assert (
            response.status == HTTPStatus.OK
        ), f"Calendar API returned {response.status}"
        return await response.json()

    return _fetch


def _store(hass: HomeAssistant, entry: MockConfigEntry):
    return hass.data[const.DOMAIN][entry.entry_id][const.STORE]


# ============================================================================
# Read path
# ============================================================================


@freeze_time("2024-01-15 12:00:00", tz_offset=0)
async def test_recurring_event_expanded_in_window(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,
    get_events_fixture: Callable,
) -> None:
    """Weekly occurrences appear once each; the skipped date is missing."""
    events = await get_events_fixture(
        CALENDAR_ENTITY_ID, "2024-01-01T00:00:00Z", "2024-01-16T00:00:00Z"
    )

    assert [event["start"]["dateTime"] for event in events] == [
        "2024-01-01T18:00:00+00:00",
        "2024-01-03T18:00:00+00:00",
        "2024-01-08T18:00:00+00:00",
        "2024-01-15T18:00:00+00:00",
    ]
    assert all(event["summary"] == "Rehearsal" for event in events)
    assert all(event["uid"] == "evt-rehearsal" for event in events)
    assert events[0]["recurrence_id"] == "2024-01-01T18:00:00+00:00"
    assert events[0]["rrule"] == (
        "FREQ=WEEKLY;INTERVAL=1;BYDAY=MO,WE;WKST=MO;UNTIL=20240131T235900Z"
    )
    # 120 minute rehearsals
    assert events[0]["end"]["dateTime"] == "2024-01-01T20:00:00+00:00"


@freeze_time("2024-01-15 12:00:00", tz_offset=0)
async def test_one_off_and_recurring_sorted(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,
    get_events_fixture: Callable,
) -> None:
    """One-off events are merged with occurrences in start order."""
    events = await get_events_fixture(
        CALENDAR_ENTITY_ID, "2024-01-16T00:00:00Z", "2024-02-15T00:00:00Z"
    )

    assert [event["start"]["dateTime"][:10] for event in events] == [
        "2024-01-17",
        "2024-01-20",
        "2024-01-22",
        "2024-01-24",
        "2024-01-29",
        "2024-01-31",
    ]
    gig = events[1]
    assert gig["summary"] == "Gig at The Lantern"
    assert gig["location"] == "The Lantern"
    assert gig["recurrence_id"] is None
    assert gig["rrule"] is None


@freeze_time("2024-01-15 12:00:00", tz_offset=0)
async def test_event_overlapping_window_start(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,
    get_events_fixture: Callable,
) -> None:
    """An occurrence still running at the window start is included."""
    events = await get_events_fixture(
        CALENDAR_ENTITY_ID, "2024-01-15T19:00:00Z", "2024-01-15T23:00:00Z"
    )

    assert len(events) == 1
    assert events[0]["start"]["dateTime"] == "2024-01-15T18:00:00+00:00"


@freeze_time("2024-01-15 12:00:00", tz_offset=0)
async def test_state_shows_next_occurrence(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,
) -> None:
    """The entity state describes the next upcoming occurrence."""
    # Entity state is refreshed whenever the store announces a change
    async_dispatcher_send(
        hass, const.SIGNAL_EVENTS_UPDATED.format(init_integration.entry_id)
    )
    await hass.async_block_till_done()

    state = hass.states.get(CALENDAR_ENTITY_ID)

    assert state is not None
    assert state.state == "off"
    assert state.attributes["message"] == "Rehearsal"
    assert state.attributes["start_time"] == "2024-01-15 18:00:00"


@freeze_time("2024-01-15 12:00:00", tz_offset=0)
async def test_invalid_record_skipped(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,
    get_events_fixture: Callable,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Records with an invalid recurrence are logged and left out."""
    events = await get_events_fixture(
        CALENDAR_ENTITY_ID, "2023-12-01T00:00:00Z", "2024-02-01T00:00:00Z"
    )

    assert all(event["uid"] != "evt-broken" for event in events)
    assert "Skipping event 'evt-broken'" in caplog.text


# ============================================================================
# Write path
# ============================================================================


@freeze_time("2024-01-15 12:00:00", tz_offset=0)
async def test_delete_single_occurrence(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,
    hass_ws_client: WebSocketGenerator,
) -> None:
    """Deleting one occurrence records an exception on the series."""
    client = await hass_ws_client(hass)
    await client.send_json_auto_id(
        {
            "type": "calendar/event/delete",
            "entity_id": CALENDAR_ENTITY_ID,
            "uid": "evt-rehearsal",
            "recurrence_id": "2024-01-17T18:00:00+00:00",
        }
    )
    response = await client.receive_json()

    assert response["success"]
    record = _store(hass, init_integration).get_event("evt-rehearsal")
    assert record[const.DATA_EVENT_EXCEPTIONS] == [
        "2024-01-10T18:00:00+00:00",
        "2024-01-17T18:00:00+00:00",
    ]


@freeze_time("2024-01-15 12:00:00", tz_offset=0)
async def test_delete_this_and_future(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,
    hass_ws_client: WebSocketGenerator,
) -> None:
    """Deleting an occurrence and its successors ends the series before it."""
    client = await hass_ws_client(hass)
    await client.send_json_auto_id(
        {
            "type": "calendar/event/delete",
            "entity_id": CALENDAR_ENTITY_ID,
            "uid": "evt-rehearsal",
            "recurrence_id": "2024-01-22T18:00:00+00:00",
            "recurrence_range": "THISANDFUTURE",
        }
    )
    response = await client.receive_json()

    assert response["success"]
    record = _store(hass, init_integration).get_event("evt-rehearsal")
    assert record[const.DATA_EVENT_RECURRENCE_END_DATE] == "2024-01-22T17:59:59+00:00"


@freeze_time("2024-01-15 12:00:00", tz_offset=0)
async def test_delete_whole_event(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,
    hass_ws_client: WebSocketGenerator,
) -> None:
    """Deleting without a recurrence id removes the record."""
    client = await hass_ws_client(hass)
    await client.send_json_auto_id(
        {
            "type": "calendar/event/delete",
            "entity_id": CALENDAR_ENTITY_ID,
            "uid": "evt-gig",
        }
    )
    response = await client.receive_json()

    assert response["success"]
    assert _store(hass, init_integration).get_event("evt-gig") is None


@freeze_time("2024-01-15 12:00:00", tz_offset=0)
async def test_delete_unknown_event(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,
    hass_ws_client: WebSocketGenerator,
) -> None:
    """Unknown uids are reported as failures."""
    client = await hass_ws_client(hass)
    await client.send_json_auto_id(
        {
            "type": "calendar/event/delete",
            "entity_id": CALENDAR_ENTITY_ID,
            "uid": "missing",
        }
    )
    response = await client.receive_json()

    assert not response["success"]


@freeze_time("2024-01-15 12:00:00", tz_offset=0)
async def test_create_recurring_event(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,
    hass_ws_client: WebSocketGenerator,
) -> None:
    """Calendar-created events keep their RRULE as recurrence fields."""
    client = await hass_ws_client(hass)
    await client.send_json_auto_id(
        {
            "type": "calendar/event/create",
            "entity_id": CALENDAR_ENTITY_ID,
            "event": {
                "summary": "Photo shoot",
                "dtstart": "2024-02-01T20:00:00+00:00",
                "dtend": "2024-02-01T22:00:00+00:00",
                "rrule": "FREQ=WEEKLY;BYDAY=TH;UNTIL=20240301",
            },
        }
    )
    response = await client.receive_json()

    assert response["success"]
    created = [
        record
        for record in _store(hass, init_integration).get_events().values()
        if record[const.DATA_EVENT_TITLE] == "Photo shoot"
    ]
    assert len(created) == 1
    record = created[0]
    assert record[const.DATA_EVENT_DATE] == "2024-02-01T20:00:00+00:00"
    assert record[const.DATA_EVENT_DURATION_MINUTES] == 120
    assert record[const.DATA_EVENT_IS_RECURRING] is True
    assert record[const.DATA_EVENT_RECURRENCE_FREQUENCY] == const.FREQUENCY_WEEKLY
    assert record[const.DATA_EVENT_RECURRENCE_DAYS_OF_WEEK] == [
        const.WEEKDAY_THURSDAY
    ]
    # A date-only UNTIL keeps the occurrence on that day
    assert record[const.DATA_EVENT_RECURRENCE_END_DATE] == (
        "2024-03-01T23:59:59.999999+00:00"
    )


@freeze_time("2024-01-15 12:00:00", tz_offset=0)
async def test_create_invalid_interval(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,
    hass_ws_client: WebSocketGenerator,
) -> None:
    """Rules with a zero interval are rejected and nothing is stored."""
    client = await hass_ws_client(hass)
    await client.send_json_auto_id(
        {
            "type": "calendar/event/create",
            "entity_id": CALENDAR_ENTITY_ID,
            "event": {
                "summary": "Soundcheck",
                "dtstart": "2024-02-01T20:00:00+00:00",
                "dtend": "2024-02-01T21:00:00+00:00",
                "rrule": "FREQ=DAILY;INTERVAL=0",
            },
        }
    )
    response = await client.receive_json()

    assert not response["success"]
    assert len(_store(hass, init_integration).get_events()) == 3


@freeze_time("2024-01-15 12:00:00", tz_offset=0)
async def test_create_with_count_rejected(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,
    hass_ws_client: WebSocketGenerator,
) -> None:
    """Rules the store cannot reproduce are refused instead of rewritten."""
    client = await hass_ws_client(hass)
    await client.send_json_auto_id(
        {
            "type": "calendar/event/create",
            "entity_id": CALENDAR_ENTITY_ID,
            "event": {
                "summary": "Three-night residency",
                "dtstart": "2024-02-01T20:00:00+00:00",
                "dtend": "2024-02-01T23:00:00+00:00",
                "rrule": "FREQ=DAILY;COUNT=3",
            },
        }
    )
    response = await client.receive_json()

    assert not response["success"]
    assert len(_store(hass, init_integration).get_events()) == 3


@freeze_time("2024-01-15 12:00:00", tz_offset=0)
async def test_create_all_day_event(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,
    hass_ws_client: WebSocketGenerator,
    get_events_fixture: Callable,
) -> None:
    """All-day events are stored as such and come back as all-day occurrences."""
    client = await hass_ws_client(hass)
    await client.send_json_auto_id(
        {
            "type": "calendar/event/create",
            "entity_id": CALENDAR_ENTITY_ID,
            "event": {
                "summary": "Festival weekend",
                "dtstart": "2024-02-10",
                "dtend": "2024-02-12",
                "rrule": "FREQ=WEEKLY;UNTIL=20240224",
            },
        }
    )
    response = await client.receive_json()
    assert response["success"]

    record = next(
        record
        for record in _store(hass, init_integration).get_events().values()
        if record[const.DATA_EVENT_TITLE] == "Festival weekend"
    )
    assert record[const.DATA_EVENT_ALL_DAY] is True
    assert record[const.DATA_EVENT_DATE] == "2024-02-10T00:00:00+00:00"
    assert record[const.DATA_EVENT_DURATION_MINUTES] == 2 * const.MINUTES_PER_DAY

    events = await get_events_fixture(
        CALENDAR_ENTITY_ID, "2024-02-05T00:00:00Z", "2024-03-05T00:00:00Z"
    )
    festival = [event for event in events if event["summary"] == "Festival weekend"]
    assert [event["start"] for event in festival] == [
        {"date": "2024-02-10"},
        {"date": "2024-02-17"},
        {"date": "2024-02-24"},
    ]
    assert festival[0]["end"] == {"date": "2024-02-12"}


# ============================================================================
# RRULE mapping
# ============================================================================


class TestRecurrenceFieldsFromRrule:
    """Test mapping RRULE strings onto stored recurrence fields."""

    @pytest.fixture(autouse=True)
    def utc_default_timezone(self):
        """Pin the timezone used for date-only UNTIL values."""
        original = dt_utils.get_default_timezone()
        dt_utils.set_default_timezone(ZoneInfo("UTC"))
        yield
        dt_utils.set_default_timezone(original)

    def test_full_rule(self) -> None:
        fields = recurrence_fields_from_rrule(
            "FREQ=WEEKLY;INTERVAL=2;BYDAY=SU,SA;UNTIL=20240301"
        )

        assert fields == {
            const.DATA_EVENT_IS_RECURRING: True,
            const.DATA_EVENT_RECURRENCE_FREQUENCY: const.FREQUENCY_WEEKLY,
            const.DATA_EVENT_RECURRENCE_INTERVAL: 2,
            const.DATA_EVENT_RECURRENCE_END_DATE: "2024-03-01T23:59:59.999999+00:00",
            const.DATA_EVENT_RECURRENCE_DAYS_OF_WEEK: [
                const.WEEKDAY_SUNDAY,
                const.WEEKDAY_SATURDAY,
            ],
        }

    def test_wkst_and_datetime_until(self) -> None:
        fields = recurrence_fields_from_rrule(
            "RRULE:FREQ=DAILY;WKST=MO;UNTIL=20240301T180000Z"
        )

        assert fields[const.DATA_EVENT_RECURRENCE_FREQUENCY] == const.FREQUENCY_DAILY
        assert fields[const.DATA_EVENT_RECURRENCE_END_DATE] == (
            "2024-03-01T18:00:00+00:00"
        )

    @pytest.mark.parametrize(
        ("rrule_str", "reason"),
        [
            ("FREQ=DAILY;COUNT=3", "count"),
            ("FREQ=MONTHLY;BYMONTHDAY=15", "bymonthday"),
            ("FREQ=MONTHLY;BYDAY=TU;BYSETPOS=2", "bysetpos"),
            ("FREQ=MONTHLY;BYDAY=2TU", "days_of_week"),
            ("FREQ=MONTHLY;BYDAY=TU", "days_of_week"),
            ("FREQ=WEEKLY;BYDAY=1MO,WE", "days_of_week"),
            ("FREQ=WEEKLY;WKST=XX", "wkst"),
        ],
    )
    def test_unrepresentable_parts_rejected(self, rrule_str: str, reason: str) -> None:
        with pytest.raises(InvalidRecurrenceRule) as err:
            recurrence_fields_from_rrule(rrule_str)

        assert err.value.reason == reason

    @pytest.mark.parametrize(
        "rrule_str",
        ["FREQ=SECONDLY", "FREQ=DAILY;INTERVAL=x", "FREQ=WEEKLY;BYDAY=XX", "FREQ"],
    )
    def test_invalid_rules(self, rrule_str: str) -> None:
        with pytest.raises(InvalidRecurrenceRule):
            recurrence_fields_from_rrule(rrule_str)
