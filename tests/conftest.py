"""Shared fixtures for BandSync tests."""

from typing import Any
from unittest.mock import patch

import pytest
from homeassistant.core import HomeAssistant
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.bandsync.const import (
    CONF_BAND_NAME,
    CONF_CALENDAR_FUTURE_MONTHS,
    CONF_CALENDAR_PAST_MONTHS,
    CONF_OCCURRENCE_CAP,
    DATA_EVENTS,
    DATA_META,
    DATA_META_SCHEMA_VERSION,
    DEFAULT_CALENDAR_FUTURE_MONTHS,
    DEFAULT_CALENDAR_PAST_MONTHS,
    DEFAULT_OCCURRENCE_CAP,
    DOMAIN,
    SCHEMA_VERSION,
)

# pylint: disable=invalid-name
pytest_plugins = "pytest_homeassistant_custom_component"
# pylint: enable=invalid-name


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations: Any) -> Any:
    """Enable custom integrations in tests."""
    # pylint: disable=unused-argument
    yield


@pytest.fixture
def mock_config_entry() -> MockConfigEntry:
    """Return a mock config entry."""
    return MockConfigEntry(
        domain=DOMAIN,
        title="The Testers",
        data={CONF_BAND_NAME: "The Testers"},
        options={
            CONF_CALENDAR_PAST_MONTHS: DEFAULT_CALENDAR_PAST_MONTHS,
            CONF_CALENDAR_FUTURE_MONTHS: DEFAULT_CALENDAR_FUTURE_MONTHS,
            CONF_OCCURRENCE_CAP: DEFAULT_OCCURRENCE_CAP,
        },
        entry_id="test_entry_id",
        unique_id="test_unique_id",
    )


@pytest.fixture
def mock_events() -> dict[str, dict[str, Any]]:
    """Return stored event records keyed by internal_id (override per module)."""
    return {}


@pytest.fixture
def mock_storage_data(
    mock_events: dict[str, dict[str, Any]],  # pylint: disable=redefined-outer-name
) -> dict[str, Any]:
    """Return mock storage data structure."""
    return {
        DATA_META: {DATA_META_SCHEMA_VERSION: SCHEMA_VERSION},
        DATA_EVENTS: mock_events,
    }


@pytest.fixture
async def init_integration(
    hass: HomeAssistant,
    mock_config_entry: MockConfigEntry,  # pylint: disable=redefined-outer-name
    mock_storage_data: dict[str, Any],  # pylint: disable=redefined-outer-name
) -> MockConfigEntry:
    """Set up the BandSync integration for testing with mocked storage."""
    await hass.config.async_set_time_zone("UTC")
    mock_config_entry.add_to_hass(hass)

    # Mock the Store's async_load to return our test data
    with patch(
        "homeassistant.helpers.storage.Store.async_load",
        return_value=mock_storage_data,
    ):
        assert await hass.config_entries.async_setup(mock_config_entry.entry_id)
        await hass.async_block_till_done()

    return mock_config_entry


def create_mock_event_data(
    event_id: str,
    title: str = "Rehearsal",
    date: str = "2024-01-01T19:00:00+00:00",
    **overrides: Any,
) -> dict[str, Any]:
    """Create a stored event record for testing."""
    record: dict[str, Any] = {
        "internal_id": event_id,
        "title": title,
        "date": date,
        "duration_minutes": 120,
        "all_day": False,
        "type": "Rehearsal",
        "status": "Scheduled",
        "location": "Studio B",
        "notes": "",
        "group_id": "",
        "is_personal": False,
        "is_recurring": False,
        "recurrence_frequency": None,
        "recurrence_interval": 1,
        "recurrence_end_date": None,
        "recurrence_days_of_week": None,
        "recurrence_parent_id": None,
        "exceptions": [],
    }
    record.update(overrides)
    return record
