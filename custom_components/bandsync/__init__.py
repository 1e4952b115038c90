# File: __init__.py
"""Initialization file for the BandSync integration.

Handles setting up the integration, including loading configuration entries,
initializing event storage and registering the calendar platform and services.

Key Features:
- Config entry setup and unload support.
- Storage management for persistent event records.
- Services for managing events from scripts and automations.
"""

from __future__ import annotations

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from . import const
from .services import async_setup_services, async_unload_services
from .store import BandSyncStore


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up the integration from a config entry."""
    const.LOGGER.info("INFO: Starting setup for BandSync entry: %s", entry.entry_id)

    # Must run before anything parses or expands event dates
    const.set_default_timezone(hass)

    store = BandSyncStore(hass, entry.entry_id)
    await store.async_initialize()

    hass.data.setdefault(const.DOMAIN, {})[entry.entry_id] = {
        const.STORE: store,
    }

    async_setup_services(hass)

    await hass.config_entries.async_forward_entry_setups(entry, const.PLATFORMS)

    # Options change the calendar window and occurrence cap
    entry.async_on_unload(entry.add_update_listener(async_reload_entry))

    const.LOGGER.info("INFO: BandSync setup complete for entry: %s", entry.entry_id)
    return True


async def async_reload_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry after its options were changed."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    const.LOGGER.info("INFO: Unloading BandSync entry: %s", entry.entry_id)

    unload_ok = await hass.config_entries.async_unload_platforms(entry, const.PLATFORMS)

    if unload_ok:
        hass.data[const.DOMAIN].pop(entry.entry_id)

        if not hass.data[const.DOMAIN]:
            await async_unload_services(hass)

    return unload_ok


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle removal of a config entry by deleting its stored events."""
    const.LOGGER.info("INFO: Removing BandSync entry: %s", entry.entry_id)

    store = BandSyncStore(hass, entry.entry_id)
    await store.async_delete_storage()

    const.LOGGER.info("INFO: BandSync entry data cleared: %s", entry.entry_id)
