# File: __init__.py
"""Initialization file for the KidsDefis integration.

Handles setting up the integration, including loading configuration entries,
initializing data storage, and preparing the coordinator for data handling.

Key Features:
- Config entry setup and unload support.
- Household row created on first setup from the config entry data.
- Coordinator initialization for periodic housekeeping.
"""

from __future__ import annotations

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryNotReady

from . import const
from .coordinator import KidsDefisDataCoordinator
from .services import async_setup_services, async_unload_services
from .store import KidsDefisStore


async def _async_ensure_household(
    hass: HomeAssistant, entry: ConfigEntry, coordinator: KidsDefisDataCoordinator
) -> int:
    """Return the entry's household id, creating the row on first setup."""
    household_id = entry.data.get(const.CONF_HOUSEHOLD_ID)
    if (
        household_id is not None
        and coordinator.household_manager.get_household(household_id) is not None
    ):
        return household_id

    household_id = await coordinator.household_manager.async_create_household(
        entry.data.get(const.CONF_HOUSEHOLD_NAME, entry.title),
        entry.data.get(const.CONF_REFERENT_NAME, ""),
    )
    hass.config_entries.async_update_entry(
        entry, data={**entry.data, const.CONF_HOUSEHOLD_ID: household_id}
    )
    const.LOGGER.info("Created household %s for entry %s", household_id, entry.entry_id)
    return household_id


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up the integration from a config entry."""
    const.LOGGER.info("Starting setup for KidsDefis entry: %s", entry.entry_id)

    # Initialize the store to handle persistent data.
    store = KidsDefisStore(hass, const.STORAGE_KEY)
    await store.async_initialize()

    coordinator = KidsDefisDataCoordinator(hass, entry, store)
    await coordinator.async_setup_managers()
    await _async_ensure_household(hass, entry, coordinator)

    try:
        await coordinator.async_config_entry_first_refresh()
    except ConfigEntryNotReady as e:
        const.LOGGER.error("Failed to refresh coordinator data: %s", e)
        raise

    hass.data.setdefault(const.DOMAIN, {})[entry.entry_id] = {
        const.COORDINATOR: coordinator,
        const.STORE: store,
    }

    async_setup_services(hass)

    await hass.config_entries.async_forward_entry_setups(entry, const.PLATFORMS)
    entry.async_on_unload(entry.add_update_listener(_async_update_listener))

    const.LOGGER.info("KidsDefis setup complete for entry: %s", entry.entry_id)
    return True


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry when its options change."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    const.LOGGER.info("Unloading KidsDefis entry: %s", entry.entry_id)

    unload_ok = await hass.config_entries.async_unload_platforms(entry, const.PLATFORMS)

    if unload_ok:
        hass.data[const.DOMAIN].pop(entry.entry_id)
        if not hass.data[const.DOMAIN]:
            await async_unload_services(hass)

    return unload_ok


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle removal of a config entry."""
    const.LOGGER.info("Removing KidsDefis entry: %s", entry.entry_id)

    store = KidsDefisStore(hass, const.STORAGE_KEY)
    await store.async_delete_storage()

    const.LOGGER.info("KidsDefis entry data cleared: %s", entry.entry_id)
