# File: coordinator.py
"""Coordinator for the KidsDefis integration.

Wires the store, the runtime state slot and the managers together for one
config entry. The managers own the workflows; the coordinator only holds
them and runs periodic housekeeping (application log retention).
"""

from __future__ import annotations

from datetime import timedelta
import random
from typing import TYPE_CHECKING, Any

from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from . import const
from .managers import (
    CatalogManager,
    ChallengeSelectionManager,
    DefiHistoryManager,
    EconomyManager,
    HouseholdManager,
    LogManager,
    SessionManager,
)
from .runtime_state import RuntimeStateStore

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from .store import KidsDefisStore


class KidsDefisDataCoordinator(DataUpdateCoordinator):
    """Coordinator for KidsDefis integration.

    Holds one instance of each manager. Managers reach each other through
    this object (``coordinator.log_manager``, ``coordinator.history_manager``...).
    """

    config_entry: ConfigEntry

    def __init__(
        self,
        hass: HomeAssistant,
        config_entry: ConfigEntry,
        store: KidsDefisStore,
    ):
        """Initialize the coordinator."""
        super().__init__(
            hass,
            const.LOGGER,
            config_entry=config_entry,
            name=f"{const.DOMAIN}{const.COORDINATOR_SUFFIX}",
            update_interval=timedelta(minutes=const.DEFAULT_UPDATE_INTERVAL),
        )
        self.store = store
        self.runtime_state = RuntimeStateStore(store)

        seed = config_entry.options.get(const.CONF_SELECTION_SEED)
        rng = random.Random(seed) if seed not in (None, "") else random.Random()

        # Sink first: every other manager logs through it
        self.log_manager = LogManager(hass, self)
        self.household_manager = HouseholdManager(hass, self)
        self.history_manager = DefiHistoryManager(hass, self)
        self.economy_manager = EconomyManager(hass, self)
        self.session_manager = SessionManager(hass, self)
        self.selection_manager = ChallengeSelectionManager(hass, self, rng=rng)
        self.catalog_manager = CatalogManager(hass, self)

    @property
    def managers(self) -> list[Any]:
        """All managers in setup order."""
        return [
            self.log_manager,
            self.household_manager,
            self.history_manager,
            self.economy_manager,
            self.session_manager,
            self.selection_manager,
            self.catalog_manager,
        ]

    @property
    def log_retention_days(self) -> int:
        """Application log retention from the options."""
        return int(
            self.config_entry.options.get(
                const.CONF_LOG_RETENTION_DAYS, const.DEFAULT_LOG_RETENTION_DAYS
            )
        )

    async def async_setup_managers(self) -> None:
        """Let every manager register its signal listeners."""
        for manager in self.managers:
            await manager.async_setup()

    async def _async_update_data(self) -> dict[str, Any]:
        """Periodic housekeeping; returns the storage document."""
        try:
            purged = await self.log_manager.async_purge_old_logs(
                self.log_retention_days
            )
            if purged:
                const.LOGGER.debug("Purged %s application log rows", purged)
        except Exception as err:
            raise UpdateFailed(f"Error updating KidsDefis data: {err}") from err
        return self.store.data
