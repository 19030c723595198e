"""Diagnostics support for KidsDefis integration.

The diagnostics JSON returns raw storage data, identical to the
kidsdefis_data file, plus the entry options for context.
"""

from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from . import const
from .coordinator import KidsDefisDataCoordinator


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for a config entry.

    The storage document is returned untransformed so it can be pasted back
    into the storage file during data recovery.
    """
    coordinator: KidsDefisDataCoordinator = hass.data[const.DOMAIN][entry.entry_id][
        const.COORDINATOR
    ]

    return {
        "options": dict(entry.options),
        "storage": coordinator.store.data,
    }
