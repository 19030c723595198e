"""Shared fixtures for KidsDefis tests."""

from typing import Any

import pytest
from homeassistant.core import HomeAssistant
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.kidsdefis.const import (
    CONF_BUNDLE_CAP,
    CONF_HOUSEHOLD_NAME,
    CONF_LOG_RETENTION_DAYS,
    CONF_LOOKBACK_DAYS,
    CONF_REFERENT_NAME,
    CONF_SELECTION_SEED,
    COORDINATOR,
    DEFAULT_BUNDLE_CAP,
    DEFAULT_LOG_RETENTION_DAYS,
    DEFAULT_LOOKBACK_DAYS,
    DOMAIN,
)
from custom_components.kidsdefis.coordinator import KidsDefisDataCoordinator

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
    """Return a mock config entry with a fixed selection seed."""
    return MockConfigEntry(
        domain=DOMAIN,
        title="Famille Test",
        data={
            CONF_HOUSEHOLD_NAME: "Famille Test",
            CONF_REFERENT_NAME: "Alex",
        },
        options={
            CONF_LOOKBACK_DAYS: DEFAULT_LOOKBACK_DAYS,
            CONF_BUNDLE_CAP: DEFAULT_BUNDLE_CAP,
            CONF_LOG_RETENTION_DAYS: DEFAULT_LOG_RETENTION_DAYS,
            CONF_SELECTION_SEED: "42",
        },
        entry_id="test_entry_id",
    )


@pytest.fixture
async def init_integration(
    hass: HomeAssistant,
    mock_config_entry: MockConfigEntry,  # pylint: disable=redefined-outer-name
) -> MockConfigEntry:
    """Set up the KidsDefis integration on in-memory storage."""
    mock_config_entry.add_to_hass(hass)
    assert await hass.config_entries.async_setup(mock_config_entry.entry_id)
    await hass.async_block_till_done()
    return mock_config_entry


@pytest.fixture
def coordinator(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,  # pylint: disable=redefined-outer-name
) -> KidsDefisDataCoordinator:
    """Return the coordinator of the set-up entry."""
    return hass.data[DOMAIN][init_integration.entry_id][COORDINATOR]


@pytest.fixture
def household_id(
    init_integration: MockConfigEntry,  # pylint: disable=redefined-outer-name
) -> int:
    """Return the id of the household created on setup."""
    return init_integration.data["household_id"]
