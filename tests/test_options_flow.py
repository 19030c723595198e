"""Test options flow for KidsDefis integration."""

from __future__ import annotations

import random

from homeassistant.core import HomeAssistant
from homeassistant.data_entry_flow import FlowResultType
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.kidsdefis import const


def _user_input(**overrides):
    return {
        const.CONF_LOOKBACK_DAYS: 14,
        const.CONF_BUNDLE_CAP: 6,
        const.CONF_LOG_RETENTION_DAYS: 60,
        const.CONF_CHALLENGES_CATALOG_URL: "",
        const.CONF_REWARDS_CATALOG_URL: "",
        const.CONF_SELECTION_SEED: "",
        **overrides,
    }


async def test_options_saved_and_applied(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Saved options reload the entry and reach the managers."""
    result = await hass.config_entries.options.async_init(init_integration.entry_id)
    assert result["type"] == FlowResultType.FORM
    assert result["step_id"] == "init"

    result = await hass.config_entries.options.async_configure(
        result["flow_id"],
        user_input=_user_input(
            **{
                const.CONF_CHALLENGES_CATALOG_URL: " https://catalog.example/defis.json ",
                const.CONF_SELECTION_SEED: " 7 ",
            }
        ),
    )
    await hass.async_block_till_done()

    assert result["type"] == FlowResultType.CREATE_ENTRY
    options = init_integration.options
    assert options[const.CONF_LOOKBACK_DAYS] == 14
    assert options[const.CONF_CHALLENGES_CATALOG_URL] == (
        "https://catalog.example/defis.json"
    )
    assert options[const.CONF_SELECTION_SEED] == "7"

    coordinator = hass.data[const.DOMAIN][init_integration.entry_id][const.COORDINATOR]
    assert coordinator.selection_manager.default_lookback_days == 14
    assert coordinator.selection_manager.default_bundle_cap == 6
    assert coordinator.log_retention_days == 60
    assert coordinator.selection_manager.rng.random() == random.Random("7").random()


async def test_invalid_catalog_url(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """A malformed URL is reported on its field."""
    result = await hass.config_entries.options.async_init(init_integration.entry_id)
    result = await hass.config_entries.options.async_configure(
        result["flow_id"],
        user_input=_user_input(**{const.CONF_REWARDS_CATALOG_URL: "pas une url"}),
    )

    assert result["type"] == FlowResultType.FORM
    assert result["errors"] == {
        const.CONF_REWARDS_CATALOG_URL: const.TRANS_KEY_CFOF_INVALID_URL
    }
