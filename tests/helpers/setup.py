"""Setup helpers for KidsDefis test configuration.

This module provides declarative test setup: the household is created through
the real config flow, then children, challenges and rewards are added through
the managers, so tests can focus on behavior rather than setup boilerplate.

Example:
    result = await setup_scenario(hass, {
        "household": {"name": "Famille Martin", "referent": "Claire"},
        "children": [{"name": "Léo", "birthdate": "2016-04-07", "coins": 10}],
        "challenges": [{"title": "Cabane", "duration_min": 20}],
        "rewards": [{"title": "Cinéma", "cost": 30}],
    })
    # Access: result.coordinator, result.household_id, result.child_ids["Léo"]

YAML-based setup:
    result = await setup_from_yaml(hass, "tests/scenarios/scenario_household.yaml")
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from homeassistant import config_entries
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.data_entry_flow import FlowResultType
import yaml

from custom_components.kidsdefis import const
from custom_components.kidsdefis.coordinator import KidsDefisDataCoordinator

# =============================================================================
# DATACLASSES
# =============================================================================


@dataclass
class SetupResult:
    """Result from setup_scenario.

    Attributes:
        config_entry: The created ConfigEntry
        coordinator: The KidsDefisDataCoordinator instance
        household_id: Id of the household row created on setup
        child_ids: Map of child names to their ids
        challenge_ids: Map of challenge titles to their ids
        default_challenge_ids: Map of default challenge titles to their ids
        reward_ids: Map of reward titles to their ids
    """

    config_entry: ConfigEntry
    coordinator: KidsDefisDataCoordinator
    household_id: int
    child_ids: dict[str, int] = field(default_factory=dict)
    challenge_ids: dict[str, int] = field(default_factory=dict)
    default_challenge_ids: dict[str, int] = field(default_factory=dict)
    reward_ids: dict[str, int] = field(default_factory=dict)


# =============================================================================
# SETUP
# =============================================================================


async def setup_scenario(hass: HomeAssistant, scenario: dict[str, Any]) -> SetupResult:
    """Create a household through the config flow and populate it.

    Args:
        hass: Home Assistant instance
        scenario: Scenario dictionary (household, options, children,
            challenges, default_challenges, rewards)

    Returns:
        SetupResult with config_entry, coordinator and id mappings
    """
    household = scenario.get("household", {})
    result = await hass.config_entries.flow.async_init(
        const.DOMAIN, context={"source": config_entries.SOURCE_USER}
    )
    assert result["type"] == FlowResultType.FORM
    result = await hass.config_entries.flow.async_configure(
        result["flow_id"],
        user_input={
            const.CONF_HOUSEHOLD_NAME: household.get("name", "Famille Test"),
            const.CONF_REFERENT_NAME: household.get("referent", ""),
        },
    )
    assert result["type"] == FlowResultType.CREATE_ENTRY, result
    await hass.async_block_till_done()

    config_entry: ConfigEntry = result["result"]
    if scenario.get("options"):
        hass.config_entries.async_update_entry(
            config_entry, options={**config_entry.options, **scenario["options"]}
        )
        await hass.async_block_till_done()

    coordinator: KidsDefisDataCoordinator = hass.data[const.DOMAIN][
        config_entry.entry_id
    ][const.COORDINATOR]
    setup = SetupResult(
        config_entry=config_entry,
        coordinator=coordinator,
        household_id=config_entry.data[const.CONF_HOUSEHOLD_ID],
    )

    for child in scenario.get("children", []):
        setup.child_ids[child["name"]] = (
            await coordinator.household_manager.async_add_child(
                setup.household_id,
                child["name"],
                str(child["birthdate"]),
                coins=child.get("coins", 0),
            )
        )

    for challenge in scenario.get("default_challenges", []):
        setup.default_challenge_ids[challenge["title"]] = (
            await coordinator.catalog_manager.async_add_default_challenge(challenge)
        )

    for challenge in scenario.get("challenges", []):
        setup.challenge_ids[challenge["title"]] = (
            await coordinator.catalog_manager.async_add_challenge(
                setup.household_id, challenge, created_by="test"
            )
        )

    for reward in scenario.get("rewards", []):
        setup.reward_ids[reward["title"]] = (
            await coordinator.catalog_manager.async_add_reward(
                setup.household_id, reward, created_by="test"
            )
        )

    return setup


async def setup_from_yaml(hass: HomeAssistant, yaml_path: str | Path) -> SetupResult:
    """Set up a KidsDefis scenario from a YAML file.

    Args:
        hass: Home Assistant instance
        yaml_path: Path to YAML scenario file (absolute or relative to workspace)

    Returns:
        SetupResult with config_entry, coordinator and id mappings
    """
    path = Path(yaml_path)
    if not path.is_absolute():
        path = Path(__file__).parent.parent.parent / path
    with path.open(encoding="utf-8") as f:
        yaml_data = yaml.safe_load(f)

    return await setup_scenario(hass, yaml_data)


def make_challenge(
    title: str,
    duration_min: int | None = 10,
    *,
    location: str = "Maison",
    category: str = "Créatif",
    age_min: int | None = None,
    age_max: int | None = None,
    points_default: int = 10,
) -> dict[str, Any]:
    """Build challenge input data for CatalogManager."""
    return {
        "title": title,
        "description": f"{title} description",
        "category": category,
        "location": location,
        "duration_min": duration_min,
        "points_default": points_default,
        "photo_required": False,
        "age_min": age_min,
        "age_max": age_max,
    }
