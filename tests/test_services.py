"""Service-level tests for KidsDefis.

Each service is called through Home Assistant with ``return_response`` so
the full path (schema validation, handler, managers, store) is exercised.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
import voluptuous as vol

from custom_components.kidsdefis import const
from custom_components.kidsdefis.engines.economy_engine import InsufficientFundsError
from custom_components.kidsdefis.exceptions import (
    ActiveSessionExistsError,
    KidsDefisValidationError,
)
from tests.helpers.setup import SetupResult, setup_from_yaml

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant


@pytest.fixture
async def scenario(hass: HomeAssistant) -> SetupResult:
    """Household with three children and a small catalog."""
    return await setup_from_yaml(hass, "tests/scenarios/scenario_household.yaml")


async def _call(hass: HomeAssistant, service: str, data: dict[str, Any]) -> Any:
    return await hass.services.async_call(
        const.DOMAIN, service, data, blocking=True, return_response=True
    )


def _participants(scenario: SetupResult) -> dict[str, Any]:
    return {
        const.FIELD_HOUSEHOLD_ID: scenario.household_id,
        const.FIELD_CHILDREN_IDS: [scenario.child_ids["Léo"], scenario.child_ids["Inès"]],
    }


# ===== Test: registration =====


async def test_services_registered(hass: HomeAssistant, scenario: SetupResult) -> None:
    """Every service is available once the entry is loaded."""
    for service in const.SERVICES:
        assert hass.services.has_service(const.DOMAIN, service)


# ===== Test: session flow =====


class TestSessionServices:
    """start_session / end_session and the workflow in between."""

    async def test_full_session(self, hass: HomeAssistant, scenario: SetupResult) -> None:
        """Start, pick, complete, award and end."""
        session = await _call(
            hass,
            const.SERVICE_START_SESSION,
            {**_participants(scenario), const.FIELD_LOCATION: "Maison"},
        )
        session_id = session[const.DATA_ID]
        assert session[const.DATA_SESSION_ENDED_AT] is None

        picked = await _call(
            hass,
            const.SERVICE_PICK_RANDOM_CHALLENGE,
            {**_participants(scenario), const.FIELD_LOCATION: "Maison"},
        )
        challenge = picked["challenge"]
        assert challenge[const.DATA_CHALLENGE_TITLE] in {
            "Tour de magie",
            "Cabane en coussins",
        }

        completion = await _call(
            hass,
            const.SERVICE_RECORD_COMPLETION,
            {
                **_participants(scenario),
                const.FIELD_SESSION_ID: session_id,
                const.FIELD_DEFI_ID: challenge[const.DATA_ID],
                const.FIELD_COMPLETED_BY: "Claire",
            },
        )
        assert completion["history_id"] >= 1

        awarded = await _call(
            hass,
            const.SERVICE_AWARD_COINS,
            {
                **_participants(scenario),
                const.FIELD_SESSION_ID: session_id,
                const.FIELD_DEFI_ID: challenge[const.DATA_ID],
                const.FIELD_AMOUNT_PER_CHILD: 5,
            },
        )
        assert awarded == {"total": 10}

        ended = await _call(
            hass, const.SERVICE_END_SESSION, {const.FIELD_SESSION_ID: session_id}
        )
        assert ended[const.DATA_SESSION_TOTAL_DEFIS] == 1
        assert ended[const.DATA_SESSION_TOTAL_COINS] == 10

    async def test_second_start_fails(
        self, hass: HomeAssistant, scenario: SetupResult
    ) -> None:
        """The active session blocks another start."""
        await _call(hass, const.SERVICE_START_SESSION, _participants(scenario))
        with pytest.raises(ActiveSessionExistsError):
            await _call(hass, const.SERVICE_START_SESSION, _participants(scenario))

    async def test_invalid_session_type(
        self, hass: HomeAssistant, scenario: SetupResult
    ) -> None:
        """The schema rejects unknown session types."""
        with pytest.raises(vol.Invalid):
            await _call(
                hass,
                const.SERVICE_START_SESSION,
                {**_participants(scenario), const.FIELD_SESSION_TYPE: "marathon"},
            )

    async def test_end_clears_matching_runtime_state(
        self, hass: HomeAssistant, scenario: SetupResult
    ) -> None:
        """Ending a session forgets its runtime state and resume prompt."""
        runtime_state = scenario.coordinator.runtime_state
        session = await _call(hass, const.SERVICE_START_SESSION, _participants(scenario))
        await runtime_state.async_update({const.RUNTIME_SESSION_ID: session[const.DATA_ID]})
        await runtime_state.async_snooze_resume_prompt(session[const.DATA_ID])

        await _call(
            hass, const.SERVICE_END_SESSION, {const.FIELD_SESSION_ID: session[const.DATA_ID]}
        )
        await hass.async_block_till_done()

        assert await runtime_state.async_read() is None
        assert (await runtime_state.async_get_resume_prompt())["session_id"] is None

    async def test_end_keeps_other_runtime_state(
        self, hass: HomeAssistant, scenario: SetupResult
    ) -> None:
        """Runtime state of another session is left alone."""
        runtime_state = scenario.coordinator.runtime_state
        session = await _call(hass, const.SERVICE_START_SESSION, _participants(scenario))
        await runtime_state.async_update({const.RUNTIME_SESSION_ID: 999})

        await _call(
            hass, const.SERVICE_END_SESSION, {const.FIELD_SESSION_ID: session[const.DATA_ID]}
        )
        await hass.async_block_till_done()

        state = await runtime_state.async_read()
        assert state[const.RUNTIME_SESSION_ID] == 999

    async def test_attach_media(self, hass: HomeAssistant, scenario: SetupResult) -> None:
        """Media ids are returned."""
        session = await _call(hass, const.SERVICE_START_SESSION, _participants(scenario))
        response = await _call(
            hass,
            const.SERVICE_ATTACH_MEDIA,
            {
                const.FIELD_SESSION_ID: session[const.DATA_ID],
                const.FIELD_HOUSEHOLD_ID: scenario.household_id,
                const.FIELD_FILE_URI: "file:///photos/magie.jpg",
            },
        )
        media = scenario.coordinator.session_manager.get_session_media(
            session[const.DATA_ID]
        )
        assert [row[const.DATA_ID] for row in media] == [response["media_id"]]


# ===== Test: selection =====


class TestSelectionServices:
    """build_bundle and reactivate_challenges."""

    async def test_build_bundle(self, hass: HomeAssistant, scenario: SetupResult) -> None:
        """The response reports the bundle and its total duration."""
        response = await _call(
            hass,
            const.SERVICE_BUILD_BUNDLE,
            {**_participants(scenario), const.FIELD_PLANNED_DURATION_MIN: 15},
        )
        assert 13 <= response["total_duration"] <= 15
        assert response["total_duration"] == sum(
            item[const.DATA_CHALLENGE_DURATION_MIN] for item in response["challenges"]
        )

    async def test_cap_out_of_range(
        self, hass: HomeAssistant, scenario: SetupResult
    ) -> None:
        """Caps above twelve are rejected."""
        with pytest.raises(vol.Invalid):
            await _call(
                hass,
                const.SERVICE_BUILD_BUNDLE,
                {**_participants(scenario), const.FIELD_CAP: 13},
            )

    async def test_reactivate(self, hass: HomeAssistant, scenario: SetupResult) -> None:
        """Completed challenges become eligible again."""
        session = await _call(hass, const.SERVICE_START_SESSION, _participants(scenario))
        defi_id = scenario.challenge_ids["Chasse au trésor"]
        await _call(
            hass,
            const.SERVICE_RECORD_COMPLETION,
            {
                **_participants(scenario),
                const.FIELD_SESSION_ID: session[const.DATA_ID],
                const.FIELD_DEFI_ID: defi_id,
            },
        )
        outdoor = {**_participants(scenario), const.FIELD_LOCATION: "Extérieur"}
        assert (await _call(hass, const.SERVICE_PICK_RANDOM_CHALLENGE, outdoor))[
            "challenge"
        ] is None

        response = await _call(
            hass,
            const.SERVICE_REACTIVATE_CHALLENGES,
            {const.FIELD_HOUSEHOLD_ID: scenario.household_id, const.FIELD_DEFI_IDS: defi_id},
        )
        assert response == {"removed": 1}
        picked = await _call(hass, const.SERVICE_PICK_RANDOM_CHALLENGE, outdoor)
        assert picked["challenge"][const.DATA_ID] == defi_id


# ===== Test: economy =====


class TestRewardServices:
    """grant_reward."""

    async def test_grant(self, hass: HomeAssistant, scenario: SetupResult) -> None:
        """The grant result lists each participant's balances."""
        response = await _call(
            hass,
            const.SERVICE_GRANT_REWARD,
            {
                **_participants(scenario),
                const.FIELD_REWARD_ID: scenario.reward_ids["Soirée cinéma"],
                const.FIELD_COST: 25,
                const.FIELD_ACTOR: "Claire",
            },
        )
        assert [item["new_balance"] for item in response["per_participant"]] == [27, 13]

    async def test_grant_insufficient_funds(
        self, hass: HomeAssistant, scenario: SetupResult
    ) -> None:
        """Combined balance below cost fails the call."""
        with pytest.raises(InsufficientFundsError):
            await _call(
                hass,
                const.SERVICE_GRANT_REWARD,
                {
                    **_participants(scenario),
                    const.FIELD_REWARD_ID: scenario.reward_ids["Soirée cinéma"],
                    const.FIELD_COST: 500,
                },
            )

    async def test_grant_fractional_cost_rejected(
        self, hass: HomeAssistant, scenario: SetupResult
    ) -> None:
        """A cost of 12.7 is refused, not truncated to 12."""
        balances = {
            name: scenario.coordinator.economy_manager.get_balance(child_id)
            for name, child_id in scenario.child_ids.items()
        }
        with pytest.raises(KidsDefisValidationError):
            await _call(
                hass,
                const.SERVICE_GRANT_REWARD,
                {
                    **_participants(scenario),
                    const.FIELD_REWARD_ID: scenario.reward_ids["Glace"],
                    const.FIELD_COST: 12.7,
                },
            )
        assert {
            name: scenario.coordinator.economy_manager.get_balance(child_id)
            for name, child_id in scenario.child_ids.items()
        } == balances

    async def test_grant_whole_float_cost(
        self, hass: HomeAssistant, scenario: SetupResult
    ) -> None:
        """A cost of 10.0 is the whole number 10."""
        response = await _call(
            hass,
            const.SERVICE_GRANT_REWARD,
            {
                **_participants(scenario),
                const.FIELD_REWARD_ID: scenario.reward_ids["Glace"],
                const.FIELD_COST: 10.0,
            },
        )
        assert response["cost"] == 10
        assert isinstance(response["cost"], int)


# ===== Test: catalog and housekeeping =====


class TestHousekeepingServices:
    """import_catalog and purge_logs."""

    async def test_import_rows(self, hass: HomeAssistant, scenario: SetupResult) -> None:
        """Explicit rows are imported without the provider."""
        response = await _call(
            hass,
            const.SERVICE_IMPORT_CATALOG,
            {
                const.FIELD_HOUSEHOLD_ID: scenario.household_id,
                const.FIELD_CATALOG_KIND: const.CATALOG_KIND_REWARDS,
                const.FIELD_ROWS: [{"title": "Parc", "cost": 15}],
            },
        )
        assert response == {"imported": 1}
        titles = {
            row[const.DATA_REWARD_TITLE]
            for row in scenario.coordinator.catalog_manager.get_rewards(
                scenario.household_id
            )
        }
        assert "Parc" in titles

    async def test_purge_logs(self, hass: HomeAssistant, scenario: SetupResult) -> None:
        """Old rows are removed, recent ones kept."""
        store = scenario.coordinator.store
        await store.async_insert(
            const.DATA_APP_LOGS,
            {
                const.DATA_LOG_TIMESTAMP: "2000-01-01T00:00:00+00:00",
                const.DATA_LOG_TYPE: const.LOG_TYPE_SYSTEM,
                const.DATA_LOG_CONTEXT: "Ancien",
            },
        )
        recent = store.count(const.DATA_APP_LOGS) - 1

        response = await _call(hass, const.SERVICE_PURGE_LOGS, {const.FIELD_DAYS: 7})

        assert response == {"removed": 1}
        assert store.count(const.DATA_APP_LOGS) == recent
