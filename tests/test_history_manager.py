"""Integration tests for DefiHistoryManager."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from custom_components.kidsdefis import const
from custom_components.kidsdefis.utils.dt_utils import dt_now_utc
from tests.helpers.setup import SetupResult, setup_from_yaml

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant


@pytest.fixture
async def scenario(hass: HomeAssistant) -> SetupResult:
    """Household with three children and a small catalog."""
    return await setup_from_yaml(hass, "tests/scenarios/scenario_household.yaml")


@pytest.fixture
async def session_id(scenario: SetupResult) -> int:
    """An active session for Léo and Inès."""
    session = await scenario.coordinator.session_manager.async_start_session(
        {
            "household_id": scenario.household_id,
            "children_ids": [scenario.child_ids["Léo"], scenario.child_ids["Inès"]],
        }
    )
    return session[const.DATA_ID]


def _days_ago_iso(days: int) -> str:
    return (dt_now_utc() - timedelta(days=days)).isoformat()


# ===== Test: record completion =====


class TestRecordCompletion:
    """Tests for DefiHistoryManager.async_record_completion()."""

    async def test_row_and_counter(self, scenario: SetupResult, session_id: int) -> None:
        """A history row is written and the session counter bumped."""
        coordinator = scenario.coordinator
        defi_id = scenario.challenge_ids["Cabane en coussins"]
        leo = scenario.child_ids["Léo"]

        history_id = await coordinator.history_manager.async_record_completion(
            session_id, scenario.household_id, defi_id, [leo], completed_by="Claire"
        )

        row = coordinator.store.get(const.DATA_DEFI_HISTORY, history_id)
        assert row[const.DATA_DEFI_HISTORY_DEFI_ID] == defi_id
        assert row[const.DATA_CHILDREN_IDS] == [leo]
        assert row[const.DATA_SESSION_ID] == session_id
        assert row[const.DATA_DEFI_HISTORY_COMPLETED_BY] == "Claire"
        assert row[const.DATA_DEFI_HISTORY_COMPLETED_AT]

        session = coordinator.session_manager.get_session(session_id)
        assert session[const.DATA_SESSION_TOTAL_DEFIS] == 1

        logs = coordinator.log_manager.get_logs(log_type=const.LOG_TYPE_DEFI)
        assert logs[-1][const.DATA_LOG_CONTEXT] == "Challenge completed in session"
        assert logs[-1][const.DATA_LOG_REF_ID] == str(history_id)

    async def test_unknown_session_still_recorded(self, scenario: SetupResult) -> None:
        """Without a session row only the history row is written."""
        coordinator = scenario.coordinator
        history_id = await coordinator.history_manager.async_record_completion(
            404,
            scenario.household_id,
            scenario.challenge_ids["Tour de magie"],
            [scenario.child_ids["Noé"]],
        )
        assert coordinator.store.get(const.DATA_DEFI_HISTORY, history_id) is not None
        assert coordinator.store.get(const.DATA_SESSIONS, 404) is None


# ===== Test: reactivation =====


class TestReactivate:
    """Tests for DefiHistoryManager.async_reactivate_challenges()."""

    async def test_empty_list_is_noop(self, scenario: SetupResult, session_id: int) -> None:
        """An empty id list removes nothing and writes nothing."""
        coordinator = scenario.coordinator
        await coordinator.history_manager.async_record_completion(
            session_id,
            scenario.household_id,
            scenario.challenge_ids["Tour de magie"],
            [scenario.child_ids["Léo"]],
        )
        log_count = coordinator.store.count(const.DATA_APP_LOGS)

        assert (
            await coordinator.history_manager.async_reactivate_challenges(
                scenario.household_id, []
            )
            == 0
        )
        assert coordinator.store.count(const.DATA_DEFI_HISTORY) == 1
        assert coordinator.store.count(const.DATA_APP_LOGS) == log_count

    async def test_removes_only_given_challenges(
        self, scenario: SetupResult, session_id: int
    ) -> None:
        """Only the household's rows for the listed challenges go."""
        history = scenario.coordinator.history_manager
        magic = scenario.challenge_ids["Tour de magie"]
        cabin = scenario.challenge_ids["Cabane en coussins"]
        leo = scenario.child_ids["Léo"]
        for defi_id in (magic, magic, cabin):
            await history.async_record_completion(
                session_id, scenario.household_id, defi_id, [leo]
            )

        removed = await history.async_reactivate_challenges(scenario.household_id, [magic])

        assert removed == 2
        remaining = history.get_defi_history(scenario.household_id)
        assert [row[const.DATA_DEFI_HISTORY_DEFI_ID] for row in remaining] == [cabin]

    async def test_counter_is_not_reconciled(
        self, scenario: SetupResult, session_id: int
    ) -> None:
        """Purging history diverges the live counter from the final recount."""
        coordinator = scenario.coordinator
        history = coordinator.history_manager
        magic = scenario.challenge_ids["Tour de magie"]
        cabin = scenario.challenge_ids["Cabane en coussins"]
        leo = scenario.child_ids["Léo"]
        await history.async_record_completion(session_id, scenario.household_id, magic, [leo])
        await history.async_record_completion(session_id, scenario.household_id, cabin, [leo])

        await history.async_reactivate_challenges(scenario.household_id, [magic])
        live = coordinator.session_manager.get_session(session_id)
        assert live[const.DATA_SESSION_TOTAL_DEFIS] == 2

        ended = await coordinator.session_manager.async_end_session(session_id)
        assert ended[const.DATA_SESSION_TOTAL_DEFIS] == 1


# ===== Test: reads =====


class TestHistoryReads:
    """Tests for history queries."""

    async def test_search_and_window(self, scenario: SetupResult, session_id: int) -> None:
        """Search matches completed_by; bounds apply to completed_at."""
        history = scenario.coordinator.history_manager
        leo = scenario.child_ids["Léo"]
        await history.async_record_completion(
            session_id,
            scenario.household_id,
            scenario.challenge_ids["Tour de magie"],
            [leo],
            completed_by="Claire",
            completed_at="2025-05-01T10:00:00+00:00",
        )
        await history.async_record_completion(
            session_id,
            scenario.household_id,
            scenario.challenge_ids["Chasse au trésor"],
            [leo],
            completed_by="Papa",
            completed_at="2025-05-10T10:00:00+00:00",
        )

        rows = history.get_defi_history(scenario.household_id)
        assert [row[const.DATA_DEFI_HISTORY_COMPLETED_BY] for row in rows] == [
            "Papa",
            "Claire",
        ]
        assert len(history.get_defi_history(scenario.household_id, search="Cla")) == 1
        assert (
            len(
                history.get_defi_history(
                    scenario.household_id,
                    start="2025-05-05T00:00:00+00:00",
                    end="2025-05-31T00:00:00+00:00",
                )
            )
            == 1
        )

    async def test_recently_completed_ids(
        self, scenario: SetupResult, session_id: int
    ) -> None:
        """Only completions inside the lookback window count."""
        history = scenario.coordinator.history_manager
        leo = scenario.child_ids["Léo"]
        recent = scenario.challenge_ids["Tour de magie"]
        old = scenario.challenge_ids["Chasse au trésor"]
        await history.async_record_completion(
            session_id, scenario.household_id, recent, [leo], completed_at=_days_ago_iso(2)
        )
        await history.async_record_completion(
            session_id, scenario.household_id, old, [leo], completed_at=_days_ago_iso(30)
        )

        assert history.get_recently_completed_ids(scenario.household_id, 7) == {recent}
        assert history.get_recently_completed_ids(scenario.household_id, 60) == {
            recent,
            old,
        }
        assert history.get_recently_completed_ids(scenario.household_id + 1, 60) == set()
