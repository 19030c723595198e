"""Defi History Manager - Challenge completions.

Records completions into ``defi_history``, keeps the session's incremental
completion counter, and purges history to make challenges eligible again.

The incremental ``total_defis_completed`` bumped here is not reconciled
with the recount performed when a session ends: purging history through
``async_reactivate_challenges`` between a completion and the end of its
session makes the two diverge.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from .. import const
from ..type_defs import ChallengeId, ChildId, HouseholdId, SessionId
from ..utils.dt_utils import dt_days_ago, dt_now_iso, dt_to_utc
from .base_manager import BaseManager

if TYPE_CHECKING:
    from collections.abc import Iterable

    from homeassistant.core import HomeAssistant

    from ..coordinator import KidsDefisDataCoordinator
    from ..type_defs import DefiHistoryEntry


class DefiHistoryManager(BaseManager):
    """Owns the ``defi_history`` table."""

    def __init__(
        self, hass: HomeAssistant, coordinator: KidsDefisDataCoordinator
    ) -> None:
        """Initialize the DefiHistoryManager."""
        super().__init__(hass, coordinator)

    async def async_setup(self) -> None:
        """No subscriptions."""

    async def async_record_completion(
        self,
        session_id: SessionId,
        household_id: HouseholdId,
        defi_id: ChallengeId,
        children_ids: Iterable[ChildId],
        completed_by: str | None = None,
        completed_at: str | None = None,
    ) -> int:
        """Record that participants completed a challenge during a session.

        Inserts the history row, then bumps the session's completion counter
        by one in a separate write.

        Returns:
            The new history id
        """
        session_id = self.require_id(session_id, "session_id", SessionId)
        household_id = self.require_id(household_id, "household_id", HouseholdId)
        defi_id = self.require_id(defi_id, "defi_id", ChallengeId)
        participants = self.require_id_list(children_ids, "children_ids", ChildId)
        completed_at = completed_at or dt_now_iso()

        history_id = await self.store.async_insert(
            const.DATA_DEFI_HISTORY,
            {
                const.DATA_DEFI_HISTORY_DEFI_ID: defi_id,
                const.DATA_HOUSEHOLD_ID: household_id,
                const.DATA_CHILDREN_IDS: participants,
                const.DATA_SESSION_ID: session_id,
                const.DATA_DEFI_HISTORY_COMPLETED_AT: completed_at,
                const.DATA_DEFI_HISTORY_COMPLETED_BY: completed_by or "",
                const.DATA_IS_SYNCED: False,
            },
        )

        session = self.store.get(const.DATA_SESSIONS, session_id)
        if session is not None:
            await self.store.async_update(
                const.DATA_SESSIONS,
                session_id,
                {
                    const.DATA_SESSION_TOTAL_DEFIS: int(
                        session.get(const.DATA_SESSION_TOTAL_DEFIS) or 0
                    )
                    + 1,
                    const.DATA_IS_SYNCED: False,
                },
            )
        else:
            const.LOGGER.warning(
                "Completion %s recorded for unknown session %s", history_id, session_id
            )

        await self.coordinator.log_manager.async_add_log(
            const.LOG_TYPE_DEFI,
            "Challenge completed in session",
            details={
                "session_id": session_id,
                "defi_id": defi_id,
                "completed_by": completed_by,
            },
            household_id=household_id,
            children_ids=participants,
            ref_id=history_id,
        )
        self.emit(
            const.SIGNAL_SUFFIX_DEFI_COMPLETED,
            history_id=history_id,
            session_id=session_id,
            household_id=household_id,
            defi_id=defi_id,
            children_ids=participants,
        )
        return history_id

    async def async_reactivate_challenges(
        self, household_id: HouseholdId, defi_ids: Iterable[ChallengeId]
    ) -> int:
        """Delete the household's history rows for the given challenges.

        Returns:
            Number of history rows removed (0 without any write for an empty list)
        """
        household_id = self.require_id(household_id, "household_id", HouseholdId)
        ids = self.require_id_list(defi_ids, "defi_ids", ChallengeId)
        if not ids:
            return 0

        wanted = set(ids)
        removed = await self.store.async_delete(
            const.DATA_DEFI_HISTORY,
            lambda row: row.get(const.DATA_HOUSEHOLD_ID) == household_id
            and row.get(const.DATA_DEFI_HISTORY_DEFI_ID) in wanted,
        )

        await self.coordinator.log_manager.async_add_log(
            const.LOG_TYPE_DEFI,
            "Challenges reactivated",
            details={"defi_ids": ids, "removed": removed},
            household_id=household_id,
        )
        return removed

    def get_defi_history(
        self,
        household_id: HouseholdId,
        search: str | None = None,
        start: str | None = None,
        end: str | None = None,
    ) -> list[DefiHistoryEntry]:
        """Return the household's completions, newest first.

        Args:
            household_id: Household to query
            search: Substring matched against ``completed_by``
            start: Inclusive lower bound on ``completed_at``
            end: Inclusive upper bound on ``completed_at``
        """
        start_dt = dt_to_utc(start)
        end_dt = dt_to_utc(end)

        def _where(row: dict[str, Any]) -> bool:
            if row.get(const.DATA_HOUSEHOLD_ID) != household_id:
                return False
            if search and search not in (
                row.get(const.DATA_DEFI_HISTORY_COMPLETED_BY) or ""
            ):
                return False
            completed = dt_to_utc(row.get(const.DATA_DEFI_HISTORY_COMPLETED_AT))
            if start_dt and (completed is None or completed < start_dt):
                return False
            if end_dt and (completed is None or completed > end_dt):
                return False
            return True

        rows = self.store.select(
            const.DATA_DEFI_HISTORY,
            _where,
            order_by=const.DATA_DEFI_HISTORY_COMPLETED_AT,
            reverse=True,
        )
        return cast("list[DefiHistoryEntry]", rows)

    def get_recently_completed_ids(
        self, household_id: HouseholdId, lookback_days: int | float
    ) -> set[int]:
        """Return ids of challenges completed within the last ``lookback_days``."""
        since = dt_days_ago(lookback_days)
        done: set[int] = set()
        for row in self.store.select(
            const.DATA_DEFI_HISTORY, {const.DATA_HOUSEHOLD_ID: household_id}
        ):
            completed = dt_to_utc(row.get(const.DATA_DEFI_HISTORY_COMPLETED_AT))
            if completed is not None and completed >= since:
                done.add(row[const.DATA_DEFI_HISTORY_DEFI_ID])
        return done
