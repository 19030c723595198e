"""Session Manager - Session lifecycle for a household.

This manager handles:
- Starting a session (at most one active session per household)
- Ending a session with authoritative aggregates (completions, coins)
- Session reads (active, by id, history, summary)
- Media references attached to a session

The single-active-session rule is checked before the insert and enforced
again by the store on the insert itself, so two overlapping starts cannot
both succeed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from .. import const
from ..engines.economy_engine import EconomyEngine
from ..exceptions import (
    ActiveSessionExistsError,
    KidsDefisValidationError,
    PostInsertInconsistencyError,
    PostUpdateInconsistencyError,
    SessionNotFoundError,
)
from ..type_defs import ChildId, HouseholdId, SessionId
from ..utils.dt_utils import dt_day_bounds, dt_now_iso, dt_to_utc
from ..utils.id_utils import parse_id_list
from .base_manager import BaseManager

if TYPE_CHECKING:
    from datetime import datetime

    from homeassistant.core import HomeAssistant

    from ..coordinator import KidsDefisDataCoordinator
    from ..type_defs import (
        SessionConfig,
        SessionData,
        SessionHistoryEntry,
        SessionSummary,
    )


class SessionManager(BaseManager):
    """Owns the ``sessions`` and ``session_media`` tables."""

    def __init__(
        self, hass: HomeAssistant, coordinator: KidsDefisDataCoordinator
    ) -> None:
        """Initialize the SessionManager.

        Args:
            hass: Home Assistant instance
            coordinator: The main KidsDefis coordinator
        """
        super().__init__(hass, coordinator)

    async def async_setup(self) -> None:
        """Subscribe to session lifecycle events."""
        self.listen(const.SIGNAL_SUFFIX_SESSION_ENDED, self._on_session_ended)

    async def _on_session_ended(self, payload: dict[str, Any]) -> None:
        """Drop the runtime state and resume prompt of the ended session.

        Args:
            payload: Event data with session_id, household_id and totals
        """
        session_id = payload.get("session_id")
        runtime = self.coordinator.runtime_state
        state = await runtime.async_read()
        if state is not None and state[const.RUNTIME_SESSION_ID] == session_id:
            await runtime.async_clear()
        prompt = await runtime.async_get_resume_prompt()
        if prompt["session_id"] == session_id:
            await runtime.async_clear_resume_prompt()

    # =========================================================================
    # Reads
    # =========================================================================

    def get_session(self, session_id: SessionId) -> SessionData | None:
        """Return a session row by id."""
        return cast(
            "SessionData | None", self.store.get(const.DATA_SESSIONS, session_id)
        )

    def get_active_session(self, household_id: HouseholdId) -> SessionData | None:
        """Return the household's unended session, most recently started first."""
        rows = self.store.select(
            const.DATA_SESSIONS,
            lambda row: row.get(const.DATA_HOUSEHOLD_ID) == household_id
            and row.get(const.DATA_SESSION_ENDED_AT) is None,
            order_by=const.DATA_SESSION_STARTED_AT,
            reverse=True,
            limit=1,
        )
        return cast("SessionData", rows[0]) if rows else None

    def get_session_history(
        self,
        household_id: HouseholdId,
        limit: int | None = const.DEFAULT_SESSION_HISTORY_LIMIT,
        search: str | None = None,
        start: str | None = None,
        end: str | None = None,
    ) -> list[SessionHistoryEntry]:
        """Return the household's sessions, most recent first.

        Each row carries its recomputed aggregates (``defis_count``,
        ``coins_sum``) and ``media_count``.

        Args:
            household_id: Household to query
            limit: Maximum number of rows (None for all)
            search: Case-insensitive substring of the session type, location,
                creator or id
            start: First day (YYYY-MM-DD, UTC) of the ``started_at`` window
            end: Last day (YYYY-MM-DD, UTC) of the ``started_at`` window

        Raises:
            KidsDefisValidationError: ``start`` or ``end`` is not a date
        """
        lower = self._day_bound(start, "start", 0)
        upper = self._day_bound(end, "end", 1)
        needle = (search or "").strip().lower()

        def _where(row: dict[str, Any]) -> bool:
            if row.get(const.DATA_HOUSEHOLD_ID) != household_id:
                return False
            if lower or upper:
                started = dt_to_utc(row.get(const.DATA_SESSION_STARTED_AT))
                if started is None:
                    return False
                if lower and started < lower:
                    return False
                if upper and started > upper:
                    return False
            if needle:
                haystack = (
                    row.get(const.DATA_SESSION_TYPE),
                    row.get(const.DATA_SESSION_LOCATION),
                    row.get(const.DATA_CREATED_BY),
                    row.get(const.DATA_ID),
                )
                if not any(needle in str(value or "").lower() for value in haystack):
                    return False
            return True

        rows = self.store.select(
            const.DATA_SESSIONS,
            _where,
            order_by=const.DATA_SESSION_STARTED_AT,
            reverse=True,
            limit=limit,
        )
        for row in rows:
            defis, coins = self._session_aggregates(row[const.DATA_ID])
            row[const.DATA_CHILDREN_IDS] = parse_id_list(row.get(const.DATA_CHILDREN_IDS))
            row["defis_count"] = defis
            row["coins_sum"] = coins
            row["media_count"] = self.store.count(
                const.DATA_SESSION_MEDIA, {const.DATA_SESSION_ID: row[const.DATA_ID]}
            )
        return cast("list[SessionHistoryEntry]", rows)

    @staticmethod
    def _day_bound(day: str | None, field: str, index: int) -> datetime | None:
        """Return the start (index 0) or end (index 1) instant of a UTC day."""
        if not day:
            return None
        bounds = dt_day_bounds(day)
        if bounds is None:
            raise KidsDefisValidationError(f"Invalid {field} date: {day}")
        return bounds[index]

    def _session_aggregates(self, session_id: SessionId) -> tuple[int, int]:
        """Recount completions and sum ledger amounts for a session."""
        defis = self.store.count(
            const.DATA_DEFI_HISTORY, {const.DATA_SESSION_ID: session_id}
        )
        coins = EconomyEngine.sum_amounts(
            self.store.select(
                const.DATA_COINS_HISTORY, {const.DATA_SESSION_ID: session_id}
            )
        )
        return defis, coins

    async def async_get_session_summary(self, session_id: SessionId) -> SessionSummary | None:
        """Return the aggregate view of an ended session, None otherwise."""
        session = self.get_session(session_id)
        if session is None or not session.get(const.DATA_SESSION_ENDED_AT):
            return None

        defis, coins = self._session_aggregates(session_id)
        return {
            "session_id": session[const.DATA_ID],
            "started_at": session[const.DATA_SESSION_STARTED_AT],
            "ended_at": cast("str", session[const.DATA_SESSION_ENDED_AT]),
            "children_ids": parse_id_list(session.get(const.DATA_CHILDREN_IDS)),
            "defis_completed": defis,
            "coins_awarded": coins,
        }

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def async_start_session(self, config: SessionConfig) -> SessionData:
        """Create and start a session for a household.

        Args:
            config: Household, participants and optional session constraints

        Returns:
            The newly created session row

        Raises:
            ActiveSessionExistsError: The household already has an active session
            PostInsertInconsistencyError: The row could not be read back
            KidsDefisValidationError: Malformed ids or session type
        """
        household_id = self.require_id(
            config.get("household_id"), "household_id", HouseholdId
        )
        children_ids = self.require_id_list(
            config.get("children_ids"), "children_ids", ChildId
        )
        session_type = config.get("session_type") or const.SESSION_TYPE_RANDOM
        if session_type not in const.SESSION_TYPES:
            raise KidsDefisValidationError(f"Invalid session_type: {session_type}")

        existing = self.get_active_session(household_id)
        if existing is not None:
            raise ActiveSessionExistsError(household_id, existing[const.DATA_ID])

        planned = config.get("planned_duration_min")
        row: dict[str, Any] = {
            const.DATA_HOUSEHOLD_ID: household_id,
            const.DATA_CHILDREN_IDS: children_ids,
            const.DATA_SESSION_STARTED_AT: dt_now_iso(),
            const.DATA_SESSION_ENDED_AT: None,
            const.DATA_CREATED_BY: config.get("created_by") or "",
            const.DATA_IS_SYNCED: False,
            const.DATA_SESSION_TYPE: session_type,
            const.DATA_SESSION_LOCATION: config.get("location") or "",
            const.DATA_SESSION_PLANNED_DURATION_MIN: (
                planned if isinstance(planned, (int, float)) else None
            ),
            const.DATA_SESSION_CATEGORY: config.get("category") or "",
            const.DATA_SESSION_TOTAL_DEFIS: 0,
            const.DATA_SESSION_TOTAL_COINS: 0,
        }
        session_id = SessionId(await self.store.async_insert(const.DATA_SESSIONS, row))

        session = self.get_session(session_id)
        if session is None:
            await self.coordinator.log_manager.async_add_log(
                const.LOG_TYPE_ERROR,
                "Session missing after insert",
                level=const.LOG_LEVEL_ERROR,
                details={"session_id": session_id},
                household_id=household_id,
                children_ids=children_ids,
            )
            raise PostInsertInconsistencyError(session_id)

        await self.coordinator.log_manager.async_add_log(
            const.LOG_TYPE_SESSION,
            "Session created",
            details={
                "session_id": session_id,
                const.DATA_SESSION_TYPE: session_type,
                const.DATA_SESSION_LOCATION: session[const.DATA_SESSION_LOCATION],
                const.DATA_SESSION_CATEGORY: session[const.DATA_SESSION_CATEGORY],
                const.DATA_SESSION_PLANNED_DURATION_MIN: session[
                    const.DATA_SESSION_PLANNED_DURATION_MIN
                ],
            },
            household_id=household_id,
            children_ids=children_ids,
            ref_id=session_id,
        )
        self.emit(
            const.SIGNAL_SUFFIX_SESSION_STARTED,
            session_id=session_id,
            household_id=household_id,
            children_ids=children_ids,
        )
        return session

    async def async_end_session(self, session_id: SessionId) -> SessionData:
        """End a session and freeze its aggregates.

        Ending an already ended session returns it unchanged without any
        write or log.

        Raises:
            SessionNotFoundError: Unknown session id
            PostUpdateInconsistencyError: The row vanished after the update
        """
        session_id = self.require_id(session_id, "session_id", SessionId)
        current = self.get_session(session_id)
        if current is None:
            raise SessionNotFoundError(session_id)
        if current.get(const.DATA_SESSION_ENDED_AT):
            return current

        ended_at = dt_now_iso()
        async with self.store.transaction():
            total_defis, total_coins = self._session_aggregates(session_id)
            await self.store.async_update(
                const.DATA_SESSIONS,
                session_id,
                {
                    const.DATA_SESSION_ENDED_AT: ended_at,
                    const.DATA_SESSION_TOTAL_DEFIS: total_defis,
                    const.DATA_SESSION_TOTAL_COINS: total_coins,
                    const.DATA_IS_SYNCED: False,
                },
            )

        updated = self.get_session(session_id)
        if updated is None:
            await self.coordinator.log_manager.async_add_log(
                const.LOG_TYPE_ERROR,
                "Session missing after closing update",
                level=const.LOG_LEVEL_ERROR,
                details={"session_id": session_id},
                household_id=current[const.DATA_HOUSEHOLD_ID],
                children_ids=current.get(const.DATA_CHILDREN_IDS),
                ref_id=session_id,
            )
            raise PostUpdateInconsistencyError(session_id)

        await self.coordinator.log_manager.async_add_log(
            const.LOG_TYPE_SESSION,
            "Session ended",
            details={
                "session_id": session_id,
                "total_defis": total_defis,
                "total_coins": total_coins,
            },
            household_id=updated[const.DATA_HOUSEHOLD_ID],
            children_ids=updated.get(const.DATA_CHILDREN_IDS),
            ref_id=session_id,
        )
        self.emit(
            const.SIGNAL_SUFFIX_SESSION_ENDED,
            session_id=session_id,
            household_id=updated[const.DATA_HOUSEHOLD_ID],
            total_defis_completed=total_defis,
            total_coins_awarded=total_coins,
        )
        const.LOGGER.debug(
            "SessionManager.end: session=%s, defis=%s, coins=%s",
            session_id,
            total_defis,
            total_coins,
        )
        return updated

    # =========================================================================
    # Media
    # =========================================================================

    async def async_attach_media(
        self,
        session_id: SessionId,
        household_id: HouseholdId,
        file_uri: str,
        children_ids: list[ChildId] | None = None,
        media_type: str = const.MEDIA_TYPE_PHOTO,
        metadata: dict[str, Any] | None = None,
    ) -> int:
        """Attach an opaque media reference to a session.

        Returns:
            The new media id
        """
        session_id = self.require_id(session_id, "session_id", SessionId)
        household_id = self.require_id(household_id, "household_id", HouseholdId)
        participants = self.require_id_list(children_ids, "children_ids", ChildId)
        if not file_uri:
            raise KidsDefisValidationError("Missing required field: file_uri")
        if media_type not in const.MEDIA_TYPES:
            raise KidsDefisValidationError(f"Invalid media_type: {media_type}")

        taken_at = dt_now_iso()
        media_id = await self.store.async_insert(
            const.DATA_SESSION_MEDIA,
            {
                const.DATA_SESSION_ID: session_id,
                const.DATA_HOUSEHOLD_ID: household_id,
                const.DATA_CHILDREN_IDS: participants,
                const.DATA_MEDIA_FILE_URI: file_uri,
                const.DATA_MEDIA_TYPE: media_type,
                const.DATA_MEDIA_TAKEN_AT: taken_at,
                const.DATA_MEDIA_METADATA: dict(metadata or {}),
                const.DATA_IS_SYNCED: False,
            },
        )

        await self.coordinator.log_manager.async_add_log(
            const.LOG_TYPE_SESSION,
            "Media attached to session",
            details={
                "session_id": session_id,
                "media_id": media_id,
                const.DATA_MEDIA_FILE_URI: file_uri,
                const.DATA_MEDIA_TYPE: media_type,
            },
            household_id=household_id,
            children_ids=participants,
            ref_id=session_id,
        )
        return media_id

    def get_session_media(self, session_id: SessionId) -> list[dict[str, Any]]:
        """Return media attached to a session in insertion order."""
        return self.store.select(
            const.DATA_SESSION_MEDIA, {const.DATA_SESSION_ID: session_id}
        )
