"""Log Manager - Structured application log (``app_logs``).

Every core operation reports what it did through this sink. Records are
stored for later synchronization and mirrored to the integration logger.
The sink is best-effort: a failing write is reported at debug level and
never propagates to the operation that produced it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.exceptions import HomeAssistantError

from .. import const
from ..utils.dt_utils import dt_days_ago, dt_now_iso, dt_to_utc
from ..utils.id_utils import parse_id_list
from .base_manager import BaseManager

if TYPE_CHECKING:
    from collections.abc import Iterable

    from homeassistant.core import HomeAssistant

    from ..coordinator import KidsDefisDataCoordinator
    from ..type_defs import ChildId, HouseholdId

_LEVEL_TO_LOGGER = {
    const.LOG_LEVEL_INFO: const.LOGGER.info,
    const.LOG_LEVEL_WARNING: const.LOGGER.warning,
    const.LOG_LEVEL_ERROR: const.LOGGER.error,
}


class LogManager(BaseManager):
    """Writes, queries and purges structured log records."""

    def __init__(
        self, hass: HomeAssistant, coordinator: KidsDefisDataCoordinator
    ) -> None:
        """Initialize the LogManager."""
        super().__init__(hass, coordinator)

    async def async_setup(self) -> None:
        """Nothing to subscribe to; other managers call the sink directly."""

    async def async_add_log(
        self,
        log_type: str,
        context: str,
        *,
        level: str = const.LOG_LEVEL_INFO,
        details: dict[str, Any] | None = None,
        household_id: HouseholdId | None = None,
        children_ids: Iterable[ChildId] | None = None,
        ref_id: str | int | None = None,
    ) -> int | None:
        """Record a log entry. Never raises.

        Args:
            log_type: One of const.LOG_TYPE_*
            context: Short human-readable description
            level: One of const.LOG_LEVEL_*
            details: Optional JSON-serializable detail mapping
            household_id: Optional owning household
            children_ids: Participants concerned
            ref_id: Optional related row id

        Returns:
            The new log id, or None when the write failed
        """
        record: dict[str, Any] = {
            const.DATA_LOG_TIMESTAMP: dt_now_iso(),
            const.DATA_HOUSEHOLD_ID: household_id,
            const.DATA_CHILDREN_IDS: list(children_ids or []),
            const.DATA_LOG_TYPE: log_type,
            const.DATA_LOG_LEVEL: level,
            const.DATA_LOG_CONTEXT: context,
            const.DATA_LOG_DETAILS: details,
            const.DATA_LOG_REF_ID: str(ref_id) if ref_id is not None else None,
            const.DATA_IS_SYNCED: False,
        }

        _LEVEL_TO_LOGGER.get(level, const.LOGGER.debug)(
            "[%s] %s (household=%s, ref=%s) %s",
            log_type,
            context,
            household_id,
            ref_id,
            details or {},
        )

        try:
            return await self.store.async_insert(const.DATA_APP_LOGS, record)
        except (HomeAssistantError, OSError, TypeError, ValueError) as err:
            const.LOGGER.debug("Failed to write log entry '%s': %s", context, err)
            return None

    def get_logs(
        self,
        log_type: str | None = None,
        child_id: ChildId | None = None,
        is_synced: bool | None = None,
    ) -> list[dict[str, Any]]:
        """Return log records matching all given filters, oldest first."""

        def _where(row: dict[str, Any]) -> bool:
            if log_type and row.get(const.DATA_LOG_TYPE) != log_type:
                return False
            if child_id is not None and child_id not in parse_id_list(
                row.get(const.DATA_CHILDREN_IDS)
            ):
                return False
            if is_synced is not None and bool(row.get(const.DATA_IS_SYNCED)) != is_synced:
                return False
            return True

        return self.store.select(const.DATA_APP_LOGS, _where)

    def get_pending_logs(self) -> list[dict[str, Any]]:
        """Return records not yet synchronized."""
        return self.get_logs(is_synced=False)

    async def async_mark_logs_synced(self, log_ids: Iterable[int]) -> int:
        """Flag records as synchronized. Returns how many were updated."""
        ids = list(log_ids)
        if not ids:
            return 0
        async with self.store.transaction():
            updated = 0
            for log_id in ids:
                if await self.store.async_update(
                    const.DATA_APP_LOGS, log_id, {const.DATA_IS_SYNCED: True}
                ):
                    updated += 1
        return updated

    async def async_purge_old_logs(
        self, days: int = const.DEFAULT_LOG_RETENTION_DAYS
    ) -> int:
        """Delete records older than ``days`` days. Returns how many were removed."""
        cutoff = dt_days_ago(days)

        def _is_old(row: dict[str, Any]) -> bool:
            stamp = dt_to_utc(row.get(const.DATA_LOG_TIMESTAMP))
            return stamp is not None and stamp < cutoff

        removed = await self.store.async_delete(const.DATA_APP_LOGS, _is_old)
        const.LOGGER.debug("Purged %s log entries older than %s days", removed, days)
        return removed
