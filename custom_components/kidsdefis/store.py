# File: store.py
"""Handles persistent data storage for the KidsDefis integration.

Uses Home Assistant's Storage helper to save and load the household data
document, ensuring state is preserved across restarts. The document holds one
bucket per table (sessions, ledger, history, catalog...) with rows keyed by
their integer id, plus a ``meta`` section with the per-table id sequences.

Writes are either autocommit (applied and saved immediately) or grouped in a
transaction. A transaction owns the store lock from BEGIN to COMMIT/ROLLBACK:
BEGIN snapshots the document, ROLLBACK restores the snapshot, COMMIT saves.
A COMMIT whose save fails also restores the snapshot, then raises.
Autocommit writes from other tasks wait for the lock, so a rollback never
discards their work.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from contextlib import asynccontextmanager
import copy
from typing import TYPE_CHECKING, Any

from homeassistant.helpers.storage import Store

from . import const
from .exceptions import ActiveSessionExistsError, KidsDefisError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from homeassistant.core import HomeAssistant

Where = Mapping[str, Any] | Callable[[dict[str, Any]], bool] | None


def _matches(row: dict[str, Any], where: Where) -> bool:
    """Return True if ``row`` satisfies an equality mapping or predicate."""
    if where is None:
        return True
    if callable(where):
        return bool(where(row))
    return all(row.get(field) == value for field, value in where.items())


def _sort_key(value: Any) -> tuple[bool, Any]:
    """Order None first, then by the value itself, without comparing None."""
    if value is None:
        return (False, 0)
    return (True, value)


class KidsDefisStore:
    """Handles persistent storage operations for KidsDefis data.

    Thin wrapper around Home Assistant's Store API adding table-style access,
    autoincrement ids and snapshot transactions. Rows handed out by read
    methods are copies; mutate through the async write methods only.
    """

    def __init__(
        self, hass: HomeAssistant, storage_key: str = const.STORAGE_KEY
    ) -> None:
        """Initialize the store.

        Args:
            hass: Home Assistant core object.
            storage_key: Key to identify storage location (default: const.STORAGE_KEY).

        """
        self.hass = hass
        self._storage_key = storage_key
        self._store: Store = Store(hass, const.STORAGE_VERSION, storage_key)
        self._data: dict[str, Any] = {}  # In-memory data cache for quick access.
        self._lock = asyncio.Lock()
        self._tx_owner: asyncio.Task[Any] | None = None
        self._snapshot: dict[str, Any] | None = None

    @staticmethod
    def get_default_structure() -> dict[str, Any]:
        """Return canonical empty data structure for fresh installations.

        This is the SINGLE SOURCE OF TRUTH for the KidsDefis storage schema.
        """
        structure: dict[str, Any] = {
            const.DATA_META: {
                const.DATA_META_SCHEMA_VERSION: const.SCHEMA_VERSION,
                const.DATA_META_SEQUENCES: {table: 0 for table in const.TABLES},
            },
            const.DATA_APP_FLAGS: {},
        }
        for table in const.TABLES:
            structure[table] = {}
        return structure

    async def async_initialize(self) -> None:
        """Load data from storage during startup.

        If no data exists, initializes with an empty structure. Buckets added
        in later versions are created on load.
        """
        const.LOGGER.debug("KidsDefisStore: Loading data from storage")
        existing_data = await self._store.async_load()

        if existing_data is None:
            const.LOGGER.info("No existing storage found. Initializing new data")
            self._data = KidsDefisStore.get_default_structure()
            return

        self._data = existing_data
        default = KidsDefisStore.get_default_structure()
        for key, value in default.items():
            self._data.setdefault(key, value)
        sequences = self._data[const.DATA_META].setdefault(
            const.DATA_META_SEQUENCES, {}
        )
        for table in const.TABLES:
            if table not in sequences:
                existing_ids = [int(row_id) for row_id in self._data[table]]
                sequences[table] = max(existing_ids, default=0)

        const.LOGGER.debug(
            "Loaded existing data from storage: %s",
            {table: len(self._data[table]) for table in const.TABLES},
        )

    @property
    def data(self) -> dict[str, Any]:
        """Retrieve the in-memory data cache."""
        return self._data

    # -------------------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------------------

    def _table(self, table: str) -> dict[str, dict[str, Any]]:
        if table not in const.TABLES:
            raise KidsDefisError(f"Unknown table: {table}")
        return self._data[table]

    def get(self, table: str, row_id: int) -> dict[str, Any] | None:
        """Return a copy of one row, or None."""
        row = self._table(table).get(str(row_id))
        return copy.deepcopy(row) if row is not None else None

    def select(
        self,
        table: str,
        where: Where = None,
        *,
        order_by: str | None = None,
        reverse: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return copies of the rows matching ``where``.

        Args:
            table: Table name (const.DATA_*).
            where: Field/value equality mapping or row predicate.
            order_by: Optional field to sort on (None values sort first).
            reverse: Sort descending.
            limit: Optional maximum number of rows.

        Returns:
            Matching rows, in id order unless ``order_by`` is given.
        """
        rows = [
            row
            for _, row in sorted(
                self._table(table).items(), key=lambda item: int(item[0])
            )
            if _matches(row, where)
        ]
        if order_by is not None:
            rows.sort(
                key=lambda row: _sort_key(row.get(order_by)),
                reverse=reverse,
            )
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    def count(self, table: str, where: Where = None) -> int:
        """Return the number of rows matching ``where``."""
        return sum(1 for row in self._table(table).values() if _matches(row, where))

    def get_flag(self, key: str) -> Any:
        """Return a copy of the value stored under an app flag key."""
        return copy.deepcopy(self._data[const.DATA_APP_FLAGS].get(key))

    # -------------------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------------------

    def _owns_transaction(self) -> bool:
        return self._tx_owner is not None and self._tx_owner is asyncio.current_task()

    @property
    def in_transaction(self) -> bool:
        """True when the calling task has an open transaction."""
        return self._owns_transaction()

    async def _async_write(self, operation: Callable[[], Any]) -> Any:
        """Apply ``operation`` inside the caller's transaction or autocommit it."""
        if self._owns_transaction():
            return operation()
        async with self._lock:
            result = operation()
            await self.async_save()
        return result

    def _check_active_session_unique(self, values: Mapping[str, Any]) -> None:
        """At most one session per household may have no ``ended_at``."""
        if values.get(const.DATA_SESSION_ENDED_AT) is not None:
            return
        household_id = values.get(const.DATA_HOUSEHOLD_ID)
        for row in self._data[const.DATA_SESSIONS].values():
            if (
                row.get(const.DATA_HOUSEHOLD_ID) == household_id
                and row.get(const.DATA_SESSION_ENDED_AT) is None
            ):
                raise ActiveSessionExistsError(household_id, row[const.DATA_ID])

    def _insert_row(self, table: str, values: Mapping[str, Any]) -> int:
        rows = self._table(table)
        if table == const.DATA_SESSIONS:
            self._check_active_session_unique(values)
        sequences = self._data[const.DATA_META][const.DATA_META_SEQUENCES]
        row_id = int(sequences.get(table, 0)) + 1
        sequences[table] = row_id
        row = copy.deepcopy(dict(values))
        row[const.DATA_ID] = row_id
        rows[str(row_id)] = row
        return row_id

    def _update_row(self, table: str, row_id: int, values: Mapping[str, Any]) -> bool:
        row = self._table(table).get(str(row_id))
        if row is None:
            return False
        updates = {k: v for k, v in values.items() if k != const.DATA_ID}
        row.update(copy.deepcopy(updates))
        return True

    def _delete_rows(self, table: str, where: Where) -> int:
        rows = self._table(table)
        doomed = [row_id for row_id, row in rows.items() if _matches(row, where)]
        for row_id in doomed:
            del rows[row_id]
        return len(doomed)

    async def async_insert(self, table: str, values: Mapping[str, Any]) -> int:
        """Insert a row and return its new id.

        Raises:
            ActiveSessionExistsError: Inserting an active session for a
                household that already has one.
        """
        return await self._async_write(lambda: self._insert_row(table, values))

    async def async_update(
        self, table: str, row_id: int, values: Mapping[str, Any]
    ) -> bool:
        """Merge ``values`` into a row. Returns False if the row does not exist."""
        return await self._async_write(lambda: self._update_row(table, row_id, values))

    async def async_delete(self, table: str, where: Where) -> int:
        """Delete rows matching ``where`` and return how many were removed."""
        return await self._async_write(lambda: self._delete_rows(table, where))

    async def async_set_flag(self, key: str, value: Any) -> None:
        """Store a value under an app flag key. ``None`` removes the key."""

        def _set() -> None:
            flags = self._data[const.DATA_APP_FLAGS]
            if value is None:
                flags.pop(key, None)
            else:
                flags[key] = copy.deepcopy(value)

        await self._async_write(_set)

    # -------------------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------------------

    async def async_begin(self) -> None:
        """Open a transaction owned by the calling task."""
        if self._owns_transaction():
            raise KidsDefisError("A transaction is already open for this task")
        await self._lock.acquire()
        self._tx_owner = asyncio.current_task()
        self._snapshot = copy.deepcopy(self._data)

    async def async_commit(self) -> None:
        """Persist the transaction's changes and release the store.

        Raises:
            OSError, TypeError, ValueError: The save failed. The in-memory
                document is restored from the snapshot before re-raising.
        """
        if not self._owns_transaction():
            raise KidsDefisError("No open transaction to commit")
        try:
            await self.async_save(raise_on_error=True)
        except (OSError, TypeError, ValueError):
            if self._snapshot is not None:
                self._data = self._snapshot
            const.LOGGER.warning("Commit failed, transaction changes discarded")
            raise
        finally:
            self._end_transaction()

    async def async_rollback(self) -> None:
        """Discard the transaction's changes and release the store."""
        if not self._owns_transaction():
            raise KidsDefisError("No open transaction to roll back")
        if self._snapshot is not None:
            self._data = self._snapshot
        self._end_transaction()
        const.LOGGER.debug("Transaction rolled back")

    def _end_transaction(self) -> None:
        self._snapshot = None
        self._tx_owner = None
        self._lock.release()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[KidsDefisStore]:
        """Run a block atomically: commit on success, roll back on any error.

        Example:
            async with store.transaction():
                await store.async_update(...)
                await store.async_insert(...)
        """
        await self.async_begin()
        try:
            yield self
        except BaseException:
            await self.async_rollback()
            raise
        await self.async_commit()

    # -------------------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------------------

    async def async_save(self, raise_on_error: bool = False) -> None:
        """Save the current data structure to storage asynchronously.

        Args:
            raise_on_error: Re-raise after logging instead of carrying on.

        Raises:
            Nothing unless ``raise_on_error`` is set; errors are logged.
            OSError: Logged when file system issues prevent saving.
            TypeError: Logged when data contains non-serializable types.
            ValueError: Logged when data is invalid for JSON serialization.
        """
        try:
            await self._store.async_save(self._data)
            const.LOGGER.debug("Data saved successfully to storage")
        except OSError as err:
            const.LOGGER.error(
                "Failed to save storage due to file system error: %s. "
                "Check disk space and file permissions for %s",
                err,
                self._store.path,
            )
            if raise_on_error:
                raise
        except TypeError as err:
            const.LOGGER.error(
                "Failed to save storage due to non-serializable data: %s. "
                "Data contains types that cannot be converted to JSON",
                err,
            )
            if raise_on_error:
                raise
        except ValueError as err:
            const.LOGGER.error(
                "Failed to save storage due to invalid data format: %s. "
                "Data structure may be corrupted",
                err,
            )
            if raise_on_error:
                raise

    async def async_delete_storage(self) -> None:
        """Delete the storage file completely from disk.

        This clears all in-memory data and removes the storage file using
        Home Assistant's Store API for proper file handling.
        """
        self._data = KidsDefisStore.get_default_structure()
        try:
            await self._store.async_remove()
            const.LOGGER.info(
                "Storage file removed successfully: %s",
                self._store.path,
            )
        except OSError as err:
            const.LOGGER.error(
                "Failed to remove storage file %s: %s. Check file permissions",
                self._store.path,
                err,
            )
