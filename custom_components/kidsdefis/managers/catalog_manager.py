"""Catalog Manager - Challenges and rewards of a household.

This manager handles:
- Custom challenge CRUD and search (household scoped)
- Global default challenges
- Custom reward CRUD
- Transactional bulk import of catalog rows (all rows or none)
- One-shot import from the remote catalog provider, guarded by app flags
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from .. import catalog_provider, const
from ..exceptions import KidsDefisValidationError
from ..type_defs import ChallengeId, HouseholdId, RewardId
from ..utils.dt_utils import dt_now_iso
from .base_manager import BaseManager

if TYPE_CHECKING:
    from collections.abc import Iterable

    from homeassistant.core import HomeAssistant

    from ..coordinator import KidsDefisDataCoordinator
    from ..type_defs import ChallengeData, RewardData

_CHALLENGE_TEXT_FIELDS = (
    const.DATA_CHALLENGE_TITLE,
    const.DATA_CHALLENGE_DESCRIPTION,
    const.DATA_CHALLENGE_CATEGORY,
    const.DATA_CHALLENGE_LOCATION,
)
_CHALLENGE_OPTIONAL_FIELDS = (
    const.DATA_CHALLENGE_DURATION_MIN,
    const.DATA_CHALLENGE_POINTS_DEFAULT,
    const.DATA_CHALLENGE_PHOTO_REQUIRED,
    const.DATA_CHALLENGE_AGE_MIN,
    const.DATA_CHALLENGE_AGE_MAX,
)


def _challenge_values(data: dict[str, Any]) -> dict[str, Any]:
    """Normalize the editable fields of a challenge."""
    values = {field: data.get(field) or "" for field in _CHALLENGE_TEXT_FIELDS}
    for field in _CHALLENGE_OPTIONAL_FIELDS:
        values[field] = data.get(field)
    return values


class CatalogManager(BaseManager):
    """Owns the challenge and reward catalog tables."""

    def __init__(
        self, hass: HomeAssistant, coordinator: KidsDefisDataCoordinator
    ) -> None:
        """Initialize the CatalogManager."""
        super().__init__(hass, coordinator)

    async def async_setup(self) -> None:
        """No subscriptions."""

    # =========================================================================
    # Challenges
    # =========================================================================

    def get_challenges(self, household_id: HouseholdId) -> list[ChallengeData]:
        """Return the household's custom challenges, newest first."""
        rows = self.store.select(
            const.DATA_CHALLENGES_CUSTOM,
            {const.DATA_HOUSEHOLD_ID: household_id},
            order_by=const.DATA_CREATED_AT,
            reverse=True,
        )
        return cast("list[ChallengeData]", rows)

    def get_default_challenges(self) -> list[ChallengeData]:
        """Return the global default challenges."""
        return cast(
            "list[ChallengeData]", self.store.select(const.DATA_CHALLENGES_DEFAULT)
        )

    def search_challenges(self, household_id: HouseholdId, query: str) -> list[ChallengeData]:
        """Custom challenges whose title, category or location contains ``query``."""
        needle = (query or "").casefold()

        def _where(row: dict[str, Any]) -> bool:
            if row.get(const.DATA_HOUSEHOLD_ID) != household_id:
                return False
            return any(
                needle in str(row.get(field) or "").casefold()
                for field in (
                    const.DATA_CHALLENGE_TITLE,
                    const.DATA_CHALLENGE_CATEGORY,
                    const.DATA_CHALLENGE_LOCATION,
                )
            )

        rows = self.store.select(
            const.DATA_CHALLENGES_CUSTOM,
            _where,
            order_by=const.DATA_CREATED_AT,
            reverse=True,
        )
        return cast("list[ChallengeData]", rows)

    async def async_add_challenge(
        self, household_id: HouseholdId, data: dict[str, Any], created_by: str | None = None
    ) -> ChallengeId:
        """Create a custom challenge and return its id."""
        household_id = self.require_id(household_id, "household_id", HouseholdId)
        if not data.get(const.DATA_CHALLENGE_TITLE):
            raise KidsDefisValidationError("Missing required field: title")

        now = dt_now_iso()
        challenge_id = await self.store.async_insert(
            const.DATA_CHALLENGES_CUSTOM,
            {
                const.DATA_HOUSEHOLD_ID: household_id,
                **_challenge_values(data),
                const.DATA_CREATED_BY: created_by or "",
                const.DATA_CREATED_AT: now,
                const.DATA_UPDATED_AT: now,
                const.DATA_IS_SYNCED: False,
            },
        )
        await self.coordinator.log_manager.async_add_log(
            const.LOG_TYPE_DEFI,
            "Custom challenge added",
            details={"defi_id": challenge_id, "title": data[const.DATA_CHALLENGE_TITLE]},
            household_id=household_id,
            ref_id=challenge_id,
        )
        return ChallengeId(challenge_id)

    async def async_add_default_challenge(self, data: dict[str, Any]) -> ChallengeId:
        """Create a global default challenge and return its id."""
        if not data.get(const.DATA_CHALLENGE_TITLE):
            raise KidsDefisValidationError("Missing required field: title")
        now = dt_now_iso()
        challenge_id = await self.store.async_insert(
            const.DATA_CHALLENGES_DEFAULT,
            {
                const.DATA_HOUSEHOLD_ID: None,
                **_challenge_values(data),
                const.DATA_CREATED_BY: const.CATALOG_CREATED_BY_SYSTEM,
                const.DATA_CREATED_AT: now,
                const.DATA_UPDATED_AT: now,
                const.DATA_IS_SYNCED: True,
            },
        )
        return ChallengeId(challenge_id)

    async def async_update_challenge(
        self, household_id: HouseholdId, data: dict[str, Any]
    ) -> bool:
        """Update a custom challenge of the household.

        Raises:
            KidsDefisValidationError: ``data`` carries no id.
        """
        if not data.get(const.DATA_ID):
            raise KidsDefisValidationError("Challenge id is required for an update")
        household_id = self.require_id(household_id, "household_id", HouseholdId)
        challenge_id = self.require_id(data[const.DATA_ID], "id", ChallengeId)

        existing = self.store.get(const.DATA_CHALLENGES_CUSTOM, challenge_id)
        if existing is None or existing.get(const.DATA_HOUSEHOLD_ID) != household_id:
            return False

        await self.store.async_update(
            const.DATA_CHALLENGES_CUSTOM,
            challenge_id,
            {
                **_challenge_values(data),
                const.DATA_UPDATED_AT: dt_now_iso(),
                const.DATA_IS_SYNCED: False,
            },
        )
        await self.coordinator.log_manager.async_add_log(
            const.LOG_TYPE_DEFI,
            "Challenge updated",
            details={"defi_id": challenge_id},
            household_id=household_id,
            ref_id=challenge_id,
        )
        return True

    async def async_delete_challenge(
        self, household_id: HouseholdId, challenge_id: ChallengeId
    ) -> bool:
        """Delete a custom challenge of the household."""
        household_id = self.require_id(household_id, "household_id", HouseholdId)
        challenge_id = self.require_id(challenge_id, "id", ChallengeId)
        removed = await self.store.async_delete(
            const.DATA_CHALLENGES_CUSTOM,
            {const.DATA_ID: challenge_id, const.DATA_HOUSEHOLD_ID: household_id},
        )
        await self.coordinator.log_manager.async_add_log(
            const.LOG_TYPE_DEFI,
            "Custom challenge deleted",
            details={"defi_id": challenge_id},
            household_id=household_id,
            ref_id=challenge_id,
        )
        return removed > 0

    # =========================================================================
    # Rewards
    # =========================================================================

    def get_rewards(self, household_id: HouseholdId) -> list[RewardData]:
        """Return the household's rewards, newest first."""
        rows = self.store.select(
            const.DATA_REWARDS_CUSTOM,
            {const.DATA_HOUSEHOLD_ID: household_id},
            order_by=const.DATA_CREATED_AT,
            reverse=True,
        )
        return cast("list[RewardData]", rows)

    def get_reward(self, reward_id: RewardId) -> RewardData | None:
        """Return a reward row by id."""
        return cast("RewardData | None", self.store.get(const.DATA_REWARDS_CUSTOM, reward_id))

    async def async_add_reward(
        self, household_id: HouseholdId, data: dict[str, Any], created_by: str | None = None
    ) -> RewardId:
        """Create a reward and return its id."""
        household_id = self.require_id(household_id, "household_id", HouseholdId)
        if not data.get(const.DATA_REWARD_TITLE):
            raise KidsDefisValidationError("Missing required field: title")

        now = dt_now_iso()
        reward_id = await self.store.async_insert(
            const.DATA_REWARDS_CUSTOM,
            {
                const.DATA_HOUSEHOLD_ID: household_id,
                const.DATA_REWARD_TITLE: data[const.DATA_REWARD_TITLE],
                const.DATA_REWARD_DESCRIPTION: data.get(const.DATA_REWARD_DESCRIPTION) or "",
                const.DATA_REWARD_COST: int(data.get(const.DATA_REWARD_COST) or 0),
                const.DATA_REWARD_CATEGORY: data.get(const.DATA_REWARD_CATEGORY) or "",
                const.DATA_CREATED_BY: created_by or "",
                const.DATA_CREATED_AT: now,
                const.DATA_UPDATED_AT: now,
                const.DATA_IS_SYNCED: False,
            },
        )
        await self.coordinator.log_manager.async_add_log(
            const.LOG_TYPE_REWARD,
            "Custom reward added",
            details={"reward_id": reward_id, "title": data[const.DATA_REWARD_TITLE]},
            household_id=household_id,
            ref_id=reward_id,
        )
        return RewardId(reward_id)

    async def async_update_reward(
        self, household_id: HouseholdId, data: dict[str, Any]
    ) -> bool:
        """Update a reward of the household.

        Raises:
            KidsDefisValidationError: ``data`` carries no id.
        """
        if not data.get(const.DATA_ID):
            raise KidsDefisValidationError("Reward id is required for an update")
        household_id = self.require_id(household_id, "household_id", HouseholdId)
        reward_id = self.require_id(data[const.DATA_ID], "id", RewardId)

        existing = self.store.get(const.DATA_REWARDS_CUSTOM, reward_id)
        if existing is None or existing.get(const.DATA_HOUSEHOLD_ID) != household_id:
            return False

        await self.store.async_update(
            const.DATA_REWARDS_CUSTOM,
            reward_id,
            {
                const.DATA_REWARD_TITLE: data.get(const.DATA_REWARD_TITLE)
                or existing.get(const.DATA_REWARD_TITLE),
                const.DATA_REWARD_DESCRIPTION: data.get(const.DATA_REWARD_DESCRIPTION) or "",
                const.DATA_REWARD_COST: int(data.get(const.DATA_REWARD_COST) or 0),
                const.DATA_UPDATED_AT: dt_now_iso(),
                const.DATA_IS_SYNCED: False,
            },
        )
        await self.coordinator.log_manager.async_add_log(
            const.LOG_TYPE_REWARD,
            "Reward updated",
            details={"reward_id": reward_id},
            household_id=household_id,
            ref_id=reward_id,
        )
        return True

    async def async_delete_reward(
        self, household_id: HouseholdId, reward_id: RewardId
    ) -> bool:
        """Delete a reward of the household."""
        household_id = self.require_id(household_id, "household_id", HouseholdId)
        reward_id = self.require_id(reward_id, "id", RewardId)
        removed = await self.store.async_delete(
            const.DATA_REWARDS_CUSTOM,
            {const.DATA_ID: reward_id, const.DATA_HOUSEHOLD_ID: household_id},
        )
        await self.coordinator.log_manager.async_add_log(
            const.LOG_TYPE_REWARD,
            "Reward deleted",
            details={"reward_id": reward_id},
            household_id=household_id,
            ref_id=reward_id,
        )
        return removed > 0

    # =========================================================================
    # Bulk import
    # =========================================================================

    async def async_import_default_challenges(
        self, household_id: HouseholdId, rows: Iterable[dict[str, Any]]
    ) -> int:
        """Insert catalog challenges into the household's custom set.

        All rows are inserted or none. Returns the number of rows imported.
        """
        household_id = self.require_id(household_id, "household_id", HouseholdId)
        rows = list(rows)
        now = dt_now_iso()
        async with self.store.transaction():
            for row in rows:
                await self.store.async_insert(
                    const.DATA_CHALLENGES_CUSTOM,
                    {
                        const.DATA_HOUSEHOLD_ID: household_id,
                        **_challenge_values(row),
                        const.DATA_CREATED_BY: const.CATALOG_CREATED_BY_SYSTEM,
                        const.DATA_CREATED_AT: now,
                        const.DATA_UPDATED_AT: now,
                        const.DATA_IS_SYNCED: False,
                    },
                )

        await self.coordinator.log_manager.async_add_log(
            const.LOG_TYPE_DEFI,
            "Default challenges imported",
            details={"count": len(rows)},
            household_id=household_id,
        )
        return len(rows)

    async def async_import_default_rewards(
        self, household_id: HouseholdId, rows: Iterable[dict[str, Any]]
    ) -> int:
        """Insert catalog rewards into the household's rewards.

        All rows are inserted or none. Returns the number of rows imported.
        """
        household_id = self.require_id(household_id, "household_id", HouseholdId)
        rows = list(rows)
        now = dt_now_iso()
        async with self.store.transaction():
            for row in rows:
                await self.store.async_insert(
                    const.DATA_REWARDS_CUSTOM,
                    {
                        const.DATA_HOUSEHOLD_ID: household_id,
                        const.DATA_REWARD_TITLE: row.get(const.DATA_REWARD_TITLE) or "",
                        const.DATA_REWARD_DESCRIPTION: row.get(const.DATA_REWARD_DESCRIPTION)
                        or "",
                        const.DATA_REWARD_COST: int(row.get(const.DATA_REWARD_COST) or 0),
                        const.DATA_REWARD_CATEGORY: row.get(const.DATA_REWARD_CATEGORY)
                        or "",
                        const.DATA_CREATED_BY: row.get(const.DATA_CREATED_BY)
                        or const.CATALOG_CREATED_BY_SYSTEM,
                        const.DATA_CREATED_AT: now,
                        const.DATA_UPDATED_AT: now,
                        const.DATA_IS_SYNCED: True,
                    },
                )

        await self.coordinator.log_manager.async_add_log(
            const.LOG_TYPE_REWARD,
            "Default rewards imported",
            details={"count": len(rows)},
            household_id=household_id,
        )
        return len(rows)

    async def async_import_from_provider(self, household_id: HouseholdId, kind: str) -> int:
        """Import the remote catalog once per kind.

        Returns 0 without fetching when the import already happened. An empty
        remote catalog also marks the import as done.

        Raises:
            CatalogFetchError: The provider could not be reached or parsed.
            KidsDefisValidationError: Unknown kind or no URL configured.
        """
        if kind == const.CATALOG_KIND_CHALLENGES:
            flag = const.FLAG_CHALLENGES_IMPORTED
            url_key = const.CONF_CHALLENGES_CATALOG_URL
        elif kind == const.CATALOG_KIND_REWARDS:
            flag = const.FLAG_REWARDS_IMPORTED
            url_key = const.CONF_REWARDS_CATALOG_URL
        else:
            raise KidsDefisValidationError(f"Unknown catalog kind: {kind}")

        if self.store.get_flag(flag):
            const.LOGGER.debug("Catalog '%s' already imported, skipping", kind)
            return 0

        url = self.coordinator.config_entry.options.get(url_key)
        if not url:
            raise KidsDefisValidationError(f"No catalog URL configured for {kind}")

        if kind == const.CATALOG_KIND_CHALLENGES:
            rows = await catalog_provider.async_fetch_challenges(self.hass, url)
            imported = (
                await self.async_import_default_challenges(household_id, rows)
                if rows
                else 0
            )
        else:
            rows = await catalog_provider.async_fetch_rewards(self.hass, url)
            imported = (
                await self.async_import_default_rewards(household_id, rows) if rows else 0
            )

        await self.store.async_set_flag(flag, True)
        return imported
