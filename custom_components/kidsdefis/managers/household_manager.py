"""Household Manager - Households and their participants."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from .. import const
from ..exceptions import KidsDefisValidationError
from ..type_defs import ChildId, HouseholdId
from ..utils.dt_utils import dt_now_iso, dt_parse_date
from .base_manager import BaseManager

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from ..coordinator import KidsDefisDataCoordinator
    from ..type_defs import ChildData, HouseholdData


class HouseholdManager(BaseManager):
    """Owns the ``households`` and ``children`` tables."""

    def __init__(
        self, hass: HomeAssistant, coordinator: KidsDefisDataCoordinator
    ) -> None:
        """Initialize the HouseholdManager."""
        super().__init__(hass, coordinator)

    async def async_setup(self) -> None:
        """No subscriptions."""

    async def async_create_household(
        self, name: str, referent_name: str
    ) -> HouseholdId:
        """Create a household and return its id."""
        if not name:
            raise KidsDefisValidationError("Missing required field: name")
        household_id = await self.store.async_insert(
            const.DATA_HOUSEHOLDS,
            {
                const.DATA_HOUSEHOLD_NAME: name,
                const.DATA_HOUSEHOLD_REFERENT_NAME: referent_name or "",
                const.DATA_CREATED_AT: dt_now_iso(),
            },
        )
        await self.coordinator.log_manager.async_add_log(
            const.LOG_TYPE_SYSTEM,
            "Household created",
            details={"name": name},
            household_id=household_id,
            ref_id=household_id,
        )
        return HouseholdId(household_id)

    async def async_add_child(
        self,
        household_id: HouseholdId,
        name: str,
        birthdate: str,
        avatar: str | None = None,
        coins: int = 0,
    ) -> ChildId:
        """Add a participant to a household and return its id."""
        household_id = self.require_id(household_id, "household_id", HouseholdId)
        if self.get_household(household_id) is None:
            raise KidsDefisValidationError(f"Unknown household: {household_id}")
        if not name:
            raise KidsDefisValidationError("Missing required field: name")
        parsed = dt_parse_date(birthdate)
        if parsed is None:
            raise KidsDefisValidationError(f"Invalid birthdate: {birthdate}")

        child_id = await self.store.async_insert(
            const.DATA_CHILDREN,
            {
                const.DATA_HOUSEHOLD_ID: household_id,
                const.DATA_CHILD_NAME: name,
                const.DATA_CHILD_BIRTHDATE: parsed.isoformat(),
                const.DATA_CHILD_AVATAR: avatar,
                const.DATA_CHILD_COINS: int(coins),
                const.DATA_CREATED_AT: dt_now_iso(),
            },
        )
        await self.coordinator.log_manager.async_add_log(
            const.LOG_TYPE_SYSTEM,
            "Child added",
            details={"name": name},
            household_id=household_id,
            children_ids=[child_id],
            ref_id=child_id,
        )
        return ChildId(child_id)

    def get_household(self, household_id: HouseholdId) -> HouseholdData | None:
        """Return a household row by id."""
        return cast(
            "HouseholdData | None", self.store.get(const.DATA_HOUSEHOLDS, household_id)
        )

    def get_households(self) -> list[HouseholdData]:
        """Return every household."""
        return cast("list[HouseholdData]", self.store.select(const.DATA_HOUSEHOLDS))

    def get_child(self, child_id: ChildId) -> ChildData | None:
        """Return a participant row by id."""
        return cast("ChildData | None", self.store.get(const.DATA_CHILDREN, child_id))

    def get_children(self, household_id: HouseholdId) -> list[ChildData]:
        """Return the household's participants in creation order."""
        return cast(
            "list[ChildData]",
            self.store.select(
                const.DATA_CHILDREN, {const.DATA_HOUSEHOLD_ID: household_id}
            ),
        )
