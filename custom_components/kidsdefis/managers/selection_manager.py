"""Challenge Selection Manager - Store-backed challenge picking.

Gathers the candidate pool of a household (global defaults overridden by
household customs), removes challenges completed within the lookback window
and hands the remaining candidates to SelectionEngine.

The random source is a ``random.Random`` owned by the manager; the
coordinator seeds it from the ``selection_seed`` option when one is set.
"""

from __future__ import annotations

import math
import random
from typing import TYPE_CHECKING, Any

from .. import const
from ..engines.selection_engine import SelectionEngine
from ..type_defs import ChildId, HouseholdId
from .base_manager import BaseManager

if TYPE_CHECKING:
    from collections.abc import Iterable

    from homeassistant.core import HomeAssistant

    from ..coordinator import KidsDefisDataCoordinator
    from ..type_defs import SessionConfig


class ChallengeSelectionManager(BaseManager):
    """Selects a random challenge or a duration-bounded bundle."""

    def __init__(
        self,
        hass: HomeAssistant,
        coordinator: KidsDefisDataCoordinator,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the selection manager.

        Args:
            hass: Home Assistant instance
            coordinator: The main KidsDefis coordinator
            rng: Random source; a fresh unseeded one when omitted
        """
        super().__init__(hass, coordinator)
        self.rng = rng or random.Random()

    async def async_setup(self) -> None:
        """No subscriptions."""

    @property
    def default_lookback_days(self) -> int:
        """Lookback window from the config entry options."""
        return int(
            self.coordinator.config_entry.options.get(
                const.CONF_LOOKBACK_DAYS, const.DEFAULT_LOOKBACK_DAYS
            )
        )

    @property
    def default_bundle_cap(self) -> int:
        """Bundle size cap from the config entry options."""
        return int(
            self.coordinator.config_entry.options.get(
                const.CONF_BUNDLE_CAP, const.DEFAULT_BUNDLE_CAP
            )
        )

    # =========================================================================
    # Primitives
    # =========================================================================

    def average_age(self, children_ids: Iterable[ChildId]) -> int:
        """Rounded mean age of the given participants, 0 with none."""
        birthdates = []
        for child_id in children_ids:
            child = self.store.get(const.DATA_CHILDREN, child_id)
            if child is not None:
                birthdates.append(child.get(const.DATA_CHILD_BIRTHDATE))
        return SelectionEngine.average_age(birthdates)

    def candidate_pool(self, household_id: HouseholdId) -> list[dict[str, Any]]:
        """Union of default and household challenges, customs winning on id."""
        defaults = self.store.select(const.DATA_CHALLENGES_DEFAULT)
        customs = self.store.select(
            const.DATA_CHALLENGES_CUSTOM, {const.DATA_HOUSEHOLD_ID: household_id}
        )
        return SelectionEngine.merge_candidate_pool(defaults, customs)

    def exclude_recently_completed(
        self,
        pool: Iterable[dict[str, Any]],
        household_id: HouseholdId,
        lookback_days: int | float,
    ) -> list[dict[str, Any]]:
        """Drop challenges the household completed within ``lookback_days``."""
        done = self.coordinator.history_manager.get_recently_completed_ids(
            household_id, lookback_days
        )
        return SelectionEngine.exclude_ids(pool, done)

    def _resolve(
        self, config: SessionConfig
    ) -> tuple[HouseholdId, list[ChildId], int | float]:
        household_id = self.require_id(
            config.get("household_id"), "household_id", HouseholdId
        )
        children_ids = self.require_id_list(
            config.get("children_ids"), "children_ids", ChildId
        )
        lookback = config.get("lookback_days")
        if not isinstance(lookback, (int, float)) or isinstance(lookback, bool):
            lookback = self.default_lookback_days
        return household_id, children_ids, lookback

    def _eligible(
        self,
        config: SessionConfig,
        household_id: HouseholdId,
        lookback_days: int | float,
        avg_age: int,
        max_duration: int | float | None,
    ) -> list[dict[str, Any]]:
        pool = self.candidate_pool(household_id)
        pool = self.exclude_recently_completed(pool, household_id, lookback_days)
        return SelectionEngine.apply_filters(
            pool,
            age=avg_age,
            location=config.get("location"),
            category=config.get("category"),
            max_duration=max_duration,
        )

    # =========================================================================
    # Selection
    # =========================================================================

    async def async_pick_random_eligible(
        self, config: SessionConfig
    ) -> dict[str, Any] | None:
        """Pick one eligible challenge uniformly at random.

        Returns:
            The challenge row, or None when nothing is eligible
        """
        household_id, children_ids, lookback = self._resolve(config)
        avg_age = self.average_age(children_ids)
        planned = config.get("planned_duration_min")
        candidates = self._eligible(config, household_id, lookback, avg_age, planned)

        details: dict[str, Any] = {
            "avg_age": avg_age,
            "lookback_days": lookback,
            "location": config.get("location") or "",
            "planned_duration_min": planned,
            "category": config.get("category") or "",
        }

        pick = SelectionEngine.pick_random(candidates, self.rng)
        if pick is None:
            await self.coordinator.log_manager.async_add_log(
                const.LOG_TYPE_DEFI,
                "No eligible challenge (random)",
                details=details,
                household_id=household_id,
                children_ids=children_ids,
            )
            return None

        await self.coordinator.log_manager.async_add_log(
            const.LOG_TYPE_DEFI,
            "Challenge proposed (random)",
            details={"defi_id": pick[const.DATA_ID], **details},
            household_id=household_id,
            children_ids=children_ids,
            ref_id=pick[const.DATA_ID],
        )
        return pick

    async def async_build_eligible_bundle(
        self, config: SessionConfig, cap: int | None = None
    ) -> list[dict[str, Any]]:
        """Build a bundle whose total duration stays within the planned duration.

        Args:
            config: Session constraints (planned_duration_min is the target)
            cap: Maximum bundle size, clamped to 1..12 (defaults to the option)

        Returns:
            The selected challenges (empty when nothing is eligible)
        """
        household_id, children_ids, lookback = self._resolve(config)
        planned = config.get("planned_duration_min")
        target = (
            math.floor(planned + 0.5)
            if isinstance(planned, (int, float)) and planned > 0
            else None
        )
        bundle_cap = SelectionEngine.clamp_cap(
            cap if cap is not None else self.default_bundle_cap
        )

        avg_age = self.average_age(children_ids)
        eligible = self._eligible(config, household_id, lookback, avg_age, target)
        pool = SelectionEngine.duration_pool(eligible)

        bundle, total, used_fallback = SelectionEngine.compose_bundle(
            pool, target, bundle_cap, self.rng
        )

        await self.coordinator.log_manager.async_add_log(
            const.LOG_TYPE_DEFI,
            "Bundle built (fallback, no target)" if used_fallback else "Bundle built",
            details={
                "count": len(bundle),
                "sum_duration": total,
                "ids": [item[const.DATA_ID] for item in bundle],
                "target": target,
                "avg_age": avg_age,
                "lookback_days": lookback,
                "location": config.get("location") or "",
                "category": config.get("category") or "",
                "cap": bundle_cap,
                "fallback": used_fallback,
            },
            household_id=household_id,
            children_ids=children_ids,
        )
        return bundle
