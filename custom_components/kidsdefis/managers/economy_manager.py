"""Economy Manager - Coin ledger, awards and reward grants.

This manager handles all coin-related operations:
- Crediting coins to participants for a session (awards)
- Redeeming a reward across a group of participants (grants)
- Ledger, balance and reward history reads
- Event emission for coin movements

ARCHITECTURE:
- EconomyManager = "The Bank" (STATEFUL, owns balances and the ledger)
- EconomyEngine = Pure distribution and ledger logic (STATELESS)

A grant runs in a single store transaction: either every balance update,
ledger row and the reward history row are written, or none are.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from .. import const
from ..engines.economy_engine import EconomyEngine, InsufficientFundsError
from ..exceptions import KidsDefisValidationError
from ..type_defs import ChallengeId, ChildId, HouseholdId, RewardId, SessionId
from ..utils.dt_utils import dt_now_iso, dt_to_utc
from .base_manager import BaseManager

if TYPE_CHECKING:
    from collections.abc import Iterable

    from homeassistant.core import HomeAssistant

    from ..coordinator import KidsDefisDataCoordinator
    from ..type_defs import (
        CoinLedgerEntry,
        GrantResult,
        ParticipantImpact,
        RewardHistoryEntry,
    )


# Re-export exception for external use
__all__ = ["EconomyManager", "InsufficientFundsError"]


class EconomyManager(BaseManager):
    """Manager for coin balances, the ledger and reward redemptions.

    Responsibilities:
    - Credit session awards (ledger row then balance, per participant)
    - Debit reward costs with an exact-sum distribution
    - Emit SIGNAL_SUFFIX_COINS_AWARDED / SIGNAL_SUFFIX_REWARD_GRANTED

    NOT responsible for:
    - Session aggregates (recomputed by SessionManager when a session ends)
    """

    def __init__(
        self,
        hass: HomeAssistant,
        coordinator: KidsDefisDataCoordinator,
    ) -> None:
        """Initialize the EconomyManager.

        Args:
            hass: Home Assistant instance
            coordinator: The main KidsDefis coordinator
        """
        super().__init__(hass, coordinator)

    async def async_setup(self) -> None:
        """No subscriptions; awards and grants are driven by service calls."""

    # =========================================================================
    # Reads
    # =========================================================================

    def get_balance(self, child_id: ChildId) -> int:
        """Return a participant's coin balance (0 when unknown)."""
        child = self.store.get(const.DATA_CHILDREN, child_id)
        if child is None:
            return 0
        return int(child.get(const.DATA_CHILD_COINS) or 0)

    def get_ledger(
        self,
        household_id: HouseholdId,
        child_id: ChildId | None = None,
        session_id: SessionId | None = None,
        limit: int | None = None,
    ) -> list[CoinLedgerEntry]:
        """Return ledger rows for a household, newest first."""

        def _where(row: dict[str, Any]) -> bool:
            if row.get(const.DATA_HOUSEHOLD_ID) != household_id:
                return False
            if child_id is not None and row.get(const.DATA_LEDGER_CHILD_ID) != child_id:
                return False
            if session_id is not None and row.get(const.DATA_SESSION_ID) != session_id:
                return False
            return True

        rows = self.store.select(
            const.DATA_COINS_HISTORY, _where, order_by=const.DATA_ID, reverse=True
        )
        if limit is not None:
            rows = rows[:limit]
        return cast("list[CoinLedgerEntry]", rows)

    def get_reward_history(
        self,
        household_id: HouseholdId,
        start: str | None = None,
        end: str | None = None,
        reward_id: RewardId | None = None,
    ) -> list[RewardHistoryEntry]:
        """Return the household's redemptions, newest first.

        Rows are enriched with the reward's title, description and cost when
        the reward still exists.
        """
        start_dt = dt_to_utc(start)
        end_dt = dt_to_utc(end)

        def _where(row: dict[str, Any]) -> bool:
            if row.get(const.DATA_HOUSEHOLD_ID) != household_id:
                return False
            if (
                reward_id is not None
                and row.get(const.DATA_REWARD_HISTORY_REWARD_ID) != reward_id
            ):
                return False
            received = dt_to_utc(row.get(const.DATA_REWARD_HISTORY_RECEIVED_AT))
            if start_dt and (received is None or received < start_dt):
                return False
            if end_dt and (received is None or received > end_dt):
                return False
            return True

        rows = self.store.select(
            const.DATA_REWARD_HISTORY,
            _where,
            order_by=const.DATA_REWARD_HISTORY_RECEIVED_AT,
            reverse=True,
        )
        for row in rows:
            reward = self.store.get(
                const.DATA_REWARDS_CUSTOM, row[const.DATA_REWARD_HISTORY_REWARD_ID]
            )
            if reward is not None:
                row[const.DATA_REWARD_TITLE] = reward.get(const.DATA_REWARD_TITLE)
                row[const.DATA_REWARD_DESCRIPTION] = reward.get(
                    const.DATA_REWARD_DESCRIPTION
                )
                row[const.DATA_REWARD_COST] = reward.get(const.DATA_REWARD_COST)
        return cast("list[RewardHistoryEntry]", rows)

    # =========================================================================
    # Awards
    # =========================================================================

    async def async_award_coins_for_children(
        self,
        session_id: SessionId,
        household_id: HouseholdId,
        children_ids: Iterable[ChildId],
        amount_per_child: int,
        defi_id: ChallengeId | None = None,
        reason: str | None = None,
        created_by: str | None = None,
    ) -> int:
        """Credit the same amount to each participant.

        Does nothing (no write, no log) when the amount is not positive or
        no participant is given.

        Returns:
            Total amount credited
        """
        participants = self.require_id_list(children_ids, "children_ids", ChildId)
        amount = self.require_amount(amount_per_child or 0, "amount_per_child")
        if amount <= 0 or not participants:
            return 0

        session_id = self.require_id(session_id, "session_id", SessionId)
        household_id = self.require_id(household_id, "household_id", HouseholdId)
        defi_id = self.optional_id(defi_id, "defi_id", ChallengeId)

        for child_id in participants:
            await self.store.async_insert(
                const.DATA_COINS_HISTORY,
                EconomyEngine.create_ledger_entry(
                    household_id=household_id,
                    child_id=child_id,
                    amount=amount,
                    reason=reason,
                    session_id=session_id,
                    defi_id=defi_id,
                    created_by=created_by or "",
                ),
            )
            child = self.store.get(const.DATA_CHILDREN, child_id)
            if child is not None and child.get(const.DATA_HOUSEHOLD_ID) == household_id:
                await self.store.async_update(
                    const.DATA_CHILDREN,
                    child_id,
                    {
                        const.DATA_CHILD_COINS: int(
                            child.get(const.DATA_CHILD_COINS) or 0
                        )
                        + amount
                    },
                )

        total = amount * len(participants)
        await self.coordinator.log_manager.async_add_log(
            const.LOG_TYPE_SESSION,
            "Coins awarded",
            details={
                "session_id": session_id,
                "defi_id": defi_id,
                "amount_per_child": amount,
                "total": total,
            },
            household_id=household_id,
            children_ids=participants,
            ref_id=session_id,
        )
        self.emit(
            const.SIGNAL_SUFFIX_COINS_AWARDED,
            session_id=session_id,
            household_id=household_id,
            children_ids=participants,
            amount_per_child=amount,
            total=total,
        )
        return total

    # =========================================================================
    # Grants
    # =========================================================================

    async def async_grant_reward(
        self,
        household_id: HouseholdId,
        reward_id: RewardId,
        cost: int,
        children_ids: Iterable[ChildId],
        actor: str | None = None,
        session_id: SessionId | None = None,
    ) -> GrantResult:
        """Redeem a reward, debiting ``cost`` across the participants.

        Only the participants' combined balance is checked, so one of them
        may end with a negative balance when balances are uneven.

        Args:
            household_id: Household redeeming the reward
            reward_id: Reward being redeemed
            cost: Positive cost in coins
            children_ids: Participants sharing the cost, in debit order
            actor: Optional name of the person granting the reward
            session_id: Optional session during which the reward is granted

        Returns:
            GrantResult with the history id and per-participant balances

        Raises:
            KidsDefisValidationError: Missing ids, no participant, a participant
                outside the household, or a cost that is not a positive whole number
            InsufficientFundsError: Combined balance lower than cost
        """
        household_id = self.require_id(household_id, "household_id", HouseholdId)
        reward_id = self.require_id(reward_id, "reward_id", RewardId)
        participants = self.require_id_list(children_ids, "children_ids", ChildId)
        if not participants:
            raise KidsDefisValidationError("No participant selected")
        cost = self.require_amount(cost, "cost")
        if cost <= 0:
            raise KidsDefisValidationError("Cost must be greater than 0")
        session_id = self.optional_id(session_id, "session_id", SessionId)
        for child_id in participants:
            child = self.store.get(const.DATA_CHILDREN, child_id)
            if child is None or child.get(const.DATA_HOUSEHOLD_ID) != household_id:
                raise KidsDefisValidationError(
                    f"Child {child_id} is not a member of household {household_id}"
                )

        try:
            async with self.store.transaction():
                balances = {
                    child_id: self.get_balance(child_id) for child_id in participants
                }
                available = EconomyEngine.total_balance(balances)
                if not EconomyEngine.validate_sufficient_funds(available, cost):
                    const.LOGGER.warning(
                        "EconomyManager.grant: NSF for household=%s, available=%s, requested=%s",
                        household_id,
                        available,
                        cost,
                    )
                    raise InsufficientFundsError(household_id, available, cost)

                timestamp = dt_now_iso()
                impacts: list[ParticipantImpact] = []
                for child_id, debit in EconomyEngine.distribute_cost(cost, participants):
                    old_balance = balances[child_id]
                    new_balance = old_balance - debit
                    await self.store.async_update(
                        const.DATA_CHILDREN,
                        child_id,
                        {
                            const.DATA_CHILD_COINS: new_balance,
                            const.DATA_UPDATED_AT: timestamp,
                        },
                    )
                    await self.store.async_insert(
                        const.DATA_COINS_HISTORY,
                        EconomyEngine.create_ledger_entry(
                            household_id=household_id,
                            child_id=child_id,
                            amount=-debit,
                            reason=const.LEDGER_REASON_REWARD_REDEEMED,
                            session_id=session_id,
                            created_by=actor,
                        ),
                    )
                    impacts.append(
                        {
                            "child_id": child_id,
                            "old_balance": old_balance,
                            "new_balance": new_balance,
                        }
                    )

                history_id = await self.store.async_insert(
                    const.DATA_REWARD_HISTORY,
                    {
                        const.DATA_REWARD_HISTORY_REWARD_ID: reward_id,
                        const.DATA_HOUSEHOLD_ID: household_id,
                        const.DATA_CHILDREN_IDS: participants,
                        const.DATA_SESSION_ID: session_id,
                        const.DATA_REWARD_HISTORY_RECEIVED_AT: timestamp,
                        const.DATA_REWARD_HISTORY_RECEIVED_BY: actor,
                        const.DATA_IS_SYNCED: False,
                    },
                )

                await self.coordinator.log_manager.async_add_log(
                    const.LOG_TYPE_REWARD_GRANTED,
                    "Reward granted",
                    details={
                        "reward_id": reward_id,
                        "cost": cost,
                        "child_count": len(participants),
                    },
                    household_id=household_id,
                    children_ids=participants,
                    ref_id=reward_id,
                )
        except Exception as err:
            # Transaction already rolled back
            await self.coordinator.log_manager.async_add_log(
                const.LOG_TYPE_REWARD_GRANTED,
                "Reward grant failed",
                level=const.LOG_LEVEL_ERROR,
                details={"reward_id": reward_id, "cost": cost, "message": str(err)},
                household_id=household_id,
                children_ids=participants,
                ref_id=reward_id,
            )
            raise

        self.emit(
            const.SIGNAL_SUFFIX_REWARD_GRANTED,
            household_id=household_id,
            reward_id=reward_id,
            cost=cost,
            history_id=history_id,
            children_ids=participants,
        )
        const.LOGGER.debug(
            "EconomyManager.grant: reward=%s, cost=%s, impacts=%s",
            reward_id,
            cost,
            impacts,
        )
        return {
            "reward_id": reward_id,
            "cost": cost,
            "history_id": history_id,
            "per_participant": impacts,
        }
