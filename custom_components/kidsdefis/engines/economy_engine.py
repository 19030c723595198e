"""Economy Engine - Pure logic for coin distribution and ledger rows.

This engine provides stateless, pure Python functions for:
- Sufficient funds validation across a group of participants
- Exact-sum cost distribution among participants
- Ledger row construction for credits and debits

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
All functions are static methods that operate on passed-in data.
State management belongs in EconomyManager.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import dt_now_iso

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence


class InsufficientFundsError(Exception):
    """Raised when a group's combined balance cannot cover a reward.

    Attributes:
        household_id: The household redeeming the reward
        available: Sum of the participants' balances
        requested: Cost of the reward
        shortfall: How much more is needed (requested - available)
    """

    def __init__(
        self,
        household_id: int,
        available: int,
        requested: int,
    ) -> None:
        """Initialize InsufficientFundsError.

        Args:
            household_id: The household redeeming the reward
            available: Sum of the participants' balances
            requested: Cost of the reward
        """
        self.household_id = household_id
        self.available = available
        self.requested = requested
        self.shortfall = requested - available
        super().__init__(
            f"Insufficient funds for household {household_id}: "
            f"available={available}, requested={requested}, "
            f"shortfall={self.shortfall}"
        )


class EconomyEngine:
    """Pure logic engine for coin calculations and ledger rows.

    All methods are static - no instance state. This enables easy unit testing
    without any Home Assistant mocking.

    Ledger reasons (const.LEDGER_REASON_*):
        - LEDGER_REASON_SESSION_AWARD: Coins earned during a session
        - LEDGER_REASON_REWARD_REDEEMED: Coins spent on a reward (negative amount)
    """

    @staticmethod
    def total_balance(balances: Mapping[int, int]) -> int:
        """Return the combined balance of a group of participants."""
        return sum(int(balance or 0) for balance in balances.values())

    @staticmethod
    def validate_sufficient_funds(available: int, cost: int) -> bool:
        """Check if a combined balance covers a cost.

        Only the aggregate is checked: an individual participant may end up
        with a negative balance after the distribution.

        Args:
            available: Combined balance of the participants
            cost: Amount to withdraw (positive value)

        Returns:
            True if available >= cost, False otherwise
        """
        return available >= cost

    @staticmethod
    def distribute_cost(
        cost: int, participant_ids: Sequence[int]
    ) -> list[tuple[int, int]]:
        """Split ``cost`` into integer shares that sum exactly to ``cost``.

        Each participant pays ``cost // n``; the first ``cost % n``
        participants, in the given order, pay one more coin.

        Args:
            cost: Positive integer cost
            participant_ids: Ordered, non-empty participant ids

        Returns:
            List of (participant_id, share) in the given order

        Example:
            distribute_cost(10, [1, 2, 3]) -> [(1, 4), (2, 3), (3, 3)]
        """
        if not participant_ids:
            raise ValueError("Cannot distribute a cost among zero participants")

        base, remainder = divmod(cost, len(participant_ids))
        return [
            (participant_id, base + 1 if index < remainder else base)
            for index, participant_id in enumerate(participant_ids)
        ]

    @staticmethod
    def create_ledger_entry(
        household_id: int,
        child_id: int,
        amount: int,
        reason: str | None,
        session_id: int | None = None,
        defi_id: int | None = None,
        created_by: str | None = None,
    ) -> dict[str, Any]:
        """Build a ledger row ready for insertion.

        Args:
            household_id: Owning household
            child_id: Participant whose balance moves
            amount: Signed amount (credit > 0, debit < 0)
            reason: Ledger reason (const.LEDGER_REASON_*) or free text
            session_id: Optional related session
            defi_id: Optional related challenge
            created_by: Optional actor name

        Returns:
            Ledger row without id (assigned by the store)
        """
        return {
            const.DATA_HOUSEHOLD_ID: household_id,
            const.DATA_LEDGER_CHILD_ID: child_id,
            const.DATA_SESSION_ID: session_id,
            const.DATA_LEDGER_DEFI_ID: defi_id,
            const.DATA_LEDGER_AMOUNT: int(amount),
            const.DATA_LEDGER_REASON: reason,
            const.DATA_CREATED_AT: dt_now_iso(),
            const.DATA_CREATED_BY: created_by,
            const.DATA_IS_SYNCED: False,
        }

    @staticmethod
    def sum_amounts(entries: Sequence[Mapping[str, Any]]) -> int:
        """Return the sum of the ``amount`` field of ledger rows."""
        return sum(int(entry.get(const.DATA_LEDGER_AMOUNT) or 0) for entry in entries)
