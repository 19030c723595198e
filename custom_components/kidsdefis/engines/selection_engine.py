"""Selection Engine - Pure logic for choosing eligible challenges.

This engine provides stateless, pure Python functions for:
- Participant average age computation
- Candidate pool merging (defaults overridden by household customs)
- The filter pipeline (age, location, category, max duration)
- Uniform random picking
- Duration-bounded bundle composition (randomized greedy search)

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
All functions are static methods that operate on passed-in data. The random
source is always passed in so results are reproducible with a seeded
``random.Random``. Store access belongs in ChallengeSelectionManager.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import dt_age_in_years
from ..utils.text_utils import normalize_label

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Sequence
    from datetime import date
    import random

# Duration assumed for challenges without one when a max duration is set
UNBOUNDED_DURATION = 9999


def _duration(challenge: dict[str, Any]) -> int:
    """Return a challenge's duration in minutes, 0 when undefined."""
    value = challenge.get(const.DATA_CHALLENGE_DURATION_MIN)
    if value is None:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class SelectionEngine:
    """Pure logic engine for challenge selection.

    All methods are static - no instance state.

    Pipeline used by the manager:
        merge_candidate_pool -> exclude_ids -> apply_filters
        -> pick_random | duration_pool + compose_bundle
    """

    # =========================================================================
    # Participants
    # =========================================================================

    @staticmethod
    def average_age(birthdates: Iterable[str | None], today: date | None = None) -> int:
        """Return the rounded mean whole-year age of the given birthdates.

        Unparseable birthdates are skipped. Rounds half up.

        Args:
            birthdates: Birthdate strings of the participants
            today: Reference date (defaults to today UTC)

        Returns:
            Average age, or 0 when no age could be computed
        """
        ages = [
            age
            for age in (dt_age_in_years(birthdate, today) for birthdate in birthdates)
            if age is not None
        ]
        if not ages:
            return 0
        return math.floor(sum(ages) / len(ages) + 0.5)

    # =========================================================================
    # Pool
    # =========================================================================

    @staticmethod
    def merge_candidate_pool(
        defaults: Iterable[dict[str, Any]], customs: Iterable[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """Union default and custom challenges keyed by id.

        Defaults are inserted first and customs second, so a custom challenge
        replaces a default one sharing its id.
        """
        merged: dict[str, dict[str, Any]] = {}
        for challenge in defaults:
            merged[str(challenge[const.DATA_ID])] = challenge
        for challenge in customs:
            merged[str(challenge[const.DATA_ID])] = challenge
        return list(merged.values())

    @staticmethod
    def exclude_ids(
        pool: Iterable[dict[str, Any]], done_ids: Collection[Any]
    ) -> list[dict[str, Any]]:
        """Drop challenges whose id is in ``done_ids`` (compared as strings)."""
        done = {str(done_id) for done_id in done_ids}
        return [challenge for challenge in pool if str(challenge[const.DATA_ID]) not in done]

    # =========================================================================
    # Filters
    # =========================================================================

    @staticmethod
    def filter_by_age(
        pool: Iterable[dict[str, Any]], age: int | None
    ) -> list[dict[str, Any]]:
        """Keep challenges whose inclusive age range contains ``age``.

        Missing bounds default to 0..200. No-op when ``age`` is None.
        """
        if age is None:
            return list(pool)

        kept = []
        for challenge in pool:
            age_min = challenge.get(const.DATA_CHALLENGE_AGE_MIN)
            age_max = challenge.get(const.DATA_CHALLENGE_AGE_MAX)
            low = age_min if isinstance(age_min, int) else const.DEFAULT_AGE_MIN
            high = age_max if isinstance(age_max, int) else const.DEFAULT_AGE_MAX
            if low <= age <= high:
                kept.append(challenge)
        return kept

    @staticmethod
    def filter_by_location(
        pool: Iterable[dict[str, Any]], location: str | None
    ) -> list[dict[str, Any]]:
        """Keep challenges at ``location`` (accent and case insensitive)."""
        if not location:
            return list(pool)
        wanted = normalize_label(location)
        return [
            challenge
            for challenge in pool
            if normalize_label(challenge.get(const.DATA_CHALLENGE_LOCATION)) == wanted
        ]

    @staticmethod
    def filter_by_category(
        pool: Iterable[dict[str, Any]], category: str | None
    ) -> list[dict[str, Any]]:
        """Keep challenges in ``category`` (accent and case insensitive)."""
        if not category:
            return list(pool)
        wanted = normalize_label(category)
        return [
            challenge
            for challenge in pool
            if normalize_label(challenge.get(const.DATA_CHALLENGE_CATEGORY)) == wanted
        ]

    @staticmethod
    def filter_by_max_duration(
        pool: Iterable[dict[str, Any]], max_duration: int | float | None
    ) -> list[dict[str, Any]]:
        """Keep challenges lasting at most ``max_duration`` minutes.

        No-op when ``max_duration`` is missing or not positive. Challenges
        without a duration are dropped whenever a max is given.
        """
        if not max_duration or max_duration <= 0:
            return list(pool)

        kept = []
        for challenge in pool:
            raw = challenge.get(const.DATA_CHALLENGE_DURATION_MIN)
            duration = UNBOUNDED_DURATION if raw is None else _duration(challenge)
            if duration <= max_duration:
                kept.append(challenge)
        return kept

    @staticmethod
    def apply_filters(
        pool: Iterable[dict[str, Any]],
        *,
        age: int | None = None,
        location: str | None = None,
        category: str | None = None,
        max_duration: int | float | None = None,
    ) -> list[dict[str, Any]]:
        """Run the filter pipeline in order: age, location, category, duration."""
        result = SelectionEngine.filter_by_age(pool, age)
        result = SelectionEngine.filter_by_location(result, location)
        result = SelectionEngine.filter_by_category(result, category)
        return SelectionEngine.filter_by_max_duration(result, max_duration)

    @staticmethod
    def duration_pool(pool: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
        """Restrict to challenges with a positive duration."""
        return [challenge for challenge in pool if _duration(challenge) > 0]

    # =========================================================================
    # Picking
    # =========================================================================

    @staticmethod
    def pick_random(
        candidates: Sequence[dict[str, Any]], rng: random.Random
    ) -> dict[str, Any] | None:
        """Return a uniformly chosen candidate, or None when there are none."""
        if not candidates:
            return None
        return rng.choice(candidates)

    @staticmethod
    def clamp_cap(cap: int | float | None) -> int:
        """Clamp a requested bundle size to 1..MAX_BUNDLE_CAP."""
        if not cap or cap <= 0:
            return const.MAX_BUNDLE_CAP
        return max(1, min(const.MAX_BUNDLE_CAP, math.floor(cap)))

    @staticmethod
    def bundle_tries(pool_size: int) -> int:
        """Number of search trials: ceil(n / 2) clamped to the configured bounds."""
        return min(
            const.BUNDLE_MAX_TRIES,
            max(const.BUNDLE_MIN_TRIES, math.ceil(pool_size / 2)),
        )

    @staticmethod
    def compose_bundle(
        pool: Sequence[dict[str, Any]],
        target: int | None,
        cap: int,
        rng: random.Random,
    ) -> tuple[list[dict[str, Any]], int, bool]:
        """Select challenges whose summed duration approaches ``target``.

        Approximate bin packing by randomized greedy search. Each trial walks
        an ordering of the pool (ascending duration every third trial, a
        fresh shuffle otherwise), adding items while the running sum stays
        within ``target`` and the bundle stays within ``cap``. The best trial
        is the one with the larger sum, ties broken by item count.

        Without a target, or with an empty pool, the pool is shuffled and the
        first ``min(cap, len(pool))`` items are returned.

        Args:
            pool: Challenges with a positive duration
            target: Target total duration in minutes, or None
            cap: Maximum bundle size (already clamped)
            rng: Random source

        Returns:
            Tuple of (bundle, total duration, fallback path used)
        """
        if not target or not pool:
            shuffled = list(pool)
            rng.shuffle(shuffled)
            bundle = shuffled[: min(cap, len(shuffled))]
            return bundle, sum(_duration(item) for item in bundle), True

        best: list[dict[str, Any]] = []
        best_sum = 0

        for trial in range(SelectionEngine.bundle_tries(len(pool))):
            order = list(pool)
            if trial % 3 == 0:
                order.sort(key=_duration)
            else:
                rng.shuffle(order)

            running = 0
            pick: list[dict[str, Any]] = []
            for item in order:
                duration = _duration(item)
                if len(pick) < cap and running + duration <= target:
                    pick.append(item)
                    running += duration
                    if running == target or len(pick) == cap:
                        break

            if running > best_sum or (running == best_sum and len(pick) > len(best)):
                best = pick
                best_sum = running
                if best_sum == target or len(best) == cap:
                    break

        return best, best_sum, False
