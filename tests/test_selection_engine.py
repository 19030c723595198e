"""Unit tests for SelectionEngine - pure Python logic tests.

Test Categories:
- Average age
- Candidate pool merging and exclusion
- Filter pipeline (age, location, category, max duration)
- Random pick
- Bundle composition
"""

from __future__ import annotations

from datetime import date
import random
from typing import Any

import pytest

from custom_components.kidsdefis import const
from custom_components.kidsdefis.engines.selection_engine import SelectionEngine


def _challenge(
    challenge_id: int,
    duration: int | None = 10,
    *,
    location: str = "Maison",
    category: str = "Créatif",
    age_min: int | None = None,
    age_max: int | None = None,
) -> dict[str, Any]:
    return {
        const.DATA_ID: challenge_id,
        const.DATA_CHALLENGE_TITLE: f"Défi {challenge_id}",
        const.DATA_CHALLENGE_DURATION_MIN: duration,
        const.DATA_CHALLENGE_LOCATION: location,
        const.DATA_CHALLENGE_CATEGORY: category,
        const.DATA_CHALLENGE_AGE_MIN: age_min,
        const.DATA_CHALLENGE_AGE_MAX: age_max,
    }


def _ids(rows: list[dict[str, Any]]) -> list[int]:
    return [row[const.DATA_ID] for row in rows]


# =============================================================================
# Test: average_age
# =============================================================================


class TestAverageAge:
    """Tests for the participants' rounded mean age."""

    def test_rounds_half_up(self) -> None:
        """Ages 8 and 9 average to 8.5, rounded to 9."""
        today = date(2025, 6, 1)
        assert SelectionEngine.average_age(["2017-01-01", "2016-01-01"], today) == 9

    def test_rounds_down_below_half(self) -> None:
        """Ages 6, 6 and 7 average to 6.33, rounded to 6."""
        today = date(2025, 6, 1)
        assert (
            SelectionEngine.average_age(["2019-01-01", "2019-02-01", "2018-01-01"], today)
            == 6
        )

    def test_birthday_not_reached(self) -> None:
        """Whole years only: the day before the birthday counts the previous year."""
        assert SelectionEngine.average_age(["2015-06-02"], date(2025, 6, 1)) == 9

    def test_no_birthdates(self) -> None:
        """No participants gives 0."""
        assert SelectionEngine.average_age([], date(2025, 6, 1)) == 0

    def test_unparseable_birthdates_skipped(self) -> None:
        """Invalid birthdates do not count."""
        assert SelectionEngine.average_age(["oops", None, "2015-01-01"], date(2025, 6, 1)) == 10


# =============================================================================
# Test: pool
# =============================================================================


class TestPool:
    """Tests for pool merging and exclusion."""

    def test_custom_replaces_default_with_same_id(self) -> None:
        """Customs are merged after defaults and win on id."""
        defaults = [_challenge(1, 5), _challenge(2, 5)]
        custom = _challenge(2, 30)
        merged = SelectionEngine.merge_candidate_pool(defaults, [custom, _challenge(3)])

        assert _ids(merged) == [1, 2, 3]
        assert merged[1][const.DATA_CHALLENGE_DURATION_MIN] == 30

    def test_exclude_ids_compares_as_strings(self) -> None:
        """Done ids may come back as strings."""
        pool = [_challenge(1), _challenge(2), _challenge(3)]
        assert _ids(SelectionEngine.exclude_ids(pool, ["2", 3])) == [1]


# =============================================================================
# Test: filters
# =============================================================================


class TestFilters:
    """Tests for the filter pipeline."""

    def test_age_range_is_inclusive(self) -> None:
        """Bounds are inclusive and missing bounds default to 0..200."""
        pool = [
            _challenge(1, age_min=6, age_max=8),
            _challenge(2, age_min=9),
            _challenge(3, age_max=5),
            _challenge(4),
        ]
        assert _ids(SelectionEngine.filter_by_age(pool, 8)) == [1, 4]
        assert _ids(SelectionEngine.filter_by_age(pool, 6)) == [1, 4]
        assert _ids(SelectionEngine.filter_by_age(pool, 0)) == [3, 4]

    def test_age_none_is_noop(self) -> None:
        """No age means no age filtering."""
        pool = [_challenge(1, age_min=10), _challenge(2)]
        assert _ids(SelectionEngine.filter_by_age(pool, None)) == [1, 2]

    def test_location_ignores_accents_and_case(self) -> None:
        """'exterieur' matches 'Extérieur'."""
        pool = [_challenge(1, location="Extérieur"), _challenge(2, location="Maison")]
        assert _ids(SelectionEngine.filter_by_location(pool, " exterieur ")) == [1]
        assert _ids(SelectionEngine.filter_by_location(pool, "")) == [1, 2]

    def test_category_ignores_accents_and_case(self) -> None:
        """'CREATIF' matches 'Créatif'."""
        pool = [_challenge(1, category="Créatif"), _challenge(2, category="Jeu")]
        assert _ids(SelectionEngine.filter_by_category(pool, "CREATIF")) == [1]

    def test_max_duration(self) -> None:
        """Undefined durations are dropped once a max is given."""
        pool = [_challenge(1, 5), _challenge(2, 15), _challenge(3, None)]
        assert _ids(SelectionEngine.filter_by_max_duration(pool, 10)) == [1]
        assert _ids(SelectionEngine.filter_by_max_duration(pool, 15)) == [1, 2]

    @pytest.mark.parametrize("max_duration", [None, 0, -5])
    def test_max_duration_noop(self, max_duration: int | None) -> None:
        """Missing or non-positive max keeps everything."""
        pool = [_challenge(1, 5), _challenge(2, None)]
        assert _ids(SelectionEngine.filter_by_max_duration(pool, max_duration)) == [1, 2]

    def test_apply_filters_chains_all(self) -> None:
        """All filters run in sequence."""
        pool = [
            _challenge(1, 5, location="Maison", category="Jeu", age_max=10),
            _challenge(2, 5, location="Maison", category="Jeu", age_min=12),
            _challenge(3, 25, location="Maison", category="Jeu"),
            _challenge(4, 5, location="Parc", category="Jeu"),
            _challenge(5, 5, location="Maison", category="Musique"),
        ]
        result = SelectionEngine.apply_filters(
            pool, age=8, location="maison", category="jeu", max_duration=20
        )
        assert _ids(result) == [1]

    def test_duration_pool(self) -> None:
        """Only positive durations are bundle candidates."""
        pool = [_challenge(1, 5), _challenge(2, 0), _challenge(3, None)]
        assert _ids(SelectionEngine.duration_pool(pool)) == [1]


# =============================================================================
# Test: pick_random
# =============================================================================


class TestPickRandom:
    """Tests for the uniform pick."""

    def test_empty_is_none(self) -> None:
        """Nothing to pick from."""
        assert SelectionEngine.pick_random([], random.Random(1)) is None

    def test_pick_is_member(self) -> None:
        """The pick comes from the candidates."""
        pool = [_challenge(1), _challenge(2), _challenge(3)]
        rng = random.Random(7)
        for _ in range(20):
            assert SelectionEngine.pick_random(pool, rng) in pool

    def test_seeded_rng_is_reproducible(self) -> None:
        """Same seed gives the same pick."""
        pool = [_challenge(i) for i in range(1, 11)]
        first = SelectionEngine.pick_random(pool, random.Random(99))
        second = SelectionEngine.pick_random(pool, random.Random(99))
        assert first == second


# =============================================================================
# Test: bundle composition
# =============================================================================


class TestComposeBundle:
    """Tests for bundle composition."""

    @pytest.mark.parametrize(
        ("cap", "expected"), [(None, 12), (0, 12), (-3, 12), (5, 5), (40, 12), (2.7, 2)]
    )
    def test_clamp_cap(self, cap: float | None, expected: int) -> None:
        """Cap is clamped to 1..12, 12 when missing."""
        assert SelectionEngine.clamp_cap(cap) == expected

    @pytest.mark.parametrize(("size", "expected"), [(0, 6), (5, 6), (20, 10), (100, 24)])
    def test_bundle_tries(self, size: int, expected: int) -> None:
        """ceil(n/2) within 6..24."""
        assert SelectionEngine.bundle_tries(size) == expected

    @pytest.mark.parametrize("seed", range(10))
    def test_target_fifteen(self, seed: int) -> None:
        """Durations 5, 8, 10 with target 15: sum within target, 13 is reachable."""
        pool = [_challenge(1, 5), _challenge(2, 8), _challenge(3, 10)]
        bundle, total, fallback = SelectionEngine.compose_bundle(
            pool, 15, 12, random.Random(seed)
        )

        assert fallback is False
        assert 1 <= len(bundle) <= 12
        assert total == sum(item[const.DATA_CHALLENGE_DURATION_MIN] for item in bundle)
        assert total <= 15
        # The ascending trial always reaches 5 + 8
        assert total >= 13

    def test_exact_target_stops_early(self) -> None:
        """An exact fit is returned."""
        pool = [_challenge(1, 5), _challenge(2, 10), _challenge(3, 20)]
        _, total, _ = SelectionEngine.compose_bundle(pool, 15, 12, random.Random(3))
        assert total == 15

    def test_cap_limits_size(self) -> None:
        """The bundle never exceeds the cap."""
        pool = [_challenge(i, 1) for i in range(1, 21)]
        bundle, total, _ = SelectionEngine.compose_bundle(pool, 100, 4, random.Random(5))
        assert len(bundle) == 4
        assert total == 4

    def test_nothing_fits(self) -> None:
        """All items longer than the target give an empty bundle."""
        pool = [_challenge(1, 30), _challenge(2, 40)]
        bundle, total, fallback = SelectionEngine.compose_bundle(
            pool, 15, 12, random.Random(1)
        )
        assert bundle == []
        assert total == 0
        assert fallback is False

    def test_fallback_without_target(self) -> None:
        """No target: shuffled pool truncated to the cap."""
        pool = [_challenge(i, 5) for i in range(1, 8)]
        bundle, total, fallback = SelectionEngine.compose_bundle(
            pool, None, 3, random.Random(2)
        )
        assert fallback is True
        assert len(bundle) == 3
        assert set(_ids(bundle)) <= set(range(1, 8))
        assert total == 15

    def test_fallback_on_empty_pool(self) -> None:
        """Empty pool returns an empty bundle through the fallback."""
        assert SelectionEngine.compose_bundle([], 15, 12, random.Random(2)) == (
            [],
            0,
            True,
        )
