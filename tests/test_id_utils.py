"""Unit tests for identifier and label helpers - pure Python."""

from __future__ import annotations

import pytest

from custom_components.kidsdefis.utils.id_utils import (
    InvalidIdError,
    coerce_id,
    coerce_id_list,
    parse_id_list,
)
from custom_components.kidsdefis.utils.text_utils import normalize_label


class TestCoerceId:
    """Strict identifier conversion."""

    @pytest.mark.parametrize(("value", "expected"), [(3, 3), ("12", 12), (" 7 ", 7), (4.0, 4)])
    def test_valid(self, value: object, expected: int) -> None:
        """Whole numbers and digit strings are accepted."""
        assert coerce_id(value) == expected

    @pytest.mark.parametrize("value", [True, 0, -1, "abc", "1.5", 2.5, None, [1]])
    def test_invalid(self, value: object) -> None:
        """Everything else is rejected."""
        with pytest.raises(InvalidIdError):
            coerce_id(value)

    def test_list_keeps_order_and_drops_duplicates(self) -> None:
        """First occurrence wins."""
        assert coerce_id_list(["3", 1, 3, 2]) == [3, 1, 2]
        assert coerce_id_list(None) == []

    def test_list_rejects_strings(self) -> None:
        """A bare string is not a list of ids."""
        with pytest.raises(InvalidIdError):
            coerce_id_list("123")


class TestParseIdList:
    """Lenient reading of stored id lists."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ([1, 2], [1, 2]),
            ("[4, 5]", [4, 5]),
            ("oops", []),
            ('{"a": 1}', []),
            ([1, "x"], []),
            (None, []),
        ],
    )
    def test_parse(self, raw: object, expected: list[int]) -> None:
        """Parse failures give an empty list."""
        assert parse_id_list(raw) == expected


class TestNormalizeLabel:
    """Accent and case folding for labels."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("  Intérieur ", "interieur"), ("CRÉATIF", "creatif"), (None, ""), ("Noël", "noel")],
    )
    def test_normalize(self, value: str | None, expected: str) -> None:
        """Accents removed, lowercased and trimmed."""
        assert normalize_label(value) == expected
