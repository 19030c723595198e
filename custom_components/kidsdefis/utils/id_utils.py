# File: utils/id_utils.py
"""Identifier coercion for KidsDefis.

Pure Python with ZERO Home Assistant dependencies.

This module is the single adapter between loosely typed inputs (service
payloads, legacy JSON-encoded columns, catalog rows) and the ``NewType``
identifiers of ``type_defs``. Anything that is not a whole number is
rejected instead of being coerced silently.

Functions:
    - coerce_id: Strict conversion of one value to an int id
    - coerce_id_list: Strict conversion of a sequence, preserving order, dropping duplicates
    - parse_id_list: Lenient reader for stored id lists (parse failure -> [])
"""

from __future__ import annotations

from collections.abc import Iterable
import json
import logging
from typing import Any

_LOGGER = logging.getLogger(__name__)


class InvalidIdError(ValueError):
    """Raised when a value cannot be interpreted as an identifier."""


def coerce_id(value: Any) -> int:
    """Convert ``value`` to a positive int identifier.

    Accepts ints and strings of digits ("12", " 12 "). Booleans, floats with
    a fractional part and anything else raise InvalidIdError.
    """
    if isinstance(value, bool):
        raise InvalidIdError(f"Invalid identifier: {value!r}")
    if isinstance(value, int):
        result = value
    elif isinstance(value, float) and value.is_integer():
        result = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        result = int(value.strip())
    else:
        raise InvalidIdError(f"Invalid identifier: {value!r}")

    if result <= 0:
        raise InvalidIdError(f"Identifier must be positive: {value!r}")
    return result


def coerce_id_list(values: Iterable[Any] | None) -> list[int]:
    """Convert every element with ``coerce_id``, keeping first-seen order."""
    if values is None:
        return []
    if isinstance(values, (str, bytes)):
        raise InvalidIdError(f"Expected a list of identifiers, got {values!r}")

    result: list[int] = []
    for value in values:
        ident = coerce_id(value)
        if ident not in result:
            result.append(ident)
    return result


def parse_id_list(raw: Any) -> list[int]:
    """Read a stored id list, tolerating the legacy JSON-string encoding.

    Any parse failure (bad JSON, non-list payload, non-id element) yields an
    empty list.

    Example:
        parse_id_list("[1, 2]") -> [1, 2]
        parse_id_list("oops") -> []
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            _LOGGER.debug("Unparseable id list: %s", raw)
            return []
    if not isinstance(raw, list):
        return []
    try:
        return coerce_id_list(raw)
    except InvalidIdError:
        _LOGGER.debug("Id list contains invalid identifiers: %s", raw)
        return []
