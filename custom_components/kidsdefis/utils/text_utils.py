# File: utils/text_utils.py
"""Text normalization for KidsDefis.

Pure Python with ZERO Home Assistant dependencies.
"""

from __future__ import annotations

import unicodedata


def normalize_label(value: str | None) -> str:
    """Return ``value`` stripped of accents, lowercased and trimmed.

    Used for location and category matching.

    Example:
        normalize_label("  Intérieur ") -> "interieur"
    """
    decomposed = unicodedata.normalize("NFD", value or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower().strip()
