# File: utils/__init__.py
"""Pure Python utilities for KidsDefis.

This module contains pure Python functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

Submodules:
    - dt_utils: Date/time parsing and age calculations
    - id_utils: Identifier coercion and id-list parsing
    - text_utils: Accent and case-insensitive label normalization
"""

from . import dt_utils, id_utils, text_utils

__all__ = ["dt_utils", "id_utils", "text_utils"]
