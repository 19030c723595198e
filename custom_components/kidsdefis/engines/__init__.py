"""Engine modules for KidsDefis integration.

Contains pure computation engines (no Home Assistant imports):
- economy_engine: Cost distribution, funds checks and ledger rows
- selection_engine: Challenge filtering, random picks and bundle composition
"""

# Use relative imports within package to avoid mypy module resolution issues
from .economy_engine import EconomyEngine, InsufficientFundsError
from .selection_engine import SelectionEngine

__all__ = [
    "EconomyEngine",
    "InsufficientFundsError",
    "SelectionEngine",
]
