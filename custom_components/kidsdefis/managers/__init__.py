"""Manager modules for KidsDefis integration.

Managers orchestrate workflows and coordinate between engines.
They are stateful, event-aware, and own their storage tables.
"""

from .base_manager import BaseManager
from .catalog_manager import CatalogManager
from .economy_manager import EconomyManager
from .history_manager import DefiHistoryManager
from .household_manager import HouseholdManager
from .log_manager import LogManager
from .selection_manager import ChallengeSelectionManager
from .session_manager import SessionManager

__all__ = [
    "BaseManager",
    "CatalogManager",
    "ChallengeSelectionManager",
    "DefiHistoryManager",
    "EconomyManager",
    "HouseholdManager",
    "LogManager",
    "SessionManager",
]
