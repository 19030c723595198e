"""Exceptions raised by the KidsDefis managers.

All fatal conditions surface to the caller as typed failures derived from
``HomeAssistantError`` so service calls report them without extra wrapping.
``InsufficientFundsError`` lives with the pure economy engine and is
re-exported here.
"""

from __future__ import annotations

from homeassistant.exceptions import HomeAssistantError, ServiceValidationError

from . import const
from .engines.economy_engine import InsufficientFundsError

__all__ = [
    "ActiveSessionExistsError",
    "CatalogFetchError",
    "InsufficientFundsError",
    "KidsDefisError",
    "KidsDefisValidationError",
    "PostInsertInconsistencyError",
    "PostUpdateInconsistencyError",
    "SessionNotFoundError",
]


class KidsDefisError(HomeAssistantError):
    """Base class for KidsDefis failures."""


class KidsDefisValidationError(ServiceValidationError):
    """Raised when caller input is missing or malformed."""


class ActiveSessionExistsError(KidsDefisError):
    """Raised when a household already has an unended session."""

    def __init__(self, household_id: int, session_id: int | None = None) -> None:
        """Initialize with the household and, when known, the blocking session."""
        self.household_id = household_id
        self.session_id = session_id
        super().__init__(const.ERROR_ACTIVE_SESSION_EXISTS_FMT.format(household_id))


class SessionNotFoundError(KidsDefisError):
    """Raised when a session id does not resolve to a row."""

    def __init__(self, session_id: int) -> None:
        """Initialize with the missing session id."""
        self.session_id = session_id
        super().__init__(const.ERROR_SESSION_NOT_FOUND_FMT.format(session_id))


class PostInsertInconsistencyError(KidsDefisError):
    """Raised when a freshly inserted session cannot be read back."""

    def __init__(self, session_id: int) -> None:
        """Initialize with the id returned by the insert."""
        self.session_id = session_id
        super().__init__(const.ERROR_POST_INSERT_FMT.format(session_id))


class PostUpdateInconsistencyError(KidsDefisError):
    """Raised when a session disappears between its closing update and re-read."""

    def __init__(self, session_id: int) -> None:
        """Initialize with the id of the updated session."""
        self.session_id = session_id
        super().__init__(const.ERROR_POST_UPDATE_FMT.format(session_id))


class CatalogFetchError(KidsDefisError):
    """Raised when the remote catalog cannot be fetched or parsed."""
