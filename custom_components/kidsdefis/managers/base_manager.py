"""Base manager class for KidsDefis managers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, TypeVar

from homeassistant.helpers.dispatcher import (
    async_dispatcher_connect,
    async_dispatcher_send,
)

from .. import const
from ..exceptions import KidsDefisValidationError
from ..utils.id_utils import InvalidIdError, coerce_id, coerce_id_list

if TYPE_CHECKING:
    from collections.abc import Callable

    from homeassistant.core import HomeAssistant

    from ..coordinator import KidsDefisDataCoordinator
    from ..store import KidsDefisStore

IdT = TypeVar("IdT", bound=int)


def get_event_signal(entry_id: str, suffix: str) -> str:
    """Build instance-scoped event signal name for dispatcher.

    Format: 'kidsdefis_{entry_id}_{suffix}'

    Args:
        entry_id: ConfigEntry.entry_id from coordinator
        suffix: Signal suffix constant from const.py (e.g., SIGNAL_SUFFIX_SESSION_STARTED)

    Returns:
        Signal name unique to this config entry
    """
    return f"{const.DOMAIN}_{entry_id}_{suffix}"


class BaseManager(ABC):
    """Base class for all KidsDefis managers with scoped event support.

    Provides:
    - Instance-scoped event emitting (emit)
    - Instance-scoped event listening (listen)
    - Automatic cleanup via coordinator's config_entry.async_on_unload
    - Identifier validation shared by every public operation

    Data Persistence:
    - All reads and writes go through the coordinator's KidsDefisStore
    - Multi-step writes run inside ``store.transaction()``

    Subclasses must implement:
    - async_setup(): Subscribe to events, initialize state
    """

    def __init__(
        self, hass: HomeAssistant, coordinator: KidsDefisDataCoordinator
    ) -> None:
        """Initialize manager.

        Args:
            hass: Home Assistant instance
            coordinator: Parent coordinator managing this integration instance
        """
        self.hass = hass
        self.coordinator = coordinator
        self.entry_id = coordinator.config_entry.entry_id

    @property
    def store(self) -> KidsDefisStore:
        """Store shared by every manager of this instance."""
        return self.coordinator.store

    def emit(self, suffix: str, **payload: Any) -> None:
        """Emit instance-scoped event to other managers.

        Args:
            suffix: Signal suffix constant (e.g., const.SIGNAL_SUFFIX_SESSION_ENDED)
            **payload: Event data dict passed to listeners (must be JSON-serializable)

        Example:
            self.emit(
                const.SIGNAL_SUFFIX_COINS_AWARDED,
                session_id=12,
                household_id=1,
                children_ids=[3, 4],
                total=20,
            )
        """
        signal = get_event_signal(self.entry_id, suffix)
        const.LOGGER.debug(
            "Emitting event '%s' for instance %s with payload keys: %s",
            suffix,
            self.entry_id,
            list(payload.keys()),
        )
        # Pass payload as single dict argument (dispatcher only supports *args)
        async_dispatcher_send(self.hass, signal, payload)

    def listen(self, suffix: str, callback: Callable[..., Any]) -> None:
        """Subscribe to instance-scoped event with automatic cleanup.

        The subscription is automatically cleaned up when the config entry is unloaded.

        Args:
            suffix: Signal suffix constant to listen for
            callback: Function called when event fires (receives payload dict as arg)
        """
        signal = get_event_signal(self.entry_id, suffix)
        unsub = async_dispatcher_connect(self.hass, signal, callback)
        self.coordinator.config_entry.async_on_unload(unsub)
        const.LOGGER.debug(
            "Manager %s listening to event '%s' for instance %s",
            self.__class__.__name__,
            suffix,
            self.entry_id,
        )

    @staticmethod
    def require_id(value: Any, field: str, id_type: Callable[[int], IdT]) -> IdT:
        """Coerce an inbound identifier to ``id_type`` or raise KidsDefisValidationError."""
        if value is None or value == "":
            raise KidsDefisValidationError(f"Missing required field: {field}")
        try:
            return id_type(coerce_id(value))
        except InvalidIdError as err:
            raise KidsDefisValidationError(f"Invalid {field}: {err}") from err

    @staticmethod
    def require_id_list(
        values: Any, field: str, id_type: Callable[[int], IdT]
    ) -> list[IdT]:
        """Coerce an inbound identifier list or raise KidsDefisValidationError."""
        try:
            return [id_type(item) for item in coerce_id_list(values)]
        except InvalidIdError as err:
            raise KidsDefisValidationError(f"Invalid {field}: {err}") from err

    @staticmethod
    def optional_id(
        value: Any, field: str, id_type: Callable[[int], IdT]
    ) -> IdT | None:
        """Like require_id, but None and empty values pass through as None."""
        if value is None or value == "":
            return None
        return BaseManager.require_id(value, field, id_type)

    @staticmethod
    def require_amount(value: Any, field: str) -> int:
        """Coerce a whole number of coins or raise KidsDefisValidationError.

        Fractions, booleans and non-numeric values are rejected rather than
        truncated.
        """
        if value is None or value == "":
            raise KidsDefisValidationError(f"Missing required field: {field}")
        if isinstance(value, bool) or (
            isinstance(value, float) and not value.is_integer()
        ):
            raise KidsDefisValidationError(f"Invalid {field}: {value!r}")
        try:
            return int(value.strip()) if isinstance(value, str) else int(value)
        except (TypeError, ValueError) as err:
            raise KidsDefisValidationError(f"Invalid {field}: {value!r}") from err

    @abstractmethod
    async def async_setup(self) -> None:
        """Set up the manager (subscribe to events, initialize state).

        Called once during coordinator initialization.
        Subclasses should subscribe to events here using self.listen().
        """
