# File: runtime_state.py
"""Runtime state of the in-progress session.

Keeps the transient selection state (random challenge, bundle position,
photo count) of at most one session in the ``app_flags`` slot so it can be
restored after an unexpected restart. Also holds the deferred "resume
session" prompt.

Malformed slot contents are treated as absent, never as errors.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, cast

from . import const
from .utils.dt_utils import dt_minutes_from_now_iso, dt_now_iso

if TYPE_CHECKING:
    from .store import KidsDefisStore
    from .type_defs import ResumePromptState, RuntimeState


def _load_slot(raw: Any) -> dict[str, Any] | None:
    """Decode a slot value stored as a mapping or a JSON string."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return None
    return raw if isinstance(raw, dict) else None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class RuntimeStateStore:
    """Single-slot persistence of the active session's UI state."""

    def __init__(self, store: KidsDefisStore) -> None:
        """Initialize with the integration store."""
        self._store = store

    # -------------------------------------------------------------------------------------
    # Runtime state
    # -------------------------------------------------------------------------------------

    async def async_read(self) -> RuntimeState | None:
        """Return the stored state, or None when absent or malformed."""
        state = _load_slot(self._store.get_flag(const.FLAG_ACTIVE_SESSION_RUNTIME))
        if state is None or not _is_number(state.get(const.RUNTIME_SESSION_ID)):
            return None
        return cast("RuntimeState", state)

    async def async_write(self, state: RuntimeState | dict[str, Any] | None) -> None:
        """Overwrite the slot; ``None`` clears it."""
        if state is None:
            await self._store.async_set_flag(const.FLAG_ACTIVE_SESSION_RUNTIME, None)
            return
        await self._store.async_set_flag(
            const.FLAG_ACTIVE_SESSION_RUNTIME,
            {**state, const.RUNTIME_UPDATED_AT: dt_now_iso()},
        )

    async def async_update(self, patch: dict[str, Any]) -> RuntimeState | None:
        """Merge ``patch`` into the stored state.

        Without a stored state, a new one is synthesized when ``patch`` names
        a session; otherwise the slot is cleared.

        Returns:
            The state now stored, or None
        """
        previous = await self.async_read()
        merged: dict[str, Any] | None
        if previous is not None:
            merged = {**previous, **patch}
            if patch.get(const.RUNTIME_SESSION_ID) is None:
                merged[const.RUNTIME_SESSION_ID] = previous[const.RUNTIME_SESSION_ID]
        elif patch.get(const.RUNTIME_SESSION_ID) is not None:
            bundle = patch.get(const.RUNTIME_BUNDLE)
            bundle_index = patch.get(const.RUNTIME_BUNDLE_INDEX)
            if bundle_index is None:
                bundle_index = 0 if bundle else None
            photo_count = patch.get(const.RUNTIME_PHOTO_COUNT)
            merged = {
                const.RUNTIME_SESSION_ID: patch[const.RUNTIME_SESSION_ID],
                const.RUNTIME_SESSION_TYPE: patch.get(const.RUNTIME_SESSION_TYPE)
                or const.SESSION_TYPE_RANDOM,
                const.RUNTIME_RANDOM_DEFI: patch.get(const.RUNTIME_RANDOM_DEFI),
                const.RUNTIME_BUNDLE: bundle,
                const.RUNTIME_BUNDLE_INDEX: bundle_index,
                const.RUNTIME_CHALLENGE_START: patch.get(const.RUNTIME_CHALLENGE_START),
                const.RUNTIME_PHOTO_COUNT: photo_count if photo_count is not None else 0,
            }
        else:
            merged = None

        await self.async_write(merged)
        return await self.async_read()

    async def async_clear(self) -> None:
        """Remove the stored state."""
        await self.async_write(None)

    async def async_resume(self, active_session_id: int | None) -> RuntimeState | None:
        """Return the stored state if it belongs to the active session.

        State left over from another session is cleared.
        """
        state = await self.async_read()
        if state is None:
            return None
        if active_session_id is None or state[const.RUNTIME_SESSION_ID] != active_session_id:
            const.LOGGER.debug(
                "Discarding stale runtime state for session %s (active: %s)",
                state[const.RUNTIME_SESSION_ID],
                active_session_id,
            )
            await self.async_clear()
            return None
        return state

    # -------------------------------------------------------------------------------------
    # Resume prompt
    # -------------------------------------------------------------------------------------

    async def async_get_resume_prompt(self) -> ResumePromptState:
        """Return the deferred resume prompt, with None fields when unset."""
        raw = _load_slot(self._store.get_flag(const.FLAG_ACTIVE_SESSION_RESUME))
        if raw is None:
            return {"session_id": None, "snooze_until": None}
        session_id = raw.get(const.RESUME_SESSION_ID)
        snooze_until = raw.get(const.RESUME_SNOOZE_UNTIL)
        return {
            "session_id": session_id if _is_number(session_id) else None,
            "snooze_until": snooze_until if isinstance(snooze_until, str) else None,
        }

    async def async_snooze_resume_prompt(
        self, session_id: int, minutes: int = const.DEFAULT_RESUME_SNOOZE_MINUTES
    ) -> ResumePromptState:
        """Defer the resume prompt of a session by ``minutes``."""
        prompt: ResumePromptState = {
            "session_id": session_id,
            "snooze_until": dt_minutes_from_now_iso(minutes),
        }
        await self._store.async_set_flag(
            const.FLAG_ACTIVE_SESSION_RESUME,
            {
                const.RESUME_SESSION_ID: prompt["session_id"],
                const.RESUME_SNOOZE_UNTIL: prompt["snooze_until"],
            },
        )
        return prompt

    async def async_clear_resume_prompt(self) -> None:
        """Forget any deferred resume prompt."""
        await self._store.async_set_flag(const.FLAG_ACTIVE_SESSION_RESUME, None)
