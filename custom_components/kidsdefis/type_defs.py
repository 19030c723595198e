"""Type definitions for KidsDefis data structures.

TypedDict is used for rows whose keys are fixed (sessions, ledger entries,
history rows); ``dict[str, Any]`` remains where rows are built dynamically
(catalog imports, log details).

Identifiers are ``NewType`` wrappers over ``int`` so a session id cannot be
passed where a household id is expected without an explicit conversion.
Managers convert raw service values with ``BaseManager.require_id``, which
validates through ``utils.id_utils``.

IMPORTANT: This file must NOT import from coordinator.py or any manager to
avoid circular dependencies. TypedDict is static analysis only.
"""

from typing import Any, Literal, NewType, NotRequired, TypedDict

# =============================================================================
# Identifiers
# =============================================================================

HouseholdId = NewType("HouseholdId", int)
ChildId = NewType("ChildId", int)
ChallengeId = NewType("ChallengeId", int)
SessionId = NewType("SessionId", int)
RewardId = NewType("RewardId", int)

ISODatetime = str  # ISO 8601 datetime string "2026-01-18T12:30:00+00:00"
ISODate = str  # ISO 8601 date string "2016-05-02"

SessionType = Literal["random", "bundle"]
MediaType = Literal["photo", "video"]


# =============================================================================
# Entities
# =============================================================================


class HouseholdData(TypedDict):
    """A household (family unit)."""

    id: HouseholdId
    name: str
    referent_name: str
    created_at: ISODatetime


class ChildData(TypedDict):
    """A participant belonging to a household."""

    id: ChildId
    household_id: HouseholdId
    name: str
    birthdate: ISODate
    avatar: str | None
    coins: int


class ChallengeData(TypedDict):
    """A challenge definition, household-custom or global default."""

    id: ChallengeId
    household_id: HouseholdId | None  # None for default challenges
    title: str
    description: str
    category: str
    location: str
    duration_min: int | None
    points_default: int | None
    photo_required: bool | None
    age_min: int | None
    age_max: int | None
    created_by: NotRequired[str]
    created_at: NotRequired[ISODatetime]
    updated_at: NotRequired[ISODatetime]
    is_synced: NotRequired[bool]


class RewardData(TypedDict):
    """A catalog reward redeemable with coins."""

    id: RewardId
    household_id: HouseholdId
    title: str
    description: str
    cost: int
    category: NotRequired[str]
    created_by: NotRequired[str]
    created_at: NotRequired[ISODatetime]
    updated_at: NotRequired[ISODatetime]
    is_synced: NotRequired[bool]


class SessionData(TypedDict):
    """A session row. ``ended_at is None`` means the session is active."""

    id: SessionId
    household_id: HouseholdId
    children_ids: list[ChildId]
    started_at: ISODatetime
    ended_at: ISODatetime | None
    session_type: SessionType
    location: str
    category: str
    planned_duration_min: int | None
    total_defis_completed: int
    total_coins_awarded: int
    created_by: str
    is_synced: bool


class SessionConfig(TypedDict):
    """Input for starting a session or selecting challenges for one."""

    household_id: HouseholdId
    children_ids: list[ChildId]
    session_type: NotRequired[SessionType]
    location: NotRequired[str | None]
    category: NotRequired[str | None]
    planned_duration_min: NotRequired[int | float | None]
    lookback_days: NotRequired[int | None]
    created_by: NotRequired[str | None]


class SessionSummary(TypedDict):
    """Frozen aggregate view of an ended session."""

    session_id: SessionId
    started_at: ISODatetime
    ended_at: ISODatetime
    children_ids: list[ChildId]
    defis_completed: int
    coins_awarded: int


class SessionHistoryEntry(SessionData):
    """A session row with its recomputed aggregates, as listed in the history."""

    defis_count: int
    coins_sum: int
    media_count: int


class DefiHistoryEntry(TypedDict):
    """One challenge completion."""

    id: int
    defi_id: ChallengeId
    household_id: HouseholdId
    children_ids: list[ChildId]
    session_id: SessionId | None
    completed_at: ISODatetime
    completed_by: str
    is_synced: bool


class CoinLedgerEntry(TypedDict):
    """A signed coin movement (credit positive, debit negative)."""

    id: int
    household_id: HouseholdId
    child_id: ChildId
    session_id: SessionId | None
    defi_id: ChallengeId | None
    amount: int
    reason: str | None
    created_at: ISODatetime
    created_by: str | None
    is_synced: bool


class RewardHistoryEntry(TypedDict):
    """One reward redemption across a set of participants."""

    id: int
    reward_id: RewardId
    household_id: HouseholdId
    children_ids: list[ChildId]
    session_id: SessionId | None
    received_at: ISODatetime
    received_by: str | None
    is_synced: bool


class SessionMediaData(TypedDict):
    """Opaque media reference attached to a session."""

    id: int
    session_id: SessionId
    household_id: HouseholdId
    children_ids: list[ChildId]
    file_uri: str
    media_type: MediaType
    taken_at: ISODatetime
    metadata: dict[str, Any]
    is_synced: bool


class AppLogEntry(TypedDict):
    """Structured application log record."""

    id: NotRequired[int]
    timestamp: ISODatetime
    household_id: HouseholdId | None
    children_ids: list[ChildId]
    log_type: str
    level: str
    context: str
    details: dict[str, Any] | None
    ref_id: str | None
    is_synced: bool


# =============================================================================
# Results
# =============================================================================


class ParticipantImpact(TypedDict):
    """Balance change for one participant of a reward grant."""

    child_id: ChildId
    old_balance: int
    new_balance: int


class GrantResult(TypedDict):
    """Outcome of a successful reward grant."""

    reward_id: RewardId
    cost: int
    history_id: int
    per_participant: list[ParticipantImpact]


# =============================================================================
# Runtime state
# =============================================================================


class RuntimeState(TypedDict):
    """Transient UI selection state for the in-progress session."""

    session_id: SessionId
    session_type: SessionType
    random_defi: dict[str, Any] | None
    bundle: list[dict[str, Any]] | None
    bundle_index: int | None
    challenge_start: ISODatetime | None
    photo_count: int
    updated_at: ISODatetime


class ResumePromptState(TypedDict):
    """Deferred resume prompt for an interrupted session."""

    session_id: SessionId | None
    snooze_until: ISODatetime | None
