# File: const.py
"""Constants for the KidsDefis integration.

This file centralizes configuration keys, defaults, storage table and field
names, service names, event suffixes and log vocabularies so every module
refers to the same spelling.
"""

import logging

# ------------------------------------------------------------------------------------------------
# General / Integration Information
# ------------------------------------------------------------------------------------------------
KIDSDEFIS_TITLE = "KidsDefis"

# Integration Domain
DOMAIN = "kidsdefis"

# Logger
LOGGER = logging.getLogger(__package__)

# No entity platforms: the integration exposes services and events only
PLATFORMS: list[str] = []

# Coordinator
COORDINATOR = "coordinator"
COORDINATOR_SUFFIX = "_coordinator"

# Storage and Versioning
STORE = "store"
STORAGE_KEY = "kidsdefis_data"
STORAGE_VERSION = 1
SCHEMA_VERSION = 1

# Update Interval (minutes)
DEFAULT_UPDATE_INTERVAL = 60

# ------------------------------------------------------------------------------------------------
# Configuration Keys
# ------------------------------------------------------------------------------------------------
CONF_HOUSEHOLD_NAME = "household_name"
CONF_REFERENT_NAME = "referent_name"
CONF_HOUSEHOLD_ID = "household_id"

CONF_LOOKBACK_DAYS = "lookback_days"
CONF_BUNDLE_CAP = "bundle_cap"
CONF_LOG_RETENTION_DAYS = "log_retention_days"
CONF_CHALLENGES_CATALOG_URL = "challenges_catalog_url"
CONF_REWARDS_CATALOG_URL = "rewards_catalog_url"
CONF_SELECTION_SEED = "selection_seed"

# Defaults
DEFAULT_LOOKBACK_DAYS = 30
DEFAULT_BUNDLE_CAP = 12
MAX_BUNDLE_CAP = 12
DEFAULT_LOG_RETENTION_DAYS = 30
DEFAULT_SESSION_HISTORY_LIMIT = 20
DEFAULT_RESUME_SNOOZE_MINUTES = 360
DEFAULT_AGE_MIN = 0
DEFAULT_AGE_MAX = 200
DEFAULT_ZERO = 0

# Bundle search bounds
BUNDLE_MIN_TRIES = 6
BUNDLE_MAX_TRIES = 24

# Catalog fetch timeout in seconds
CATALOG_FETCH_TIMEOUT = 10

# ------------------------------------------------------------------------------------------------
# Storage tables
# ------------------------------------------------------------------------------------------------
DATA_META = "meta"
DATA_META_SCHEMA_VERSION = "schema_version"
DATA_META_SEQUENCES = "sequences"

DATA_HOUSEHOLDS = "households"
DATA_CHILDREN = "children"
DATA_CHALLENGES_CUSTOM = "challenges_custom"
DATA_CHALLENGES_DEFAULT = "challenges_default"
DATA_REWARDS_CUSTOM = "rewards_custom"
DATA_SESSIONS = "sessions"
DATA_DEFI_HISTORY = "defi_history"
DATA_COINS_HISTORY = "coins_history"
DATA_REWARD_HISTORY = "reward_history"
DATA_SESSION_MEDIA = "session_media"
DATA_APP_LOGS = "app_logs"
DATA_APP_FLAGS = "app_flags"

TABLES = (
    DATA_HOUSEHOLDS,
    DATA_CHILDREN,
    DATA_CHALLENGES_CUSTOM,
    DATA_CHALLENGES_DEFAULT,
    DATA_REWARDS_CUSTOM,
    DATA_SESSIONS,
    DATA_DEFI_HISTORY,
    DATA_COINS_HISTORY,
    DATA_REWARD_HISTORY,
    DATA_SESSION_MEDIA,
    DATA_APP_LOGS,
)

# ------------------------------------------------------------------------------------------------
# Common row fields
# ------------------------------------------------------------------------------------------------
DATA_ID = "id"
DATA_HOUSEHOLD_ID = "household_id"
DATA_CHILDREN_IDS = "children_ids"
DATA_SESSION_ID = "session_id"
DATA_IS_SYNCED = "is_synced"
DATA_CREATED_AT = "created_at"
DATA_UPDATED_AT = "updated_at"
DATA_CREATED_BY = "created_by"

# Household
DATA_HOUSEHOLD_NAME = "name"
DATA_HOUSEHOLD_REFERENT_NAME = "referent_name"

# Child
DATA_CHILD_NAME = "name"
DATA_CHILD_BIRTHDATE = "birthdate"
DATA_CHILD_AVATAR = "avatar"
DATA_CHILD_COINS = "coins"

# Challenge ("defi")
DATA_CHALLENGE_TITLE = "title"
DATA_CHALLENGE_DESCRIPTION = "description"
DATA_CHALLENGE_CATEGORY = "category"
DATA_CHALLENGE_LOCATION = "location"
DATA_CHALLENGE_DURATION_MIN = "duration_min"
DATA_CHALLENGE_POINTS_DEFAULT = "points_default"
DATA_CHALLENGE_PHOTO_REQUIRED = "photo_required"
DATA_CHALLENGE_AGE_MIN = "age_min"
DATA_CHALLENGE_AGE_MAX = "age_max"

# Reward
DATA_REWARD_TITLE = "title"
DATA_REWARD_DESCRIPTION = "description"
DATA_REWARD_COST = "cost"
DATA_REWARD_CATEGORY = "category"

# Session
DATA_SESSION_STARTED_AT = "started_at"
DATA_SESSION_ENDED_AT = "ended_at"
DATA_SESSION_TYPE = "session_type"
DATA_SESSION_LOCATION = "location"
DATA_SESSION_CATEGORY = "category"
DATA_SESSION_PLANNED_DURATION_MIN = "planned_duration_min"
DATA_SESSION_TOTAL_DEFIS = "total_defis_completed"
DATA_SESSION_TOTAL_COINS = "total_coins_awarded"

SESSION_TYPE_RANDOM = "random"
SESSION_TYPE_BUNDLE = "bundle"
SESSION_TYPES = [SESSION_TYPE_RANDOM, SESSION_TYPE_BUNDLE]

# Defi history
DATA_DEFI_HISTORY_DEFI_ID = "defi_id"
DATA_DEFI_HISTORY_COMPLETED_AT = "completed_at"
DATA_DEFI_HISTORY_COMPLETED_BY = "completed_by"

# Coin ledger
DATA_LEDGER_CHILD_ID = "child_id"
DATA_LEDGER_DEFI_ID = "defi_id"
DATA_LEDGER_AMOUNT = "amount"
DATA_LEDGER_REASON = "reason"

LEDGER_REASON_REWARD_REDEEMED = "reward_redeemed"
LEDGER_REASON_SESSION_AWARD = "session_award"

# Reward history
DATA_REWARD_HISTORY_REWARD_ID = "reward_id"
DATA_REWARD_HISTORY_RECEIVED_AT = "received_at"
DATA_REWARD_HISTORY_RECEIVED_BY = "received_by"

# Session media
DATA_MEDIA_FILE_URI = "file_uri"
DATA_MEDIA_TYPE = "media_type"
DATA_MEDIA_TAKEN_AT = "taken_at"
DATA_MEDIA_METADATA = "metadata"

MEDIA_TYPE_PHOTO = "photo"
MEDIA_TYPE_VIDEO = "video"
MEDIA_TYPES = [MEDIA_TYPE_PHOTO, MEDIA_TYPE_VIDEO]

# App logs
DATA_LOG_TIMESTAMP = "timestamp"
DATA_LOG_TYPE = "log_type"
DATA_LOG_LEVEL = "level"
DATA_LOG_CONTEXT = "context"
DATA_LOG_DETAILS = "details"
DATA_LOG_REF_ID = "ref_id"

LOG_TYPE_SESSION = "session"
LOG_TYPE_DEFI = "defi"
LOG_TYPE_REWARD = "reward"
LOG_TYPE_REWARD_GRANTED = "reward_granted"
LOG_TYPE_ERROR = "error"
LOG_TYPE_SYSTEM = "system"

LOG_LEVEL_INFO = "info"
LOG_LEVEL_WARNING = "warning"
LOG_LEVEL_ERROR = "error"

# App flag keys
FLAG_ACTIVE_SESSION_RUNTIME = "active_session_runtime"
FLAG_ACTIVE_SESSION_RESUME = "active_session_resume"
FLAG_CHALLENGES_IMPORTED = "challenges_imported"
FLAG_REWARDS_IMPORTED = "rewards_imported"

# Runtime state fields
RUNTIME_SESSION_ID = "session_id"
RUNTIME_SESSION_TYPE = "session_type"
RUNTIME_RANDOM_DEFI = "random_defi"
RUNTIME_BUNDLE = "bundle"
RUNTIME_BUNDLE_INDEX = "bundle_index"
RUNTIME_CHALLENGE_START = "challenge_start"
RUNTIME_PHOTO_COUNT = "photo_count"
RUNTIME_UPDATED_AT = "updated_at"

RESUME_SESSION_ID = "session_id"
RESUME_SNOOZE_UNTIL = "snooze_until"

# Catalog provider row fields
CATALOG_POINTS_REQUIRED = "points_required"
CATALOG_KIND_CHALLENGES = "challenges"
CATALOG_KIND_REWARDS = "rewards"
CATALOG_KINDS = [CATALOG_KIND_CHALLENGES, CATALOG_KIND_REWARDS]
CATALOG_CREATED_BY_SYSTEM = "system"

# ------------------------------------------------------------------------------------------------
# Event signal suffixes (dispatcher, scoped per config entry)
# ------------------------------------------------------------------------------------------------
SIGNAL_SUFFIX_SESSION_STARTED = "session_started"
SIGNAL_SUFFIX_SESSION_ENDED = "session_ended"
SIGNAL_SUFFIX_DEFI_COMPLETED = "defi_completed"
SIGNAL_SUFFIX_COINS_AWARDED = "coins_awarded"
SIGNAL_SUFFIX_REWARD_GRANTED = "reward_granted"

# ------------------------------------------------------------------------------------------------
# Services
# ------------------------------------------------------------------------------------------------
SERVICE_START_SESSION = "start_session"
SERVICE_END_SESSION = "end_session"
SERVICE_PICK_RANDOM_CHALLENGE = "pick_random_challenge"
SERVICE_BUILD_BUNDLE = "build_bundle"
SERVICE_RECORD_COMPLETION = "record_completion"
SERVICE_AWARD_COINS = "award_coins"
SERVICE_GRANT_REWARD = "grant_reward"
SERVICE_REACTIVATE_CHALLENGES = "reactivate_challenges"
SERVICE_ATTACH_MEDIA = "attach_media"
SERVICE_IMPORT_CATALOG = "import_catalog"
SERVICE_PURGE_LOGS = "purge_logs"

SERVICES = [
    SERVICE_START_SESSION,
    SERVICE_END_SESSION,
    SERVICE_PICK_RANDOM_CHALLENGE,
    SERVICE_BUILD_BUNDLE,
    SERVICE_RECORD_COMPLETION,
    SERVICE_AWARD_COINS,
    SERVICE_GRANT_REWARD,
    SERVICE_REACTIVATE_CHALLENGES,
    SERVICE_ATTACH_MEDIA,
    SERVICE_IMPORT_CATALOG,
    SERVICE_PURGE_LOGS,
]

# Service fields
FIELD_HOUSEHOLD_ID = "household_id"
FIELD_CHILDREN_IDS = "children_ids"
FIELD_SESSION_ID = "session_id"
FIELD_SESSION_TYPE = "session_type"
FIELD_LOCATION = "location"
FIELD_CATEGORY = "category"
FIELD_PLANNED_DURATION_MIN = "planned_duration_min"
FIELD_LOOKBACK_DAYS = "lookback_days"
FIELD_CAP = "cap"
FIELD_CREATED_BY = "created_by"
FIELD_DEFI_ID = "defi_id"
FIELD_DEFI_IDS = "defi_ids"
FIELD_COMPLETED_BY = "completed_by"
FIELD_AMOUNT_PER_CHILD = "amount_per_child"
FIELD_REASON = "reason"
FIELD_REWARD_ID = "reward_id"
FIELD_COST = "cost"
FIELD_ACTOR = "actor"
FIELD_FILE_URI = "file_uri"
FIELD_MEDIA_TYPE = "media_type"
FIELD_METADATA = "metadata"
FIELD_CATALOG_KIND = "kind"
FIELD_ROWS = "rows"
FIELD_DAYS = "days"

# ------------------------------------------------------------------------------------------------
# Messages
# ------------------------------------------------------------------------------------------------
MSG_NO_ENTRY_FOUND = "No KidsDefis entry found"
ERROR_ACTIVE_SESSION_EXISTS_FMT = "An active session already exists for household {}"
ERROR_SESSION_NOT_FOUND_FMT = "Session {} not found"
ERROR_POST_INSERT_FMT = "Session {} not found after insert"
ERROR_POST_UPDATE_FMT = "Session {} not found after update"

# ------------------------------------------------------------------------------------------------
# Translation keys (config / options flow)
# ------------------------------------------------------------------------------------------------
TRANS_KEY_ERROR_SINGLE_INSTANCE = "single_instance_allowed"
TRANS_KEY_CFOF_INVALID_HOUSEHOLD_NAME = "invalid_household_name"
TRANS_KEY_CFOF_INVALID_URL = "invalid_url"
DEFAULT_TITLE = "KidsDefis"
