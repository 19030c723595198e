# File: services.py
"""Defines custom services for the KidsDefis integration.

These services allow direct actions through scripts or automations. Services
that produce data (session rows, selections, grant results) return it as a
service response.
"""

from __future__ import annotations

from typing import Any, cast

import voluptuous as vol
from homeassistant.core import (
    HomeAssistant,
    ServiceCall,
    ServiceResponse,
    SupportsResponse,
)
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import config_validation as cv

from . import const
from .coordinator import KidsDefisDataCoordinator
from .type_defs import SessionConfig

# --- Service Schemas ---
_IDS = vol.All(cv.ensure_list, [cv.positive_int])

SESSION_CONSTRAINTS = {
    vol.Required(const.FIELD_HOUSEHOLD_ID): cv.positive_int,
    vol.Required(const.FIELD_CHILDREN_IDS): _IDS,
    vol.Optional(const.FIELD_LOCATION): cv.string,
    vol.Optional(const.FIELD_CATEGORY): cv.string,
    vol.Optional(const.FIELD_PLANNED_DURATION_MIN): vol.Coerce(float),
}

START_SESSION_SCHEMA = vol.Schema(
    {
        **SESSION_CONSTRAINTS,
        vol.Optional(const.FIELD_SESSION_TYPE, default=const.SESSION_TYPE_RANDOM): vol.In(
            const.SESSION_TYPES
        ),
        vol.Optional(const.FIELD_CREATED_BY): cv.string,
    }
)

END_SESSION_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_SESSION_ID): cv.positive_int,
    }
)

PICK_RANDOM_CHALLENGE_SCHEMA = vol.Schema(
    {
        **SESSION_CONSTRAINTS,
        vol.Optional(const.FIELD_LOOKBACK_DAYS): cv.positive_int,
    }
)

BUILD_BUNDLE_SCHEMA = vol.Schema(
    {
        **SESSION_CONSTRAINTS,
        vol.Optional(const.FIELD_LOOKBACK_DAYS): cv.positive_int,
        vol.Optional(const.FIELD_CAP): vol.All(
            vol.Coerce(int), vol.Range(min=1, max=const.DEFAULT_BUNDLE_CAP)
        ),
    }
)

RECORD_COMPLETION_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_SESSION_ID): cv.positive_int,
        vol.Required(const.FIELD_HOUSEHOLD_ID): cv.positive_int,
        vol.Required(const.FIELD_DEFI_ID): cv.positive_int,
        vol.Required(const.FIELD_CHILDREN_IDS): _IDS,
        vol.Optional(const.FIELD_COMPLETED_BY): cv.string,
    }
)

AWARD_COINS_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_SESSION_ID): cv.positive_int,
        vol.Required(const.FIELD_HOUSEHOLD_ID): cv.positive_int,
        vol.Required(const.FIELD_CHILDREN_IDS): _IDS,
        vol.Required(const.FIELD_AMOUNT_PER_CHILD): vol.Coerce(float),
        vol.Optional(const.FIELD_DEFI_ID): cv.positive_int,
        vol.Optional(const.FIELD_REASON): cv.string,
        vol.Optional(const.FIELD_CREATED_BY): cv.string,
    }
)

GRANT_REWARD_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_HOUSEHOLD_ID): cv.positive_int,
        vol.Required(const.FIELD_REWARD_ID): cv.positive_int,
        vol.Required(const.FIELD_COST): vol.Coerce(float),
        vol.Required(const.FIELD_CHILDREN_IDS): _IDS,
        vol.Optional(const.FIELD_ACTOR): cv.string,
        vol.Optional(const.FIELD_SESSION_ID): cv.positive_int,
    }
)

REACTIVATE_CHALLENGES_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_HOUSEHOLD_ID): cv.positive_int,
        vol.Required(const.FIELD_DEFI_IDS): _IDS,
    }
)

ATTACH_MEDIA_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_SESSION_ID): cv.positive_int,
        vol.Required(const.FIELD_HOUSEHOLD_ID): cv.positive_int,
        vol.Required(const.FIELD_FILE_URI): cv.string,
        vol.Optional(const.FIELD_CHILDREN_IDS, default=[]): _IDS,
        vol.Optional(const.FIELD_MEDIA_TYPE, default=const.MEDIA_TYPE_PHOTO): vol.In(
            const.MEDIA_TYPES
        ),
        vol.Optional(const.FIELD_METADATA): dict,
    }
)

IMPORT_CATALOG_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_HOUSEHOLD_ID): cv.positive_int,
        vol.Required(const.FIELD_CATALOG_KIND): vol.In(const.CATALOG_KINDS),
        vol.Optional(const.FIELD_ROWS): vol.All(cv.ensure_list, [dict]),
    }
)

PURGE_LOGS_SCHEMA = vol.Schema(
    {
        vol.Optional(const.FIELD_DAYS): cv.positive_int,
    }
)


def _get_coordinator(hass: HomeAssistant) -> KidsDefisDataCoordinator:
    """Return the coordinator of the first loaded entry."""
    entries = hass.data.get(const.DOMAIN) or {}
    for entry_data in entries.values():
        return entry_data[const.COORDINATOR]
    raise HomeAssistantError(const.MSG_NO_ENTRY_FOUND)


def _session_config(data: dict[str, Any]) -> SessionConfig:
    """Build the session constraints from service call data."""
    config: dict[str, Any] = {
        "household_id": data[const.FIELD_HOUSEHOLD_ID],
        "children_ids": data[const.FIELD_CHILDREN_IDS],
    }
    for field in (
        const.FIELD_SESSION_TYPE,
        const.FIELD_LOCATION,
        const.FIELD_CATEGORY,
        const.FIELD_PLANNED_DURATION_MIN,
        const.FIELD_LOOKBACK_DAYS,
        const.FIELD_CREATED_BY,
    ):
        if field in data:
            config[field] = data[field]
    return cast("SessionConfig", config)


def async_setup_services(hass: HomeAssistant) -> None:
    """Register KidsDefis services (idempotent across entries)."""
    if hass.services.has_service(const.DOMAIN, const.SERVICE_START_SESSION):
        return

    async def handle_start_session(call: ServiceCall) -> ServiceResponse:
        """Start a session for a household."""
        coordinator = _get_coordinator(hass)
        session = await coordinator.session_manager.async_start_session(
            _session_config(call.data)
        )
        const.LOGGER.info(
            "Session %s started for household %s",
            session[const.DATA_ID],
            session[const.DATA_HOUSEHOLD_ID],
        )
        return dict(session)

    async def handle_end_session(call: ServiceCall) -> ServiceResponse:
        """End a session and freeze its totals."""
        coordinator = _get_coordinator(hass)
        session = await coordinator.session_manager.async_end_session(
            call.data[const.FIELD_SESSION_ID]
        )
        return dict(session)

    async def handle_pick_random_challenge(call: ServiceCall) -> ServiceResponse:
        """Propose one eligible challenge."""
        coordinator = _get_coordinator(hass)
        pick = await coordinator.selection_manager.async_pick_random_eligible(
            _session_config(call.data)
        )
        return {"challenge": pick}

    async def handle_build_bundle(call: ServiceCall) -> ServiceResponse:
        """Build a bundle of eligible challenges."""
        coordinator = _get_coordinator(hass)
        bundle = await coordinator.selection_manager.async_build_eligible_bundle(
            _session_config(call.data), cap=call.data.get(const.FIELD_CAP)
        )
        return {
            "challenges": bundle,
            "total_duration": sum(
                item.get(const.DATA_CHALLENGE_DURATION_MIN) or 0 for item in bundle
            ),
        }

    async def handle_record_completion(call: ServiceCall) -> ServiceResponse:
        """Record a completed challenge."""
        coordinator = _get_coordinator(hass)
        history_id = await coordinator.history_manager.async_record_completion(
            session_id=call.data[const.FIELD_SESSION_ID],
            household_id=call.data[const.FIELD_HOUSEHOLD_ID],
            defi_id=call.data[const.FIELD_DEFI_ID],
            children_ids=call.data[const.FIELD_CHILDREN_IDS],
            completed_by=call.data.get(const.FIELD_COMPLETED_BY),
        )
        return {"history_id": history_id}

    async def handle_award_coins(call: ServiceCall) -> ServiceResponse:
        """Credit coins to each participant."""
        coordinator = _get_coordinator(hass)
        total = await coordinator.economy_manager.async_award_coins_for_children(
            session_id=call.data[const.FIELD_SESSION_ID],
            household_id=call.data[const.FIELD_HOUSEHOLD_ID],
            children_ids=call.data[const.FIELD_CHILDREN_IDS],
            amount_per_child=call.data[const.FIELD_AMOUNT_PER_CHILD],
            defi_id=call.data.get(const.FIELD_DEFI_ID),
            reason=call.data.get(const.FIELD_REASON),
            created_by=call.data.get(const.FIELD_CREATED_BY),
        )
        return {"total": total}

    async def handle_grant_reward(call: ServiceCall) -> ServiceResponse:
        """Redeem a reward for the participants."""
        coordinator = _get_coordinator(hass)
        result = await coordinator.economy_manager.async_grant_reward(
            household_id=call.data[const.FIELD_HOUSEHOLD_ID],
            reward_id=call.data[const.FIELD_REWARD_ID],
            cost=call.data[const.FIELD_COST],
            children_ids=call.data[const.FIELD_CHILDREN_IDS],
            actor=call.data.get(const.FIELD_ACTOR),
            session_id=call.data.get(const.FIELD_SESSION_ID),
        )
        return dict(result)

    async def handle_reactivate_challenges(call: ServiceCall) -> ServiceResponse:
        """Make completed challenges eligible again."""
        coordinator = _get_coordinator(hass)
        removed = await coordinator.history_manager.async_reactivate_challenges(
            call.data[const.FIELD_HOUSEHOLD_ID], call.data[const.FIELD_DEFI_IDS]
        )
        return {"removed": removed}

    async def handle_attach_media(call: ServiceCall) -> ServiceResponse:
        """Attach a media reference to a session."""
        coordinator = _get_coordinator(hass)
        media_id = await coordinator.session_manager.async_attach_media(
            session_id=call.data[const.FIELD_SESSION_ID],
            household_id=call.data[const.FIELD_HOUSEHOLD_ID],
            file_uri=call.data[const.FIELD_FILE_URI],
            children_ids=call.data[const.FIELD_CHILDREN_IDS],
            media_type=call.data[const.FIELD_MEDIA_TYPE],
            metadata=call.data.get(const.FIELD_METADATA),
        )
        return {"media_id": media_id}

    async def handle_import_catalog(call: ServiceCall) -> ServiceResponse:
        """Import default challenges or rewards.

        Explicit ``rows`` are imported directly; otherwise the configured
        remote catalog is fetched once.
        """
        coordinator = _get_coordinator(hass)
        household_id = call.data[const.FIELD_HOUSEHOLD_ID]
        kind = call.data[const.FIELD_CATALOG_KIND]
        rows = call.data.get(const.FIELD_ROWS)
        catalog = coordinator.catalog_manager

        if rows is None:
            imported = await catalog.async_import_from_provider(household_id, kind)
        elif kind == const.CATALOG_KIND_CHALLENGES:
            imported = await catalog.async_import_default_challenges(household_id, rows)
        else:
            imported = await catalog.async_import_default_rewards(household_id, rows)
        return {"imported": imported}

    async def handle_purge_logs(call: ServiceCall) -> ServiceResponse:
        """Delete old application log rows."""
        coordinator = _get_coordinator(hass)
        days = call.data.get(const.FIELD_DAYS, coordinator.log_retention_days)
        removed = await coordinator.log_manager.async_purge_old_logs(days)
        return {"removed": removed}

    services: list[tuple[str, Any, vol.Schema]] = [
        (const.SERVICE_START_SESSION, handle_start_session, START_SESSION_SCHEMA),
        (const.SERVICE_END_SESSION, handle_end_session, END_SESSION_SCHEMA),
        (
            const.SERVICE_PICK_RANDOM_CHALLENGE,
            handle_pick_random_challenge,
            PICK_RANDOM_CHALLENGE_SCHEMA,
        ),
        (const.SERVICE_BUILD_BUNDLE, handle_build_bundle, BUILD_BUNDLE_SCHEMA),
        (
            const.SERVICE_RECORD_COMPLETION,
            handle_record_completion,
            RECORD_COMPLETION_SCHEMA,
        ),
        (const.SERVICE_AWARD_COINS, handle_award_coins, AWARD_COINS_SCHEMA),
        (const.SERVICE_GRANT_REWARD, handle_grant_reward, GRANT_REWARD_SCHEMA),
        (
            const.SERVICE_REACTIVATE_CHALLENGES,
            handle_reactivate_challenges,
            REACTIVATE_CHALLENGES_SCHEMA,
        ),
        (const.SERVICE_ATTACH_MEDIA, handle_attach_media, ATTACH_MEDIA_SCHEMA),
        (const.SERVICE_IMPORT_CATALOG, handle_import_catalog, IMPORT_CATALOG_SCHEMA),
        (const.SERVICE_PURGE_LOGS, handle_purge_logs, PURGE_LOGS_SCHEMA),
    ]

    for service, handler, schema in services:
        hass.services.async_register(
            const.DOMAIN,
            service,
            handler,
            schema=schema,
            supports_response=SupportsResponse.OPTIONAL,
        )

    const.LOGGER.info("KidsDefis services have been registered successfully")


async def async_unload_services(hass: HomeAssistant) -> None:
    """Unregister KidsDefis services when unloading the integration."""
    for service in const.SERVICES:
        if hass.services.has_service(const.DOMAIN, service):
            hass.services.async_remove(const.DOMAIN, service)

    const.LOGGER.info("KidsDefis services have been unregistered")
