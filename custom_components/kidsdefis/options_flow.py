# File: options_flow.py
"""Options Flow for the KidsDefis integration.

Edits the selection and housekeeping settings. Saving the options reloads the
entry so the coordinator picks up the new values (including the seed).
"""

from typing import Any, Optional

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.helpers import config_validation as cv

from . import const

_URL_FIELDS = (const.CONF_CHALLENGES_CATALOG_URL, const.CONF_REWARDS_CATALOG_URL)


def build_options_schema(options: dict[str, Any]) -> vol.Schema:
    """Schema of the settings step, prefilled from the current options."""
    return vol.Schema(
        {
            vol.Required(
                const.CONF_LOOKBACK_DAYS,
                default=options.get(const.CONF_LOOKBACK_DAYS, const.DEFAULT_LOOKBACK_DAYS),
            ): vol.All(vol.Coerce(int), vol.Range(min=0)),
            vol.Required(
                const.CONF_BUNDLE_CAP,
                default=options.get(const.CONF_BUNDLE_CAP, const.DEFAULT_BUNDLE_CAP),
            ): vol.All(vol.Coerce(int), vol.Range(min=1, max=const.DEFAULT_BUNDLE_CAP)),
            vol.Required(
                const.CONF_LOG_RETENTION_DAYS,
                default=options.get(
                    const.CONF_LOG_RETENTION_DAYS, const.DEFAULT_LOG_RETENTION_DAYS
                ),
            ): vol.All(vol.Coerce(int), vol.Range(min=1)),
            vol.Optional(
                const.CONF_CHALLENGES_CATALOG_URL,
                default=options.get(const.CONF_CHALLENGES_CATALOG_URL, ""),
            ): str,
            vol.Optional(
                const.CONF_REWARDS_CATALOG_URL,
                default=options.get(const.CONF_REWARDS_CATALOG_URL, ""),
            ): str,
            vol.Optional(
                const.CONF_SELECTION_SEED,
                default=options.get(const.CONF_SELECTION_SEED, ""),
            ): str,
        }
    )


class KidsDefisOptionsFlowHandler(config_entries.OptionsFlow):
    """Options Flow for the selection and housekeeping settings."""

    def __init__(self, _config_entry: config_entries.ConfigEntry):
        """Initialize the options flow."""

    async def async_step_init(self, user_input: Optional[dict[str, Any]] = None):
        """Show and save the settings form."""
        errors: dict[str, str] = {}
        if user_input is not None:
            for field in _URL_FIELDS:
                value = user_input.get(field, "").strip()
                if not value:
                    user_input[field] = ""
                    continue
                try:
                    user_input[field] = cv.url(value)
                except vol.Invalid:
                    errors[field] = const.TRANS_KEY_CFOF_INVALID_URL

            if not errors:
                user_input[const.CONF_SELECTION_SEED] = user_input.get(
                    const.CONF_SELECTION_SEED, ""
                ).strip()
                const.LOGGER.debug("Updating KidsDefis options: %s", user_input)
                return self.async_create_entry(
                    title="", data={**self.config_entry.options, **user_input}
                )

        return self.async_show_form(
            step_id="init",
            data_schema=build_options_schema(
                user_input if user_input is not None else dict(self.config_entry.options)
            ),
            errors=errors,
        )
