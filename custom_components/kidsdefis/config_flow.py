# File: config_flow.py
"""Config flow for the KidsDefis integration.

A single step collects the household and referent names. The household row
itself is created by the integration setup from this entry data.
"""

from typing import Any, Optional

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.core import callback

from . import const
from .options_flow import KidsDefisOptionsFlowHandler


def build_household_schema(default: Optional[dict[str, Any]] = None) -> vol.Schema:
    """Schema of the household step."""
    default = default or {}
    return vol.Schema(
        {
            vol.Required(
                const.CONF_HOUSEHOLD_NAME,
                default=default.get(const.CONF_HOUSEHOLD_NAME, ""),
            ): str,
            vol.Optional(
                const.CONF_REFERENT_NAME,
                default=default.get(const.CONF_REFERENT_NAME, ""),
            ): str,
        }
    )


class KidsDefisConfigFlow(config_entries.ConfigFlow, domain=const.DOMAIN):
    """Config Flow for KidsDefis."""

    VERSION = 1

    async def async_step_user(self, user_input: Optional[dict[str, Any]] = None):
        """Collect the household name and its referent."""
        if any(self._async_current_entries()):
            return self.async_abort(reason=const.TRANS_KEY_ERROR_SINGLE_INSTANCE)

        errors: dict[str, str] = {}
        if user_input is not None:
            household_name = user_input[const.CONF_HOUSEHOLD_NAME].strip()
            if not household_name:
                errors[const.CONF_HOUSEHOLD_NAME] = (
                    const.TRANS_KEY_CFOF_INVALID_HOUSEHOLD_NAME
                )
            else:
                return self.async_create_entry(
                    title=household_name,
                    data={
                        const.CONF_HOUSEHOLD_NAME: household_name,
                        const.CONF_REFERENT_NAME: user_input.get(
                            const.CONF_REFERENT_NAME, ""
                        ).strip(),
                    },
                    options={
                        const.CONF_LOOKBACK_DAYS: const.DEFAULT_LOOKBACK_DAYS,
                        const.CONF_BUNDLE_CAP: const.DEFAULT_BUNDLE_CAP,
                        const.CONF_LOG_RETENTION_DAYS: const.DEFAULT_LOG_RETENTION_DAYS,
                    },
                )

        return self.async_show_form(
            step_id="user",
            data_schema=build_household_schema(user_input),
            errors=errors,
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Return the Options Flow."""
        return KidsDefisOptionsFlowHandler(config_entry)
