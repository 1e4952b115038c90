# File: config_flow.py
"""Config flow for the BandSync integration.

A single step asks for the band name; calendar options use their defaults
until changed in the options flow.
"""

from typing import Any, Optional

from homeassistant import config_entries
from homeassistant.core import callback

from . import const
from . import flow_helpers as fh
from .options_flow import BandSyncOptionsFlowHandler


class BandSyncConfigFlow(config_entries.ConfigFlow, domain=const.DOMAIN):
    """Config Flow for BandSync."""

    VERSION = 1

    async def async_step_user(self, user_input: Optional[dict[str, Any]] = None):
        """Ask for the band name and create the entry."""
        if any(self._async_current_entries()):
            return self.async_abort(reason=const.TRANS_KEY_ERROR_SINGLE_INSTANCE)

        errors: dict[str, str] = {}
        if user_input is not None:
            errors = fh.validate_band_inputs(user_input)
            if not errors:
                band_name = user_input[const.CONF_BAND_NAME].strip()
                const.LOGGER.debug("DEBUG: Creating BandSync entry for '%s'", band_name)
                return self.async_create_entry(
                    title=band_name,
                    data={const.CONF_BAND_NAME: band_name},
                    options=fh.build_general_options_data({}),
                )

        return self.async_show_form(
            step_id=const.CONFIG_FLOW_STEP_USER,
            data_schema=fh.build_band_schema(),
            errors=errors,
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Return the Options Flow."""
        return BandSyncOptionsFlowHandler(config_entry)
