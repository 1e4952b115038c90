# File: options_flow.py
"""Options flow for the BandSync integration.

Lets the user change how far back and ahead the calendar looks and how many
occurrences a recurring event may produce.
"""

from homeassistant import config_entries

from . import const
from . import flow_helpers as fh


class BandSyncOptionsFlowHandler(config_entries.OptionsFlow):
    """Options Flow for the calendar window and occurrence cap."""

    def __init__(self, _config_entry: config_entries.ConfigEntry):
        """Initialize the options flow."""
        self._entry_options = {}

    async def async_step_init(self, user_input=None):
        """Show and save the general options."""
        self._entry_options = dict(self.config_entry.options)

        if user_input is not None:
            self._entry_options.update(fh.build_general_options_data(user_input))
            const.LOGGER.debug(
                "DEBUG: General Options Updated: Past Months=%s, "
                "Future Months=%s, Occurrence Cap=%s",
                self._entry_options.get(const.CONF_CALENDAR_PAST_MONTHS),
                self._entry_options.get(const.CONF_CALENDAR_FUTURE_MONTHS),
                self._entry_options.get(const.CONF_OCCURRENCE_CAP),
            )
            return self.async_create_entry(title="", data=self._entry_options)

        return self.async_show_form(
            step_id=const.OPTIONS_FLOW_STEP_INIT,
            data_schema=fh.build_general_options_schema(self._entry_options),
        )
