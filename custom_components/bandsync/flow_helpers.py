# File: flow_helpers.py
"""Helpers for the BandSync config flow and options flow.

Schemas are built here so the initial setup and the options flow render the
same fields with the same defaults.
"""

from __future__ import annotations

from typing import Any, Optional

import voluptuous as vol
from homeassistant.helpers import selector

from . import const


# ----------------------------------------------------------------------------------
# BAND
# ----------------------------------------------------------------------------------


def build_band_schema(default_name: str = const.DEFAULT_BAND_NAME) -> vol.Schema:
    """Build a schema for the band name."""
    return vol.Schema(
        {
            vol.Required(const.CONF_BAND_NAME, default=default_name): str,
        }
    )


def validate_band_inputs(user_input: dict[str, Any]) -> dict[str, str]:
    """Validate the band name.

    Returns:
        Dictionary of errors (empty if validation passes).
    """
    errors: dict[str, str] = {}
    band_name = user_input.get(const.CONF_BAND_NAME, "").strip()
    if not band_name:
        errors[const.CONF_BAND_NAME] = const.CFOP_ERROR_BAND_NAME
    return errors


# ----------------------------------------------------------------------------------
# GENERAL OPTIONS
# ----------------------------------------------------------------------------------


def build_general_options_schema(default: Optional[dict] = None) -> vol.Schema:
    """Build schema for the calendar window and occurrence cap."""
    default = default or {}

    default_past = default.get(
        const.CONF_CALENDAR_PAST_MONTHS, const.DEFAULT_CALENDAR_PAST_MONTHS
    )
    default_future = default.get(
        const.CONF_CALENDAR_FUTURE_MONTHS, const.DEFAULT_CALENDAR_FUTURE_MONTHS
    )
    default_cap = default.get(const.CONF_OCCURRENCE_CAP, const.DEFAULT_OCCURRENCE_CAP)

    return vol.Schema(
        {
            vol.Required(
                const.CONF_CALENDAR_PAST_MONTHS, default=default_past
            ): selector.NumberSelector(
                selector.NumberSelectorConfig(
                    mode=selector.NumberSelectorMode.BOX,
                    min=0,
                    max=const.MAX_CALENDAR_MONTHS,
                    step=1,
                )
            ),
            vol.Required(
                const.CONF_CALENDAR_FUTURE_MONTHS, default=default_future
            ): selector.NumberSelector(
                selector.NumberSelectorConfig(
                    mode=selector.NumberSelectorMode.BOX,
                    min=1,
                    max=const.MAX_CALENDAR_MONTHS,
                    step=1,
                )
            ),
            vol.Required(
                const.CONF_OCCURRENCE_CAP, default=default_cap
            ): selector.NumberSelector(
                selector.NumberSelectorConfig(
                    mode=selector.NumberSelectorMode.BOX,
                    min=1,
                    max=const.MAX_OCCURRENCE_CAP,
                    step=1,
                )
            ),
        }
    )


def build_general_options_data(user_input: dict[str, Any]) -> dict[str, int]:
    """Convert general options form input to stored options.

    NumberSelector hands back floats; options are stored as ints.
    """
    return {
        const.CONF_CALENDAR_PAST_MONTHS: int(
            user_input.get(
                const.CONF_CALENDAR_PAST_MONTHS, const.DEFAULT_CALENDAR_PAST_MONTHS
            )
        ),
        const.CONF_CALENDAR_FUTURE_MONTHS: int(
            user_input.get(
                const.CONF_CALENDAR_FUTURE_MONTHS,
                const.DEFAULT_CALENDAR_FUTURE_MONTHS,
            )
        ),
        const.CONF_OCCURRENCE_CAP: int(
            user_input.get(const.CONF_OCCURRENCE_CAP, const.DEFAULT_OCCURRENCE_CAP)
        ),
    }
