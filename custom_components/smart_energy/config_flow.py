"""Config flow for the Smart Energy integration."""

from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol
from homeassistant.config_entries import (
    ConfigEntry,
    ConfigFlow,
    ConfigFlowResult,
    ConfigSubentryFlow,
    SubentryFlowResult,
)
from homeassistant.core import callback
from homeassistant.helpers.selector import (
    BooleanSelector,
    EntitySelector,
    EntitySelectorConfig,
    NumberSelector,
    NumberSelectorConfig,
    NumberSelectorMode,
    SelectSelector,
    SelectSelectorConfig,
    SelectSelectorMode,
    TimeSelector,
    TimeSelectorConfig,
)

from .const import (
    CONF_CATEGORY,
    CONF_ENERGY_USAGE_ENTITY,
    CONF_ENERGY_USAGE_LIMIT,
    CONF_NIGHT_CURTAILED,
    CONF_NIGHT_END,
    CONF_NIGHT_START,
    CONF_PRICE_ENTITY,
    CONF_PRICE_THRESHOLD,
    CONF_PRIORITY,
    CONF_SCHEDULE_TIME,
    CONF_TEMPERATURE_MAX,
    CONF_TEMPERATURE_MIN,
    CONF_TEMPERATURE_SENSOR,
    DEFAULT_ENERGY_USAGE_LIMIT,
    DEFAULT_NIGHT_END_HOUR,
    DEFAULT_NIGHT_START_HOUR,
    DEFAULT_PRICE_THRESHOLD,
    DEFAULT_PRIORITY,
    DEFAULT_TEMPERATURE_MAX,
    DEFAULT_TEMPERATURE_MIN,
    DOMAIN,
    SUBENTRY_DEVICE,
)
from .engine import DeviceCategory

_LOGGER = logging.getLogger(__name__)


def _hour_selector() -> NumberSelector:
    """Return a whole-hour number selector."""
    return NumberSelector(
        NumberSelectorConfig(
            min=0,
            max=23,
            step=1,
            unit_of_measurement="h",
            mode=NumberSelectorMode.BOX,
        )
    )


def _settings_schema() -> vol.Schema:
    """Return the schema for the main Smart Energy settings."""
    return vol.Schema(
        {
            vol.Required(CONF_PRICE_ENTITY): EntitySelector(
                EntitySelectorConfig(domain=["sensor", "input_number"])
            ),
            vol.Required(
                CONF_PRICE_THRESHOLD, default=DEFAULT_PRICE_THRESHOLD
            ): NumberSelector(
                NumberSelectorConfig(
                    min=0,
                    max=10,
                    step=0.001,
                    mode=NumberSelectorMode.BOX,
                )
            ),
            vol.Required(CONF_TEMPERATURE_SENSOR): EntitySelector(
                EntitySelectorConfig(
                    domain="sensor",
                    device_class="temperature",
                )
            ),
            vol.Required(
                CONF_TEMPERATURE_MIN, default=DEFAULT_TEMPERATURE_MIN
            ): NumberSelector(
                NumberSelectorConfig(
                    min=-20,
                    max=50,
                    step=0.5,
                    unit_of_measurement="°C",
                    mode=NumberSelectorMode.BOX,
                )
            ),
            vol.Required(
                CONF_TEMPERATURE_MAX, default=DEFAULT_TEMPERATURE_MAX
            ): NumberSelector(
                NumberSelectorConfig(
                    min=-20,
                    max=50,
                    step=0.5,
                    unit_of_measurement="°C",
                    mode=NumberSelectorMode.BOX,
                )
            ),
            vol.Required(CONF_ENERGY_USAGE_ENTITY): EntitySelector(
                EntitySelectorConfig(domain=["sensor", "input_number"])
            ),
            vol.Required(
                CONF_ENERGY_USAGE_LIMIT, default=DEFAULT_ENERGY_USAGE_LIMIT
            ): NumberSelector(
                NumberSelectorConfig(
                    min=0,
                    max=1000,
                    step=0.1,
                    unit_of_measurement="kWh",
                    mode=NumberSelectorMode.BOX,
                )
            ),
            vol.Required(
                CONF_NIGHT_START, default=DEFAULT_NIGHT_START_HOUR
            ): _hour_selector(),
            vol.Required(CONF_NIGHT_END, default=DEFAULT_NIGHT_END_HOUR): _hour_selector(),
        }
    )


def _validate_settings(user_input: dict[str, Any]) -> dict[str, str]:
    """Validate the main settings and return form errors."""
    errors: dict[str, str] = {}
    low = float(user_input[CONF_TEMPERATURE_MIN])
    high = float(user_input[CONF_TEMPERATURE_MAX])
    if low > high:
        _LOGGER.debug("Rejected temperature range %s-%s", low, high)
        errors["base"] = "invalid_temperature_range"
    return errors


class SmartEnergyConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Smart Energy."""

    VERSION = 1

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Handle the initial step — sensors, threshold, range and limit."""
        errors: dict[str, str] = {}

        if user_input is not None:
            errors = _validate_settings(user_input)
            if not errors:
                await self.async_set_unique_id(DOMAIN)
                self._abort_if_unique_id_configured()

                return self.async_create_entry(
                    title="Smart Energy",
                    data=user_input,
                )

        return self.async_show_form(
            step_id="user",
            data_schema=self.add_suggested_values_to_schema(
                _settings_schema(), user_input or {}
            ),
            errors=errors,
        )

    async def async_step_reconfigure(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Handle reconfiguration of the main settings."""
        entry = self._get_reconfigure_entry()
        errors: dict[str, str] = {}

        if user_input is not None:
            errors = _validate_settings(user_input)
            if not errors:
                return self.async_update_reload_and_abort(
                    entry,
                    data_updates=user_input,
                )

        return self.async_show_form(
            step_id="reconfigure",
            data_schema=self.add_suggested_values_to_schema(
                _settings_schema(),
                user_input or dict(entry.data),
            ),
            errors=errors,
        )

    @classmethod
    @callback
    def async_get_supported_subentry_types(
        cls,
        config_entry: ConfigEntry,  # noqa: ARG003
    ) -> dict[str, type[ConfigSubentryFlow]]:
        """Return subentries supported by this integration."""
        return {
            SUBENTRY_DEVICE: DeviceSubentryFlow,
        }


def _device_schema() -> vol.Schema:
    """Return the schema for a managed device subentry."""
    return vol.Schema(
        {
            vol.Required("name"): str,
            vol.Required(CONF_PRIORITY, default=DEFAULT_PRIORITY): NumberSelector(
                NumberSelectorConfig(
                    min=1,
                    max=10,
                    step=1,
                    mode=NumberSelectorMode.SLIDER,
                )
            ),
            vol.Required(
                CONF_CATEGORY, default=DeviceCategory.DISCRETIONARY.value
            ): SelectSelector(
                SelectSelectorConfig(
                    options=[category.value for category in DeviceCategory],
                    mode=SelectSelectorMode.DROPDOWN,
                    translation_key=CONF_CATEGORY,
                )
            ),
            vol.Optional(CONF_NIGHT_CURTAILED, default=False): BooleanSelector(),
            vol.Optional(CONF_SCHEDULE_TIME): TimeSelector(TimeSelectorConfig()),
        }
    )


class DeviceSubentryFlow(ConfigSubentryFlow):
    """Handle subentry flow for adding a managed device."""

    def _name_taken(self, name: str, exclude_subentry_id: str | None = None) -> bool:
        """Check whether another device subentry already uses ``name``."""
        entry = self._get_entry()
        return any(
            s.subentry_type == SUBENTRY_DEVICE
            and s.title == name
            and s.subentry_id != exclude_subentry_id
            for s in entry.subentries.values()
        )

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> SubentryFlowResult:
        """Handle the device configuration step."""
        errors: dict[str, str] = {}

        if user_input is not None:
            if self._name_taken(user_input["name"]):
                errors["base"] = "duplicate_name"
            else:
                return self.async_create_entry(
                    title=user_input["name"],
                    data=user_input,
                )

        return self.async_show_form(
            step_id="user",
            data_schema=self.add_suggested_values_to_schema(
                _device_schema(), user_input or {}
            ),
            errors=errors,
        )

    async def async_step_reconfigure(
        self, user_input: dict[str, Any] | None = None
    ) -> SubentryFlowResult:
        """Handle reconfiguration of a managed device."""
        subentry = self._get_reconfigure_subentry()
        errors: dict[str, str] = {}

        if user_input is not None:
            if self._name_taken(user_input["name"], subentry.subentry_id):
                errors["base"] = "duplicate_name"
            else:
                return self.async_update_reload_and_abort(
                    self._get_entry(),
                    subentry,
                    title=user_input["name"],
                    data=user_input,
                )

        return self.async_show_form(
            step_id="reconfigure",
            data_schema=self.add_suggested_values_to_schema(
                _device_schema(),
                user_input or {"name": subentry.title, **subentry.data},
            ),
            errors=errors,
        )
