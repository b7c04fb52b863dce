"""Fixtures for Smart Energy tests."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any
from unittest.mock import patch

import pytest
from homeassistant import loader
from homeassistant.core import HomeAssistant
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.smart_energy.const import (
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
    DOMAIN,
    SUBENTRY_DEVICE,
)

PRICE_ENTITY = "sensor.electricity_price"
TEMPERATURE_ENTITY = "sensor.living_room_temperature"
ENERGY_ENTITY = "sensor.energy_today"


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(hass: HomeAssistant) -> None:
    """Enable custom integrations in all tests."""
    hass.data.pop(loader.DATA_CUSTOM_COMPONENTS)


def entry_data(**overrides: Any) -> dict[str, Any]:
    """Return main entry data matching the reference scenarios."""
    data: dict[str, Any] = {
        CONF_PRICE_ENTITY: PRICE_ENTITY,
        CONF_PRICE_THRESHOLD: 0.20,
        CONF_TEMPERATURE_SENSOR: TEMPERATURE_ENTITY,
        CONF_TEMPERATURE_MIN: 20.0,
        CONF_TEMPERATURE_MAX: 24.0,
        CONF_ENERGY_USAGE_ENTITY: ENERGY_ENTITY,
        CONF_ENERGY_USAGE_LIMIT: 30.0,
        CONF_NIGHT_START: 22,
        CONF_NIGHT_END: 6,
    }
    data.update(overrides)
    return data


def device_subentry(
    name: str,
    priority: int,
    category: str = "discretionary",
    *,
    night_curtailed: bool = False,
    schedule_time: str | None = None,
) -> dict[str, Any]:
    """Return subentry data for a managed device."""
    data: dict[str, Any] = {
        "name": name,
        CONF_PRIORITY: priority,
        CONF_CATEGORY: category,
        CONF_NIGHT_CURTAILED: night_curtailed,
    }
    if schedule_time is not None:
        data[CONF_SCHEDULE_TIME] = schedule_time
    return {
        "data": data,
        "subentry_type": SUBENTRY_DEVICE,
        "title": name,
        "unique_id": None,
    }


def set_source_states(
    hass: HomeAssistant,
    price: float | str = 0.15,
    temperature: float | str = 22.0,
    energy: float | str = 15.0,
) -> None:
    """Set the price, temperature and energy sensor states."""
    hass.states.async_set(PRICE_ENTITY, str(price))
    hass.states.async_set(TEMPERATURE_ENTITY, str(temperature))
    hass.states.async_set(ENERGY_ENTITY, str(energy))


@pytest.fixture
def mock_config_entry(hass: HomeAssistant) -> MockConfigEntry:
    """Create a mock config entry without devices."""
    entry = MockConfigEntry(
        domain=DOMAIN,
        title="Smart Energy",
        data=entry_data(),
        unique_id=DOMAIN,
    )
    entry.add_to_hass(hass)
    return entry


@pytest.fixture
def mock_config_entry_with_devices(hass: HomeAssistant) -> MockConfigEntry:
    """Create a mock config entry with a typical household of devices."""
    entry = MockConfigEntry(
        domain=DOMAIN,
        title="Smart Energy",
        data=entry_data(),
        unique_id=DOMAIN,
        subentries_data=[
            device_subentry("Heating", 1, "heating", night_curtailed=True),
            device_subentry("Cooling", 1, "cooling"),
            device_subentry("Lights", 2, night_curtailed=True),
            device_subentry("Appliances", 3, night_curtailed=True),
            device_subentry("Security", 1, "security"),
            device_subentry("Refrigerator", 1, "essential"),
        ],
    )
    entry.add_to_hass(hass)
    return entry


@pytest.fixture
def mock_setup_entry() -> Generator[None]:
    """Override async_setup_entry."""
    with patch(
        "custom_components.smart_energy.async_setup_entry",
        return_value=True,
    ):
        yield
