"""Binary sensor platform for Smart Energy management."""

from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.binary_sensor import BinarySensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.device_registry import DeviceEntryType, DeviceInfo
from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import (
    CONF_CATEGORY,
    CONF_NIGHT_CURTAILED,
    CONF_PRIORITY,
    CONF_SCHEDULE_TIME,
    DOMAIN,
    SUBENTRY_DEVICE,
)
from .coordinator import EnergyManagementCoordinator
from .engine import EnergyManagementResult

_LOGGER = logging.getLogger(__name__)


def _device_info(entry: ConfigEntry) -> DeviceInfo:
    """Return the shared Smart Energy device info."""
    return DeviceInfo(
        identifiers={(DOMAIN, entry.entry_id)},
        name="Smart Energy Manager",
        manufacturer="Smart Energy",
        entry_type=DeviceEntryType.SERVICE,
    )


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddConfigEntryEntitiesCallback,
) -> None:
    """Set up Smart Energy binary sensor entities."""
    coordinator: EnergyManagementCoordinator = hass.data[DOMAIN][entry.entry_id]

    # Global mode sensors (not linked to a subentry)
    async_add_entities(
        [
            SmartEnergyModeSensor(coordinator, entry, "energy_saving_mode"),
            SmartEnergyModeSensor(coordinator, entry, "night_mode"),
            SmartEnergyModeSensor(coordinator, entry, "temperature_regulation_active"),
        ]
    )

    # Per-device decision sensors (linked to their subentry)
    for subentry in entry.subentries.values():
        if subentry.subentry_type == SUBENTRY_DEVICE:
            async_add_entities(
                [SmartEnergyDeviceSensor(coordinator, entry, subentry.subentry_id)],
                config_subentry_id=subentry.subentry_id,
            )


class SmartEnergyModeSensor(
    CoordinatorEntity[EnergyManagementCoordinator], BinarySensorEntity
):
    """
    Binary sensor mirroring one mode flag of the latest evaluation.

    ``mode`` names an attribute of EnergyManagementResult and doubles as
    the translation key.
    """

    _attr_has_entity_name = True

    def __init__(
        self,
        coordinator: EnergyManagementCoordinator,
        entry: ConfigEntry,
        mode: str,
    ) -> None:
        """Initialize the mode binary sensor."""
        super().__init__(coordinator)
        self._mode = mode
        self._attr_translation_key = mode
        self._attr_unique_id = f"{entry.entry_id}_{mode}"
        self._attr_device_info = _device_info(entry)
        self._update_from_coordinator()

    @callback
    def _handle_coordinator_update(self) -> None:
        """Handle updated data from the coordinator."""
        self._update_from_coordinator()
        self.async_write_ha_state()

    @callback
    def _update_from_coordinator(self) -> None:
        """Update sensor state from coordinator data."""
        result: EnergyManagementResult | None = self.coordinator.data
        self._attr_is_on = bool(getattr(result, self._mode)) if result else False


class SmartEnergyDeviceSensor(
    CoordinatorEntity[EnergyManagementCoordinator], BinarySensorEntity
):
    """
    Binary sensor reporting whether a managed device should be on.

    This only publishes the decision. Automations are expected to act on
    it; the integration never switches the device itself.
    """

    _attr_has_entity_name = True
    _attr_translation_key = "device_decision"

    def __init__(
        self,
        coordinator: EnergyManagementCoordinator,
        entry: ConfigEntry,
        subentry_id: str,
    ) -> None:
        """Initialize the device decision binary sensor."""
        super().__init__(coordinator)
        self._entry = entry
        self._subentry_id = subentry_id
        self._attr_unique_id = f"{entry.entry_id}_{subentry_id}_device_decision"

        subentry = entry.subentries.get(subentry_id)
        self._device_name = subentry.title if subentry else "Device"
        self._attr_translation_placeholders = {"device_name": self._device_name}
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, f"{entry.entry_id}_{subentry_id}")},
            name=self._device_name,
            manufacturer="Smart Energy",
            entry_type=DeviceEntryType.SERVICE,
        )
        self._attr_is_on = bool(coordinator.get_device_status(self._device_name))

    @property
    def _subentry_data(self) -> dict[str, Any]:
        """Get the subentry data for this device."""
        subentry = self._entry.subentries.get(self._subentry_id)
        if subentry is None:
            return {}
        return dict(subentry.data)

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return extra state attributes."""
        data = self._subentry_data
        attrs: dict[str, Any] = {
            "priority": data.get(CONF_PRIORITY),
            "category": data.get(CONF_CATEGORY),
            "night_curtailed": data.get(CONF_NIGHT_CURTAILED, False),
            "schedule_time": data.get(CONF_SCHEDULE_TIME),
        }

        result: EnergyManagementResult | None = self.coordinator.data
        if result:
            attrs["reason"] = result.reasons.get(self._device_name)
        return attrs

    @callback
    def _handle_coordinator_update(self) -> None:
        """Handle updated data from the coordinator."""
        is_on = bool(self.coordinator.get_device_status(self._device_name))
        if is_on != self._attr_is_on:
            _LOGGER.debug(
                "%s should now be %s", self._device_name, "on" if is_on else "off"
            )
        self._attr_is_on = is_on
        self.async_write_ha_state()
