"""Switch platform for Smart Energy management."""

from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.switch import SwitchEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import STATE_OFF
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback
from homeassistant.helpers.restore_state import RestoreEntity
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .binary_sensor import _device_info
from .const import DOMAIN
from .coordinator import EnergyManagementCoordinator

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddConfigEntryEntitiesCallback,
) -> None:
    """Set up Smart Energy switch entities."""
    coordinator: EnergyManagementCoordinator = hass.data[DOMAIN][entry.entry_id]
    async_add_entities([SmartEnergyMasterSwitch(coordinator, entry)])


class SmartEnergyMasterSwitch(
    CoordinatorEntity[EnergyManagementCoordinator], SwitchEntity, RestoreEntity
):
    """
    Master switch to enable or disable device decisions.

    The last state is restored on startup and after every entry reload, so
    adding or editing a device does not silently re-enable management.
    """

    _attr_has_entity_name = True
    _attr_translation_key = "master_switch"

    def __init__(
        self, coordinator: EnergyManagementCoordinator, entry: ConfigEntry
    ) -> None:
        """Initialize the master switch."""
        super().__init__(coordinator)
        self._attr_unique_id = f"{entry.entry_id}_master_switch"
        self._attr_device_info = _device_info(entry)
        self._attr_is_on = coordinator.enabled

    async def async_added_to_hass(self) -> None:
        """Restore the previous enabled state."""
        await super().async_added_to_hass()

        last_state = await self.async_get_last_state()
        if last_state is not None and last_state.state == STATE_OFF:
            _LOGGER.debug("Restoring Smart Energy management as disabled")
            await self.coordinator.async_set_enabled(enabled=False)
        self._attr_is_on = self.coordinator.enabled

    @property
    def icon(self) -> str:
        """Return the icon."""
        return "mdi:power" if self.is_on else "mdi:power-off"

    async def async_turn_on(self, **_kwargs: Any) -> None:
        """Turn on Smart Energy management."""
        await self.coordinator.async_set_enabled(enabled=True)

    async def async_turn_off(self, **_kwargs: Any) -> None:
        """Turn off Smart Energy management."""
        await self.coordinator.async_set_enabled(enabled=False)

    @callback
    def _handle_coordinator_update(self) -> None:
        """Sync state with coordinator."""
        self._attr_is_on = self.coordinator.enabled
        self.async_write_ha_state()
