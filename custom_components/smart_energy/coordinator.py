"""DataUpdateCoordinator for Smart Energy device decisions."""

from __future__ import annotations

import contextlib
import logging
from datetime import datetime, time
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import (
    CALLBACK_TYPE,
    Event,
    EventStateChangedData,
    HomeAssistant,
    callback,
)
from homeassistant.helpers.event import (
    async_track_state_change_event,
    async_track_utc_time_change,
)
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed
from homeassistant.util import dt as dt_util

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
    DEFAULT_NIGHT_END_HOUR,
    DEFAULT_NIGHT_START_HOUR,
    DEFAULT_PRIORITY,
    DOMAIN,
    SUBENTRY_DEVICE,
)
from .engine import (
    Device,
    DeviceCategory,
    DeviceSchedule,
    EnergyManagementError,
    EnergyManagementResult,
    EnergySnapshot,
    evaluate,
)

_LOGGER = logging.getLogger(__name__)

# Minimum number of time parts when parsing a schedule string (HH:MM:SS)
_TIME_PARTS_WITH_SECONDS = 3


def parse_schedule_time(raw: Any) -> time | None:
    """Parse an ``HH:MM[:SS]`` string from a time selector, or None."""
    if not raw:
        return None
    if isinstance(raw, time):
        return raw
    try:
        parts = str(raw).split(":")
        return time(
            hour=int(parts[0]),
            minute=int(parts[1]),
            second=int(parts[2]) if len(parts) >= _TIME_PARTS_WITH_SECONDS else 0,
        )
    except (IndexError, ValueError):
        _LOGGER.warning("Ignoring invalid schedule time %r", raw)
        return None


def scheduled_instant(schedule_time: time, now: datetime) -> datetime:
    """
    Anchor a daily schedule time to the date and timezone of ``now``.

    Seconds are dropped so the schedule matches the minute-truncated
    evaluation instant for its whole minute.
    """
    return datetime.combine(
        now.date(),
        schedule_time.replace(second=0, microsecond=0),
        tzinfo=now.tzinfo,
    )


class EnergyManagementCoordinator(
    DataUpdateCoordinator[EnergyManagementResult | None]
):
    """
    Coordinator that evaluates device decisions from live sensor states.

    Re-evaluates at every minute boundary and whenever one of the source
    sensors (price, temperature, energy used today) changes. Evaluation is
    stateless: each run builds a fresh snapshot and keeps only the result.
    """

    def __init__(self, hass: HomeAssistant, entry: ConfigEntry) -> None:
        """Initialize the energy management coordinator."""
        super().__init__(
            hass,
            _LOGGER,
            name=f"{DOMAIN}_coordinator",
            update_interval=None,
            config_entry=entry,
        )
        self._minute_unsub: CALLBACK_TYPE | None = None
        self._state_unsub: CALLBACK_TYPE | None = None
        self._price_override: float | None = None
        self._enabled: bool = True
        self.last_snapshot: EnergySnapshot | None = None

    @callback
    def _async_start_minute_timer(self) -> None:
        """Start the minute boundary timer."""
        if self._minute_unsub is not None:
            return

        @callback
        def _on_minute(_now: datetime) -> None:
            """Re-evaluate at second 0 of every minute."""
            self.hass.async_create_task(self.async_refresh())

        self._minute_unsub = async_track_utc_time_change(
            self.hass, _on_minute, second=0
        )

    @callback
    def _async_stop_minute_timer(self) -> None:
        """Stop the minute boundary timer."""
        if self._minute_unsub is not None:
            self._minute_unsub()
            self._minute_unsub = None

    @callback
    def _async_start_state_listener(self) -> None:
        """Listen for source sensor changes to trigger re-evaluation."""
        if self._state_unsub is not None or self.config_entry is None:
            return

        entity_ids = [
            entity_id
            for key in (
                CONF_PRICE_ENTITY,
                CONF_TEMPERATURE_SENSOR,
                CONF_ENERGY_USAGE_ENTITY,
            )
            if (entity_id := self.config_entry.data.get(key))
        ]
        if not entity_ids:
            return

        @callback
        def _on_source_change(
            _event: Event[EventStateChangedData],
        ) -> None:
            """Re-evaluate when a source sensor changes."""
            self.hass.async_create_task(self.async_refresh())

        self._state_unsub = async_track_state_change_event(
            self.hass, entity_ids, _on_source_change
        )

    @callback
    def _async_stop_state_listener(self) -> None:
        """Stop listening for source sensor changes."""
        if self._state_unsub is not None:
            self._state_unsub()
            self._state_unsub = None

    # ------------------------------------------------------------------
    # Snapshot building
    # ------------------------------------------------------------------

    def _evaluation_time(self) -> datetime:
        """Return the evaluation instant: local now truncated to the minute."""
        return dt_util.now().replace(second=0, microsecond=0)

    def _read_float(self, entity_id: str | None, label: str) -> float:
        """Read a numeric entity state or raise UpdateFailed."""
        if not entity_id:
            msg = f"No {label} entity configured"
            raise UpdateFailed(msg)

        state = self.hass.states.get(entity_id)
        if state is None or state.state in ("unknown", "unavailable"):
            msg = f"{label.capitalize()} sensor {entity_id} is unavailable"
            raise UpdateFailed(msg)

        value: float | None = None
        with contextlib.suppress(ValueError, TypeError):
            value = float(state.state)
        if value is None:
            msg = f"{label.capitalize()} sensor {entity_id} is not numeric: {state.state}"
            raise UpdateFailed(msg)
        return value

    def get_current_price(self) -> float:
        """Return the price override if set, else the price sensor value."""
        if self._price_override is not None:
            return self._price_override
        data = self.config_entry.data if self.config_entry else {}
        return self._read_float(data.get(CONF_PRICE_ENTITY), "price")

    def build_devices(self) -> tuple[Device, ...]:
        """Build engine devices from the device subentries."""
        if self.config_entry is None:
            return ()

        devices: list[Device] = []
        for subentry in self.config_entry.subentries.values():
            if subentry.subentry_type != SUBENTRY_DEVICE:
                continue
            data = subentry.data
            try:
                category = DeviceCategory(
                    data.get(CONF_CATEGORY, DeviceCategory.DISCRETIONARY)
                )
            except ValueError:
                _LOGGER.warning(
                    "Unknown category %r for %s, treating as discretionary",
                    data.get(CONF_CATEGORY),
                    subentry.title,
                )
                category = DeviceCategory.DISCRETIONARY
            devices.append(
                Device(
                    name=subentry.title,
                    priority=int(data.get(CONF_PRIORITY, DEFAULT_PRIORITY)),
                    category=category,
                    night_curtailed=bool(data.get(CONF_NIGHT_CURTAILED, False)),
                )
            )
        return tuple(devices)

    def build_schedules(self, now: datetime) -> tuple[DeviceSchedule, ...]:
        """Build today's schedule entries from the device subentries."""
        if self.config_entry is None:
            return ()

        schedules: list[DeviceSchedule] = []
        for subentry in self.config_entry.subentries.values():
            if subentry.subentry_type != SUBENTRY_DEVICE:
                continue
            schedule_time = parse_schedule_time(subentry.data.get(CONF_SCHEDULE_TIME))
            if schedule_time is None:
                continue
            schedules.append(
                DeviceSchedule(
                    device_name=subentry.title,
                    scheduled_time=scheduled_instant(schedule_time, now),
                )
            )
        return tuple(schedules)

    def build_snapshot(self, now: datetime) -> EnergySnapshot:
        """
        Build an engine snapshot from the config entry and sensor states.

        Raises UpdateFailed when a source sensor cannot be read and
        EnergyManagementError when the configuration is invalid.
        """
        if self.config_entry is None:
            msg = "No config entry available"
            raise UpdateFailed(msg)
        data = self.config_entry.data

        return EnergySnapshot(
            current_price=self.get_current_price(),
            price_threshold=float(data[CONF_PRICE_THRESHOLD]),
            devices=self.build_devices(),
            current_time=now,
            current_temperature=self._read_float(
                data.get(CONF_TEMPERATURE_SENSOR), "temperature"
            ),
            desired_temperature_range=(
                float(data[CONF_TEMPERATURE_MIN]),
                float(data[CONF_TEMPERATURE_MAX]),
            ),
            energy_usage_limit=float(data[CONF_ENERGY_USAGE_LIMIT]),
            total_energy_used_today=self._read_float(
                data.get(CONF_ENERGY_USAGE_ENTITY), "energy usage"
            ),
            scheduled_devices=self.build_schedules(now),
            night_window=(
                int(data.get(CONF_NIGHT_START, DEFAULT_NIGHT_START_HOUR)),
                int(data.get(CONF_NIGHT_END, DEFAULT_NIGHT_END_HOUR)),
            ),
        )

    async def _async_update_data(self) -> EnergyManagementResult | None:
        """Evaluate device decisions for the current minute."""
        self._async_start_minute_timer()
        self._async_start_state_listener()

        if not self._enabled:
            self.last_snapshot = None
            return None

        now = self._evaluation_time()
        try:
            snapshot = self.build_snapshot(now)
        except EnergyManagementError as err:
            msg = f"Invalid energy management input: {err}"
            raise UpdateFailed(msg) from err

        self.last_snapshot = snapshot
        return evaluate(snapshot)

    # ------------------------------------------------------------------
    # Runtime controls
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        """Return whether Smart Energy management is enabled."""
        return self._enabled

    async def async_set_enabled(self, *, enabled: bool) -> None:
        """Enable or disable Smart Energy management."""
        self._enabled = enabled
        _LOGGER.info(
            "Smart Energy management %s", "enabled" if enabled else "disabled"
        )
        await self.async_refresh()

    @property
    def price_override(self) -> float | None:
        """Return the current price override, or None if not set."""
        return self._price_override

    async def async_set_price_override(self, price: float) -> None:
        """Override the current energy price and re-evaluate."""
        self._price_override = price
        _LOGGER.info("Price override set to %s", price)
        await self.async_refresh()

    async def async_clear_price_override(self) -> None:
        """Clear the price override, reverting to the price sensor."""
        self._price_override = None
        _LOGGER.info("Price override cleared")
        await self.async_refresh()

    def get_device_status(self, name: str) -> bool | None:
        """Return the latest decision for a device, or None if unknown."""
        if self.data is None:
            return None
        return self.data.device_status.get(name)

    async def async_shutdown(self) -> None:
        """Shut down the coordinator and clean up listeners."""
        self._async_stop_minute_timer()
        self._async_stop_state_listener()
        await super().async_shutdown()
