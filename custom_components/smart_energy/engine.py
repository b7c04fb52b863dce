"""
Decision engine for Smart Energy device management.

Maps a single snapshot of price, temperature, usage and schedule inputs to
an on/off decision per device. The engine is pure: it performs no I/O and
keeps no state between calls, so identical snapshots always produce
identical results.

Evaluation runs as a fold of override layers over an all-off baseline:

1. Temperature regulation proposes heating/cooling states
2. Exact-time schedules switch devices on
3. Night mode forces night-curtailed devices off
4. Load shedding forces low-priority discretionary devices off
5. Critical devices are forced on, unconditionally, last
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from .const import (
    DEFAULT_NIGHT_END_HOUR,
    DEFAULT_NIGHT_START_HOUR,
    ESSENTIAL_PRIORITY,
)

_LOGGER = logging.getLogger(__name__)

_RANGE_BOUNDS = 2
_HOURS_PER_DAY = 24

REASON_DEFAULT = "Off by default"
REASON_HEATING = "Heating: temperature below range"
REASON_COOLING = "Cooling: temperature above range"
REASON_IN_RANGE = "Temperature within range"
REASON_SCHEDULED = "Scheduled on"
REASON_NIGHT = "Night mode"
REASON_SHED_LIMIT = "Shed: daily usage limit exceeded"
REASON_SHED_PRICE = "Shed: energy saving mode"
REASON_CRITICAL = "Critical device"


class EnergyManagementError(Exception):
    """Base exception for invalid engine input."""


class InvalidRangeError(EnergyManagementError):
    """The desired temperature range is malformed."""


class InvalidInputError(EnergyManagementError):
    """A numeric input or device definition is out of bounds."""


class DeviceCategory(StrEnum):
    """Role of a device in the decision rules."""

    HEATING = "heating"
    COOLING = "cooling"
    SECURITY = "security"
    ESSENTIAL = "essential"
    DISCRETIONARY = "discretionary"

    @property
    def is_thermal(self) -> bool:
        """Thermal devices follow temperature regulation and are never shed."""
        return self in (DeviceCategory.HEATING, DeviceCategory.COOLING)

    @property
    def is_critical(self) -> bool:
        """Critical devices are forced on regardless of every other stage."""
        return self in (DeviceCategory.SECURITY, DeviceCategory.ESSENTIAL)


# name -> (category, night_curtailed)
DEFAULT_VOCABULARY: dict[str, tuple[DeviceCategory, bool]] = {
    "Heating": (DeviceCategory.HEATING, True),
    "Cooling": (DeviceCategory.COOLING, False),
    "Security": (DeviceCategory.SECURITY, False),
    "Refrigerator": (DeviceCategory.ESSENTIAL, False),
    "Lights": (DeviceCategory.DISCRETIONARY, True),
    "Appliances": (DeviceCategory.DISCRETIONARY, True),
}


@dataclass(frozen=True)
class Device:
    """A controllable device with its priority and rule category."""

    name: str
    priority: int
    category: DeviceCategory = DeviceCategory.DISCRETIONARY
    night_curtailed: bool = False

    @classmethod
    def from_name(cls, name: str, priority: int) -> Device:
        """Classify a device by name using the default vocabulary."""
        category, night_curtailed = DEFAULT_VOCABULARY.get(
            name, (DeviceCategory.DISCRETIONARY, False)
        )
        return cls(
            name=name,
            priority=priority,
            category=category,
            night_curtailed=night_curtailed,
        )

    @property
    def sheddable(self) -> bool:
        """Whether load shedding may force this device off."""
        return (
            self.priority != ESSENTIAL_PRIORITY
            and not self.category.is_thermal
            and not self.category.is_critical
        )


@dataclass(frozen=True)
class DeviceSchedule:
    """Request to switch a device on at one exact instant."""

    device_name: str
    scheduled_time: datetime


@dataclass(frozen=True)
class EnergySnapshot:
    """
    All inputs for a single evaluation.

    Validated on construction; an invalid snapshot cannot exist.
    """

    current_price: float
    price_threshold: float
    devices: tuple[Device, ...]
    current_time: datetime
    current_temperature: float
    desired_temperature_range: tuple[float, float]
    energy_usage_limit: float
    total_energy_used_today: float
    scheduled_devices: tuple[DeviceSchedule, ...] = ()
    night_window: tuple[int, int] = (DEFAULT_NIGHT_START_HOUR, DEFAULT_NIGHT_END_HOUR)

    def __post_init__(self) -> None:
        """Validate inputs and normalise sequences to tuples."""
        object.__setattr__(self, "devices", tuple(self.devices))
        object.__setattr__(self, "scheduled_devices", tuple(self.scheduled_devices))
        object.__setattr__(
            self,
            "desired_temperature_range",
            validate_temperature_range(self.desired_temperature_range),
        )
        object.__setattr__(
            self, "night_window", _validate_night_window(self.night_window)
        )

        for label, value in (
            ("price_threshold", self.price_threshold),
            ("energy_usage_limit", self.energy_usage_limit),
            ("total_energy_used_today", self.total_energy_used_today),
        ):
            if value < 0:
                msg = f"{label} must not be negative, got {value}"
                raise InvalidInputError(msg)

        seen: set[str] = set()
        for device in self.devices:
            if device.name in seen:
                msg = f"Duplicate device name: {device.name}"
                raise InvalidInputError(msg)
            if device.priority < ESSENTIAL_PRIORITY:
                msg = f"Priority of {device.name} must be >= 1, got {device.priority}"
                raise InvalidInputError(msg)
            seen.add(device.name)

    @classmethod
    def from_priorities(  # noqa: PLR0913
        cls,
        current_price: float,
        price_threshold: float,
        device_priorities: Mapping[str, int],
        current_time: datetime,
        current_temperature: float,
        desired_temperature_range: Sequence[float],
        energy_usage_limit: float,
        total_energy_used_today: float,
        scheduled_devices: Iterable[DeviceSchedule] = (),
    ) -> EnergySnapshot:
        """Build a snapshot from a name -> priority mapping."""
        return cls(
            current_price=current_price,
            price_threshold=price_threshold,
            devices=tuple(
                Device.from_name(name, priority)
                for name, priority in device_priorities.items()
            ),
            current_time=current_time,
            current_temperature=current_temperature,
            desired_temperature_range=desired_temperature_range,  # type: ignore[arg-type]
            energy_usage_limit=energy_usage_limit,
            total_energy_used_today=total_energy_used_today,
            scheduled_devices=tuple(scheduled_devices),
        )

    @property
    def device_priorities(self) -> dict[str, int]:
        """Return the configured priority per device name."""
        return {device.name: device.priority for device in self.devices}


@dataclass(frozen=True)
class EnergyManagementResult:
    """Outcome of one evaluation."""

    device_status: dict[str, bool]
    energy_saving_mode: bool
    temperature_regulation_active: bool
    night_mode: bool = False
    reasons: dict[str, str] = field(default_factory=dict)

    @property
    def devices_on(self) -> list[str]:
        """Names of devices that should be on, in configuration order."""
        return [name for name, on in self.device_status.items() if on]


@dataclass(frozen=True)
class _Override:
    """A forced state produced by one stage."""

    state: bool
    reason: str


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def validate_temperature_range(value: Sequence[float]) -> tuple[float, float]:
    """Return the range as (min, max) or raise InvalidRangeError."""
    if isinstance(value, (str, bytes, Mapping)):
        msg = f"Temperature range must be a pair of numbers, got {value!r}"
        raise InvalidRangeError(msg)
    try:
        bounds = tuple(float(v) for v in value)
    except (TypeError, ValueError) as err:
        msg = f"Temperature range must be two numbers, got {value!r}"
        raise InvalidRangeError(msg) from err

    if len(bounds) != _RANGE_BOUNDS:
        msg = f"Temperature range must have exactly two bounds, got {len(bounds)}"
        raise InvalidRangeError(msg)

    low, high = bounds
    if low > high:
        msg = f"Temperature range minimum {low} exceeds maximum {high}"
        raise InvalidRangeError(msg)
    return low, high


def _validate_night_window(value: Sequence[int]) -> tuple[int, int]:
    """Return the night window as (start_hour, end_hour)."""
    if (
        isinstance(value, (str, bytes))
        or not isinstance(value, Sequence)
        or len(value) != _RANGE_BOUNDS
    ):
        msg = f"Night window must be (start_hour, end_hour), got {value!r}"
        raise InvalidInputError(msg)

    hours: list[int] = []
    for raw in value:
        try:
            hour = float(raw)
        except (TypeError, ValueError) as err:
            msg = f"Night window hour must be a number, got {raw!r}"
            raise InvalidInputError(msg) from err
        if not hour.is_integer():
            msg = f"Night window hour must be a whole hour, got {raw!r}"
            raise InvalidInputError(msg)
        if not 0 <= hour < _HOURS_PER_DAY:
            msg = f"Night window hour out of range: {raw!r}"
            raise InvalidInputError(msg)
        hours.append(int(hour))

    start, end = hours
    return start, end


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


def is_night(
    current_time: datetime,
    night_window: tuple[int, int] = (DEFAULT_NIGHT_START_HOUR, DEFAULT_NIGHT_END_HOUR),
) -> bool:
    """
    Check whether the hour of ``current_time`` falls in the night window.

    The window is half-open ``[start, end)`` on whole hours and may wrap
    around midnight. Minutes are ignored.
    """
    start, end = night_window
    hour = current_time.hour
    if start == end:
        return False
    if start > end:
        return hour >= start or hour < end
    return start <= hour < end


def detect_modes(
    current_price: float,
    price_threshold: float,
    current_time: datetime,
    night_window: tuple[int, int] = (DEFAULT_NIGHT_START_HOUR, DEFAULT_NIGHT_END_HOUR),
) -> tuple[bool, bool]:
    """Return ``(energy_saving_mode, night_mode)``."""
    return current_price > price_threshold, is_night(current_time, night_window)


def regulate_temperature(
    current_temperature: float,
    desired_range: Sequence[float],
    devices: Iterable[Device] = (),
) -> tuple[bool, bool, bool]:
    """
    Return ``(heating_on, cooling_on, active)``.

    ``active`` reports whether any thermal device exists, independent of
    whether the temperature is out of range.
    """
    low, high = validate_temperature_range(desired_range)
    heating_on = current_temperature < low
    cooling_on = current_temperature > high
    active = any(device.category.is_thermal for device in devices)
    return heating_on, cooling_on, active


def evaluate_schedule(scheduled_time: datetime, current_time: datetime) -> bool:
    """Return True when the schedule fires at exactly ``current_time``."""
    return scheduled_time == current_time


def _thermal_layer(
    devices: Sequence[Device], heating_on: bool, cooling_on: bool
) -> dict[str, _Override]:
    if heating_on:
        reason = REASON_HEATING
    elif cooling_on:
        reason = REASON_COOLING
    else:
        reason = REASON_IN_RANGE

    layer: dict[str, _Override] = {}
    for device in devices:
        if device.category == DeviceCategory.HEATING:
            layer[device.name] = _Override(heating_on, reason)
        elif device.category == DeviceCategory.COOLING:
            layer[device.name] = _Override(cooling_on, reason)
    return layer


def schedule_overrides(
    devices: Sequence[Device],
    schedules: Iterable[DeviceSchedule],
    current_time: datetime,
) -> dict[str, bool]:
    """
    Return ``{name: True}`` for configured devices scheduled right now.

    Schedules for unknown device names are ignored.
    """
    known = {device.name for device in devices}
    overrides: dict[str, bool] = {}
    for schedule in schedules:
        if schedule.device_name not in known:
            _LOGGER.debug(
                "Ignoring schedule for unknown device %s", schedule.device_name
            )
            continue
        if evaluate_schedule(schedule.scheduled_time, current_time):
            overrides[schedule.device_name] = True
    return overrides


def night_overrides(devices: Sequence[Device], night_mode: bool) -> dict[str, bool]:
    """Return ``{name: False}`` for night-curtailed devices during night mode."""
    if not night_mode:
        return {}
    return {device.name: False for device in devices if device.night_curtailed}


def shed_loads(
    devices: Sequence[Device],
    total_energy_used_today: float,
    energy_usage_limit: float,
    energy_saving_mode: bool,
) -> dict[str, bool]:
    """
    Return ``{name: False}`` for devices shed by usage limit or price.

    Shedding triggers when usage is strictly above the limit or energy
    saving mode is active. Priority-1, thermal and critical devices are
    never shed.
    """
    if not (total_energy_used_today > energy_usage_limit or energy_saving_mode):
        return {}
    return {device.name: False for device in devices if device.sheddable}


def critical_overrides(devices: Sequence[Device]) -> dict[str, bool]:
    """Return ``{name: True}`` for every critical device."""
    return {device.name: True for device in devices if device.category.is_critical}


def _as_layer(overrides: Mapping[str, bool], reason: str) -> dict[str, _Override]:
    return {name: _Override(state, reason) for name, state in overrides.items()}


def _fold(
    devices: Sequence[Device], layers: Iterable[Mapping[str, _Override]]
) -> tuple[dict[str, bool], dict[str, str]]:
    """Apply override layers in order over an all-off baseline."""
    status = {device.name: False for device in devices}
    reasons = dict.fromkeys(status, REASON_DEFAULT)
    for layer in layers:
        for name, override in layer.items():
            if name in status:
                status[name] = override.state
                reasons[name] = override.reason
    return status, reasons


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def evaluate(snapshot: EnergySnapshot) -> EnergyManagementResult:
    """Evaluate a validated snapshot and return the device decisions."""
    devices = snapshot.devices
    energy_saving_mode, night_mode = detect_modes(
        snapshot.current_price,
        snapshot.price_threshold,
        snapshot.current_time,
        snapshot.night_window,
    )
    heating_on, cooling_on, regulation_active = regulate_temperature(
        snapshot.current_temperature, snapshot.desired_temperature_range, devices
    )
    over_limit = snapshot.total_energy_used_today > snapshot.energy_usage_limit
    shed_reason = REASON_SHED_LIMIT if over_limit else REASON_SHED_PRICE

    status, reasons = _fold(
        devices,
        (
            _thermal_layer(devices, heating_on, cooling_on),
            _as_layer(
                schedule_overrides(
                    devices, snapshot.scheduled_devices, snapshot.current_time
                ),
                REASON_SCHEDULED,
            ),
            _as_layer(night_overrides(devices, night_mode), REASON_NIGHT),
            _as_layer(
                shed_loads(
                    devices,
                    snapshot.total_energy_used_today,
                    snapshot.energy_usage_limit,
                    energy_saving_mode,
                ),
                shed_reason,
            ),
            _as_layer(critical_overrides(devices), REASON_CRITICAL),
        ),
    )

    _LOGGER.debug(
        "Evaluated %d devices at %s: saving=%s night=%s on=%s",
        len(devices),
        snapshot.current_time.isoformat(),
        energy_saving_mode,
        night_mode,
        [name for name, on in status.items() if on],
    )

    return EnergyManagementResult(
        device_status=status,
        energy_saving_mode=energy_saving_mode,
        temperature_regulation_active=regulation_active,
        night_mode=night_mode,
        reasons=reasons,
    )


def manage_energy(  # noqa: PLR0913
    current_price: float,
    price_threshold: float,
    device_priorities: Mapping[str, int],
    current_time: datetime,
    current_temperature: float,
    desired_temperature_range: Sequence[float],
    energy_usage_limit: float,
    total_energy_used_today: float,
    scheduled_devices: Iterable[DeviceSchedule] = (),
) -> EnergyManagementResult:
    """
    Decide device states for a single point in time.

    Devices are classified by name with the default vocabulary. Raises
    InvalidRangeError or InvalidInputError for invalid input.
    """
    return evaluate(
        EnergySnapshot.from_priorities(
            current_price,
            price_threshold,
            device_priorities,
            current_time,
            current_temperature,
            desired_temperature_range,
            energy_usage_limit,
            total_energy_used_today,
            scheduled_devices,
        )
    )
