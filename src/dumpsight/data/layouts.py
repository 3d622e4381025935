"""Field offset tables for MP and MDG dump records."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

import numpy as np

from dumpsight.data.errors import FormatError
from dumpsight.domain.models import SENSOR_FIELD_NAMES, DeviceType

HEADER_SIZE = 256


class FieldKind(StrEnum):
    """How a decoded primitive maps onto a record attribute."""

    FLOAT = "float"
    COUNT = "count"
    FLOW = "flow"


class UnitConversion(StrEnum):
    """Conversion applied before range validation."""

    NONE = "none"
    CELSIUS_TO_FAHRENHEIT = "celsius_to_fahrenheit"


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One field: byte offset, little-endian primitive and valid range (output units)."""

    name: str
    offset: int
    dtype: str
    min_value: float
    max_value: float
    kind: FieldKind = FieldKind.FLOAT
    conversion: UnitConversion = UnitConversion.NONE

    def __post_init__(self) -> None:
        if self.name not in SENSOR_FIELD_NAMES:
            raise ValueError(f"unknown telemetry field: {self.name}")
        if self.offset < 0:
            raise ValueError("offset must be >= 0")
        if self.dtype not in _PRIMITIVE_SIZES:
            raise ValueError(f"unsupported primitive dtype: {self.dtype}")
        if self.min_value > self.max_value:
            raise ValueError("min_value cannot be greater than max_value")

    @property
    def size(self) -> int:
        return _PRIMITIVE_SIZES[self.dtype]


@dataclass(frozen=True, slots=True)
class DeviceLayout:
    """Fixed record layout and sampling interval for one device type."""

    device_type: DeviceType
    record_size: int
    interval_ms: int
    fields: tuple[FieldSpec, ...]

    def __post_init__(self) -> None:
        if self.record_size <= 0:
            raise ValueError("record_size must be > 0")
        if self.interval_ms <= 0:
            raise ValueError("interval_ms must be > 0")
        names = [spec.name for spec in self.fields]
        if len(names) != len(set(names)):
            raise ValueError("field names must be unique within a layout")
        occupied: set[int] = set()
        for spec in self.fields:
            span = set(range(spec.offset, spec.offset + spec.size))
            if spec.offset + spec.size > self.record_size:
                raise ValueError(f"field {spec.name} extends past record_size={self.record_size}")
            if occupied & span:
                raise ValueError(f"field {spec.name} overlaps another field")
            occupied |= span

    @property
    def field_names(self) -> frozenset[str]:
        return frozenset(spec.name for spec in self.fields)

    def numpy_dtype(self) -> np.dtype:
        """Structured dtype that views one raw record in place."""
        return np.dtype(
            {
                "names": [spec.name for spec in self.fields],
                "formats": [spec.dtype for spec in self.fields],
                "offsets": [spec.offset for spec in self.fields],
                "itemsize": self.record_size,
            }
        )


_PRIMITIVE_SIZES: dict[str, int] = {"<f4": 4, "u1": 1, "<u2": 2}

_F32 = "<f4"
_U8 = "u1"
_U16 = "<u2"


MP_LAYOUT = DeviceLayout(
    device_type=DeviceType.MP,
    record_size=64,
    interval_ms=1_000,
    fields=(
        FieldSpec(
            "temperature_f",
            0,
            _F32,
            -40.0,
            350.0,
            conversion=UnitConversion.CELSIUS_TO_FAHRENHEIT,
        ),
        FieldSpec("reset", 4, _U8, 0, 1, kind=FieldKind.COUNT),
        FieldSpec("flow_status", 5, _U8, 0, 1, kind=FieldKind.FLOW),
        FieldSpec("battery_voltage", 8, _F32, 0.0, 50.0),
        FieldSpec("battery_current", 12, _F32, 0.0, 20.0),
        FieldSpec("max_x", 16, _F32, -100.0, 100.0),
        FieldSpec("max_y", 20, _F32, -100.0, 100.0),
        FieldSpec("max_z", 24, _F32, -100.0, 100.0),
        FieldSpec("threshold", 28, _F32, 0.0, 100.0),
        FieldSpec("motor_min", 32, _F32, 0.0, 20.0),
        FieldSpec("motor_avg", 36, _F32, 0.0, 20.0),
        FieldSpec("motor_max", 40, _F32, 0.0, 20.0),
        FieldSpec("motor_hall", 44, _F32, 0.0, 10_000.0),
        FieldSpec("actuation_time", 48, _F32, 0.0, 60.0),
        FieldSpec("rot_rpm_max", 52, _F32, 0.0, 5_000.0),
        FieldSpec("rot_rpm_avg", 56, _F32, 0.0, 5_000.0),
        FieldSpec("rot_rpm_min", 60, _F32, 0.0, 5_000.0),
    ),
)

MDG_LAYOUT = DeviceLayout(
    device_type=DeviceType.MDG,
    record_size=128,
    interval_ms=2_000,
    fields=(
        FieldSpec("accel_ax", 0, _F32, -50.0, 50.0),
        FieldSpec("accel_ay", 4, _F32, -50.0, 50.0),
        FieldSpec("accel_az", 8, _F32, -50.0, 50.0),
        FieldSpec("shock_z", 12, _F32, -500.0, 500.0),
        FieldSpec("shock_x", 16, _F32, -500.0, 500.0),
        FieldSpec("shock_y", 20, _F32, -500.0, 500.0),
        FieldSpec("shock_count_axial_50", 24, _U16, 0, 65_535, kind=FieldKind.COUNT),
        FieldSpec("shock_count_axial_100", 26, _U16, 0, 65_535, kind=FieldKind.COUNT),
        FieldSpec("shock_count_lateral_50", 28, _U16, 0, 65_535, kind=FieldKind.COUNT),
        FieldSpec("shock_count_lateral_100", 30, _U16, 0, 65_535, kind=FieldKind.COUNT),
        FieldSpec("rot_rpm_max", 32, _F32, 0.0, 5_000.0),
        FieldSpec("rot_rpm_avg", 36, _F32, 0.0, 5_000.0),
        FieldSpec("rot_rpm_min", 40, _F32, 0.0, 5_000.0),
        FieldSpec("v3_3va_di", 44, _F32, 0.0, 10.0),
        FieldSpec("v5vd", 48, _F32, 0.0, 10.0),
        FieldSpec("v3_3vd", 52, _F32, 0.0, 10.0),
        FieldSpec("v1_9vd", 56, _F32, 0.0, 10.0),
        FieldSpec("v1_5vd", 60, _F32, 0.0, 10.0),
        FieldSpec("v1_8va", 64, _F32, 0.0, 10.0),
        FieldSpec("v3_3va", 68, _F32, 0.0, 10.0),
        FieldSpec("v_batt", 72, _F32, 0.0, 50.0),
        FieldSpec("i5vd", 76, _F32, 0.0, 10.0),
        FieldSpec("i3_3vd", 80, _F32, 0.0, 10.0),
        FieldSpec("i_batt", 84, _F32, 0.0, 20.0),
        FieldSpec("gamma", 88, _U16, 0, 5_000, kind=FieldKind.COUNT),
        FieldSpec("accel_stab_x", 92, _F32, -100.0, 100.0),
        FieldSpec("accel_stab_y", 96, _F32, -100.0, 100.0),
        FieldSpec("accel_stab_z", 100, _F32, -100.0, 100.0),
        FieldSpec("accel_stab_zh", 104, _F32, -100.0, 100.0),
        FieldSpec("survey_tgf", 108, _F32, 0.0, 5.0),
        FieldSpec("survey_tmf", 112, _F32, 0.0, 200.0),
        FieldSpec("survey_inc", 116, _F32, 0.0, 180.0),
        FieldSpec("survey_azm", 120, _F32, 0.0, 360.0),
    ),
)

_LAYOUTS: dict[DeviceType, DeviceLayout] = {
    DeviceType.MP: MP_LAYOUT,
    DeviceType.MDG: MDG_LAYOUT,
}


def layout_for(device_type: DeviceType | str) -> DeviceLayout:
    """Return the record layout for a device type tag."""
    try:
        resolved = DeviceType(device_type)
    except ValueError as exc:
        raise FormatError(f"unrecognized device type: {device_type!r}") from exc
    return _LAYOUTS[resolved]


def device_types_carrying(field_name: str) -> frozenset[DeviceType]:
    """Device types whose layout decodes `field_name`."""
    return frozenset(
        layout.device_type for layout in _LAYOUTS.values() if field_name in layout.field_names
    )
