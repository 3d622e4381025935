"""Core domain models for DumpSight."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import IntEnum, StrEnum


class DeviceType(StrEnum):
    """Downhole tool device classes with distinct dump layouts."""

    MP = "MP"
    MDG = "MDG"


class IssueSeverity(IntEnum):
    """Ordered severity of one detected issue."""

    INFO = 0
    WARNING = 1
    CRITICAL = 2

    @property
    def label(self) -> str:
        return self.name.lower()


class OverallStatus(StrEnum):
    """Dump-level health verdict."""

    OPERATIONAL = "operational"
    WARNING = "warning"
    CRITICAL = "critical"


class TimestampProvenance(StrEnum):
    """Where a decoded stream's base timestamp came from."""

    FILENAME = "filename"
    WALL_CLOCK = "wall_clock"


class ValueProvenance(StrEnum):
    """Where one device header value came from."""

    HEADER = "header"
    FILENAME = "filename"
    DERIVED = "derived"


@dataclass(frozen=True, slots=True)
class TelemetryRecord:
    """One decoded sample.

    Every field exists on every record. Fields the device type does not carry,
    and values that failed range validation, are `None`.
    """

    timestamp_ms: int
    device_type: DeviceType

    # MP
    temperature_f: float | None = None
    reset: int | None = None
    battery_voltage: float | None = None
    battery_current: float | None = None
    flow_status: str | None = None
    max_x: float | None = None
    max_y: float | None = None
    max_z: float | None = None
    threshold: float | None = None
    motor_min: float | None = None
    motor_avg: float | None = None
    motor_max: float | None = None
    motor_hall: float | None = None
    actuation_time: float | None = None

    # MDG
    accel_ax: float | None = None
    accel_ay: float | None = None
    accel_az: float | None = None
    shock_x: float | None = None
    shock_y: float | None = None
    shock_z: float | None = None
    shock_count_axial_50: int | None = None
    shock_count_axial_100: int | None = None
    shock_count_lateral_50: int | None = None
    shock_count_lateral_100: int | None = None

    # shared
    rot_rpm_max: float | None = None
    rot_rpm_avg: float | None = None
    rot_rpm_min: float | None = None

    v3_3va_di: float | None = None
    v5vd: float | None = None
    v3_3vd: float | None = None
    v1_9vd: float | None = None
    v1_5vd: float | None = None
    v1_8va: float | None = None
    v3_3va: float | None = None
    v_batt: float | None = None
    i5vd: float | None = None
    i3_3vd: float | None = None
    i_batt: float | None = None
    gamma: int | None = None
    accel_stab_x: float | None = None
    accel_stab_y: float | None = None
    accel_stab_z: float | None = None
    accel_stab_zh: float | None = None
    survey_tgf: float | None = None
    survey_tmf: float | None = None
    survey_dip_a: float | None = None
    survey_inc: float | None = None
    survey_cinc: float | None = None
    survey_azm: float | None = None
    survey_cazm: float | None = None

    def value(self, name: str) -> float | int | str | None:
        """Return one sensor field by name."""
        if name not in SENSOR_FIELD_NAMES:
            raise KeyError(f"unknown telemetry field: {name}")
        return getattr(self, name)


SENSOR_FIELD_NAMES: frozenset[str] = frozenset(
    item.name for item in fields(TelemetryRecord) if item.name not in {"timestamp_ms", "device_type"}
)


@dataclass(frozen=True, slots=True)
class HeaderValue:
    """One device header value tagged with how it was obtained."""

    value: float | int | str
    provenance: ValueProvenance
    detail: str = ""

    @property
    def is_measured(self) -> bool:
        """Whether the value was read from a known header offset."""
        return self.provenance == ValueProvenance.HEADER


@dataclass(frozen=True, slots=True)
class DeviceInfo:
    """Device identity and operational counters for one dump."""

    device_type: DeviceType
    filename: str
    timestamp_provenance: TimestampProvenance
    mp_serial_number: HeaderValue | None = None
    mp_firmware_version: HeaderValue | None = None
    mdg_serial_number: HeaderValue | None = None
    mdg_firmware_version: HeaderValue | None = None
    max_temp_celsius: HeaderValue | None = None
    max_temp_fahrenheit: HeaderValue | None = None
    avg_temp_celsius: HeaderValue | None = None
    avg_temp_fahrenheit: HeaderValue | None = None
    circulation_hours: HeaderValue | None = None
    number_of_pulses: HeaderValue | None = None
    motor_on_time_minutes: HeaderValue | None = None
    comm_errors_time_minutes: HeaderValue | None = None
    comm_errors_percent: HeaderValue | None = None
    hall_status_time_minutes: HeaderValue | None = None
    hall_status_percent: HeaderValue | None = None
    mdg_edt_total_hours: HeaderValue | None = None
    mdg_extreme_shock_index: HeaderValue | None = None


@dataclass(frozen=True, slots=True)
class Issue:
    """One detected anomaly class with bounded occurrence timestamps."""

    code: str
    label: str
    explanation: str
    severity: IssueSeverity
    count: int
    first_time_ms: int | None = None
    last_time_ms: int | None = None
    times_ms: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ValueError("count must be >= 0")


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """Ordered issues plus the status derived from them."""

    issues: tuple[Issue, ...] = field(default_factory=tuple)

    @property
    def critical_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == IssueSeverity.CRITICAL)

    @property
    def warning_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == IssueSeverity.WARNING)

    @property
    def overall_status(self) -> OverallStatus:
        """Critical if any critical issue, else warning if any warning, else operational."""
        if self.critical_count > 0:
            return OverallStatus.CRITICAL
        if self.warning_count > 0:
            return OverallStatus.WARNING
        return OverallStatus.OPERATIONAL

    def issues_with_code(self, code: str) -> tuple[Issue, ...]:
        """Return issues emitted under one detector code."""
        return tuple(issue for issue in self.issues if issue.code == code)
