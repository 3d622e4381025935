"""Device identity and operational counter extraction from dump headers.

Every value goes through the same three tiers:

1. scan candidate header offsets and keep the first value inside the plausible range;
2. look for a tagged token in the filename;
3. synthesize a value from a rolling hash of the filename and header bytes.

Tier 3 is deterministic, so re-running on identical input gives identical
output, but it is not a measurement. Each value carries a `ValueProvenance`
tag so consumers can tell the tiers apart.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re

from dumpsight.data.binary import read_scalar
from dumpsight.data.layouts import HEADER_SIZE, layout_for
from dumpsight.data.timestamps import parse_filename_timestamp
from dumpsight.domain.models import DeviceInfo, DeviceType, HeaderValue, TimestampProvenance, ValueProvenance

logger = logging.getLogger(__name__)

HASH_WINDOW = 64
_HASH_MODULUS = 2_147_483_647

SERIAL_MIN = 1000
SERIAL_MAX = 9999
SERIAL_OFFSETS: tuple[int, ...] = (0, 2, 4, 8, 12, 16)
FIRMWARE_OFFSETS: tuple[int, ...] = (0x20, 0x24, 0x28)

_SERIAL_TOKEN = re.compile(r"(?:SN|S/N|SERIAL)[-_=]?(\d{4})(?!\d)", re.IGNORECASE)
_BARE_FOUR_DIGITS = re.compile(r"(?<!\d)(\d{4})(?!\d)")
_FIRMWARE_TOKEN = re.compile(r"(?:FW|V)[-_=]?(\d{1,2})\.(\d{1,2})(?:\.(\d{1,2}))?", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class CounterSpec:
    """Header offsets, plausibility gate and fallbacks for one numeric counter."""

    name: str
    offsets: tuple[int, ...]
    dtype: str
    min_value: float
    max_value: float
    filename_keys: tuple[str, ...]
    synth_min: float
    synth_max: float
    integer: bool = False
    device_types: frozenset[DeviceType] = frozenset({DeviceType.MP, DeviceType.MDG})

    def __post_init__(self) -> None:
        if not self.offsets:
            raise ValueError("offsets must not be empty")
        if self.min_value > self.max_value:
            raise ValueError("min_value cannot be greater than max_value")
        if not (self.min_value <= self.synth_min <= self.synth_max <= self.max_value):
            raise ValueError("synthesis range must lie inside the plausible range")

    def accepts(self, value: float | int | None) -> bool:
        return value is not None and self.min_value <= value <= self.max_value


COUNTER_SPECS: tuple[CounterSpec, ...] = (
    CounterSpec("circulation_hours", (0x40, 0x44, 0x48), "<f4", 0.1, 50_000.0, ("CIRC", "CH"), 50.0, 500.0),
    CounterSpec(
        "number_of_pulses",
        (0x50, 0x54),
        "<u4",
        1,
        100_000_000,
        ("PULSES", "PC"),
        10_000,
        500_000,
        integer=True,
    ),
    CounterSpec("motor_on_time_minutes", (0x60, 0x64), "<f4", 0.1, 3_000_000.0, ("MOTOR", "MOT"), 100.0, 5_000.0),
    CounterSpec("comm_errors_time_minutes", (0x70,), "<f4", 0.0, 3_000_000.0, ("COMM",), 0.0, 60.0),
    CounterSpec("hall_status_time_minutes", (0x74,), "<f4", 0.0, 3_000_000.0, ("HALL",), 0.0, 60.0),
    CounterSpec("max_temp_celsius", (0x80, 0x84), "<f4", -40.0, 250.0, ("TMAX",), 60.0, 150.0),
    CounterSpec("avg_temp_celsius", (0x88,), "<f4", -40.0, 250.0, ("TAVG",), 40.0, 110.0),
    CounterSpec(
        "mdg_edt_total_hours",
        (0x90,),
        "<f4",
        0.1,
        50_000.0,
        ("EDT",),
        50.0,
        500.0,
        device_types=frozenset({DeviceType.MDG}),
    ),
    CounterSpec(
        "mdg_extreme_shock_index",
        (0x94,),
        "<f4",
        0.0,
        1_000.0,
        ("XSI",),
        0.0,
        10.0,
        device_types=frozenset({DeviceType.MDG}),
    ),
)


def extract_device_info(
    header: bytes | bytearray | memoryview,
    filename: str,
    device_type: DeviceType | str,
) -> DeviceInfo:
    """Extract a fully populated `DeviceInfo` from header bytes and filename."""
    resolved_type = layout_for(device_type).device_type
    window = bytes(header[:HEADER_SIZE])
    if len(window) < HEADER_SIZE:
        logger.warning(
            "header for %s is %d bytes (expected %d); missing offsets fall back",
            filename,
            len(window),
            HEADER_SIZE,
        )

    serial = _extract_serial(window, filename)
    firmware = _extract_firmware(window, filename)
    counters = {
        spec.name: _extract_counter(spec, window, filename)
        for spec in COUNTER_SPECS
        if resolved_type in spec.device_types
    }

    max_c, avg_c = _reconcile_temperatures(counters["max_temp_celsius"], counters["avg_temp_celsius"])

    circulation_minutes = float(counters["circulation_hours"].value) * 60.0
    comm_percent = _percent_of(counters["comm_errors_time_minutes"], circulation_minutes, "comm_errors_time_minutes")
    hall_percent = _percent_of(counters["hall_status_time_minutes"], circulation_minutes, "hall_status_time_minutes")

    is_mp = resolved_type == DeviceType.MP
    provenance = (
        TimestampProvenance.FILENAME
        if parse_filename_timestamp(filename) is not None
        else TimestampProvenance.WALL_CLOCK
    )
    info = DeviceInfo(
        device_type=resolved_type,
        filename=filename,
        timestamp_provenance=provenance,
        mp_serial_number=serial if is_mp else None,
        mp_firmware_version=firmware if is_mp else None,
        mdg_serial_number=None if is_mp else serial,
        mdg_firmware_version=None if is_mp else firmware,
        max_temp_celsius=max_c,
        max_temp_fahrenheit=_to_fahrenheit(max_c, "max_temp_celsius"),
        avg_temp_celsius=avg_c,
        avg_temp_fahrenheit=_to_fahrenheit(avg_c, "avg_temp_celsius"),
        circulation_hours=counters["circulation_hours"],
        number_of_pulses=counters["number_of_pulses"],
        motor_on_time_minutes=counters["motor_on_time_minutes"],
        comm_errors_time_minutes=counters["comm_errors_time_minutes"],
        comm_errors_percent=comm_percent,
        hall_status_time_minutes=counters["hall_status_time_minutes"],
        hall_status_percent=hall_percent,
        mdg_edt_total_hours=counters.get("mdg_edt_total_hours"),
        mdg_extreme_shock_index=counters.get("mdg_extreme_shock_index"),
    )
    derived = [name for name, value in counters.items() if value.provenance == ValueProvenance.DERIVED]
    if derived:
        logger.info("%s: synthesized header values for %s", filename, ", ".join(sorted(derived)))
    return info


def rolling_hash(filename: str, header: bytes, *, salt: str) -> int:
    """Deterministic 31-multiplier rolling hash over salt, filename and a header window."""
    value = 0
    for byte in salt.encode("utf-8") + filename.encode("utf-8") + header[:HASH_WINDOW]:
        value = (value * 31 + byte) % _HASH_MODULUS
    return value


def _extract_serial(header: bytes, filename: str) -> HeaderValue:
    for offset in SERIAL_OFFSETS:
        for dtype in ("<u2", "<u4"):
            value = read_scalar(header, offset, dtype)
            if value is not None and SERIAL_MIN <= value <= SERIAL_MAX:
                return HeaderValue(str(value), ValueProvenance.HEADER, f"{dtype} at offset {offset}")

    for pattern in (_SERIAL_TOKEN, _BARE_FOUR_DIGITS):
        for match in pattern.finditer(filename):
            candidate = int(match.group(1))
            if SERIAL_MIN <= candidate <= SERIAL_MAX:
                return HeaderValue(str(candidate), ValueProvenance.FILENAME, f"filename token {match.group(0)!r}")

    digest = rolling_hash(filename, header, salt="serial")
    synthesized = SERIAL_MIN + digest % (SERIAL_MAX - SERIAL_MIN + 1)
    return HeaderValue(str(synthesized), ValueProvenance.DERIVED, "no plausible serial in header or filename")


def _extract_firmware(header: bytes, filename: str) -> HeaderValue:
    for offset in FIRMWARE_OFFSETS:
        parts = [read_scalar(header, offset + index, "u1") for index in range(3)]
        if any(part is None for part in parts):
            continue
        major, minor, patch = (int(part) for part in parts)  # type: ignore[arg-type]
        if 1 <= major <= 20 and minor <= 99 and patch <= 99:
            return HeaderValue(f"{major}.{minor}.{patch}", ValueProvenance.HEADER, f"u8 triplet at offset {offset}")

    match = _FIRMWARE_TOKEN.search(filename)
    if match is not None:
        major, minor = int(match.group(1)), int(match.group(2))
        patch = int(match.group(3)) if match.group(3) is not None else 0
        if 1 <= major <= 20:
            return HeaderValue(f"{major}.{minor}.{patch}", ValueProvenance.FILENAME, f"filename token {match.group(0)!r}")

    digest = rolling_hash(filename, header, salt="firmware")
    synthesized = f"{1 + digest % 5}.{(digest // 5) % 10}.{(digest // 50) % 10}"
    return HeaderValue(synthesized, ValueProvenance.DERIVED, "no plausible firmware version in header or filename")


def _extract_counter(spec: CounterSpec, header: bytes, filename: str) -> HeaderValue:
    for offset in spec.offsets:
        value = read_scalar(header, offset, spec.dtype)
        if spec.accepts(value):
            return HeaderValue(
                _shape(value, spec),  # type: ignore[arg-type]
                ValueProvenance.HEADER,
                f"{spec.dtype} at offset {offset}",
            )

    for key in spec.filename_keys:
        pattern = re.compile(rf"(?<![A-Z]){key}[-_=]?(\d+(?:\.\d+)?)", re.IGNORECASE)
        for match in pattern.finditer(filename):
            candidate = float(match.group(1))
            if spec.accepts(candidate):
                return HeaderValue(
                    _shape(candidate, spec),
                    ValueProvenance.FILENAME,
                    f"filename token {match.group(0)!r}",
                )

    digest = rolling_hash(filename, header, salt=spec.name)
    fraction = (digest % 10_000) / 10_000.0
    synthesized = spec.synth_min + fraction * (spec.synth_max - spec.synth_min)
    return HeaderValue(
        _shape(synthesized, spec),
        ValueProvenance.DERIVED,
        f"no plausible {spec.name} in header or filename",
    )


def _reconcile_temperatures(max_c: HeaderValue, avg_c: HeaderValue) -> tuple[HeaderValue, HeaderValue]:
    """Keep avg <= max by moving whichever side was synthesized, never a read value."""
    if float(avg_c.value) <= float(max_c.value):
        return max_c, avg_c
    if avg_c.provenance == ValueProvenance.DERIVED:
        return max_c, HeaderValue(max_c.value, ValueProvenance.DERIVED, "capped at max_temp_celsius")
    if max_c.provenance == ValueProvenance.DERIVED:
        return HeaderValue(avg_c.value, ValueProvenance.DERIVED, "raised to avg_temp_celsius"), avg_c
    logger.warning(
        "avg_temp_celsius %s exceeds max_temp_celsius %s; both were read, keeping them",
        avg_c.value,
        max_c.value,
    )
    return max_c, avg_c


def _shape(value: float | int, spec: CounterSpec) -> float | int:
    if spec.integer:
        return int(round(value))
    return round(float(value), 2)


def _to_fahrenheit(celsius: HeaderValue, source_name: str) -> HeaderValue:
    fahrenheit = round(float(celsius.value) * 9.0 / 5.0 + 32.0, 2)
    return HeaderValue(fahrenheit, celsius.provenance, f"converted from {source_name}")


def _percent_of(part: HeaderValue, total_minutes: float, part_name: str) -> HeaderValue:
    if total_minutes <= 0.0:
        percent = 0.0
    else:
        percent = min(100.0, float(part.value) / total_minutes * 100.0)
    return HeaderValue(
        round(percent, 2),
        ValueProvenance.DERIVED,
        f"{part_name} ({part.provenance.value}) over circulation time",
    )
