"""Tests for streaming dump decoding."""

from __future__ import annotations

from datetime import UTC, datetime
from io import BytesIO
import struct
import warnings
import math
from pathlib import Path
from typing import Any

import numpy as np
import pytest

from dumpsight.data.decoder import DecoderConfig, decode_all, decode_dump, record_count
from dumpsight.data.errors import FormatError
from dumpsight.data.layouts import HEADER_SIZE, MDG_LAYOUT, MP_LAYOUT, DeviceLayout, FieldKind
from dumpsight.data.sources import DumpSource
from dumpsight.domain.models import SENSOR_FIELD_NAMES, DeviceType, TimestampProvenance


def _make_dump(layout: DeviceLayout, rows: list[dict[str, Any]], *, trailing: bytes = b"") -> bytes:
    raw = np.zeros(len(rows), dtype=layout.numpy_dtype())
    for index, row in enumerate(rows):
        for name, value in row.items():
            raw[name][index] = value
    return bytes(HEADER_SIZE) + raw.tobytes() + trailing


def _base_ms(year: int, month: int, day: int, hour: int, minute: int, second: int) -> int:
    return int(datetime(year, month, day, hour, minute, second, tzinfo=UTC).timestamp() * 1000)


def test_mdg_example_decodes_shock_and_timestamps() -> None:
    payload = _make_dump(MDG_LAYOUT, [{}, {"shock_z": 12.5}, {}])
    assert len(payload) == 256 + 128 * 3
    source = DumpSource.from_bytes(payload, filename="MDG_20250121_181938.bin")

    records, outcome = decode_all(source, DeviceType.MDG)

    base = _base_ms(2025, 1, 21, 18, 19, 38)
    assert len(records) == 3
    assert records[1].shock_z == pytest.approx(12.5)
    assert records[0].shock_z == 0.0
    assert [record.timestamp_ms for record in records] == [base, base + 2_000, base + 4_000]
    assert outcome.base_timestamp_ms == base
    assert outcome.timestamp_provenance == TimestampProvenance.FILENAME
    assert outcome.success


@pytest.mark.parametrize("trailing", [0, 1, 63])
def test_record_count_ignores_trailing_partial_record(trailing: int) -> None:
    payload = _make_dump(MP_LAYOUT, [{}] * 5, trailing=b"\x01" * trailing)
    source = DumpSource.from_bytes(payload, filename="MP_20250101_000000.bin")

    records, outcome = decode_all(source, "MP")

    assert len(records) == 5
    assert outcome.expected_records == 5
    assert outcome.trailing_bytes == trailing


def test_header_only_dump_yields_no_records() -> None:
    source = DumpSource.from_bytes(bytes(HEADER_SIZE), filename="MP_20250101_000000.bin")
    records, outcome = decode_all(source, DeviceType.MP)
    assert records == ()
    assert outcome.batches_emitted == 0
    assert outcome.success


def test_dump_shorter_than_header_raises_format_error() -> None:
    source = DumpSource.from_bytes(bytes(100), filename="MP_20250101_000000.bin")
    with pytest.raises(FormatError, match="smaller than the 256-byte header"):
        decode_all(source, DeviceType.MP)
    with pytest.raises(FormatError):
        record_count(255, 64)


def test_unknown_device_type_raises_format_error() -> None:
    source = DumpSource.from_bytes(bytes(HEADER_SIZE + 64), filename="XYZ.bin")
    with pytest.raises(FormatError, match="unrecognized device type"):
        decode_all(source, "XYZ")


def test_out_of_range_and_non_finite_values_become_none() -> None:
    rows = [
        {
            "temperature_f": 200.0,
            "battery_voltage": float("nan"),
            "reset": 5,
            "flow_status": 0,
            "motor_avg": float("inf"),
            "max_x": -150.0,
        }
    ]
    source = DumpSource.from_bytes(_make_dump(MP_LAYOUT, rows), filename="MP_20250101_000000.bin")

    (record,), _ = decode_all(source, DeviceType.MP)

    assert record.temperature_f is None
    assert record.battery_voltage is None
    assert record.reset is None
    assert record.motor_avg is None
    assert record.max_x is None
    assert record.flow_status == "Off"


def test_mp_fields_are_converted_and_typed() -> None:
    rows = [{"temperature_f": 25.0, "battery_voltage": 12.0, "reset": 1, "flow_status": 1, "motor_max": 1.5}]
    source = DumpSource.from_bytes(_make_dump(MP_LAYOUT, rows), filename="MP_20250101_000000.bin")

    (record,), _ = decode_all(source, DeviceType.MP)

    assert record.temperature_f == pytest.approx(77.0)
    assert record.battery_voltage == pytest.approx(12.0)
    assert record.reset == 1 and isinstance(record.reset, int)
    assert record.flow_status == "On"
    assert record.motor_max == pytest.approx(1.5)
    assert record.shock_z is None
    assert record.gamma is None


def test_mdg_records_leave_mp_and_uncarried_survey_fields_empty() -> None:
    rows = [{"gamma": 30, "survey_inc": 12.0, "shock_count_axial_50": 4}]
    source = DumpSource.from_bytes(_make_dump(MDG_LAYOUT, rows), filename="MDG_20250101_000000.bin")

    (record,), _ = decode_all(source, DeviceType.MDG)

    assert record.gamma == 30
    assert record.shock_count_axial_50 == 4
    assert record.survey_inc == pytest.approx(12.0)
    assert record.temperature_f is None
    assert record.flow_status is None
    assert record.survey_dip_a is None
    assert record.survey_cinc is None
    assert record.survey_cazm is None


def test_mp_timestamps_advance_by_one_second() -> None:
    source = DumpSource.from_bytes(_make_dump(MP_LAYOUT, [{}] * 2_500), filename="MP_20240229-235959.bin")

    records, outcome = decode_all(source, DeviceType.MP, config=DecoderConfig(batch_size=1_000))

    deltas = {b.timestamp_ms - a.timestamp_ms for a, b in zip(records, records[1:])}
    assert deltas == {1_000}
    assert outcome.batches_emitted == 3


def test_batches_are_ordered_and_immutable() -> None:
    source = DumpSource.from_bytes(_make_dump(MP_LAYOUT, [{}] * 7), filename="MP_20250101_000000.bin")
    seen: list[tuple[int, int]] = []

    def _on_batch(batch: tuple, batch_index: int) -> bool:
        assert isinstance(batch, tuple)
        seen.append((batch_index, len(batch)))
        return True

    outcome = decode_dump(source, DeviceType.MP, _on_batch, config=DecoderConfig(batch_size=3))

    assert seen == [(0, 3), (1, 3), (2, 1)]
    assert outcome.records_emitted == 7


def test_callback_returning_false_cancels_at_batch_boundary() -> None:
    source = DumpSource.from_bytes(_make_dump(MP_LAYOUT, [{}] * 10), filename="MP_20250101_000000.bin")
    batches: list[int] = []

    def _stop_after_first(batch: tuple, batch_index: int) -> bool:
        batches.append(len(batch))
        return False

    outcome = decode_dump(source, DeviceType.MP, _stop_after_first, config=DecoderConfig(batch_size=3))

    assert batches == [3]
    assert outcome.cancelled
    assert not outcome.success
    assert outcome.records_emitted == 3
    assert outcome.expected_records == 10


def test_max_buffer_bytes_shrinks_batches() -> None:
    source = DumpSource.from_bytes(_make_dump(MP_LAYOUT, [{}] * 5), filename="MP_20250101_000000.bin")
    sizes: list[int] = []

    def _record_size(batch: tuple, batch_index: int) -> bool:
        sizes.append(len(batch))
        return True

    config = DecoderConfig(batch_size=1_000, max_buffer_bytes=2 * MP_LAYOUT.record_size)
    decode_dump(source, DeviceType.MP, _record_size, config=config)

    assert sizes == [2, 2, 1]


def test_decoder_config_validation() -> None:
    with pytest.raises(ValueError, match="batch_size must be > 0"):
        DecoderConfig(batch_size=0)
    with pytest.raises(ValueError, match="max_buffer_bytes must be > 0"):
        DecoderConfig(max_buffer_bytes=0)
    with pytest.raises(ValueError, match="cannot hold one"):
        DecoderConfig(max_buffer_bytes=10).records_per_batch(64)


def test_missing_filename_timestamp_falls_back_to_clock() -> None:
    source = DumpSource.from_bytes(_make_dump(MP_LAYOUT, [{}, {}]), filename="MP_dump.bin")

    records, outcome = decode_all(source, DeviceType.MP, clock=lambda: 1_700_000_000.0)

    assert outcome.timestamp_provenance == TimestampProvenance.WALL_CLOCK
    assert outcome.base_timestamp_ms == 1_700_000_000_000
    assert records[1].timestamp_ms == 1_700_000_001_000


def test_short_stream_is_reported_as_truncated() -> None:
    payload = _make_dump(MP_LAYOUT, [{}] * 2)
    source = DumpSource(
        filename="MP_20250101_000000.bin",
        size=HEADER_SIZE + 4 * MP_LAYOUT.record_size,
        opener=lambda: BytesIO(payload),
    )

    records, outcome = decode_all(source, DeviceType.MP)

    assert len(records) == 2
    assert outcome.truncated
    assert not outcome.success


def test_decode_from_path(tmp_path: Path) -> None:
    path = tmp_path / "MP_20250101_120000.bin"
    path.write_bytes(_make_dump(MP_LAYOUT, [{"battery_voltage": 13.0}] * 4))

    records, outcome = decode_all(DumpSource.from_path(path), DeviceType.MP)

    assert outcome.filename == path.name
    assert all(math.isclose(record.battery_voltage, 13.0) for record in records)


def test_missing_path_raises_os_error(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        DumpSource.from_path(tmp_path / "missing.bin")
    with pytest.raises(IsADirectoryError):
        DumpSource.from_path(tmp_path)


def test_signalling_nan_becomes_none_under_strict_float_errors() -> None:
    payload = bytearray(_make_dump(MP_LAYOUT, [{"battery_voltage": 12.0, "motor_avg": 1.0}]))
    struct.pack_into("<I", payload, HEADER_SIZE + 8, 0x7F800001)
    source = DumpSource.from_bytes(bytes(payload), filename="MP_20250101_000000.bin")

    with np.errstate(all="raise"), warnings.catch_warnings():
        warnings.simplefilter("error")
        (record,), outcome = decode_all(source, DeviceType.MP)

    assert record.battery_voltage is None
    assert record.motor_avg == pytest.approx(1.0)
    assert outcome.success


@pytest.mark.parametrize(("layout", "prefix"), [(MP_LAYOUT, "MP"), (MDG_LAYOUT, "MDG")])
def test_random_bytes_never_decode_outside_documented_ranges(layout: DeviceLayout, prefix: str) -> None:
    count = 2_000
    rng = np.random.default_rng(20250121)
    body = rng.integers(0, 256, size=count * layout.record_size, dtype=np.uint8).tobytes()
    source = DumpSource.from_bytes(bytes(HEADER_SIZE) + body, filename=f"{prefix}_20250121_181938.bin")

    records, outcome = decode_all(source, layout.device_type)

    assert len(records) == count
    assert outcome.success
    uncarried = SENSOR_FIELD_NAMES - layout.field_names
    for record in records:
        for spec in layout.fields:
            value = getattr(record, spec.name)
            if value is None:
                continue
            if spec.kind == FieldKind.FLOW:
                assert value in {"On", "Off"}
            else:
                assert spec.min_value <= value <= spec.max_value, (spec.name, value)
        assert all(getattr(record, name) is None for name in uncarried)


@pytest.mark.parametrize(
    ("field_name", "value"),
    [
        ("shock_x", 600.0),
        ("shock_z", -501.0),
        ("accel_ay", -60.0),
        ("rot_rpm_max", 6_000.0),
        ("rot_rpm_min", -1.0),
        ("v5vd", 12.0),
        ("v1_8va", -0.5),
        ("v_batt", 51.0),
        ("i_batt", 25.0),
        ("gamma", 6_000),
        ("accel_stab_zh", 150.0),
        ("survey_azm", 400.0),
    ],
)
def test_mdg_out_of_range_fields_become_none(field_name: str, value: float) -> None:
    rows = [{field_name: value, "v3_3vd": 3.3}]
    source = DumpSource.from_bytes(_make_dump(MDG_LAYOUT, rows), filename="MDG_20250101_000000.bin")

    (record,), _ = decode_all(source, DeviceType.MDG)

    assert getattr(record, field_name) is None
    assert record.v3_3vd == pytest.approx(3.3)
