"""Streaming fixed-layout decoder for MP/MDG telemetry dumps."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import BinaryIO, Callable

import numpy as np
import numpy.typing as npt

from dumpsight.data.errors import FormatError
from dumpsight.data.layouts import (
    HEADER_SIZE,
    DeviceLayout,
    FieldKind,
    FieldSpec,
    UnitConversion,
    layout_for,
)
from dumpsight.data.sources import DumpSource
from dumpsight.data.timestamps import resolve_base_timestamp
from dumpsight.domain.models import DeviceType, TelemetryRecord, TimestampProvenance

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1_000

RecordBatch = tuple[TelemetryRecord, ...]
BatchCallback = Callable[[RecordBatch, int], bool]
"""Receives ownership of one batch; returning False stops decoding at the batch boundary."""


@dataclass(frozen=True, slots=True)
class DecoderConfig:
    """Batching and memory bounds for one decode run."""

    batch_size: int = DEFAULT_BATCH_SIZE
    max_buffer_bytes: int | None = None

    def __post_init__(self) -> None:
        if self.batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        if self.max_buffer_bytes is not None and self.max_buffer_bytes <= 0:
            raise ValueError("max_buffer_bytes must be > 0 when set")

    def records_per_batch(self, record_size: int) -> int:
        """Batch size after applying the soft buffer ceiling."""
        if self.max_buffer_bytes is None:
            return self.batch_size
        capacity = self.max_buffer_bytes // record_size
        if capacity <= 0:
            raise ValueError(
                f"max_buffer_bytes={self.max_buffer_bytes} cannot hold one {record_size}-byte record"
            )
        return min(self.batch_size, capacity)


@dataclass(frozen=True, slots=True)
class DecodeOutcome:
    """Terminal state of one decode run."""

    device_type: DeviceType
    filename: str
    base_timestamp_ms: int
    timestamp_provenance: TimestampProvenance
    expected_records: int
    records_emitted: int
    batches_emitted: int
    trailing_bytes: int
    cancelled: bool = False
    truncated: bool = False

    @property
    def success(self) -> bool:
        """True when every expected record was handed to the callback."""
        return not self.cancelled and not self.truncated


def record_count(file_size: int, record_size: int) -> int:
    """Number of whole records after the header; trailing partial bytes are ignored."""
    if file_size < HEADER_SIZE:
        raise FormatError(f"dump is {file_size} bytes, smaller than the {HEADER_SIZE}-byte header")
    return (file_size - HEADER_SIZE) // record_size


def decode_dump(
    source: DumpSource,
    device_type: DeviceType | str,
    on_batch: BatchCallback,
    *,
    config: DecoderConfig | None = None,
    clock: Callable[[], float] | None = None,
) -> DecodeOutcome:
    """Decode a dump in bounded batches, handing each batch to `on_batch` in order."""
    resolved_config = DecoderConfig() if config is None else config
    layout = layout_for(device_type)
    expected = record_count(source.size, layout.record_size)
    trailing = (source.size - HEADER_SIZE) % layout.record_size
    base_ms, provenance = resolve_base_timestamp(source.filename, clock=clock)
    if provenance == TimestampProvenance.WALL_CLOCK:
        logger.warning("no date/time in filename %s; using wall-clock base timestamp", source.filename)

    per_batch = resolved_config.records_per_batch(layout.record_size)
    logger.info(
        "decoding %s as %s: %d records in batches of %d (%d trailing bytes ignored)",
        source.filename,
        layout.device_type.value,
        expected,
        per_batch,
        trailing,
    )

    arena = _BatchArena(record_size=layout.record_size, capacity=per_batch)
    dtype = layout.numpy_dtype()
    emitted = 0
    batch_index = 0
    cancelled = False
    truncated = False

    with source.open() as stream:
        stream.seek(HEADER_SIZE)
        while emitted < expected:
            wanted = min(per_batch, expected - emitted)
            received = arena.fill(stream, wanted)
            if received == 0:
                truncated = True
                break

            raw = np.frombuffer(arena.buffer, dtype=dtype, count=received)
            batch = _build_records(
                raw,
                layout=layout,
                first_timestamp_ms=base_ms + emitted * layout.interval_ms,
            )
            del raw

            keep_going = on_batch(batch, batch_index)
            logger.debug("batch %d: %d records handed off", batch_index, len(batch))
            emitted += received
            batch_index += 1

            if received < wanted:
                truncated = True
                break
            if not keep_going:
                cancelled = True
                break

    if truncated:
        logger.warning(
            "%s ended early: %d of %d records readable", source.filename, emitted, expected
        )
    if cancelled:
        logger.info("decoding of %s cancelled after %d batches", source.filename, batch_index)

    return DecodeOutcome(
        device_type=layout.device_type,
        filename=source.filename,
        base_timestamp_ms=base_ms,
        timestamp_provenance=provenance,
        expected_records=expected,
        records_emitted=emitted,
        batches_emitted=batch_index,
        trailing_bytes=trailing,
        cancelled=cancelled,
        truncated=truncated,
    )


def decode_all(
    source: DumpSource,
    device_type: DeviceType | str,
    *,
    config: DecoderConfig | None = None,
    clock: Callable[[], float] | None = None,
) -> tuple[tuple[TelemetryRecord, ...], DecodeOutcome]:
    """Decode a whole dump into memory."""
    collected: list[TelemetryRecord] = []

    def _collect(batch: RecordBatch, _batch_index: int) -> bool:
        collected.extend(batch)
        return True

    outcome = decode_dump(source, device_type, _collect, config=config, clock=clock)
    return tuple(collected), outcome


class _BatchArena:
    """One read buffer reused for every batch; never exposed to callbacks."""

    def __init__(self, *, record_size: int, capacity: int) -> None:
        self._record_size = record_size
        self.buffer = bytearray(record_size * capacity)
        self._view = memoryview(self.buffer)

    def fill(self, stream: BinaryIO, records: int) -> int:
        """Read up to `records` whole records; returns how many were read."""
        target = records * self._record_size
        filled = 0
        while filled < target:
            chunk = stream.readinto(self._view[filled:target])
            if not chunk:
                break
            filled += chunk
        return filled // self._record_size


def _build_records(
    raw: np.ndarray,
    *,
    layout: DeviceLayout,
    first_timestamp_ms: int,
) -> RecordBatch:
    columns = {spec.name: _decode_column(raw[spec.name], spec) for spec in layout.fields}
    names = tuple(columns)
    rows = zip(*(columns[name] for name in names))
    return tuple(
        TelemetryRecord(
            timestamp_ms=first_timestamp_ms + offset * layout.interval_ms,
            device_type=layout.device_type,
            **dict(zip(names, row)),
        )
        for offset, row in enumerate(rows)
    )


def _decode_column(column: npt.NDArray[np.generic], spec: FieldSpec) -> list[float | int | str | None]:
    # Raw NaN/inf patterns, including signalling NaNs, must not trip a host-wide np.seterr.
    with np.errstate(invalid="ignore", over="ignore"):
        values = np.asarray(column, dtype=np.float64)
        if spec.conversion == UnitConversion.CELSIUS_TO_FAHRENHEIT:
            values = values * 9.0 / 5.0 + 32.0
        valid = np.isfinite(values) & (values >= spec.min_value) & (values <= spec.max_value)

    decoded: list[float | int | str | None] = []
    for value, ok in zip(values.tolist(), valid.tolist()):
        if not ok:
            decoded.append(None)
        elif spec.kind == FieldKind.COUNT:
            decoded.append(int(value))
        elif spec.kind == FieldKind.FLOW:
            decoded.append("On" if int(value) == 1 else "Off")
        else:
            decoded.append(float(value))
    return decoded
