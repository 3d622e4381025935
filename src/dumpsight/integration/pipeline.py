"""End-to-end processing of one dump: header, streamed records, analysis."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Sequence

from dumpsight.data.decoder import DecodeOutcome, DecoderConfig, decode_dump, record_count
from dumpsight.data.errors import FormatError
from dumpsight.data.header import extract_device_info
from dumpsight.data.layouts import layout_for
from dumpsight.data.sources import DumpSource
from dumpsight.domain.models import AnalysisResult, DeviceInfo, DeviceType, TelemetryRecord
from dumpsight.health.contracts import AnalysisConfig
from dumpsight.health.engine import analyze
from dumpsight.integration.collaborators import DumpStatus, DumpStore

logger = logging.getLogger(__name__)


class IncompleteDecodeError(RuntimeError):
    """Decoding stopped before every record of the dump was persisted."""


@dataclass(frozen=True, slots=True)
class DumpProcessingReport:
    """Everything produced by one successful processing job."""

    dump_id: int
    device_info: DeviceInfo
    outcome: DecodeOutcome
    analysis: AnalysisResult
    records: tuple[TelemetryRecord, ...]


def infer_device_type(filename: str) -> DeviceType:
    """Infer the device type from a filename; `MDG` is checked before `MP`, case-sensitively."""
    if "MDG" in filename:
        return DeviceType.MDG
    if "MP" in filename:
        return DeviceType.MP
    raise FormatError(f"cannot infer device type from filename: {filename!r}")


def process_dump(
    source: DumpSource,
    store: DumpStore,
    *,
    device_type: DeviceType | str | None = None,
    decoder_config: DecoderConfig | None = None,
    analysis_config: AnalysisConfig | None = None,
    clock: Callable[[], float] | None = None,
) -> DumpProcessingReport:
    """Register, decode, persist and analyze one dump.

    The job moves `pending -> processing -> completed`. Any failure marks the
    job `error` with the exception message and is re-raised unchanged.
    """
    requested = None if device_type is None else layout_for(device_type).device_type
    job = store.create_dump(source.filename, requested)
    logger.info("dump %d registered for %s", job.dump_id, source.filename)
    try:
        store.update_status(job.dump_id, DumpStatus.PROCESSING)
        resolved = requested if requested is not None else infer_device_type(source.filename)
        layout = layout_for(resolved)
        record_count(source.size, layout.record_size)

        info = extract_device_info(source.read_header(), source.filename, resolved)
        store.persist_device_info(job.dump_id, info)

        def _persist(batch: Sequence[TelemetryRecord], batch_index: int) -> bool:
            store.persist_batch(job.dump_id, batch)
            return True

        outcome = decode_dump(source, resolved, _persist, config=decoder_config, clock=clock)
        if not outcome.success:
            raise IncompleteDecodeError(
                f"{source.filename}: {outcome.records_emitted} of {outcome.expected_records} records decoded"
            )

        records = tuple(store.fetch_all(job.dump_id))
        analysis = analyze(records, analysis_config)
        store.persist_analysis(job.dump_id, analysis)
        store.update_status(job.dump_id, DumpStatus.COMPLETED)
    except Exception as exc:
        logger.error("dump %d (%s) failed: %s", job.dump_id, source.filename, exc)
        store.update_status(job.dump_id, DumpStatus.ERROR, str(exc))
        raise

    logger.info(
        "dump %d completed: %d records, status %s",
        job.dump_id,
        len(records),
        analysis.overall_status.value,
    )
    return DumpProcessingReport(
        dump_id=job.dump_id,
        device_info=info,
        outcome=outcome,
        analysis=analysis,
        records=records,
    )
