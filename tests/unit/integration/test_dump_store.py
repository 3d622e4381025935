"""Tests for the in-memory dump store."""

from __future__ import annotations

import pytest

from dumpsight.domain.models import AnalysisResult, DeviceType, TelemetryRecord
from dumpsight.integration.collaborators import DumpStatus, InMemoryDumpStore


def _make_records(count: int) -> list[TelemetryRecord]:
    return [TelemetryRecord(timestamp_ms=index, device_type=DeviceType.MP) for index in range(count)]


def test_jobs_get_sequential_ids_and_start_pending() -> None:
    store = InMemoryDumpStore(clock=lambda: 2.0)
    first = store.create_dump("MP_a.bin", DeviceType.MP)
    second = store.create_dump("MDG_b.bin", None)

    assert (first.dump_id, second.dump_id) == (1, 2)
    assert first.status == DumpStatus.PENDING
    assert first.uploaded_at_ms == 2_000
    assert [job.filename for job in store.list_dumps()] == ["MP_a.bin", "MDG_b.bin"]


def test_status_transitions_record_processing_time() -> None:
    now = [1.0]
    store = InMemoryDumpStore(clock=lambda: now[0])
    job = store.create_dump("MP_a.bin", DeviceType.MP)

    processing = store.update_status(job.dump_id, DumpStatus.PROCESSING)
    now[0] = 5.0
    failed = store.update_status(job.dump_id, DumpStatus.ERROR, "boom")

    assert processing.processed_at_ms is None
    assert failed.processed_at_ms == 5_000
    assert failed.error_message == "boom"


def test_batches_accumulate_and_fetch_respects_limit() -> None:
    store = InMemoryDumpStore()
    job = store.create_dump("MP_a.bin", DeviceType.MP)
    store.persist_batch(job.dump_id, _make_records(3))
    store.persist_batch(job.dump_id, _make_records(2))

    assert store.record_count(job.dump_id) == 5
    assert [record.timestamp_ms for record in store.fetch_all(job.dump_id)] == [0, 1, 2, 0, 1]
    assert len(store.fetch_all(job.dump_id, limit=2)) == 2
    assert store.fetch_all(99) == ()
    with pytest.raises(ValueError, match="limit must be >= 0"):
        store.fetch_all(job.dump_id, limit=-1)


def test_unknown_dump_ids_raise_key_error() -> None:
    store = InMemoryDumpStore()
    with pytest.raises(KeyError, match="unknown dump_id"):
        store.persist_batch(7, _make_records(1))
    with pytest.raises(KeyError):
        store.update_status(7, DumpStatus.PROCESSING)
    with pytest.raises(KeyError):
        store.persist_analysis(7, AnalysisResult())


def test_clear_drops_everything() -> None:
    store = InMemoryDumpStore()
    job = store.create_dump("MP_a.bin", DeviceType.MP)
    store.persist_batch(job.dump_id, _make_records(1))
    store.persist_analysis(job.dump_id, AnalysisResult())

    store.clear()

    assert store.list_dumps() == ()
    assert store.fetch_all(job.dump_id) == ()
    assert store.get_analysis(job.dump_id) is None
