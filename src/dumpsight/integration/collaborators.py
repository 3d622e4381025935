"""Persistence collaborators for dump processing jobs."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum
import time
from typing import Callable, Protocol, Sequence

from dumpsight.domain.models import AnalysisResult, DeviceInfo, DeviceType, TelemetryRecord


class DumpStatus(StrEnum):
    """Lifecycle of one dump processing job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class DumpJob:
    """Registered dump and its processing state."""

    dump_id: int
    filename: str
    device_type: DeviceType | None
    status: DumpStatus
    uploaded_at_ms: int
    processed_at_ms: int | None = None
    error_message: str | None = None


class JobTracker(Protocol):
    def create_dump(self, filename: str, device_type: DeviceType | None) -> DumpJob: ...

    def update_status(self, dump_id: int, status: DumpStatus, error_message: str | None = None) -> DumpJob: ...


class RecordSink(Protocol):
    def persist_batch(self, dump_id: int, records: Sequence[TelemetryRecord]) -> None: ...


class RecordSource(Protocol):
    def fetch_all(self, dump_id: int) -> Sequence[TelemetryRecord]: ...


class ResultSink(Protocol):
    def persist_analysis(self, dump_id: int, result: AnalysisResult) -> None: ...


class DeviceInfoSink(Protocol):
    def persist_device_info(self, dump_id: int, info: DeviceInfo) -> None: ...


class DumpStore(JobTracker, RecordSink, RecordSource, ResultSink, DeviceInfoSink, Protocol):
    """Every collaborator a processing job needs, behind one object."""


class InMemoryDumpStore:
    """Process-local store implementing every collaborator protocol."""

    def __init__(self, *, clock: Callable[[], float] | None = None) -> None:
        self._clock = time.time if clock is None else clock
        self._next_id = 1
        self._jobs: dict[int, DumpJob] = {}
        self._records: dict[int, list[TelemetryRecord]] = {}
        self._analyses: dict[int, AnalysisResult] = {}
        self._device_info: dict[int, DeviceInfo] = {}

    def create_dump(self, filename: str, device_type: DeviceType | None) -> DumpJob:
        job = DumpJob(
            dump_id=self._next_id,
            filename=filename,
            device_type=device_type,
            status=DumpStatus.PENDING,
            uploaded_at_ms=self._now_ms(),
        )
        self._jobs[job.dump_id] = job
        self._next_id += 1
        return job

    def update_status(self, dump_id: int, status: DumpStatus, error_message: str | None = None) -> DumpJob:
        job = self.get_dump(dump_id)
        finished = status in {DumpStatus.COMPLETED, DumpStatus.ERROR}
        updated = replace(
            job,
            status=status,
            error_message=error_message,
            processed_at_ms=self._now_ms() if finished else job.processed_at_ms,
        )
        self._jobs[dump_id] = updated
        return updated

    def get_dump(self, dump_id: int) -> DumpJob:
        try:
            return self._jobs[dump_id]
        except KeyError as exc:
            raise KeyError(f"unknown dump_id: {dump_id}") from exc

    def list_dumps(self) -> tuple[DumpJob, ...]:
        return tuple(self._jobs[dump_id] for dump_id in sorted(self._jobs))

    def persist_batch(self, dump_id: int, records: Sequence[TelemetryRecord]) -> None:
        self.get_dump(dump_id)
        self._records.setdefault(dump_id, []).extend(records)

    def fetch_all(self, dump_id: int, limit: int | None = None) -> tuple[TelemetryRecord, ...]:
        """Return stored records in insertion order, optionally only the first `limit`."""
        if limit is not None and limit < 0:
            raise ValueError("limit must be >= 0")
        stored = self._records.get(dump_id, [])
        return tuple(stored if limit is None else stored[:limit])

    def record_count(self, dump_id: int) -> int:
        return len(self._records.get(dump_id, []))

    def persist_analysis(self, dump_id: int, result: AnalysisResult) -> None:
        self.get_dump(dump_id)
        self._analyses[dump_id] = result

    def get_analysis(self, dump_id: int) -> AnalysisResult | None:
        return self._analyses.get(dump_id)

    def persist_device_info(self, dump_id: int, info: DeviceInfo) -> None:
        self.get_dump(dump_id)
        self._device_info[dump_id] = info

    def get_device_info(self, dump_id: int) -> DeviceInfo | None:
        return self._device_info.get(dump_id)

    def clear(self) -> None:
        """Drop every dump and its associated data."""
        self._jobs.clear()
        self._records.clear()
        self._analyses.clear()
        self._device_info.clear()

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)
