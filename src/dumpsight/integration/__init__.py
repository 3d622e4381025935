"""Dump processing jobs, persistence collaborators and JSON payloads."""

from dumpsight.integration.collaborators import (
    DeviceInfoSink,
    DumpJob,
    DumpStatus,
    DumpStore,
    InMemoryDumpStore,
    JobTracker,
    RecordSink,
    RecordSource,
    ResultSink,
)
from dumpsight.integration.pipeline import (
    DumpProcessingReport,
    IncompleteDecodeError,
    infer_device_type,
    process_dump,
)
from dumpsight.integration.serialization import (
    analysis_to_jsonable,
    device_info_to_jsonable,
    issue_to_jsonable,
    job_to_jsonable,
    outcome_to_jsonable,
    record_to_jsonable,
    summarize_fields,
)

__all__ = [
    "DeviceInfoSink",
    "DumpJob",
    "DumpProcessingReport",
    "DumpStatus",
    "DumpStore",
    "InMemoryDumpStore",
    "IncompleteDecodeError",
    "JobTracker",
    "RecordSink",
    "RecordSource",
    "ResultSink",
    "analysis_to_jsonable",
    "device_info_to_jsonable",
    "infer_device_type",
    "issue_to_jsonable",
    "job_to_jsonable",
    "outcome_to_jsonable",
    "process_dump",
    "record_to_jsonable",
    "summarize_fields",
]
