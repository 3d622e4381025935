"""JSON-safe payloads for records, device info and analysis results."""

from __future__ import annotations

from dataclasses import asdict, fields
from typing import Any, Sequence

import numpy as np

from dumpsight.data.decoder import DecodeOutcome
from dumpsight.domain.models import (
    AnalysisResult,
    DeviceInfo,
    HeaderValue,
    Issue,
    TelemetryRecord,
)
from dumpsight.health.statistics import is_finite_number
from dumpsight.integration.collaborators import DumpJob


def record_to_jsonable(record: TelemetryRecord) -> dict[str, Any]:
    payload = asdict(record)
    payload["device_type"] = record.device_type.value
    return payload


def issue_to_jsonable(issue: Issue) -> dict[str, Any]:
    return {
        "code": issue.code,
        "label": issue.label,
        "explanation": issue.explanation,
        "severity": issue.severity.label,
        "count": issue.count,
        "first_time_ms": issue.first_time_ms,
        "last_time_ms": issue.last_time_ms,
        "times_ms": list(issue.times_ms),
    }


def analysis_to_jsonable(result: AnalysisResult) -> dict[str, Any]:
    """Serialize an analysis result including its derived status counters."""
    return {
        "overall_status": result.overall_status.value,
        "critical_count": result.critical_count,
        "warning_count": result.warning_count,
        "issues": [issue_to_jsonable(issue) for issue in result.issues],
    }


def device_info_to_jsonable(info: DeviceInfo) -> dict[str, Any]:
    """Serialize device info; every header value keeps its provenance tag."""
    payload: dict[str, Any] = {}
    for item in fields(info):
        value = getattr(info, item.name)
        if isinstance(value, HeaderValue):
            payload[item.name] = {
                "value": value.value,
                "provenance": value.provenance.value,
                "detail": value.detail,
            }
        elif value is None:
            payload[item.name] = None
        else:
            payload[item.name] = getattr(value, "value", value)
    return payload


def outcome_to_jsonable(outcome: DecodeOutcome) -> dict[str, Any]:
    payload = asdict(outcome)
    payload["device_type"] = outcome.device_type.value
    payload["timestamp_provenance"] = outcome.timestamp_provenance.value
    payload["success"] = outcome.success
    return payload


def job_to_jsonable(job: DumpJob) -> dict[str, Any]:
    payload = asdict(job)
    payload["device_type"] = None if job.device_type is None else job.device_type.value
    payload["status"] = job.status.value
    return payload


def summarize_fields(
    records: Sequence[TelemetryRecord],
    field_names: Sequence[str] | None = None,
) -> dict[str, dict[str, float | int | None]]:
    """Per-field count/min/max/mean over numeric, non-null values.

    Fields with no numeric values report a zero count and null statistics.
    Non-numeric fields such as `flow_status` are skipped.
    """
    names = field_names if field_names is not None else _numeric_field_names()
    summary: dict[str, dict[str, float | int | None]] = {}
    for name in names:
        values = np.asarray(
            [float(value) for value in (record.value(name) for record in records) if is_finite_number(value)],
            dtype=np.float64,
        )
        if values.size == 0:
            summary[name] = {"count": 0, "min": None, "max": None, "mean": None}
            continue
        summary[name] = {
            "count": int(values.size),
            "min": float(values.min()),
            "max": float(values.max()),
            "mean": float(values.mean()),
        }
    return summary


def _numeric_field_names() -> tuple[str, ...]:
    return tuple(
        item.name
        for item in fields(TelemetryRecord)
        if item.name not in {"timestamp_ms", "device_type", "flow_status"}
    )
