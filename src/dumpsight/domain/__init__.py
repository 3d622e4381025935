"""Domain models for decoded telemetry, device identity and health issues."""

from dumpsight.domain.models import (
    SENSOR_FIELD_NAMES,
    AnalysisResult,
    DeviceInfo,
    DeviceType,
    HeaderValue,
    Issue,
    IssueSeverity,
    OverallStatus,
    TelemetryRecord,
    TimestampProvenance,
    ValueProvenance,
)

__all__ = [
    "SENSOR_FIELD_NAMES",
    "AnalysisResult",
    "DeviceInfo",
    "DeviceType",
    "HeaderValue",
    "Issue",
    "IssueSeverity",
    "OverallStatus",
    "TelemetryRecord",
    "TimestampProvenance",
    "ValueProvenance",
]
