"""Tests for the health-analysis engine."""

from __future__ import annotations

import logging
from typing import Sequence

import pytest

from dumpsight.domain.models import DeviceType, Issue, IssueSeverity, OverallStatus, TelemetryRecord
from dumpsight.health.contracts import AnalysisConfig
from dumpsight.health.engine import analyze


def _make_mp_records(count: int, **values: object) -> list[TelemetryRecord]:
    base = {"temperature_f": 100.0, "battery_voltage": 12.0}
    base.update(values)
    return [
        TelemetryRecord(timestamp_ms=index * 1_000, device_type=DeviceType.MP, **base)  # type: ignore[arg-type]
        for index in range(count)
    ]


def _replace(records: list[TelemetryRecord], indices: Sequence[int], **values: object) -> list[TelemetryRecord]:
    updated = list(records)
    for index in indices:
        fields = {name: getattr(updated[index], name) for name in ("temperature_f", "battery_voltage", "motor_avg")}
        fields.update(values)
        updated[index] = TelemetryRecord(
            timestamp_ms=updated[index].timestamp_ms,
            device_type=DeviceType.MP,
            **fields,  # type: ignore[arg-type]
        )
    return updated


def test_low_battery_example_yields_one_critical_issue() -> None:
    records = _replace(_make_mp_records(1_000), range(900, 1_000), battery_voltage=10.0)

    result = analyze(records)

    (issue,) = result.issues_with_code("battery_voltage_low")
    assert issue.severity == IssueSeverity.CRITICAL
    assert issue.count == 100
    assert len(issue.times_ms) == 100
    assert issue.first_time_ms == 900_000
    assert result.overall_status == OverallStatus.CRITICAL


def test_single_motor_spike_example_yields_one_warning() -> None:
    records = _replace(_make_mp_records(60, motor_avg=1.0), [30], motor_avg=2.5)

    result = analyze(records)

    warnings = [issue for issue in result.issues if issue.severity == IssueSeverity.WARNING]
    assert len(warnings) == 1
    assert warnings[0].code == "motor_current_spike"
    assert warnings[0].count == 1
    assert result.overall_status == OverallStatus.WARNING


def test_clean_series_is_operational() -> None:
    result = analyze(_make_mp_records(200, motor_avg=1.0))
    assert result.issues == ()
    assert result.overall_status == OverallStatus.OPERATIONAL


def test_empty_record_set_is_operational() -> None:
    result = analyze([])
    assert result.issues == ()
    assert result.overall_status == OverallStatus.OPERATIONAL


def test_mdg_dump_does_not_raise_mp_temperature_failures() -> None:
    records = [
        TelemetryRecord(timestamp_ms=index * 2_000, device_type=DeviceType.MDG, gamma=30, v5vd=5.0)
        for index in range(50)
    ]
    result = analyze(records)
    assert not any(issue.code.startswith("temperature") for issue in result.issues)
    assert result.overall_status == OverallStatus.OPERATIONAL


def test_occurrence_times_are_capped_by_config() -> None:
    records = _replace(_make_mp_records(50), range(50), battery_voltage=10.0)

    (issue,) = analyze(records, AnalysisConfig(max_occurrence_times=5)).issues_with_code("battery_voltage_low")

    assert issue.count == 50
    assert issue.times_ms == (0, 1_000, 2_000, 3_000, 4_000)


def test_detectors_run_in_order(caplog: pytest.LogCaptureFixture) -> None:
    def _first(records: Sequence[TelemetryRecord], config: AnalysisConfig) -> list[Issue]:
        return [Issue(code="first", label="first", explanation="", severity=IssueSeverity.INFO, count=len(records))]

    def _second(records: Sequence[TelemetryRecord], config: AnalysisConfig) -> list[Issue]:
        return [Issue(code="second", label="second", explanation="", severity=IssueSeverity.WARNING, count=0)]

    with caplog.at_level(logging.INFO, logger="dumpsight.health.engine"):
        result = analyze(_make_mp_records(3), detectors=(("first", _first), ("second", _second)))

    assert [issue.code for issue in result.issues] == ["first", "second"]
    assert result.issues[0].count == 3
    assert "analysis of 3 records: warning" in caplog.text
