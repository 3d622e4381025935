"""Health analysis over a complete decoded dump."""

from __future__ import annotations

import logging
from typing import Sequence

from dumpsight.domain.models import AnalysisResult, Issue, TelemetryRecord
from dumpsight.health.contracts import AnalysisConfig
from dumpsight.health.detectors import DEFAULT_DETECTORS, Detector

logger = logging.getLogger(__name__)


def analyze(
    records: Sequence[TelemetryRecord],
    config: AnalysisConfig | None = None,
    *,
    detectors: Sequence[tuple[str, Detector]] = DEFAULT_DETECTORS,
) -> AnalysisResult:
    """Run every detector in order over the full, time-ordered record set.

    Data-quality problems surface as issues; no detector raises on record content.
    Must only be called once all records of a dump are available, since dynamic
    thresholds, clustering and trend checks depend on the complete series.
    """
    resolved_config = AnalysisConfig() if config is None else config
    issues: list[Issue] = []
    for name, detector in detectors:
        found = detector(records, resolved_config)
        logger.debug("detector %s: %d issue(s)", name, len(found))
        issues.extend(found)

    result = AnalysisResult(issues=tuple(issues))
    logger.info(
        "analysis of %d records: %s (%d critical, %d warning, %d total issues)",
        len(records),
        result.overall_status.value,
        result.critical_count,
        result.warning_count,
        len(result.issues),
    )
    return result
