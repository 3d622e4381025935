"""Statistical health analysis for decoded telemetry."""

from dumpsight.health.contracts import (
    AnalysisConfig,
    BatteryThresholds,
    EfficiencyThresholds,
    GammaThresholds,
    MotorThresholds,
    RailStabilityThresholds,
    ResetThresholds,
    RotationThresholds,
    ShockThresholds,
    TemperatureThresholds,
    VibrationThresholds,
)
from dumpsight.health.detectors import DEFAULT_DETECTORS, RAIL_FIELDS
from dumpsight.health.engine import analyze
from dumpsight.health.statistics import (
    Sample,
    cluster_events,
    coefficient_of_variation,
    dynamic_threshold,
    iqr_bounds,
    quartile_degradation,
    valid_samples,
)

__all__ = [
    "DEFAULT_DETECTORS",
    "RAIL_FIELDS",
    "AnalysisConfig",
    "BatteryThresholds",
    "EfficiencyThresholds",
    "GammaThresholds",
    "MotorThresholds",
    "RailStabilityThresholds",
    "ResetThresholds",
    "RotationThresholds",
    "Sample",
    "ShockThresholds",
    "TemperatureThresholds",
    "VibrationThresholds",
    "analyze",
    "cluster_events",
    "coefficient_of_variation",
    "dynamic_threshold",
    "iqr_bounds",
    "quartile_degradation",
    "valid_samples",
]
