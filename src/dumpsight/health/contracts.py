"""Threshold contracts used by the health-analysis detectors."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class TemperatureThresholds:
    """Temperature bands in Fahrenheit and event clustering parameters."""

    # Exclusive bounds: a decoded reading of exactly -40 F still counts as invalid here.
    valid_min_f: float = -40.0
    valid_max_f: float = 400.0
    low_f: float = 50.0
    warning_f: float = 160.0
    critical_f: float = 200.0
    cluster_gap_ms: int = 30_000
    cluster_gap_samples: int = 30
    sustained_min_samples: int = 5
    warning_band_ratio: float = 0.05
    low_ratio: float = 0.10
    integrity_warning_ratio: float = 0.05
    integrity_critical_ratio: float = 0.20
    iqr_min_samples: int = 100
    iqr_multiplier: float = 1.5

    def __post_init__(self) -> None:
        if self.valid_min_f >= self.valid_max_f:
            raise ValueError("valid_min_f must be < valid_max_f")
        bands = [self.low_f, self.warning_f, self.critical_f]
        if bands != sorted(bands):
            raise ValueError("low/warning/critical temperature bands must be monotonic ascending")
        if self.cluster_gap_ms < 0 or self.cluster_gap_samples < 0:
            raise ValueError("cluster gaps must be >= 0")
        if self.sustained_min_samples <= 0:
            raise ValueError("sustained_min_samples must be > 0")
        if self.integrity_warning_ratio > self.integrity_critical_ratio:
            raise ValueError("integrity_warning_ratio must be <= integrity_critical_ratio")
        for name in ("warning_band_ratio", "low_ratio", "integrity_warning_ratio", "integrity_critical_ratio"):
            _assert_unit_interval(getattr(self, name), field_name=name)
        if self.iqr_min_samples <= 0:
            raise ValueError("iqr_min_samples must be > 0")
        if self.iqr_multiplier <= 0.0:
            raise ValueError("iqr_multiplier must be > 0")


@dataclass(frozen=True, slots=True)
class BatteryThresholds:
    low_voltage: float = 11.5
    high_voltage: float = 15.5

    def __post_init__(self) -> None:
        if self.low_voltage >= self.high_voltage:
            raise ValueError("low_voltage must be < high_voltage")


@dataclass(frozen=True, slots=True)
class ResetThresholds:
    critical_ratio: float = 0.10

    def __post_init__(self) -> None:
        _assert_unit_interval(self.critical_ratio, field_name="critical_ratio")


@dataclass(frozen=True, slots=True)
class ShockThresholds:
    """Shock magnitude limits in g."""

    valid_abs_max: float = 500.0
    min_samples: int = 10
    static_floor: float = 8.0
    sigma_multiplier: float = 2.0
    critical_peak: float = 20.0
    critical_events_per_100: float = 5.0
    frequent_events_per_100: float = 2.0

    def __post_init__(self) -> None:
        if self.valid_abs_max <= 0.0:
            raise ValueError("valid_abs_max must be > 0")
        if self.min_samples < 0:
            raise ValueError("min_samples must be >= 0")
        if self.static_floor < 0.0 or self.sigma_multiplier < 0.0:
            raise ValueError("static_floor and sigma_multiplier must be >= 0")
        if self.frequent_events_per_100 > self.critical_events_per_100:
            raise ValueError("frequent_events_per_100 must be <= critical_events_per_100")


@dataclass(frozen=True, slots=True)
class MotorThresholds:
    """Motor current limits in amperes."""

    spike_current: float = 2.0
    flow_off_current: float = 1.2

    def __post_init__(self) -> None:
        if self.spike_current <= 0.0 or self.flow_off_current <= 0.0:
            raise ValueError("motor current thresholds must be > 0")


@dataclass(frozen=True, slots=True)
class GammaThresholds:
    """Gamma count-rate band in cps."""

    low_cps: float = 15.0
    high_cps: float = 45.0

    def __post_init__(self) -> None:
        if self.low_cps >= self.high_cps:
            raise ValueError("low_cps must be < high_cps")


@dataclass(frozen=True, slots=True)
class RailStabilityThresholds:
    """Coefficient-of-variation bands (percent) for system voltage rails."""

    min_samples: int = 10
    warning_cv_percent: float = 10.0
    critical_cv_percent: float = 20.0
    outlier_sigma: float = 2.0

    def __post_init__(self) -> None:
        if self.min_samples < 0:
            raise ValueError("min_samples must be >= 0")
        if self.warning_cv_percent > self.critical_cv_percent:
            raise ValueError("warning_cv_percent must be <= critical_cv_percent")
        if self.outlier_sigma <= 0.0:
            raise ValueError("outlier_sigma must be > 0")


@dataclass(frozen=True, slots=True)
class VibrationThresholds:
    min_samples: int = 10
    magnitude_factor: float = 1.5
    event_ratio: float = 0.05

    def __post_init__(self) -> None:
        if self.min_samples < 0:
            raise ValueError("min_samples must be >= 0")
        if self.magnitude_factor <= 0.0:
            raise ValueError("magnitude_factor must be > 0")
        _assert_unit_interval(self.event_ratio, field_name="event_ratio")


@dataclass(frozen=True, slots=True)
class RotationThresholds:
    """Rotation speed limits in RPM."""

    min_samples: int = 10
    high_rpm: float = 4_000.0
    critical_peak_rpm: float = 4_500.0
    critical_high_ratio: float = 0.10
    low_rpm: float = 500.0
    low_ratio: float = 0.15
    spread_avg_trigger: float = 200.0
    spread_max_trigger: float = 500.0
    spread_avg_warning: float = 400.0
    spread_max_critical: float = 1_000.0

    def __post_init__(self) -> None:
        if self.min_samples < 0:
            raise ValueError("min_samples must be >= 0")
        if not (0.0 < self.low_rpm < self.high_rpm <= self.critical_peak_rpm):
            raise ValueError("rpm thresholds must satisfy 0 < low_rpm < high_rpm <= critical_peak_rpm")
        _assert_unit_interval(self.critical_high_ratio, field_name="critical_high_ratio")
        _assert_unit_interval(self.low_ratio, field_name="low_ratio")
        if self.spread_avg_trigger > self.spread_avg_warning:
            raise ValueError("spread_avg_trigger must be <= spread_avg_warning")
        if self.spread_max_trigger > self.spread_max_critical:
            raise ValueError("spread_max_trigger must be <= spread_max_critical")


@dataclass(frozen=True, slots=True)
class EfficiencyThresholds:
    """Motor efficiency trend limits (percent drop first vs last quartile)."""

    min_samples: int = 50
    warning_drop_percent: float = 15.0
    critical_drop_percent: float = 25.0

    def __post_init__(self) -> None:
        if self.min_samples < 4:
            raise ValueError("min_samples must be >= 4 so each quartile is non-empty")
        if self.warning_drop_percent > self.critical_drop_percent:
            raise ValueError("warning_drop_percent must be <= critical_drop_percent")


@dataclass(frozen=True, slots=True)
class AnalysisConfig:
    """Complete detector configuration for one analysis run."""

    temperature: TemperatureThresholds = field(default_factory=TemperatureThresholds)
    battery: BatteryThresholds = field(default_factory=BatteryThresholds)
    reset: ResetThresholds = field(default_factory=ResetThresholds)
    shock: ShockThresholds = field(default_factory=ShockThresholds)
    motor: MotorThresholds = field(default_factory=MotorThresholds)
    gamma: GammaThresholds = field(default_factory=GammaThresholds)
    rails: RailStabilityThresholds = field(default_factory=RailStabilityThresholds)
    vibration: VibrationThresholds = field(default_factory=VibrationThresholds)
    rotation: RotationThresholds = field(default_factory=RotationThresholds)
    efficiency: EfficiencyThresholds = field(default_factory=EfficiencyThresholds)
    max_occurrence_times: int = 100

    def __post_init__(self) -> None:
        if self.max_occurrence_times <= 0:
            raise ValueError("max_occurrence_times must be > 0")


def _assert_unit_interval(value: float, *, field_name: str) -> None:
    if value < 0.0 or value > 1.0:
        raise ValueError(f"{field_name} must be in [0, 1]")
