"""Independent detector passes over a complete, time-ordered record set.

Each detector is a pure function `(records, config) -> list[Issue]`. Detectors
only consider records whose device type carries the fields they inspect, so
an MDG dump never produces MP temperature findings and vice versa.
"""

from __future__ import annotations

import math
from typing import Callable, Sequence

from dumpsight.data.layouts import device_types_carrying
from dumpsight.domain.models import Issue, IssueSeverity, TelemetryRecord
from dumpsight.health.contracts import AnalysisConfig
from dumpsight.health.statistics import (
    Sample,
    cap_times,
    cluster_events,
    coefficient_of_variation,
    dynamic_threshold,
    is_finite_number,
    iqr_bounds,
    mean_and_std,
    quartile_degradation,
    select_samples,
    valid_samples,
)

Detector = Callable[[Sequence[TelemetryRecord], AnalysisConfig], list[Issue]]

RAIL_FIELDS: tuple[str, ...] = ("v3_3va_di", "v5vd", "v3_3vd", "v1_9vd", "v1_5vd", "v1_8va", "v3_3va")


def _applicable(records: Sequence[TelemetryRecord], field_name: str) -> list[TelemetryRecord]:
    carriers = device_types_carrying(field_name)
    return [record for record in records if record.device_type in carriers]


def _issue(
    code: str,
    label: str,
    explanation: str,
    severity: IssueSeverity,
    samples: Sequence[Sample],
    config: AnalysisConfig,
    *,
    count: int | None = None,
) -> Issue:
    return Issue(
        code=code,
        label=label,
        explanation=explanation,
        severity=severity,
        count=len(samples) if count is None else count,
        first_time_ms=samples[0].timestamp_ms if samples else None,
        last_time_ms=samples[-1].timestamp_ms if samples else None,
        times_ms=cap_times(samples, config.max_occurrence_times),
    )


def _celsius(fahrenheit: float) -> float:
    return (fahrenheit - 32.0) * 5.0 / 9.0


def detect_temperature(records: Sequence[TelemetryRecord], config: AnalysisConfig) -> list[Issue]:
    """High, elevated and low temperature bands plus sensor integrity."""
    policy = config.temperature
    applicable = _applicable(records, "temperature_f")
    if not applicable:
        return []

    valid = valid_samples(applicable, "temperature_f", lower=policy.valid_min_f, upper=policy.valid_max_f)
    if not valid:
        every = [Sample(index, record.timestamp_ms, math.nan) for index, record in enumerate(applicable)]
        return [
            _issue(
                "temperature_sensor_failure",
                "Temperature sensor failure: no valid readings",
                f"Zero valid temperature readings in {len(applicable)} records. "
                "Complete sensor failure or a communication fault; replace the sensor.",
                IssueSeverity.CRITICAL,
                every,
                config,
            )
        ]

    issues: list[Issue] = []
    high = select_samples(valid, lambda value: value > policy.critical_f)
    if high:
        clusters = cluster_events(
            high,
            max_gap_ms=policy.cluster_gap_ms,
            max_gap_samples=policy.cluster_gap_samples,
        )
        sustained = [cluster for cluster in clusters if len(cluster) >= policy.sustained_min_samples]
        if sustained:
            longest = max(sustained, key=len)
            peak = max(sample.value for sample in longest)
            duration_s = (longest[-1].timestamp_ms - longest[0].timestamp_ms) / 1000.0
            issues.append(
                _issue(
                    "temperature_sustained_high",
                    f"Sustained high temperature: peak {peak:.1f}°F ({_celsius(peak):.1f}°C)",
                    f"{len(sustained)} sustained thermal event(s). Longest lasted {duration_s:.0f}s "
                    f"with {len(longest)} consecutive readings above {policy.critical_f:g}°F. "
                    "Inspect the tool before the next run.",
                    IssueSeverity.CRITICAL,
                    longest,
                    config,
                    count=len(high),
                )
            )
        else:
            peak = max(sample.value for sample in high)
            issues.append(
                _issue(
                    "temperature_transient_high",
                    f"Transient temperature spikes: peak {peak:.1f}°F ({_celsius(peak):.1f}°C)",
                    f"{len(clusters)} brief spike(s) above {policy.critical_f:g}°F, each shorter than "
                    f"{policy.sustained_min_samples} readings. Likely sensor noise or short thermal events.",
                    IssueSeverity.WARNING,
                    high,
                    config,
                )
            )

    elevated = select_samples(valid, lambda value: policy.warning_f < value <= policy.critical_f)
    if len(elevated) > len(valid) * policy.warning_band_ratio:
        average = sum(sample.value for sample in elevated) / len(elevated)
        share = len(elevated) / len(valid) * 100.0
        issues.append(
            _issue(
                "temperature_elevated",
                f"Elevated operating temperature: average {average:.1f}°F ({_celsius(average):.1f}°C)",
                f"{len(elevated)} readings ({share:.1f}%) between {policy.warning_f:g}°F and "
                f"{policy.critical_f:g}°F. Check cooling and circulation.",
                IssueSeverity.WARNING,
                elevated,
                config,
            )
        )

    low = select_samples(valid, lambda value: value < policy.low_f)
    if len(low) > len(valid) * policy.low_ratio:
        minimum = min(sample.value for sample in low)
        share = len(low) / len(valid) * 100.0
        issues.append(
            _issue(
                "temperature_low",
                f"Low temperature operation: minimum {minimum:.1f}°F ({_celsius(minimum):.1f}°C)",
                f"{len(low)} readings ({share:.1f}%) below {policy.low_f:g}°F. "
                "Cold conditions affect fluid viscosity and tool performance.",
                IssueSeverity.WARNING,
                low,
                config,
            )
        )

    valid_indices = {sample.index for sample in valid}
    invalid = [
        Sample(index, record.timestamp_ms, math.nan)
        for index, record in enumerate(applicable)
        if index not in valid_indices
    ]
    if invalid:
        ratio = len(invalid) / len(applicable)
        explanation = f"{len(invalid)} invalid temperature readings ({ratio * 100.0:.1f}% of records)."
        if ratio > policy.integrity_critical_ratio:
            severity = IssueSeverity.CRITICAL
            explanation += " High failure rate; sensor malfunction or communication errors likely."
        elif ratio > policy.integrity_warning_ratio:
            severity = IssueSeverity.WARNING
            explanation += " Moderate sensor issues; schedule sensor maintenance."
        else:
            severity = IssueSeverity.INFO
            explanation += " Occasional anomalies within tolerance."
        issues.append(
            _issue(
                "temperature_sensor_integrity",
                f"Temperature sensor integrity: {len(invalid)} invalid readings",
                explanation,
                severity,
                invalid,
                config,
            )
        )
    return issues


def detect_battery_voltage(records: Sequence[TelemetryRecord], config: AnalysisConfig) -> list[Issue]:
    policy = config.battery
    readings = valid_samples(_applicable(records, "battery_voltage"), "battery_voltage")
    issues: list[Issue] = []

    low = select_samples(readings, lambda value: value < policy.low_voltage)
    if low:
        minimum = min(sample.value for sample in low)
        issues.append(
            _issue(
                "battery_voltage_low",
                f"Low battery voltage: {minimum:.2f}V",
                f"{len(low)} readings below {policy.low_voltage:g}V. Risk of shutdown or unstable operation.",
                IssueSeverity.CRITICAL,
                low,
                config,
            )
        )

    high = select_samples(readings, lambda value: value > policy.high_voltage)
    if high:
        maximum = max(sample.value for sample in high)
        issues.append(
            _issue(
                "battery_voltage_high",
                f"High battery voltage: {maximum:.2f}V",
                f"{len(high)} readings above {policy.high_voltage:g}V. Possible charging fault or damage risk.",
                IssueSeverity.WARNING,
                high,
                config,
            )
        )
    return issues


def detect_reset_frequency(records: Sequence[TelemetryRecord], config: AnalysisConfig) -> list[Issue]:
    applicable = _applicable(records, "reset")
    if not applicable:
        return []
    resets = select_samples(valid_samples(applicable, "reset"), lambda value: value == 1)
    if not resets or len(resets) / len(applicable) <= config.reset.critical_ratio:
        return []
    return [
        _issue(
            "reset_frequency",
            f"High reset frequency: {len(resets)} resets",
            f"Resets on {len(resets) / len(applicable) * 100.0:.1f}% of records. Firmware instability.",
            IssueSeverity.CRITICAL,
            resets,
            config,
        )
    ]


def detect_shock(records: Sequence[TelemetryRecord], config: AnalysisConfig) -> list[Issue]:
    """Three-axis shock magnitude against a dynamic threshold."""
    policy = config.shock
    magnitudes: list[Sample] = []
    for index, record in enumerate(_applicable(records, "shock_z")):
        axes = [
            float(value)
            for value in (record.shock_x, record.shock_y, record.shock_z)
            if is_finite_number(value) and abs(float(value)) < policy.valid_abs_max
        ]
        if axes:
            magnitudes.append(Sample(index, record.timestamp_ms, math.sqrt(sum(axis * axis for axis in axes))))

    if len(magnitudes) <= policy.min_samples:
        return []

    threshold = dynamic_threshold(
        [sample.value for sample in magnitudes],
        floor=policy.static_floor,
        sigma=policy.sigma_multiplier,
    )
    significant = select_samples(magnitudes, lambda value: value > threshold)
    if not significant:
        return []

    peak = max(sample.value for sample in significant)
    per_hundred = len(significant) / (len(magnitudes) / 100.0)
    explanation = f"{len(significant)} shock events above the statistical threshold ({threshold:.1f}g)."
    if peak > policy.critical_peak or per_hundred > policy.critical_events_per_100:
        severity = IssueSeverity.CRITICAL
        explanation += f" Peak {peak:.1f}g exceeds equipment limits; inspect the tool."
    elif per_hundred > policy.frequent_events_per_100:
        severity = IssueSeverity.WARNING
        explanation += " Frequent shocks suggest an ongoing mechanical issue."
    else:
        severity = IssueSeverity.WARNING
        explanation += " Isolated events; keep monitoring."
    return [
        _issue(
            "shock_events",
            f"Shock events: {len(significant)} events, peak {peak:.1f}g",
            explanation,
            severity,
            significant,
            config,
        )
    ]


def detect_motor_spikes(records: Sequence[TelemetryRecord], config: AnalysisConfig) -> list[Issue]:
    limit = config.motor.spike_current
    spikes: list[Sample] = []
    for index, record in enumerate(_applicable(records, "motor_max")):
        currents = [float(value) for value in (record.motor_max, record.motor_avg) if is_finite_number(value)]
        if currents and max(currents) > limit:
            spikes.append(Sample(index, record.timestamp_ms, max(currents)))
    if not spikes:
        return []
    return [
        _issue(
            "motor_current_spike",
            f"{len(spikes)} motor current spikes",
            f"Motor current above {limit:g}A. Overcurrent risk.",
            IssueSeverity.WARNING,
            spikes,
            config,
        )
    ]


def detect_gamma(records: Sequence[TelemetryRecord], config: AnalysisConfig) -> list[Issue]:
    policy = config.gamma
    readings = valid_samples(_applicable(records, "gamma"), "gamma")
    issues: list[Issue] = []

    low = select_samples(readings, lambda value: value < policy.low_cps)
    if low:
        issues.append(
            _issue(
                "gamma_low",
                f"{len(low)} low gamma count readings",
                f"Gamma below {policy.low_cps:g} cps. Possible calibration or shielding issue.",
                IssueSeverity.INFO,
                low,
                config,
            )
        )

    high = select_samples(readings, lambda value: value > policy.high_cps)
    if high:
        issues.append(
            _issue(
                "gamma_high",
                f"{len(high)} high gamma count readings",
                f"Gamma above {policy.high_cps:g} cps. Contamination or an unexpected formation.",
                IssueSeverity.WARNING,
                high,
                config,
            )
        )
    return issues


def detect_flow_motor_mismatch(records: Sequence[TelemetryRecord], config: AnalysisConfig) -> list[Issue]:
    limit = config.motor.flow_off_current
    mismatched = [
        Sample(index, record.timestamp_ms, float(record.motor_avg))  # type: ignore[arg-type]
        for index, record in enumerate(_applicable(records, "flow_status"))
        if record.flow_status == "Off" and is_finite_number(record.motor_avg) and record.motor_avg > limit  # type: ignore[operator]
    ]
    if not mismatched:
        return []
    return [
        _issue(
            "flow_motor_mismatch",
            f"{len(mismatched)} pump-off high motor events",
            f"Flow reported off while motor current exceeded {limit:g}A. Electrical or sensor fault.",
            IssueSeverity.WARNING,
            mismatched,
            config,
        )
    ]


def detect_rail_instability(records: Sequence[TelemetryRecord], config: AnalysisConfig) -> list[Issue]:
    """Coefficient-of-variation check run independently on every system rail."""
    policy = config.rails
    issues: list[Issue] = []
    for rail in RAIL_FIELDS:
        readings = valid_samples(_applicable(records, rail), rail)
        if len(readings) <= policy.min_samples:
            continue
        values = [sample.value for sample in readings]
        cv = coefficient_of_variation(values)
        if cv is None or cv <= policy.warning_cv_percent:
            continue
        mean, std = mean_and_std(values)
        outliers = select_samples(readings, lambda value: abs(value - mean) > policy.outlier_sigma * std)
        if not outliers:
            continue
        issues.append(
            _issue(
                "rail_voltage_instability",
                f"{rail} voltage instability (CV {cv:.1f}%)",
                f"{len(outliers)} readings deviate more than {policy.outlier_sigma:g} standard deviations "
                "from the mean. Power supply fluctuation or an electrical fault.",
                IssueSeverity.CRITICAL if cv > policy.critical_cv_percent else IssueSeverity.WARNING,
                outliers,
                config,
            )
        )
    return issues


def detect_vibration(records: Sequence[TelemetryRecord], config: AnalysisConfig) -> list[Issue]:
    policy = config.vibration
    magnitudes: list[Sample] = []
    for index, record in enumerate(_applicable(records, "max_x")):
        axes = (record.max_x, record.max_y, record.max_z)
        if all(is_finite_number(axis) for axis in axes):
            magnitude = math.sqrt(sum(float(axis) ** 2 for axis in axes))  # type: ignore[arg-type]
            magnitudes.append(Sample(index, record.timestamp_ms, magnitude))

    if len(magnitudes) <= policy.min_samples:
        return []
    average, _ = mean_and_std([sample.value for sample in magnitudes])
    excessive = select_samples(magnitudes, lambda value: value > average * policy.magnitude_factor)
    if len(excessive) <= len(magnitudes) * policy.event_ratio:
        return []
    return [
        _issue(
            "vibration_excessive",
            f"Excessive vibration: {len(excessive)} high-magnitude events",
            f"Vibration magnitude above {policy.magnitude_factor:g}x the run average. "
            "Indicates mechanical wear or imbalance.",
            IssueSeverity.WARNING,
            excessive,
            config,
        )
    ]


def detect_rotation(records: Sequence[TelemetryRecord], config: AnalysisConfig) -> list[Issue]:
    """High speed, low speed and speed spread checks over RPM-bearing records."""
    policy = config.rotation
    rows: list[tuple[Sample, float]] = []
    for index, record in enumerate(_applicable(records, "rot_rpm_max")):
        maximum = _positive_or_zero(record.rot_rpm_max)
        average = _positive_or_zero(record.rot_rpm_avg)
        minimum = _positive_or_zero(record.rot_rpm_min)
        if maximum > 0.0 or average > 0.0 or minimum > 0.0:
            rows.append((Sample(index, record.timestamp_ms, maximum), minimum))

    if len(rows) <= policy.min_samples:
        return []
    maxima = [sample for sample, _ in rows]
    if not any(sample.value > 0.0 for sample in maxima):
        return []

    issues: list[Issue] = []
    peak = max(sample.value for sample in maxima)

    high = select_samples(maxima, lambda value: value > policy.high_rpm)
    if high:
        share = len(high) / len(rows)
        explanation = f"{len(high)} samples above {policy.high_rpm:g} RPM ({share * 100.0:.1f}% of operation)."
        if peak > policy.critical_peak_rpm or share > policy.critical_high_ratio:
            severity = IssueSeverity.CRITICAL
            explanation += f" Peak {peak:.0f} RPM exceeds safe limits; risk of bearing damage."
        else:
            severity = IssueSeverity.WARNING
            explanation += " Operating near the design limit."
        issues.append(
            _issue("rotation_high", f"High rotation speed: peak {peak:.0f} RPM", explanation, severity, high, config)
        )

    low = select_samples(maxima, lambda value: 0.0 < value < policy.low_rpm)
    if len(low) > len(rows) * policy.low_ratio:
        share = len(low) / len(rows) * 100.0
        issues.append(
            _issue(
                "rotation_low",
                f"Low rotation speed: {share:.1f}% of operation",
                f"{len(low)} samples below {policy.low_rpm:g} RPM. Possible motor issue, blockage or "
                "insufficient power.",
                IssueSeverity.WARNING,
                low,
                config,
            )
        )

    spreads = [abs(sample.value - minimum) for sample, minimum in rows]
    spreads = [spread for spread in spreads if spread > 0.0]
    if spreads:
        average_spread = sum(spreads) / len(spreads)
        widest = max(spreads)
        if average_spread > policy.spread_avg_trigger or widest > policy.spread_max_trigger:
            explanation = f"Average spread {average_spread:.0f} RPM, widest {widest:.0f} RPM."
            if widest > policy.spread_max_critical:
                severity = IssueSeverity.CRITICAL
                explanation += " Extreme speed fluctuation; check mechanics and control loop."
            elif average_spread > policy.spread_avg_warning:
                severity = IssueSeverity.WARNING
                explanation += " High variability suggests wear or control instability."
            else:
                severity = IssueSeverity.INFO
                explanation += " Moderate variability, normal under varying load."
            issues.append(
                _issue(
                    "rotation_instability",
                    f"RPM instability: {average_spread:.0f} RPM average spread",
                    explanation,
                    severity,
                    maxima,
                    config,
                    count=len(spreads),
                )
            )
    return issues


def detect_motor_efficiency(records: Sequence[TelemetryRecord], config: AnalysisConfig) -> list[Issue]:
    """First versus last quartile of `1 / (motor_avg * actuation_time)`."""
    policy = config.efficiency
    efficiency: list[Sample] = []
    for index, record in enumerate(_applicable(records, "motor_avg")):
        current, duration = record.motor_avg, record.actuation_time
        if is_finite_number(current) and is_finite_number(duration) and current > 0 and duration > 0:  # type: ignore[operator]
            efficiency.append(Sample(index, record.timestamp_ms, 1.0 / (float(current) * float(duration))))  # type: ignore[arg-type]

    if len(efficiency) <= policy.min_samples:
        return []
    drop = quartile_degradation([sample.value for sample in efficiency])
    if drop is None or drop <= policy.warning_drop_percent:
        return []
    last_quarter = efficiency[-math.floor(len(efficiency) * 0.25) :]
    return [
        Issue(
            code="motor_efficiency_degradation",
            label=f"Motor performance degradation: {drop:.1f}% efficiency loss",
            explanation="Efficiency fell between the first and last quarter of the run. Schedule maintenance.",
            severity=IssueSeverity.CRITICAL if drop > policy.critical_drop_percent else IssueSeverity.WARNING,
            count=1,
            first_time_ms=last_quarter[0].timestamp_ms,
            last_time_ms=last_quarter[-1].timestamp_ms,
            times_ms=(last_quarter[0].timestamp_ms,),
        )
    ]


def detect_temperature_outliers(records: Sequence[TelemetryRecord], config: AnalysisConfig) -> list[Issue]:
    policy = config.temperature
    readings = valid_samples(_applicable(records, "temperature_f"), "temperature_f")
    if len(readings) <= policy.iqr_min_samples:
        return []
    lower, upper = iqr_bounds([sample.value for sample in readings], multiplier=policy.iqr_multiplier)
    outliers = select_samples(readings, lambda value: value < lower or value > upper)
    if not outliers:
        return []
    return [
        _issue(
            "temperature_outliers",
            f"{len(outliers)} temperature outliers",
            f"Readings outside the interquartile band [{lower:.1f}°F, {upper:.1f}°F].",
            IssueSeverity.INFO,
            outliers,
            config,
        )
    ]


def _positive_or_zero(value: object) -> float:
    if is_finite_number(value) and float(value) > 0.0:  # type: ignore[arg-type]
        return float(value)  # type: ignore[arg-type]
    return 0.0


DEFAULT_DETECTORS: tuple[tuple[str, Detector], ...] = (
    ("temperature", detect_temperature),
    ("battery_voltage", detect_battery_voltage),
    ("reset_frequency", detect_reset_frequency),
    ("shock", detect_shock),
    ("motor_spikes", detect_motor_spikes),
    ("gamma", detect_gamma),
    ("flow_motor_mismatch", detect_flow_motor_mismatch),
    ("rail_instability", detect_rail_instability),
    ("vibration", detect_vibration),
    ("rotation", detect_rotation),
    ("motor_efficiency", detect_motor_efficiency),
    ("temperature_outliers", detect_temperature_outliers),
)
