"""
Tests for risk classification.

Tests cover:
- Fixed scenarios (soil saturation, tilt with vibration, single indicator)
- Warning threshold on the indicator count
- Critical combinations overriding Warning
- Strict per-channel thresholds
- Tier ordering and determinism
"""

import itertools

import pytest

from landslide_alerts.classifier import (
    AlertTier,
    classify,
    classify_values,
    count_risk_indicators,
    is_critical,
)
from landslide_alerts.schemas import SensorReading


def reading(**values) -> SensorReading:
    return SensorReading(device_id="ESP32_001", **values)


class TestClassifyScenarios:
    """Known inputs and their tiers."""

    def test_saturated_soil_is_critical(self):
        result = classify(reading(soil_moisture_1=80, soil_moisture_2=85, soil_moisture_3=90))

        assert result.tier == AlertTier.CRITICAL
        assert result.message == "Critical - Imminent Failure"

    def test_single_indicator_is_normal(self):
        result = classify(reading(soil_moisture_1=65))

        assert count_risk_indicators(65, 0, 0, 0, 0) == 1
        assert result.tier == AlertTier.NORMAL
        assert result.message == "Normal but Monitored"

    def test_tilt_with_vibration_is_critical(self):
        result = classify(reading(soil_moisture_1=0, tilt=6, vibration=0.1))

        assert result.tier == AlertTier.CRITICAL

    def test_three_indicators_is_warning(self):
        result = classify(reading(soil_moisture_1=61, soil_moisture_2=66, soil_moisture_3=66))

        assert result.tier == AlertTier.WARNING
        assert result.message == "Intermediate Warning"

    def test_mixed_channels_warning(self):
        result = classify(reading(soil_moisture_1=61, tilt=3, vibration=0.05))

        assert result.tier == AlertTier.WARNING

    def test_absent_soil_channels_count_as_zero(self):
        assert classify(reading(soil_moisture_2=70)).tier == AlertTier.NORMAL


class TestCriticalConditions:
    """Each critical combination on its own."""

    def test_strong_vibration_alone(self):
        assert classify_values(0, 0, 0, 0, 0.21).tier == AlertTier.CRITICAL

    def test_wet_soil_and_tilt(self):
        assert classify_values(76, 0, 0, 6, 0).tier == AlertTier.CRITICAL

    def test_all_soil_channels_must_exceed(self):
        # sm3 at exactly 85 does not qualify; three indicators still make it a warning
        assert not is_critical(76, 81, 85, 0, 0)
        assert classify_values(76, 81, 85, 0, 0).tier == AlertTier.WARNING

    def test_critical_without_any_warning(self):
        assert count_risk_indicators(0, 0, 0, 0, 0.25) == 1
        assert classify_values(0, 0, 0, 0, 0.25).tier == AlertTier.CRITICAL


class TestThresholds:
    """Indicator thresholds are strict and per channel."""

    def test_values_at_thresholds_do_not_count(self):
        assert count_risk_indicators(60, 65, 65, 2, 0.03) == 0

    @pytest.mark.parametrize(
        "values",
        [
            (60.1, 0, 0, 0, 0),
            (0, 65.1, 0, 0, 0),
            (0, 0, 65.1, 0, 0),
            (0, 0, 0, 2.1, 0),
            (0, 0, 0, 0, 0.031),
        ],
    )
    def test_each_channel_counts_once(self, values):
        assert count_risk_indicators(*values) == 1

    def test_soil_1_uses_its_own_threshold(self):
        # 62 is above the channel-1 threshold but below channels 2 and 3
        assert count_risk_indicators(62, 62, 62, 0, 0) == 1

    def test_indicator_count_drives_warning(self):
        """Without critical conditions, Warning iff at least three indicators fire."""
        risky = (61, 66, 66, 3, 0.05)
        for mask in itertools.product([False, True], repeat=5):
            values = [value if on else 0 for value, on in zip(risky, mask)]
            expected = AlertTier.WARNING if sum(mask) >= 3 else AlertTier.NORMAL
            assert classify_values(*values).tier == expected, mask


class TestTierProperties:
    def test_tier_ordering(self):
        assert AlertTier.NORMAL < AlertTier.WARNING < AlertTier.CRITICAL
        assert [int(t) for t in AlertTier] == [1, 2, 3]

    def test_classification_is_deterministic(self):
        sample = reading(soil_moisture_1=70, soil_moisture_2=66, tilt=2.5, vibration=0.04)
        results = {classify(sample) for _ in range(5)}

        assert len(results) == 1

    def test_critical_never_downgraded_by_more_indicators(self):
        assert classify_values(80, 85, 90, 6, 0.25).tier == AlertTier.CRITICAL
