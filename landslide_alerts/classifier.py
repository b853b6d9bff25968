"""
Risk classification for a single reading.

Two independent rules:
- Warning when at least three per-channel risk indicators fire
- Critical when any of the critical combinations holds (overrides Warning)
"""

from enum import IntEnum
from typing import NamedTuple

from landslide_alerts.schemas import SensorReading


class AlertTier(IntEnum):
    """Risk tiers, ordered so comparisons work naturally."""

    NORMAL = 1
    WARNING = 2
    CRITICAL = 3

    @property
    def label(self) -> str:
        return TIER_LABELS[self]


TIER_LABELS = {
    AlertTier.NORMAL: "Normal but Monitored",
    AlertTier.WARNING: "Intermediate Warning",
    AlertTier.CRITICAL: "Critical - Imminent Failure",
}

# Per-channel indicator thresholds
SOIL_1_RISK = 60
SOIL_2_RISK = 65
SOIL_3_RISK = 65
TILT_RISK = 2
VIBRATION_RISK = 0.03

WARNING_INDICATOR_COUNT = 3


class ClassificationResult(NamedTuple):
    tier: AlertTier
    message: str


def count_risk_indicators(sm1: float, sm2: float, sm3: float, tilt: float, vibration: float) -> int:
    checks = (
        sm1 > SOIL_1_RISK,
        sm2 > SOIL_2_RISK,
        sm3 > SOIL_3_RISK,
        tilt > TILT_RISK,
        vibration > VIBRATION_RISK,
    )
    return sum(1 for triggered in checks if triggered)


def is_critical(sm1: float, sm2: float, sm3: float, tilt: float, vibration: float) -> bool:
    return (
        (sm1 > 75 and sm2 > 80 and sm3 > 85)
        or (tilt > 5 and vibration > 0.08)
        or (sm1 > 75 and tilt > 5)
        or vibration > 0.20
    )


def classify_values(sm1: float, sm2: float, sm3: float, tilt: float, vibration: float) -> ClassificationResult:
    tier = AlertTier.NORMAL

    if count_risk_indicators(sm1, sm2, sm3, tilt, vibration) >= WARNING_INDICATOR_COUNT:
        tier = AlertTier.WARNING

    # Always evaluated; a critical combination wins over Warning
    if is_critical(sm1, sm2, sm3, tilt, vibration):
        tier = AlertTier.CRITICAL

    return ClassificationResult(tier=tier, message=tier.label)


def classify(reading: SensorReading) -> ClassificationResult:
    """Classify a normalized reading. Absent soil channels count as 0."""
    sm1, sm2, sm3 = reading.soil_values()
    return classify_values(sm1, sm2, sm3, reading.tilt, reading.vibration)
