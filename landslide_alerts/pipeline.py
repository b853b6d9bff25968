"""
Ingestion pipeline for one reading:

    normalize -> classify -> store -> cooldown check -> fan-out -> cooldown update

Only the fan-out step runs anything concurrently. Nothing is retried.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from landslide_alerts.classifier import AlertTier, ClassificationResult, classify
from landslide_alerts.config import Settings
from landslide_alerts.cooldown import CooldownGate
from landslide_alerts.errors import DependencyError
from landslide_alerts.fanout import fan_out, render_alert_message
from landslide_alerts.metrics import record_alert_suppressed, record_reading
from landslide_alerts.normalizer import normalize_reading
from landslide_alerts.schemas import SensorReading
from landslide_alerts.sms import SmsTransport
from landslide_alerts.storage import SqlDeviceStateStore, append_reading, list_subscribers

logger = logging.getLogger(__name__)


@dataclass
class IngestOutcome:
    reading: SensorReading
    result: ClassificationResult
    key: str
    sms_sent_count: int = 0
    suppressed: bool = False


def _subscribers_or_empty(db: Session, device_id: str) -> list[str]:
    # A directory failure during fan-out must not fail the request
    try:
        return list_subscribers(db, device_id)
    except DependencyError as e:
        logger.error(f"Subscriber lookup for {device_id} failed, no SMS sent: {e.details}")
        return []


async def ingest_reading(
    raw: Mapping[str, Any],
    db: Session,
    transport: SmsTransport,
    settings: Settings,
    now: Optional[datetime] = None,
) -> IngestOutcome:
    """
    Process one inbound reading.

    Raises:
        ValidationError: no soil moisture fields in `raw`
        DependencyError: the reading could not be stored, or cooldown state
            could not be read or written
    """
    reading = normalize_reading(raw, default_device_id=settings.DEFAULT_DEVICE_ID)
    result = classify(reading)

    key = append_reading(db, reading, result)
    record_reading(int(result.tier))
    outcome = IngestOutcome(reading=reading, result=result, key=key)

    if result.tier < AlertTier.WARNING:
        return outcome

    now = now or datetime.now(timezone.utc)
    gate = CooldownGate(SqlDeviceStateStore(db), cooldown_minutes=settings.ALERT_COOLDOWN_MINUTES)

    if not gate.is_armed(reading.device_id, now):
        record_alert_suppressed()
        outcome.suppressed = True
        return outcome

    logger.warning(f"{result.message} for {reading.device_id}, notifying subscribers")
    fanout_result = await fan_out(
        reading.device_id,
        render_alert_message(reading, result),
        partial(_subscribers_or_empty, db),
        transport,
        settings.TWILIO_PHONE_NUMBER,
    )
    gate.record_attempt(reading.device_id, now)

    outcome.sms_sent_count = fanout_result.sent
    return outcome
