"""
Concurrent SMS fan-out to a device's subscribers.

All sends are gathered; one failure never cancels or blocks the others.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable

from landslide_alerts.classifier import ClassificationResult
from landslide_alerts.metrics import record_sms_outcome
from landslide_alerts.schemas import SensorReading
from landslide_alerts.sms import SmsTransport

logger = logging.getLogger(__name__)


@dataclass
class FanoutFailure:
    phone_number: str
    error: str


@dataclass
class FanoutResult:
    sent: int = 0
    failures: list[FanoutFailure] = field(default_factory=list)


def _fmt(value) -> str:
    return "n/a" if value is None else f"{value:g}"


def render_alert_message(reading: SensorReading, result: ClassificationResult) -> str:
    """SMS body: tier label and number, device, all soil channels, tilt and vibration."""
    return (
        f"LANDSLIDE ALERT: {result.message} (Level {int(result.tier)})\n"
        f"Device: {reading.device_id}\n"
        f"Soil moisture: {_fmt(reading.soil_moisture_1)}% / "
        f"{_fmt(reading.soil_moisture_2)}% / {_fmt(reading.soil_moisture_3)}%\n"
        f"Tilt: {_fmt(reading.tilt)} deg\n"
        f"Vibration: {_fmt(reading.vibration)} g"
    )


def eligible_numbers(numbers: Iterable[str]) -> list[str]:
    """Keep numbers in international format; others are skipped silently."""
    return [number for number in numbers if isinstance(number, str) and number.startswith("+")]


async def fan_out(
    device_id: str,
    message: str,
    list_subscribers: Callable[[str], list[str]],
    transport: SmsTransport,
    from_number: str,
) -> FanoutResult:
    """
    Send `message` to every eligible subscriber of `device_id` concurrently.

    Args:
        device_id: Device the alert is about
        message: Rendered alert text
        list_subscribers: Directory lookup returning phone numbers for a device
        transport: SMS transport
        from_number: Sender number

    Returns:
        FanoutResult with the number of successful sends and per-target failures
    """
    numbers = eligible_numbers(list_subscribers(device_id))
    if not numbers:
        logger.info(f"No eligible subscribers for {device_id}")
        return FanoutResult()

    outcomes = await asyncio.gather(
        *(transport.send(to=number, from_=from_number, body=message) for number in numbers),
        return_exceptions=True,
    )

    result = FanoutResult()
    for number, outcome in zip(numbers, outcomes):
        if isinstance(outcome, BaseException):
            logger.error(f"SMS to {number} for {device_id} failed: {outcome}")
            result.failures.append(FanoutFailure(phone_number=number, error=str(outcome)))
            record_sms_outcome("failed")
        else:
            result.sent += 1
            record_sms_outcome("sent")

    logger.info(f"Alert for {device_id} sent to {result.sent} of {len(numbers)} subscribers")
    return result
