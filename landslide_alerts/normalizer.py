"""
Turns a raw request body into a SensorReading.

Coercion is deliberately lenient: a field that is present but not numeric
becomes 0 instead of failing the request. Only the total absence of soil
moisture data is rejected.
"""

import logging
import math
from typing import Any, Mapping, Optional

from landslide_alerts.errors import ValidationError
from landslide_alerts.schemas import SensorReading

logger = logging.getLogger(__name__)

SOIL_MOISTURE_FIELDS = ("soil_moisture_1", "soil_moisture_2", "soil_moisture_3")


def coerce_number(value: Any) -> float:
    """Coerce a JSON value to float; anything non-numeric becomes 0."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return 0.0
    elif isinstance(value, str):
        try:
            number = float(value.strip()) if value.strip() else 0.0
        except ValueError:
            return 0.0
    else:
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def _optional_number(raw: Mapping[str, Any], field: str) -> Optional[float]:
    # Presence is what counts here: an explicit 0 or null is still "present"
    if field not in raw:
        return None
    return coerce_number(raw[field])


def normalize_reading(raw: Mapping[str, Any], default_device_id: str = "ESP32_001") -> SensorReading:
    """
    Build a SensorReading from an inbound body.

    Args:
        raw: Parsed JSON body
        default_device_id: Placeholder used when device_id is absent or empty

    Raises:
        ValidationError: if none of the soil moisture fields is present
    """
    if not any(field in raw for field in SOIL_MOISTURE_FIELDS):
        logger.warning("Rejecting reading without soil moisture fields")
        raise ValidationError("missing soil moisture")

    device_id = raw.get("device_id")
    if device_id is None or device_id == "":
        device_id = default_device_id

    reading = SensorReading(
        device_id=str(device_id),
        soil_moisture_1=_optional_number(raw, "soil_moisture_1"),
        soil_moisture_2=_optional_number(raw, "soil_moisture_2"),
        soil_moisture_3=_optional_number(raw, "soil_moisture_3"),
        tilt=coerce_number(raw.get("tilt", 0)),
        vibration=coerce_number(raw.get("vibration", 0)),
    )
    logger.debug(f"Normalized reading for {reading.device_id}: {reading.model_dump()}")
    return reading
