"""
Pydantic schemas for readings and API responses.

This module contains:
- SensorReading, the normalized form of an inbound reading
- Response models for API responses

Request bodies for /sensors and /alert are parsed by hand (see normalizer.py
and main.py) because their validation rules map to 400, not 422.
"""

from typing import Optional

from pydantic import BaseModel, Field


# =============================================================================
# Domain Models
# =============================================================================

class SensorReading(BaseModel):
    """
    A reading after normalization.

    Soil moisture channels are None when absent from the request; they are
    stored as null and classified as 0.
    """
    device_id: str = Field(..., min_length=1, description="Reporting device")
    soil_moisture_1: Optional[float] = Field(None, description="Soil moisture channel 1 (%)")
    soil_moisture_2: Optional[float] = Field(None, description="Soil moisture channel 2 (%)")
    soil_moisture_3: Optional[float] = Field(None, description="Soil moisture channel 3 (%)")
    tilt: float = Field(0.0, description="Tilt in degrees")
    vibration: float = Field(0.0, description="Vibration in g")

    def soil_values(self) -> tuple[float, float, float]:
        """Soil channels with absent values defaulted to 0."""
        return tuple(
            value if value is not None else 0.0
            for value in (self.soil_moisture_1, self.soil_moisture_2, self.soil_moisture_3)
        )


# =============================================================================
# Pydantic Response Models
# =============================================================================

class SensorIngestResponse(BaseModel):
    """Response model for a processed reading."""
    success: bool = Field(default=True)
    alert_level: int = Field(..., ge=1, le=3, description="Tier number: 1 normal, 2 warning, 3 critical")
    alert_message: str = Field(..., description="Tier label")
    sms_sent_count: int = Field(..., ge=0, description="SMS sends that completed without error")


class AlertResponse(BaseModel):
    """Response model for a manually triggered SMS."""
    success: bool = Field(default=True)
    sentTo: str = Field(..., description="Phone number the SMS was sent to")


class ErrorResponse(BaseModel):
    """Response model for error responses."""
    error: str = Field(..., description="Error description")
    details: Optional[str] = Field(None, description="Underlying failure, when available")


class StoredReadingResponse(BaseModel):
    """A stored reading as returned by the readings listing."""
    key: str = Field(..., description="Storage key")
    device_id: str
    soil_moisture_1: Optional[float] = None
    soil_moisture_2: Optional[float] = None
    soil_moisture_3: Optional[float] = None
    tilt: float
    vibration: float
    alert_level: int
    alert_message: str
    timestamp: int = Field(..., description="Server time in epoch milliseconds")


class ReadingsListResponse(BaseModel):
    """
    Response model for GET /sensors/{device_id}/readings.

    Readings are in insertion order.
    """
    device_id: str
    data: list[StoredReadingResponse] = Field(default_factory=list)
    total: int = Field(..., ge=0, description="Total readings stored for the device")
    limit: int = Field(..., ge=1, le=500)
    offset: int = Field(..., ge=0)


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")
