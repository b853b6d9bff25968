import json
import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import FastAPI, Response, Request, Depends, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session

from landslide_alerts.config import settings
from landslide_alerts.errors import DependencyError, IngestError, ValidationError, NotFoundError
from landslide_alerts.logging_utils import setup_logging, RequestLoggingMiddleware, log_ingest_data
from landslide_alerts.metrics import get_metrics, get_metrics_content_type
from landslide_alerts.pipeline import ingest_reading
from landslide_alerts.sms import SmsTransport, TwilioSmsClient
from landslide_alerts.storage import init_db, check_db_health, get_db, get_readings, get_user_phone
from landslide_alerts.schemas import (
    AlertResponse,
    ErrorResponse,
    HealthResponse,
    ReadingsListResponse,
    SensorIngestResponse,
    StoredReadingResponse,
)


# Setup structured JSON logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: create tables. Nothing to clean up on shutdown.
    """
    init_db()
    if not settings.sms_configured:
        logger.warning("Twilio credentials missing: SMS alerts will fail")
    logger.info("Ready to receive data from field devices")
    yield


app = FastAPI(
    title="Landslide Sensor API",
    description="Ingests field telemetry, classifies landslide risk and sends SMS alerts",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(IngestError)
async def ingest_error_handler(request: Request, exc: IngestError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def get_sms_transport() -> SmsTransport:
    """Dependency providing the SMS transport; tests override it."""
    return TwilioSmsClient(
        account_sid=settings.TWILIO_ACCOUNT_SID,
        auth_token=settings.TWILIO_AUTH_TOKEN,
        base_url=settings.TWILIO_API_BASE_URL,
        timeout=settings.SMS_TIMEOUT_SECONDS,
    )


async def read_body(request: Request) -> dict:
    """JSON object or urlencoded form; devices post either."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/x-www-form-urlencoded"):
        form = await request.form()
        return dict(form)

    raw_body = await request.body()
    if not raw_body:
        return {}
    try:
        body = json.loads(raw_body)
    except json.JSONDecodeError as e:
        logger.warning(f"Invalid JSON: {e}")
        raise ValidationError("Invalid JSON body", details=str(e))
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


# =============================================================================
# Health Check Routes
# =============================================================================

@app.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "Sensor Web Server is running. POST sensor data to /sensors"


@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """
    Liveness probe - always returns 200 once the app is running.
    """
    return HealthResponse(status="ok")


@app.get("/health/ready", response_model=HealthResponse)
async def health_ready(response: Response) -> HealthResponse:
    """
    Readiness probe - returns 200 only if:
    1. Twilio credentials and sender number are configured
    2. DB is reachable and schema is applied

    Otherwise returns 503 (Service Unavailable).
    """
    if not settings.sms_configured:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not_ready", reason="Twilio credentials not configured")

    if not check_db_health():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not_ready", reason="Database not reachable or schema not applied")

    return HealthResponse(status="ready")


# =============================================================================
# Sensor Routes
# =============================================================================

@app.post(
    "/sensors",
    response_model=SensorIngestResponse,
    responses={
        400: {"model": ErrorResponse, "description": "No soil moisture fields"},
        500: {"model": ErrorResponse, "description": "Store or state failure"},
    }
)
async def post_sensors(
    request: Request,
    db: Session = Depends(get_db),
    transport: SmsTransport = Depends(get_sms_transport),
) -> SensorIngestResponse:
    """
    Ingest one reading from a field device.

    The reading is always stored. Warning and Critical readings notify the
    device's subscribers unless an alert was attempted for the device within
    the cooldown window.
    """
    body = await read_body(request)
    outcome = await ingest_reading(body, db, transport, settings)

    log_ingest_data(
        request=request,
        device_id=outcome.reading.device_id,
        alert_level=int(outcome.result.tier),
        sms_sent_count=outcome.sms_sent_count,
        suppressed=outcome.suppressed,
    )

    return SensorIngestResponse(
        alert_level=int(outcome.result.tier),
        alert_message=outcome.result.message,
        sms_sent_count=outcome.sms_sent_count,
    )


@app.get("/sensors/{device_id}/readings", response_model=ReadingsListResponse)
async def list_readings(
    device_id: str,
    limit: Annotated[int, Query(ge=1, le=500, description="Maximum readings to return")] = 50,
    offset: Annotated[int, Query(ge=0, description="Readings to skip")] = 0,
    db: Session = Depends(get_db),
) -> ReadingsListResponse:
    """
    Stored readings for a device, oldest first.
    """
    records, total = get_readings(db, device_id, limit=limit, offset=offset)
    data = [
        StoredReadingResponse(
            key=str(record.id),
            device_id=record.device_id,
            soil_moisture_1=record.soil_moisture_1,
            soil_moisture_2=record.soil_moisture_2,
            soil_moisture_3=record.soil_moisture_3,
            tilt=record.tilt,
            vibration=record.vibration,
            alert_level=record.alert_level,
            alert_message=record.alert_message,
            timestamp=record.timestamp,
        )
        for record in records
    ]
    return ReadingsListResponse(device_id=device_id, data=data, total=total, limit=limit, offset=offset)


# =============================================================================
# Manual Alert Route
# =============================================================================

@app.post(
    "/alert",
    response_model=AlertResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing uid or message"},
        404: {"model": ErrorResponse, "description": "User phone not found"},
        500: {"model": ErrorResponse, "description": "SMS failed"},
    }
)
async def post_alert(
    request: Request,
    db: Session = Depends(get_db),
    transport: SmsTransport = Depends(get_sms_transport),
) -> AlertResponse:
    """
    Send an SMS to one user by uid. Meant for testing the SMS path.
    """
    body = await read_body(request)
    uid = body.get("uid")
    message = body.get("message")
    device_id = body.get("deviceId") or "manual"

    if not uid or not message:
        raise ValidationError("Missing uid or message")

    phone = get_user_phone(db, str(uid))
    if not phone:
        raise NotFoundError("User phone not found")

    try:
        await transport.send(to=phone, from_=settings.TWILIO_PHONE_NUMBER, body=str(message))
    except IngestError:
        raise
    except Exception as e:
        logger.error(f"SMS transport error: {e}")
        raise DependencyError("Failed to send SMS", details=str(e)) from e
    logger.info(f"Manual SMS sent to {phone} for user {uid} (device {device_id})")

    return AlertResponse(sentTo=phone)


# =============================================================================
# Metrics Route
# =============================================================================

@app.get("/metrics")
async def metrics() -> Response:
    """
    Expose Prometheus metrics.
    """
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )
