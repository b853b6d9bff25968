import logging
import time
from datetime import datetime, timezone
from typing import Generator, Optional, Tuple

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session, declarative_base

from landslide_alerts.config import settings
from landslide_alerts.errors import DependencyError

logger = logging.getLogger(__name__)

# check_same_thread=False is required for SQLite to work with FastAPI's async
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=connect_args,
    echo=False,
)

# Create SessionLocal class for creating database sessions
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for SQLAlchemy models
Base = declarative_base()


def init_db() -> None:
    """
    Initialize the database by creating all tables.
    Called during application startup.
    """
    logger.debug(f"Initializing database with URL: {settings.DATABASE_URL}")
    try:
        # Import models to register them with Base.metadata
        from landslide_alerts import models  # noqa: F401

        logger.debug("Creating database tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session.
    Yields a session and ensures it's closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_health() -> bool:
    """
    Check if the database is reachable and the readings table exists.
    """
    logger.debug("Checking database health...")
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        if not inspect(engine).has_table("sensor_readings"):
            logger.error("Database schema not applied: 'sensor_readings' table not found")
            return False
        logger.debug("Database health check passed")
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


# =============================================================================
# Reading Store
# =============================================================================

def append_reading(db: Session, reading, result) -> str:
    """
    Append a classified reading to the device's log.

    Args:
        db: Database session
        reading: Normalized SensorReading
        result: ClassificationResult for the reading

    Returns:
        Storage key of the new record

    Raises:
        DependencyError: if the write fails
    """
    from landslide_alerts.models import SensorReadingRecord

    logger.debug(f"Storing reading for {reading.device_id}: tier={int(result.tier)}")

    record = SensorReadingRecord(
        device_id=reading.device_id,
        soil_moisture_1=reading.soil_moisture_1,
        soil_moisture_2=reading.soil_moisture_2,
        soil_moisture_3=reading.soil_moisture_3,
        tilt=reading.tilt,
        vibration=reading.vibration,
        alert_level=int(result.tier),
        alert_message=result.message,
        timestamp=int(time.time() * 1000),
        created_at=_utc_now_iso(),
    )
    try:
        db.add(record)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to store reading for {reading.device_id}: {e}")
        raise DependencyError("Server error", details=str(e)) from e

    key = str(record.id)
    logger.info(f"Data saved for {reading.device_id} at key {key}")
    return key


def get_readings(db: Session, device_id: str, limit: int = 50, offset: int = 0) -> Tuple[list, int]:
    """
    Retrieve stored readings for a device in insertion order.

    Returns:
        Tuple of (records list, total count for the device)
    """
    from landslide_alerts.models import SensorReadingRecord

    query = db.query(SensorReadingRecord).filter(SensorReadingRecord.device_id == device_id)
    total = query.count()
    records = query.order_by(SensorReadingRecord.id.asc()).offset(offset).limit(limit).all()
    logger.debug(f"Retrieved {len(records)} of {total} readings for {device_id}")
    return records, total


# =============================================================================
# Device Alert State
# =============================================================================

class SqlDeviceStateStore:
    """
    Keyed store of last-alert-sent timestamps, backed by device_alert_state.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, device_id: str) -> Optional[datetime]:
        from landslide_alerts.models import DeviceAlertState

        try:
            state = self.db.get(DeviceAlertState, device_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read alert state for {device_id}: {e}")
            raise DependencyError("Failed to read device alert state", details=str(e)) from e

        if state is None or state.last_alert_sent is None:
            return None
        try:
            when = datetime.fromisoformat(state.last_alert_sent.replace("Z", "+00:00"))
        except ValueError as e:
            logger.error(f"Unreadable alert state for {device_id}: {state.last_alert_sent!r}")
            raise DependencyError("Failed to read device alert state", details=str(e)) from e
        # Values written without an offset are taken as UTC
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        return when

    def set(self, device_id: str, when: datetime) -> None:
        from landslide_alerts.models import DeviceAlertState

        stamp = when.astimezone(timezone.utc).isoformat()
        try:
            state = self.db.get(DeviceAlertState, device_id)
            if state is None:
                state = DeviceAlertState(device_id=device_id)
                self.db.add(state)
            state.last_alert_sent = stamp
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update alert state for {device_id}: {e}")
            raise DependencyError("Failed to update device alert state", details=str(e)) from e
        logger.debug(f"Alert state for {device_id} set to {stamp}")


# =============================================================================
# Directory
# =============================================================================

def list_subscribers(db: Session, device_id: str) -> list[str]:
    """Phone numbers subscribed to a device, unfiltered."""
    from landslide_alerts.models import Subscriber

    try:
        rows = db.query(Subscriber.phone_number).filter(Subscriber.device_id == device_id).all()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to list subscribers for {device_id}: {e}")
        raise DependencyError("Failed to list subscribers", details=str(e)) from e
    return [row.phone_number for row in rows]


def get_user_phone(db: Session, uid: str) -> Optional[str]:
    """
    Look up a user's phone number.

    Returns:
        The phone number, or None if the user is unknown or the number is
        not in international format (leading "+").
    """
    from landslide_alerts.models import User

    try:
        user = db.get(User, uid)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching user phone: {e}")
        raise DependencyError("Failed to look up user", details=str(e)) from e

    if user is None:
        logger.info(f"User not found: {uid}")
        return None

    phone = user.phone_number
    if not phone or not phone.startswith("+"):
        logger.info(f"Invalid or missing phone number for user {uid}")
        return None

    return phone
