"""
SQLAlchemy ORM models for database tables.

This module contains database table definitions using SQLAlchemy.
For Pydantic schemas, see schemas.py.
"""

from sqlalchemy import BigInteger, Column, Float, Integer, String

from landslide_alerts.storage import Base


class SensorReadingRecord(Base):
    """
    Append-only log of classified readings.

    Table: sensor_readings
    The autoincrement id is the storage key and fixes insertion order.
    """
    __tablename__ = "sensor_readings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    device_id = Column(String, nullable=False, index=True)
    soil_moisture_1 = Column(Float, nullable=True)
    soil_moisture_2 = Column(Float, nullable=True)
    soil_moisture_3 = Column(Float, nullable=True)
    tilt = Column(Float, nullable=False)
    vibration = Column(Float, nullable=False)
    alert_level = Column(Integer, nullable=False)
    alert_message = Column(String, nullable=False)
    timestamp = Column(BigInteger, nullable=False)  # Server time, epoch ms
    created_at = Column(String, nullable=False)  # Server time ISO-8601


class DeviceAlertState(Base):
    """
    Cooldown state, one row per device.

    Created on the first alert-eligible reading; never deleted by the service.
    """
    __tablename__ = "device_alert_state"

    device_id = Column(String, primary_key=True)
    last_alert_sent = Column(String, nullable=True)  # ISO-8601 UTC


class Subscriber(Base):
    """Phone number subscribed to alerts for one device."""
    __tablename__ = "subscribers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    device_id = Column(String, nullable=False, index=True)
    phone_number = Column(String, nullable=False)


class User(Base):
    """App user, looked up by uid for manual alerts."""
    __tablename__ = "users"

    uid = Column(String, primary_key=True)
    phone_number = Column(String, nullable=True)
