"""
Per-device alert cooldown.

A device is Armed when no alert was attempted within the cooldown window and
Cooling otherwise. The gate reads and writes through a keyed state store
handed to it; it holds no state of its own.

Read-then-write is not synchronized across requests, so two near-simultaneous
readings for one device can both see Armed and both dispatch.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class DeviceStateStore(Protocol):
    def get(self, device_id: str) -> Optional[datetime]: ...

    def set(self, device_id: str, when: datetime) -> None: ...


class CooldownGate:
    def __init__(self, store: DeviceStateStore, cooldown_minutes: float = 15):
        self.store = store
        self.window = timedelta(minutes=cooldown_minutes)

    def last_alert_sent(self, device_id: str) -> datetime:
        """Last attempt time, epoch when the device has no record yet."""
        return self.store.get(device_id) or EPOCH

    def is_armed(self, device_id: str, now: datetime) -> bool:
        elapsed = now - self.last_alert_sent(device_id)
        armed = elapsed >= self.window
        if not armed:
            logger.info(
                f"Alert for {device_id} suppressed: last attempt {elapsed.total_seconds():.0f}s ago"
            )
        return armed

    def record_attempt(self, device_id: str, now: datetime) -> None:
        """Enter Cooling. Called after every fan-out attempt, whatever the send outcomes."""
        self.store.set(device_id, now)
