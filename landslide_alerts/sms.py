"""
SMS transport backed by the Twilio REST Messages API.
"""

import logging
from typing import Optional, Protocol

import httpx

from landslide_alerts.errors import DependencyError

logger = logging.getLogger(__name__)


class SmsTransport(Protocol):
    async def send(self, to: str, from_: str, body: str) -> str: ...


class TwilioSmsClient:
    """
    Sends one SMS per call. No retries; failures raise DependencyError.

    Args:
        account_sid: Twilio account SID (also the basic-auth username)
        auth_token: Twilio auth token
        base_url: API root, overridable for testing
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        base_url: str = "https://api.twilio.com",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/2010-04-01/Accounts/{self.account_sid}/Messages.json"

    async def send(self, to: str, from_: str, body: str) -> str:
        """
        Send an SMS.

        Returns:
            The message SID assigned by Twilio
        """
        if not self.account_sid or not self.auth_token:
            raise DependencyError("Failed to send SMS", details="Twilio credentials are not configured")

        try:
            async with httpx.AsyncClient(
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.post(
                    self.messages_url,
                    data={"To": to, "From": from_, "Body": body},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = e.response.text
            logger.error(f"Twilio rejected SMS to {to}: {e.response.status_code} {detail}")
            raise DependencyError("Failed to send SMS", details=detail) from e
        except httpx.HTTPError as e:
            logger.error(f"Twilio request for {to} failed: {e}")
            raise DependencyError("Failed to send SMS", details=str(e)) from e

        sid = response.json().get("sid", "")
        logger.debug(f"SMS to {to} accepted, sid={sid}")
        return sid
