"""
Error taxonomy for the ingestion service.

Every error carries the HTTP status it maps to; main.py renders them as
{"error": ..., "details": ...} bodies.
"""

from typing import Optional


class IngestError(Exception):
    """Base class for errors that are reported back to the caller."""

    status_code = 500

    def __init__(self, error: str, details: Optional[str] = None):
        super().__init__(error)
        self.error = error
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(IngestError):
    """Client-supplied data is insufficient."""

    status_code = 400


class NotFoundError(IngestError):
    """Referenced user or phone number does not exist."""

    status_code = 404


class DependencyError(IngestError):
    """A store, directory or SMS transport call failed."""

    status_code = 500
