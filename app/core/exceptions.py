# app/core/exceptions.py
from typing import Any, Dict, Optional


class BulkUploadError(Exception):
    """
    Raised when a bulk upload has to stop before anything is written.
    Carries the HTTP status and the response body the router sends back.
    """

    status_code = 400

    def __init__(self, message: str, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.payload = payload or {}


class IntakeError(BulkUploadError):
    """Malformed, empty or oversized request body."""


class BatchValidationError(BulkUploadError):
    """At least one record has field errors; the whole batch is rejected."""


class UnknownEntityError(BulkUploadError):
    status_code = 404
