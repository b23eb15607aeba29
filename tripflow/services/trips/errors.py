"""
Error taxonomy for the trip status workflow.

Each service exception carries an ``ErrorType`` code and the HTTP status the
API layer answers with. Context keyword arguments are kept for structured
logging.
"""

import enum
from typing import Any


class ErrorType(str, enum.Enum):
    """Error codes returned to API clients."""

    EXCLUSIVE = "EXCLUSIVE"
    EXISTED = "EXISTED"
    UNKNOWN = "UNKNOWN"
    VALIDATION = "VALIDATION"


class TripWorkflowError(Exception):
    """Base exception for trip workflow errors."""

    error_type: ErrorType = ErrorType.UNKNOWN
    status_code: int = 500

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context


class ExclusiveUpdateError(TripWorkflowError):
    """Raised when the trip changed since the client last read it."""

    error_type = ErrorType.EXCLUSIVE
    status_code = 409


class BillOfLadingExistsError(TripWorkflowError):
    """Raised when the bill-of-lading number is used by another trip."""

    error_type = ErrorType.EXISTED
    status_code = 400


class TripValidationError(TripWorkflowError):
    """Raised when a request is missing data the workflow needs."""

    error_type = ErrorType.VALIDATION
    status_code = 400


class DriverReportNotFoundError(TripWorkflowError):
    """Raised when no driver report step exists for a required status."""


class AttachmentUploadError(TripWorkflowError):
    """Raised when an attachment cannot be copied into durable storage."""


class TripTransactionError(TripWorkflowError):
    """Raised when the transactional write fails and was rolled back."""
