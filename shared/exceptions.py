"""Error taxonomy shared by the store and the HTTP layer."""
from typing import List, Optional


class TrackingServiceError(Exception):
    """Base exception for all tracking service errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TrackingServiceError):
    """Missing or invalid client input."""

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = fields or []


class NotFoundError(TrackingServiceError):
    """Referenced tracking identifier does not exist."""

    def __init__(self, tracking_id: str, message: str = "Tracking ID not found"):
        super().__init__(message)
        self.tracking_id = tracking_id


class StorageError(TrackingServiceError):
    """Any failure raised by the persistence layer."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
        self.detail = str(cause) if cause is not None else None
