"""Domain error taxonomy shared by all services"""

from typing import Optional


class MarketplaceError(Exception):
    """Base class for errors surfaced to the caller as a user-visible message"""

    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(MarketplaceError):
    """Missing or malformed input, raised before any network call"""

    status_code = 422


class NotFoundError(MarketplaceError):
    status_code = 404


class PermissionDeniedError(MarketplaceError):
    status_code = 403


class InvalidTransitionError(MarketplaceError):
    """Requested status change is not allowed from the current status"""

    status_code = 409

    def __init__(self, current_status: str, new_status: str):
        super().__init__(f"Cannot change appointment status from '{current_status}' to '{new_status}'")
        self.current_status = current_status
        self.new_status = new_status


class UploadError(MarketplaceError):
    """Image rejected or object storage write failed; the dependent write is aborted"""

    status_code = 400


class StoreError(MarketplaceError):
    """Database failure on a CRUD call"""

    status_code = 503


class GenerationError(MarketplaceError):
    """Image generation provider failure, message passed through verbatim"""

    status_code = 502
