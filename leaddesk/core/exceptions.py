"""
Custom exceptions for LeadDesk API.
Provides consistent error handling across the application.
"""
from typing import Optional

from fastapi import HTTPException, status


class LeadDeskException(Exception):
    """Base exception for LeadDesk"""
    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(LeadDeskException):
    """Resource not found"""
    def __init__(self, resource: str = "Resource", resource_id: str = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        super().__init__(message)


class AlreadyExistsError(LeadDeskException):
    """Resource already exists"""
    def __init__(self, resource: str = "Resource", field: str = None, value: str = None):
        if field and value:
            message = f"{resource} with {field} '{value}' already exists"
        else:
            message = f"{resource} already exists"
        super().__init__(message)


class ForbiddenError(LeadDeskException):
    """Access denied"""
    def __init__(self, message: str = "You don't have permission to access this resource"):
        super().__init__(message)


class ExternalServiceError(LeadDeskException):
    """External service call failed"""
    def __init__(self, service: str = "External service", message: str = None):
        msg = f"{service} call failed"
        if message:
            msg = f"{msg}: {message}"
        self.service = service
        super().__init__(msg)


THROTTLED_STATUS_CODES = {429, 502, 503, 504}
THROTTLED_MARKERS = ("quota", "rate limit", "ratelimit", "too many requests", "unavailable")


class MailProviderError(ExternalServiceError):
    """Mail provider (Graph, Gmail) call failed"""
    def __init__(self, service: str = "Mail provider", message: str = None, status_code: Optional[int] = None):
        self.status_code = status_code
        self.detail = message or ""
        super().__init__(service, message)

    @property
    def is_throttled(self) -> bool:
        """True for rate-limit, quota and unavailable errors."""
        if self.status_code in THROTTLED_STATUS_CODES:
            return True
        detail = self.detail.lower()
        return any(marker in detail for marker in THROTTLED_MARKERS)


# HTTP Exception helpers
def raise_not_found(resource: str = "Resource", resource_id: str = None):
    """Raise 404 HTTPException"""
    err = NotFoundError(resource, resource_id)
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=err.message)


def raise_already_exists(resource: str = "Resource", field: str = None, value: str = None):
    """Raise 400 HTTPException for duplicate"""
    err = AlreadyExistsError(resource, field, value)
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=err.message)


def raise_unauthorized(message: str = "Could not validate credentials"):
    """Raise 401 HTTPException"""
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def raise_forbidden(message: str = "You don't have permission to access this resource"):
    """Raise 403 HTTPException"""
    err = ForbiddenError(message)
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=err.message)


def raise_bad_request(message: str):
    """Raise 400 HTTPException"""
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def raise_external_error(err: ExternalServiceError, message: str = None):
    """Raise 502 (or 503 when throttled) for a failed provider call."""
    code = status.HTTP_502_BAD_GATEWAY
    if isinstance(err, MailProviderError) and err.is_throttled:
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    raise HTTPException(status_code=code, detail=message or f"{err.service} is unavailable, try again later")
