"""API-level exceptions rendered by the app's APIError handler."""

from typing import Any


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int = 400, details: Any = None):
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ServiceUnavailableError(APIError):
    """A backing service (e.g. history storage) is disabled or unreachable."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message=message, status_code=503, details=details)
