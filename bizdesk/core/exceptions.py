"""
core/exceptions.py
------------------
Domain exceptions raised by services and dependencies.

Services never build HTTP responses. They raise one of these and the
handler registered in main.py renders it as:

    {"detail": <message>, "code": <machine code, optional>, ...extra}
"""

from typing import Any, Dict, Optional

from fastapi import status


class ServiceError(Exception):
    """Base class. Defaults to 400 Bad Request."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        **extra: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.message}
        if self.code:
            body["code"] = self.code
        body.update(self.extra)
        return body


class ValidationFailed(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationFailed(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDenied(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT


class TooManyRequests(ServiceError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
