# link-shortener/errors.py
from typing import Dict, List, Optional

from fastapi import status


class ServiceError(Exception):
    """
    Base class for errors raised by the service layer. Each subclass carries
    the HTTP status it maps to; main.py turns them into JSON responses.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Validation failed"

    def __init__(self, field: str, message: str):
        super().__init__("Validation failed")
        self.errors: List[Dict[str, str]] = [{"field": field, "message": message}]


class Conflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource already exists"


class UserExists(Conflict):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "User already exists"


class Unauthorized(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Token is not valid"


class InvalidCredentials(Unauthorized):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid credentials"


class Forbidden(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not the owner of this link"


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "URL not found"


class InternalError(ServiceError):
    pass
