from typing import Iterable, Optional

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ServiceError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST

    @classmethod
    def missing(cls, fields: Iterable[str]) -> "ValidationError":
        return cls(f"Required fields: {', '.join(fields)}")


class ConfigurationError(ServiceError):
    """Hostel setup does not allow the operation (e.g. no monthly fee categories)."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthorizationError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT


class DuplicateGenerationError(ConflictError):
    """Dues were already generated for the hostel and month."""

    def __init__(self, hostel_id: int, month_year: str) -> None:
        super().__init__(f"Dues already generated for {month_year}")
        self.hostel_id = hostel_id
        self.month_year = month_year
