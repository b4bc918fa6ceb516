"""Domain error taxonomy shared by services and the API layer."""

from fastapi import status


class ServiceError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceError):
    """Unknown source, entry or job."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ServiceError):
    """A scrape job is already active for the source."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, source_id: int | None = None):
        super().__init__(message)
        self.source_id = source_id


class InvalidArgumentError(ServiceError):
    """Out-of-range or missing input."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED


class UnavailableError(ServiceError):
    """Transport or analysis backend is down."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class InternalError(ServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
