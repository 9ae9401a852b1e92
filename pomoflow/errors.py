"""Error taxonomy shared by the services and the HTTP boundary."""

from __future__ import annotations


class ServiceError(Exception):
    status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    status = 400


class UnauthorizedError(ServiceError):
    status = 401


class NotFoundError(ServiceError):
    status = 404


class UpstreamError(ServiceError):
    """The external sentiment classifier failed or is not configured."""

    status = 500
    public_message = "sentiment service unavailable"


class StorageError(ServiceError):
    status = 500
    public_message = "storage failure"
