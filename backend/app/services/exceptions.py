from typing import Optional


class ReturnServiceException(Exception):
    """Base for every error the return-request engine reports to callers."""

    status_code = 400

    def __init__(self, message: str, detail: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class NotFound(ReturnServiceException):
    status_code = 404


class StoreError(ReturnServiceException):
    """Infrastructure failure; callers see a generic message."""

    status_code = 500


class Forbidden(ReturnServiceException):
    status_code = 403


class Unauthenticated(ReturnServiceException):
    status_code = 401


class ValidationError(ReturnServiceException):
    status_code = 400


class InvalidStatus(ValidationError):
    pass


class DuplicatePending(ReturnServiceException):
    status_code = 409
