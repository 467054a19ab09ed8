"""
Error taxonomy shared by the services and the HTTP/socket layers.

Every error carries a human-readable message and the HTTP status it maps to.
"""


class ServiceError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(ServiceError):
    status_code = 404


class Forbidden(ServiceError):
    status_code = 403


class Conflict(ServiceError):
    status_code = 400


class InvalidOperation(ServiceError):
    status_code = 400


class ValidationError(ServiceError):
    status_code = 400


class Unauthorized(ServiceError):
    status_code = 401


class Unavailable(ServiceError):
    status_code = 503
