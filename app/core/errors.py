# app/core/errors.py
"""
Error taxonomy shared by the service layer.

Services raise these instead of HTTPException so they stay usable outside a
request; app.main renders them as {"error": code, "message": text}.
"""


class ServiceError(Exception):
    status_code = 500
    code = "internal"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ServiceError):
    status_code = 422
    code = "invalid_input"


class NotFound(ServiceError):
    status_code = 404
    code = "not_found"


class Forbidden(ServiceError):
    status_code = 403
    code = "forbidden"


class Conflict(ServiceError):
    status_code = 409
    code = "conflict"


class PreconditionFailed(ServiceError):
    status_code = 412
    code = "precondition_failed"


class Unauthenticated(ServiceError):
    status_code = 401
    code = "unauthenticated"


class Internal(ServiceError):
    status_code = 500
    code = "internal"
