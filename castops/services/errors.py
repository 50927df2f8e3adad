"""
Error taxonomy for casting operations.

Only caller-facing failures live here: bad input, missing records, missing
configuration and rejected status transitions. Downstream adapter failures
are absorbed by the orchestrators and never surface as these.
"""


class CastingServiceError(Exception):
    """Base exception carrying a machine-readable code and HTTP status."""

    code = "internal"
    status_code = 500

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.context = context

    def to_detail(self) -> dict:
        return {"code": self.code, "message": str(self)}


class InvalidArgumentError(CastingServiceError):
    code = "invalid-argument"
    status_code = 400


class NotFoundError(CastingServiceError):
    code = "not-found"
    status_code = 404


class FailedPreconditionError(CastingServiceError):
    code = "failed-precondition"
    status_code = 412


class PermissionDeniedError(CastingServiceError):
    code = "permission-denied"
    status_code = 403


class InvalidTransitionError(CastingServiceError):
    code = "invalid-transition"
    status_code = 409
