"""
Translation of service errors into HTTP responses.
"""

from fastapi import HTTPException, status

from castops.services.errors import CastingServiceError, InvalidArgumentError


def to_http_exception(error: CastingServiceError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.to_detail())


def invalid_argument(message: str) -> HTTPException:
    return to_http_exception(InvalidArgumentError(message))


def internal_error(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"code": "internal", "message": message},
    )


def require_user(claims: dict) -> str:
    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return user_id
