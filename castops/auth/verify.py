"""
Bearer token checks for the casting API.

Tokens are JWTs issued by the identity provider and verified against its
JWKS (AUTH_JWKS_URL, audience AUTH_AUDIENCE). Routes depend on
`auth_dependency` for the decoded claims; `is_admin` picks the status
transition table and gates deletion.
"""

from functools import lru_cache

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from castops.config import settings

SUPPORTED_ALGORITHMS = ["ES256", "RS256"]

_security = HTTPBearer()


@lru_cache(maxsize=1)
def _jwk_client() -> PyJWKClient:
    # Keys are cached by the client between requests
    return PyJWKClient(settings.AUTH_JWKS_URL)


def _unauthorized(reason: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=f"Invalid authentication token: {reason}",
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_jwt(token: str) -> dict:
    """Decode ``token`` and return its claims; any verification failure is a 401."""
    try:
        signing_key = _jwk_client().get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=SUPPORTED_ALGORITHMS,
            audience=settings.AUTH_AUDIENCE,
            options={"verify_exp": True, "require": ["exp", "sub"]},
        )
    except (jwt.PyJWTError, jwt.PyJWKClientError) as e:
        raise _unauthorized(str(e)) from e


def auth_dependency(credentials: HTTPAuthorizationCredentials = Depends(_security)) -> dict:
    return verify_jwt(credentials.credentials)


def is_admin(claims: dict) -> bool:
    """Admin when the configured role appears in ``role`` or ``app_metadata.roles``."""
    admin_role = settings.ADMIN_ROLE
    if claims.get("role") == admin_role:
        return True
    roles = (claims.get("app_metadata") or {}).get("roles") or []
    return admin_role in roles
