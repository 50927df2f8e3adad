"""
Google service-account authentication.

Exchanges a self-signed RS256 JWT assertion for an OAuth access token and
caches it until shortly before expiry.
"""

import asyncio
import time

import httpx
import jwt

from castops.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
CALENDAR_SCOPE = "https://www.googleapis.com/auth/calendar"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"

ASSERTION_LIFETIME = 3600  # seconds
REFRESH_MARGIN = 60  # refresh this long before the token expires


class ServiceAccountError(Exception):
    """Raised when the key is unusable or Google refuses the assertion."""


class ServiceAccountCredentials:
    def __init__(
        self,
        info: dict,
        client: httpx.AsyncClient,
        scopes: tuple[str, ...] = (CALENDAR_SCOPE,),
    ):
        try:
            self.client_email = info["client_email"]
            self._private_key = info["private_key"]
        except KeyError as e:
            raise ServiceAccountError(f"Service account key is missing {e.args[0]}") from e
        self._key_id = info.get("private_key_id")
        self._token_uri = info.get("token_uri") or GOOGLE_TOKEN_URI
        self._scopes = scopes
        self._client = client

        self._access_token: str | None = None
        self._expires_at = 0.0
        self._lock = asyncio.Lock()

    def _build_assertion(self, now: int) -> str:
        claims = {
            "iss": self.client_email,
            "scope": " ".join(self._scopes),
            "aud": self._token_uri,
            "iat": now,
            "exp": now + ASSERTION_LIFETIME,
        }
        headers = {"kid": self._key_id} if self._key_id else None
        return jwt.encode(claims, self._private_key, algorithm="RS256", headers=headers)

    async def get_access_token(self) -> str:
        """Return a cached access token, fetching a new one when near expiry."""
        async with self._lock:
            if self._access_token and time.time() < self._expires_at - REFRESH_MARGIN:
                return self._access_token

            now = int(time.time())
            try:
                assertion = self._build_assertion(now)
            except (ValueError, TypeError, jwt.PyJWTError) as e:
                raise ServiceAccountError(f"Failed to sign service account assertion: {e}") from e

            response = await self._client.post(
                self._token_uri,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
            )
            if not response.is_success:
                logger.error(
                    "Service account token exchange failed",
                    status_code=response.status_code,
                    client_email=self.client_email,
                )
                raise ServiceAccountError(
                    f"Token exchange failed (HTTP {response.status_code})"
                )

            try:
                data = response.json()
                token = data["access_token"]
                expires_in = int(data.get("expires_in", ASSERTION_LIFETIME))
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                logger.error("Malformed token response", client_email=self.client_email)
                raise ServiceAccountError(f"Malformed token response: {e!r}") from e

            self._access_token = token
            self._expires_at = now + expires_in
            logger.debug("Service account token refreshed", client_email=self.client_email)
            return self._access_token
