"""
Google Calendar API client for casting holds.
Operates on one shared calendar with service-account credentials.
Low-level Calendar API client
"""

import asyncio
from urllib.parse import quote

import httpx

from castops.infrastructure.observability.logging import get_logger
from castops.services.calendar.service_account import (
    ServiceAccountCredentials,
    ServiceAccountError,
)

logger = get_logger(__name__)

# Google Calendar API configuration
CALENDAR_API_BASE_URL = "https://www.googleapis.com/calendar/v3"

# Request timeouts and retry configuration
REQUEST_TIMEOUT = 30  # seconds (calendar operations can be slower)
MAX_RETRIES = 3
BACKOFF_FACTOR = 2
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}


class GoogleCalendarError(Exception):
    """Custom exception for Google Calendar API errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int | None = None,
        response_data: dict | None = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.status_code = status_code
        self.response_data = response_data or {}


class GoogleCalendarService:
    """
    Service for the hold calendar.

    Handles the access pre-check and event get/insert/patch/delete with the
    same retry and error mapping for every call.
    """

    def __init__(
        self,
        service_account_info: dict,
        calendar_id: str,
        client: httpx.AsyncClient | None = None,
    ):
        self.calendar_id = calendar_id
        self._client = client or self._create_client()
        self._credentials = ServiceAccountCredentials(service_account_info, self._client)

    def _create_client(self) -> httpx.AsyncClient:
        """Create async HTTP client for Calendar API."""
        timeout = httpx.Timeout(REQUEST_TIMEOUT)
        limits = httpx.Limits(max_keepalive_connections=20, max_connections=50)
        return httpx.AsyncClient(timeout=timeout, limits=limits)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    @property
    def _calendar_url(self) -> str:
        return f"{CALENDAR_API_BASE_URL}/calendars/{quote(self.calendar_id, safe='')}"

    async def _request_with_retry(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Execute an HTTP request with retry and backoff."""
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                response = await self._client.request(method, url, **kwargs)
                if response.status_code in RETRY_STATUS_CODES and attempt < MAX_RETRIES:
                    backoff = BACKOFF_FACTOR * (2 ** (attempt - 1))
                    logger.debug(
                        "Calendar API retrying request",
                        attempt=attempt,
                        status_code=response.status_code,
                        backoff_seconds=backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                return response
            except httpx.RequestError as e:
                if attempt >= MAX_RETRIES:
                    raise
                backoff = BACKOFF_FACTOR * (2 ** (attempt - 1))
                logger.debug(
                    "Calendar API request error, retrying",
                    attempt=attempt,
                    error=str(e),
                    backoff_seconds=backoff,
                )
                await asyncio.sleep(backoff)
        raise RuntimeError("Calendar API retry loop exhausted")

    async def _get_auth_headers(self) -> dict:
        """Get authorization headers for Calendar API requests."""
        try:
            access_token = await self._credentials.get_access_token()
        except ServiceAccountError as e:
            raise GoogleCalendarError(f"Calendar authorization failed: {e}") from e
        return {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _handle_api_response(self, response: httpx.Response, operation: str) -> dict:
        """
        Handle and validate Calendar API response.

        Args:
            response: HTTP response from Calendar API
            operation: Operation name for logging

        Returns:
            dict: Parsed response data

        Raises:
            GoogleCalendarError: If response contains errors
        """
        logger.debug(
            f"Calendar API {operation} response",
            status_code=response.status_code,
            response_size=len(response.text) if response.text else 0,
        )

        if response.is_success:
            try:
                return response.json() if response.text else {}
            except ValueError as e:
                logger.error(f"Failed to parse Calendar API {operation} response", error=str(e))
                raise GoogleCalendarError(f"Invalid response format: {e}") from e

        try:
            error_data = response.json() if response.text else {}
        except ValueError:
            logger.error(
                f"Calendar API {operation} failed with non-JSON response",
                status_code=response.status_code,
                response_text=response.text[:200] if response.text else "",
            )
            raise GoogleCalendarError(
                f"Calendar API error (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from None

        error_info = error_data.get("error", {})
        error_code = str(error_info.get("code", response.status_code))
        error_message = error_info.get("message", "Unknown Calendar API error")

        logger.error(
            f"Calendar API {operation} failed",
            status_code=response.status_code,
            error_code=error_code,
            error_message=error_message,
        )

        raise GoogleCalendarError(
            self._map_calendar_error(error_code, error_message),
            error_code=error_code,
            status_code=response.status_code,
            response_data=error_data,
        )

    def _map_calendar_error(self, error_code: str, error_message: str) -> str:
        """Map Calendar API error codes to operator-facing messages."""
        error_mappings = {
            "403": "Calendar access denied. Share the calendar with the service account.",
            "404": "Calendar or event not found.",
            "400": "Invalid calendar request format.",
            "401": "Calendar authorization failed. Check the service account key.",
            "429": "Too many calendar requests. Please try again later.",
            "500": "Google Calendar service temporarily unavailable.",
        }

        return error_mappings.get(error_code, f"Calendar error: {error_message}")

    async def get_calendar(self) -> dict:
        """
        Fetch calendar metadata; used as an access pre-check before inserts.

        Raises:
            GoogleCalendarError: If the service account cannot see the calendar
        """
        headers = await self._get_auth_headers()
        response = await self._request_with_retry("GET", self._calendar_url, headers=headers)
        data = self._handle_api_response(response, "get_calendar")
        logger.debug("Calendar access confirmed", calendar_id=self.calendar_id)
        return data

    async def get_event(self, event_id: str) -> dict:
        headers = await self._get_auth_headers()
        response = await self._request_with_retry(
            "GET", f"{self._calendar_url}/events/{event_id}", headers=headers
        )
        return self._handle_api_response(response, "get_event")

    async def insert_event(self, body: dict) -> str:
        """
        Create an event.

        Args:
            body: Event resource (summary, description, start, end, attendees)

        Returns:
            str: ID of the created event
        """
        headers = await self._get_auth_headers()

        logger.info(
            "Creating calendar event",
            summary=body.get("summary"),
            calendar_id=self.calendar_id,
            attendees_count=len(body.get("attendees", [])),
        )

        response = await self._request_with_retry(
            "POST", f"{self._calendar_url}/events", headers=headers, json=body
        )
        data = self._handle_api_response(response, "insert_event")

        event_id = data.get("id")
        if not event_id:
            raise GoogleCalendarError("Calendar API returned an event without an id")

        logger.info("Event created successfully", event_id=event_id)
        return event_id

    async def patch_event(self, event_id: str, body: dict) -> dict:
        headers = await self._get_auth_headers()

        logger.info(
            "Patching calendar event",
            event_id=event_id,
            calendar_id=self.calendar_id,
            fields_updated=list(body.keys()),
        )

        response = await self._request_with_retry(
            "PATCH", f"{self._calendar_url}/events/{event_id}", headers=headers, json=body
        )
        return self._handle_api_response(response, "patch_event")

    async def delete_event(self, event_id: str) -> bool:
        """
        Delete an event.

        Returns:
            bool: True if deleted, False if it was already gone
        """
        headers = await self._get_auth_headers()

        logger.info("Deleting calendar event", event_id=event_id, calendar_id=self.calendar_id)

        response = await self._request_with_retry(
            "DELETE", f"{self._calendar_url}/events/{event_id}", headers=headers
        )

        if response.status_code in (404, 410):
            logger.info("Calendar event already deleted", event_id=event_id)
            return False

        if response.status_code != 204:
            self._handle_api_response(response, "delete_event")

        logger.info("Event deleted successfully", event_id=event_id)
        return True
