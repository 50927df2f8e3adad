"""
Notion API client for project pages.
Keeps the cast multi-select properties of a project page in sync with
confirmed bookings.
"""

import asyncio

import httpx

from castops.infrastructure.observability.logging import get_logger
from castops.models.domain.booking_domain import CastType, Tier, normalize_page_key

logger = get_logger(__name__)

NOTION_API_BASE_URL = "https://api.notion.com/v1"

REQUEST_TIMEOUT = 30  # seconds
MAX_RETRIES = 3
BACKOFF_FACTOR = 2
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}

INTERNAL_CAST_PROPERTY = "内部キャスト"
MAIN_CAST_PROPERTY = "メインキャスト"
SUB_CAST_PROPERTY = "サブキャスト"


def cast_property_name(cast_type: CastType, tier: Tier) -> str:
    """Page property a confirmed cast is listed under."""
    if cast_type is CastType.INTERNAL:
        return INTERNAL_CAST_PROPERTY
    if tier is Tier.MAIN:
        return MAIN_CAST_PROPERTY
    return SUB_CAST_PROPERTY


class NotionError(Exception):
    """Custom exception for Notion API errors."""

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


class NotionClient:
    def __init__(
        self,
        token: str,
        notion_version: str = "2022-06-28",
        client: httpx.AsyncClient | None = None,
    ):
        self._token = token
        self._notion_version = notion_version
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(REQUEST_TIMEOUT))

    async def close(self) -> None:
        await self._client.aclose()

    def _get_auth_headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self._token}",
            "Notion-Version": self._notion_version,
            "Content-Type": "application/json",
        }

    @staticmethod
    def _page_url(page_id: str) -> str:
        return f"{NOTION_API_BASE_URL}/pages/{normalize_page_key(page_id)}"

    async def _request_with_retry(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Execute an HTTP request with retry and backoff."""
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                response = await self._client.request(method, url, **kwargs)
                if response.status_code in RETRY_STATUS_CODES and attempt < MAX_RETRIES:
                    backoff = BACKOFF_FACTOR * (2 ** (attempt - 1))
                    logger.debug(
                        "Notion API retrying request",
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
                    "Notion API request error, retrying",
                    attempt=attempt,
                    error=str(e),
                    backoff_seconds=backoff,
                )
                await asyncio.sleep(backoff)
        raise RuntimeError("Notion API retry loop exhausted")

    def _handle_api_response(self, response: httpx.Response, operation: str) -> dict:
        if response.is_success:
            try:
                return response.json() if response.text else {}
            except ValueError as e:
                raise NotionError(f"Invalid response format: {e}") from e

        try:
            error_data = response.json() if response.text else {}
        except ValueError:
            error_data = {}

        error_code = error_data.get("code", "unknown")
        logger.error(
            f"Notion {operation} failed",
            status_code=response.status_code,
            error_code=error_code,
            error_message=error_data.get("message"),
        )
        raise NotionError(
            f"Notion {operation} failed: {error_data.get('message', response.status_code)}",
            error_code=error_code,
            status_code=response.status_code,
            response_data=error_data,
        )

    async def get_page(self, page_id: str) -> dict:
        response = await self._request_with_retry(
            "GET", self._page_url(page_id), headers=self._get_auth_headers()
        )
        return self._handle_api_response(response, "get_page")

    async def add_multi_select_option(self, page_id: str, property_name: str, option: str) -> bool:
        """
        Add ``option`` to a multi-select property unless it is already there.

        Returns:
            bool: True if the page was updated, False if the option existed
        """
        page = await self.get_page(page_id)
        prop = (page.get("properties") or {}).get(property_name) or {}
        current = list(prop.get("multi_select") or [])

        if any(tag.get("name") == option for tag in current):
            logger.info("Notion option already present", property=property_name, option=option)
            return False

        # Notion replaces the whole list, so send existing tags by name only
        tags = [{"name": tag["name"]} for tag in current if tag.get("name")]
        tags.append({"name": option})

        response = await self._request_with_retry(
            "PATCH",
            self._page_url(page_id),
            headers=self._get_auth_headers(),
            json={"properties": {property_name: {"multi_select": tags}}},
        )
        self._handle_api_response(response, "update_page")
        logger.info("Notion option added", property=property_name, option=option)
        return True
