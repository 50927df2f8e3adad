"""
Slack Web API client for casting notifications.
Posts order and status messages, resolves permalinks and uploads order PDFs
through the external upload flow.
"""

import asyncio
from dataclasses import dataclass

import httpx

from castops.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SLACK_API_BASE_URL = "https://slack.com/api"

REQUEST_TIMEOUT = 30  # seconds
MAX_RETRIES = 3
BACKOFF_FACTOR = 2
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}

# Wait before asking files.info for the share timestamp
SHARE_LOOKUP_DELAY = 2.0


class SlackError(Exception):
    """Custom exception for Slack Web API errors."""

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


@dataclass(slots=True)
class PostResult:
    """Where a message landed: its ts (thread id) and permalink."""

    ts: str
    permalink: str = ""
    with_attachment: bool = False


class SlackClient:
    """
    Thin async wrapper over the Slack Web API methods the workflow needs.

    Slack reports most failures as HTTP 200 with ``ok: false``; both paths
    raise SlackError.
    """

    def __init__(
        self,
        token: str,
        client: httpx.AsyncClient | None = None,
        share_lookup_delay: float = SHARE_LOOKUP_DELAY,
    ):
        self._token = token
        self._client = client or self._create_client()
        self._share_lookup_delay = share_lookup_delay

    def _create_client(self) -> httpx.AsyncClient:
        timeout = httpx.Timeout(REQUEST_TIMEOUT)
        limits = httpx.Limits(max_keepalive_connections=10, max_connections=20)
        return httpx.AsyncClient(timeout=timeout, limits=limits)

    async def close(self) -> None:
        await self._client.aclose()

    def _get_auth_headers(self) -> dict:
        return {"Authorization": f"Bearer {self._token}"}

    async def _request_with_retry(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Execute an HTTP request with retry and backoff."""
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                response = await self._client.request(method, url, **kwargs)
                if response.status_code in RETRY_STATUS_CODES and attempt < MAX_RETRIES:
                    retry_after = response.headers.get("Retry-After")
                    backoff = (
                        float(retry_after)
                        if retry_after and retry_after.isdigit()
                        else BACKOFF_FACTOR * (2 ** (attempt - 1))
                    )
                    logger.debug(
                        "Slack API retrying request",
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
                    "Slack API request error, retrying",
                    attempt=attempt,
                    error=str(e),
                    backoff_seconds=backoff,
                )
                await asyncio.sleep(backoff)
        raise RuntimeError("Slack API retry loop exhausted")

    def _handle_api_response(self, response: httpx.Response, operation: str) -> dict:
        """
        Validate a Slack Web API response.

        Raises:
            SlackError: On HTTP errors, unparsable bodies or ``ok: false``
        """
        if not response.is_success:
            logger.error(
                f"Slack {operation} failed",
                status_code=response.status_code,
                response_text=response.text[:200] if response.text else "",
            )
            raise SlackError(
                f"Slack API error (HTTP {response.status_code})",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Failed to parse Slack {operation} response", error=str(e))
            raise SlackError(f"Invalid response format: {e}") from e

        if not data.get("ok"):
            error_code = data.get("error", "unknown_error")
            logger.error(f"Slack {operation} returned an error", error_code=error_code)
            raise SlackError(
                f"Slack {operation} failed: {error_code}",
                error_code=error_code,
                status_code=response.status_code,
                response_data=data,
            )

        return data

    async def post_message(self, channel: str, text: str, thread_ts: str | None = None) -> str:
        """
        Post a text message, optionally as a thread reply.

        Returns:
            str: The ``ts`` of the posted message
        """
        payload: dict = {"channel": channel, "text": text}
        if thread_ts:
            payload["thread_ts"] = thread_ts

        logger.info("Posting Slack message", channel=channel, threaded=bool(thread_ts))

        response = await self._request_with_retry(
            "POST",
            f"{SLACK_API_BASE_URL}/chat.postMessage",
            headers=self._get_auth_headers(),
            json=payload,
        )
        data = self._handle_api_response(response, "chat.postMessage")
        return data.get("ts", "")

    async def get_permalink(self, channel: str, message_ts: str) -> str:
        response = await self._request_with_retry(
            "GET",
            f"{SLACK_API_BASE_URL}/chat.getPermalink",
            headers=self._get_auth_headers(),
            params={"channel": channel, "message_ts": message_ts},
        )
        data = self._handle_api_response(response, "chat.getPermalink")
        return data.get("permalink", "")

    async def _permalink_or_empty(self, channel: str, ts: str) -> str:
        if not ts:
            return ""
        try:
            return await self.get_permalink(channel, ts)
        except (SlackError, httpx.HTTPError) as e:
            logger.warning("Failed to get Slack permalink", channel=channel, ts=ts, error=str(e))
            return ""

    async def post(self, channel: str, text: str, thread_ts: str | None = None) -> PostResult:
        """Post a message and resolve its permalink; permalink failure is tolerated."""
        ts = await self.post_message(channel, text, thread_ts=thread_ts)
        permalink = await self._permalink_or_empty(channel, ts)
        return PostResult(ts=ts, permalink=permalink)

    @staticmethod
    def _ts_from_shares(shares: dict | None) -> str:
        # shares: {"public"|"private": {channel_id: [{"ts": ...}, ...]}}
        for share_type in (shares or {}).values():
            for channel_shares in share_type.values():
                if channel_shares and channel_shares[0].get("ts"):
                    return channel_shares[0]["ts"]
        return ""

    async def upload_file(
        self,
        channel: str,
        content: bytes,
        filename: str,
        initial_comment: str,
        thread_ts: str | None = None,
    ) -> str:
        """
        Upload a file with a comment via the external upload flow.

        Returns:
            str: The ``ts`` of the message that shares the file, or "" when
            Slack has not reported the share yet.

        Raises:
            SlackError: If any step of the flow fails
        """
        logger.info("Uploading file to Slack", channel=channel, filename=filename, size=len(content))

        response = await self._request_with_retry(
            "POST",
            f"{SLACK_API_BASE_URL}/files.getUploadURLExternal",
            headers=self._get_auth_headers(),
            data={"filename": filename, "length": str(len(content))},
        )
        data = self._handle_api_response(response, "files.getUploadURLExternal")
        upload_url = data.get("upload_url")
        file_id = data.get("file_id")
        if not upload_url or not file_id:
            raise SlackError("Slack did not return an upload URL", response_data=data)

        upload_response = await self._request_with_retry(
            "PUT",
            upload_url,
            content=content,
            headers={"Content-Type": "application/pdf"},
        )
        if not upload_response.is_success:
            raise SlackError(
                f"File upload failed (HTTP {upload_response.status_code})",
                status_code=upload_response.status_code,
            )

        payload: dict = {
            "files": [{"id": file_id, "title": filename}],
            "channel_id": channel,
            "initial_comment": initial_comment,
        }
        if thread_ts:
            payload["thread_ts"] = thread_ts

        response = await self._request_with_retry(
            "POST",
            f"{SLACK_API_BASE_URL}/files.completeUploadExternal",
            headers=self._get_auth_headers(),
            json=payload,
        )
        data = self._handle_api_response(response, "files.completeUploadExternal")

        files = data.get("files") or [{}]
        ts = self._ts_from_shares(files[0].get("shares"))
        if ts:
            return ts

        # Shares are populated asynchronously on Slack's side
        if self._share_lookup_delay:
            await asyncio.sleep(self._share_lookup_delay)

        response = await self._request_with_retry(
            "GET",
            f"{SLACK_API_BASE_URL}/files.info",
            headers=self._get_auth_headers(),
            params={"file": file_id},
        )
        data = self._handle_api_response(response, "files.info")
        return self._ts_from_shares((data.get("file") or {}).get("shares"))

    async def post_with_attachment(
        self,
        channel: str,
        text: str,
        content: bytes,
        filename: str,
        thread_ts: str | None = None,
    ) -> PostResult:
        """
        Upload ``content`` with ``text`` as its comment, falling back to a
        text-only post when any step of the upload fails.
        """
        try:
            ts = await self.upload_file(channel, content, filename, text, thread_ts=thread_ts)
        except (SlackError, httpx.HTTPError) as e:
            logger.warning(
                "Slack file upload failed, falling back to text message",
                channel=channel,
                filename=filename,
                error=str(e),
            )
            return await self.post(channel, text, thread_ts=thread_ts)

        permalink = await self._permalink_or_empty(channel, ts)
        logger.info("File uploaded to Slack", channel=channel, ts=ts)
        return PostResult(ts=ts, permalink=permalink, with_attachment=True)
