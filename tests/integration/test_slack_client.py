import json

import pytest

from castops.services.slack.client import SlackClient, SlackError

API = "https://slack.com/api"
CHANNEL = "C0CASTING"
TS = "1700000000.000100"
PERMALINK = "https://example.slack.com/archives/C0CASTING/p1700000000000100"
UPLOAD_URL = "https://files.slack.com/upload/v1/abc123"


def _permalink_response(httpx_mock, ts=TS):
    httpx_mock.add_response(
        method="GET",
        url=f"{API}/chat.getPermalink?channel={CHANNEL}&message_ts={ts}",
        json={"ok": True, "permalink": PERMALINK},
    )


@pytest.mark.asyncio
async def test_post_returns_ts_and_permalink(httpx_mock):
    client = SlackClient("xoxb-test")

    httpx_mock.add_response(
        method="POST", url=f"{API}/chat.postMessage", json={"ok": True, "ts": TS}
    )
    _permalink_response(httpx_mock)

    result = await client.post(CHANNEL, "hello", thread_ts="1699999999.000100")
    await client.close()

    assert result.ts == TS
    assert result.permalink == PERMALINK
    assert not result.with_attachment

    post_request = httpx_mock.get_requests()[0]
    assert post_request.headers["Authorization"] == "Bearer xoxb-test"
    assert json.loads(post_request.content)["thread_ts"] == "1699999999.000100"


@pytest.mark.asyncio
async def test_ok_false_raises_slack_error(httpx_mock):
    client = SlackClient("xoxb-test")

    httpx_mock.add_response(
        method="POST",
        url=f"{API}/chat.postMessage",
        json={"ok": False, "error": "channel_not_found"},
    )

    with pytest.raises(SlackError) as exc:
        await client.post_message(CHANNEL, "hello")
    await client.close()

    assert exc.value.error_code == "channel_not_found"


@pytest.mark.asyncio
async def test_permalink_failure_is_tolerated(httpx_mock):
    client = SlackClient("xoxb-test")

    httpx_mock.add_response(
        method="POST", url=f"{API}/chat.postMessage", json={"ok": True, "ts": TS}
    )
    httpx_mock.add_response(
        method="GET",
        url=f"{API}/chat.getPermalink?channel={CHANNEL}&message_ts={TS}",
        json={"ok": False, "error": "message_not_found"},
    )

    result = await client.post(CHANNEL, "hello")
    await client.close()

    assert result.ts == TS
    assert result.permalink == ""


@pytest.mark.asyncio
async def test_upload_flow_uses_share_timestamp(httpx_mock):
    client = SlackClient("xoxb-test", share_lookup_delay=0)

    httpx_mock.add_response(
        method="POST",
        url=f"{API}/files.getUploadURLExternal",
        json={"ok": True, "upload_url": UPLOAD_URL, "file_id": "F123"},
    )
    httpx_mock.add_response(method="PUT", url=UPLOAD_URL, text="OK - 5")
    httpx_mock.add_response(
        method="POST",
        url=f"{API}/files.completeUploadExternal",
        json={
            "ok": True,
            "files": [{"id": "F123", "shares": {"private": {CHANNEL: [{"ts": TS}]}}}],
        },
    )
    _permalink_response(httpx_mock)

    result = await client.post_with_attachment(CHANNEL, "order text", b"%PDF-", "order.pdf")
    await client.close()

    assert result.ts == TS
    assert result.permalink == PERMALINK
    assert result.with_attachment

    put_request = httpx_mock.get_requests()[1]
    assert put_request.content == b"%PDF-"
    assert put_request.headers["Content-Type"] == "application/pdf"


@pytest.mark.asyncio
async def test_upload_flow_falls_back_to_files_info(httpx_mock):
    client = SlackClient("xoxb-test", share_lookup_delay=0)

    httpx_mock.add_response(
        method="POST",
        url=f"{API}/files.getUploadURLExternal",
        json={"ok": True, "upload_url": UPLOAD_URL, "file_id": "F123"},
    )
    httpx_mock.add_response(method="PUT", url=UPLOAD_URL, text="OK - 5")
    httpx_mock.add_response(
        method="POST",
        url=f"{API}/files.completeUploadExternal",
        json={"ok": True, "files": [{"id": "F123"}]},
    )
    httpx_mock.add_response(
        method="GET",
        url=f"{API}/files.info?file=F123",
        json={"ok": True, "file": {"id": "F123", "shares": {"public": {CHANNEL: [{"ts": TS}]}}}},
    )

    ts = await client.upload_file(CHANNEL, b"%PDF-", "order.pdf", "order text")
    await client.close()

    assert ts == TS


@pytest.mark.asyncio
async def test_failed_upload_falls_back_to_text_post(httpx_mock):
    client = SlackClient("xoxb-test")

    httpx_mock.add_response(
        method="POST",
        url=f"{API}/files.getUploadURLExternal",
        json={"ok": False, "error": "missing_scope"},
    )
    httpx_mock.add_response(
        method="POST", url=f"{API}/chat.postMessage", json={"ok": True, "ts": TS}
    )
    _permalink_response(httpx_mock)

    result = await client.post_with_attachment(CHANNEL, "order text", b"%PDF-", "order.pdf")
    await client.close()

    assert result.ts == TS
    assert not result.with_attachment
