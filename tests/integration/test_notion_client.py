import json

import pytest

from castops.services.notion.client import NotionClient, NotionError

PAGE_URL = "https://api.notion.com/v1/pages/1a2b3c4d5e6f7a8b9c0d1e2f3a4b5c6d"
PAGE_ID = "1a2b3c4d-5e6f-7a8b-9c0d-1e2f3a4b5c6d"


def _page(*names):
    return {
        "id": PAGE_ID,
        "properties": {
            "メインキャスト": {
                "type": "multi_select",
                "multi_select": [{"id": f"opt-{i}", "name": n, "color": "blue"} for i, n in enumerate(names)],
            }
        },
    }


@pytest.mark.asyncio
async def test_option_already_present_skips_patch(httpx_mock):
    client = NotionClient("secret_test")

    httpx_mock.add_response(method="GET", url=PAGE_URL, json=_page("山田花子"))

    updated = await client.add_multi_select_option(PAGE_ID, "メインキャスト", "山田花子")
    await client.close()

    assert updated is False
    assert len(httpx_mock.get_requests()) == 1


@pytest.mark.asyncio
async def test_missing_option_is_appended(httpx_mock):
    client = NotionClient("secret_test")

    httpx_mock.add_response(method="GET", url=PAGE_URL, json=_page("鈴木一郎"))
    httpx_mock.add_response(method="PATCH", url=PAGE_URL, json=_page("鈴木一郎", "山田花子"))

    updated = await client.add_multi_select_option(PAGE_ID, "メインキャスト", "山田花子")
    await client.close()

    assert updated is True
    get_request, patch_request = httpx_mock.get_requests()
    assert get_request.headers["Notion-Version"] == "2022-06-28"
    assert json.loads(patch_request.content) == {
        "properties": {"メインキャスト": {"multi_select": [{"name": "鈴木一郎"}, {"name": "山田花子"}]}}
    }


@pytest.mark.asyncio
async def test_page_not_found_raises(httpx_mock):
    client = NotionClient("secret_test")

    httpx_mock.add_response(
        method="GET",
        url=PAGE_URL,
        status_code=404,
        json={"object": "error", "code": "object_not_found", "message": "Could not find page"},
    )

    with pytest.raises(NotionError) as exc:
        await client.get_page(PAGE_ID)
    await client.close()

    assert exc.value.error_code == "object_not_found"
