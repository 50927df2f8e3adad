import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from castops.services.calendar.google_client import GoogleCalendarError, GoogleCalendarService
from castops.services.calendar.service_account import (
    GOOGLE_TOKEN_URI,
    ServiceAccountCredentials,
    ServiceAccountError,
)

CALENDAR_ID = "holds@group.calendar.google.com"
CALENDAR_URL = "https://www.googleapis.com/calendar/v3/calendars/holds%40group.calendar.google.com"


@pytest.fixture(scope="module")
def service_account_info():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return {
        "client_email": "holds@project.iam.gserviceaccount.com",
        "private_key": pem.decode(),
        "private_key_id": "key-1",
    }


def _token_response(httpx_mock):
    httpx_mock.add_response(
        method="POST",
        url=GOOGLE_TOKEN_URI,
        json={"access_token": "ya29.test", "expires_in": 3600, "token_type": "Bearer"},
    )


@pytest.mark.asyncio
async def test_insert_event_returns_id(httpx_mock, service_account_info):
    service = GoogleCalendarService(service_account_info, CALENDAR_ID)

    _token_response(httpx_mock)
    httpx_mock.add_response(method="POST", url=f"{CALENDAR_URL}/events", json={"id": "evt-1"})
    httpx_mock.add_response(method="DELETE", url=f"{CALENDAR_URL}/events/evt-1", status_code=204)

    event_id = await service.insert_event({"summary": "OfficialAcct_1候補_仮押さえ"})
    deleted = await service.delete_event(event_id)
    await service.close()

    assert event_id == "evt-1"
    assert deleted is True

    token_request, insert_request, delete_request = httpx_mock.get_requests()
    assert b"grant_type=urn%3Aietf%3Aparams%3Aoauth%3Agrant-type%3Ajwt-bearer" in token_request.content
    # token is cached across calls
    assert insert_request.headers["Authorization"] == "Bearer ya29.test"
    assert delete_request.headers["Authorization"] == "Bearer ya29.test"


@pytest.mark.asyncio
async def test_delete_missing_event_returns_false(httpx_mock, service_account_info):
    service = GoogleCalendarService(service_account_info, CALENDAR_ID)

    _token_response(httpx_mock)
    httpx_mock.add_response(
        method="DELETE",
        url=f"{CALENDAR_URL}/events/gone",
        status_code=410,
        json={"error": {"code": 410, "message": "Resource has been deleted"}},
    )

    assert await service.delete_event("gone") is False
    await service.close()


@pytest.mark.asyncio
async def test_access_denied_error_mapping(httpx_mock, service_account_info):
    service = GoogleCalendarService(service_account_info, CALENDAR_ID)

    _token_response(httpx_mock)
    httpx_mock.add_response(
        method="GET",
        url=CALENDAR_URL,
        status_code=403,
        json={"error": {"code": 403, "message": "Forbidden"}},
    )

    with pytest.raises(GoogleCalendarError) as exc:
        await service.get_calendar()
    await service.close()

    assert exc.value.status_code == 403
    assert "share the calendar" in str(exc.value).lower()


@pytest.mark.asyncio
async def test_token_exchange_failure_surfaces_as_calendar_error(httpx_mock, service_account_info):
    service = GoogleCalendarService(service_account_info, CALENDAR_ID)

    httpx_mock.add_response(
        method="POST", url=GOOGLE_TOKEN_URI, status_code=400, json={"error": "invalid_grant"}
    )

    with pytest.raises(GoogleCalendarError) as exc:
        await service.patch_event("evt-1", {"summary": "x"})
    await service.close()

    assert "authorization failed" in str(exc.value).lower()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kwargs",
    [
        {"text": "<html>gateway</html>"},
        {"json": {"token_type": "Bearer", "expires_in": 3600}},
    ],
)
async def test_malformed_token_response_surfaces_as_calendar_error(
    httpx_mock, service_account_info, kwargs
):
    service = GoogleCalendarService(service_account_info, CALENDAR_ID)

    httpx_mock.add_response(method="POST", url=GOOGLE_TOKEN_URI, **kwargs)

    with pytest.raises(GoogleCalendarError):
        await service.delete_event("evt-1")
    await service.close()

def test_credentials_require_private_key():
    with pytest.raises(ServiceAccountError):
        ServiceAccountCredentials({"client_email": "holds@project.iam.gserviceaccount.com"}, client=None)
