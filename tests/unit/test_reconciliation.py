from datetime import date

import pytest

from castops.models.domain.booking_domain import (
    CastType,
    ContactRecord,
    ContactStatus,
    ShootDetail,
)
from castops.services.errors import InvalidArgumentError, InvalidTransitionError, NotFoundError

PROJECT_ID = "1a2b3c4d-5e6f-7a8b-9c0d-1e2f3a4b5c6d"
PAGE_KEY = "1a2b3c4d5e6f7a8b9c0d1e2f3a4b5c6d"
OTHER_KEY = "ffffffffffffffffffffffffffffffff"
DRIVE_LINK = "https://drive.google.com/drive/folders/offshot"


def _contact(contact_id, booking_id, **overrides):
    fields = {
        "id": contact_id,
        "booking_id": booking_id,
        "cast_id": "cast-ext",
        "cast_name": "山田花子",
        "cast_type": CastType.EXTERNAL,
        "shoot_date": date(2025, 3, 1),
        "project_name": "Drama A",
    }
    fields.update(overrides)
    return ContactRecord(**fields)


@pytest.fixture
def seeded(store, make_booking):
    """Two contacts on the same page plus one on another page."""
    make_booking("b-1")
    make_booking("b-2", cast_name="鈴木一郎")
    make_booking("b-3", project_id=OTHER_KEY, project_name="Drama B")
    store.contacts["c-1"] = _contact("c-1", "b-1")
    store.contacts["c-2"] = _contact("c-2", "b-2", cast_name="鈴木一郎")
    store.contacts["c-3"] = _contact("c-3", "b-3", project_name="Drama B")
    return store


# ----------------------------------------------------------------------
# Drive links
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_drive_sync_by_page_key(drive_sync_service, seeded):
    seeded.drive_links[PAGE_KEY] = DRIVE_LINK

    result = await drive_sync_service.sync_drive_links(page_key=PROJECT_ID)

    assert result.found
    assert result.updated == 2
    assert result.drive_link == DRIVE_LINK
    assert seeded.contacts["c-1"].making_url == DRIVE_LINK
    assert seeded.contacts["c-3"].making_url == ""


@pytest.mark.asyncio
async def test_drive_sync_is_idempotent(drive_sync_service, seeded):
    seeded.drive_links[PAGE_KEY] = DRIVE_LINK

    await drive_sync_service.sync_drive_links(page_key=PAGE_KEY)
    again = await drive_sync_service.sync_drive_links(page_key=PAGE_KEY)

    assert again.found
    assert again.updated == 0


@pytest.mark.asyncio
async def test_drive_sync_never_overwrites_existing_link(drive_sync_service, seeded):
    seeded.drive_links[PAGE_KEY] = DRIVE_LINK
    seeded.contacts["c-1"].making_url = "https://drive.google.com/manual"

    result = await drive_sync_service.sync_drive_links(page_key=PAGE_KEY)

    assert result.updated == 1
    assert seeded.contacts["c-1"].making_url == "https://drive.google.com/manual"


@pytest.mark.asyncio
async def test_drive_sync_unknown_page(drive_sync_service, seeded):
    result = await drive_sync_service.sync_drive_links(page_key=PAGE_KEY)

    assert not result.found
    assert result.updated == 0


@pytest.mark.asyncio
async def test_drive_sync_all_pages_filtered_by_project(drive_sync_service, seeded):
    seeded.drive_links[PAGE_KEY] = DRIVE_LINK
    seeded.drive_links[OTHER_KEY] = "https://drive.google.com/other"

    result = await drive_sync_service.sync_drive_links(project_name="Drama B")

    assert result.updated == 1
    assert result.drive_link is None
    assert seeded.contacts["c-3"].making_url == "https://drive.google.com/other"
    assert seeded.contacts["c-1"].making_url == ""


@pytest.mark.asyncio
async def test_drive_sync_single_contact(drive_sync_service, seeded):
    seeded.drive_links[PAGE_KEY] = DRIVE_LINK

    first = await drive_sync_service.sync_drive_links(page_key=PAGE_KEY, contact_id="c-2")
    second = await drive_sync_service.sync_drive_links(page_key=PAGE_KEY, contact_id="c-2")

    assert first.updated == 1
    assert second.updated == 0
    assert seeded.contacts["c-1"].making_url == ""


@pytest.mark.asyncio
async def test_drive_sync_single_contact_not_found(drive_sync_service, seeded):
    seeded.drive_links[PAGE_KEY] = DRIVE_LINK

    with pytest.raises(NotFoundError):
        await drive_sync_service.sync_drive_links(page_key=PAGE_KEY, contact_id="missing")


# ----------------------------------------------------------------------
# Shoot details
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_shoot_detail_sync_fills_only_empty_fields(shoot_detail_service, seeded):
    seeded.contacts["c-1"].location = "スタジオA"
    seeded.shoot_details = [
        ShootDetail("d-1", PAGE_KEY, "山田花子様", in_time="08:00", out_time="17:00", location="ロケ地"),
        ShootDetail("d-2", PAGE_KEY, "鈴木一郎", address="東京都港区"),
    ]

    result = await shoot_detail_service.sync_shoot_details(page_key=PAGE_KEY)

    assert result.found
    assert result.updated == 2
    first = seeded.contacts["c-1"]
    assert (first.in_time, first.out_time, first.location) == ("08:00", "17:00", "スタジオA")
    assert seeded.contacts["c-2"].address == "東京都港区"
    assert seeded.contacts["c-3"].in_time == ""


@pytest.mark.asyncio
async def test_shoot_detail_sync_second_run_updates_nothing(shoot_detail_service, seeded):
    seeded.shoot_details = [ShootDetail("d-1", PAGE_KEY, "山田花子", in_time="08:00")]

    await shoot_detail_service.sync_shoot_details()
    again = await shoot_detail_service.sync_shoot_details()

    assert again.updated == 0


@pytest.mark.asyncio
async def test_shoot_detail_sync_without_rows(shoot_detail_service, seeded):
    result = await shoot_detail_service.sync_shoot_details(page_key=PAGE_KEY)

    assert not result.found


@pytest.mark.asyncio
async def test_lookup_requires_name_or_key(shoot_detail_service):
    with pytest.raises(InvalidArgumentError):
        await shoot_detail_service.lookup_shoot_details()


@pytest.mark.asyncio
async def test_lookup_by_name_applies_first_record(shoot_detail_service, seeded):
    seeded.shoot_details = [
        ShootDetail("d-1", PAGE_KEY, "山田花子", in_time="08:00", location="ロケ地"),
        ShootDetail("d-2", OTHER_KEY, "山田花子", in_time="10:00"),
    ]

    result = await shoot_detail_service.lookup_shoot_details(cast_name="山田花子", contact_id="c-1")

    assert result.found
    assert len(result.records) == 2
    assert result.applied == 1
    assert seeded.contacts["c-1"].in_time == "08:00"
    assert seeded.contacts["c-1"].location == "ロケ地"


@pytest.mark.asyncio
async def test_lookup_page_key_takes_precedence(shoot_detail_service, seeded):
    seeded.shoot_details = [
        ShootDetail("d-1", PAGE_KEY, "山田花子"),
        ShootDetail("d-2", OTHER_KEY, "鈴木一郎"),
    ]

    result = await shoot_detail_service.lookup_shoot_details(cast_name="山田花子", page_key=OTHER_KEY)

    assert [r.id for r in result.records] == ["d-2"]
    assert result.applied == 0


@pytest.mark.asyncio
async def test_lookup_nothing_found(shoot_detail_service, seeded):
    result = await shoot_detail_service.lookup_shoot_details(cast_name="誰か")

    assert not result.found
    assert result.records == []


# ----------------------------------------------------------------------
# Contact status
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_contact_status_moves_forward(contact_status_service, seeded):
    contact = await contact_status_service.advance_status("c-1", ContactStatus.AWAITING_MAKING_SHARE)

    assert contact.status is ContactStatus.AWAITING_MAKING_SHARE
    assert seeded.contacts["c-1"].status is ContactStatus.AWAITING_MAKING_SHARE


@pytest.mark.asyncio
async def test_contact_status_rejects_moving_back(contact_status_service, seeded):
    seeded.contacts["c-1"].status = ContactStatus.COMPLETED

    with pytest.raises(InvalidTransitionError):
        await contact_status_service.advance_status("c-1", ContactStatus.AWAITING_SCHEDULE)


@pytest.mark.asyncio
async def test_contact_status_same_value_is_accepted(contact_status_service, seeded):
    contact = await contact_status_service.advance_status("c-1", ContactStatus.AWAITING_SCHEDULE)

    assert contact.status is ContactStatus.AWAITING_SCHEDULE


@pytest.mark.asyncio
async def test_contact_status_unknown_contact(contact_status_service):
    with pytest.raises(NotFoundError):
        await contact_status_service.advance_status("missing", ContactStatus.COMPLETED)
