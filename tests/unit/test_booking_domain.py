from datetime import date

import pytest

from castops.models.domain.booking_domain import (
    ContactStatus,
    DateRange,
    HoldKey,
    normalize_cast_name,
    normalize_page_key,
    parse_date_range,
    parse_day,
)


def test_parse_day_accepts_slash_and_dash():
    assert parse_day("2025/3/1") == date(2025, 3, 1)
    assert parse_day("2025-03-01") == date(2025, 3, 1)


def test_parse_day_rejects_garbage():
    with pytest.raises(ValueError):
        parse_day("March 1st")


def test_parse_date_range_multi_day():
    date_range = parse_date_range("2025/03/01~2025/03/03")

    assert date_range.is_multi_day
    assert date_range.days() == [date(2025, 3, 1), date(2025, 3, 2), date(2025, 3, 3)]
    assert date_range.display() == "2025/03/01~2025/03/03"


def test_parse_date_range_single_day():
    date_range = parse_date_range("2025-03-01")

    assert not date_range.is_multi_day
    assert date_range.days() == [date(2025, 3, 1)]
    assert date_range.display() == "2025/03/01"


def test_parse_date_range_rejects_inverted_range():
    with pytest.raises(ValueError):
        parse_date_range("2025/03/05~2025/03/01")


def test_normalize_page_key():
    assert normalize_page_key("1A2B3C4D-5E6F-7A8B-9C0D-1E2F3A4B5C6D") == (
        "1a2b3c4d5e6f7a8b9c0d1e2f3a4b5c6d"
    )
    assert normalize_page_key(None) == ""


@pytest.mark.parametrize(
    "raw, expected",
    [("山田花子様", "山田花子"), ("山田花子さん", "山田花子"), (" 山田花子サン ", "山田花子"), ("山田", "山田")],
)
def test_normalize_cast_name_strips_honorifics(raw, expected):
    assert normalize_cast_name(raw) == expected


def test_hold_key_is_hashable_and_readable():
    key = HoldKey("cast-1", date(2025, 3, 1))

    assert {key: "evt"}[HoldKey("cast-1", date(2025, 3, 1))] == "evt"
    assert str(key) == "cast-1:2025-03-01"


def test_contact_status_labels():
    assert ContactStatus.AWAITING_SCHEDULE.label == "香盤連絡待ち"
    assert DateRange(date(2025, 1, 1), date(2025, 1, 1)).days() == [date(2025, 1, 1)]
