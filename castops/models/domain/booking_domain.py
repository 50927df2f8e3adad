# castops/models/domain/booking_domain.py
"""
Booking Domain Models
Dataclasses for bookings, casts and the downstream records derived from them.
Shared by repositories, orchestrators and the API layer.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import StrEnum

from castops.models.domain.status_machine import BookingStatus


class CastType(StrEnum):
    INTERNAL = "internal"
    EXTERNAL = "external"

    @property
    def label(self) -> str:
        return "内部" if self is CastType.INTERNAL else "外部"


class Tier(StrEnum):
    MAIN = "main"
    SUB = "sub"
    OTHER = "other"

    @property
    def label(self) -> str:
        return {Tier.MAIN: "メイン", Tier.SUB: "サブ", Tier.OTHER: "その他"}[self]


class OrderMode(StrEnum):
    SHOOTING = "shooting"
    EXTERNAL = "external"
    INTERNAL = "internal"

    @property
    def is_special(self) -> bool:
        return self is not OrderMode.SHOOTING


class ContactStatus(StrEnum):
    """Fulfillment progress of a contact record, advanced manually by staff."""

    AWAITING_SCHEDULE = "awaiting_schedule"
    AWAITING_PURCHASE_ORDER = "awaiting_purchase_order"
    AWAITING_MAKING_SHARE = "awaiting_making_share"
    AWAITING_POST_DATE = "awaiting_post_date"
    COMPLETED = "completed"

    @property
    def label(self) -> str:
        return CONTACT_STATUS_LABELS[self]


CONTACT_STATUS_LABELS: dict[ContactStatus, str] = {
    ContactStatus.AWAITING_SCHEDULE: "香盤連絡待ち",
    ContactStatus.AWAITING_PURCHASE_ORDER: "発注書送信待ち",
    ContactStatus.AWAITING_MAKING_SHARE: "メイキング共有待ち",
    ContactStatus.AWAITING_POST_DATE: "投稿日連絡待ち",
    ContactStatus.COMPLETED: "完了",
}

CONTACT_STATUS_ORDER: list[ContactStatus] = list(ContactStatus)


@dataclass(slots=True)
class Cast:
    """Roster entry; read-only from the booking workflow."""

    id: str
    name: str
    cast_type: CastType
    email: str = ""
    slack_mention_id: str = ""


@dataclass(slots=True)
class Booking:
    """One cast-to-role-to-date-range assignment."""

    id: str
    cast_id: str
    cast_name: str
    cast_type: CastType
    status: BookingStatus
    start_date: date
    end_date: date
    account_name: str = ""
    project_name: str = ""
    project_id: str = ""
    role_name: str = ""
    rank: int = 1
    tier: Tier = Tier.OTHER
    mode: OrderMode = OrderMode.SHOOTING
    start_time: str | None = None
    end_time: str | None = None
    shoot_dates: list[date] = field(default_factory=list)
    note: str = ""
    cost: int = 0
    thread_id: str = ""
    permalink: str = ""
    calendar_event_id: str = ""
    created_by: str = ""
    updated_by: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_internal(self) -> bool:
        return self.cast_type is CastType.INTERNAL

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(slots=True)
class ContactRecord:
    """Fulfillment tracking for a confirmed external booking."""

    id: str
    booking_id: str
    cast_id: str
    cast_name: str
    cast_type: CastType
    shoot_date: date
    account_name: str = ""
    project_name: str = ""
    role_name: str = ""
    tier: Tier = Tier.OTHER
    status: ContactStatus = ContactStatus.AWAITING_SCHEDULE
    in_time: str = ""
    out_time: str = ""
    location: str = ""
    address: str = ""
    fee: int | None = None
    making_url: str = ""
    thread_id: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(slots=True)
class CastMasterEntry:
    """History row written when a booking reaches its final decision."""

    id: str
    booking_id: str
    cast_id: str
    cast_name: str
    cast_type: CastType
    shoot_date: date
    end_date: date | None = None
    account_name: str = ""
    project_name: str = ""
    role_name: str = ""
    tier: Tier = Tier.OTHER
    cost: int = 0
    decided_by: str = ""
    decided_at: datetime | None = None


@dataclass(slots=True)
class ShootDetail:
    """Schedule row (in/out time, location) for one cast on one project page."""

    id: str
    page_key: str
    cast_name: str
    in_time: str = ""
    out_time: str = ""
    location: str = ""
    address: str = ""


@dataclass(frozen=True, slots=True)
class HoldKey:
    """Correlates a created calendar hold with the booking it belongs to."""

    cast_id: str
    date: date

    def __str__(self) -> str:
        return f"{self.cast_id}:{self.date.isoformat()}"


@dataclass(frozen=True, slots=True)
class DateRange:
    start: date
    end: date

    def days(self) -> list[date]:
        return [self.start + timedelta(days=offset) for offset in range((self.end - self.start).days + 1)]

    @property
    def is_multi_day(self) -> bool:
        return self.end > self.start

    def display(self) -> str:
        if self.is_multi_day:
            return f"{self.start:%Y/%m/%d}~{self.end:%Y/%m/%d}"
        return f"{self.start:%Y/%m/%d}"


_DATE_PATTERN = re.compile(r"^(\d{4})[/-](\d{1,2})[/-](\d{1,2})$")
_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_day(value: str) -> date:
    """Parse ``YYYY/MM/DD`` or ``YYYY-MM-DD``."""
    match = _DATE_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid date: {value!r}")
    year, month, day = (int(part) for part in match.groups())
    return date(year, month, day)


def check_time(value: str | None) -> str | None:
    """Validate an ``HH:MM`` time; empty means unset."""
    if value in (None, ""):
        return None
    if not isinstance(value, str) or not _TIME_PATTERN.match(value):
        raise ValueError(f"Invalid time (expected HH:MM): {value!r}")
    return value


def parse_date_range(value: str) -> DateRange:
    """Parse a single day or a ``start~end`` range."""
    if "~" in value:
        start_raw, end_raw = value.split("~", 1)
        start, end = parse_day(start_raw), parse_day(end_raw)
    else:
        start = end = parse_day(value)

    if end < start:
        raise ValueError(f"Date range ends before it starts: {value!r}")
    return DateRange(start=start, end=end)


_PAGE_KEY_STRIP = re.compile(r"-")
_HONORIFIC_SUFFIX = re.compile(r"(様|さん|サン)+$")


def normalize_page_key(value: str | None) -> str:
    """Normalize an external tracker page id: dashes removed, lower-cased."""
    if not value:
        return ""
    return _PAGE_KEY_STRIP.sub("", value.strip()).lower()


def normalize_cast_name(value: str | None) -> str:
    """Strip honorific suffixes (様/さん/サン) and surrounding whitespace."""
    if not value:
        return ""
    return _HONORIFIC_SUFFIX.sub("", value.strip()).strip()
