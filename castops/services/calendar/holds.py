"""
Calendar hold rendering.

Pure functions turning a booking into the event resource the hold calendar
stores: title, description block and start/end bodies.
"""

from datetime import date, timedelta

from castops.models.domain.booking_domain import Booking
from castops.models.domain.status_machine import CONFIRMATION_STATUSES, BookingStatus

DEFAULT_ROLE = "出演"


def _account_label(booking: Booking) -> str:
    return booking.account_name or booking.project_name


def is_provisional(status: BookingStatus) -> bool:
    return status not in CONFIRMATION_STATUSES


def hold_summary(booking: Booking, status: BookingStatus) -> str:
    """
    ``{account}_{rank}候補_{status}`` while provisional,
    ``{account}_決定キャスティング`` once confirmed.
    """
    account = _account_label(booking)
    if not is_provisional(status):
        return f"{account}_決定キャスティング"
    return f"{account}_{booking.rank}候補_{status.label}"


def hold_description(booking: Booking, status: BookingStatus) -> str:
    lines = [
        "【キャスティング仮ホールド】",
        "",
        f"・アカウント: {booking.account_name}",
        f"・作品名: {booking.project_name}",
        f"・役名: {booking.role_name or DEFAULT_ROLE}",
        f"・区分: {booking.tier.label}",
        f"・キャスト: {booking.cast_name}",
        f"・キャスティングID: {booking.id}",
        f"・ステータス: {status.label}",
        "",
        "この予定はキャスティング管理システムから自動作成されています。",
        "ステータス変更時にはシステム側で更新される場合があります。",
    ]
    return "\n".join(lines)


def hold_times(
    start_date: date,
    end_date: date,
    start_time: str | None,
    end_time: str | None,
    timezone: str,
) -> dict:
    """
    Build ``start``/``end`` bodies.

    Timed when both times are given, otherwise all-day with the exclusive
    end date the Calendar API expects.
    """
    if start_time and end_time:
        return {
            "start": {"dateTime": f"{start_date.isoformat()}T{start_time}:00", "timeZone": timezone},
            "end": {"dateTime": f"{end_date.isoformat()}T{end_time}:00", "timeZone": timezone},
        }

    return {
        "start": {"date": start_date.isoformat()},
        "end": {"date": (end_date + timedelta(days=1)).isoformat()},
    }


def build_hold_event(
    booking: Booking,
    status: BookingStatus,
    timezone: str,
    cast_email: str = "",
) -> dict:
    body = {
        "summary": hold_summary(booking, status),
        "description": hold_description(booking, status),
        **hold_times(
            booking.start_date, booking.end_date, booking.start_time, booking.end_time, timezone
        ),
    }
    if cast_email:
        body["attendees"] = [{"email": cast_email}]
    return body
