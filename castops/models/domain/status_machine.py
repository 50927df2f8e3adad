# castops/models/domain/status_machine.py
"""
Booking status state machine.

Transitions are validated here, server-side, against an explicit table. The
admin table is a superset of the member table; both progress toward
``confirmed_final`` or a terminal ``rejected``/``cancelled``.
"""

from enum import StrEnum

from castops.services.errors import InvalidTransitionError


class BookingStatus(StrEnum):
    PROVISIONAL_HOLD = "provisional_hold"
    PROVISIONAL_CAST = "provisional_cast"
    PENDING_RESPONSE = "pending_response"
    AWAITING_ORDER = "awaiting_order"
    CONFIRMED_OK = "confirmed_ok"
    CONFIRMED_FINAL = "confirmed_final"
    CONDITIONAL_OK = "conditional_ok"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    DELETED = "deleted"

    @property
    def label(self) -> str:
        """Display label used in Slack messages and calendar titles."""
        return STATUS_LABELS[self]


STATUS_LABELS: dict[BookingStatus, str] = {
    BookingStatus.PROVISIONAL_HOLD: "仮押さえ",
    BookingStatus.PROVISIONAL_CAST: "仮キャスティング",
    BookingStatus.PENDING_RESPONSE: "打診中",
    BookingStatus.AWAITING_ORDER: "オーダー待ち",
    BookingStatus.CONFIRMED_OK: "OK",
    BookingStatus.CONFIRMED_FINAL: "決定",
    BookingStatus.CONDITIONAL_OK: "条件つきOK",
    BookingStatus.REJECTED: "NG",
    BookingStatus.CANCELLED: "キャンセル",
    BookingStatus.DELETED: "削除済み",
}

# Statuses that occupy a cast member's day for conflict detection
ACTIVE_STATUSES: frozenset[BookingStatus] = frozenset(
    {
        BookingStatus.PROVISIONAL_HOLD,
        BookingStatus.PROVISIONAL_CAST,
        BookingStatus.PENDING_RESPONSE,
        BookingStatus.AWAITING_ORDER,
        BookingStatus.CONFIRMED_OK,
        BookingStatus.CONFIRMED_FINAL,
    }
)

# Statuses whose calendar hold is still tentative
PROVISIONAL_STATUSES: frozenset[BookingStatus] = frozenset(
    {
        BookingStatus.PROVISIONAL_HOLD,
        BookingStatus.PROVISIONAL_CAST,
        BookingStatus.PENDING_RESPONSE,
        BookingStatus.AWAITING_ORDER,
        BookingStatus.CONDITIONAL_OK,
    }
)

CONFIRMATION_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.CONFIRMED_OK, BookingStatus.CONFIRMED_FINAL}
)

NEGATIVE_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.REJECTED, BookingStatus.CANCELLED}
)

_OPENING_TARGETS = (
    BookingStatus.PENDING_RESPONSE,
    BookingStatus.AWAITING_ORDER,
    BookingStatus.CONDITIONAL_OK,
    BookingStatus.CONFIRMED_OK,
    BookingStatus.CONFIRMED_FINAL,
    BookingStatus.REJECTED,
    BookingStatus.CANCELLED,
)

ADMIN_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PROVISIONAL_HOLD: frozenset(_OPENING_TARGETS),
    BookingStatus.PROVISIONAL_CAST: frozenset(_OPENING_TARGETS),
    BookingStatus.PENDING_RESPONSE: frozenset(
        {
            BookingStatus.AWAITING_ORDER,
            BookingStatus.CONDITIONAL_OK,
            BookingStatus.CONFIRMED_OK,
            BookingStatus.REJECTED,
        }
    ),
    BookingStatus.AWAITING_ORDER: frozenset(
        {
            BookingStatus.CONDITIONAL_OK,
            BookingStatus.CONFIRMED_OK,
            BookingStatus.CONFIRMED_FINAL,
            BookingStatus.REJECTED,
        }
    ),
    BookingStatus.CONDITIONAL_OK: frozenset(
        {BookingStatus.CONFIRMED_OK, BookingStatus.CONFIRMED_FINAL, BookingStatus.REJECTED}
    ),
    BookingStatus.CONFIRMED_OK: frozenset({BookingStatus.CONFIRMED_FINAL, BookingStatus.REJECTED}),
    BookingStatus.CONFIRMED_FINAL: frozenset({BookingStatus.CANCELLED, BookingStatus.DELETED}),
    BookingStatus.REJECTED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.DELETED: frozenset(),
}

MEMBER_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    status: frozenset() for status in BookingStatus
} | {
    BookingStatus.PROVISIONAL_HOLD: frozenset(
        {BookingStatus.PENDING_RESPONSE, BookingStatus.AWAITING_ORDER}
    ),
    BookingStatus.PROVISIONAL_CAST: frozenset(
        {BookingStatus.PENDING_RESPONSE, BookingStatus.AWAITING_ORDER}
    ),
    BookingStatus.PENDING_RESPONSE: frozenset({BookingStatus.AWAITING_ORDER}),
}


def allowed_transitions(current: BookingStatus, is_admin: bool) -> frozenset[BookingStatus]:
    table = ADMIN_TRANSITIONS if is_admin else MEMBER_TRANSITIONS
    return table[current]


def can_transition(current: BookingStatus, target: BookingStatus, is_admin: bool) -> bool:
    return target in allowed_transitions(current, is_admin)


def validate_transition(current: BookingStatus, target: BookingStatus, is_admin: bool) -> None:
    """
    Raise InvalidTransitionError unless ``current -> target`` is allowed.

    Re-applying the current status is accepted so a retried request (or a
    caller that already persisted the new status optimistically) does not
    fail.
    """
    if current == target:
        return

    if not can_transition(current, target, is_admin):
        raise InvalidTransitionError(
            f"Transition {current.value} -> {target.value} is not allowed",
            current=current.value,
            target=target.value,
        )
