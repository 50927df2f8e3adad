# castops/models/domain/order_domain.py
"""
Order Domain Models
Input and output shapes of the order and booking lifecycle workflows,
independent of the HTTP layer.
"""

from dataclasses import dataclass, field

from castops.models.domain.booking_domain import CastType, DateRange, HoldKey, OrderMode, Tier
from castops.models.domain.status_machine import BookingStatus


@dataclass(slots=True)
class OrderItem:
    """One candidate cast member for one role."""

    cast_id: str
    cast_name: str
    cast_type: CastType
    role_name: str = ""
    rank: int = 1
    tier: Tier = Tier.OTHER
    project_name: str = ""
    mention_id: str = ""
    note: str = ""


@dataclass(slots=True)
class ShootingInfo:
    title: str = ""
    team: str = ""
    director: str = ""
    floor_director: str = ""


@dataclass(slots=True)
class Attachment:
    filename: str
    content: bytes


@dataclass(slots=True)
class OrderRequest:
    items: list[OrderItem]
    date_ranges: list[DateRange]
    mode: OrderMode = OrderMode.SHOOTING
    project_id: str = ""
    account_name: str = ""
    project_name: str = ""
    start_time: str | None = None
    end_time: str | None = None
    shooting: ShootingInfo | None = None
    attachment: Attachment | None = None
    cc_mention: str = ""
    actor: str = ""
    actor_email: str = ""


@dataclass(slots=True)
class OrderResult:
    thread_id: str
    permalink: str
    booking_ids: list[str]
    holds: dict[HoldKey, str] = field(default_factory=dict)
    # item index -> conflict annotation
    conflicts: dict[int, str] = field(default_factory=dict)
    is_additional_thread: bool = False


@dataclass(slots=True)
class StatusUpdateResult:
    booking_id: str
    previous_status: BookingStatus
    status: BookingStatus
    replay: bool = False
    # side effect name -> succeeded
    side_effects: dict[str, bool] = field(default_factory=dict)


@dataclass(slots=True)
class DeleteResult:
    booking_id: str
    deleted: bool
    message: str


@dataclass(slots=True)
class EditResult:
    booking_id: str
    change_summary: dict[str, dict[str, str]] = field(default_factory=dict)
    side_effects: dict[str, bool] = field(default_factory=dict)
