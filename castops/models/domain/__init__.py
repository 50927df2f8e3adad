"""
Domain models for casting operations.
"""

from .booking_domain import (
    Booking,
    Cast,
    CastMasterEntry,
    CastType,
    ContactRecord,
    ContactStatus,
    DateRange,
    HoldKey,
    OrderMode,
    ShootDetail,
    Tier,
)
from .status_machine import BookingStatus

__all__ = [
    "Booking",
    "BookingStatus",
    "Cast",
    "CastMasterEntry",
    "CastType",
    "ContactRecord",
    "ContactStatus",
    "DateRange",
    "HoldKey",
    "OrderMode",
    "ShootDetail",
    "Tier",
]
