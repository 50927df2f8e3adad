# castops/models/api/casting_response.py
"""
Casting API response models.
Used by routes for output formatting.
"""

from pydantic import BaseModel, Field

from castops.models.domain.order_domain import (
    DeleteResult,
    EditResult,
    OrderResult,
    StatusUpdateResult,
)


class HoldResponse(BaseModel):
    cast_id: str = Field(..., description="Internal cast ID")
    date: str = Field(..., description="First day of the held range (ISO)")
    event_id: str = Field(..., description="Calendar event ID")


class CreateOrderResponse(BaseModel):
    """Response for a submitted order."""

    thread_id: str = Field(..., description="Slack thread ts the order lives in")
    permalink: str = Field(default="", description="Slack permalink of the thread")
    booking_ids: list[str] = Field(..., description="Bookings created, item-major order")
    holds: list[HoldResponse] = Field(default_factory=list, description="Calendar holds created")
    conflicts: dict[int, str] = Field(
        default_factory=dict, description="Item index -> conflict annotation"
    )
    is_additional_thread: bool = Field(..., description="Posted into an existing project thread")

    @classmethod
    def from_result(cls, result: OrderResult) -> "CreateOrderResponse":
        return cls(
            thread_id=result.thread_id,
            permalink=result.permalink,
            booking_ids=result.booking_ids,
            holds=[
                HoldResponse(cast_id=key.cast_id, date=key.date.isoformat(), event_id=event_id)
                for key, event_id in result.holds.items()
            ],
            conflicts=result.conflicts,
            is_additional_thread=result.is_additional_thread,
        )


class UpdateStatusResponse(BaseModel):
    booking_id: str
    previous_status: str
    status: str
    replay: bool = Field(default=False, description="Status was already applied")
    side_effects: dict[str, bool] = Field(
        default_factory=dict, description="Downstream step -> succeeded"
    )

    @classmethod
    def from_result(cls, result: StatusUpdateResult) -> "UpdateStatusResponse":
        return cls(
            booking_id=result.booking_id,
            previous_status=result.previous_status.value,
            status=result.status.value,
            replay=result.replay,
            side_effects=result.side_effects,
        )


class DeleteBookingResponse(BaseModel):
    ok: bool = True
    booking_id: str
    deleted: bool
    message: str

    @classmethod
    def from_result(cls, result: DeleteResult) -> "DeleteBookingResponse":
        return cls(booking_id=result.booking_id, deleted=result.deleted, message=result.message)


class EditBookingResponse(BaseModel):
    booking_id: str
    change_summary: dict[str, dict[str, str]] = Field(
        default_factory=dict, description="Field -> {from, to}"
    )
    side_effects: dict[str, bool] = Field(default_factory=dict)

    @classmethod
    def from_result(cls, result: EditResult) -> "EditBookingResponse":
        return cls(
            booking_id=result.booking_id,
            change_summary=result.change_summary,
            side_effects=result.side_effects,
        )


class ContactStatusResponse(BaseModel):
    contact_id: str
    status: str
    status_label: str
