# castops/models/api/casting_request.py
"""
Casting API request models.
Used by routes for input validation.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from castops.models.domain.booking_domain import (
    CastType,
    ContactStatus,
    DateRange,
    OrderMode,
    Tier,
    check_time,
    parse_date_range,
    parse_day,
)
from castops.models.domain.order_domain import OrderItem, ShootingInfo
from castops.models.domain.status_machine import BookingStatus


class OrderItemRequest(BaseModel):
    """One candidate in an order."""

    cast_id: str = Field(..., min_length=1, description="Cast ID")
    cast_name: str = Field(..., min_length=1, description="Cast display name")
    cast_type: CastType = Field(..., description="internal or external")
    role_name: str = Field(default="", description="Role label")
    rank: int = Field(default=1, ge=1, description="Candidate rank, 1 = first choice")
    tier: Tier = Field(default=Tier.OTHER, description="main, sub or other")
    project_name: str = Field(default="", description="Project this role belongs to")
    mention_id: str = Field(default="", description="Slack member ID of the cast")
    note: str = Field(default="", max_length=1000, description="Free-form note")

    def to_domain(self) -> OrderItem:
        return OrderItem(
            cast_id=self.cast_id,
            cast_name=self.cast_name,
            cast_type=self.cast_type,
            role_name=self.role_name,
            rank=self.rank,
            tier=self.tier,
            project_name=self.project_name,
            mention_id=self.mention_id,
            note=self.note,
        )


class ShootingInfoRequest(BaseModel):
    title: str = Field(default="", description="Shoot or event title")
    team: str = Field(default="", description="Producer / team name")
    director: str = Field(default="", description="Casting director name")
    floor_director: str = Field(default="", description="Floor director name")

    def to_domain(self) -> ShootingInfo:
        return ShootingInfo(
            title=self.title,
            team=self.team,
            director=self.director,
            floor_director=self.floor_director,
        )


class AttachmentRequest(BaseModel):
    filename: str = Field(..., min_length=1, description="File name shown in Slack")
    content_base64: str = Field(..., min_length=1, description="Base64-encoded PDF")


class CreateOrderRequest(BaseModel):
    """Request for submitting a casting order."""

    items: list[OrderItemRequest] = Field(..., description="Candidates to book")
    date_ranges: list[str] = Field(
        ..., description="Dates as YYYY/MM/DD, YYYY-MM-DD or start~end"
    )
    mode: OrderMode = Field(default=OrderMode.SHOOTING, description="shooting, external or internal")
    project_id: str = Field(default="", description="Notion page ID of the project")
    account_name: str = Field(default="", description="Account name")
    project_name: str = Field(default="", description="Project name")
    start_time: str | None = Field(default=None, description="Start time (HH:MM)")
    end_time: str | None = Field(default=None, description="End time (HH:MM)")
    shooting: ShootingInfoRequest | None = Field(default=None, description="Shooting details")
    attachment: AttachmentRequest | None = Field(default=None, description="Order PDF")
    cc_mention: str = Field(default="", description="CC for special orders")

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: str | None) -> str | None:
        return check_time(value)

    def parsed_date_ranges(self) -> list[DateRange]:
        return [parse_date_range(value) for value in self.date_ranges]

    def domain_items(self) -> list[OrderItem]:
        return [item.to_domain() for item in self.items]


class UpdateStatusRequest(BaseModel):
    """Request for changing a booking's status."""

    status: BookingStatus = Field(..., description="Target status")
    previous_status: BookingStatus | None = Field(
        default=None, description="Status the caller believes the booking is in"
    )
    cost: int | None = Field(default=None, ge=0, description="Fee in yen")
    note: str = Field(default="", max_length=1000, description="Note posted with the change")


class FromTo(BaseModel):
    """A ``{"from": old, "to": new}`` pair; only ``to`` is applied."""

    model_config = ConfigDict(populate_by_name=True)

    from_: str | None = Field(default=None, alias="from")
    to: str | None = None


def _target(value: str | FromTo | None) -> str | None:
    return value.to if isinstance(value, FromTo) else value


class EditBookingRequest(BaseModel):
    """
    Field edits. Each value is either the new value or ``{"from", "to"}``.
    """

    start_date: str | FromTo | None = Field(default=None, description="New start date")
    end_date: str | FromTo | None = Field(default=None, description="New end date")
    start_time: str | FromTo | None = Field(default=None, description="New start time (HH:MM)")
    end_time: str | FromTo | None = Field(default=None, description="New end time (HH:MM)")
    project_name: str | FromTo | None = Field(default=None, description="New project name")

    @field_validator("start_date", "end_date")
    @classmethod
    def validate_date(cls, value: str | FromTo | None) -> str | FromTo | None:
        target = _target(value)
        if target is None:
            raise ValueError("date cannot be cleared")
        parse_day(target)
        return value

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: str | FromTo | None) -> str | FromTo | None:
        check_time(_target(value))
        return value

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, by_alias=True)


class AdvanceContactStatusRequest(BaseModel):
    status: ContactStatus = Field(..., description="Target fulfillment status")
