"""
Booking lifecycle workflow: status changes, deletion and field edits.

The booking row is the source of truth and is written first. Every
downstream effect (thread reply, calendar hold, Notion page, contact record,
cast master history) runs as an independent best-effort step.
"""

import uuid
from datetime import date

from castops.config import Settings
from castops.infrastructure.observability.logging import get_logger
from castops.models.domain.booking_domain import (
    Booking,
    CastMasterEntry,
    CastType,
    ContactRecord,
    DateRange,
    check_time,
    parse_day,
)
from castops.models.domain.order_domain import DeleteResult, EditResult, StatusUpdateResult
from castops.models.domain.status_machine import (
    CONFIRMATION_STATUSES,
    NEGATIVE_STATUSES,
    BookingStatus,
    validate_transition,
)
from castops.repositories.booking_repository import BookingRepository
from castops.repositories.contact_repository import ContactRepository
from castops.services.calendar.google_client import GoogleCalendarService
from castops.services.calendar.holds import hold_description, hold_summary, hold_times
from castops.services.errors import InvalidArgumentError, NotFoundError, PermissionDeniedError
from castops.services.messages.builders import (
    build_deletion_message,
    build_edit_message,
    build_status_message,
)
from castops.services.notion.client import NotionClient, cast_property_name
from castops.services.orchestration.steps import best_effort
from castops.services.slack.client import SlackClient

logger = get_logger(__name__)

DATE_FIELDS = ("start_date", "end_date")
TIME_FIELDS = ("start_time", "end_time")
EDITABLE_FIELDS = (*DATE_FIELDS, *TIME_FIELDS, "project_name")

# Bookings in these statuses no longer need their calendar hold
HOLD_RELEASED_STATUSES = NEGATIVE_STATUSES | {BookingStatus.DELETED}
HOLD_KEEPING_STATUSES = frozenset(BookingStatus) - HOLD_RELEASED_STATUSES


def _display(value) -> str:
    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _coerce(field_name: str, value):
    if field_name in DATE_FIELDS:
        if isinstance(value, date):
            return value
        try:
            return parse_day(str(value))
        except ValueError as e:
            raise InvalidArgumentError(str(e), field=field_name) from e
    if field_name in TIME_FIELDS:
        try:
            return check_time(value)
        except ValueError as e:
            raise InvalidArgumentError(str(e), field=field_name) from e
    return value or ""


class BookingLifecycleService:
    def __init__(
        self,
        settings: Settings,
        bookings: BookingRepository,
        contacts: ContactRepository,
        slack: SlackClient | None = None,
        calendar: GoogleCalendarService | None = None,
        notion: NotionClient | None = None,
    ):
        self._settings = settings
        self._bookings = bookings
        self._contacts = contacts
        self._slack = slack
        self._calendar = calendar
        self._notion = notion

    @property
    def _slack_enabled(self) -> bool:
        return self._slack is not None and self._settings.slack_configured()

    @property
    def _calendar_enabled(self) -> bool:
        return self._calendar is not None and self._settings.calendar_configured()

    async def _reply_in_thread(self, booking: Booking, text: str, step: str) -> bool | None:
        if not booking.thread_id or not self._slack_enabled:
            return None
        result = await best_effort(
            step,
            self._slack.post_message(
                self._settings.SLACK_CHANNEL_INTERNAL, text, thread_ts=booking.thread_id
            ),
            "",
            booking_id=booking.id,
        )
        return result.ok

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    async def update_status(
        self,
        booking_id: str,
        new_status: BookingStatus,
        *,
        actor: str,
        is_admin: bool,
        previous_status_hint: BookingStatus | None = None,
        cost: int | None = None,
        note: str = "",
    ) -> StatusUpdateResult:
        booking = await self._bookings.get_booking(booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found", booking_id=booking_id)

        previous = previous_status_hint or booking.status
        validate_transition(previous, new_status, is_admin)
        replay = previous == new_status

        await self._bookings.update_status(booking_id, new_status, actor, cost=cost)
        booking.status = new_status
        if cost is not None:
            booking.cost = cost

        logger.info(
            "Booking status updated",
            booking_id=booking_id,
            previous_status=previous.value,
            status=new_status.value,
            actor=actor,
            replay=replay,
        )

        side_effects: dict[str, bool] = {}

        if not replay:
            text = build_status_message(
                booking.cast_name, previous.label, new_status.label, cost=cost, note=note
            )
            replied = await self._reply_in_thread(booking, text, "status_reply")
            if replied is not None:
                side_effects["slack_reply"] = replied

        if booking.is_internal and booking.calendar_event_id and self._calendar_enabled:
            if new_status in CONFIRMATION_STATUSES:
                result = await best_effort(
                    "hold_confirm",
                    self._calendar.patch_event(
                        booking.calendar_event_id,
                        {
                            "summary": hold_summary(booking, new_status),
                            "description": hold_description(booking, new_status),
                        },
                    ),
                    None,
                    booking_id=booking_id,
                )
                side_effects["calendar_hold"] = result.ok
            elif new_status in NEGATIVE_STATUSES:
                side_effects["calendar_hold"] = await self._release_hold(booking)

        if new_status in CONFIRMATION_STATUSES:
            if self._notion is not None and booking.project_id:
                result = await best_effort(
                    "notion_sync",
                    self._notion.add_multi_select_option(
                        booking.project_id,
                        cast_property_name(booking.cast_type, booking.tier),
                        booking.cast_name,
                    ),
                    False,
                    booking_id=booking_id,
                )
                side_effects["notion"] = result.ok

            if booking.cast_type is CastType.EXTERNAL:
                result = await best_effort(
                    "contact_record", self._ensure_contact(booking), False, booking_id=booking_id
                )
                side_effects["contact_record"] = result.ok

        if new_status is BookingStatus.CONFIRMED_FINAL:
            result = await best_effort(
                "cast_master",
                self._contacts.create_master_entry_if_absent(self._master_entry(booking, actor)),
                False,
                booking_id=booking_id,
            )
            side_effects["cast_master"] = result.ok

        return StatusUpdateResult(
            booking_id=booking_id,
            previous_status=previous,
            status=new_status,
            replay=replay,
            side_effects=side_effects,
        )

    async def _release_hold(self, booking: Booking) -> bool:
        """
        Drop the booking's calendar hold. A hold shared with another live
        booking of the same cast and day is kept; only this booking lets go of it.
        """
        event_id = booking.calendar_event_id
        sharers = await best_effort(
            "hold_sharers",
            self._bookings.count_hold_sharers(event_id, booking.id, HOLD_KEEPING_STATUSES),
            1,
            booking_id=booking.id,
            event_id=event_id,
        )
        if sharers.value:
            logger.info(
                "Calendar hold kept for other bookings",
                booking_id=booking.id,
                event_id=event_id,
                sharers=sharers.value,
            )
        else:
            deleted = await best_effort(
                "hold_release",
                self._calendar.delete_event(event_id),
                False,
                booking_id=booking.id,
                event_id=event_id,
            )
            if not deleted.ok:
                return False
        cleared = await best_effort(
            "hold_clear",
            self._bookings.set_calendar_event_id(booking.id, ""),
            None,
            booking_id=booking.id,
        )
        if cleared.ok:
            booking.calendar_event_id = ""
        return cleared.ok

    async def _ensure_contact(self, booking: Booking) -> bool:
        """Create the booking's contact record once; True when newly created."""
        if await self._contacts.find_contact_by_booking(booking.id):
            return False

        created = await self._contacts.create_contact_if_absent(
            ContactRecord(
                id=uuid.uuid4().hex,
                booking_id=booking.id,
                cast_id=booking.cast_id,
                cast_name=booking.cast_name,
                cast_type=booking.cast_type,
                shoot_date=booking.start_date,
                account_name=booking.account_name,
                project_name=booking.project_name,
                role_name=booking.role_name,
                tier=booking.tier,
                thread_id=booking.thread_id,
            )
        )
        if created:
            logger.info("Contact record created", booking_id=booking.id, cast_id=booking.cast_id)
        return created

    @staticmethod
    def _master_entry(booking: Booking, actor: str) -> CastMasterEntry:
        return CastMasterEntry(
            id=uuid.uuid4().hex,
            booking_id=booking.id,
            cast_id=booking.cast_id,
            cast_name=booking.cast_name,
            cast_type=booking.cast_type,
            shoot_date=booking.start_date,
            end_date=booking.end_date,
            account_name=booking.account_name,
            project_name=booking.project_name,
            role_name=booking.role_name,
            tier=booking.tier,
            cost=booking.cost,
            decided_by=actor,
        )

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def delete_booking(self, booking_id: str, *, actor: str, is_admin: bool) -> DeleteResult:
        """
        Soft-delete a booking (status ``deleted``). Admin only; allowed from
        any status as an administrative override of the transition table.
        """
        if not is_admin:
            raise PermissionDeniedError("Only admins can delete bookings", booking_id=booking_id)

        booking = await self._bookings.get_booking(booking_id)
        if booking is None or booking.status is BookingStatus.DELETED:
            return DeleteResult(booking_id=booking_id, deleted=False, message="already deleted")

        if booking.is_internal and booking.calendar_event_id and self._calendar_enabled:
            await self._release_hold(booking)

        await self._reply_in_thread(
            booking,
            build_deletion_message(booking.cast_name, booking.project_name),
            "deletion_notice",
        )

        await self._bookings.update_status(booking_id, BookingStatus.DELETED, actor)
        logger.info("Booking deleted", booking_id=booking_id, actor=actor)
        return DeleteResult(booking_id=booking_id, deleted=True, message="deleted")

    # ------------------------------------------------------------------
    # Field edits
    # ------------------------------------------------------------------

    @staticmethod
    def _follow_end_date(booking: Booking, new_start: date) -> date:
        """
        End date after an edit that only moved the start. Single-day bookings
        move whole; a range the new start would invert keeps its length.
        """
        if booking.end_date == booking.start_date:
            return new_start
        if new_start > booking.end_date:
            return booking.end_date + (new_start - booking.start_date)
        return booking.end_date

    async def edit_booking_fields(
        self, booking_id: str, changes: dict, *, actor: str
    ) -> EditResult:
        """
        Apply edits to dates, times or project name.

        Each value in ``changes`` is either the new value or a
        ``{"from": ..., "to": ...}`` mapping; only ``to`` is applied, the
        stored value is always the ``from`` side of the summary.
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise InvalidArgumentError(f"Fields not editable: {sorted(unknown)}")

        booking = await self._bookings.get_booking(booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found", booking_id=booking_id)

        fields: dict = {}
        summary: dict[str, dict[str, str]] = {}
        for field_name in EDITABLE_FIELDS:
            if field_name not in changes:
                continue
            raw = changes[field_name]
            new_value = _coerce(field_name, raw.get("to") if isinstance(raw, dict) else raw)
            old_value = getattr(booking, field_name)
            if new_value == old_value:
                continue
            fields[field_name] = new_value
            summary[field_name] = {"from": _display(old_value), "to": _display(new_value)}

        if not fields:
            return EditResult(booking_id=booking_id)

        if "start_date" in fields and "end_date" not in changes:
            fields["end_date"] = self._follow_end_date(booking, fields["start_date"])
            if fields["end_date"] == booking.end_date:
                del fields["end_date"]

        old_project = booking.project_name
        for field_name, value in fields.items():
            setattr(booking, field_name, value)

        if booking.end_date < booking.start_date:
            raise InvalidArgumentError("end_date must not be before start_date")

        if any(name in fields for name in DATE_FIELDS):
            date_range = DateRange(booking.start_date, booking.end_date)
            booking.shoot_dates = date_range.days() if date_range.is_multi_day else []
            fields["shoot_dates"] = booking.shoot_dates

        await self._bookings.update_fields(booking_id, fields, actor)
        logger.info("Booking fields edited", booking_id=booking_id, fields=sorted(summary))

        side_effects: dict[str, bool] = {}

        replied = await self._reply_in_thread(
            booking,
            build_edit_message(booking.cast_name, booking.project_name, summary),
            "edit_notice",
        )
        if replied is not None:
            side_effects["slack_reply"] = replied

        renamed = "project_name" in fields
        if renamed:
            master = await best_effort(
                "rename_cast_master",
                self._contacts.rename_project_in_master(
                    booking.cast_id, old_project, booking.project_name
                ),
                0,
                booking_id=booking_id,
            )
            side_effects["cast_master"] = master.ok
            contacts = await best_effort(
                "rename_contacts",
                self._contacts.rename_project_in_contacts(
                    booking.cast_id, old_project, booking.project_name
                ),
                0,
                booking_id=booking_id,
            )
            side_effects["contact_records"] = contacts.ok

        if booking.is_internal and booking.calendar_event_id and self._calendar_enabled:
            body: dict = {}
            if any(name in fields for name in (*DATE_FIELDS, *TIME_FIELDS)):
                body.update(
                    hold_times(
                        booking.start_date,
                        booking.end_date,
                        booking.start_time,
                        booking.end_time,
                        self._settings.CALENDAR_TIMEZONE,
                    )
                )
            if renamed:
                body["summary"] = hold_summary(booking, booking.status)
                body["description"] = hold_description(booking, booking.status)
            result = await best_effort(
                "hold_update",
                self._calendar.patch_event(booking.calendar_event_id, body),
                None,
                booking_id=booking_id,
            )
            side_effects["calendar_hold"] = result.ok

        return EditResult(booking_id=booking_id, change_summary=summary, side_effects=side_effects)
