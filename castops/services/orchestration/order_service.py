"""
Order submission workflow.

Writes the bookings of a submission, annotates schedule conflicts, notifies
Slack, places calendar holds for internal cast and writes the resulting
correlation ids back onto the bookings.
"""

import asyncio
import base64
import binascii
import uuid

from castops.config import Settings
from castops.db.helpers import DatabaseError
from castops.infrastructure.observability.logging import get_logger
from castops.models.domain.booking_domain import Booking, CastType, HoldKey, OrderMode
from castops.models.domain.order_domain import Attachment, OrderItem, OrderRequest, OrderResult
from castops.models.domain.status_machine import ACTIVE_STATUSES, BookingStatus
from castops.repositories.booking_repository import BookingRepository, CorrelationUpdate
from castops.services.calendar.google_client import GoogleCalendarService
from castops.services.calendar.holds import build_hold_event
from castops.services.errors import FailedPreconditionError, InvalidArgumentError
from castops.services.messages.builders import (
    OrderLine,
    build_additional_order_message,
    build_order_message,
    build_special_order_message,
)
from castops.services.orchestration.steps import best_effort
from castops.services.slack.client import PostResult, SlackClient

logger = get_logger(__name__)

UNKNOWN_PROJECT = "不明"


def initial_status(mode: OrderMode, cast_type: CastType) -> BookingStatus:
    if not mode.is_special:
        return BookingStatus.PROVISIONAL_HOLD
    if cast_type is CastType.EXTERNAL:
        return BookingStatus.CONFIRMED_FINAL
    return BookingStatus.PROVISIONAL_CAST


def conflict_annotation(project_name: str) -> str:
    return f"同日に別の撮影があります（{project_name or UNKNOWN_PROJECT}）"


def decode_attachment(filename: str, content_base64: str) -> Attachment:
    """Decode a base64 attachment; malformed input is an invalid argument."""
    try:
        content = base64.b64decode(content_base64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidArgumentError(f"Attachment is not valid base64: {e}") from e
    return Attachment(filename=filename, content=content)


class OrderService:
    def __init__(
        self,
        settings: Settings,
        bookings: BookingRepository,
        slack: SlackClient | None,
        calendar: GoogleCalendarService | None = None,
    ):
        self._settings = settings
        self._bookings = bookings
        self._slack = slack
        self._calendar = calendar

    async def create_order(self, request: OrderRequest) -> OrderResult:
        if not request.items:
            raise InvalidArgumentError("At least one cast item is required")
        if not request.date_ranges:
            raise InvalidArgumentError("At least one date range is required")
        if self._slack is None or not self._settings.slack_configured():
            raise FailedPreconditionError("Slack configuration missing")

        bookings_by_item = self._build_bookings(request)
        all_bookings = [b for item_bookings in bookings_by_item for b in item_bookings]
        booking_ids = [b.id for b in all_bookings]

        await self._bookings.create_bookings(all_bookings)
        logger.info(
            "Order bookings written",
            mode=request.mode.value,
            project_id=request.project_id,
            booking_count=len(all_bookings),
        )

        existing_thread = None
        if request.project_id:
            lookup = await best_effort(
                "thread_lookup",
                self._bookings.find_thread_for_project(request.project_id, exclude_ids=booking_ids),
                None,
                project_id=request.project_id,
            )
            existing_thread = lookup.value
        is_additional = existing_thread is not None

        annotations = await asyncio.gather(
            *(self._check_conflict(item, request, booking_ids) for item in request.items)
        )
        conflicts = {index: text for index, text in enumerate(annotations) if text}

        cc = await self._resolve_cc(request)
        text = self._build_message(request, annotations, cc, is_additional)

        thread_ts = existing_thread.thread_id if is_additional else None
        dispatch = await best_effort(
            "slack_dispatch",
            self._dispatch(text, request.attachment, thread_ts),
            None,
            project_id=request.project_id,
            additional=is_additional,
        )
        posted: PostResult | None = dispatch.value

        if is_additional:
            thread_id = existing_thread.thread_id
            permalink = existing_thread.permalink
        else:
            thread_id = posted.ts if posted else ""
            permalink = posted.permalink if posted else ""

        holds = await self._create_holds(all_bookings)

        if thread_id or holds:
            updates = [
                CorrelationUpdate(
                    booking_id=b.id,
                    thread_id=thread_id,
                    permalink=permalink,
                    calendar_event_id=(
                        holds.get(HoldKey(b.cast_id, b.start_date)) if b.is_internal else None
                    ),
                )
                for b in all_bookings
            ]
            await best_effort(
                "correlation_write_back",
                self._bookings.apply_correlation(updates),
                0,
                booking_count=len(updates),
            )

        logger.info(
            "Order processed",
            thread_id=thread_id,
            booking_count=len(booking_ids),
            hold_count=len(holds),
            conflict_count=len(conflicts),
            additional=is_additional,
        )

        return OrderResult(
            thread_id=thread_id,
            permalink=permalink,
            booking_ids=booking_ids,
            holds=holds,
            conflicts=conflicts,
            is_additional_thread=is_additional,
        )

    def _build_bookings(self, request: OrderRequest) -> list[list[Booking]]:
        per_item = []
        for item in request.items:
            status = initial_status(request.mode, item.cast_type)
            item_bookings = []
            for date_range in request.date_ranges:
                item_bookings.append(
                    Booking(
                        id=uuid.uuid4().hex,
                        cast_id=item.cast_id,
                        cast_name=item.cast_name,
                        cast_type=item.cast_type,
                        status=status,
                        start_date=date_range.start,
                        end_date=date_range.end,
                        account_name=request.account_name,
                        project_name=item.project_name or request.project_name,
                        project_id=request.project_id,
                        role_name=item.role_name,
                        rank=item.rank,
                        tier=item.tier,
                        mode=request.mode,
                        start_time=request.start_time,
                        end_time=request.end_time,
                        shoot_dates=date_range.days() if date_range.is_multi_day else [],
                        note=item.note,
                        created_by=request.actor,
                        updated_by=request.actor,
                    )
                )
            per_item.append(item_bookings)
        return per_item

    async def _check_conflict(
        self, item: OrderItem, request: OrderRequest, own_ids: list[str]
    ) -> str:
        """Annotation for the first active booking overlapping any requested day."""
        try:
            for date_range in request.date_ranges:
                for day in date_range.days():
                    existing = await self._bookings.find_conflicting_booking(
                        item.cast_id, day, ACTIVE_STATUSES, exclude_ids=own_ids
                    )
                    if existing:
                        logger.info(
                            "Schedule conflict detected",
                            cast_id=item.cast_id,
                            day=day.isoformat(),
                            existing_booking_id=existing.id,
                        )
                        return conflict_annotation(existing.project_name)
        except DatabaseError as e:
            logger.warning("Conflict check failed", cast_id=item.cast_id, error=str(e))
        return ""

    async def _mention_for(self, *, name: str = "", email: str = "") -> str:
        result = await best_effort(
            "mention_lookup",
            self._bookings.find_mention_id(name=name or None, email=email or None),
            "",
            name=name,
        )
        return f"<@{result.value}>" if result.value else ""

    async def _resolve_cc(self, request: OrderRequest) -> str:
        if request.mode is OrderMode.SHOOTING:
            if not request.shooting:
                return ""
            parts = []
            for label, name in (
                ("CD", request.shooting.director),
                ("FD", request.shooting.floor_director),
                ("P", request.shooting.team),
            ):
                if name:
                    mention = await self._mention_for(name=name)
                    parts.append(f"{label}: {mention or name}")
            return " / ".join(parts)

        cc = request.cc_mention
        if not cc or cc.startswith("<@"):
            return cc
        if request.actor_email:
            mention = await self._mention_for(email=request.actor_email)
            if mention:
                return mention
        return cc

    def _build_message(
        self,
        request: OrderRequest,
        annotations: list[str],
        cc: str,
        is_additional: bool,
    ) -> str:
        lines = [
            OrderLine(
                cast_name=item.cast_name,
                cast_type=item.cast_type,
                project_name=item.project_name or request.project_name,
                role_name=item.role_name,
                rank=item.rank,
                mention_id=item.mention_id,
                conflict=annotation,
            )
            for item, annotation in zip(request.items, annotations, strict=True)
        ]
        date_ranges = [date_range.display() for date_range in request.date_ranges]
        mention_group_id = self._settings.SLACK_MENTION_GROUP_ID or ""

        if is_additional:
            return build_additional_order_message(lines, mention_group_id=mention_group_id)

        if request.mode.is_special:
            title = (request.shooting.title if request.shooting else "") or request.project_name
            if not title:
                title = request.items[0].project_name
            return build_special_order_message(
                lines,
                date_ranges,
                mode=request.mode,
                title=title,
                start_time=request.start_time,
                end_time=request.end_time,
                cc=cc,
            )

        return build_order_message(
            lines,
            date_ranges,
            mode=request.mode,
            account_name=request.account_name,
            project_id=request.project_id,
            mention_group_id=mention_group_id,
            cc=cc,
        )

    async def _dispatch(
        self, text: str, attachment: Attachment | None, thread_ts: str | None
    ) -> PostResult:
        channel = self._settings.SLACK_CHANNEL_INTERNAL
        if attachment:
            return await self._slack.post_with_attachment(
                channel, text, attachment.content, attachment.filename, thread_ts=thread_ts
            )
        return await self._slack.post(channel, text, thread_ts=thread_ts)

    async def _create_holds(self, bookings: list[Booking]) -> dict[HoldKey, str]:
        """One hold per internal cast and date range, created sequentially."""
        holds: dict[HoldKey, str] = {}
        internal = [b for b in bookings if b.is_internal]
        if not internal:
            return holds

        if self._calendar is None or not self._settings.calendar_configured():
            logger.info("Calendar not configured, skipping holds", booking_count=len(internal))
            return holds

        precheck = await best_effort(
            "calendar_precheck", self._calendar.get_calendar(), None, calendar_id=self._calendar.calendar_id
        )
        if not precheck.ok:
            return holds

        for booking in internal:
            key = HoldKey(booking.cast_id, booking.start_date)
            if key in holds:
                continue

            cast = await best_effort(
                "cast_lookup", self._bookings.get_cast(booking.cast_id), None, cast_id=booking.cast_id
            )
            email = cast.value.email if cast.value else ""
            body = build_hold_event(booking, booking.status, self._settings.CALENDAR_TIMEZONE, email)

            created = await best_effort(
                "calendar_hold",
                self._calendar.insert_event(body),
                "",
                booking_id=booking.id,
                cast_id=booking.cast_id,
                date=booking.start_date.isoformat(),
            )
            if created.value:
                holds[key] = created.value

        return holds
