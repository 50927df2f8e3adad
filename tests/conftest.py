import json
from dataclasses import replace
from datetime import date

import pytest

from castops.auth.verify import auth_dependency
from castops.config import Settings
from castops.db.helpers import DatabaseError
from castops.models.domain.booking_domain import (
    Booking,
    Cast,
    CastType,
    ContactRecord,
    ContactStatus,
    ShootDetail,
    Tier,
    normalize_page_key,
)
from castops.models.domain.status_machine import BookingStatus
from castops.services.calendar.google_client import GoogleCalendarError
from castops.services.orchestration.lifecycle_service import BookingLifecycleService
from castops.services.orchestration.order_service import OrderService
from castops.services.reconciliation.contact_status import ContactStatusService
from castops.services.reconciliation.drive_sync import DriveLinkSyncService
from castops.services.reconciliation.shoot_details import ShootDetailService
from castops.services.slack.client import PostResult, SlackError

SLACK_CHANNEL = "C0CASTING"


@pytest.fixture
def auth_override():
    def _override():
        return {"sub": "user-123", "email": "producer@example.com"}

    return _override


@pytest.fixture
def admin_auth_override():
    def _override():
        return {"sub": "admin-1", "role": "admin"}

    return _override


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app, override=None):
        app.dependency_overrides[auth_dependency] = override or auth_override

    return _apply


class InMemoryStore:
    """
    Stands in for the booking, contact and reconciliation repositories.
    Records are copied on the way in and out like rows would be.
    """

    def __init__(self):
        self.bookings: dict[str, Booking] = {}
        self.casts: dict[str, Cast] = {}
        self.admins: list[dict] = []
        self.contacts: dict[str, ContactRecord] = {}
        self.master: dict[str, object] = {}
        self.drive_links: dict[str, str] = {}
        self.shoot_details: list[ShootDetail] = []
        self.fail_conflict_checks = False
        self.correlation_calls = 0

    # bookings ---------------------------------------------------------

    async def create_bookings(self, bookings):
        for booking in bookings:
            self.bookings[booking.id] = replace(booking)

    async def get_booking(self, booking_id):
        booking = self.bookings.get(booking_id)
        return replace(booking) if booking else None

    async def get_bookings(self, booking_ids):
        return {bid: replace(self.bookings[bid]) for bid in booking_ids if bid in self.bookings}

    async def find_thread_for_project(self, project_id, exclude_ids=()):
        excluded = set(exclude_ids)
        for booking in self.bookings.values():
            if booking.project_id == project_id and booking.thread_id and booking.id not in excluded:
                return replace(booking)
        return None

    async def find_conflicting_booking(self, cast_id, day, statuses, exclude_ids=()):
        if self.fail_conflict_checks:
            raise DatabaseError("connection lost", operation="fetch_one")
        excluded = set(exclude_ids)
        for booking in self.bookings.values():
            if (
                booking.cast_id == cast_id
                and booking.covers(day)
                and booking.status in statuses
                and booking.id not in excluded
            ):
                return replace(booking)
        return None

    async def apply_correlation(self, updates):
        self.correlation_calls += 1
        for update in updates:
            booking = self.bookings[update.booking_id]
            booking.thread_id = update.thread_id
            booking.permalink = update.permalink
            if update.calendar_event_id:
                booking.calendar_event_id = update.calendar_event_id
        return len(updates)

    async def update_status(self, booking_id, status, actor, cost=None):
        booking = self.bookings[booking_id]
        booking.status = status
        booking.updated_by = actor
        if cost is not None:
            booking.cost = cost

    async def update_fields(self, booking_id, fields, actor):
        booking = self.bookings[booking_id]
        for name, value in fields.items():
            setattr(booking, name, value)
        booking.updated_by = actor

    async def count_hold_sharers(self, event_id, exclude_id, statuses):
        return sum(
            1
            for booking in self.bookings.values()
            if booking.calendar_event_id == event_id
            and booking.id != exclude_id
            and booking.status in statuses
        )

    async def set_calendar_event_id(self, booking_id, event_id):
        self.bookings[booking_id].calendar_event_id = event_id

    async def get_cast(self, cast_id):
        return self.casts.get(cast_id)

    async def find_mention_id(self, *, name=None, email=None):
        column, value = ("name", name) if name else ("email", email)
        if not value:
            return ""
        for cast in self.casts.values():
            if getattr(cast, column) == value and cast.slack_mention_id:
                return cast.slack_mention_id
        for admin in self.admins:
            if admin.get(column) == value and admin.get("slack_mention_id"):
                return admin["slack_mention_id"]
        return ""

    # contacts ---------------------------------------------------------

    async def get_contact(self, contact_id):
        contact = self.contacts.get(contact_id)
        return replace(contact) if contact else None

    async def find_contact_by_booking(self, booking_id):
        for contact in self.contacts.values():
            if contact.booking_id == booking_id:
                return replace(contact)
        return None

    async def create_contact_if_absent(self, contact):
        if any(c.booking_id == contact.booking_id for c in self.contacts.values()):
            return False
        self.contacts[contact.id] = replace(contact)
        return True

    async def list_contacts(self, project_name=None):
        return [
            replace(c)
            for c in self.contacts.values()
            if project_name is None or c.project_name == project_name
        ]

    async def list_contacts_missing_making_url(self, project_name=None):
        return [c for c in await self.list_contacts(project_name) if not c.making_url]

    async def update_contact(self, contact_id, fields):
        contact = self.contacts[contact_id]
        for name, value in fields.items():
            if name == "status":
                value = ContactStatus(value)
            setattr(contact, name, value)

    async def batch_update_contacts(self, updates):
        for contact_id, fields in updates.items():
            await self.update_contact(contact_id, fields)
        return len([f for f in updates.values() if f])

    async def rename_project_in_contacts(self, cast_id, old_name, new_name):
        count = 0
        for contact in self.contacts.values():
            if contact.cast_id == cast_id and contact.project_name == old_name:
                contact.project_name = new_name
                count += 1
        return count

    async def create_master_entry_if_absent(self, entry):
        if entry.booking_id in self.master:
            return False
        self.master[entry.booking_id] = replace(entry)
        return True

    async def rename_project_in_master(self, cast_id, old_name, new_name):
        count = 0
        for entry in self.master.values():
            if entry.cast_id == cast_id and entry.project_name == old_name:
                entry.project_name = new_name
                count += 1
        return count

    # reconciliation ---------------------------------------------------

    async def get_drive_link(self, page_key):
        return self.drive_links.get(page_key) or None

    async def list_drive_links(self):
        return {key: link for key, link in self.drive_links.items() if link}

    async def list_shoot_details(self, page_key=None, cast_name=None):
        return [
            d
            for d in self.shoot_details
            if (not page_key or d.page_key == page_key)
            and (not cast_name or d.cast_name == cast_name)
        ]


class FakeSlack:
    def __init__(self):
        self.posts: list[dict] = []
        self.fail = False
        self._counter = 0

    def _next_ts(self) -> str:
        self._counter += 1
        return f"1700000000.{self._counter:06d}"

    async def post_message(self, channel, text, thread_ts=None):
        if self.fail:
            raise SlackError("Slack chat.postMessage failed: channel_not_found")
        ts = self._next_ts()
        self.posts.append({"channel": channel, "text": text, "thread_ts": thread_ts, "ts": ts})
        return ts

    async def post(self, channel, text, thread_ts=None):
        ts = await self.post_message(channel, text, thread_ts=thread_ts)
        return PostResult(ts=ts, permalink=f"https://slack.example/archives/{channel}/p{ts}")

    async def post_with_attachment(self, channel, text, content, filename, thread_ts=None):
        result = await self.post(channel, text, thread_ts=thread_ts)
        self.posts[-1]["filename"] = filename
        result.with_attachment = True
        return result


class FakeCalendar:
    calendar_id = "holds@group.calendar.google.com"

    def __init__(self):
        self.events: dict[str, dict] = {}
        self.patches: list[tuple[str, dict]] = []
        self.deleted: list[str] = []
        self.fail_inserts = False
        self._counter = 0

    async def get_calendar(self):
        return {"id": self.calendar_id}

    async def insert_event(self, body):
        if self.fail_inserts:
            raise GoogleCalendarError("Calendar access denied.", status_code=403)
        self._counter += 1
        event_id = f"evt{self._counter}"
        self.events[event_id] = dict(body)
        return event_id

    async def patch_event(self, event_id, body):
        self.patches.append((event_id, body))
        self.events.setdefault(event_id, {}).update(body)
        return self.events[event_id]

    async def delete_event(self, event_id):
        self.deleted.append(event_id)
        return self.events.pop(event_id, None) is not None


class FakeNotion:
    def __init__(self):
        self.pages: dict[str, dict[str, list[str]]] = {}
        self.patch_count = 0

    async def add_multi_select_option(self, page_id, property_name, option):
        tags = self.pages.setdefault(normalize_page_key(page_id), {}).setdefault(property_name, [])
        if option in tags:
            return False
        tags.append(option)
        self.patch_count += 1
        return True


@pytest.fixture
def test_settings():
    return Settings(
        SLACK_BOT_TOKEN="xoxb-test",
        SLACK_CHANNEL_INTERNAL=SLACK_CHANNEL,
        SLACK_MENTION_GROUP_ID="S0CAST",
        GOOGLE_SERVICE_ACCOUNT_KEY=json.dumps(
            {"client_email": "holds@project.iam.gserviceaccount.com", "private_key": "unused"}
        ),
        GOOGLE_CALENDAR_ID=FakeCalendar.calendar_id,
        NOTION_TOKEN="secret_test",
    )


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def fake_slack():
    return FakeSlack()


@pytest.fixture
def fake_calendar():
    return FakeCalendar()


@pytest.fixture
def fake_notion():
    return FakeNotion()


@pytest.fixture
def order_service(test_settings, store, fake_slack, fake_calendar):
    return OrderService(test_settings, store, fake_slack, fake_calendar)


@pytest.fixture
def lifecycle_service(test_settings, store, fake_slack, fake_calendar, fake_notion):
    return BookingLifecycleService(
        test_settings, store, store, fake_slack, fake_calendar, fake_notion
    )


@pytest.fixture
def drive_sync_service(store):
    return DriveLinkSyncService(store, store, store)


@pytest.fixture
def shoot_detail_service(store):
    return ShootDetailService(store, store, store)


@pytest.fixture
def contact_status_service(store):
    return ContactStatusService(store)


@pytest.fixture
def make_booking(store):
    """Insert a booking straight into the store."""

    def _make(booking_id="b-1", **overrides) -> Booking:
        fields = {
            "id": booking_id,
            "cast_id": "cast-ext",
            "cast_name": "山田花子",
            "cast_type": CastType.EXTERNAL,
            "status": BookingStatus.PROVISIONAL_HOLD,
            "start_date": date(2025, 3, 1),
            "end_date": date(2025, 3, 1),
            "account_name": "OfficialAcct",
            "project_name": "Drama A",
            "project_id": "1a2b3c4d-5e6f-7a8b-9c0d-1e2f3a4b5c6d",
            "role_name": "ヒロイン",
            "tier": Tier.MAIN,
            "thread_id": "1699999999.000100",
            "permalink": "https://slack.example/archives/C0CASTING/p1699999999000100",
        }
        fields.update(overrides)
        booking = Booking(**fields)
        store.bookings[booking.id] = booking
        return booking

    return _make
