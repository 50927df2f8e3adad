"""
Shoot detail reconciliation: fills in/out time, location and address on
contact records from the synced schedule rows. Existing values are never
overwritten.
"""

from dataclasses import dataclass, field

from castops.infrastructure.observability.logging import get_logger
from castops.models.domain.booking_domain import (
    ContactRecord,
    ShootDetail,
    normalize_cast_name,
    normalize_page_key,
)
from castops.repositories.booking_repository import BookingRepository
from castops.repositories.contact_repository import ContactRepository
from castops.repositories.reconciliation_repository import ReconciliationRepository
from castops.services.errors import InvalidArgumentError, NotFoundError

logger = get_logger(__name__)

DETAIL_FIELDS = ("in_time", "out_time", "location", "address")


@dataclass(slots=True)
class ShootDetailLookup:
    found: bool
    records: list[ShootDetail] = field(default_factory=list)
    applied: int = 0


@dataclass(slots=True)
class ShootDetailSyncResult:
    found: bool
    updated: int


def missing_fields(contact: ContactRecord, detail: ShootDetail) -> dict[str, str]:
    """Detail values for fields the contact has not filled yet."""
    return {
        name: getattr(detail, name)
        for name in DETAIL_FIELDS
        if getattr(detail, name) and not getattr(contact, name)
    }


class ShootDetailService:
    def __init__(
        self,
        bookings: BookingRepository,
        contacts: ContactRepository,
        reconciliation: ReconciliationRepository,
    ):
        self._bookings = bookings
        self._contacts = contacts
        self._reconciliation = reconciliation

    async def lookup_shoot_details(
        self,
        cast_name: str | None = None,
        page_key: str | None = None,
        contact_id: str | None = None,
    ) -> ShootDetailLookup:
        if not cast_name and not page_key:
            raise InvalidArgumentError("cast_name or page_key is required")

        key = normalize_page_key(page_key)
        if key:
            records = await self._reconciliation.list_shoot_details(page_key=key)
        else:
            records = await self._reconciliation.list_shoot_details(cast_name=cast_name)

        if not records:
            return ShootDetailLookup(found=False)

        applied = 0
        if contact_id:
            contact = await self._contacts.get_contact(contact_id)
            if contact is None:
                raise NotFoundError(f"Contact {contact_id} not found", contact_id=contact_id)
            first = records[0]
            fields = {name: getattr(first, name) for name in DETAIL_FIELDS if getattr(first, name)}
            if fields:
                await self._contacts.update_contact(contact_id, fields)
                applied = 1

        return ShootDetailLookup(found=True, records=records, applied=applied)

    async def sync_shoot_details(
        self, page_key: str | None = None, project_name: str | None = None
    ) -> ShootDetailSyncResult:
        key = normalize_page_key(page_key)
        details = await self._reconciliation.list_shoot_details(page_key=key or None)
        if not details:
            return ShootDetailSyncResult(found=False, updated=0)

        by_key_and_name: dict[tuple[str, str], ShootDetail] = {}
        for detail in details:
            by_key_and_name.setdefault(
                (detail.page_key, normalize_cast_name(detail.cast_name)), detail
            )

        contacts = await self._contacts.list_contacts(project_name)
        bookings = await self._bookings.get_bookings(c.booking_id for c in contacts)

        updates: dict[str, dict] = {}
        for contact in contacts:
            booking = bookings.get(contact.booking_id)
            if booking is None:
                continue
            contact_key = normalize_page_key(booking.project_id)
            if key and contact_key != key:
                continue
            detail = by_key_and_name.get((contact_key, normalize_cast_name(contact.cast_name)))
            if detail is None:
                continue
            fields = missing_fields(contact, detail)
            if fields:
                updates[contact.id] = fields

        updated = await self._contacts.batch_update_contacts(updates)
        logger.info(
            "Shoot details synced",
            page_key=key or None,
            project_name=project_name,
            contacts=len(contacts),
            updated=updated,
        )
        return ShootDetailSyncResult(found=True, updated=updated)
