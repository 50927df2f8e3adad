"""
Drive link reconciliation: copies off-shot drive links onto contact records
that have no making URL yet.
"""

from dataclasses import dataclass

from castops.infrastructure.observability.logging import get_logger
from castops.models.domain.booking_domain import normalize_page_key
from castops.repositories.booking_repository import BookingRepository
from castops.repositories.contact_repository import ContactRepository
from castops.repositories.reconciliation_repository import ReconciliationRepository
from castops.services.errors import NotFoundError

logger = get_logger(__name__)


@dataclass(slots=True)
class DriveSyncResult:
    found: bool
    updated: int
    drive_link: str | None = None


class DriveLinkSyncService:
    def __init__(
        self,
        bookings: BookingRepository,
        contacts: ContactRepository,
        reconciliation: ReconciliationRepository,
    ):
        self._bookings = bookings
        self._contacts = contacts
        self._reconciliation = reconciliation

    async def sync_drive_links(
        self,
        page_key: str | None = None,
        project_name: str | None = None,
        contact_id: str | None = None,
    ) -> DriveSyncResult:
        """
        Modes:
          - ``contact_id`` and ``page_key``: write the key's link to that contact
          - ``page_key``: every contact of that page still missing a link
          - neither: every contact missing a link whose page has one
        ``project_name`` narrows the last two modes.
        """
        key = normalize_page_key(page_key)

        if key:
            link = await self._reconciliation.get_drive_link(key)
            if not link:
                logger.info("No drive link for page", page_key=key)
                return DriveSyncResult(found=False, updated=0)

            if contact_id:
                return await self._sync_single(contact_id, link)

            links = {key: link}
        else:
            links = await self._reconciliation.list_drive_links()
            if not links:
                return DriveSyncResult(found=False, updated=0)

        candidates = await self._contacts.list_contacts_missing_making_url(project_name)
        bookings = await self._bookings.get_bookings(c.booking_id for c in candidates)

        updates: dict[str, dict] = {}
        for contact in candidates:
            booking = bookings.get(contact.booking_id)
            if booking is None:
                continue
            link = links.get(normalize_page_key(booking.project_id))
            if link:
                updates[contact.id] = {"making_url": link}

        updated = await self._contacts.batch_update_contacts(updates)
        logger.info(
            "Drive links synced",
            page_key=key or None,
            project_name=project_name,
            candidates=len(candidates),
            updated=updated,
        )
        return DriveSyncResult(
            found=True, updated=updated, drive_link=links.get(key) if key else None
        )

    async def _sync_single(self, contact_id: str, link: str) -> DriveSyncResult:
        contact = await self._contacts.get_contact(contact_id)
        if contact is None:
            raise NotFoundError(f"Contact {contact_id} not found", contact_id=contact_id)

        if contact.making_url == link:
            return DriveSyncResult(found=True, updated=0, drive_link=link)

        await self._contacts.update_contact(contact_id, {"making_url": link})
        logger.info("Drive link written to contact", contact_id=contact_id)
        return DriveSyncResult(found=True, updated=1, drive_link=link)
