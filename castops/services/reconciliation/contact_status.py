"""
Contact fulfillment progress, advanced manually by staff.
"""

from castops.infrastructure.observability.logging import get_logger
from castops.models.domain.booking_domain import CONTACT_STATUS_ORDER, ContactRecord, ContactStatus
from castops.repositories.contact_repository import ContactRepository
from castops.services.errors import InvalidTransitionError, NotFoundError

logger = get_logger(__name__)


class ContactStatusService:
    def __init__(self, contacts: ContactRepository):
        self._contacts = contacts

    async def advance_status(self, contact_id: str, target: ContactStatus) -> ContactRecord:
        """Move a contact forward to ``target``; moving backward is rejected."""
        contact = await self._contacts.get_contact(contact_id)
        if contact is None:
            raise NotFoundError(f"Contact {contact_id} not found", contact_id=contact_id)

        if contact.status == target:
            return contact

        if CONTACT_STATUS_ORDER.index(target) < CONTACT_STATUS_ORDER.index(contact.status):
            raise InvalidTransitionError(
                f"Contact status cannot move back from {contact.status.value} to {target.value}",
                current=contact.status.value,
                target=target.value,
            )

        await self._contacts.update_contact(contact_id, {"status": target.value})
        logger.info(
            "Contact status advanced",
            contact_id=contact_id,
            previous_status=contact.status.value,
            status=target.value,
        )
        contact.status = target
        return contact
