"""
Service wiring.

The container owns the database pool, repositories, external adapters and
workflow services for one process. It is built in the FastAPI lifespan (or by
the worker) and routes reach services through the ``get_*`` dependencies,
which tests override.
"""

from fastapi import Depends, Request

from castops.config import Settings
from castops.db.pool import DatabasePoolManager
from castops.infrastructure.observability.logging import get_logger
from castops.repositories.booking_repository import BookingRepository
from castops.repositories.contact_repository import ContactRepository
from castops.repositories.reconciliation_repository import ReconciliationRepository
from castops.services.calendar.google_client import GoogleCalendarService
from castops.services.calendar.service_account import ServiceAccountError
from castops.services.notion.client import NotionClient
from castops.services.orchestration.lifecycle_service import BookingLifecycleService
from castops.services.orchestration.order_service import OrderService
from castops.services.reconciliation.contact_status import ContactStatusService
from castops.services.reconciliation.drive_sync import DriveLinkSyncService
from castops.services.reconciliation.shoot_details import ShootDetailService
from castops.services.slack.client import SlackClient

logger = get_logger(__name__)


def _build_calendar(settings: Settings) -> GoogleCalendarService | None:
    info = settings.service_account_info()
    if not info or not settings.GOOGLE_CALENDAR_ID:
        logger.info("Calendar integration disabled")
        return None
    try:
        return GoogleCalendarService(info, settings.GOOGLE_CALENDAR_ID)
    except ServiceAccountError as e:
        logger.error("Calendar integration disabled, bad service account key", error=str(e))
        return None


class ServiceContainer:
    def __init__(self, settings: Settings, pool: DatabasePoolManager):
        self.settings = settings
        self.pool = pool

        self.bookings = BookingRepository(pool)
        self.contacts = ContactRepository(pool)
        self.reconciliation = ReconciliationRepository(pool)

        self.slack = SlackClient(settings.SLACK_BOT_TOKEN) if settings.slack_configured() else None
        self.calendar = _build_calendar(settings)
        self.notion = (
            NotionClient(settings.NOTION_TOKEN, settings.NOTION_VERSION)
            if settings.notion_configured()
            else None
        )

        self.orders = OrderService(settings, self.bookings, self.slack, self.calendar)
        self.lifecycle = BookingLifecycleService(
            settings, self.bookings, self.contacts, self.slack, self.calendar, self.notion
        )
        self.drive_sync = DriveLinkSyncService(self.bookings, self.contacts, self.reconciliation)
        self.shoot_details = ShootDetailService(self.bookings, self.contacts, self.reconciliation)
        self.contact_status = ContactStatusService(self.contacts)

    @classmethod
    async def create(cls, settings: Settings) -> "ServiceContainer":
        pool = DatabasePoolManager(settings)
        await pool.initialize()
        container = cls(settings, pool)
        logger.info(
            "Service container ready",
            slack=container.slack is not None,
            calendar=container.calendar is not None,
            notion=container.notion is not None,
        )
        return container

    async def close(self) -> None:
        """Close HTTP clients, then the pool."""
        for adapter in (self.slack, self.calendar, self.notion):
            if adapter is not None:
                await adapter.close()
        await self.pool.close()


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_order_service(container: ServiceContainer = Depends(get_container)) -> OrderService:
    return container.orders


def get_lifecycle_service(
    container: ServiceContainer = Depends(get_container),
) -> BookingLifecycleService:
    return container.lifecycle


def get_drive_sync_service(
    container: ServiceContainer = Depends(get_container),
) -> DriveLinkSyncService:
    return container.drive_sync


def get_shoot_detail_service(
    container: ServiceContainer = Depends(get_container),
) -> ShootDetailService:
    return container.shoot_details


def get_contact_status_service(
    container: ServiceContainer = Depends(get_container),
) -> ContactStatusService:
    return container.contact_status


def get_db_pool(container: ServiceContainer = Depends(get_container)) -> DatabasePoolManager:
    return container.pool
