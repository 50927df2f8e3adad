"""
Reconciliation API Routes
Drive link and shoot detail syncing onto contact records, plus contact
fulfillment progress.
"""

from fastapi import APIRouter, Depends

from castops.auth.verify import auth_dependency
from castops.dependencies import (
    get_contact_status_service,
    get_drive_sync_service,
    get_shoot_detail_service,
)
from castops.infrastructure.observability.logging import get_logger
from castops.models.api.casting_request import AdvanceContactStatusRequest
from castops.models.api.casting_response import ContactStatusResponse
from castops.models.api.reconciliation import (
    DriveLinkSyncRequest,
    DriveLinkSyncResponse,
    ShootDetailLookupRequest,
    ShootDetailLookupResponse,
    ShootDetailRecord,
    ShootDetailSyncRequest,
    ShootDetailSyncResponse,
)
from castops.routes.errors import internal_error, require_user, to_http_exception
from castops.services.errors import CastingServiceError
from castops.services.reconciliation.contact_status import ContactStatusService
from castops.services.reconciliation.drive_sync import DriveLinkSyncService
from castops.services.reconciliation.shoot_details import ShootDetailService

logger = get_logger(__name__)

router = APIRouter(tags=["reconciliation"])


@router.post("/sync/drive-links", response_model=DriveLinkSyncResponse)
async def sync_drive_links(
    payload: DriveLinkSyncRequest,
    claims: dict = Depends(auth_dependency),
    service: DriveLinkSyncService = Depends(get_drive_sync_service),
):
    require_user(claims)

    try:
        result = await service.sync_drive_links(
            page_key=payload.page_key,
            project_name=payload.project_name,
            contact_id=payload.contact_id,
        )
        return DriveLinkSyncResponse(
            found=result.found, updated=result.updated, drive_link=result.drive_link
        )

    except CastingServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error("Error syncing drive links", page_key=payload.page_key, error=str(e))
        raise internal_error("Failed to sync drive links") from e


@router.post("/sync/shoot-details", response_model=ShootDetailSyncResponse)
async def sync_shoot_details(
    payload: ShootDetailSyncRequest,
    claims: dict = Depends(auth_dependency),
    service: ShootDetailService = Depends(get_shoot_detail_service),
):
    require_user(claims)

    try:
        result = await service.sync_shoot_details(
            page_key=payload.page_key, project_name=payload.project_name
        )
        return ShootDetailSyncResponse(found=result.found, updated=result.updated)

    except CastingServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error("Error syncing shoot details", page_key=payload.page_key, error=str(e))
        raise internal_error("Failed to sync shoot details") from e


@router.post("/shoot-details/lookup", response_model=ShootDetailLookupResponse)
async def lookup_shoot_details(
    payload: ShootDetailLookupRequest,
    claims: dict = Depends(auth_dependency),
    service: ShootDetailService = Depends(get_shoot_detail_service),
):
    require_user(claims)

    try:
        result = await service.lookup_shoot_details(
            cast_name=payload.cast_name,
            page_key=payload.page_key,
            contact_id=payload.contact_id,
        )
        records = [
            ShootDetailRecord(
                id=r.id,
                page_key=r.page_key,
                cast_name=r.cast_name,
                in_time=r.in_time,
                out_time=r.out_time,
                location=r.location,
                address=r.address,
            )
            for r in result.records
        ]
        return ShootDetailLookupResponse(
            found=result.found, records=records, count=len(records), applied=result.applied
        )

    except CastingServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error("Error looking up shoot details", error=str(e))
        raise internal_error("Failed to look up shoot details") from e


@router.post("/contacts/{contact_id}/status", response_model=ContactStatusResponse)
async def advance_contact_status(
    contact_id: str,
    payload: AdvanceContactStatusRequest,
    claims: dict = Depends(auth_dependency),
    service: ContactStatusService = Depends(get_contact_status_service),
):
    user_id = require_user(claims)

    try:
        contact = await service.advance_status(contact_id, payload.status)
        return ContactStatusResponse(
            contact_id=contact.id, status=contact.status.value, status_label=contact.status.label
        )

    except CastingServiceError as e:
        logger.warning(
            "Contact status change rejected", contact_id=contact_id, user_id=user_id, code=e.code
        )
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error("Error advancing contact status", contact_id=contact_id, error=str(e))
        raise internal_error("Failed to update contact status") from e
