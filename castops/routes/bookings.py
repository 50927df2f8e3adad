"""
Booking API Routes
Status changes, field edits and deletion of bookings.
"""

from fastapi import APIRouter, Depends

from castops.auth.verify import auth_dependency, is_admin
from castops.dependencies import get_lifecycle_service
from castops.infrastructure.observability.logging import get_logger
from castops.models.api.casting_request import EditBookingRequest, UpdateStatusRequest
from castops.models.api.casting_response import (
    DeleteBookingResponse,
    EditBookingResponse,
    UpdateStatusResponse,
)
from castops.routes.errors import internal_error, require_user, to_http_exception
from castops.services.errors import CastingServiceError
from castops.services.orchestration.lifecycle_service import BookingLifecycleService

logger = get_logger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("/{booking_id}/status", response_model=UpdateStatusResponse)
async def update_booking_status(
    booking_id: str,
    payload: UpdateStatusRequest,
    claims: dict = Depends(auth_dependency),
    service: BookingLifecycleService = Depends(get_lifecycle_service),
):
    """Validate and apply a status transition, then run its downstream effects."""
    user_id = require_user(claims)

    try:
        result = await service.update_status(
            booking_id,
            payload.status,
            actor=user_id,
            is_admin=is_admin(claims),
            previous_status_hint=payload.previous_status,
            cost=payload.cost,
            note=payload.note,
        )
        return UpdateStatusResponse.from_result(result)

    except CastingServiceError as e:
        logger.warning(
            "Status update rejected", booking_id=booking_id, code=e.code, error=str(e)
        )
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error("Error updating booking status", booking_id=booking_id, error=str(e))
        raise internal_error("Failed to update booking status") from e


@router.patch("/{booking_id}", response_model=EditBookingResponse)
async def edit_booking(
    booking_id: str,
    payload: EditBookingRequest,
    claims: dict = Depends(auth_dependency),
    service: BookingLifecycleService = Depends(get_lifecycle_service),
):
    user_id = require_user(claims)

    try:
        result = await service.edit_booking_fields(booking_id, payload.changes(), actor=user_id)
        return EditBookingResponse.from_result(result)

    except CastingServiceError as e:
        logger.warning("Booking edit rejected", booking_id=booking_id, code=e.code, error=str(e))
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error("Error editing booking", booking_id=booking_id, error=str(e))
        raise internal_error("Failed to edit booking") from e


@router.delete("/{booking_id}", response_model=DeleteBookingResponse)
async def delete_booking(
    booking_id: str,
    claims: dict = Depends(auth_dependency),
    service: BookingLifecycleService = Depends(get_lifecycle_service),
):
    user_id = require_user(claims)

    try:
        result = await service.delete_booking(
            booking_id, actor=user_id, is_admin=is_admin(claims)
        )
        return DeleteBookingResponse.from_result(result)

    except CastingServiceError as e:
        logger.warning("Booking deletion rejected", booking_id=booking_id, code=e.code)
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error("Error deleting booking", booking_id=booking_id, error=str(e))
        raise internal_error("Failed to delete booking") from e
