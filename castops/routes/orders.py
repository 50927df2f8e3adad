"""
Order API Routes
Submission of casting orders.
"""

from fastapi import APIRouter, Depends

from castops.auth.verify import auth_dependency
from castops.dependencies import get_order_service
from castops.infrastructure.observability.logging import get_logger
from castops.models.api.casting_request import CreateOrderRequest
from castops.models.api.casting_response import CreateOrderResponse
from castops.models.domain.order_domain import OrderRequest
from castops.routes.errors import internal_error, invalid_argument, require_user, to_http_exception
from castops.services.errors import CastingServiceError
from castops.services.orchestration.order_service import OrderService, decode_attachment

logger = get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=CreateOrderResponse)
async def create_order(
    payload: CreateOrderRequest,
    claims: dict = Depends(auth_dependency),
    service: OrderService = Depends(get_order_service),
):
    """Write the order's bookings and notify Slack; holds are placed for internal cast."""
    user_id = require_user(claims)

    try:
        date_ranges = payload.parsed_date_ranges()
    except ValueError as e:
        raise invalid_argument(str(e)) from e

    try:
        attachment = (
            decode_attachment(payload.attachment.filename, payload.attachment.content_base64)
            if payload.attachment
            else None
        )
        result = await service.create_order(
            OrderRequest(
                items=payload.domain_items(),
                date_ranges=date_ranges,
                mode=payload.mode,
                project_id=payload.project_id,
                account_name=payload.account_name,
                project_name=payload.project_name,
                start_time=payload.start_time,
                end_time=payload.end_time,
                shooting=payload.shooting.to_domain() if payload.shooting else None,
                attachment=attachment,
                cc_mention=payload.cc_mention,
                actor=user_id,
                actor_email=claims.get("email", ""),
            )
        )
        return CreateOrderResponse.from_result(result)

    except CastingServiceError as e:
        logger.warning("Order rejected", user_id=user_id, code=e.code, error=str(e))
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error("Error creating order", user_id=user_id, error=str(e))
        raise internal_error("Failed to create order") from e
