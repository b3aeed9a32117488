"""Order submission and listing endpoints."""

import structlog
from fastapi import APIRouter, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from gophermart.api.v1.dependencies import CurrentUserDep, OrderServiceDep
from gophermart.api.v1.schemas import OrderResponse, StatusResponse
from gophermart.services.orders.order_service import SubmissionOutcome

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["orders"])

# Order numbers are a few dozen digits at most
MAX_ORDER_BODY_BYTES = 64


@router.post(
    "/user/orders",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=StatusResponse,
    operation_id="submitOrder",
)
async def submit_order(
    request: Request,
    user_id: CurrentUserDep,
    service: OrderServiceDep,
) -> JSONResponse:
    """Submit an order number (plain text body) for accrual."""
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("text/plain"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Expected a text/plain order number")

    body = b""
    async for chunk in request.stream():
        body += chunk
        if len(body) > MAX_ORDER_BODY_BYTES:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Order number body is too long")

    try:
        raw_number = body.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Order number is not valid UTF-8")

    outcome = await service.submit(user_id, raw_number)

    match outcome:
        case SubmissionOutcome.ACCEPTED:
            return JSONResponse(
                status_code=status.HTTP_202_ACCEPTED,
                content=StatusResponse(status="accepted", message="Order accepted for processing").model_dump(),
            )
        case SubmissionOutcome.ALREADY_OWNED:
            return JSONResponse(
                status_code=status.HTTP_200_OK,
                content=StatusResponse(status="ok", message="Order already uploaded by this user").model_dump(),
            )
        case SubmissionOutcome.CONFLICT:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Order uploaded by another user")
        case SubmissionOutcome.INVALID_FORMAT:
            raise HTTPException(status_code=422, detail="Invalid order number")
        case SubmissionOutcome.INTEGRATION_FAILURE:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.get(
    "/user/orders",
    response_model=list[OrderResponse],
    response_model_exclude_none=True,
    responses={204: {"description": "No orders uploaded"}},
    operation_id="listOrders",
)
async def list_orders(
    user_id: CurrentUserDep,
    service: OrderServiceDep,
) -> list[OrderResponse] | Response:
    """List the user's orders, oldest first."""
    orders = await service.list_orders(user_id)
    if not orders:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return [OrderResponse.from_model(order) for order in orders]
