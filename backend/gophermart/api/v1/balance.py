"""Balance, withdrawal and withdrawal history endpoints."""

import structlog
from fastapi import APIRouter, HTTPException, Response, status

from gophermart.api.v1.dependencies import CurrentUserDep, WithdrawalServiceDep
from gophermart.api.v1.schemas import BalanceResponse, StatusResponse, WithdrawalResponse, WithdrawRequest
from gophermart.services.ledger.withdrawal_service import WithdrawalOutcome

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["balance"])


@router.get("/user/balance", response_model=BalanceResponse, operation_id="getBalance")
async def get_balance(
    user_id: CurrentUserDep,
    service: WithdrawalServiceDep,
) -> BalanceResponse:
    """Current points and the total withdrawn."""
    summary = await service.get_balance(user_id)
    return BalanceResponse.from_summary(summary)


@router.post("/user/balance/withdraw", response_model=StatusResponse, operation_id="withdrawPoints")
async def withdraw(
    payload: WithdrawRequest,
    user_id: CurrentUserDep,
    service: WithdrawalServiceDep,
) -> StatusResponse:
    """Spend points against an order number."""
    outcome = await service.withdraw(user_id, payload.order, payload.sum)

    if outcome is WithdrawalOutcome.INVALID_FORMAT:
        raise HTTPException(status_code=422, detail="Invalid order number")
    if outcome is WithdrawalOutcome.INSUFFICIENT_FUNDS:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail="Insufficient funds")
    return StatusResponse(status="ok", message="Points withdrawn")


@router.get(
    "/user/withdrawals",
    response_model=list[WithdrawalResponse],
    responses={204: {"description": "No withdrawals yet"}},
    operation_id="listWithdrawals",
)
async def list_withdrawals(
    user_id: CurrentUserDep,
    service: WithdrawalServiceDep,
) -> list[WithdrawalResponse] | Response:
    """List the user's withdrawals, oldest first."""
    records = await service.list_withdrawals(user_id)
    if not records:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return [WithdrawalResponse.from_record(record) for record in records]
