"""API schemas for user, order and balance endpoints."""

from decimal import Decimal

from pydantic import BaseModel, Field

from gophermart.models.order import Order
from gophermart.services.ledger.ledger_store import WithdrawalRecord
from gophermart.services.ledger.withdrawal_service import BalanceSummary
from gophermart.utils.datetime_utils import to_rfc3339

# =============================================================================
# Request Schemas
# =============================================================================


class CredentialsRequest(BaseModel):
    """Login/password pair for registration and login."""

    login: str = Field(min_length=1)
    password: str = Field(min_length=1)


class WithdrawRequest(BaseModel):
    """Points withdrawal against an order number."""

    order: str
    sum: Decimal = Field(gt=0, decimal_places=2)


# =============================================================================
# Response Schemas
# =============================================================================


class StatusResponse(BaseModel):
    """Generic status response."""

    status: str
    message: str


class OrderResponse(BaseModel):
    """Order as listed to its owner."""

    number: str
    status: str
    accrual: float | None = None
    uploaded_at: str

    @classmethod
    def from_model(cls, order: Order) -> "OrderResponse":
        """Create response from Order model."""
        assert order.status is not None
        return cls(
            number=order.order_number,
            status=order.status.value,
            accrual=float(order.accrual) if order.accrual is not None else None,
            uploaded_at=to_rfc3339(order.uploaded_at),
        )


class BalanceResponse(BaseModel):
    """Current points and total withdrawn."""

    current: float
    withdrawn: float

    @classmethod
    def from_summary(cls, summary: BalanceSummary) -> "BalanceResponse":
        return cls(current=float(summary.current), withdrawn=float(summary.withdrawn))


class WithdrawalResponse(BaseModel):
    """Withdrawal as listed to its owner."""

    order: str
    sum: float
    processed_at: str

    @classmethod
    def from_record(cls, record: WithdrawalRecord) -> "WithdrawalResponse":
        return cls(
            order=record.order_number,
            sum=float(record.amount),
            processed_at=to_rfc3339(record.processed_at),
        )
