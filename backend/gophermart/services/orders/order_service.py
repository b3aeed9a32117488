"""Order submission service.

Registers order numbers for accrual: validates the number, resolves
ownership, asks the accrual system for the current status and stores the
order together with any credited points.
"""

from collections.abc import Sequence
from decimal import Decimal
from enum import StrEnum

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from gophermart.models.enums import OrderStatus
from gophermart.models.order import Order
from gophermart.services.external.accrual import AccrualClient, AccrualResult, AccrualServiceError
from gophermart.services.ledger.exceptions import OrderNumberTaken
from gophermart.services.ledger.ledger_store import LedgerStore
from gophermart.utils.luhn import normalize_order_number, validate_order_number

logger = structlog.get_logger(__name__)


class SubmissionOutcome(StrEnum):
    """Result of submitting an order number."""

    ACCEPTED = "accepted"
    ALREADY_OWNED = "already_owned"
    CONFLICT = "conflict"
    INVALID_FORMAT = "invalid_format"
    INTEGRATION_FAILURE = "integration_failure"


def resolve_accrual(result: AccrualResult | None) -> tuple[OrderStatus, Decimal | None]:
    """Translate an accrual system answer into the (status, accrual) to store.

    No answer means the accrual system has not seen the order yet.
    """
    if result is None:
        return OrderStatus.NEW, None
    return result.status.to_order_status(), result.accrual


class OrderService:
    """Service for order submission and listing."""

    def __init__(self, session: AsyncSession, accrual_client: AccrualClient):
        self.store = LedgerStore(session)
        self.accrual_client = accrual_client

    async def submit(self, user_id: int, raw_order_number: str) -> SubmissionOutcome:
        """Register an order number for the user.

        Re-submitting an own number is a success (ALREADY_OWNED) and changes
        nothing. When the accrual system already reports points, the order row
        and the balance credit are committed in one transaction.
        """
        order_number = normalize_order_number(raw_order_number)
        if not validate_order_number(order_number):
            logger.debug("Rejected order number", order_number=order_number, user_id=user_id)
            return SubmissionOutcome.INVALID_FORMAT

        existing = await self.store.get_order(order_number)
        if existing is not None:
            if existing.user_id == user_id:
                return SubmissionOutcome.ALREADY_OWNED
            logger.info(
                "Order number belongs to another user",
                order_number=order_number,
                user_id=user_id,
            )
            return SubmissionOutcome.CONFLICT

        await self.store.release_snapshot()

        try:
            result = await self.accrual_client.query(order_number)
        except AccrualServiceError as e:
            logger.error(
                "Accrual system query failed",
                order_number=order_number,
                status_code=e.status_code,
                error=str(e),
            )
            return SubmissionOutcome.INTEGRATION_FAILURE

        status, accrual = resolve_accrual(result)

        try:
            async with self.store.transaction():
                order = await self.store.insert_order(user_id, order_number, status=status, accrual=accrual)
                if accrual is not None:
                    await self.store.credit(user_id, accrual)
        except OrderNumberTaken:
            # Lost the race against a concurrent submission of the same number
            logger.info("Order number registered concurrently", order_number=order_number, user_id=user_id)
            return SubmissionOutcome.CONFLICT

        logger.info(
            "Order accepted",
            order_id=order.id,
            order_number=order_number,
            user_id=user_id,
            status=status,
            accrual=str(accrual) if accrual is not None else None,
        )
        return SubmissionOutcome.ACCEPTED

    async def list_orders(self, user_id: int) -> Sequence[Order]:
        """List the user's submitted orders, oldest first."""
        return await self.store.list_orders(user_id)
