"""Withdrawal and balance service."""

from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from gophermart.services.exceptions import ValidationError
from gophermart.services.ledger.exceptions import InsufficientFunds
from gophermart.services.ledger.ledger_store import LedgerStore, WithdrawalRecord
from gophermart.utils.luhn import validate_order_number

logger = structlog.get_logger(__name__)


class WithdrawalOutcome(StrEnum):
    """Result of a withdrawal request."""

    OK = "ok"
    INVALID_FORMAT = "invalid_format"
    INSUFFICIENT_FUNDS = "insufficient_funds"


@dataclass(frozen=True)
class BalanceSummary:
    current: Decimal
    withdrawn: Decimal


class WithdrawalService:
    """Service for spending points and reading the user's ledger."""

    def __init__(self, session: AsyncSession):
        self.store = LedgerStore(session)

    async def withdraw(self, user_id: int, order_number: str, amount: Decimal) -> WithdrawalOutcome:
        """Spend points against an order number.

        The order number is only a reference label: an existing order is reused
        whoever owns it, otherwise an anchor order is created for the user.
        Debit, anchor order and withdrawal row commit together or not at all.

        Raises:
            ValidationError: If amount is not positive
        """
        if not validate_order_number(order_number):
            logger.debug("Rejected withdrawal order number", order_number=order_number, user_id=user_id)
            return WithdrawalOutcome.INVALID_FORMAT
        if amount <= 0:
            raise ValidationError("Withdrawal amount must be positive")

        try:
            async with self.store.transaction():
                # Debit first: the conditional UPDATE is both the check and the write
                await self.store.debit(user_id, amount)
                order = await self.store.get_or_create_anchor_order(user_id, order_number)
                assert order.id is not None
                await self.store.insert_withdrawal(user_id, order.id, amount)
        except InsufficientFunds:
            logger.info("Withdrawal rejected, insufficient funds", user_id=user_id, amount=str(amount))
            return WithdrawalOutcome.INSUFFICIENT_FUNDS

        logger.info("Points withdrawn", user_id=user_id, order_number=order_number, amount=str(amount))
        return WithdrawalOutcome.OK

    async def get_balance(self, user_id: int) -> BalanceSummary:
        """Current spendable points and the total withdrawn so far."""
        current = await self.store.get_points(user_id)
        withdrawn = await self.store.total_withdrawn(user_id)
        return BalanceSummary(current=current, withdrawn=withdrawn)

    async def list_withdrawals(self, user_id: int) -> list[WithdrawalRecord]:
        """List the user's withdrawals, oldest first."""
        return await self.store.list_withdrawals(user_id)
