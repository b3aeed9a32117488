"""Ledger persistence: orders, balances and withdrawals.

All cross-row invariants live in the database, not in this process:

- `orders.order_number` is unique; a losing concurrent insert surfaces as
  OrderNumberTaken.
- `balances.points >= 0` is a CHECK constraint, and debits are a single
  conditional UPDATE, so two withdrawals can never both spend the same points.
- Writes that belong together run inside `transaction()`, which commits them
  as one unit or rolls all of them back.
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

import structlog
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from gophermart.models.enums import PENDING_ORDER_STATUSES, OrderStatus
from gophermart.models.ledger import Balance, Withdrawal
from gophermart.models.order import Order
from gophermart.models.types import quantize_points
from gophermart.services.exceptions import ServiceError, StorageError
from gophermart.services.ledger.exceptions import BalanceNotFound, InsufficientFunds, OrderNumberTaken

logger = structlog.get_logger(__name__)

ZERO_POINTS = Decimal("0.00")


@dataclass(frozen=True)
class WithdrawalRecord:
    """Withdrawal joined with the number of the order it was spent against."""

    order_number: str
    amount: Decimal
    processed_at: datetime


def _is_order_number_violation(error: IntegrityError) -> bool:
    # SQLite: "UNIQUE constraint failed: orders.order_number"
    # PostgreSQL: duplicate key value violates unique constraint "ix_orders_order_number"
    return "order_number" in str(error.orig).lower()


class LedgerStore:
    """Transactional access to the ledger tables through one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["LedgerStore"]:
        """Commit everything written inside the block, or nothing.

        Domain errors raised inside the block propagate unchanged after the
        rollback; database failures are logged and re-raised as StorageError.
        """
        try:
            yield self
            await self.session.commit()
        except ServiceError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Ledger transaction failed", error=str(e))
            raise StorageError("Ledger transaction failed") from e
        except BaseException:
            await self.session.rollback()
            raise

    async def release_snapshot(self) -> None:
        """End the read transaction before a slow call (e.g. the accrual system).

        Commits rather than rolls back so loaded objects are not expired.
        """
        if self.session.in_transaction():
            await self.session.commit()

    # Orders

    async def get_order(self, order_number: str) -> Order | None:
        statement = select(Order).where(Order.order_number == order_number)
        result = await self.session.execute(statement)
        return result.scalars().first()

    async def insert_order(
        self,
        user_id: int,
        order_number: str,
        status: OrderStatus | None = None,
        accrual: Decimal | None = None,
    ) -> Order:
        """Insert a new order and flush it so a duplicate number fails here.

        Raises:
            OrderNumberTaken: If the number is already registered
        """
        order = Order(order_number=order_number, user_id=user_id, status=status, accrual=accrual)
        self.session.add(order)
        try:
            await self.session.flush()
        except IntegrityError as e:
            if _is_order_number_violation(e):
                raise OrderNumberTaken(order_number) from e
            raise
        return order

    async def get_or_create_anchor_order(self, user_id: int, order_number: str) -> Order:
        """Return the order with this number, creating a status-less one if missing.

        The insert runs in a savepoint: when a concurrent request creates the
        same anchor first, the savepoint is rolled back and that order is reused.
        """
        order = await self.get_order(order_number)
        if order is not None:
            return order

        try:
            async with self.session.begin_nested():
                order = await self.insert_order(user_id, order_number)
        except OrderNumberTaken:
            order = await self.get_order(order_number)
            if order is None:
                raise
            logger.info("Anchor order created concurrently, reusing it", order_number=order_number)
        return order

    async def list_orders(self, user_id: int) -> Sequence[Order]:
        """Orders submitted by the user for accrual, oldest first."""
        statement = (
            select(Order)
            .where(Order.user_id == user_id, Order.status.is_not(None))  # type: ignore[union-attr]
            .order_by(Order.uploaded_at.asc(), Order.id.asc())  # type: ignore[attr-defined,union-attr]
        )
        result = await self.session.execute(statement)
        return result.scalars().all()

    async def list_pending_orders(self, limit: int) -> Sequence[Order]:
        """Orders whose accrual may still change, oldest first."""
        statement = (
            select(Order)
            .where(
                Order.status.in_(PENDING_ORDER_STATUSES),  # type: ignore[union-attr]
                Order.accrual.is_(None),  # type: ignore[union-attr]
            )
            .order_by(Order.uploaded_at.asc(), Order.id.asc())  # type: ignore[attr-defined,union-attr]
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(statement)
        return result.scalars().all()

    async def apply_accrual(
        self,
        order_id: int,
        user_id: int,
        status: OrderStatus,
        accrual: Decimal | None,
    ) -> bool:
        """Move a pending order to a new status, crediting its accrual at most once.

        The UPDATE only matches while the order is still pending and has no
        accrual, so a second application (another worker, a retry) is a no-op.

        Returns:
            True if the order was updated (and credited, when accrual is set)
        """
        statement = (
            update(Order)
            .where(
                Order.id == order_id,  # type: ignore[arg-type]
                Order.accrual.is_(None),  # type: ignore[union-attr]
                Order.status.in_(PENDING_ORDER_STATUSES),  # type: ignore[union-attr]
            )
            .values(status=status, accrual=accrual)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        if result.rowcount != 1:  # type: ignore[attr-defined]
            return False
        if accrual is not None:
            await self.credit(user_id, accrual)
        return True

    # Balances

    async def create_balance(self, user_id: int) -> Balance:
        balance = Balance(user_id=user_id, points=ZERO_POINTS)
        self.session.add(balance)
        await self.session.flush()
        return balance

    async def get_points(self, user_id: int) -> Decimal:
        statement = select(Balance.points).where(Balance.user_id == user_id)
        result = await self.session.execute(statement)
        points = result.scalar_one_or_none()
        return points if points is not None else ZERO_POINTS

    async def credit(self, user_id: int, amount: Decimal) -> None:
        """Add points to the user's balance.

        Raises:
            BalanceNotFound: If the user has no balance row
        """
        statement = (
            update(Balance)
            .where(Balance.user_id == user_id)  # type: ignore[arg-type]
            .values(points=Balance.points + quantize_points(amount))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        if result.rowcount != 1:  # type: ignore[attr-defined]
            raise BalanceNotFound(f"No balance for user {user_id}")

    async def debit(self, user_id: int, amount: Decimal) -> None:
        """Subtract points in one conditional UPDATE.

        The sufficiency check and the write are the same statement, so a stale
        read elsewhere can never lead to an overdraft.

        Raises:
            InsufficientFunds: If the balance is lower than amount (nothing changed)
        """
        amount = quantize_points(amount)
        statement = (
            update(Balance)
            .where(
                Balance.user_id == user_id,  # type: ignore[arg-type]
                Balance.points >= amount,  # type: ignore[operator]
            )
            .values(points=Balance.points - amount)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        if result.rowcount != 1:  # type: ignore[attr-defined]
            raise InsufficientFunds(f"Balance of user {user_id} does not cover {amount}")

    # Withdrawals

    async def insert_withdrawal(self, user_id: int, order_id: int, amount: Decimal) -> Withdrawal:
        withdrawal = Withdrawal(user_id=user_id, order_id=order_id, amount=quantize_points(amount))
        self.session.add(withdrawal)
        await self.session.flush()
        return withdrawal

    async def total_withdrawn(self, user_id: int) -> Decimal:
        statement = select(func.coalesce(func.sum(Withdrawal.amount), 0)).where(Withdrawal.user_id == user_id)
        result = await self.session.execute(statement)
        return quantize_points(result.scalar_one())

    async def list_withdrawals(self, user_id: int) -> list[WithdrawalRecord]:
        """Withdrawals of the user, oldest first."""
        statement = (
            select(Order.order_number, Withdrawal.amount, Withdrawal.processed_at)
            .join(Order, Order.id == Withdrawal.order_id)  # type: ignore[arg-type]
            .where(Withdrawal.user_id == user_id)
            .order_by(Withdrawal.processed_at.asc(), Withdrawal.id.asc())  # type: ignore[attr-defined,union-attr]
        )
        result = await self.session.execute(statement)
        return [
            WithdrawalRecord(order_number=number, amount=amount, processed_at=processed_at)
            for number, amount, processed_at in result.all()
        ]
