"""Balance and Withdrawal database models."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, DateTime
from sqlmodel import Field, SQLModel

from gophermart.models.types import Points, utc_now

# Named so the violation can be recognized in driver error messages
BALANCE_NON_NEGATIVE_CONSTRAINT = CheckConstraint("points >= 0", name="ck_balances_points_non_negative")


class Balance(SQLModel, table=True):
    """Spendable points of one user (accrued minus withdrawn)."""

    __tablename__ = "balances"
    __table_args__ = (BALANCE_NON_NEGATIVE_CONSTRAINT,)

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True)
    points: Decimal = Field(default=Decimal("0.00"), sa_column=Column(Points, nullable=False, server_default="0"))


class Withdrawal(SQLModel, table=True):
    """Append-only record of points spent against an order number."""

    __tablename__ = "withdrawals"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    order_id: int = Field(foreign_key="orders.id", index=True)
    amount: Decimal = Field(sa_column=Column(Points, nullable=False))
    processed_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
