"""Order database model."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Column, DateTime, Enum
from sqlmodel import Field, SQLModel

from gophermart.models.enums import OrderStatus
from gophermart.models.types import Points, utc_now


class Order(SQLModel, table=True):
    """Order registered for accrual, or a bare number anchoring a withdrawal.

    The order number is globally unique: the unique index is the source of
    truth when two users race to register the same number.
    """

    __tablename__ = "orders"

    id: int | None = Field(default=None, primary_key=True)
    order_number: str = Field(unique=True, index=True)
    user_id: int = Field(foreign_key="users.id", index=True)

    # None for withdrawal anchors that were never submitted for accrual
    status: OrderStatus | None = Field(
        default=None,
        sa_column=Column(
            Enum(
                OrderStatus,
                values_callable=lambda e: [x.value for x in e],
                name="orderstatus",
                native_enum=False,
                length=16,
            ),
            nullable=True,
        ),
    )
    # Set at most once, together with the matching balance credit
    accrual: Decimal | None = Field(default=None, sa_column=Column(Points, nullable=True))
    uploaded_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
