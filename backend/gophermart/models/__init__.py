"""Database models."""

from sqlmodel import SQLModel

from gophermart.models.enums import AccrualStatus, OrderStatus
from gophermart.models.ledger import Balance, Withdrawal
from gophermart.models.order import Order
from gophermart.models.user import User

__all__ = [
    "SQLModel",
    "User",
    "Order",
    "Balance",
    "Withdrawal",
    "OrderStatus",
    "AccrualStatus",
]
