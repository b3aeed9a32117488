"""Enum definitions for database models and the accrual system."""

from enum import StrEnum


class OrderStatus(StrEnum):
    """Accrual status of an order as stored in the ledger.

    Orders created only to anchor a withdrawal carry no status at all.
    """

    NEW = "NEW"
    PROCESSING = "PROCESSING"
    INVALID = "INVALID"
    PROCESSED = "PROCESSED"


# Orders the accrual system may still change
PENDING_ORDER_STATUSES = (OrderStatus.NEW, OrderStatus.PROCESSING)


class AccrualStatus(StrEnum):
    """Status values returned by the accrual system API."""

    REGISTERED = "REGISTERED"
    PROCESSING = "PROCESSING"
    INVALID = "INVALID"
    PROCESSED = "PROCESSED"

    def to_order_status(self) -> OrderStatus:
        """Map to the ledger status. A registered order has not started processing yet."""
        if self is AccrualStatus.REGISTERED:
            return OrderStatus.NEW
        return OrderStatus(self.value)
