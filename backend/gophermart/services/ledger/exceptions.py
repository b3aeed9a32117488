"""Ledger domain exceptions."""

from gophermart.services.exceptions import ConflictError, NotFoundError, ValidationError


class OrderNumberTaken(ConflictError):
    """Order number already registered (unique constraint won by another insert)."""

    def __init__(self, order_number: str):
        self.order_number = order_number
        super().__init__(f"Order number {order_number} is already registered")


class InsufficientFunds(ValidationError):
    """Balance does not cover the requested debit."""

    pass


class BalanceNotFound(NotFoundError):
    """User has no balance row."""

    pass
