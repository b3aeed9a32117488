"""Custom SQLAlchemy types for the ledger."""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy import BigInteger
from sqlalchemy.types import TypeDecorator

POINTS_QUANTUM = Decimal("0.01")


def quantize_points(value: Decimal | int | float | str) -> Decimal:
    """Round a points amount to the two decimal places the ledger stores."""
    return Decimal(str(value)).quantize(POINTS_QUANTUM, rounding=ROUND_HALF_UP)


def utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


class Points(TypeDecorator[Decimal]):
    """Loyalty points stored as integer hundredths.

    - Database: BIGINT count of 0.01 points, so sums and comparisons are exact
      on every dialect (SQLite keeps NUMERIC as a float)
    - Python: Decimal quantized to cents on the way in and out
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value: Decimal | int | float | None, dialect: Any) -> int | None:
        if value is None:
            return None
        return int(quantize_points(value).scaleb(2))

    def process_result_value(self, value: int | Decimal | None, dialect: Any) -> Decimal | None:
        if value is None:
            return None
        # SUM() over BIGINT comes back as NUMERIC on PostgreSQL
        return quantize_points(Decimal(int(value)).scaleb(-2))
