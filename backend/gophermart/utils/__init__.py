"""Utility functions and helpers."""

from gophermart.utils.datetime_utils import to_api_timezone, to_rfc3339
from gophermart.utils.luhn import normalize_order_number, validate_order_number

__all__ = [
    "to_api_timezone",
    "to_rfc3339",
    "normalize_order_number",
    "validate_order_number",
]
