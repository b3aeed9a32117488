"""Order number validation (Luhn checksum)."""


def normalize_order_number(raw: str) -> str:
    """Strip surrounding whitespace from a submitted order number."""
    return raw.strip()


def validate_order_number(number: str) -> bool:
    """Check that number is all decimal digits, at least two long, and passes Luhn.

    Digits are walked right to left; every second one (starting with the
    second from the right) is doubled, minus 9 when the result exceeds 9.
    The number is valid when the total is a multiple of 10.
    """
    # isdecimal() would also accept non-ASCII digits such as "٣"
    if len(number) < 2 or not (number.isascii() and number.isdigit()):
        return False

    total = 0
    for position, char in enumerate(reversed(number)):
        digit = ord(char) - ord("0")
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0
