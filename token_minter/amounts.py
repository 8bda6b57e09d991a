"""
Integer Range Checks

Instruction arguments arrive as plain Python ints and must fit the widths
the ledger stores them in: decimals is a u8, amounts and supply are u64.
Display formatting of raw amounts lives here too; no arithmetic is done on
scaled values.
"""

from decimal import Decimal

from .errors import InvalidInstructionData

U8_MAX = 2 ** 8 - 1
U64_MAX = 2 ** 64 - 1


def _check_range(value: int, upper: int, field: str) -> int:
    # bool is an int subclass but never a valid instruction argument
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInstructionData(f"{field} must be an integer, got {type(value).__name__}")
    if value < 0 or value > upper:
        raise InvalidInstructionData(f"{field}={value} out of range 0..{upper}")
    return value


def check_u8(value: int, field: str = "value") -> int:
    return _check_range(value, U8_MAX, field)


def check_u64(value: int, field: str = "value") -> int:
    return _check_range(value, U64_MAX, field)


def checked_add_u64(left: int, right: int) -> int:
    """Add two u64 values, raising OverflowError instead of wrapping"""
    total = left + right
    if total > U64_MAX:
        raise OverflowError(f"{left} + {right} overflows u64")
    return total


def format_amount(raw_amount: int, decimals: int) -> str:
    """
    Render a raw amount the way wallets show it: 1500000 with 6 decimals is
    "1.5", whole numbers carry no fractional part.
    """
    if decimals == 0:
        return str(raw_amount)
    scaled = Decimal(raw_amount).scaleb(-decimals)
    text = format(scaled, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
