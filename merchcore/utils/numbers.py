# merchcore/utils/numbers.py
import math


def round_half_up(value: float, digits: int = 0) -> float:
    """
    Round like the storefront frontend does (halves go up, 2.5 -> 3).
    Python's round() is banker's rounding, which would disagree with the scores
    and totals already shown to customers.
    """
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def round2(value: float) -> float:
    """Money/score rounding to 2 decimals."""
    return round_half_up(value, 2)


def round_int(value: float) -> int:
    return int(math.floor(value + 0.5))
