import math


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero for positive values (2.5 -> 3), unlike round()."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def percentage(part: int, total: int) -> int:
    """Whole-number percentage of part in total, 0 when total is 0."""
    if total <= 0:
        return 0
    return int(round_half_up(part / total * 100))
