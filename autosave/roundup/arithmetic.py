"""Exact integer round-up helpers. No floating point anywhere."""


def round_up(amount: int, unit: int) -> int:
    """
    Smallest multiple of *unit* that is >= *amount*.

    Uses the ceiling-division identity ``(amount + unit - 1) // unit * unit``;
    Python integers are unbounded so the intermediate sum cannot wrap.
    """
    if amount < 0:
        raise ValueError(f"amount must be non-negative, got {amount}")
    if unit <= 0:
        raise ValueError(f"unit must be positive, got {unit}")
    return (amount + unit - 1) // unit * unit


def savings_for(amount: int, unit: int) -> int:
    """Surcharge that lifts *amount* to the next multiple of *unit*; always < unit."""
    return round_up(amount, unit) - amount
