"""Simple and exponential moving averages. Pure functions, no I/O."""

from typing import Optional, Sequence

from chartcore.indicators.series import as_window, check_period


def calculate_sma(series, period: int, field: str = "close") -> list[Optional[float]]:
    """Calculate a Simple Moving Average series over *field*.

    ``SMA[i] = mean(field[i - period + 1 .. i])``

    Returns a list the same length as *series*.  Entries before the
    first full window (``i < period - 1``) are ``None``.

    Raises ``ValueError`` for a non-positive *period*.
    """
    check_period(period)
    window = as_window(series)
    sma: list[Optional[float]] = [None] * len(window)

    for i in range(period - 1, len(window)):
        sma[i] = sum(window.trailing(i, period, field)) / period

    return sma


def calculate_ema(series, period: int, field: str = "close") -> list[float]:
    """Calculate an Exponential Moving Average series over *field*.

    Uses the recursive form:
        ``EMA_today = price × k + EMA_yesterday × (1 - k)``
    where ``k = 2 / (period + 1)``.

    The first EMA value is seeded with the raw price at index 0 (not an
    SMA of the first *period* prices), so the series is defined from
    the first bar on.  An empty series gives an empty list.

    Raises ``ValueError`` for a non-positive *period*.
    """
    check_period(period)
    return ema_of_values(as_window(series).values(field), period)


def ema_of_values(values: Sequence[float], period: int) -> list[float]:
    """EMA of a plain float sequence, seeded with ``values[0]``."""
    check_period(period)
    if not values:
        return []

    k = 2.0 / (period + 1)
    ema = [values[0]]
    for price in values[1:]:
        ema.append(price * k + ema[-1] * (1 - k))
    return ema
