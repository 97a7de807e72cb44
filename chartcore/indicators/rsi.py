"""Relative Strength Index: Wilder-smoothed series and a simple point value.

Pure functions, no I/O.
"""

from typing import Sequence

from chartcore.indicators.series import as_window, check_period


def calculate_rsi(series, period: int = 14) -> list[float]:
    """Calculate Wilder's Relative Strength Index over closes.

    Algorithm:
        1. Sum gains and losses of ``close[i] - close[i-1]`` for
           ``i`` in ``1..period``; seed averages = sums / *period*.
        2. For ``i > period``: ``avg = (avg × (period-1) + current) / period``
        3. ``RSI = 100`` when the average loss is zero, else
           ``100 - 100 / (1 + avg_gain / avg_loss)``.

    Returns a list the same length as *series*.  Indices ``0..period``
    are ``0.0`` rather than missing: callers test ``rsi > 0`` for
    readiness.  A series shorter than ``period + 1`` bars is all zeros.

    Raises ``ValueError`` for a non-positive *period*.
    """
    check_period(period)
    closes = as_window(series).values("close")
    rsi = [0.0] * len(closes)

    if len(closes) < period + 1:
        return rsi

    gains = 0.0
    losses = 0.0
    for i in range(1, period + 1):
        diff = closes[i] - closes[i - 1]
        if diff >= 0:
            gains += diff
        else:
            losses += abs(diff)

    avg_gain = gains / period
    avg_loss = losses / period

    for i in range(period + 1, len(closes)):
        diff = closes[i] - closes[i - 1]
        current_gain = diff if diff > 0 else 0.0
        current_loss = abs(diff) if diff < 0 else 0.0

        avg_gain = (avg_gain * (period - 1) + current_gain) / period
        avg_loss = (avg_loss * (period - 1) + current_loss) / period

        if avg_loss == 0:
            rsi[i] = 100.0
        else:
            rs = avg_gain / avg_loss
            rsi[i] = 100.0 - 100.0 / (1.0 + rs)

    return rsi


def calculate_simple_rsi(closes: Sequence[float], changes: int = 14) -> float:
    """Unsmoothed RSI over the last *changes* close-to-close moves.

    Gains and losses are plain averages over the window, with no Wilder
    smoothing.  Returns ``100.0`` when there were no losses and the
    neutral ``50.0`` when *closes* holds fewer than ``changes + 1``
    values.
    """
    check_period(changes, "changes")
    if len(closes) < changes + 1:
        return 50.0

    gains = 0.0
    losses = 0.0
    for i in range(len(closes) - changes, len(closes)):
        change = closes[i] - closes[i - 1]
        if change > 0:
            gains += change
        else:
            losses -= change

    avg_gain = gains / changes
    avg_loss = losses / changes
    if avg_loss == 0:
        return 100.0
    return 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)
