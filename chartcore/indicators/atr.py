"""Average True Range. Pure function, no I/O."""

from chartcore.indicators.series import as_window, check_period


def calculate_atr(series, period: int = 14) -> float:
    """Calculate the Average True Range over the last *period* bars.

    Uses the standard True Range definition:
        TR = max(high - low, |high - prev_close|, |low - prev_close|)

    Requires at least ``period + 1`` bars (need a previous close for TR).
    Returns the simple average of the last *period* true ranges.

    Raises ``ValueError`` for a non-positive *period* or insufficient data.
    """
    check_period(period)
    window = as_window(series)
    if len(window) < period + 1:
        raise ValueError(
            f"Need at least {period + 1} bars for ATR({period}), "
            f"got {len(window)}"
        )

    total = 0.0
    for i in range(len(window) - period, len(window)):
        bar = window[i]
        prev_close = window[i - 1].close
        total += max(
            bar.high - bar.low,
            abs(bar.high - prev_close),
            abs(bar.low - prev_close),
        )
    return total / period
