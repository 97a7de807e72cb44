"""MACD: fast/slow EMA spread, signal line and histogram."""

from dataclasses import dataclass

from chartcore.indicators.moving_average import calculate_ema, ema_of_values
from chartcore.indicators.series import check_period


@dataclass(frozen=True)
class MACDResult:
    """The three MACD series, each the same length as the input bars."""

    macd_line: list[float]
    signal_line: list[float]
    histogram: list[float]


def calculate_macd(
    series,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> MACDResult:
    """Calculate MACD over closes.

    MACD line = EMA(fast) − EMA(slow)
    Signal    = EMA(signal_period) of the MACD line, seeded with its first value
    Histogram = MACD line − signal

    All three series are defined from index 0 because the underlying
    EMAs are seeded with the first value rather than an SMA.
    """
    check_period(signal_period, "signal_period")
    ema_fast = calculate_ema(series, fast_period)
    ema_slow = calculate_ema(series, slow_period)

    macd_line = [fast - slow for fast, slow in zip(ema_fast, ema_slow)]
    signal_line = ema_of_values(macd_line, signal_period)
    histogram = [m - s for m, s in zip(macd_line, signal_line)]

    return MACDResult(
        macd_line=macd_line,
        signal_line=signal_line,
        histogram=histogram,
    )
