"""Bollinger Bands: rolling mean ± k·σ envelope. Pure function, no I/O."""

import math
from dataclasses import dataclass
from typing import Optional

from chartcore.indicators.moving_average import calculate_sma
from chartcore.indicators.series import as_window, check_period


@dataclass(frozen=True)
class BollingerBands:
    """Upper/middle/lower bands, ``None`` before the first full window."""

    upper: list[Optional[float]]
    middle: list[Optional[float]]
    lower: list[Optional[float]]


def calculate_bollinger(
    series,
    period: int = 20,
    std_dev: float = 2.0,
) -> BollingerBands:
    """Calculate Bollinger Bands over closes.

    Middle = SMA(close, *period*)
    Upper  = middle + *std_dev* × σ
    Lower  = middle − *std_dev* × σ

    σ is the population standard deviation of the window (divisor
    *period*).  A series shorter than *period* yields all-``None`` bands.
    """
    check_period(period)
    window = as_window(series)
    middle = calculate_sma(window, period)

    n = len(window)
    upper: list[Optional[float]] = [None] * n
    lower: list[Optional[float]] = [None] * n

    for i in range(period - 1, n):
        mean = middle[i]
        closes = window.trailing(i, period)
        variance = sum((c - mean) ** 2 for c in closes) / period
        sigma = math.sqrt(variance)

        upper[i] = mean + std_dev * sigma
        lower[i] = mean - std_dev * sigma

    return BollingerBands(upper=upper, middle=middle, lower=lower)
