"""Classic buy/sell markers: EMA20/EMA50 crossover plus RSI thresholds.

Pure functions, no I/O.  Inputs are the precomputed EMA and RSI series
for the same bars; the output is one optional marker price per bar.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from chartcore.models import Bar

# Bars at or below this index are never evaluated, whatever the periods.
SIGNAL_WARMUP_INDEX = 50

BUY_RSI_CEILING = 60.0
SELL_RSI_CROSS = 70.0

# Marker prices sit just outside the bar so they don't overlap the candle.
BUY_MARKER_FACTOR = 0.98
SELL_MARKER_FACTOR = 1.02


@dataclass(frozen=True)
class ClassicSignals:
    buy: list[Optional[float]]
    sell: list[Optional[float]]


def detect_classic_signals(
    bars: Sequence[Bar],
    ema20: Sequence[float],
    ema50: Sequence[float],
    rsi: Sequence[float],
) -> ClassicSignals:
    """Mark crossover entries and exits on *bars*.

    Buy  (``low × 0.98``): EMA20 crosses above EMA50 AND RSI < 60.
    Sell (``high × 1.02``): EMA20 crosses below EMA50 OR RSI crosses
    above 70 from at or below 70.

    Buy and sell are tested independently, buy first, and a bar carries
    at most one marker: if both fired the sell would win.  With the
    current RSI thresholds (buy < 60, sell cross > 70) that overlap
    cannot happen through an RSI sell.
    Only bars with index > ``SIGNAL_WARMUP_INDEX`` are evaluated.
    """
    n = len(bars)
    buy: list[Optional[float]] = [None] * n
    sell: list[Optional[float]] = [None] * n

    for i in range(SIGNAL_WARMUP_INDEX + 1, n):
        bar = bars[i]
        prev_ema20, curr_ema20 = ema20[i - 1], ema20[i]
        prev_ema50, curr_ema50 = ema50[i - 1], ema50[i]
        prev_rsi, curr_rsi = rsi[i - 1], rsi[i]

        cross_up = prev_ema20 < prev_ema50 and curr_ema20 > curr_ema50
        if cross_up and curr_rsi < BUY_RSI_CEILING:
            buy[i] = bar.low * BUY_MARKER_FACTOR

        cross_down = prev_ema20 > prev_ema50 and curr_ema20 < curr_ema50
        rsi_overbought = prev_rsi <= SELL_RSI_CROSS and curr_rsi > SELL_RSI_CROSS
        if cross_down or rsi_overbought:
            sell[i] = bar.high * SELL_MARKER_FACTOR
            # One marker per bar; unreachable while BUY_RSI_CEILING < SELL_RSI_CROSS.
            buy[i] = None

    return ClassicSignals(buy=buy, sell=sell)
