"""Quick analysis: a one-glance snapshot of the latest bars.

Short-window RSI, moving-average trend, volume change and the recent
trading range, boiled down to a buy/sell/hold call with a strength.
Unlike the pipeline this looks only at the tail of the series.
"""

from dataclasses import dataclass
from typing import Literal, Optional, Sequence

from chartcore.indicators.rsi import calculate_simple_rsi
from chartcore.models import Bar

QUICK_MIN_BARS = 15
QUICK_RSI_CHANGES = 14
SHORT_MA_BARS = 5
LONG_MA_BARS = 20
VOLUME_BARS = 5
RANGE_BARS = 20


@dataclass(frozen=True)
class QuickAnalysis:
    rsi: float
    trend: Literal["up", "down", "sideways"]
    volume_change: float  # percent
    support: float
    resistance: float
    signal: Literal["buy", "sell", "hold"]
    signal_strength: int
    short_ma: float
    long_ma: float


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def _classify(rsi: float, trend: str) -> tuple[str, int]:
    if rsi < 30 and trend == "up":
        return "buy", 80
    if rsi < 40 and trend == "up":
        return "buy", 60
    if rsi > 70 and trend == "down":
        return "sell", 80
    if rsi > 60 and trend == "down":
        return "sell", 60
    if trend == "up":
        return "buy", 40
    if trend == "down":
        return "sell", 40
    return "hold", 0


def quick_analysis(bars: Sequence[Bar]) -> Optional[QuickAnalysis]:
    """Snapshot the tail of *bars*; ``None`` with fewer than 15 bars."""
    if len(bars) < QUICK_MIN_BARS:
        return None

    closes = [b.close for b in bars]
    rsi = calculate_simple_rsi(closes, QUICK_RSI_CHANGES)

    short_ma = _mean(closes[-SHORT_MA_BARS:])
    long_ma = _mean(closes[-LONG_MA_BARS:])
    if short_ma > long_ma:
        trend = "up"
    elif short_ma < long_ma:
        trend = "down"
    else:
        trend = "sideways"

    volumes = [b.volume for b in bars]
    recent_vol = _mean(volumes[-VOLUME_BARS:])
    prev_vol = _mean(volumes[-2 * VOLUME_BARS : -VOLUME_BARS])
    volume_change = (recent_vol - prev_vol) / prev_vol * 100 if prev_vol else 0.0

    recent = bars[-RANGE_BARS:]
    signal, strength = _classify(rsi, trend)

    return QuickAnalysis(
        rsi=rsi,
        trend=trend,
        volume_change=volume_change,
        support=min(b.low for b in recent),
        resistance=max(b.high for b in recent),
        signal=signal,
        signal_strength=strength,
        short_ma=short_ma,
        long_ma=long_ma,
    )
