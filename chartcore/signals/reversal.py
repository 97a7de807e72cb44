"""Reversal engine: weighted multi-factor bullish/bearish classifier.

Combines RSI, MACD and volume readings into two independent running
scores per bar.  Each rule that fires adds points to one side and
appends a short label explaining why.  The bar is classified from the
net score, and only the labels that support the winning side are kept.

Pure functions, no I/O.
"""

from typing import Sequence

from chartcore.indicators.macd import MACDResult
from chartcore.models import Bar, ReversalScore, ReversalSignal

REVERSAL_WARMUP_INDEX = 30
NET_SCORE_THRESHOLD = 30
MAX_STRENGTH = 100

RSI_OVERSOLD = 30.0
RSI_RECOVERING = 40.0
RSI_OVERBOUGHT = 70.0
RSI_WEAKENING = 60.0

PRICE_CHANGE_THRESHOLD = 0.01
VOLUME_SURGE_RATIO = 1.5
VOLUME_WEAK_RATIO = 0.7

# Substrings that tie a reason label to a side.
BULLISH_REASON_KEYS = (
    "Oversold", "Recovering", "Bullish", "Up", "Above", "Weak Volume Selloff",
)
BEARISH_REASON_KEYS = (
    "Overbought", "Weakening", "Bearish", "Down", "Below", "Weak Volume Rally",
)


def _price_change(bars: Sequence[Bar], i: int) -> float:
    prev_close = bars[i - 1].close
    if prev_close == 0:
        return 0.0
    return (bars[i].close - prev_close) / prev_close


def score_reversal(
    bars: Sequence[Bar],
    rsi: Sequence[float],
    macd: MACDResult,
    volume_ratio: Sequence[float],
    i: int,
) -> ReversalScore:
    """Tally the bullish and bearish rule points for bar *i* (``i >= 1``).

    RSI: oversold (≤30) +25 bull, else recovering (≤40 and rising) +15
    bull; overbought (≥70) +25 bear, else weakening (≥60 and falling)
    +15 bear.

    MACD: signal-line cross ±30, histogram momentum ±10, zero-line
    cross ±15.

    Volume: surge (ratio > 1.5) with a >1 % move ±20 in the move's
    direction; a >1 % move on thin volume (ratio < 0.7) +10 against it.
    """
    bullish = 0
    bearish = 0
    reasons: list[str] = []

    # ── RSI ──
    curr_rsi, prev_rsi = rsi[i], rsi[i - 1]

    if curr_rsi <= RSI_OVERSOLD:
        bullish += 25
        reasons.append("RSI Oversold")
    elif curr_rsi <= RSI_RECOVERING and prev_rsi < curr_rsi:
        bullish += 15
        reasons.append("RSI Recovering")

    if curr_rsi >= RSI_OVERBOUGHT:
        bearish += 25
        reasons.append("RSI Overbought")
    elif curr_rsi >= RSI_WEAKENING and prev_rsi > curr_rsi:
        bearish += 15
        reasons.append("RSI Weakening")

    # ── MACD ──
    curr_macd, prev_macd = macd.macd_line[i], macd.macd_line[i - 1]
    curr_signal, prev_signal = macd.signal_line[i], macd.signal_line[i - 1]
    curr_hist, prev_hist = macd.histogram[i], macd.histogram[i - 1]

    if prev_macd < prev_signal and curr_macd > curr_signal:
        bullish += 30
        reasons.append("MACD Bullish Cross")
    if prev_macd > prev_signal and curr_macd < curr_signal:
        bearish += 30
        reasons.append("MACD Bearish Cross")

    if curr_hist > 0 and curr_hist > prev_hist:
        bullish += 10
        reasons.append("MACD Momentum Up")
    if curr_hist < 0 and curr_hist < prev_hist:
        bearish += 10
        reasons.append("MACD Momentum Down")

    if prev_macd < 0 and curr_macd > 0:
        bullish += 15
        reasons.append("MACD Above Zero")
    if prev_macd > 0 and curr_macd < 0:
        bearish += 15
        reasons.append("MACD Below Zero")

    # ── Volume ──
    vol_ratio = volume_ratio[i]
    price_change = _price_change(bars, i)

    if vol_ratio > VOLUME_SURGE_RATIO and price_change > PRICE_CHANGE_THRESHOLD:
        bullish += 20
        reasons.append("Volume Surge (Up)")
    if vol_ratio > VOLUME_SURGE_RATIO and price_change < -PRICE_CHANGE_THRESHOLD:
        bearish += 20
        reasons.append("Volume Surge (Down)")

    if price_change > PRICE_CHANGE_THRESHOLD and vol_ratio < VOLUME_WEAK_RATIO:
        bearish += 10
        reasons.append("Weak Volume Rally")
    if price_change < -PRICE_CHANGE_THRESHOLD and vol_ratio < VOLUME_WEAK_RATIO:
        bullish += 10
        reasons.append("Weak Volume Selloff")

    return ReversalScore(bullish=bullish, bearish=bearish, reasons=tuple(reasons))


def _filter_reasons(reasons: Sequence[str], keys: Sequence[str]) -> tuple[str, ...]:
    return tuple(r for r in reasons if any(k in r for k in keys))


def classify_reversal(score: ReversalScore) -> ReversalSignal:
    """Turn a raw tally into a signal.

    ``net ≥ 30`` → bullish, ``net ≤ -30`` → bearish, otherwise none.
    Strength is the winning side's score capped at 100; reasons are
    filtered by substring to the labels that belong to the winning side.
    """
    if score.net >= NET_SCORE_THRESHOLD:
        return ReversalSignal(
            type="bullish",
            strength=min(MAX_STRENGTH, score.bullish),
            reasons=_filter_reasons(score.reasons, BULLISH_REASON_KEYS),
        )
    if score.net <= -NET_SCORE_THRESHOLD:
        return ReversalSignal(
            type="bearish",
            strength=min(MAX_STRENGTH, score.bearish),
            reasons=_filter_reasons(score.reasons, BEARISH_REASON_KEYS),
        )
    return ReversalSignal.none()


def calculate_reversal_signals(
    bars: Sequence[Bar],
    rsi: Sequence[float],
    macd: MACDResult,
    volume_ratio: Sequence[float],
) -> list[ReversalSignal]:
    """Classify every bar; bars before ``REVERSAL_WARMUP_INDEX`` are none."""
    signals: list[ReversalSignal] = []
    for i in range(len(bars)):
        if i < REVERSAL_WARMUP_INDEX:
            signals.append(ReversalSignal.none())
            continue
        signals.append(
            classify_reversal(score_reversal(bars, rsi, macd, volume_ratio, i))
        )
    return signals
