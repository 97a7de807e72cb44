"""Trading recommendation: weighted indicator score plus an ATR trade setup.

Reads the latest value of each indicator, scores them into one of five
actions with a confidence, and derives entry, stop, targets and a
position size sized to a fixed share of equity at risk.  Like quick
analysis it only looks at the end of the series.
"""

import logging
import math
from dataclasses import dataclass
from typing import Literal, Optional, Sequence

from chartcore.indicators.atr import calculate_atr
from chartcore.indicators.bollinger import calculate_bollinger
from chartcore.indicators.macd import calculate_macd
from chartcore.indicators.moving_average import calculate_ema, calculate_sma
from chartcore.indicators.rsi import calculate_simple_rsi
from chartcore.models import Bar

logger = logging.getLogger("chartcore.recommendation")

Action = Literal["STRONG_BUY", "BUY", "HOLD", "SELL", "STRONG_SELL"]

RECOMMENDATION_MIN_BARS = 20
ATR_PERIOD = 14
RSI_CHANGES = 14
LONG_SMA_PERIOD = 200

VOLUME_TREND_BARS = 5
VOLUME_TREND_THRESHOLD = 0.2
MOMENTUM_LOOKBACK = 5
MOMENTUM_CAP = 10.0

STRONG_BUY_SCORE = 50
BUY_SCORE = 20
SELL_SCORE = -20
STRONG_SELL_SCORE = -50
MIN_CONFIDENCE = 30
MAX_CONFIDENCE = 95

# ATR stand-in when the series has no range at all.
ATR_FALLBACK_PCT = 0.02

DEFAULT_EQUITY = 10_000_000.0
DEFAULT_RISK_PCT = 2.0


@dataclass(frozen=True)
class TechnicalSnapshot:
    """Latest reading of every indicator the recommendation uses."""

    price: float
    rsi: float
    rsi_status: Literal["oversold", "neutral", "overbought"]
    macd_line: float
    macd_signal: float
    macd_histogram: float
    macd_rising: bool
    ema20: float
    ema50: float
    sma200: float
    bb_upper: float
    bb_middle: float
    bb_lower: float
    bb_position: Literal["above", "middle", "below"]
    atr: float
    volume_trend: Literal["increasing", "decreasing", "stable"]
    trend_strength: float

    @property
    def macd_trend(self) -> str:
        return "bullish" if self.macd_histogram > 0 else "bearish"


@dataclass(frozen=True)
class TradingSignal:
    action: Action
    confidence: int
    score: int
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class TradeSetup:
    entry_low: float
    entry_high: float
    stop_loss: float
    target1: float
    target2: float
    target3: float
    risk_reward_ratio: float
    position_size: int


@dataclass(frozen=True)
class Recommendation:
    snapshot: TechnicalSnapshot
    signal: TradingSignal
    setup: TradeSetup


# ── Indicator readings ──────────────────────────────────────────────────


def analyze_volume_trend(bars: Sequence[Bar]) -> str:
    """Compare mean volume of the last 5 bars with the 5 before.

    More than 20 % higher is ``"increasing"``, more than 20 % lower is
    ``"decreasing"``, anything else ``"stable"``.  Fewer than 10 bars,
    or no volume in the earlier window, is ``"stable"``.
    """
    if len(bars) < 2 * VOLUME_TREND_BARS:
        return "stable"

    recent = sum(b.volume for b in bars[-VOLUME_TREND_BARS:]) / VOLUME_TREND_BARS
    previous = sum(
        b.volume for b in bars[-2 * VOLUME_TREND_BARS : -VOLUME_TREND_BARS]
    ) / VOLUME_TREND_BARS
    if previous == 0:
        return "stable"

    change = (recent - previous) / previous
    if change > VOLUME_TREND_THRESHOLD:
        return "increasing"
    if change < -VOLUME_TREND_THRESHOLD:
        return "decreasing"
    return "stable"


def calculate_trend_strength(bars: Sequence[Bar], ema20: float, ema50: float) -> float:
    """Score trend health from 0 (strong down) to 100 (strong up).

    Starts at 50: ±25 when price is above/below both EMAs, ±15 for
    EMA20 above/not above EMA50, plus twice the percent move over the
    last bars capped at ±10.
    """
    price = bars[-1].close
    strength = 50.0

    if price > ema20 and price > ema50:
        strength += 25
    elif price < ema20 and price < ema50:
        strength -= 25

    if ema20 > ema50:
        strength += 15
    else:
        strength -= 15

    base = bars[-MOMENTUM_LOOKBACK].close if len(bars) >= MOMENTUM_LOOKBACK else price
    change_pct = (price - base) / base * 100 if base else 0.0
    strength += min(MOMENTUM_CAP, max(-MOMENTUM_CAP, change_pct * 2))

    return min(100.0, max(0.0, strength))


def technical_snapshot(bars: Sequence[Bar]) -> TechnicalSnapshot:
    """Read the latest indicator values off *bars* (needs ``ATR_PERIOD + 1`` bars)."""
    price = bars[-1].close
    rsi = calculate_simple_rsi([b.close for b in bars], RSI_CHANGES)
    if rsi < 30:
        rsi_status = "oversold"
    elif rsi > 70:
        rsi_status = "overbought"
    else:
        rsi_status = "neutral"

    macd = calculate_macd(bars)
    histogram = macd.histogram[-1]
    prev_histogram = macd.histogram[-2] if len(bars) > 1 else histogram

    ema20 = calculate_ema(bars, 20)[-1]
    ema50 = calculate_ema(bars, 50)[-1]
    sma200 = calculate_sma(bars, LONG_SMA_PERIOD)[-1]

    bands = calculate_bollinger(bars)
    upper, middle, lower = bands.upper[-1], bands.middle[-1], bands.lower[-1]
    if middle is None:
        upper = middle = lower = price
    if price > upper:
        bb_position = "above"
    elif price < lower:
        bb_position = "below"
    else:
        bb_position = "middle"

    return TechnicalSnapshot(
        price=price,
        rsi=rsi,
        rsi_status=rsi_status,
        macd_line=macd.macd_line[-1],
        macd_signal=macd.signal_line[-1],
        macd_histogram=histogram,
        macd_rising=histogram > prev_histogram,
        ema20=ema20,
        ema50=ema50,
        sma200=price if sma200 is None else sma200,
        bb_upper=upper,
        bb_middle=middle,
        bb_lower=lower,
        bb_position=bb_position,
        atr=calculate_atr(bars, ATR_PERIOD),
        volume_trend=analyze_volume_trend(bars),
        trend_strength=calculate_trend_strength(bars, ema20, ema50),
    )


# ── Scoring ─────────────────────────────────────────────────────────────


def action_for_score(score: int) -> Action:
    if score >= STRONG_BUY_SCORE:
        return "STRONG_BUY"
    if score >= BUY_SCORE:
        return "BUY"
    if score >= SELL_SCORE:
        return "HOLD"
    if score >= STRONG_SELL_SCORE:
        return "SELL"
    return "STRONG_SELL"


def confidence_for_score(score: int) -> int:
    return min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, 50 + abs(score)))


def generate_signal(snapshot: TechnicalSnapshot) -> TradingSignal:
    """Score *snapshot* and map the total onto an action.

    Weights: RSI ±20 (zones at 30/45/55/70), MACD +20/-20 with +5 for a
    rising positive histogram, price against both EMAs ±20 (+10 above
    EMA20 only), EMA20/EMA50 cross ±5, Bollinger position +15/-10,
    rising volume +10 behind a positive score or -5 otherwise, trend
    strength ±5 outside 40..60.
    """
    score = 0
    reasons: list[str] = []
    s = snapshot

    # ── RSI ──
    if s.rsi < 30:
        score += 20
        reasons.append(f"RSI {s.rsi:.1f} oversold, rebound likely")
    elif s.rsi > 70:
        score -= 20
        reasons.append(f"RSI {s.rsi:.1f} overbought, watch for a pullback")
    elif s.rsi < 45:
        score += 10
        reasons.append(f"RSI {s.rsi:.1f} in the lower neutral zone")
    elif s.rsi > 55:
        score -= 5
        reasons.append(f"RSI {s.rsi:.1f} in the upper neutral zone")

    # ── MACD ──
    if s.macd_trend == "bullish":
        score += 20
        reasons.append("MACD histogram positive, bullish momentum")
        if s.macd_rising:
            score += 5
            reasons.append("MACD histogram strengthening")
    else:
        score -= 20
        reasons.append("MACD histogram negative, bearish momentum")

    # ── Moving averages ──
    if s.price > s.ema20 and s.price > s.ema50:
        score += 20
        reasons.append(f"Price above EMA20 ({s.ema20:.2f}) and EMA50 ({s.ema50:.2f}), uptrend")
    elif s.price < s.ema20 and s.price < s.ema50:
        score -= 20
        reasons.append("Price below EMA20 and EMA50, downtrend")
    elif s.price > s.ema20:
        score += 10
        reasons.append("Price above EMA20, short-term bullish")

    if s.ema20 > s.ema50:
        score += 5
        reasons.append("Golden cross active (EMA20 > EMA50)")
    else:
        score -= 5
        reasons.append("Death cross active (EMA20 < EMA50)")

    # ── Bollinger ──
    if s.bb_position == "below":
        score += 15
        reasons.append("Price below the lower band, oversold")
    elif s.bb_position == "above":
        score -= 10
        reasons.append("Price above the upper band, overbought")

    # ── Volume ──
    if s.volume_trend == "increasing":
        if score > 0:
            score += 10
            reasons.append("Rising volume supports the uptrend")
        else:
            score -= 5
            reasons.append("Rising volume into the decline, selling pressure")

    # ── Trend strength ──
    if s.trend_strength > 60:
        score += 5
    elif s.trend_strength < 40:
        score -= 5

    return TradingSignal(
        action=action_for_score(score),
        confidence=confidence_for_score(score),
        score=score,
        reasons=tuple(reasons),
    )


# ── Trade setup ─────────────────────────────────────────────────────────


def calculate_trade_setup(
    price: float,
    atr: float,
    action: Action,
    equity: float = DEFAULT_EQUITY,
    risk_pct: float = DEFAULT_RISK_PCT,
) -> TradeSetup:
    """Entry band, stop, three targets and position size for *action*.

    Buys stop 2 × ATR below price with targets at 2, 3 and 5 × ATR above;
    sells mirror that.  HOLD gives a neutral band at *price* with a
    1.5 × ATR stop and 1.5/2/3 × ATR targets.  A zero ATR falls back to
    2 % of price.  Position size is ``risk_pct`` of *equity* divided by
    the stop distance, floored to whole units.

    Raises ``ValueError`` if *equity* or *risk_pct* is non-positive.
    """
    if equity <= 0:
        raise ValueError(f"equity must be positive, got {equity}")
    if risk_pct <= 0:
        raise ValueError(f"risk_pct must be positive, got {risk_pct}")

    atr = atr or price * ATR_FALLBACK_PCT

    if action in ("STRONG_BUY", "BUY"):
        entry_low, entry_high = price * 0.98, price * 1.01
        stop = price - atr * 2
        targets = (price + atr * 2, price + atr * 3, price + atr * 5)
    elif action in ("STRONG_SELL", "SELL"):
        entry_low, entry_high = price * 0.99, price * 1.02
        stop = price + atr * 2
        targets = (price - atr * 2, price - atr * 3, price - atr * 5)
    else:
        entry_low = entry_high = price
        stop = price - atr * 1.5
        targets = (price + atr * 1.5, price + atr * 2, price + atr * 3)

    stop = round(stop, 5)
    target1, target2, target3 = (round(t, 5) for t in targets)

    risk = abs(price - stop)
    reward = abs(target1 - price)
    risk_amount = equity * (risk_pct / 100.0)

    return TradeSetup(
        entry_low=round(entry_low, 5),
        entry_high=round(entry_high, 5),
        stop_loss=stop,
        target1=target1,
        target2=target2,
        target3=target3,
        risk_reward_ratio=reward / risk if risk > 0 else 0.0,
        position_size=math.floor(risk_amount / risk) if risk > 0 else 0,
    )


def recommend(
    bars: Sequence[Bar],
    equity: float = DEFAULT_EQUITY,
    risk_pct: float = DEFAULT_RISK_PCT,
) -> Optional[Recommendation]:
    """Full recommendation for the last bar; ``None`` with fewer than 20 bars."""
    if len(bars) < RECOMMENDATION_MIN_BARS:
        return None

    snapshot = technical_snapshot(bars)
    signal = generate_signal(snapshot)
    setup = calculate_trade_setup(
        snapshot.price, snapshot.atr, signal.action, equity, risk_pct
    )
    logger.debug(
        "Recommendation %s (score=%d, confidence=%d)",
        signal.action, signal.score, signal.confidence,
    )
    return Recommendation(snapshot=snapshot, signal=signal, setup=setup)
