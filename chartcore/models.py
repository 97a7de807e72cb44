"""Chart data models: typed representations for bars and indicator outputs."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Optional


@dataclass(frozen=True)
class Bar:
    """A single OHLCV bar as delivered by the market data source."""

    time: str
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass(frozen=True)
class ReversalScore:
    """Raw bullish/bearish tally for one bar, before classification."""

    bullish: int = 0
    bearish: int = 0
    reasons: tuple[str, ...] = ()

    @property
    def net(self) -> int:
        return self.bullish - self.bearish


@dataclass(frozen=True)
class ReversalSignal:
    """A classified reversal reading for one bar."""

    type: str  # "bullish", "bearish" or "none"
    strength: int  # 0-100
    reasons: tuple[str, ...] = ()

    @classmethod
    def none(cls) -> ReversalSignal:
        return cls(type="none", strength=0, reasons=())

    @property
    def is_directional(self) -> bool:
        return self.type in ("bullish", "bearish")


@dataclass(frozen=True)
class EnrichedBar:
    """A bar plus every value the indicator pipeline derives for it.

    Fields that have no value yet (warm-up, disabled stage) are ``None``.
    ``price_range`` is a pass-through of ``(low, high)`` for candlestick
    rendering.
    """

    time: str
    open: float
    high: float
    low: float
    close: float
    volume: float
    price_range: tuple[float, float]

    ema20: Optional[float] = None
    ema50: Optional[float] = None
    rsi: Optional[float] = None
    macd_line: Optional[float] = None
    macd_signal: Optional[float] = None
    macd_histogram: Optional[float] = None
    bb_upper: Optional[float] = None
    bb_middle: Optional[float] = None
    bb_lower: Optional[float] = None
    volume_ma: Optional[float] = None
    volume_ratio: Optional[float] = None

    buy_signal: Optional[float] = None
    sell_signal: Optional[float] = None
    reversal_buy: Optional[float] = None
    reversal_sell: Optional[float] = None

    reversal_type: Optional[str] = None  # "bullish", "bearish" or None
    reversal_strength: int = 0
    reversal_reasons: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_bar(cls, bar: Bar, **values) -> EnrichedBar:
        """Build an enriched record from *bar* and computed *values*."""
        return cls(
            time=bar.time,
            open=bar.open,
            high=bar.high,
            low=bar.low,
            close=bar.close,
            volume=bar.volume,
            price_range=(bar.low, bar.high),
            **values,
        )

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]


PRICE_FIELDS = ("open", "high", "low", "close", "volume")
