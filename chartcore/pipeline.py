"""Indicator pipeline: the single entry point chart collaborators call.

``compute(bars, settings)`` runs an ordered list of stages over the bar
series and merges their columns into one ``EnrichedBar`` per input bar.
Each stage is pure and reads only what earlier stages wrote into the
per-call ``PipelineContext``; nothing is cached between calls, so any
change to bars or settings means a full recomputation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence, runtime_checkable

from chartcore.config import IndicatorSettings
from chartcore.indicators.bollinger import calculate_bollinger
from chartcore.indicators.macd import MACDResult, calculate_macd
from chartcore.indicators.moving_average import calculate_ema
from chartcore.indicators.rsi import calculate_rsi
from chartcore.indicators.series import SeriesWindow
from chartcore.indicators.volume import calculate_volume_analysis
from chartcore.models import Bar, EnrichedBar, ReversalSignal
from chartcore.signals.classic import SIGNAL_WARMUP_INDEX, detect_classic_signals
from chartcore.signals.reversal import calculate_reversal_signals

logger = logging.getLogger("chartcore.pipeline")

# Fewer bars than this are returned untouched (EMA50 needs the history).
MIN_HISTORY = 50

TREND_FAST_PERIOD = 20
TREND_SLOW_PERIOD = 50
VOLUME_PERIOD = 20

MIN_MARKER_STRENGTH = 40
LATEST_SIGNAL_LOOKBACK = 10

REVERSAL_BUY_FACTOR = 0.97
REVERSAL_SELL_FACTOR = 1.03


@dataclass
class PipelineContext:
    """Scratch state for a single ``compute`` call."""

    bars: SeriesWindow
    settings: IndicatorSettings
    columns: dict[str, list] = field(default_factory=dict)
    macd: Optional[MACDResult] = None
    reversal: list[ReversalSignal] = field(default_factory=list)


@runtime_checkable
class Stage(Protocol):
    """Interface every pipeline stage satisfies."""

    name: str

    def enabled(self, settings: IndicatorSettings) -> bool:
        """Whether this stage runs under *settings*."""
        ...

    def run(self, ctx: PipelineContext) -> None:
        """Compute this stage's columns and store them on *ctx*."""
        ...


def _require(ctx: PipelineContext, stage: str, **sources: str) -> None:
    """Raise ``ValueError`` unless every column in *sources* is on *ctx*.

    *sources* maps a column name to the stage that produces it.
    """
    for column, source in sources.items():
        if column not in ctx.columns:
            raise ValueError(
                f"Stage '{stage}' needs the '{source}' stage to run before it"
            )


class _AlwaysOn:
    def enabled(self, settings: IndicatorSettings) -> bool:
        return True


class BollingerStage(_AlwaysOn):
    name = "bollinger"

    def run(self, ctx: PipelineContext) -> None:
        bands = calculate_bollinger(
            ctx.bars, ctx.settings.sma_period, ctx.settings.std_dev
        )
        ctx.columns["bb_upper"] = bands.upper
        ctx.columns["bb_middle"] = bands.middle
        ctx.columns["bb_lower"] = bands.lower


class TrendStage(_AlwaysOn):
    name = "trend"

    def run(self, ctx: PipelineContext) -> None:
        ctx.columns["ema20"] = calculate_ema(ctx.bars, TREND_FAST_PERIOD)
        ctx.columns["ema50"] = calculate_ema(ctx.bars, TREND_SLOW_PERIOD)


class RSIStage(_AlwaysOn):
    name = "rsi"

    def run(self, ctx: PipelineContext) -> None:
        ctx.columns["rsi"] = calculate_rsi(ctx.bars, ctx.settings.rsi_period)


class MACDStage(_AlwaysOn):
    name = "macd"

    def run(self, ctx: PipelineContext) -> None:
        s = ctx.settings
        ctx.macd = calculate_macd(ctx.bars, s.macd_fast, s.macd_slow, s.macd_signal)
        ctx.columns["macd_line"] = ctx.macd.macd_line
        ctx.columns["macd_signal"] = ctx.macd.signal_line
        ctx.columns["macd_histogram"] = ctx.macd.histogram


class VolumeStage(_AlwaysOn):
    name = "volume"

    def run(self, ctx: PipelineContext) -> None:
        analysis = calculate_volume_analysis(ctx.bars, VOLUME_PERIOD)
        ctx.columns["volume_ma"] = analysis.volume_ma
        ctx.columns["volume_ratio"] = analysis.volume_ratio


class ReversalStage:
    name = "reversal"

    def enabled(self, settings: IndicatorSettings) -> bool:
        return settings.show_reversal_engine

    def run(self, ctx: PipelineContext) -> None:
        _require(ctx, self.name, rsi="rsi", volume_ratio="volume", macd_line="macd")
        ctx.reversal = calculate_reversal_signals(
            ctx.bars, ctx.columns["rsi"], ctx.macd, ctx.columns["volume_ratio"]
        )
        ctx.columns["reversal_type"] = [
            sig.type if sig.is_directional else None for sig in ctx.reversal
        ]
        ctx.columns["reversal_strength"] = [sig.strength for sig in ctx.reversal]
        ctx.columns["reversal_reasons"] = [sig.reasons for sig in ctx.reversal]


class ClassicSignalStage:
    name = "classic_signals"

    def enabled(self, settings: IndicatorSettings) -> bool:
        return settings.show_signals

    def run(self, ctx: PipelineContext) -> None:
        _require(ctx, self.name, ema20="trend", ema50="trend", rsi="rsi")
        signals = detect_classic_signals(
            ctx.bars, ctx.columns["ema20"], ctx.columns["ema50"], ctx.columns["rsi"]
        )
        ctx.columns["buy_signal"] = signals.buy
        ctx.columns["sell_signal"] = signals.sell


class ReversalMarkerStage:
    """Place chart markers for reversals strong enough to show."""

    name = "reversal_markers"

    def enabled(self, settings: IndicatorSettings) -> bool:
        return settings.show_reversal_engine

    def run(self, ctx: PipelineContext) -> None:
        _require(ctx, self.name, reversal_type="reversal")
        n = len(ctx.bars)
        buys: list[Optional[float]] = [None] * n
        sells: list[Optional[float]] = [None] * n

        for i in range(SIGNAL_WARMUP_INDEX + 1, n):
            sig = ctx.reversal[i]
            if sig.strength < MIN_MARKER_STRENGTH:
                continue
            bar = ctx.bars[i]
            if sig.type == "bullish":
                buys[i] = bar.low * REVERSAL_BUY_FACTOR
            elif sig.type == "bearish":
                sells[i] = bar.high * REVERSAL_SELL_FACTOR

        ctx.columns["reversal_buy"] = buys
        ctx.columns["reversal_sell"] = sells


DEFAULT_STAGES: tuple[Stage, ...] = (
    BollingerStage(),
    TrendStage(),
    RSIStage(),
    MACDStage(),
    VolumeStage(),
    ReversalStage(),
    ClassicSignalStage(),
    ReversalMarkerStage(),
)


class IndicatorPipeline:
    """Runs *stages* in order and merges their output into enriched bars."""

    def __init__(self, stages: Sequence[Stage] = DEFAULT_STAGES) -> None:
        self.stages = tuple(stages)

    def compute(
        self,
        bars: Sequence[Bar],
        settings: IndicatorSettings,
    ) -> list[Bar] | list[EnrichedBar]:
        """Enrich *bars* under *settings*.

        Returns a list the same length and order as *bars*.  With fewer
        than ``MIN_HISTORY`` bars the input bars are returned unchanged.
        """
        if len(bars) < MIN_HISTORY:
            logger.debug(
                "Series too short for enrichment (%d < %d bars)",
                len(bars), MIN_HISTORY,
            )
            return list(bars)

        ctx = PipelineContext(bars=SeriesWindow(bars), settings=settings)
        for stage in self.stages:
            if not stage.enabled(settings):
                logger.debug("Stage '%s' disabled", stage.name)
                continue
            stage.run(ctx)

        return _merge(ctx)

    def latest_signal(
        self,
        enriched: Sequence[Bar | EnrichedBar],
        settings: IndicatorSettings,
    ) -> Optional[ReversalSignal]:
        """Most recent strong reversal within the last bars, or ``None``.

        Scans the last ``LATEST_SIGNAL_LOOKBACK`` bars newest-first and
        returns the first with a reversal type and strength of at least
        ``MIN_MARKER_STRENGTH``.
        """
        if not settings.show_reversal_engine or not enriched:
            return None

        for row in reversed(enriched[-LATEST_SIGNAL_LOOKBACK:]):
            reversal_type = getattr(row, "reversal_type", None)
            if reversal_type and row.reversal_strength >= MIN_MARKER_STRENGTH:
                return ReversalSignal(
                    type=reversal_type,
                    strength=row.reversal_strength,
                    reasons=tuple(row.reversal_reasons),
                )
        return None


def _merge(ctx: PipelineContext) -> list[EnrichedBar]:
    enriched: list[EnrichedBar] = []
    for i, bar in enumerate(ctx.bars):
        values = {name: column[i] for name, column in ctx.columns.items()}
        enriched.append(EnrichedBar.from_bar(bar, **values))
    return enriched


_default_pipeline = IndicatorPipeline()


def compute(
    bars: Sequence[Bar],
    settings: IndicatorSettings,
) -> list[Bar] | list[EnrichedBar]:
    """Enrich *bars* with the default stage list. See ``IndicatorPipeline``."""
    return _default_pipeline.compute(bars, settings)


def latest_signal(
    enriched: Sequence[Bar | EnrichedBar],
    settings: IndicatorSettings,
) -> Optional[ReversalSignal]:
    """Latest strong reversal in *enriched*. See ``IndicatorPipeline``."""
    return _default_pipeline.latest_signal(enriched, settings)
