"""Integration tests for the indicator pipeline.

Covers: the 50-bar history floor, length/order invariants, determinism,
stage toggles, settings flowing into the calculators, reversal markers
and the latest-signal query.
"""

import math

import pytest

from chartcore.config import IndicatorSettings
from chartcore.indicators.macd import MACDResult, calculate_macd
from chartcore.indicators.moving_average import calculate_sma
from chartcore.models import Bar, EnrichedBar, ReversalSignal
from chartcore.pipeline import (
    BollingerStage,
    ClassicSignalStage,
    IndicatorPipeline,
    MACDStage,
    RSIStage,
    ReversalMarkerStage,
    ReversalStage,
    TrendStage,
    VolumeStage,
    MIN_HISTORY,
    Stage,
    compute,
    latest_signal,
)
from chartcore.signals.reversal import score_reversal


# ── Fixtures ─────────────────────────────────────────────────────────────


def _bar(i: int, close: float, volume: float = 1000, spread: float = 1.0) -> Bar:
    return Bar(
        time=f"2025-03-{1 + i // 24:02d}T{i % 24:02d}:00:00Z",
        open=close, high=close + spread, low=close - spread,
        close=close, volume=volume,
    )


def _rising(n: int = 60) -> list[Bar]:
    """Closes 100, 101, 102, ... with flat volume."""
    return [_bar(i, 100.0 + i) for i in range(n)]


def _flat(n: int = 60, price: float = 64.0) -> list[Bar]:
    return [_bar(i, price, spread=0.0) for i in range(n)]


def _wave(n: int = 160) -> list[Bar]:
    """Two overlapping cycles on a slow drift, with periodic volume spikes."""
    bars = []
    for i in range(n):
        close = 100 + 8 * math.sin(i / 5) + 3 * math.sin(i / 2.3) + 0.05 * i
        volume = 4000 if i % 17 == 0 else 1000 + 400 * ((i * 7) % 5)
        bars.append(_bar(i, close, volume))
    return bars


DEFAULTS = IndicatorSettings()


# ════════════════════════════════════════════════════════════════════════
# History floor and invariants
# ════════════════════════════════════════════════════════════════════════


class TestHistoryFloor:
    def test_short_series_passes_through(self):
        bars = _rising(MIN_HISTORY - 1)
        result = compute(bars, DEFAULTS)
        assert result == bars
        assert all(type(r) is Bar for r in result)

    def test_empty_series(self):
        assert compute([], DEFAULTS) == []

    def test_floor_is_inclusive(self):
        result = compute(_rising(MIN_HISTORY), DEFAULTS)
        assert all(isinstance(r, EnrichedBar) for r in result)


class TestInvariants:
    @pytest.mark.parametrize("n", [50, 51, 120])
    def test_length_and_order(self, n):
        bars = _wave(n)
        result = compute(bars, DEFAULTS)
        assert len(result) == n
        assert [r.time for r in result] == [b.time for b in bars]
        assert [r.close for r in result] == [b.close for b in bars]

    def test_idempotent(self):
        bars = _wave()
        assert compute(bars, DEFAULTS) == compute(bars, DEFAULTS)

    def test_input_untouched(self):
        bars = _wave()
        snapshot = list(bars)
        compute(bars, DEFAULTS)
        assert bars == snapshot

    def test_price_range_passthrough(self):
        for row in compute(_wave(60), DEFAULTS):
            assert row.price_range == (row.low, row.high)

    def test_histogram_identity(self):
        for row in compute(_wave(), DEFAULTS):
            assert row.macd_histogram == row.macd_line - row.macd_signal

    def test_rsi_bounds_and_warmup(self):
        rows = compute(_wave(), DEFAULTS)
        assert all(0.0 <= r.rsi <= 100.0 for r in rows)
        assert all(r.rsi == 0.0 for r in rows[: DEFAULTS.rsi_period + 1])

    def test_bollinger_middle_is_sma(self):
        bars = _wave()
        rows = compute(bars, DEFAULTS)
        sma = calculate_sma(bars, DEFAULTS.sma_period)
        for i, row in enumerate(rows):
            assert row.bb_middle == sma[i]
        assert rows[DEFAULTS.sma_period - 2].bb_upper is None

    def test_volume_warmup_ratio(self):
        rows = compute(_wave(), DEFAULTS)
        for row in rows[:19]:
            assert row.volume_ratio == 1.0
            assert row.volume_ma == row.volume


# ════════════════════════════════════════════════════════════════════════
# Reference series
# ════════════════════════════════════════════════════════════════════════


class TestRisingSeries:
    def test_rsi_saturates(self):
        rows = compute(_rising(), DEFAULTS)
        assert rows[59].rsi == 100.0

    def test_fast_ema_above_slow(self):
        rows = compute(_rising(), DEFAULTS)
        assert rows[59].ema20 > rows[59].ema50

    def test_no_crossover_markers(self):
        """EMA20 leads EMA50 from the second bar on, so nothing crosses."""
        rows = compute(_rising(), DEFAULTS)
        assert all(r.buy_signal is None and r.sell_signal is None for r in rows)

    def test_never_bearish(self):
        rows = compute(_rising(), DEFAULTS)
        assert all(r.reversal_type != "bearish" for r in rows)
        assert all(r.reversal_sell is None for r in rows)


class TestFlatSeries:
    def test_macd_is_zero(self):
        rows = compute(_flat(), DEFAULTS)
        assert all(r.macd_line == 0.0 and r.macd_histogram == 0.0 for r in rows)

    def test_bands_collapse(self):
        rows = compute(_flat(), DEFAULTS)
        for row in rows[19:]:
            assert row.bb_upper == row.bb_middle == row.bb_lower == 64.0

    def test_no_signals(self):
        rows = compute(_flat(), DEFAULTS)
        for row in rows:
            assert row.buy_signal is None
            assert row.sell_signal is None
            assert row.reversal_buy is None
            assert row.reversal_sell is None
            assert row.reversal_type is None

    def test_non_binary_price(self):
        rows = compute(_flat(price=100.0), DEFAULTS)
        assert all(abs(r.macd_line) < 1e-9 for r in rows)
        assert all(r.ema20 == pytest.approx(100.0) for r in rows)
        for row in rows[19:]:
            assert row.bb_upper == row.bb_middle == row.bb_lower == 100.0

    @pytest.mark.parametrize("price", [100.0, 10.0, 3.7, 1234.56, 0.1])
    def test_no_signals_at_any_price(self, price):
        """Flat RSI sits at 100, so "RSI Overbought" adds 25 bearish points on
        every bar; that alone stays short of the reversal threshold."""
        rows = compute(_flat(price=price), DEFAULTS)
        assert rows[-1].rsi == 100.0
        for row in rows:
            assert row.buy_signal is None
            assert row.sell_signal is None
            assert row.reversal_buy is None
            assert row.reversal_sell is None
            assert row.reversal_type is None


# ════════════════════════════════════════════════════════════════════════
# Settings and toggles
# ════════════════════════════════════════════════════════════════════════


class TestSettings:
    def test_rsi_period(self):
        rows = compute(_rising(), IndicatorSettings(rsi_period=5))
        assert rows[5].rsi == 0.0
        assert rows[6].rsi == 100.0

    def test_macd_periods(self):
        bars = _wave()
        rows = compute(bars, IndicatorSettings(macd_fast=5, macd_slow=13, macd_signal=4))
        macd = calculate_macd(bars, 5, 13, 4)
        assert [r.macd_line for r in rows] == macd.macd_line
        assert [r.macd_signal for r in rows] == macd.signal_line

    def test_bollinger_period_and_width(self):
        bars = _wave()
        rows = compute(bars, IndicatorSettings(sma_period=10, std_dev=0.0))
        assert rows[8].bb_middle is None
        assert rows[9].bb_middle == calculate_sma(bars, 10)[9]
        assert rows[9].bb_upper == rows[9].bb_middle == rows[9].bb_lower

    def test_display_toggles_do_not_skip_computation(self):
        settings = IndicatorSettings(show_bb=False, show_rsi=False, show_macd=False)
        rows = compute(_wave(), settings)
        assert rows[-1].bb_middle is not None
        assert rows[-1].rsi > 0
        assert rows[-1].macd_line is not None

    def test_signals_disabled(self):
        rows = compute(_wave(), IndicatorSettings(show_signals=False))
        assert all(r.buy_signal is None and r.sell_signal is None for r in rows)

    def test_reversal_engine_disabled(self):
        settings = IndicatorSettings(show_reversal_engine=False)
        rows = compute(_wave(), settings)
        for row in rows:
            assert row.reversal_type is None
            assert row.reversal_strength == 0
            assert row.reversal_reasons == ()
            assert row.reversal_buy is None
            assert row.reversal_sell is None
        assert latest_signal(rows, settings) is None


class TestCustomStages:
    def test_stage_protocol(self):
        assert isinstance(BollingerStage(), Stage)

    def test_single_stage_pipeline(self):
        rows = IndicatorPipeline([BollingerStage()]).compute(_wave(), DEFAULTS)
        assert rows[-1].bb_middle is not None
        assert rows[-1].ema20 is None
        assert rows[-1].rsi is None
        assert rows[-1].reversal_type is None

    def test_reversal_without_macd(self):
        pipeline = IndicatorPipeline([RSIStage(), VolumeStage(), ReversalStage()])
        with pytest.raises(ValueError, match="needs the 'macd' stage"):
            pipeline.compute(_wave(), DEFAULTS)

    def test_markers_without_reversal(self):
        pipeline = IndicatorPipeline([ReversalMarkerStage()])
        with pytest.raises(ValueError, match="needs the 'reversal' stage"):
            pipeline.compute(_wave(), DEFAULTS)

    def test_classic_signals_without_trend(self):
        pipeline = IndicatorPipeline([RSIStage(), ClassicSignalStage()])
        with pytest.raises(ValueError, match="needs the 'trend' stage"):
            pipeline.compute(_wave(), DEFAULTS)

    def test_reordered_prerequisites(self):
        stages = [
            MACDStage(), TrendStage(), VolumeStage(), RSIStage(),
            ReversalStage(), ReversalMarkerStage(), ClassicSignalStage(),
        ]
        rows = IndicatorPipeline(stages).compute(_wave(), DEFAULTS)
        expected = compute(_wave(), DEFAULTS)
        assert [r.reversal_type for r in rows] == [r.reversal_type for r in expected]
        assert [r.sell_signal for r in rows] == [r.sell_signal for r in expected]

    def test_disabled_stage_skips_prerequisite_check(self):
        settings = IndicatorSettings(show_reversal_engine=False)
        rows = IndicatorPipeline([ReversalMarkerStage()]).compute(_wave(), settings)
        assert rows[-1].reversal_buy is None


# ════════════════════════════════════════════════════════════════════════
# Reversal markers
# ════════════════════════════════════════════════════════════════════════


class TestReversalMarkers:
    def test_markers_follow_strong_signals(self):
        rows = compute(_wave(), DEFAULTS)
        for i, row in enumerate(rows):
            strong = row.reversal_strength >= 40 and i > 50
            if strong and row.reversal_type == "bullish":
                assert row.reversal_buy == row.low * 0.97
            else:
                assert row.reversal_buy is None
            if strong and row.reversal_type == "bearish":
                assert row.reversal_sell == row.high * 1.03
            else:
                assert row.reversal_sell is None

    def test_reversal_warmup(self):
        rows = compute(_wave(), DEFAULTS)
        assert all(r.reversal_type is None for r in rows[:30])

    def test_classified_bars_clear_threshold(self):
        bars = _wave()
        rows = compute(bars, DEFAULTS)
        rsi = [r.rsi for r in rows]
        macd = MACDResult(
            macd_line=[r.macd_line for r in rows],
            signal_line=[r.macd_signal for r in rows],
            histogram=[r.macd_histogram for r in rows],
        )
        ratio = [r.volume_ratio for r in rows]
        for i in range(30, len(rows)):
            score = score_reversal(bars, rsi, macd, ratio, i)
            if rows[i].reversal_type is not None:
                assert abs(score.net) >= 30
            else:
                assert abs(score.net) < 30


# ════════════════════════════════════════════════════════════════════════
# Latest signal
# ════════════════════════════════════════════════════════════════════════


def _row(i: int, rtype=None, strength: int = 0, reasons=()) -> EnrichedBar:
    return EnrichedBar.from_bar(
        _bar(i, 100.0),
        reversal_type=rtype,
        reversal_strength=strength,
        reversal_reasons=tuple(reasons),
    )


class TestLatestSignal:
    def test_finds_recent_signal(self):
        rows = [_row(i) for i in range(20)]
        rows[15] = _row(15, "bullish", 55, ["RSI Oversold", "MACD Bullish Cross"])
        assert latest_signal(rows, DEFAULTS) == ReversalSignal(
            "bullish", 55, ("RSI Oversold", "MACD Bullish Cross"),
        )

    def test_newest_wins(self):
        rows = [_row(i) for i in range(20)]
        rows[12] = _row(12, "bullish", 50)
        rows[17] = _row(17, "bearish", 45)
        assert latest_signal(rows, DEFAULTS).type == "bearish"

    def test_outside_lookback(self):
        rows = [_row(i) for i in range(20)]
        rows[9] = _row(9, "bullish", 90)
        assert latest_signal(rows, DEFAULTS) is None

    def test_edge_of_lookback(self):
        rows = [_row(i) for i in range(20)]
        rows[10] = _row(10, "bearish", 40)
        assert latest_signal(rows, DEFAULTS).strength == 40

    def test_weak_signal_ignored(self):
        rows = [_row(i) for i in range(20)]
        rows[18] = _row(18, "bullish", 35)
        assert latest_signal(rows, DEFAULTS) is None

    def test_empty_and_plain_bars(self):
        assert latest_signal([], DEFAULTS) is None
        assert latest_signal(_rising(10), DEFAULTS) is None

    def test_short_history(self):
        rows = [_row(0, "bullish", 60), _row(1)]
        assert latest_signal(rows, DEFAULTS).strength == 60

    def test_pipeline_output(self):
        rows = compute(_wave(), DEFAULTS)
        signal = latest_signal(rows, DEFAULTS)
        recent = [
            r for r in rows[-10:]
            if r.reversal_type is not None and r.reversal_strength >= 40
        ]
        if recent:
            assert signal.type == recent[-1].reversal_type
            assert signal.strength == recent[-1].reversal_strength
        else:
            assert signal is None
