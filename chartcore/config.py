"""chartcore: indicator settings and logging configuration.

Loads .env variables into a typed, immutable settings object.
Out-of-range periods are clamped here so the calculators never have to.
"""

import logging
import os
from dataclasses import dataclass, replace
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger("chartcore.config")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

RSI_PERIOD_RANGE = (2, 50)
MACD_FAST_RANGE = (2, 50)
MACD_SLOW_RANGE = (2, 100)
MACD_SIGNAL_RANGE = (2, 50)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class IndicatorSettings:
    """Parameters and stage toggles for one indicator computation.

    ``show_bb``, ``show_rsi`` and ``show_macd`` are display hints for
    chart collaborators; the signal stages need those indicators, so
    they are always computed.  ``show_signals`` and
    ``show_reversal_engine`` switch their pipeline stages on and off.
    """

    sma_period: int = 20  # Bollinger window
    std_dev: float = 2.0
    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    show_bb: bool = True
    show_rsi: bool = True
    show_macd: bool = True
    show_signals: bool = True
    show_reversal_engine: bool = True


def _clamp(value: int, bounds: tuple[int, int]) -> int:
    low, high = bounds
    return max(low, min(high, value))


def clamp_settings(settings: IndicatorSettings) -> IndicatorSettings:
    """Return *settings* with RSI/MACD periods forced into their ranges.

    RSI, MACD fast and MACD signal clamp to [2, 50]; MACD slow to
    [2, 100].  Raises ``ValueError`` for a non-positive Bollinger period
    or a negative standard-deviation multiplier.
    """
    if settings.sma_period <= 0:
        raise ValueError(f"sma_period must be positive, got {settings.sma_period}")
    if settings.std_dev < 0:
        raise ValueError(f"std_dev must not be negative, got {settings.std_dev}")

    clamped = replace(
        settings,
        rsi_period=_clamp(settings.rsi_period, RSI_PERIOD_RANGE),
        macd_fast=_clamp(settings.macd_fast, MACD_FAST_RANGE),
        macd_slow=_clamp(settings.macd_slow, MACD_SLOW_RANGE),
        macd_signal=_clamp(settings.macd_signal, MACD_SIGNAL_RANGE),
    )
    if clamped != settings:
        logger.info("Indicator periods clamped: %s", clamped)
    return clamped


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got {raw!r}")


def load_settings(env_path: str | None = None) -> IndicatorSettings:
    """Load indicator settings from environment variables.

    Every variable is optional; missing ones fall back to the
    ``IndicatorSettings`` defaults.  Raises ``ValueError`` with a message
    naming the variable when a value cannot be parsed.
    """
    load_dotenv(dotenv_path=env_path)
    defaults = IndicatorSettings()

    settings = IndicatorSettings(
        sma_period=_env_int("CHART_SMA_PERIOD", defaults.sma_period),
        std_dev=_env_float("CHART_STD_DEV", defaults.std_dev),
        rsi_period=_env_int("CHART_RSI_PERIOD", defaults.rsi_period),
        macd_fast=_env_int("CHART_MACD_FAST", defaults.macd_fast),
        macd_slow=_env_int("CHART_MACD_SLOW", defaults.macd_slow),
        macd_signal=_env_int("CHART_MACD_SIGNAL", defaults.macd_signal),
        show_bb=_env_bool("CHART_SHOW_BB", defaults.show_bb),
        show_rsi=_env_bool("CHART_SHOW_RSI", defaults.show_rsi),
        show_macd=_env_bool("CHART_SHOW_MACD", defaults.show_macd),
        show_signals=_env_bool("CHART_SHOW_SIGNALS", defaults.show_signals),
        show_reversal_engine=_env_bool(
            "CHART_SHOW_REVERSAL_ENGINE", defaults.show_reversal_engine
        ),
    )
    return clamp_settings(settings)


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root logging; *level* defaults to ``$LOG_LEVEL`` or INFO."""
    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
    )
