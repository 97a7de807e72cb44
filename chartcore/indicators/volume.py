"""Volume trend: rolling volume average and current/average ratio."""

from dataclasses import dataclass

from chartcore.indicators.series import as_window, check_period


@dataclass(frozen=True)
class VolumeAnalysis:
    volume_ma: list[float]
    volume_ratio: list[float]


def calculate_volume_analysis(series, period: int = 20) -> VolumeAnalysis:
    """Rolling volume mean and ``volume / mean`` ratio.

    Before the first full window the bar's own volume stands in for the
    mean and the ratio is ``1.0``.  A zero rolling mean also gives a
    ratio of ``1.0``.
    """
    check_period(period)
    window = as_window(series)
    volumes = window.values("volume")

    volume_ma: list[float] = []
    volume_ratio: list[float] = []

    for i, volume in enumerate(volumes):
        if i < period - 1:
            volume_ma.append(volume)
            volume_ratio.append(1.0)
            continue

        avg_volume = sum(window.trailing(i, period, "volume")) / period
        volume_ma.append(avg_volume)
        volume_ratio.append(volume / avg_volume if avg_volume != 0 else 1.0)

    return VolumeAnalysis(volume_ma=volume_ma, volume_ratio=volume_ratio)
