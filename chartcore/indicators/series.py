"""Read-only, bounds-checked view over an ordered bar sequence."""

from typing import Sequence

from chartcore.models import PRICE_FIELDS, Bar


class SeriesWindow:
    """Ordered, read-only access to a bar sequence and its trailing windows.

    Every calculator goes through this view so that field lookups and
    window slicing are validated in one place.  A window ending at index
    *end* with *length* bars covers ``end - length + 1 .. end`` inclusive.
    """

    def __init__(self, bars: Sequence[Bar]) -> None:
        self._bars = tuple(bars)

    def __len__(self) -> int:
        return len(self._bars)

    def __getitem__(self, index: int) -> Bar:
        return self._bars[index]

    def __iter__(self):
        return iter(self._bars)

    def values(self, field: str = "close") -> list[float]:
        """Return the *field* value of every bar, oldest first."""
        _check_field(field)
        return [getattr(b, field) for b in self._bars]

    def has_window(self, end: int, length: int) -> bool:
        """True if a full *length*-bar window ends at index *end*."""
        return length > 0 and 0 <= end < len(self._bars) and end - length + 1 >= 0

    def trailing(self, end: int, length: int, field: str = "close") -> list[float]:
        """Return the *field* values of the *length* bars ending at *end*.

        Raises ``IndexError`` if the window does not fit inside the series.
        """
        _check_field(field)
        if not self.has_window(end, length):
            raise IndexError(
                f"Window of {length} bars ending at {end} is outside "
                f"a series of {len(self._bars)} bars"
            )
        return [getattr(b, field) for b in self._bars[end - length + 1 : end + 1]]


def _check_field(field: str) -> None:
    if field not in PRICE_FIELDS:
        raise ValueError(
            f"Unknown price field '{field}'. Available: {', '.join(PRICE_FIELDS)}"
        )


def as_window(series) -> SeriesWindow:
    """Wrap *series* in a ``SeriesWindow`` unless it already is one."""
    if isinstance(series, SeriesWindow):
        return series
    return SeriesWindow(series)


def check_period(period: int, name: str = "period") -> None:
    """Raise ``ValueError`` for a non-positive window/period length."""
    if period <= 0:
        raise ValueError(f"{name} must be positive, got {period}")
