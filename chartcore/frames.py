"""pandas adapters: bars in from a DataFrame, enriched rows out to one.

Chart and screener collaborators keep their history in DataFrames; these
helpers convert at the edge so the calculators stay on plain dataclasses.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Sequence

import numpy as np
import pandas as pd

from chartcore.models import PRICE_FIELDS, Bar, EnrichedBar

logger = logging.getLogger("chartcore.frames")

BAR_COLUMNS = ["time", *PRICE_FIELDS]


def bars_from_frame(df: pd.DataFrame) -> list[Bar]:
    """Convert an OHLCV frame (oldest row first) into ``Bar`` objects.

    Requires ``time, open, high, low, close, volume`` columns; raises
    ``ValueError`` naming any that are missing.  Rows with a non-finite
    price or volume are dropped and logged.  Datetime ``time`` values
    are rendered as ISO-8601 strings.
    """
    missing = [c for c in BAR_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required column(s): {', '.join(missing)}")

    if df.empty:
        return []

    numeric = df[list(PRICE_FIELDS)].apply(pd.to_numeric, errors="coerce")
    finite = np.isfinite(numeric.to_numpy(dtype=float)).all(axis=1)
    dropped = int((~finite).sum())
    if dropped:
        logger.warning("Dropped %d bar(s) with non-finite values", dropped)

    times = df["time"]
    if pd.api.types.is_datetime64_any_dtype(times):
        times = times.map(lambda t: t.isoformat())
    else:
        times = times.astype(str)

    bars: list[Bar] = []
    for time, row, ok in zip(times, numeric.itertuples(index=False), finite):
        if not ok:
            continue
        bars.append(Bar(
            time=time,
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume),
        ))
    return bars


_NON_NUMERIC = {"time", "price_range", "reversal_type", "reversal_reasons"}


def enriched_to_frame(rows: Sequence[Bar | EnrichedBar]) -> pd.DataFrame:
    """One DataFrame row per bar; absent indicator values become NaN.

    Accepts the output of ``compute`` in either shape (enriched, or
    plain bars when the series was too short to enrich).
    """
    if not rows:
        return pd.DataFrame(columns=EnrichedBar.field_names())

    records = []
    for row in rows:
        record = asdict(row)
        for name, value in record.items():
            if value is None and name not in _NON_NUMERIC:
                record[name] = np.nan
        records.append(record)
    return pd.DataFrame.from_records(records)
