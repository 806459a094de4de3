"""Statistics engine — numeric column detection, descriptive stats, Pearson matrix.

Every function here is pure: inputs are never mutated and each call builds
fresh results.  Degenerate inputs (no rows, no numeric columns, all-missing or
constant columns) resolve to zero sentinels instead of raising.
"""

from __future__ import annotations

import math
from collections.abc import Collection, Sequence
from numbers import Real
from typing import Any

import numpy as np
import pandas as pd

from csr_dashboard import EXCLUDED_COLUMNS
from csr_dashboard.models import CorrelationResult, DescriptiveStat, Row

_QUARTILES = (0.25, 0.5, 0.75)


# ── Value coercion ───────────────────────────────────────────────


def is_numeric_value(value: Any) -> bool:
    """Return True when *value* is a real number (booleans excluded)."""
    return isinstance(value, Real) and not isinstance(value, bool)


def to_number(value: Any) -> float:
    """Convert a cell value to ``float``; anything unusable becomes NaN.

    ``None`` and blank strings count as missing.  Booleans map to 1.0/0.0.
    """
    if value is None:
        return math.nan
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, Real):
        return float(value)
    if isinstance(value, str):
        token = value.strip()
        if not token:
            return math.nan
        try:
            return float(token)
        except ValueError:
            return math.nan
    return math.nan


def _numeric_frame(dataset: Sequence[Row], columns: Sequence[str]) -> pd.DataFrame:
    data = {col: [to_number(row.get(col)) for row in dataset] for col in columns}
    return pd.DataFrame(data, columns=list(columns), dtype=float)


# ── Column detection ─────────────────────────────────────────────


def _sample_row(dataset: Sequence[Row]) -> Row:
    for row in dataset:
        if row:
            return row
    return {}


def numeric_columns(
    dataset: Sequence[Row], excluded: Collection[str] = EXCLUDED_COLUMNS
) -> list[str]:
    """Return the analysable numeric columns of *dataset*.

    Types are inferred from the first row that has any key at all; a column
    whose value in that row is missing or textual is left out even if other
    rows hold numbers for it.
    """
    sample = _sample_row(dataset)
    return [
        col for col, value in sample.items()
        if is_numeric_value(value) and col not in excluded
    ]


# ── Descriptive statistics ───────────────────────────────────────


def _describe(column: str, series: pd.Series) -> DescriptiveStat:
    values = series.dropna().sort_values(ignore_index=True)
    n = int(values.size)
    if n == 0:
        return DescriptiveStat.zero(column)

    # Nearest-rank quartiles: index floor((n - 1) * p), no interpolation.
    q1, median, q3 = (float(values.iloc[math.floor((n - 1) * p)]) for p in _QUARTILES)
    return DescriptiveStat(
        column=column,
        n=n,
        mean=float(values.mean()),
        sd=float(values.std(ddof=0)),
        min=float(values.iloc[0]),
        q1=q1,
        median=median,
        q3=q3,
        max=float(values.iloc[-1]),
    )


def calculate_descriptive_stats(
    dataset: Sequence[Row],
    columns: Sequence[str] | None = None,
    *,
    excluded: Collection[str] = EXCLUDED_COLUMNS,
) -> list[DescriptiveStat]:
    """Return one :class:`DescriptiveStat` per numeric column, in detection order.

    *columns* defaults to ``numeric_columns(dataset, excluded)``.
    """
    if columns is None:
        columns = numeric_columns(dataset, excluded)
    columns = list(dict.fromkeys(columns))
    if not dataset or not columns:
        return []
    frame = _numeric_frame(dataset, columns)
    return [_describe(col, frame[col]) for col in columns]


# ── Correlation ──────────────────────────────────────────────────


def _pearson(xs: np.ndarray, ys: np.ndarray) -> float:
    mask = ~(np.isnan(xs) | np.isnan(ys))
    if not mask.any():
        return 0.0
    x = xs[mask]
    y = ys[mask]
    dx = x - x.mean()
    dy = y - y.mean()
    numerator = float(np.sum(dx * dy))
    denominator = math.sqrt(float(np.sum(dx * dx)) * float(np.sum(dy * dy)))
    if denominator == 0:
        return 0.0
    return numerator / denominator


def calculate_correlation(
    dataset: Sequence[Row],
    columns: Sequence[str] | None = None,
    *,
    excluded: Collection[str] = EXCLUDED_COLUMNS,
) -> CorrelationResult:
    """Return the full pairwise Pearson matrix over the numeric columns.

    Each pair uses only the rows where both values convert to numbers.  An
    empty pair set or a zero-variance series yields 0.0, so a constant
    column has 0.0 (not 1.0) on the diagonal.
    """
    if columns is None:
        columns = numeric_columns(dataset, excluded)
    columns = list(dict.fromkeys(columns))
    if not columns:
        return CorrelationResult.empty()

    frame = _numeric_frame(dataset, columns)
    arrays = {col: frame[col].to_numpy(dtype=float) for col in columns}
    matrix = {
        x: {y: _pearson(arrays[x], arrays[y]) for y in columns}
        for x in columns
    }
    return CorrelationResult(columns=list(columns), matrix=matrix)
