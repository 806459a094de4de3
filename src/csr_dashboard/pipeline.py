"""Row cleaning, company grouping and dashboard views — pure functions, no side effects."""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

import pandas as pd

from csr_dashboard import (
    ALL_COMPANIES,
    COMPANY_FIELDS,
    EXCLUDED_COLUMNS,
    INCLUDED_VARIABLES,
    TREND_BASELINE_COLUMN,
    TREND_X_COLUMN,
    UNKNOWN_COMPANY,
)
from csr_dashboard.models import CorrelationResult, DescriptiveStat, QCReport, Row, Selection
from csr_dashboard.stats import (
    calculate_correlation,
    calculate_descriptive_stats,
    numeric_columns,
    to_number,
)

# ── Row normalisation ────────────────────────────────────────────


def is_empty_header(name: object) -> bool:
    """True for blank headers and spreadsheet placeholders such as ``__EMPTY_3``."""
    text = str(name).strip()
    return not text or "empty" in text.lower()


def normalize_row(row: Mapping[str, Any]) -> Row:
    """Return a copy of *row* with trimmed keys and empty-named columns removed."""
    cleaned: Row = {}
    for key, value in row.items():
        if is_empty_header(key):
            continue
        cleaned[str(key).strip()] = value
    return cleaned


def normalize_rows(rows: Sequence[Mapping[str, Any]]) -> list[Row]:
    return [normalize_row(row) for row in rows]


def _cell_value(val: Any) -> Any:
    if val is None:
        return None
    try:
        if pd.isna(val):
            return None
    except (TypeError, ValueError):
        return val

    if isinstance(val, (pd.Timestamp, datetime, date)):
        return val.isoformat()

    item = getattr(val, "item", None)
    if callable(item):
        converted = item()
        if isinstance(converted, (str, int, float, bool)):
            return converted
    return val


def frame_to_rows(df: pd.DataFrame) -> list[Row]:
    """Convert a raw sheet to rows of plain Python values (missing cells -> None)."""
    columns = [str(c) for c in df.columns]
    return [
        {col: _cell_value(val) for col, val in zip(columns, values)}
        for values in df.itertuples(index=False, name=None)
    ]


def prepare_dataset(
    df: pd.DataFrame, *, excluded: Collection[str] = EXCLUDED_COLUMNS
) -> tuple[list[Row], QCReport]:
    """Turn a raw sheet into the normalized dataset.

    Returns ``(rows, qc_report)``.  Fully blank rows are dropped; every other
    row is kept even when most of its cells are missing.
    """
    qc = QCReport(rows_in=len(df), rows_out=len(df), dropped_rows=0)

    # 1. Drop blank rows
    df = df.dropna(how="all")
    blank = qc.rows_in - len(df)
    if blank:
        qc.warnings.append(f"Skipped {blank} blank rows")

    # 2. Empty-named columns
    qc.dropped_columns = [str(c) for c in df.columns if is_empty_header(c)]
    if qc.dropped_columns:
        qc.warnings.append(
            f"Removed {len(qc.dropped_columns)} empty-named columns: "
            f"{', '.join(qc.dropped_columns)}"
        )

    # 3. Normalise rows
    rows = normalize_rows(frame_to_rows(df))

    qc.rows_out = len(rows)
    qc.dropped_rows = qc.rows_in - qc.rows_out

    if not rows:
        qc.warnings.append("Dataset is empty — no rows remain")
        return rows, qc

    headers = {str(c).strip() for c in df.columns}
    if not headers.intersection(COMPANY_FIELDS):
        qc.warnings.append(
            f"No company column found; all rows grouped under {UNKNOWN_COMPANY!r}"
        )

    qc.companies = list(group_by_company(rows))
    qc.numeric_columns = numeric_columns(rows, excluded)
    if not qc.numeric_columns:
        qc.warnings.append("No numeric columns detected in the first non-empty row")

    return rows, qc


# ── Grouping / selection ────────────────────────────────────────


def company_key(row: Mapping[str, Any]) -> str:
    for name in COMPANY_FIELDS:
        value = row.get(name)
        if value is None:
            continue
        if isinstance(value, float) and value.is_integer():
            # Numeric IDs read as float when the column has blanks.
            value = int(value)
        return str(value)
    return UNKNOWN_COMPANY


def group_by_company(rows: Sequence[Row]) -> dict[str, list[Row]]:
    """Partition *rows* by company, groups ordered by first appearance."""
    groups: dict[str, list[Row]] = {}
    for row in rows:
        groups.setdefault(company_key(row), []).append(row)
    return groups


def default_company(groups: Mapping[str, Sequence[Row]]) -> str:
    return next(iter(groups), ALL_COMPANIES)


def select_dataset(
    rows: Sequence[Row], groups: Mapping[str, Sequence[Row]], company: str | None
) -> Sequence[Row]:
    """Return the rows behind *company*.

    ``ALL_COMPANIES`` yields *rows* itself, not a union of the groups.
    """
    if company is None:
        return []
    if company == ALL_COMPANIES:
        return rows
    return groups.get(company, [])


# ── Trends ───────────────────────────────────────────────────────


def compute_trends(
    dataset: Sequence[Row], variables: Sequence[str] = INCLUDED_VARIABLES
) -> pd.DataFrame:
    """Series for the CSR-vs-variable line charts, one row per dataset row."""
    present = [v for v in variables if any(v in row for row in dataset)]
    columns = [TREND_X_COLUMN, TREND_BASELINE_COLUMN, *present]
    if not dataset:
        return pd.DataFrame(columns=columns)

    data: dict[str, list[Any]] = {TREND_X_COLUMN: [row.get(TREND_X_COLUMN) for row in dataset]}
    for col in columns[1:]:
        data[col] = [to_number(row.get(col)) for row in dataset]
    return pd.DataFrame(data, columns=columns)


# ── Dashboard view ───────────────────────────────────────────────


@dataclass(frozen=True)
class DashboardView:
    """Everything the presentation layer renders for one selection."""

    selection: Selection
    company: str | None
    dataset: Sequence[Row] = field(default_factory=list)
    numeric_columns: list[str] = field(default_factory=list)
    descriptive_stats: list[DescriptiveStat] = field(default_factory=list)
    correlation: CorrelationResult = field(default_factory=CorrelationResult.empty)


def build_view(
    rows: Sequence[Row],
    groups: Mapping[str, Sequence[Row]],
    selection: Selection,
    *,
    excluded: Collection[str] = EXCLUDED_COLUMNS,
) -> DashboardView:
    """Recompute stats and correlations for *selection* from scratch."""
    dataset = select_dataset(rows, groups, selection.company)
    columns = numeric_columns(dataset, excluded)
    return DashboardView(
        selection=selection,
        company=selection.company,
        dataset=dataset,
        numeric_columns=columns,
        descriptive_stats=calculate_descriptive_stats(dataset, columns),
        correlation=calculate_correlation(dataset, columns),
    )
