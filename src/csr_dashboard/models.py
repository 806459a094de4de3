"""Data models / typed records used across the package."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from numbers import Integral
from typing import Any

import pandas as pd

Row = dict[str, Any]


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return normalized


# ── Statistics results ───────────────────────────────────────────


@dataclass(frozen=True)
class DescriptiveStat:
    """Summary of one numeric column.

    ``sd`` is the population standard deviation (divisor ``n``).  A column
    without a single usable value is reported with every figure set to zero.
    """

    column: str
    n: int = 0
    mean: float = 0.0
    sd: float = 0.0
    min: float = 0.0
    q1: float = 0.0
    median: float = 0.0
    q3: float = 0.0
    max: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "n", _to_non_negative_int(self.n, "n"))

    @classmethod
    def zero(cls, column: str) -> DescriptiveStat:
        return cls(column=column)

    def to_dict(self) -> dict[str, Any]:
        return {
            "col": self.column,
            "N": self.n,
            "Mean": self.mean,
            "SD": self.sd,
            "Min": self.min,
            "Q1": self.q1,
            "Median": self.median,
            "Q3": self.q3,
            "Max": self.max,
        }


@dataclass(frozen=True)
class CorrelationResult:
    """Pearson matrix keyed ``matrix[row_column][column_column]``."""

    columns: list[str] = field(default_factory=list)
    matrix: dict[str, dict[str, float]] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> CorrelationResult:
        return cls(columns=[], matrix={})

    def coefficient(self, x: str, y: str) -> float:
        return self.matrix.get(x, {}).get(y, 0.0)

    def to_frame(self) -> pd.DataFrame:
        data = [[self.coefficient(x, y) for y in self.columns] for x in self.columns]
        return pd.DataFrame(data, index=list(self.columns), columns=list(self.columns), dtype=float)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cols": list(self.columns),
            "corrMatrix": {x: dict(row) for x, row in self.matrix.items()},
        }


# ── View model ───────────────────────────────────────────────────


@dataclass(frozen=True)
class Selection:
    """What the user is looking at: one company (or all) plus display toggles."""

    company: str | None = None
    show_descriptive: bool = True
    show_correlation: bool = True

    def with_company(self, company: str | None) -> Selection:
        return replace(self, company=company)

    def toggle_descriptive(self) -> Selection:
        return replace(self, show_descriptive=not self.show_descriptive)

    def toggle_correlation(self) -> Selection:
        return replace(self, show_correlation=not self.show_correlation)


# ── Run artifacts ────────────────────────────────────────────────


@dataclass
class QCReport:
    """Quality-control report for one spreadsheet load.

    Contract invariant: ``dropped_rows == rows_in - rows_out``.
    """

    rows_in: int = 0
    rows_out: int = 0
    dropped_rows: int = 0
    dropped_columns: list[str] = field(default_factory=list)
    companies: list[str] = field(default_factory=list)
    numeric_columns: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.rows_out = _to_non_negative_int(self.rows_out, "rows_out")
        self.dropped_rows = _to_non_negative_int(self.dropped_rows, "dropped_rows")
        self.dropped_columns = _to_string_list(self.dropped_columns, "dropped_columns")
        self.companies = _to_string_list(self.companies, "companies")
        self.numeric_columns = _to_string_list(self.numeric_columns, "numeric_columns")
        self.warnings = _to_string_list(self.warnings, "warnings")
        if self.rows_out > self.rows_in:
            raise ValueError("rows_out must be <= rows_in")
        if self.dropped_rows != self.rows_in - self.rows_out:
            raise ValueError("dropped_rows must equal rows_in - rows_out")

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows_in": self.rows_in,
            "rows_out": self.rows_out,
            "dropped_rows": self.dropped_rows,
            "dropped_columns": list(self.dropped_columns),
            "companies": list(self.companies),
            "numeric_columns": list(self.numeric_columns),
            "warnings": list(self.warnings),
        }


@dataclass
class RunManifest:
    """Audit-trail manifest for a single CLI run."""

    tool: str = "csr-dashboard"
    version: str = ""
    run_id: str = ""
    input_path: str = ""
    output_dir: str = ""
    created_at_utc: str = ""
    company: str = ""
    rows_in: int = 0
    rows_out: int = 0
    sha256: str = ""
    status: str = "success"
    error_code: int | None = None
    error_message: str = ""

    def __post_init__(self) -> None:
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.rows_out = _to_non_negative_int(self.rows_out, "rows_out")
        if self.status not in {"success", "failed"}:
            raise ValueError("status must be 'success' or 'failed'")
        if self.error_code is not None:
            self.error_code = _to_non_negative_int(self.error_code, "error_code")

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "version": self.version,
            "run_id": self.run_id,
            "input_path": self.input_path,
            "output_dir": self.output_dir,
            "created_at_utc": self.created_at_utc,
            "company": self.company,
            "rows_in": self.rows_in,
            "rows_out": self.rows_out,
            "sha256": self.sha256,
            "status": self.status,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }
