"""Excel report writer — produces Panel_Report.xlsx."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, cast

import pandas as pd
from openpyxl import Workbook
from openpyxl.chart import LineChart, Reference
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo
from openpyxl.worksheet.worksheet import Worksheet

from csr_dashboard import ALL_COMPANIES, TREND_BASELINE_COLUMN, TREND_X_COLUMN
from csr_dashboard.models import CorrelationResult, DescriptiveStat, QCReport, Row, Selection

REPORT_NAME = "Panel_Report.xlsx"

# ── Style constants ──────────────────────────────────────────────

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="1E293B", end_color="1E293B", fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)

TITLE_FONT = Font(name="Calibri", bold=True, size=14, color="1E293B")
SUBTITLE_FONT = Font(name="Calibri", bold=False, size=10, color="808080")
LABEL_FONT = Font(name="Calibri", bold=True, size=11)
VALUE_FONT = Font(name="Calibri", size=11)
WARN_FONT = Font(name="Calibri", italic=True, size=10, color="CC6600")

NOTE_FILL = PatternFill(start_color="FFF2CC", end_color="FFF2CC", fill_type="solid")
KPI_FILL = PatternFill(start_color="D9F99D", end_color="D9F99D", fill_type="solid")

STAT_FMT = "0.00"
MOMENT_FMT = "0.0000"
CORR_FMT = "0.00"
INT_FMT = "#,##0"

# Mean and SD are shown with four decimals, the order statistics with two.
_STAT_FORMATS: dict[str, str] = {
    "N": INT_FMT,
    "Mean": MOMENT_FMT,
    "SD": MOMENT_FMT,
    "Min": STAT_FMT,
    "Q1": STAT_FMT,
    "Median": STAT_FMT,
    "Q3": STAT_FMT,
    "Max": STAT_FMT,
}

_AUTO_WIDTH_SAMPLE_ROWS = 300
_EXCEL_FORMULA_PREFIXES = ("=", "+", "-", "@")
_CHARTS_PER_ROW = 2
_CHART_ROW_SPAN = 16
_CHART_COL_SPAN = 9


# ── Helpers ──────────────────────────────────────────────────────


def _style_header(ws: Worksheet, ncols: int) -> None:
    for c in range(1, ncols + 1):
        cell = ws.cell(row=1, column=c)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGN


def _auto_width(ws: Worksheet) -> None:
    max_row = min(ws.max_row, _AUTO_WIDTH_SAMPLE_ROWS + 1)  # include header row
    for c_idx in range(1, ws.max_column + 1):
        letter = get_column_letter(c_idx)
        width = 0
        for row in ws.iter_rows(min_row=1, max_row=max_row, min_col=c_idx, max_col=c_idx):
            cell = row[0]
            width = max(width, len(str(cell.value or "")))
        width += 4
        ws.column_dimensions[letter].width = min(width, 30)


def _apply_number_formats(ws: Worksheet, formats: dict[int, str]) -> None:
    """Apply number formats to data rows (2+) keyed by 1-based column index."""
    if ws.max_row < 2:
        return

    for c_idx, fmt in formats.items():
        for row in ws.iter_rows(min_row=2, max_row=ws.max_row, min_col=c_idx, max_col=c_idx):
            for cell in row:
                cell.number_format = fmt


def _sanitize_table_name(name: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9_]", "_", name)
    if not cleaned:
        cleaned = "Table"
    if not re.match(r"^[A-Za-z_]", cleaned):
        cleaned = f"_{cleaned}"
    return cleaned[:255]


def _unique_table_name(ws: Worksheet, base_name: str) -> str:
    parent = ws.parent
    if parent is None:
        return base_name

    existing: set[str] = set()
    for sheet in parent.worksheets:
        existing.update(cast(Iterable[str], sheet.tables.keys()))
    if base_name not in existing:
        return base_name

    suffix = 1
    while True:
        suffix_str = f"_{suffix}"
        candidate = f"{base_name[: 255 - len(suffix_str)]}{suffix_str}"
        if candidate not in existing:
            return candidate
        suffix += 1


def _add_excel_table(ws: Worksheet, name: str, ncols: int, nrows: int) -> None:
    """Turn the data range into a proper Excel Table object."""
    if nrows < 1 or ncols < 1:
        return
    end_col = get_column_letter(ncols)
    ref = f"A1:{end_col}{nrows + 1}"  # +1 for header
    table_name = _unique_table_name(ws, _sanitize_table_name(name))
    table = Table(displayName=table_name, ref=ref)
    table.tableStyleInfo = TableStyleInfo(
        name="TableStyleMedium2", showFirstColumn=False,
        showLastColumn=False, showRowStripes=True, showColumnStripes=False,
    )
    ws.add_table(table)


def _excel_value(val: Any) -> Any:
    try:
        if pd.isna(val):
            return None
    except Exception:
        return val

    if isinstance(val, float) and val in (float("inf"), float("-inf")):
        return None

    if isinstance(val, str):
        if val.startswith("'"):
            return val
        stripped = val.lstrip()
        if stripped and stripped[0] in _EXCEL_FORMULA_PREFIXES:
            return f"'{val}"

    return val


def _no_data(ws: Worksheet, note: str = "No data") -> None:
    ws.cell(row=1, column=1, value=note).font = VALUE_FONT
    ws.column_dimensions["A"].width = max(18, len(note) + 4)


def _df_to_sheet(
    wb: Workbook,
    name: str,
    df: pd.DataFrame,
    *,
    formats: dict[str, str] | None = None,
    as_table: bool = True,
) -> Worksheet:
    ws = wb.create_sheet(title=name)
    col_names = [str(c) for c in df.columns]

    if not col_names:
        _no_data(ws)
        return ws

    for c_idx, col_name in enumerate(col_names, 1):
        ws.cell(row=1, column=c_idx, value=_excel_value(col_name))
    for r_idx, row_vals in enumerate(df.itertuples(index=False, name=None), 2):
        for c_idx, val in enumerate(row_vals, 1):
            ws.cell(row=r_idx, column=c_idx, value=_excel_value(val))
    _style_header(ws, len(col_names))
    if formats:
        _apply_number_formats(
            ws, {idx: formats[col] for idx, col in enumerate(col_names, 1) if col in formats}
        )
    ws.freeze_panes = "A2"
    if (not as_table) and (len(df) > 0):
        ws.auto_filter.ref = ws.dimensions
    _auto_width(ws)
    if as_table and len(df) > 0:
        _add_excel_table(ws, name, len(col_names), len(df))
    return ws


def _rows_frame(dataset: Sequence[Row]) -> pd.DataFrame:
    # Header order follows the first row, as the dashboard table does.
    headers = list(dataset[0].keys()) if dataset else []
    return pd.DataFrame([[row.get(h) for h in headers] for row in dataset], columns=headers)


# ── Sheets ───────────────────────────────────────────────────────


def _write_dashboard(
    wb: Workbook,
    company: str,
    qc: QCReport,
    dataset: Sequence[Row],
    stats: Sequence[DescriptiveStat],
    correlation: CorrelationResult,
) -> None:
    ws = wb.create_sheet(title="Dashboard")

    ws.cell(row=1, column=1, value="CSR Intensity Dashboard").font = TITLE_FONT
    ws.merge_cells("A1:D1")
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    ws.cell(row=2, column=1, value=f"{company} — generated {generated}").font = SUBTITLE_FONT
    ws.merge_cells("A2:D2")

    # ── Notes block (from QC) ────────────────────────────────────
    row = 4
    ws.cell(row=row, column=1, value="Notes").font = LABEL_FONT
    ws.merge_cells(f"A{row}:D{row}")
    for c in range(1, 5):
        ws.cell(row=row, column=c).fill = NOTE_FILL
    row += 1
    ws.cell(row=row, column=1, value=f"Rows loaded: {qc.rows_out}")
    ws.cell(row=row, column=2, value=f"Blank rows: {qc.dropped_rows}")
    ws.cell(row=row, column=3, value=f"Empty columns removed: {len(qc.dropped_columns)}")
    for c in range(1, 5):
        ws.cell(row=row, column=c).fill = NOTE_FILL
    row += 1
    for warn in qc.warnings or ["No warnings"]:
        cell = ws.cell(row=row, column=1, value=f"⚠ {warn}" if qc.warnings else warn)
        cell.font = WARN_FONT if qc.warnings else VALUE_FONT
        for c in range(1, 5):
            ws.cell(row=row, column=c).fill = NOTE_FILL
        row += 1

    # ── Key figures ──────────────────────────────────────────────
    row += 1
    ws.cell(row=row, column=1, value="Key Figures").font = LABEL_FONT
    ws.merge_cells(f"A{row}:D{row}")
    for c in range(1, 5):
        ws.cell(row=row, column=c).fill = KPI_FILL
    row += 1

    figures: list[tuple[str, Any]] = [
        ("Selected group", company),
        ("Rows in group", len(dataset)),
        ("Companies", len(qc.companies)),
        ("Numeric variables", len(stats) or len(correlation.columns)),
    ]
    for label, value in figures:
        lbl_cell = ws.cell(row=row, column=1, value=label)
        lbl_cell.font = LABEL_FONT
        lbl_cell.fill = KPI_FILL
        val_cell = ws.cell(row=row, column=2, value=_excel_value(value))
        val_cell.font = VALUE_FONT
        val_cell.fill = KPI_FILL
        if isinstance(value, int):
            val_cell.number_format = INT_FMT
            val_cell.alignment = Alignment(horizontal="right")
        row += 1

    ws.column_dimensions["A"].width = 24
    ws.column_dimensions["B"].width = 24
    ws.column_dimensions["C"].width = 26
    ws.column_dimensions["D"].width = 18


def _write_descriptive(wb: Workbook, stats: Sequence[DescriptiveStat]) -> None:
    columns = ["Variable", *_STAT_FORMATS]
    records = [
        [s.column, s.n, s.mean, s.sd, s.min, s.q1, s.median, s.q3, s.max] for s in stats
    ]
    df = pd.DataFrame(records, columns=columns)
    _df_to_sheet(wb, "Descriptive_Stats", df, formats=_STAT_FORMATS)


def _write_correlation(wb: Workbook, correlation: CorrelationResult) -> None:
    if not correlation.columns:
        _no_data(wb.create_sheet(title="Correlation"), "No numeric variables")
        return
    cols = correlation.columns
    records = [[x, *(correlation.coefficient(x, y) for y in cols)] for x in cols]
    df = pd.DataFrame(records, columns=["Variable", *cols])
    formats = {col: CORR_FMT for col in correlation.columns}
    _df_to_sheet(wb, "Correlation", df, formats=formats, as_table=False)


def _write_trends(wb: Workbook, trends: pd.DataFrame) -> None:
    ws = _df_to_sheet(wb, "Trends", trends, as_table=False)
    variables = [c for c in trends.columns if c not in (TREND_X_COLUMN, TREND_BASELINE_COLUMN)]
    if trends.empty or not variables:
        return

    nrows = len(trends) + 1
    baseline_col = list(trends.columns).index(TREND_BASELINE_COLUMN) + 1
    categories = Reference(ws, min_col=1, min_row=2, max_row=nrows)
    anchor_col = len(trends.columns) + 2

    for idx, variable in enumerate(variables):
        chart = LineChart()
        chart.title = f"{TREND_BASELINE_COLUMN} vs {variable}"
        chart.x_axis.title = TREND_X_COLUMN
        chart.height = 7.5
        chart.width = 15
        var_col = list(trends.columns).index(variable) + 1
        for col in (baseline_col, var_col):
            chart.add_data(Reference(ws, min_col=col, min_row=1, max_row=nrows), titles_from_data=True)
        chart.set_categories(categories)

        grid_row = idx // _CHARTS_PER_ROW
        grid_col = idx % _CHARTS_PER_ROW
        anchor = (
            f"{get_column_letter(anchor_col + grid_col * _CHART_COL_SPAN)}"
            f"{1 + grid_row * _CHART_ROW_SPAN}"
        )
        ws.add_chart(chart, anchor)


# ── Public API ───────────────────────────────────────────────────


def write_report(
    out_dir: Path,
    dataset: Sequence[Row],
    stats: Sequence[DescriptiveStat],
    correlation: CorrelationResult,
    trends: pd.DataFrame,
    *,
    selection: Selection | None = None,
    qc: QCReport | None = None,
) -> Path:
    """Write ``Panel_Report.xlsx`` for one selected group and return the path.

    The descriptive-statistics and correlation sheets follow the selection's
    show/hide toggles.
    """
    if selection is None:
        selection = Selection(company=ALL_COMPANIES)
    if qc is None:
        qc = QCReport(rows_in=len(dataset), rows_out=len(dataset))

    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    report_path = out_dir / REPORT_NAME

    wb = Workbook()
    active_sheet = wb.active
    if active_sheet is not None:
        wb.remove(active_sheet)  # remove default sheet

    company = selection.company or ALL_COMPANIES
    _write_dashboard(wb, company, qc, dataset, stats, correlation)
    _df_to_sheet(wb, "Data", _rows_frame(dataset))
    if selection.show_descriptive:
        _write_descriptive(wb, stats)
    if selection.show_correlation:
        _write_correlation(wb, correlation)
    _write_trends(wb, trends)

    tmp_path = out_dir / "Panel_Report.tmp.xlsx"
    wb.save(tmp_path)
    tmp_path.replace(report_path)
    return report_path
