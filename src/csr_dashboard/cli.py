"""CLI entry point for csr-dashboard."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table as RichTable

from csr_dashboard import ALL_COMPANIES, EXCLUDED_COLUMNS, __version__
from csr_dashboard.io import load_table, write_json
from csr_dashboard.models import CorrelationResult, DescriptiveStat, QCReport, Row, RunManifest, Selection
from csr_dashboard.pipeline import (
    DashboardView,
    build_view,
    compute_trends,
    default_company,
    group_by_company,
    prepare_dataset,
)
from csr_dashboard.qc import write_qc_report
from csr_dashboard.report import write_report
from csr_dashboard.utils import fmt_fixed, sha256_file, utcnow_iso

app = typer.Typer(
    name="csrdash",
    help="csr-dashboard — Descriptive statistics and correlations for CSR panel data.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"csr-dashboard v{__version__}")
        raise typer.Exit()


def _excluded(columns: list[str] | None) -> tuple[str, ...]:
    if not columns:
        return EXCLUDED_COLUMNS
    return tuple(c.strip() for c in columns if c.strip())


def _load_dataset(
    input_file: Path, excluded: tuple[str, ...]
) -> tuple[list[Row], dict[str, list[Row]], QCReport]:
    raw_df = load_table(input_file)
    rows, qc = prepare_dataset(raw_df, excluded=excluded)
    return rows, group_by_company(rows), qc


def _resolve_company(company: str | None, groups: dict[str, list[Row]]) -> str:
    if company is None:
        return default_company(groups)
    if company != ALL_COMPANIES and company not in groups:
        raise ValueError(
            f"Unknown company: {company!r}. "
            f"Choose one of: {', '.join([*groups, ALL_COMPANIES])}"
        )
    return company


def _write_manifest(
    out_dir: Path,
    input_file: Path,
    run_id: str,
    created_at: str,
    qc: QCReport,
    *,
    company: str = "",
    status: str = "success",
    error_code: int | None = None,
    error_message: str = "",
) -> Path:
    sha256 = ""
    try:
        sha256 = sha256_file(input_file)
    except OSError:
        pass

    manifest = RunManifest(
        run_id=run_id,
        version=__version__,
        input_path=str(input_file.resolve()),
        output_dir=str(out_dir.resolve()),
        created_at_utc=created_at,
        company=company,
        rows_in=qc.rows_in,
        rows_out=qc.rows_out,
        sha256=sha256,
        status=status,
        error_code=error_code,
        error_message=error_message,
    )
    return write_json(out_dir / "run_manifest.json", manifest.to_dict())


def _write_failure_artifacts(
    out_dir: Path,
    input_file: Path,
    run_id: str,
    created_at: str,
    *,
    message: str,
    qc: QCReport | None = None,
    company: str = "",
    error_code: int = 2,
) -> tuple[Path, Path]:
    if qc is None:
        qc = QCReport()
    qc.warnings.append(message)
    qc_path = write_qc_report(out_dir, qc)
    manifest_path = _write_manifest(
        out_dir,
        input_file,
        run_id,
        created_at,
        qc,
        company=company,
        status="failed",
        error_code=error_code,
        error_message=message,
    )
    return qc_path, manifest_path


def _fail(
    out_dir: Path,
    input_file: Path,
    run_id: str,
    created_at: str,
    *,
    message: str,
    qc: QCReport | None = None,
    company: str = "",
    error_code: int = 2,
) -> typer.Exit:
    qc_path, manifest_path = _write_failure_artifacts(
        out_dir,
        input_file,
        run_id,
        created_at,
        message=message,
        qc=qc,
        company=company,
        error_code=error_code,
    )
    _err(message)
    console.print(f"  QC report -> {qc_path}")
    console.print(f"  Manifest  -> {manifest_path}")
    return typer.Exit(code=error_code)


def _stats_payload(view: DashboardView) -> dict[str, object]:
    return {
        "company": view.company,
        "rows": len(view.dataset),
        "numeric_columns": list(view.numeric_columns),
        "descriptive_stats": [s.to_dict() for s in view.descriptive_stats],
        "correlation": view.correlation.to_dict(),
    }


# ── Rendering ────────────────────────────────────────────────────


def _render_descriptive(stats: Sequence[DescriptiveStat]) -> None:
    tbl = RichTable(title="Descriptive Statistics")
    tbl.add_column("Variable", style="bold")
    for header in ("N", "Mean", "SD", "Min", "Q1", "Median", "Q3", "Max"):
        tbl.add_column(header, justify="right")
    for s in stats:
        tbl.add_row(
            s.column,
            str(s.n),
            fmt_fixed(s.mean, 4),
            fmt_fixed(s.sd, 4),
            *(fmt_fixed(v, 2) for v in (s.min, s.q1, s.median, s.q3, s.max)),
        )
    console.print(tbl)


def _render_correlation(correlation: CorrelationResult) -> None:
    tbl = RichTable(title="Correlation Matrix")
    tbl.add_column("Variable", style="bold")
    for col in correlation.columns:
        tbl.add_column(col, justify="right")
    for x in correlation.columns:
        tbl.add_row(x, *(fmt_fixed(correlation.coefficient(x, y), 2) for y in correlation.columns))
    console.print(tbl)


def _render_view(view: DashboardView) -> None:
    console.print(Panel(
        f"[bold]{view.company}[/bold] — {len(view.dataset)} rows, "
        f"{len(view.numeric_columns)} numeric variables",
        title="Data Overview", border_style="blue",
    ))
    if not view.dataset:
        console.print("  No rows available for the selected company.")
        return
    if view.selection.show_descriptive:
        _render_descriptive(view.descriptive_stats)
    if view.selection.show_correlation and view.correlation.columns:
        _render_correlation(view.correlation)


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """csr-dashboard CLI."""


# ── companies command ────────────────────────────────────────────


@app.command()
def companies(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to XLSX (or CSV) panel data.",
        exists=True, readable=True,
    ),
) -> None:
    """List the company groups found in a spreadsheet."""
    try:
        rows, groups, _qc = _load_dataset(input_file, EXCLUDED_COLUMNS)
    except (FileNotFoundError, ValueError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    tbl = RichTable(title="Companies")
    tbl.add_column("Company", style="bold")
    tbl.add_column("Rows", justify="right")
    for name, group_rows in groups.items():
        tbl.add_row(name, str(len(group_rows)))
    tbl.add_row(f"[yellow]{ALL_COMPANIES}[/yellow]", str(len(rows)))
    console.print(tbl)


# ── stats command ────────────────────────────────────────────────


@app.command()
def stats(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to XLSX (or CSV) panel data.",
        exists=True, readable=True,
    ),
    company: str | None = typer.Option(
        None, "--company", "-c",
        help=f"Company to analyse, or {ALL_COMPANIES!r}. Defaults to the first company.",
    ),
    exclude: list[str] | None = typer.Option(
        None, "--exclude", "-x",
        help=f"Column never treated as numeric (repeatable). Default: {', '.join(EXCLUDED_COLUMNS)}",
    ),
    show_desc: bool = typer.Option(
        True, "--desc/--no-desc", help="Show or hide descriptive statistics.",
    ),
    show_corr: bool = typer.Option(
        True, "--corr/--no-corr", help="Show or hide the correlation matrix.",
    ),
    json_out: Path | None = typer.Option(
        None, "--json",
        help="Also write the statistics as JSON to this path.",
    ),
) -> None:
    """Print descriptive statistics and correlations for one company."""
    excluded = _excluded(exclude)
    try:
        rows, groups, _qc = _load_dataset(input_file, excluded)
        selected = _resolve_company(company, groups)
    except (FileNotFoundError, ValueError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    selection = Selection(company=selected, show_descriptive=show_desc, show_correlation=show_corr)
    view = build_view(rows, groups, selection, excluded=excluded)
    _render_view(view)

    if json_out is not None:
        path = write_json(json_out, _stats_payload(view))
        console.print(f"  Stats -> {path}")


# ── validate command ─────────────────────────────────────────────


@app.command()
def validate(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to XLSX (or CSV) panel data.",
        exists=True, readable=True,
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for QC + manifest.",
    ),
    exclude: list[str] | None = typer.Option(
        None, "--exclude", "-x",
        help="Column never treated as numeric (repeatable).",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes QC + manifest.",
    ),
) -> None:
    """Check that a spreadsheet loads, without computing statistics.

    Writes qc_report.json + run_manifest.json only.
    Exit 0 = OK, exit 2 = unreadable file or empty dataset.
    """
    echo = _printer(quiet)
    created_at = utcnow_iso()
    run_id = created_at
    out_dir.mkdir(parents=True, exist_ok=True)

    if not quiet:
        console.print(Panel(
            f"[bold]csr-dashboard[/bold] v{__version__}  [dim]validate mode[/dim]\n"
            f"Input: {input_file}",
            title="Validate", border_style="cyan",
        ))

    try:
        _rows, _groups, qc = _load_dataset(input_file, _excluded(exclude))
    except (FileNotFoundError, ValueError, OSError) as exc:
        raise _fail(out_dir, input_file, run_id, created_at, message=str(exc))

    try:
        status = "success"
        error_code: int | None = None
        error_message = ""
        if qc.rows_out == 0:
            status = "failed"
            error_code = 2
            error_message = "Dataset is empty"

        qc_path = write_qc_report(out_dir, qc)
        manifest_path = _write_manifest(
            out_dir,
            input_file,
            run_id,
            created_at,
            qc,
            status=status,
            error_code=error_code,
            error_message=error_message,
        )

        if not quiet:
            tbl = RichTable(title="Validation Summary", show_lines=True)
            tbl.add_column("Check", style="bold")
            tbl.add_column("Result")
            tbl.add_row("Rows in", str(qc.rows_in))
            tbl.add_row("Rows loaded", str(qc.rows_out))
            tbl.add_row("Blank rows", str(qc.dropped_rows))
            tbl.add_row("Empty columns removed", ", ".join(qc.dropped_columns) or "none")
            tbl.add_row("Companies", str(len(qc.companies)))
            tbl.add_row("Numeric columns", ", ".join(qc.numeric_columns) or "none")
            for w in qc.warnings:
                tbl.add_row("Warning", f"[yellow]{w}[/yellow]")
            tbl.add_row("Status", "[green]PASS[/green]" if error_code is None else "[red]FAIL[/red]")
            console.print(tbl)
        echo(f"  QC       -> {qc_path}")
        echo(f"  Manifest -> {manifest_path}")

        if error_code is not None:
            _err(error_message)
            raise typer.Exit(code=error_code)
    except typer.Exit:
        raise
    except Exception as exc:
        raise _fail(
            out_dir, input_file, run_id, created_at,
            message=f"Unexpected internal error: {exc}", qc=qc, error_code=1,
        )


# ── run command ──────────────────────────────────────────────────


@app.command()
def run(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to XLSX (or CSV) panel data.",
        exists=True, readable=True,
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for report + stats + QC + manifest.",
    ),
    company: str | None = typer.Option(
        None, "--company", "-c",
        help=f"Company to analyse, or {ALL_COMPANIES!r}. Defaults to the first company.",
    ),
    exclude: list[str] | None = typer.Option(
        None, "--exclude", "-x",
        help="Column never treated as numeric (repeatable).",
    ),
    show_desc: bool = typer.Option(
        True, "--desc/--no-desc", help="Include the descriptive statistics sheet.",
    ),
    show_corr: bool = typer.Option(
        True, "--corr/--no-corr", help="Include the correlation sheet.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes all artifacts.",
    ),
) -> None:
    """Load a panel spreadsheet, compute statistics and write the Excel report."""
    echo = _printer(quiet)
    created_at = utcnow_iso()
    run_id = created_at
    out_dir.mkdir(parents=True, exist_ok=True)
    excluded = _excluded(exclude)

    if not quiet:
        console.print(Panel(
            f"[bold]csr-dashboard[/bold] v{__version__}\n"
            f"Input:  {input_file}\nOutput: {out_dir}",
            title="Pipeline Start", border_style="blue",
        ))

    # ── Load ─────────────────────────────────────────────────────
    echo("[blue]>[/blue] Loading input file …")
    try:
        rows, groups, qc = _load_dataset(input_file, excluded)
    except (FileNotFoundError, ValueError, OSError) as exc:
        raise _fail(out_dir, input_file, run_id, created_at, message=str(exc))

    echo(f"  {qc.rows_out} rows, {len(groups)} companies")
    if not quiet:
        for w in qc.warnings:
            console.print(f"  [yellow]![/yellow] {w}")

    selected = ""
    try:
        if not rows:
            raise _fail(
                out_dir, input_file, run_id, created_at,
                message="Input file has 0 rows.", qc=qc,
            )

        try:
            selected = _resolve_company(company, groups)
        except ValueError as exc:
            raise _fail(out_dir, input_file, run_id, created_at, message=str(exc), qc=qc)

        qc_path = write_qc_report(out_dir, qc)
        echo(f"  QC report -> {qc_path}")

        # ── Compute ──────────────────────────────────────────────
        echo(f"[blue]>[/blue] Computing statistics for {selected} …")
        selection = Selection(
            company=selected, show_descriptive=show_desc, show_correlation=show_corr
        )
        view = build_view(rows, groups, selection, excluded=excluded)
        trends = compute_trends(view.dataset)
        stats_path = write_json(out_dir / "stats.json", _stats_payload(view))
        echo(f"  Stats -> {stats_path}")

        # ── Write report ─────────────────────────────────────────
        echo("[blue]>[/blue] Writing Panel_Report.xlsx …")
        report_path = write_report(
            out_dir,
            view.dataset,
            view.descriptive_stats,
            view.correlation,
            trends,
            selection=selection,
            qc=qc,
        )
        echo(f"  Report -> {report_path}")

        manifest_path = _write_manifest(
            out_dir, input_file, run_id, created_at, qc, company=selected
        )
        echo(f"  Manifest -> {manifest_path}")

        if not quiet:
            console.print(Panel(
                f"[green]Done[/green] — {selected}: {len(view.dataset)} rows -> {report_path}",
                title="Pipeline Complete", border_style="green",
            ))
    except typer.Exit:
        raise
    except Exception as exc:
        raise _fail(
            out_dir, input_file, run_id, created_at,
            message=f"Unexpected internal error: {exc}", qc=qc,
            company=selected, error_code=1,
        )
