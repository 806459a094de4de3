"""QC report persistence."""

from __future__ import annotations

from pathlib import Path

from csr_dashboard.io import write_json
from csr_dashboard.models import QCReport

QC_REPORT_NAME = "qc_report.json"


def write_qc_report(out_dir: Path, qc: QCReport) -> Path:
    """Write ``qc_report.json`` (rows, dropped columns, companies, warnings) into *out_dir*."""
    return write_json(Path(out_dir) / QC_REPORT_NAME, qc.to_dict())
