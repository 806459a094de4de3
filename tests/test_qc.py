from __future__ import annotations

import json
from pathlib import Path

from csr_dashboard.models import QCReport
from csr_dashboard.qc import write_qc_report


def test_write_qc_report_writes_expected_contract(tmp_path: Path) -> None:
    qc = QCReport(
        rows_in=3,
        rows_out=2,
        dropped_rows=1,
        dropped_columns=["__EMPTY"],
        companies=["Acme"],
        numeric_columns=["ROA"],
        warnings=["warn"],
    )

    out = write_qc_report(tmp_path, qc)

    assert out == tmp_path / "qc_report.json"
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data == {
        "companies": ["Acme"],
        "dropped_columns": ["__EMPTY"],
        "dropped_rows": 1,
        "numeric_columns": ["ROA"],
        "rows_in": 3,
        "rows_out": 2,
        "warnings": ["warn"],
    }
