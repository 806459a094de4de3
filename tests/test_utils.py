from __future__ import annotations

import hashlib
from datetime import datetime
from pathlib import Path

from csr_dashboard.utils import fmt_fixed, sha256_file, utcnow_iso


def test_sha256_file_matches_hashlib(tmp_path: Path) -> None:
    path = tmp_path / "blob.bin"
    payload = b"panel" * 5000
    path.write_bytes(payload)

    assert sha256_file(path) == hashlib.sha256(payload).hexdigest()


def test_utcnow_iso_is_timezone_aware() -> None:
    parsed = datetime.fromisoformat(utcnow_iso())

    assert parsed.utcoffset() is not None
    assert parsed.utcoffset().total_seconds() == 0  # type: ignore[union-attr]


def test_fmt_fixed_rounds_and_blanks_non_finite() -> None:
    assert fmt_fixed(0.123456, 4) == "0.1235"
    assert fmt_fixed(-1.0, 2) == "-1.00"
    assert fmt_fixed(float("nan"), 2) == "-"
    assert fmt_fixed(float("inf"), 4) == "-"
