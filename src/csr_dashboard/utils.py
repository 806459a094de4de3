"""Shared helpers — hashing, timestamps, number formatting."""

from __future__ import annotations

import hashlib
import math
from datetime import datetime, timezone
from pathlib import Path


def sha256_file(path: Path) -> str:
    """Return the hex SHA-256 digest of *path*."""
    h = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def utcnow_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def fmt_fixed(value: float, digits: int) -> str:
    """Fixed-point text for tables; non-finite values render as ``-``."""
    if not math.isfinite(value):
        return "-"
    return f"{value:.{digits}f}"
