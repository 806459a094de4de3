"""I/O helpers — load panel spreadsheets, write JSON artifacts."""

from __future__ import annotations

import csv
import json
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, cast

import pandas as pd

_UNNAMED_HEADER_RE = re.compile(r"^Unnamed: \d+(_level_\d+)?$")

# ── Loading ──────────────────────────────────────────────────────


def _rename_blank_headers(df: pd.DataFrame) -> pd.DataFrame:
    """Rename pandas' ``Unnamed: N`` placeholders to ``__EMPTY``, ``__EMPTY_1``, ..."""
    renamed: list[str] = []
    blank_count = 0
    for col in df.columns:
        name = str(col)
        if _UNNAMED_HEADER_RE.match(name):
            name = "__EMPTY" if blank_count == 0 else f"__EMPTY_{blank_count}"
            blank_count += 1
        renamed.append(name)
    if not blank_count:
        return df
    df = df.copy()
    df.columns = pd.Index(renamed)
    return df


def _read_excel(path: Path, engine: str) -> pd.DataFrame:
    read_excel = cast(Callable[..., pd.DataFrame], getattr(pd, "read_excel"))
    return read_excel(path, engine=engine, sheet_name=0)


def load_table(path: Path) -> pd.DataFrame:
    """Load the first sheet of an Excel workbook (or a CSV) as a raw DataFrame.

    Cell types are kept as read: numbers stay numeric so that column types
    can be inferred downstream.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If *path* is a directory, the extension is not supported, or CSV
        decoding/parsing fails.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    if path.is_dir():
        raise ValueError(f"Input path is a directory, not a file: {path}")

    suffix = path.suffix.lower()
    if suffix in (".xlsx", ".xlsm", ".xltx", ".xltm"):
        return _rename_blank_headers(_read_excel(path, "openpyxl"))

    if suffix == ".xls":
        try:
            return _rename_blank_headers(_read_excel(path, "xlrd"))
        except ImportError as exc:
            raise ValueError(
                "Unsupported .xls input unless 'xlrd' is installed. "
                "Either convert to .xlsx or add dependency: pip install xlrd"
            ) from exc

    if suffix == ".csv":
        last_exc: Exception | None = None
        for encoding in ("utf-8-sig", "utf-8", "latin-1"):
            try:
                df = pd.read_csv(
                    path,
                    sep=None,
                    engine="python",
                    encoding=encoding,
                    encoding_errors="strict",
                    skip_blank_lines=True,
                )
            except (UnicodeDecodeError, pd.errors.ParserError, csv.Error) as exc:
                last_exc = exc
                continue
            return _rename_blank_headers(df)
        raise ValueError(f"Could not read CSV {path} (decode or parse failed)") from last_exc

    raise ValueError(f"Unsupported file type: {suffix!r}. Use .xlsx, .xls, or .csv")


# ── Writing ──────────────────────────────────────────────────────


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    item = getattr(obj, "item", None)
    if callable(item):
        converted = item()
        if isinstance(converted, (str, int, float, bool)) or converted is None:
            return converted
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
        default=_json_default,
    ) + "\n"
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(payload, encoding="utf-8")
    tmp_path.replace(path)
    return path
