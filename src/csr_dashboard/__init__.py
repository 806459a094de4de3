"""csr-dashboard — Descriptive statistics and correlations for firm-level CSR panel data."""

__version__ = "0.1.0"

EXCLUDED_COLUMNS: tuple[str, ...] = ("Year", "CSR_pct_std")
"""Columns never treated as analysable numerics, even when their values are numbers."""

COMPANY_FIELDS: tuple[str, ...] = ("Company", "company")
UNKNOWN_COMPANY = "Unknown"
ALL_COMPANIES = "All Companies"

TREND_X_COLUMN = "Year"
TREND_BASELINE_COLUMN = "CSR_pct_std"
INCLUDED_VARIABLES: list[str] = [
    "DebtEquity",
    "ROA",
    "ROE",
    "TobinQ",
    "Beta",
    "FirmRisk",
    "Tangibility",
    "SizeLog",
    "Growth",
    "AgeLog",
    "CSR_Expend",
]
