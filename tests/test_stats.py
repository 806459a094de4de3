"""Statistics engine contracts: column detection, descriptive stats, correlation."""

from __future__ import annotations

import math

import pytest

from csr_dashboard.models import CorrelationResult, DescriptiveStat
from csr_dashboard.stats import (
    calculate_correlation,
    calculate_descriptive_stats,
    is_numeric_value,
    numeric_columns,
    to_number,
)


def _panel() -> list[dict[str, object]]:
    return [
        {"Company": "A", "Year": 2019, "ROA": 0.1, "ROE": 0.2, "CSR_pct_std": 1.0, "Sector": "x"},
        {"Company": "A", "Year": 2020, "ROA": 0.3, "ROE": None, "CSR_pct_std": 2.0, "Sector": "x"},
        {"Company": "B", "Year": 2019, "ROA": 0.2, "ROE": 0.5, "CSR_pct_std": 3.0, "Sector": "y"},
        {"Company": "B", "Year": 2020, "ROA": 0.4, "ROE": 0.1, "CSR_pct_std": 4.0, "Sector": "y"},
    ]


# ── to_number / is_numeric_value ────────────────────────────────


@pytest.mark.parametrize(
    ("value", "expected"),
    [(3, 3.0), (2.5, 2.5), (" 12 ", 12.0), ("-1e3", -1000.0), (True, 1.0), (False, 0.0)],
)
def test_to_number_converts_numeric_like_values(value: object, expected: float) -> None:
    assert to_number(value) == expected


@pytest.mark.parametrize("value", [None, "", "   ", "n/a", object(), [1]])
def test_to_number_returns_nan_for_unusable_values(value: object) -> None:
    assert math.isnan(to_number(value))


def test_is_numeric_value_rejects_booleans_and_strings() -> None:
    assert is_numeric_value(1)
    assert is_numeric_value(1.5)
    assert not is_numeric_value(True)
    assert not is_numeric_value("1")
    assert not is_numeric_value(None)


# ── numeric_columns ─────────────────────────────────────────────


def test_numeric_columns_uses_sample_row_order_and_exclusions() -> None:
    assert numeric_columns(_panel()) == ["ROA", "ROE"]


def test_numeric_columns_is_deterministic() -> None:
    data = _panel()
    assert numeric_columns(data) == numeric_columns(data)


def test_numeric_columns_skips_leading_empty_rows() -> None:
    data = [{}, {}, {"X": 1, "Y": "text"}]
    assert numeric_columns(data) == ["X"]


def test_numeric_columns_keeps_single_sample_limitation() -> None:
    """A column missing from the sample row stays excluded for the whole dataset."""
    data = [{"X": None, "Y": 1}, {"X": 5, "Y": 2}, {"X": 6, "Y": 3}]
    assert numeric_columns(data) == ["Y"]


def test_numeric_columns_empty_inputs() -> None:
    assert numeric_columns([]) == []
    assert numeric_columns([{}, {}]) == []


def test_numeric_columns_accepts_custom_exclusions() -> None:
    assert numeric_columns(_panel(), excluded=("ROE",)) == ["Year", "ROA", "CSR_pct_std"]
    assert numeric_columns(_panel(), excluded=()) == ["Year", "ROA", "ROE", "CSR_pct_std"]


# ── calculate_descriptive_stats ─────────────────────────────────


def test_descriptive_stats_empty_dataset_or_columns() -> None:
    assert calculate_descriptive_stats([]) == []
    assert calculate_descriptive_stats([{"Name": "x"}]) == []
    assert calculate_descriptive_stats(_panel(), []) == []


def test_descriptive_stats_constant_column() -> None:
    (stat,) = calculate_descriptive_stats([{"X": 5}, {"X": 5}, {"X": 5}])

    assert stat == DescriptiveStat(
        column="X", n=3, mean=5.0, sd=0.0, min=5.0, q1=5.0, median=5.0, q3=5.0, max=5.0
    )


def test_descriptive_stats_nearest_rank_quartiles() -> None:
    data = [{"Y": 30}, {"Y": 10}, {"Y": 40}, {"Y": 20}]

    (stat,) = calculate_descriptive_stats(data)

    assert stat.n == 4
    assert stat.min == 10
    assert stat.q1 == 10
    assert stat.median == 20
    assert stat.q3 == 30
    assert stat.max == 40
    assert stat.mean == 25
    assert stat.sd == pytest.approx(math.sqrt(125.0))


def test_descriptive_stats_population_sd() -> None:
    (stat,) = calculate_descriptive_stats([{"V": 2}, {"V": 4}, {"V": 4}, {"V": 4},
                                           {"V": 5}, {"V": 5}, {"V": 7}, {"V": 9}])

    assert stat.mean == 5
    assert stat.sd == pytest.approx(2.0)


def test_descriptive_stats_order_statistics_are_monotonic() -> None:
    data = [{"Z": v} for v in (3.2, -1.0, 8.5, 0.0, 2.2, 2.2, 11.0)]

    (stat,) = calculate_descriptive_stats(data)

    assert stat.min <= stat.q1 <= stat.median <= stat.q3 <= stat.max


def test_descriptive_stats_missing_values_only_affect_their_column() -> None:
    stats = {s.column: s for s in calculate_descriptive_stats(_panel())}

    assert stats["ROA"].n == 4
    assert stats["ROE"].n == 3
    assert stats["ROE"].mean == pytest.approx((0.2 + 0.5 + 0.1) / 3)


def test_descriptive_stats_numeric_strings_are_converted() -> None:
    data = [{"X": 1}, {"X": "3"}, {"X": "bad"}, {"X": ""}]

    (stat,) = calculate_descriptive_stats(data)

    assert stat.n == 2
    assert stat.mean == 2


def test_descriptive_stats_all_missing_column_is_zero_sentinel() -> None:
    data = [{"X": 1, "Y": 1}, {"X": 2}]

    stats = calculate_descriptive_stats(data, ["X", "W"])

    assert [s.column for s in stats] == ["X", "W"]
    assert stats[1] == DescriptiveStat.zero("W")
    assert stats[1].to_dict() == {
        "col": "W", "N": 0, "Mean": 0.0, "SD": 0.0, "Min": 0.0,
        "Q1": 0.0, "Median": 0.0, "Q3": 0.0, "Max": 0.0,
    }


def test_descriptive_stats_do_not_mutate_input() -> None:
    data = _panel()
    snapshot = [dict(row) for row in data]

    calculate_descriptive_stats(data)
    calculate_correlation(data)

    assert data == snapshot


# ── calculate_correlation ───────────────────────────────────────


def test_correlation_perfectly_linear_is_exactly_one() -> None:
    data = [{"ROA": 1, "ROE": 2}, {"ROA": 2, "ROE": 4}, {"ROA": 3, "ROE": 6}]

    result = calculate_correlation(data)

    assert result.columns == ["ROA", "ROE"]
    assert result.matrix["ROA"]["ROE"] == 1.0
    assert result.matrix["ROE"]["ROA"] == 1.0
    assert result.matrix["ROA"]["ROA"] == 1.0


def test_correlation_negative_relationship() -> None:
    data = [{"A": 1, "B": 3}, {"A": 2, "B": 2}, {"A": 3, "B": 1}]

    result = calculate_correlation(data)

    assert result.coefficient("A", "B") == pytest.approx(-1.0)


def test_correlation_constant_column_uses_zero_sentinel() -> None:
    data = [{"X": 5}, {"X": 5}, {"X": 5}]

    result = calculate_correlation(data)

    assert result.matrix == {"X": {"X": 0.0}}


def test_correlation_single_pair_is_zero() -> None:
    data = [{"X": 1, "Y": 2}, {"X": None, "Y": 3}]

    result = calculate_correlation(data)

    assert result.coefficient("X", "Y") == 0.0
    assert result.coefficient("Y", "Y") == 1.0


def test_correlation_no_overlapping_pairs_is_zero() -> None:
    data = [{"X": 1, "Y": None}, {"X": 2, "Y": None}, {"X": None, "Y": 4}, {"X": None, "Y": 5}]

    result = calculate_correlation(data, ["X", "Y"])

    assert result.matrix["X"]["Y"] == 0.0
    assert result.matrix["Y"]["X"] == 0.0
    assert result.matrix["X"]["X"] == 1.0


def test_correlation_matrix_is_symmetric_and_complete() -> None:
    data = [
        {"A": 1.5, "B": 2.0, "C": 9.1},
        {"A": 2.7, "B": None, "C": 4.4},
        {"A": 0.3, "B": 7.2, "C": 1.9},
        {"A": 4.1, "B": 3.3, "C": 6.0},
        {"A": 3.3, "B": 5.5, "C": "n/a"},
    ]

    result = calculate_correlation(data)

    assert result.columns == ["A", "B", "C"]
    for x in result.columns:
        assert set(result.matrix[x]) == set(result.columns)
        assert result.matrix[x][x] == pytest.approx(1.0)
        for y in result.columns:
            assert result.matrix[x][y] == result.matrix[y][x]
            assert -1.0 - 1e-12 <= result.matrix[x][y] <= 1.0 + 1e-12


def test_correlation_pairwise_exclusion() -> None:
    """Rows missing B are dropped only from pairs involving B."""
    data = [
        {"A": 1, "B": 1, "C": 1},
        {"A": 2, "B": None, "C": 4},
        {"A": 3, "B": 3, "C": 9},
        {"A": 4, "B": 4, "C": 16},
    ]

    result = calculate_correlation(data)
    with_b = calculate_correlation([data[0], data[2], data[3]])

    assert result.coefficient("A", "B") == pytest.approx(with_b.coefficient("A", "B"))
    assert result.coefficient("A", "C") != pytest.approx(with_b.coefficient("A", "C"))


def test_correlation_without_numeric_columns_is_empty() -> None:
    assert calculate_correlation([]) == CorrelationResult.empty()
    assert calculate_correlation([{"Name": "x"}]) == CorrelationResult(columns=[], matrix={})


def test_correlation_reuses_supplied_columns() -> None:
    result = calculate_correlation(_panel(), ["ROE"])

    assert result.columns == ["ROE"]
    assert list(result.matrix) == ["ROE"]


def test_duplicate_supplied_columns_are_collapsed() -> None:
    stats = calculate_descriptive_stats(_panel(), ["ROA", "ROE", "ROA"])
    result = calculate_correlation(_panel(), ["ROA", "ROA", "ROE"])

    assert [s.column for s in stats] == ["ROA", "ROE"]
    assert result.columns == ["ROA", "ROE"]
    expected = calculate_correlation(_panel(), ["ROA", "ROE"])
    assert result.matrix == expected.matrix
