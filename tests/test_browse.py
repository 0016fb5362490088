from __future__ import annotations

from datetime import date

import pytest

from barangay_reports.browse import SortState, filter_rows, page_window, paginate, sort_rows


def test_filter_matches_substring_case_insensitively() -> None:
    rows = [{"name": "Juan Dela Cruz"}, {"name": "Maria Santos"}]

    assert filter_rows(rows, "juan") == [rows[0]]


def test_filter_searches_every_field_and_empty_query_returns_all() -> None:
    rows = [
        {"id": 101, "status": "PENDING", "note": None},
        {"id": 202, "status": "RESOLVED", "note": "Purok 2"},
    ]

    assert filter_rows(rows, "") == rows
    assert filter_rows(rows, None) == rows
    assert filter_rows(rows, "  ") == rows
    assert filter_rows(rows, "101") == [rows[0]]
    assert filter_rows(rows, "purok") == [rows[1]]
    assert filter_rows(rows, "none") == []


def test_sort_state_toggle() -> None:
    state = SortState().toggle("name")
    assert state == SortState(key="name", descending=False)

    state = state.toggle("name")
    assert state == SortState(key="name", descending=True)

    assert state.toggle("id") == SortState(key="id", descending=False)


def test_sort_rows_places_missing_values_last_in_both_directions() -> None:
    rows = [{"n": 3}, {"n": None}, {"n": 1}, {}, {"n": 2}]

    ascending = sort_rows(rows, "n")
    descending = sort_rows(rows, "n", descending=True)

    assert [row.get("n") for row in ascending] == [1, 2, 3, None, None]
    assert [row.get("n") for row in descending] == [3, 2, 1, None, None]


def test_sort_rows_orders_strings_dates_and_mixed_types() -> None:
    names = sort_rows([{"v": "beta"}, {"v": "Alpha"}, {"v": "gamma"}], "v")
    dates = sort_rows([{"v": date(2024, 3, 1)}, {"v": date(2023, 1, 1)}], "v")
    mixed = sort_rows([{"v": "b"}, {"v": 2}, {"v": "a"}, {"v": 1.5}], "v")

    assert [row["v"] for row in names] == ["Alpha", "beta", "gamma"]
    assert [row["v"] for row in dates] == [date(2023, 1, 1), date(2024, 3, 1)]
    assert [row["v"] for row in mixed] == [1.5, 2, "a", "b"]


def test_paginate_is_one_indexed_and_clamps() -> None:
    rows = [{"id": index} for index in range(23)]

    first = paginate(rows, 1, 10)
    last = paginate(rows, 99, 10)
    before = paginate(rows, -4, 10)

    assert [row["id"] for row in first.rows] == list(range(10))
    assert first.total_pages == 3
    assert last.page == 3
    assert [row["id"] for row in last.rows] == [20, 21, 22]
    assert (last.first_index, last.last_index) == (21, 23)
    assert before.page == 1


def test_paginate_empty_rows_has_one_empty_page() -> None:
    page = paginate([], 3, 5)

    assert page.page == 1
    assert page.total_pages == 1
    assert page.rows == ()
    assert (page.first_index, page.last_index) == (0, 0)


def test_paginate_rejects_unsupported_page_sizes() -> None:
    with pytest.raises(ValueError, match="page_size must be one of 5, 10, 20, 50"):
        paginate([{"id": 1}], 1, 15)


def test_page_window_uses_none_for_gaps() -> None:
    assert page_window(5, 10) == [1, None, 4, 5, 6, None, 10]
    assert page_window(1, 3) == [1, 2, 3]
    assert page_window(2, 10) == [1, 2, 3, None, 10]
    assert page_window(1, 1) == [1]
    assert page_window(1, 0) == []
