from __future__ import annotations

import pytest

from services.derivation import (
    ASCENDING,
    DESCENDING,
    SortState,
    ViewState,
    client_view,
    get_view,
    material_view,
    parse_number,
    NumericParseError,
    worker_view,
)


def _ids(view) -> list[str]:
    return [r["id"] for r in view.rows]


WORKERS = {
    "w1": {"name": "Ravi", "type": "Mason", "wage": 500, "contact": "98765", "isRegular": True},
    "w2": {"name": "anil", "type": "Helper", "wage": "300", "contact": "91234", "isRegular": False},
    "w3": {"name": "Suresh", "type": "Mason", "wage": 500, "contact": "99999", "isRegular": True},
    "w4": {"name": "Babu", "type": "Helper", "wage": 700, "contact": "90000"},
}


class TestSorting:
    def test_ties_keep_snapshot_order_ascending(self):
        view = worker_view(WORKERS, ViewState(sort=SortState("wage", ASCENDING)))
        assert _ids(view) == ["w2", "w1", "w3", "w4"]

    def test_ties_keep_snapshot_order_descending(self):
        view = worker_view(WORKERS, ViewState(sort=SortState("wage", DESCENDING)))
        assert _ids(view) == ["w4", "w1", "w3", "w2"]

    def test_numeric_fields_compare_as_numbers(self):
        materials = {
            "m1": {"name": "Sand", "quantity": "100", "unit": "kg", "price": "9"},
            "m2": {"name": "Rods", "quantity": "20", "unit": "pcs", "price": "80"},
        }
        view = material_view(materials, ViewState(sort=SortState("price")))
        # "80" < "9" as text, 9 < 80 as numbers
        assert _ids(view) == ["m1", "m2"]

    def test_text_fields_ignore_case(self):
        view = worker_view(WORKERS, ViewState(sort=SortState("name")))
        assert [r["name"] for r in view.rows] == ["anil", "Babu", "Ravi", "Suresh"]

    def test_accented_names_sort_with_their_base_letter(self):
        workers = {
            "z": {"name": "Zoya", "type": "Helper", "wage": 300, "contact": "1"},
            "e": {"name": "Émile", "type": "Helper", "wage": 300, "contact": "2"},
            "f": {"name": "Farid", "type": "Helper", "wage": 300, "contact": "3"},
        }
        view = worker_view(workers, ViewState(sort=SortState("name")))
        assert [r["name"] for r in view.rows] == ["Émile", "Farid", "Zoya"]

    def test_unsorted_view_keeps_snapshot_order(self):
        assert _ids(worker_view(WORKERS)) == ["w1", "w2", "w3", "w4"]

    def test_toggle_same_key_flips_and_new_key_resets(self):
        state = SortState().toggle("wage")
        assert state == SortState("wage", ASCENDING)
        state = state.toggle("wage")
        assert state == SortState("wage", DESCENDING)
        assert state.toggle("wage") == SortState("wage", ASCENDING)
        assert state.toggle("name") == SortState("name", ASCENDING)


class TestFiltering:
    def test_low_stock_filter(self):
        materials = {
            "m1": {"name": "Cement", "quantity": 5, "unit": "bags", "price": 400},
            "m2": {"name": "Bricks", "quantity": 50, "unit": "pcs", "price": 8},
        }
        view = material_view(materials, ViewState(show_low_stock=True, low_stock_threshold=10))
        assert [r["name"] for r in view.rows] == ["Cement"]

    def test_search_and_filters_compose_with_and(self):
        state = ViewState(search_term="a", worker_type="Mason", regular_only=True)
        view = worker_view(WORKERS, state)
        # w3 "Suresh" matches "a" only through its type "Mason"
        assert _ids(view) == ["w1", "w3"]

    def test_search_is_case_insensitive_over_search_fields(self):
        assert _ids(worker_view(WORKERS, ViewState(search_term="RAVI"))) == ["w1"]
        assert _ids(worker_view(WORKERS, ViewState(search_term="9123"))) == ["w2"]
        assert _ids(worker_view(WORKERS, ViewState(search_term="helper"))) == ["w2", "w4"]

    def test_blank_search_matches_everything(self):
        assert len(worker_view(WORKERS, ViewState(search_term="   ")).rows) == 4

    def test_client_status_filter(self):
        clients = {
            "c1": {"name": "Mehta", "contact": "1", "budget": 1000, "received": 400},
            "c2": {"name": "Shah", "contact": "2", "budget": 2000, "received": 2000},
        }
        assert _ids(client_view(clients, ViewState(client_status="paid"))) == ["c2"]
        assert _ids(client_view(clients, ViewState(client_status="pending"))) == ["c1"]

    def test_material_search_only_uses_name(self):
        materials = {"m1": {"name": "Cement", "quantity": 5, "unit": "bags", "price": 400, "supplier": "Ultra"}}
        assert material_view(materials, ViewState(search_term="ultra")).rows == []


class TestAggregates:
    CLIENTS = {
        "c1": {"name": "Mehta", "contact": "111", "budget": 1000, "received": 400},
        "c2": {"name": "Shah", "contact": "222", "budget": "2000", "received": "2000", "pending": 999},
    }

    def test_client_totals(self):
        summary = client_view(self.CLIENTS).summary
        assert summary.total_budget == 3000
        assert summary.total_received == 2400
        assert summary.total_pending == 600
        assert summary.payment_progress_percent == pytest.approx(80)
        assert (summary.paid_count, summary.pending_count) == (1, 1)

    def test_client_totals_ignore_search(self):
        assert client_view(self.CLIENTS, ViewState(search_term="Mehta")).summary == client_view(self.CLIENTS).summary

    def test_stored_pending_is_recomputed(self):
        rows = {r["id"]: r for r in client_view(self.CLIENTS).rows}
        assert rows["c2"]["pending"] == 0
        assert rows["c2"]["status"] == "paid"

    def test_material_totals_cover_whole_collection(self):
        materials = {
            "m1": {"name": "Cement", "quantity": "5", "unit": "bags", "price": "400"},
            "m2": {"name": "Bricks", "quantity": "50", "unit": "pcs", "price": "8"},
        }
        view = material_view(materials, ViewState(search_term="cement", low_stock_threshold=10))
        assert len(view.rows) == 1
        assert view.rows[0]["lineTotal"] == 2000
        assert view.summary.total_cost == 2400
        assert view.summary.low_stock_count == 1

    def test_worker_summary(self):
        summary = worker_view(WORKERS).summary
        assert summary.total_workers == 4
        assert summary.total_daily_wage == 2000
        assert summary.average_wage == 500
        assert summary.regular_count == 2

    def test_most_common_type_tie_goes_to_first_seen(self):
        assert worker_view(WORKERS).summary.most_common_type == "Mason"
        reordered = {k: WORKERS[k] for k in ("w2", "w1", "w3", "w4")}
        assert worker_view(reordered).summary.most_common_type == "Helper"

    def test_empty_collections(self):
        workers = worker_view({}).summary
        assert workers.average_wage == 0
        assert workers.most_common_type is None
        clients = client_view(None).summary
        assert clients.payment_progress_percent == 0
        assert material_view({}).summary.total_cost == 0

    def test_same_snapshot_same_result(self):
        assert get_view("workers", WORKERS) == get_view("workers", WORKERS)


class TestMalformedNumbers:
    BAD = {
        "a": {"name": "A", "type": "Mason", "wage": 400, "contact": "1"},
        "b": {"name": "B", "type": "Mason", "wage": "abc", "contact": "2"},
        "c": {"name": "C", "type": "Mason", "wage": 600, "contact": "3"},
    }

    def test_bad_wage_sorts_lowest(self):
        asc = worker_view(self.BAD, ViewState(sort=SortState("wage", ASCENDING)))
        desc = worker_view(self.BAD, ViewState(sort=SortState("wage", DESCENDING)))
        assert _ids(asc) == ["b", "a", "c"]
        assert _ids(desc) == ["c", "a", "b"]

    def test_bad_wage_counts_as_zero(self):
        summary = worker_view(self.BAD).summary
        assert summary.total_daily_wage == 1000
        assert summary.average_wage == pytest.approx(1000 / 3)

    def test_parse_number(self):
        assert parse_number(" 12.5 ") == 12.5
        for bad in ("abc", "", None, "nan", "inf", True):
            with pytest.raises(NumericParseError):
                parse_number(bad)

    def test_non_mapping_records_are_skipped(self):
        view = worker_view({"x": "garbage", **self.BAD})
        assert _ids(view) == ["a", "b", "c"]


def test_unknown_collection():
    with pytest.raises(ValueError):
        get_view("projects", {})
