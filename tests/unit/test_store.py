"""
Unit tests for store.py module.

Tests range queries, pre-aggregated yearly rows, CRUD and the JSON-file
store's error reporting.
"""

import json
from datetime import date

import pytest

from incomelens.dashboard import IncomeDashboard
from incomelens.exceptions import FetchFailed, RecordNotFoundError, ValidationError
from incomelens.records import IncomeRecord, MonthlySourceTotal
from incomelens.store import InMemoryRecordStore, JsonFileRecordStore


class TestInMemoryRecordStore:

    def test_fetch_by_month(self, store, feb_records):
        assert {r.id for r in store.fetch_by_month(2025, 2)} == {r.id for r in feb_records}
        assert [r.id for r in store.fetch_by_month(2025, 1)] == ["r90"]
        assert store.fetch_by_month(2025, 3) == []

    def test_fetch_by_year(self, store):
        assert len(store.fetch_by_year(2025)) == 8
        assert store.fetch_by_year(2024) == []

    def test_month_filter_uses_calendar(self, bogota):
        rec = IncomeRecord("r1", 10, "2025-03-01T02:00:00Z", "yt")
        assert InMemoryRecordStore([rec]).fetch_by_month(2025, 3) == [rec]
        assert InMemoryRecordStore([rec], calendar=bogota).fetch_by_month(2025, 2) == [rec]

    def test_malformed_record_returned_everywhere(self, feb_records):
        bad = IncomeRecord("bad", 5, "yesterday", "yt")
        store = InMemoryRecordStore(feb_records + [bad])
        assert bad in store.fetch_by_month(2025, 2)
        assert bad in store.fetch_by_month(2023, 7)
        assert bad in store.fetch_by_year(2025)

    def test_pre_aggregated_year(self, feb_records, jan_records):
        store = InMemoryRecordStore(jan_records + feb_records, pre_aggregate_yearly=True)
        rows = store.fetch_by_year(2025)
        assert MonthlySourceTotal(month=1, source_id="yt", total=700.0) in rows
        assert MonthlySourceTotal(month=2, source_id="yt", total=800.0) in rows
        assert sum(r.total for r in rows) == pytest.approx(2100)

    def test_insert_duplicate(self, store):
        with pytest.raises(ValidationError, match="already exists"):
            store.insert(IncomeRecord("r01", 1, "2025-02-01", "yt"))

    def test_update(self, store):
        updated = store.update("r01", {"amount": 125})
        assert updated.amount == 125.0
        assert next(r for r in store.fetch_by_month(2025, 2) if r.id == "r01").amount == 125.0

    def test_update_with_unknown_field(self, store):
        with pytest.raises(ValidationError, match="unknown field"):
            store.update("r01", {"note": "tip"})
        assert store.fetch_by_month(2025, 2)

    def test_update_and_delete_unknown(self, store):
        with pytest.raises(RecordNotFoundError):
            store.update("nope", {"amount": 1})
        with pytest.raises(RecordNotFoundError):
            store.delete("nope")

    def test_delete(self, store):
        store.delete("r90")
        assert store.fetch_by_month(2025, 1) == []
        assert len(store) == 7


class TestJsonFileRecordStore:

    def test_reads_file(self, data_files):
        records_path, _ = data_files
        store = JsonFileRecordStore(records_path)
        assert len(store.fetch_by_month(2025, 2)) == 7

    def test_missing_file_is_empty(self, tmp_path):
        store = JsonFileRecordStore(tmp_path / "none.json")
        assert store.fetch_by_month(2025, 2) == []

    def test_writes_are_persisted(self, tmp_path):
        path = tmp_path / "incomes.json"
        store = JsonFileRecordStore(path)
        store.insert(IncomeRecord("a", 10, "2025-02-01", "yt"))
        store.insert(IncomeRecord("b", 20, "2025-02-02", "fb"))
        store.update("a", {"amount": 15})
        store.delete("b")

        reopened = JsonFileRecordStore(path)
        records = reopened.fetch_by_month(2025, 2)
        assert [(r.id, r.amount) for r in records] == [("a", 15.0)]
        assert json.loads(path.read_text())["schema_version"] == "0.1.0"

    def test_external_edits_seen_on_next_fetch(self, data_files):
        records_path, _ = data_files
        store = JsonFileRecordStore(records_path)
        assert len(store.fetch_by_month(2025, 2)) == 7
        records_path.write_text(json.dumps([
            {"id": "x", "amount": 1, "created_at": "2025-02-05", "source_id": "yt"},
        ]))
        assert [r.id for r in store.fetch_by_month(2025, 2)] == ["x"]

    def test_corrupt_file_raises_fetch_failed(self, tmp_path):
        path = tmp_path / "incomes.json"
        path.write_text("{not json")
        with pytest.raises(FetchFailed) as excinfo:
            JsonFileRecordStore(path).fetch_by_month(2025, 2)
        assert excinfo.value.period_key == "2025-02"

    def test_invalid_rows_raise_fetch_failed(self, tmp_path):
        path = tmp_path / "incomes.json"
        path.write_text(json.dumps([{"id": "x", "amount": -1, "created_at": "2025-02-05", "source_id": "yt"}]))
        with pytest.raises(FetchFailed):
            JsonFileRecordStore(path).fetch_by_year(2025)

    def test_undecodable_file_raises_fetch_failed(self, tmp_path):
        path = tmp_path / "incomes.json"
        path.write_bytes(b'[{"id": "r1", "amount": 10, "source_id": "\xff"}]')
        with pytest.raises(FetchFailed) as excinfo:
            JsonFileRecordStore(path).fetch_by_month(2025, 2)
        assert excinfo.value.period_key == "2025-02"

    def test_non_object_row_raises_fetch_failed(self, tmp_path):
        path = tmp_path / "incomes.json"
        path.write_text(json.dumps([
            {"id": "r1", "amount": 10, "created_at": "2025-02-05", "source_id": "yt"},
            5,
        ]))
        with pytest.raises(FetchFailed, match="must be an object"):
            JsonFileRecordStore(path).fetch_by_month(2025, 2)

    def test_unreadable_file_keeps_previous_report(self, data_files, catalog):
        records_path, _ = data_files
        dashboard = IncomeDashboard(
            JsonFileRecordStore(records_path), catalog, clock=lambda: date(2025, 2, 14)
        )
        assert dashboard.show_month(2025, 2) is True
        shown = dashboard.session.report

        records_path.write_bytes(b"\xff\xfe")
        assert dashboard.refresh() is True
        assert dashboard.session.report is shown
        assert dashboard.session.pending is None
        assert isinstance(dashboard.session.last_error, FetchFailed)
