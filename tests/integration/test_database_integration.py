"""
Database integration tests.

Tests migrations, batch atomicity, filtering, aggregation and alert
persistence against a real SQLite file.
"""

import sqlite3
from datetime import date, timedelta

import pytest

from src.cost.models import MIXED_CURRENCY, Alert, CostDimension, CostRecord
from src.errors import PersistenceError
from src.storage.sqlite import CostStore

pytestmark = pytest.mark.integration


def record(day: date, service: str = "Storage", cost: float = 1.0, **kwargs) -> CostRecord:
    return CostRecord(subscription_id="sub-123", service_name=service, cost=cost, date=day, **kwargs)


class TestStoreLifecycle:
    """Test opening, migrating and closing the store."""

    def test_creates_parent_directories_and_schema(self, temp_dir):
        db_path = temp_dir / "nested" / "dir" / "costs.db"

        with CostStore(db_path):
            pass

        assert db_path.exists()
        conn = sqlite3.connect(db_path)
        tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
        indexes = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'index'")}
        conn.close()

        assert {"config", "cost_records", "alerts"} <= tables
        assert {"idx_cost_date", "idx_cost_subscription", "idx_cost_service"} <= indexes

    def test_reopen_keeps_data(self, temp_dir):
        db_path = temp_dir / "costs.db"
        with CostStore(db_path) as store:
            store.insert_batch([record(date(2024, 1, 1))])

        with CostStore(db_path) as store:
            assert len(store.query_by_filter()) == 1

    def test_unopenable_path(self, temp_dir):
        blocker = temp_dir / "file"
        blocker.write_text("not a directory")

        with pytest.raises(PersistenceError) as exc_info:
            CostStore(blocker / "costs.db").open()

        assert exc_info.value.operation == "open"


class TestInsertBatch:
    """Test batch inserts."""

    def test_insert_and_read_back(self, store, sample_records):
        assert store.insert_batch(sample_records) == 3

        records = store.query_by_filter()

        assert len(records) == 3
        assert all(r.id is not None for r in records)
        assert {r.service_name for r in records} == {"Virtual Machines", "Storage"}

    def test_empty_batch(self, store):
        assert store.insert_batch([]) == 0

    def test_failed_row_rolls_back_whole_batch(self, store):
        broken = CostRecord.model_construct(
            id=None,
            subscription_id="sub-123",
            resource_group=None,
            service_name=None,
            cost=1.0,
            currency="USD",
            date=date(2024, 1, 2),
        )

        with pytest.raises(PersistenceError) as exc_info:
            store.insert_batch([record(date(2024, 1, 1)), broken])

        assert exc_info.value.operation == "insert_batch"
        assert store.query_by_filter() == []

    def test_reinserting_duplicates_rows(self, store):
        rows = [record(date(2024, 1, 1), cost=2.0)]
        store.insert_batch(rows)
        store.insert_batch(rows)

        assert store.aggregate_by(CostDimension.SERVICE) == {"Storage": 4.0}


class TestQueries:
    """Test filtering and aggregation."""

    @pytest.fixture
    def january(self, store) -> CostStore:
        store.insert_batch(
            [
                record(date(2024, 1, 1), "Storage", 1.0, resource_group="rg-data"),
                record(date(2024, 1, 15), "Virtual Machines", 5.0, resource_group="rg-web"),
                record(date(2024, 1, 31), "Storage", 2.0),
                record(date(2024, 2, 1), "Functions", 9.0, resource_group="rg-web"),
            ]
        )
        return store

    def test_query_by_filter_is_inclusive_and_newest_first(self, january):
        records = january.query_by_filter(date(2024, 1, 1), date(2024, 1, 31))

        assert [r.date for r in records] == [date(2024, 1, 31), date(2024, 1, 15), date(2024, 1, 1)]

    def test_query_by_service(self, january):
        records = january.query_by_filter(service_name="Storage")

        assert [r.cost for r in records] == [2.0, 1.0]

    def test_no_matches_is_empty(self, january):
        assert january.query_by_filter(date(2023, 1, 1), date(2023, 1, 31)) == []

    def test_aggregate_by_service(self, january):
        totals = january.aggregate_by(CostDimension.SERVICE, date(2024, 1, 1), date(2024, 1, 31))

        assert totals == {"Storage": 3.0, "Virtual Machines": 5.0}

    def test_aggregate_by_resource_group_buckets_missing_groups(self, january):
        totals = january.aggregate_by("resource_group", date(2024, 1, 1), date(2024, 1, 31))

        assert totals == {"rg-data": 1.0, "rg-web": 5.0, "": 2.0}

    def test_aggregate_by_resource_group_for_one_service(self, january):
        totals = january.aggregate_by(CostDimension.RESOURCE_GROUP, service_name="Storage")

        assert totals == {"rg-data": 1.0, "": 2.0}

    def test_aggregate_sums_across_currencies(self, store):
        store.insert_batch([record(date(2024, 1, 1), cost=1.0), record(date(2024, 1, 2), cost=2.0, currency="EUR")])

        assert store.aggregate_by(CostDimension.SERVICE) == {"Storage": 3.0}
        assert store.currencies() == ["EUR", "USD"]

    def test_currencies_for_one_service(self, store):
        store.insert_batch([record(date(2024, 1, 1)), record(date(2024, 1, 2), "Virtual Machines", currency="EUR")])

        assert store.currencies(service_name="Storage") == ["USD"]
        assert store.currencies(date(2024, 1, 2), date(2024, 1, 2)) == ["EUR"]

    def test_count_records(self, january):
        assert january.count_records(date(2024, 1, 1), date(2024, 1, 31), "sub-123") == 3
        assert january.count_records(subscription_id="other") == 0


class TestMonthlyTotals:
    """Test monthly bucketing."""

    def test_months_newest_first_within_lookback(self, store):
        store.insert_batch(
            [
                record(date(2024, 6, 10), cost=10.0),
                record(date(2024, 6, 20), cost=5.0),
                record(date(2024, 5, 1), cost=7.0),
                record(date(2023, 12, 1), cost=100.0),
            ]
        )

        totals = store.monthly_totals(6, as_of=date(2024, 6, 30))

        assert [(m.month, m.total_cost, m.currency) for m in totals] == [
            ("2024-06", 15.0, "USD"),
            ("2024-05", 7.0, "USD"),
        ]

    def test_lookback_boundary_is_inclusive(self, store):
        store.insert_batch([record(date(2024, 1, 15), cost=3.0), record(date(2024, 1, 14), cost=4.0)])

        totals = store.monthly_totals(5, as_of=date(2024, 6, 15))

        assert [(m.month, m.total_cost) for m in totals] == [("2024-01", 3.0)]

    def test_mixed_currency_month(self, store):
        store.insert_batch([record(date(2024, 6, 1), cost=1.0), record(date(2024, 6, 2), cost=1.0, currency="EUR")])

        (june,) = store.monthly_totals(1, as_of=date(2024, 6, 30))

        assert june.currency == MIXED_CURRENCY
        assert june.total_cost == 2.0

    def test_defaults_to_today(self, store, months_ago):
        store.insert_batch([record(months_ago(0), cost=1.0), record(months_ago(0) - timedelta(days=800), cost=1.0)])

        assert len(store.monthly_totals(6)) == 1


class TestAlertsAndSettings:
    """Test alert and key/value persistence."""

    def test_save_list_get_delete(self, store):
        saved = store.save_alert(Alert(name="budget-20", threshold=20, subscription_id="sub-123"))
        store.save_alert(Alert(name="budget-5", threshold=5, enabled=False))

        assert saved.id is not None
        assert [a.name for a in store.list_alerts()] == ["budget-20", "budget-5"]
        assert store.get_alert("budget-5").enabled is False
        assert store.get_alert("missing") is None

        assert store.delete_alert("budget-20") == 1
        assert store.delete_alert("budget-20") == 0
        assert [a.name for a in store.list_alerts()] == ["budget-5"]

    def test_settings_upsert(self, store):
        assert store.get_setting("last_fetch") is None

        store.set_setting("last_fetch", "2024-01-01")
        store.set_setting("last_fetch", "2024-02-01")

        assert store.get_setting("last_fetch") == "2024-02-01"
