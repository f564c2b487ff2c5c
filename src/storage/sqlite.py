"""
SQLite persistence for cost records and budget alerts.

The store owns all aggregation SQL. Cost records are append-only: a batch is
written inside one transaction and either every row lands or none does.
"""

import logging
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date
from pathlib import Path

from ..cost.models import MIXED_CURRENCY, Alert, CostDimension, CostRecord, MonthlyCost
from ..errors import PersistenceError

logger = logging.getLogger(__name__)

MIGRATIONS = [
    """CREATE TABLE IF NOT EXISTS config (
        key TEXT PRIMARY KEY,
        value TEXT,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",
    """CREATE TABLE IF NOT EXISTS cost_records (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        subscription_id TEXT NOT NULL,
        resource_group TEXT,
        service_name TEXT NOT NULL,
        cost REAL NOT NULL,
        currency TEXT NOT NULL DEFAULT 'USD',
        date TEXT NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",
    """CREATE TABLE IF NOT EXISTS alerts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        threshold REAL NOT NULL,
        subscription_id TEXT NOT NULL,
        enabled INTEGER DEFAULT 1,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",
    "CREATE INDEX IF NOT EXISTS idx_cost_date ON cost_records(date)",
    "CREATE INDEX IF NOT EXISTS idx_cost_subscription ON cost_records(subscription_id)",
    "CREATE INDEX IF NOT EXISTS idx_cost_service ON cost_records(service_name)",
]

INSERT_COST_RECORD = """
    INSERT INTO cost_records (subscription_id, resource_group, service_name, cost, currency, date)
    VALUES (?, ?, ?, ?, ?, ?)
"""

_DIMENSION_COLUMNS = {
    CostDimension.SERVICE: "service_name",
    CostDimension.RESOURCE_GROUP: "resource_group",
}


def _date_conditions(
    start_date: date | None, end_date: date | None
) -> tuple[list[str], list[str]]:
    conditions = []
    params = []
    if start_date:
        conditions.append("date >= ?")
        params.append(start_date.isoformat())
    if end_date:
        conditions.append("date <= ?")
        params.append(end_date.isoformat())
    return conditions, params


def _where(conditions: list[str]) -> str:
    return " WHERE " + " AND ".join(conditions) if conditions else ""


class CostStore:
    """Durable store for cost records, alerts and key/value settings.

    The connection is opened on first use and released by ``close()``; the
    store is also a context manager so callers can scope its lifetime.
    """

    def __init__(self, db_path: str | Path, timeout: float = 5.0):
        """
        Initialize the store.

        Args:
            db_path: Path to the SQLite database file
            timeout: Seconds to wait on a locked database before failing
        """
        self.db_path = Path(db_path)
        self.timeout = timeout
        self._conn: sqlite3.Connection | None = None

    def __enter__(self) -> "CostStore":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return None

    def open(self) -> "CostStore":
        """Open the database file and apply migrations."""
        if self._conn is not None:
            return self

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
            conn.execute("PRAGMA foreign_keys = ON")
            for statement in MIGRATIONS:
                conn.execute(statement)
            conn.commit()
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Failed to open database {self.db_path}: {e}")
            raise PersistenceError(f"Failed to open database {self.db_path}: {e}", operation="open") from e

        self._conn = conn
        logger.debug(f"Opened cost database at {self.db_path}")
        return self

    def close(self):
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.debug(f"Closed cost database at {self.db_path}")

    @contextmanager
    def _session(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Yield the open connection, translating engine failures."""
        conn = self.open()._conn
        try:
            yield conn
        except sqlite3.Error as e:
            logger.error(f"Database {operation} failed: {e}")
            raise PersistenceError(f"Database {operation} failed: {e}", operation=operation) from e

    # Cost records

    def insert_batch(self, records: Iterable[CostRecord]) -> int:
        """
        Insert cost records in a single transaction.

        Re-inserting an already stored date range appends duplicate rows.

        Args:
            records: Cost records to persist

        Returns:
            Number of rows inserted

        Raises:
            PersistenceError: If any row fails; nothing from the batch is kept
        """
        rows = [
            (
                r.subscription_id,
                r.resource_group,
                r.service_name,
                r.cost,
                r.currency,
                r.date.isoformat() if r.date else None,
            )
            for r in records
        ]
        if not rows:
            return 0

        with self._session("insert_batch") as conn:
            with conn:
                conn.executemany(INSERT_COST_RECORD, rows)

        logger.info(f"Stored {len(rows)} cost records")
        return len(rows)

    def query_by_filter(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        service_name: str | None = None,
    ) -> list[CostRecord]:
        """
        Get cost records with optional filtering.

        Args:
            start_date: Inclusive lower date bound
            end_date: Inclusive upper date bound
            service_name: Exact service name to match

        Returns:
            Cost records ordered by date (newest first)
        """
        conditions, params = _date_conditions(start_date, end_date)
        if service_name:
            conditions.append("service_name = ?")
            params.append(service_name)

        query = (
            "SELECT id, subscription_id, resource_group, service_name, cost, currency, date "
            "FROM cost_records" + _where(conditions) + " ORDER BY date DESC, id DESC"
        )

        with self._session("query_by_filter") as conn:
            rows = conn.execute(query, params).fetchall()

        return [
            CostRecord(
                id=row[0],
                subscription_id=row[1],
                resource_group=row[2],
                service_name=row[3],
                cost=row[4],
                currency=row[5],
                date=date.fromisoformat(row[6]),
            )
            for row in rows
        ]

    def aggregate_by(
        self,
        dimension: CostDimension | str,
        start_date: date | None = None,
        end_date: date | None = None,
        service_name: str | None = None,
    ) -> dict[str, float]:
        """
        Sum costs grouped by a dimension.

        Currency is not part of the grouping: amounts in different currencies
        are added together as stored.

        Args:
            dimension: ``service`` or ``resource_group``
            start_date: Inclusive lower date bound
            end_date: Inclusive upper date bound
            service_name: Restrict the sum to one service

        Returns:
            Mapping of dimension value to summed cost; records without a
            resource group are reported under the empty string
        """
        column = _DIMENSION_COLUMNS[CostDimension(dimension)]
        conditions, params = _date_conditions(start_date, end_date)
        if service_name:
            conditions.append("service_name = ?")
            params.append(service_name)

        query = (
            f"SELECT COALESCE({column}, '') AS bucket, SUM(cost) AS total "
            f"FROM cost_records{_where(conditions)} GROUP BY bucket"
        )

        with self._session("aggregate_by") as conn:
            rows = conn.execute(query, params).fetchall()

        return {name: total for name, total in rows}

    def monthly_totals(self, lookback_months: int, as_of: date | None = None) -> list[MonthlyCost]:
        """
        Sum costs into calendar months.

        Args:
            lookback_months: Only records dated on or after ``as_of`` minus
                this many months are included
            as_of: Reference date (defaults to today)

        Returns:
            Monthly totals ordered by month (newest first). A month holding
            more than one currency is labelled ``MIXED``.
        """
        reference = (as_of or date.today()).isoformat()
        query = f"""
            SELECT strftime('%Y-%m', date) AS month,
                   SUM(cost) AS total,
                   CASE WHEN COUNT(DISTINCT currency) = 1 THEN MIN(currency)
                        ELSE '{MIXED_CURRENCY}' END AS currency
            FROM cost_records
            WHERE date >= date(?, ?)
            GROUP BY month
            ORDER BY month DESC
        """

        with self._session("monthly_totals") as conn:
            rows = conn.execute(query, (reference, f"-{int(lookback_months)} months")).fetchall()

        return [MonthlyCost(month=row[0], total_cost=row[1], currency=row[2]) for row in rows]

    def currencies(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        service_name: str | None = None,
    ) -> list[str]:
        """Distinct currencies present in a date range, optionally for one service."""
        conditions, params = _date_conditions(start_date, end_date)
        if service_name:
            conditions.append("service_name = ?")
            params.append(service_name)
        query = (
            "SELECT DISTINCT currency FROM cost_records"
            + _where(conditions)
            + " ORDER BY currency"
        )

        with self._session("currencies") as conn:
            rows = conn.execute(query, params).fetchall()

        return [row[0] for row in rows]

    def count_records(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        subscription_id: str | None = None,
    ) -> int:
        """Count stored records in a date range, optionally for one account."""
        conditions, params = _date_conditions(start_date, end_date)
        if subscription_id:
            conditions.append("subscription_id = ?")
            params.append(subscription_id)

        with self._session("count_records") as conn:
            (count,) = conn.execute(
                "SELECT COUNT(*) FROM cost_records" + _where(conditions), params
            ).fetchone()

        return count

    # Alerts

    def save_alert(self, alert: Alert) -> Alert:
        """
        Insert an alert.

        Names are not checked for uniqueness here.

        Returns:
            The alert with its assigned id
        """
        with self._session("save_alert") as conn:
            with conn:
                cursor = conn.execute(
                    "INSERT INTO alerts (name, threshold, subscription_id, enabled) VALUES (?, ?, ?, ?)",
                    (alert.name, alert.threshold, alert.subscription_id, int(alert.enabled)),
                )

        logger.info(f"Saved alert '{alert.name}' with threshold {alert.threshold:.2f}")
        return alert.model_copy(update={"id": cursor.lastrowid})

    def list_alerts(self) -> list[Alert]:
        """Get all alerts ordered by name."""
        with self._session("list_alerts") as conn:
            rows = conn.execute(
                "SELECT id, name, threshold, subscription_id, enabled FROM alerts ORDER BY name, id"
            ).fetchall()

        return [self._row_to_alert(row) for row in rows]

    def delete_alert(self, name: str) -> int:
        """
        Delete every alert with the given name.

        Returns:
            Number of alerts deleted
        """
        with self._session("delete_alert") as conn:
            with conn:
                cursor = conn.execute("DELETE FROM alerts WHERE name = ?", (name,))

        if cursor.rowcount:
            logger.info(f"Deleted alert '{name}'")
        return cursor.rowcount

    def get_alert(self, name: str) -> Alert | None:
        """Get the first alert with the given name, if any."""
        with self._session("get_alert") as conn:
            row = conn.execute(
                "SELECT id, name, threshold, subscription_id, enabled FROM alerts "
                "WHERE name = ? ORDER BY id LIMIT 1",
                (name,),
            ).fetchone()

        return self._row_to_alert(row) if row else None

    @staticmethod
    def _row_to_alert(row: tuple) -> Alert:
        return Alert(
            id=row[0],
            name=row[1],
            threshold=row[2],
            subscription_id=row[3],
            enabled=bool(row[4]),
        )

    # Key/value settings

    def get_setting(self, key: str) -> str | None:
        """Read a stored setting."""
        with self._session("get_setting") as conn:
            row = conn.execute("SELECT value FROM config WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set_setting(self, key: str, value: str):
        """Create or replace a stored setting."""
        with self._session("set_setting") as conn:
            with conn:
                conn.execute(
                    """
                    INSERT INTO config (key, value, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
                    """,
                    (key, value),
                )
