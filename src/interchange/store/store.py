"""
Exchange tables: outbound candidates, imported records and the imported-file ledger.

Reads go through ibis expressions; writes use parameterized SQL on the same
DuckDB backend so the inbound insert can run inside one explicit transaction.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime
from typing import Any

import ibis

from interchange.exceptions import PersistenceError
from interchange.records import ImportedRecord, PendingRecord, RecordStatus
from interchange.utils.logging import get_logger

logger = get_logger("interchange.store")

OUTBOUND_TABLE = "outbound_records"
IMPORTED_TABLE = "imported_records"
LEDGER_TABLE = "imported_files"

_SCHEMA = [
    "CREATE SEQUENCE IF NOT EXISTS outbound_record_seq START 1",
    f"""
    CREATE TABLE IF NOT EXISTS {OUTBOUND_TABLE} (
        record_id BIGINT PRIMARY KEY DEFAULT nextval('outbound_record_seq'),
        installation VARCHAR NOT NULL,
        operand VARCHAR NOT NULL,
        start_date DATE NOT NULL,
        end_date DATE NOT NULL,
        allocation_unit VARCHAR NOT NULL,
        period VARCHAR,
        status VARCHAR NOT NULL DEFAULT 'PENDING',
        sent_file_name VARCHAR,
        sent_at TIMESTAMP
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {IMPORTED_TABLE} (
        bill_period VARCHAR,
        account_id VARCHAR,
        installation VARCHAR,
        rate_group VARCHAR,
        agreement_id VARCHAR,
        reading_date DATE,
        unit_value DOUBLE,
        source_file VARCHAR NOT NULL,
        imported_at TIMESTAMP
    )
    """,
    # One row per imported file; the primary key turns a concurrent
    # duplicate import into a commit-time conflict
    f"""
    CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
        file_name VARCHAR PRIMARY KEY,
        record_count INTEGER NOT NULL,
        imported_at TIMESTAMP NOT NULL
    )
    """,
]


class ExchangeStore:
    """Durable status for both exchange directions."""

    def __init__(self, connection: ibis.BaseBackend):
        self.connection = connection
        self._initialized = False

    def initialize_schema(self) -> None:
        """Create tables if they don't exist."""
        if self._initialized:
            return
        for statement in _SCHEMA:
            self._execute(statement)
        self._initialized = True
        logger.debug("Exchange schema initialized")

    # ---------- outbound ----------
    def add_pending(self, record: PendingRecord) -> int:
        """Insert an outbound candidate with status PENDING and return its id."""
        cursor = self._execute(
            f"""
            INSERT INTO {OUTBOUND_TABLE} (installation, operand, start_date, end_date, allocation_unit, period, status)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            RETURNING record_id
            """,
            [
                record.installation,
                record.operand,
                record.start_date,
                record.end_date,
                record.allocation_unit,
                record.period,
                RecordStatus.PENDING.value,
            ],
        )
        return int(cursor.fetchone()[0])

    def fetch_pending(self, no_period_operand: str) -> list[PendingRecord]:
        """
        All PENDING rows in partner order: installation, then the no-period
        operand before every other operand, then start date.
        """
        t = self.connection.table(OUTBOUND_TABLE)
        operand_priority = (t.operand == no_period_operand).ifelse(0, 1)
        expr = t.filter(t.status == RecordStatus.PENDING.value).order_by(
            [t.installation, operand_priority, t.start_date, t.record_id]
        )
        return [_pending_from_row(row) for row in expr.to_pyarrow().to_pylist()]

    def mark_sent(self, record_ids: Sequence[int], file_name: str, sent_at: datetime) -> int:
        """
        Flip the exported rows from PENDING to SENT in one statement.

        Returns:
            Number of rows updated

        Raises:
            PersistenceError: If the update fails
        """
        if not record_ids:
            return 0
        placeholders = ", ".join("?" for _ in record_ids)
        try:
            cursor = self._execute(
                f"""
                UPDATE {OUTBOUND_TABLE}
                SET status = ?, sent_file_name = ?, sent_at = ?
                WHERE status = ? AND record_id IN ({placeholders})
                """,
                [RecordStatus.SENT.value, file_name, sent_at, RecordStatus.PENDING.value, *record_ids],
            )
            row = cursor.fetchone()
        except Exception as e:
            raise PersistenceError(f"Could not mark batch {file_name} as sent: {e}", details={"file": file_name}) from e
        updated = int(row[0]) if row else 0
        if updated != len(record_ids):
            logger.warning(f"Batch {file_name}: expected to mark {len(record_ids)} rows as sent, updated {updated}")
        return updated

    def is_batch_recorded(self, file_name: str) -> bool:
        """Whether any row carries ``file_name`` as its sent file."""
        t = self.connection.table(OUTBOUND_TABLE)
        return int(t.filter(t.sent_file_name == file_name).count().execute()) > 0

    def status_counts(self) -> dict[str, int]:
        t = self.connection.table(OUTBOUND_TABLE)
        rows = t.group_by("status").aggregate(n=t.count()).to_pyarrow().to_pylist()
        return {row["status"]: int(row["n"]) for row in rows}

    # ---------- inbound ----------
    def is_file_processed(self, file_name: str) -> bool:
        """Ledger lookup: has this inbound file already been imported?"""
        t = self.connection.table(LEDGER_TABLE)
        return int(t.filter(t.file_name == file_name).count().execute()) > 0

    def imported_file_count(self) -> int:
        return int(self.connection.table(LEDGER_TABLE).count().execute())

    def imported_records(self, file_name: str) -> list[ImportedRecord]:
        t = self.connection.table(IMPORTED_TABLE)
        rows = t.filter(t.source_file == file_name).to_pyarrow().to_pylist()
        return [_imported_from_row(row) for row in rows]

    def persist_import(self, file_name: str, records: Sequence[ImportedRecord], imported_at: datetime) -> int:
        """
        Insert every record of one file plus its ledger row in a single transaction.

        Nothing is committed unless all inserts succeed.

        Raises:
            PersistenceError: After rolling back, if any insert fails
        """
        self._execute("BEGIN TRANSACTION")
        try:
            self._execute(
                f"INSERT INTO {LEDGER_TABLE} (file_name, record_count, imported_at) VALUES (?, ?, ?)",
                [file_name, len(records), imported_at],
            )
            for record in records:
                self._execute(
                    f"""
                    INSERT INTO {IMPORTED_TABLE}
                    (bill_period, account_id, installation, rate_group, agreement_id,
                     reading_date, unit_value, source_file, imported_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        record.bill_period,
                        record.account_id,
                        record.installation,
                        record.rate_group,
                        record.agreement_id,
                        date.fromisoformat(record.reading_date),
                        record.unit_value,
                        file_name,
                        imported_at,
                    ],
                )
            self._execute("COMMIT")
        except Exception as e:
            self._rollback(file_name)
            raise PersistenceError(f"Could not persist {file_name}: {e}", details={"file": file_name}) from e
        return len(records)

    # ---------- internal helpers ----------
    def _execute(self, query: str, parameters: list[Any] | None = None) -> Any:
        if parameters is None:
            return self.connection.raw_sql(query)
        return self.connection.raw_sql(query, parameters=parameters)

    def _rollback(self, file_name: str) -> None:
        try:
            self._execute("ROLLBACK")
        except Exception as e:
            logger.error(f"Rollback failed for {file_name}: {e}")


def _pending_from_row(row: dict[str, Any]) -> PendingRecord:
    return PendingRecord(
        installation=row["installation"],
        operand=row["operand"],
        start_date=row["start_date"],
        end_date=row["end_date"],
        allocation_unit=row["allocation_unit"],
        period=row["period"],
        record_id=int(row["record_id"]),
    )


def _imported_from_row(row: dict[str, Any]) -> ImportedRecord:
    reading_date = row["reading_date"]
    return ImportedRecord(
        bill_period=row["bill_period"],
        account_id=row["account_id"],
        installation=row["installation"],
        rate_group=row["rate_group"],
        agreement_id=row["agreement_id"],
        reading_date=reading_date.isoformat() if reading_date is not None else "",
        unit_value=float(row["unit_value"]),
        source_file=row["source_file"],
    )
