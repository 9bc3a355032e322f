"""Device registration store.

SQLite persistence for canonical device registration records. Each record
is unique per ``(data_source, registration_number)``; the constraint lives
in the schema so concurrent importers cannot create duplicates even when
their lookups race.
"""

from __future__ import annotations

import argparse
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Union

from .logging_config import get_logger
from .models import CanonicalRecord, RiskLevel

logger = get_logger("database")

GROUPABLE_COLUMNS = ("data_source", "device_class", "risk_class", "status_code", "risk_level")


@dataclass
class SaveResult:
    """Rows written by ``save_all`` and the keys rejected by the unique constraint."""

    saved: List[CanonicalRecord] = field(default_factory=list)
    conflicts: List[str] = field(default_factory=list)


class RegistrationStore:
    """High-level helper for the registration SQLite database."""

    DEFAULT_DB_PATH = Path("database/nmpa_registry.db")

    def __init__(
        self,
        db_path: Optional[Union[str, Path]] = None,
        auto_initialize: bool = True,
        timeout: float = 30.0,
    ) -> None:
        path = Path(db_path) if db_path else self.DEFAULT_DB_PATH
        if not path.is_absolute():
            path = Path.cwd() / path
        self.db_path = path
        self.timeout = timeout
        if auto_initialize:
            self.initialize()

    # ------------------------------------------------------------------
    # Lifecycle helpers
    # ------------------------------------------------------------------
    def initialize(self) -> None:
        """Create the database directory and schema if missing."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn, conn:
            self._apply_pragmas(conn)
            self._create_schema(conn)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @staticmethod
    def _apply_pragmas(conn: sqlite3.Connection) -> None:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA temp_store=MEMORY")

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS device_registration_records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                data_source TEXT NOT NULL,
                jd_country TEXT,
                registration_number TEXT NOT NULL,
                fei_number TEXT,
                device_name TEXT,
                proprietary_name TEXT,
                manufacturer_name TEXT,
                device_class TEXT,
                risk_class TEXT,
                status_code TEXT,
                created_date TEXT,
                risk_level TEXT,
                keywords TEXT,
                crawl_time TEXT,
                inserted_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            );

            CREATE UNIQUE INDEX IF NOT EXISTS uq_records_source_regno
                ON device_registration_records(data_source, registration_number);
            CREATE INDEX IF NOT EXISTS idx_records_regno
                ON device_registration_records(registration_number);
            CREATE INDEX IF NOT EXISTS idx_records_device_class
                ON device_registration_records(device_class);
            """
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def find_by_key(self, registration_number: str) -> List[CanonicalRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM device_registration_records WHERE registration_number = ?",
                (registration_number,),
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def find_by_data_source(self, data_source: str) -> List[CanonicalRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM device_registration_records WHERE data_source = ? ORDER BY id",
                (data_source,),
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def count(self) -> int:
        with self._connect() as conn:
            (total,) = conn.execute("SELECT COUNT(*) FROM device_registration_records").fetchone()
        return int(total)

    def count_by_data_source(self, data_source: str) -> int:
        with self._connect() as conn:
            (total,) = conn.execute(
                "SELECT COUNT(*) FROM device_registration_records WHERE data_source = ?",
                (data_source,),
            ).fetchone()
        return int(total)

    def group_counts(self, column: str, data_source: Optional[str] = None) -> Dict[str, int]:
        """Count records per distinct value of ``column``; NULL is reported as ``"unknown"``."""
        if column not in GROUPABLE_COLUMNS:
            raise ValueError(f"cannot group by {column!r}")
        query = [f"SELECT COALESCE({column}, 'unknown') AS bucket, COUNT(*) AS n FROM device_registration_records"]
        params: List[str] = []
        if data_source is not None:
            query.append("WHERE data_source = ?")
            params.append(data_source)
        query.append("GROUP BY bucket ORDER BY n DESC, bucket")
        with self._connect() as conn:
            rows = conn.execute(" ".join(query), params).fetchall()
        return {row["bucket"]: int(row["n"]) for row in rows}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def save_all(self, records: Sequence[CanonicalRecord]) -> SaveResult:
        """Insert all records in one transaction.

        Rows whose key already exists are left untouched and reported in
        ``conflicts``; the rest are committed together and returned with
        their new ids.
        """
        result = SaveResult()
        if not records:
            return result

        with self._connect() as conn, conn:
            for record in records:
                cur = conn.execute(
                    """
                    INSERT INTO device_registration_records (
                        data_source, jd_country, registration_number, fei_number,
                        device_name, proprietary_name, manufacturer_name, device_class,
                        risk_class, status_code, created_date, risk_level, keywords, crawl_time
                    ) VALUES (
                        :data_source, :jd_country, :registration_number, :fei_number,
                        :device_name, :proprietary_name, :manufacturer_name, :device_class,
                        :risk_class, :status_code, :created_date, :risk_level, :keywords, :crawl_time
                    )
                    ON CONFLICT(data_source, registration_number) DO NOTHING
                    """,
                    record.to_db_params(),
                )
                if cur.rowcount == 0:
                    result.conflicts.append(record.registration_number or "")
                    continue
                record.id = int(cur.lastrowid)
                result.saved.append(record)

        logger.info(f"Saved {len(result.saved)} records, {len(result.conflicts)} key conflicts")
        return result

    def delete_by_data_source(self, data_source: str) -> int:
        with self._connect() as conn, conn:
            cur = conn.execute(
                "DELETE FROM device_registration_records WHERE data_source = ?",
                (data_source,),
            )
            deleted = cur.rowcount
        return int(deleted)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> CanonicalRecord:
        keywords = row["keywords"]
        crawl_time = row["crawl_time"]
        return CanonicalRecord(
            id=int(row["id"]),
            data_source=row["data_source"],
            jd_country=row["jd_country"],
            registration_number=row["registration_number"],
            fei_number=row["fei_number"],
            device_name=row["device_name"],
            proprietary_name=row["proprietary_name"],
            manufacturer_name=row["manufacturer_name"],
            device_class=row["device_class"],
            risk_class=row["risk_class"],
            status_code=row["status_code"],
            created_date=row["created_date"],
            risk_level=RiskLevel(row["risk_level"]) if row["risk_level"] else RiskLevel.MEDIUM,
            keywords=keywords.split(";") if keywords else None,
            crawl_time=datetime.fromisoformat(crawl_time) if crawl_time else None,
        )


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="NMPA registry database helper")
    parser.add_argument("--init", action="store_true", help="Initialise the registry database schema")
    parser.add_argument("--db-path", help="Override database path", default=None)
    args = parser.parse_args(argv)

    store = RegistrationStore(db_path=args.db_path, auto_initialize=False)
    if args.init:
        store.initialize()
        print(f"Initialised registry database at {store.db_path}")
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
