"""Persistence of application records and the sync watermark in SQLite."""

import logging
import sqlite3
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .models import ApplicationRecord

logger = logging.getLogger(__name__)

DB_PATH = Path(__file__).parent.parent / "data" / "careercrm.sqlite"

WATERMARK_KEY = "last_sync_timestamp"


class RecordStore:
    """Whole-collection load/save of records plus the watermark."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or DB_PATH
        self.init_db()

    def get_connection(self) -> sqlite3.Connection:
        """Get SQLite database connection."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Initialize database schema."""
        conn = self.get_connection()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS applications (
                    id TEXT PRIMARY KEY,
                    position INTEGER NOT NULL,
                    payload TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS sync_state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            conn.commit()
            logger.debug("Database initialized")
        finally:
            conn.close()

    def load(self) -> list[ApplicationRecord]:
        """Load all records in insertion order, skipping rows that fail to decode."""
        conn = self.get_connection()
        try:
            cursor = conn.execute("SELECT id, payload FROM applications ORDER BY position")
            rows = cursor.fetchall()
        finally:
            conn.close()

        records = []
        for row in rows:
            try:
                records.append(ApplicationRecord.model_validate_json(row["payload"]))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable record {row['id']}: {e}")
        return records

    def load_watermark(self) -> int:
        """Get the last committed sync timestamp in ms; 0 means never synced."""
        conn = self.get_connection()
        try:
            cursor = conn.execute(
                "SELECT value FROM sync_state WHERE key = ?", (WATERMARK_KEY,)
            )
            row = cursor.fetchone()
        finally:
            conn.close()

        if row is None:
            return 0
        try:
            return int(row["value"])
        except ValueError:
            logger.warning(f"Ignoring unreadable watermark {row['value']!r}")
            return 0

    def _write_records(self, conn: sqlite3.Connection, records: list[ApplicationRecord]) -> None:
        conn.execute("DELETE FROM applications")
        conn.executemany(
            "INSERT INTO applications (id, position, payload) VALUES (?, ?, ?)",
            [(r.id, i, r.model_dump_json()) for i, r in enumerate(records)],
        )

    def _write_watermark(self, conn: sqlite3.Connection, watermark: int) -> None:
        conn.execute(
            "INSERT OR REPLACE INTO sync_state (key, value) VALUES (?, ?)",
            (WATERMARK_KEY, str(watermark)),
        )

    def save(self, records: list[ApplicationRecord]) -> None:
        """Overwrite the whole record collection."""
        conn = self.get_connection()
        try:
            with conn:
                self._write_records(conn, records)
            logger.debug(f"Saved {len(records)} records")
        finally:
            conn.close()

    def save_watermark(self, watermark: int) -> None:
        conn = self.get_connection()
        try:
            with conn:
                self._write_watermark(conn, watermark)
            logger.debug(f"Saved watermark {watermark}")
        finally:
            conn.close()

    def commit(self, records: list[ApplicationRecord], watermark: int) -> None:
        """Replace the collection and advance the watermark in one transaction."""
        conn = self.get_connection()
        try:
            with conn:
                self._write_records(conn, records)
                self._write_watermark(conn, watermark)
            logger.info(f"Committed {len(records)} records at watermark {watermark}")
        finally:
            conn.close()

    def wipe(self) -> None:
        """Delete all records and the watermark."""
        conn = self.get_connection()
        try:
            with conn:
                conn.execute("DELETE FROM applications")
                conn.execute("DELETE FROM sync_state")
            logger.info("Wiped all local data")
        finally:
            conn.close()
