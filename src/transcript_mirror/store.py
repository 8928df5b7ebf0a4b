"""SQLite storage layer for the transcript mirror.

This module owns the mirror database:
- Schema for the transcripts table and the sync_metadata table
- Connection setup (WAL journal, busy timeout)
- The only two mutating operations: full transactional replace and
  checkpoint write

Readers on other connections keep seeing the previous generation of the
mirror until replace_all() commits. WAL mode lets those reads run while
the replace holds its exclusive transaction. Threads sharing one
MirrorStore share its connection, so every statement path takes the
store's lock; a same-store read issued during a replace waits for the
commit.

Example:
    >>> store = MirrorStore(Path("~/transcripts.sqlite").expanduser())
    >>> store.open()
    >>> store.replace_all(rows)
    >>> store.set_checkpoint(1718000000.25)
"""

import logging
import sqlite3
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Optional

from transcript_mirror.constants import (
    CHECKPOINT_KEY,
    DEFAULT_BUSY_TIMEOUT_MS,
    SQLITE_SIDECAR_SUFFIXES,
)
from transcript_mirror.errors import (
    StoreExecutionFailure,
    StoreOpenFailure,
    StorePrepareFailure,
)
from transcript_mirror.types import MirrorRow

logger = logging.getLogger(__name__)

_INSERT_SQL = """
    INSERT OR REPLACE INTO transcripts (
        id, text, raw_text, timestamp, source_type, source_identifier,
        source_kind, duration, audio_path, synced_at
    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""


class MirrorStore:
    """SQLite mirror of the transcription history.

    Args:
        db_path: Path to database file
        busy_timeout_ms: How long to wait on a held lock before failing

    Attributes:
        db_path: Path to database file
        busy_timeout_ms: Lock wait in milliseconds
        _conn: SQLite connection (None until open() is called)
        _lock: Serializes use of _conn across threads
    """

    def __init__(
        self,
        db_path: Path,
        busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
    ) -> None:
        self.db_path = db_path
        self.busy_timeout_ms = busy_timeout_ms
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    def __enter__(self) -> "MirrorStore":
        self.open()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> None:
        """Open (or create) the database and ensure the schema exists.

        Safe to call more than once.

        Raises:
            StoreOpenFailure: If the file cannot be opened or initialized
        """
        with self._lock:
            if self._conn is None:
                self._conn = self._connect()
                logger.debug(f"Opened mirror database at {self.db_path}")

    def _connect(self) -> sqlite3.Connection:
        conn: Optional[sqlite3.Connection] = None
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

            # isolation_level=None: transactions are issued explicitly
            conn = sqlite3.connect(
                str(self.db_path),
                timeout=self.busy_timeout_ms / 1000,
                isolation_level=None,
                check_same_thread=False,
            )
            # WAL lets readers proceed while replace_all holds the write lock
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout_ms)}")
            conn.row_factory = sqlite3.Row

            self._init_schema(conn)
        except Exception as e:
            if conn is not None:
                conn.close()
            raise StoreOpenFailure(f"Failed to open mirror database {self.db_path}: {e}") from e
        return conn

    def _init_schema(self, conn: sqlite3.Connection) -> None:
        """Initialize database schema."""
        cursor = conn.cursor()

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS transcripts (
                id TEXT PRIMARY KEY,
                text TEXT NOT NULL,
                raw_text TEXT NOT NULL,
                timestamp REAL NOT NULL,
                source_type TEXT NOT NULL,
                source_identifier TEXT NOT NULL,
                source_kind TEXT NOT NULL DEFAULT 'other',
                duration REAL NOT NULL,
                audio_path TEXT,
                synced_at REAL
            )
        """
        )

        # Substring search fallback (no FTS5 in the launcher's SQLite)
        cursor.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_transcripts_text
            ON transcripts(text)
        """
        )
        cursor.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_transcripts_timestamp
            ON transcripts(timestamp DESC)
        """
        )
        cursor.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_transcripts_source
            ON transcripts(source_identifier)
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS sync_metadata (
                key TEXT PRIMARY KEY,
                value TEXT
            )
        """
        )

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    def delete_files(self) -> None:
        """Close and remove the database file and its WAL companions."""
        with self._lock:
            self.close()
            for path in [self.db_path] + [
                self.db_path.with_name(self.db_path.name + suffix)
                for suffix in SQLITE_SIDECAR_SUFFIXES
            ]:
                path.unlink(missing_ok=True)
        logger.info(f"Deleted mirror database at {self.db_path}")

    @property
    def connection(self) -> sqlite3.Connection:
        """Open connection, opening the store on first use.

        Callers on more than one thread must hold the store's lock while
        using it; the store's own methods already do.
        """
        if self._conn is None:
            self.open()
        assert self._conn is not None
        return self._conn

    # =========================================================================
    # Mirror Replace
    # =========================================================================

    def replace_all(self, rows: Iterable[MirrorRow]) -> int:
        """Replace every transcript row in one exclusive transaction.

        Rows sharing an id collapse to one; the last one wins. On any
        failure the transaction is rolled back and the previous rows stay
        visible. Another thread using this store waits until the replace
        has committed or rolled back.

        Args:
            rows: New mirror contents

        Returns:
            Number of rows in the committed mirror

        Raises:
            StorePrepareFailure: If a statement could not be prepared or bound
            StoreExecutionFailure: If the transaction failed
        """
        with self._lock:
            conn = self.connection
            try:
                conn.execute("BEGIN EXCLUSIVE")
            except Exception as e:
                raise StoreExecutionFailure(f"Failed to begin replace transaction: {e}") from e

            inserted = 0
            try:
                conn.execute("DELETE FROM transcripts")
                for row in rows:
                    conn.execute(_INSERT_SQL, row.to_params())
                    inserted += 1
                count = conn.execute("SELECT COUNT(*) FROM transcripts").fetchone()[0]
                conn.execute("COMMIT")
            except sqlite3.ProgrammingError as e:
                self._rollback(conn)
                raise StorePrepareFailure(f"Failed to prepare transcript insert: {e}") from e
            except Exception as e:
                self._rollback(conn)
                raise StoreExecutionFailure(
                    f"Replace failed after {inserted} inserts, mirror unchanged: {e}"
                ) from e

        logger.debug(f"Replaced mirror with {count} rows from {inserted} inserts")
        return int(count)

    def _rollback(self, conn: sqlite3.Connection) -> None:
        # SQLite rolls back on its own after some errors (e.g. SQLITE_FULL)
        if conn.in_transaction:
            conn.execute("ROLLBACK")

    # =========================================================================
    # Checkpoint
    # =========================================================================

    def get_checkpoint(self) -> float | None:
        """Get the source modification marker the mirror reflects.

        Returns:
            The stored marker, or None if never synced or unreadable
        """
        row = self.fetch_one(
            "SELECT value FROM sync_metadata WHERE key = ?",
            (CHECKPOINT_KEY,),
        )
        if row is None or row["value"] is None:
            return None
        try:
            return float(row["value"])
        except ValueError:
            logger.warning(f"Ignoring unparsable checkpoint value {row['value']!r}")
            return None

    def set_checkpoint(self, marker: float) -> None:
        """Record the source modification marker the mirror now reflects.

        Stored as repr() text so the float round-trips exactly.

        Raises:
            StoreExecutionFailure: If the write fails
        """
        try:
            with self._lock:
                self.connection.execute(
                    "INSERT OR REPLACE INTO sync_metadata (key, value) VALUES (?, ?)",
                    (CHECKPOINT_KEY, repr(float(marker))),
                )
        except Exception as e:
            raise StoreExecutionFailure(f"Failed to update sync metadata: {e}") from e

    # =========================================================================
    # Reads
    # =========================================================================

    def count(self) -> int:
        """Count mirrored transcripts."""
        row = self.fetch_one("SELECT COUNT(*) AS count FROM transcripts")
        return int(row["count"]) if row else 0

    def fetch_one(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Row | None:
        """Run a read-only statement and return the first row, if any.

        Raises:
            StoreExecutionFailure: If the query fails (e.g. lock wait timed out)
        """
        try:
            with self._lock:
                return self.connection.execute(sql, params).fetchone()
        except sqlite3.Error as e:
            raise StoreExecutionFailure(f"Query failed: {e}") from e

    def fetch_all(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        """Run a read-only statement and return every row."""
        try:
            with self._lock:
                return self.connection.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StoreExecutionFailure(f"Query failed: {e}") from e
