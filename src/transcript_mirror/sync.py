"""Sync orchestrator for the transcript mirror.

Coordinates ChangeDetector -> SourceReader -> MirrorStore into one
idempotent operation:

1. Missing history file: report "not installed" (not an exception)
2. Checkpoint equals the file's mtime: no-op, report current row count
3. Otherwise: parse, replace the mirror transactionally, then write the
   checkpoint

A failure in step 3 leaves the previous mirror and checkpoint untouched.
Typed failures come back inside SyncOutcome.error rather than raising.
Overlapping sync() or force_sync() calls on one orchestrator run one at a
time; the later call sees the checkpoint the earlier one wrote.

Example:
    >>> with TranscriptSync.from_settings(MirrorSettings()) as mirror:
    ...     outcome = mirror.sync()
    ...     latest = mirror.queries().latest()
"""

import logging
import threading
from pathlib import Path
from typing import Any, Optional

from transcript_mirror.config import MirrorSettings
from transcript_mirror.constants import DEFAULT_BUSY_TIMEOUT_MS, NOT_INSTALLED_MESSAGE
from transcript_mirror.detector import ChangeDetector
from transcript_mirror.errors import MirrorError, SourceUnavailable
from transcript_mirror.queries import TranscriptQueries
from transcript_mirror.reader import SourceReader
from transcript_mirror.store import MirrorStore
from transcript_mirror.types import SyncOutcome

logger = logging.getLogger(__name__)


class TranscriptSync:
    """Keeps the SQLite mirror in step with the history file.

    Args:
        source_path: Path to transcription_history.json
        database_path: Path to the mirror database
        busy_timeout_ms: SQLite lock wait in milliseconds

    Attributes:
        source_path: Path to the source document
        database_path: Path to the mirror database
        _store: Mirror store, opened lazily
        _detector: Change detector bound to _store
        _reader: Source reader
        _sync_lock: Serializes sync() and force_sync()
    """

    def __init__(
        self,
        source_path: Path,
        database_path: Path,
        busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
    ) -> None:
        self.source_path = source_path
        self.database_path = database_path
        self._store = MirrorStore(database_path, busy_timeout_ms=busy_timeout_ms)
        self._detector = ChangeDetector(source_path, self._store)
        self._reader = SourceReader(source_path)
        self._sync_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Optional[MirrorSettings] = None) -> "TranscriptSync":
        """Create an orchestrator from MirrorSettings (environment by default)."""
        settings = settings or MirrorSettings()
        return cls(
            source_path=settings.get_source_path(),
            database_path=settings.get_database_path(),
            busy_timeout_ms=settings.busy_timeout_ms,
        )

    def __enter__(self) -> "TranscriptSync":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the mirror database connection."""
        self._store.close()

    @property
    def store(self) -> MirrorStore:
        return self._store

    def get_database_path(self) -> Path:
        return self.database_path

    def queries(self) -> TranscriptQueries:
        """Query surface over the mirror (does not sync)."""
        return TranscriptQueries(self._store)

    # =========================================================================
    # Sync Operations
    # =========================================================================

    def needs_sync(self) -> bool:
        """Check whether sync() would rebuild the mirror.

        Returns:
            False if the history file is absent (nothing to mirror),
            otherwise whether the checkpoint differs from the file's mtime

        Raises:
            MalformedSource: If the history file exists but cannot be accessed
            StoreError: If the mirror database cannot be opened or read
        """
        if not self._detector.source_exists():
            return False
        try:
            return self._detector.is_stale()
        except SourceUnavailable:
            # Removed between the existence check and the stat
            return False

    def sync(self) -> SyncOutcome:
        """Bring the mirror up to date if the history file changed.

        Returns:
            SyncOutcome describing what happened
        """
        with self._sync_lock:
            return self._sync()

    def _sync(self) -> SyncOutcome:
        if not self._detector.source_exists():
            logger.info(f"No transcription history at {self.source_path}")
            return self._not_installed()

        try:
            marker = self._detector.source_marker()
            checkpoint = self._store.get_checkpoint()
            if checkpoint is not None and checkpoint == marker:
                count = self._store.count()
                logger.debug(f"Mirror already in sync ({count} transcripts)")
                return SyncOutcome(
                    success=True,
                    row_count=count,
                    message="Already in sync",
                    skipped=True,
                )
            return self._rebuild("Synced")
        except SourceUnavailable:
            return self._not_installed()
        except MirrorError as e:
            return self._failed(e)

    def force_sync(self) -> SyncOutcome:
        """Discard the mirror database and rebuild it from scratch.

        Recovery path for a corrupted or schema-damaged database: the file
        and its WAL companions are deleted before reopening.

        Returns:
            SyncOutcome describing what happened
        """
        with self._sync_lock:
            return self._force_sync()

    def _force_sync(self) -> SyncOutcome:
        # The existing mirror is only discarded once the source is usable
        try:
            self._detector.source_marker()
        except SourceUnavailable:
            return self._not_installed()
        except MirrorError as e:
            return self._failed(e)

        try:
            self._store.delete_files()
        except OSError as e:
            logger.error(f"Could not delete mirror database {self.database_path}: {e}")
            return SyncOutcome(
                success=False,
                message=f"Could not delete mirror database: {e}",
            )

        try:
            return self._rebuild("Force synced")
        except SourceUnavailable:
            return self._not_installed()
        except MirrorError as e:
            return self._failed(e)

    def _rebuild(self, verb: str) -> SyncOutcome:
        """Read, replace and checkpoint.

        The checkpoint is written only after replace_all() has committed.
        """
        rows, marker = self._reader.read_valid_records()
        count = self._store.replace_all(rows)
        self._store.set_checkpoint(marker)
        logger.info(f"{verb} {count} transcripts from {self.source_path}")
        return SyncOutcome(success=True, row_count=count, message=f"{verb} {count} transcripts")

    def _not_installed(self) -> SyncOutcome:
        return SyncOutcome(
            success=False,
            row_count=0,
            message=NOT_INSTALLED_MESSAGE,
            error=SourceUnavailable(NOT_INSTALLED_MESSAGE),
        )

    def _failed(self, error: MirrorError) -> SyncOutcome:
        logger.warning(f"Sync failed: {error}")
        return SyncOutcome(
            success=False,
            row_count=self._previous_count(),
            message=f"Sync failed: {error}",
            error=error,
        )

    def _previous_count(self) -> int:
        # Rows still served from the last committed generation
        try:
            return self._store.count()
        except MirrorError:
            return 0
