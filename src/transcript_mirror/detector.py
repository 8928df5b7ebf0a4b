"""Change detection for the transcription history file.

The history file offers no per-record change feed, so staleness is decided
from its modification time alone: the mirror is stale whenever the stored
checkpoint differs from the file's current mtime. Exact equality (rather
than "newer than") also treats an mtime rollback as a change.

A file that exists but cannot be stat'ed (macOS privacy protection on
another app's container answers EPERM) is reported as MalformedSource,
the same error the reader raises when it cannot read the bytes.
"""

import logging
import os
from pathlib import Path

from transcript_mirror.errors import MalformedSource, SourceUnavailable
from transcript_mirror.store import MirrorStore

logger = logging.getLogger(__name__)

# Errors from stat() that mean "nothing there"
_MISSING_ERRORS = (FileNotFoundError, NotADirectoryError)


def read_source_marker(source_path: Path) -> float:
    """Get the modification marker of the source document.

    Args:
        source_path: Path to transcription_history.json

    Returns:
        st_mtime of the file

    Raises:
        SourceUnavailable: If the file does not exist
        MalformedSource: If the file exists but cannot be accessed
    """
    try:
        return os.stat(source_path).st_mtime
    except _MISSING_ERRORS as e:
        raise SourceUnavailable(f"Transcription history not found at {source_path}") from e
    except OSError as e:
        raise MalformedSource(f"Cannot access transcription history: {e}") from e


class ChangeDetector:
    """Compares the source document's mtime with the mirror checkpoint.

    Attributes:
        source_path: Path to the source document
        _store: Mirror store holding the checkpoint
    """

    def __init__(self, source_path: Path, store: MirrorStore) -> None:
        self.source_path = source_path
        self._store = store

    def source_exists(self) -> bool:
        """Whether something is present at the source path.

        An inaccessible file counts as present; source_marker() then
        reports why it cannot be used.
        """
        try:
            os.stat(self.source_path)
        except _MISSING_ERRORS:
            return False
        except OSError as e:
            logger.debug(f"Transcription history present but not accessible: {e}")
        return True

    def source_marker(self) -> float:
        """Current modification marker of the source document.

        Raises:
            SourceUnavailable: If the file does not exist
            MalformedSource: If the file exists but cannot be accessed
        """
        return read_source_marker(self.source_path)

    def is_stale(self) -> bool:
        """Check whether the mirror needs rebuilding.

        Returns:
            True if no checkpoint exists or it differs from the source mtime

        Raises:
            SourceUnavailable: If the file does not exist
            MalformedSource: If the file exists but cannot be accessed
            StoreExecutionFailure: If the checkpoint cannot be read
        """
        marker = self.source_marker()
        checkpoint = self._store.get_checkpoint()
        stale = checkpoint is None or checkpoint != marker
        logger.debug(f"Source mtime {marker!r}, checkpoint {checkpoint!r}, stale={stale}")
        return stale
