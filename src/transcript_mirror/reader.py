"""Reader and validator for transcription_history.json.

Parses the whole document once, keeps only completed transcripts that carry
text, and converts them into MirrorRow objects ready for
MirrorStore.replace_all(). Dropped records are routine (failed or in-flight
recordings) and are only counted, never reported as errors.
"""

import logging
import time
from pathlib import Path

from pydantic import ValidationError

from transcript_mirror.detector import read_source_marker
from transcript_mirror.errors import MalformedSource, SourceUnavailable
from transcript_mirror.types import MirrorRow, TranscriptHistory

logger = logging.getLogger(__name__)


class SourceReader:
    """Reads the source document into mirror rows.

    Attributes:
        source_path: Path to transcription_history.json
    """

    def __init__(self, source_path: Path) -> None:
        self.source_path = source_path

    def read_history(self) -> TranscriptHistory:
        """Parse the source document.

        Returns:
            Parsed history with every record, valid or not

        Raises:
            SourceUnavailable: If the file does not exist
            MalformedSource: If the file cannot be read or fails schema validation
        """
        try:
            data = self.source_path.read_bytes()
        except FileNotFoundError as e:
            raise SourceUnavailable(f"Transcription history not found at {self.source_path}") from e
        except OSError as e:
            raise MalformedSource(f"Failed to read transcription history: {e}") from e

        try:
            return TranscriptHistory.model_validate_json(data)
        except ValidationError as e:
            raise MalformedSource(
                f"Transcription history does not match the expected schema: "
                f"{e.error_count()} error(s), first: {_first_error(e)}"
            ) from e

    def read_valid_records(
        self, synced_at: float | None = None
    ) -> tuple[list[MirrorRow], float]:
        """Read the source and keep only mirrorable records.

        The mtime is captured before reading so that a write landing while
        we parse leaves the mirror stale instead of wrongly current.

        Args:
            synced_at: Sync time stamped on every row (default: now)

        Returns:
            Tuple of (rows in file order, observed modification marker)

        Raises:
            SourceUnavailable: If the file does not exist
            MalformedSource: If the file fails to parse
        """
        marker = read_source_marker(self.source_path)
        history = self.read_history()
        stamp = time.time() if synced_at is None else synced_at

        rows = [
            MirrorRow.from_source(record, synced_at=stamp)
            for record in history.history
            if record.is_valid
        ]

        dropped = len(history.history) - len(rows)
        if dropped:
            logger.debug(f"Skipped {dropped} records without completed text")
        logger.debug(f"Read {len(rows)} valid records from {self.source_path}")
        return rows, marker


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "<root>"
    return f"{location}: {first['msg']}"
