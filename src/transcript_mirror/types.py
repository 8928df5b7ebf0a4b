"""Type definitions for Transcript Mirror.

Source-side types parse the recording application's JSON with pydantic;
mirror-side types are plain dataclasses built from SQLite rows.

- TranscriptStatus: normalized form of the {"completed": {}} /
  {"failedTranscription": {}} status encoding
- SourceKind: classification of sourceIdentifier (bundle id, URL, other)
- SourceRecord / TranscriptHistory: the history file's schema
- MirrorRow: one row of the transcripts table
- SyncOutcome: result of a sync attempt
"""

import re
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from transcript_mirror.constants import MACOS_EPOCH_OFFSET
from transcript_mirror.errors import MirrorError

_BUNDLE_ID_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9-]*(\.[a-zA-Z0-9-]+)+$")


class TranscriptStatus(str, Enum):
    """Outcome of a recording as reported by the recording application.

    - COMPLETED: transcription finished, text is usable
    - FAILED_TRANSCRIPTION: transcription failed
    - UNRECOGNIZED: any other status object (never mirrored)
    """

    COMPLETED = "completed"
    FAILED_TRANSCRIPTION = "failedTranscription"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def from_wire(cls, value: Any) -> "TranscriptStatus":
        """Normalize the wire encoding into a single variant.

        The wire format is an object whose single key names the variant,
        mapped to an empty object. A present "completed" key wins.

        Raises:
            ValueError: If value is not an object
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, dict):
            raise ValueError(f"status must be an object, got {type(value).__name__}")
        if value.get("completed") is not None:
            return cls.COMPLETED
        if value.get("failedTranscription") is not None:
            return cls.FAILED_TRANSCRIPTION
        return cls.UNRECOGNIZED


class SourceKind(str, Enum):
    """What a sourceIdentifier names."""

    BUNDLE_ID = "bundle_id"
    URL = "url"
    OTHER = "other"

    @classmethod
    def classify(cls, source_identifier: str) -> "SourceKind":
        """Classify a sourceIdentifier.

        Bundle IDs are reverse-domain notation like "com.apple.Safari".
        URLs are recognized by their http(s) scheme, which keeps hosts
        such as "https://example.com" out of the bundle id bucket.
        """
        if not source_identifier:
            return cls.OTHER
        if source_identifier.startswith(("http://", "https://")):
            return cls.URL
        if _BUNDLE_ID_PATTERN.match(source_identifier):
            return cls.BUNDLE_ID
        return cls.OTHER


def is_bundle_id(source_identifier: str) -> bool:
    """Check if a sourceIdentifier is a bundle ID (not a URL)."""
    return SourceKind.classify(source_identifier) is SourceKind.BUNDLE_ID


def macos_timestamp_to_datetime(timestamp: float) -> datetime:
    """Convert seconds since 2001-01-01 to an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp + MACOS_EPOCH_OFFSET, tz=timezone.utc)


class SourceRecord(BaseModel):
    """One entry of the history array, as written by the recording app.

    Attributes:
        id: Opaque identifier (not guaranteed unique across the file)
        text: Processed transcript body (absent for failed recordings)
        raw_text: Unprocessed transcript body
        timestamp: Seconds since 2001-01-01
        source_type: Origin classification reported by the app
        source_identifier: Bundle id or URL of the dictation target
        duration: Recording length in seconds
        audio_path: file:// URI of the recording, may be stale
        dictate_context: Context string captured by the app (not mirrored)
        status: Normalized recording status
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    text: Optional[str] = None
    raw_text: Optional[str] = Field(default=None, alias="rawText")
    timestamp: float
    source_type: str = Field(alias="sourceType")
    source_identifier: str = Field(alias="sourceIdentifier")
    duration: float
    audio_path: Optional[str] = Field(default=None, alias="audioPath")
    dictate_context: Optional[str] = Field(default=None, alias="dictateContext")
    status: TranscriptStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> TranscriptStatus:
        """Collapse the optional-keys encoding into TranscriptStatus."""
        return TranscriptStatus.from_wire(v)

    @property
    def is_valid(self) -> bool:
        """Eligible for mirroring: completed and carrying text."""
        return self.status is TranscriptStatus.COMPLETED and self.text is not None

    @property
    def effective_raw_text(self) -> Optional[str]:
        """rawText, falling back to text when absent."""
        return self.raw_text if self.raw_text is not None else self.text


class TranscriptHistory(BaseModel):
    """Top-level shape of transcription_history.json."""

    model_config = ConfigDict(extra="ignore")

    history: list[SourceRecord]


@dataclass(frozen=True)
class MirrorRow:
    """Immutable transcript row from the SQLite mirror.

    Attributes:
        id: Transcript identifier (primary key)
        text: Processed transcript body
        raw_text: Unprocessed body, never null (falls back to text)
        timestamp: Seconds since 2001-01-01
        source_type: Origin classification reported by the app
        source_identifier: Bundle id or URL of the dictation target
        source_kind: Classification of source_identifier
        duration: Recording length in seconds
        audio_path: file:// URI of the recording (None if not recorded)
        synced_at: Unix time of the sync that wrote this row
    """

    id: str
    text: str
    raw_text: str
    timestamp: float
    source_type: str
    source_identifier: str
    source_kind: SourceKind
    duration: float
    audio_path: str | None = None
    synced_at: float | None = None

    @classmethod
    def from_source(
        cls, record: SourceRecord, synced_at: float | None = None
    ) -> "MirrorRow":
        """Build a row from a valid SourceRecord.

        Raises:
            ValueError: If the record is not eligible for mirroring
        """
        if not record.is_valid:
            raise ValueError(f"Record {record.id} is not a completed transcript")
        return cls(
            id=record.id,
            text=record.text,  # type: ignore[arg-type]
            raw_text=record.effective_raw_text,  # type: ignore[arg-type]
            timestamp=record.timestamp,
            source_type=record.source_type,
            source_identifier=record.source_identifier,
            source_kind=SourceKind.classify(record.source_identifier),
            duration=record.duration,
            audio_path=record.audio_path,
            synced_at=synced_at,
        )

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "MirrorRow":
        """Create MirrorRow from a transcripts table row."""
        try:
            kind = SourceKind(row["source_kind"])
        except ValueError:
            kind = SourceKind.classify(row["source_identifier"])
        return cls(
            id=row["id"],
            text=row["text"],
            raw_text=row["raw_text"],
            timestamp=row["timestamp"],
            source_type=row["source_type"],
            source_identifier=row["source_identifier"],
            source_kind=kind,
            duration=row["duration"],
            audio_path=row["audio_path"],
            synced_at=row["synced_at"],
        )

    def to_params(self) -> tuple[Any, ...]:
        """Positional parameters matching the transcripts INSERT column order."""
        return (
            self.id,
            self.text,
            self.raw_text,
            self.timestamp,
            self.source_type,
            self.source_identifier,
            self.source_kind.value,
            self.duration,
            self.audio_path,
            self.synced_at,
        )

    @property
    def created_at(self) -> datetime:
        """Recording time as an aware UTC datetime."""
        return macos_timestamp_to_datetime(self.timestamp)

    @property
    def is_bundle_id(self) -> bool:
        return self.source_kind is SourceKind.BUNDLE_ID


@dataclass
class SyncOutcome:
    """Result of a sync attempt.

    Attributes:
        success: Whether the mirror reflects the source after the call
        row_count: Rows in the mirror after the call
        message: Human-readable summary
        skipped: True when the checkpoint matched and nothing was written
        error: Typed failure (if failed)
    """

    success: bool
    row_count: int = 0
    message: str = ""
    skipped: bool = False
    error: Optional[MirrorError] = None
