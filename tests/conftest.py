"""Pytest configuration and shared fixtures for transcript_mirror tests.

This module provides reusable fixtures for testing:
- env_setup: (autouse) Clears TRANSCRIPT_MIRROR_* variables
- temp_dir: Temporary directory for file operations
- make_record: Factory for history entries in the wire format
- write_history: Writes a transcription_history.json with a chosen mtime
- store / mirror: MirrorStore and TranscriptSync on temporary paths
- deny_source_access: Context manager making stat() on the history file fail with EPERM
"""

import errno
import json
import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from transcript_mirror.store import MirrorStore
from transcript_mirror.sync import TranscriptSync

HistoryWriter = Callable[..., Path]
RecordFactory = Callable[..., dict[str, Any]]


@pytest.fixture(autouse=True)
def env_setup() -> Generator[None, None, None]:
    """Remove TRANSCRIPT_MIRROR_* variables so settings use their defaults."""
    original = {k: v for k, v in os.environ.items() if k.startswith("TRANSCRIPT_MIRROR_")}
    for key in original:
        del os.environ[key]
    yield
    for key in [k for k in os.environ if k.startswith("TRANSCRIPT_MIRROR_")]:
        del os.environ[key]
    os.environ.update(original)


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Temporary directory for test file operations."""
    return tmp_path


@pytest.fixture
def make_record() -> RecordFactory:
    """Build a history entry as the recording app writes it.

    Usage:
        make_record("a", text="hi")
        make_record("b", status="failedTranscription", text=None)
    """

    def _make(
        record_id: str,
        text: str | None = "hello",
        status: str = "completed",
        timestamp: float = 0.0,
        source_identifier: str = "com.apple.Terminal",
        duration: float = 1.5,
        **extra: Any,
    ) -> dict[str, Any]:
        record: dict[str, Any] = {
            "id": record_id,
            "timestamp": timestamp,
            "sourceType": "app",
            "sourceIdentifier": source_identifier,
            "duration": duration,
            "status": {status: {}},
        }
        if text is not None:
            record["text"] = text
        record.update(extra)
        return record

    return _make


@pytest.fixture
def source_path(temp_dir: Path) -> Path:
    """Location of the history file (not created until write_history runs)."""
    return temp_dir / "Documents" / "transcription_history.json"


@pytest.fixture
def database_path(temp_dir: Path) -> Path:
    return temp_dir / "support" / "transcripts.sqlite"


@pytest.fixture
def write_history(source_path: Path) -> HistoryWriter:
    """Write transcription_history.json.

    Args (of the returned callable):
        records: History entries
        mtime: Modification time to set (default: leave as written)
        raw: Write this string verbatim instead of a history document
    """

    def _write(
        records: list[dict[str, Any]] | None = None,
        mtime: float | None = None,
        raw: str | None = None,
    ) -> Path:
        source_path.parent.mkdir(parents=True, exist_ok=True)
        if raw is not None:
            source_path.write_text(raw, encoding="utf-8")
        else:
            source_path.write_text(json.dumps({"history": records or []}), encoding="utf-8")
        if mtime is not None:
            os.utime(source_path, (mtime, mtime))
        return source_path

    return _write


@pytest.fixture
def store(database_path: Path) -> Generator[MirrorStore, None, None]:
    """Open MirrorStore on a temporary database file."""
    s = MirrorStore(database_path)
    s.open()
    yield s
    s.close()


@pytest.fixture
def mirror(source_path: Path, database_path: Path) -> Generator[TranscriptSync, None, None]:
    """TranscriptSync wired to temporary source and database paths."""
    m = TranscriptSync(source_path=source_path, database_path=database_path)
    yield m
    m.close()


@pytest.fixture
def deny_source_access(source_path: Path) -> Callable[[], Any]:
    """Make stat() on the history file fail the way macOS privacy protection does.

    Usage:
        with deny_source_access():
            mirror.sync()

    Other paths are stat'ed normally.
    """
    real_stat = os.stat

    def _stat(path: Any, *args: Any, **kwargs: Any) -> os.stat_result:
        if isinstance(path, (str, os.PathLike)) and Path(path) == source_path:
            raise PermissionError(errno.EPERM, "Operation not permitted", str(path))
        return real_stat(path, *args, **kwargs)

    def _deny() -> Any:
        return patch("transcript_mirror.detector.os.stat", side_effect=_stat)

    return _deny
