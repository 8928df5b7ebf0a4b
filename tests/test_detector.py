"""Tests for mtime-based change detection."""

import os
from pathlib import Path

import pytest

from transcript_mirror.detector import ChangeDetector, read_source_marker
from transcript_mirror.errors import MalformedSource, SourceUnavailable
from transcript_mirror.store import MirrorStore


class TestChangeDetector:
    """Tests for ChangeDetector.is_stale."""

    def test_stale_without_checkpoint(
        self, write_history, source_path: Path, store: MirrorStore
    ) -> None:
        write_history([], mtime=100.0)

        assert ChangeDetector(source_path, store).is_stale()

    def test_fresh_when_checkpoint_matches(
        self, write_history, source_path: Path, store: MirrorStore
    ) -> None:
        write_history([], mtime=100.25)
        store.set_checkpoint(100.25)

        assert not ChangeDetector(source_path, store).is_stale()

    def test_stale_when_mtime_moves_forward(
        self, write_history, source_path: Path, store: MirrorStore
    ) -> None:
        write_history([], mtime=100.0)
        store.set_checkpoint(100.0)

        os.utime(source_path, (200.0, 200.0))

        assert ChangeDetector(source_path, store).is_stale()

    def test_stale_when_mtime_moves_backward(
        self, write_history, source_path: Path, store: MirrorStore
    ) -> None:
        """Exact comparison: a rollback counts as a change."""
        write_history([], mtime=200.0)
        store.set_checkpoint(200.0)

        os.utime(source_path, (100.0, 100.0))

        assert ChangeDetector(source_path, store).is_stale()

    def test_missing_source_raises(self, source_path: Path, store: MirrorStore) -> None:
        detector = ChangeDetector(source_path, store)

        assert not detector.source_exists()
        with pytest.raises(SourceUnavailable):
            detector.is_stale()

    def test_has_no_side_effects(
        self, write_history, source_path: Path, store: MirrorStore
    ) -> None:
        write_history([], mtime=100.0)

        ChangeDetector(source_path, store).is_stale()

        assert store.get_checkpoint() is None
        assert store.count() == 0


def test_read_source_marker(write_history, source_path: Path) -> None:
    write_history([], mtime=1_234_567.75)

    assert read_source_marker(source_path) == 1_234_567.75


class TestInaccessibleSource:
    """History file present but stat() is refused (EPERM)."""

    def test_marker_raises_typed_error(
        self, write_history, source_path: Path, deny_source_access
    ) -> None:
        write_history([], mtime=100.0)

        with deny_source_access(), pytest.raises(MalformedSource) as exc_info:
            read_source_marker(source_path)

        assert isinstance(exc_info.value.__cause__, PermissionError)

    def test_counts_as_present(
        self, write_history, source_path: Path, store: MirrorStore, deny_source_access
    ) -> None:
        write_history([], mtime=100.0)
        detector = ChangeDetector(source_path, store)

        with deny_source_access():
            assert detector.source_exists()
            with pytest.raises(MalformedSource):
                detector.is_stale()


def test_file_in_place_of_directory_is_missing(temp_dir: Path, store: MirrorStore) -> None:
    (temp_dir / "Documents").write_text("x")
    detector = ChangeDetector(temp_dir / "Documents" / "transcription_history.json", store)

    assert not detector.source_exists()
    with pytest.raises(SourceUnavailable):
        detector.source_marker()
