"""Tests for presentation helpers."""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from transcript_mirror.display import (
    audio_file_exists,
    audio_path_to_file_path,
    format_duration,
    get_app_name,
    play_audio,
    truncate_text,
)


class TestGetAppName:
    def test_known_bundle_id(self) -> None:
        assert get_app_name("com.microsoft.VSCode") == "VS Code"

    def test_unknown_falls_back_to_last_component(self) -> None:
        assert get_app_name("com.example.Widget") == "Widget"

    def test_empty(self) -> None:
        assert get_app_name("") == "Unknown"


class TestFormatDuration:
    @pytest.mark.parametrize(
        "seconds,expected",
        [(0, "0s"), (45.2, "45s"), (60, "1m"), (120, "2m"), (125, "2m 5s"), (3599.9, "60m")],
    )
    def test_formats(self, seconds: float, expected: str) -> None:
        assert format_duration(seconds) == expected


class TestTruncateText:
    def test_short_text_unchanged(self) -> None:
        assert truncate_text("hello", 10) == "hello"

    def test_long_text_gets_ellipsis(self) -> None:
        result = truncate_text("hello world", 6)
        assert result == "hello…"
        assert len(result) == 6

    def test_empty(self) -> None:
        assert truncate_text("", 5) == ""


class TestAudioPaths:
    def test_file_uri_is_decoded(self) -> None:
        path = audio_path_to_file_path("file:///Users/me/Recordings/My%20Clip.m4a")
        assert path == Path("/Users/me/Recordings/My Clip.m4a")

    @pytest.mark.parametrize("value", [None, "", "/plain/path.m4a", "https://x/y.m4a"])
    def test_non_file_uri(self, value: str | None) -> None:
        assert audio_path_to_file_path(value) is None

    def test_existing_recording(self, temp_dir: Path) -> None:
        recording = temp_dir / "clip 1.m4a"
        recording.write_bytes(b"\x00")

        assert audio_file_exists(f"file://{temp_dir}/clip%201.m4a")

    def test_deleted_recording(self, temp_dir: Path) -> None:
        assert not audio_file_exists(f"file://{temp_dir}/gone.m4a")

    def test_play_missing_recording(self, temp_dir: Path) -> None:
        with pytest.raises(FileNotFoundError):
            play_audio(f"file://{temp_dir}/gone.m4a")

    def test_play_invokes_afplay(self, temp_dir: Path) -> None:
        recording = temp_dir / "clip.m4a"
        recording.write_bytes(b"\x00")

        with patch("transcript_mirror.display.subprocess.run") as run:
            play_audio(f"file://{recording}")

        run.assert_called_once_with(["afplay", str(recording)], check=True, capture_output=True)

    def test_play_failure_propagates(self, temp_dir: Path) -> None:
        recording = temp_dir / "clip.m4a"
        recording.write_bytes(b"\x00")

        with patch(
            "transcript_mirror.display.subprocess.run",
            side_effect=subprocess.CalledProcessError(1, "afplay"),
        ):
            with pytest.raises(subprocess.CalledProcessError):
                play_audio(f"file://{recording}")
