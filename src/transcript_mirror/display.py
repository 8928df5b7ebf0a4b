"""Presentation helpers for mirrored transcripts.

Friendly app names, durations, truncation and audio file lookup. The
recording application stores audio locations as file:// URIs that may
point at recordings which have since been deleted.
"""

import subprocess
from pathlib import Path
from urllib.parse import unquote

from transcript_mirror.constants import APP_NAMES


def get_app_name(bundle_id: str) -> str:
    """Map a bundle id to a friendly app name.

    Unknown ids fall back to their last dotted component.
    """
    if not bundle_id:
        return "Unknown"
    return APP_NAMES.get(bundle_id) or bundle_id.split(".")[-1] or bundle_id


def format_duration(seconds: float) -> str:
    """Format seconds as "45s", "2m" or "2m 5s"."""
    if seconds < 60:
        return f"{round(seconds)}s"
    mins = int(seconds // 60)
    secs = round(seconds % 60)
    if secs == 60:
        mins, secs = mins + 1, 0
    return f"{mins}m {secs}s" if secs > 0 else f"{mins}m"


def truncate_text(text: str, max_length: int) -> str:
    """Shorten text to max_length characters, ending with an ellipsis."""
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[: max_length - 1] + "…"


def audio_path_to_file_path(audio_path: str | None) -> Path | None:
    """Convert a file:// URI to a filesystem path.

    Returns:
        Decoded path, or None for anything that is not a file:// URI
    """
    if not audio_path or not audio_path.startswith("file://"):
        return None
    return Path(unquote(audio_path[len("file://") :]))


def audio_file_exists(audio_path: str | None) -> bool:
    """Check whether the recording behind a file:// URI is still on disk."""
    path = audio_path_to_file_path(audio_path)
    return path is not None and path.is_file()


def play_audio(audio_path: str) -> None:
    """Play a recording via afplay (macOS).

    Args:
        audio_path: file:// URI of the recording

    Raises:
        FileNotFoundError: If the recording no longer exists
        subprocess.CalledProcessError: If playback fails
    """
    path = audio_path_to_file_path(audio_path)
    if path is None or not path.is_file():
        raise FileNotFoundError(f"Audio file not found: {audio_path}")
    subprocess.run(["afplay", str(path)], check=True, capture_output=True)
