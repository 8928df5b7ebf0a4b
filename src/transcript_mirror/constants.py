"""Transcript Mirror constants.

Split into two categories:
1. PATHS: Fixed locations derived from the user's home directory
2. HARDCODED: Implementation details that don't change
"""

from pathlib import Path

# =============================================================================
# PATHS
# =============================================================================

# Written by the recording application, never by us
SOURCE_PATH = (
    Path.home()
    / "Library/Containers/com.zeitalabs.JottleAI/Data/Documents/transcription_history.json"
)

DATABASE_DIR = (
    Path.home() / "Library/Application Support/com.raycast.macos/extensions/monologue"
)
DATABASE_PATH = DATABASE_DIR / "transcripts.sqlite"

# =============================================================================
# HARDCODED CONSTANTS (implementation details)
# =============================================================================

# Apple reference date (2001-01-01) expressed as a Unix timestamp
MACOS_EPOCH_OFFSET = 978307200

# sync_metadata key holding the last mirrored source mtime
CHECKPOINT_KEY = "json_mtime"

# How long a connection waits on a held write lock before giving up
DEFAULT_BUSY_TIMEOUT_MS = 5000

# Companion files SQLite creates next to the database in WAL mode
SQLITE_SIDECAR_SUFFIXES = ("-wal", "-shm")

NOT_INSTALLED_MESSAGE = "Monologue not installed or no transcription history"

# Friendly names for common bundle identifiers
APP_NAMES: dict[str, str] = {
    "com.mitchellh.ghostty": "Ghostty",
    "com.apple.Safari": "Safari",
    "com.google.Chrome": "Chrome",
    "com.microsoft.VSCode": "VS Code",
    "com.apple.dt.Xcode": "Xcode",
    "com.apple.Terminal": "Terminal",
    "com.googlecode.iterm2": "iTerm",
    "com.apple.finder": "Finder",
    "com.apple.mail": "Mail",
    "com.apple.Notes": "Notes",
    "com.apple.iWork.Pages": "Pages",
    "com.slack.Slack": "Slack",
    "com.tinyspeck.slackmacgap": "Slack",
    "com.brave.Browser": "Brave",
    "org.mozilla.firefox": "Firefox",
    "com.figma.Desktop": "Figma",
    "notion.id": "Notion",
    "com.linear": "Linear",
    "md.obsidian": "Obsidian",
}
