"""Transcript Mirror - SQLite mirror of a voice-transcription history file.

Keeps a local SQLite copy of the recording application's
transcription_history.json so a launcher can page and filter transcripts
without parsing the whole JSON document on every activation.
"""

__version__ = "0.3.0"
__all__ = ["__version__"]
