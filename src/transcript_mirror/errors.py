"""Error taxonomy for Transcript Mirror.

- SourceUnavailable: history file missing (recording app not installed)
- MalformedSource: history file present but not the documented shape
- StoreError: SQLite failures, typed by the phase they happened in
  (open, prepare, execute)

Records dropped for a failed status or missing text are not errors and
never raise.
"""


class MirrorError(Exception):
    """Base class for all typed mirror failures."""

    pass


class SourceUnavailable(MirrorError):
    """The source history document does not exist."""

    pass


class MalformedSource(MirrorError):
    """The source history document exists but fails to parse."""

    pass


class StoreError(MirrorError):
    """SQLite mirror failure.

    Attributes:
        phase: Where the failure happened ("open", "prepare" or "execute")
    """

    phase = "execute"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"[{self.phase}] {self.message}"


class StoreOpenFailure(StoreError):
    """The database file could not be opened or its schema created."""

    phase = "open"


class StorePrepareFailure(StoreError):
    """A mutating statement could not be prepared."""

    phase = "prepare"


class StoreExecutionFailure(StoreError):
    """A mutating statement failed while executing."""

    phase = "execute"
