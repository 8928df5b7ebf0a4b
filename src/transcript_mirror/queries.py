"""Read-only queries against the transcript mirror.

Every statement is parameterized and runs outside any write transaction,
so it is safe to issue while another connection is inside replace_all().
Free-text search over an already loaded page is left to the caller; the
LIKE-based search here is the server-side fallback for narrowing by source
or by terms without loading everything.
"""

import logging
from typing import Any

from transcript_mirror.store import MirrorStore
from transcript_mirror.types import MirrorRow, SourceKind

logger = logging.getLogger(__name__)

_COLUMNS = """
    id, text, raw_text, timestamp, source_type, source_identifier,
    source_kind, duration, audio_path, synced_at
"""

ALL_TRANSCRIPTS = f"SELECT {_COLUMNS} FROM transcripts ORDER BY timestamp DESC"

BY_SOURCE = f"""
    SELECT {_COLUMNS}
    FROM transcripts
    WHERE source_identifier = ?
    ORDER BY timestamp DESC
"""

UNIQUE_SOURCES = """
    SELECT DISTINCT source_identifier
    FROM transcripts
    WHERE source_identifier IS NOT NULL AND source_identifier != ''
    ORDER BY source_identifier
"""

UNIQUE_BUNDLE_SOURCES = """
    SELECT DISTINCT source_identifier
    FROM transcripts
    WHERE source_kind = ? AND source_identifier != ''
    ORDER BY source_identifier
"""

LAST_TRANSCRIPT = f"{ALL_TRANSCRIPTS} LIMIT 1"

BY_ID_PREFIX = f"""
    SELECT {_COLUMNS}
    FROM transcripts
    WHERE id LIKE ? ESCAPE '\\'
    ORDER BY timestamp DESC
    LIMIT ?
"""

COUNT = "SELECT COUNT(*) AS count FROM transcripts"

# One clause per search term; every term must match
_TERM_CLAUSE = "(text LIKE ? ESCAPE '\\' OR raw_text LIKE ? ESCAPE '\\')"


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _paginate(sql: str, params: list[Any], limit: int | None, offset: int) -> str:
    # SQLite needs a LIMIT before OFFSET; -1 means unbounded
    if limit is None and not offset:
        return sql
    params.extend([-1 if limit is None else limit, offset])
    return f"{sql} LIMIT ? OFFSET ?"


class TranscriptQueries:
    """Query surface consumed by the presentation layer.

    Attributes:
        _store: Open MirrorStore
    """

    def __init__(self, store: MirrorStore) -> None:
        self._store = store

    def all(self, limit: int | None = None, offset: int = 0) -> list[MirrorRow]:
        """List transcripts newest first.

        Args:
            limit: Maximum results (None for all)
            offset: Number of results to skip

        Returns:
            List of MirrorRow objects
        """
        params: list[Any] = []
        sql = _paginate(ALL_TRANSCRIPTS, params, limit, offset)
        return [MirrorRow.from_row(row) for row in self._store.fetch_all(sql, tuple(params))]

    def by_source(
        self,
        source_identifier: str,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[MirrorRow]:
        """List transcripts dictated into one app or site, newest first.

        Args:
            source_identifier: Exact bundle id or URL
            limit: Maximum results (None for all)
            offset: Number of results to skip

        Returns:
            List of MirrorRow objects
        """
        params: list[Any] = [source_identifier]
        sql = _paginate(BY_SOURCE, params, limit, offset)
        return [MirrorRow.from_row(row) for row in self._store.fetch_all(sql, tuple(params))]

    def sources(self, bundle_ids_only: bool = False) -> list[str]:
        """Distinct non-empty source identifiers, sorted.

        Args:
            bundle_ids_only: Leave out URLs and unclassified identifiers

        Returns:
            List of source identifiers
        """
        if bundle_ids_only:
            rows = self._store.fetch_all(UNIQUE_BUNDLE_SOURCES, (SourceKind.BUNDLE_ID.value,))
        else:
            rows = self._store.fetch_all(UNIQUE_SOURCES)
        return [row["source_identifier"] for row in rows]

    def latest(self) -> MirrorRow | None:
        """Most recent transcript, or None if the mirror is empty."""
        row = self._store.fetch_one(LAST_TRANSCRIPT)
        return MirrorRow.from_row(row) if row else None

    def count(self) -> int:
        row = self._store.fetch_one(COUNT)
        return int(row["count"]) if row else 0

    def search(
        self,
        text: str,
        source_identifier: str | None = None,
        limit: int | None = None,
    ) -> list[MirrorRow]:
        """Substring search over text and raw_text.

        The input is split on whitespace and every term must appear in
        either column. Matching is case-insensitive for ASCII.

        Args:
            text: Search terms
            source_identifier: Optional exact source filter
            limit: Maximum results (None for all)

        Returns:
            Matching MirrorRow objects, newest first
        """
        terms = text.split()
        if not terms:
            if source_identifier is not None:
                return self.by_source(source_identifier, limit=limit)
            return self.all(limit=limit)

        clauses: list[str] = []
        params: list[Any] = []
        for term in terms:
            pattern = f"%{escape_like(term)}%"
            clauses.append(_TERM_CLAUSE)
            params.extend([pattern, pattern])

        if source_identifier is not None:
            clauses.append("source_identifier = ?")
            params.append(source_identifier)

        where = " AND ".join(clauses)
        sql = f"""
            SELECT {_COLUMNS}
            FROM transcripts
            WHERE {where}
            ORDER BY timestamp DESC
        """
        sql = _paginate(sql, params, limit, 0)
        logger.debug(f"Searching {len(terms)} term(s), source={source_identifier!r}")
        return [MirrorRow.from_row(row) for row in self._store.fetch_all(sql, tuple(params))]

    def find_by_id_prefix(self, prefix: str, limit: int = 10) -> list[MirrorRow]:
        """Transcripts whose id starts with prefix, newest first."""
        rows = self._store.fetch_all(BY_ID_PREFIX, (f"{escape_like(prefix)}%", limit))
        return [MirrorRow.from_row(row) for row in rows]
