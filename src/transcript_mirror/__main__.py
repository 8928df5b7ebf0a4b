"""Command-line entry point for Transcript Mirror.

Usage:
    python -m transcript_mirror <command> [options]

    Commands:
        sync                Sync the mirror if the history file changed
        force-sync          Delete and rebuild the mirror database
        needs-sync          Exit 0 if a sync is pending, 1 otherwise
        db-path             Print the mirror database path
        count               Print the number of mirrored transcripts
        list                List transcripts newest first
        sources             List distinct source identifiers
        last                Print the most recent transcript
        search TERMS...     Substring search over transcript text
        play ID             Play the recording of a transcript (macOS)

Configuration comes from TRANSCRIPT_MIRROR_* environment variables or a
.env file (see MirrorSettings). Logging goes to stderr so stdout carries
only command output.
"""

import argparse
import logging
import subprocess
import sys

from dotenv import load_dotenv
from pydantic import ValidationError

from transcript_mirror import __version__
from transcript_mirror.config import MirrorSettings
from transcript_mirror.display import (
    format_duration,
    get_app_name,
    play_audio,
    truncate_text,
)
from transcript_mirror.errors import MirrorError, SourceUnavailable
from transcript_mirror.sync import TranscriptSync
from transcript_mirror.types import MirrorRow

logger = logging.getLogger(__name__)


def setup_logging(log_level: str) -> None:
    """Configure logging to stderr.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    logger.debug(f"Logging initialized at {log_level.upper()} level")


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="transcript-mirror",
        description="SQLite mirror of the voice transcription history",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: TRANSCRIPT_MIRROR_LOG_LEVEL or INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("sync", help="Sync the mirror if the history file changed")
    subparsers.add_parser("force-sync", help="Delete and rebuild the mirror database")
    subparsers.add_parser("needs-sync", help="Exit 0 if a sync is pending, 1 otherwise")
    subparsers.add_parser("db-path", help="Print the mirror database path")
    subparsers.add_parser("count", help="Print the number of mirrored transcripts")

    list_parser = subparsers.add_parser("list", help="List transcripts newest first")
    list_parser.add_argument("--source", type=str, default=None, help="Filter by source identifier")
    list_parser.add_argument("--limit", type=int, default=50, help="Maximum results (default: 50)")
    list_parser.add_argument("--offset", type=int, default=0, help="Results to skip")

    sources_parser = subparsers.add_parser("sources", help="List distinct source identifiers")
    sources_parser.add_argument(
        "--apps", action="store_true", help="Only bundle ids, with friendly names"
    )

    last_parser = subparsers.add_parser("last", help="Print the most recent transcript")
    last_parser.add_argument("--raw", action="store_true", help="Print the unprocessed text")

    search_parser = subparsers.add_parser("search", help="Substring search over transcript text")
    search_parser.add_argument("terms", nargs="+", help="Terms that must all appear")
    search_parser.add_argument("--source", type=str, default=None, help="Filter by source identifier")
    search_parser.add_argument("--limit", type=int, default=50, help="Maximum results (default: 50)")

    play_parser = subparsers.add_parser("play", help="Play the recording of a transcript")
    play_parser.add_argument("id", type=str, help="Transcript ID or unique prefix")

    return parser.parse_args(argv)


def format_row(row: MirrorRow) -> str:
    """One-line summary of a transcript for list output."""
    date_str = row.created_at.astimezone().strftime("%Y-%m-%d %H:%M")
    app = get_app_name(row.source_identifier) if row.is_bundle_id else row.source_identifier
    text = truncate_text(row.text.replace("\n", " "), 60)
    return f"{row.id[:12]:<12} {date_str:<16} {format_duration(row.duration):>7} {app[:16]:<16} {text}"


def _sync_for_read(mirror: TranscriptSync) -> bool:
    """Sync before a read command, falling back to stale data on failure.

    Returns:
        True if there is mirror data to read
    """
    outcome = mirror.sync()
    if outcome.success:
        return True
    if isinstance(outcome.error, SourceUnavailable):
        print(outcome.message, file=sys.stderr)
        return False
    if outcome.row_count > 0:
        logger.warning(f"{outcome.message}; showing previously synced transcripts")
        return True
    print(outcome.message, file=sys.stderr)
    return False


def run_command(args: argparse.Namespace, mirror: TranscriptSync) -> int:
    """Execute one CLI command.

    Returns:
        Process exit code
    """
    if args.command == "sync":
        outcome = mirror.sync()
        print(outcome.message)
        return 0 if outcome.success else 1

    if args.command == "force-sync":
        outcome = mirror.force_sync()
        print(outcome.message)
        return 0 if outcome.success else 1

    if args.command == "needs-sync":
        pending = mirror.needs_sync()
        print("yes" if pending else "no")
        return 0 if pending else 1

    if args.command == "db-path":
        print(mirror.get_database_path())
        return 0

    if not _sync_for_read(mirror):
        return 1
    queries = mirror.queries()

    if args.command == "count":
        print(queries.count())
        return 0

    if args.command == "list":
        if args.source:
            rows = queries.by_source(args.source, limit=args.limit, offset=args.offset)
        else:
            rows = queries.all(limit=args.limit, offset=args.offset)
        if not rows:
            print("No transcripts found.")
        for row in rows:
            print(format_row(row))
        return 0

    if args.command == "sources":
        for source in queries.sources(bundle_ids_only=args.apps):
            print(f"{source}\t{get_app_name(source)}" if args.apps else source)
        return 0

    if args.command == "last":
        latest = queries.latest()
        if latest is None:
            print("No completed transcriptions found", file=sys.stderr)
            return 1
        print(latest.raw_text if args.raw else latest.text)
        return 0

    if args.command == "search":
        rows = queries.search(" ".join(args.terms), source_identifier=args.source, limit=args.limit)
        if not rows:
            print("No transcripts found.")
        for row in rows:
            print(format_row(row))
        return 0

    if args.command == "play":
        matching = queries.find_by_id_prefix(args.id)
        if not matching:
            print(f"Transcript not found: {args.id}", file=sys.stderr)
            return 1
        if len(matching) > 1:
            print(f"Multiple matches for '{args.id}':", file=sys.stderr)
            for row in matching:
                print(f"  {row.id}", file=sys.stderr)
            return 1
        row = matching[0]
        if not row.audio_path:
            print(f"Transcript {row.id} has no recording", file=sys.stderr)
            return 1
        try:
            play_audio(row.audio_path)
        except FileNotFoundError as e:
            print(str(e), file=sys.stderr)
            return 1
        except subprocess.CalledProcessError as e:
            print(f"Playback failed: {e}", file=sys.stderr)
            return 1
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    load_dotenv()
    args = parse_arguments(argv)
    try:
        settings = MirrorSettings()
    except ValidationError as e:
        setup_logging(args.log_level or "INFO")
        logger.error(f"Invalid configuration: {e}")
        return 1
    setup_logging(args.log_level or settings.log_level)

    try:
        with TranscriptSync.from_settings(settings) as mirror:
            return run_command(args, mirror)
    except MirrorError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
