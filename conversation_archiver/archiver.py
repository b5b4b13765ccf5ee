"""
Conversation Archiver - Render every session of a project, full and clean

Looks up the session logs that belong to a project directory, renders each
main session twice (full and clean) and files the results under
<project>/archived-conversations/ named by session date:

    2025-01-05_session-full.md
    2025-01-05_session-clean.md

Sessions that were opened but barely used are skipped, and a session is only
re-rendered when its log changed after the last archive run.

Usage:
    convo-archive                       # archive the current project
    convo-archive ~/code/my-app         # archive another project
    convo-archive --min-records 2       # keep short sessions too
"""

import sys
import argparse
from pathlib import Path
from typing import Optional, List
from dataclasses import dataclass, field

from .config import ArchiveConfig, claude_project_dir
from .errors import ArchiveError
from .log_records import find_session_files, count_dialogue_records, read_log_lines
from .logging_setup import get_logger, LogCategory, add_logging_arguments, configure_from_args, log_performance
from .renderer import RenderMode, render, render_file


__all__ = ["ArchiveSummary", "ConversationArchiver", "claude_project_dir", "main"]


@dataclass
class ArchiveSummary:
    """Tally of one archive run."""
    full_written: int = 0
    clean_written: int = 0
    skipped: int = 0
    outputs: List[Path] = field(default_factory=list)


class ConversationArchiver:
    """
    Archive all sessions of one project.

    Handles:
    - Locating the project's session logs
    - Skipping empty, tiny and already-archived sessions
    - Naming outputs by session date
    - Re-rendering sessions whose log kept growing
    """

    def __init__(self, config: Optional[ArchiveConfig] = None):
        self.config = config or ArchiveConfig()
        self.logger = get_logger()

    @property
    def source_dir(self) -> Path:
        return self.config.claude_project_dir

    def base_filename(self, session_file: Path) -> str:
        """
        Archive file stem for a session.

        Uses the session date when the log carries a timestamp, otherwise the
        session id (the log file's stem).
        """
        result = render(read_log_lines(session_file), RenderMode.FULL)
        if result.session_date_iso:
            return f"{result.session_date_iso}_session"
        return f"conversation-{session_file.stem}"

    @log_performance("Archive project conversations")
    def archive(self) -> ArchiveSummary:
        """
        Archive every main session of the project.

        Returns:
            ArchiveSummary with counts and written paths

        Raises:
            ArchiveError: when the project has no session-log directory
        """
        source_dir = self.source_dir
        if not source_dir.is_dir():
            raise ArchiveError(f"No conversations found for this project. Expected: {source_dir}")

        self.config.ensure_directories()
        archive_dir = self.config.archive_dir
        summary = ArchiveSummary()

        self.logger.info(f"{LogCategory.ARCHIVE} Archiving {source_dir} -> {archive_dir}")

        for session_file in find_session_files(source_dir):
            self._archive_session(session_file, archive_dir, summary)

        self.logger.info(
            f"{LogCategory.ARCHIVE} Done: {summary.full_written} full, "
            f"{summary.clean_written} clean, {summary.skipped} skipped"
        )
        return summary

    def _archive_session(self, session_file: Path, archive_dir: Path, summary: ArchiveSummary):
        name = session_file.name

        if session_file.stat().st_size == 0:
            self.logger.info(f"{LogCategory.ARCHIVE} Skipping (empty): {name}")
            summary.skipped += 1
            return

        dialogue_records = count_dialogue_records(session_file)
        if dialogue_records < self.config.min_dialogue_records:
            self.logger.info(
                f"{LogCategory.ARCHIVE} Skipping (too few messages: {dialogue_records}): {name}"
            )
            summary.skipped += 1
            return

        base = self.base_filename(session_file)
        full_output = archive_dir / f"{base}-full.md"
        clean_output = archive_dir / f"{base}-clean.md"

        needs_update = (
            full_output.exists()
            and session_file.stat().st_mtime > full_output.stat().st_mtime
        )
        if needs_update:
            self.logger.info(f"{LogCategory.ARCHIVE} Source updated since last archive: {name}")

        if full_output.exists() and clean_output.exists() and not needs_update:
            self.logger.info(f"{LogCategory.ARCHIVE} Skipping (already archived, no changes): {base}")
            summary.skipped += 1
            return

        if not full_output.exists() or needs_update:
            render_file(session_file, full_output, RenderMode.FULL)
            summary.full_written += 1
            summary.outputs.append(full_output)

        if not clean_output.exists() or needs_update:
            render_file(session_file, clean_output, RenderMode.CLEAN)
            summary.clean_written += 1
            summary.outputs.append(clean_output)


# =============================================================================
# CLI Interface
# =============================================================================

def main(argv: Optional[List[str]] = None):
    """Command-line interface for batch archiving."""
    parser = argparse.ArgumentParser(
        description="Archive a project's conversations as full and clean Markdown"
    )
    parser.add_argument(
        "project_dir",
        nargs="?",
        help="Project directory (default: current directory)"
    )
    parser.add_argument(
        "--claude-home",
        help="Directory holding per-project session logs (default: ~/.claude/projects)"
    )
    parser.add_argument(
        "--archive-dir",
        help="Output directory (default: <project>/archived-conversations)"
    )
    parser.add_argument(
        "--min-records",
        type=int,
        dest="min_dialogue_records",
        help="Skip sessions with fewer user+assistant records (default: 5)"
    )
    add_logging_arguments(parser, default_level="INFO")

    args = parser.parse_args(argv)
    logger = configure_from_args(args)

    config = ArchiveConfig(
        project_root=Path(args.project_dir) if args.project_dir else None,
        claude_home=args.claude_home,
        archive_dir=args.archive_dir,
        min_dialogue_records=args.min_dialogue_records,
    )
    archiver = ConversationArchiver(config)

    print("Archiving Conversations")
    print("=" * 40)
    print(f"Project: {config.project_root.name}")
    print(f"Source: {archiver.source_dir}")
    print(f"Output: {config.archive_dir}")
    print()

    try:
        summary = archiver.archive()
    except ArchiveError as e:
        logger.error(f"{LogCategory.ERROR} {e}")
        return 1

    for path in summary.outputs:
        print(f"   Wrote: {path.name}")

    print("=" * 40)
    print("Archive complete!")
    print()
    print("Created:")
    print(f"  - {summary.full_written} full version(s)")
    print(f"  - {summary.clean_written} clean version(s)")
    if summary.skipped:
        print(f"  - {summary.skipped} skipped (already archived or empty)")
    print()
    print(f"Archived to: {config.archive_dir}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
