"""
Conversation Search - Keyword search across archived conversations

Splits each archived document back into exchanges on the renderer's turn
separator and reports every exchange that mentions the search term, with
neighbouring exchanges for context.

Usage:
    convo-search "understanding score"
    convo-search database --clean-only
    convo-search "flow state" --context 2
"""

import re
import sys
import argparse
from pathlib import Path
from typing import Optional, List, Dict
from dataclasses import dataclass, field
from enum import Enum

from .config import ArchiveConfig
from .errors import SearchError
from .logging_setup import get_logger, LogCategory, add_logging_arguments, configure_from_args
from .renderer import TURN_SEPARATOR


class SearchScope(Enum):
    """Which archived renderings to search."""
    BOTH = "both"
    CLEAN = "clean"
    FULL = "full"


SCOPE_SUFFIXES = {
    SearchScope.CLEAN: "-clean.md",
    SearchScope.FULL: "-full.md",
}


@dataclass
class SearchMatch:
    """One exchange that mentions the term."""
    exchange_number: int
    highlighted: str
    context_before: List[str] = field(default_factory=list)
    context_after: List[str] = field(default_factory=list)


@dataclass
class SearchReport:
    """Matches across every searched file."""
    term: str
    files_searched: List[str] = field(default_factory=list)
    results: Dict[str, List[SearchMatch]] = field(default_factory=dict)

    @property
    def total_matches(self) -> int:
        return sum(len(matches) for matches in self.results.values())

    @property
    def files_with_matches(self) -> int:
        return len(self.results)


# =============================================================================
# Matching
# =============================================================================

def split_exchanges(document: str) -> List[str]:
    """Split a rendered document into exchanges, dropping empty chunks."""
    return [chunk for chunk in document.split(TURN_SEPARATOR) if chunk]


def highlight(text: str, term: str) -> str:
    """Wrap every case-insensitive occurrence of term in markers."""
    pattern = re.compile(re.escape(term), re.IGNORECASE)
    return pattern.sub(lambda m: f"**>>> {m.group(0)} <<<**", text)


def search_document(document: str, term: str, context: int = 1) -> List[SearchMatch]:
    """
    Find the exchanges of one document that mention term.

    Args:
        document: Rendered Markdown
        term: Search term, matched case-insensitively as a plain substring
        context: Number of exchanges to include before and after each match

    Returns:
        Matches in document order
    """
    exchanges = split_exchanges(document)
    needle = term.lower()
    context = max(context, 0)
    matches = []

    for i, exchange in enumerate(exchanges):
        if needle not in exchange.lower():
            continue
        matches.append(SearchMatch(
            exchange_number=i + 1,
            highlighted=highlight(exchange, term),
            context_before=exchanges[max(0, i - context):i] if context else [],
            context_after=exchanges[i + 1:i + 1 + context] if context else [],
        ))

    return matches


# =============================================================================
# Archive Search
# =============================================================================

def list_archive_files(archive_dir: Path, scope: SearchScope = SearchScope.BOTH) -> List[Path]:
    """Archived Markdown documents in scope, sorted by name."""
    suffix = SCOPE_SUFFIXES.get(scope, ".md")
    return sorted(
        p for p in Path(archive_dir).glob("*.md")
        if p.name != "README.md" and p.name.endswith(suffix)
    )


def search_archive(
    archive_dir: Path,
    term: str,
    scope: SearchScope = SearchScope.BOTH,
    context: int = 1
) -> SearchReport:
    """
    Search every archived conversation in scope.

    Raises:
        SearchError: when the archive directory is missing or has no documents
    """
    archive_dir = Path(archive_dir)
    if not archive_dir.is_dir():
        raise SearchError(f"No archived conversations found. Expected directory: {archive_dir}")

    files = list_archive_files(archive_dir, scope)
    if not files:
        raise SearchError(f"No conversation files found to search in {archive_dir}")

    logger = get_logger()
    logger.info(f"{LogCategory.SEARCH} Searching {len(files)} file(s) for {term!r}")

    report = SearchReport(term=term)
    for path in files:
        report.files_searched.append(path.name)
        matches = search_document(path.read_text(encoding='utf-8'), term, context)
        if matches:
            report.results[path.name] = matches

    logger.info(
        f"{LogCategory.SEARCH} {report.total_matches} match(es) in "
        f"{report.files_with_matches} file(s)"
    )
    return report


def format_report(report: SearchReport) -> str:
    """Plain-text rendering of a search report for the terminal."""
    lines = [f'Searching for: "{report.term}"', f"Searched {len(report.files_searched)} file(s)", ""]

    for filename, matches in report.results.items():
        lines.append("")
        lines.append(filename)
        lines.append("=" * (len(filename) + 3))
        for n, match in enumerate(matches, 1):
            lines.append("")
            lines.append(f"Match #{n} (Exchange {match.exchange_number}):")
            lines.append("-" * 60)
            for chunk in match.context_before:
                lines.extend(["[Context]", chunk.strip(), ""])
            lines.extend(["[MATCH]", match.highlighted.strip(), ""])
            for chunk in match.context_after:
                lines.extend(["[Context]", chunk.strip(), ""])

    lines.append("")
    lines.append("=" * 60)
    lines.append("Search complete!")
    lines.append("")
    lines.append("Results:")
    lines.append(f"  - {report.total_matches} match(es) found")
    lines.append(f"  - Across {report.files_with_matches} file(s)")
    lines.append(f"  - Searched {len(report.files_searched)} total file(s)")

    if report.total_matches == 0:
        lines.append("")
        lines.append("Try:")
        lines.append("   - Broadening your search term")
        lines.append("   - Using --full-only to search full versions")
        lines.append("   - Checking if conversations have been archived")

    return "\n".join(lines)


# =============================================================================
# CLI Interface
# =============================================================================

def main(argv: Optional[List[str]] = None):
    """Command-line interface for archive search."""
    parser = argparse.ArgumentParser(
        description="Search archived conversations for a keyword"
    )
    parser.add_argument("term", help="Search term (case-insensitive)")
    scope_group = parser.add_mutually_exclusive_group()
    scope_group.add_argument(
        "--clean-only",
        dest="scope",
        action="store_const",
        const=SearchScope.CLEAN,
        help="Search only clean versions"
    )
    scope_group.add_argument(
        "--full-only",
        dest="scope",
        action="store_const",
        const=SearchScope.FULL,
        help="Search only full versions"
    )
    parser.add_argument(
        "--context",
        type=int,
        help="Show N exchanges before/after each match (default: 1)"
    )
    parser.add_argument(
        "--archive-dir",
        help="Archive directory (default: ./archived-conversations)"
    )
    add_logging_arguments(parser, default_level="WARNING")
    parser.set_defaults(scope=SearchScope.BOTH)

    args = parser.parse_args(argv)
    logger = configure_from_args(args)

    config = ArchiveConfig(archive_dir=args.archive_dir)
    context = args.context if args.context is not None else config.search_context

    try:
        report = search_archive(config.archive_dir, args.term, args.scope, context)
    except SearchError as e:
        logger.error(f"{LogCategory.ERROR} {e}")
        return 1

    print(format_report(report))
    return 0


if __name__ == "__main__":
    sys.exit(main())
