"""
Conversation Renderer - Turn session logs into readable Markdown

Two renderings of the same log are supported:

    full   every detail: timestamps, tool calls, tool results, thinking
    clean  dialogue text only; turns with no dialogue text are dropped

Each turn is built in its own buffer and only appended to the document once
it is known to contain something worth keeping, so a dropped turn leaves no
trace in the output or in the counts.

Usage:
    from conversation_archiver.renderer import render, RenderMode

    result = render(lines, RenderMode.CLEAN)
    print(result.document)
    print(result.counts.as_dict())

CLI:
    convo-extract [--clean|--full] <input.jsonl> <output.md>
"""

import re
import sys
import json
import argparse
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Iterable, Union
from dataclasses import dataclass, field
from enum import Enum

from .log_records import (
    ContentPart, PartKind, Record, RecordType,
    parse_records, read_log_lines,
)
from .logging_setup import (
    get_logger, LogCategory, add_logging_arguments, configure_from_args,
    log_performance, log_file_operation,
)


# =============================================================================
# Constants
# =============================================================================

TURN_SEPARATOR = "---\n\n"
TOOL_RESULT_CHAR_LIMIT = 1000
TRUNCATION_MARKER = "\n... (truncated)"
DEFAULT_DISPLAY_NAME = "conversation"

USER_LABEL = "User"
ASSISTANT_LABEL = "Assistant"

IMAGE_PLACEHOLDER = "*[Image attached]*"

MODE_BANNERS = {
    "full": "**Full Conversation Export** - Complete session with tools and thinking",
    "clean": "**Clean Conversation Export** - Dialogue only, tools and thinking removed",
}

CLEAN_FOOTER_NOTE = (
    "*This is a clean export showing only the dialogue. Tools, thinking, and "
    "technical details have been filtered out to keep the conversation readable.*"
)

FRACTION_PATTERN = re.compile(r"(T\d{2}:\d{2}:\d{2})\.(\d+)")

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


class RenderMode(Enum):
    """Which rendering to produce."""
    FULL = "full"
    CLEAN = "clean"

    @classmethod
    def coerce(cls, value: Union["RenderMode", str]) -> "RenderMode":
        if isinstance(value, cls):
            return value
        return cls(str(value).lower().lstrip("-"))


# =============================================================================
# Results
# =============================================================================

@dataclass
class TurnCounts:
    """Turn tallies reported with every rendering."""
    user_turns: int = 0
    assistant_turns: int = 0

    @property
    def total_turns(self) -> int:
        return self.user_turns + self.assistant_turns

    def as_dict(self) -> Dict[str, int]:
        return {
            "userTurns": self.user_turns,
            "assistantTurns": self.assistant_turns,
            "totalTurns": self.total_turns,
        }


@dataclass
class RenderResult:
    """A finished document plus what callers need to file it."""
    document: str
    counts: TurnCounts
    mode: RenderMode
    display_name: str = DEFAULT_DISPLAY_NAME
    session_date: Optional[datetime] = None

    @property
    def session_date_iso(self) -> Optional[str]:
        """Session date as YYYY-MM-DD (UTC), used for archive file names."""
        if self.session_date is None:
            return None
        stamp = self.session_date
        if stamp.tzinfo is not None:
            try:
                stamp = stamp.astimezone(timezone.utc)
            except OverflowError:
                return None
        return f"{stamp.year:04d}-{stamp.month:02d}-{stamp.day:02d}"


@dataclass
class TurnBuffer:
    """A candidate turn, kept apart from the document until committed."""
    label: str
    chunks: List[str] = field(default_factory=list)
    renderable_parts: int = 0
    text_parts: int = 0

    def add(self, chunk: str):
        self.chunks.append(chunk)
        self.renderable_parts += 1

    def render(self) -> str:
        return "".join(self.chunks)


# =============================================================================
# Timestamp Formatting
# =============================================================================

def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; None when missing or invalid."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat on 3.10 only takes 3 or 6 fractional digits
    text = FRACTION_PATTERN.sub(lambda m: m.group(1) + "." + m.group(2).ljust(6, "0")[:6], text)
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def format_date(value: Union[str, datetime, None]) -> Optional[str]:
    """Date-only presentation, e.g. 'January 5, 2025'."""
    stamp = value if isinstance(value, datetime) else parse_timestamp(value)
    if stamp is None:
        return None
    return f"{MONTH_NAMES[stamp.month - 1]} {stamp.day}, {stamp.year}"


def format_timestamp(value: Union[str, datetime, None]) -> Optional[str]:
    """Long presentation, e.g. 'January 5, 2025, 02:30 PM'."""
    stamp = value if isinstance(value, datetime) else parse_timestamp(value)
    if stamp is None:
        return None
    hour = stamp.hour % 12 or 12
    meridiem = "AM" if stamp.hour < 12 else "PM"
    return f"{format_date(stamp)}, {hour:02d}:{stamp.minute:02d} {meridiem}"


# =============================================================================
# Part Rendering
# =============================================================================

def _pretty_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)


def _payload_text(payload: Any) -> str:
    """Strings verbatim, anything structured as indented JSON."""
    if isinstance(payload, str):
        return payload
    return _pretty_json(payload)


def _render_tool_result(part: ContentPart) -> str:
    return f"**Tool Result:**\n\n```\n{_payload_text(part.result)}\n```\n\n"


def _render_thinking(part: ContentPart) -> str:
    return (
        "<details>\n<summary>Thinking</summary>\n\n"
        f"{part.text}\n\n</details>\n\n"
    )


def _render_tool_use(part: ContentPart) -> str:
    chunk = f"**Tool Used:** `{part.tool_name}`\n\n"
    if part.description:
        chunk += f"*{part.description}*\n\n"
    chunk += (
        "<details>\n<summary>Tool Input</summary>\n\n"
        f"```json\n{_pretty_json(part.tool_input)}\n```\n\n</details>\n\n"
    )
    return chunk


def render_standalone_tool_result(record: Record) -> str:
    """Block for a tool-result record that is not nested in a user turn."""
    chunk = f"**Tool Result:** `{record.tool_name or 'unknown'}`\n\n"
    if record.result:
        result = _payload_text(record.result)
        truncated = result[:TOOL_RESULT_CHAR_LIMIT]
        if len(result) > TOOL_RESULT_CHAR_LIMIT:
            truncated += TRUNCATION_MARKER
        chunk += f"```\n{truncated}\n```\n\n"
    return chunk


# =============================================================================
# Turn Building
# =============================================================================

def _start_turn(label: str, record: Record, mode: RenderMode) -> TurnBuffer:
    turn = TurnBuffer(label=label)
    turn.chunks.append(f"## {label}\n\n")
    if mode is RenderMode.FULL:
        stamp = format_timestamp(record.timestamp)
        if stamp:
            turn.chunks.append(f"*{stamp}*\n\n")
    return turn


def build_user_turn(record: Record, mode: RenderMode) -> Optional[TurnBuffer]:
    """
    Build the turn for a user record.

    Returns:
        TurnBuffer to commit, or None when the record contributes no turn
    """
    if mode is RenderMode.CLEAN and not record.has_text:
        return None

    turn = _start_turn(USER_LABEL, record, mode)
    for part in record.parts:
        if part.kind is PartKind.TEXT:
            turn.add(f"{part.text}\n\n")
            turn.text_parts += 1
        elif part.kind is PartKind.TOOL_RESULT and mode is RenderMode.FULL:
            turn.add(_render_tool_result(part))
        elif part.kind is PartKind.IMAGE:
            turn.add(f"{IMAGE_PLACEHOLDER}\n\n")

    return turn if turn.renderable_parts else None


def build_assistant_turn(record: Record, mode: RenderMode) -> Optional[TurnBuffer]:
    """
    Build the turn for an assistant record.

    In clean mode a turn made only of tool calls or thinking is discarded.

    Returns:
        TurnBuffer to commit, or None when the record contributes no turn
    """
    turn = _start_turn(ASSISTANT_LABEL, record, mode)
    for part in record.parts:
        if part.kind is PartKind.TEXT:
            turn.add(f"{part.text}\n\n")
            turn.text_parts += 1
        elif part.kind is PartKind.THINKING and mode is RenderMode.FULL:
            turn.add(_render_thinking(part))
        elif part.kind is PartKind.TOOL_USE and mode is RenderMode.FULL:
            turn.add(_render_tool_use(part))

    if mode is RenderMode.CLEAN and not turn.text_parts:
        return None
    return turn if turn.renderable_parts else None


# =============================================================================
# Document Assembly
# =============================================================================

def _display_name(cwd: str) -> str:
    segments = cwd.replace("\\", "/").rstrip("/").split("/")
    return segments[-1] or DEFAULT_DISPLAY_NAME


def _scan_header_fields(records: List[Record]):
    """First timestamp and first cwd, each taken once."""
    first_timestamp = None
    display_name = None
    for record in records:
        if first_timestamp is None and record.timestamp:
            first_timestamp = record.timestamp
        if display_name is None and record.cwd:
            display_name = _display_name(record.cwd)
        if first_timestamp is not None and display_name is not None:
            break
    return first_timestamp, display_name or DEFAULT_DISPLAY_NAME


def _render_header(
    display_name: str,
    session_date: Optional[datetime],
    mode: RenderMode,
    source_name: Optional[str],
    extracted_at: datetime
) -> str:
    header = f"# {display_name}\n\n"
    header += f"{MODE_BANNERS[mode.value]}\n\n"
    if session_date is not None:
        header += f"**Session Date:** {format_date(session_date)}\n"
    header += f"**Extracted:** {format_date(extracted_at)}\n"
    if source_name:
        header += f"**Source:** {source_name}\n"
    header += f"**Mode:** {mode.value}\n\n"
    header += TURN_SEPARATOR
    return header


def _render_footer(counts: TurnCounts, mode: RenderMode) -> str:
    footer = f"\n\n{TURN_SEPARATOR}"
    footer += "**Session Summary:**\n"
    footer += f"- {counts.user_turns} user messages\n"
    footer += f"- {counts.assistant_turns} assistant responses\n"
    footer += f"- {counts.total_turns} total exchanges\n"
    if mode is RenderMode.CLEAN:
        footer += f"\n{CLEAN_FOOTER_NOTE}\n"
    return footer


def render(
    lines: Iterable[str],
    mode: Union[RenderMode, str] = RenderMode.FULL,
    source_name: Optional[str] = None,
    extracted_at: Optional[datetime] = None
) -> RenderResult:
    """
    Render session log lines into a Markdown document.

    Args:
        lines: Raw JSONL lines, in log order. Malformed lines are skipped.
        mode: RenderMode.FULL or RenderMode.CLEAN (or their string values)
        source_name: Shown in the header when given
        extracted_at: Extraction date for the header (defaults to now)

    Returns:
        RenderResult with the document and turn counts
    """
    mode = RenderMode.coerce(mode)
    records = list(parse_records(lines))

    first_timestamp, display_name = _scan_header_fields(records)
    session_date = parse_timestamp(first_timestamp)

    body: List[str] = []
    counts = TurnCounts()

    for record in records:
        if record.type is RecordType.USER:
            turn = build_user_turn(record, mode)
            if turn is not None:
                body.append(turn.render())
                body.append(TURN_SEPARATOR)
                counts.user_turns += 1
        elif record.type is RecordType.ASSISTANT:
            turn = build_assistant_turn(record, mode)
            if turn is not None:
                body.append(turn.render())
                body.append(TURN_SEPARATOR)
                counts.assistant_turns += 1
        elif record.type is RecordType.TOOL_RESULT and mode is RenderMode.FULL:
            body.append(render_standalone_tool_result(record))

    document = (
        _render_header(display_name, session_date, mode, source_name, extracted_at or datetime.now())
        + "".join(body)
        + _render_footer(counts, mode)
    )

    return RenderResult(
        document=document,
        counts=counts,
        mode=mode,
        display_name=display_name,
        session_date=session_date
    )


@log_performance("Render conversation file")
def render_file(
    input_path: Path,
    output_path: Path,
    mode: Union[RenderMode, str] = RenderMode.FULL
) -> RenderResult:
    """
    Render a JSONL session log to a Markdown file.

    Args:
        input_path: Session log to read
        output_path: Markdown file to write (parent directories are created)
        mode: Rendering mode

    Returns:
        RenderResult of the written document
    """
    logger = get_logger()
    input_path = Path(input_path)
    output_path = Path(output_path)

    lines = read_log_lines(input_path)
    log_file_operation("Read", input_path, details=f"{len(lines)} lines")

    result = render(lines, mode, source_name=input_path.name)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(result.document, encoding='utf-8')
    log_file_operation("Wrote", output_path, details=f"{len(result.document)} chars")

    logger.info(
        f"{LogCategory.RENDER} {input_path.name} -> {output_path.name} "
        f"[{result.mode.value}] {result.counts.total_turns} turns "
        f"({result.counts.user_turns} user, {result.counts.assistant_turns} assistant)"
    )

    return result


# =============================================================================
# CLI Interface
# =============================================================================

def main(argv: Optional[List[str]] = None):
    """Command-line interface for single-file extraction."""
    parser = argparse.ArgumentParser(
        description="Convert a JSONL conversation log into readable Markdown"
    )
    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "--full",
        dest="mode",
        action="store_const",
        const=RenderMode.FULL,
        help="Full export with tools, thinking, etc. (default)"
    )
    mode_group.add_argument(
        "--clean",
        dest="mode",
        action="store_const",
        const=RenderMode.CLEAN,
        help="Clean export - just dialogue, no tools/thinking"
    )
    parser.add_argument("input", help="Input .jsonl session log")
    parser.add_argument("output", help="Output .md file")
    add_logging_arguments(parser, default_level="WARNING")
    parser.set_defaults(mode=RenderMode.FULL)

    args = parser.parse_args(argv)
    configure_from_args(args)

    input_path = Path(args.input).expanduser()
    output_path = Path(args.output).expanduser()

    if not input_path.is_file():
        raise SystemExit(f"Input file not found: {input_path}")

    print(f"Reading: {input_path}")
    print(f"Mode: {args.mode.value}")

    result = render_file(input_path, output_path, args.mode)
    size_kb = output_path.stat().st_size / 1024

    print(f"Exported {result.counts.total_turns} messages to: {output_path}")
    print(f"   Mode: {result.mode.value}")
    print(f"   User messages: {result.counts.user_turns}")
    print(f"   Assistant responses: {result.counts.assistant_turns}")
    print(f"   File size: {size_kb:.1f} KB")
    if result.session_date_iso:
        print(f"   Session date: {result.session_date_iso}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
