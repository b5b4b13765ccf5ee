"""
Session Log Records - Parse JSONL conversation logs into typed records

Each line of a session log is one JSON object describing a user turn, an
assistant turn, a standalone tool result, or bookkeeping the renderer does
not care about. Parsing is best-effort: a line that is not a JSON object is
dropped without raising.

Usage:
    from conversation_archiver.log_records import parse_records, read_log_lines

    for record in parse_records(read_log_lines(path)):
        print(record.type, len(record.parts))
"""

import json
from pathlib import Path
from typing import Optional, List, Dict, Any, Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum

from .logging_setup import get_logger, LogCategory


# =============================================================================
# Data Classes
# =============================================================================

class PartKind(Enum):
    """Kind tag of a content part."""
    TEXT = "text"
    THINKING = "thinking"
    TOOL_USE = "tool_use"
    TOOL_RESULT = "tool_result"
    IMAGE = "image"
    UNKNOWN = "unknown"


class RecordType(Enum):
    """Discriminator of a log record."""
    USER = "user"
    ASSISTANT = "assistant"
    TOOL_RESULT = "tool-result"
    OTHER = "other"


@dataclass
class ContentPart:
    """One typed fragment of a record's message content."""
    kind: PartKind
    text: str = ""
    tool_name: Optional[str] = None
    tool_input: Any = None
    result: Any = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_text(self) -> bool:
        """True for a text part whose payload is not blank."""
        return self.kind is PartKind.TEXT and bool(self.text.strip())

    @property
    def description(self) -> Optional[str]:
        """Human-readable description a tool call may carry in its input."""
        if isinstance(self.tool_input, dict):
            desc = self.tool_input.get("description")
            if isinstance(desc, str) and desc:
                return desc
        return None


@dataclass
class Record:
    """One parsed log line."""
    type: RecordType
    raw_type: str = ""
    timestamp: Optional[str] = None
    cwd: Optional[str] = None
    parts: List[ContentPart] = field(default_factory=list)
    tool_name: Optional[str] = None
    result: Any = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_text(self) -> bool:
        return any(part.has_text for part in self.parts)


# =============================================================================
# Parsing
# =============================================================================

RECORD_TYPES = {rt.value: rt for rt in RecordType if rt is not RecordType.OTHER}
PART_KINDS = {pk.value: pk for pk in PartKind if pk is not PartKind.UNKNOWN}


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def parse_content_part(item: Any) -> ContentPart:
    """
    Convert one raw content item into a ContentPart.

    Args:
        item: Element of message.content (dict, or a bare string)

    Returns:
        ContentPart; unrecognized shapes become PartKind.UNKNOWN
    """
    if isinstance(item, str):
        return ContentPart(kind=PartKind.TEXT, text=item)

    if not isinstance(item, dict):
        return ContentPart(kind=PartKind.UNKNOWN)

    kind = PART_KINDS.get(item.get("type"), PartKind.UNKNOWN)

    if kind is PartKind.TEXT:
        return ContentPart(kind=kind, text=_as_str(item.get("text")), raw=item)
    if kind is PartKind.THINKING:
        return ContentPart(kind=kind, text=_as_str(item.get("thinking")), raw=item)
    if kind is PartKind.TOOL_USE:
        return ContentPart(
            kind=kind,
            tool_name=item.get("name") or "unknown",
            tool_input=item.get("input"),
            raw=item
        )
    if kind is PartKind.TOOL_RESULT:
        return ContentPart(kind=kind, result=item.get("content"), raw=item)

    return ContentPart(kind=kind, raw=item)


def _parse_content(message: Any) -> List[ContentPart]:
    """Extract the ordered content parts from a record's message field."""
    if not isinstance(message, dict):
        return []

    content = message.get("content")
    if isinstance(content, str):
        # Typed prompts are often logged as a bare string
        return [ContentPart(kind=PartKind.TEXT, text=content)]
    if isinstance(content, list):
        return [parse_content_part(item) for item in content]
    return []


def parse_record(line: str) -> Optional[Record]:
    """
    Parse a single JSONL line into a Record.

    Args:
        line: One line of a session log

    Returns:
        Record, or None when the line is not a JSON object
    """
    try:
        entry = json.loads(line)
    except (json.JSONDecodeError, TypeError, ValueError, RecursionError) as e:
        get_logger().debug(f"{LogCategory.DEBUG} Skipping malformed line: {e}")
        return None

    if not isinstance(entry, dict):
        get_logger().debug(f"{LogCategory.DEBUG} Skipping non-object line")
        return None

    raw_type = entry.get("type")
    raw_type = raw_type if isinstance(raw_type, str) else ""
    timestamp = entry.get("timestamp")
    cwd = entry.get("cwd")

    return Record(
        type=RECORD_TYPES.get(raw_type, RecordType.OTHER),
        raw_type=raw_type,
        timestamp=timestamp if isinstance(timestamp, str) and timestamp else None,
        cwd=cwd if isinstance(cwd, str) and cwd else None,
        parts=_parse_content(entry.get("message")),
        tool_name=entry.get("toolName"),
        result=entry.get("result"),
        raw=entry
    )


def parse_records(lines: Iterable[str]) -> Iterator[Record]:
    """Parse lines in order, skipping blank and malformed ones."""
    for line in lines:
        if not line or not line.strip():
            continue
        record = parse_record(line)
        if record is not None:
            yield record


# =============================================================================
# File Helpers
# =============================================================================

def read_log_lines(path: Path) -> List[str]:
    """
    Read a JSONL session log.

    Args:
        path: Path to the .jsonl file

    Returns:
        Non-blank lines in file order
    """
    with open(path, 'r', encoding='utf-8') as f:
        return [line.rstrip("\n") for line in f if line.strip()]


def find_session_files(directory: Path) -> List[Path]:
    """
    Find the main session logs of one project directory.

    Sub-agent transcripts (agent-*.jsonl) are excluded.

    Returns:
        Session log paths sorted by name
    """
    directory = Path(directory)
    if not directory.is_dir():
        return []

    files = sorted(
        p for p in directory.glob("*.jsonl")
        if p.is_file() and not p.name.startswith("agent-")
    )

    get_logger().info(f"{LogCategory.PARSER} Found {len(files)} session logs in {directory}")
    return files


def count_dialogue_records(path: Path) -> int:
    """
    Count user and assistant records without parsing the file.

    Matches the compact '"type":"user"' / '"type":"assistant"' spelling the
    session logs are written with.
    """
    text = Path(path).read_text(encoding='utf-8', errors='replace')
    return text.count('"type":"user"') + text.count('"type":"assistant"')
