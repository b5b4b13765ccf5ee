"""Builders for raw session-log lines used across the test suite."""

import json
from datetime import datetime
from typing import Any


EXTRACTED_AT = datetime(2025, 2, 1, 9, 0)


def user_line(*parts: Any, timestamp: str | None = None, **extra: Any) -> str:
    """Serialized user record; str parts become text parts."""
    return _record_line("user", parts, timestamp, extra)


def assistant_line(*parts: Any, timestamp: str | None = None, **extra: Any) -> str:
    """Serialized assistant record; str parts become text parts."""
    return _record_line("assistant", parts, timestamp, extra)


def _record_line(kind: str, parts: tuple, timestamp: str | None, extra: dict) -> str:
    content = [{"type": "text", "text": p} if isinstance(p, str) else p for p in parts]
    record: dict[str, Any] = {"type": kind, "message": {"role": kind, "content": content}}
    if timestamp:
        record["timestamp"] = timestamp
    record.update(extra)
    # compact, as session logs are written
    return json.dumps(record, separators=(",", ":"))


def tool_use(name: str, **tool_input: Any) -> dict[str, Any]:
    return {"type": "tool_use", "id": f"toolu_{name}", "name": name, "input": tool_input}


def tool_result(content: Any) -> dict[str, Any]:
    return {"type": "tool_result", "tool_use_id": "toolu_1", "content": content}


def thinking(text: str) -> dict[str, Any]:
    return {"type": "thinking", "thinking": text}


IMAGE = {"type": "image", "source": {"type": "base64", "media_type": "image/png", "data": "AAAA"}}
