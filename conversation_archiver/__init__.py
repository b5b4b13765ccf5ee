"""
Conversation Archiver - Readable Markdown from JSONL conversation logs

Modules:
    log_records  parse session log lines into typed records
    renderer     full and clean Markdown renderings (convo-extract)
    archiver     archive every session of a project (convo-archive)
    search       keyword search over archived documents (convo-search)
"""

from .renderer import RenderMode, RenderResult, TurnCounts, render, render_file

__version__ = "0.1.0"

__all__ = ["RenderMode", "RenderResult", "TurnCounts", "render", "render_file"]
