"""
Shared pytest fixtures for the conversation archiver test suite.

Provides:
- Sample sessions built with tests.helpers
- A fixed extraction date so rendered documents are deterministic
- An isolated session-log home and project directory
"""

from datetime import datetime
from pathlib import Path

import pytest

from tests.helpers import EXTRACTED_AT, IMAGE, assistant_line, thinking, tool_use, tool_result, user_line


@pytest.fixture
def extracted_at() -> datetime:
    return EXTRACTED_AT


@pytest.fixture
def hello_session() -> list[str]:
    """Two-turn exchange with timestamps and a working directory."""
    return [
        user_line("Hello", timestamp="2025-01-05T14:30:00Z", cwd="/home/dev/projects/orbit"),
        assistant_line("Hi there", timestamp="2025-01-05T14:31:00Z", cwd="/home/dev/projects/orbit"),
    ]


@pytest.fixture
def busy_session() -> list[str]:
    """A session mixing dialogue, tool traffic, thinking and images."""
    return [
        user_line("Can you list the files?", timestamp="2025-03-10T08:00:00Z", cwd="/srv/app"),
        assistant_line(thinking("User wants a listing."), tool_use("Bash", command="ls", description="List files"),
                       timestamp="2025-03-10T08:00:05Z"),
        user_line(tool_result("README.md\nsetup.py"), timestamp="2025-03-10T08:00:06Z"),
        assistant_line("There are two files.", timestamp="2025-03-10T08:00:09Z"),
        user_line("Here is a screenshot", IMAGE, timestamp="2025-03-10T08:01:00Z"),
        assistant_line("Thanks, I see the error.", tool_use("Read", file_path="/srv/app/setup.py"),
                       timestamp="2025-03-10T08:01:04Z"),
    ]


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("CONVO_ARCHIVE_PROJECT_ROOT", "CONVO_ARCHIVE_CLAUDE_HOME", "CONVO_ARCHIVE_DIR"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def claude_home(tmp_path: Path) -> Path:
    home = tmp_path / "claude-projects"
    home.mkdir()
    return home


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    project = tmp_path / "my project"
    project.mkdir()
    return project
