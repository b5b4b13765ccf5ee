"""
Conversation Archiver - Configuration Module

Centralized configuration for the extract, archive and search tools.
Set environment variables or drop an archive_config.json file in the
project root to customize paths and thresholds.

Environment Variables (optional):
    CONVO_ARCHIVE_PROJECT_ROOT: Project whose conversations are archived
    CONVO_ARCHIVE_CLAUDE_HOME: Directory holding per-project session logs
    CONVO_ARCHIVE_DIR: Directory that receives the rendered Markdown
"""

import os
import json
from pathlib import Path
from typing import Optional, Dict, Any

from .logging_setup import get_logger, LogCategory


CONFIG_FILENAME = "archive_config.json"
DEFAULT_ARCHIVE_DIRNAME = "archived-conversations"


def get_project_root() -> Path:
    """
    Get the project root directory.

    Priority:
    1. CONVO_ARCHIVE_PROJECT_ROOT environment variable
    2. Current working directory
    """
    env_root = os.environ.get("CONVO_ARCHIVE_PROJECT_ROOT")
    if env_root:
        return Path(env_root).expanduser()
    return Path.cwd()


def claude_project_dir(project_dir: Path, claude_home: Path) -> Path:
    """
    Locate the session-log directory for a project.

    Session logs live in a directory named after the project's absolute
    path with "/" and spaces replaced by "-", e.g.
    /home/me/my app -> <claude_home>/-home-me-my-app
    """
    encoded = str(Path(project_dir).expanduser().resolve()).replace("/", "-").replace(" ", "-")
    return Path(claude_home).expanduser() / f"-{encoded.lstrip('-')}"


def get_default_config(project_root: Optional[Path] = None) -> Dict[str, Any]:
    """Get default configuration values."""
    project_root = project_root or get_project_root()

    return {
        "project_root": str(project_root),
        "claude_home": os.environ.get(
            "CONVO_ARCHIVE_CLAUDE_HOME",
            str(Path.home() / ".claude" / "projects"),
        ),
        "archive_dir": os.environ.get(
            "CONVO_ARCHIVE_DIR",
            str(project_root / DEFAULT_ARCHIVE_DIRNAME),
        ),

        # Sessions with fewer user+assistant records are treated as abandoned
        "min_dialogue_records": 5,

        # Exchanges shown before/after each search hit
        "search_context": 1,
    }


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from archive_config.json, layered over defaults.

    Args:
        config_path: Path to config file. Defaults to PROJECT_ROOT/archive_config.json
        project_root: Project root used for defaults

    Returns:
        Configuration dictionary
    """
    config = get_default_config(project_root)

    if config_path is None:
        config_path = Path(config["project_root"]) / CONFIG_FILENAME

    if config_path.exists():
        with open(config_path, 'r', encoding='utf-8') as f:
            config.update(json.load(f))
        get_logger().info(f"{LogCategory.CONFIG} Loaded config: {config_path}")

    return config


def save_config(config: Dict[str, Any], config_path: Optional[Path] = None):
    """Save configuration to archive_config.json."""
    if config_path is None:
        config_path = Path(config.get("project_root", get_project_root())) / CONFIG_FILENAME

    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2, ensure_ascii=False)


class ArchiveConfig:
    """
    Configuration for the conversation archiver.

    Usage:
        config = ArchiveConfig()
        print(config.archive_dir)

        # Explicit values win over the config file and environment:
        config = ArchiveConfig(project_root=Path("~/code/app"), min_dialogue_records=2)
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        project_root: Optional[Path] = None,
        **overrides: Any
    ):
        root = Path(project_root).expanduser().resolve() if project_root else None
        self._config = load_config(config_path, root)
        if root is not None:
            self._config["project_root"] = str(root)
        self._config.update({k: v for k, v in overrides.items() if v is not None})

    @property
    def project_root(self) -> Path:
        return Path(self._config["project_root"])

    @property
    def claude_home(self) -> Path:
        return Path(self._config["claude_home"]).expanduser()

    @property
    def archive_dir(self) -> Path:
        path = Path(self._config["archive_dir"]).expanduser()
        return path if path.is_absolute() else self.project_root / path

    @property
    def min_dialogue_records(self) -> int:
        return int(self._config.get("min_dialogue_records", 5))

    @property
    def search_context(self) -> int:
        return int(self._config.get("search_context", 1))

    @property
    def claude_project_dir(self) -> Path:
        """Session-log directory that belongs to project_root."""
        return claude_project_dir(self.project_root, self.claude_home)

    def ensure_directories(self):
        """Create the archive directory if it doesn't exist."""
        self.archive_dir.mkdir(parents=True, exist_ok=True)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._config)
