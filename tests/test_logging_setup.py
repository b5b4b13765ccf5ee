"""Tests for category-tagged logging and the shared --log-* options."""

import argparse
import json
from pathlib import Path

import pytest

from tests.helpers import user_line
from conversation_archiver import renderer, search
from conversation_archiver.logging_setup import (
    LogCategory,
    add_logging_arguments,
    category_of,
    configure_logging,
)


@pytest.fixture(autouse=True)
def _reset_logger():
    yield
    # closes any file handler a test opened
    configure_logging(log_level="WARNING")


def read_json_lines(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_category_of():
    assert category_of(f"{LogCategory.RENDER} done") == "RENDER"
    assert category_of("untagged") is None


def test_json_log_file(tmp_path):
    log_file = tmp_path / "logs" / "run.log"
    logger = configure_logging(log_level="ERROR", log_file=log_file, json_output=True)

    logger.info(f"{LogCategory.ARCHIVE} archived 3 sessions")
    logger.debug(f"{LogCategory.DEBUG} dropped a line")

    entries = read_json_lines(log_file)
    assert entries == [{
        "timestamp": entries[0]["timestamp"],
        "level": "INFO",
        "category": "ARCHIVE",
        "message": f"{LogCategory.ARCHIVE} archived 3 sessions",
    }]


def test_debug_level_unmutes_debug_category(tmp_path):
    log_file = tmp_path / "run.log"
    logger = configure_logging(log_level="DEBUG", log_file=log_file)

    logger.debug(f"{LogCategory.DEBUG} dropped a line")

    text = log_file.read_text(encoding="utf-8")
    assert " - DEBUG - [CONV_ARCHIVE][DEBUG] dropped a line" in text


def test_logging_arguments_defaults():
    parser = argparse.ArgumentParser()
    add_logging_arguments(parser, default_level="WARNING")

    args = parser.parse_args([])

    assert (args.log_level, args.log_file, args.json_logs) == ("WARNING", None, False)


def test_extract_cli_writes_json_log(tmp_path):
    source = tmp_path / "session.jsonl"
    source.write_text(user_line("Hello", timestamp="2025-01-05T14:30:00Z") + "\n", encoding="utf-8")
    log_file = tmp_path / "extract.log"

    renderer.main([str(source), str(tmp_path / "out.md"), "--log-file", str(log_file), "--json-logs"])

    categories = {entry["category"] for entry in read_json_lines(log_file)}
    assert {"FILE_IO", "PERF"} <= categories


def test_search_cli_logs_error_to_file(tmp_path):
    log_file = tmp_path / "search.log"

    status = search.main(["x", "--archive-dir", str(tmp_path / "absent"),
                          "--log-level", "CRITICAL", "--log-file", str(log_file)])

    assert status == 1
    assert "ERROR - [CONV_ARCHIVE][ERROR]" in log_file.read_text(encoding="utf-8")
