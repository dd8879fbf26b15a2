"""Tests for the debug log file."""

from pathlib import Path

from success_mcp.debug_log import DebugLog


def test_disabled_log_writes_nothing(tmp_path: Path) -> None:
    """Test that a disabled log never creates its file."""
    log = DebugLog(tmp_path / "debug.log")
    log.clear()
    log.tool_start("getTeams", {"first": 1})

    assert not (tmp_path / "debug.log").exists()


def test_tool_entries(tmp_path: Path) -> None:
    """Test start and end entries after a clear."""
    path = tmp_path / "debug.log"
    path.write_text("old contents\n")
    log = DebugLog(path, enabled=True)

    log.clear()
    log.tool_start("getTeams", None)
    log.tool_end("getTeams", result={"totalCount": 1})
    log.tool_end("createRock", error="Error: name is required")

    text = path.read_text()
    assert "old contents" not in text
    assert text.startswith("=== Debug log started at ")
    assert ">>> TOOL CALL START: getTeams" in text
    assert "Arguments: (none)" in text
    assert '"totalCount": 1' in text
    assert "ERROR:\nError: name is required" in text


def test_write_failures_are_ignored(tmp_path: Path) -> None:
    """Test that an unwritable path does not raise."""
    log = DebugLog(tmp_path / "missing" / "debug.log", enabled=True)
    log.tool_start("getTeams", {})
