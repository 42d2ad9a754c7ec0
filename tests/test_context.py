"""Tests for session context gathering and formatting."""

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

from clade.context import (
    find_todos,
    format_context,
    format_relative_time,
    gather_context,
    read_dropbag,
    read_metadata,
    write_metadata,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


def test_format_relative_time() -> None:
    assert format_relative_time(NOW - timedelta(seconds=5), now=NOW) == "just now"
    assert format_relative_time(NOW - timedelta(minutes=2), now=NOW) == "2 minutes ago"
    assert format_relative_time(NOW - timedelta(hours=1), now=NOW) == "1 hour ago"
    assert format_relative_time(NOW - timedelta(hours=30), now=NOW) == "yesterday"
    assert format_relative_time(NOW - timedelta(days=3), now=NOW) == "3 days ago"
    assert format_relative_time(datetime(2026, 1, 2, tzinfo=UTC), now=NOW) == "Jan 2, 2026"


def test_read_dropbag_missing(tmp_path: Path) -> None:
    assert not read_dropbag(tmp_path).exists


def test_read_dropbag(tmp_path: Path) -> None:
    (tmp_path / "DROPBAG.md").write_text("## Summary\nDid things\n\n")

    dropbag = read_dropbag(tmp_path)
    assert dropbag.exists
    assert dropbag.content == "## Summary\nDid things"
    assert dropbag.relative_age == "just now"


def test_find_todos(tmp_path: Path) -> None:
    """TODOs are found in source files; vendored directories are skipped."""
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.py").write_text("x = 1\n# TODO: handle errors\n")
    (tmp_path / "notes.txt").write_text("TODO: not a source file\n")
    (tmp_path / "node_modules").mkdir()
    (tmp_path / "node_modules" / "lib.js").write_text("// FIXME vendored\n")

    todos = find_todos(tmp_path)
    assert len(todos) == 1
    assert todos[0].file == "src/app.py"
    assert todos[0].line == 2
    assert todos[0].content.startswith("TODO")


def test_find_todos_limit(tmp_path: Path) -> None:
    (tmp_path / "many.py").write_text("".join(f"# TODO item {i}\n" for i in range(20)))
    assert len(find_todos(tmp_path, max_results=10)) == 10


def test_metadata_round_trip(tmp_path: Path) -> None:
    write_metadata(tmp_path / ".clade.json", {"type": "experiment", "name": "x"})
    assert read_metadata(tmp_path) == {"type": "experiment", "name": "x"}


def test_read_metadata_missing_or_invalid(tmp_path: Path) -> None:
    assert read_metadata(tmp_path) is None
    (tmp_path / ".clade.json").write_text("[broken")
    assert read_metadata(tmp_path) is None


def test_gather_context_in_repo(temp_git_repo: Path) -> None:
    """Context in a repo includes branch, status, commits and dropbag."""
    (temp_git_repo / "DROPBAG.md").write_text("Next: write tests\n")
    (temp_git_repo / "main.py").write_text("# TODO: implement\n")

    ctx = gather_context(temp_git_repo)
    output = format_context(ctx)

    assert output.startswith("# Session Context")
    assert "## DROPBAG.md (from just now)" in output
    assert "Next: write tests" in output
    assert "On branch main" in output
    assert "Untracked files:" in output
    assert "Initial commit" in output
    assert "main.py:1: TODO: implement" in output


def test_gather_context_outside_git(tmp_path: Path) -> None:
    """A plain directory still gets a header and no git sections."""
    ctx = gather_context(tmp_path)
    output = format_context(ctx)

    assert ctx.git_status is None
    assert ctx.commits == []
    assert "## Git Status" not in output


def test_format_context_ticket(tmp_path: Path) -> None:
    """The ticket section points at TICKET.md when it exists."""
    (tmp_path / ".clade.json").write_text(json.dumps({"ticket": "PROJ-7"}))

    output = format_context(gather_context(tmp_path))
    assert "PROJ-7 detected. Please fetch from JIRA" in output

    (tmp_path / "TICKET.md").write_text("# PROJ-7\n")
    output = format_context(gather_context(tmp_path))
    assert "PROJ-7 detected. See TICKET.md for details." in output
