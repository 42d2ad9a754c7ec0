"""Session context injected into the agent at start-up.

`clade inject-context` runs from the agent's SessionStart hook and prints a
markdown summary: the previous session's DROPBAG.md, git status, recent
commits, open TODOs and the ticket the workspace belongs to.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .constants import DROPBAG_FILENAME, METADATA_FILENAME, TICKET_FILENAME
from .exceptions import GitError
from .git_utils import GitStatus, get_current_branch, get_recent_commits, get_repo_name, get_status

logger = logging.getLogger(__name__)

TODO_PATTERN = re.compile(r"\b(TODO|FIXME|HACK|XXX|BUG)\b[:\s]*(.*)", re.IGNORECASE)

TODO_EXTENSIONS = frozenset({
    ".go", ".js", ".ts", ".tsx", ".jsx", ".py", ".rb", ".java",
    ".c", ".cpp", ".h", ".rs", ".php", ".sh", ".yaml", ".yml",
})

TODO_SKIP_DIRS = frozenset({
    "node_modules",
    "vendor",
    ".git",
    "dist",
    "build",
    "__pycache__",
    ".next",
    "target",
})


@dataclass
class Dropbag:
    """Contents of a DROPBAG.md hand-off note."""

    exists: bool = False
    content: str = ""
    mtime: datetime | None = None
    relative_age: str = ""


@dataclass
class TodoItem:
    file: str
    line: int
    content: str


@dataclass
class SessionContext:
    """Everything gathered for one directory."""

    directory: Path
    repo_name: str = ""
    branch: str = ""
    dropbag: Dropbag | None = None
    git_status: GitStatus | None = None
    commits: list[str] = field(default_factory=list)
    todos: list[TodoItem] = field(default_factory=list)
    metadata: dict[str, Any] | None = None


def format_relative_time(when: datetime, now: datetime | None = None) -> str:
    """Format a timestamp relative to now, e.g. "yesterday" or "Jan 2, 2026"."""
    now = now or datetime.now(UTC)
    seconds = (now - when).total_seconds()

    if seconds < 60:
        return "just now"
    if seconds < 3600:
        minutes = int(seconds // 60)
        return "1 minute ago" if minutes == 1 else f"{minutes} minutes ago"
    if seconds < 86400:
        hours = int(seconds // 3600)
        return "1 hour ago" if hours == 1 else f"{hours} hours ago"
    if seconds < 2 * 86400:
        return "yesterday"
    days = int(seconds // 86400)
    if days < 7:
        return f"{days} days ago"
    return f"{when:%b} {when.day}, {when.year}"


def read_dropbag(directory: Path) -> Dropbag:
    """
    Read DROPBAG.md from a directory.

    Args:
        directory: Directory to look in

    Returns:
        Dropbag; exists is False when there is no file

    Raises:
        OSError: If the file exists but cannot be read
    """
    path = Path(directory) / DROPBAG_FILENAME
    if not path.is_file():
        return Dropbag()

    mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
    return Dropbag(
        exists=True,
        content=path.read_text(encoding="utf-8", errors="replace").strip(),
        mtime=mtime,
        relative_age=format_relative_time(mtime),
    )


def _scan_file(path: Path) -> list[tuple[int, str]]:
    found: list[tuple[int, str]] = []
    with open(path, encoding="utf-8", errors="replace") as f:
        for lineno, line in enumerate(f, start=1):
            match = TODO_PATTERN.search(line)
            if match:
                found.append((lineno, match.group(0).strip()))
    return found


def find_todos(directory: Path, max_results: int = 10) -> list[TodoItem]:
    """
    Scan source files under a directory for TODO-style comments.

    Vendored and build directories are skipped, as are files that cannot be
    read.

    Args:
        directory: Root to scan
        max_results: Stop after this many items

    Returns:
        TodoItems with paths relative to directory
    """
    directory = Path(directory)
    todos: list[TodoItem] = []

    for root, dirs, files in os.walk(directory):
        dirs[:] = sorted(d for d in dirs if d not in TODO_SKIP_DIRS)
        for filename in sorted(files):
            if len(todos) >= max_results:
                return todos
            if Path(filename).suffix.lower() not in TODO_EXTENSIONS:
                continue
            path = Path(root) / filename
            try:
                matches = _scan_file(path)
            except OSError:
                continue
            rel = path.relative_to(directory).as_posix()
            todos.extend(TodoItem(file=rel, line=line, content=text) for line, text in matches)

    return todos[:max_results]


def read_metadata(directory: Path, filename: str = METADATA_FILENAME) -> dict[str, Any] | None:
    """Read a workspace metadata file; None when missing or unreadable."""
    path = Path(directory) / filename
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError) as e:
        logger.debug("Ignoring unreadable %s: %s", path, e)
        return None
    return data if isinstance(data, dict) else None


def write_metadata(path: Path, data: dict[str, Any]) -> None:
    """Write a workspace metadata file as indented JSON."""
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
        f.write("\n")


def gather_context(directory: Path) -> SessionContext:
    """
    Collect context for a directory.

    Every part is best-effort: a directory outside git simply has no status
    or commits.

    Args:
        directory: Repository root or plain directory

    Returns:
        SessionContext
    """
    directory = Path(directory)
    ctx = SessionContext(directory=directory, repo_name=get_repo_name(directory))

    try:
        ctx.branch = get_current_branch(directory)
    except GitError as e:
        logger.debug("No branch for %s: %s", directory, e)

    try:
        ctx.dropbag = read_dropbag(directory)
    except OSError as e:
        logger.debug("Cannot read dropbag in %s: %s", directory, e)

    try:
        ctx.git_status = get_status(directory)
    except GitError as e:
        logger.debug("No git status for %s: %s", directory, e)

    ctx.commits = get_recent_commits(directory, 5)
    ctx.todos = find_todos(directory, 10)
    ctx.metadata = read_metadata(directory)
    return ctx


def format_context(ctx: SessionContext) -> str:
    """Render gathered context as markdown for the agent."""
    lines: list[str] = ["# Session Context", ""]

    if ctx.dropbag is not None and ctx.dropbag.exists:
        lines += [f"## {DROPBAG_FILENAME} (from {ctx.dropbag.relative_age})", ""]
        lines += [ctx.dropbag.content, ""]

    status = ctx.git_status
    if status is not None:
        lines += ["## Git Status", "", f"On branch {ctx.branch}"]
        if status.clean:
            lines.append("Working tree clean")
        else:
            if status.staged:
                lines += ["", "Staged changes:"]
                lines += [f"  {name}" for name in status.staged]
            if status.modified:
                lines += ["", "Modified files:"]
                lines += [f"  modified: {name}" for name in status.modified]
            if status.untracked:
                lines += ["", "Untracked files:"]
                lines += [f"  {name}" for name in status.untracked]
        lines.append("")

    if ctx.commits:
        lines += ["## Recent Commits", ""]
        lines += ctx.commits
        lines.append("")

    if ctx.todos:
        lines += ["## Open TODOs", ""]
        lines += [f"{todo.file}:{todo.line}: {todo.content}" for todo in ctx.todos]
        lines.append("")

    ticket = (ctx.metadata or {}).get("ticket")
    if ticket:
        lines += ["## Ticket", ""]
        if (ctx.directory / TICKET_FILENAME).exists():
            lines.append(f"{ticket} detected. See {TICKET_FILENAME} for details.")
        else:
            lines.append(
                f"{ticket} detected. Please fetch from JIRA and save to "
                f"{TICKET_FILENAME} for reference."
            )
        lines.append("")

    return "\n".join(lines) + "\n"
