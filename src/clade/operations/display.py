"""Read-only views: `clade list` and `clade status`."""

import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from rich.markup import escape

from .. import console as ui
from ..config import load_config
from ..constants import CLAUDE_MD_FILENAME, DROPBAG_FILENAME, TICKET_FILENAME
from ..context import read_metadata
from ..exceptions import GitError
from ..git_utils import (
    get_current_branch,
    get_recent_commits,
    get_repo_name,
    get_repo_root,
    get_status,
    has_uncommitted_changes,
    is_git_repo,
)
from ..helpers import format_age, is_stale
from ..hooks import is_initialized
from ..state import Experiment, Project, Scratch, load_state

MAX_STATUS_FILES = 5


def _print_experiment(exp: Experiment) -> None:
    console = ui.get_console()
    stale = " [yellow]⚠[/yellow]" if is_stale(exp.last_used) else ""
    path = Path(exp.path)
    if path.exists() and has_uncommitted_changes(path):
        status = "[yellow]uncommitted changes[/yellow]"
    elif path.exists():
        status = "[green]clean[/green]"
    else:
        status = "[red]missing[/red]"

    console.print(
        f"  [cyan]{escape(exp.name)}[/cyan] [dim]({escape(os.path.basename(exp.repo))})[/dim]{stale}"
    )
    ui.key_value("Branch", escape(exp.branch))
    ui.key_value("Path", escape(exp.path))
    ui.key_value("Age", format_age(exp.last_used))
    ui.key_value("Status", status)
    if exp.kind != "experiment":
        ui.key_value("Type", exp.kind)
    if exp.ticket:
        ui.key_value("Ticket", exp.ticket)
    console.print()


def _print_project(project: Project) -> None:
    console = ui.get_console()
    console.print(f"  [cyan]{escape(project.name)}[/cyan]")
    ui.key_value("Branch", escape(project.branch))
    ui.key_value("Path", escape(project.path))
    ui.key_value("Repos", escape(", ".join(r.name for r in project.repos)))
    ui.key_value("Age", format_age(project.last_used))
    console.print()


def _print_scratch(scratch: Scratch) -> None:
    console = ui.get_console()
    stale = " [yellow]⚠[/yellow]" if is_stale(scratch.last_used) else ""
    console.print(f"  [cyan]{escape(scratch.name)}[/cyan] [dim](no-git)[/dim]{stale}")
    ui.key_value("Path", escape(scratch.path))
    ui.key_value("Age", format_age(scratch.last_used))
    if scratch.ticket:
        ui.key_value("Ticket", scratch.ticket)
    console.print()


def list_items() -> None:
    """Print every tracked experiment, project and scratch folder."""
    cfg = load_config()
    state = load_state(cfg)

    if state.is_empty():
        ui.info("No active experiments, projects, or scratch folders")
        ui.detail("Create one with: clade exp <name>")
        ui.detail("Or for no-git: clade scratch <name>")
        return

    by_recency = lambda item: item.last_used  # noqa: E731

    if state.experiments:
        ui.header("Experiments:")
        for exp in sorted(state.experiments.values(), key=by_recency, reverse=True):
            _print_experiment(exp)

    if state.projects:
        ui.header("Projects:")
        for project in sorted(state.projects.values(), key=by_recency, reverse=True):
            _print_project(project)

    if state.scratches:
        ui.header("Scratch:")
        for scratch in sorted(state.scratches.values(), key=by_recency, reverse=True):
            _print_scratch(scratch)


def _context_file_line(root: Path, filename: str, description: str) -> None:
    path = root / filename
    console = ui.get_console()
    if path.exists():
        mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
        console.print(
            f"  [green]✓[/green] {filename} [dim]({description}, {format_age(mtime)})[/dim]"
        )
    else:
        console.print(f"  [dim]○ {filename} (no {description})[/dim]")


def print_git_status(root: Path) -> None:
    """Print a short working tree summary with the first few changed files."""
    console = ui.get_console()
    try:
        status = get_status(root)
    except GitError:
        ui.detail("Unable to get git status")
        return

    if status.clean:
        console.print("  [green]Working tree clean[/green]")
        return

    console.print(f"  [yellow]{status.uncommitted_count} uncommitted changes[/yellow]")
    rows = (
        [("[green]A[/green]", name) for name in status.staged]
        + [("[yellow]M[/yellow]", name) for name in status.modified]
        + [("[red]?[/red]", name) for name in status.untracked]
    )
    for marker, name in rows[:MAX_STATUS_FILES]:
        console.print(f"    {marker} {escape(name)}")
    if status.uncommitted_count > MAX_STATUS_FILES:
        console.print(f"    [dim]... and {status.uncommitted_count - MAX_STATUS_FILES} more[/dim]")


def _print_clade_status(root: Path, metadata: dict[str, Any]) -> None:
    console = ui.get_console()
    kind = metadata.get("type") or "experiment"
    ui.header(f"{kind.capitalize()}: {escape(str(metadata.get('name', '')))}")
    if metadata.get("repo"):
        ui.key_value("Repo", escape(str(metadata["repo"])))
    try:
        ui.key_value("Branch", escape(get_current_branch(root)))
    except GitError:
        pass
    ui.key_value("Type", kind)

    console.print()
    ui.header("Context Files:")
    _context_file_line(root, CLAUDE_MD_FILENAME, "project context")
    _context_file_line(root, DROPBAG_FILENAME, "session handoff notes")
    ticket = metadata.get("ticket")
    if ticket:
        _context_file_line(root, TICKET_FILENAME, f"ticket {ticket}")
    else:
        console.print(f"  [dim]○ {TICKET_FILENAME} (no ticket linked)[/dim]")
    if is_initialized(root):
        console.print("  [green]✓[/green] .claude/ [dim](hooks configured)[/dim]")
    else:
        console.print("  [yellow]○[/yellow] .claude/ [dim](not initialized)[/dim]")

    console.print()
    ui.header("Git Status:")
    print_git_status(root)

    console.print()
    ui.header("Recent Commits:")
    commits = get_recent_commits(root, 3)
    if not commits:
        ui.detail("No commits yet")
    for commit in commits:
        ui.detail(escape(commit))


def _print_basic_status(root: Path) -> None:
    console = ui.get_console()
    ui.header(f"Repository: {escape(get_repo_name(root))}")
    try:
        ui.key_value("Branch", escape(get_current_branch(root)))
    except GitError:
        pass
    ui.key_value("Path", escape(str(root)))
    console.print("  [dim](not a clade experiment)[/dim]")

    console.print()
    if is_initialized(root):
        console.print("  [green]✓[/green] Hooks configured (.claude/settings.json)")
    else:
        console.print("  [yellow]○[/yellow] No hooks configured")
        ui.detail("Run 'clade init' to set up SessionStart hooks")

    console.print()
    ui.header("Git Status:")
    print_git_status(root)

    console.print()
    ui.info("This is a regular git repo, not a clade experiment")
    ui.detail("Create an experiment: clade exp <name>")
    ui.detail("Or initialize hooks: clade init")


def show_status(path: Path | None = None) -> None:
    """Describe the workspace containing a directory (default: cwd)."""
    path = path or Path.cwd()
    if not is_git_repo(path):
        ui.info("Not in a git repository")
        ui.detail("Navigate to a git repo or clade experiment")
        return

    root = get_repo_root(path)
    metadata = read_metadata(root)
    if metadata is not None:
        _print_clade_status(root, metadata)
    else:
        _print_basic_status(root)
