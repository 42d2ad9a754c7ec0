"""The no-argument `clade` screen: a summary of tracked work and an action menu."""

import os
from collections.abc import Callable
from pathlib import Path

from rich.markup import escape

from .. import console as ui
from ..config import load_config
from ..git_utils import has_uncommitted_changes
from ..helpers import format_age, is_stale
from ..state import Experiment, Project, Scratch, State, load_state
from ..tui import ask, pick

MAX_DASHBOARD_EXPERIMENTS = 5
MAX_DASHBOARD_SCRATCHES = 3


def _experiment_line(exp: Experiment) -> str:
    stale = " [yellow](stale)[/yellow]" if is_stale(exp.last_used) else ""
    path = Path(exp.path)
    dirty = " [yellow]*[/yellow]" if path.exists() and has_uncommitted_changes(path) else ""
    return (
        f"  [cyan]{escape(exp.name)}[/cyan] [dim]({escape(os.path.basename(exp.repo))})[/dim]"
        f" - [dim]{format_age(exp.last_used)}[/dim]{stale}{dirty}"
    )


def _project_line(project: Project) -> str:
    return f"  [cyan]{escape(project.name)}[/cyan] - [dim]{format_age(project.last_used)}[/dim]"


def _scratch_line(scratch: Scratch) -> str:
    stale = " [yellow](stale)[/yellow]" if is_stale(scratch.last_used) else ""
    return (
        f"  [cyan]{escape(scratch.name)}[/cyan] [dim](no-git)[/dim]"
        f" - [dim]{format_age(scratch.last_used)}[/dim]{stale}"
    )


def show_summary(state: State) -> None:
    """Print the most recent experiments, projects and scratch folders."""
    console = ui.get_console()

    def section(title: str, records: list, render: Callable, limit: int | None = None) -> None:
        if not records:
            return
        ui.header(title)
        records = sorted(records, key=lambda r: r.last_used, reverse=True)
        shown = records if limit is None else records[:limit]
        for record in shown:
            console.print(render(record))
        if len(records) > len(shown):
            ui.detail(f"[dim]  ... and {len(records) - len(shown)} more[/dim]")

    section(
        "Active experiments:",
        list(state.experiments.values()),
        _experiment_line,
        MAX_DASHBOARD_EXPERIMENTS,
    )
    section("Active projects:", list(state.projects.values()), _project_line)
    section(
        "Scratch folders:",
        list(state.scratches.values()),
        _scratch_line,
        MAX_DASHBOARD_SCRATCHES,
    )

    if state.is_empty():
        console.print()
        ui.info("No active experiments, projects, or scratch folders")
    console.print()


def _register_repo_interactive() -> None:
    from .repos import add_repo

    path = ask("Repository path", default=".")
    add_repo(path or ".")


def dashboard_actions(state: State) -> list[tuple[str, str, Callable[[], None]]]:
    """
    Actions offered below the summary.

    Resume and Clean up only appear when something is tracked.

    Returns:
        List of (name, description, handler)
    """
    from .cleanup import cleanup
    from .display import list_items
    from .projects import create_project
    from .resume import resume
    from .workspaces import create_scratch, create_worktree_workspace

    has_items = not state.is_empty()
    actions: list[tuple[str, str, Callable[[], None]]] = []
    if has_items:
        actions.append(("Resume", "Resume an experiment, project, or scratch", resume))
    actions += [
        (
            "New experiment",
            "Create an isolated worktree experiment",
            lambda: create_worktree_workspace("experiment"),
        ),
        ("New project", "Create a multi-repo workspace", create_project),
        ("New scratch", "Create a no-git scratch folder", create_scratch),
        ("Register repo", "Add a repository for quick access", _register_repo_interactive),
    ]
    if has_items:
        actions.append(("Clean up", "Remove an experiment, project, or scratch", cleanup))
    actions += [
        ("View all", "Show detailed list of all items", list_items),
        ("Exit", "", lambda: None),
    ]
    return actions


def show_dashboard() -> None:
    """
    Show the summary and run the chosen action.

    Raises:
        CladeError: Whatever the chosen action raises
    """
    cfg = load_config()
    state = load_state(cfg)

    show_summary(state)

    actions = dashboard_actions(state)
    choices = [
        (f"{name}  {description}" if description else name, name)
        for name, description, _ in actions
    ]
    selected = pick(choices, title="What would you like to do")
    if selected is None:
        return
    for name, _, handler in actions:
        if name == selected:
            handler()
            return
