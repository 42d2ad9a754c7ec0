"""Removing experiments, projects and scratch folders."""

import logging
import shutil
from pathlib import Path

from rich.markup import escape

from .. import console as ui
from ..config import Config, load_config
from ..exceptions import CladeError, GitError, ItemNotFoundError
from ..git_utils import delete_branch, has_uncommitted_changes, list_worktrees, remove_worktree
from ..state import Experiment, Project, Scratch, State, load_state
from ..tui import confirm
from .helpers import find_tracked_item, persist_state, pick_tracked_item

logger = logging.getLogger(__name__)


def _remove_worktree_dir(repo: Path, worktree: Path) -> None:
    """Remove a worktree through git when git still lists it, else delete the folder.

    Raises:
        CladeError: If the folder cannot be deleted either
    """
    try:
        registered = worktree.resolve() in {p.resolve() for p in list_worktrees(repo)}
    except GitError as e:
        logger.debug("cannot list worktrees of %s: %s", repo, e)
        registered = False

    if registered:
        try:
            remove_worktree(repo, worktree)
            return
        except GitError as e:
            logger.debug("git worktree remove failed for %s: %s", worktree, e)
    try:
        shutil.rmtree(worktree)
    except FileNotFoundError:
        pass
    except OSError as e:
        raise CladeError(f"failed to remove worktree: {e}") from e


def _delete_branch(repo: Path, branch: str, label: str = "") -> None:
    where = f" in {escape(label)}" if label else ""
    try:
        delete_branch(repo, branch)
    except GitError as e:
        ui.warn(f"Failed to delete branch{where}: {escape(str(e))}")
    else:
        ui.success(f"Deleted branch{where}" if where else "Branch deleted")


def cleanup_experiment(cfg: Config, state: State, key: str, exp: Experiment, force: bool) -> None:
    """Remove an experiment's worktree, optionally its branch, and forget it."""
    ui.header(f"Experiment: {exp.name}")
    ui.key_value("Path", exp.path)
    ui.key_value("Branch", escape(exp.branch))
    ui.get_console().print()

    path = Path(exp.path)
    if path.exists() and has_uncommitted_changes(path):
        ui.warn("Uncommitted changes detected")
        if not force and not confirm("Discard changes and continue?", default=False):
            ui.info("Cleanup cancelled")
            return

    ui.info("Removing worktree...")
    _remove_worktree_dir(Path(exp.repo), path)
    ui.success("Worktree removed")

    if force or confirm(f"Delete branch {exp.branch}?", default=False):
        ui.info("Deleting branch...")
        _delete_branch(Path(exp.repo), exp.branch)

    state.remove_experiment(key)
    persist_state(state, cfg)
    ui.success(f"Cleaned up {exp.kind} '{exp.name}'")


def cleanup_project(cfg: Config, state: State, project: Project, force: bool) -> None:
    """Remove every worktree of a project, the project folder, and optionally
    the shared branch in every repo."""
    ui.header(f"Project: {project.name}")
    ui.key_value("Path", project.path)
    ui.key_value("Branch", escape(project.branch))
    ui.key_value("Repos", ", ".join(r.name for r in project.repos))
    ui.get_console().print()

    dirty = False
    for repo in project.repos:
        worktree = project.repo_path(repo)
        if worktree.exists() and has_uncommitted_changes(worktree):
            ui.warn(f"Uncommitted changes in {escape(repo.name)}")
            dirty = True

    if dirty and not force and not confirm("Discard all changes and continue?", default=False):
        ui.info("Cleanup cancelled")
        return

    ui.info("Removing worktrees...")
    for repo in project.repos:
        try:
            _remove_worktree_dir(Path(repo.source), project.repo_path(repo))
        except CladeError as e:
            ui.warn(f"Failed to remove {escape(repo.name)}: {escape(str(e))}")
            continue
        ui.success(f"Removed {repo.name}")

    shutil.rmtree(project.path, ignore_errors=True)

    if force or confirm(f"Delete branch {project.branch} from all repos?", default=False):
        ui.info("Deleting branches...")
        for repo in project.repos:
            _delete_branch(Path(repo.source), project.branch, label=repo.name)

    state.remove_project(project.name)
    persist_state(state, cfg)
    ui.success(f"Cleaned up project '{project.name}'")


def cleanup_scratch(cfg: Config, state: State, scratch: Scratch, force: bool) -> None:
    """Delete a scratch folder and forget it.

    Raises:
        CladeError: If the folder cannot be deleted
    """
    ui.header(f"Scratch: {scratch.name}")
    ui.key_value("Path", scratch.path)
    ui.get_console().print()

    path = Path(scratch.path)
    if path.is_dir():
        visible = [entry for entry in path.iterdir() if not entry.name.startswith(".")]
        if visible and not force:
            ui.warn(f"Scratch folder contains {len(visible)} file(s)")
            if not confirm("Delete all contents and continue?", default=False):
                ui.info("Cleanup cancelled")
                return

    ui.info("Removing scratch folder...")
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        raise CladeError(f"failed to remove scratch folder: {e}") from e
    ui.success("Folder removed")

    state.remove_scratch(scratch.name)
    persist_state(state, cfg)
    ui.success(f"Cleaned up scratch '{scratch.name}'")


def cleanup(name: str | None = None, force: bool = False) -> None:
    """
    Clean up a workspace by name, or pick one when no name is given.

    Args:
        name: Experiment, project or scratch name
        force: Skip confirmations and always delete branches

    Raises:
        ItemNotFoundError: If the name is not tracked
    """
    cfg = load_config()
    state = load_state(cfg)

    if state.is_empty():
        ui.info("No experiments, projects, or scratch folders to clean up")
        return

    if name:
        found = find_tracked_item(state, name)
        if found is None:
            raise ItemNotFoundError(f"'{name}' not found as experiment, project, or scratch")
    else:
        found = pick_tracked_item(state, "Select to clean up")
        if found is None:
            return

    kind, key, item = found
    if kind == "exp":
        cleanup_experiment(cfg, state, key, item, force)  # type: ignore[arg-type]
    elif kind == "project":
        cleanup_project(cfg, state, item, force)  # type: ignore[arg-type]
    else:
        cleanup_scratch(cfg, state, item, force)  # type: ignore[arg-type]
