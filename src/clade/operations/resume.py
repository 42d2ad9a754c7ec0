"""Resuming tracked workspaces, adopting orphaned branches and `clade open`."""

from pathlib import Path

from rich.markup import escape

from .. import console as ui
from ..branch import BranchStatus, check_branch, create_worktree_for_status
from ..config import Config, load_config
from ..constants import EXPERIMENT_BRANCH_PREFIX, default_branch_name
from ..exceptions import BranchExistsError, CladeError, ItemNotFoundError, WorktreeNotFoundError
from ..git_utils import fetch, get_repo_name
from ..helpers import extract_ticket
from ..state import Experiment, Item, Project, Scratch, State, experiment_key, load_state, touch
from .helpers import (
    ensure_initialized,
    find_tracked_item,
    launch_project_session,
    launch_session,
    persist_state,
    pick_tracked_item,
    resolve_repo,
)


def _report_divergence(repo: Path, branch: str, label: str = "") -> None:
    """Fetch and warn if the branch has drifted from origin."""
    fetch(repo)
    info = check_branch(repo, branch)
    prefix = f"{escape(label)}: " if label else ""
    if info.diverged:
        ui.warn(
            f"{prefix}Branch diverged from origin "
            f"({info.local_ahead} local, {info.remote_ahead} remote commits)"
        )
        ui.detail("Resolve in worktree: git pull --rebase OR git merge")
    elif info.remote_ahead > 0:
        ui.info(f"{prefix}Remote has {info.remote_ahead} new commits - consider: git pull")


def resume_experiment(cfg: Config, state: State, exp: Experiment, agent: str | None) -> None:
    """
    Resume a tracked experiment or feature.

    Raises:
        WorktreeNotFoundError: If the worktree was removed outside clade
    """
    if not Path(exp.path).exists():
        ui.error(f"Path no longer exists: {exp.path}")
        ui.detail("The worktree may have been removed manually")
        ui.detail(f"Run: clade cleanup {exp.name}")
        raise WorktreeNotFoundError(f"worktree not found: {exp.path}")

    _report_divergence(Path(exp.repo), exp.branch)

    touch(exp)
    persist_state(state, cfg)

    ui.header(f"Resuming: {exp.name}")
    ui.key_value("Path", exp.path)
    launch_session(cfg, Path(exp.path), agent=agent, no_editor=True)


def resume_project(cfg: Config, state: State, project: Project, agent: str | None) -> None:
    """
    Resume a tracked project.

    Raises:
        WorktreeNotFoundError: If the project folder is gone
    """
    if not Path(project.path).exists():
        ui.error(f"Path no longer exists: {project.path}")
        ui.detail(f"Run: clade cleanup {project.name}")
        raise WorktreeNotFoundError(f"project directory not found: {project.path}")

    for repo in project.repos:
        _report_divergence(Path(repo.source), project.branch, label=repo.name)

    touch(project)
    persist_state(state, cfg)

    ui.header(f"Resuming: {project.name}")
    ui.key_value("Path", project.path)
    launch_project_session(cfg, project, agent=agent, no_editor=True)


def resume_scratch(cfg: Config, state: State, scratch: Scratch, agent: str | None) -> None:
    """
    Resume a tracked scratch folder.

    Raises:
        WorktreeNotFoundError: If the folder is gone
    """
    if not Path(scratch.path).exists():
        ui.error(f"Path no longer exists: {scratch.path}")
        ui.detail(f"Run: clade cleanup {scratch.name}")
        raise WorktreeNotFoundError(f"scratch folder not found: {scratch.path}")

    touch(scratch)
    persist_state(state, cfg)

    ui.header(f"Resuming: {scratch.name}")
    ui.key_value("Path", scratch.path)
    launch_session(cfg, Path(scratch.path), agent=agent, no_editor=True)


def adopt_branch(cfg: Config, state: State, name: str, repo: str | None, agent: str | None) -> None:
    """
    Adopt an untracked exp/<name> branch as an experiment.

    The branch may exist locally, on origin or both; a worktree is created for
    it and the experiment is tracked from then on.

    Raises:
        RepoNotFoundError: If no repository can be resolved
        ItemNotFoundError: If the branch exists nowhere
        GitError: If the worktree cannot be created
    """
    try:
        repo_path = resolve_repo(cfg, repo)
    except CladeError:
        ui.error("Cannot adopt branch without knowing which repo")
        ui.detail(f"Specify repo: clade resume {name} -r <repo>")
        raise

    branch = default_branch_name(EXPERIMENT_BRANCH_PREFIX, name)
    ui.info(f"Checking for branch '{escape(branch)}' in {get_repo_name(repo_path)}...")
    fetch(repo_path)
    info = check_branch(repo_path, branch)

    if info.status is BranchStatus.NOT_FOUND:
        ui.error(f"Branch '{escape(branch)}' not found locally or on remote")
        ui.detail(f"Create new experiment: clade exp {name}")
        raise ItemNotFoundError(f"branch '{branch}' not found")

    key = experiment_key(repo_path, name)
    worktree_path = cfg.experiments_dir / key
    if worktree_path.exists():
        raise BranchExistsError(f"path already exists: {worktree_path}")
    cfg.experiments_dir.mkdir(parents=True, exist_ok=True)

    if info.status is BranchStatus.REMOTE_ONLY:
        ui.info(f"Tracking remote branch 'origin/{escape(branch)}'")
    else:
        ui.info(f"Adopting branch '{escape(branch)}'")
    create_worktree_for_status(repo_path, worktree_path, branch, info)
    if info.diverged:
        ui.warn(
            "Branch diverged from origin "
            f"({info.local_ahead} local, {info.remote_ahead} remote commits)"
        )
        ui.detail("Resolve in worktree: git pull --rebase OR git merge")

    ensure_initialized(cfg, worktree_path)

    state.add_experiment(
        Experiment(
            name=name,
            repo=str(repo_path),
            path=str(worktree_path),
            branch=branch,
            ticket=extract_ticket(name),
        )
    )
    persist_state(state, cfg)

    ui.success(f"Adopted experiment '{name}'")
    ui.key_value("Path", str(worktree_path))
    launch_session(cfg, worktree_path, agent=agent, no_editor=True)


def _resume_item(cfg: Config, state: State, kind: str, key: str, item: Item, agent: str | None) -> None:
    if kind == "exp":
        resume_experiment(cfg, state, item, agent)  # type: ignore[arg-type]
    elif kind == "project":
        resume_project(cfg, state, item, agent)  # type: ignore[arg-type]
    else:
        resume_scratch(cfg, state, item, agent)  # type: ignore[arg-type]


def resume(name: str | None = None, repo: str | None = None, agent: str | None = None) -> None:
    """
    Resume a workspace by name, or pick one when no name is given.

    Untracked names are treated as orphaned exp/<name> branches and adopted.
    """
    cfg = load_config()
    state = load_state(cfg)

    if not name:
        if state.is_empty():
            ui.info("No experiments, projects, or scratch folders to resume")
            ui.detail("Create one with: clade exp <name>")
            ui.detail("Or for no-git: clade scratch <name>")
            ui.detail("Or adopt an existing branch: clade resume <branch-name> -r <repo>")
            return
        picked = pick_tracked_item(state, "Select to resume")
        if picked is None:
            return
        _resume_item(cfg, state, *picked, agent)
        return

    found = find_tracked_item(state, name)
    if found is not None:
        _resume_item(cfg, state, *found, agent)
        return

    adopt_branch(cfg, state, name, repo, agent)


def open_item(name: str | None = None) -> Path | None:
    """
    Resolve the directory of a tracked workspace for `cd "$(clade open x)"`.

    Touches last_used. The picker is drawn on stderr so stdout carries only
    the path.

    Returns:
        The directory, or None if the user cancelled the picker

    Raises:
        ItemNotFoundError: If nothing is tracked or the name is unknown
        WorktreeNotFoundError: If the directory no longer exists
    """
    cfg = load_config()
    state = load_state(cfg)

    if not name:
        if state.is_empty():
            raise ItemNotFoundError("nothing to open. Create one with: clade exp <name>")
        found = pick_tracked_item(state, "Select to open")
        if found is None:
            return None
    else:
        found = find_tracked_item(state, name)
        if found is None:
            raise ItemNotFoundError(f"'{name}' not found")

    _, _, item = found
    path = Path(item.path)
    if not path.exists():
        raise WorktreeNotFoundError(f"path no longer exists: {path}. Run: clade cleanup {item.name}")

    touch(item)
    persist_state(state, cfg)
    return path
