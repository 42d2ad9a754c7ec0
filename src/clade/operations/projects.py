"""Multi-repo projects: one folder holding a worktree per repository, all on
the same branch."""

import logging
import shutil
from pathlib import Path

from rich.markup import escape

from .. import console as ui
from ..branch import BranchInfo, create_worktree_for_status, describe_branch_info, preflight_check
from ..config import Config, expand_path, load_config
from ..constants import FEATURE_BRANCH_PREFIX, PROJECT_METADATA_FILENAME, default_branch_name
from ..context import write_metadata
from ..exceptions import CladeError, GitError, ItemNotFoundError, RepoNotFoundError
from ..git_utils import get_repo_root, is_git_repo, remove_worktree
from ..state import Project, ProjectRepo, State, load_state, touch
from ..tui import ask, confirm, pick
from .helpers import (
    copy_gitignored_files,
    ensure_initialized,
    launch_project_session,
    persist_state,
    prompt_name,
)

logger = logging.getLogger(__name__)

_LEVELS = {"success": ui.success, "info": ui.info, "warn": ui.warn}


def resolve_repo_input(cfg: Config, value: str) -> Path:
    """
    Resolve a registered repo name or a path to a repository root.

    Raises:
        RepoNotFoundError: If the value is neither
    """
    if value in cfg.repos:
        return expand_path(cfg.repos[value])
    candidate = expand_path(value).resolve()
    if not is_git_repo(candidate):
        raise RepoNotFoundError(f"not a git repository: {value}")
    return get_repo_root(candidate)


def report_preflight(labels: dict[Path, str], results: dict[Path, BranchInfo]) -> bool:
    """
    Print one line per repository describing what will happen to the branch.

    Returns:
        True if any repository produced a warning
    """
    has_warnings = False
    for repo, info in results.items():
        level, message = describe_branch_info(info)
        _LEVELS[level](f"  {escape(labels[repo])}: {message}")
        has_warnings = has_warnings or level == "warn"
    return has_warnings


def write_project_metadata(project: Project) -> None:
    """Write .clade-project.json at the project root; failures only warn."""
    try:
        write_metadata(
            Path(project.path) / PROJECT_METADATA_FILENAME,
            {
                "type": "project",
                "name": project.name,
                "branch": project.branch,
                "repos": [r.to_dict() for r in project.repos],
                "created": project.created.isoformat(timespec="seconds"),
            },
        )
    except OSError as e:
        ui.warn(f"Failed to write {PROJECT_METADATA_FILENAME}: {escape(str(e))}")


def cleanup_partial_project(project_path: Path, created: list[ProjectRepo]) -> None:
    """Remove worktrees created so far and the project folder."""
    for repo in created:
        worktree = project_path / repo.name
        try:
            remove_worktree(Path(repo.source), worktree)
        except GitError as e:
            logger.debug("worktree remove failed for %s: %s", worktree, e)
    shutil.rmtree(project_path, ignore_errors=True)


def _collect_repos(cfg: Config) -> list[ProjectRepo]:
    """Prompt for repositories until a blank line."""
    ui.header("Add repositories")
    ui.detail("Enter repo path or registered name (blank when done)")
    if cfg.repos:
        ui.detail(f"Registered repos: {', '.join(sorted(cfg.repos))}")
    ui.get_console().print()

    repos: list[ProjectRepo] = []
    while True:
        value = ask("Repo", default="")
        if not value:
            break
        try:
            repo_path = resolve_repo_input(cfg, value)
        except CladeError as e:
            ui.error(escape(str(e)))
            continue

        if any(Path(r.source) == repo_path for r in repos):
            ui.warn("Repo already added")
            continue

        folder = ask("  Folder name", default=repo_path.name)
        if any(r.name == folder for r in repos):
            ui.warn(f"Folder name '{folder}' already used")
            continue

        repos.append(ProjectRepo(name=folder, source=str(repo_path)))
        ui.success(f"Added {repo_path.name} -> {folder}")
    return repos


def create_project(
    name: str | None = None,
    editor: str | None = None,
    no_agent: bool = False,
    no_editor: bool = False,
) -> None:
    """
    Create a multi-repo project and launch a session in it.

    Collects repositories interactively, checks the shared branch in each of
    them before touching anything, then creates one worktree per repository
    under <base>/projects/<name>/. If any worktree fails, the ones already
    created are removed again.

    Raises:
        InvalidNameError: If the name is invalid
        CladeError: If no repositories were given
        GitError: If a worktree cannot be created
    """
    cfg = load_config()
    name = prompt_name(name, "Project name")

    state = load_state(cfg)
    existing = state.get_project(name)
    if existing is not None:
        ui.warn(f"Project '{name}' already exists")
        ui.key_value("Path", existing.path)
        if confirm("Resume existing project?", default=True):
            launch_project_session(cfg, existing, editor, no_agent, no_editor)
        return

    branch = ask("Branch name", default=default_branch_name(FEATURE_BRANCH_PREFIX, name))

    repos = _collect_repos(cfg)
    if not repos:
        raise CladeError("no repositories added")

    if len(repos) < 2:
        ui.warn("Only one repo added. Consider using 'clade exp' for single-repo work.")
        if not confirm("Continue anyway?", default=False):
            return

    ui.info("Checking branches...")
    ui.get_console().print()
    sources = [Path(r.source) for r in repos]
    results = preflight_check(sources, branch)
    has_warnings = report_preflight({Path(r.source): r.name for r in repos}, results)
    ui.get_console().print()

    if has_warnings and not confirm("Warnings detected. Proceed anyway?", default=False):
        ui.info("Aborted.")
        return

    project_path = cfg.projects_dir / name
    ui.header(f"Creating project: {name}")
    ui.key_value("Path", str(project_path))
    ui.key_value("Branch", branch)
    ui.get_console().print()

    try:
        project_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CladeError(f"failed to create project directory: {e}") from e

    created: list[ProjectRepo] = []
    for repo in repos:
        source = Path(repo.source)
        worktree = project_path / repo.name
        ui.info(f"Creating {repo.name}...")
        try:
            create_worktree_for_status(source, worktree, branch, results[source])
        except CladeError:
            ui.error(f"Failed to create worktree for {escape(repo.name)}")
            cleanup_partial_project(project_path, created)
            raise

        ensure_initialized(cfg, worktree)
        copy_gitignored_files(cfg, source, worktree)
        created.append(repo)
        ui.success(f"Created {repo.name}")

    project = Project(name=name, path=str(project_path), branch=branch, repos=created)
    write_project_metadata(project)
    state.add_project(project)
    persist_state(state, cfg)

    ui.get_console().print()
    ui.success("Project created!")
    launch_project_session(cfg, project, editor, no_agent, no_editor)


def _pick_project(state: State) -> str:
    names = sorted(state.projects)
    if len(names) == 1:
        return names[0]
    selected = pick([(n, n) for n in names], title="Select project")
    if selected is None:
        raise ItemNotFoundError("no project selected")
    return selected


def _pick_repo_to_add(cfg: Config, project: Project) -> Path:
    taken = {str(expand_path(r.source)) for r in project.repos}
    choices = [
        (name, str(expand_path(path)))
        for name, path in sorted(cfg.repos.items())
        if str(expand_path(path)) not in taken
    ]
    if not choices:
        raise RepoNotFoundError("all registered repos are already in this project")
    selected = pick(choices, title="Select repo to add")
    if selected is None:
        raise RepoNotFoundError("no repo selected")
    return Path(selected)


def add_repo_to_project(
    project_name: str | None = None,
    repo: str | None = None,
    editor: str | None = None,
    no_agent: bool = False,
    no_editor: bool = False,
) -> None:
    """
    Add a repository to an existing project on the project's branch.

    Raises:
        ItemNotFoundError: If there are no projects or the project is unknown
        RepoNotFoundError: If the repo cannot be resolved
        CladeError: If the repo or folder name is already in the project
        GitError: If the worktree cannot be created
    """
    cfg = load_config()
    state = load_state(cfg)

    if not state.projects:
        raise ItemNotFoundError("no projects found. Create one first with: clade project <name>")

    project_name = project_name or _pick_project(state)
    project = state.get_project(project_name)
    if project is None:
        raise ItemNotFoundError(f"project '{project_name}' not found")

    if repo:
        repo_path = resolve_repo_input(cfg, repo)
    elif not cfg.repos:
        raise RepoNotFoundError("no registered repos. Add some with: clade repo add <path>")
    else:
        repo_path = _pick_repo_to_add(cfg, project)

    if any(expand_path(r.source) == repo_path for r in project.repos):
        raise CladeError(f"repo '{repo_path.name}' is already in project '{project_name}'")

    folder = ask("Folder name", default=repo_path.name)
    if any(r.name == folder for r in project.repos):
        raise CladeError(f"folder name '{folder}' already exists in project")

    ui.info(f"Checking branch '{escape(project.branch)}'...")
    info = preflight_check([repo_path], project.branch)[repo_path]
    level, message = describe_branch_info(info)
    _LEVELS[level](message[0].upper() + message[1:])
    ui.get_console().print()

    worktree = Path(project.path) / folder
    ui.header(f"Adding to project: {project_name}")
    ui.key_value("Repo", repo_path.name)
    ui.key_value("Folder", folder)
    ui.key_value("Branch", project.branch)
    ui.get_console().print()

    ui.info("Creating worktree...")
    create_worktree_for_status(repo_path, worktree, project.branch, info)

    ensure_initialized(cfg, worktree)
    copy_gitignored_files(cfg, repo_path, worktree)

    project.repos.append(ProjectRepo(name=folder, source=str(repo_path)))
    touch(project)
    persist_state(state, cfg)
    write_project_metadata(project)

    ui.success(f"Added {folder} to project!")
    ui.get_console().print()

    if confirm("Launch agent?", default=True):
        launch_project_session(cfg, project, editor, no_agent, no_editor)
