"""Creating experiments, features and scratch folders."""

from pathlib import Path

from rich.markup import escape

from .. import console as ui
from ..branch import BranchStatus, check_branch, create_worktree_new
from ..config import load_config
from ..constants import (
    EXPERIMENT_BRANCH_PREFIX,
    FEATURE_BRANCH_PREFIX,
    METADATA_FILENAME,
    default_branch_name,
)
from ..context import write_metadata
from ..exceptions import BranchExistsError, CladeError
from ..git_utils import get_repo_name
from ..helpers import extract_ticket
from ..state import Experiment, Scratch, experiment_key, load_state
from ..tui import confirm
from .helpers import (
    copy_gitignored_files,
    ensure_initialized,
    iso_now,
    launch_session,
    persist_state,
    prompt_branch,
    prompt_name,
    remember_repo,
    resolve_repo,
    setup_claude_config,
)

# kind -> (branch prefix, display noun)
WORKTREE_KINDS = {
    "experiment": (EXPERIMENT_BRANCH_PREFIX, "experiment"),
    "feature": (FEATURE_BRANCH_PREFIX, "feature"),
}


def create_worktree_workspace(
    kind: str,
    name: str | None = None,
    repo: str | None = None,
    pick: bool = False,
    branch: str | None = None,
    editor: str | None = None,
    no_agent: bool = False,
    no_editor: bool = False,
) -> None:
    """
    Create an experiment or feature worktree and launch a session in it.

    The worktree lives at <base>/experiments/<repo>-<name> on a new branch
    (exp/<name> or feat/<name> unless given) started from origin's default
    branch.

    Args:
        kind: "experiment" or "feature"
        name: Workspace name (prompted if None)
        repo: Registered repo name or path
        pick: Force the repo picker
        branch: Branch name (prompted if None)
        editor: Editor to open instead of the configured one
        no_agent: Do not launch the agent
        no_editor: Do not open the editor

    Raises:
        InvalidNameError: If the name is invalid
        RepoNotFoundError: If no source repository can be resolved
        BranchExistsError: If the branch already exists locally or on origin
        GitError: If the worktree cannot be created
    """
    prefix, noun = WORKTREE_KINDS[kind]
    cfg = load_config()

    name = prompt_name(name, f"{noun.capitalize()} name")
    repo_path = resolve_repo(cfg, repo, pick)
    remember_repo(cfg, repo_path)

    repo_name = get_repo_name(repo_path)
    key = experiment_key(repo_path, name)
    worktree_path = cfg.experiments_dir / key

    state = load_state(cfg)
    existing = state.get_experiment(key)
    if existing is not None:
        ui.warn(f"{noun.capitalize()} '{name}' already exists")
        ui.key_value("Path", existing.path)
        if confirm(f"Resume existing {noun}?", default=True):
            launch_session(cfg, Path(existing.path), editor, no_agent, no_editor)
        return

    branch = prompt_branch(branch, default_branch_name(prefix, name))

    ui.header(f"Creating {noun}: {name}")
    ui.key_value("Repo", repo_name)
    ui.key_value("Path", str(worktree_path))
    ui.key_value("Branch", branch)

    cfg.experiments_dir.mkdir(parents=True, exist_ok=True)

    ui.info("Checking branch availability...")
    if check_branch(repo_path, branch).status is not BranchStatus.NOT_FOUND:
        ui.error(f"Branch '{escape(branch)}' already exists")
        ui.detail(f"Use: clade resume {name}")
        ui.detail("Or pick a different name")
        raise BranchExistsError(f"branch '{branch}' already exists")

    ui.info("Creating worktree...")
    create_worktree_new(repo_path, worktree_path, branch)

    setup_claude_config(cfg, repo_path, worktree_path)
    copy_gitignored_files(cfg, repo_path, worktree_path)

    ticket = extract_ticket(name)
    try:
        write_metadata(
            worktree_path / METADATA_FILENAME,
            {
                "type": kind,
                "name": name,
                "ticket": ticket,
                "repo": repo_name,
                "created": iso_now(),
            },
        )
    except OSError as e:
        ui.warn(f"Failed to write {METADATA_FILENAME}: {escape(str(e))}")

    state.add_experiment(
        Experiment(
            name=name,
            repo=str(repo_path),
            path=str(worktree_path),
            branch=branch,
            ticket=ticket,
            kind=kind,
        )
    )
    persist_state(state, cfg)

    ui.success(f"{noun.capitalize()} created!")
    launch_session(cfg, worktree_path, editor, no_agent, no_editor)


def create_scratch(name: str | None = None, agent: str | None = None) -> None:
    """
    Create a plain scratch folder and launch the agent in it.

    Args:
        name: Scratch name (prompted if None)
        agent: Agent overriding the configured one

    Raises:
        InvalidNameError: If the name is invalid
        CladeError: If the folder cannot be created
    """
    cfg = load_config()
    name = prompt_name(name, "Scratch folder name")
    scratch_path = cfg.scratch_dir / name

    state = load_state(cfg)
    existing = state.get_scratch(name)
    if existing is not None:
        ui.warn(f"Scratch '{name}' already exists")
        ui.key_value("Path", existing.path)
        if confirm("Resume existing scratch?", default=True):
            launch_session(cfg, Path(existing.path), agent=agent, no_editor=True)
        return

    ui.header(f"Creating scratch: {name}")
    ui.key_value("Path", str(scratch_path))

    try:
        scratch_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CladeError(f"failed to create scratch directory: {e}") from e

    ensure_initialized(cfg, scratch_path)

    ticket = extract_ticket(name)
    try:
        write_metadata(
            scratch_path / METADATA_FILENAME,
            {"type": "scratch", "name": name, "ticket": ticket, "created": iso_now()},
        )
    except OSError as e:
        ui.warn(f"Failed to write {METADATA_FILENAME}: {escape(str(e))}")

    state.add_scratch(Scratch(name=name, path=str(scratch_path), ticket=ticket))
    persist_state(state, cfg)

    ui.success("Scratch folder created!")
    launch_session(cfg, scratch_path, agent=agent, no_editor=True)
