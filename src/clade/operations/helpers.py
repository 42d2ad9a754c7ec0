"""Helper functions shared across operations modules."""

import os
from datetime import UTC, datetime
from pathlib import Path

from rich.markup import escape

from .. import console as ui
from ..agent import launch_agent, open_editor
from ..config import Config, expand_path, save_config
from ..exceptions import AgentError, CladeError, ConfigError, RepoNotFoundError, StateError
from ..files import copy_dir, copy_files, find_gitignored
from ..git_utils import get_repo_root, is_git_repo
from ..helpers import format_age, validate_name
from ..hooks import init_repo, is_initialized
from ..state import Experiment, Item, Project, State, save_state
from ..tui import ask, confirm, pick

CURRENT_DIR_CHOICE = "(current directory)"
LAST_USED_SUFFIX = " (last used)"

KIND_LABELS = {"exp": "exp", "project": "project", "scratch": "scratch"}


def iso_now() -> str:
    """Timestamp for metadata files."""
    return datetime.now(UTC).isoformat(timespec="seconds")


def prompt_name(name: str | None, label: str) -> str:
    """Use the given name or prompt for one, then validate it.

    Raises:
        InvalidNameError: If the name is invalid
    """
    if not name:
        name = ask(label)
    validate_name(name)
    return name


def prompt_branch(branch: str | None, default: str) -> str:
    """Use an explicit branch or prompt with a default."""
    if branch:
        return branch
    return ask("Branch name", default=default) or default


def _current_repo() -> Path | None:
    cwd = Path.cwd()
    if is_git_repo(cwd):
        return get_repo_root(cwd)
    return None


def repo_choices(cfg: Config) -> list[tuple[str, str]]:
    """Registered repos as picker items, the last used one first and marked."""
    choices: list[tuple[str, str]] = []
    for name in sorted(cfg.repos):
        path = str(expand_path(cfg.repos[name]))
        if cfg.last_repo and path == cfg.last_repo:
            choices.insert(0, (name + LAST_USED_SUFFIX, path))
        else:
            choices.append((name, path))
    return choices


def pick_repo(cfg: Config, include_current: bool) -> Path:
    """
    Show the repo picker.

    Args:
        cfg: Configuration with registered repos
        include_current: Offer the repository containing the cwd

    Returns:
        Chosen repository path

    Raises:
        RepoNotFoundError: If there is nothing to pick or the user cancels
    """
    choices: list[tuple[str, str]] = []
    if include_current:
        current = _current_repo()
        if current is not None:
            choices.append((CURRENT_DIR_CHOICE, str(current)))
    choices += repo_choices(cfg)

    if not choices:
        raise RepoNotFoundError("no repos available. Register repos with: clade repo add <path>")

    selected = pick(choices, title="Select repo")
    if selected is None:
        raise RepoNotFoundError("no repo selected")
    return Path(selected)


def resolve_repo(cfg: Config, repo_flag: str | None = None, force_pick: bool = False) -> Path:
    """
    Resolve the source repository for a command.

    Order: --pick forces the picker; then the --repo flag (registered name,
    else a path inside a git repo); then the repo containing the cwd; then
    the picker over registered repos.

    Args:
        cfg: Configuration
        repo_flag: Value of --repo
        force_pick: Value of --pick

    Returns:
        Repository root

    Raises:
        RepoNotFoundError: If no repository can be resolved
    """
    if force_pick:
        return pick_repo(cfg, include_current=True)

    if repo_flag:
        if repo_flag in cfg.repos:
            return expand_path(cfg.repos[repo_flag])
        candidate = expand_path(repo_flag)
        if is_git_repo(candidate):
            return get_repo_root(candidate)
        raise RepoNotFoundError(f"not a git repository: {repo_flag}")

    current = _current_repo()
    if current is not None:
        return current

    if not cfg.repos:
        raise RepoNotFoundError("not in a git repo. Register repos with: clade repo add <path>")
    return pick_repo(cfg, include_current=False)


def remember_repo(cfg: Config, repo: Path) -> None:
    """Save a repo as last used; failures only warn."""
    cfg.last_repo = str(repo)
    try:
        save_config(cfg)
    except ConfigError as e:
        ui.warn(f"Failed to save config: {escape(str(e))}")


def setup_claude_config(cfg: Config, source: Path | None, target: Path) -> None:
    """
    Give a new worktree its .claude/ configuration.

    Copies .claude/ from the source repository when it has one, otherwise
    writes clade's default hooks if auto_init is enabled. Failures only warn.
    """
    source_claude = source / ".claude" if source is not None else None
    if source_claude is not None and source_claude.is_dir():
        ui.info("Copying .claude/ configuration...")
        try:
            copy_dir(source_claude, target / ".claude")
        except OSError as e:
            ui.warn(f"Failed to copy .claude/ directory: {escape(str(e))}")
        return
    ensure_initialized(cfg, target)


def ensure_initialized(cfg: Config, path: Path) -> None:
    """Write clade's hooks into a directory when auto_init is enabled."""
    if not cfg.auto_init or is_initialized(path):
        return
    ui.info("Initializing .claude/ configuration...")
    try:
        init_repo(path)
    except OSError as e:
        ui.warn(f"Failed to initialize .claude/: {escape(str(e))}")


def copy_gitignored_files(cfg: Config, source: Path, target: Path) -> None:
    """
    Copy local gitignored files (.env and friends) into a new worktree.

    The first time a repo is used the user is asked file by file and the
    answer is remembered in the config; later worktrees reuse it silently.
    """
    key = str(source)
    selected = cfg.get_repo_copy_files(key)

    if selected is None:
        detected = find_gitignored(source)
        if not detected:
            return
        ui.get_console().print()
        ui.info(f"Found gitignored files in {source.name}:")
        for rel_path in detected:
            ui.detail(f"  {rel_path}")
        selected = [rel_path for rel_path in detected if confirm(f"Copy {rel_path}?", default=True)]
        cfg.set_repo_copy_files(key, selected)
        try:
            save_config(cfg)
        except ConfigError as e:
            ui.warn(f"Failed to save file preferences: {escape(str(e))}")

    if not selected:
        return
    present = [rel_path for rel_path in selected if (source / rel_path).exists()]
    try:
        copy_files(source, target, present)
    except OSError as e:
        ui.warn(f"Failed to copy some files: {escape(str(e))}")
        return
    for rel_path in present:
        ui.detail(f"  Copied {rel_path}")


def _open_editor(cfg: Config, directory: Path, editor_override: str | None) -> None:
    editor = editor_override or cfg.editor
    if not editor:
        return
    try:
        open_editor(directory, editor, cfg.tmux_split_direction)
    except AgentError as e:
        ui.warn(f"Could not open editor: {escape(str(e))}")
    else:
        ui.info(f"Opened {editor}")


def launch_session(
    cfg: Config,
    workdir: Path,
    editor: str | None = None,
    no_agent: bool = False,
    no_editor: bool = False,
    agent: str | None = None,
    add_dirs: list[Path] | None = None,
    editor_dir: Path | None = None,
) -> None:
    """
    Open the editor (if any) and then run the agent in a workspace.

    Args:
        cfg: Configuration providing agent, flags and editor
        workdir: Directory the agent runs in
        editor: Editor overriding the configured one
        no_agent: Skip the agent
        no_editor: Skip the editor
        agent: Agent overriding the configured one
        add_dirs: Extra directories for the agent (multi-repo projects)
        editor_dir: Directory to open in the editor (defaults to workdir)

    Raises:
        AgentError: If the agent cannot be started
    """
    if not no_editor:
        _open_editor(cfg, editor_dir or workdir, editor)

    agent_cmd = agent or cfg.agent
    if no_agent or not agent_cmd:
        return

    ui.info(f"Launching {agent_cmd}...")
    ui.get_console().print()
    launch_agent(workdir, agent_cmd, cfg.agent_flags, add_dirs)


def launch_project_session(
    cfg: Config,
    project: Project,
    editor: str | None = None,
    no_agent: bool = False,
    no_editor: bool = False,
    agent: str | None = None,
) -> None:
    """
    Launch a project: editor at the project root, agent in the first repo
    with every other repo added as an extra directory.

    Raises:
        CladeError: If the project has no repos
    """
    if not project.repos:
        raise CladeError("project has no repos")
    dirs = [project.repo_path(repo) for repo in project.repos]
    launch_session(
        cfg,
        dirs[0],
        editor=editor,
        no_agent=no_agent,
        no_editor=no_editor,
        agent=agent,
        add_dirs=dirs[1:],
        editor_dir=Path(project.path),
    )


def item_label(kind: str, item: Item) -> str:
    """Picker label such as "[exp] try-redis (backend)"."""
    label = f"[{KIND_LABELS[kind]}] {item.name}"
    if isinstance(item, Experiment):
        label += f" ({os.path.basename(item.repo)})"
    elif isinstance(item, Project):
        label += f" ({len(item.repos)} repos)"
    return label


def pick_tracked_item(state: State, title: str) -> tuple[str, str, Item] | None:
    """Pick any tracked item, most recently used first.

    Returns:
        (kind, key, record), or None if nothing is tracked or the user cancels
    """
    items = state.resumable_items()
    if not items:
        return None
    choices = [
        (f"{item_label(kind, item)}  {format_age(item.last_used)}", f"{kind}:{key}")
        for kind, key, item in items
    ]
    selected = pick(choices, title=title)
    if selected is None:
        return None
    for kind, key, item in items:
        if f"{kind}:{key}" == selected:
            return kind, key, item
    return None


def find_tracked_item(state: State, name: str) -> tuple[str, str, Item] | None:
    """Look a name up among experiments, then projects, then scratches."""
    found = state.find_experiment(name)
    if found is not None:
        return "exp", found[0], found[1]
    project = state.get_project(name)
    if project is not None:
        return "project", name, project
    scratch = state.get_scratch(name)
    if scratch is not None:
        return "scratch", name, scratch
    return None


def persist_state(state: State, cfg: Config) -> None:
    """Save state after the main action succeeded; failures only warn."""
    try:
        save_state(state, cfg)
    except StateError as e:
        ui.warn(f"Failed to save state: {escape(str(e))}")
