"""Registered repositories: `clade repo add|list|remove`."""

from pathlib import Path

from rich.markup import escape

from .. import console as ui
from ..config import Config, expand_path, load_config, save_config
from ..exceptions import CladeError, GitError, RepoNotFoundError
from ..git_utils import get_repo_root, is_git_repo


def _same_path(registered: str, path: Path) -> bool:
    return expand_path(registered) == path


def _add_single_repo(cfg: Config, path: Path, name: str | None) -> None:
    repo_root = get_repo_root(path)
    name = name or repo_root.name

    existing = cfg.repos.get(name)
    if existing is not None:
        if _same_path(existing, repo_root):
            ui.info(f"Repository '{escape(name)}' is already registered")
            return
        raise CladeError(f"name '{name}' already registered for {existing}")

    cfg.repos[name] = str(repo_root)
    save_config(cfg)

    ui.success(f"Registered repository '{escape(name)}'")
    ui.key_value("Path", escape(str(repo_root)))


def _scan_and_add(cfg: Config, directory: Path) -> None:
    added = skipped = already = 0

    for child in sorted(directory.iterdir()):
        if not child.is_dir() or not is_git_repo(child):
            continue
        try:
            repo_root = get_repo_root(child)
        except GitError:
            skipped += 1
            continue

        name = repo_root.name
        existing = cfg.repos.get(name)
        if existing is not None:
            if _same_path(existing, repo_root):
                already += 1
            else:
                ui.warn(f"Skipped '{escape(name)}' - name already used for {escape(existing)}")
                skipped += 1
            continue

        cfg.repos[name] = str(repo_root)
        added += 1

    if not (added or already or skipped):
        raise RepoNotFoundError(f"no git repositories found in {directory}")

    if added:
        save_config(cfg)
        ui.success(f"Registered {added} repositories")
    if already:
        ui.info(f"{already} already registered")
    if skipped:
        ui.warn(f"{skipped} skipped (conflicts or errors)")


def add_repo(path: str, name: str | None = None) -> None:
    """
    Register a repository, or every repository directly inside a folder.

    Args:
        path: Repository path or a folder of repositories
        name: Registered name (single repository only; defaults to the
            folder name)

    Raises:
        RepoNotFoundError: If the path does not exist or holds no repositories
        CladeError: If the name is already used for another path
    """
    cfg = load_config()
    target = expand_path(path).resolve()

    if is_git_repo(target):
        _add_single_repo(cfg, target, name)
        return

    if not target.exists():
        raise RepoNotFoundError(f"path not found: {target}")
    if not target.is_dir():
        raise RepoNotFoundError(f"not a git repository: {target}")
    _scan_and_add(cfg, target)


def list_repos() -> None:
    """Print registered repositories, marking the last used one."""
    cfg = load_config()

    if not cfg.repos:
        ui.info("No repositories registered")
        ui.detail("Use: clade repo add <path>")
        return

    console = ui.get_console()
    ui.header("Registered repositories:")
    for name in sorted(cfg.repos):
        path = cfg.repos[name]
        suffix = ""
        if cfg.last_repo and str(expand_path(path)) == cfg.last_repo:
            suffix = " [dim](last used)[/dim]"
        console.print(f"  [cyan]{escape(name)}[/cyan]{suffix}")
        console.print(f"    [dim]{escape(path)}[/dim]")


def remove_repo(name: str) -> None:
    """
    Unregister a repository by name.

    Raises:
        RepoNotFoundError: If the name is not registered
    """
    cfg = load_config()

    if name not in cfg.repos:
        raise RepoNotFoundError(f"repository '{name}' not found")

    removed = cfg.repos.pop(name)
    if cfg.last_repo and cfg.last_repo == str(expand_path(removed)):
        if not any(str(expand_path(p)) == cfg.last_repo for p in cfg.repos.values()):
            cfg.last_repo = ""

    save_config(cfg)
    ui.success(f"Removed repository '{escape(name)}'")
