"""`clade init` and the SessionStart hook entry point."""

from pathlib import Path

import typer

from .. import console as ui
from ..context import format_context, gather_context
from ..exceptions import CladeError
from ..git_utils import get_repo_name, get_repo_root, is_git_repo
from ..hooks import init_repo, is_initialized


def init(force: bool = False) -> None:
    """
    Write .claude/ hooks and the /drop command into the current repository.

    Raises:
        GitError: If not inside a git repository
        CladeError: If the files cannot be written
    """
    repo_root = get_repo_root()

    if is_initialized(repo_root) and not force:
        ui.warn(".claude/settings.json already exists")
        ui.detail("Use --force to overwrite")
        return

    ui.header(f"Initializing clade in {get_repo_name(repo_root)}")
    ui.info("Creating .claude/settings.json...")
    ui.info("Creating .claude/commands/drop.md...")
    ui.info("Updating .gitignore...")
    try:
        init_repo(repo_root, force=True)
    except OSError as e:
        raise CladeError(f"failed to write .claude/ configuration: {e}") from e

    ui.success("Clade initialized!")
    ui.detail("SessionStart hook will call: clade inject-context")
    ui.detail("Use /drop to save session context before stopping")


def inject_context(path: Path | None = None) -> None:
    """Print session context as markdown on stdout for the agent to read.

    Uses the repository root when inside a git repository, the directory
    itself otherwise.
    """
    directory = path or Path.cwd()
    if is_git_repo(directory):
        directory = get_repo_root(directory)
    typer.echo(format_context(gather_context(directory)), nl=False)
