"""Typer-based CLI interface for clade."""

import logging
from typing import NoReturn

import click
import typer
from rich.logging import RichHandler
from rich.markup import escape
from typer.core import TyperGroup

from . import __version__
from . import console as ui
from .constants import APP_NAME
from .exceptions import CladeError


class DefaultCommandGroup(TyperGroup):
    """Group that runs its default command when no subcommand is named.

    `clade project my-app` behaves like `clade project create my-app`, while
    `clade project add ...` still reaches the `add` subcommand.
    """

    default_command = "create"

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        if not args or (args[0] not in self.commands and args[0] not in ctx.help_option_names):
            args = [self.default_command, *args]
        return super().parse_args(ctx, args)


app = typer.Typer(
    name=APP_NAME,
    help="Claude Code workflow CLI: git worktrees and context for agent sessions",
    add_completion=True,
)


def _fail(e: CladeError) -> NoReturn:
    """Print a command error and exit with status 1."""
    ui.get_err_console().print(f"[bold red]Error:[/bold red] {escape(str(e))}")
    raise typer.Exit(code=1)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        ui.get_console().print(f"{APP_NAME} version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Send clade's debug logs to stderr when --verbose is given."""
    if not verbose:
        return
    logger = logging.getLogger(APP_NAME)
    logger.setLevel(logging.DEBUG)
    if any(isinstance(h, RichHandler) for h in logger.handlers):
        return
    logger.addHandler(RichHandler(console=ui.get_err_console(), show_path=False))


def complete_tracked_names() -> list[str]:
    """Autocomplete function for experiment, project and scratch names."""
    try:
        from .config import load_config
        from .state import load_state

        state = load_state(load_config())
        names = {exp.name for exp in state.experiments.values()}
        names.update(state.projects)
        names.update(state.scratches)
        return sorted(names)
    except CladeError:
        return []


def complete_project_names() -> list[str]:
    """Autocomplete function for project names."""
    try:
        from .config import load_config
        from .state import load_state

        return sorted(load_state(load_config()).projects)
    except CladeError:
        return []


def complete_repo_names() -> list[str]:
    """Autocomplete function for registered repository names."""
    try:
        from .config import load_config

        return sorted(load_config().repos)
    except CladeError:
        return []


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Show debug logs on stderr",
    ),
) -> None:
    """
    Clade manages git worktrees and context for AI coding sessions.

    Without a command, shows a dashboard of active work and an action menu.

    Quick start:
        clade exp try-redis       # Create isolated experiment
        clade list                # See what's active
        clade resume try-redis    # Get back to work
        clade cleanup try-redis   # Clean up when done
    """
    configure_logging(verbose)
    if ctx.invoked_subcommand is not None:
        return

    from .operations.dashboard import show_dashboard

    try:
        show_dashboard()
    except CladeError as e:
        _fail(e)


def _create_worktree_command(
    kind: str,
    name: str | None,
    repo: str | None,
    pick: bool,
    branch: str | None,
    editor: str | None,
    no_agent: bool,
    no_editor: bool,
) -> None:
    from .operations.workspaces import create_worktree_workspace

    try:
        create_worktree_workspace(
            kind,
            name=name,
            repo=repo,
            pick=pick,
            branch=branch,
            editor=editor,
            no_agent=no_agent,
            no_editor=no_editor,
        )
    except CladeError as e:
        _fail(e)


@app.command()
def exp(
    name: str | None = typer.Argument(None, help="Experiment name (prompted if omitted)"),
    repo: str | None = typer.Option(
        None,
        "--repo",
        "-r",
        help="Repository path or registered name",
        autocompletion=complete_repo_names,
    ),
    pick: bool = typer.Option(
        False, "--pick", "-p", help="Force repo picker even if in a git repo"
    ),
    branch: str | None = typer.Option(
        None, "--branch", "-b", help="Custom branch name (skips prompt)"
    ),
    editor: str | None = typer.Option(
        None, "--open", "-o", "--editor", "-e", help="Open editor/IDE (cursor, code, nvim)"
    ),
    no_agent: bool = typer.Option(False, "--no-agent", help="Skip launching the AI agent"),
    no_editor: bool = typer.Option(False, "--no-editor", help="Skip opening the editor"),
) -> None:
    """
    Create an isolated experiment worktree.

    Creates <base>/experiments/<repo>-<name> on a new exp/<name> branch from
    origin's default branch, then launches the agent in it.

    Example:
        clade exp try-redis
        clade exp PROJ-123-auth -r backend
        clade exp spike -b exp/my-spike --no-agent
    """
    _create_worktree_command("experiment", name, repo, pick, branch, editor, no_agent, no_editor)


@app.command()
def feat(
    name: str | None = typer.Argument(None, help="Feature name (prompted if omitted)"),
    repo: str | None = typer.Option(
        None,
        "--repo",
        "-r",
        help="Repository path or registered name",
        autocompletion=complete_repo_names,
    ),
    pick: bool = typer.Option(
        False, "--pick", "-p", help="Force repo picker even if in a git repo"
    ),
    branch: str | None = typer.Option(
        None, "--branch", "-b", help="Custom branch name (skips prompt)"
    ),
    editor: str | None = typer.Option(
        None, "--open", "-o", "--editor", "-e", help="Open editor/IDE (cursor, code, nvim)"
    ),
    no_agent: bool = typer.Option(False, "--no-agent", help="Skip launching the AI agent"),
    no_editor: bool = typer.Option(False, "--no-editor", help="Skip opening the editor"),
) -> None:
    """
    Create a feature worktree on a feat/<name> branch.

    Same as `clade exp` with a different branch prefix, for work that is
    meant to be merged.
    """
    _create_worktree_command("feature", name, repo, pick, branch, editor, no_agent, no_editor)


@app.command()
def scratch(
    name: str | None = typer.Argument(None, help="Scratch folder name (prompted if omitted)"),
    agent: str | None = typer.Option(
        None, "--agent", "-a", help="Agent to launch (overrides config)"
    ),
) -> None:
    """
    Create a scratch folder without git for throwaway sessions.

    Example:
        clade scratch notes
        clade scratch PROJ-42-triage -a codex
    """
    from .operations.workspaces import create_scratch

    try:
        create_scratch(name=name, agent=agent)
    except CladeError as e:
        _fail(e)


project_app = typer.Typer(
    cls=DefaultCommandGroup,
    help="Create multi-repo projects sharing one branch",
)
app.add_typer(project_app, name="project")


@project_app.command(name="create")
def project_create(
    name: str | None = typer.Argument(None, help="Project name (prompted if omitted)"),
    editor: str | None = typer.Option(
        None, "--open", "-o", "--editor", "-e", help="Open editor/IDE (cursor, code, nvim)"
    ),
    no_agent: bool = typer.Option(False, "--no-agent", help="Skip launching the AI agent"),
    no_editor: bool = typer.Option(False, "--no-editor", help="Skip opening the editor"),
) -> None:
    """
    Create a project: one worktree per repository on a shared branch.

    Example:
        clade project checkout-flow
    """
    from .operations.projects import create_project

    try:
        create_project(name=name, editor=editor, no_agent=no_agent, no_editor=no_editor)
    except CladeError as e:
        _fail(e)


@project_app.command(name="add")
def project_add(
    project: str | None = typer.Argument(
        None, help="Project name", autocompletion=complete_project_names
    ),
    repo: str | None = typer.Argument(
        None, help="Repository path or registered name", autocompletion=complete_repo_names
    ),
    editor: str | None = typer.Option(
        None, "--open", "-o", "--editor", "-e", help="Open editor/IDE (cursor, code, nvim)"
    ),
    no_agent: bool = typer.Option(False, "--no-agent", help="Skip launching the AI agent"),
    no_editor: bool = typer.Option(False, "--no-editor", help="Skip opening the editor"),
) -> None:
    """
    Add a repository to an existing project.

    Example:
        clade project add checkout-flow payments
    """
    from .operations.projects import add_repo_to_project

    try:
        add_repo_to_project(
            project_name=project,
            repo=repo,
            editor=editor,
            no_agent=no_agent,
            no_editor=no_editor,
        )
    except CladeError as e:
        _fail(e)


@app.command()
def resume(
    name: str | None = typer.Argument(
        None,
        help="Experiment, project or scratch name (picker if omitted)",
        autocompletion=complete_tracked_names,
    ),
    repo: str | None = typer.Option(
        None,
        "--repo",
        "-r",
        help="Repository for adopting orphaned branches",
        autocompletion=complete_repo_names,
    ),
    agent: str | None = typer.Option(
        None, "--agent", "-a", help="Agent to launch (overrides config)"
    ),
) -> None:
    """
    Resume an experiment, project or scratch folder.

    An unknown name is looked up as an exp/<name> branch in the repository
    and adopted as a new experiment.
    """
    from .operations.resume import resume as resume_workspace

    try:
        resume_workspace(name=name, repo=repo, agent=agent)
    except CladeError as e:
        _fail(e)


@app.command()
def cleanup(
    name: str | None = typer.Argument(
        None,
        help="Experiment, project or scratch name (picker if omitted)",
        autocompletion=complete_tracked_names,
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmations"),
) -> None:
    """
    Remove an experiment, project or scratch folder.

    Worktrees are removed and, when confirmed (always with --force), their
    branches deleted.
    """
    from .operations.cleanup import cleanup as cleanup_workspace

    try:
        cleanup_workspace(name=name, force=force)
    except CladeError as e:
        _fail(e)


@app.command(name="list")
def list_cmd() -> None:
    """List experiments, projects and scratch folders."""
    from .operations.display import list_items

    try:
        list_items()
    except CladeError as e:
        _fail(e)


@app.command()
def status() -> None:
    """Show context and git status of the current workspace."""
    from .operations.display import show_status

    try:
        show_status()
    except CladeError as e:
        _fail(e)


@app.command(name="open")
def open_cmd(
    name: str | None = typer.Argument(
        None,
        help="Experiment, project or scratch name (picker if omitted)",
        autocompletion=complete_tracked_names,
    ),
) -> None:
    """
    Print the path of a workspace, for use with cd.

    Example:
        cd "$(clade open try-redis)"
    """
    from .operations.resume import open_item

    try:
        path = open_item(name)
    except CladeError as e:
        _fail(e)
    if path is None:
        raise typer.Exit(code=1)
    typer.echo(str(path))


@app.command()
def init(
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing configuration"),
) -> None:
    """
    Set up the current repository with clade's hooks.

    Writes .claude/settings.json with a SessionStart hook, the /drop command
    in .claude/commands/drop.md and adds DROPBAG.md and .clade.json to
    .gitignore.
    """
    from .operations.setup import init as init_repo

    try:
        init_repo(force=force)
    except CladeError as e:
        _fail(e)


@app.command(name="inject-context", hidden=True)
def inject_context() -> None:
    """Print session context for the agent (called by the SessionStart hook)."""
    from .operations.setup import inject_context as print_context

    try:
        print_context()
    except CladeError as e:
        _fail(e)


repo_app = typer.Typer(help="Manage registered repositories")
app.add_typer(repo_app, name="repo")


@repo_app.command(name="add")
def repo_add(
    path: str = typer.Argument(..., help="Repository path or a folder of repositories"),
    name: str | None = typer.Option(None, "--name", help="Custom name for the repository"),
) -> None:
    """
    Register a repository, or every repository inside a folder.

    Example:
        clade repo add ~/repos/api --name api
        clade repo add ~/repos
    """
    from .operations.repos import add_repo

    try:
        add_repo(path, name=name)
    except CladeError as e:
        _fail(e)


@repo_app.command(name="list")
def repo_list() -> None:
    """List registered repositories."""
    from .operations.repos import list_repos

    try:
        list_repos()
    except CladeError as e:
        _fail(e)


@repo_app.command(name="remove")
def repo_remove(
    name: str = typer.Argument(..., help="Registered name", autocompletion=complete_repo_names),
) -> None:
    """Unregister a repository."""
    from .operations.repos import remove_repo

    try:
        remove_repo(name)
    except CladeError as e:
        _fail(e)


if __name__ == "__main__":
    app()
