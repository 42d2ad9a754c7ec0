"""Launching the coding agent and an editor next to it."""

import logging
import os
import shlex
import subprocess
from pathlib import Path

from .constants import DEFAULT_AGENT
from .exceptions import AgentError
from .git_utils import has_command

logger = logging.getLogger(__name__)

TERMINAL_EDITORS = frozenset({"nvim", "neovim", "vim"})


def build_agent_command(
    agent: str,
    workdir: Path,
    flags: list[str] | None = None,
    add_dirs: list[Path] | None = None,
) -> list[str]:
    """
    Build the argv for an agent.

    Claude Code gets `--add-dir` for every extra directory followed by the
    configured flags. Any other agent is a command line whose lone "."
    arguments are replaced with the working directory.

    Args:
        agent: Agent command ("claude" or "" for Claude Code)
        workdir: Directory the agent works in
        flags: Extra flags for Claude Code
        add_dirs: Extra directories for Claude Code (multi-repo projects)

    Returns:
        Command and arguments
    """
    if agent in ("", DEFAULT_AGENT):
        cmd = [DEFAULT_AGENT]
        for directory in add_dirs or []:
            cmd += ["--add-dir", str(directory)]
        cmd += list(flags or [])
        return cmd

    parts = shlex.split(agent) or [DEFAULT_AGENT]
    return [parts[0]] + [str(workdir) if arg == "." else arg for arg in parts[1:]]


def launch_agent(
    workdir: Path,
    agent: str = DEFAULT_AGENT,
    flags: list[str] | None = None,
    add_dirs: list[Path] | None = None,
) -> int:
    """
    Run the agent in the foreground, attached to the terminal.

    Args:
        workdir: Directory to run the agent in
        agent: Agent command
        flags: Extra flags for Claude Code
        add_dirs: Extra directories for Claude Code

    Returns:
        The agent's exit code

    Raises:
        AgentError: If the agent executable cannot be found
    """
    cmd = build_agent_command(agent, workdir, flags, add_dirs)
    if not has_command(cmd[0]):
        raise AgentError(f"{cmd[0]} not found. Install it or set \"agent\" in your clade config.")
    logger.debug("Launching agent: %s (cwd=%s)", shlex.join(cmd), workdir)
    try:
        result = subprocess.run(cmd, cwd=workdir, check=False)
    except OSError as e:
        raise AgentError(f"failed to start {cmd[0]}: {e}") from e
    if result.returncode != 0:
        logger.debug("Agent exited with code %s", result.returncode)
    return result.returncode


def in_tmux() -> bool:
    """Check if running inside a tmux session."""
    return bool(os.environ.get("TMUX"))


def open_editor(workdir: Path, editor: str, split_direction: str = "horizontal") -> None:
    """
    Open an editor alongside the agent.

    GUI editors start in the background. Terminal editors open in a tmux
    split so the agent keeps the current pane.

    Args:
        workdir: Directory to open
        editor: Editor command ("" does nothing)
        split_direction: "horizontal" (side by side) or "vertical" (stacked)

    Raises:
        AgentError: If the editor cannot be started
    """
    if not editor:
        return

    if editor in TERMINAL_EDITORS:
        if not in_tmux():
            raise AgentError(
                "nvim requires tmux for split view. "
                "Use --open cursor or --open code instead"
            )
        split_flag = "-v" if split_direction == "vertical" else "-h"
        cmd = ["tmux", "split-window", split_flag, "-c", str(workdir), "nvim", "."]
        try:
            subprocess.run(cmd, cwd=workdir, check=True)
        except (OSError, subprocess.CalledProcessError) as e:
            raise AgentError(f"Failed to open tmux split: {e}") from e
        return

    try:
        subprocess.Popen(
            [editor, str(workdir)],
            cwd=workdir,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError as e:
        raise AgentError(f"Failed to open {editor}: {e}") from e
