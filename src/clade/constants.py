"""Constants and default values for clade."""

import re
from pathlib import Path

APP_NAME = "clade"

# Default agent command ("" disables launching)
DEFAULT_AGENT = "claude"

DEFAULT_BASE_DIR = "~/clade"

STATE_VERSION = 1
STATE_FILENAME = "state.json"

# Per-worktree metadata files
METADATA_FILENAME = ".clade.json"
PROJECT_METADATA_FILENAME = ".clade-project.json"

# Context files the agent reads and writes
DROPBAG_FILENAME = "DROPBAG.md"
TICKET_FILENAME = "TICKET.md"
CLAUDE_MD_FILENAME = "CLAUDE.md"

# Items untouched this many days are flagged as stale
STALE_DAYS = 7

NAME_PATTERN = re.compile(r"[a-zA-Z0-9][a-zA-Z0-9_-]*")
TICKET_PATTERN = re.compile(r"^([A-Z]+-\d+)")

# Branch prefixes by workspace type
EXPERIMENT_BRANCH_PREFIX = "exp/"
FEATURE_BRANCH_PREFIX = "feat/"

INJECT_CONTEXT_COMMAND = "clade inject-context"


def default_branch_name(prefix: str, name: str) -> str:
    """
    Build the default branch for a workspace.

    Args:
        prefix: Branch prefix such as "exp/" or "feat/"
        name: Workspace name

    Returns:
        Branch name, e.g. "exp/try-redis"
    """
    return f"{prefix}{name}"


def get_config_dir() -> Path:
    """Get the clade config directory: ~/.config/clade."""
    return Path.home() / ".config" / APP_NAME
