"""Writing the .claude/ configuration that wires a repo into clade.

Creates a SessionStart hook that runs `clade inject-context`, a `/drop`
command that asks the agent to leave a DROPBAG.md hand-off note, and
gitignore entries for the files clade writes into worktrees.
"""

import json
from pathlib import Path

from .constants import DROPBAG_FILENAME, INJECT_CONTEXT_COMMAND, METADATA_FILENAME

GITIGNORE_HEADER = "# Clade"
GITIGNORE_ENTRIES = (DROPBAG_FILENAME, METADATA_FILENAME)

SETTINGS = {
    "hooks": {
        "SessionStart": [
            {
                "matcher": "*",
                "hooks": [
                    {
                        "type": "command",
                        "command": INJECT_CONTEXT_COMMAND,
                    }
                ],
            }
        ]
    }
}

DROP_COMMAND = """\
Write a DROPBAG.md file in the repo root with the following sections:

## Summary
What we accomplished this session. Be specific about changes made.

## Current State
What's working, what's broken, what's partially implemented.

## Next Steps
Exact actions to continue (be specific - file names, function names, etc.).

## Key Files
Files to look at first when resuming. Include line numbers if relevant.

## Open Questions
Anything unresolved or decisions that need to be made.

---

Save the file to DROPBAG.md in the repository root, then confirm it's written.
"""


def settings_path(repo: Path) -> Path:
    return Path(repo) / ".claude" / "settings.json"


def is_initialized(repo: Path) -> bool:
    """A repo is initialized once .claude/settings.json exists."""
    return settings_path(repo).exists()


def write_settings(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(SETTINGS, indent=2) + "\n")


def write_drop_command(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DROP_COMMAND)


def update_gitignore(path: Path) -> list[str]:
    """
    Append clade's entries to a .gitignore.

    Only entries not already mentioned are added, under a "# Clade" header.

    Args:
        path: .gitignore path (created if missing)

    Returns:
        The entries that were added
    """
    existing = path.read_text() if path.exists() else ""
    to_add = [entry for entry in GITIGNORE_ENTRIES if entry not in existing]
    if not to_add:
        return []

    chunks: list[str] = []
    if existing and not existing.endswith("\n"):
        chunks.append("\n")
    if GITIGNORE_HEADER not in existing:
        chunks.append(f"\n{GITIGNORE_HEADER}\n")
    chunks.extend(f"{entry}\n" for entry in to_add)

    with open(path, "a") as f:
        f.write("".join(chunks))
    return to_add


def init_repo(repo: Path, force: bool = False) -> bool:
    """
    Write clade's .claude/ configuration into a repository.

    Args:
        repo: Repository (or worktree) root
        force: Overwrite an existing configuration

    Returns:
        False if the repo was already initialized and force is not set

    Raises:
        OSError: If files cannot be written
    """
    repo = Path(repo)
    if is_initialized(repo) and not force:
        return False

    write_settings(settings_path(repo))
    write_drop_command(repo / ".claude" / "commands" / "drop.md")
    update_gitignore(repo / ".gitignore")
    return True
