"""Copying gitignored local files (secrets, env files) into new worktrees.

A fresh worktree only contains tracked files, so things like .env that a
project needs to run are missing. These helpers find such files in the
source repository and copy them over.
"""

import shutil
from pathlib import Path

# Files commonly gitignored but needed to run a project
COMMON_IGNORED_FILES = (
    ".env",
    ".env.local",
    ".envrc",
    ".npmrc",
    ".yarnrc",
    "config/local.json",
    "config/local.yaml",
    "config/local.yml",
    ".vscode/settings.json",
)

# Substrings marking a config/ file as machine-local
LOCAL_CONFIG_MARKERS = ("local", "secret", "dev")


def _gitignore_patterns(repo: Path) -> list[str]:
    try:
        text = (repo / ".gitignore").read_text()
    except OSError:
        return []
    patterns = []
    for raw in text.splitlines():
        line = raw.strip()
        if line and not line.startswith("#"):
            patterns.append(line)
    return patterns


def matches_gitignore(patterns: list[str], rel_path: str) -> bool:
    """
    Match a relative path against .gitignore lines.

    Only the simple forms used for local files are understood: exact paths,
    `*.ext`, `dir/` and trailing-`*` prefixes.

    Args:
        patterns: Non-empty, non-comment .gitignore lines
        rel_path: POSIX-style path relative to the repository root

    Returns:
        True if any pattern matches
    """
    for pattern in patterns:
        if pattern == rel_path:
            return True
        if pattern.startswith("*.") and rel_path.endswith(pattern[1:]):
            return True
        if pattern.endswith("/") and rel_path.startswith(pattern):
            return True
        if pattern.endswith("*") and rel_path.startswith(pattern[:-1]):
            return True
    return False


def find_gitignored(repo: Path) -> list[str]:
    """
    Find gitignored local files in a repository worth copying to a worktree.

    Args:
        repo: Source repository root

    Returns:
        Relative POSIX paths, without duplicates, in discovery order
    """
    repo = Path(repo)
    patterns = _gitignore_patterns(repo)
    if not patterns:
        return []

    found: list[str] = []

    def _add(rel_path: str) -> None:
        if rel_path not in found and matches_gitignore(patterns, rel_path):
            found.append(rel_path)

    for rel_path in COMMON_IGNORED_FILES:
        if (repo / rel_path).exists():
            _add(rel_path)

    for entry in sorted(repo.iterdir()):
        if entry.name.startswith(".env") and entry.is_file():
            _add(entry.name)

    config_dir = repo / "config"
    if config_dir.is_dir():
        for entry in sorted(config_dir.iterdir()):
            if entry.is_dir():
                continue
            lowered = entry.name.lower()
            if any(marker in lowered for marker in LOCAL_CONFIG_MARKERS):
                _add(f"config/{entry.name}")

    return found


def copy_files(src: Path, dst: Path, rel_paths: list[str]) -> None:
    """
    Copy files between directories, preserving permissions.

    Args:
        src: Source root
        dst: Destination root
        rel_paths: Paths relative to both roots

    Raises:
        OSError: If a file cannot be copied
    """
    for rel_path in rel_paths:
        target = Path(dst) / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(Path(src) / rel_path, target)


def copy_dir(src: Path, dst: Path) -> None:
    """Recursively copy a directory, merging into dst if it exists."""
    shutil.copytree(src, dst, dirs_exist_ok=True)
