"""Git operations wrapper utilities."""

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .exceptions import GitError

logger = logging.getLogger(__name__)


def run_command(
    cmd: List[str],
    cwd: Optional[Path] = None,
    check: bool = True,
    capture: bool = False,
) -> subprocess.CompletedProcess:
    """
    Run a shell command.

    Args:
        cmd: Command and arguments as a list
        cwd: Working directory for the command
        check: Raise exception on non-zero exit code
        capture: Capture stdout/stderr

    Returns:
        CompletedProcess instance

    Raises:
        GitError: If command fails and check=True
    """
    kwargs = {}
    if capture:
        kwargs["stdout"] = subprocess.PIPE
        kwargs["stderr"] = subprocess.PIPE
        kwargs["text"] = True

    logger.debug("run: %s (cwd=%s)", " ".join(cmd), cwd)
    try:
        result = subprocess.run(cmd, cwd=cwd, check=False, **kwargs)
    except FileNotFoundError as e:
        raise GitError(f"Command not found: {cmd[0]}") from e

    if check and result.returncode != 0:
        output = (result.stderr or result.stdout or "").strip() if capture else ""
        raise GitError(f"Command failed: {' '.join(cmd)}\n{output}".rstrip())
    return result


def git_command(
    *args: str,
    repo: Optional[Path] = None,
    check: bool = True,
    capture: bool = False,
) -> subprocess.CompletedProcess:
    """
    Run a git command.

    Args:
        *args: Git command arguments
        repo: Repository path
        check: Raise exception on non-zero exit code
        capture: Capture stdout/stderr

    Returns:
        CompletedProcess instance

    Raises:
        GitError: If git command fails
    """
    cmd = ["git"] + [str(a) for a in args]
    return run_command(cmd, cwd=repo, check=check, capture=capture)


def _git_output(*args: str, repo: Optional[Path] = None) -> str:
    """Run a git command and return its stripped stdout."""
    return git_command(*args, repo=repo, capture=True).stdout.strip()


def get_repo_root(path: Optional[Path] = None) -> Path:
    """
    Get the root directory of the git repository.

    Args:
        path: Optional path to start from (defaults to current directory)

    Returns:
        Path to repository root

    Raises:
        GitError: If not in a git repository
    """
    try:
        return Path(_git_output("rev-parse", "--show-toplevel", repo=path))
    except GitError:
        raise GitError("Not in a git repository")


def is_git_repo(path: Optional[Path] = None) -> bool:
    """Check whether a path is inside a git work tree."""
    if path is not None and not Path(path).is_dir():
        return False
    result = git_command(
        "rev-parse", "--is-inside-work-tree", repo=path, check=False, capture=True
    )
    return result.returncode == 0 and result.stdout.strip() == "true"


def get_current_branch(repo: Optional[Path] = None) -> str:
    """
    Get the current branch name.

    Args:
        repo: Repository path

    Returns:
        Current branch name ("HEAD" when detached)
    """
    return _git_output("rev-parse", "--abbrev-ref", "HEAD", repo=repo)


def get_repo_name(path: Path) -> str:
    """Get the display name of a repository (its directory name)."""
    return Path(path).name


def has_origin_remote(repo: Path) -> bool:
    """Check whether the repository has an 'origin' remote."""
    result = git_command("remote", "get-url", "origin", repo=repo, check=False, capture=True)
    return result.returncode == 0


def fetch(repo: Path) -> None:
    """
    Fetch from origin, ignoring failures.

    Offline work and repositories without a remote are normal, so a failed
    fetch is only logged.

    Args:
        repo: Repository path
    """
    result = git_command("fetch", "origin", repo=repo, check=False, capture=True)
    if result.returncode != 0:
        logger.debug("git fetch failed in %s: %s", repo, (result.stderr or "").strip())


def get_default_branch(repo: Path) -> str:
    """
    Get the default branch of origin.

    Args:
        repo: Repository path

    Returns:
        The branch origin/HEAD points at, else "main" when origin/main exists,
        else "master"
    """
    result = git_command(
        "symbolic-ref", "refs/remotes/origin/HEAD", repo=repo, check=False, capture=True
    )
    if result.returncode == 0 and result.stdout.strip():
        return result.stdout.strip().rsplit("/", 1)[-1]

    result = git_command(
        "rev-parse", "--verify", "--quiet", "origin/main", repo=repo, check=False, capture=True
    )
    if result.returncode == 0:
        return "main"
    return "master"


def remove_worktree(repo: Path, worktree_path: Path) -> None:
    """
    Force-remove a worktree.

    Args:
        repo: Repository the worktree belongs to
        worktree_path: Worktree directory

    Raises:
        GitError: If git refuses to remove it
    """
    git_command("worktree", "remove", str(worktree_path), "--force", repo=repo, capture=True)


def list_worktrees(repo: Path) -> List[Path]:
    """
    List the worktrees git knows about, the main worktree first.

    Raises:
        GitError: If the repository cannot be read
    """
    result = git_command("worktree", "list", "--porcelain", repo=repo, capture=True)
    return [
        Path(line[len("worktree "):])
        for line in result.stdout.splitlines()
        if line.startswith("worktree ")
    ]


def delete_branch(repo: Path, branch: str) -> None:
    """
    Force-delete a local branch.

    Raises:
        GitError: If the branch cannot be deleted
    """
    git_command("branch", "-D", branch, repo=repo, capture=True)


@dataclass
class GitStatus:
    """Summary of `git status --porcelain`."""

    clean: bool = True
    staged: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    untracked: List[str] = field(default_factory=list)
    uncommitted_count: int = 0


def parse_status(output: str) -> GitStatus:
    """
    Parse porcelain v1 status output.

    Args:
        output: Output of `git status --porcelain`

    Returns:
        GitStatus with files grouped by kind
    """
    status = GitStatus()
    for line in output.splitlines():
        if len(line) < 4:
            continue
        index, worktree, name = line[0], line[1], line[3:]
        status.uncommitted_count += 1
        if index == "?":
            status.untracked.append(name)
            continue
        if index != " ":
            status.staged.append(name)
        if worktree == "M":
            status.modified.append(name)

    status.clean = status.uncommitted_count == 0
    return status


def get_status(repo: Path) -> GitStatus:
    """
    Get the working tree status of a repository.

    Raises:
        GitError: If git status fails
    """
    result = git_command("status", "--porcelain", repo=repo, capture=True)
    return parse_status(result.stdout)


def has_uncommitted_changes(repo: Path) -> bool:
    """Check for uncommitted changes; unreadable repositories count as clean."""
    try:
        return not get_status(repo).clean
    except GitError as e:
        logger.debug("git status failed in %s: %s", repo, e)
        return False


def get_recent_commits(repo: Path, count: int = 5) -> List[str]:
    """
    Get recent commits as one-line summaries.

    Args:
        repo: Repository path
        count: Number of commits

    Returns:
        List of "<short-sha> <subject>" lines, newest first
    """
    result = git_command("log", "--oneline", "-n", str(count), repo=repo, check=False, capture=True)
    if result.returncode != 0:
        return []
    return [line for line in result.stdout.splitlines() if line.strip()]


def has_command(name: str) -> bool:
    """
    Check if a command is available in PATH.

    Args:
        name: Command name

    Returns:
        True if command exists, False otherwise
    """
    from shutil import which
    return bool(which(name))
