"""Branch reconciliation between a local repository and origin.

Decides how a worktree for a branch should be created by comparing local and
remote existence of the branch, and, when both exist, how far they have
drifted apart.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .exceptions import BranchExistsError, GitError
from .git_utils import fetch, get_default_branch, git_command, has_origin_remote

logger = logging.getLogger(__name__)


class BranchStatus(Enum):
    """Where a branch exists."""

    NOT_FOUND = "not_found"
    LOCAL_ONLY = "local_only"
    REMOTE_ONLY = "remote_only"
    BOTH = "both"


@dataclass
class BranchInfo:
    """Existence and divergence of a branch."""

    status: BranchStatus
    local_ahead: int = 0
    remote_ahead: int = 0
    diverged: bool = False


def classify_branch(local_exists: bool, remote_exists: bool) -> BranchStatus:
    """Classify a branch by where it exists."""
    if local_exists and remote_exists:
        return BranchStatus.BOTH
    if local_exists:
        return BranchStatus.LOCAL_ONLY
    if remote_exists:
        return BranchStatus.REMOTE_ONLY
    return BranchStatus.NOT_FOUND


def is_diverged(local_ahead: int, remote_ahead: int) -> bool:
    """A branch has diverged when each side has commits the other lacks."""
    return local_ahead > 0 and remote_ahead > 0


def parse_divergence(output: str) -> tuple[int, int, bool]:
    """
    Parse `git rev-list --left-right --count` output.

    Args:
        output: Two whitespace separated counts, local first

    Returns:
        (local_ahead, remote_ahead, diverged); (0, 0, False) for malformed input
    """
    parts = output.split()
    if len(parts) != 2:
        return 0, 0, False
    try:
        local_ahead, remote_ahead = int(parts[0]), int(parts[1])
    except ValueError:
        return 0, 0, False
    return local_ahead, remote_ahead, is_diverged(local_ahead, remote_ahead)


def local_branch_exists(repo: Path, branch: str) -> bool:
    """Check for refs/heads/<branch>."""
    result = git_command(
        "show-ref", "--verify", "--quiet", f"refs/heads/{branch}",
        repo=repo, check=False, capture=True,
    )
    return result.returncode == 0


def remote_branch_exists(repo: Path, branch: str) -> bool:
    """Check whether origin advertises the branch."""
    result = git_command(
        "ls-remote", "--heads", "origin", f"refs/heads/{branch}",
        repo=repo, check=False, capture=True,
    )
    return result.returncode == 0 and bool(result.stdout.strip())


def get_divergence(repo: Path, branch: str) -> tuple[int, int, bool]:
    """
    Count commits unique to the local branch and to origin's copy.

    Returns:
        (local_ahead, remote_ahead, diverged); zeros if git cannot compare them
    """
    result = git_command(
        "rev-list", "--left-right", "--count", f"{branch}...origin/{branch}",
        repo=repo, check=False, capture=True,
    )
    if result.returncode != 0:
        logger.debug("rev-list failed for %s in %s", branch, repo)
        return 0, 0, False
    return parse_divergence(result.stdout)


def check_branch(repo: Path, branch: str) -> BranchInfo:
    """
    Determine where a branch exists and whether it has diverged from origin.

    Subprocess failures count as "does not exist". Callers that need fresh
    remote information should fetch first.

    Args:
        repo: Repository path
        branch: Branch name

    Returns:
        BranchInfo for the branch
    """
    status = classify_branch(
        local_branch_exists(repo, branch), remote_branch_exists(repo, branch)
    )
    info = BranchInfo(status=status)
    if status is BranchStatus.BOTH:
        info.local_ahead, info.remote_ahead, info.diverged = get_divergence(repo, branch)
    return info


def preflight_check(repos: list[Path], branch: str) -> dict[Path, BranchInfo]:
    """
    Fetch each repository and check the branch in it.

    Args:
        repos: Repository paths
        branch: Branch name shared by all repositories

    Returns:
        Mapping of repository path to BranchInfo, in input order
    """
    results: dict[Path, BranchInfo] = {}
    for repo in repos:
        fetch(repo)
        results[repo] = check_branch(repo, branch)
    return results


def describe_branch_info(info: BranchInfo) -> tuple[str, str]:
    """
    Summarize a BranchInfo for preflight output.

    Returns:
        (level, message) where level is "success", "info" or "warn"
    """
    if info.status is BranchStatus.NOT_FOUND:
        return "success", "will create new branch"
    if info.status is BranchStatus.LOCAL_ONLY:
        return "warn", "local branch exists (will use existing)"
    if info.status is BranchStatus.REMOTE_ONLY:
        return "info", "will track remote branch"
    if info.diverged:
        return "warn", (
            f"exists, diverged ({info.local_ahead} local, "
            f"{info.remote_ahead} remote commits)"
        )
    if info.remote_ahead > 0:
        return "warn", f"exists, {info.remote_ahead} commits behind remote"
    if info.local_ahead > 0:
        return "info", f"exists, {info.local_ahead} commits ahead of remote"
    return "success", "exists, in sync with remote"


def create_worktree_new(repo: Path, path: Path, branch: str) -> None:
    """
    Create a worktree on a brand new branch.

    The branch starts from origin's default branch when an origin remote is
    configured, otherwise from HEAD.

    Args:
        repo: Source repository
        path: Worktree directory to create
        branch: New branch name

    Raises:
        BranchExistsError: If the branch exists locally or on origin
        GitError: If git worktree add fails
    """
    fetch(repo)
    if check_branch(repo, branch).status is not BranchStatus.NOT_FOUND:
        raise BranchExistsError(f"branch '{branch}' already exists")

    if has_origin_remote(repo):
        base = f"origin/{get_default_branch(repo)}"
    else:
        base = "HEAD"
    git_command("worktree", "add", "-b", branch, str(path), base, repo=repo, capture=True)


def create_worktree_from_branch(repo: Path, path: Path, branch: str) -> None:
    """
    Create a worktree checking out an existing local branch.

    Raises:
        GitError: If git worktree add fails
    """
    git_command("worktree", "add", str(path), branch, repo=repo, capture=True)


def create_worktree_track_remote(repo: Path, path: Path, branch: str) -> None:
    """
    Create a worktree on a new local branch tracking origin/<branch>.

    Raises:
        GitError: If git worktree add fails
    """
    git_command(
        "worktree", "add", "--track", "-b", branch, str(path), f"origin/{branch}",
        repo=repo, capture=True,
    )


def create_worktree_for_status(repo: Path, path: Path, branch: str, info: BranchInfo) -> None:
    """
    Create a worktree using the strategy that fits where the branch exists.

    Args:
        repo: Source repository
        path: Worktree directory to create
        branch: Branch name
        info: Result of check_branch for the branch

    Raises:
        GitError: If worktree creation fails
    """
    if info.status is BranchStatus.NOT_FOUND:
        create_worktree_new(repo, path, branch)
    elif info.status is BranchStatus.REMOTE_ONLY:
        create_worktree_track_remote(repo, path, branch)
    elif info.status in (BranchStatus.LOCAL_ONLY, BranchStatus.BOTH):
        create_worktree_from_branch(repo, path, branch)
    else:
        raise GitError(f"unknown branch status for '{branch}'")
