"""Tests for git_utils module."""

from pathlib import Path

import pytest

from clade.exceptions import GitError
from clade.git_utils import (
    delete_branch,
    fetch,
    get_current_branch,
    get_default_branch,
    get_recent_commits,
    get_repo_name,
    get_repo_root,
    get_status,
    has_command,
    has_origin_remote,
    has_uncommitted_changes,
    is_git_repo,
    list_worktrees,
    parse_status,
    remove_worktree,
)

from conftest import git


def test_get_repo_root(temp_git_repo: Path) -> None:
    """Test getting repository root."""
    assert get_repo_root() == temp_git_repo


def test_get_repo_root_from_subdirectory(temp_git_repo: Path) -> None:
    sub = temp_git_repo / "a" / "b"
    sub.mkdir(parents=True)
    assert get_repo_root(sub) == temp_git_repo


def test_get_repo_root_not_in_repo(tmp_path: Path, monkeypatch) -> None:
    """Test error when not in a git repository."""
    non_repo = tmp_path / "not_a_repo"
    non_repo.mkdir()
    monkeypatch.chdir(non_repo)

    with pytest.raises(GitError, match="Not in a git repository"):
        get_repo_root()


def test_is_git_repo(temp_git_repo: Path, tmp_path: Path) -> None:
    plain = tmp_path / "plain"
    plain.mkdir()

    assert is_git_repo(temp_git_repo)
    assert not is_git_repo(plain)
    assert not is_git_repo(tmp_path / "does-not-exist")


def test_get_current_branch(temp_git_repo: Path) -> None:
    assert get_current_branch(temp_git_repo) == "main"


def test_get_repo_name(temp_git_repo: Path) -> None:
    assert get_repo_name(temp_git_repo) == "test_repo"


def test_no_origin(temp_git_repo: Path) -> None:
    """Fetching without a remote is not an error."""
    assert not has_origin_remote(temp_git_repo)
    fetch(temp_git_repo)


@pytest.mark.remote
def test_default_branch_from_origin(remote_git_repo: Path) -> None:
    assert has_origin_remote(remote_git_repo)
    assert get_default_branch(remote_git_repo) == "main"


def test_parse_status() -> None:
    """Porcelain lines are grouped by staged, modified and untracked."""
    output = "A  new.py\n M changed.py\nMM both.py\n?? notes.txt\n"

    status = parse_status(output)
    assert not status.clean
    assert status.uncommitted_count == 4
    assert status.staged == ["new.py", "both.py"]
    assert status.modified == ["changed.py", "both.py"]
    assert status.untracked == ["notes.txt"]


def test_parse_status_empty() -> None:
    status = parse_status("")
    assert status.clean
    assert status.uncommitted_count == 0


def test_get_status(temp_git_repo: Path) -> None:
    assert get_status(temp_git_repo).clean
    assert not has_uncommitted_changes(temp_git_repo)

    (temp_git_repo / "README.md").write_text("changed\n")
    (temp_git_repo / "extra.txt").write_text("new\n")

    status = get_status(temp_git_repo)
    assert status.modified == ["README.md"]
    assert status.untracked == ["extra.txt"]
    assert has_uncommitted_changes(temp_git_repo)


def test_has_uncommitted_changes_outside_git(tmp_path: Path) -> None:
    """Unreadable repositories count as clean."""
    assert not has_uncommitted_changes(tmp_path)


def test_get_recent_commits(temp_git_repo: Path) -> None:
    (temp_git_repo / "second.txt").write_text("2\n")
    git("add", "second.txt", cwd=temp_git_repo)
    git("commit", "-m", "Second commit", cwd=temp_git_repo)

    commits = get_recent_commits(temp_git_repo, 5)
    assert len(commits) == 2
    assert commits[0].endswith("Second commit")
    assert commits[1].endswith("Initial commit")


def test_worktree_lifecycle(temp_git_repo: Path, tmp_path: Path) -> None:
    """Dirty worktrees are force-removed and their branch deleted."""
    worktree = (tmp_path / "wt").resolve()
    git("worktree", "add", "-b", "exp/tmp", str(worktree), cwd=temp_git_repo)
    (worktree / "dirty.txt").write_text("x\n")

    assert str(worktree) in git("worktree", "list", cwd=temp_git_repo)

    remove_worktree(temp_git_repo, worktree)
    assert not worktree.exists()

    delete_branch(temp_git_repo, "exp/tmp")
    assert git("branch", "--list", "exp/tmp", cwd=temp_git_repo) == ""


def test_delete_missing_branch(temp_git_repo: Path) -> None:
    with pytest.raises(GitError):
        delete_branch(temp_git_repo, "no/such-branch")


def test_has_command() -> None:
    assert has_command("git")
    assert not has_command("definitely-not-a-real-command-xyz")


def test_list_worktrees(temp_git_repo: Path, tmp_path: Path) -> None:
    """The main worktree comes first, followed by linked ones."""
    assert list_worktrees(temp_git_repo) == [temp_git_repo]

    worktree = (tmp_path / "wt").resolve()
    git("worktree", "add", "-b", "exp/listed", str(worktree), cwd=temp_git_repo)
    assert list_worktrees(temp_git_repo) == [temp_git_repo, worktree]


def test_list_worktrees_not_a_repo(tmp_path: Path) -> None:
    with pytest.raises(GitError):
        list_worktrees(tmp_path)
