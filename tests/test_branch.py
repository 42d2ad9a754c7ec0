"""Tests for branch classification and worktree creation strategies."""

from pathlib import Path

import pytest

from clade.branch import (
    BranchInfo,
    BranchStatus,
    check_branch,
    classify_branch,
    create_worktree_for_status,
    create_worktree_new,
    describe_branch_info,
    is_diverged,
    parse_divergence,
    preflight_check,
)
from clade.exceptions import BranchExistsError
from clade.git_utils import get_current_branch

from conftest import git


@pytest.mark.parametrize(
    ("local", "remote", "expected"),
    [
        (False, False, BranchStatus.NOT_FOUND),
        (True, False, BranchStatus.LOCAL_ONLY),
        (False, True, BranchStatus.REMOTE_ONLY),
        (True, True, BranchStatus.BOTH),
    ],
)
def test_classify_branch(local: bool, remote: bool, expected: BranchStatus) -> None:
    """Each existence combination maps to exactly one status."""
    assert classify_branch(local, remote) is expected


def test_is_diverged() -> None:
    """Diverged only when both sides have unique commits."""
    assert is_diverged(1, 1)
    assert not is_diverged(0, 3)
    assert not is_diverged(2, 0)
    assert not is_diverged(0, 0)


def test_parse_divergence() -> None:
    """Counts come from rev-list output, local first."""
    assert parse_divergence("2\t3\n") == (2, 3, True)
    assert parse_divergence("0 4") == (0, 4, False)


def test_parse_divergence_malformed() -> None:
    """Malformed output is treated as no divergence."""
    assert parse_divergence("") == (0, 0, False)
    assert parse_divergence("a b") == (0, 0, False)
    assert parse_divergence("1 2 3") == (0, 0, False)


class TestDescribeBranchInfo:
    """Preflight messages per branch state."""

    def test_not_found(self) -> None:
        assert describe_branch_info(BranchInfo(BranchStatus.NOT_FOUND)) == (
            "success",
            "will create new branch",
        )

    def test_local_only_warns(self) -> None:
        level, message = describe_branch_info(BranchInfo(BranchStatus.LOCAL_ONLY))
        assert level == "warn"
        assert "local branch exists" in message

    def test_remote_only(self) -> None:
        assert describe_branch_info(BranchInfo(BranchStatus.REMOTE_ONLY))[0] == "info"

    def test_diverged(self) -> None:
        info = BranchInfo(BranchStatus.BOTH, local_ahead=2, remote_ahead=1, diverged=True)
        level, message = describe_branch_info(info)
        assert level == "warn"
        assert "2 local, 1 remote" in message

    def test_behind_remote(self) -> None:
        info = BranchInfo(BranchStatus.BOTH, remote_ahead=3)
        assert describe_branch_info(info) == ("warn", "exists, 3 commits behind remote")

    def test_ahead_of_remote(self) -> None:
        info = BranchInfo(BranchStatus.BOTH, local_ahead=4)
        assert describe_branch_info(info) == ("info", "exists, 4 commits ahead of remote")

    def test_in_sync(self) -> None:
        assert describe_branch_info(BranchInfo(BranchStatus.BOTH)) == (
            "success",
            "exists, in sync with remote",
        )


def test_check_branch_without_remote(temp_git_repo: Path) -> None:
    """Without origin only local branches are seen."""
    assert check_branch(temp_git_repo, "exp/nothing").status is BranchStatus.NOT_FOUND

    git("branch", "exp/local", cwd=temp_git_repo)
    assert check_branch(temp_git_repo, "exp/local").status is BranchStatus.LOCAL_ONLY


@pytest.mark.remote
def test_check_branch_remote_only(remote_git_repo: Path) -> None:
    """A branch pushed and then deleted locally is remote-only."""
    git("branch", "feat/shared", cwd=remote_git_repo)
    git("push", "origin", "feat/shared", cwd=remote_git_repo)
    git("branch", "-D", "feat/shared", cwd=remote_git_repo)

    assert check_branch(remote_git_repo, "feat/shared").status is BranchStatus.REMOTE_ONLY


@pytest.mark.remote
def test_check_branch_both_ahead(remote_git_repo: Path) -> None:
    """Local commits not yet pushed show up as local_ahead."""
    git("checkout", "-b", "feat/work", cwd=remote_git_repo)
    git("push", "-u", "origin", "feat/work", cwd=remote_git_repo)
    (remote_git_repo / "new.txt").write_text("change\n")
    git("add", "new.txt", cwd=remote_git_repo)
    git("commit", "-m", "Local change", cwd=remote_git_repo)

    info = check_branch(remote_git_repo, "feat/work")
    assert info.status is BranchStatus.BOTH
    assert info.local_ahead == 1
    assert info.remote_ahead == 0
    assert not info.diverged


def commit_file(repo: Path, name: str) -> None:
    (repo / name).write_text(f"{name}\n")
    git("add", name, cwd=repo)
    git("commit", "-m", f"Add {name}", cwd=repo)


def push_from_second_clone(tmp_path: Path, branch: str) -> None:
    """Clone origin again and push one commit on the branch."""
    other = (tmp_path / "other").resolve()
    git("clone", "-b", branch, str(tmp_path / "origin.git"), str(other), cwd=tmp_path)
    git("config", "user.name", "Other User", cwd=other)
    git("config", "user.email", "other@example.com", cwd=other)
    git("config", "commit.gpgsign", "false", cwd=other)
    commit_file(other, "theirs.txt")
    git("push", "origin", branch, cwd=other)


@pytest.mark.remote
def test_check_branch_behind_remote(remote_git_repo: Path, tmp_path: Path) -> None:
    git("checkout", "-b", "feat/work", cwd=remote_git_repo)
    git("push", "-u", "origin", "feat/work", cwd=remote_git_repo)
    push_from_second_clone(tmp_path, "feat/work")
    git("fetch", "origin", cwd=remote_git_repo)

    info = check_branch(remote_git_repo, "feat/work")
    assert info.status is BranchStatus.BOTH
    assert info.local_ahead == 0
    assert info.remote_ahead == 1
    assert not info.diverged


@pytest.mark.remote
def test_check_branch_diverged(remote_git_repo: Path, tmp_path: Path) -> None:
    """Commits on both sides count as local_ahead and remote_ahead."""
    git("checkout", "-b", "feat/work", cwd=remote_git_repo)
    git("push", "-u", "origin", "feat/work", cwd=remote_git_repo)
    push_from_second_clone(tmp_path, "feat/work")
    commit_file(remote_git_repo, "mine.txt")
    git("fetch", "origin", cwd=remote_git_repo)

    info = check_branch(remote_git_repo, "feat/work")
    assert info.status is BranchStatus.BOTH
    assert info.local_ahead == 1
    assert info.remote_ahead == 1
    assert info.diverged


@pytest.mark.remote
def test_check_branch_ignores_remote_suffix_match(remote_git_repo: Path) -> None:
    """Only the exact branch on origin counts, not one ending in the same name."""
    git("branch", "exp/foo", cwd=remote_git_repo)
    git("push", "origin", "exp/foo", cwd=remote_git_repo)

    assert check_branch(remote_git_repo, "foo").status is BranchStatus.NOT_FOUND
    assert check_branch(remote_git_repo, "exp/foo").status is BranchStatus.BOTH


def test_create_worktree_new_from_head(temp_git_repo: Path, tmp_path: Path) -> None:
    """Without origin the new branch starts from HEAD."""
    worktree = tmp_path / "wt"
    create_worktree_new(temp_git_repo, worktree, "exp/fresh")

    assert (worktree / "README.md").exists()
    assert get_current_branch(worktree) == "exp/fresh"


def test_create_worktree_new_refuses_existing_branch(temp_git_repo: Path, tmp_path: Path) -> None:
    """An existing branch is never reused by create_worktree_new."""
    git("branch", "exp/taken", cwd=temp_git_repo)

    with pytest.raises(BranchExistsError):
        create_worktree_new(temp_git_repo, tmp_path / "wt", "exp/taken")
    assert not (tmp_path / "wt").exists()


def test_create_worktree_for_local_branch(temp_git_repo: Path, tmp_path: Path) -> None:
    """LOCAL_ONLY checks out the existing branch."""
    git("branch", "exp/existing", cwd=temp_git_repo)
    info = check_branch(temp_git_repo, "exp/existing")

    create_worktree_for_status(temp_git_repo, tmp_path / "wt", "exp/existing", info)
    assert get_current_branch(tmp_path / "wt") == "exp/existing"


@pytest.mark.remote
def test_create_worktree_tracks_remote_branch(remote_git_repo: Path, tmp_path: Path) -> None:
    """REMOTE_ONLY creates a local branch tracking origin."""
    git("branch", "feat/remote", cwd=remote_git_repo)
    git("push", "origin", "feat/remote", cwd=remote_git_repo)
    git("branch", "-D", "feat/remote", cwd=remote_git_repo)

    info = preflight_check([remote_git_repo], "feat/remote")[remote_git_repo]
    assert info.status is BranchStatus.REMOTE_ONLY

    worktree = tmp_path / "wt"
    create_worktree_for_status(remote_git_repo, worktree, "feat/remote", info)

    upstream = git("rev-parse", "--abbrev-ref", "feat/remote@{upstream}", cwd=worktree)
    assert upstream == "origin/feat/remote"
