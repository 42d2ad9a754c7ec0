"""Shared fixtures: isolated home directory and throwaway git repositories."""

import json
import logging
import subprocess
from pathlib import Path

import pytest


def git(*args: str, cwd: Path) -> str:
    """Run git in a directory and return stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout.strip()


def init_repo(path: Path) -> Path:
    """Create a repository with one commit on main."""
    path.mkdir(parents=True, exist_ok=True)
    git("init", "-b", "main", cwd=path)
    git("config", "user.name", "Test User", cwd=path)
    git("config", "user.email", "test@example.com", cwd=path)
    git("config", "commit.gpgsign", "false", cwd=path)
    (path / "README.md").write_text("# Test Repository\n")
    git("add", "README.md", cwd=path)
    git("commit", "-m", "Initial commit", cwd=path)
    return path


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch) -> Path:
    """Point HOME at a temp directory so config and workspaces stay inside it."""
    home = (tmp_path / "home").resolve()
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.setenv("COLUMNS", "200")
    monkeypatch.delenv("TMUX", raising=False)
    return home


@pytest.fixture(autouse=True)
def reset_clade_logger():
    """Drop handlers that --verbose installs so later output stays clean."""
    yield
    logger = logging.getLogger("clade")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def temp_git_repo(tmp_path: Path, monkeypatch) -> Path:
    """Create a temporary git repository and chdir into it."""
    repo = init_repo((tmp_path / "test_repo").resolve())
    monkeypatch.chdir(repo)
    return repo


@pytest.fixture
def remote_git_repo(tmp_path: Path, monkeypatch) -> Path:
    """Create a clone of a bare origin and chdir into the clone."""
    seed = init_repo((tmp_path / "seed").resolve())
    origin = (tmp_path / "origin.git").resolve()
    git("clone", "--bare", str(seed), str(origin), cwd=tmp_path)

    clone = (tmp_path / "clone").resolve()
    git("clone", str(origin), str(clone), cwd=tmp_path)
    git("config", "user.name", "Test User", cwd=clone)
    git("config", "user.email", "test@example.com", cwd=clone)
    git("config", "commit.gpgsign", "false", cwd=clone)
    monkeypatch.chdir(clone)
    return clone


@pytest.fixture
def no_agent(isolated_home: Path) -> Path:
    """Write a config that launches neither an agent nor an editor."""
    config_dir = isolated_home / ".config" / "clade"
    config_dir.mkdir(parents=True, exist_ok=True)
    config_path = config_dir / "config.json"
    config_path.write_text(json.dumps({"agent": "", "editor": ""}))
    return config_path
