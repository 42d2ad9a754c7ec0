"""Tracked experiments, projects and scratch folders.

All records live in a single JSON document at <base_dir>/state.json:

    {"version": 1, "experiments": {...}, "projects": {...}, "scratches": {...}}

Experiments (and features) are keyed by experiment_key(repo, name); projects
and scratches by name.
"""

import json
import os
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Union

from .config import Config
from .constants import STATE_FILENAME, STATE_VERSION
from .exceptions import StateError


def now() -> datetime:
    return datetime.now(UTC)


def _parse_time(value: Any) -> datetime:
    """Parse a stored ISO timestamp; unreadable values become 'now'."""
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return now()
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed
    return now()


def experiment_key(repo: str | Path, name: str) -> str:
    """Key an experiment by source repository and name.

    Args:
        repo: Source repository path
        name: Experiment name

    Returns:
        "<repo basename>-<name>"
    """
    return f"{os.path.basename(os.path.normpath(str(repo)))}-{name}"


@dataclass
class Experiment:
    """A worktree created by `clade exp` or `clade feat`."""

    name: str
    repo: str
    path: str
    branch: str
    ticket: str = ""
    kind: str = "experiment"
    created: datetime = field(default_factory=now)
    last_used: datetime = field(default_factory=now)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Experiment":
        return cls(
            name=data.get("name", ""),
            repo=data.get("repo", ""),
            path=data.get("path", ""),
            branch=data.get("branch", ""),
            ticket=data.get("ticket") or "",
            kind=data.get("kind") or "experiment",
            created=_parse_time(data.get("created")),
            last_used=_parse_time(data.get("last_used")),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "repo": self.repo,
            "path": self.path,
            "branch": self.branch,
        }
        if self.ticket:
            data["ticket"] = self.ticket
        if self.kind != "experiment":
            data["kind"] = self.kind
        data["created"] = self.created.isoformat()
        data["last_used"] = self.last_used.isoformat()
        return data


@dataclass
class ProjectRepo:
    """One repository inside a project: folder name and source repo."""

    name: str
    source: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "source": self.source}


@dataclass
class Project:
    """A multi-repo workspace sharing one branch."""

    name: str
    path: str
    branch: str
    repos: list[ProjectRepo] = field(default_factory=list)
    created: datetime = field(default_factory=now)
    last_used: datetime = field(default_factory=now)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Project":
        return cls(
            name=data.get("name", ""),
            path=data.get("path", ""),
            branch=data.get("branch", ""),
            repos=[
                ProjectRepo(name=r.get("name", ""), source=r.get("source", ""))
                for r in data.get("repos") or []
            ],
            created=_parse_time(data.get("created")),
            last_used=_parse_time(data.get("last_used")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "branch": self.branch,
            "repos": [r.to_dict() for r in self.repos],
            "created": self.created.isoformat(),
            "last_used": self.last_used.isoformat(),
        }

    def repo_path(self, repo: ProjectRepo) -> Path:
        """Worktree directory of one of the project's repos."""
        return Path(self.path) / repo.name


@dataclass
class Scratch:
    """A plain (non-git) folder for throwaway agent sessions."""

    name: str
    path: str
    ticket: str = ""
    created: datetime = field(default_factory=now)
    last_used: datetime = field(default_factory=now)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Scratch":
        return cls(
            name=data.get("name", ""),
            path=data.get("path", ""),
            ticket=data.get("ticket") or "",
            created=_parse_time(data.get("created")),
            last_used=_parse_time(data.get("last_used")),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "path": self.path}
        if self.ticket:
            data["ticket"] = self.ticket
        data["created"] = self.created.isoformat()
        data["last_used"] = self.last_used.isoformat()
        return data


Item = Union[Experiment, Project, Scratch]


def touch(item: Item) -> None:
    """Mark an item as used now."""
    item.last_used = now()


@dataclass
class State:
    """All tracked items."""

    version: int = STATE_VERSION
    experiments: dict[str, Experiment] = field(default_factory=dict)
    projects: dict[str, Project] = field(default_factory=dict)
    scratches: dict[str, Scratch] = field(default_factory=dict)

    def add_experiment(self, exp: Experiment) -> str:
        """Track an experiment and return its key."""
        key = experiment_key(exp.repo, exp.name)
        self.experiments[key] = exp
        return key

    def get_experiment(self, key: str) -> Experiment | None:
        return self.experiments.get(key)

    def remove_experiment(self, key: str) -> None:
        self.experiments.pop(key, None)

    def find_experiment(self, name: str) -> tuple[str, Experiment] | None:
        """Find an experiment by key, falling back to its bare name."""
        if name in self.experiments:
            return name, self.experiments[name]
        for key, exp in self.experiments.items():
            if exp.name == name:
                return key, exp
        return None

    def add_project(self, project: Project) -> None:
        self.projects[project.name] = project

    def get_project(self, name: str) -> Project | None:
        return self.projects.get(name)

    def remove_project(self, name: str) -> None:
        self.projects.pop(name, None)

    def add_scratch(self, scratch: Scratch) -> None:
        self.scratches[scratch.name] = scratch

    def get_scratch(self, name: str) -> Scratch | None:
        return self.scratches.get(name)

    def remove_scratch(self, name: str) -> None:
        self.scratches.pop(name, None)

    def is_empty(self) -> bool:
        return not (self.experiments or self.projects or self.scratches)

    def resumable_items(self) -> list[tuple[str, str, Item]]:
        """All tracked items, most recently used first.

        Returns:
            List of (kind, key, record) with kind in "exp", "project", "scratch"
        """
        items: list[tuple[str, str, Item]] = []
        items.extend(("exp", key, exp) for key, exp in self.experiments.items())
        items.extend(("project", key, proj) for key, proj in self.projects.items())
        items.extend(("scratch", key, s) for key, s in self.scratches.items())
        items.sort(key=lambda item: item[2].last_used, reverse=True)
        return items

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "experiments": {k: v.to_dict() for k, v in self.experiments.items()},
            "projects": {k: v.to_dict() for k, v in self.projects.items()},
            "scratches": {k: v.to_dict() for k, v in self.scratches.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "State":
        return cls(
            version=data.get("version") or STATE_VERSION,
            experiments={
                k: Experiment.from_dict(v) for k, v in (data.get("experiments") or {}).items()
            },
            projects={k: Project.from_dict(v) for k, v in (data.get("projects") or {}).items()},
            scratches={
                k: Scratch.from_dict(v) for k, v in (data.get("scratches") or {}).items()
            },
        )


def get_state_path(config: Config) -> Path:
    """Get the path to the state file under the configured base directory."""
    return config.base_path / STATE_FILENAME


def load_state(config: Config) -> State:
    """Load tracked items from disk.

    Args:
        config: Configuration providing base_dir.

    Returns:
        State. A missing file yields an empty state.

    Raises:
        StateError: If the file exists but cannot be parsed.
    """
    state_path = get_state_path(config)

    if not state_path.exists():
        return State()

    try:
        with open(state_path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise StateError(f"Failed to read state from {state_path}: {e}") from e

    if not isinstance(data, dict):
        raise StateError(f"Invalid state file: {state_path}")
    return State.from_dict(data)


def save_state(state: State, config: Config) -> None:
    """Save tracked items to disk.

    Raises:
        StateError: If the file cannot be written.
    """
    state_path = get_state_path(config)
    try:
        state_path.parent.mkdir(parents=True, exist_ok=True)
        with open(state_path, "w") as f:
            json.dump(state.to_dict(), f, indent=2)
            f.write("\n")
    except OSError as e:
        raise StateError(f"Failed to save state to {state_path}: {e}") from e
