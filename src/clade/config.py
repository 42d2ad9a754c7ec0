"""User configuration for clade.

Stored as JSON at ~/.config/clade/config.json. Holds agent and editor
preferences, the base directory for workspaces and registered repositories.
"""

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from .constants import DEFAULT_AGENT, DEFAULT_BASE_DIR, get_config_dir
from .exceptions import ConfigError


@dataclass
class Config:
    """clade configuration."""

    base_dir: str = DEFAULT_BASE_DIR
    agent: str = DEFAULT_AGENT
    agent_flags: list[str] = field(default_factory=list)
    editor: str = ""
    auto_init: bool = True
    repos: dict[str, str] = field(default_factory=dict)
    repo_settings: dict[str, dict[str, Any]] = field(default_factory=dict)
    last_repo: str = ""
    tmux_split_direction: str = "horizontal"

    @property
    def base_path(self) -> Path:
        return expand_path(self.base_dir)

    @property
    def experiments_dir(self) -> Path:
        return self.base_path / "experiments"

    @property
    def projects_dir(self) -> Path:
        return self.base_path / "projects"

    @property
    def scratch_dir(self) -> Path:
        return self.base_path / "scratch"

    def get_repo_copy_files(self, repo_path: str) -> list[str] | None:
        """Get the remembered gitignored-file selection for a repo.

        Returns:
            List of relative paths, or None if the user was never asked.
        """
        settings = self.repo_settings.get(repo_path)
        if settings is None or "copy_files" not in settings:
            return None
        return list(settings["copy_files"] or [])

    def set_repo_copy_files(self, repo_path: str, files: list[str]) -> None:
        """Remember the gitignored-file selection for a repo."""
        self.repo_settings.setdefault(repo_path, {})["copy_files"] = list(files)


def expand_path(path: str) -> Path:
    """Expand a leading ~ in a path."""
    return Path(os.path.expanduser(path))


def get_config_path() -> Path:
    """Get the path to the config file.

    Returns:
        Path to config file: ~/.config/clade/config.json
    """
    return get_config_dir() / "config.json"


def save_config(config: Config) -> None:
    """Save the configuration to disk.

    Args:
        config: Configuration to save.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = get_config_path()
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            json.dump(asdict(config), f, indent=2)
            f.write("\n")
    except OSError as e:
        raise ConfigError(f"Failed to save config to {config_path}: {e}") from e


def load_config() -> Config:
    """Load the configuration, creating the default file on first use.

    Returns:
        Config instance. Keys missing from the file take their defaults;
        unknown keys are ignored.

    Raises:
        ConfigError: If the file exists but cannot be parsed.
    """
    config_path = get_config_path()

    if not config_path.exists():
        config = Config()
        save_config(config)
        return config

    try:
        with open(config_path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to read config from {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config file: {config_path}")

    known = {f.name for f in fields(Config)}
    config = Config(**{k: v for k, v in data.items() if k in known})

    # null maps in hand-edited files
    if config.repos is None:
        config.repos = {}
    if config.repo_settings is None:
        config.repo_settings = {}
    if config.agent_flags is None:
        config.agent_flags = []
    return config
