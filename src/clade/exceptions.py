"""Custom exceptions for clade."""


class CladeError(Exception):
    """Base exception for clade."""

    pass


class GitError(CladeError):
    """Raised when a git operation fails."""

    pass


class InvalidNameError(CladeError):
    """Raised when an experiment, project or scratch name is invalid."""

    pass


class BranchExistsError(CladeError):
    """Raised when a branch to be created already exists locally or on origin."""

    pass


class WorktreeNotFoundError(CladeError):
    """Raised when a tracked worktree or folder is missing on disk."""

    pass


class RepoNotFoundError(CladeError):
    """Raised when a repository cannot be resolved."""

    pass


class ItemNotFoundError(CladeError):
    """Raised when no experiment, project or scratch matches a name."""

    pass


class ConfigError(CladeError):
    """Raised when the config file cannot be read or written."""

    pass


class StateError(CladeError):
    """Raised when the state file cannot be read or written."""

    pass


class AgentError(CladeError):
    """Raised when the agent or editor cannot be launched."""

    pass
