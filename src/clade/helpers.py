"""Helper utilities shared across clade operations."""

from datetime import UTC, datetime

from .constants import NAME_PATTERN, STALE_DAYS, TICKET_PATTERN
from .exceptions import InvalidNameError


def validate_name(name: str) -> None:
    """
    Validate an experiment, feature, project or scratch name.

    Names start with a letter or digit and contain only letters, digits,
    hyphens and underscores, so they are safe as directory names and
    branch suffixes.

    Args:
        name: Candidate name

    Raises:
        InvalidNameError: If the name is empty or contains other characters
    """
    if not name:
        raise InvalidNameError("name cannot be empty")
    if not NAME_PATTERN.fullmatch(name):
        raise InvalidNameError(
            f"invalid name '{name}': use letters, numbers, hyphens and underscores "
            "(must start with a letter or number)"
        )


def extract_ticket(name: str) -> str:
    """
    Extract a leading JIRA-style ticket id from a name.

    Example:
        >>> extract_ticket("proj-1234-fix-login")
        'PROJ-1234'

    Returns:
        The ticket id, or "" if the name does not start with one
    """
    match = TICKET_PATTERN.match(name.upper())
    return match.group(1) if match else ""


def age_days(when: datetime, now: datetime | None = None) -> float:
    """Age of a timestamp in (fractional) days."""
    now = now or datetime.now(UTC)
    return (now - when).total_seconds() / 86400


def is_stale(when: datetime, now: datetime | None = None) -> bool:
    """Items untouched for more than STALE_DAYS days are stale."""
    return age_days(when, now) > STALE_DAYS


def format_age(when: datetime, now: datetime | None = None) -> str:
    """Format a timestamp as a human-readable age, e.g. "3 days ago"."""
    seconds = ((now or datetime.now(UTC)) - when).total_seconds()
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        minutes = int(seconds // 60)
        return "1 minute ago" if minutes == 1 else f"{minutes} minutes ago"
    if seconds < 86400:
        hours = int(seconds // 3600)
        return "1 hour ago" if hours == 1 else f"{hours} hours ago"
    days = int(seconds // 86400)
    return "1 day ago" if days == 1 else f"{days} days ago"
