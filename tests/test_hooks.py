"""Tests for writing .claude/ hooks and .gitignore entries."""

import json
from pathlib import Path

from clade.hooks import init_repo, is_initialized, update_gitignore


def test_init_repo_writes_files(tmp_path: Path) -> None:
    assert not is_initialized(tmp_path)
    assert init_repo(tmp_path) is True

    settings = json.loads((tmp_path / ".claude" / "settings.json").read_text())
    hook = settings["hooks"]["SessionStart"][0]
    assert hook["matcher"] == "*"
    assert hook["hooks"][0] == {"type": "command", "command": "clade inject-context"}

    drop = (tmp_path / ".claude" / "commands" / "drop.md").read_text()
    assert "DROPBAG.md" in drop
    assert "## Next Steps" in drop
    assert is_initialized(tmp_path)


def test_init_repo_keeps_existing_without_force(tmp_path: Path) -> None:
    init_repo(tmp_path)
    settings = tmp_path / ".claude" / "settings.json"
    settings.write_text("{}")

    assert init_repo(tmp_path) is False
    assert settings.read_text() == "{}"

    assert init_repo(tmp_path, force=True) is True
    assert "SessionStart" in settings.read_text()


def test_update_gitignore_new_file(tmp_path: Path) -> None:
    path = tmp_path / ".gitignore"

    assert update_gitignore(path) == ["DROPBAG.md", ".clade.json"]
    assert path.read_text() == "\n# Clade\nDROPBAG.md\n.clade.json\n"


def test_update_gitignore_appends_missing_only(tmp_path: Path) -> None:
    """Existing entries are not repeated and a missing final newline is added."""
    path = tmp_path / ".gitignore"
    path.write_text("node_modules/\nDROPBAG.md")

    assert update_gitignore(path) == [".clade.json"]
    assert path.read_text() == "node_modules/\nDROPBAG.md\n\n# Clade\n.clade.json\n"


def test_update_gitignore_idempotent(tmp_path: Path) -> None:
    path = tmp_path / ".gitignore"
    update_gitignore(path)
    before = path.read_text()

    assert update_gitignore(path) == []
    assert path.read_text() == before
