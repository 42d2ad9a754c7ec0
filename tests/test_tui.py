"""Tests for the interactive picker."""

import pytest

from clade import tui

ITEMS = [("First", "a"), ("Second", "b"), ("Third", "c")]


class FakeScreen:
    def __init__(self, items) -> None:
        self.items = items
        self.frames: list[int] = []
        self.cleared = False

    def draw(self, selected: int) -> None:
        self.frames.append(selected)

    def clear(self) -> None:
        self.cleared = True


def keys(*names: str):
    pending = list(names)
    return lambda: pending.pop(0)


def byte_reader(data: bytes):
    pending = [data[i : i + 1] for i in range(len(data))]

    def read(peek: bool = False) -> bytes:
        if not pending:
            return b""
        return pending[0] if peek else pending.pop(0)

    return read


def test_run_loop_moves_and_selects() -> None:
    screen = FakeScreen(ITEMS)
    assert tui._run_loop(screen, 0, keys("down", "down", "enter")) == "c"
    assert screen.frames == [0, 1, 2]
    assert screen.cleared


def test_run_loop_wraps_around() -> None:
    screen = FakeScreen(ITEMS)
    assert tui._run_loop(screen, 0, keys("up", "enter")) == "c"


def test_run_loop_number_shortcut() -> None:
    assert tui._run_loop(FakeScreen(ITEMS), 0, keys("2")) == "b"


def test_run_loop_quit() -> None:
    assert tui._run_loop(FakeScreen(ITEMS), 1, keys("quit")) is None


@pytest.mark.parametrize(
    ("data", "expected"),
    [
        (b"\x1b[A", "up"),
        (b"\x1b[B", "down"),
        (b"\x1b", "esc"),
        (b"\r", "enter"),
        (b"q", "quit"),
        (b"j", "down"),
        (b"3", "3"),
        (b"x", "other"),
    ],
)
def test_key_from_bytes(data: bytes, expected: str) -> None:
    assert tui._key_from_bytes(byte_reader(data)) == expected


def test_key_from_bytes_eof() -> None:
    with pytest.raises(EOFError):
        tui._key_from_bytes(byte_reader(b""))


def test_fit_keeps_styling() -> None:
    """Only visible characters count towards the width."""
    styled = "\x1b[1mabcdef\x1b[0m"
    assert tui._fit(styled, 10) == styled
    cut = tui._fit(styled, 4)
    assert tui.ANSI_RE.sub("", cut) == "abc"
    assert cut.endswith("\x1b[0m")


def test_pick_without_terminal(monkeypatch) -> None:
    """Without a terminal the choice is read as a number."""
    monkeypatch.setattr(tui.typer, "prompt", lambda *args, **kwargs: "2")
    assert tui.pick(ITEMS, title="Choose") == "b"


def test_pick_invalid_number(monkeypatch) -> None:
    monkeypatch.setattr(tui.typer, "prompt", lambda *args, **kwargs: "9")
    assert tui.pick(ITEMS) is None


def test_pick_empty() -> None:
    assert tui.pick([]) is None
