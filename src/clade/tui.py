"""Interactive prompts: an arrow-key picker plus text and yes/no prompts.

The picker draws on stderr so commands whose stdout is captured (such as
`cd "$(clade open)"`) stay usable. Without a terminal it falls back to a
numbered list read from stdin.
"""

from __future__ import annotations

import os
import re
import sys

import typer

ANSI_RE = re.compile(r"\x1b\[[^m]*m")

Choice = tuple[str, str]


def ask(prompt: str, default: str | None = None, err: bool = False) -> str:
    """Prompt for a line of text; Ctrl+C aborts the command."""
    value = typer.prompt(
        prompt, default=default if default is not None else "", show_default=bool(default), err=err
    )
    return str(value).strip()


def confirm(question: str, default: bool = False) -> bool:
    """Ask a yes/no question."""
    return typer.confirm(question, default=default)


def pick(
    items: list[Choice],
    title: str = "Select:",
    default_index: int = 0,
) -> str | None:
    """
    Let the user pick one item.

    Args:
        items: (label, value) pairs
        title: Shown above the list
        default_index: Initially highlighted item

    Returns:
        The value of the chosen item, or None if cancelled
    """
    if not items:
        return None
    default_index = max(0, min(default_index, len(items) - 1))

    if sys.stderr.isatty() and sys.stdin.isatty():
        try:
            return _select_unix(items, title, default_index)
        except ImportError:
            pass
        try:
            return _select_windows(items, title, default_index)
        except ImportError:
            pass

    return _select_numbered(items, title, default_index)


def _write(s: str) -> None:
    """Write straight to the stderr file descriptor, bypassing buffering."""
    os.write(sys.stderr.fileno(), s.encode())


def _width() -> int:
    try:
        return os.get_terminal_size(sys.stderr.fileno()).columns
    except (OSError, ValueError):
        return 80


def _fit(text: str, width: int) -> str:
    """Cut a line with ANSI styling down to `width` visible characters."""
    if len(ANSI_RE.sub("", text)) <= width:
        return text
    out: list[str] = []
    visible = 0
    pos = 0
    while pos < len(text) and visible < width - 1:
        match = ANSI_RE.match(text, pos)
        if match:
            out.append(match.group(0))
            pos = match.end()
            continue
        out.append(text[pos])
        visible += 1
        pos += 1
    return "".join(out) + "\x1b[0m"


class _Screen:
    """Draws the list in place using save/restore cursor sequences."""

    def __init__(self, items: list[Choice], title: str) -> None:
        self.items = items
        self.title = title
        self.drawn = False

    def draw(self, selected: int) -> None:
        width = _width()
        _write("\x1b[u" if self.drawn else "\x1b[s")
        self.drawn = True
        title = _fit("  \x1b[1m" + self.title + "\x1b[0m", width)
        _write("\x1b[2K" + title + "\r\n\x1b[2K\r\n")
        for i, (label, value) in enumerate(self.items):
            suffix = f"  \x1b[2m{value}\x1b[0m" if value != label else ""
            if i == selected:
                line = f"  \x1b[1;7m > {label} \x1b[0m{suffix}"
            else:
                line = f"    {label}{suffix}"
            _write(f"\x1b[2K{_fit(line, width)}\r\n")

    def clear(self) -> None:
        _write("\x1b[u")
        _write("\x1b[2K\r\n" * (len(self.items) + 2))
        _write("\x1b[u")


def _key_from_bytes(read) -> str:
    """Translate raw terminal input into a key name."""
    ch = read()
    if not ch:
        raise EOFError
    if ch == b"\x1b":
        if read(peek=True) != b"[":
            return "esc"
        read()
        return {b"A": "up", b"B": "down"}.get(read(), "other")
    if ch in (b"\r", b"\n"):
        return "enter"
    if ch in (b"\x03", b"q"):
        return "quit"
    if ch in (b"k",):
        return "up"
    if ch in (b"j",):
        return "down"
    if b"1" <= ch <= b"9":
        return ch.decode()
    return "other"


def _run_loop(screen: _Screen, selected: int, next_key) -> str | None:
    screen.draw(selected)
    count = len(screen.items)
    while True:
        key = next_key()
        if key == "enter":
            screen.clear()
            return screen.items[selected][1]
        if key in ("quit", "esc"):
            screen.clear()
            return None
        if key == "up":
            selected = (selected - 1) % count
        elif key == "down":
            selected = (selected + 1) % count
        elif key.isdigit() and int(key) <= count:
            screen.clear()
            return screen.items[int(key) - 1][1]
        screen.draw(selected)


def _select_unix(items: list[Choice], title: str, default_index: int) -> str | None:
    import select
    import termios
    import tty

    fd = sys.stdin.fileno()
    saved = termios.tcgetattr(fd)
    screen = _Screen(items, title)
    pending: list[bytes] = []

    def read(peek: bool = False) -> bytes:
        if pending:
            return pending[0] if peek else pending.pop(0)
        if peek:
            # A bare Escape is not followed by more bytes
            ready, _, _ = select.select([fd], [], [], 0.05)
            if not ready:
                return b""
            pending.append(os.read(fd, 1))
            return pending[0]
        return os.read(fd, 1)

    _write("\x1b[?25l")
    try:
        tty.setraw(fd)
        return _run_loop(screen, default_index, lambda: _key_from_bytes(read))
    except (KeyboardInterrupt, EOFError):
        screen.clear()
        return None
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)
        _write("\x1b[?25h")


def _select_windows(items: list[Choice], title: str, default_index: int) -> str | None:
    import msvcrt

    screen = _Screen(items, title)

    def next_key() -> str:
        ch = msvcrt.getwch()  # type: ignore[attr-defined]
        if ch in ("\x00", "\xe0"):
            return {"H": "up", "P": "down"}.get(msvcrt.getwch(), "other")  # type: ignore[attr-defined]
        if ch == "\r":
            return "enter"
        if ch in ("\x03", "q", "\x1b"):
            return "quit"
        return ch if ch in "123456789" else "other"

    _write("\x1b[?25l")
    try:
        return _run_loop(screen, default_index, next_key)
    except (KeyboardInterrupt, EOFError):
        screen.clear()
        return None
    finally:
        _write("\x1b[?25h")


def _select_numbered(items: list[Choice], title: str, default_index: int) -> str | None:
    """Numbered list on stderr with the choice read from stdin."""
    lines = [f"\n  {title}\n"]
    for i, (label, value) in enumerate(items, start=1):
        suffix = f"  {value}" if value != label else ""
        lines.append(f"  [{i}] {label}{suffix}")
    typer.echo("\n".join(lines) + "\n", err=True)

    try:
        choice = typer.prompt(
            f"Select [1-{len(items)}]", default=str(default_index + 1), err=True
        ).strip()
    except typer.Abort:
        return None

    if not choice.isdigit() or not 1 <= int(choice) <= len(items):
        return None
    return items[int(choice) - 1][1]
