"""Helpers for judging external tool output."""

from pathlib import Path


def contains_marker(output: str, marker: str | None) -> bool:
    """True if the literal marker appears anywhere in output.

    An empty or missing marker never matches.
    """
    if not marker:
        return False
    return marker in output


def tail(path: Path, lines: int) -> str:
    """Last `lines` lines of a text file ("" if it does not exist)."""
    if lines <= 0 or not path.is_file():
        return ""
    text = path.read_text(encoding="utf-8", errors="replace")
    return "\n".join(text.splitlines()[-lines:])
