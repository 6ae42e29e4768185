import os
import re

# =============================================================================
# Window Utilities
# =============================================================================
# Selection trimming and window naming live here so the launcher and the
# tests agree on exactly one rule for each.

# A leading path segment and its separator: "proj/" -> "p/"
_LEADING_SEGMENT = re.compile(r"([^/])[^/]*/")


def normalize_selection(raw: str) -> str:
    """Trim selector output down to the chosen path.

    Trailing newlines are dropped, then exactly one trailing "/" is removed.

    Args:
        raw: Raw stdout of the selector.

    Returns:
        The selected path, or "" when nothing was chosen.
    """
    selection = raw.rstrip("\n")
    if selection.endswith("/"):
        selection = selection[:-1]
    return selection


def relative_to_grandparent(selection: str) -> str:
    """Path of the selection relative to the directory two levels above it.

    Both ends are resolved through symlinks first, so "/home/me/proj/repo"
    yields "proj/repo" and "/a" yields "a".
    """
    target = os.path.realpath(selection)
    base = os.path.realpath(os.path.join(selection, os.pardir, os.pardir))
    return os.path.relpath(target, base)


def shorten_leading_segments(relative: str) -> str:
    """Cut every segment but the last to its first character.

    >>> shorten_leading_segments("proj/repo")
    'p/repo'
    """
    return _LEADING_SEGMENT.sub(r"\1/", relative)


def derive_window_name(selection: str) -> str:
    """Short window name for a selected directory."""
    return shorten_leading_segments(relative_to_grandparent(selection))
