"""Fuzzy-pick a git repository and open a tmux window in it."""

__version__ = "0.1.0"
