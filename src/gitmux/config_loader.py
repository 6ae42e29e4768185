import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from .errors import ToolNotFoundError

# =============================================================================
# Settings (environment only, there is no config file)
# =============================================================================

DEFAULT_ENUMERATOR = "~/bin/gitmux"
DEFAULT_SELECTOR = "fzf"
DEFAULT_PREVIEW = "tree -C {}"
DEFAULT_TMUX = "tmux"

ENV_ENUMERATOR = "GITMUX_ENUMERATOR"
ENV_SELECTOR = "GITMUX_SELECTOR"
ENV_PREVIEW = "GITMUX_PREVIEW"
ENV_TMUX = "GITMUX_TMUX"
ENV_LOG_LEVEL = "GITMUX_LOG_LEVEL"
ENV_LOG_FORMAT = "GITMUX_LOG_FORMAT"
ENV_NO_LOG_FILE = "GITMUX_NO_LOG_FILE"

# Failure diagnostics are logged at ERROR, so the console never goes quieter
LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR")


@dataclass(frozen=True)
class Settings:
    enumerator: str = DEFAULT_ENUMERATOR
    selector: str = DEFAULT_SELECTOR
    preview: str = DEFAULT_PREVIEW
    tmux: str = DEFAULT_TMUX
    log_level: str = "WARNING"
    log_format: str = "text"
    log_to_file: bool = True

    @property
    def enumerator_path(self) -> Path:
        return Path(self.enumerator).expanduser()


def _is_truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    """
    Build Settings from GITMUX_* environment variables.

    Unset or empty variables fall back to the defaults.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        Frozen Settings instance
    """
    if environ is None:
        environ = os.environ

    log_format = (environ.get(ENV_LOG_FORMAT) or "text").strip().lower()
    if log_format not in ("text", "json"):
        log_format = "text"

    log_level = (environ.get(ENV_LOG_LEVEL) or "WARNING").strip().upper()
    if log_level == "CRITICAL":
        log_level = "ERROR"
    elif log_level not in LOG_LEVELS:
        log_level = "WARNING"

    return Settings(
        enumerator=environ.get(ENV_ENUMERATOR) or DEFAULT_ENUMERATOR,
        selector=environ.get(ENV_SELECTOR) or DEFAULT_SELECTOR,
        preview=environ.get(ENV_PREVIEW) or DEFAULT_PREVIEW,
        tmux=environ.get(ENV_TMUX) or DEFAULT_TMUX,
        log_level=log_level,
        log_format=log_format,
        log_to_file=not _is_truthy(environ.get(ENV_NO_LOG_FILE)),
    )


# =============================================================================
# PATH Augmentation
# =============================================================================
# tmux key bindings (run-shell / display-popup) often start with a minimal
# PATH that does not include user tool locations.

_ADDITIONAL_PATHS = [
    "/usr/local/bin",
    "/opt/homebrew/bin",                  # Homebrew on Apple Silicon
    os.path.expanduser("~/.local/bin"),   # uv, pipx
    os.path.expanduser("~/bin"),          # User personal scripts
    os.path.expanduser("~/.cargo/bin"),   # Rust/Cargo binaries
]


def augment_path(environ: dict[str, str] | None = None) -> None:
    """
    Prepend common tool locations to PATH when they exist and are missing.

    Args:
        environ: Mapping to update in place (defaults to os.environ)
    """
    if environ is None:
        environ = os.environ

    current_path = environ.get("PATH", "")
    path_dirs = [d for d in current_path.split(os.pathsep) if d]

    for additional in reversed(_ADDITIONAL_PATHS):
        if additional not in path_dirs and os.path.isdir(additional):
            path_dirs.insert(0, additional)

    environ["PATH"] = os.pathsep.join(path_dirs)


def resolve_tool(name: str) -> str:
    """
    Resolve a binary through PATH.

    Args:
        name: Command name or path (e.g. "fzf", "/usr/bin/tmux")

    Returns:
        Absolute path of the executable

    Raises:
        ToolNotFoundError: If the binary cannot be found
    """
    resolved = shutil.which(name)
    if resolved is None:
        logger.debug(
            "Tool not found on PATH",
            operation="resolve_tool",
            status="missing",
            tool=name
        )
        raise ToolNotFoundError(name)
    return resolved
