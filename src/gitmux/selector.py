import subprocess

from loguru import logger

from .config_loader import Settings, resolve_tool
from .window_utils import normalize_selection

# =============================================================================
# Interactive Selector (fzf)
# =============================================================================


def build_selector_command(settings: Settings, extra_args: list[str] | None = None) -> list[str]:
    """
    Build the fzf argv.

    Without extra_args this is the directory-tree preview used for projects.

    Raises:
        ToolNotFoundError: If the selector is not on PATH
    """
    if extra_args is None:
        extra_args = ["--preview", settings.preview]
    return [resolve_tool(settings.selector), *extra_args]


def select_from_list(
    lines: list[str],
    settings: Settings,
    extra_args: list[str] | None = None,
) -> str:
    """
    Show lines in the selector and return its raw output minus newlines.

    Blocks on user input with no timeout. The selector's exit status is not
    inspected: an aborted selection is recognised by empty output alone.
    Undecodable bytes survive the round trip as surrogate escapes.

    Args:
        lines: Entries to offer, in display order
        settings: Active settings
        extra_args: Selector flags (defaults to the tree preview)

    Returns:
        The chosen line, or "" if the user aborted
    """
    cmd = build_selector_command(settings, extra_args)
    stdin_text = "".join(f"{line}\n" for line in lines)

    logger.debug(
        "Showing selector",
        operation="select_from_list",
        status="started",
        metrics={"entries": len(lines)}
    )

    result = subprocess.run(
        cmd,
        input=stdin_text,
        stdout=subprocess.PIPE,
        text=True,
        errors="surrogateescape",
        check=False
    )

    if not result.stdout.strip("\n"):
        logger.debug(
            "Selection cancelled",
            operation="select_from_list",
            status="cancelled",
            returncode=result.returncode
        )
    return result.stdout.rstrip("\n")


def select_candidate(candidates: list[str], settings: Settings) -> str | None:
    """
    Let the user pick one project path.

    Args:
        candidates: Paths to offer, in display order
        settings: Active settings

    Returns:
        Selection with one trailing "/" trimmed, or None if the user aborted
    """
    selection = normalize_selection(select_from_list(candidates, settings))
    if not selection:
        return None

    logger.debug(
        "Candidate selected",
        operation="select_candidate",
        status="success",
        selection=selection
    )
    return selection
