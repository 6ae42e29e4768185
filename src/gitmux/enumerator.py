import os
import subprocess
import time

from loguru import logger

from .config_loader import Settings, resolve_tool
from .errors import Error, ErrorType, Result, ToolNotFoundError

# =============================================================================
# Candidate Enumeration
# =============================================================================


def enumerator_command(args: list[str], settings: Settings) -> list[str]:
    """
    Build the enumerator argv.

    A bare command name is looked up on PATH; anything containing a path
    separator (including the default ~/bin/gitmux) is used as-is.

    Raises:
        ToolNotFoundError: If a bare command name is not on PATH
    """
    if os.sep in settings.enumerator or settings.enumerator.startswith("~"):
        binary = str(settings.enumerator_path)
    else:
        binary = resolve_tool(settings.enumerator)
    return [binary, *args]


def parse_candidates(output: str) -> list[str]:
    """Split enumerator stdout into candidate paths, dropping blank lines."""
    return [line for line in output.splitlines() if line.strip()]


def run_enumerator(args: list[str], settings: Settings) -> Result[list[str]]:
    """
    Run the enumerator with the forwarded arguments.

    The enumerator's stderr is left attached to the terminal.

    Args:
        args: Arguments forwarded verbatim from the command line
        settings: Active settings

    Returns:
        Result[list[str]]: Ok with candidate paths in output order, or Err
        with ENUMERATION_FAILED / TOOL_NOT_FOUND
    """
    start_time = time.perf_counter()

    try:
        cmd = enumerator_command(args, settings)
    except ToolNotFoundError as e:
        return Result.err(Error(
            error_type=ErrorType.TOOL_NOT_FOUND,
            message=str(e),
            context={"enumerator": settings.enumerator},
            original_exception=e
        ))

    logger.debug(
        "Running enumerator",
        operation="run_enumerator",
        status="started",
        command=cmd
    )

    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            text=True,
            # POSIX paths need not be UTF-8; keep their bytes intact
            errors="surrogateescape",
            check=False
        )
    except OSError as e:
        logger.debug(
            "Enumerator could not be executed",
            operation="run_enumerator",
            status="failed",
            enumerator=cmd[0],
            error=str(e)
        )
        return Result.err(Error(
            error_type=ErrorType.TOOL_NOT_FOUND,
            message=f"{cmd[0]}: {e.strerror or e}",
            context={"enumerator": cmd[0]},
            original_exception=e
        ))

    if result.returncode != 0:
        return Result.err(Error(
            error_type=ErrorType.ENUMERATION_FAILED,
            message=f"failed to list repositories (exit status {result.returncode})",
            context={"enumerator": cmd[0], "returncode": result.returncode}
        ))

    candidates = parse_candidates(result.stdout)
    duration_ms = int((time.perf_counter() - start_time) * 1000)
    logger.debug(
        "Enumerator finished",
        operation="run_enumerator",
        status="success",
        metrics={"candidates": len(candidates), "duration_ms": duration_ms}
    )
    return Result.ok(candidates)
