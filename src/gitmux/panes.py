import subprocess

from loguru import logger

from .config_loader import Settings, resolve_tool

# =============================================================================
# Window and Session Management (tmux)
# =============================================================================


def run_tmux(args: list[str], settings: Settings, capture: bool = False) -> subprocess.CompletedProcess:
    """
    Run one tmux command.

    Args:
        args: tmux arguments (without the binary)
        settings: Active settings
        capture: Capture stdout as text instead of inheriting it

    Raises:
        ToolNotFoundError: If tmux is not on PATH
    """
    cmd = [resolve_tool(settings.tmux), *args]
    result = subprocess.run(
        cmd,
        stdout=subprocess.PIPE if capture else None,
        text=True,
        errors="surrogateescape",
        check=False
    )
    if result.returncode != 0:
        logger.debug(
            "tmux returned non-zero",
            operation="run_tmux",
            status="failed",
            tmux_args=args,
            returncode=result.returncode
        )
    return result


def open_window(directory: str, name: str, settings: Settings) -> int:
    """
    Open a new window in the current tmux session.

    Args:
        directory: Absolute working directory for the new window
        name: Window name
        settings: Active settings

    Returns:
        tmux exit status
    """
    logger.info(
        "Opening window",
        operation="open_window",
        status="started",
        directory=directory,
        window_name=name
    )
    return run_tmux(["new-window", "-c", directory, "-n", name], settings).returncode


def session_name_for(window_name: str) -> str:
    """tmux rewrites "." in session names, so drop it up front."""
    return window_name.replace(".", "")


def open_session(directory: str, window_name: str, settings: Settings) -> int:
    """
    Create a detached session rooted at directory and switch to it.

    An already existing session of the same name is switched to rather
    than treated as a failure.

    Returns:
        Exit status of the switch-client call
    """
    session_name = session_name_for(window_name)
    created = run_tmux(
        ["new-session", "-d", "-s", session_name, "-n", window_name, "-c", directory],
        settings
    )
    if created.returncode != 0:
        logger.warning(
            "Could not create session, switching to it anyway",
            operation="open_session",
            status="exists",
            session_name=session_name,
            returncode=created.returncode
        )
    else:
        logger.info(
            "Session created",
            operation="open_session",
            status="success",
            session_name=session_name,
            directory=directory
        )
    return switch_client(session_name, settings)


def switch_client(target: str, settings: Settings) -> int:
    return run_tmux(["switch-client", "-t", target], settings).returncode


def current_session(settings: Settings) -> str:
    """Return "session:window" of the attached client, or "" outside tmux."""
    result = run_tmux(["display-message", "-p", "#S:#I"], settings, capture=True)
    if result.returncode != 0:
        return ""
    return result.stdout.strip().strip("'")


def _session_id_key(session_id: str) -> tuple[int, str]:
    # "$12" -> 12; anything unexpected sorts last
    digits = session_id.lstrip("$")
    return (int(digits), "") if digits.isdigit() else (1 << 31, session_id)


def parse_sessions(output: str) -> list[str]:
    """
    Turn "name:window,$id" lines into "name:window" entries in creation order.

    Args:
        output: stdout of list-sessions -F '#S:#I,#{session_id}'

    Returns:
        Session targets sorted by session id
    """
    sessions = []
    for line in output.splitlines():
        line = line.strip().strip("'")
        if not line:
            continue
        target, _, session_id = line.rpartition(",")
        if not target:
            target, session_id = session_id, ""
        sessions.append((session_id, target))
    return [target for session_id, target in sorted(sessions, key=lambda s: _session_id_key(s[0]))]


def list_sessions(settings: Settings) -> subprocess.CompletedProcess:
    return run_tmux(["list-sessions", "-F", "#S:#I,#{session_id}"], settings, capture=True)
