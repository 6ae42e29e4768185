import argparse
import os
import shlex
import sys
from uuid import uuid4

from loguru import logger

from .config_loader import Settings, augment_path, load_settings, resolve_tool
from .enumerator import run_enumerator
from .errors import ErrorReport, ToolNotFoundError
from .logging_config import setup_logger, trace_id_var
from .panes import current_session, list_sessions, open_session, open_window, parse_sessions, switch_client
from .scan_dirs import DEFAULT_IGNORE, DEFAULT_MARKERS, MAX_DEPTH, ScanOptions, discover_projects
from .selector import select_candidate, select_from_list
from .window_utils import derive_window_name

EXIT_OK = 0
EXIT_ENUMERATION_FAILED = 1
EXIT_TOOL_NOT_FOUND = 127


def _start(operation: str):
    settings = load_settings()
    setup_logger(
        level=settings.log_level,
        log_format=settings.log_format,
        log_to_file=settings.log_to_file,
    )
    augment_path()

    main_trace_id = str(uuid4())
    trace_id_var.set(main_trace_id)
    logger.debug(
        "gitmux starting",
        operation=operation,
        status="started",
        trace_id=main_trace_id,
        argv=sys.argv
    )
    return settings, main_trace_id


def _tool_not_found(error: ToolNotFoundError, operation: str, trace_id: str) -> int:
    logger.bind(
        operation=operation,
        status="tool_not_found",
        trace_id=trace_id,
        tool=error.tool
    ).error(str(error))
    return EXIT_TOOL_NOT_FOUND


def pick_project(args: list[str], settings: Settings, report: ErrorReport) -> tuple[int, str | None]:
    """
    Enumerate candidates and let the user choose one.

    Returns:
        (exit status, absolute selection); the selection is None when the
        caller should stop with that status

    Raises:
        ToolNotFoundError: If the selector is missing
    """
    enumerated = run_enumerator(args, settings)
    if not report.collect_result(enumerated):
        return EXIT_ENUMERATION_FAILED, None

    selection = select_candidate(enumerated.value, settings)
    if selection is None:
        return EXIT_OK, None

    # Relative candidates are relative to our cwd, not the tmux server's
    return EXIT_OK, os.path.abspath(selection)


def main(argv: list[str] | None = None) -> int:
    """
    Pick a repository and open a tmux window in it.

    Flow:
    1. Run the enumerator with our arguments (exit 1 if it fails)
    2. Let the user pick a candidate (exit 0 if they abort)
    3. Derive the window name from the selection
    4. Open the window; tmux's exit status becomes ours

    Args:
        argv: Arguments forwarded to the enumerator (defaults to sys.argv[1:])

    Returns:
        Process exit status
    """
    args = sys.argv[1:] if argv is None else list(argv)
    settings, main_trace_id = _start("main")
    report = ErrorReport()

    try:
        status, selection = pick_project(args, settings, report)
        if selection is None:
            report.log_summary(main_trace_id)
            return status

        window_name = derive_window_name(selection)
        returncode = open_window(selection, window_name, settings)
    except ToolNotFoundError as e:
        return _tool_not_found(e, "main", main_trace_id)

    logger.debug(
        "gitmux finished",
        operation="main",
        status="complete",
        trace_id=main_trace_id,
        returncode=returncode
    )
    return returncode


def new_session_main(argv: list[str] | None = None) -> int:
    """
    Pick a repository and open it as a new tmux session.

    Same arguments and exit statuses as main(); the session is named after
    the window name with "." removed, and the client switches to it.
    """
    args = sys.argv[1:] if argv is None else list(argv)
    settings, main_trace_id = _start("new_session_main")
    report = ErrorReport()

    try:
        status, selection = pick_project(args, settings, report)
        if selection is None:
            report.log_summary(main_trace_id)
            return status

        return open_session(selection, derive_window_name(selection), settings)
    except ToolNotFoundError as e:
        return _tool_not_found(e, "new_session_main", main_trace_id)


def sessions_selector_args(tmux_binary: str, position: int) -> list[str]:
    """fzf flags for the session list; position is 1-based."""
    return [
        "--layout", "reverse",
        "--preview", f"{shlex.quote(tmux_binary)} capture-pane -ept {{}}",
        "--preview-window", "right:nohidden",
        "--sync",
        "--bind", f"load:pos({position})",
        "--header", "Active sessions:",
    ]


def sessions_main() -> int:
    """
    Pick one of the running tmux sessions and switch to it.

    The current session is highlighted initially. Exit 0 when the user
    aborts, tmux's status when listing or switching fails.
    """
    settings, main_trace_id = _start("sessions_main")

    try:
        listed = list_sessions(settings)
        if listed.returncode != 0:
            logger.error(
                "failed to list tmux sessions",
                operation="sessions_main",
                status="failed",
                trace_id=main_trace_id,
                returncode=listed.returncode
            )
            return listed.returncode

        sessions = parse_sessions(listed.stdout)
        current = current_session(settings)
        position = sessions.index(current) + 1 if current in sessions else 1

        pick = select_from_list(
            sessions,
            settings,
            sessions_selector_args(resolve_tool(settings.tmux), position)
        ).strip().strip("'")
        if not pick:
            return EXIT_OK

        logger.info(
            "Switching session",
            operation="sessions_main",
            status="switching",
            trace_id=main_trace_id,
            target=pick
        )
        return switch_client(pick, settings)
    except ToolNotFoundError as e:
        return _tool_not_found(e, "sessions_main", main_trace_id)


def build_scan_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitmux-scan",
        description="List project directories (git repositories and similar) below the given roots.",
    )
    parser.add_argument(
        "roots", nargs="*", default=["$HOME"], metavar="ROOT",
        help="directories to scan; $VAR and ${VAR} are expanded (default: $HOME)",
    )
    parser.add_argument(
        "-m", "--marker", action="append", default=[], dest="markers", metavar="NAME",
        help="entry name that marks a project directory (repeatable, '*' matches any)",
    )
    parser.add_argument(
        "--no-default-markers", action="store_true",
        help=f"do not use the default markers ({', '.join(DEFAULT_MARKERS)})",
    )
    parser.add_argument(
        "-i", "--ignore", action="append", default=[], metavar="NAME",
        help="directory name never descended into (repeatable)",
    )
    parser.add_argument(
        "--no-default-ignore", action="store_true",
        help="do not use the default ignore list",
    )
    parser.add_argument(
        "-d", "--depth", type=int, default=MAX_DEPTH,
        help=f"maximum depth below each root (default: {MAX_DEPTH})",
    )
    parser.add_argument(
        "-H", "--hidden", action="store_true",
        help="descend into hidden directories",
    )
    parser.add_argument(
        "--no-stop-on-match", dest="stop_on_match", action="store_false",
        help="keep descending below directories that already matched",
    )
    return parser


def scan_options_from_args(ns: argparse.Namespace) -> ScanOptions:
    markers = tuple(ns.markers)
    if not ns.no_default_markers:
        markers += DEFAULT_MARKERS
    ignore = tuple(ns.ignore)
    if not ns.no_default_ignore:
        ignore += DEFAULT_IGNORE
    return ScanOptions(
        markers=markers,
        ignore=ignore,
        depth=ns.depth,
        show_hidden=ns.hidden,
        stop_on_match=ns.stop_on_match,
    )


def scan_main(argv: list[str] | None = None) -> int:
    """Print project directories, one per line (the default enumerator)."""
    ns = build_scan_parser().parse_args(argv)
    _, main_trace_id = _start("scan_main")
    report = ErrorReport()

    discovered = discover_projects(ns.roots, scan_options_from_args(ns), report)
    if not report.collect_result(discovered):
        report.log_summary(main_trace_id)
        return 1

    for path in discovered.value:
        sys.stdout.write(path + "\n")
    sys.stdout.flush()

    report.log_summary(main_trace_id)
    return 0


def run():
    sys.exit(main())


def run_scan():
    sys.exit(scan_main())


def run_new_session():
    sys.exit(new_session_main())


def run_sessions():
    sys.exit(sessions_main())
