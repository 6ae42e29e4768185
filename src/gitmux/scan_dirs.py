import os
import re
import time
from dataclasses import dataclass, field
from uuid import uuid4

from loguru import logger

from .errors import Error, ErrorReport, ErrorType, Result

# =============================================================================
# Project Discovery (built-in enumerator)
# =============================================================================

DEFAULT_MARKERS = (".git", "Cargo.toml")

DEFAULT_IGNORE = (
    "node_modules",
    "venv",
    "bin",
    "target",
    "debug",
    "src",
    "test",
    "tests",
    "lib",
    "docs",
    "pkg",
)

MAX_DEPTH = 255

# $NAME or ${NAME}; a name runs until "}" or "/"
_ENV_VAR = re.compile(r"\$\{?([^}/]+)\}?")


@dataclass(frozen=True)
class ScanOptions:
    markers: tuple[str, ...] = DEFAULT_MARKERS
    ignore: tuple[str, ...] = DEFAULT_IGNORE
    depth: int = MAX_DEPTH
    show_hidden: bool = False
    stop_on_match: bool = True


@dataclass
class ScanState:
    options: ScanOptions
    report: ErrorReport = field(default_factory=ErrorReport)
    found: list[str] = field(default_factory=list)
    dirs_visited: int = 0


def expand_vars(path: str, environ: dict[str, str] | None = None) -> Result[str]:
    """
    Expand $VAR and ${VAR} references from the environment.

    Unlike os.path.expandvars, an undefined variable is an error rather
    than being left in place.

    Args:
        path: Path possibly containing variable references
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        Result[str]: Ok with the expanded path, or Err(UNDEFINED_VARIABLE)
    """
    if environ is None:
        environ = os.environ

    missing = []

    def _replace(match: re.Match) -> str:
        name = match.group(1)
        if name not in environ:
            missing.append(name)
            return ""
        return environ[name]

    expanded = _ENV_VAR.sub(_replace, path)
    if missing:
        return Result.err(Error(
            error_type=ErrorType.UNDEFINED_VARIABLE,
            message=f"environment variable not set: {missing[-1]}",
            context={"path": path, "variable": missing[-1]}
        ))
    return Result.ok(expanded)


def _has_marker(names: list[str], markers: tuple[str, ...]) -> bool:
    # "*" matches any directory that has at least one entry
    return any(name in markers or "*" in markers for name in names)


def _descend(path: str, depth: int, state: ScanState) -> bool:
    """
    Walk one directory and report whether it should be listed.

    Matching descendants are appended to state.found as the recursion
    unwinds, so children always precede their parents.
    """
    options = state.options
    state.dirs_visited += 1

    try:
        with os.scandir(path) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        state.report.add_warning(Error(
            error_type=ErrorType.PERMISSION_ERROR,
            message=f"cannot read directory: {path}",
            context={"path": path, "reason": e.strerror or str(e)},
            original_exception=e
        ))
        return False

    included = False
    if _has_marker([entry.name for entry in entries], options.markers):
        included = True
        if options.stop_on_match:
            return True

    if depth >= options.depth:
        return included

    for entry in entries:
        if not entry.is_dir(follow_symlinks=False):
            continue
        if entry.name.startswith(".") and not options.show_hidden:
            continue
        if entry.name in options.ignore:
            continue
        if _descend(entry.path, depth + 1, state):
            state.found.append(entry.path)
            included = True

    return included


def discover_projects(
    roots: list[str],
    options: ScanOptions | None = None,
    report: ErrorReport | None = None,
) -> Result[list[str]]:
    """
    Find project directories under each root.

    Every root is listed first, followed by its matching descendants.
    Unreadable directories below a root become warnings in the report.

    Args:
        roots: Root directories, may contain $VAR references
        options: Discovery options (defaults to ScanOptions())
        report: ErrorReport collecting warnings (a fresh one if omitted)

    Returns:
        Result[list[str]]: Ok with paths in output order, or Err when a root
        cannot be expanded or does not exist
    """
    start_time = time.perf_counter()
    op_trace_id = str(uuid4())
    state = ScanState(
        options=options or ScanOptions(),
        report=report if report is not None else ErrorReport(),
    )
    output: list[str] = []

    logger.debug(
        "Starting project discovery",
        operation="discover_projects",
        status="started",
        trace_id=op_trace_id,
        roots=roots
    )

    for root in roots:
        expanded = expand_vars(root)
        if expanded.is_err():
            return expanded

        root_path = os.path.expanduser(expanded.value)
        if not os.path.isdir(root_path):
            return Result.err(Error(
                error_type=ErrorType.PATH_NOT_FOUND,
                message=f"not a directory: {root_path}",
                context={"path": root_path}
            ))

        state.found = []
        _descend(root_path, 0, state)
        output.append(root_path)
        output.extend(state.found)

    duration_ms = int((time.perf_counter() - start_time) * 1000)
    logger.debug(
        "Project discovery complete",
        operation="discover_projects",
        status="success",
        trace_id=op_trace_id,
        metrics={
            "projects_found": len(output),
            "dirs_visited": state.dirs_visited,
            "warnings": len(state.report.warnings),
            "duration_ms": duration_ms
        }
    )

    return Result.ok(output)
