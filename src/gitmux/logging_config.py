import json
import sys
import traceback
from contextvars import ContextVar
from pathlib import Path

import platformdirs
from loguru import logger

# =============================================================================
# Structured Logging Setup
# =============================================================================

APP_NAME = "gitmux"

# Correlation ID shared by every record of one invocation
trace_id_var: ContextVar[str] = ContextVar('trace_id', default=None)

CONSOLE_FORMAT = APP_NAME + ": {message}"


def json_sink(message):
    """JSONL sink for machine-readable output - writes to stderr."""
    record = message.record
    log_entry = {
        "timestamp": record["time"].strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
        "level": record["level"].name.lower(),
        "component": record["function"],
        "operation": record["extra"].get("operation", "unknown"),
        "operation_status": record["extra"].get("status", None),
        "trace_id": record["extra"].get("trace_id") or trace_id_var.get(),
        "message": record["message"],
        "context": {k: v for k, v in record["extra"].items()
                   if k not in ("operation", "status", "trace_id", "metrics")},
        "metrics": record["extra"].get("metrics", {}),
        "error": None
    }

    if record["exception"]:
        exc_type, exc_value, exc_tb = record["exception"]
        tb_lines = []
        if exc_tb:
            tb_lines = traceback.format_tb(exc_tb)

        log_entry["error"] = {
            "type": exc_type.__name__ if exc_type else "Unknown",
            "message": str(exc_value) if exc_value else "Unknown error",
            "traceback_lines": tb_lines
        }

    sys.stderr.write(json.dumps(log_entry, default=str) + "\n")


def setup_logger(
    level: str = "WARNING",
    log_format: str = "text",
    log_to_file: bool = True,
):
    """
    Configure Loguru for an interactive terminal tool.

    The console sink stays quiet by default so it never competes with the
    selector UI; everything down to DEBUG still lands in the rotating file.

    Args:
        level: Minimum level for the stderr sink
        log_format: "text" for plain lines, "json" for JSONL on stderr
        log_to_file: Also write JSONL records under the user log directory
    """
    logger.remove()

    if log_format == "json":
        logger.add(json_sink, level=level)
    else:
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=False)

    if log_to_file:
        # macOS: ~/Library/Logs/gitmux/
        # Linux: ~/.local/state/gitmux/log/
        log_dir = Path(platformdirs.user_log_dir(
            appname=APP_NAME,
            ensure_exists=True
        ))

        logger.add(
            str(log_dir / "gitmux.jsonl"),
            format="{message}",
            serialize=True,
            rotation="10 MB",
            retention="7 days",
            compression="gz",
            level="DEBUG",
            # Paths carried as surrogate escapes must not break the sink
            errors="backslashreplace"
        )

    return logger
