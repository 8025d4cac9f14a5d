"""Per-command loguru file sinks under ~/.moodlekit/logs.

File sinks redact sesskeys, session cookies and tokens before anything is
written, since AJAX URLs and error bodies routinely carry them.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from moodlekit.config.loader import get_data_dir
from moodlekit.utils.exceptions import sanitize_error_message

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{line} | {extra[redacted]}\n{exception}"

_SINK_IDS: dict[str, int] = {}


def _redacting_format(record) -> str:
    record["extra"]["redacted"] = sanitize_error_message(record["message"])
    return LOG_FORMAT


def ensure_rotating_log_file(command: str, level: str = "INFO") -> Path:
    """Attach a rotating, redacting sink for one CLI command (idempotent)."""
    log_path = get_data_dir() / "logs" / f"{command}.log"
    if command not in _SINK_IDS:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        _SINK_IDS[command] = logger.add(
            str(log_path),
            level=level,
            format=_redacting_format,
            rotation="10 MB",
            retention="14 days",
            enqueue=True,
            encoding="utf-8",
            backtrace=False,
            diagnose=False,
        )
    return log_path
