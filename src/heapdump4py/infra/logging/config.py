from __future__ import annotations

"""
Logging Settings for Heap Dumps.

A dump reports its progress at INFO and every skipped field or element
at WARNING, naming the module logger that skipped it. Long dumps of large
scenes can produce many warnings, so the optional log file rotates.
"""

import logging
from dataclasses import dataclass
from typing import Optional

# Levels accepted on the command line and in persisted settings
_LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class LoggingConfig:
    """
    Settings passed to `configure_logging`.

    Attributes:
        level: Minimum severity name; unknown names fall back to INFO.
        console: Emit records on stderr, leaving stdout to results and JSON.
        log_file: Optional path of a rotating log file.
        max_bytes: Size of a log file before it rolls over.
        backup_count: Rolled-over log files to keep.
        console_fmt: Format of stderr records.
        file_fmt: Format of log file records.
        datefmt: Timestamp format of log file records.
    """
    level: str = "INFO"
    console: bool = True
    log_file: Optional[str] = None

    max_bytes: int = 4 * 1024 * 1024
    backup_count: int = 2

    console_fmt: str = "[%(levelname)s] %(message)s"
    file_fmt: str = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    datefmt: str = "%Y-%m-%dT%H:%M:%S"

    def level_number(self) -> int:
        """Numeric logging level; 'WARN' is accepted for WARNING."""
        name = str(self.level or "").strip().upper()
        if name == "WARN":
            name = "WARNING"
        if name not in _LEVEL_NAMES:
            return logging.INFO
        return logging.getLevelName(name)
