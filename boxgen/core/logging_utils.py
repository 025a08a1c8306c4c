from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _same_file(handler: logging.Handler, log_file: Path) -> bool:
    return isinstance(handler, logging.FileHandler) and Path(handler.baseFilename).resolve() == log_file.resolve()


def _same_stream(handler: logging.Handler, stream: TextIO) -> bool:
    return type(handler) is logging.StreamHandler and handler.stream is stream


def _attach(root: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.setLevel(level)
    root.addHandler(handler)


def setup_logging(
    log_file: Path,
    level: int = logging.INFO,
    console: TextIO | None = None,
) -> None:
    """
    Send application logs to a file and to the console.

    Args:
        log_file: Log file, its directory is created if needed
        level: Minimum level for both destinations
        console: Console stream, stderr by default so generated
            documents printed to stdout stay clean

    Calling it again with the same destinations adds nothing.
    """
    console = console or sys.stderr
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(level)

    if not any(_same_file(h, log_file) for h in root.handlers):
        _attach(root, logging.FileHandler(log_file, encoding="utf-8"), level)
    if not any(_same_stream(h, console) for h in root.handlers):
        _attach(root, logging.StreamHandler(console), level)

    # boxgen loggers created before setup must reach the root handlers
    for name in list(logging.Logger.manager.loggerDict):
        if not name.startswith("boxgen"):
            continue
        app_logger = logging.getLogger(name)
        app_logger.propagate = True
        if app_logger.level > level:
            app_logger.setLevel(logging.NOTSET)
