import os
import sys
import json
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

logger = logging.getLogger("moontv_search")

debug_logger = logging.getLogger("moontv_search.debug")
debug_logger.propagate = False
debug_logger.disabled = True

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'


def setup_logging(log_dir: Optional[str] = None, debug_logging: bool = False,
                  level: int = logging.INFO) -> logging.Logger:
    """
    Attach file and stdout handlers to the package logger.

    Safe to call more than once; handlers are only added the first time
    for a given file.
    """
    logger.setLevel(level)

    if not any(isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stdout
               for h in logger.handlers):
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setFormatter(logging.Formatter('%(message)s'))  # Keep stdout clean
        logger.addHandler(stream_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, 'moontv_search.log')
        if not any(getattr(h, "baseFilename", None) == log_file for h in logger.handlers):
            file_handler = RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(file_handler)

        if debug_logging:
            debug_file = os.path.join(log_dir, 'debug.log')
            if not any(getattr(h, "baseFilename", None) == debug_file for h in debug_logger.handlers):
                debug_handler = RotatingFileHandler(debug_file, maxBytes=10 * 1024 * 1024, backupCount=10)
                debug_handler.setFormatter(logging.Formatter('%(message)s'))
                debug_logger.addHandler(debug_handler)
            debug_logger.setLevel(logging.INFO)

    debug_logger.disabled = not debug_logging
    return logger


def debug_log_event(event: dict) -> None:
    """Write structured debug events to the debug log."""
    if debug_logger.disabled:
        return
    try:
        debug_logger.info(json.dumps(event, ensure_ascii=False, separators=(',', ':'), default=str))
    except (TypeError, ValueError) as exc:
        logger.info(f"Debug log failure: {exc}")
