# -*- coding: utf-8 -*-
"""
Process logging configuration.

Routes logs by severity for correct container classification:
- DEBUG, INFO, WARNING → STDOUT
- ERROR, CRITICAL → STDERR

Uses QueueHandler + QueueListener so store writes running in worker threads
and the event loop never block on stdout/stderr.
"""

import atexit
import logging
import queue
import sys
from logging.handlers import QueueHandler, QueueListener

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class MaxLevelFilter(logging.Filter):
    """Pass only records up to max_level (inclusive)."""

    def __init__(self, max_level):
        super().__init__()
        self.max_level = max_level

    def filter(self, record):
        return record.levelno <= self.max_level


_log_listener: QueueListener | None = None


def setup_logging(level: str = "INFO") -> None:
    """
    Install the queue-based root handler.

    Safe to call more than once: a running listener is stopped and replaced.
    Must be called before the first log record is emitted.
    """
    global _log_listener

    if _log_listener is not None:
        _stop_log_listener()

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    root_logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.addFilter(MaxLevelFilter(logging.WARNING))
    stdout_handler.setFormatter(formatter)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.ERROR)
    stderr_handler.setFormatter(formatter)

    log_queue = queue.Queue()
    root_logger.addHandler(QueueHandler(log_queue))

    _log_listener = QueueListener(
        log_queue,
        stdout_handler,
        stderr_handler,
        respect_handler_level=True,
    )
    _log_listener.start()
    atexit.register(_stop_log_listener)

    # aiogram logs every handled update at INFO
    logging.getLogger("aiogram.event").setLevel(logging.WARNING)


def _stop_log_listener():
    """Stop the queue listener (called at exit)."""
    global _log_listener
    if _log_listener is not None:
        _log_listener.stop()
        _log_listener = None
