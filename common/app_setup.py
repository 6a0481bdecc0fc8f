"""
Reusable logging and print setup for all parts of the project.

Functions:
    setup_logging      - Configure and return a logger.
    set_print_logger   - Set the logger for print_and_log and print_error.
    monkeypatch_print  - Replace built-in print with rich print.
    print_and_log      - Print and log an info message.
    print_error        - Print and log an error message.
"""

import builtins
import logging
import os
import sys
from typing import Optional

from rich import print as rich_print

# Module-level variable to hold the logger for print_and_log and print_error
_print_logger: Optional[logging.Logger] = None

LOG_FORMAT = '%(asctime)s %(levelname)s %(process)d %(name)s %(message)s'


def setup_logging(app_name: str = "autographed", loglevel: int = logging.INFO, logfile: Optional[str] = None) -> logging.Logger:
    """
    Set up logging for the application.
    Logs go to ~/.<app_name>/log.txt unless a custom logfile is given.
    Environment variable AUTOGRAPHED_LOGFILE overrides the default location.
    Returns the configured (root) logger, also registered for print_and_log.
    """
    logger = logging.getLogger()
    logger.setLevel(loglevel)
    if logfile is None:
        logfile = os.environ.get("AUTOGRAPHED_LOGFILE")
    if logfile is None:
        log_dir = os.path.expanduser(f"~/.{app_name}")
        os.makedirs(log_dir, exist_ok=True)
        logfile = os.path.join(log_dir, "log.txt")
    handler = logging.FileHandler(logfile)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    # Remove any existing handlers
    for h in logger.handlers[:]:
        logger.removeHandler(h)

    logger.addHandler(handler)
    set_print_logger(logger)
    logger.debug("Logger initialized for %s (logfile=%s)", app_name, logfile)
    return logger


def set_print_logger(logger: logging.Logger):
    """
    Set the logger to be used by print_and_log and print_error.
    setup_logging calls this already.
    """
    global _print_logger
    _print_logger = logger


def monkeypatch_print():
    """
    Monkeypatch built-in print to use rich.print for all output (no logging).
    """
    def print_to_rich(*args, **kwargs):
        rich_print(*args, **kwargs)
    builtins.print = print_to_rich  # monkeypatch print


def print_and_log(message: str, **kwargs):
    """
    Print to console (via print) and log as info.
    """
    print(message, **kwargs)
    if _print_logger is not None:
        _print_logger.info(message)


def print_error(message: str, **kwargs):
    """
    Print and log an error message (stderr and error level), using the logger set by set_print_logger.
    """
    print(f'[bold red]{message}[/bold red]', file=sys.stderr, **kwargs)
    if _print_logger is not None:
        _print_logger.error(message)
