"""
Reusable logging and print setup for all parts of the project.

Functions:
    setup_logging      - Configure and return a logger.
    set_print_logger   - Set the logger for print_and_log and print_error.
    print_and_log      - Print (through rich) and log an info message.
    print_error        - Print (through rich) and log an error message.
"""

import logging
import os
import sys
from typing import Optional

from rich import print as rich_print

# Module-level variable to hold the logger for print_and_log and print_error
_print_logger: Optional[logging.Logger] = None

# Handler installed by the last setup_logging call, replaced on the next call
_installed_handler: Optional[logging.Handler] = None


def setup_logging(app_name: str = "connection-tree", loglevel: int = logging.INFO, logfile: Optional[str] = None) -> logging.Logger:
    """
    Set up logging for the application.
    Logs go to ~/.<app_name>/log.txt, or to ``logfile`` when one is given.
    Calling it again replaces the handler installed by the previous call.
    Returns the configured (root) logger.
    """
    global _installed_handler
    logger = logging.getLogger()
    logger.setLevel(loglevel)

    if logfile is None:
        log_dir = os.path.expanduser(f"~/.{app_name}")
        os.makedirs(log_dir, exist_ok=True)
        logfile = os.path.join(log_dir, "log.txt")
    handler = logging.FileHandler(logfile)
    handler.setFormatter(logging.Formatter(f'%(asctime)s %(levelname)s %(process)d [{app_name}] %(name)s: %(message)s'))

    if _installed_handler is not None:
        logger.removeHandler(_installed_handler)
        _installed_handler.close()
    logger.addHandler(handler)
    _installed_handler = handler

    set_print_logger(logger)
    logger.debug(f"Logging initialized, writing to {logfile}")
    return logger


def set_print_logger(logger: logging.Logger):
    """
    Set the logger to be used by print_and_log and print_error.
    """
    global _print_logger
    _print_logger = logger


def print_and_log(message: str, **kwargs):
    """
    Print to console (rich markup allowed) and log as info.
    """
    rich_print(message, **kwargs)
    if _print_logger is not None:
        _print_logger.info(message)


def print_error(message: str, **kwargs):
    """
    Print and log an error message (stderr and error level), using the logger set by set_print_logger.
    """
    rich_print(f'[bold red]{message}[/bold red]', file=sys.stderr, **kwargs)
    if _print_logger is not None:
        _print_logger.error(message)
