import logging
import sys
import os
from logging import Handler

from tqdm import tqdm

LOGGER_NAME = "locale_sync"


class TqdmLoggingHandler(Handler):
    """Print records with ``tqdm.write`` so they land above the translation progress bar."""

    def __init__(self, level=logging.NOTSET, stream=None):
        super().__init__(level)
        # Resolved on every emit so a replaced sys.stderr is honoured.
        self.stream = stream

    def emit(self, record):
        try:
            tqdm.write(self.format(record), file=self.stream or sys.stderr)
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)


def setup_logger(log_level_str: str, log_file_path: str, log_to_console: bool) -> logging.Logger:
    """
    Set up the package logger.

    Every module logs through ``logging.getLogger(__name__)``, so configuring
    the ``locale_sync`` logger here covers the whole package.

    Args:
        log_level_str: The logging level as a string (e.g., 'INFO', 'DEBUG').
        log_file_path: The path to the log file. Empty to disable file logging.
        log_to_console: Whether to also log to stderr.

    Returns:
        The configured logger instance.
    """
    logger = logging.getLogger(LOGGER_NAME)

    log_level = getattr(logging, log_level_str.upper(), logging.INFO)
    logger.setLevel(log_level)

    # Reconfiguring must not duplicate output.
    if logger.hasHandlers():
        logger.handlers.clear()

    logger.propagate = False

    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(name)s - %(message)s')

    if log_file_path:
        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path, encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if log_to_console:
        tqdm_handler = TqdmLoggingHandler()
        tqdm_handler.setFormatter(formatter)
        logger.addHandler(tqdm_handler)

    return logger
