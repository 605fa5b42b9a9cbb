"""
Logging Setup Module
Configures file logging, plus Rich console output for the CLI.
"""

import logging
import os

from rich.logging import RichHandler


LOG_FILENAME = "bucketwatch.log"


def setup_logging(log_level: str, log_dir: str = "~/.bucketwatch", console: bool = False) -> str:
    """
    Configure the root logger.

    Args:
        log_level: Level name, e.g. "INFO".
        log_dir: Directory for the log file.
        console: Also log to stderr through Rich. The TUI leaves this off
            because the terminal belongs to Textual.

    Returns:
        Path of the log file.
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    log_dir = os.path.expanduser(log_dir)
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, LOG_FILENAME)

    file_handler = logging.FileHandler(log_path, mode="a")
    file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s - %(message)s"))
    handlers: list[logging.Handler] = [file_handler]

    if console:
        handlers.append(RichHandler(show_path=False, markup=False))

    logging.basicConfig(level=numeric_level, handlers=handlers, force=True)

    # boto's own debug output drowns everything else
    for noisy in ("botocore", "boto3", "urllib3", "httpx"):
        logging.getLogger(noisy).setLevel(max(numeric_level, logging.WARNING))

    return log_path
