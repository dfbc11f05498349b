"""
Centralized logging setup for stegascan.
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from stegascan.config import LOG_FORMAT, LOG_LEVEL


def setup_logging(
    verbose: bool = False,
    log_dir: Optional[Union[str, Path]] = None,
    log_to_console: bool = True
) -> Optional[Path]:
    """
    Configure the root logger for a stegascan run.

    Args:
        verbose: Whether to enable DEBUG output
        log_dir: Directory for a timestamped log file. No file is written if None
        log_to_console: Whether to log to stderr

    Returns:
        Path of the log file, if one was created
    """
    level = logging.DEBUG if verbose else logging.getLevelName(LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handlers = []
    if log_to_console:
        handlers.append(logging.StreamHandler())

    log_file = None
    if log_dir is not None:
        log_dir_path = Path(log_dir)
        log_dir_path.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        log_file = log_dir_path / f"stegascan_{timestamp}.log"
        handlers.append(logging.FileHandler(log_file))

    # Clear any existing handlers to avoid duplicate logs
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers or [logging.NullHandler()])
    root_logger.setLevel(level)

    # Pillow logs every chunk it parses at DEBUG
    logging.getLogger("PIL").setLevel(logging.WARNING)

    if log_file:
        logging.getLogger("stegascan").info(f"Logging to file: {log_file}")
    return log_file
