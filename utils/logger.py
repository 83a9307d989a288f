# utils/logger.py
import os
import logging
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(
    logger_name: str,
    log_file: Optional[str] = None,
    level: int = logging.INFO,
    log_dir: Optional[str] = None
) -> logging.Logger:
    """
    Set up and return a logger with a console handler and, when a log
    directory is available, a file handler.

    Args:
        logger_name: Name of the logger (one per pipeline layer)
        log_file: Optional specific log filename (default: {logger_name}.log)
        level: Logging level (default: INFO)
        log_dir: Directory for log files (default: LOG_DIR env var, then "logs").
            An empty string disables the file handler.

    Returns:
        Configured logger instance
    """
    if log_dir is None:
        log_dir = os.environ.get("LOG_DIR", "logs")

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)

    # Modules are imported more than once in tests; don't stack handlers
    if logger.handlers:
        logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        if log_file is None:
            log_file = f"{logger_name.lower().replace(' ', '_')}.log"
        file_handler = logging.FileHandler(os.path.join(log_dir, log_file))
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        logger.debug(f"Log file is being saved to: {os.path.abspath(os.path.join(log_dir, log_file))}")

    return logger
