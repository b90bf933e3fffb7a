#!/usr/bin/env python3
"""
Logging utilities for r2bridge
"""

import logging
import sys
from pathlib import Path


def setup_logger(
    name: str = "r2bridge", level: int = logging.INFO, log_to_file: bool = True
) -> logging.Logger:
    """Setup logger with console and file handlers"""

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    # Console handler, stderr so command output on stdout stays clean
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)

    if not log_to_file:
        console_handler.setFormatter(logging.Formatter("%(levelname)s - %(message)s"))
        logger.addHandler(console_handler)
        return logger

    try:
        log_dir = Path.home() / ".r2bridge" / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_dir / "r2bridge.log")
        file_handler.setLevel(logging.DEBUG)

        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

        console_handler.setFormatter(formatter)
        file_handler.setFormatter(formatter)

        logger.addHandler(console_handler)
        logger.addHandler(file_handler)

    except OSError:
        # Fallback to console only
        formatter = logging.Formatter("%(levelname)s - %(message)s")
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def get_logger(name: str = "r2bridge") -> logging.Logger:
    """Get logger instance"""
    return logging.getLogger(name)


def configure_logging_levels(verbose: bool, quiet: bool) -> None:
    """Configure logging levels based on verbosity settings."""
    if quiet:
        logging.getLogger("r2bridge").setLevel(logging.ERROR)
        return

    level = logging.DEBUG if verbose else logging.WARNING
    logging.getLogger("r2bridge").setLevel(level)
    logging.getLogger("r2bridge.transports").setLevel(level)
    logging.getLogger("r2bridge.core").setLevel(level)
