"""
Utility functions for logging and JSON file I/O.
"""

import logging
import os
import json
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Optional


def setup_logger(
    name: str,
    log_dir: str,
    debug: bool = True,
    console_output: bool = True,
    console_level: Optional[int] = None
) -> logging.Logger:
    """
    Set up a logger with both file and console handlers.

    Args:
        name: Logger name
        log_dir: Directory to save log files
        debug: Enable debug mode (verbose logging)
        console_output: Whether to print to console
        console_level: Log level for console handler (defaults to DEBUG in debug mode, INFO otherwise)

    Returns:
        Configured logger instance
    """
    Path(log_dir).mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    # Clear existing handlers
    logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    log_file = os.path.join(log_dir, f'{name}_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log')
    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler()
        if console_level is not None:
            console_handler.setLevel(console_level)
        else:
            console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def save_json(
    filepath: str,
    data: Any,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Save data to a JSON file.

    The file is written to a temporary sibling first and moved into place,
    so a reader sees either the old content or the new content.

    Args:
        filepath: Path to save JSON file
        data: JSON-serializable object to write
        logger: Logger instance for logging

    Raises:
        IOError: If file writing fails
    """
    target = Path(filepath)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=f'.{target.name}.', suffix='.tmp', dir=str(target.parent))
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as jsonfile:
                json.dump(data, jsonfile, indent=2, ensure_ascii=False)
            os.replace(tmp_path, target)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        if logger:
            logger.debug(f"Saved JSON to {filepath}")
    except (IOError, OSError, TypeError) as e:
        raise IOError(f"Failed to save JSON to {filepath}: {e}")


def load_json(
    filepath: str,
    logger: Optional[logging.Logger] = None
) -> Any:
    """
    Load data from a JSON file.

    Args:
        filepath: Path to JSON file
        logger: Logger instance for logging

    Returns:
        Object loaded from JSON

    Raises:
        IOError: If file reading or decoding fails
    """
    try:
        with open(filepath, 'r', encoding='utf-8') as jsonfile:
            data = json.load(jsonfile)
        if logger:
            logger.debug(f"Loaded JSON from {filepath}")
        return data
    except (IOError, ValueError) as e:
        raise IOError(f"Failed to load JSON from {filepath}: {e}")
