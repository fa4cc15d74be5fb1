"""Logging utilities for the package migration tool."""

import re
import sys
from pathlib import Path
from typing import Iterable, Optional

from loguru import logger

_CREDS_PATTERN = re.compile(r'(--(?:src|dest)-creds\s+\S+?:)\S+')


def setup_logging(
    level: str = 'INFO',
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
) -> None:
    """Setup logging configuration using loguru.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        log_format: Optional custom log format
    """
    logger.remove()

    if log_format is None:
        log_format = (
            '<green>{time:YYYY-MM-DD HH:mm:ss}</green> | '
            '<level>{level: <8}</level> | '
            '<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | '
            '<level>{message}</level>'
        )

    logger.add(
        sys.stderr,
        format=log_format,
        level=level,
        colorize=True,
        backtrace=True,
        diagnose=False,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # File format (no colors)
        file_format = (
            '{time:YYYY-MM-DD HH:mm:ss} | '
            '{level: <8} | '
            '{name}:{function}:{line} | '
            '{message}'
        )

        logger.add(
            log_file,
            format=file_format,
            level=level,
            rotation='10 MB',
            retention='30 days',
            compression='gz',
            backtrace=True,
            diagnose=False,
        )

    logger.debug(f'Logging initialized with level: {level}')
    if log_file:
        logger.info(f'Log file: {log_file}')


def redact_command(command: Iterable[str], secrets: Iterable[str] = ()) -> str:
    """Render a command line for logging with credentials masked.

    Args:
        command: Command and arguments
        secrets: Literal values to mask wherever they appear

    Returns:
        Printable command string
    """
    rendered = ' '.join(str(part) for part in command)
    for secret in secrets:
        if secret:
            rendered = rendered.replace(secret, '***')
    return _CREDS_PATTERN.sub(r'\1***', rendered)
