"""
Logging configuration for the gap scanner.

Sinks:
- stderr:       run progress at settings.log_level
- log_file:     same records, rotated at 10 MB
- symbol trail: per-symbol DEBUG lines from the fetcher and engine (skips,
                no-data quotes, matches). A full scan emits one or more per
                symbol, so they go to their own daily file and never reach
                stderr or the main log.
"""

import sys
from pathlib import Path
from loguru import logger

from gapscanner.config import Settings

# Modules whose DEBUG records are per-symbol trail lines
SYMBOL_TRAIL_MODULES = frozenset({"gapscanner.gap_scanner", "gapscanner.quote_fetcher"})

DEBUG_LEVEL_NO = logger.level("DEBUG").no


def is_symbol_trail(record) -> bool:
    """True for a per-symbol DEBUG record from the scan pipeline."""
    return record["level"].no <= DEBUG_LEVEL_NO and record["name"] in SYMBOL_TRAIL_MODULES


def _not_symbol_trail(record) -> bool:
    return not is_symbol_trail(record)


def setup_logging(settings: Settings) -> None:
    """
    Configure logging for the application.

    Args:
        settings: Application settings with log configuration
    """
    logger.remove()

    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
               "<level>{level: <8}</level> | "
               "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
               "<level>{message}</level>",
        level=settings.log_level,
        filter=_not_symbol_trail,
        colorize=True
    )

    Path(settings.log_file).parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        settings.log_file,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}",
        level=settings.log_level,
        filter=_not_symbol_trail,
        rotation="10 MB",
        retention="7 days",
        compression="gz"
    )

    if settings.symbol_log_file:
        Path(settings.symbol_log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            settings.symbol_log_file,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {message}",
            level="DEBUG",
            filter=is_symbol_trail,
            rotation="00:00",
            retention="3 days",
        )

    logger.info(
        f"Logging configured: level={settings.log_level}, file={settings.log_file}, "
        f"symbol trail={settings.symbol_log_file or 'off'}"
    )
