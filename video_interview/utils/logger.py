# video_interview/utils/logger.py

import sys
from pathlib import Path
from loguru import logger

LEVEL_ICONS = {
    "DEBUG": "🔧",
    "INFO": "ℹ️",
    "SUCCESS": "✅",
    "WARNING": "⚠️",
    "ERROR": "❌",
    "CRITICAL": "🔥",
}


def _console_format(record) -> str:
    # loguru fills the placeholders itself, so braces inside messages are safe
    icon = LEVEL_ICONS.get(record["level"].name, "📝")
    return (
        "<green>{time:HH:mm:ss}</green> | " + icon + " <level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>\n{exception}"
    )


def setup_logging(log_level: str = "INFO", base_dir: Path = Path("."), debug: bool = False) -> Path:
    """
    Configure loguru for the client: coloured console output, one session log
    per day and a separate error log with tracebacks. Returns the log folder.
    """
    logger.remove()

    log_dir = base_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    logger.add(
        sys.stderr,
        format=_console_format,
        level="DEBUG" if debug else log_level.upper(),
        colorize=True,
        backtrace=debug,
        diagnose=debug,
    )

    # Everything, including fragment/take bookkeeping at DEBUG
    logger.add(
        log_dir / "session_{time:YYYY-MM-DD}.log",
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}",
        level="DEBUG",
        rotation="00:00",
        retention="14 days",
        compression="zip",
        encoding="utf-8",
    )

    # Capture, upload and backend failures
    logger.add(
        log_dir / "errors.log",
        level="ERROR",
        rotation="5 MB",
        backtrace=True,
        diagnose=debug,
        encoding="utf-8",
    )

    logger.debug(f"Logging configured: level={log_level.upper()}, debug={debug}, dir={log_dir}")
    return log_dir
