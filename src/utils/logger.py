import os
import sys

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - "
    "<level>{message}</level>"
)


def setup_logger(*, json_logs: bool = False, level: str = "INFO") -> None:
    """Configure loguru for CLI runs.

    Logs go to stderr so that stdout carries only the report (or its JSON).
    LOG_LEVEL overrides the console level; LOG_DIR, when set, adds a DEBUG
    file sink with every provider failure the console level hides.
    """
    console_level = os.getenv("LOG_LEVEL", level).upper()
    logger.remove()
    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=console_level,
        colorize=not json_logs,
        serialize=json_logs,
    )

    log_dir = os.getenv("LOG_DIR")
    if log_dir:
        logger.add(
            os.path.join(log_dir, "risk_{time:YYYY-MM-DD}.log"),
            rotation="20 MB",
            retention="3 days",
            compression="gz",
            level="DEBUG",
            serialize=json_logs,
            enqueue=True,
        )
