import sys

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} - {message}"


def configure_logging(level: str = "INFO") -> None:
    """Replace loguru's default handler with a stderr sink at the given level."""
    logger.remove()
    log_level = level.upper() if level else "INFO"
    logger.add(sys.stderr, level=log_level, format=LOG_FORMAT)
    logger.info(f"Logger configured with level: {log_level}")
