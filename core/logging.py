import sys

from loguru import logger

from core.config import get_settings

settings = get_settings()

logger.remove()
logger.add(sys.stderr, level=settings.log_level)
logger.add(
    "logs/roundtable-engine.log",
    level=settings.log_level,
    rotation="10 MB",
    retention="14 days",
    serialize=True,
)
logger.configure(extra={"environment": settings.environment})

__all__ = ["logger"]
