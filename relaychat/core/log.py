import logging
import sys
from typing import Union

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[source]}</cyan> | {message}"
)
NOISY_LOGGERS = ("openai", "httpcore", "httpx", "urllib3", "langfuse", "sqlalchemy.engine")


class StdlibInterceptHandler(logging.Handler):
    """Forwards stdlib records (uvicorn, SQLAlchemy, openai, httpx) into loguru,
    tagged with the name of the logger that produced them."""

    @staticmethod
    def _level(record: logging.LogRecord) -> Union[str, int]:
        try:
            return logger.level(record.levelname).name
        except ValueError:
            return record.levelno

    @staticmethod
    def _depth() -> int:
        # Walk out of the logging module so loguru reports the real call site.
        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1
        return depth

    def emit(self, record: logging.LogRecord) -> None:
        logger.bind(source=record.name).opt(
            depth=self._depth(), exception=record.exc_info
        ).log(self._level(record), record.getMessage())


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(handlers=[StdlibInterceptHandler()], level=0, force=True)
    logger.configure(
        handlers=[{"sink": sys.stdout, "serialize": False, "level": level.upper(), "format": LOG_FORMAT}],
        extra={"source": "relaychat"},
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
