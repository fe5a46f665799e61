import logging
import sys

from loguru import logger

_TEXT_FORMAT = (
    '<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | '
    '<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level> {extra}'
)


class _InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def configure_logging(level: str, json_logs: bool = False) -> None:
    logger.remove()
    if json_logs:
        logger.add(sys.stdout, level=level, serialize=True, enqueue=True, diagnose=False)
    else:
        logger.add(
            sys.stdout,
            level=level,
            format=_TEXT_FORMAT,
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )
    logging.root.handlers = [_InterceptHandler()]
    logging.root.setLevel(level)
    for name in ('uvicorn', 'uvicorn.access', 'uvicorn.error', 'sqlalchemy.engine'):
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True
