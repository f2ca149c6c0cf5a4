import inspect
import logging
import sys

from loguru import logger


class InterceptHandler(logging.Handler):
    """把標準 logging（各模組、uvicorn、sqlalchemy）轉送到 loguru。"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # 往回找到真正呼叫 logging 的 frame，function / line 才會正確
        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        # {name} 用 stdlib logger 的名稱（例如 usermgmt.services.auth）
        logger.patch(lambda r: r.update(name=record.name)).opt(
            depth=depth, exception=record.exc_info
        ).log(level, record.getMessage())


def setup_logging(level: str = "INFO"):
    logger.remove()
    logger.add(sys.stdout, level=level,
               backtrace=True, diagnose=False,
               format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level}</level> | {name} | {message}")
    logging.basicConfig(handlers=[InterceptHandler()], level=level, force=True)
    return logger
