import logging
import os
from logging.config import dictConfig

# 日誌等級由環境變數 LOG_LEVEL 控制，預設 INFO
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def setup_logging(level: str | None = None) -> None:
    """
    設定整個應用程式的 logging (只需在啟動時呼叫一次)。

    - 所有模組用 logging.getLogger(__name__) 取得自己的 logger
    - uvicorn 的 logger 也會冒泡到 root，格式統一
    """
    level = (level or LOG_LEVEL).upper()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,  # 保留 uvicorn 自己的 logger
            "formatters": {
                "plain": {
                    "format": "%(asctime)s %(levelname)-5s [pid:%(process)d] %(name)s: %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                },
            },
            "handlers": {
                "stream": {
                    "class": "logging.StreamHandler",
                    "level": level,
                    "formatter": "plain",
                }
            },
            "root": {
                "level": level,
                "handlers": ["stream"],
            },
            "loggers": {
                "uvicorn": {"level": "INFO", "handlers": [], "propagate": True},
                "uvicorn.error": {"level": "INFO", "handlers": [], "propagate": True},
                "uvicorn.access": {"level": "INFO", "handlers": [], "propagate": True},
                # pymongo 在 DEBUG 等級非常吵
                "pymongo": {"level": "WARNING", "handlers": [], "propagate": True},
            },
        }
    )

    logging.getLogger(__name__).debug("Logging configured (level=%s)", level)
