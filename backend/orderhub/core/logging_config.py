"""
日志配置

控制台彩色输出；可选写入按日期分割的服务日志和错误日志。
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 只保留这些库的警告及以上级别
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "apscheduler")


class ColoredFormatter(logging.Formatter):
    """控制台用：级别名着色"""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record):
        # 复制一份，文件处理器拿到的仍是原始级别名
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def file_handlers(log_dir: str) -> List[logging.Handler]:
    """orderhub_<日期>.log 记录 INFO 及以上，orderhub_error_<日期>.log 只记录错误"""
    path = Path(log_dir)
    path.mkdir(parents=True, exist_ok=True)
    today = datetime.now().strftime("%Y-%m-%d")
    plain = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    handlers = []
    for filename, level in ((f"orderhub_{today}.log", logging.INFO), (f"orderhub_error_{today}.log", logging.ERROR)):
        handler = logging.FileHandler(path / filename, encoding="utf-8")
        handler.setLevel(level)
        handler.setFormatter(plain)
        handlers.append(handler)
    return handlers


def setup_logging(log_level: str = "INFO", log_dir: str = "logs", log_to_file: bool = True) -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_to_file:
        for handler in file_handlers(log_dir):
            root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.info("📋 日志系统初始化完成")
