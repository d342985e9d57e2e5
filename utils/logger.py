# utils/logger.py
import logging
import os
import sys
from datetime import datetime
from pathlib import Path


class MillisecondFormatter(logging.Formatter):
    """Форматтер с миллисекундами (3 цифры)"""

    def formatTime(self, record, datefmt=None):
        s = datetime.fromtimestamp(record.created).strftime(datefmt or "%Y-%m-%d %H:%M:%S")
        return f"{s}.{int(record.msecs):03d}"


def _default_level() -> int:
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Создает логгер с выводом в консоль и в logs/logs.txt.
    Каталог логов можно переопределить через LOG_DIR.
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    level = level if level is not None else _default_level()
    logger.setLevel(level)

    formatter = MillisecondFormatter(
        fmt='%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s',
        datefmt='%d-%m-%y %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    project_root = Path(__file__).resolve().parent.parent
    logs_dir = Path(os.getenv("LOG_DIR", project_root / "logs"))
    logs_dir.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(logs_dir / "logs.txt", mode='a', encoding='utf-8')
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    logger.propagate = False

    return logger
