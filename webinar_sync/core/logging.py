"""
@file: webinar_sync/core/logging.py
@description: Настройка системы логирования с удобочитаемым форматом и ротацией
@dependencies: logging, json
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from .settings import settings


NOISY_LOGGERS = {
    "sqlalchemy": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "celery": logging.WARNING,
    "celery.worker": logging.INFO,
    "celery.task": logging.INFO,
    "uvicorn": logging.WARNING,
    "uvicorn.access": logging.WARNING,
    "fastapi": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "redis": logging.WARNING,
    "asyncio": logging.WARNING,
}


class HumanReadableFormatter(logging.Formatter):
    """Форматировщик для удобочитаемых логов"""

    def format(self, record: logging.LogRecord) -> str:
        """Форматирует запись в удобочитаемом формате"""
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S')
        level_emoji = self._get_level_emoji(record.levelno)
        level_name = record.levelname.ljust(8)

        message = record.getMessage()

        extra_info = []

        if hasattr(record, "user_id"):
            extra_info.append(f"user={record.user_id}")

        if hasattr(record, "task_id"):
            extra_info.append(f"task={record.task_id}")

        if hasattr(record, "request_id"):
            extra_info.append(f"req={record.request_id}")

        if hasattr(record, "action"):
            extra_info.append(f"action={record.action}")

        if record.name != "root" and record.name != "__main__":
            extra_info.append(f"module={record.name}")

        result = f"{timestamp} {level_emoji} {level_name} {message}"

        if extra_info:
            result += f" | {' | '.join(extra_info)}"

        if record.exc_info:
            result += f"\n{self.formatException(record.exc_info)}"

        return result

    def _get_level_emoji(self, levelno: int) -> str:
        """Возвращает эмодзи для уровня логирования"""
        if levelno >= logging.CRITICAL:
            return "🚨"
        elif levelno >= logging.ERROR:
            return "❌"
        elif levelno >= logging.WARNING:
            return "⚠️"
        elif levelno >= logging.INFO:
            return "ℹ️"
        else:
            return "🔍"


class JSONFormatter(logging.Formatter):
    """Форматировщик для JSON логов"""

    def format(self, record: logging.LogRecord) -> str:
        """Форматирует запись в JSON"""
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_data"):
            log_entry["extra"] = record.extra_data

        for field in ("user_id", "request_id", "task_id", "action"):
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_logging() -> None:
    """Настройка системы логирования"""

    log_path = Path(settings.logging.file_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(getattr(logging, settings.logging.level.upper(), logging.INFO))
    logger.handlers.clear()

    if settings.logging.format.lower() == "json":
        formatter = JSONFormatter()
    else:
        formatter = HumanReadableFormatter()

    # Handler для файла с ротацией
    file_handler = logging.handlers.RotatingFileHandler(
        filename=settings.logging.file_path,
        maxBytes=settings.logging.max_bytes,
        backupCount=settings.logging.backup_count,
        encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    # Handler для консоли (только в режиме разработки)
    if settings.api.debug:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    for logger_name, level in NOISY_LOGGERS.items():
        logging.getLogger(logger_name).setLevel(level)

    logger.info("Logging system initialized", extra={
        "extra_data": {
            "log_level": settings.logging.level,
            "log_file": settings.logging.file_path,
            "format": settings.logging.format
        }
    })


def get_logger(name: str) -> logging.Logger:
    """Получить логгер с настроенным именем"""
    return logging.getLogger(name)


class LoggerMixin:
    """Миксин для добавления логгера к классам"""

    @property
    def logger(self) -> logging.Logger:
        """Логгер с именем класса"""
        return get_logger(self.__class__.__name__)
