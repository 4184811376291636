"""
Вспомогательные утилиты
"""

import logging
import re
import sys
from typing import Optional

import colorama

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

_DURATION = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$", re.IGNORECASE)
_DURATION_UNITS = {
    None: 1.0,
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def setup_logging(log_level: str = "WARNING", log_file: Optional[str] = None):
    """
    Настройка логирования

    Консольный обработчик пишет в stderr, чтобы не ломать строку прогресса в stdout.

    Args:
        log_level: Уровень логирования
        log_file: Файл журнала (опционально)
    """
    level = getattr(logging, str(log_level).upper(), None)
    if not isinstance(level, int):
        raise ValueError(f"Неизвестный уровень логирования: {log_level}")

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        root_logger.addHandler(file_handler)

    # Отключаем логирование от других библиотек если не в DEBUG режиме
    if level > logging.DEBUG:
        logging.getLogger('paramiko').setLevel(logging.WARNING)
        logging.getLogger('asyncio').setLevel(logging.WARNING)


def parse_duration(value) -> float:
    """
    Разбор длительности: "3", "2.5", "500ms", "3s", "1m"

    Returns:
        Длительность в секундах
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = float(value)
    else:
        match = _DURATION.match(str(value))
        if not match:
            raise ValueError(f"Некорректная длительность: {value!r}")
        unit = match.group(2).lower() if match.group(2) else None
        seconds = float(match.group(1)) * _DURATION_UNITS[unit]

    if seconds <= 0:
        raise ValueError(f"Длительность должна быть положительной: {value!r}")
    return seconds


def init_colors(enabled: bool = True):
    """Подготовка терминала к цветному выводу (нужно на Windows)"""
    if enabled:
        colorama.init()
