"""
Модуль конфигурации и моделей данных
"""

import json
import logging
import threading
import time
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

logger = logging.getLogger(__name__)


class ProbeStatus(Enum):
    """Результат попытки SSH подключения"""
    SUCCESS = "success"
    UNREACHABLE = "unreachable"
    AUTH_REJECTED = "auth_rejected"
    TIMEOUT = "timeout"
    OTHER = "other"


@dataclass(frozen=True)
class Credentials:
    """Учетные данные для SSH (одна пара на весь запуск)"""
    username: str = "test"
    password: str = "123456"

    def __post_init__(self):
        if not self.username:
            raise ValueError("Имя пользователя не может быть пустым")

    def __repr__(self):
        return f"Credentials(username={self.username!r}, password='***')"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Credentials":
        """Создание из словаря (лишние ключи игнорируются)"""
        return cls(
            username=str(data.get("username", cls.username)),
            password=str(data.get("password", cls.password)),
        )


@dataclass(frozen=True)
class ScanConfig:
    """Параметры сканирования с валидацией"""

    concurrency: int = 100
    timeout: float = 3.0
    port: int = 22
    output_file: Optional[str] = None

    # Настройки вывода
    show_progress: bool = True
    progress_interval: float = 0.5

    def __post_init__(self):
        """Валидация значений после инициализации"""
        self._validate_values()

    def _validate_values(self):
        """Проверка корректности значений"""
        if isinstance(self.concurrency, bool) or not isinstance(self.concurrency, int):
            raise ValueError("concurrency должен быть целым числом")
        if self.concurrency <= 0:
            raise ValueError("concurrency должен быть положительным числом")
        if self.timeout <= 0:
            raise ValueError("timeout должен быть положительным числом")
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise ValueError("port должен быть целым числом")
        if not 1 <= self.port <= 65535:
            raise ValueError(f"Неверный порт: {self.port}. Допустимый диапазон: 1-65535")
        if self.progress_interval <= 0:
            raise ValueError("progress_interval должен быть положительным числом")

    @property
    def queue_size(self) -> int:
        """Размер буфера адресов перед диспетчером"""
        return self.concurrency * 2

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScanConfig":
        """Создание из словаря (лишние ключи игнорируются)"""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


@dataclass(frozen=True)
class ProbeResult:
    """Результат проверки одного адреса"""
    address: str
    status: ProbeStatus
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status is ProbeStatus.SUCCESS


@dataclass
class ScanSummary:
    """Итоговая сводка по сканированию"""
    total: int = 0
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    elapsed: float = 0.0
    failures: Dict[str, int] = field(default_factory=dict)

    @property
    def rate(self) -> float:
        """Скорость сканирования, адресов в секунду"""
        if self.elapsed <= 0:
            return 0.0
        return self.attempted / self.elapsed


class ScanTally:
    """Счетчики одного прогона, безопасные при конкурентном обновлении"""

    def __init__(self, total: int = 0):
        self.total = total
        self.start_time = time.monotonic()
        self._lock = threading.Lock()
        self._attempted = 0
        self._succeeded = 0
        self._failures: Dict[ProbeStatus, int] = {}

    def record(self, result: ProbeResult):
        """Учесть результат проверки одного адреса"""
        with self._lock:
            self._attempted += 1
            if result.succeeded:
                self._succeeded += 1
            else:
                self._failures[result.status] = self._failures.get(result.status, 0) + 1

    @property
    def attempted(self) -> int:
        with self._lock:
            return self._attempted

    @property
    def succeeded(self) -> int:
        with self._lock:
            return self._succeeded

    @property
    def failed(self) -> int:
        with self._lock:
            return self._attempted - self._succeeded

    def snapshot(self) -> Dict[str, int]:
        """Согласованный снимок счетчиков для отображения прогресса"""
        with self._lock:
            return {
                "total": self.total,
                "attempted": self._attempted,
                "succeeded": self._succeeded,
                "failed": self._attempted - self._succeeded,
            }

    def summarize(self) -> ScanSummary:
        """Сводка на текущий момент: время и скорость считаются от start_time"""
        elapsed = time.monotonic() - self.start_time
        with self._lock:
            return ScanSummary(
                total=self.total,
                attempted=self._attempted,
                succeeded=self._succeeded,
                failed=self._attempted - self._succeeded,
                elapsed=elapsed,
                failures={status.value: count for status, count in self._failures.items()},
            )


class ConfigLoader:
    """Загрузчик конфигурации"""

    CONFIG_FILES = [
        "ssh_scanner.yaml",
        "config/ssh_scanner.yaml",
        "ssh_scanner.json",
    ]

    DEFAULT_CONFIG = {
        "username": "test",
        "password": "123456",
        "concurrency": 100,
        "timeout": 3.0,
        "port": 22,
        "output_file": None,
        "show_progress": True,
        "progress_interval": 0.5,
        "log_level": "WARNING",
        "log_file": None,
    }

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Загрузка конфигурации

        Args:
            config_path: Путь к файлу конфигурации (опционально)

        Returns:
            Словарь настроек: значения по умолчанию, дополненные файлом
        """
        config_dict = cls.DEFAULT_CONFIG.copy()

        found_config = cls._find_config_file(config_path)

        if found_config:
            try:
                user_config = cls._load_config_file(found_config)
            except (OSError, yaml.YAMLError, ValueError) as e:
                logger.warning(f"Ошибка загрузки конфигурации {found_config}: {e}")
                logger.info("Используются значения по умолчанию")
            else:
                for key, value in user_config.items():
                    if key not in cls.DEFAULT_CONFIG:
                        logger.warning(f"Неизвестный параметр конфигурации: {key}")
                        continue
                    config_dict[key] = value
                logger.info(f"Загружена конфигурация из {found_config}")
        elif config_path:
            logger.warning(f"Файл конфигурации не найден: {config_path}")
        else:
            logger.debug("Конфигурационный файл не найден, используются значения по умолчанию")

        return config_dict

    @classmethod
    def _find_config_file(cls, config_path: Optional[str] = None) -> Optional[Path]:
        """Поиск файла конфигурации"""
        if config_path:
            path = Path(config_path)
            if path.exists():
                return path
            return None

        for config_file in cls.CONFIG_FILES:
            path = Path(config_file)
            if path.exists():
                return path

        return None

    @staticmethod
    def _load_config_file(filepath: Path) -> Dict[str, Any]:
        """Загрузка конфигурации из файла (YAML или JSON)"""
        with open(filepath, 'r', encoding='utf-8') as f:
            content = f.read()

        if filepath.suffix == ".json":
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError("ожидается словарь параметров")
        return data
