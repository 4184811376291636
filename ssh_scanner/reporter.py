"""
Модуль для учета результатов и вывода отчета
"""

import logging
import sys
import threading
from typing import Dict, Optional, TextIO

from colorama import Fore, Style

from .config import ProbeResult, ScanSummary, ScanTally
from .exceptions import ResourceUnavailable

logger = logging.getLogger(__name__)


class ResultSink:
    """
    Учет результатов сканирования

    Ведет счетчики и, если задан файл, дописывает в него успешные адреса
    по одному на строку в порядке обнаружения. Файл открывается один раз
    при входе в контекст и закрывается при выходе в любом случае.
    Ошибка записи не прерывает сканирование: она логируется, и дальнейшая
    запись в файл прекращается.
    """

    def __init__(self, tally: ScanTally, output_file: Optional[str] = None):
        self.tally = tally
        self.output_file = output_file
        self.write_failed = False
        self._handle: Optional[TextIO] = None
        self._lock = threading.Lock()

    def open(self):
        """
        Создание файла результатов (существующий перезаписывается)

        Raises:
            ResourceUnavailable: если файл не удалось создать
        """
        if not self.output_file:
            return

        try:
            self._handle = open(self.output_file, 'w', encoding='utf-8')
        except OSError as e:
            logger.error(f"Не удалось создать файл результатов {self.output_file}: {e}")
            raise ResourceUnavailable(self.output_file, e.strerror or str(e)) from e

        logger.info(f"Успешные адреса будут сохранены в {self.output_file}")

    def close(self):
        with self._lock:
            self._close_handle()

    def _close_handle(self):
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            handle.close()
        except OSError as e:
            self.write_failed = True
            logger.error(f"Ошибка при закрытии файла результатов {self.output_file}: {e}")

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def record(self, result: ProbeResult):
        """Учесть результат одного адреса"""
        self.tally.record(result)

        if not result.succeeded:
            return

        with self._lock:
            if self._handle is None:
                return
            try:
                self._handle.write(result.address + "\n")
                self._handle.flush()
            except OSError as e:
                self.write_failed = True
                logger.error(f"Ошибка записи в файл результатов {self.output_file}: {e}. "
                             f"Запись в файл прекращена")
                self._close_handle()

    def summarize(self) -> ScanSummary:
        """Итоговая сводка: прошедшее время и скорость"""
        return self.tally.summarize()


class ConsoleReporter:
    """Вывод хода сканирования в консоль"""

    CLEAR_LINE = "\r\033[K"

    def __init__(self, stream: Optional[TextIO] = None, use_color: bool = True):
        self.stream = stream if stream is not None else sys.stdout
        self.use_color = use_color
        self._lock = threading.Lock()

    def _color(self, text, color: str) -> str:
        if not self.use_color:
            return str(text)
        return f"{color}{text}{Style.RESET_ALL}"

    def _write(self, text: str):
        self.stream.write(text)
        self.stream.flush()

    def _progress_line(self, snapshot: Dict[str, int]) -> str:
        total = snapshot["total"]
        current = snapshot["attempted"]
        percent = (current / total * 100) if total > 0 else 0.0
        found = self._color(snapshot["succeeded"], Fore.GREEN)
        return f"\rПрогресс: {current}/{total} ({percent:.1f}%) | Найдено: {found}"

    def start(self, target: str, total: int, concurrency: int, port: int):
        """Баннер начала сканирования"""
        line = (f"Сканирование {target} ({total} IP), потоков: {concurrency}, "
                f"порт {port}...")
        with self._lock:
            self._write(self._color(line, Fore.CYAN) + "\n")

    def progress(self, snapshot: Dict[str, int]):
        """Обновить строку прогресса"""
        with self._lock:
            self._write(self._progress_line(snapshot))

    def found(self, address: str, snapshot: Dict[str, int]):
        """Сообщить об успешном адресе, не ломая строку прогресса"""
        with self._lock:
            self._write(self.CLEAR_LINE)
            self._write(self._color(f"[+] {address}", Fore.GREEN) + "\n")
            self._write(self._progress_line(snapshot))

    def finish(self, summary: ScanSummary):
        """Итоговый блок"""
        lines = [
            "-" * 20,
            f"Сканирование завершено за {self._color(f'{summary.elapsed:.3f} сек', Fore.CYAN)}",
            f"Скорость: {self._color(f'{summary.rate:.2f} IP/сек', Fore.CYAN)}",
            f"Результаты: {self._color(f'{summary.succeeded} успешно', Fore.GREEN)}, "
            f"{self._color(f'{summary.failed} неудачно', Fore.RED)}",
        ]

        if summary.failures:
            details = ", ".join(f"{status}: {count}"
                                for status, count in sorted(summary.failures.items()))
            lines.append(f"Ошибки по типам: {details}")

        with self._lock:
            self._write(self.CLEAR_LINE)
            self._write("\n".join(lines) + "\n")

    def error(self, message: str):
        """Сообщение о фатальной ошибке"""
        with self._lock:
            self._write(self._color(message, Fore.RED) + "\n")
