"""
Проверка SSH подключения с учетными данными
"""

import asyncio
import logging
import socket
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import paramiko

from .config import Credentials, ProbeResult, ProbeStatus, ScanConfig

logger = logging.getLogger(__name__)


class SSHProber:
    """Одна попытка SSH входа на адрес, без повторов"""

    def __init__(self, credentials: Credentials, port: int = 22, timeout: float = 3.0,
                 max_workers: int = 100):
        self.credentials = credentials
        self.port = port
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers,
                                            thread_name_prefix="ssh-probe")

    @classmethod
    def from_config(cls, config: ScanConfig, credentials: Credentials) -> "SSHProber":
        return cls(credentials, port=config.port, timeout=config.timeout,
                   max_workers=config.concurrency)

    def check(self, address: str) -> ProbeResult:
        """
        Синхронная попытка подключения

        Args:
            address: IP адрес

        Returns:
            Результат с классификацией ошибки
        """
        logger.debug(f"Попытка SSH подключения к {address}:{self.port}")

        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        try:
            client.connect(
                hostname=address,
                port=self.port,
                username=self.credentials.username,
                password=self.credentials.password,
                timeout=self.timeout,
                banner_timeout=self.timeout,
                auth_timeout=self.timeout,
                look_for_keys=False,
                allow_agent=False,
            )
            logger.debug(f"SSH вход на {address} успешен")
            return ProbeResult(address, ProbeStatus.SUCCESS)

        except paramiko.AuthenticationException:
            return self._failure(address, ProbeStatus.AUTH_REJECTED, "ошибка аутентификации")

        except socket.timeout:
            return self._failure(address, ProbeStatus.TIMEOUT, "таймаут подключения")

        except paramiko.SSHException as e:
            return self._failure(address, ProbeStatus.OTHER, f"SSH ошибка: {e}")

        except socket.error as e:
            return self._failure(address, ProbeStatus.UNREACHABLE, f"сетевая ошибка: {e}")

        except Exception as e:
            return self._failure(address, ProbeStatus.OTHER, f"неизвестная ошибка: {e}")

        finally:
            client.close()

    async def probe(self, address: str) -> ProbeResult:
        """
        Асинхронная обертка над check() в пуле потоков

        Поток нельзя прервать, поэтому при отмене корутина дожидается конца
        попытки (его ограничивают таймауты paramiko) и только потом отменяется.
        """
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(self._executor, self.check, address)
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            if not future.done():
                await asyncio.wait([future])
            raise

    def close(self):
        """Освобождение пула потоков"""
        self._executor.shutdown(wait=False)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @staticmethod
    def _failure(address: str, status: ProbeStatus, message: Optional[str]) -> ProbeResult:
        logger.debug(f"{address}: {message}")
        return ProbeResult(address, status, error=message)
