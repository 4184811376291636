import asyncio
import io

import pytest

from ssh_scanner.config import ProbeResult, ProbeStatus, ScanConfig
from ssh_scanner.reporter import ConsoleReporter


class FakeProber:
    """Проверка без сети: считает одновременно активные вызовы"""

    def __init__(self, succeed=(), hang=(), fail_with=(), delay=0.0):
        self.succeed = set(succeed)
        self.hang = set(hang)
        self.fail_with = set(fail_with)
        self.delay = delay
        self.calls = []
        self.active = 0
        self.max_active = 0

    async def probe(self, address):
        self.calls.append(address)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if address in self.hang:
                await asyncio.sleep(3600)
            await asyncio.sleep(self.delay)
            if address in self.fail_with:
                raise RuntimeError(f"unexpected failure for {address}")
            if address in self.succeed:
                return ProbeResult(address, ProbeStatus.SUCCESS)
            return ProbeResult(address, ProbeStatus.AUTH_REJECTED, error="rejected")
        finally:
            self.active -= 1


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def reporter(output):
    return ConsoleReporter(stream=output, use_color=False)


@pytest.fixture
def make_config():
    def _make(**kwargs):
        params = {"concurrency": 10, "timeout": 1.0, "show_progress": False}
        params.update(kwargs)
        return ScanConfig(**params)
    return _make


class FailingHandle:
    """Файл на переполненном диске: любая запись и закрытие падают"""

    def __init__(self):
        self.writes = 0

    def _fail(self, *args):
        raise OSError(28, "No space left on device")

    def write(self, text):
        self.writes += 1
        self._fail()

    flush = _fail
    close = _fail
