"""
Модуль асинхронного сканера
"""

import asyncio
import logging
from typing import Iterable, Optional, Set

from .config import Credentials, ProbeResult, ProbeStatus, ScanConfig, ScanSummary, ScanTally
from .ip_parser import iter_addresses, parse_range
from .prober import SSHProber
from .reporter import ConsoleReporter, ResultSink

logger = logging.getLogger(__name__)

_DONE = object()


class ProgressTracker:
    """Периодический вывод снимка счетчиков, не мешающий диспетчеру"""

    def __init__(self, tally: ScanTally, reporter: ConsoleReporter,
                 interval: float = 0.5, show_progress: bool = True):
        self.tally = tally
        self.reporter = reporter
        self.interval = interval
        self.show_progress = show_progress
        self._stopped = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    def start(self):
        if self.show_progress:
            self._task = asyncio.create_task(self._run())

    async def _run(self):
        while not self._stopped.is_set():
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                self.reporter.progress(self.tally.snapshot())

    async def stop(self):
        self._stopped.set()
        if self._task is not None:
            await self._task
            self._task = None


class AsyncSSHScanner:
    """
    Асинхронный сканер диапазона

    Берет адреса из перечислителя через ограниченную очередь, на каждый адрес
    занимает слот семафора и запускает проверку отдельной задачей. По истечении
    таймаута адрес сразу учитывается как TIMEOUT, а слот освобождается только
    после фактического завершения проверки. scan() возвращает сводку только
    после завершения всех запущенных задач.

    prober - любой объект с корутиной probe(address) -> ProbeResult.
    После отмены корутина должна завершиться только тогда, когда попытка
    подключения действительно закончена.
    """

    def __init__(self, config: ScanConfig, prober, reporter: Optional[ConsoleReporter] = None):
        self.config = config
        self.prober = prober
        self.reporter = reporter if reporter is not None else ConsoleReporter()

    async def scan(self, addresses: Iterable[str], total: int = 0) -> ScanSummary:
        """
        Сканирование всех адресов

        Args:
            addresses: Последовательность адресов (читается один раз)
            total: Ожидаемое количество адресов для строки прогресса

        Returns:
            Итоговая сводка

        Raises:
            ResourceUnavailable: если не удалось создать файл результатов
        """
        tally = ScanTally(total)

        with ResultSink(tally, self.config.output_file) as sink:
            semaphore = asyncio.Semaphore(self.config.concurrency)
            queue: asyncio.Queue = asyncio.Queue(maxsize=self.config.queue_size)
            tasks: Set[asyncio.Task] = set()

            logger.info(f"Начинаем сканирование {total} адресов, "
                        f"одновременных проверок: {self.config.concurrency}")

            progress = ProgressTracker(tally, self.reporter,
                                       interval=self.config.progress_interval,
                                       show_progress=self.config.show_progress)
            progress.start()
            feeder = asyncio.create_task(self._feed(addresses, queue))

            try:
                while True:
                    address = await queue.get()
                    if address is _DONE:
                        break

                    await semaphore.acquire()
                    task = asyncio.create_task(self._run_probe(address, semaphore, sink))
                    tasks.add(task)
                    task.add_done_callback(tasks.discard)

                # Ошибка перечислителя всплывает здесь
                await feeder

                if tasks:
                    await asyncio.gather(*tasks)
            finally:
                pending = [t for t in list(tasks) + [feeder] if not t.done()]
                for task in pending:
                    task.cancel()
                if pending:
                    await asyncio.gather(*pending, return_exceptions=True)
                await progress.stop()

            summary = sink.summarize()

        logger.info(f"Сканирование завершено за {summary.elapsed:.1f} секунд")
        logger.info(f"Результаты: {summary.succeeded} успешно, {summary.failed} неудачно")
        return summary

    async def _feed(self, addresses: Iterable[str], queue: asyncio.Queue):
        """Перенос адресов в очередь; при заполнении очереди ждет диспетчер"""
        try:
            for address in addresses:
                await queue.put(address)
        except Exception:
            await queue.put(_DONE)
            raise
        await queue.put(_DONE)

    async def _run_probe(self, address: str, semaphore: asyncio.Semaphore, sink: ResultSink):
        probe_task = None
        try:
            probe_task = asyncio.create_task(self.prober.probe(address))
            result = await self._probe(address, probe_task)
            sink.record(result)
            if result.succeeded:
                self.reporter.found(address, sink.tally.snapshot())

            # Результат уже учтен, но слот занят, пока проверка не завершилась
            if not probe_task.done():
                await asyncio.wait([probe_task])
        finally:
            if probe_task is not None and not probe_task.done():
                probe_task.cancel()
            semaphore.release()

    async def _probe(self, address: str, probe_task: asyncio.Task) -> ProbeResult:
        """Ожидание результата проверки с жестким ограничением по времени"""
        done, _ = await asyncio.wait([probe_task], timeout=self.config.timeout)

        if not done:
            probe_task.cancel()
            logger.debug(f"{address}: нет результата за {self.config.timeout} сек")
            return ProbeResult(address, ProbeStatus.TIMEOUT, error="таймаут проверки")

        try:
            return probe_task.result()
        except Exception as e:
            logger.debug(f"Ошибка при проверке {address}: {e}")
            return ProbeResult(address, ProbeStatus.OTHER, error=str(e))


async def scan_target(target: str, config: ScanConfig, credentials: Credentials,
                      reporter: Optional[ConsoleReporter] = None,
                      prober=None) -> ScanSummary:
    """
    Полный прогон: разбор цели, баннер, сканирование, итоговый блок

    Raises:
        InvalidInput: цель не распознана
        ResourceUnavailable: не удалось создать файл результатов
    """
    address_range = parse_range(target)
    total = address_range.num_addresses
    reporter = reporter if reporter is not None else ConsoleReporter()

    reporter.start(target, total, config.concurrency, config.port)

    own_prober = prober is None
    if own_prober:
        prober = SSHProber.from_config(config, credentials)

    try:
        scanner = AsyncSSHScanner(config, prober, reporter)
        summary = await scanner.scan(iter_addresses(address_range), total=total)
    finally:
        if own_prober:
            prober.close()

    reporter.finish(summary)
    return summary
