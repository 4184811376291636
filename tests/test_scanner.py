import asyncio
import logging
import threading
import time

import pytest

from conftest import FailingHandle, FakeProber
from ssh_scanner.config import Credentials, ProbeResult, ProbeStatus, ScanConfig
from ssh_scanner.exceptions import InvalidInput, ResourceUnavailable
from ssh_scanner.ip_parser import iter_addresses, parse_range
from ssh_scanner.prober import SSHProber
from ssh_scanner.scanner import AsyncSSHScanner, scan_target


def addresses_of(target):
    return list(iter_addresses(parse_range(target)))


def run_scan(config, prober, reporter, target):
    address_range = parse_range(target)
    scanner = AsyncSSHScanner(config, prober, reporter)
    return asyncio.run(scanner.scan(iter_addresses(address_range),
                                    total=address_range.num_addresses))


@pytest.mark.parametrize("concurrency", [1, 3, 16, 1000])
def test_every_address_counted_exactly_once(concurrency, make_config, reporter):
    expected = addresses_of("10.0.0.0/28")
    prober = FakeProber(succeed={"10.0.0.3", "10.0.0.9"}, delay=0.001)

    summary = run_scan(make_config(concurrency=concurrency), prober, reporter, "10.0.0.0/28")

    assert summary.attempted == len(expected) == 16
    assert summary.succeeded + summary.failed == summary.attempted
    assert summary.succeeded == 2
    assert sorted(prober.calls) == sorted(expected)
    assert len(set(prober.calls)) == len(prober.calls)


@pytest.mark.parametrize("limit", [1, 4, 7])
def test_in_flight_checks_never_exceed_limit(limit, make_config, reporter):
    prober = FakeProber(delay=0.005)

    summary = run_scan(make_config(concurrency=limit), prober, reporter, "10.0.0.0/26")

    assert summary.attempted == 64
    assert prober.max_active == limit
    assert prober.active == 0


def test_hanging_check_recorded_as_timeout(make_config, reporter):
    prober = FakeProber(hang={"10.0.0.2"})

    summary = run_scan(make_config(timeout=0.05), prober, reporter, "10.0.0.0/30")

    assert summary.attempted == 4
    assert summary.failures == {"timeout": 1, "auth_rejected": 3}
    assert prober.active == 0


class SlowSSHProber(SSHProber):
    """Настоящий пул потоков, check() дольше таймаута сканера"""

    def __init__(self, delay, **kwargs):
        super().__init__(Credentials(), **kwargs)
        self.delay = delay
        self.checked = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def check(self, address):
        with self._lock:
            self.checked.append(address)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            time.sleep(self.delay)
            return ProbeResult(address, ProbeStatus.AUTH_REJECTED, error="rejected")
        finally:
            with self._lock:
                self.active -= 1


def test_slow_connect_in_thread_pool_is_attempted_for_every_address(reporter):
    config = ScanConfig(concurrency=1, timeout=0.1, show_progress=False)
    prober = SlowSSHProber(0.3, timeout=0.1, max_workers=1)

    try:
        summary = run_scan(config, prober, reporter, "10.0.0.0/30")
    finally:
        prober.close()

    assert sorted(prober.checked) == addresses_of("10.0.0.0/30")
    assert summary.attempted == 4
    assert summary.failures == {"timeout": 4}
    assert prober.max_active <= 1
    assert prober.active == 0


def test_output_write_error_does_not_abort_scan(tmp_path, make_config, reporter, monkeypatch, caplog):
    handle = FailingHandle()
    monkeypatch.setattr("ssh_scanner.reporter.open", lambda *args, **kwargs: handle, raising=False)
    prober = FakeProber(succeed={"10.0.0.1", "10.0.0.2"})
    config = make_config(output_file=str(tmp_path / "found.txt"))

    with caplog.at_level(logging.ERROR, logger="ssh_scanner.reporter"):
        summary = run_scan(config, prober, reporter, "10.0.0.0/30")

    assert summary.attempted == 4
    assert summary.succeeded == 2
    assert summary.failures == {"auth_rejected": 2}
    assert handle.writes == 1
    assert any(r.levelno == logging.ERROR for r in caplog.records)


def test_unexpected_check_error_is_not_fatal(make_config, reporter):
    prober = FakeProber(succeed={"10.0.0.1"}, fail_with={"10.0.0.2"})

    summary = run_scan(make_config(), prober, reporter, "10.0.0.0/30")

    assert summary.attempted == 4
    assert summary.succeeded == 1
    assert summary.failures[ProbeStatus.OTHER.value] == 1


@pytest.mark.parametrize("concurrency", [1, 50])
def test_output_file_holds_exactly_successful_addresses(concurrency, tmp_path, make_config, reporter):
    out = tmp_path / "found.txt"
    out.write_text("stale\n", encoding="utf-8")
    succeed = {"10.0.0.1", "10.0.0.17", "10.0.0.30"}
    prober = FakeProber(succeed=succeed, delay=0.001)

    summary = run_scan(make_config(concurrency=concurrency, output_file=str(out)),
                       prober, reporter, "10.0.0.0/27")

    lines = out.read_text(encoding="utf-8").splitlines()
    assert sorted(lines) == sorted(succeed)
    assert len(lines) == summary.succeeded == 3


def test_unopenable_output_aborts_before_any_check(tmp_path, make_config, reporter):
    prober = FakeProber()
    config = make_config(output_file=str(tmp_path / "missing" / "found.txt"))

    with pytest.raises(ResourceUnavailable) as excinfo:
        run_scan(config, prober, reporter, "10.0.0.0/30")

    assert excinfo.value.path == config.output_file
    assert prober.calls == []


def test_success_is_reported_immediately(make_config, reporter, output):
    prober = FakeProber(succeed={"10.0.0.2"})

    run_scan(make_config(), prober, reporter, "10.0.0.0/30")

    assert "[+] 10.0.0.2\n" in output.getvalue()
    assert "[+] 10.0.0.1" not in output.getvalue()


def test_progress_snapshots_are_printed_periodically(make_config, reporter, output):
    prober = FakeProber(delay=0.02)
    config = make_config(concurrency=1, show_progress=True, progress_interval=0.01)

    run_scan(config, prober, reporter, "10.0.0.0/29")

    assert "Прогресс: " in output.getvalue()
    assert "/8 (" in output.getvalue()


def test_enumerator_error_propagates(make_config, reporter):
    def broken():
        yield "10.0.0.1"
        yield "10.0.0.2"
        raise RuntimeError("enumeration failed")

    scanner = AsyncSSHScanner(make_config(), FakeProber(), reporter)

    with pytest.raises(RuntimeError, match="enumeration failed"):
        asyncio.run(scanner.scan(broken(), total=2))


def test_scan_target_prints_banner_and_summary(make_config, reporter, output):
    prober = FakeProber(succeed={"192.168.3.7"})

    summary = asyncio.run(scan_target("3", make_config(concurrency=64), None, reporter, prober=prober))

    text = output.getvalue()
    assert summary.attempted == 256
    assert summary.succeeded == 1
    assert "Сканирование 3 (256 IP), потоков: 64, порт 22..." in text
    assert "Результаты: 1 успешно, 255 неудачно" in text


def test_scan_target_rejects_invalid_target_before_banner(make_config, reporter, output):
    prober = FakeProber()

    with pytest.raises(InvalidInput):
        asyncio.run(scan_target("invalid", make_config(), None, reporter, prober=prober))

    assert output.getvalue() == ""
    assert prober.calls == []
