"""
Асинхронный SSH сканер диапазонов адресов
"""

__version__ = "1.0.0"
__author__ = "IP Scanner Team"

from .config import Credentials, ProbeResult, ProbeStatus, ScanConfig, ScanSummary, ScanTally
from .exceptions import InvalidInput, ResourceUnavailable, ScannerError
from .ip_parser import AddressRange, iter_addresses, parse_range
from .prober import SSHProber
from .reporter import ConsoleReporter, ResultSink
from .scanner import AsyncSSHScanner, scan_target
