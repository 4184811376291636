"""
Точка входа для SSH сканера диапазонов
"""

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

from .config import ConfigLoader, Credentials, ScanConfig
from .exceptions import ScannerError
from .reporter import ConsoleReporter
from .scanner import scan_target
from .utils import init_colors, parse_duration, setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Парсер аргументов командной строки"""
    parser = argparse.ArgumentParser(
        prog='ssh-scanner',
        usage='%(prog)s [options] <cidr> [user] [password]',
        description='Проверка SSH входа с одной парой учетных данных по диапазону адресов',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Примеры использования:
  ssh-scanner 192.168.1.0/24
  ssh-scanner -u admin -p password -w 200 192.168.1.0/24
  ssh-scanner 3 root 123456  (то же, что: -u root -p 123456 192.168.3.0/24)
        """
    )

    parser.add_argument('target', help='Цель: CIDR, IP адрес или номер подсети 192.168.N.0/24')
    parser.add_argument('credentials', nargs='*', metavar='user password',
                        help='Учетные данные в старом формате (имя и пароль)')

    parser.add_argument('--user', '-u', help='Имя пользователя SSH (по умолчанию: test)')
    parser.add_argument('--password', '-p', help='Пароль SSH (по умолчанию: 123456)')
    parser.add_argument('--workers', '-w', type=int,
                        help='Количество одновременных проверок (по умолчанию: 100)')
    parser.add_argument('--timeout', '-t',
                        help='Таймаут проверки: 3, 3s, 500ms (по умолчанию: 3s)')
    parser.add_argument('--port', '-P', type=int, help='SSH порт (по умолчанию: 22)')
    parser.add_argument('--output', '-o', help='Файл для успешных адресов')
    parser.add_argument('--config', '-c', help='Файл конфигурации (YAML/JSON)')
    parser.add_argument('--log-file', help='Файл журнала')
    parser.add_argument('--no-progress', action='store_true', help='Не показывать строку прогресса')
    parser.add_argument('--no-color', action='store_true', help='Вывод без цвета')
    parser.add_argument('--verbose', '-v', action='store_true', help='Подробный вывод (DEBUG уровень)')

    return parser


def collect_settings(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Сведение настроек из файла конфигурации, старых позиционных аргументов и флагов

    Флаги имеют наивысший приоритет.
    """
    settings = ConfigLoader.load(args.config)

    if args.credentials:
        settings['username'], settings['password'] = args.credentials

    overrides = {
        'username': args.user,
        'password': args.password,
        'concurrency': args.workers,
        'timeout': args.timeout,
        'port': args.port,
        'output_file': args.output,
        'log_file': args.log_file,
    }
    for key, value in overrides.items():
        if value is not None:
            settings[key] = value

    if args.no_progress:
        settings['show_progress'] = False
    if args.verbose:
        settings['log_level'] = 'DEBUG'

    settings['timeout'] = parse_duration(settings['timeout'])
    return settings


def main(argv: Optional[List[str]] = None) -> int:
    """Основная функция"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if len(args.credentials) not in (0, 2):
        parser.print_usage(sys.stderr)
        print(f"{parser.prog}: ожидается <cidr> или <cidr> <user> <password>", file=sys.stderr)
        return 1

    init_colors(not args.no_color)
    reporter = ConsoleReporter(use_color=not args.no_color)

    try:
        settings = collect_settings(args)
        setup_logging(settings['log_level'], settings['log_file'])
        config = ScanConfig.from_dict(settings)
        credentials = Credentials.from_dict(settings)
    except (ValueError, OSError) as e:
        reporter.error(f"Ошибка конфигурации: {e}")
        return 1

    logger.debug(f"Параметры сканирования: {config}, {credentials}")

    try:
        asyncio.run(scan_target(args.target, config, credentials, reporter))
    except ScannerError as e:
        reporter.error(str(e))
        return 1
    except KeyboardInterrupt:
        print("\n\nСканирование прервано пользователем")
        return 130

    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
