"""
Модуль для разбора цели сканирования и перебора адресов диапазона
"""

import ipaddress
import logging
import re
from dataclasses import dataclass
from typing import Iterator, Union

from .exceptions import InvalidInput

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

# Обратная совместимость: "3" -> "192.168.3.0/24"
SHORTHAND_TEMPLATE = "192.168.{}.0/24"
_SHORTHAND = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class AddressRange:
    """
    Диапазон адресов: адрес-представитель и длина префикса маски.

    Адрес хранится в том виде, в каком его ввели (не обязательно адрес сети),
    ширина маски всегда совпадает с шириной адреса.
    """
    address: IPAddress
    prefixlen: int

    def __post_init__(self):
        if not 0 <= self.prefixlen <= self.address.max_prefixlen:
            raise ValueError(f"Некорректная длина префикса /{self.prefixlen} "
                             f"для IPv{self.address.version}")

    @property
    def width(self) -> int:
        """Ширина адреса в битах (32 или 128)"""
        return self.address.max_prefixlen

    @property
    def netmask(self) -> IPAddress:
        bits = self.width
        mask = ((1 << bits) - 1) ^ ((1 << (bits - self.prefixlen)) - 1)
        return type(self.address)(mask)

    @property
    def num_addresses(self) -> int:
        """Количество адресов, которые допускает маска"""
        return 1 << (self.width - self.prefixlen)

    def __str__(self):
        return f"{self.address}/{self.prefixlen}"


def parse_range(value: str) -> AddressRange:
    """
    Разбор цели сканирования

    Порядок разбора: целое число (сокращение для 192.168.N.0/24),
    затем CIDR, затем одиночный адрес.

    Args:
        value: Строка, введенная пользователем

    Returns:
        Диапазон адресов

    Raises:
        InvalidInput: если строку не удалось разобрать
    """
    text = value.strip()

    # Номер подсети не проверяется здесь, его отсеет разбор CIDR
    if _SHORTHAND.fullmatch(text):
        text = SHORTHAND_TEMPLATE.format(text)
        logger.debug(f"Сокращенная запись {value!r} развернута в {text}")

    if '/' in text:
        # Маска только в виде длины префикса, запись вида /255.255.255.0 не принимается
        prefix = text.rpartition('/')[2]
        if not _SHORTHAND.fullmatch(prefix):
            logger.debug(f"Некорректная длина префикса в {text!r}")
            raise InvalidInput(value)
        try:
            interface = ipaddress.ip_interface(text)
        except ValueError as e:
            logger.debug(f"Ошибка разбора CIDR {text!r}: {e}")
            raise InvalidInput(value) from e
        return AddressRange(interface.ip, interface.network.prefixlen)

    try:
        address = ipaddress.ip_address(text)
    except ValueError as e:
        logger.debug(f"Ошибка разбора адреса {text!r}: {e}")
        raise InvalidInput(value) from e
    return AddressRange(address, address.max_prefixlen)


def iter_addresses(address_range: AddressRange) -> Iterator[str]:
    """
    Ленивый перебор всех адресов диапазона по возрастанию

    Адреса сети и широковещательный не исключаются. Генератор одноразовый.

    Args:
        address_range: Диапазон адресов

    Yields:
        Адреса в строковом виде
    """
    address_type = type(address_range.address)
    mask = int(address_range.netmask)
    network = int(address_range.address) & mask
    limit = 1 << address_range.width

    current = network
    while current < limit and current & mask == network:
        yield str(address_type(current))
        current += 1
