"""
Исключения сканера
"""


class ScannerError(Exception):
    """Базовое исключение сканера"""


class InvalidInput(ScannerError, ValueError):
    """Цель сканирования не распознана ни как число, ни как IP, ни как CIDR"""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Некорректный CIDR или IP: {value!r}")


class ResourceUnavailable(ScannerError, OSError):
    """Не удалось открыть файл для сохранения результатов"""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        message = f"Не удалось создать файл результатов {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)

    def __str__(self):
        return self.args[0]
