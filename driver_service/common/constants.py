# driver_service/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class TaxiType(str, Enum):
    """Категории такси."""
    SARI = "sari"
    TURKUAZ = "turkuaz"
    SIYAH = "siyah"

    @classmethod
    def values(cls) -> list[str]:
        """Список допустимых значений."""
        return [item.value for item in cls]

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Проверяет, входит ли значение в перечисление."""
        return value in cls.values()


class StorageBackend(str, Enum):
    """Бэкенды хранения водителей."""
    POSTGRES = "postgres"
    MEMORY = "memory"


# Поиск водителей поблизости
NEARBY_RADIUS_KM: float = 5.0
NEARBY_LIMIT: int = 50

# Пагинация
DEFAULT_PAGE_SIZE: int = 20
MAX_PAGE_SIZE: int = 100

# Средний радиус Земли в км (сферическая модель)
EARTH_RADIUS_KM: float = 6371.0
