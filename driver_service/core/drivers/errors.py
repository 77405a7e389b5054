# driver_service/core/drivers/errors.py
"""
Ошибки домена водителей.

Каждый класс соответствует одной категории, по которой HTTP слой выбирает
код ответа. Сообщения не содержат текста низкоуровневых ошибок хранилища.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class FieldViolation:
    """Нарушение правила валидации для одного поля."""
    field: str
    rule: str
    message: str
    param: Any = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"field": self.field, "rule": self.rule, "message": self.message}
        if self.param is not None:
            data["param"] = self.param
        return data


class DriverServiceError(Exception):
    """Базовая ошибка сервиса водителей."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailedError(DriverServiceError):
    """Входные данные не прошли валидацию (полный список нарушений)."""

    def __init__(self, violations: list[FieldViolation]) -> None:
        super().__init__("Validation failed")
        self.violations = violations

    @property
    def details(self) -> list[str]:
        """Человекочитаемые сообщения в порядке обнаружения."""
        return [v.message for v in self.violations]


class DriverNotFoundError(DriverServiceError):
    """Водитель не найден."""

    def __init__(self, key: str, value: str, operation: str | None = None) -> None:
        message = f"driver with {key} {value} not found"
        if operation:
            message = f"{operation}: {message}"
        super().__init__(message)
        self.key = key
        self.value = value
        self.operation = operation


class DriverConflictError(DriverServiceError):
    """Нарушение уникальности (номер автомобиля)."""

    def __init__(self, plate: str) -> None:
        super().__init__(f"driver with plate {plate} already exists")
        self.plate = plate


class InvalidDriverIDError(DriverServiceError):
    """Идентификатор имеет неверный формат."""

    def __init__(self, driver_id: str) -> None:
        super().__init__(f"invalid driver ID format: {driver_id!r}")
        self.driver_id = driver_id


class InvalidLocationError(DriverServiceError):
    """Координаты вне допустимого диапазона."""


class InvalidTaxiTypeError(DriverServiceError):
    """Категория такси не входит в перечисление."""

    def __init__(self, taxi_type: str, allowed: list[str]) -> None:
        super().__init__(f"invalid taxi type: {taxi_type} (must be one of: {', '.join(allowed)})")
        self.taxi_type = taxi_type
        self.allowed = allowed


class StorageError(DriverServiceError):
    """Неклассифицированная ошибка хранилища (соединение, таймаут, декодирование)."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"storage failure during {operation}")
        self.operation = operation
