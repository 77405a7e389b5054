# driver_service/core/drivers/validation.py
"""
Валидация и преобразование входных данных.

Набор правил фиксирован и описан ограничениями полей DTO. Ошибки pydantic
переводятся в упорядоченный список FieldViolation: по одному на каждое
нарушенное поле, без остановки на первом.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from driver_service.common.constants import TaxiType
from driver_service.core.drivers.errors import FieldViolation, ValidationFailedError
from driver_service.core.drivers.models import (
    PLATE_HINT,
    CreateDriverRequest,
    UpdateDriverRequest,
    UpdateLocationRequest,
    normalize_plate,
)

M = TypeVar("M", bound=BaseModel)


def _violation_from_error(error: dict[str, Any]) -> FieldViolation:
    """Переводит одну ошибку pydantic в нарушение правила."""
    loc = error.get("loc") or ()
    field = str(loc[0]) if loc else "body"
    ctx = error.get("ctx") or {}
    error_type = error.get("type", "")

    match error_type:
        case "missing":
            return FieldViolation(field, "required", f"{field} is required")
        case "not_null":
            return FieldViolation(field, "not_null", f"{field} must not be null")
        case "string_too_short":
            n = ctx.get("min_length")
            return FieldViolation(field, "min_length", f"{field} must be at least {n} characters", n)
        case "string_too_long":
            n = ctx.get("max_length")
            return FieldViolation(field, "max_length", f"{field} must be at most {n} characters", n)
        case "greater_than_equal":
            n = ctx.get("ge")
            return FieldViolation(field, "min", f"{field} must be greater than or equal to {n}", n)
        case "less_than_equal":
            n = ctx.get("le")
            return FieldViolation(field, "max", f"{field} must be less than or equal to {n}", n)
        case "enum":
            allowed = TaxiType.values()
            return FieldViolation(field, "oneof", f"{field} must be one of: {', '.join(allowed)}", allowed)
        case "plate_format":
            return FieldViolation(field, "plate_format", PLATE_HINT)
        case "string_type":
            return FieldViolation(field, "type", f"{field} must be a string")
        case "float_type" | "float_parsing" | "finite_number":
            return FieldViolation(field, "type", f"{field} must be a number")
        case _:
            return FieldViolation(field, error_type or "invalid", f"{field} is invalid")


def _validate(model: type[M], payload: Any) -> M:
    if not isinstance(payload, Mapping):
        raise ValidationFailedError(
            [FieldViolation("body", "type", "request body must be a JSON object")]
        )

    try:
        return model.model_validate(dict(payload))
    except ValidationError as e:
        violations = [_violation_from_error(err) for err in e.errors()]
        raise ValidationFailedError(violations) from None


def validate_create(payload: Mapping[str, Any]) -> CreateDriverRequest:
    """
    Проверяет запрос на создание водителя.

    Raises:
        ValidationFailedError: со списком всех нарушений
    """
    return _validate(CreateDriverRequest, payload)


def validate_update(payload: Mapping[str, Any]) -> UpdateDriverRequest:
    """Проверяет запрос на частичное обновление."""
    return _validate(UpdateDriverRequest, payload)


def validate_location(payload: Mapping[str, Any]) -> UpdateLocationRequest:
    """Проверяет запрос на обновление геолокации."""
    return _validate(UpdateLocationRequest, payload)


def validate_plate_query(plate: str | None) -> str:
    """Проверяет номер для поиска и возвращает его нормализованную форму."""
    if plate is None or not normalize_plate(plate):
        raise ValidationFailedError([FieldViolation("plate", "required", "plate is required")])
    return normalize_plate(plate)
