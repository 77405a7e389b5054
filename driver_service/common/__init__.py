# driver_service/common/__init__.py
"""
Общие утилиты, константы и логгер.
"""

from driver_service.common.logger import get_logger, log_info, log_error, log_warning, log_debug
from driver_service.common.constants import TypeMsg, TaxiType

__all__ = [
    "get_logger",
    "log_info",
    "log_error",
    "log_warning",
    "log_debug",
    "TypeMsg",
    "TaxiType",
]
