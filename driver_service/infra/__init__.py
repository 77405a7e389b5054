# driver_service/infra/__init__.py
"""
Инфраструктурный слой: подключение к PostgreSQL.
"""

from driver_service.infra.database import DatabaseManager, init_schema, retry_on_connection_error

__all__ = [
    "DatabaseManager",
    "init_schema",
    "retry_on_connection_error",
]
