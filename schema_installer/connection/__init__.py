"""
connection package — интерфейс соединения и журналирующая обёртка.

Адаптер pyodbc импортируется явно (schema_installer.connection.pyodbc_adapter),
так как pyodbc — необязательная зависимость.
"""

from .base import Connection, RecordingConnection

__all__ = [
    "Connection",
    "RecordingConnection",
]
