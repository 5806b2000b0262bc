"""
Соединение SQL Server через pyodbc (дополнительная зависимость mssql).

Автофиксация выключена: установка выполняется одной транзакцией,
commit()/rollback() вызывает установщик. Тайм-аут команд отключён:
DDL над большими таблицами может идти долго.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

import pyodbc

from ..core.exceptions import SchemaExecutionError

logger = logging.getLogger(__name__)


class PyodbcConnection:

    def __init__(self, connection: "pyodbc.Connection"):
        self.connection = connection
        self.connection.autocommit = False
        self.connection.timeout = 0

    @classmethod
    def connect(cls, connection_string: str) -> "PyodbcConnection":
        logger.debug("Connecting via pyodbc")
        try:
            connection = pyodbc.connect(connection_string, autocommit=False)
        except pyodbc.Error as e:
            raise SchemaExecutionError(f"Cannot connect to SQL Server: {e}") from e
        return cls(connection)

    def execute(self, sql: str) -> int:
        cursor = self.connection.cursor()
        try:
            cursor.execute(sql)
            return cursor.rowcount
        finally:
            cursor.close()

    def query(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        cursor = self.connection.cursor()
        try:
            cursor.execute(sql, *params)
            if cursor.description is None:
                return []
            columns = [d[0] for d in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]
        finally:
            cursor.close()

    def scalar(self, sql: str, params: Sequence[Any] = ()) -> Any:
        cursor = self.connection.cursor()
        try:
            cursor.execute(sql, *params)
            row = cursor.fetchone()
            return None if row is None else row[0]
        finally:
            cursor.close()

    def commit(self) -> None:
        self.connection.commit()

    def rollback(self) -> None:
        self.connection.rollback()

    def close(self) -> None:
        self.connection.close()
