"""
Базовый класс обработчиков видов объектов.

Обработчик знает для своего вида две вещи:
- как проверить существование объекта в каталоге (exists),
- какими операторами объект удаляется (drop_statements).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from ..core.models import SchemaObjectKind
from ..utils.naming import SqlName, strip_name_prefix


class SchemaImpl(ABC):
    """
    Абстрактный обработчик.

    KINDS       — обслуживаемые виды
    NAME_PARTS  — 2 для дочерних объектов таблицы ([t].[ix])
    NAME_PREFIX — префикс имени вида ("QUEUE", "ROLE", ...)
    """

    KINDS: Tuple[SchemaObjectKind, ...] = ()
    NAME_PARTS: int = 1
    NAME_PREFIX: Optional[str] = None

    def __init__(self, kind: SchemaObjectKind, name: str, sql: str = ""):
        self.kind = kind
        self.full_name = name
        self.sql = sql
        self.name = self._parse_name(name)

    def _parse_name(self, name: str) -> Optional[SqlName]:
        if self.NAME_PREFIX:
            name = strip_name_prefix(name, self.NAME_PREFIX)
        return SqlName.parse(name, self.NAME_PARTS)

    @property
    def table_formatted(self) -> str:
        return f"[{self.name.table}]"

    # ==========================================================
    # PUBLIC API
    # ==========================================================

    @abstractmethod
    def exists(self, connection) -> bool:
        raise NotImplementedError

    @abstractmethod
    def drop_statements(self, connection) -> List[str]:
        """Операторы удаления; пустой список — объект не удаляется."""
        raise NotImplementedError

    def drop(self, connection) -> List[str]:
        statements = self.drop_statements(connection)
        for sql in statements:
            connection.execute(sql)
        return statements

    # ==========================================================
    # ВСПОМОГАТЕЛЬНОЕ
    # ==========================================================

    @staticmethod
    def _count(connection, sql: str, *params: Any) -> bool:
        return bool(connection.scalar(sql, params))

    def get_info(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "name": self.full_name,
            "handler": self.__class__.__name__,
        }

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.full_name})"


class CatalogImpl(SchemaImpl):
    """
    Обработчик простого вида: одна таблица каталога и один DROP.

    CATALOG_QUERY — запрос COUNT(*) с одним параметром (имя объекта)
    DROP_TEMPLATE — шаблон удаления, {0} — [имя]
    """

    CATALOG_QUERY: str = ""
    DROP_TEMPLATE: str = ""

    def exists(self, connection) -> bool:
        return self._count(connection, self.CATALOG_QUERY, self.name.object)

    def drop_statements(self, connection) -> List[str]:
        return [self.DROP_TEMPLATE.format(self.name.object_formatted)]


class NoDropImpl(CatalogImpl):
    """Объекты, которые не удаляются (ключи шифрования, сценарии)."""

    def drop_statements(self, connection) -> List[str]:
        return []
