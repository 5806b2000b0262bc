"""
utils/naming.py

Утилиты для работы с именами объектов SQL Server.
Нужны для:
- канонизации имён ([dbo].[Beer] -> [Beer]),
- разбора составных имён индексов и ограничений ([Beer].[IX_Beer]),
- экранирования имён при генерации DDL.

Принцип:
- имя может быть записано как [a].[b].[c], "a"."b"."c" или a.b.c (в любой комбинации);
- допускается префикс области видимости TYPE::name (для GRANT ON TYPE::...).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from ..core.constants import DEFAULT_SCHEMA


# Имя SQL: необязательный префикс "xxx::", затем до трёх частей через точку
SQL_NAME_EXPRESSION = r"(?:[\w\d]+\s*::\s*)?(?:(?:\[[^\]]+\]|[\w\d]+)\.){0,2}(?:\[[^\]]+\]|[\w\d]+)"

_NAME_CHARS_RE = re.compile(r'[\[\]"]')
_NAME_DIVIDER = "."


def unformat_sql_name(name: str) -> str:
    """
    Последняя часть имени без экранирования.
    [dbo]..[foo] -> foo
    """
    pieces = (name or "").split(_NAME_DIVIDER)
    return _NAME_CHARS_RE.sub("", pieces[-1])


def format_sql_name(name: str) -> str:
    """Экранирует последнюю часть имени: dbo.Beer -> [Beer]."""
    return f"[{unformat_sql_name(name)}]"


def table_name_from_index_name(index_name: str) -> str:
    """
    Имя таблицы из полного имени индекса/ограничения.
    [Beer].[IX_Beer] -> Beer, [dbo].[Beer].[IX_Beer] -> Beer
    """
    pieces = (index_name or "").split(_NAME_DIVIDER)
    if len(pieces) == 3:
        table = pieces[1]
    elif len(pieces) == 2:
        table = pieces[0]
    else:
        raise ValueError(f"Cannot determine the table name from index name {index_name}")
    return _NAME_CHARS_RE.sub("", table)


def index_name_from_full_name(index_name: str) -> str:
    """[Beer].[IX_Beer] -> IX_Beer"""
    return unformat_sql_name((index_name or "").split(_NAME_DIVIDER)[-1])


def strip_name_prefix(name: str, prefix: str) -> str:
    """
    Убирает префикс вида объекта: "QUEUE [q]" -> "[q]".
    Регистр префикса не учитывается.
    """
    s = (name or "").strip()
    if s.upper().startswith(prefix.upper() + " "):
        return s[len(prefix) + 1:].strip()
    return s


def quote_literal(value: str) -> str:
    """Строковый литерал SQL с удвоением апострофов."""
    return "'" + (value or "").replace("'", "''") + "'"


@dataclass(frozen=True)
class SqlName:
    """
    Разобранное имя: схема, таблица (для индексов/ограничений), объект.

    Примеры:
      SqlName.parse("[Beer]")                -> schema=dbo, object=Beer
      SqlName.parse("[sales].[Beer]")        -> schema=sales, object=Beer
      SqlName.parse("[Beer].[IX_Beer]", 2)   -> table=Beer, object=IX_Beer
    """
    object: str
    schema: str = DEFAULT_SCHEMA
    table: Optional[str] = None

    @classmethod
    def parse(cls, name: str, parts: int = 1) -> "SqlName":
        pieces = [_NAME_CHARS_RE.sub("", p) for p in (name or "").split(_NAME_DIVIDER)]
        pieces = [p for p in pieces if p]
        if not pieces:
            raise ValueError("Empty SQL name")

        obj = pieces.pop()
        table = pieces.pop() if parts > 1 and pieces else None
        schema = pieces.pop() if pieces else DEFAULT_SCHEMA
        return cls(object=obj, schema=schema, table=table)

    @property
    def object_formatted(self) -> str:
        return f"[{self.object}]"

    @property
    def schema_qualified_table(self) -> str:
        return f"[{self.schema}].[{self.table}]" if self.table else self.full_name

    @property
    def full_name(self) -> str:
        if self.table:
            return f"[{self.schema}].[{self.table}].[{self.object}]"
        return f"[{self.schema}].[{self.object}]"

    def append(self, child: str) -> "SqlName":
        """Имя дочернего объекта (индекс/ограничение) этой таблицы."""
        return SqlName(object=unformat_sql_name(child), schema=self.schema, table=self.object)


__all__ = [
    "SQL_NAME_EXPRESSION",
    "unformat_sql_name",
    "format_sql_name",
    "table_name_from_index_name",
    "index_name_from_full_name",
    "strip_name_prefix",
    "quote_literal",
    "SqlName",
]
