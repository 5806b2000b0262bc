"""
utils/validators.py

Набор маленьких валидаторов для набора объектов схемы.
Нужны для:
- проверки безопасности имён (имя подставляется в DDL без параметров),
- обнаружения дубликатов внутри одного желаемого набора.

Все проверки выполняются до любого обращения к базе.
"""

from __future__ import annotations

from typing import Dict, Iterable

from ..core.constants import INSECURE_SQL_CHARS
from ..core.exceptions import SchemaValidationError


def is_valid_sql_name(name: str) -> bool:
    """True если имя непустое и не содержит символов, способных завершить оператор/строку."""
    if not name:
        return False
    return not any(ch in name for ch in INSECURE_SQL_CHARS)


def assert_valid_sql_name(name: str) -> None:
    if name is None:
        raise SchemaValidationError("Object name is required")
    if not is_valid_sql_name(name):
        raise SchemaValidationError(f"Invalid SQL object name: {name}", object_name=name)


def assert_unique_names(names: Iterable[str]) -> None:
    """
    Имена в одном наборе уникальны без учёта регистра.
    Пример: [Beer] и [BEER] — дубликат.
    """
    seen: Dict[str, str] = {}
    for name in names:
        key = (name or "").lower()
        if key in seen:
            raise SchemaValidationError(f"Duplicate schema object name: {name}", object_name=name)
        seen[key] = name


__all__ = [
    "is_valid_sql_name",
    "assert_valid_sql_name",
    "assert_unique_names",
]
