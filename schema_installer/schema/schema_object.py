"""
Объект схемы: единица установки.

Вид и имя выводятся из текста классификатором и не меняются;
новый текст — новый объект (with_sql).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Optional, Tuple

from ..autoproc.generator import AutoProc, ColumnProvider
from ..core.models import SchemaObjectKind, install_order_key
from ..parser.classifier import SqlClassifier, default_classifier
from ..utils.naming import unformat_sql_name
from ..utils.signature import calculate_signature


@dataclass(frozen=True)
class SchemaObject:
    kind: SchemaObjectKind
    name: str
    sql: str
    original_order: int = 0

    @classmethod
    def parse(
        cls,
        sql: str,
        original_order: int = 0,
        classifier: Optional[SqlClassifier] = None,
    ) -> "SchemaObject":
        result = (classifier or default_classifier()).classify(sql)
        return cls(kind=result.kind, name=result.name, sql=sql, original_order=original_order)

    def with_sql(self, sql: str, classifier: Optional[SqlClassifier] = None) -> "SchemaObject":
        return SchemaObject.parse(sql, self.original_order, classifier)

    def with_order(self, original_order: int) -> "SchemaObject":
        return replace(self, original_order=original_order)

    @property
    def unformatted_name(self) -> str:
        return unformat_sql_name(self.name)

    def install_key(self) -> Tuple[int, int, str]:
        return install_order_key(self.kind, self.original_order, self.name)

    def auto_proc(
        self,
        column_provider: Optional[ColumnProvider] = None,
        objects: Optional[Iterable["SchemaObject"]] = None,
    ) -> AutoProc:
        return AutoProc(self.name, column_provider, objects)

    def get_signature(self, objects: Optional[Iterable["SchemaObject"]] = None) -> str:
        """
        Подпись содержимого. Для AutoProc зависит от определения таблицы
        в наборе objects; без набора — случайная.
        """
        if self.kind == SchemaObjectKind.AUTO_PROC:
            return self.auto_proc(objects=objects).signature
        return calculate_signature(self.sql)

    def get_install_sql(
        self,
        column_provider: Optional[ColumnProvider] = None,
        objects: Optional[Iterable["SchemaObject"]] = None,
    ) -> str:
        if self.kind == SchemaObjectKind.AUTO_PROC:
            return self.auto_proc(column_provider, objects).sql
        return self.sql

    def __str__(self) -> str:
        return f"{self.kind.value} {self.name}"
