"""
Поиск зависимых объектов и восстановление их определений из каталога.

Перед удалением изменённого объекта всё, что от него зависит,
планируется к удалению и повторному созданию. Каждый найденный
зависимый объект снова проходит через script_update, поэтому
зависимости зависимостей обрабатываются рекурсивно.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from ..catalog.sql_catalog import SqlCatalog
from ..core.exceptions import UnsupportedOperationError
from ..core.models import SchemaObjectKind
from ..parser.classifier import SqlClassifier, default_classifier
from ..schema.schema_object import SchemaObject
from ..utils.naming import index_name_from_full_name, table_name_from_index_name, unformat_sql_name
from .plan import InstallContext

logger = logging.getLogger(__name__)

ScriptUpdate = Callable[[InstallContext, SchemaObject], None]

# Модули, определение которых берётся из sys.sql_modules
MODULE_TYPES = (
    "SQL_STORED_PROCEDURE",
    "SQL_SCALAR_FUNCTION",
    "SQL_TABLE_VALUED_FUNCTION",
    "SQL_INLINE_TABLE_VALUED_FUNCTION",
    "SQL_TRIGGER",
    "VIEW",
)


class DependencyScripter:

    def __init__(
        self,
        catalog: SqlCatalog,
        script_update: ScriptUpdate,
        classifier: Optional[SqlClassifier] = None,
    ):
        self.catalog = catalog
        self.script_update = script_update
        self.classifier = classifier or default_classifier()

    def _schedule(self, context: InstallContext, sql: str) -> None:
        obj = SchemaObject.parse(sql, classifier=self.classifier)
        logger.debug("Dependency found: %s", obj)
        self.script_update(context, obj)

    # ==========================================================
    # PUBLIC API
    # ==========================================================

    def script_object_dependencies(self, context: InstallContext, obj: SchemaObject) -> None:
        """Права, зависимые модули и зависимости, специфичные для вида."""
        self.script_permissions(context, obj)
        self.script_standard_dependencies(context, obj)

        if obj.kind in (SchemaObjectKind.INDEXED_VIEW, SchemaObjectKind.INDEX):
            self.script_indexes(context, obj)
        elif obj.kind == SchemaObjectKind.PRIMARY_KEY:
            self.script_foreign_keys(context, obj)
            self.script_xml_indexes(context, obj)
        elif obj.kind == SchemaObjectKind.PRIMARY_XML_INDEX:
            self.script_xml_indexes(context, obj)

    def script_permissions(self, context: InstallContext, obj: SchemaObject) -> None:
        """Выданные права сохраняются как GRANT ... -- DEPENDENCY и выдаются заново."""
        if obj.kind == SchemaObjectKind.PERMISSION:
            return

        if obj.kind == SchemaObjectKind.ROLE:
            role = obj.name.split(" ", 1)[1] if " " in obj.name else obj.name
            permissions = self.catalog.permissions_of(index_name_from_full_name(role))
        else:
            permissions = self.catalog.permissions_on(unformat_sql_name(obj.name))

        for permission in permissions:
            self._schedule(context, permission.grant_sql())

    def script_standard_dependencies(self, context: InstallContext, obj: SchemaObject) -> None:
        """
        Модули и CHECK-ограничения, ссылающиеся на объект.
        Для таблицы важны только ссылки со связыванием схемы.
        """
        for dependency in self.catalog.expression_dependencies(unformat_sql_name(obj.name)):
            if obj.kind == SchemaObjectKind.TABLE and not dependency.is_schema_bound:
                continue

            if dependency.sql_type in MODULE_TYPES:
                sql = self.catalog.module_definition(dependency.name)
                if sql is None:
                    raise UnsupportedOperationError(
                        f"Cannot read the definition of object {dependency.name}.", object_name=dependency.name
                    )
            elif dependency.sql_type == "CHECK_CONSTRAINT":
                check = self.catalog.check_constraint(dependency.name)
                if check is None:
                    raise UnsupportedOperationError(
                        f"Cannot read the definition of object {dependency.name}.", object_name=dependency.name
                    )
                sql = check.create_sql()
            else:
                raise UnsupportedOperationError(
                    f"Cannot generate dependencies for object {dependency.name}.", object_name=dependency.name
                )

            self._schedule(context, sql)

    def script_foreign_keys(self, context: InstallContext, obj: SchemaObject) -> None:
        for key in self.catalog.foreign_keys_referencing(index_name_from_full_name(obj.name)):
            self._schedule(context, key.create_sql())

    def script_indexes(self, context: InstallContext, obj: SchemaObject, column_name: Optional[str] = None) -> None:
        """
        Индексы таблицы, представления или индекса (его таблицы).
        column_name ограничивает поиск индексами по одной колонке.
        Системно названные индексы не восстанавливаются: они часть определения таблицы.
        """
        if obj.kind == SchemaObjectKind.INDEX:
            object_id = self.catalog.index_owner_id(unformat_sql_name(obj.name))
        else:
            object_id = self.catalog.object_id(obj.name)

        for index in self.catalog.indexes(object_id, column_name):
            self._schedule(context, index.create_sql())

    def script_xml_indexes(self, context: InstallContext, obj: SchemaObject) -> None:
        if obj.kind == SchemaObjectKind.PRIMARY_XML_INDEX:
            indexes = self.catalog.xml_indexes_of_primary(index_name_from_full_name(obj.name))
        else:
            indexes = self.catalog.xml_indexes_of_table(table_name_from_index_name(obj.name))

        for index in indexes:
            self._schedule(context, index.create_sql())
