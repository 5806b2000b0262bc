"""
Обработчики объектов базы: таблицы, представления, модули, типы,
индексы, ограничения, умолчания, пользовательские сценарии.
"""
from __future__ import annotations

from typing import List

from ..core.models import SchemaObjectKind
from .base import CatalogImpl, NoDropImpl, SchemaImpl


class TableImpl(CatalogImpl):
    KINDS = (SchemaObjectKind.TABLE,)
    CATALOG_QUERY = "SELECT COUNT(*) FROM sys.tables WHERE name = ?"
    DROP_TEMPLATE = "DROP TABLE {0}"


class ViewImpl(CatalogImpl):
    KINDS = (SchemaObjectKind.VIEW, SchemaObjectKind.INDEXED_VIEW)
    CATALOG_QUERY = "SELECT COUNT(*) FROM sys.views WHERE name = ?"
    DROP_TEMPLATE = "DROP VIEW {0}"


class StoredProcedureImpl(CatalogImpl):
    KINDS = (SchemaObjectKind.STORED_PROCEDURE,)
    CATALOG_QUERY = "SELECT COUNT(*) FROM sys.procedures WHERE name = ?"
    DROP_TEMPLATE = "DROP PROCEDURE {0}"


class FunctionImpl(CatalogImpl):
    KINDS = (SchemaObjectKind.FUNCTION,)
    CATALOG_QUERY = "SELECT COUNT(*) FROM sys.objects WHERE name = ?"
    DROP_TEMPLATE = "DROP FUNCTION {0}"


class TriggerImpl(CatalogImpl):
    KINDS = (SchemaObjectKind.TRIGGER,)
    CATALOG_QUERY = "SELECT COUNT(*) FROM sys.triggers WHERE name = ?"
    DROP_TEMPLATE = "DROP TRIGGER {0}"


class UserDefinedTypeImpl(CatalogImpl):
    KINDS = (SchemaObjectKind.USER_DEFINED_TYPE,)
    CATALOG_QUERY = "SELECT COUNT(*) FROM sys.types WHERE name = ?"
    DROP_TEMPLATE = "DROP TYPE {0}"


class IndexImpl(SchemaImpl):
    """Индексы (в т.ч. XML): имя вида [таблица].[индекс]."""

    KINDS = (
        SchemaObjectKind.INDEX,
        SchemaObjectKind.PRIMARY_XML_INDEX,
        SchemaObjectKind.SECONDARY_XML_INDEX,
    )
    NAME_PARTS = 2

    def exists(self, connection) -> bool:
        return self._count(
            connection,
            "SELECT COUNT(*) FROM sys.indexes WHERE name = ? AND object_id = OBJECT_ID(?)",
            self.name.object,
            self.table_formatted,
        )

    def drop_statements(self, connection) -> List[str]:
        return [f"DROP INDEX {self.name.object_formatted} ON {self.table_formatted}"]


class ConstraintImpl(SchemaImpl):
    """PRIMARY KEY / FOREIGN KEY / CHECK: удаляются через ALTER TABLE."""

    KINDS = (
        SchemaObjectKind.PRIMARY_KEY,
        SchemaObjectKind.FOREIGN_KEY,
        SchemaObjectKind.CONSTRAINT,
    )
    NAME_PARTS = 2

    def exists(self, connection) -> bool:
        return self._count(
            connection,
            "SELECT COUNT(*) FROM sys.objects WHERE name = ? AND parent_object_id = OBJECT_ID(?)",
            self.name.object,
            self.table_formatted,
        )

    def drop_statements(self, connection) -> List[str]:
        return [f"ALTER TABLE {self.table_formatted} DROP CONSTRAINT {self.name.object_formatted}"]


class DefaultImpl(SchemaImpl):
    """
    Умолчание колонки: имя вида [таблица].[колонка].
    Имя самого ограничения может быть системным, поэтому оно ищется в каталоге.
    """

    KINDS = (SchemaObjectKind.DEFAULT,)
    NAME_PARTS = 2

    CONSTRAINT_QUERY = """
        SELECT d.name
            FROM sys.default_constraints d
            JOIN sys.columns c ON (d.parent_object_id = c.object_id AND d.parent_column_id = c.column_id)
            WHERE d.parent_object_id = OBJECT_ID(?) AND c.name = ?
    """

    def constraint_name(self, connection):
        return connection.scalar(self.CONSTRAINT_QUERY, (self.table_formatted, self.name.object))

    def exists(self, connection) -> bool:
        return self.constraint_name(connection) is not None

    def drop_statements(self, connection) -> List[str]:
        name = self.constraint_name(connection)
        if name is None:
            return []
        return [f"ALTER TABLE {self.table_formatted} DROP CONSTRAINT [{name}]"]


class ScriptImpl(NoDropImpl):
    """Пользовательские сценарии не проверяются и не откатываются."""

    KINDS = (SchemaObjectKind.SCRIPT, SchemaObjectKind.PRE_SCRIPT)

    def exists(self, connection) -> bool:
        return True
