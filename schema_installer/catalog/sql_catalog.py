"""
Запросы к каталогу SQL Server.

SqlCatalog     — чтение метаданных для миграции таблиц и поиска зависимостей;
SqlColumnProvider — колонки живой таблицы для генератора AutoProc.

Все запросы выполняются вне журнала сценария: это чтение, а не изменение схемы.
Результаты сразу переводятся в типизированные строки (catalog.rows).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..core.constants import READONLY_TYPES, TEMP_TABLE_PREFIX
from ..core.models import ColumnDefinition
from ..registry.schema_registry import quiet
from .rows import (
    CheckConstraint,
    DefaultConstraint,
    ExpressionDependency,
    ForeignKeyInfo,
    IndexInfo,
    PermissionInfo,
    TableColumn,
    XmlIndexInfo,
    format_type,
)

logger = logging.getLogger(__name__)


# ==========================================================
# ТЕКСТЫ ЗАПРОСОВ
# ==========================================================

IS_AZURE_QUERY = "SELECT CONVERT(bit, CASE WHEN SERVERPROPERTY('edition') = 'SQL Azure' THEN 1 ELSE 0 END)"

TABLE_COLUMNS_QUERY = """
SELECT Name=c.name, ColumnID=c.column_id, TypeName=t.name, MaxLength=c.max_length, Precision=c.precision,
    Scale=c.scale, IsNullable=c.is_nullable, IsIdentity=c.is_identity,
    IdentitySeed=i.seed_value, IdentityIncrement=i.increment_value, Definition=cc.definition
FROM sys.columns c
JOIN sys.types t ON (c.system_type_id = t.system_type_id AND c.user_type_id = t.user_type_id)
LEFT JOIN sys.identity_columns i ON (c.object_id = i.object_id AND c.column_id = i.column_id)
LEFT JOIN sys.computed_columns cc ON (cc.object_id = c.object_id AND cc.column_id = c.column_id)
WHERE c.object_id = OBJECT_ID(?)
ORDER BY c.column_id
"""

DEFAULT_CONSTRAINTS_QUERY = """
SELECT Name=REPLACE(d.name, ?, ''), ColumnID=d.parent_column_id, ColumnName=c.name,
    IsSystemNamed=d.is_system_named, Definition=d.definition
FROM sys.default_constraints d
JOIN sys.columns c ON (d.parent_object_id = c.object_id AND d.parent_column_id = c.column_id)
WHERE d.parent_object_id = OBJECT_ID(?)
"""

DATA_SPACE_QUERY = "SELECT data_space_id FROM sys.indexes i WHERE i.object_id = OBJECT_ID(?) AND type <= 1"

PERMISSIONS_SELECT = """
SELECT UserName=u.name, Permission=p.permission_name, ClassType=p.class_desc, ObjectName=ISNULL(o.name, t.name)
FROM sys.database_principals u
JOIN sys.database_permissions p ON (u.principal_id = p.grantee_principal_id)
LEFT JOIN sys.objects o ON (p.class_desc = 'OBJECT_OR_COLUMN' AND p.major_id = o.object_id)
LEFT JOIN sys.types t ON (p.class_desc = 'TYPE' AND p.major_id = t.user_type_id)
"""

PERMISSIONS_ON_OBJECT_QUERY = PERMISSIONS_SELECT + "WHERE ISNULL(o.name, t.name) = ?"

PERMISSIONS_OF_PRINCIPAL_QUERY = PERMISSIONS_SELECT + "WHERE u.name = ?"

# Пользовательские таблицы пропускаются (это вычисляемые колонки),
# системно названные CHECK-ограничения относятся к самой таблице.
EXPRESSION_DEPENDENCIES_QUERY = """
SELECT DISTINCT Name=o.name, SqlType=o.type_desc, IsSchemaBound=d.is_schema_bound_reference
FROM sys.sql_expression_dependencies d
JOIN sys.objects o ON (d.referencing_id = o.object_id)
LEFT JOIN sys.check_constraints c ON (o.object_id = c.object_id)
WHERE ISNULL(c.is_system_named, 0) = 0 AND
    o.type_desc <> 'USER_TABLE' AND
    (o.parent_object_id = OBJECT_ID(?) OR
    d.referenced_id =
        CASE WHEN d.referenced_class_desc = 'TYPE' THEN (SELECT user_type_id FROM sys.types t WHERE t.name = ?)
        ELSE OBJECT_ID(?)
    END)
"""

MODULE_DEFINITION_QUERY = "SELECT definition FROM sys.sql_modules WHERE object_id = OBJECT_ID(?)"

CHECK_CONSTRAINT_QUERY = """
SELECT TableName=o.name, ConstraintName=c.name, Definition=c.definition
FROM sys.check_constraints c
JOIN sys.objects o ON (c.parent_object_id = o.object_id)
WHERE c.object_id = OBJECT_ID(?)
"""

FOREIGN_KEYS_QUERY = """
SELECT Name=f.name, TableName=o.name, RefTableName=ro.name,
    DeleteAction=f.delete_referential_action_desc, UpdateAction=f.update_referential_action_desc
FROM sys.foreign_keys f
JOIN sys.key_constraints k ON (f.referenced_object_id = k.parent_object_id)
JOIN sys.objects o ON (f.parent_object_id = o.object_id)
JOIN sys.objects ro ON (k.parent_object_id = ro.object_id)
WHERE k.name = ?
"""

FOREIGN_KEY_COLUMNS_QUERY = """
SELECT FkColumnName=fc.name, PkColumnName=kc.name
FROM sys.foreign_key_columns f
JOIN sys.columns fc ON (f.parent_object_id = fc.object_id AND f.parent_column_id = fc.column_id)
JOIN sys.columns kc ON (f.referenced_object_id = kc.object_id AND f.referenced_column_id = kc.column_id)
WHERE f.constraint_object_id = OBJECT_ID(?)
"""

INDEX_OWNER_QUERY = "SELECT i.object_id FROM sys.indexes i WHERE i.name = ?"

OBJECT_ID_QUERY = "SELECT OBJECT_ID(?)"

INDEX_COLUMNS_QUERY = """
SELECT ColumnName=c.name
FROM sys.indexes i
JOIN sys.index_columns ic ON (i.object_id = ic.object_id AND i.index_id = ic.index_id)
JOIN sys.columns c ON (ic.object_id = c.object_id AND ic.column_id = c.column_id)
WHERE i.name = ?
ORDER BY ic.key_ordinal
"""

XML_INDEXES_OF_PRIMARY_QUERY = """
IF NOT EXISTS (SELECT * FROM sys.system_objects WHERE name = 'xml_indexes') SELECT TOP 0 Nothing=NULL ELSE
SELECT Name=i.name, TableName=o.name, SecondaryType=i.secondary_type_desc, ParentIndexName=p.name
FROM sys.xml_indexes i
JOIN sys.objects o ON (i.object_id = o.object_id)
JOIN sys.xml_indexes p ON (p.index_id = i.using_xml_index_id)
WHERE p.name = ?
"""

XML_INDEXES_OF_TABLE_QUERY = """
IF NOT EXISTS (SELECT * FROM sys.system_objects WHERE name = 'xml_indexes') SELECT TOP 0 Nothing=NULL ELSE
SELECT Name=i.name, TableName=o.name, SecondaryType=i.secondary_type_desc, ParentIndexName=u.name
FROM sys.xml_indexes i
JOIN sys.objects o ON (i.object_id = o.object_id)
LEFT JOIN sys.xml_indexes u ON (i.using_xml_index_id = u.index_id)
WHERE i.object_id = OBJECT_ID(?)
"""

XML_INDEX_COLUMNS_QUERY = """
SELECT ColumnName=c.name
FROM sys.xml_indexes i
JOIN sys.index_columns ic ON (i.object_id = ic.object_id AND i.index_id = ic.index_id)
JOIN sys.columns c ON (ic.object_id = c.object_id AND ic.column_id = c.column_id)
WHERE i.name = ?
"""

AUTOPROC_COLUMNS_QUERY = """
SELECT name=c.name, type_name=t.name, max_length=c.max_length, precision=c.precision, scale=c.scale,
    is_identity=c.is_identity, is_readonly=CONVERT(bit, c.is_identity | c.is_computed),
    is_key=CONVERT(bit, CASE WHEN pk.column_id IS NOT NULL THEN 1 ELSE 0 END)
FROM sys.columns c
JOIN sys.types t ON (c.user_type_id = t.user_type_id AND t.is_user_defined = 0)
LEFT JOIN (
    SELECT ic.object_id, ic.column_id
    FROM sys.index_columns ic
    JOIN sys.indexes i ON (ic.object_id = i.object_id AND ic.index_id = i.index_id)
    WHERE i.is_primary_key = 1
) AS pk ON (c.object_id = pk.object_id AND c.column_id = pk.column_id)
WHERE c.object_id = OBJECT_ID(?)
ORDER BY c.column_id
"""


def _index_select(is_azure: bool, by_column: bool) -> str:
    """Индексы объекта; кластерные первыми (их удаление у представления убирает остальные)."""
    data_space = "NULL" if is_azure else "ISNULL(f.name, p.name)"
    sql = (
        "SELECT Name=i.name, TableName=o.name, Type=i.type_desc, IsUnique=i.is_unique, "
        "IsConstraint=CONVERT(bit, CASE WHEN k.object_id IS NOT NULL THEN 1 ELSE 0 END), "
        "IsPrimaryKey=CONVERT(bit, CASE WHEN k.type_desc = 'PRIMARY_KEY_CONSTRAINT' THEN 1 ELSE 0 END), "
        f"DataSpace={data_space}\n"
        "FROM sys.indexes i\n"
        "JOIN sys.objects o ON (i.object_id = o.object_id)\n"
        "LEFT JOIN sys.key_constraints k ON (o.object_id = k.parent_object_id "
        "AND i.index_id = k.unique_index_id AND k.is_system_named = 0)\n"
    )
    if not is_azure:
        sql += (
            "LEFT JOIN sys.partition_schemes p ON (i.data_space_id = p.data_space_id)\n"
            "LEFT JOIN sys.filegroups f ON (i.data_space_id = f.data_space_id)\n"
        )
    sql += "WHERE o.object_id = ? AND i.name IS NOT NULL AND i.type_desc IN ('CLUSTERED', 'NONCLUSTERED')"
    if by_column:
        sql += (
            " AND i.index_id IN (SELECT ic.index_id\n"
            "    FROM sys.index_columns ic\n"
            "    JOIN sys.columns c ON (c.object_id = ic.object_id AND c.column_id = ic.column_id)\n"
            "    WHERE ic.object_id = ? AND c.name = ?)"
        )
    return sql + "\nORDER BY i.type"


# ==========================================================
# КАТАЛОГ
# ==========================================================

class SqlCatalog:
    """
    Строго типизированное чтение каталога.

    Соединение — любое, реализующее протокол Connection;
    RecordingConnection не записывает эти запросы в сценарий.
    """

    def __init__(self, connection, is_azure: Optional[bool] = None):
        self.connection = connection
        self._is_azure = is_azure

    def _query(self, sql: str, *params: Any) -> List[Dict[str, Any]]:
        with quiet(self.connection):
            return self.connection.query(sql, params)

    def _scalar(self, sql: str, *params: Any) -> Any:
        with quiet(self.connection):
            return self.connection.scalar(sql, params)

    # ---------- сервер ----------

    @property
    def is_azure(self) -> bool:
        """Azure не поддерживает файловые группы и схемы секционирования."""
        if self._is_azure is None:
            self._is_azure = bool(self._scalar(IS_AZURE_QUERY))
            logger.debug("Azure edition: %s", self._is_azure)
        return self._is_azure

    # ---------- таблицы ----------

    def table_columns(self, table_name: str) -> List[TableColumn]:
        return [TableColumn.from_row(r) for r in self._query(TABLE_COLUMNS_QUERY, table_name)]

    def default_constraints(self, table_name: str) -> List[DefaultConstraint]:
        rows = self._query(DEFAULT_CONSTRAINTS_QUERY, TEMP_TABLE_PREFIX, table_name)
        return [DefaultConstraint.from_row(r) for r in rows]

    def data_space_id(self, table_name: str) -> Optional[int]:
        value = self._scalar(DATA_SPACE_QUERY, table_name)
        return None if value is None else int(value)

    def object_id(self, name: str) -> Optional[int]:
        value = self._scalar(OBJECT_ID_QUERY, name)
        return None if value is None else int(value)

    # ---------- зависимости ----------

    def expression_dependencies(self, object_name: str) -> List[ExpressionDependency]:
        rows = self._query(EXPRESSION_DEPENDENCIES_QUERY, object_name, object_name, object_name)
        return [ExpressionDependency.from_row(r) for r in rows]

    def module_definition(self, name: str) -> Optional[str]:
        return self._scalar(MODULE_DEFINITION_QUERY, name)

    def check_constraint(self, name: str) -> Optional[CheckConstraint]:
        rows = self._query(CHECK_CONSTRAINT_QUERY, name)
        return CheckConstraint.from_row(rows[0]) if rows else None

    def permissions_on(self, object_name: str) -> List[PermissionInfo]:
        return [PermissionInfo.from_row(r) for r in self._query(PERMISSIONS_ON_OBJECT_QUERY, object_name)]

    def permissions_of(self, principal_name: str) -> List[PermissionInfo]:
        return [PermissionInfo.from_row(r) for r in self._query(PERMISSIONS_OF_PRINCIPAL_QUERY, principal_name)]

    def foreign_keys_referencing(self, key_name: str) -> List[ForeignKeyInfo]:
        """Внешние ключи, ссылающиеся на таблицу первичного ключа key_name."""
        keys = [ForeignKeyInfo.from_row(r) for r in self._query(FOREIGN_KEYS_QUERY, key_name)]
        for key in keys:
            key.columns = [
                (r["FkColumnName"], r["PkColumnName"])
                for r in self._query(FOREIGN_KEY_COLUMNS_QUERY, key.name)
            ]
        return keys

    # ---------- индексы ----------

    def index_owner_id(self, index_name: str) -> Optional[int]:
        value = self._scalar(INDEX_OWNER_QUERY, index_name)
        return None if value is None else int(value)

    def indexes(self, object_id: Optional[int], column_name: Optional[str] = None) -> List[IndexInfo]:
        if object_id is None:
            return []

        sql = _index_select(self.is_azure, column_name is not None)
        params: Sequence[Any] = (object_id,) if column_name is None else (object_id, object_id, column_name)

        indexes = [IndexInfo.from_row(r) for r in self._query(sql, *params)]
        for index in indexes:
            index.columns = [r["ColumnName"] for r in self._query(INDEX_COLUMNS_QUERY, index.name)]
        return indexes

    def xml_indexes_of_primary(self, index_name: str) -> List[XmlIndexInfo]:
        """Вторичные XML-индексы, построенные на первичном XML-индексе."""
        return self._xml_indexes(XML_INDEXES_OF_PRIMARY_QUERY, index_name)

    def xml_indexes_of_table(self, table_name: str) -> List[XmlIndexInfo]:
        return self._xml_indexes(XML_INDEXES_OF_TABLE_QUERY, table_name)

    def _xml_indexes(self, sql: str, name: str) -> List[XmlIndexInfo]:
        rows = [r for r in self._query(sql, name) if r.get("Name") is not None]
        indexes = [XmlIndexInfo.from_row(r) for r in rows]
        for index in indexes:
            index.columns = [r["ColumnName"] for r in self._query(XML_INDEX_COLUMNS_QUERY, index.name)]
        return indexes


# ==========================================================
# КОЛОНКИ ДЛЯ AUTOPROC
# ==========================================================

class SqlColumnProvider:
    """Колонки таблицы в виде ColumnDefinition (тип уже с длиной/точностью)."""

    def __init__(self, connection):
        self.connection = connection

    def get_columns(self, table_name: str) -> List[ColumnDefinition]:
        with quiet(self.connection):
            rows = self.connection.query(AUTOPROC_COLUMNS_QUERY, (table_name,))

        columns = []
        for row in rows:
            type_name = row["type_name"]
            sql_type = format_type(type_name, row.get("max_length"), row.get("precision"), row.get("scale"))
            if type_name.lower() == "float":
                sql_type += f"({row.get('precision')})"

            columns.append(ColumnDefinition(
                name=row["name"],
                sql_type=sql_type,
                is_key=bool(row.get("is_key")),
                is_identity=bool(row.get("is_identity")),
                is_readonly=bool(row.get("is_readonly")) or type_name.lower() in READONLY_TYPES,
            ))

        logger.debug("Table %s has %d columns", table_name, len(columns))
        return columns
