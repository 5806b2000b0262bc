"""
Генератор AutoProc: CRUD-процедуры и табличные типы по форме живой таблицы.

Директива `-- AUTOPROC All [Beer]` разворачивается в:
- типы [BeerTable] / [BeerIdTable] (параметры *Many-процедур);
- процедуры SelectBeer, InsertBeer, UpdateBeer, UpsertBeer, DeleteBeer;
- процедуры SelectBeers, InsertBeers, UpdateBeers, UpsertBeers, DeleteBeers;
- процедуру FindBeers с динамическим набором условий.

Подпись AutoProc зависит только от определения таблицы (CREATE TABLE и
первичный ключ) и версии генератора, а не от прочих объектов схемы.
*Many-процедуры не гарантируют, что строки OUTPUT идут в порядке строк
табличного параметра: сопоставление выполняется по ключевым колонкам.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Protocol, Tuple

from ..core.constants import AUTOPROC_VERSION_SIGNATURE
from ..core.exceptions import UnsupportedOperationError
from ..core.models import ColumnDefinition, SchemaObjectKind
from ..utils.naming import format_sql_name, quote_literal, unformat_sql_name
from ..utils.signature import calculate_signature, random_signature
from .directive import AutoProcDirective, ProcTypes
from .singularizer import singularize

logger = logging.getLogger(__name__)

_BRACKET_RE = re.compile(r"([\[\]])")
_SCHEMA_PREFIX = r"(?:(?:\[[^\]]+\]|\w+)\.)?"

# Порядок генерации: (тип, глагол, множественное число)
_PROC_ORDER: Tuple[Tuple[ProcTypes, str, bool], ...] = (
    (ProcTypes.SELECT, "Select", False),
    (ProcTypes.INSERT, "Insert", False),
    (ProcTypes.UPDATE, "Update", False),
    (ProcTypes.UPSERT, "Upsert", False),
    (ProcTypes.DELETE, "Delete", False),
    (ProcTypes.SELECT_MANY, "Select", True),
    (ProcTypes.INSERT_MANY, "Insert", True),
    (ProcTypes.UPDATE_MANY, "Update", True),
    (ProcTypes.UPSERT_MANY, "Upsert", True),
    (ProcTypes.DELETE_MANY, "Delete", True),
    (ProcTypes.FIND, "Find", True),
)

_TYPE_ORDER: Tuple[Tuple[ProcTypes, str], ...] = (
    (ProcTypes.TABLE, "Table"),
    (ProcTypes.ID_TABLE, "IdTable"),
)

# Без ключевых колонок эти объекты не имеют смысла
_KEY_REQUIRED = (
    ProcTypes.ID_TABLE
    | ProcTypes.SELECT | ProcTypes.UPDATE | ProcTypes.UPSERT | ProcTypes.DELETE
    | ProcTypes.SELECT_MANY | ProcTypes.UPDATE_MANY | ProcTypes.UPSERT_MANY | ProcTypes.DELETE_MANY
)


class ColumnProvider(Protocol):
    def get_columns(self, table_name: str) -> List[ColumnDefinition]:
        ...


def join_columns(columns: Iterable[ColumnDefinition], divider: str, template: str) -> str:
    """
    Список колонок по шаблону.
    {0} — [имя колонки], {1} — @параметр, {2} — тип SQL.
    """
    return (divider + "\n").join(
        ("\t" + template).format(c.column_name, c.parameter_name, c.sql_type)
        for c in columns
    )


class AutoProc:
    """
    Одна директива AUTOPROC.

    objects — полный желаемый набор объектов схемы; по нему считается подпись.
    Без него подпись случайна, т.е. объект всегда считается изменённым.
    """

    def __init__(
        self,
        name: str,
        column_provider: Optional[ColumnProvider] = None,
        objects: Optional[Iterable] = None,
    ):
        self.directive = AutoProcDirective.parse(name)
        self.column_provider = column_provider

        self.table_name = self.directive.table_name
        self.singular_table_name = format_sql_name(
            self.directive.single or singularize(unformat_sql_name(self.table_name))
        )

        if self.directive.plural:
            self.plural_table_name = format_sql_name(self.directive.plural)
        else:
            self.plural_table_name = self.table_name
            if self.plural_table_name.lower() == self.singular_table_name.lower():
                self.plural_table_name = format_sql_name(unformat_sql_name(self.table_name) + "s")

        self.signature = self._calculate_signature(objects)

    @property
    def types(self) -> ProcTypes:
        return self.directive.types

    # ==========================================================
    # PUBLIC API
    # ==========================================================

    @property
    def sql(self) -> str:
        return self.generate_sql()

    def generate_sql(self, columns: Optional[List[ColumnDefinition]] = None) -> str:
        """SQL всех объектов; пакеты разделены строками GO."""
        if columns is None:
            if self.column_provider is None:
                raise UnsupportedOperationError(
                    f"Cannot generate AutoProc for {self.table_name} without a column provider",
                    object_name=self.table_name,
                )
            columns = self.column_provider.get_columns(self.table_name)

        self._check_keys(columns)

        generators = {
            ProcTypes.TABLE: self._table_sql,
            ProcTypes.ID_TABLE: self._id_table_sql,
            ProcTypes.SELECT: self._select_sql,
            ProcTypes.INSERT: self._insert_sql,
            ProcTypes.UPDATE: self._update_sql,
            ProcTypes.UPSERT: self._upsert_sql,
            ProcTypes.DELETE: self._delete_sql,
            ProcTypes.SELECT_MANY: self._select_many_sql,
            ProcTypes.INSERT_MANY: self._insert_many_sql,
            ProcTypes.UPDATE_MANY: self._update_many_sql,
            ProcTypes.UPSERT_MANY: self._upsert_many_sql,
            ProcTypes.DELETE_MANY: self._delete_many_sql,
            ProcTypes.FIND: self._find_sql,
        }

        sql = ""
        for proc_type, _ in _TYPE_ORDER:
            if proc_type in self.types:
                sql += generators[proc_type](columns) + " GO\n"
        for proc_type, _, _ in _PROC_ORDER:
            if proc_type in self.types:
                sql += generators[proc_type](columns) + " GO\n"

        logger.debug("Generated AutoProc for %s (%d columns)", self.table_name, len(columns))
        return sql

    @property
    def drop_sql(self) -> str:
        sql = ""
        for proc_type, verb, plural in _PROC_ORDER:
            if proc_type in self.types:
                sql += self._drop_proc_statement(verb, plural) + "\nGO\n"
        for proc_type, type_name in _TYPE_ORDER:
            if proc_type in self.types:
                sql += self._drop_type_statement(type_name) + "\nGO\n"
        return sql

    def generated_objects(self) -> List[Tuple[SchemaObjectKind, str]]:
        """Имена всех генерируемых объектов: (вид, [имя])."""
        result: List[Tuple[SchemaObjectKind, str]] = []
        for proc_type, type_name in _TYPE_ORDER:
            if proc_type in self.types:
                result.append((SchemaObjectKind.USER_DEFINED_TYPE, self.make_table_name(type_name)))
        for proc_type, verb, plural in _PROC_ORDER:
            if proc_type in self.types:
                result.append((SchemaObjectKind.STORED_PROCEDURE, self.make_proc_name(verb, plural)))
        return result

    def exists(self, connection) -> bool:
        """Все генерируемые процедуры и типы присутствуют в базе."""
        for kind, name in self.generated_objects():
            bare = unformat_sql_name(name)
            if kind == SchemaObjectKind.USER_DEFINED_TYPE:
                count = connection.scalar("SELECT COUNT(*) FROM sys.types WHERE name = ?", (bare,))
            else:
                count = connection.scalar(
                    "SELECT COUNT(*) FROM sys.objects WHERE name = ? AND type IN ('P', 'PC')", (bare,)
                )
            if not count:
                logger.debug("AutoProc object %s is missing", name)
                return False
        return True

    # ==========================================================
    # ИМЕНА
    # ==========================================================

    def make_proc_name(self, verb: str, plural: bool) -> str:
        template = self.directive.name_template or ("{0}{1}" if plural else "{0}{2}")
        return format_sql_name(template.format(verb, self.plural_table_name, self.singular_table_name))

    def make_table_name(self, type_name: str) -> str:
        template = self.directive.name_template or "{2}{0}"
        return format_sql_name(template.format(type_name, self.table_name, self.singular_table_name))

    @property
    def parameter_name(self) -> str:
        return unformat_sql_name(self.singular_table_name)

    # ==========================================================
    # ПОДПИСЬ
    # ==========================================================

    def table_definition_pattern(self) -> re.Pattern:
        name = _BRACKET_RE.sub(r"\1?", re.escape(self.table_name))
        name = rf"{_SCHEMA_PREFIX}{name}(?!\w)"
        return re.compile(
            rf"(CREATE\s+TABLE\s+{name})|(ALTER\s+TABLE\s+{name}.*PRIMARY\s+KEY)",
            re.IGNORECASE | re.DOTALL,
        )

    def _calculate_signature(self, objects: Optional[Iterable]) -> str:
        if objects is None:
            return random_signature()

        pattern = self.table_definition_pattern()
        sql = " ".join(o.sql for o in objects if pattern.search(o.sql))
        return calculate_signature(sql + AUTOPROC_VERSION_SIGNATURE)

    # ==========================================================
    # ГЕНЕРАЦИЯ
    # ==========================================================

    def _check_keys(self, columns: List[ColumnDefinition]) -> None:
        if any(c.is_key for c in columns):
            return
        if self.types & _KEY_REQUIRED:
            raise UnsupportedOperationError(
                f"Cannot generate AutoProc for table {self.table_name}: the table has no primary key",
                object_name=self.table_name,
            )

    def _table_sql(self, columns: List[ColumnDefinition]) -> str:
        lines = [
            f"CREATE TYPE {self.make_table_name('Table')}",
            "AS TABLE",
            "(",
            join_columns(columns, ",", "{0} {2}"),
            ")",
        ]
        return "\n".join(lines) + "\n"

    def _id_table_sql(self, columns: List[ColumnDefinition]) -> str:
        keys = [c for c in columns if c.is_key]
        lines = [
            f"CREATE TYPE {self.make_table_name('IdTable')}",
            "AS TABLE",
            "(",
            join_columns(keys, ",", "{0} {2}"),
            ")",
        ]
        return "\n".join(lines) + "\n"

    def _select_sql(self, columns: List[ColumnDefinition]) -> str:
        keys = [c for c in columns if c.is_key]
        lines = [
            f"CREATE PROCEDURE {self.make_proc_name('Select', False)}",
            "(",
            join_columns(keys, ",", "{1} {2}"),
            ")",
            "AS",
            f"SELECT * FROM {self.table_name} WHERE ",
            join_columns(keys, " AND", "{0}={1}"),
        ]
        return "\n".join(lines) + "\n"

    def _insert_sql(self, columns: List[ColumnDefinition]) -> str:
        outputs = [c for c in columns if c.is_readonly]
        insertable = [c for c in columns if not c.is_readonly]

        lines = [
            f"CREATE PROCEDURE {self.make_proc_name('Insert', False)}",
            "(",
            join_columns(insertable, ",", "{1} {2}"),
            ")",
            "AS",
            f"INSERT INTO {self.table_name}",
            "(",
            join_columns(insertable, ",", "{0}"),
            ")",
        ]
        if outputs:
            lines += ["OUTPUT", join_columns(outputs, ",", "Inserted.{0}")]
        lines += [
            "VALUES",
            "(",
            join_columns(insertable, ",", "{1}"),
            ")",
        ]
        return "\n".join(lines) + "\n"

    def _no_updatable_fields(self) -> str:
        return f"RAISERROR (N'There are no UPDATEable fields on {self.table_name}', 18, 0)"

    def _update_sql(self, columns: List[ColumnDefinition]) -> str:
        inputs = [c for c in columns if c.is_key or not c.is_readonly]
        keys = [c for c in columns if c.is_key]
        updatable = [c for c in columns if not c.is_key and not c.is_readonly]

        lines = [
            f"CREATE PROCEDURE {self.make_proc_name('Update', False)}",
            "(",
            join_columns(inputs, ",", "{1} {2}"),
            ")",
            "AS",
        ]
        if updatable:
            lines += [
                f"UPDATE {self.table_name} SET",
                join_columns(updatable, ",", "{0}={1}"),
                "WHERE",
                join_columns(keys, " AND", "{0}={1}"),
            ]
        else:
            lines.append(self._no_updatable_fields())
        return "\n".join(lines) + "\n"

    def _upsert_sql(self, columns: List[ColumnDefinition]) -> str:
        inputs = [c for c in columns if c.is_key or not c.is_readonly]
        keys = [c for c in columns if c.is_key]
        updatable = [c for c in columns if not c.is_key and not c.is_readonly]
        insertable = [c for c in columns if not c.is_readonly]
        outputs = [c for c in columns if c.is_readonly]

        lines = [
            f"CREATE PROCEDURE {self.make_proc_name('Upsert', False)}",
            "(",
            join_columns(inputs, ",", "{1} {2}"),
            ")",
            "AS",
        ]
        if not updatable:
            lines.append(self._no_updatable_fields())
            return "\n".join(lines) + "\n"

        lines += [
            f"MERGE INTO {self.table_name} AS t",
            "USING",
            "(",
            "SELECT",
            join_columns(inputs, ",", "{0} = {1}"),
            ")",
            "AS s",
            "ON",
            "(",
            join_columns(keys, " AND", "t.{0} = s.{0}"),
            ")",
            "WHEN MATCHED THEN UPDATE SET",
            join_columns(updatable, ",", "\tt.{0} = s.{0}"),
            "WHEN NOT MATCHED BY TARGET THEN INSERT",
            "(",
            join_columns(insertable, ",", "{0}"),
            ")",
            "VALUES",
            "(",
            join_columns(insertable, ",", "s.{0}"),
            ")",
        ]
        if outputs:
            lines += ["OUTPUT", join_columns(outputs, ",", "Inserted.{0}")]
        lines.append(";")
        return "\n".join(lines) + "\n"

    def _delete_sql(self, columns: List[ColumnDefinition]) -> str:
        keys = [c for c in columns if c.is_key]
        lines = [
            f"CREATE PROCEDURE {self.make_proc_name('Delete', False)}",
            "(",
            join_columns(keys, ",", "{1} {2}"),
            ")",
            "AS",
            f"DELETE FROM {self.table_name} WHERE",
            join_columns(keys, " AND", "{0}={1}"),
        ]
        return "\n".join(lines) + "\n"

    def _many_header(self, verb: str, type_name: str) -> str:
        return (
            f"CREATE PROCEDURE {self.make_proc_name(verb, True)} "
            f"(@{self.parameter_name} {self.make_table_name(type_name)} READONLY)"
        )

    def _select_many_sql(self, columns: List[ColumnDefinition]) -> str:
        keys = [c for c in columns if c.is_key]
        lines = [
            self._many_header("Select", "IdTable"),
            "AS",
            f"SELECT * FROM {self.table_name} AS t",
            f"JOIN @{self.parameter_name} AS s ON",
            "(",
            join_columns(keys, " AND", "t.{0} = s.{0}"),
            ")",
        ]
        return "\n".join(lines) + "\n"

    def _insert_many_sql(self, columns: List[ColumnDefinition]) -> str:
        outputs = [c for c in columns if c.is_readonly]
        insertable = [c for c in columns if not c.is_readonly]

        lines = [
            self._many_header("Insert", "Table"),
            "AS",
            f"INSERT INTO {self.table_name}",
        ]
        if insertable:
            lines += ["(", join_columns(insertable, ",", "{0}"), ")"]
        if outputs:
            lines += ["OUTPUT", join_columns(outputs, ",", "Inserted.{0}")]
        lines += [
            "SELECT",
            join_columns(insertable, ",", "{0}"),
            f"FROM @{self.parameter_name}",
        ]
        return "\n".join(lines) + "\n"

    def _update_many_sql(self, columns: List[ColumnDefinition]) -> str:
        keys = [c for c in columns if c.is_key]
        updatable = [c for c in columns if not c.is_key and not c.is_readonly]

        lines = [self._many_header("Update", "Table"), "AS"]
        if not updatable:
            lines.append(self._no_updatable_fields())
            return "\n".join(lines) + "\n"

        lines += [
            f"MERGE INTO {self.table_name} AS t",
            f"USING @{self.parameter_name} AS s",
            "ON",
            "(",
            join_columns(keys, " AND", "t.{0} = s.{0}"),
            ")",
            "WHEN MATCHED THEN UPDATE SET",
            join_columns(updatable, ",", "t.{0} = s.{0}"),
            ";",
        ]
        return "\n".join(lines) + "\n"

    def _upsert_many_sql(self, columns: List[ColumnDefinition]) -> str:
        keys = [c for c in columns if c.is_key]
        outputs = [c for c in columns if c.is_readonly]
        updatable = [c for c in columns if not c.is_key and not c.is_readonly]
        insertable = [c for c in columns if not c.is_readonly]

        lines = [self._many_header("Upsert", "Table"), "AS"]
        if not updatable:
            lines.append(self._no_updatable_fields())
            return "\n".join(lines) + "\n"

        lines += [
            f"MERGE INTO {self.table_name} AS t",
            f"USING @{self.parameter_name} AS s",
            "ON",
            "(",
            join_columns(keys, " AND", "t.{0} = s.{0}"),
            ")",
            "WHEN MATCHED THEN UPDATE SET",
            join_columns(updatable, ",", "t.{0} = s.{0}"),
            "WHEN NOT MATCHED BY TARGET THEN INSERT",
            "(",
            join_columns(insertable, ",", "{0}"),
            ")",
            "VALUES",
            "(",
            join_columns(insertable, ",", "s.{0}"),
            ")",
        ]
        if outputs:
            lines += ["OUTPUT", join_columns(outputs, ",", "Inserted.{0}")]
        lines.append(";")
        return "\n".join(lines) + "\n"

    def _delete_many_sql(self, columns: List[ColumnDefinition]) -> str:
        keys = [c for c in columns if c.is_key]
        lines = [
            self._many_header("Delete", "IdTable"),
            "AS",
            f"DELETE FROM {self.table_name}",
            f"\tFROM {self.table_name} AS t",
            f"JOIN @{self.parameter_name} AS s ON",
            "(",
            join_columns(keys, " AND", "t.{0} = s.{0}"),
            ")",
        ]
        return "\n".join(lines) + "\n"

    def _find_sql(self, columns: List[ColumnDefinition]) -> str:
        lines = [
            f"CREATE PROCEDURE {self.make_proc_name('Find', True)}",
            "(",
            join_columns(columns, ",", "{1} {2} = NULL") + ",",
            join_columns(columns, ",", "{1}Operator [varchar](5) = '='"),
            ")",
        ]
        if self.directive.execute_as_owner:
            lines.append("WITH EXECUTE AS OWNER")
        lines += [
            "AS",
            f"DECLARE @sql [nvarchar](MAX) = 'SELECT * FROM {self.table_name} WHERE 1=1'",
            join_columns(
                columns, "",
                "IF {1} IS NOT NULL SELECT @sql = @sql + ' AND {0} ' + {1}Operator + ' {1}'",
            ),
            "EXEC sp_executesql @sql, N'",
            join_columns(columns, ",", "{1} {2}"),
            "',",
            join_columns(columns, ",", "{1}={1}"),
        ]
        return "\n".join(lines) + "\n"

    # ==========================================================
    # УДАЛЕНИЕ
    # ==========================================================

    def _drop_proc_statement(self, verb: str, plural: bool) -> str:
        name = self.make_proc_name(verb, plural)
        return (
            f"IF EXISTS (SELECT * FROM sys.objects WHERE object_id = OBJECT_ID(N'{name}') "
            f"AND type in (N'P', N'PC')) DROP PROCEDURE {name}"
        )

    def _drop_type_statement(self, type_name: str) -> str:
        name = self.make_table_name(type_name)
        return (
            "IF EXISTS (SELECT * FROM sys.types st JOIN sys.schemas ss ON st.schema_id = ss.schema_id "
            f"WHERE st.name = N{quote_literal(unformat_sql_name(name))}) DROP TYPE {name}"
        )
