"""
Изменение таблицы на месте без сценария обновления.

Новое определение создаётся как теневая таблица Insight__tmp_<ticks>
(её ограничения переименовываются, чтобы не конфликтовать с живыми),
каталог сравнивает её с живой таблицей, и по разнице строятся
ALTER TABLE ... DROP COLUMN / ADD / ALTER COLUMN. Теневая таблица
удаляется в любом случае.
"""

from __future__ import annotations

import logging
import re
import time
from typing import List

from ..catalog.rows import DefaultConstraint, TableColumn
from ..catalog.sql_catalog import SqlCatalog
from ..core.constants import TEMP_TABLE_PREFIX
from ..core.exceptions import UnsupportedOperationError
from ..core.models import RegistryEntry, SchemaObjectKind
from ..registry.schema_registry import quiet
from ..schema.schema_object import SchemaObject
from ..utils.naming import SQL_NAME_EXPRESSION, format_sql_name, unformat_sql_name
from .dependencies import DependencyScripter
from .plan import InstallContext

logger = logging.getLogger(__name__)

_CREATE_TABLE_RE = re.compile(rf"CREATE\s+TABLE\s+{SQL_NAME_EXPRESSION}", re.IGNORECASE)
_CONSTRAINT_RE = re.compile(rf"CONSTRAINT\s+({SQL_NAME_EXPRESSION})", re.IGNORECASE)


def shadow_table_name() -> str:
    # тики по 100 нс, как у отметок времени .NET
    return TEMP_TABLE_PREFIX + str(time.time_ns() // 100)


def shadow_table_sql(sql: str, shadow_name: str) -> str:
    """Определение таблицы под именем теневой таблицы и с переименованными ограничениями."""
    sql = _CREATE_TABLE_RE.sub(lambda m: "CREATE TABLE " + shadow_name, sql)
    return _CONSTRAINT_RE.sub(
        lambda m: "CONSTRAINT " + format_sql_name(TEMP_TABLE_PREFIX + unformat_sql_name(m.group(1))),
        sql,
    )


class TableMigrator:

    def __init__(self, connection, catalog: SqlCatalog, dependencies: DependencyScripter):
        self.connection = connection
        self.catalog = catalog
        self.dependencies = dependencies

    # ==========================================================
    # PUBLIC API
    # ==========================================================

    def migrate(self, context: InstallContext, table: SchemaObject) -> None:
        """Планирует изменение таблицы: удаления в context.drops, ALTER в context.adds."""
        old_name = table.name
        new_name = shadow_table_name()
        logger.debug("Comparing table %s with shadow table %s", old_name, new_name)

        try:
            with quiet(self.connection):
                self.connection.execute(shadow_table_sql(table.sql, new_name))

            old_space = self.catalog.data_space_id(old_name)
            new_space = self.catalog.data_space_id(new_name)
            if old_space != new_space:
                raise UnsupportedOperationError(
                    f"Cannot move table {old_name} to another filegroup or partition", object_name=old_name
                )

            # ограничения раньше колонок: умолчания зависят от колонок
            self.script_constraints(context, old_name, new_name)
            self.script_columns(context, table, old_name, new_name)
        finally:
            try:
                with quiet(self.connection):
                    self.connection.execute(f"DROP TABLE {new_name}")
            except Exception as e:
                logger.warning("Cannot drop shadow table %s: %s", new_name, e)

        context.modified_tables.append(old_name)

    # ==========================================================
    # УМОЛЧАНИЯ
    # ==========================================================

    def script_constraints(self, context: InstallContext, old_name: str, new_name: str) -> None:
        """
        Сравнение умолчаний колонок: по колонке, затем по имени
        (или оба имени системные). Умолчания, описанные отдельными
        объектами Default, сюда не входят.
        """
        old = [
            c for c in self.catalog.default_constraints(old_name)
            if not context.registry.contains(self._default_name(old_name, c))
        ]
        new = self.catalog.default_constraints(new_name)

        missing = [o for o in old if not any(o.matches(n) for n in new)]
        added = [n for n in new if not any(n.matches(o) for o in old)]

        for n in new:
            match = next((o for o in old if n.matches(o)), None)
            if match is not None and match.definition != n.definition:
                missing.append(match)
                added.append(n)

        for constraint in missing:
            name = self._default_name(old_name, constraint)
            if not context.is_scheduled_for_drop(name):
                context.drops.append(RegistryEntry(
                    schema_group=context.schema_group,
                    object_name=name,
                    kind=SchemaObjectKind.DEFAULT,
                ))

        if added:
            sql = f"ALTER TABLE {format_sql_name(old_name)} ADD" + ",".join(c.definition_sql() for c in added)
            context.add_table_alter(SchemaObject(SchemaObjectKind.DEFAULT, old_name, sql))

    @staticmethod
    def _default_name(table_name: str, constraint: DefaultConstraint) -> str:
        return f"{format_sql_name(table_name)}.{format_sql_name(constraint.column_name)}"

    # ==========================================================
    # КОЛОНКИ
    # ==========================================================

    def script_columns(self, context: InstallContext, table: SchemaObject, old_name: str, new_name: str) -> None:
        old_columns = self.catalog.table_columns(old_name)
        new_columns = self.catalog.table_columns(new_name)
        old_by_name = {c.name: c for c in old_columns}
        new_names = {c.name for c in new_columns}

        missing: List[TableColumn] = [c for c in old_columns if c.name not in new_names]
        added: List[TableColumn] = [c for c in new_columns if c.name not in old_by_name]
        changed: List[TableColumn] = [
            c for c in new_columns
            if c.name in old_by_name and not old_by_name[c.name].same_shape(c)
        ]

        # вычисляемую колонку нельзя изменить, только пересоздать
        for column in [c for c in changed if c.is_computed]:
            missing.append(column)
            added.append(column)
            changed.remove(column)

        table_sql = format_sql_name(old_name)

        if missing:
            sql = f"ALTER TABLE {table_sql} DROP" + ",".join(
                f" COLUMN {format_sql_name(c.name)}" for c in missing
            )
            context.add_table_alter(SchemaObject(SchemaObjectKind.TABLE, old_name, sql))

        if added:
            sql = f"ALTER TABLE {table_sql} ADD " + ", ".join(c.definition_sql() for c in added)
            context.add_table_alter(SchemaObject(SchemaObjectKind.TABLE, old_name, sql))

        for column in changed:
            self.dependencies.script_indexes(context, table, column.name)
            sql = f"ALTER TABLE {table_sql} ALTER COLUMN {column.definition_sql()}"
            context.add_table_alter(SchemaObject(SchemaObjectKind.TABLE, old_name, sql))

        logger.debug(
            "Table %s: %d dropped, %d added, %d altered columns",
            old_name, len(missing), len(added), len(changed),
        )
