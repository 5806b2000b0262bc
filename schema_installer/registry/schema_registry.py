"""
Реестр установленных объектов схемы.

Хранится в самой целевой базе, в таблице Insight_SchemaRegistry.
Таблица создаётся и дополняется новыми колонками самим реестром,
в обход общего механизма сравнения.

Все строки читаются в память при создании; изменения копятся
и записываются одним commit() внутри транзакции вызывающей стороны.
"""

from __future__ import annotations

import logging
from contextlib import nullcontext
from typing import Callable, Dict, Iterable, List, Optional

from ..core.constants import SCHEMA_REGISTRY_TABLE
from ..core.exceptions import SchemaRegistryError
from ..core.models import RegistryEntry, SchemaObjectKind
from ..utils.naming import quote_literal

logger = logging.getLogger(__name__)


def quiet(connection):
    """Операторы внутри блока не попадают в журнал сценария."""
    suppress = getattr(connection, "suppress_log", None)
    return suppress() if suppress is not None else nullcontext()


class SchemaRegistry:

    def __init__(
        self,
        connection,
        schema_group: str,
        table_name: str = SCHEMA_REGISTRY_TABLE,
        auto_load: bool = True,
    ):
        if schema_group is None:
            raise SchemaRegistryError("Schema group is required")

        self.connection = connection
        self.schema_group = schema_group
        self.table_name = table_name
        self._entries: Dict[str, RegistryEntry] = {}

        if auto_load:
            self.ensure_table()
            self.load()

    # ==========================================================
    # ТАБЛИЦА РЕЕСТРА
    # ==========================================================

    def ensure_table(self) -> None:
        with quiet(self.connection):
            count = self.connection.scalar(
                "SELECT COUNT(*) FROM sys.objects WHERE name = ? AND type = 'U'", (self.table_name,)
            )
            if not count:
                logger.info("Creating schema registry table %s", self.table_name)
                self.connection.execute(self._create_table_sql())
            else:
                self.connection.execute(self._add_columns_sql())

    def _create_table_sql(self) -> str:
        t = self.table_name
        return (
            f"CREATE TABLE [{t}]\n"
            "(\n"
            "\t[SchemaGroup] [varchar](64) NOT NULL,\n"
            "\t[ObjectName] [varchar](256) NOT NULL,\n"
            "\t[Signature] [varchar](28) NOT NULL,\n"
            "\t[Type][varchar](32) NOT NULL,\n"
            "\t[OriginalOrder] [int] DEFAULT (0)\n"
            f"\tCONSTRAINT PK_{t} PRIMARY KEY ([ObjectName])\n"
            ")"
        )

    def _add_columns_sql(self) -> str:
        t = self.table_name
        return (
            "IF NOT EXISTS (SELECT * FROM sys.columns "
            f"WHERE object_id = OBJECT_ID({quote_literal(t)}) AND name = 'OriginalOrder')\n"
            f"\tALTER TABLE [{t}] ADD [OriginalOrder] [int]"
        )

    # ==========================================================
    # ЧТЕНИЕ
    # ==========================================================

    def load(self) -> List[RegistryEntry]:
        with quiet(self.connection):
            rows = self.connection.query(f"SELECT * FROM [{self.table_name}]")

        self._entries = {}
        for row in rows:
            entry = self._entry_from_row(row)
            self._entries[entry.object_name.lower()] = entry

        logger.debug("Loaded %d schema registry entries", len(self._entries))
        return self.entries()

    def _entry_from_row(self, row: dict) -> RegistryEntry:
        try:
            kind = SchemaObjectKind.from_name(row["Type"])
        except ValueError as e:
            raise SchemaRegistryError(str(e), schema_group=row.get("SchemaGroup")) from e

        return RegistryEntry(
            schema_group=row["SchemaGroup"],
            object_name=row["ObjectName"],
            kind=kind,
            signature=row.get("Signature") or "",
            original_order=int(row.get("OriginalOrder") or 0),
        )

    def contains(self, name: str) -> bool:
        return self.find(name) is not None

    def find(self, name: str) -> Optional[RegistryEntry]:
        """Запись группы реестра по имени без учёта регистра."""
        entry = self._entries.get((name or "").lower())
        if entry is None or entry.schema_group != self.schema_group:
            return None
        return entry

    def entries(self, schema_group: Optional[str] = None) -> List[RegistryEntry]:
        group = self.schema_group if schema_group is None else schema_group
        return [e for e in self._entries.values() if e.schema_group == group]

    # ==========================================================
    # ИЗМЕНЕНИЕ
    # ==========================================================

    def upsert(self, entry: RegistryEntry) -> None:
        self._entries[entry.object_name.lower()] = entry

    def delete(self, name: str) -> None:
        entry = self.find(name)
        if entry is not None:
            del self._entries[entry.object_name.lower()]

    def update(self, objects: Iterable, get_signature: Callable[[object], str]) -> None:
        """Записи группы заменяются набором objects."""
        for entry in self.entries():
            del self._entries[entry.object_name.lower()]

        for obj in objects:
            self.upsert(RegistryEntry(
                schema_group=self.schema_group,
                object_name=obj.name,
                kind=obj.kind,
                signature=get_signature(obj),
                original_order=obj.original_order,
            ))

    def commit(self) -> None:
        group = quote_literal(self.schema_group)
        self.connection.execute(f"DELETE FROM [{self.table_name}] WHERE [SchemaGroup] = {group}")

        for entry in sorted(self.entries(), key=lambda e: e.install_key()):
            self.connection.execute(
                f"INSERT INTO [{self.table_name}] ([SchemaGroup], [ObjectName], [Signature], [Type], [OriginalOrder]) "
                f"VALUES ({group}, {quote_literal(entry.object_name)}, {quote_literal(entry.signature)}, "
                f"{quote_literal(entry.kind.value)}, {int(entry.original_order)})"
            )

        logger.info("Schema registry updated for group %s (%d objects)", self.schema_group, len(self.entries()))
