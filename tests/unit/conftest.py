"""
Общие фикстуры модульных тестов.

FakeConnection отвечает на запросы по подстроке SQL и записывает
выполненные операторы; FakeCatalog и FakeColumnProvider заменяют
чтение системного каталога SQL Server.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from schema_installer.core.models import ColumnDefinition, SchemaObjectKind


class FakeConnection:
    """
    Соединение без базы.

    on_scalar / on_query — ответ на запрос, содержащий подстроку;
    значение может быть функцией от параметров. Последнее правило важнее.
    """

    def __init__(self, default_scalar: Any = 1):
        self.default_scalar = default_scalar
        self.executed: List[str] = []
        self.scalar_calls: List[Tuple[str, Tuple]] = []
        self.commits = 0
        self.rollbacks = 0
        self.fail_on: Optional[str] = None
        self._scalars: List[Tuple[str, Any]] = []
        self._queries: List[Tuple[str, Any]] = []

    def on_scalar(self, fragment: str, value: Any) -> "FakeConnection":
        self._scalars.insert(0, (fragment, value))
        return self

    def on_query(self, fragment: str, rows: Any) -> "FakeConnection":
        self._queries.insert(0, (fragment, rows))
        return self

    def execute(self, sql: str) -> int:
        if self.fail_on is not None and self.fail_on in sql:
            raise RuntimeError(f"execution failed: {self.fail_on}")
        self.executed.append(sql)
        return 0

    def query(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        for fragment, rows in self._queries:
            if fragment in sql:
                return list(rows(tuple(params)) if callable(rows) else rows)
        return []

    def scalar(self, sql: str, params: Sequence[Any] = ()) -> Any:
        self.scalar_calls.append((sql, tuple(params)))
        for fragment, value in self._scalars:
            if fragment in sql:
                return value(tuple(params)) if callable(value) else value
        return self.default_scalar

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1


class FakeCatalog:
    """Каталог без зависимостей; словари заполняются в тестах."""

    def __init__(self):
        self.columns: Dict[str, list] = {}
        self.defaults: Dict[str, list] = {}
        self.data_spaces: Dict[str, int] = {}
        self.dependencies: Dict[str, list] = {}
        self.modules: Dict[str, str] = {}
        self.checks: Dict[str, Any] = {}
        self.permissions: Dict[str, list] = {}
        self.role_permissions: Dict[str, list] = {}
        self.foreign_keys: Dict[str, list] = {}
        self.object_ids: Dict[str, int] = {}
        self.index_owners: Dict[str, int] = {}
        self.index_map: Dict[Tuple[int, Optional[str]], list] = {}
        self.xml_by_primary: Dict[str, list] = {}
        self.xml_by_table: Dict[str, list] = {}

    @staticmethod
    def _shadow(name: str) -> bool:
        return "Insight__tmp_" in name

    def _by_table(self, source: Dict[str, list], table_name: str) -> list:
        # теневая таблица отвечает под ключом "shadow"
        key = "shadow" if self._shadow(table_name) else table_name
        return list(source.get(key, []))

    def table_columns(self, table_name):
        return self._by_table(self.columns, table_name)

    def default_constraints(self, table_name):
        return self._by_table(self.defaults, table_name)

    def data_space_id(self, table_name):
        key = "shadow" if self._shadow(table_name) else table_name
        return self.data_spaces.get(key, 1)

    def object_id(self, name):
        return self.object_ids.get(name)

    def expression_dependencies(self, object_name):
        return list(self.dependencies.get(object_name, []))

    def module_definition(self, name):
        return self.modules.get(name)

    def check_constraint(self, name):
        return self.checks.get(name)

    def permissions_on(self, object_name):
        return list(self.permissions.get(object_name, []))

    def permissions_of(self, principal_name):
        return list(self.role_permissions.get(principal_name, []))

    def foreign_keys_referencing(self, key_name):
        return list(self.foreign_keys.get(key_name, []))

    def index_owner_id(self, index_name):
        return self.index_owners.get(index_name)

    def indexes(self, object_id, column_name=None):
        if object_id is None:
            return []
        return list(self.index_map.get((object_id, column_name), []))

    def xml_indexes_of_primary(self, index_name):
        return list(self.xml_by_primary.get(index_name, []))

    def xml_indexes_of_table(self, table_name):
        return list(self.xml_by_table.get(table_name, []))


class FakeColumnProvider:
    def __init__(self, columns: Optional[Dict[str, List[ColumnDefinition]]] = None):
        self.columns = columns or {}

    def get_columns(self, table_name: str) -> List[ColumnDefinition]:
        return list(self.columns.get(table_name, []))


def registry_row(name: str, kind: SchemaObjectKind, signature: str, group: str = "test", order: int = 0) -> dict:
    return {
        "SchemaGroup": group,
        "ObjectName": name,
        "Signature": signature,
        "Type": kind.value,
        "OriginalOrder": order,
    }


def beer_columns() -> List[ColumnDefinition]:
    return [
        ColumnDefinition("ID", "int", is_key=True, is_identity=True, is_readonly=True),
        ColumnDefinition("Name", "nvarchar(128)"),
        ColumnDefinition("Style", "varchar(32)"),
    ]


@pytest.fixture
def connection():
    return FakeConnection()


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def column_provider():
    return FakeColumnProvider({"[Beer]": beer_columns()})

