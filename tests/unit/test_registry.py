"""
Модульные тесты реестра схемы.

Покрывают:
- создание и обновление таблицы реестра
- загрузку записей по группе схемы
- замену записей группы и их запись в базу
"""

import pytest

from conftest import FakeConnection, registry_row

from schema_installer.connection.base import RecordingConnection
from schema_installer.core.exceptions import SchemaRegistryError
from schema_installer.core.models import RegistryEntry, SchemaObjectKind
from schema_installer.registry.schema_registry import SchemaRegistry, quiet
from schema_installer.schema.schema_object import SchemaObject


ROWS = [
    registry_row("[Beer]", SchemaObjectKind.TABLE, "sig-beer", order=0),
    registry_row("[GetBeer]", SchemaObjectKind.STORED_PROCEDURE, "sig-get", order=1),
    registry_row("[Wine]", SchemaObjectKind.TABLE, "sig-wine", group="other"),
]


@pytest.fixture
def connection():
    return FakeConnection().on_query("SELECT * FROM [Insight_SchemaRegistry]", ROWS)


class TestRegistryTable:
    """Сама таблица реестра."""

    def test_creates_missing_table(self):
        connection = FakeConnection().on_scalar("type = 'U'", 0)
        SchemaRegistry(connection, "test")
        assert connection.executed[0].startswith("CREATE TABLE [Insight_SchemaRegistry]")
        assert "[OriginalOrder] [int] DEFAULT (0)" in connection.executed[0]
        assert "PRIMARY KEY ([ObjectName])" in connection.executed[0]

    def test_adds_order_column_to_existing_table(self):
        connection = FakeConnection()
        SchemaRegistry(connection, "test")
        assert "ALTER TABLE [Insight_SchemaRegistry] ADD [OriginalOrder] [int]" in connection.executed[0]

    def test_custom_table_name(self):
        connection = FakeConnection().on_scalar("type = 'U'", 0)
        SchemaRegistry(connection, "test", table_name="MyRegistry")
        assert connection.executed[0].startswith("CREATE TABLE [MyRegistry]")

    def test_table_setup_is_not_scripted(self):
        """Обслуживание реестра не попадает в скрипт изменений."""
        recording = RecordingConnection(FakeConnection().on_scalar("type = 'U'", 0))
        SchemaRegistry(recording, "test")
        assert recording.script_log == []
        assert len(recording.inner.executed) == 1

    def test_group_is_required(self):
        with pytest.raises(SchemaRegistryError):
            SchemaRegistry(FakeConnection(), None)

    def test_no_auto_load(self):
        connection = FakeConnection()
        registry = SchemaRegistry(connection, "test", auto_load=False)
        assert connection.executed == []
        assert registry.entries() == []


class TestRegistryEntries:
    """Чтение записей."""

    def test_load_group_entries(self, connection):
        registry = SchemaRegistry(connection, "test")
        names = [e.object_name for e in registry.entries()]
        assert names == ["[Beer]", "[GetBeer]"]

    def test_entries_of_other_group(self, connection):
        registry = SchemaRegistry(connection, "test")
        assert [e.object_name for e in registry.entries("other")] == ["[Wine]"]

    def test_find_ignores_case(self, connection):
        registry = SchemaRegistry(connection, "test")
        entry = registry.find("[BEER]")
        assert entry.kind == SchemaObjectKind.TABLE
        assert entry.signature == "sig-beer"
        assert registry.contains("[getbeer]")

    def test_find_only_own_group(self, connection):
        """Объекты других групп не видны."""
        registry = SchemaRegistry(connection, "test")
        assert registry.find("[Wine]") is None

    def test_kind_names_ignore_case(self):
        """Типы читаются по имени без учёта регистра."""
        rows = [dict(registry_row("[p]", SchemaObjectKind.STORED_PROCEDURE, "s"), Type="storedprocedure")]
        connection = FakeConnection().on_query("SELECT * FROM", rows)
        entry = SchemaRegistry(connection, "test").find("[p]")
        assert entry.kind == SchemaObjectKind.STORED_PROCEDURE

    def test_unknown_kind(self):
        rows = [dict(registry_row("[x]", SchemaObjectKind.TABLE, "s"), Type="Sandwich")]
        connection = FakeConnection().on_query("SELECT * FROM", rows)
        with pytest.raises(SchemaRegistryError):
            SchemaRegistry(connection, "test")

    def test_missing_order_defaults_to_zero(self):
        rows = [dict(registry_row("[x]", SchemaObjectKind.TABLE, "s"), OriginalOrder=None)]
        connection = FakeConnection().on_query("SELECT * FROM", rows)
        assert SchemaRegistry(connection, "test").find("[x]").original_order == 0


class TestRegistryUpdate:
    """Обновление и фиксация записей."""

    def test_update_replaces_group(self, connection):
        registry = SchemaRegistry(connection, "test")
        objects = [
            SchemaObject.parse("CREATE TABLE [Beer] ([ID] int)", 0),
            SchemaObject.parse("CREATE VIEW [BeerView] AS SELECT 1", 1),
        ]
        registry.update(objects, lambda o: "new-" + o.name)

        assert [e.object_name for e in registry.entries()] == ["[Beer]", "[BeerView]"]
        assert registry.find("[Beer]").signature == "new-[Beer]"
        assert registry.find("[GetBeer]") is None
        assert [e.object_name for e in registry.entries("other")] == ["[Wine]"]

    def test_commit_rewrites_group(self, connection):
        registry = SchemaRegistry(connection, "test")
        connection.executed.clear()
        registry.commit()

        assert connection.executed[0] == "DELETE FROM [Insight_SchemaRegistry] WHERE [SchemaGroup] = 'test'"
        assert len(connection.executed) == 3
        assert "VALUES ('test', '[Beer]', 'sig-beer', 'Table', 0)" in connection.executed[1]
        assert "VALUES ('test', '[GetBeer]', 'sig-get', 'StoredProcedure', 1)" in connection.executed[2]

    def test_commit_quotes_literals(self):
        connection = FakeConnection()
        registry = SchemaRegistry(connection, "o'group", auto_load=False)
        registry.upsert(RegistryEntry("o'group", "[Beer]", SchemaObjectKind.TABLE, "sig"))
        registry.commit()
        assert "WHERE [SchemaGroup] = 'o''group'" in connection.executed[0]

    def test_upsert_and_delete(self):
        registry = SchemaRegistry(FakeConnection(), "test", auto_load=False)
        registry.upsert(RegistryEntry("test", "[Beer]", SchemaObjectKind.TABLE, "a"))
        registry.upsert(RegistryEntry("test", "[BEER]", SchemaObjectKind.TABLE, "b"))
        assert len(registry.entries()) == 1
        assert registry.find("[beer]").signature == "b"
        registry.delete("[Beer]")
        assert registry.entries() == []


class TestQuiet:
    def test_plain_connection(self):
        """quiet() принимает подключения без журнала скрипта."""
        connection = FakeConnection()
        with quiet(connection):
            connection.execute("SELECT 1")
        assert connection.executed == ["SELECT 1"]
