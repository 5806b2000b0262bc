"""
Модульные тесты SchemaInstaller.

Покрывают:
- первую и повторную установку, удалённые объекты
- изменённые объекты вместе с зависимостями
- изменение таблиц на месте
- восстановление отсутствующих объектов и проверку
- пробные прогоны, планы и сравнение
- транзакции, ошибки и настройки
"""

import re

import pytest

from conftest import FakeCatalog, FakeColumnProvider, FakeConnection, beer_columns, registry_row
from schema_installer.catalog.rows import PermissionInfo, TableColumn
from schema_installer.core.exceptions import (
    ConfigurationError,
    SchemaExecutionError,
    SchemaValidationError,
    SchemaVerificationError,
)
from schema_installer.core.models import SchemaObjectKind
from schema_installer.install.events import SchemaEventType
from schema_installer.install.planner import SchemaInstaller
from schema_installer.utils.signature import calculate_signature

TABLE = "CREATE TABLE [Beer] ([ID] int)"
VIEW = "CREATE VIEW [BeerView] AS SELECT [ID] FROM [Beer]"
AUTOPROC = "-- AUTOPROC All [Beer]"


def registered(*rows):
    connection = FakeConnection()
    connection.on_query("Insight_SchemaRegistry", list(rows))
    return connection


def make_installer(connection, catalog=None, column_provider=None, config=None):
    events = []
    installer = SchemaInstaller(
        connection,
        config=config,
        catalog=catalog or FakeCatalog(),
        column_provider=column_provider or FakeColumnProvider({"[Beer]": beer_columns()}),
        listeners=[events.append],
    )
    return installer, events


def created(connection):
    return [sql for sql in connection.executed if sql.startswith(("CREATE", "GRANT", "ALTER TABLE [Beer]"))]


def registry_inserts(connection):
    return [sql for sql in connection.executed if sql.startswith("INSERT INTO [Insight_SchemaRegistry]")]


class TestInstall:
    """Тесты install()."""

    def test_fresh_install(self):
        connection = registered()
        installer, events = make_installer(connection)

        plan = installer.install("test", [VIEW, TABLE])

        assert [o.name for o in plan.adds] == ["[Beer]", "[BeerView]"]
        assert created(connection) == [TABLE, VIEW]
        assert len(registry_inserts(connection)) == 2
        assert connection.commits == 1
        assert connection.rollbacks == 0
        assert [(e.event_type, e.object_name) for e in events] == [
            (SchemaEventType.BEFORE_CREATE, "[Beer]"),
            (SchemaEventType.AFTER_CREATE, "[Beer]"),
            (SchemaEventType.BEFORE_CREATE, "[BeerView]"),
            (SchemaEventType.AFTER_CREATE, "[BeerView]"),
        ]

    def test_registry_rows(self):
        connection = registered()
        installer, _ = make_installer(connection)

        installer.install("test", [TABLE])

        assert "DELETE FROM [Insight_SchemaRegistry] WHERE [SchemaGroup] = 'test'" in connection.executed
        assert registry_inserts(connection) == [
            "INSERT INTO [Insight_SchemaRegistry] ([SchemaGroup], [ObjectName], [Signature], [Type], [OriginalOrder]) "
            f"VALUES ('test', '[Beer]', '{calculate_signature(TABLE)}', 'Table', 0)"
        ]

    def test_repeated_install_changes_nothing(self):
        connection = registered(
            registry_row("[Beer]", SchemaObjectKind.TABLE, calculate_signature(TABLE), order=0),
            registry_row("[BeerView]", SchemaObjectKind.VIEW, calculate_signature(VIEW), order=1),
        )
        installer, events = make_installer(connection)

        plan = installer.install("test", [TABLE, VIEW])

        assert not plan.has_changes
        assert plan.unchanged == 2
        assert created(connection) == []
        assert events == []

    def test_removed_object_is_dropped(self):
        connection = registered(
            registry_row("[Beer]", SchemaObjectKind.TABLE, calculate_signature(TABLE)),
            registry_row("[OldView]", SchemaObjectKind.VIEW, "sig", order=1),
        )
        installer, events = make_installer(connection)

        plan = installer.install("test", [TABLE])

        assert [e.object_name for e in plan.drops] == ["[OldView]"]
        assert "DROP VIEW [OldView]" in connection.executed
        assert [e.event_type for e in events] == [SchemaEventType.BEFORE_DROP]
        assert len(registry_inserts(connection)) == 1

    def test_changed_view_is_recreated_with_permissions(self):
        """Разрешения на изменённое представление отзываются и выдаются снова."""
        connection = registered(
            registry_row("[Beer]", SchemaObjectKind.TABLE, calculate_signature(TABLE)),
            registry_row("[BeerView]", SchemaObjectKind.VIEW, "old", order=1),
        )
        catalog = FakeCatalog()
        catalog.permissions["BeerView"] = [PermissionInfo("public", "SELECT", "OBJECT_OR_COLUMN", "BeerView")]
        installer, _ = make_installer(connection, catalog)

        plan = installer.install("test", [TABLE, VIEW])

        executed = connection.executed
        assert executed.index("REVOKE SELECT ON [BeerView] TO [public]") < executed.index("DROP VIEW [BeerView]")
        assert created(connection) == [VIEW, "GRANT SELECT ON [BeerView] TO [public] -- DEPENDENCY"]
        assert plan.changed == ["[BeerView]"]
        assert plan.unchanged == 1
        # зависимости в реестр не попадают
        assert len(registry_inserts(connection)) == 2

    def test_changed_table_is_altered(self):
        connection = registered(registry_row("[Beer]", SchemaObjectKind.TABLE, "old"))
        catalog = FakeCatalog()
        catalog.columns["[Beer]"] = [TableColumn("ID", 1, "int")]
        catalog.columns["shadow"] = [TableColumn("ID", 1, "int"), TableColumn("Name", 2, "nvarchar", 256)]
        installer, events = make_installer(connection, catalog)

        plan = installer.install("test", ["CREATE TABLE [Beer] ([ID] int, [Name] nvarchar(128))"])

        assert "ALTER TABLE [Beer] ADD [Name] nvarchar(128)" in connection.executed
        assert not any(sql.startswith("DROP TABLE [Beer]") for sql in connection.executed)
        assert plan.modified_tables == ["[Beer]"]
        assert [e.event_type for e in events] == [
            SchemaEventType.BEFORE_TABLE_UPDATE,
            SchemaEventType.AFTER_TABLE_UPDATE,
        ]

    def test_missing_object_is_repaired(self):
        connection = registered(registry_row("[Beer]", SchemaObjectKind.TABLE, calculate_signature(TABLE)))
        connection.on_scalar("sys.tables", 0)
        installer, events = make_installer(connection, config={"verify": False})

        plan = installer.install("test", [TABLE])

        assert plan.missing == ["[Beer]"]
        assert created(connection) == [TABLE]
        assert events[0].event_type == SchemaEventType.MISSING_OBJECT

    def test_missing_object_without_repair(self):
        connection = registered(registry_row("[Beer]", SchemaObjectKind.TABLE, calculate_signature(TABLE)))
        connection.on_scalar("sys.tables", 0)
        installer, _ = make_installer(connection, config={"verify": False, "repair_missing": False})

        plan = installer.install("test", [TABLE])

        assert plan.missing == []
        assert created(connection) == []

    def test_verification_failure(self):
        connection = registered()
        connection.on_scalar("sys.views", 0)
        installer, _ = make_installer(connection)

        with pytest.raises(SchemaVerificationError):
            installer.install("test", [TABLE, VIEW])

        assert connection.rollbacks == 1
        assert connection.commits == 0

    def test_execution_error_rolls_back(self):
        connection = registered()
        connection.fail_on = "CREATE VIEW"
        installer, _ = make_installer(connection)

        with pytest.raises(SchemaExecutionError, match=r"Cannot create SQL object \[BeerView\]"):
            installer.install("test", [TABLE, VIEW])

        assert connection.rollbacks == 1
        assert registry_inserts(connection) == []

    def test_drop_error(self):
        connection = registered(registry_row("[OldView]", SchemaObjectKind.VIEW, "sig"))
        connection.fail_on = "DROP VIEW"
        installer, _ = make_installer(connection)

        with pytest.raises(SchemaExecutionError, match=r"Cannot drop SQL object \[OldView\]"):
            installer.install("test", [])

    @pytest.mark.parametrize("group,objects", [(None, [TABLE]), ("test", None)])
    def test_required_arguments(self, group, objects):
        installer, _ = make_installer(registered())
        with pytest.raises(SchemaValidationError):
            installer.install(group, objects)

    def test_duplicate_objects(self):
        installer, _ = make_installer(registered())
        with pytest.raises(SchemaValidationError):
            installer.install("test", [TABLE, TABLE])

    def test_auto_proc(self):
        connection = registered()
        installer, _ = make_installer(connection)

        installer.install("test", [TABLE, AUTOPROC])

        assert any("CREATE PROCEDURE [InsertBeer]" in sql for sql in connection.executed)
        assert any("CREATE PROCEDURE [SelectBeers]" in sql for sql in connection.executed)

    def test_stats(self):
        installer, _ = make_installer(registered())
        installer.install("test", [TABLE])
        assert installer.stats["total_time"] >= installer.stats["create_time"]


class TestConfiguration:
    """Настройки установщика."""

    def test_defaults(self):
        installer, _ = make_installer(registered())
        assert installer.config["repair_missing"] is True
        assert installer.config["registry_table"] == "Insight_SchemaRegistry"

    def test_unknown_option(self):
        with pytest.raises(ConfigurationError) as e:
            make_installer(registered(), config={"verfy": False})
        assert e.value.details == {"config_key": "verfy"}

    @pytest.mark.parametrize("table", ["", "Registry]; DROP TABLE [x", None])
    def test_invalid_registry_table(self, table):
        with pytest.raises(ConfigurationError):
            make_installer(registered(), config={"registry_table": table})

    def test_custom_registry_table(self):
        connection = registered()
        installer, _ = make_installer(connection, config={"registry_table": "AppRegistry"})

        installer.install("test", [TABLE])

        assert any(sql.startswith("INSERT INTO [AppRegistry]") for sql in connection.executed)


class TestUninstall:
    """Тесты uninstall()."""

    def test_drops_in_reverse_order(self):
        connection = registered(
            registry_row("[Beer]", SchemaObjectKind.TABLE, "a"),
            registry_row("[BeerView]", SchemaObjectKind.VIEW, "b", order=1),
        )
        installer, _ = make_installer(connection)

        plan = installer.uninstall("test")

        assert [e.object_name for e in plan.drops] == ["[BeerView]", "[Beer]"]
        executed = connection.executed
        assert executed.index("DROP VIEW [BeerView]") < executed.index("DROP TABLE [Beer]")
        assert registry_inserts(connection) == []

    def test_other_groups_are_kept(self):
        connection = registered(registry_row("[Other]", SchemaObjectKind.TABLE, "a", group="other"))
        installer, _ = make_installer(connection)

        plan = installer.uninstall("test")

        assert plan.drops == []


class TestDryRun:
    """Тесты script_changes() и plan()."""

    def test_script_changes(self):
        connection = registered()
        installer, _ = make_installer(connection)

        script = installer.script_changes("test", [TABLE])

        assert script.startswith(f"{TABLE}\nGO\n")
        assert "DELETE FROM [Insight_SchemaRegistry]" in script
        assert created(connection) == []
        assert connection.rollbacks == 1
        assert connection.commits == 0

    def test_script_changes_skips_internal_statements(self):
        """Проверки реестра и теневые таблицы не входят в скрипт."""
        connection = registered(registry_row("[Beer]", SchemaObjectKind.TABLE, "old"))
        catalog = FakeCatalog()
        catalog.columns["[Beer]"] = [TableColumn("ID", 1, "int")]
        catalog.columns["shadow"] = [TableColumn("ID", 1, "int", is_nullable=False)]
        installer, _ = make_installer(connection, catalog)

        script = installer.script_changes("test", ["CREATE TABLE [Beer] ([ID] int NOT NULL)"])

        assert "ALTER TABLE [Beer] ALTER COLUMN [ID] int NOT NULL\nGO\n" in script
        assert "Insight__tmp_" not in script
        assert "OriginalOrder')" not in script

    def test_script_auto_proc_without_table(self):
        connection = registered()
        installer, _ = make_installer(connection, column_provider=FakeColumnProvider())

        script = installer.script_changes("test", [TABLE, AUTOPROC])

        assert f"{AUTOPROC}\nGO\n" in script

    def test_plan(self):
        connection = registered(registry_row("[OldView]", SchemaObjectKind.VIEW, "sig"))
        installer, _ = make_installer(connection)

        plan = installer.plan("test", [TABLE])

        assert [o.name for o in plan.adds] == ["[Beer]"]
        assert [e.object_name for e in plan.drops] == ["[OldView]"]
        assert created(connection) == []
        assert "DROP VIEW [OldView]" not in connection.executed
        assert connection.rollbacks == 1


class TestDiff:
    """Тесты diff()."""

    def test_no_changes(self):
        connection = registered(registry_row("[Beer]", SchemaObjectKind.TABLE, calculate_signature(TABLE)))
        installer, _ = make_installer(connection)
        assert installer.diff("test", [TABLE]) is False

    def test_new_object(self):
        installer, _ = make_installer(registered())
        assert installer.diff("test", [TABLE]) is True

    def test_removed_object(self):
        connection = registered(
            registry_row("[Beer]", SchemaObjectKind.TABLE, calculate_signature(TABLE)),
            registry_row("[OldView]", SchemaObjectKind.VIEW, "sig"),
        )
        installer, _ = make_installer(connection)
        assert installer.diff("test", [TABLE]) is True

    def test_changed_object(self):
        connection = registered(registry_row("[Beer]", SchemaObjectKind.TABLE, "old"))
        installer, _ = make_installer(connection)
        assert installer.diff("test", [TABLE]) is True

    def test_auto_proc_signature_follows_table(self):
        """AutoProc не изменён, пока не изменено определение его таблицы."""
        connection = registered()
        installer, _ = make_installer(connection)
        installer.install("test", [TABLE, AUTOPROC])

        installer, _ = make_installer(registered(*installed_rows(connection)))
        assert installer.diff("test", [TABLE, AUTOPROC]) is False

    def test_no_changes_when_key_precedes_table(self):
        """Порядок объектов в исходном тексте не влияет на подпись AutoProc."""
        objects = [
            AUTOPROC,
            "ALTER TABLE [Beer] ADD CONSTRAINT [PK_Beer] PRIMARY KEY ([ID])",
            "CREATE TABLE [Beer] ([ID] int NOT NULL)",
        ]
        connection = registered()
        installer, _ = make_installer(connection)
        installer.install("test", objects)

        installer, _ = make_installer(registered(*installed_rows(connection)))
        assert installer.diff("test", objects) is False


_INSERT_VALUES_RE = re.compile(r"VALUES \('(.*?)', '(.*?)', '(.*?)', '(.*?)', (\d+)\)$")


def installed_rows(connection):
    """Строки реестра, записанные установкой, в виде результата SELECT."""
    rows = []
    for sql in registry_inserts(connection):
        group, name, signature, kind, order = _INSERT_VALUES_RE.search(sql).groups()
        rows.append(registry_row(name, SchemaObjectKind(kind), signature, group, int(order)))
    return rows
