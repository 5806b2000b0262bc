"""
Модульные тесты строк каталога и читателей каталога.

Покрывают:
- форматирование типов с длиной, точностью и масштабом
- определения столбцов и значений по умолчанию для миграции таблиц
- восстановленные команды CREATE / ALTER для зависимостей
- SqlCatalog и SqlColumnProvider поверх фиктивного подключения
"""

import pytest

from conftest import FakeConnection

from schema_installer.catalog.rows import (
    CheckConstraint,
    DefaultConstraint,
    ForeignKeyInfo,
    IndexInfo,
    PermissionInfo,
    TableColumn,
    XmlIndexInfo,
    format_type,
)
from schema_installer.catalog.sql_catalog import SqlCatalog, SqlColumnProvider
from schema_installer.connection.base import RecordingConnection
from schema_installer.core.models import SchemaObjectKind
from schema_installer.parser.classifier import default_classifier


def column(name="Name", type_name="nvarchar", max_length=256, column_id=2, **kwargs):
    return TableColumn(name=name, column_id=column_id, type_name=type_name, max_length=max_length, **kwargs)


class TestFormatType:
    """Тесты format_type."""

    @pytest.mark.parametrize("args,expected", [
        (("nvarchar", 256, 0, 0), "nvarchar(128)"),
        (("nchar", 20, 0, 0), "nchar(10)"),
        (("varchar", 50, 0, 0), "varchar(50)"),
        (("varbinary", -1, 0, 0), "varbinary(MAX)"),
        (("nvarchar", -1, 0, 0), "nvarchar(MAX)"),
        (("decimal", 9, 18, 2), "decimal(18, 2)"),
        (("numeric", 5, 10, 0), "numeric(10, 0)"),
        (("datetime2", 8, 27, 7), "datetime2(7)"),
        (("time", 5, 16, 7), "time(7)"),
        (("int", 4, 10, 0), "int"),
        (("uniqueidentifier", 16, 0, 0), "uniqueidentifier"),
    ])
    def test_format(self, args, expected):
        assert format_type(*args) == expected


class TestTableColumn:
    """Тесты TableColumn."""

    def test_from_row(self):
        row = {
            "Name": "ID", "ColumnID": 1, "TypeName": "int", "MaxLength": 4, "Precision": 10, "Scale": 0,
            "IsNullable": 0, "IsIdentity": 1, "IdentitySeed": 1, "IdentityIncrement": 1, "Definition": None,
        }
        col = TableColumn.from_row(row)
        assert col.definition_sql() == "[ID] int IDENTITY (1, 1) NOT NULL"
        assert not col.is_computed

    def test_nullable_column(self):
        assert column().definition_sql() == "[Name] nvarchar(128)"

    def test_computed_column(self):
        col = column("Total", "int", 4, definition="([Price]*[Quantity])")
        assert col.is_computed
        assert col.definition_sql() == "[Total] AS ([Price]*[Quantity])"

    def test_same_shape(self):
        assert column().same_shape(column(column_id=5))
        assert not column().same_shape(column(max_length=512))
        assert not column().same_shape(column(is_nullable=False))
        assert not column().same_shape(column(type_name="varchar"))


class TestDefaultConstraint:
    """Тесты DefaultConstraint."""

    def test_named_default(self):
        default = DefaultConstraint("DF_Beer_Style", 3, "Style", False, "('Ale')")
        assert default.definition_sql() == " CONSTRAINT [DF_Beer_Style] DEFAULT ('Ale') FOR [Style]"

    def test_system_named_default(self):
        default = DefaultConstraint("DF__Beer__Style__1A2B", 3, "Style", True, "('Ale')")
        assert default.definition_sql() == " DEFAULT ('Ale') FOR [Style]"

    def test_matches(self):
        """Тот же столбец и имя либо оба имени системные."""
        named = DefaultConstraint("DF_Beer_Style", 3, "Style", False, "('Ale')")
        system = DefaultConstraint("DF__Beer__Style__1A2B", 3, "Style", True, "('Ale')")
        other_system = DefaultConstraint("DF__Beer__Style__9F9F", 3, "Style", True, "('Lager')")
        other_column = DefaultConstraint("DF_Beer_Style", 4, "Kind", False, "('Ale')")
        assert named.matches(DefaultConstraint("DF_Beer_Style", 3, "Style", False, "('Lager')"))
        assert system.matches(other_system)
        assert not named.matches(system)
        assert not named.matches(other_column)


class TestReconstructedSql:
    """Команды, восстановленные из каталога, получают правильный тип."""

    def classify(self, sql):
        return default_classifier().classify(sql)

    def test_check_constraint(self):
        sql = CheckConstraint("Beer", "CK_Beer_ID", "([ID]>(0))").create_sql()
        assert sql == "ALTER TABLE [Beer] ADD CONSTRAINT [CK_Beer_ID] CHECK ([ID]>(0))"
        assert self.classify(sql).kind == SchemaObjectKind.CONSTRAINT

    def test_object_permission(self):
        sql = PermissionInfo("app", "EXECUTE", "OBJECT_OR_COLUMN", "GetBeer").grant_sql()
        assert sql == "GRANT EXECUTE ON [GetBeer] TO [app] -- DEPENDENCY"
        result = self.classify(sql)
        assert result.kind == SchemaObjectKind.PERMISSION
        assert result.name == "EXECUTE ON [GetBeer] TO [app]"

    def test_type_permission(self):
        sql = PermissionInfo("app", "REFERENCES", "TYPE", "BeerTable").grant_sql()
        assert sql == "GRANT REFERENCES ON TYPE::[BeerTable] TO [app] -- DEPENDENCY"

    def test_foreign_key(self):
        key = ForeignKeyInfo("FK_Beer_Brewery", "Beer", "Brewery", "NO_ACTION", "SET_NULL",
                             [("BreweryID", "ID")])
        sql = key.create_sql()
        assert sql == (
            "ALTER TABLE [Beer] ADD CONSTRAINT [FK_Beer_Brewery] FOREIGN KEY ([BreweryID]) "
            "REFERENCES [Brewery] ([ID]) ON DELETE NO ACTION ON UPDATE SET NULL"
        )
        result = self.classify(sql)
        assert result.kind == SchemaObjectKind.FOREIGN_KEY
        assert result.name == "[Beer].[FK_Beer_Brewery]"

    def test_primary_key_index(self):
        index = IndexInfo("PK_Beer", "Beer", "CLUSTERED", True, True, True, "PRIMARY", ["ID"])
        sql = index.create_sql()
        assert sql == "ALTER TABLE [Beer] ADD CONSTRAINT [PK_Beer] PRIMARY KEY CLUSTERED ([ID]) ON [PRIMARY]"
        assert self.classify(sql).kind == SchemaObjectKind.PRIMARY_KEY

    def test_plain_index(self):
        index = IndexInfo("IX_Beer_Name", "Beer", "NONCLUSTERED", True, False, False, None, ["Name", "Style"])
        sql = index.create_sql()
        assert sql == "CREATE UNIQUE NONCLUSTERED INDEX [IX_Beer_Name] ON [Beer] ([Name],[Style])"
        result = self.classify(sql)
        assert result.kind == SchemaObjectKind.INDEX
        assert result.name == "[Beer].[IX_Beer_Name]"

    def test_xml_indexes(self):
        primary = XmlIndexInfo("PXML_Doc", "Doc", columns=["Body"])
        secondary = XmlIndexInfo("SXML_Doc", "Doc", "PATH", "PXML_Doc", ["Body"])
        assert primary.create_sql() == "CREATE PRIMARY XML INDEX [PXML_Doc] ON [Doc] ([Body])"
        assert secondary.create_sql() == (
            "CREATE XML INDEX [SXML_Doc] ON [Doc] ([Body]) USING XML INDEX [PXML_Doc] FOR PATH"
        )
        assert self.classify(primary.create_sql()).kind == SchemaObjectKind.PRIMARY_XML_INDEX
        assert self.classify(secondary.create_sql()).kind == SchemaObjectKind.SECONDARY_XML_INDEX


class TestSqlCatalog:
    """SqlCatalog поверх фиктивного подключения."""

    def test_table_columns(self):
        connection = FakeConnection().on_query("sys.identity_columns", [
            {"Name": "ID", "ColumnID": 1, "TypeName": "int", "IsNullable": 0},
            {"Name": "Name", "ColumnID": 2, "TypeName": "nvarchar", "MaxLength": 256, "IsNullable": 1},
        ])
        columns = SqlCatalog(connection, is_azure=False).table_columns("Beer")
        assert [c.name for c in columns] == ["ID", "Name"]
        assert columns[1].definition_sql() == "[Name] nvarchar(128)"

    def test_default_constraints_strip_shadow_prefix(self):
        seen = []
        connection = FakeConnection().on_query(
            "sys.default_constraints", lambda params: seen.append(params) or []
        )
        SqlCatalog(connection).default_constraints("Beer")
        assert seen == [("Insight__tmp_", "Beer")]

    def test_data_space_and_object_id(self):
        connection = FakeConnection().on_scalar("data_space_id", 1).on_scalar("SELECT OBJECT_ID(?)", None)
        catalog = SqlCatalog(connection)
        assert catalog.data_space_id("Beer") == 1
        assert catalog.object_id("[Missing]") is None

    def test_is_azure_is_read_once(self):
        connection = FakeConnection().on_scalar("SERVERPROPERTY", 1)
        catalog = SqlCatalog(connection)
        assert catalog.is_azure
        assert catalog.is_azure
        assert len(connection.scalar_calls) == 1

    def test_check_constraint_missing(self):
        assert SqlCatalog(FakeConnection()).check_constraint("CK_Missing") is None

    def test_foreign_keys_with_columns(self):
        connection = (
            FakeConnection()
            .on_query("FROM sys.foreign_keys", [{
                "Name": "FK_Beer_Brewery", "TableName": "Beer", "RefTableName": "Brewery",
                "DeleteAction": "CASCADE", "UpdateAction": "NO_ACTION",
            }])
            .on_query("FROM sys.foreign_key_columns", [{"FkColumnName": "BreweryID", "PkColumnName": "ID"}])
        )
        keys = SqlCatalog(connection).foreign_keys_referencing("PK_Brewery")
        assert keys[0].columns == [("BreweryID", "ID")]
        assert "ON DELETE CASCADE" in keys[0].create_sql()

    def test_indexes(self):
        seen = []

        def index_rows(params):
            seen.append(params)
            return [{
                "Name": "IX_Beer_Name", "TableName": "Beer", "Type": "NONCLUSTERED",
                "IsUnique": 0, "IsConstraint": 0, "IsPrimaryKey": 0, "DataSpace": None,
            }]

        connection = (
            FakeConnection()
            .on_query("sys.key_constraints", index_rows)
            .on_query("ORDER BY ic.key_ordinal", [{"ColumnName": "Name"}])
        )
        catalog = SqlCatalog(connection, is_azure=True)
        indexes = catalog.indexes(42, "Name")
        assert seen == [(42, 42, "Name")]
        assert indexes[0].columns == ["Name"]
        assert indexes[0].create_sql() == "CREATE NONCLUSTERED INDEX [IX_Beer_Name] ON [Beer] ([Name])"

    def test_indexes_of_missing_object(self):
        connection = FakeConnection()
        assert SqlCatalog(connection).indexes(None) == []
        assert connection.scalar_calls == []

    def test_xml_indexes_skip_empty_rows(self):
        """Каталог отвечает строкой NULL, если XML-индексы не поддерживаются."""
        connection = FakeConnection().on_query("sys.system_objects", [{"Nothing": None}])
        assert SqlCatalog(connection).xml_indexes_of_table("Doc") == []

    def test_reads_are_not_scripted(self):
        recording = RecordingConnection(FakeConnection())
        with recording.record_only():
            SqlCatalog(recording).object_id("[Beer]")
        assert recording.script_log == []


class TestSqlColumnProvider:
    """Поиск столбцов для AutoProc."""

    def test_get_columns(self):
        connection = FakeConnection().on_query("is_readonly", [
            {"name": "ID", "type_name": "int", "max_length": 4, "precision": 10, "scale": 0,
             "is_identity": 1, "is_readonly": 1, "is_key": 1},
            {"name": "Name", "type_name": "nvarchar", "max_length": 256, "precision": 0, "scale": 0,
             "is_identity": 0, "is_readonly": 0, "is_key": 0},
            {"name": "Abv", "type_name": "float", "max_length": 8, "precision": 53, "scale": 0,
             "is_identity": 0, "is_readonly": 0, "is_key": 0},
            {"name": "Version", "type_name": "rowversion", "max_length": 8, "precision": 0, "scale": 0,
             "is_identity": 0, "is_readonly": 0, "is_key": 0},
        ])
        columns = SqlColumnProvider(connection).get_columns("[Beer]")

        assert [c.sql_type for c in columns] == ["int", "nvarchar(128)", "float(53)", "rowversion"]
        assert columns[0].is_key and columns[0].is_identity and columns[0].is_readonly
        assert columns[3].is_readonly
        assert columns[1].parameter_name == "@Name"
