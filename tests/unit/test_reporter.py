"""
Модульные тесты отчётов и их экспорта.

Покрывают:
- отчёты parse, plan, diff и отчёты об ошибках
- экспорт в JSON, текст и Markdown
- запись отчётов в файлы
"""

import json

import pytest

from schema_installer.core.exceptions import SchemaValidationError
from schema_installer.core.models import RegistryEntry, SchemaObjectKind
from schema_installer.install.plan import InstallPlan
from schema_installer.report.reporter import Reporter
from schema_installer.schema.collection import SchemaObjectCollection
from schema_installer.schema.schema_object import SchemaObject


@pytest.fixture
def reporter():
    return Reporter()


@pytest.fixture
def plan():
    return InstallPlan(
        schema_group="test",
        drops=[RegistryEntry("test", "[OldView]", SchemaObjectKind.VIEW)],
        adds=[SchemaObject.parse("CREATE TABLE [Beer] ([ID] int)", 0)],
        modified_tables=["[Wine]"],
        unchanged=3,
    )


class TestBuildReports:
    """Построение отчёта."""

    def test_parse_report(self, reporter):
        collection = SchemaObjectCollection([
            "CREATE TABLE [Beer] ([ID] int)",
            "CREATE VIEW [V] AS SELECT 1",
            "CREATE VIEW [W] AS SELECT 2",
        ])
        report = reporter.build_parse_report(collection, sources=["schema.sql"])

        assert report["metadata"]["command"] == "parse"
        assert report["metadata"]["sources"] == ["schema.sql"]
        assert report["summary"] == {"total_objects": 3, "by_kind": {"Table": 1, "View": 2}}
        assert report["objects"][1] == {"order": 1, "kind": "View", "name": "[V]"}

    def test_plan_report(self, reporter, plan):
        report = reporter.build_plan_report(plan, command="install", performance={"total_time": 0.5})

        assert report["metadata"]["schema_group"] == "test"
        assert report["summary"]["objects_added"] == 1
        assert report["summary"]["objects_unchanged"] == 3
        assert report["plan"]["drops"] == [{"name": "[OldView]", "kind": "View"}]
        assert report["performance"] == {"total_time": 0.5}
        assert "script" not in report

    def test_plan_report_from_dict(self, reporter):
        report = reporter.build_plan_report({"schema_group": "test"}, command="script", script="SELECT 1\nGO\n")
        assert report["script"] == "SELECT 1\nGO\n"
        assert report["summary"] == {}

    def test_diff_report(self, reporter):
        report = reporter.build_diff_report("test", True)
        assert report["summary"] == {"has_changes": True}

    def test_error_report(self, reporter):
        report = reporter.build_error_report(SchemaValidationError("Duplicate", object_name="[Beer]"), "install")
        assert report["error"]["code"] == "VALIDATION_ERROR"
        assert report["error"]["details"] == {"object_name": "[Beer]"}
        assert report["metadata"]["status"] == "ERROR"

    def test_error_report_from_other_exception(self, reporter):
        report = reporter.build_error_report(RuntimeError("boom"))
        assert report["error"]["code"] == "UNKNOWN_ERROR"
        assert report["error"]["details"]["exception_type"] == "RuntimeError"

    def test_error_report_from_text(self, reporter):
        assert reporter.build_error_report("boom")["error"]["error"] == "boom"


class TestExport:
    """Экспорт отчёта."""

    def test_json(self, reporter, plan):
        output = reporter.export(reporter.build_plan_report(plan), format="json")
        data = json.loads(output)
        assert data["plan"]["adds"] == [{"name": "[Beer]", "kind": "Table", "order": 0}]

    def test_text_plan(self, reporter, plan):
        output = reporter.export(reporter.build_plan_report(plan, performance={"total_time": 0.25}), format="text")
        assert "Будет удалено: 1" in output
        assert "  - View [OldView]" in output
        assert "  + Table [Beer]" in output
        assert "total_time: 0.2500с" in output

    def test_text_objects(self):
        reporter = Reporter({"max_objects_in_text": 1})
        collection = SchemaObjectCollection(["CREATE TABLE [Beer] ([ID] int)", "CREATE VIEW [V] AS SELECT 1"])
        output = reporter.export(reporter.build_parse_report(collection), format="text")
        assert "Объектов: 2" in output
        assert "[Beer]" in output
        assert "... и ещё 1" in output

    def test_text_error(self, reporter):
        output = reporter.export(reporter.build_error_report(RuntimeError("boom")), format="text")
        assert "[UNKNOWN_ERROR] boom" in output

    def test_text_script(self, reporter):
        report = reporter.build_plan_report({"schema_group": "test"}, command="script", script="DROP VIEW [V]\nGO\n")
        output = reporter.export(report, format="text")
        assert "СЦЕНАРИЙ:\nDROP VIEW [V]\nGO" in output

    def test_markdown(self, reporter, plan):
        output = reporter.export(reporter.build_plan_report(plan), format="markdown")
        assert output.startswith("# SQL Server Schema Installer: install")
        assert "## Создание" in output
        assert "- + Table `[Beer]`" in output

    def test_markdown_error(self, reporter):
        output = reporter.export(reporter.build_error_report(RuntimeError("boom")), format="markdown")
        assert "`UNKNOWN_ERROR`: boom" in output

    def test_unknown_format(self, reporter, plan):
        with pytest.raises(ValueError):
            reporter.export(reporter.build_plan_report(plan), format="xml")

    def test_output_file(self, reporter, plan, tmp_path):
        path = tmp_path / "reports" / "plan.json"
        assert reporter.export(reporter.build_plan_report(plan), format="json", output_file=path) == ""
        assert json.loads(path.read_text(encoding="utf-8"))["metadata"]["command"] == "install"
