"""
reporter.py

Отчёты установщика схемы и их экспорт.

Виды отчётов:
- разбор набора объектов (parse) — вид, имя и порядок каждого объекта;
- план / результат установки (install, uninstall, diff, script);
- отчёт об ошибке.

Экспорт: json / text / markdown.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ..core.constants import TOOL_NAME, VERSION
from ..core.exceptions import handle_exception


class Reporter:
    """
    Построитель и экспортёр отчётов.

    Отчёт — словарь с ключами metadata / summary и телом,
    зависящим от вида отчёта (objects, plan, script, error).
    """

    FORMATS = ("json", "text", "markdown")

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.tool_name = self.config.get("tool_name", TOOL_NAME)
        self.version = self.config.get("version", VERSION)
        self.max_objects_in_text = int(self.config.get("max_objects_in_text", 200))

    def _metadata(self, command: str, **extra: Any) -> Dict[str, Any]:
        metadata = {
            "timestamp": datetime.now().isoformat(),
            "tool": self.tool_name,
            "version": self.version,
            "command": command,
        }
        metadata.update(extra)
        return metadata

    # ---------------------------------------------------------------------
    # 1) BUILD REPORT
    # ---------------------------------------------------------------------

    def build_parse_report(self, objects: Iterable, sources: Optional[List[str]] = None) -> Dict[str, Any]:
        """Результат классификации набора объектов (без базы данных)."""
        items = [
            {"order": o.original_order, "kind": o.kind.value, "name": o.name}
            for o in objects
        ]

        by_kind: Dict[str, int] = {}
        for item in items:
            by_kind[item["kind"]] = by_kind.get(item["kind"], 0) + 1

        return {
            "metadata": self._metadata("parse", sources=list(sources or [])),
            "summary": {"total_objects": len(items), "by_kind": by_kind},
            "objects": items,
        }

    def build_plan_report(
            self,
            plan: Any,
            *,
            command: str = "install",
            performance: Optional[Dict[str, float]] = None,
            script: Optional[str] = None,
    ) -> Dict[str, Any]:
        """План или результат установки; script — текст сценария для команды script."""
        plan_dict = plan.to_dict() if hasattr(plan, "to_dict") else dict(plan or {})

        report = {
            "metadata": self._metadata(command, schema_group=plan_dict.get("schema_group")),
            "summary": plan_dict.get("summary", {}),
            "plan": plan_dict,
            "performance": performance or {},
        }
        if script is not None:
            report["script"] = script
        return report

    def build_diff_report(self, schema_group: str, has_changes: bool) -> Dict[str, Any]:
        return {
            "metadata": self._metadata("diff", schema_group=schema_group),
            "summary": {"has_changes": has_changes},
        }

    def build_error_report(self, error: Union[Exception, str], command: str = "") -> Dict[str, Any]:
        if isinstance(error, Exception):
            details = handle_exception(error)
        else:
            details = {"error": str(error), "code": "ERROR", "details": {}}
        return {
            "metadata": self._metadata(command, status="ERROR"),
            "summary": {"failed": True},
            "error": details,
        }

    # ---------------------------------------------------------------------
    # 2) EXPORT
    # ---------------------------------------------------------------------

    def export(
            self,
            report: Dict[str, Any],
            *,
            format: str = "json",
            output_file: Optional[Union[str, Path]] = None
    ) -> str:
        """
        Экспорт отчёта в заданном формате.
        Если задан output_file — отчёт сохраняется в файл и возвращается пустая строка.
        """
        fmt = (format or "json").lower().strip()

        if fmt == "json":
            output = self._export_json(report)
        elif fmt == "text":
            output = self._export_text(report)
        elif fmt == "markdown":
            output = self._export_markdown(report)
        else:
            raise ValueError(f"Неподдерживаемый формат: {format}. Доступные: {', '.join(self.FORMATS)}")

        if output_file:
            path = Path(output_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(output, encoding="utf-8")
            return ""
        return output

    def _export_json(self, report: Dict[str, Any]) -> str:
        return json.dumps(report, indent=2, ensure_ascii=False, default=str)

    def _export_text(self, report: Dict[str, Any]) -> str:
        metadata = report.get("metadata", {}) or {}

        out: List[str] = []
        out.append("=" * 70)
        out.append(f"{self.tool_name.upper()}: {metadata.get('command', '').upper()}")
        out.append("=" * 70)
        out.append("")
        out.append("МЕТАДАННЫЕ:")
        out.append(f"  Время: {metadata.get('timestamp', 'N/A')}")
        out.append(f"  Версия инструмента: {metadata.get('version', 'N/A')}")
        if metadata.get("schema_group"):
            out.append(f"  Группа схемы: {metadata['schema_group']}")
        out.append("")

        if "error" in report:
            error = report["error"]
            out.append("ОШИБКА:")
            out.append(f"  [{error.get('code', 'ERROR')}] {error.get('error', '')}")
        elif "objects" in report:
            self._text_objects(report, out)
        elif "plan" in report:
            self._text_plan(report, out)
        else:
            summary = report.get("summary", {}) or {}
            out.append("СВОДКА:")
            for key, value in summary.items():
                out.append(f"  {key}: {value}")

        perf = report.get("performance", {})
        if perf:
            out.append("")
            out.append("ПРОИЗВОДИТЕЛЬНОСТЬ:")
            for key, value in perf.items():
                out.append(f"  {key}: {value:.4f}с")

        script = report.get("script")
        if script:
            out.append("")
            out.append("СЦЕНАРИЙ:")
            out.append(script.rstrip())

        out.append("")
        out.append("=" * 70)
        return "\n".join(out)

    def _text_objects(self, report: Dict[str, Any], out: List[str]) -> None:
        summary = report.get("summary", {}) or {}
        objects = report.get("objects", [])

        out.append("СВОДКА:")
        out.append(f"  Объектов: {summary.get('total_objects', 0)}")
        for kind, count in sorted((summary.get("by_kind") or {}).items()):
            out.append(f"    {kind}: {count}")
        out.append("")
        out.append("ОБЪЕКТЫ:")
        for item in objects[: self.max_objects_in_text]:
            out.append(f"  {item['order']:>4}. {item['kind']:<18} {item['name']}")
        if len(objects) > self.max_objects_in_text:
            out.append(f"  ... и ещё {len(objects) - self.max_objects_in_text}")

    def _text_plan(self, report: Dict[str, Any], out: List[str]) -> None:
        plan = report.get("plan", {}) or {}
        summary = plan.get("summary", {}) or {}

        out.append("СВОДКА:")
        out.append(f"  Будет удалено: {summary.get('objects_dropped', 0)}")
        out.append(f"  Будет создано: {summary.get('objects_added', 0)}")
        out.append(f"  Таблиц изменено на месте: {summary.get('tables_modified', 0)}")
        out.append(f"  Без изменений: {summary.get('objects_unchanged', 0)}")

        if plan.get("drops"):
            out.append("")
            out.append("УДАЛЕНИЕ:")
            for item in plan["drops"]:
                out.append(f"  - {item['kind']} {item['name']}")
        if plan.get("adds"):
            out.append("")
            out.append("СОЗДАНИЕ:")
            for item in plan["adds"]:
                out.append(f"  + {item['kind']} {item['name']}")
        if plan.get("missing"):
            out.append("")
            out.append("ВОССТАНОВЛЕНЫ ОТСУТСТВУЮЩИЕ:")
            for name in plan["missing"]:
                out.append(f"  ! {name}")

    def _export_markdown(self, report: Dict[str, Any]) -> str:
        """Экспорт в Markdown формат."""
        metadata = report.get("metadata", {}) or {}

        out: List[str] = []
        out.append(f"# {self.tool_name}: {metadata.get('command', '')}")
        out.append("")
        out.append("## Метаданные")
        out.append(f"- **Время:** {metadata.get('timestamp', 'N/A')}")
        out.append(f"- **Версия инструмента:** {metadata.get('version', 'N/A')}")
        if metadata.get("schema_group"):
            out.append(f"- **Группа схемы:** {metadata['schema_group']}")
        out.append("")

        if "error" in report:
            error = report["error"]
            out.append("## Ошибка")
            out.append(f"`{error.get('code', 'ERROR')}`: {error.get('error', '')}")
            out.append("")
            return "\n".join(out)

        out.append("## Сводка")
        summary = report.get("summary", {}) or {}
        for key, value in summary.items():
            if isinstance(value, dict):
                continue
            out.append(f"- **{key}:** {value}")
        out.append("")

        if "objects" in report:
            out.append("## Объекты")
            out.append("| # | Вид | Имя |")
            out.append("|---|-----|-----|")
            for item in report["objects"]:
                out.append(f"| {item['order']} | {item['kind']} | `{item['name']}` |")
            out.append("")

        plan = report.get("plan")
        if plan:
            for title, key, sign in (("Удаление", "drops", "-"), ("Создание", "adds", "+")):
                if plan.get(key):
                    out.append(f"## {title}")
                    for item in plan[key]:
                        out.append(f"- {sign} {item['kind']} `{item['name']}`")
                    out.append("")

        script = report.get("script")
        if script:
            out.append("## Сценарий")
            out.append("```sql")
            out.append(script.rstrip())
            out.append("```")
            out.append("")

        return "\n".join(out)
