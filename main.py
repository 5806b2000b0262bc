"""
main.py

Точка входа декларативного установщика схемы SQL Server.

Запуск:
    python main.py parse schema.sql
    python main.py parse schema.sql --format markdown
    python main.py install schema.sql --connection "DRIVER=...;SERVER=...;DATABASE=..." --group app
    python main.py script schema.sql --connection "..." --group app --out changes.sql
    python main.py diff schema.sql --connection "..." --group app
    python main.py uninstall --connection "..." --group app
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List

from schema_installer import (
    LoggingEventListener,
    Reporter,
    SchemaInstaller,
    SchemaObjectCollection,
)

logger = logging.getLogger("schema_installer.cli")


def parse_args(argv: List[str] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Декларативный установщик схемы SQL Server"
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--format",
        choices=Reporter.FORMATS,
        default="text",
        help="Формат отчёта (по умолчанию: text)",
    )
    common.add_argument(
        "--out",
        help="Файл для сохранения отчёта или сценария (если не указан — вывод в stdout)",
    )
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Подробный журнал (DEBUG)",
    )
    common.add_argument(
        "--strip-print",
        action="store_true",
        help="Заменять PRINT на --PRINT в текстах объектов",
    )

    database = argparse.ArgumentParser(add_help=False)
    database.add_argument(
        "--connection",
        required=True,
        help="Строка подключения ODBC",
    )
    database.add_argument(
        "--group",
        required=True,
        help="Группа схемы в реестре",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    p = commands.add_parser("parse", parents=[common], help="Разобрать файлы без подключения к базе")
    p.add_argument("files", nargs="+", help="SQL-файлы с объектами, разделёнными GO")

    for name, text in (
        ("install", "Установить набор объектов"),
        ("diff", "Проверить, отличается ли набор от установленного"),
        ("script", "Сценарий изменений без их применения"),
    ):
        p = commands.add_parser(name, parents=[common, database], help=text)
        p.add_argument("files", nargs="+", help="SQL-файлы с объектами, разделёнными GO")

    commands.add_parser("uninstall", parents=[common, database], help="Удалить все объекты группы")

    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def load_objects(files: List[str], strip_print: bool) -> SchemaObjectCollection:
    collection = SchemaObjectCollection(strip_print_statements=strip_print)
    for path in files:
        try:
            collection.load_file(Path(path))
        except OSError as e:
            raise RuntimeError(f"Не удалось прочитать файл {path}: {e}")
    return collection


def open_installer(args: argparse.Namespace) -> SchemaInstaller:
    # pyodbc: необязательная зависимость (extra mssql)
    from schema_installer.connection.pyodbc_adapter import PyodbcConnection

    connection = PyodbcConnection.connect(args.connection)
    return SchemaInstaller(
        connection,
        config={"strip_print_statements": args.strip_print},
        listeners=[LoggingEventListener()],
    )


def run(args: argparse.Namespace, reporter: Reporter) -> dict:
    if args.command == "parse":
        collection = load_objects(args.files, args.strip_print)
        collection.validate()
        return reporter.build_parse_report(collection, sources=args.files)

    installer = open_installer(args)
    try:
        if args.command == "uninstall":
            plan = installer.uninstall(args.group)
            return reporter.build_plan_report(plan, command="uninstall", performance=installer.stats)

        collection = load_objects(args.files, args.strip_print)

        if args.command == "diff":
            return reporter.build_diff_report(args.group, installer.diff(args.group, collection))

        if args.command == "script":
            script = installer.script_changes(args.group, collection)
            return reporter.build_plan_report(
                {"schema_group": args.group}, command="script", script=script
            )

        plan = installer.install(args.group, collection)
        return reporter.build_plan_report(plan, command="install", performance=installer.stats)
    finally:
        installer.connection.inner.close()


def main(argv: List[str] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)

    reporter = Reporter()

    try:
        report = run(args, reporter)
        status = 0
    except Exception as e:
        logger.error("%s", e)
        report = reporter.build_error_report(e, command=args.command)
        status = 1

    # --- Экспорт ---
    output = reporter.export(
        report,
        format=args.format,
        output_file=args.out,
    )

    if output:
        print(output)

    return status


if __name__ == "__main__":
    raise SystemExit(main())
