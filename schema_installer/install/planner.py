"""
Установщик схемы: сравнение желаемого набора объектов с реестром
и приведение базы к этому набору.

Этапы: проверка -> реестр и сравнение -> удаление -> создание
(включая изменения таблиц на месте) -> проверка результата -> реестр.
Любая ошибка прерывает установку; транзакция откатывается целиком.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Dict, Iterable, Optional, Union

from ..catalog.sql_catalog import SqlCatalog, SqlColumnProvider
from ..connection.base import RecordingConnection
from ..core.constants import DEFAULT_INSTALLER_CONFIG
from ..core.exceptions import (
    ConfigurationError,
    SchemaExecutionError,
    SchemaInstallerError,
    SchemaValidationError,
    SchemaVerificationError,
)
from ..core.models import RegistryEntry, SchemaObjectKind
from ..implementation.registry import HandlerRegistry
from ..parser.classifier import SqlClassifier, default_classifier
from ..parser.normalizer import SqlNormalizer
from ..registry.schema_registry import SchemaRegistry, quiet
from ..schema.collection import SchemaObjectCollection
from ..schema.schema_object import SchemaObject
from .dependencies import DependencyScripter
from .events import EventDispatcher, Listener, SchemaEventType
from .plan import InstallContext, InstallPlan
from .table_migrator import TableMigrator

logger = logging.getLogger(__name__)

# имя таблицы реестра подставляется в SQL без параметров
_REGISTRY_TABLE_RE = re.compile(r"\w+")

Objects = Union[SchemaObjectCollection, Iterable[Union[SchemaObject, str]]]


class SchemaInstaller:
    """
    Декларативная установка группы объектов схемы.

    Соединение оборачивается в RecordingConnection: каждый выполненный
    оператор попадает в журнал, что даёт script_changes().
    """

    def __init__(
        self,
        connection,
        config: Optional[Dict[str, Any]] = None,
        handlers: Optional[HandlerRegistry] = None,
        catalog: Optional[SqlCatalog] = None,
        column_provider=None,
        listeners: Optional[Iterable[Listener]] = None,
        classifier: Optional[SqlClassifier] = None,
    ):
        self.config = dict(config or {})
        self._init_defaults()
        self._validate_config()

        if isinstance(connection, RecordingConnection):
            self.connection = connection
        else:
            self.connection = RecordingConnection(connection)

        self.handlers = handlers or HandlerRegistry.standard()
        self.catalog = catalog or SqlCatalog(self.connection)
        self.column_provider = column_provider or SqlColumnProvider(self.connection)
        self.events = EventDispatcher(listeners)
        self.classifier = classifier or default_classifier()
        self.normalizer = SqlNormalizer()

        self.dependencies = DependencyScripter(self.catalog, self.script_update, self.classifier)
        self.table_migrator = TableMigrator(self.connection, self.catalog, self.dependencies)

        self.stats: Dict[str, float] = {
            "validation_time": 0.0,
            "diff_time": 0.0,
            "drop_time": 0.0,
            "create_time": 0.0,
            "verify_time": 0.0,
            "registry_time": 0.0,
            "total_time": 0.0,
        }

    def _init_defaults(self) -> None:
        for k, v in DEFAULT_INSTALLER_CONFIG.items():
            self.config.setdefault(k, v)

    def _validate_config(self) -> None:
        for key in self.config:
            if key not in DEFAULT_INSTALLER_CONFIG:
                raise ConfigurationError(f"Unknown installer option: {key}", config_key=key)

        table = self.config["registry_table"]
        if not isinstance(table, str) or not _REGISTRY_TABLE_RE.fullmatch(table):
            raise ConfigurationError(
                f"Invalid registry table name: {table!r}", config_key="registry_table", config_value=str(table)
            )

    def add_listener(self, listener: Listener) -> None:
        self.events.add(listener)

    # ==========================================================
    # PUBLIC API
    # ==========================================================

    def install(self, schema_group: str, objects: Objects) -> InstallPlan:
        """Устанавливает набор и фиксирует транзакцию соединения."""
        try:
            plan = self._install(schema_group, objects)
            self.connection.commit()
            return plan
        except Exception:
            self.connection.rollback()
            raise

    def uninstall(self, schema_group: str) -> InstallPlan:
        """Удаляет все объекты группы: установка пустого набора."""
        return self.install(schema_group, SchemaObjectCollection())

    def diff(self, schema_group: str, objects: Objects) -> bool:
        """Есть ли различия между набором и реестром группы."""
        self._check_group(schema_group)
        collection = self._collection(objects)
        registry = self._registry(schema_group)
        # тот же порядок, что при установке: от него зависит подпись AutoProc
        used = sorted(collection.used_objects(), key=lambda o: o.install_key())

        if any(registry.find(o.name) is None for o in used):
            return True

        names = {o.name.lower() for o in used}
        if any(e.object_name.lower() not in names for e in registry.entries()):
            return True

        return any(registry.find(o.name).signature != o.get_signature(used) for o in used)

    def script_changes(self, schema_group: str, objects: Objects) -> str:
        """
        Сценарий изменений без их применения.

        Анализ (теневые таблицы, создание реестра) всё же выполняется
        в базе, поэтому в конце транзакция откатывается.
        """
        try:
            with self.connection.record_only():
                self._install(schema_group, objects)
            return self.connection.script()
        finally:
            self.connection.rollback()

    def plan(self, schema_group: str, objects: Objects) -> InstallPlan:
        """План установки без выполнения; транзакция откатывается."""
        self._check_group(schema_group)
        collection = self._collection(objects)
        collection.validate()
        try:
            return self._prepare(schema_group, collection).to_plan()
        finally:
            self.connection.rollback()

    # ==========================================================
    # УСТАНОВКА
    # ==========================================================

    def _install(self, schema_group: str, objects: Objects) -> InstallPlan:
        self._check_group(schema_group)
        self.connection.reset_log()
        total_start = time.perf_counter()

        # ---------- Этап 1: Проверка набора ----------
        t0 = time.perf_counter()
        collection = self._collection(objects)
        collection.validate()
        self.stats["validation_time"] = time.perf_counter() - t0

        # ---------- Этап 2: Реестр и сравнение ----------
        t0 = time.perf_counter()
        context = self._prepare(schema_group, collection)
        self.stats["diff_time"] = time.perf_counter() - t0

        logger.info(
            "Installing schema group %s: %d to drop, %d to create, %d tables to modify",
            schema_group, len(context.drops), len(context.adds), len(context.modified_tables),
        )

        # ---------- Этап 3: Удаление ----------
        t0 = time.perf_counter()
        self._drop_objects(context)
        self.stats["drop_time"] = time.perf_counter() - t0

        # ---------- Этап 4: Создание и изменение таблиц ----------
        t0 = time.perf_counter()
        self._add_objects(context)
        self.stats["create_time"] = time.perf_counter() - t0

        # ---------- Этап 5: Проверка результата ----------
        t0 = time.perf_counter()
        if self.config["verify"] and not self.connection.recording_only:
            self._verify_objects(context)
        self.stats["verify_time"] = time.perf_counter() - t0

        # ---------- Этап 6: Реестр ----------
        t0 = time.perf_counter()
        context.registry.update(context.objects, lambda o: o.get_signature(context.objects))
        context.registry.commit()
        self.stats["registry_time"] = time.perf_counter() - t0

        self.stats["total_time"] = time.perf_counter() - total_start
        logger.info("Schema group %s installed in %.3fs", schema_group, self.stats["total_time"])
        return context.to_plan()

    def _prepare(self, schema_group: str, collection: SchemaObjectCollection) -> InstallContext:
        """Сравнение набора с реестром: заполняет drops и adds."""
        objects = sorted(collection.used_objects(), key=lambda o: o.install_key())
        registry = self._registry(schema_group)
        context = InstallContext(schema_group=schema_group, registry=registry, objects=objects)

        # удаляемые: в реестре есть, в наборе нет; в обратном порядке установки
        names = {o.name.lower() for o in objects}
        context.drops = sorted(
            (e for e in registry.entries() if e.object_name.lower() not in names),
            key=lambda e: e.install_key(),
            reverse=True,
        )

        context.adds = [o for o in objects if not registry.contains(o.name)]

        with quiet(self.connection):
            for obj in objects:
                entry = registry.find(obj.name)
                if entry is None:
                    continue

                if entry.signature != obj.get_signature(objects):
                    logger.debug("Changed: %s", obj)
                    context.changed.append(obj.name)
                    self.script_update(context, obj)
                elif self.config["repair_missing"] and not self._exists(obj):
                    self._repair_missing(context, obj)
                else:
                    context.unchanged += 1

        context.adds.sort(key=lambda o: o.install_key())
        return context

    def _repair_missing(self, context: InstallContext, obj: SchemaObject) -> None:
        logger.warning("Object %s is registered but missing from the database", obj.name)
        self.events.fire(SchemaEventType.MISSING_OBJECT, obj.name, obj.kind, obj)
        context.missing.append(obj.name)
        if not context.is_scheduled_for_add(obj.name):
            context.adds.append(obj)

    def script_update(self, context: InstallContext, obj: SchemaObject) -> None:
        """
        Планирует пересоздание объекта и всего, что от него зависит.
        Таблица вместо пересоздания изменяется на месте.
        """
        if context.is_scheduled_for_add(obj.name):
            return

        desired = context.desired(obj.name)
        if desired is not None:
            obj = desired
        elif context.is_scheduled_for_drop(obj.name):
            # объект удаляется из набора и не пересоздаётся
            return

        if obj.kind == SchemaObjectKind.TABLE:
            self.dependencies.script_standard_dependencies(context, obj)
            self.table_migrator.migrate(context, obj)
            return

        obj = obj.with_order(context.next_order())
        context.adds.append(obj)

        self.dependencies.script_object_dependencies(context, obj)

        # сам объект удаляется после своих зависимостей
        entry = context.registry.find(obj.name)
        if entry is None:
            entry = RegistryEntry(schema_group=context.schema_group, object_name=obj.name, kind=obj.kind)
        context.drops.append(entry)

    # ==========================================================
    # ВЫПОЛНЕНИЕ
    # ==========================================================

    def _drop_objects(self, context: InstallContext) -> None:
        for entry in context.drops:
            self.events.fire(SchemaEventType.BEFORE_DROP, entry.object_name, entry.kind)
            try:
                self.handlers.drop(self.connection, entry.kind, entry.object_name)
            except SchemaInstallerError:
                raise
            except Exception as e:
                raise SchemaExecutionError(
                    f"Cannot drop SQL object {entry.object_name}: {e}", object_name=entry.object_name
                ) from e

    def _add_objects(self, context: InstallContext) -> None:
        for obj in context.adds:
            alter = context.is_table_alter(obj)
            before = SchemaEventType.BEFORE_TABLE_UPDATE if alter else SchemaEventType.BEFORE_CREATE
            after = SchemaEventType.AFTER_TABLE_UPDATE if alter else SchemaEventType.AFTER_CREATE

            self.events.fire(before, obj.name, obj.kind, obj)
            self._install_object(context, obj)
            self.events.fire(after, obj.name, obj.kind, obj)

    def _install_object(self, context: InstallContext, obj: SchemaObject) -> None:
        sql = self._install_sql(context, obj)
        try:
            for batch in self.normalizer.split_batches(sql):
                self.connection.execute(batch)
        except SchemaInstallerError:
            raise
        except Exception as e:
            raise SchemaExecutionError(
                f"Cannot create SQL object {obj.name}: {e}", object_name=obj.name, sql=sql
            ) from e

    def _install_sql(self, context: InstallContext, obj: SchemaObject) -> str:
        if obj.kind != SchemaObjectKind.AUTO_PROC:
            return obj.sql

        auto_proc = obj.auto_proc(self.column_provider, context.objects)
        columns = self.column_provider.get_columns(auto_proc.table_name)
        if not columns and self.connection.recording_only:
            # при пробном прогоне таблица ещё не создана
            return f"-- {obj.name.strip()}\n"
        return auto_proc.generate_sql(columns)

    def _verify_objects(self, context: InstallContext) -> None:
        for obj in context.objects:
            if not self._exists(obj):
                raise SchemaVerificationError(obj.name)

    # ==========================================================
    # HELPERS
    # ==========================================================

    def _exists(self, obj: SchemaObject) -> bool:
        return self.handlers.exists(self.connection, obj.kind, obj.name)

    def _registry(self, schema_group: str) -> SchemaRegistry:
        return SchemaRegistry(self.connection, schema_group, self.config["registry_table"])

    def _collection(self, objects: Objects) -> SchemaObjectCollection:
        if objects is None:
            raise SchemaValidationError("Schema objects are required")
        if isinstance(objects, SchemaObjectCollection):
            return objects
        return SchemaObjectCollection(
            objects,
            strip_print_statements=self.config["strip_print_statements"],
            classifier=self.classifier,
        )

    @staticmethod
    def _check_group(schema_group: str) -> None:
        if schema_group is None:
            raise SchemaValidationError("Schema group is required")
