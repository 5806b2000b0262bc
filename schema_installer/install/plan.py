from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from ..core.models import RegistryEntry, SchemaObjectKind
from ..registry.schema_registry import SchemaRegistry
from ..schema.schema_object import SchemaObject


@dataclass
class InstallContext:
    """
    Рабочее состояние одной установки.
    Принадлежит одному вызову install() и наружу не передаётся.
    """
    schema_group: str
    registry: SchemaRegistry
    objects: List[SchemaObject]

    drops: List[RegistryEntry] = field(default_factory=list)
    adds: List[SchemaObject] = field(default_factory=list)

    # id() операторов ALTER TABLE, полученных при миграции колонок
    table_alters: Set[int] = field(default_factory=set)
    modified_tables: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    changed: List[str] = field(default_factory=list)
    unchanged: int = 0

    # ==========
    # ВСПОМОГАТЕЛЬНОЕ
    # ==========

    def desired(self, name: str) -> Optional[SchemaObject]:
        key = (name or "").lower()
        for obj in self.objects:
            if obj.name.lower() == key:
                return obj
        return None

    def is_scheduled_for_add(self, name: str) -> bool:
        key = (name or "").lower()
        return any(o.name.lower() == key for o in self.adds)

    def is_scheduled_for_drop(self, name: str) -> bool:
        key = (name or "").lower()
        return any(e.object_name.lower() == key for e in self.drops)

    def next_order(self) -> int:
        """Порядок после всех уже запланированных добавлений."""
        if not self.adds:
            return 1
        return max(o.original_order for o in self.adds) + 1

    def add_table_alter(self, obj: SchemaObject) -> None:
        self.adds.append(obj)
        self.table_alters.add(id(obj))

    def is_table_alter(self, obj: SchemaObject) -> bool:
        return id(obj) in self.table_alters

    def to_plan(self) -> "InstallPlan":
        return InstallPlan(
            schema_group=self.schema_group,
            drops=list(self.drops),
            adds=list(self.adds),
            modified_tables=list(self.modified_tables),
            missing=list(self.missing),
            changed=list(self.changed),
            unchanged=self.unchanged,
        )


@dataclass
class InstallPlan:
    """
    Результат сравнения желаемого набора с реестром:
    что будет удалено, что создано, какие таблицы изменены на месте.
    """
    schema_group: str
    drops: List[RegistryEntry] = field(default_factory=list)
    adds: List[SchemaObject] = field(default_factory=list)
    modified_tables: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    changed: List[str] = field(default_factory=list)
    unchanged: int = 0

    # ==========
    # ВСПОМОГАТЕЛЬНОЕ
    # ==========

    @property
    def has_changes(self) -> bool:
        return bool(self.drops or self.adds)

    def adds_by_kind(self, kind: SchemaObjectKind) -> List[SchemaObject]:
        return [o for o in self.adds if o.kind == kind]

    def drops_by_kind(self, kind: SchemaObjectKind) -> List[RegistryEntry]:
        return [e for e in self.drops if e.kind == kind]

    def summary(self) -> Dict[str, int]:
        return {
            "objects_added": len(self.adds),
            "objects_dropped": len(self.drops),
            "tables_modified": len(self.modified_tables),
            "objects_changed": len(self.changed),
            "objects_missing": len(self.missing),
            "objects_unchanged": self.unchanged,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_group": self.schema_group,
            "has_changes": self.has_changes,
            "summary": self.summary(),
            "drops": [
                {"name": e.object_name, "kind": e.kind.value}
                for e in self.drops
            ],
            "adds": [
                {"name": o.name, "kind": o.kind.value, "order": o.original_order}
                for o in self.adds
            ],
            "modified_tables": list(self.modified_tables),
            "missing": list(self.missing),
            "changed": list(self.changed),
        }
