from .dependencies import DependencyScripter
from .events import (
    EventDispatcher,
    LoggingEventListener,
    SchemaEvent,
    SchemaEventListener,
    SchemaEventType,
)
from .plan import InstallContext, InstallPlan
from .planner import SchemaInstaller
from .table_migrator import TableMigrator, shadow_table_name, shadow_table_sql

__all__ = [
    "DependencyScripter",
    "EventDispatcher",
    "LoggingEventListener",
    "SchemaEvent",
    "SchemaEventListener",
    "SchemaEventType",
    "InstallContext",
    "InstallPlan",
    "SchemaInstaller",
    "TableMigrator",
    "shadow_table_name",
    "shadow_table_sql",
]
