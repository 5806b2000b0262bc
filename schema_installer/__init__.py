"""
schema_installer — декларативный установщик схемы SQL Server.

Желаемые объекты описываются обычным SQL; установщик сравнивает их
с реестром в целевой базе и выполняет минимальный набор изменений.
"""

from .core.constants import VERSION
from .core import (
    SchemaObjectKind,
    RegistryEntry,
    ColumnDefinition,
    SchemaInstallerError,
    SchemaParsingError,
    SchemaValidationError,
    SchemaExecutionError,
    SchemaVerificationError,
    UnsupportedOperationError,
    SchemaRegistryError,
    ConfigurationError,
)
from .parser import SqlClassifier, default_classifier
from .autoproc import AutoProc
from .schema import SchemaObject, SchemaObjectCollection
from .registry import SchemaRegistry
from .catalog import SqlCatalog, SqlColumnProvider
from .connection import Connection, RecordingConnection
from .install import (
    InstallPlan,
    LoggingEventListener,
    SchemaEvent,
    SchemaEventType,
    SchemaInstaller,
)
from .report import Reporter

__version__ = VERSION

__all__ = [
    "VERSION",
    "SchemaObjectKind",
    "RegistryEntry",
    "ColumnDefinition",
    "SchemaInstallerError",
    "SchemaParsingError",
    "SchemaValidationError",
    "SchemaExecutionError",
    "SchemaVerificationError",
    "UnsupportedOperationError",
    "SchemaRegistryError",
    "ConfigurationError",
    "SqlClassifier",
    "default_classifier",
    "AutoProc",
    "SchemaObject",
    "SchemaObjectCollection",
    "SchemaRegistry",
    "SqlCatalog",
    "SqlColumnProvider",
    "Connection",
    "RecordingConnection",
    "InstallPlan",
    "LoggingEventListener",
    "SchemaEvent",
    "SchemaEventType",
    "SchemaInstaller",
    "Reporter",
]
