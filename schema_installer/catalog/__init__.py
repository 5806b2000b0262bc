from .rows import (
    CheckConstraint,
    DefaultConstraint,
    ExpressionDependency,
    ForeignKeyInfo,
    IndexInfo,
    PermissionInfo,
    TableColumn,
    XmlIndexInfo,
    format_type,
)
from .sql_catalog import SqlCatalog, SqlColumnProvider

__all__ = [
    "CheckConstraint",
    "DefaultConstraint",
    "ExpressionDependency",
    "ForeignKeyInfo",
    "IndexInfo",
    "PermissionInfo",
    "TableColumn",
    "XmlIndexInfo",
    "format_type",
    "SqlCatalog",
    "SqlColumnProvider",
]
