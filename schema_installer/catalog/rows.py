"""
Типизированные строки каталога SQL Server.

Каждая строка результата запроса каталога сразу переводится в dataclass;
словари дальше границы запроса не передаются.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..core.constants import LENGTH_TYPES, PRECISION_SCALE_TYPES, SCALE_TYPES, UNICODE_TYPES
from ..utils.naming import format_sql_name


def _bool(value: Any) -> bool:
    return bool(value) if value is not None else False


def _int(value: Any) -> Optional[int]:
    return int(value) if value is not None else None


def format_length(type_name: str, max_length: Optional[int]) -> str:
    """(MAX) либо длина в символах; у nchar/nvarchar каталог хранит байты."""
    if max_length is None:
        return ""
    if max_length == -1:
        return "(MAX)"
    if type_name in UNICODE_TYPES:
        max_length //= 2
    return f"({max_length})"


def format_type(type_name: str, max_length: Optional[int], precision: Optional[int], scale: Optional[int]) -> str:
    t = (type_name or "").lower()
    if t in LENGTH_TYPES:
        return type_name + format_length(t, max_length)
    if t in PRECISION_SCALE_TYPES:
        return f"{type_name}({precision}, {scale})"
    if t in SCALE_TYPES:
        return f"{type_name}({scale})"
    return type_name


@dataclass
class TableColumn:
    """Колонка таблицы для сравнения формы (миграция колонок)."""
    name: str
    column_id: int
    type_name: str
    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    is_nullable: bool = True
    is_identity: bool = False
    identity_seed: Any = None
    identity_increment: Any = None
    definition: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "TableColumn":
        return cls(
            name=row["Name"],
            column_id=int(row["ColumnID"]),
            type_name=row["TypeName"],
            max_length=_int(row.get("MaxLength")),
            precision=_int(row.get("Precision")),
            scale=_int(row.get("Scale")),
            is_nullable=_bool(row.get("IsNullable")),
            is_identity=_bool(row.get("IsIdentity")),
            identity_seed=row.get("IdentitySeed"),
            identity_increment=row.get("IdentityIncrement"),
            definition=row.get("Definition"),
        )

    @property
    def is_computed(self) -> bool:
        return self.definition is not None

    def shape(self) -> Tuple:
        return (
            self.type_name,
            self.max_length,
            self.precision,
            self.scale,
            self.is_nullable,
            self.is_identity,
            self.identity_seed,
            self.identity_increment,
            self.definition,
        )

    def same_shape(self, other: "TableColumn") -> bool:
        return self.shape() == other.shape()

    def definition_sql(self) -> str:
        """Определение колонки для ADD / ALTER COLUMN."""
        sql = format_sql_name(self.name)
        if self.is_computed:
            return f"{sql} AS {self.definition}"

        sql += " " + format_type(self.type_name, self.max_length, self.precision, self.scale)
        if self.is_identity:
            sql += f" IDENTITY ({self.identity_seed}, {self.identity_increment})"
        if not self.is_nullable:
            sql += " NOT NULL"
        return sql


@dataclass
class DefaultConstraint:
    """
    Умолчание колонки. name — без префикса теневой таблицы,
    чтобы явно названные умолчания старой и новой формы совпадали.
    """
    name: str
    column_id: int
    column_name: str
    is_system_named: bool
    definition: str

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "DefaultConstraint":
        return cls(
            name=row["Name"],
            column_id=int(row["ColumnID"]),
            column_name=row["ColumnName"],
            is_system_named=_bool(row.get("IsSystemNamed")),
            definition=row["Definition"],
        )

    def matches(self, other: "DefaultConstraint") -> bool:
        """Та же колонка и то же имя (или оба имени системные)."""
        if self.column_id != other.column_id:
            return False
        return self.name == other.name or (self.is_system_named and other.is_system_named)

    def definition_sql(self) -> str:
        sql = ""
        if not self.is_system_named:
            sql += f" CONSTRAINT {format_sql_name(self.name)}"
        return sql + f" DEFAULT {self.definition} FOR {format_sql_name(self.column_name)}"


@dataclass
class ExpressionDependency:
    name: str
    sql_type: str
    is_schema_bound: bool

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ExpressionDependency":
        return cls(
            name=row["Name"],
            sql_type=row["SqlType"],
            is_schema_bound=_bool(row.get("IsSchemaBound")),
        )


@dataclass
class CheckConstraint:
    table_name: str
    constraint_name: str
    definition: str

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "CheckConstraint":
        return cls(
            table_name=row["TableName"],
            constraint_name=row["ConstraintName"],
            definition=row["Definition"],
        )

    def create_sql(self) -> str:
        return (
            f"ALTER TABLE {format_sql_name(self.table_name)} "
            f"ADD CONSTRAINT {format_sql_name(self.constraint_name)} CHECK {self.definition}"
        )


@dataclass
class PermissionInfo:
    user_name: str
    permission: str
    class_type: str
    object_name: str

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PermissionInfo":
        return cls(
            user_name=row["UserName"],
            permission=row["Permission"],
            class_type=row["ClassType"],
            object_name=row["ObjectName"],
        )

    def grant_sql(self) -> str:
        scope = "TYPE::" if self.class_type == "TYPE" else ""
        return (
            f"GRANT {self.permission} ON {scope}{format_sql_name(self.object_name)} "
            f"TO {format_sql_name(self.user_name)} -- DEPENDENCY"
        )


@dataclass
class ForeignKeyInfo:
    name: str
    table_name: str
    ref_table_name: str
    delete_action: str
    update_action: str
    # (колонка внешнего ключа, колонка первичного ключа)
    columns: List[Tuple[str, str]] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ForeignKeyInfo":
        return cls(
            name=row["Name"],
            table_name=row["TableName"],
            ref_table_name=row["RefTableName"],
            delete_action=row["DeleteAction"],
            update_action=row["UpdateAction"],
        )

    def create_sql(self) -> str:
        fk_columns = ",".join(format_sql_name(fk) for fk, _ in self.columns)
        pk_columns = ",".join(format_sql_name(pk) for _, pk in self.columns)
        return (
            f"ALTER TABLE {format_sql_name(self.table_name)} ADD CONSTRAINT {format_sql_name(self.name)} "
            f"FOREIGN KEY ({fk_columns}) REFERENCES {format_sql_name(self.ref_table_name)} ({pk_columns}) "
            f"ON DELETE {self.delete_action.replace('_', ' ')} ON UPDATE {self.update_action.replace('_', ' ')}"
        )


@dataclass
class IndexInfo:
    name: str
    table_name: str
    type: str
    is_unique: bool
    is_constraint: bool
    is_primary_key: bool
    data_space: Optional[str] = None
    columns: List[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "IndexInfo":
        return cls(
            name=row["Name"],
            table_name=row["TableName"],
            type=row["Type"],
            is_unique=_bool(row.get("IsUnique")),
            is_constraint=_bool(row.get("IsConstraint")),
            is_primary_key=_bool(row.get("IsPrimaryKey")),
            data_space=row.get("DataSpace"),
        )

    def create_sql(self) -> str:
        name = format_sql_name(self.name)
        table = format_sql_name(self.table_name)
        columns = ",".join(format_sql_name(c) for c in self.columns)

        if self.is_constraint:
            key = "PRIMARY KEY " if self.is_primary_key else "UNIQUE " if self.is_unique else ""
            sql = f"ALTER TABLE {table} ADD CONSTRAINT {name} {key}{self.type} ({columns})"
        else:
            unique = "UNIQUE " if self.is_unique else ""
            sql = f"CREATE {unique}{self.type} INDEX {name} ON {table} ({columns})"

        if self.data_space is not None:
            sql += f" ON {format_sql_name(self.data_space)}"
        return sql


@dataclass
class XmlIndexInfo:
    name: str
    table_name: str
    secondary_type: Optional[str] = None
    parent_index_name: Optional[str] = None
    columns: List[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "XmlIndexInfo":
        return cls(
            name=row["Name"],
            table_name=row["TableName"],
            secondary_type=row.get("SecondaryType"),
            parent_index_name=row.get("ParentIndexName"),
        )

    def create_sql(self) -> str:
        primary = "PRIMARY " if self.parent_index_name is None else ""
        columns = ",".join(format_sql_name(c) for c in self.columns)
        sql = (
            f"CREATE {primary}XML INDEX {format_sql_name(self.name)} "
            f"ON {format_sql_name(self.table_name)} ({columns})"
        )
        if self.secondary_type is not None:
            sql += f" USING XML INDEX {format_sql_name(self.parent_index_name)} FOR {self.secondary_type}"
        return sql
