from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple


class SchemaObjectKind(Enum):
    """
    Виды объектов схемы.

    Порядок объявления = порядок создания (базовые виды первыми).
    Удаление выполняется в обратном порядке.
    """
    PRE_SCRIPT = "PreScript"
    LOGIN = "Login"
    USER = "User"
    ROLE = "Role"
    SCHEMA = "Schema"
    MASTER_KEY = "MasterKey"
    CERTIFICATE = "Certificate"
    SYMMETRIC_KEY = "SymmetricKey"
    PARTITION_FUNCTION = "PartitionFunction"
    PARTITION_SCHEME = "PartitionScheme"
    MESSAGE_TYPE = "MessageType"
    CONTRACT = "Contract"
    QUEUE = "Queue"
    SERVICE = "Service"
    BROKER_PRIORITY = "BrokerPriority"
    USER_DEFINED_TYPE = "UserDefinedType"
    TABLE = "Table"
    PRIMARY_KEY = "PrimaryKey"
    INDEX = "Index"
    FOREIGN_KEY = "ForeignKey"
    DEFAULT = "Default"
    CONSTRAINT = "Constraint"
    PRIMARY_XML_INDEX = "PrimaryXmlIndex"
    SECONDARY_XML_INDEX = "SecondaryXmlIndex"
    FUNCTION = "Function"
    VIEW = "View"
    INDEXED_VIEW = "IndexedView"
    TRIGGER = "Trigger"
    STORED_PROCEDURE = "StoredProcedure"
    AUTO_PROC = "AutoProc"
    PERMISSION = "Permission"
    SCRIPT = "Script"
    UNUSED = "Unused"

    @property
    def priority(self) -> int:
        return _KIND_PRIORITY[self]

    @classmethod
    def from_name(cls, name: str) -> "SchemaObjectKind":
        """Разбирает имя вида, сохранённое в реестре ("Table", "AutoProc", ...)."""
        key = (name or "").strip().lower()
        for kind in cls:
            if kind.value.lower() == key or kind.name.lower() == key:
                return kind
        raise ValueError(f"Unknown schema object kind: {name!r}")


_KIND_PRIORITY: Dict[SchemaObjectKind, int] = {k: i for i, k in enumerate(SchemaObjectKind)}


def install_order_key(kind: SchemaObjectKind, original_order: int, name: str) -> Tuple[int, int, str]:
    """Ключ сортировки: вид, затем исходный порядок, затем имя без учёта регистра."""
    return kind.priority, original_order or 0, (name or "").lower()


@dataclass
class RegistryEntry:
    """Строка реестра: один установленный объект."""
    schema_group: str
    object_name: str
    kind: SchemaObjectKind
    signature: str = ""
    original_order: int = 0

    def install_key(self) -> Tuple[int, int, str]:
        return install_order_key(self.kind, self.original_order, self.object_name)

    def matches(self, name: str) -> bool:
        return self.object_name.lower() == (name or "").lower()


_PARAMETER_RE = re.compile(r"\W")


@dataclass
class ColumnDefinition:
    """
    Колонка живой таблицы, как её видит генератор AutoProc.
    sql_type уже содержит длину/точность: nvarchar(128), decimal(18, 2).
    """
    name: str
    sql_type: str
    is_key: bool = False
    is_identity: bool = False
    is_readonly: bool = False

    @property
    def column_name(self) -> str:
        return f"[{self.name}]"

    @property
    def parameter_name(self) -> str:
        return "@" + _PARAMETER_RE.sub("", self.name)
