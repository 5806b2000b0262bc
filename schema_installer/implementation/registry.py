"""
Реестр обработчиков видов объектов.
Сопоставляет вид объекта классу обработчика.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Type

from ..core.exceptions import UnsupportedOperationError
from ..core.models import SchemaObjectKind
from .autoproc import AutoProcImpl
from .base import SchemaImpl
from .broker import (
    BrokerPriorityImpl,
    ContractImpl,
    MessageTypeImpl,
    PartitionFunctionImpl,
    PartitionSchemeImpl,
    QueueImpl,
    ServiceImpl,
)
from .objects import (
    ConstraintImpl,
    DefaultImpl,
    FunctionImpl,
    IndexImpl,
    ScriptImpl,
    StoredProcedureImpl,
    TableImpl,
    TriggerImpl,
    UserDefinedTypeImpl,
    ViewImpl,
)
from .security import (
    CertificateImpl,
    LoginImpl,
    MasterKeyImpl,
    PermissionImpl,
    RoleImpl,
    SchemaImplementation,
    SymmetricKeyImpl,
    UserImpl,
)

STANDARD_HANDLERS: List[Type[SchemaImpl]] = [
    TableImpl,
    ViewImpl,
    StoredProcedureImpl,
    FunctionImpl,
    TriggerImpl,
    UserDefinedTypeImpl,
    IndexImpl,
    ConstraintImpl,
    DefaultImpl,
    ScriptImpl,
    LoginImpl,
    UserImpl,
    RoleImpl,
    SchemaImplementation,
    MasterKeyImpl,
    CertificateImpl,
    SymmetricKeyImpl,
    PermissionImpl,
    QueueImpl,
    ServiceImpl,
    MessageTypeImpl,
    ContractImpl,
    BrokerPriorityImpl,
    PartitionFunctionImpl,
    PartitionSchemeImpl,
    AutoProcImpl,
]


class HandlerRegistry:
    """
    Реестр обработчиков.
    Вид без обработчика (Unused) не может быть ни проверен, ни удалён.
    """

    def __init__(self, handlers: Optional[Iterable[Type[SchemaImpl]]] = None):
        self._handlers: Dict[SchemaObjectKind, Type[SchemaImpl]] = {}
        for handler_class in handlers or []:
            self.register(handler_class)

    @classmethod
    def standard(cls) -> "HandlerRegistry":
        return cls(STANDARD_HANDLERS)

    def register(self, handler_class: Type[SchemaImpl]) -> None:
        if not issubclass(handler_class, SchemaImpl):
            raise TypeError(f"{handler_class} должен быть подклассом SchemaImpl")
        if not handler_class.KINDS:
            raise ValueError(f"Обработчик {handler_class.__name__} не объявляет виды объектов")

        for kind in handler_class.KINDS:
            self._handlers[kind] = handler_class

    def handler_class(self, kind: SchemaObjectKind) -> Type[SchemaImpl]:
        handler_class = self._handlers.get(kind)
        if handler_class is None:
            raise UnsupportedOperationError(f"No handler for schema object kind {kind.value}")
        return handler_class

    def create(self, kind: SchemaObjectKind, name: str, sql: str = "") -> SchemaImpl:
        return self.handler_class(kind)(kind, name, sql)

    def supports(self, kind: SchemaObjectKind) -> bool:
        return kind in self._handlers

    def kinds(self) -> List[SchemaObjectKind]:
        return sorted(self._handlers, key=lambda k: k.priority)

    # ==========================================================
    # УДОБНЫЕ ОБЁРТКИ
    # ==========================================================

    def exists(self, connection, kind: SchemaObjectKind, name: str) -> bool:
        return self.create(kind, name).exists(connection)

    def drop(self, connection, kind: SchemaObjectKind, name: str) -> List[str]:
        return self.create(kind, name).drop(connection)
