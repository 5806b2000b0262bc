"""
События установки для вызывающей стороны (журнал, интерфейс).

На корректность установки не влияют: слушатель получает
SchemaEvent и ничего не возвращает.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Protocol, Union, runtime_checkable

from ..core.models import SchemaObjectKind

logger = logging.getLogger(__name__)


class SchemaEventType(Enum):
    BEFORE_DROP = "BeforeDrop"
    BEFORE_TABLE_UPDATE = "BeforeTableUpdate"
    AFTER_TABLE_UPDATE = "AfterTableUpdate"
    BEFORE_CREATE = "BeforeCreate"
    AFTER_CREATE = "AfterCreate"
    MISSING_OBJECT = "MissingObject"


@dataclass(frozen=True)
class SchemaEvent:
    event_type: SchemaEventType
    object_name: str
    kind: Optional[SchemaObjectKind] = None
    schema_object: Optional[object] = None

    def __str__(self) -> str:
        return f"{_VERBS[self.event_type]} {self.object_name}"


_VERBS = {
    SchemaEventType.BEFORE_DROP: "Dropping",
    SchemaEventType.BEFORE_TABLE_UPDATE: "Updating",
    SchemaEventType.AFTER_TABLE_UPDATE: "Updated",
    SchemaEventType.BEFORE_CREATE: "Creating",
    SchemaEventType.AFTER_CREATE: "Created",
    SchemaEventType.MISSING_OBJECT: "Missing",
}


@runtime_checkable
class SchemaEventListener(Protocol):
    def on_schema_event(self, event: SchemaEvent) -> None:
        ...


Listener = Union[SchemaEventListener, Callable[[SchemaEvent], None]]


class LoggingEventListener:
    """Пишет события в logging: удаления и создания на INFO, остальное на DEBUG."""

    INFO_EVENTS = (
        SchemaEventType.BEFORE_DROP,
        SchemaEventType.BEFORE_CREATE,
        SchemaEventType.BEFORE_TABLE_UPDATE,
        SchemaEventType.MISSING_OBJECT,
    )

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def on_schema_event(self, event: SchemaEvent) -> None:
        level = logging.INFO if event.event_type in self.INFO_EVENTS else logging.DEBUG
        self.log.log(level, "%s", event)


class EventDispatcher:
    """Рассылает событие всем слушателям в порядке регистрации."""

    def __init__(self, listeners: Optional[Iterable[Listener]] = None):
        self.listeners: List[Listener] = []
        for listener in listeners or []:
            self.add(listener)

    def add(self, listener: Listener) -> None:
        if not isinstance(listener, SchemaEventListener) and not callable(listener):
            raise TypeError(f"{listener!r} не является слушателем событий")
        self.listeners.append(listener)

    def fire(
        self,
        event_type: SchemaEventType,
        object_name: str,
        kind: Optional[SchemaObjectKind] = None,
        schema_object: Optional[object] = None,
    ) -> SchemaEvent:
        event = SchemaEvent(event_type, object_name, kind, schema_object)
        for listener in self.listeners:
            if isinstance(listener, SchemaEventListener):
                listener.on_schema_event(event)
            else:
                listener(event)
        return event
