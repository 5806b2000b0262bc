"""
Набор объектов схемы и его загрузка из текста, файлов, потоков и ресурсов пакета.

Формат источника: объекты разделяются строками, содержащими только GO.
"""

from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, TextIO, Union

from ..core.exceptions import SchemaVerificationError
from ..core.models import SchemaObjectKind
from ..implementation.registry import HandlerRegistry
from ..parser.classifier import SqlClassifier, default_classifier
from ..parser.normalizer import SqlNormalizer
from ..utils.validators import assert_unique_names, assert_valid_sql_name
from .schema_object import SchemaObject

logger = logging.getLogger(__name__)


class SchemaObjectCollection:
    """
    Упорядоченный набор объектов.
    original_order объекта — его позиция при добавлении.
    """

    def __init__(
        self,
        objects: Optional[Iterable[Union[SchemaObject, str]]] = None,
        strip_print_statements: bool = False,
        classifier: Optional[SqlClassifier] = None,
        normalizer: Optional[SqlNormalizer] = None,
    ):
        self.strip_print_statements = strip_print_statements
        self.classifier = classifier or default_classifier()
        self.normalizer = normalizer or SqlNormalizer()
        self._objects: List[SchemaObject] = []

        for item in objects or []:
            self.add(item)

    # ==========================================================
    # ДОБАВЛЕНИЕ И ЗАГРУЗКА
    # ==========================================================

    def add(self, item: Union[SchemaObject, str]) -> SchemaObject:
        order = len(self._objects)
        if isinstance(item, SchemaObject):
            obj = item.with_order(order)
        else:
            sql = item
            if self.strip_print_statements:
                sql = self.normalizer.strip_print_statements(sql)
            obj = SchemaObject.parse(sql, order, self.classifier)

        self._objects.append(obj)
        return obj

    def load_text(self, text: str) -> int:
        chunks = self.normalizer.split_objects(text)
        for chunk in chunks:
            self.add(chunk)
        return len(chunks)

    def load_stream(self, stream: TextIO) -> int:
        return self.load_text(stream.read())

    def load_file(self, path: Union[str, Path], encoding: str = "utf-8") -> int:
        path = Path(path)
        with path.open("r", encoding=encoding) as f:
            count = self.load_stream(f)
        logger.debug("Loaded %d schema objects from %s", count, path)
        return count

    def load_resources(
        self,
        package: str,
        predicate: Optional[Callable[[str], bool]] = None,
        encoding: str = "utf-8",
    ) -> int:
        """Все ресурсы *.sql пакета (по имени), с необязательным фильтром."""
        names = sorted(
            entry.name for entry in resources.files(package).iterdir()
            if entry.is_file() and entry.name.lower().endswith(".sql")
        )

        count = 0
        for name in names:
            if predicate is not None and not predicate(name):
                continue
            text = resources.files(package).joinpath(name).read_text(encoding=encoding)
            count += self.load_text(text)
        logger.debug("Loaded %d schema objects from package %s", count, package)
        return count

    # ==========================================================
    # ПРОВЕРКИ
    # ==========================================================

    def validate(self) -> None:
        """Имена корректны и уникальны без учёта регистра; Unused пропускаются."""
        used = self.used_objects()
        for obj in used:
            assert_valid_sql_name(obj.name)
        assert_unique_names(o.name for o in used)

    def verify(self, connection, handlers: Optional[HandlerRegistry] = None) -> None:
        """Каждый объект присутствует в базе, иначе SchemaVerificationError."""
        handlers = handlers or HandlerRegistry.standard()
        for obj in self.used_objects():
            if not handlers.exists(connection, obj.kind, obj.name):
                raise SchemaVerificationError(obj.name)

    # ==========================================================
    # ДОСТУП
    # ==========================================================

    def used_objects(self) -> List[SchemaObject]:
        return [o for o in self._objects if o.kind != SchemaObjectKind.UNUSED]

    def find(self, name: str) -> Optional[SchemaObject]:
        key = (name or "").lower()
        for obj in self._objects:
            if obj.name.lower() == key:
                return obj
        return None

    def of_kind(self, kind: SchemaObjectKind) -> List[SchemaObject]:
        return [o for o in self._objects if o.kind == kind]

    def __iter__(self) -> Iterator[SchemaObject]:
        return iter(self._objects)

    def __len__(self) -> int:
        return len(self._objects)

    def __getitem__(self, index: int) -> SchemaObject:
        return self._objects[index]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.find(name) is not None
