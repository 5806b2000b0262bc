"""
Классификатор SQL-объектов.

По сырому тексту определяет вид объекта и каноническое имя.

ВАЖНО:
- это не SQL-парсер: используется упорядоченный список детекторов
  (вид, регулярное выражение, шаблон имени);
- среди сработавших детекторов выбирается самый ранний по позиции,
  при равенстве — вид с меньшим приоритетом (базовые виды выигрывают);
- библиотека детекторов неизменяема и строится один раз.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, List, Optional, Tuple

from ..autoproc.directive import AUTOPROC_EXPRESSION
from ..core.exceptions import SchemaParsingError
from ..core.models import SchemaObjectKind
from ..utils.naming import SQL_NAME_EXPRESSION, format_sql_name
from .normalizer import SqlNormalizer
from .unsupported import find_unsupported

_N = SQL_NAME_EXPRESSION
_FLAGS = re.IGNORECASE | re.DOTALL

# Для этих видов выполняется проверка анонимных ограничений
_CONSTRAINT_CHECKED_KINDS = (
    SchemaObjectKind.TABLE,
    SchemaObjectKind.PRIMARY_KEY,
    SchemaObjectKind.FOREIGN_KEY,
    SchemaObjectKind.CONSTRAINT,
    SchemaObjectKind.DEFAULT,
)


@dataclass(frozen=True)
class Classification:
    """Результат классификации."""
    kind: SchemaObjectKind
    name: str
    position: int


@dataclass(frozen=True)
class Detector:
    """
    Детектор одного вида объекта.

    name_groups — группы regex, из которых собирается имя (в порядке шаблона).
    prefix      — префикс имени ("QUEUE", "ROLE", ...).
    raw         — имя берётся как есть (GRANT, AUTOPROC).
    """
    kind: SchemaObjectKind
    pattern: re.Pattern
    name_groups: Tuple[str, ...] = ("name",)
    prefix: Optional[str] = None
    raw: bool = False

    def match(self, sql: str) -> Optional[Classification]:
        m = self.pattern.search(sql)
        if not m:
            return None
        return Classification(kind=self.kind, name=self._build_name(m), position=m.start())

    def _build_name(self, m: re.Match) -> str:
        if self.kind == SchemaObjectKind.UNUSED:
            return ""

        if self.raw:
            if self.kind == SchemaObjectKind.PERMISSION:
                return f"{m.group('permission')} ON {m.group('name')} TO {m.group('grantee')}"
            return m.group(0).strip()

        name = ".".join(format_sql_name(m.group(g)) for g in self.name_groups)
        if self.prefix:
            return f"{self.prefix} {name}"
        return name


def _detector(kind: SchemaObjectKind, pattern: str, **kwargs) -> Detector:
    return Detector(kind=kind, pattern=re.compile(pattern, _FLAGS), **kwargs)


class DetectorLibrary:
    """
    Неизменяемый упорядоченный набор детекторов.
    Детекторы отсортированы по приоритету вида.
    """

    def __init__(self, detectors: Iterable[Detector]):
        ordered = sorted(detectors, key=lambda d: d.kind.priority)
        self._detectors: Tuple[Detector, ...] = tuple(ordered)

    def __iter__(self):
        return iter(self._detectors)

    def __len__(self) -> int:
        return len(self._detectors)

    @classmethod
    @lru_cache(maxsize=1)
    def standard(cls) -> "DetectorLibrary":
        K = SchemaObjectKind
        alter_table = rf"ALTER\s+TABLE\s+(?P<table>{_N})\s+(?:WITH\s+(?:NO)?CHECK\s+)?ADD\s+"
        table_and_name = ("table", "name")
        table_and_index = ("table", "index")

        return cls([
            _detector(K.INDEXED_VIEW, rf"--\s*INDEXEDVIEW.+?CREATE\s+VIEW\s+(?P<name>{_N})"),
            _detector(K.PRE_SCRIPT, rf"--\s*PRESCRIPT\s+(?P<name>{_N})"),
            _detector(K.SCRIPT, rf"--\s*SCRIPT\s+(?P<name>{_N})"),
            _detector(K.USER_DEFINED_TYPE, rf"CREATE\s+TYPE\s+(?P<name>{_N})"),
            _detector(K.USER_DEFINED_TYPE, rf"EXEC(?:UTE)?\s+sp_addtype\s+'?(?P<name>{_N})'?"),
            _detector(K.MASTER_KEY, rf"CREATE\s+MASTER\s+KEY\s+(?P<name>{_N})"),
            _detector(K.CERTIFICATE, rf"CREATE\s+CERTIFICATE\s+(?P<name>{_N})"),
            _detector(K.SYMMETRIC_KEY, rf"CREATE\s+SYMMETRIC\s+KEY\s+(?P<name>{_N})"),
            _detector(K.PARTITION_FUNCTION, rf"CREATE\s+PARTITION\s+FUNCTION\s+(?P<name>{_N})"),
            _detector(K.PARTITION_SCHEME, rf"CREATE\s+PARTITION\s+SCHEME\s+(?P<name>{_N})"),
            _detector(K.MESSAGE_TYPE, rf"CREATE\s+MESSAGE\s+TYPE\s+(?P<name>{_N})"),
            _detector(K.CONTRACT, rf"CREATE\s+CONTRACT\s+(?P<name>{_N})"),
            _detector(K.BROKER_PRIORITY, rf"CREATE\s+BROKER\s+PRIORITY\s+(?P<name>{_N})"),
            _detector(K.QUEUE, rf"CREATE\s+QUEUE\s+(?P<name>{_N})", prefix="QUEUE"),
            _detector(K.SERVICE, rf"CREATE\s+SERVICE\s+(?P<name>{_N})", prefix="SERVICE"),
            _detector(K.TABLE, rf"CREATE\s+TABLE\s+(?P<name>{_N})"),
            _detector(K.TRIGGER, rf"CREATE\s+TRIGGER\s+(?P<name>{_N})"),
            _detector(
                K.INDEX,
                rf"CREATE\s+(?:UNIQUE\s+)?(?:(?:CLUSTERED|NONCLUSTERED)\s+)?INDEX\s+(?P<index>{_N})\s+ON\s+(?P<table>{_N})",
                name_groups=table_and_index,
            ),
            _detector(K.VIEW, rf"CREATE\s+VIEW\s+(?P<name>{_N})"),
            _detector(K.STORED_PROCEDURE, rf"CREATE\s+PROC(?:EDURE)?\s+(?P<name>{_N})"),
            _detector(
                K.PERMISSION,
                rf"GRANT\s+(?P<permission>{_N})\s+ON\s+(?P<name>{_N})\s+TO\s+(?P<grantee>{_N})",
                raw=True,
            ),
            _detector(
                K.PRIMARY_KEY,
                alter_table + rf"CONSTRAINT\s*\(?(?P<name>{_N})\)?\s+PRIMARY\s+",
                name_groups=table_and_name,
            ),
            _detector(
                K.FOREIGN_KEY,
                alter_table + rf"CONSTRAINT\s*\(?(?P<name>{_N})\)?\s+FOREIGN\s+KEY",
                name_groups=table_and_name,
            ),
            _detector(
                K.DEFAULT,
                alter_table + rf"(?:CONSTRAINT\s+{_N}\s+)?DEFAULT\s+.+?\s+FOR\s+(?P<column>{_N})",
                name_groups=("table", "column"),
            ),
            _detector(
                K.CONSTRAINT,
                alter_table + rf"CONSTRAINT\s*\(?(?P<name>{_N})\)?",
                name_groups=table_and_name,
            ),
            _detector(K.FUNCTION, rf"CREATE\s+FUNCTION\s+(?P<name>{_N})"),
            _detector(
                K.PRIMARY_XML_INDEX,
                rf"CREATE\s+PRIMARY\s+XML\s+INDEX\s+(?P<index>{_N})\s+ON\s+(?P<table>{_N})",
                name_groups=table_and_index,
            ),
            _detector(
                K.SECONDARY_XML_INDEX,
                rf"CREATE\s+XML\s+INDEX\s+(?P<index>{_N})\s+ON\s+(?P<table>{_N})",
                name_groups=table_and_index,
            ),
            _detector(K.LOGIN, rf"CREATE\s+LOGIN\s+(?P<name>{_N})", prefix="LOGIN"),
            _detector(K.USER, rf"CREATE\s+USER\s+(?P<name>{_N})", prefix="USER"),
            _detector(K.ROLE, rf"CREATE\s+ROLE\s+(?P<name>{_N})", prefix="ROLE"),
            _detector(K.SCHEMA, rf"CREATE\s+SCHEMA\s+(?P<name>{_N})", prefix="SCHEMA"),
            _detector(K.UNUSED, r"SET\s+ANSI_NULLS"),
            _detector(K.UNUSED, r"SET\s+QUOTED_IDENTIFIER"),
            _detector(K.AUTO_PROC, AUTOPROC_EXPRESSION, raw=True),
        ])


class SqlClassifier:
    """
    classify(sql) -> Classification либо SchemaParsingError.
    """

    def __init__(self, library: Optional[DetectorLibrary] = None, normalizer: Optional[SqlNormalizer] = None):
        self.library = library or DetectorLibrary.standard()
        self.normalizer = normalizer or SqlNormalizer()

    # ==========================================================
    # PUBLIC API
    # ==========================================================

    def matches(self, sql: str) -> List[Classification]:
        """Все сработавшие детекторы в порядке выбора."""
        found = [c for c in (d.match(sql) for d in self.library) if c is not None]
        found.sort(key=lambda c: (c.position, c.kind.priority))
        return found

    def try_classify(self, sql: str) -> Optional[Classification]:
        found = self.matches(sql or "")
        return found[0] if found else None

    def classify(self, sql: str) -> Classification:
        result = self.try_classify(sql)
        if result is None:
            raise SchemaParsingError(f"Cannot determine the type of SQL object: {sql}", sql=sql)

        if result.kind in _CONSTRAINT_CHECKED_KINDS:
            reason = find_unsupported(sql, self.normalizer)
            if reason:
                raise SchemaParsingError(
                    f"Unsupported SQL ({reason}); constraints must be explicitly named: {sql}",
                    sql=sql,
                    position=result.position,
                )

        return result


_default_classifier: Optional[SqlClassifier] = None


def default_classifier() -> SqlClassifier:
    global _default_classifier
    if _default_classifier is None:
        _default_classifier = SqlClassifier()
    return _default_classifier
