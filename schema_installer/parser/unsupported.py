"""
Проверка неподдерживаемых конструкций.

Анонимные PRIMARY KEY / FOREIGN KEY / CHECK получают системные имена,
которые меняются от установки к установке: такие ограничения нельзя
отслеживать по подписи и удалять по отдельности. Поэтому они отклоняются:

- ALTER TABLE t ADD PRIMARY KEY (...)            (нет CONSTRAINT name)
- ALTER TABLE t ADD CONSTRAINT CHECK (...)       (ключевое слово вместо имени)
- CREATE TABLE t (id int, CHECK (id > 0))        (на уровне таблицы)
- CREATE TABLE t (id int PRIMARY KEY)            (на уровне колонки)
"""

from __future__ import annotations

import re
from typing import List, Optional

from ..utils.naming import SQL_NAME_EXPRESSION
from .normalizer import SqlNormalizer

_N = SQL_NAME_EXPRESSION

_ALTER_UNNAMED_RE = re.compile(
    rf"ALTER\s+TABLE\s+{_N}\s+(?:WITH\s+(?:NO)?CHECK\s+)?ADD\s+"
    rf"(?:CONSTRAINT\s*\(?\s*(?:CHECK|PRIMARY|FOREIGN|UNIQUE|DEFAULT)\b|CHECK\b|PRIMARY\s+KEY\b|FOREIGN\s+KEY\b)",
    re.IGNORECASE | re.DOTALL,
)

_CREATE_TABLE_RE = re.compile(rf"CREATE\s+TABLE\s+{_N}\s*\(", re.IGNORECASE)

_TABLE_LEVEL_RE = re.compile(r"^(CHECK|PRIMARY\s+KEY|FOREIGN\s+KEY)\b", re.IGNORECASE)
_NAMED_CONSTRAINT_RE = re.compile(r"^CONSTRAINT\s+\S+", re.IGNORECASE)
_COLUMN_KEYWORD_RE = re.compile(r"\b(CHECK|PRIMARY\s+KEY|FOREIGN\s+KEY|REFERENCES)\b", re.IGNORECASE)
_PRECEDED_BY_NAME_RE = re.compile(r"CONSTRAINT\s+\S+\s+$", re.IGNORECASE)
_PRECEDED_BY_FK_RE = re.compile(r"FOREIGN\s+KEY\s+$", re.IGNORECASE)


def split_elements(body: str) -> List[str]:
    """Делит тело CREATE TABLE по запятым верхнего уровня."""
    parts = []
    depth = 0
    current = []

    for ch in body:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1

        if ch == "," and depth == 0:
            part = "".join(current).strip()
            if part:
                parts.append(part)
            current = []
        else:
            current.append(ch)

    tail = "".join(current).strip()
    if tail:
        parts.append(tail)

    return parts


def _table_body(masked: str) -> Optional[str]:
    m = _CREATE_TABLE_RE.search(masked)
    if not m:
        return None

    depth = 1
    start = m.end()
    for i in range(start, len(masked)):
        ch = masked[i]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return masked[start:i]
    return masked[start:]


def _check_column(element: str) -> Optional[str]:
    for m in _COLUMN_KEYWORD_RE.finditer(element):
        prefix = element[:m.start()]
        keyword = " ".join(m.group(1).upper().split())

        if keyword == "REFERENCES" and _PRECEDED_BY_FK_RE.search(prefix):
            # FOREIGN KEY REFERENCES: проверяется по FOREIGN KEY
            continue
        if not _PRECEDED_BY_NAME_RE.search(prefix):
            return f"unnamed inline {keyword} constraint"
    return None


def find_unsupported(sql: str, normalizer: Optional[SqlNormalizer] = None) -> Optional[str]:
    """
    Возвращает описание неподдерживаемой конструкции или None.
    Комментарии, строки и имена в скобках предварительно маскируются.
    """
    normalizer = normalizer or SqlNormalizer()
    masked = normalizer.mask(sql)

    if _ALTER_UNNAMED_RE.search(masked):
        return "unnamed constraint in ALTER TABLE"

    body = _table_body(masked)
    if body is None:
        return None

    for element in split_elements(body):
        if _TABLE_LEVEL_RE.match(element):
            return "unnamed table-level constraint"
        if _NAMED_CONSTRAINT_RE.match(element):
            continue
        reason = _check_column(element)
        if reason:
            return reason

    return None
