"""
Нормализатор исходного SQL для установщика схемы.

Задачи:
- разбиение потока SQL на объекты по строкам-разделителям GO
- разбиение текста объекта на пакеты для выполнения
- отключение PRINT (PRINT -> --PRINT)
- маскирование комментариев и строковых литералов (через sqlparse),
  чтобы эвристики не срабатывали на закомментированном коде
"""
from __future__ import annotations

import re
from typing import Dict, List

import sqlparse
from sqlparse import tokens as T


class SqlNormalizer:
    """
    Нормализатор SQL Server (T-SQL).

    GO — не оператор T-SQL, а разделитель пакетов клиента,
    поэтому он распознаётся только как отдельная строка.
    """

    def __init__(self, batch_separator: str = "GO"):
        self.batch_separator = batch_separator
        self.patterns = self._compile_patterns()

    def _compile_patterns(self) -> Dict[str, re.Pattern]:
        patterns: Dict[str, re.Pattern] = {}
        sep = re.escape(self.batch_separator)

        # Разделитель пакетов: строка целиком
        patterns["separator_line"] = re.compile(rf"^\s*{sep}\s*$", re.IGNORECASE)
        patterns["separator_split"] = re.compile(rf"^\s*{sep}\s*$", re.IGNORECASE | re.MULTILINE)

        # Имя в квадратных скобках
        patterns["bracketed_name"] = re.compile(r"\[[^\]]*\]")

        # PRINT
        patterns["print"] = re.compile(r"\bPRINT\b")

        # Пробелы
        patterns["multiple_spaces"] = re.compile(r"\s+")

        return patterns

    # ==========================================================
    # РАЗБИЕНИЕ
    # ==========================================================

    def split_objects(self, sql_text: str) -> List[str]:
        """
        Делит поток SQL на тексты объектов.
        Каждая строка GO завершает объект; хвост без GO — тоже объект.
        Пустые фрагменты отбрасываются.
        """
        objects: List[str] = []
        current: List[str] = []

        for line in (sql_text or "").splitlines():
            if self.patterns["separator_line"].match(line):
                chunk = "\n".join(current)
                if chunk.strip():
                    objects.append(chunk + "\n")
                current = []
            else:
                current.append(line)

        last = "\n".join(current).strip()
        if last:
            objects.append(last)

        return objects

    def split_batches(self, sql: str) -> List[str]:
        """Делит текст одного объекта на пакеты для выполнения (непустые)."""
        return [
            piece for piece in self.patterns["separator_split"].split(sql or "")
            if piece.strip()
        ]

    # ==========================================================
    # ПРЕОБРАЗОВАНИЯ
    # ==========================================================

    def strip_print_statements(self, sql: str) -> str:
        return self.patterns["print"].sub("--PRINT", sql)

    def collapse_whitespace(self, sql: str) -> str:
        return self.patterns["multiple_spaces"].sub(" ", sql or "").strip()

    def mask(self, sql: str) -> str:
        """
        Возвращает текст, в котором:
        - комментарии заменены пробелом,
        - строковые литералы заменены на '',
        - имена в квадратных скобках заменены на [n].
        Структура (ключевые слова, скобки, запятые) сохраняется.
        """
        parts: List[str] = []
        for statement in sqlparse.parse(sql or ""):
            for token in statement.flatten():
                ttype = token.ttype
                if ttype in T.Comment:
                    parts.append(" ")
                elif ttype in T.Literal.String.Single:
                    parts.append("''")
                else:
                    parts.append(token.value)
        return self.patterns["bracketed_name"].sub("[n]", "".join(parts))
