"""
Соединение с базой, как его видит установщик.

Установщик не открывает и не закрывает соединения: он работает внутри
уже открытого соединения и транзакции вызывающей стороны.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Protocol, Sequence, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Connection(Protocol):
    """
    Минимальный интерфейс соединения.

    Параметры запросов — в стиле qmark (?), строки результата — dict
    с ключами по именам колонок.
    """

    def execute(self, sql: str) -> int:
        """Выполняет оператор, возвращает число затронутых строк."""
        ...

    def query(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        ...

    def scalar(self, sql: str, params: Sequence[Any] = ()) -> Any:
        """Первая колонка первой строки либо None."""
        ...


class RecordingConnection:
    """
    Обёртка, записывающая каждый выполненный оператор в журнал сценария.

    record_only()  — операторы только записываются (пробный прогон);
    suppress_log() — операторы выполняются всегда и не записываются
                     (чтение каталога, теневые таблицы).
    """

    def __init__(self, inner: Connection):
        self.inner = inner
        self.script_log: List[str] = []
        self._record_only = 0
        self._suppressed = 0

    @property
    def recording_only(self) -> bool:
        return self._record_only > 0 and self._suppressed == 0

    # ==========================================================
    # РЕЖИМЫ
    # ==========================================================

    @contextmanager
    def record_only(self) -> Iterator["RecordingConnection"]:
        self._record_only += 1
        try:
            yield self
        finally:
            self._record_only -= 1

    @contextmanager
    def suppress_log(self) -> Iterator["RecordingConnection"]:
        self._suppressed += 1
        try:
            yield self
        finally:
            self._suppressed -= 1

    def reset_log(self) -> None:
        self.script_log = []

    def script(self, separator: str = "GO") -> str:
        return "".join(f"{sql.strip()}\n{separator}\n" for sql in self.script_log)

    # ==========================================================
    # CONNECTION
    # ==========================================================

    def execute(self, sql: str) -> int:
        if self._suppressed == 0:
            self.script_log.append(sql)
        if self.recording_only:
            logger.debug("Recorded: %s", sql.strip().splitlines()[0] if sql.strip() else "")
            return 0
        return self.inner.execute(sql)

    def query(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        return self.inner.query(sql, params)

    def scalar(self, sql: str, params: Sequence[Any] = ()) -> Any:
        return self.inner.scalar(sql, params)

    # ==========================================================
    # ТРАНЗАКЦИЯ (если внутреннее соединение её поддерживает)
    # ==========================================================

    def commit(self) -> None:
        commit = getattr(self.inner, "commit", None)
        if commit is not None:
            commit()

    def rollback(self) -> None:
        rollback = getattr(self.inner, "rollback", None)
        if rollback is not None:
            rollback()
