"""
Обработчик AutoProc: существование и удаление всех генерируемых объектов.
"""
from __future__ import annotations

from typing import List, Optional

from ..autoproc.generator import AutoProc
from ..core.models import SchemaObjectKind
from ..parser.normalizer import SqlNormalizer
from ..utils.naming import SqlName
from .base import SchemaImpl


class AutoProcImpl(SchemaImpl):
    KINDS = (SchemaObjectKind.AUTO_PROC,)

    def _parse_name(self, name: str) -> Optional[SqlName]:
        self.auto_proc = AutoProc(name)
        return SqlName.parse(self.auto_proc.table_name)

    def exists(self, connection) -> bool:
        return self.auto_proc.exists(connection)

    def drop_statements(self, connection) -> List[str]:
        return SqlNormalizer().split_batches(self.auto_proc.drop_sql)
